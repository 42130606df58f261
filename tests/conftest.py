"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips exhaustive size sweeps)
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket_engine.models import ParticipantSeed
from bracket_engine.store import MemoryStandingsStore


def make_ids(count):
    """Registration ids reg1..regN, listed in seed order."""
    return [f"reg{i}" for i in range(1, count + 1)]


def make_participants(count):
    return [ParticipantSeed(f"reg{i}", i) for i in range(1, count + 1)]


def by_id(bracket):
    return {m.id: m for m in bracket['matches']}


@pytest.fixture
def eight_ids():
    return make_ids(8)


@pytest.fixture
def eight_participants():
    return make_participants(8)


@pytest.fixture
def memory_store():
    """Store with empty standings for reg1..reg4."""
    store = MemoryStandingsStore()
    for registration_id in make_ids(4):
        store.add_registration(registration_id)
    return store
