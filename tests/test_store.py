"""
Tests for standings stores and the optimistic concurrency helper.
"""
import pytest
import yaml

from bracket_engine.elimination import generate_single_elimination_bracket
from bracket_engine.errors import ConcurrentUpdateConflict
from bracket_engine.models import Standings
from bracket_engine.store import MemoryStandingsStore, YamlStandingsStore, retry_on_conflict

from conftest import make_ids


class TestMemoryStore:
    """Tests for the in-process store."""

    def test_new_registration_is_zeroed(self, memory_store):
        """Added registrations start at zero, version 0."""
        standings = memory_store.fetch_registration('reg1')
        assert standings == Standings(registration_id='reg1')

    def test_save_bumps_version(self, memory_store):
        """Each successful save increments the version."""
        saved = memory_store.save_registration('reg1', Standings(points=3), expected_version=0)
        assert saved.version == 1
        assert saved.points == 3
        saved = memory_store.save_registration('reg1', Standings(points=6), expected_version=1)
        assert saved.version == 2

    def test_stale_save_conflicts(self, memory_store):
        """Saving with an old version raises."""
        memory_store.save_registration('reg1', Standings(points=3), expected_version=0)
        with pytest.raises(ConcurrentUpdateConflict) as excinfo:
            memory_store.save_registration('reg1', Standings(points=1), expected_version=0)
        assert excinfo.value.expected_version == 0
        assert excinfo.value.actual_version == 1
        assert memory_store.fetch_registration('reg1').points == 3

    def test_unversioned_save_always_wins(self, memory_store):
        """Without an expected version there is no check."""
        memory_store.save_registration('reg1', Standings(points=3))
        saved = memory_store.save_registration('reg1', Standings(points=5))
        assert saved.points == 5

    def test_fetch_unknown(self, memory_store):
        assert memory_store.fetch_registration('nobody') is None

    def test_initial_rows(self):
        """Rows passed in keep their values."""
        store = MemoryStandingsStore({'a': Standings(points=4, version=2)})
        row = store.fetch_registration('a')
        assert row.points == 4
        assert row.version == 2

    def test_matches_round_trip(self, memory_store):
        """Saved matches come back as plain data."""
        bracket = generate_single_elimination_bracket(make_ids(4))
        memory_store.save_matches(bracket['matches'])
        loaded = memory_store.load_matches()
        assert [m['id'] for m in loaded] == ['R1-M1', 'R1-M2', 'R2-M1']


class TestYamlStore:
    """Tests for the file-backed store."""

    def test_rows_persist_across_instances(self, tmp_path):
        """A second store on the same directory sees saved rows."""
        store = YamlStandingsStore(str(tmp_path))
        store.add_registration('reg1')
        store.save_registration('reg1', Standings(matches_won=1, points=3), expected_version=0)

        reopened = YamlStandingsStore(str(tmp_path))
        row = reopened.fetch_registration('reg1')
        assert row.points == 3
        assert row.matches_won == 1
        assert row.version == 1

    def test_file_contents(self, tmp_path):
        """Registrations are stored as a YAML mapping."""
        store = YamlStandingsStore(str(tmp_path))
        store.add_registration('reg1')
        with open(tmp_path / 'registrations.yaml', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        assert data['reg1']['version'] == 0
        assert data['reg1']['points'] == 0

    def test_conflict(self, tmp_path):
        """Versions are checked against the file."""
        store = YamlStandingsStore(str(tmp_path))
        store.add_registration('reg1')
        store.save_registration('reg1', Standings(points=1), expected_version=0)
        with pytest.raises(ConcurrentUpdateConflict):
            store.save_registration('reg1', Standings(points=2), expected_version=0)

    def test_matches_round_trip(self, tmp_path):
        """Routes are written as plain data."""
        store = YamlStandingsStore(str(tmp_path))
        bracket = generate_single_elimination_bracket(make_ids(3))
        store.save_matches(bracket['matches'])
        loaded = YamlStandingsStore(str(tmp_path)).load_matches()
        assert loaded[0]['id'] == 'R1-M1'
        assert loaded[0]['is_bye']
        assert loaded[0]['winner_to'] == {'match_id': 'R2-M1', 'slot': 1}
        assert loaded[-1]['winner_to'] == 'first-place'

    def test_empty_directory(self, tmp_path):
        """Nothing saved yet."""
        store = YamlStandingsStore(str(tmp_path / 'new'))
        assert store.fetch_registration('reg1') is None
        assert store.load_matches() == []


class TestRetryOnConflict:
    """Tests for the retry loop."""

    def test_returns_first_success(self):
        assert retry_on_conflict(lambda: 'done') == 'done'

    def test_retries_until_success(self):
        """Conflicts are retried."""
        calls = []

        def operation():
            calls.append(1)
            if len(calls) < 3:
                raise ConcurrentUpdateConflict('a', 0, 1)
            return len(calls)

        assert retry_on_conflict(operation, attempts=3) == 3

    def test_gives_up(self):
        """The last conflict is re-raised."""
        calls = []

        def operation():
            calls.append(1)
            raise ConcurrentUpdateConflict('a', 0, 1)

        with pytest.raises(ConcurrentUpdateConflict):
            retry_on_conflict(operation, attempts=2)
        assert len(calls) == 2

    def test_other_errors_not_retried(self):
        """Only conflicts are retried."""
        calls = []

        def operation():
            calls.append(1)
            raise KeyError('boom')

        with pytest.raises(KeyError):
            retry_on_conflict(operation, attempts=3)
        assert len(calls) == 1

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            retry_on_conflict(lambda: None, attempts=0)
