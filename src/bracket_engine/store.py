"""
Persistence collaborators for standings and generated matches.

Standings rows carry a version number. A save that names the version it read
fails with ConcurrentUpdateConflict when another writer got there first;
retry_on_conflict re-runs the whole read-modify-write in that case.
"""
import logging
import os
from typing import Callable, Dict, List, Optional

import yaml
from filelock import FileLock

from .errors import ConcurrentUpdateConflict
from .models import GeneratedMatch, Standings

logger = logging.getLogger(__name__)

REGISTRATIONS_FILENAME = 'registrations.yaml'
MATCHES_FILENAME = 'matches.yaml'
LOCK_FILENAME = '.lock'


class StandingsStore:
    """Interface the scoring layer and bracket service persist through."""

    def fetch_registration(self, registration_id) -> Optional[Standings]:
        raise NotImplementedError

    def save_registration(self, registration_id, standings: Standings, expected_version=None) -> Standings:
        raise NotImplementedError

    def save_matches(self, matches: List[GeneratedMatch]) -> None:
        raise NotImplementedError

    def load_matches(self) -> List[Dict]:
        raise NotImplementedError


def _check_version(registration_id, rows: Dict, expected_version) -> int:
    current = rows.get(registration_id)
    current_version = current.get('version', 0) if current else 0
    if expected_version is not None and expected_version != current_version:
        raise ConcurrentUpdateConflict(registration_id, expected_version, current_version)
    return current_version


def _stored_row(registration_id, standings: Standings, version: int) -> Dict:
    row = Standings.from_dict(standings.to_dict(), registration_id)
    row.registration_id = registration_id
    row.version = version
    return row.to_dict()


class MemoryStandingsStore(StandingsStore):
    """Dict-backed store, one instance per process."""

    def __init__(self, registrations: Optional[Dict] = None):
        self._rows = {}
        for registration_id, standings in (registrations or {}).items():
            self._rows[registration_id] = _stored_row(registration_id, standings, standings.version)
        self._matches = []

    def add_registration(self, registration_id) -> Standings:
        self._rows[registration_id] = _stored_row(registration_id, Standings(), 0)
        return self.fetch_registration(registration_id)

    def fetch_registration(self, registration_id) -> Optional[Standings]:
        row = self._rows.get(registration_id)
        if row is None:
            return None
        return Standings.from_dict(row, registration_id)

    def save_registration(self, registration_id, standings, expected_version=None):
        current_version = _check_version(registration_id, self._rows, expected_version)
        self._rows[registration_id] = _stored_row(registration_id, standings, current_version + 1)
        return Standings.from_dict(self._rows[registration_id], registration_id)

    def save_matches(self, matches):
        self._matches = [m.to_dict() for m in matches]

    def load_matches(self):
        return list(self._matches)


class YamlStandingsStore(StandingsStore):
    """
    File-backed store in ``data_dir``.

    Every read and write of the YAML files happens while holding a FileLock,
    so writers in different processes are serialized.
    """

    def __init__(self, data_dir: str, lock_timeout: float = 10):
        self.data_dir = data_dir
        os.makedirs(data_dir, exist_ok=True)
        self.registrations_file = os.path.join(data_dir, REGISTRATIONS_FILENAME)
        self.matches_file = os.path.join(data_dir, MATCHES_FILENAME)
        self._lock = FileLock(os.path.join(data_dir, LOCK_FILENAME), timeout=lock_timeout)

    def _load_yaml(self, file_path):
        if not os.path.exists(file_path):
            return None
        with open(file_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)

    def _save_yaml(self, file_path, data):
        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def _load_rows(self) -> Dict:
        return self._load_yaml(self.registrations_file) or {}

    def add_registration(self, registration_id) -> Standings:
        with self._lock:
            rows = self._load_rows()
            rows[registration_id] = _stored_row(registration_id, Standings(), 0)
            self._save_yaml(self.registrations_file, rows)
        return self.fetch_registration(registration_id)

    def fetch_registration(self, registration_id):
        with self._lock:
            row = self._load_rows().get(registration_id)
        if row is None:
            return None
        return Standings.from_dict(row, registration_id)

    def save_registration(self, registration_id, standings, expected_version=None):
        with self._lock:
            rows = self._load_rows()
            current_version = _check_version(registration_id, rows, expected_version)
            rows[registration_id] = _stored_row(registration_id, standings, current_version + 1)
            self._save_yaml(self.registrations_file, rows)
        logger.debug("Saved standings for %s (version %d)", registration_id, current_version + 1)
        return Standings.from_dict(rows[registration_id], registration_id)

    def save_matches(self, matches):
        with self._lock:
            self._save_yaml(self.matches_file, {'matches': [m.to_dict() for m in matches]})
        logger.info("Saved %d matches to %s", len(matches), self.matches_file)

    def load_matches(self):
        with self._lock:
            data = self._load_yaml(self.matches_file) or {}
        return data.get('matches', [])


def retry_on_conflict(operation: Callable, attempts: int = 3):
    """
    Run ``operation`` until it completes without a ConcurrentUpdateConflict.

    The operation must re-read whatever it writes. After ``attempts`` failed
    tries the last conflict is re-raised to the caller.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrentUpdateConflict as e:
            if attempt == attempts:
                raise
            logger.warning("Retrying after concurrent update (attempt %d of %d): %s", attempt, attempts, e)
