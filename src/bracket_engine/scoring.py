"""
Match scoring and registration standings.

Everything here except update_registration_standings is pure. Standings are
changed through apply_standings_delta, a reducer that can be re-run safely
when an optimistic save has to be retried.
"""
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .models import SetResult, Standings
from .store import StandingsStore, retry_on_conflict

logger = logging.getLogger(__name__)


def calculate_match_points(winner_id, registration1_id, registration2_id,
                           points_per_win: int, points_per_loss: int) -> Dict:
    """Calculates match points for both registrations."""
    registration1_won = winner_id == registration1_id
    registration2_won = winner_id == registration2_id
    return {
        'registration1_points': points_per_win if registration1_won else points_per_loss,
        'registration2_points': points_per_win if registration2_won else points_per_loss,
        'registration1_won': registration1_won,
        'registration2_won': registration2_won,
    }


def _set_scores(set_result):
    if isinstance(set_result, SetResult):
        return set_result.registration1_score, set_result.registration2_score
    if isinstance(set_result, dict):
        return set_result.get('registration1_score'), set_result.get('registration2_score')
    if len(set_result) >= 2:
        return set_result[0], set_result[1]
    return None, None


def calculate_set_points(set_results: Iterable, registration1_id=None, registration2_id=None) -> Dict:
    """
    Tally sets won and lost per side.

    Each set is a SetResult, a dict with registration1_score and
    registration2_score, or a (score1, score2) pair. Tied or incomplete sets
    count for neither side.
    """
    registration1_sets_won = 0
    registration2_sets_won = 0
    for set_result in set_results:
        score1, score2 = _set_scores(set_result)
        if score1 is None or score2 is None:
            continue
        if score1 > score2:
            registration1_sets_won += 1
        elif score2 > score1:
            registration2_sets_won += 1
    return {
        'registration1_sets_won': registration1_sets_won,
        'registration1_sets_lost': registration2_sets_won,
        'registration2_sets_won': registration2_sets_won,
        'registration2_sets_lost': registration1_sets_won,
    }


def determine_match_winner(sets: Sequence, best_of: int = 3) -> Optional[int]:
    """
    Decide the winner from set scores.

    Returns 1 or 2 once that side has won best_of // 2 + 1 sets, else None.
    """
    tally = calculate_set_points(sets)
    needed = best_of // 2 + 1
    if tally['registration1_sets_won'] >= needed:
        return 1
    if tally['registration2_sets_won'] >= needed:
        return 2
    return None


def compute_standings_deltas(registration1_id, registration2_id,
                             match_points: Dict, set_points: Dict) -> Dict:
    """Per-registration increments for one completed match."""
    deltas = {}
    for side, registration_id in ((1, registration1_id), (2, registration2_id)):
        won = match_points[f'registration{side}_won']
        deltas[registration_id] = {
            'matches_won': 1 if won else 0,
            'matches_lost': 0 if won else 1,
            'sets_won': set_points[f'registration{side}_sets_won'],
            'sets_lost': set_points[f'registration{side}_sets_lost'],
            'points': match_points[f'registration{side}_points'],
        }
    return deltas


def apply_standings_delta(standings: Standings, delta: Dict) -> Standings:
    """Return new standings with ``delta`` added; ``standings`` is left untouched."""
    values = {field: getattr(standings, field) + delta.get(field, 0) for field in Standings.FIELDS}
    return Standings(version=standings.version, registration_id=standings.registration_id, **values)


def update_registration_standings(store: StandingsStore, registration1_id, registration2_id,
                                  match_points: Dict, set_points: Dict, attempts: int = 3,
                                  applied: Optional[List] = None) -> Dict:
    """
    Add one match's result to both registrations' persisted standings.

    Each registration is read, reduced and saved with the version it was read
    at; a conflicting concurrent save causes the read-modify-write to be
    repeated. Registrations without a standings row are skipped.

    When ``applied`` is given, registrations already in it are skipped and
    each successfully saved registration is appended to it, so a call that
    failed halfway can be repeated without counting the result twice.
    """
    deltas = compute_standings_deltas(registration1_id, registration2_id, match_points, set_points)
    updated = {}
    for registration_id, delta in deltas.items():
        if applied is not None and registration_id in applied:
            logger.debug("Standings for %s already include this result", registration_id)
            continue

        def read_modify_write(registration_id=registration_id, delta=delta):
            current = store.fetch_registration(registration_id)
            if current is None:
                return None
            new_standings = apply_standings_delta(current, delta)
            return store.save_registration(registration_id, new_standings, expected_version=current.version)

        result = retry_on_conflict(read_modify_write, attempts)
        if result is None:
            logger.warning("No standings row for registration %s, skipping update", registration_id)
            continue
        updated[registration_id] = result
        if applied is not None:
            applied.append(registration_id)

    logger.info("Updated standings for %s", ', '.join(str(r) for r in updated))
    return updated


def _standings_value(row, field):
    if isinstance(row, dict):
        return row.get(field, 0)
    return getattr(row, field)


def sort_standings(rows: List) -> List:
    """
    Order standings for display.

    Sort by: points (desc), set difference (desc), matches won (desc).
    Remaining ties keep their input order.
    """
    return sorted(
        rows,
        key=lambda r: (
            -_standings_value(r, 'points'),
            -(_standings_value(r, 'sets_won') - _standings_value(r, 'sets_lost')),
            -_standings_value(r, 'matches_won'),
        ),
    )
