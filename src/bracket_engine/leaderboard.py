"""
Heat-style test events: per-position scores, leaderboard totals and heats.

A player's scores are a dict keyed by position (L, R, F, B). Registrations
are dicts with a ``players`` list, each player holding ``position_scores``.
Missing or None scores count as 0 in every total.
"""
import logging
import random
from typing import Dict, List, Optional

from .errors import InvalidInputError

logger = logging.getLogger(__name__)

POSITION_KEYS = ('L', 'R', 'F', 'B')


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_position_score(position_scores: Optional[Dict], position: str):
    if not position_scores:
        return 0
    score = position_scores.get(position)
    return score if _is_number(score) else 0


def sum_position_scores(position_scores: Optional[Dict]):
    return sum(get_position_score(position_scores, key) for key in POSITION_KEYS)


def get_score_breakdown(position_scores: Optional[Dict]) -> Dict:
    """All four positions, 0 where unset."""
    return {key: get_position_score(position_scores, key) for key in POSITION_KEYS}


def aggregate_player_scores(players: Optional[List[Dict]]) -> Dict:
    """Sum each position independently across players (team view)."""
    totals = {key: 0 for key in POSITION_KEYS}
    for player in players or []:
        breakdown = get_score_breakdown(player.get('position_scores'))
        for key in POSITION_KEYS:
            totals[key] += breakdown[key]
    return totals


def calculate_total_score(scores: Dict):
    return sum(scores.get(key, 0) for key in POSITION_KEYS)


def get_registration_total_score(registration: Dict):
    return sum(sum_position_scores(p.get('position_scores')) for p in registration.get('players') or [])


def has_complete_scores(position_scores: Optional[Dict]) -> bool:
    """True when all four positions hold a number."""
    if not position_scores:
        return False
    return all(_is_number(position_scores.get(key)) for key in POSITION_KEYS)


def is_registration_complete(registration: Dict) -> bool:
    """
    True when every player has at least one scored position.

    Solo registrations have one player covering all positions; team
    registrations usually have one position per player.
    """
    players = registration.get('players') or []
    if not players:
        return False
    for player in players:
        scores = player.get('position_scores')
        if not scores or not any(_is_number(scores.get(key)) for key in POSITION_KEYS):
            return False
    return True


def rank_registrations_by_total_score(registrations: List[Dict]) -> List[Dict]:
    """
    Leaderboard rows ordered by total score, highest first.

    Each row is ``{'registration', 'total_score', 'breakdown', 'complete', 'rank'}``.
    Equal totals keep their input order and share a rank.
    """
    rows = [
        {
            'registration': registration,
            'total_score': get_registration_total_score(registration),
            'breakdown': aggregate_player_scores(registration.get('players')),
            'complete': is_registration_complete(registration),
        }
        for registration in registrations
    ]
    rows.sort(key=lambda r: -r['total_score'])

    previous_score = None
    rank = 0
    for index, row in enumerate(rows, 1):
        if row['total_score'] != previous_score:
            rank = index
            previous_score = row['total_score']
        row['rank'] = rank
    return rows


def get_heat_name(index: int) -> str:
    """A, B, ..., Z, then AA, AB, ..."""
    if index < 0:
        raise InvalidInputError(f"Heat index must be non-negative, got {index}")
    if index < 26:
        return chr(ord('A') + index)
    return chr(ord('A') + index // 26 - 1) + chr(ord('A') + index % 26)


def generate_heats(registration_ids: List, players_per_heat: int, shuffle: bool = True,
                   rng: Optional[random.Random] = None) -> List[Dict]:
    """
    Split registrations into consecutive heats of at most ``players_per_heat``.

    Returns a list of ``{'name': str, 'registration_ids': [...]}``. Unless
    ``shuffle`` is False the order is randomized first with ``rng`` (a new
    ``random.Random`` if none is given).
    """
    if players_per_heat < 1:
        raise InvalidInputError(f"players_per_heat must be at least 1, got {players_per_heat}")

    ordered = list(registration_ids)
    if shuffle:
        (rng or random.Random()).shuffle(ordered)

    heats = []
    for heat_index, start in enumerate(range(0, len(ordered), players_per_heat)):
        heats.append({
            'name': get_heat_name(heat_index),
            'registration_ids': ordered[start:start + players_per_heat],
        })

    logger.debug("Generated %d heats for %d registrations", len(heats), len(ordered))
    return heats
