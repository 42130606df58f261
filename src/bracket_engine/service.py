"""
Orchestration used by the calling layer: validation, format dispatch,
recording results and persisting standings.
"""
import logging
from typing import Dict, List, Optional, Sequence

from .config import get_default_event_settings, validate_event_settings
from .double_elimination import generate_double_elimination_bracket
from .elimination import (
    generate_single_elimination_bracket,
    get_final_match,
    propagate_byes,
    validate_participants,
)
from .errors import InvalidInputError
from .formats import (
    MODIFIED_DOUBLE_ELIMINATION,
    is_double_elimination_format,
    is_single_elimination_format,
    round_robin,
)
from .models import GeneratedMatch, MatchSlot
from .modified_double_elimination import generate_modified_double_elimination_bracket
from .scoring import (
    calculate_match_points,
    calculate_set_points,
    determine_match_winner,
    update_registration_standings,
)
from .seeding import SeedsArg, build_seed_map, to_participant_seeds
from .store import StandingsStore

logger = logging.getLogger(__name__)


def validate_event_for_bracket_generation(event_format: str) -> None:
    """Only elimination formats have brackets."""
    if not is_single_elimination_format(event_format) and not is_double_elimination_format(event_format):
        raise InvalidInputError("Bracket generation is only available for elimination events")


def validate_seeds(seeds: SeedsArg, registration_ids: List) -> None:
    """Every seeded registration must be one of ``registration_ids``."""
    known = set(registration_ids)
    for registration_id in build_seed_map(seeds):
        if registration_id not in known:
            raise InvalidInputError(f"Seed given for unknown registration {registration_id}")


def _event_settings(settings: Optional[Dict]) -> Dict:
    merged = get_default_event_settings()
    merged.update(settings or {})
    return validate_event_settings(merged)


def link_third_place_match(matches: List[GeneratedMatch]) -> None:
    """
    Send both semifinal losers of a single elimination bracket to its third
    place match, then resolve it if one semifinal was a bye.
    """
    third_place = next((m for m in matches if m.is_third_place), None)
    final = get_final_match(matches)
    if third_place is None or final is None:
        return
    for match in matches:
        if isinstance(match.winner_to, MatchSlot) and match.winner_to.match_id == final.id:
            match.loser_to = MatchSlot(third_place.id, match.winner_to.slot)
    propagate_byes({m.id: m for m in matches})


def generate_bracket(settings: Optional[Dict], registration_ids: List, seeds: SeedsArg = None) -> Dict:
    """
    Generate the bracket for an elimination event.

    ``settings`` are merged over the defaults; ``settings['format']`` picks
    the generator.
    """
    settings = _event_settings(settings)
    event_format = settings['format']
    validate_event_for_bracket_generation(event_format)
    validate_seeds(seeds, registration_ids)

    if is_single_elimination_format(event_format):
        bracket = generate_single_elimination_bracket(
            registration_ids, seeds, has_third_place_match=settings['has_third_place_match'],
        )
        link_third_place_match(bracket['matches'])
    elif event_format == MODIFIED_DOUBLE_ELIMINATION:
        bracket = generate_modified_double_elimination_bracket(to_participant_seeds(registration_ids, seeds))
    else:
        bracket = generate_double_elimination_bracket(
            to_participant_seeds(registration_ids, seeds),
            include_grand_final=settings['include_grand_final'],
        )

    logger.info("Generated %s bracket: %d matches for %d registrations",
                event_format, len(bracket['matches']), len(registration_ids))
    return bracket


def generate_group_matches(registration_ids: List) -> List[GeneratedMatch]:
    """Round robin for one group, one GeneratedMatch per pairing."""
    validate_participants(registration_ids, minimum=1)

    matches = []
    bracket_position = 1
    for round_num, pairs in enumerate(round_robin(registration_ids), 1):
        for match_number, (home, away) in enumerate(pairs, 1):
            matches.append(GeneratedMatch(
                id=f"G-{round_num}-{match_number}",
                round=round_num,
                match_number=match_number,
                bracket_position=bracket_position,
                registration1_id=home,
                registration2_id=away,
            ))
            bracket_position += 1

    logger.debug("Generated %d group matches for %d registrations", len(matches), len(registration_ids))
    return matches


def record_match_result(matches: List[GeneratedMatch], match_id: str, winner_id) -> GeneratedMatch:
    """
    Mark ``match_id`` as won by ``winner_id`` and move both players on.

    Byes that become decidable as a result (for example a losers bracket
    match whose other feeder was a bye) are resolved in the same call.
    """
    match_map = {m.id: m for m in matches}
    match = match_map.get(match_id)
    if match is None:
        raise InvalidInputError(f"Unknown match {match_id}")
    if match.played:
        raise InvalidInputError(f"Match {match_id} has already been played")
    if match.registration1_id is None or match.registration2_id is None:
        raise InvalidInputError(f"Match {match_id} is not ready: both slots must be filled")
    if winner_id not in match.occupants:
        raise InvalidInputError(f"{winner_id} is not playing in match {match_id}")

    match.winner_id = winner_id
    match.played = True
    propagate_byes(match_map)

    logger.info("Recorded %s: %s beat %s", match_id, winner_id, match.loser_id)
    return match


def _collect_reset(match: GeneratedMatch, match_map: Dict[str, GeneratedMatch],
                   undone: List[GeneratedMatch], cleared: List) -> None:
    undone.append(match)
    for route, registration_id in ((match.winner_to, match.winner_id), (match.loser_to, match.loser_id)):
        if not isinstance(route, MatchSlot) or registration_id is None:
            continue
        target = match_map[route.match_id]
        if target.get_slot(route.slot) != registration_id:
            continue
        if target.played and not target.is_bye:
            raise InvalidInputError(f"Cannot reset {undone[0].id}: {target.id} has already been played")
        cleared.append((target, route.slot))
        if target.played:
            _collect_reset(target, match_map, undone, cleared)


def reset_match_result(matches: List[GeneratedMatch], match_id: str) -> GeneratedMatch:
    """
    Undo a recorded result and take its winner and loser back out of the
    matches they were moved into.

    Byes that were resolved because of the result are undone with it. A
    result whose winner or loser has already played their next match cannot
    be reset. Group standings are not touched.
    """
    match_map = {m.id: m for m in matches}
    match = match_map.get(match_id)
    if match is None:
        raise InvalidInputError(f"Unknown match {match_id}")
    if not match.played:
        raise InvalidInputError(f"Match {match_id} has not been played")
    if match.is_bye:
        raise InvalidInputError(f"Match {match_id} is a bye and cannot be reset")

    undone, cleared = [], []
    _collect_reset(match, match_map, undone, cleared)

    for target, slot in cleared:
        target.set_slot(slot, None)
    for m in undone:
        m.winner_id = None
        m.played = False
        m.is_bye = False

    logger.info("Reset %s, undoing %d dependent byes", match_id, len(undone) - 1)
    return match


def complete_group_match(store: StandingsStore, match: GeneratedMatch, winner_id,
                         sets: Sequence, settings: Optional[Dict] = None) -> Dict:
    """
    Record a group match and add its points and sets to both standings.

    The sets must give ``winner_id`` a majority of ``best_of``. The match is
    marked played only once both standings are saved; after a failed save
    the call can be repeated and registrations already updated are skipped.
    """
    settings = _event_settings(settings)
    if match.played:
        raise InvalidInputError(f"Match {match.id} has already been played")
    if winner_id not in match.occupants or match.has_single_occupant:
        raise InvalidInputError(f"{winner_id} is not playing in match {match.id}")
    side = determine_match_winner(sets, settings['best_of'])
    if side is None:
        raise InvalidInputError(
            f"Sets for match {match.id} do not give either side a best of {settings['best_of']} majority"
        )
    if match.get_slot(side) != winner_id:
        raise InvalidInputError(f"Sets for match {match.id} were won by {match.get_slot(side)}, not {winner_id}")

    match_points = calculate_match_points(
        winner_id, match.registration1_id, match.registration2_id,
        settings['points_per_win'], settings['points_per_loss'],
    )
    set_points = calculate_set_points(sets, match.registration1_id, match.registration2_id)

    updated = update_registration_standings(
        store, match.registration1_id, match.registration2_id,
        match_points, set_points, attempts=settings['max_update_attempts'],
        applied=match.standings_applied,
    )
    match.winner_id = winner_id
    match.played = True
    return updated


def is_group_complete(matches: List[GeneratedMatch]) -> bool:
    """A group is complete once every one of its matches is played."""
    return all(m.played for m in matches)


def is_event_complete(groups: List[List[GeneratedMatch]]) -> bool:
    return bool(groups) and all(is_group_complete(group) for group in groups)


def save_bracket(store: StandingsStore, bracket: Dict) -> None:
    store.save_matches(bracket['matches'])
