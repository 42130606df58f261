"""
Single elimination bracket generation and bye propagation.

Matches are kept in a flat map keyed by match id; routing between matches is
expressed with MatchSlot references, never with object pointers.
"""
import logging
import math
from collections import deque
from typing import Dict, List, Optional

from .errors import InconsistentStateError, InvalidInputError
from .models import BracketType, GeneratedMatch, MatchSlot, Placement
from .seeding import (
    SeedsArg,
    calculate_bracket_size,
    get_round_name,
    place_to_bracket_slots,
    sort_registrations_by_seeds,
)

logger = logging.getLogger(__name__)

EMPTY = 'empty'
FILLED = 'filled'
PENDING = 'pending'


def validate_participants(registration_ids: List[str], minimum: int = 2) -> None:
    """Reject participant lists that are too short or repeat a registration."""
    if len(registration_ids) < minimum:
        raise InvalidInputError(
            f"At least {minimum} participants required, got {len(registration_ids)}"
        )
    seen = set()
    for registration_id in registration_ids:
        if registration_id is None:
            raise InvalidInputError("Registration ids must not be None")
        if registration_id in seen:
            raise InvalidInputError(f"Registration {registration_id} appears more than once")
        seen.add(registration_id)


def _build_feeders(match_map: Dict[str, GeneratedMatch]) -> Dict[tuple, tuple]:
    """Map (match_id, slot) -> (source_match_id, 'winner' | 'loser')."""
    feeders = {}
    for match in match_map.values():
        for kind, route in (('winner', match.winner_to), ('loser', match.loser_to)):
            if not isinstance(route, MatchSlot):
                continue
            if route.match_id not in match_map:
                raise InconsistentStateError(
                    f"{match.id} routes its {kind} to unknown match {route.match_id}"
                )
            key = (route.match_id, route.slot)
            if key in feeders:
                raise InconsistentStateError(
                    f"Slot {route.slot} of {route.match_id} is fed by both "
                    f"{feeders[key][0]} and {match.id}"
                )
            feeders[key] = (match.id, kind)
    return feeders


def check_links(matches: List[GeneratedMatch]) -> None:
    """Raise InconsistentStateError if any route points outside ``matches``."""
    _build_feeders({m.id: m for m in matches})


def _is_entry_match(match: GeneratedMatch) -> bool:
    # Round-1 slots of the main bracket are filled by seeding or stay byes.
    return match.round == 1 and match.bracket_type in (None, BracketType.WINNERS)


def _slot_state(match, slot, feeders, match_map, dead) -> str:
    if match.get_slot(slot) is not None:
        return FILLED
    feeder = feeders.get((match.id, slot))
    if feeder is None:
        return EMPTY if _is_entry_match(match) else PENDING
    source_id, kind = feeder
    if source_id in dead:
        return EMPTY
    if kind == 'loser' and match_map[source_id].is_bye:
        return EMPTY
    return PENDING


def _place(target: GeneratedMatch, slot: int, registration_id: str) -> bool:
    current = target.get_slot(slot)
    if current == registration_id:
        return False
    if current is not None:
        raise InconsistentStateError(
            f"Slot {slot} of {target.id} already holds {current}, cannot place {registration_id}"
        )
    target.set_slot(slot, registration_id)
    return True


def _advance(match: GeneratedMatch, match_map: Dict[str, GeneratedMatch]) -> List[GeneratedMatch]:
    """Place the winner (and a real loser) of a played match; return touched targets."""
    touched = []
    if isinstance(match.winner_to, MatchSlot) and match.winner_id is not None:
        target = match_map[match.winner_to.match_id]
        if _place(target, match.winner_to.slot, match.winner_id):
            touched.append(target)
    loser_id = match.loser_id
    if isinstance(match.loser_to, MatchSlot) and loser_id is not None:
        target = match_map[match.loser_to.match_id]
        if _place(target, match.loser_to.slot, loser_id):
            touched.append(target)
    return touched


def _route_targets(match: GeneratedMatch, match_map: Dict[str, GeneratedMatch]) -> List[GeneratedMatch]:
    return [match_map[route.match_id] for route in (match.winner_to, match.loser_to)
            if isinstance(route, MatchSlot)]


def propagate_byes(match_map: Dict[str, GeneratedMatch]) -> None:
    """
    Resolve every match that can be decided without play.

    A match is a bye once one slot is filled and the other can never be
    filled: an unfilled round-1 seed slot, the loser of a bye (a bye has no
    loser), or the winner of a match that will never have any participant.
    Played matches get their winner and loser placed into empty target slots.
    The worklist is local to the call.
    """
    feeders = _build_feeders(match_map)
    dead = set()
    queue = deque(sorted(match_map.values(), key=lambda m: m.bracket_position))
    queued = {m.id for m in queue}

    def enqueue(matches):
        for m in matches:
            if m.id not in queued:
                queue.append(m)
                queued.add(m.id)

    while queue:
        match = queue.popleft()
        queued.discard(match.id)

        if match.played:
            enqueue(_advance(match, match_map))
            continue
        if match.id in dead:
            continue

        states = (
            _slot_state(match, 1, feeders, match_map, dead),
            _slot_state(match, 2, feeders, match_map, dead),
        )
        if states == (EMPTY, EMPTY):
            dead.add(match.id)
            logger.debug("Match %s can never be played", match.id)
            enqueue(_route_targets(match, match_map))
        elif EMPTY in states and FILLED in states:
            match.winner_id = match.occupants[0]
            match.played = True
            match.is_bye = True
            logger.debug("Bye in %s: %s advances", match.id, match.winner_id)
            enqueue(_advance(match, match_map))
            if isinstance(match.loser_to, MatchSlot):
                enqueue([match_map[match.loser_to.match_id]])


def _match_id(round_num: int, match_number: int) -> str:
    return f"R{round_num}-M{match_number}"


def generate_single_elimination_bracket(registration_ids: List[str], seeds: SeedsArg = None,
                                        has_third_place_match: bool = False) -> Dict:
    """
    Generate a complete single elimination bracket.

    Returns dict with:
    - 'matches': list of GeneratedMatch sorted by bracket_position
    - 'totals': {'winners': rounds, 'losers': 0, 'bracket_size': size}
    """
    validate_participants(registration_ids)

    bracket_size = calculate_bracket_size(len(registration_ids))
    total_rounds = int(math.log2(bracket_size))
    slots = place_to_bracket_slots(sort_registrations_by_seeds(registration_ids, seeds), bracket_size)

    rounds: Dict[int, List[GeneratedMatch]] = {}
    bracket_position = 1

    first_round = []
    for i in range(bracket_size // 2):
        match = GeneratedMatch(
            id=_match_id(1, i + 1),
            round=1,
            match_number=i + 1,
            bracket_position=bracket_position,
            registration1_id=slots[i * 2],
            registration2_id=slots[i * 2 + 1],
        )
        match.is_bye = match.has_single_occupant
        first_round.append(match)
        bracket_position += 1
    rounds[1] = first_round

    # Subsequent rounds start empty
    for round_num in range(2, total_rounds + 1):
        round_matches = []
        for i in range(len(rounds[round_num - 1]) // 2):
            round_matches.append(GeneratedMatch(
                id=_match_id(round_num, i + 1),
                round=round_num,
                match_number=i + 1,
                bracket_position=bracket_position,
            ))
            bracket_position += 1
        rounds[round_num] = round_matches

    for round_num in range(1, total_rounds):
        next_round = rounds[round_num + 1]
        for i, match in enumerate(rounds[round_num]):
            match.winner_to = MatchSlot(next_round[i // 2].id, 1 if i % 2 == 0 else 2)
    rounds[total_rounds][0].winner_to = Placement.FIRST_PLACE

    matches = [m for round_num in sorted(rounds) for m in rounds[round_num]]

    if has_third_place_match:
        semifinals = rounds.get(total_rounds - 1, []) if total_rounds >= 2 else []
        if len(semifinals) == 2:
            third_place = GeneratedMatch(
                id=_match_id(total_rounds, 2),
                round=total_rounds,
                match_number=2,
                bracket_position=bracket_position,
                is_third_place=True,
            )
            third_place.winner_to = Placement.THIRD_PLACE
            matches.append(third_place)
        else:
            logger.debug("No third place match: bracket of %d has no semifinals", bracket_size)

    match_map = {m.id: m for m in matches}
    propagate_byes(match_map)

    logger.debug(
        "Single elimination: %d participants, bracket %d, %d rounds, %d byes",
        len(registration_ids), bracket_size, total_rounds, bracket_size - len(registration_ids),
    )
    return {
        'matches': sorted(matches, key=lambda m: m.bracket_position),
        'totals': {'winners': total_rounds, 'losers': 0, 'bracket_size': bracket_size},
    }


def get_match_by_position(matches: List[GeneratedMatch], position: int) -> Optional[GeneratedMatch]:
    """Get match by bracket position."""
    return next((m for m in matches if m.bracket_position == position), None)


def get_final_match(matches: List[GeneratedMatch]) -> Optional[GeneratedMatch]:
    """The match whose winner takes first place."""
    return next((m for m in matches if m.winner_to == Placement.FIRST_PLACE), None)


def is_bracket_complete(matches: List[GeneratedMatch]) -> bool:
    """Check if the bracket has a champion."""
    final = get_final_match(matches)
    return bool(final and final.played and final.winner_id)


def get_bracket_summary(bracket: Dict) -> Dict:
    """Statistics for display: byes and playable matches per round."""
    matches = bracket['matches']
    bracket_size = bracket['totals']['bracket_size']
    matches_per_round = {}
    for match in matches:
        if match.is_bye:
            continue
        if match.bracket_type in (None, BracketType.WINNERS):
            participants = bracket_size // (2 ** (match.round - 1))
            label = get_round_name(participants)
            if match.is_third_place:
                label = "Third Place"
        elif match.bracket_type == BracketType.LOSERS:
            label = f"Losers Round {match.round}"
        else:
            label = "Grand Final"
        matches_per_round[label] = matches_per_round.get(label, 0) + 1

    final = get_final_match(matches)
    return {
        'bracket_size': bracket_size,
        'byes': sum(1 for m in matches if m.is_bye),
        'matches_per_round': matches_per_round,
        'champion': final.winner_id if final and final.played else None,
    }
