"""
Double elimination bracket generation.

In double elimination:
- Participants must lose twice to be eliminated
- Winners Bracket: participants that haven't lost yet
- Losers Bracket: participants that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion

The losers bracket alternates two kinds of rounds. Odd rounds play down the
participants already in the losers bracket (round 1 pairs the winners round 1
losers); even rounds receive the next wave of winners bracket losers, one per
match, in slot 2.
"""
import logging
import math
from typing import Dict, List

from .elimination import propagate_byes, validate_participants
from .models import BracketType, GeneratedMatch, MatchSlot, ParticipantSeed, Placement
from .seeding import build_initial_slots, calculate_bracket_size

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'GF-1-1'


def wb_id(round_num: int, match_number: int) -> str:
    return f"WB-{round_num}-{match_number}"


def lb_id(round_num: int, match_number: int) -> str:
    return f"LB-{round_num}-{match_number}"


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_num
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num}"


def get_winners_round_name(participants_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if participants_in_round == 2:
        return "Winners Final"
    elif participants_in_round == 4:
        return "Winners Semifinal"
    elif participants_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {participants_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N participants in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def losers_round_match_count(bracket_size: int, round_num: int) -> int:
    """
    Matches in a losers round.

    Rounds 1 and 2 both hold bracket_size / 4 matches; every following pair
    of rounds halves it (8 participants: 2, 2, 1, 1).
    """
    return max(1, bracket_size // 2 ** ((round_num + 1) // 2 + 1))


def losers_drop_target(winners_round: int, match_number: int) -> MatchSlot:
    """Where the loser of a winners bracket match enters the losers bracket."""
    if winners_round == 1:
        return MatchSlot(lb_id(1, (match_number - 1) // 2 + 1), (match_number % 2) + 1)
    if winners_round == 2:
        return MatchSlot(lb_id(2, match_number), 2)
    return MatchSlot(lb_id((winners_round - 2) * 2 + 2, match_number), 2)


def losers_advance_target(round_num: int, match_number: int) -> MatchSlot:
    """Where the winner of a (non-final) losers bracket match plays next."""
    if round_num % 2 == 1:
        return MatchSlot(lb_id(round_num + 1, match_number), 1)
    return MatchSlot(lb_id(round_num + 1, (match_number - 1) // 2 + 1), (match_number % 2) + 1)


def _generate_winners_bracket(slots: List, bracket_size: int, total_rounds: int,
                              start_position: int) -> Dict[int, List[GeneratedMatch]]:
    """Winners bracket rounds with winner routing; round 1 filled from ``slots``."""
    rounds = {}
    bracket_position = start_position
    for round_num in range(1, total_rounds + 1):
        round_matches = []
        for m in range(1, bracket_size // 2 ** round_num + 1):
            match = GeneratedMatch(
                id=wb_id(round_num, m),
                round=round_num,
                match_number=m,
                bracket_type=BracketType.WINNERS,
                bracket_position=bracket_position,
                registration1_id=slots[m * 2 - 2] if round_num == 1 else None,
                registration2_id=slots[m * 2 - 1] if round_num == 1 else None,
            )
            match.is_bye = match.has_single_occupant
            round_matches.append(match)
            bracket_position += 1
        rounds[round_num] = round_matches

    for round_num in range(1, total_rounds):
        for match in rounds[round_num]:
            m = match.match_number
            match.winner_to = MatchSlot(wb_id(round_num + 1, (m + 1) // 2), 1 if m % 2 == 1 else 2)

    return rounds


def _generate_losers_bracket(bracket_size: int, total_losers_rounds: int,
                             start_position: int) -> Dict[int, List[GeneratedMatch]]:
    """Empty losers bracket rounds with their winner routing."""
    rounds = {}
    bracket_position = start_position
    for round_num in range(1, total_losers_rounds + 1):
        round_matches = []
        for m in range(1, losers_round_match_count(bracket_size, round_num) + 1):
            match = GeneratedMatch(
                id=lb_id(round_num, m),
                round=round_num,
                match_number=m,
                bracket_type=BracketType.LOSERS,
                bracket_position=bracket_position,
            )
            match.loser_to = Placement.ELIMINATED
            if round_num < total_losers_rounds:
                match.winner_to = losers_advance_target(round_num, m)
            round_matches.append(match)
            bracket_position += 1
        rounds[round_num] = round_matches
    return rounds


def generate_double_elimination_bracket(participants: List[ParticipantSeed],
                                        include_grand_final: bool = False) -> Dict:
    """
    Generate a double elimination bracket.

    Returns dict with:
    - 'matches': winners, losers (and optional grand final) matches sorted by bracket_position
    - 'totals': {'winners': rounds, 'losers': rounds, 'bracket_size': size}

    Without ``include_grand_final`` the winners final and the losers final
    are the last modeled matches and keep ``winner_to = None``.
    """
    validate_participants([p.registration_id for p in participants])

    bracket_size = calculate_bracket_size(len(participants))
    winners_rounds = int(math.log2(bracket_size))
    losers_rounds = calculate_losers_bracket_rounds(bracket_size)
    slots = build_initial_slots(participants, bracket_size)

    winners = _generate_winners_bracket(slots, bracket_size, winners_rounds, start_position=1)
    next_position = sum(len(ms) for ms in winners.values()) + 1
    losers = _generate_losers_bracket(bracket_size, losers_rounds, start_position=next_position)
    next_position += sum(len(ms) for ms in losers.values())

    for round_num, round_matches in winners.items():
        for match in round_matches:
            if losers_rounds:
                match.loser_to = losers_drop_target(round_num, match.match_number)
            else:
                match.loser_to = Placement.ELIMINATED

    matches = [m for r in sorted(winners) for m in winners[r]]
    matches += [m for r in sorted(losers) for m in losers[r]]

    if include_grand_final:
        grand_final = GeneratedMatch(
            id=GRAND_FINAL_ID,
            round=1,
            match_number=1,
            bracket_type=BracketType.GRAND_FINAL,
            bracket_position=next_position,
        )
        grand_final.winner_to = Placement.FIRST_PLACE
        grand_final.loser_to = Placement.SECOND_PLACE
        winners_final = winners[winners_rounds][0]
        winners_final.winner_to = MatchSlot(GRAND_FINAL_ID, 1)
        if losers_rounds:
            losers[losers_rounds][0].winner_to = MatchSlot(GRAND_FINAL_ID, 2)
        else:
            winners_final.loser_to = MatchSlot(GRAND_FINAL_ID, 2)
        matches.append(grand_final)

    propagate_byes({m.id: m for m in matches})

    logger.debug(
        "Double elimination: %d participants, bracket %d, %d winners rounds, %d losers rounds",
        len(participants), bracket_size, winners_rounds, losers_rounds,
    )
    return {
        'matches': sorted(matches, key=lambda m: m.bracket_position),
        'totals': {'winners': winners_rounds, 'losers': losers_rounds, 'bracket_size': bracket_size},
    }
