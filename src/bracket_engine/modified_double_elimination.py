"""
Modified double elimination with rematch avoidance.

The winners bracket is the same as in standard double elimination, but the
losers bracket is built round by round from "waves": the losers of one
winners round join the survivors of the previous losers round. Before each
pairing the entrants are reordered so that a survivor is not immediately
paired with the wave entrant who came out of the same corner of the winners
bracket.

The reordering is a heuristic. It prevents the immediate rematch for the
two-survivors/two-entrants case (8 participants) but does not guarantee the
absence of rematches for every bracket size.

The winners final resolves to first/second place and the last losers match
resolves to third/fourth place; there is no grand final.
"""
import logging
import math
from typing import Dict, List, Tuple

from .double_elimination import _generate_winners_bracket, lb_id
from .elimination import propagate_byes, validate_participants
from .models import BracketType, GeneratedMatch, MatchSlot, ParticipantSeed, Placement
from .seeding import build_initial_slots, calculate_bracket_size

logger = logging.getLogger(__name__)

WB_LOSER = 'wb-loser'
LB_WINNER = 'lb-winner'

# (kind, match_id): the loser of a winners match or the winner of a losers match
Entrant = Tuple[str, str]


def reorder_entrants(entrants: List[Entrant], survivors_count: int) -> List[Entrant]:
    """
    Order ``survivors + wave`` for pairing.

    Two survivors against two wave entrants are cross-paired
    (survivor 0 with wave 1, survivor 1 with wave 0); any other mix is
    interleaved index by index.
    """
    survivors = entrants[:survivors_count]
    wave = entrants[survivors_count:]

    if len(survivors) == 2 and len(wave) == 2:
        return [survivors[0], wave[1], survivors[1], wave[0]]

    interleaved = []
    for i in range(max(len(survivors), len(wave))):
        if i < len(survivors):
            interleaved.append(survivors[i])
        if i < len(wave):
            interleaved.append(wave[i])
    return interleaved


class _LosersBracketBuilder:
    """Accumulates losers bracket rounds and wires entrants into them."""

    def __init__(self, match_map: Dict[str, GeneratedMatch], start_position: int):
        self.match_map = match_map
        self.bracket_position = start_position
        self.round_num = 0
        self.matches: List[GeneratedMatch] = []

    def _route(self, entrant: Entrant, match_id: str, slot: int) -> None:
        kind, source_id = entrant
        source = self.match_map[source_id]
        if kind == WB_LOSER:
            source.loser_to = MatchSlot(match_id, slot)
        else:
            source.winner_to = MatchSlot(match_id, slot)

    def build_round(self, entrants: List[Entrant]) -> List[Entrant]:
        """Pair consecutive entrants; an odd one out carries forward unpaired."""
        self.round_num += 1
        survivors = []
        match_number = 0
        for i in range(0, len(entrants) - 1, 2):
            match_number += 1
            match = GeneratedMatch(
                id=lb_id(self.round_num, match_number),
                round=self.round_num,
                match_number=match_number,
                bracket_type=BracketType.LOSERS,
                bracket_position=self.bracket_position,
            )
            match.loser_to = Placement.ELIMINATED
            self.bracket_position += 1
            self.match_map[match.id] = match
            self.matches.append(match)

            self._route(entrants[i], match.id, 1)
            self._route(entrants[i + 1], match.id, 2)
            survivors.append((LB_WINNER, match.id))

        if len(entrants) % 2 == 1:
            survivors.append(entrants[-1])
        return survivors


def generate_modified_double_elimination_bracket(participants: List[ParticipantSeed]) -> Dict:
    """
    Generate a modified double elimination bracket.

    Returns dict with:
    - 'matches': winners and losers matches sorted by bracket_position
    - 'totals': {'winners': rounds, 'losers': rounds, 'bracket_size': size}
    """
    validate_participants([p.registration_id for p in participants])

    bracket_size = calculate_bracket_size(len(participants))
    winners_rounds = int(math.log2(bracket_size))
    slots = build_initial_slots(participants, bracket_size)

    winners = _generate_winners_bracket(slots, bracket_size, winners_rounds, start_position=1)
    match_map = {m.id: m for r in sorted(winners) for m in winners[r]}

    winners_final = winners[winners_rounds][0]
    winners_final.winner_to = Placement.FIRST_PLACE
    winners_final.loser_to = Placement.SECOND_PLACE

    builder = _LosersBracketBuilder(match_map, start_position=len(match_map) + 1)
    survivors: List[Entrant] = []

    for round_num in range(1, winners_rounds):
        wave = [(WB_LOSER, m.id) for m in winners[round_num]]
        entrants = reorder_entrants(survivors + wave, len(survivors))
        if len(entrants) > 1:
            survivors = builder.build_round(entrants)
        else:
            survivors = entrants

    while len(survivors) > 1:
        survivors = builder.build_round(survivors)

    if builder.matches:
        losers_final = builder.matches[-1]
        losers_final.winner_to = Placement.THIRD_PLACE
        losers_final.loser_to = Placement.FOURTH_PLACE

    propagate_byes(match_map)

    logger.debug(
        "Modified double elimination: %d participants, bracket %d, %d winners rounds, %d losers rounds",
        len(participants), bracket_size, winners_rounds, builder.round_num,
    )
    return {
        'matches': sorted(match_map.values(), key=lambda m: m.bracket_position),
        'totals': {'winners': winners_rounds, 'losers': builder.round_num, 'bracket_size': bracket_size},
    }
