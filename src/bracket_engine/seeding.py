"""
Seeding helpers: bracket size, standard seed placement and slot allocation.
"""
import math
from typing import Dict, Iterable, List, Optional, Union

from .errors import InvalidInputError
from .models import ParticipantSeed


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 2 ** math.ceil(math.log2(n))


def calculate_bracket_size(num_participants: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    return next_power_of_two(num_participants)


def calculate_byes(num_participants: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_participants) - num_participants


def get_round_name(participants_in_round: int) -> str:
    """Get the name of a round based on number of participants."""
    if participants_in_round == 2:
        return "Final"
    elif participants_in_round == 4:
        return "Semifinal"
    elif participants_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {participants_in_round}"


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the slot-by-slot seed order of a bracket.

    For 8 participants: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    """
    if bracket_size <= 1:
        return [1]

    order = [1, 2]
    while len(order) < bracket_size:
        total = len(order) * 2 + 1
        expanded = []
        for seed in order:
            expanded.extend([seed, total - seed])
        order = expanded

    return order


def generate_seed_positions(bracket_size: int) -> List[int]:
    """
    Return the 1-indexed bracket slot of every seed.

    positions[i] is the slot taken by seed i + 1, so for a bracket of 8
    seed 1 sits in slot 1 and seed 8 in slot 2.
    """
    order = _generate_bracket_order(bracket_size)
    positions = [0] * len(order)
    for slot_index, seed in enumerate(order):
        positions[seed - 1] = slot_index + 1
    return positions


SeedsArg = Optional[Union[Iterable[ParticipantSeed], Dict[str, int]]]


def build_seed_map(seeds: SeedsArg) -> Dict[str, int]:
    if not seeds:
        return {}
    if isinstance(seeds, dict):
        return dict(seeds)
    return {s.registration_id: s.seed for s in seeds}


def sort_registrations_by_seeds(registration_ids: List[str], seeds: SeedsArg = None) -> List[str]:
    """
    Sort registrations by seed (lower seed = stronger).

    Unseeded registrations go last. Python's sort is stable, so equal seeds
    and unseeded registrations keep their input order.
    """
    seed_map = build_seed_map(seeds)
    if not seed_map:
        return list(registration_ids)
    return sorted(registration_ids, key=lambda reg_id: seed_map.get(reg_id, math.inf))


def order_seeds(participants: List[ParticipantSeed]) -> List[str]:
    """Registration ids of ``participants`` ordered by seed, ties by input order."""
    ordered = sorted(participants, key=lambda p: p.seed)
    return [p.registration_id for p in ordered]


def place_to_bracket_slots(sorted_registration_ids: List[str], bracket_size: int) -> List[Optional[str]]:
    """
    Place pre-sorted registrations into bracket slots.

    The i-th strongest registration goes to the slot of seed i + 1; slots
    left empty are byes.
    """
    if len(sorted_registration_ids) > bracket_size:
        raise InvalidInputError(
            f"{len(sorted_registration_ids)} participants do not fit a bracket of {bracket_size}"
        )
    positions = generate_seed_positions(bracket_size)
    slots: List[Optional[str]] = [None] * bracket_size
    for i, registration_id in enumerate(sorted_registration_ids):
        slots[positions[i] - 1] = registration_id
    return slots


def build_initial_slots(participants: List[ParticipantSeed], bracket_size: int) -> List[Optional[str]]:
    """Seeded participants placed into slots, ready for round 1."""
    return place_to_bracket_slots(order_seeds(participants), bracket_size)


def to_participant_seeds(registration_ids: List[str], seeds: SeedsArg = None) -> List[ParticipantSeed]:
    """
    Turn raw ids plus an optional seed mapping into ParticipantSeed objects.

    Unseeded registrations are numbered after the highest given seed in
    input order.
    """
    seed_map = build_seed_map(seeds)
    next_seed = max(seed_map.values(), default=0) + 1
    participants = []
    for registration_id in sort_registrations_by_seeds(registration_ids, seed_map):
        seed = seed_map.get(registration_id)
        if seed is None:
            seed = next_seed
            next_seed += 1
        participants.append(ParticipantSeed(registration_id, seed))
    return participants
