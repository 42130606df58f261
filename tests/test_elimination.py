"""
Unit tests for single elimination bracket generation.
"""
import pytest

from bracket_engine.elimination import (
    check_links,
    generate_single_elimination_bracket,
    get_bracket_summary,
    get_final_match,
    get_match_by_position,
    is_bracket_complete,
    propagate_byes,
)
from bracket_engine.errors import InconsistentStateError, InvalidInputError
from bracket_engine.models import GeneratedMatch, MatchSlot, ParticipantSeed, Placement

from conftest import by_id, make_ids


class TestFirstRound:
    """Tests for round one pairings."""

    def test_eight_participant_pairings(self, eight_ids):
        """Round one is 1v8, 4v5, 2v7, 3v6."""
        bracket = generate_single_elimination_bracket(eight_ids)
        first_round = [m for m in bracket['matches'] if m.round == 1]
        pairs = [(m.match_number, m.registration1_id, m.registration2_id) for m in first_round]
        assert pairs == [
            (1, 'reg1', 'reg8'),
            (2, 'reg4', 'reg5'),
            (3, 'reg2', 'reg7'),
            (4, 'reg3', 'reg6'),
        ]

    def test_seed_mapping_orders_participants(self):
        """Seeds given as a dict override input order."""
        bracket = generate_single_elimination_bracket(['a', 'b', 'c', 'd'], {'d': 1, 'c': 2})
        matches = by_id(bracket)
        assert (matches['R1-M1'].registration1_id, matches['R1-M1'].registration2_id) == ('d', 'b')
        assert (matches['R1-M2'].registration1_id, matches['R1-M2'].registration2_id) == ('c', 'a')

    def test_seed_objects_accepted(self):
        """Seeds may also be ParticipantSeed objects."""
        seeds = [ParticipantSeed('b', 1), ParticipantSeed('a', 2)]
        bracket = generate_single_elimination_bracket(['a', 'b'], seeds)
        final = by_id(bracket)['R1-M1']
        assert final.registration1_id == 'b'


class TestStructure:
    """Tests for rounds, routing and totals."""

    def test_totals(self, eight_ids):
        """Eight participants play three rounds."""
        bracket = generate_single_elimination_bracket(eight_ids)
        assert bracket['totals'] == {'winners': 3, 'losers': 0, 'bracket_size': 8}
        assert len(bracket['matches']) == 7

    def test_winner_routing_alternates_slots(self, eight_ids):
        """Match i feeds match i // 2 of the next round, slot by parity."""
        matches = by_id(generate_single_elimination_bracket(eight_ids))
        assert matches['R1-M1'].winner_to == MatchSlot('R2-M1', 1)
        assert matches['R1-M2'].winner_to == MatchSlot('R2-M1', 2)
        assert matches['R1-M3'].winner_to == MatchSlot('R2-M2', 1)
        assert matches['R2-M2'].winner_to == MatchSlot('R3-M1', 2)
        assert matches['R3-M1'].winner_to == Placement.FIRST_PLACE

    def test_two_participants(self):
        """Two participants play a single final."""
        bracket = generate_single_elimination_bracket(['a', 'b'])
        assert len(bracket['matches']) == 1
        assert bracket['matches'][0].winner_to == Placement.FIRST_PLACE

    def test_positions_sequential(self, eight_ids):
        """Bracket positions run 1..n in output order."""
        bracket = generate_single_elimination_bracket(eight_ids)
        assert [m.bracket_position for m in bracket['matches']] == list(range(1, 8))
        assert get_match_by_position(bracket['matches'], 5).id == 'R2-M1'

    def test_third_place_match(self, eight_ids):
        """A third place match is added to the final round."""
        bracket = generate_single_elimination_bracket(eight_ids, has_third_place_match=True)
        third = by_id(bracket)['R3-M2']
        assert third.is_third_place
        assert third.match_number == 2
        assert third.winner_to == Placement.THIRD_PLACE
        assert len(bracket['matches']) == 8

    def test_no_third_place_without_semifinals(self):
        """Two participants have no semifinals to take losers from."""
        bracket = generate_single_elimination_bracket(['a', 'b'], has_third_place_match=True)
        assert not any(m.is_third_place for m in bracket['matches'])


class TestValidation:
    """Tests for rejected input."""

    def test_one_participant(self):
        """A bracket needs two participants."""
        with pytest.raises(InvalidInputError):
            generate_single_elimination_bracket(['a'])

    def test_no_participants(self):
        """Empty input is rejected."""
        with pytest.raises(InvalidInputError):
            generate_single_elimination_bracket([])

    def test_duplicate_registration(self):
        """A registration cannot appear twice."""
        with pytest.raises(InvalidInputError):
            generate_single_elimination_bracket(['a', 'b', 'a'])

    def test_invalid_input_is_value_error(self):
        """Callers catching ValueError still see the rejection."""
        with pytest.raises(ValueError):
            generate_single_elimination_bracket(['a'])

    def test_unknown_link_target(self):
        """A route to a missing match is an inconsistent state."""
        match = GeneratedMatch('M1', 1, 1, 1, 'a', 'b')
        match.winner_to = MatchSlot('M9', 1)
        with pytest.raises(InconsistentStateError):
            check_links([match])


class TestByes:
    """Tests for bye resolution."""

    def test_seed_one_bye_with_seven(self):
        """Seed 1 gets the bye and lands in slot 1 of R2-M1."""
        matches = by_id(generate_single_elimination_bracket(make_ids(7)))
        bye = matches['R1-M1']
        assert bye.is_bye
        assert bye.played
        assert bye.winner_id == 'reg1'
        assert matches['R2-M1'].registration1_id == 'reg1'
        assert matches['R2-M1'].registration2_id is None
        assert not matches['R2-M1'].played

    def test_round_two_between_two_bye_winners_is_not_resolved(self):
        """Two bye winners meeting in round two still have to play."""
        matches = by_id(generate_single_elimination_bracket(make_ids(5)))
        assert matches['R1-M3'].is_bye
        assert matches['R1-M4'].is_bye
        second = matches['R2-M2']
        assert (second.registration1_id, second.registration2_id) == ('reg2', 'reg3')
        assert not second.played
        assert second.winner_id is None

    def test_bye_count(self):
        """Five participants leave three byes."""
        bracket = generate_single_elimination_bracket(make_ids(5))
        assert sum(1 for m in bracket['matches'] if m.is_bye) == 3

    def test_played_match_has_winner(self):
        """No played match is left without a winner."""
        for count in range(2, 17):
            bracket = generate_single_elimination_bracket(make_ids(count))
            for match in bracket['matches']:
                if match.played:
                    assert match.winner_id is not None

    def test_propagate_is_repeatable(self):
        """Running propagation again changes nothing."""
        bracket = generate_single_elimination_bracket(make_ids(6))
        before = [m.to_dict() for m in bracket['matches']]
        propagate_byes({m.id: m for m in bracket['matches']})
        assert [m.to_dict() for m in bracket['matches']] == before


class TestBracketSummary:
    """Tests for bracket display helpers."""

    def test_summary_with_bye(self):
        """Byes are counted but not listed per round."""
        summary = get_bracket_summary(generate_single_elimination_bracket(make_ids(7)))
        assert summary['bracket_size'] == 8
        assert summary['byes'] == 1
        assert summary['matches_per_round'] == {'Quarterfinal': 3, 'Semifinal': 2, 'Final': 1}
        assert summary['champion'] is None

    def test_final_match_and_completion(self, eight_ids):
        """The final is found by its first place route."""
        bracket = generate_single_elimination_bracket(eight_ids)
        final = get_final_match(bracket['matches'])
        assert final.id == 'R3-M1'
        assert not is_bracket_complete(bracket['matches'])
        final.played = True
        final.winner_id = 'reg1'
        assert is_bracket_complete(bracket['matches'])
