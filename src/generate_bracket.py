import argparse
import logging
import sys

import yaml

from bracket_engine.config import get_default_event_settings, load_event_settings
from bracket_engine.errors import BracketError
from bracket_engine.formats import SUPPORTED_FORMATS, is_groups_format, round_robin
from bracket_engine.models import MatchSlot
from bracket_engine.service import generate_bracket


def load_participants(file_path):
    """
    Read registrations from YAML.

    Accepts a list of ids or a list of {registration_id, seed} mappings.
    Returns (registration_ids, seeds) where seeds maps id -> seed.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []

    registration_ids = []
    seeds = {}
    for entry in data:
        if isinstance(entry, dict):
            registration_id = entry['registration_id']
            if entry.get('seed') is not None:
                seeds[registration_id] = entry['seed']
        else:
            registration_id = entry
        registration_ids.append(registration_id)
    return registration_ids, seeds


def format_destination(route):
    if route is None:
        return '-'
    if isinstance(route, MatchSlot):
        return f"{route.match_id} (slot {route.slot})"
    return route.value


def print_bracket(matches):
    matches_by_round = {}
    for match in matches:
        bracket_type = match.bracket_type.value if match.bracket_type else 'bracket'
        matches_by_round.setdefault((bracket_type, match.round), []).append(match)

    first_round = True
    for (bracket_type, round_num), round_matches in matches_by_round.items():
        if not first_round:
            print()
        print(f"# {bracket_type.capitalize()} round {round_num}")
        for match in round_matches:
            reg1 = match.registration1_id or 'TBD'
            reg2 = match.registration2_id or 'TBD'
            line = f"{match.id}: {reg1} vs {reg2} -> {format_destination(match.winner_to)}"
            if match.is_bye:
                line += f" (bye, {match.winner_id} advances)"
            print(line)
        first_round = False


def print_round_robin(registration_ids):
    for round_num, pairs in enumerate(round_robin(registration_ids), 1):
        if round_num > 1:
            print()
        print(f"# Round {round_num}")
        for home, away in pairs:
            print(f"{home} vs {away}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate a tournament bracket from a participants file.')
    parser.add_argument('participants', help='YAML list of registration ids or {registration_id, seed} mappings')
    parser.add_argument('--settings', help='YAML event settings file')
    parser.add_argument('--format', choices=SUPPORTED_FORMATS, help='override the event format')
    parser.add_argument('--third-place', action='store_true', help='add a third place match (single elimination)')
    parser.add_argument('--log-level', default='WARNING', help='logging level (default: WARNING)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format='%(levelname)s %(name)s: %(message)s')

    settings = load_event_settings(args.settings) if args.settings else get_default_event_settings()
    if args.format:
        settings['format'] = args.format
    if args.third_place:
        settings['has_third_place_match'] = True

    registration_ids, seeds = load_participants(args.participants)

    try:
        if is_groups_format(settings['format']):
            print_round_robin(registration_ids)
        else:
            bracket = generate_bracket(settings, registration_ids, seeds)
            print_bracket(bracket['matches'])
    except BracketError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
