"""
Event settings: defaults, YAML loading and validation.
"""
import os
from typing import Dict

import yaml

from .errors import InvalidInputError
from .formats import SUPPORTED_FORMATS, SINGLE_ELIMINATION

BOOL_SETTINGS = ('has_third_place_match', 'include_grand_final')
NON_NEGATIVE_INT_SETTINGS = ('points_per_win', 'points_per_loss')
POSITIVE_INT_SETTINGS = ('best_of', 'players_per_heat', 'max_update_attempts')


def get_default_event_settings() -> Dict:
    """Return default event settings."""
    return {
        'format': SINGLE_ELIMINATION,
        'has_third_place_match': False,
        'include_grand_final': False,
        'best_of': 3,
        'points_per_win': 3,
        'points_per_loss': 0,
        'players_per_heat': 8,
        'max_update_attempts': 3,
    }


def load_event_settings(path: str) -> Dict:
    """Load event settings from a YAML file, merging with defaults."""
    settings = get_default_event_settings()
    if not path or not os.path.exists(path):
        return settings
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return settings
    if not isinstance(data, dict):
        raise InvalidInputError(f"Event settings in {path} must be a mapping")
    settings.update(data)
    return settings


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_event_settings(settings: Dict) -> Dict:
    """Raise InvalidInputError on the first bad setting; return ``settings`` otherwise."""
    if settings.get('format') not in SUPPORTED_FORMATS:
        raise InvalidInputError(
            f"Unsupported format {settings.get('format')!r}, expected one of {', '.join(SUPPORTED_FORMATS)}"
        )

    for key in BOOL_SETTINGS:
        if key in settings and not isinstance(settings[key], bool):
            raise InvalidInputError(f"{key} must be true or false")

    for key in NON_NEGATIVE_INT_SETTINGS:
        if key in settings and (not _is_int(settings[key]) or settings[key] < 0):
            raise InvalidInputError(f"{key} must be a non-negative integer")

    for key in POSITIVE_INT_SETTINGS:
        if key in settings and (not _is_int(settings[key]) or settings[key] < 1):
            raise InvalidInputError(f"{key} must be a positive integer")

    if 'best_of' in settings and settings['best_of'] % 2 == 0:
        raise InvalidInputError("best_of must be odd")

    return settings
