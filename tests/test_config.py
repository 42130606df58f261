"""
Tests for event settings.
"""
import pytest

from bracket_engine.config import get_default_event_settings, load_event_settings, validate_event_settings
from bracket_engine.errors import InvalidInputError


class TestEventSettings:
    """Tests for defaults and loading."""

    def test_defaults(self):
        """Default settings are a valid single elimination event."""
        settings = get_default_event_settings()
        assert settings['format'] == 'single-elimination'
        assert settings['best_of'] == 3
        assert settings['points_per_win'] == 3
        assert settings['max_update_attempts'] == 3
        assert validate_event_settings(settings) is settings

    def test_defaults_are_fresh(self):
        """Changing returned defaults does not leak."""
        get_default_event_settings()['best_of'] = 5
        assert get_default_event_settings()['best_of'] == 3

    def test_load_missing_file(self, tmp_path):
        """A missing file yields the defaults."""
        assert load_event_settings(str(tmp_path / 'missing.yaml')) == get_default_event_settings()

    def test_load_empty_file(self, tmp_path):
        """An empty file yields the defaults."""
        path = tmp_path / 'settings.yaml'
        path.write_text('')
        assert load_event_settings(str(path)) == get_default_event_settings()

    def test_load_merges_defaults(self, tmp_path):
        """Given keys override, the rest come from defaults."""
        path = tmp_path / 'settings.yaml'
        path.write_text('format: double-elimination\ninclude_grand_final: true\n')
        settings = load_event_settings(str(path))
        assert settings['format'] == 'double-elimination'
        assert settings['include_grand_final'] is True
        assert settings['best_of'] == 3

    def test_load_rejects_non_mapping(self, tmp_path):
        path = tmp_path / 'settings.yaml'
        path.write_text('- a\n- b\n')
        with pytest.raises(InvalidInputError):
            load_event_settings(str(path))


class TestValidateEventSettings:
    """Tests for rejected settings."""

    @pytest.mark.parametrize("key,value", [
        ('format', 'swiss'),
        ('best_of', 2),
        ('best_of', 0),
        ('best_of', True),
        ('points_per_win', -1),
        ('points_per_loss', 'none'),
        ('players_per_heat', 0),
        ('max_update_attempts', 0),
        ('has_third_place_match', 'yes'),
        ('include_grand_final', 1),
    ])
    def test_invalid(self, key, value):
        """Each bad value is rejected."""
        settings = get_default_event_settings()
        settings[key] = value
        with pytest.raises(InvalidInputError):
            validate_event_settings(settings)

    def test_groups_points(self):
        """Zero loss points and five set matches are fine."""
        settings = get_default_event_settings()
        settings.update({'format': 'groups', 'points_per_loss': 0, 'best_of': 5})
        validate_event_settings(settings)
