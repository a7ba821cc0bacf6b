"""
Tests for toggle coercion, locale handling and rule loading.
"""

import dataclasses
import json
from unittest.mock import patch

import pytest
from accessible_filter.config import (
    DISPLAY_ROLES,
    HIDE_CHANGES,
    TOGGLES,
    ConfigurationError,
    PipelineConfiguration,
    Skipper,
    coerce_toggle,
    default_locale,
    normalize_locale,
    read_rules_file,
)


class TestCoerceToggle:
    """Tests for the unset / true / false rule."""

    def test_unset_is_enabled(self):
        """Test a missing value enables the toggle."""
        assert coerce_toggle('display-all-roles', None) is True

    def test_true_and_false(self):
        """Test the two accepted strings."""
        assert coerce_toggle('display-all-roles', 'true') is True
        assert coerce_toggle('display-all-roles', 'false') is False

    def test_booleans_pass_through(self):
        """Test programmatic settings may use real booleans."""
        assert coerce_toggle('display-all-roles', True) is True
        assert coerce_toggle('display-all-roles', False) is False

    @pytest.mark.parametrize('value', ['maybe', 'False', 'TRUE', '1', '', 0])
    def test_other_values_rejected(self, value):
        """Test anything else is a configuration error naming the toggle."""
        with pytest.raises(ConfigurationError) as excinfo:
            coerce_toggle('display-all-roles', value)
        assert 'display-all-roles' in str(excinfo.value)

    def test_error_is_value_error(self):
        """Test callers catching ValueError still see configuration errors."""
        with pytest.raises(ValueError):
            coerce_toggle('display-all-roles', 'maybe')


class TestLocale:
    """Tests for locale normalization."""

    def test_normalize(self):
        """Test the accepted spellings of a locale tag."""
        assert normalize_locale('pt-br') == 'pt_BR'
        assert normalize_locale('pt_BR.UTF-8') == 'pt_BR'
        assert normalize_locale('PT') == 'pt'
        assert normalize_locale('en-US') == 'en_US'

    def test_normalize_script_subtag(self):
        """Test a script subtag is skipped rather than read as a region."""
        assert normalize_locale('zh-Hant-TW') == 'zh_TW'
        assert normalize_locale('zh-Hant') == 'zh'
        assert normalize_locale('sr_Latn_RS.UTF-8') == 'sr_RS'
        assert normalize_locale('es-419') == 'es_419'

    def test_normalize_empty(self):
        """Test empty or unusable tags."""
        assert normalize_locale(None) is None
        assert normalize_locale('') is None
        assert normalize_locale('*') is None

    def test_default_locale_without_system_locale(self):
        """Test en_US is used when the process has no locale."""
        with patch('accessible_filter.config.system_locale.getlocale', return_value=(None, None)):
            assert default_locale() == 'en_US'

    def test_default_locale_from_system(self):
        """Test the process locale is normalized."""
        with patch('accessible_filter.config.system_locale.getlocale',
                   return_value=('pt_BR', 'UTF-8')):
            assert default_locale() == 'pt_BR'


class TestPipelineConfiguration:
    """Tests for PipelineConfiguration."""

    def test_all_toggles_enabled_by_default(self):
        """Test an empty settings mapping enables every toggle."""
        config = PipelineConfiguration.from_settings({}, locale='en_US')

        assert len(config.toggles) == 23
        assert set(config.toggles) == set(TOGGLES)
        assert all(config.toggles.values())

    def test_unset_equals_true(self):
        """Test leaving a toggle out is the same as setting it to "true"."""
        unset = PipelineConfiguration.from_settings({}, locale='en_US')
        explicit = PipelineConfiguration.from_settings(
            {name: 'true' for name in TOGGLES}, locale='en_US'
        )
        assert dict(unset.toggles) == dict(explicit.toggles)

    def test_false_disables_only_that_toggle(self):
        """Test a single disabled toggle."""
        config = PipelineConfiguration.from_settings({DISPLAY_ROLES: 'false'}, locale='en_US')

        assert config.resolve_toggle(DISPLAY_ROLES) is False
        assert sum(1 for value in config.toggles.values() if not value) == 1

    def test_invalid_value_raises(self):
        """Test an invalid value fails while building the configuration."""
        with pytest.raises(ConfigurationError, match='display-all-roles'):
            PipelineConfiguration.from_settings({DISPLAY_ROLES: 'maybe'}, locale='en_US')

    def test_unknown_settings_ignored(self):
        """Test keys that are not toggles are ignored."""
        config = PipelineConfiguration.from_settings(
            {'hide-changes': 'sometimes', 'debug': 'yes'}, locale='en_US'
        )
        assert config.resolve_toggle(HIDE_CHANGES) is True

    def test_resolve_unknown_toggle(self):
        """Test asking for an unknown toggle."""
        config = PipelineConfiguration.from_settings({}, locale='en_US')
        with pytest.raises(ConfigurationError):
            config.resolve_toggle('display-all-everything')

    def test_all_disabled(self):
        """Test the all-disabled configuration."""
        config = PipelineConfiguration.all_disabled(locale='en_US')
        assert not any(config.toggles.values())

    def test_immutable(self):
        """Test the configuration cannot be changed after construction."""
        config = PipelineConfiguration.from_settings({}, locale='en_US')

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.locale = 'pt_BR'
        with pytest.raises(TypeError):
            config.toggles[DISPLAY_ROLES] = False

    def test_bundled_texts(self):
        """Test texts come from the bundled locale."""
        english = PipelineConfiguration.from_settings({}, locale='en_US')
        portuguese = PipelineConfiguration.from_settings({}, locale='pt-BR')

        assert english.rules.get_text('role-button') == 'Button'
        assert portuguese.rules.get_text('role-button') == 'Botão'
        assert english.rules.get_text('alternative-text', text='A cat') == '(Image: A cat)'

    def test_locale_fallback(self):
        """Test unknown locales fall back by language, then to English."""
        portuguese = PipelineConfiguration.from_settings({}, locale='pt')
        french = PipelineConfiguration.from_settings({}, locale='fr_FR')

        assert portuguese.rules.get_text('role-button') == 'Botão'
        assert french.rules.get_text('role-button') == 'Button'
        assert french.locale == 'fr_FR'

    def test_unknown_text_is_empty(self):
        """Test a missing text never raises."""
        config = PipelineConfiguration.from_settings({}, locale='en_US')
        assert config.rules.get_text('no-such-text') == ''

    def test_bundled_skippers(self):
        """Test the default skip link targets."""
        config = PipelineConfiguration.from_settings({}, locale='en_US')

        assert len(config.rules.skippers) == 4
        assert config.rules.skippers[0].text == 'Skip to main content'
        assert config.rules.skippers[0].shortcut == '1'

    def test_with_locale(self):
        """Test per-request locale copies."""
        config = PipelineConfiguration.from_settings({DISPLAY_ROLES: 'false'}, locale='en_US')
        localized = config.with_locale('pt-BR')

        assert localized is not config
        assert localized.locale == 'pt_BR'
        assert localized.resolve_toggle(DISPLAY_ROLES) is False
        assert config.locale == 'en_US'
        assert config.with_locale('en-us') is config
        assert config.with_locale(None) is config


class TestRulesFile:
    """Tests for user supplied rules files."""

    def write(self, tmp_path, data):
        path = tmp_path / 'rules.json'
        path.write_text(json.dumps(data), encoding='utf-8')
        return str(path)

    def test_overrides_merge_with_defaults(self, tmp_path):
        """Test texts are merged and skippers replaced."""
        path = self.write(tmp_path, {
            'texts': {'role-button': 'Knopf'},
            'skippers': [{'selector': 'main', 'text': 'Go'}],
        })
        config = PipelineConfiguration.from_settings({}, rules_path=path, locale='en_US')

        assert config.rules.get_text('role-button') == 'Knopf'
        assert config.rules.get_text('role-link') == 'Link'
        assert config.rules.skippers == (Skipper('main', 'Go', ''),)
        assert config.rules_path == path

    def test_configuration_setting(self, tmp_path):
        """Test the rules file may be named in the settings."""
        path = self.write(tmp_path, {'texts': {'role-link': 'Hyperlink'}})
        config = PipelineConfiguration.from_settings({'configuration': path}, locale='en_US')

        assert config.rules.get_text('role-link') == 'Hyperlink'

    def test_overrides_survive_locale_change(self, tmp_path):
        """Test a localized copy keeps the user overrides."""
        path = self.write(tmp_path, {'texts': {'role-link': 'Hyperlink'}})
        config = PipelineConfiguration.from_settings({}, rules_path=path, locale='en_US')
        localized = config.with_locale('pt-BR')

        assert localized.rules.get_text('role-link') == 'Hyperlink'
        assert localized.rules.get_text('role-button') == 'Botão'

    def test_missing_file(self, tmp_path):
        """Test an unreadable file is a configuration error."""
        with pytest.raises(ConfigurationError):
            read_rules_file(str(tmp_path / 'missing.json'))

    def test_malformed_file(self, tmp_path):
        """Test invalid JSON is a configuration error."""
        path = tmp_path / 'rules.json'
        path.write_text('{"texts": ', encoding='utf-8')
        with pytest.raises(ConfigurationError):
            PipelineConfiguration.from_settings({}, rules_path=str(path), locale='en_US')

    @pytest.mark.parametrize('data', [
        ['not', 'an', 'object'],
        {'texts': ['a']},
        {'skippers': [{'text': 'no selector'}]},
    ])
    def test_wrong_shape(self, tmp_path, data):
        """Test well-formed JSON with the wrong structure."""
        with pytest.raises(ConfigurationError):
            read_rules_file(self.write(tmp_path, data))
