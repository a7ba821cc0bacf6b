"""
Pipeline Configuration

Toggle set, locale and rule data for the accessibility pipeline.

A deployment hands over a flat mapping of settings (PasteDeploy local_conf,
a plain dict, ...). Each recognized toggle resolves to a boolean with one
rule: an unset toggle is enabled, "true" enables, "false" disables and any
other text is a configuration error.

Usage:
    from accessible_filter.config import PipelineConfiguration

    config = PipelineConfiguration.from_settings(
        {'display-all-roles': 'false'}, locale='pt-BR'
    )
    config.resolve_toggle('display-all-roles')  # False
"""

import json
import locale as system_locale
import logging
import re
from dataclasses import dataclass, field, replace
from functools import lru_cache
from importlib import resources
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================

class AccessibleFilterError(Exception):
    """Base class for errors raised by accessible_filter."""


class ConfigurationError(AccessibleFilterError, ValueError):
    """Invalid toggle value, unknown toggle or unusable rules file."""


# =============================================================================
# Toggle names
# =============================================================================

ASSOCIATE_DATA_CELLS = 'associate-all-data-cells-with-header-cells'
ASSOCIATE_LABELS = 'associate-all-labels-with-fields'

PROVIDE_SPEAK_PROPERTIES = 'provide-all-speak-properties'

DISPLAY_ALTERNATIVE_TEXT = 'display-all-alternative-text-images'
DISPLAY_CELL_HEADERS = 'display-all-cell-headers'
DISPLAY_DRAGS_DROPS = 'display-all-drags-and-drops'
DISPLAY_LANGUAGES = 'display-all-languages'
DISPLAY_LINK_ATTRIBUTES = 'display-all-links-attributes'
DISPLAY_ROLES = 'display-all-roles'
DISPLAY_TITLES = 'display-all-titles'
DISPLAY_SHORTCUTS = 'display-all-shortcuts'
DISPLAY_WAI_ARIA = 'display-all-wai-aria-states'

MAKE_ACCESSIBLE_CLICK = 'make-accessible-all-click-events'
MAKE_ACCESSIBLE_DRAG_DROP = 'make-accessible-all-drag-and-drop-events'
MAKE_ACCESSIBLE_HOVER = 'make-accessible-all-hover-events'

MARK_AUTOCOMPLETE_FIELDS = 'mark-all-autocomplete-fields'
MARK_RANGE_FIELDS = 'mark-all-range-fields'
MARK_REQUIRED_FIELDS = 'mark-all-required-fields'
MARK_INVALID_FIELDS = 'mark-all-invalid-fields'

NAVIGATE_TO_LONG_DESCRIPTIONS = 'provide-navigation-to-all-long-descriptions'
NAVIGATE_BY_HEADINGS = 'provide-navigation-by-all-headings'
NAVIGATE_BY_SKIPPERS = 'provide-navigation-by-all-skippers'

HIDE_CHANGES = 'hide-accessibility-changes'

TOGGLES: Tuple[str, ...] = (
    ASSOCIATE_DATA_CELLS,
    ASSOCIATE_LABELS,
    PROVIDE_SPEAK_PROPERTIES,
    DISPLAY_ALTERNATIVE_TEXT,
    DISPLAY_CELL_HEADERS,
    DISPLAY_DRAGS_DROPS,
    DISPLAY_LANGUAGES,
    DISPLAY_LINK_ATTRIBUTES,
    DISPLAY_ROLES,
    DISPLAY_TITLES,
    DISPLAY_SHORTCUTS,
    DISPLAY_WAI_ARIA,
    MAKE_ACCESSIBLE_CLICK,
    MAKE_ACCESSIBLE_DRAG_DROP,
    MAKE_ACCESSIBLE_HOVER,
    MARK_AUTOCOMPLETE_FIELDS,
    MARK_RANGE_FIELDS,
    MARK_REQUIRED_FIELDS,
    MARK_INVALID_FIELDS,
    NAVIGATE_TO_LONG_DESCRIPTIONS,
    NAVIGATE_BY_HEADINGS,
    NAVIGATE_BY_SKIPPERS,
    HIDE_CHANGES,
)

# Settings key naming the optional rules file
CONFIGURATION_PATH = 'configuration'

DEFAULT_LOCALE = 'en_US'


def coerce_toggle(name: str, value: Any) -> bool:
    """
    Resolve the raw setting of one toggle.

    Args:
        name: Toggle name, used in the error message
        value: Raw setting; None means unset

    Returns:
        True when unset or "true", False when "false"

    Raises:
        ConfigurationError: For any other value
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if value == 'true':
        return True
    if value == 'false':
        return False
    raise ConfigurationError(
        f'Invalid value {value!r} for "{name}", use "true" or "false" only.'
    )


# =============================================================================
# Locale handling
# =============================================================================

_LOCALE_PATTERN = re.compile(
    r'^([A-Za-z]{2,3})'
    r'(?:[-_][A-Za-z]{4}(?=[-_.@]|$))?'
    r'(?:[-_]([A-Za-z]{2}|\d{3})(?=[-_.@]|$))?'
)


def normalize_locale(value: Optional[str]) -> Optional[str]:
    """Turn 'pt-br', 'pt_BR.UTF-8' or 'PT' into 'pt_BR' / 'pt'."""
    if not value:
        return None
    match = _LOCALE_PATTERN.match(value.strip())
    if not match:
        return None
    language, region = match.group(1).lower(), match.group(2)
    if region:
        return f'{language}_{region.upper()}'
    return language


def default_locale() -> str:
    """Locale of the running process, or en_US when it has none."""
    try:
        current = system_locale.getlocale()[0]
    except ValueError:
        current = None
    return normalize_locale(current) or DEFAULT_LOCALE


# =============================================================================
# Rule data
# =============================================================================

@dataclass(frozen=True)
class Skipper:
    """A skip link target: CSS selector, link text and access key."""
    selector: str
    text: str
    shortcut: str = ''


@dataclass(frozen=True)
class RuleSet:
    """Locale-aware texts and skippers used by the transformation categories."""
    locale: str
    texts: Mapping[str, str] = field(default_factory=dict)
    skippers: Tuple[Skipper, ...] = ()

    def get_text(self, key: str, **values: Any) -> str:
        """
        Return the text stored under key, formatted with values.

        Unknown keys give an empty string so a missing translation never
        breaks a page.
        """
        template = self.texts.get(key, '')
        if values:
            return template.format(**values)
        return template


def _bundled_locales() -> Tuple[str, ...]:
    folder = resources.files('accessible_filter') / 'resources' / 'locale'
    return tuple(
        entry.name[:-len('.json')]
        for entry in folder.iterdir()
        if entry.name.endswith('.json')
    )


def _pick_bundled_locale(tag: str) -> str:
    available = _bundled_locales()
    if tag in available:
        return tag
    language = tag.split('_')[0]
    for candidate in sorted(available):
        if candidate.split('_')[0] == language:
            return candidate
    return DEFAULT_LOCALE


@lru_cache(maxsize=None)
def _load_bundled_rules(tag: str) -> Dict[str, Any]:
    path = resources.files('accessible_filter') / 'resources' / 'locale' / f'{tag}.json'
    return json.loads(path.read_text(encoding='utf-8'))


def read_rules_file(path: str) -> Dict[str, Any]:
    """
    Read a user supplied rules file.

    Raises:
        ConfigurationError: When the file is unreadable or not a JSON object
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f'Cannot read configuration file {path}: {e}') from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f'Malformed configuration file {path}: {e}') from e

    if not isinstance(data, dict):
        raise ConfigurationError(f'Configuration file {path} must hold a JSON object')
    texts = data.get('texts', {})
    if not isinstance(texts, dict):
        raise ConfigurationError(f'"texts" in {path} must be an object')
    skippers = data.get('skippers', [])
    if not isinstance(skippers, list) or not all(
        isinstance(item, dict) and 'selector' in item for item in skippers
    ):
        raise ConfigurationError(f'"skippers" in {path} must be a list of objects with a selector')
    return data


def load_rules(tag: str, overrides: Optional[Mapping[str, Any]] = None) -> RuleSet:
    """
    Build the rule set for a locale.

    Args:
        tag: Normalized locale tag
        overrides: Parsed rules file whose entries replace the bundled ones

    Returns:
        RuleSet for the locale
    """
    data = _load_bundled_rules(_pick_bundled_locale(tag))
    texts = dict(data.get('texts', {}))
    skippers = data.get('skippers', [])

    if overrides:
        texts.update(overrides.get('texts', {}))
        if 'skippers' in overrides:
            skippers = overrides['skippers']

    return RuleSet(
        locale=tag,
        texts=MappingProxyType(texts),
        skippers=tuple(
            Skipper(
                selector=item['selector'],
                text=item.get('text', ''),
                shortcut=str(item.get('shortcut', '')),
            )
            for item in skippers
        ),
    )


# =============================================================================
# Pipeline configuration
# =============================================================================

@dataclass(frozen=True)
class PipelineConfiguration:
    """
    Read-only configuration of one pipeline run.

    Build it once per deployment with from_settings() and derive per-request
    copies with with_locale(); the instance itself is never mutated.
    """
    toggles: Mapping[str, bool]
    locale: str
    rules: RuleSet
    rules_path: Optional[str] = None
    rules_overrides: Optional[Mapping[str, Any]] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]] = None,
                      rules_path: Optional[str] = None,
                      locale: Optional[str] = None) -> 'PipelineConfiguration':
        """
        Resolve every recognized toggle from deployment settings.

        Args:
            settings: Raw settings; keys that are not toggles are ignored
            rules_path: Optional rules file; falls back to the
                "configuration" settings key
            locale: Locale tag; the process locale is used when missing

        Raises:
            ConfigurationError: For an invalid toggle value or rules file
        """
        settings = settings or {}
        toggles = {name: coerce_toggle(name, settings.get(name)) for name in TOGGLES}

        if rules_path is None:
            rules_path = settings.get(CONFIGURATION_PATH) or None
        overrides = read_rules_file(rules_path) if rules_path else None

        tag = normalize_locale(locale) or default_locale()
        disabled = [name for name, enabled in toggles.items() if not enabled]
        logger.debug(f"Configuration for {tag}: {len(disabled)} toggle(s) disabled {disabled}")

        return cls(
            toggles=MappingProxyType(toggles),
            locale=tag,
            rules=load_rules(tag, overrides),
            rules_path=rules_path,
            rules_overrides=overrides,
        )

    @classmethod
    def all_disabled(cls, locale: Optional[str] = None) -> 'PipelineConfiguration':
        """Configuration with every toggle set to false."""
        return cls.from_settings({name: 'false' for name in TOGGLES}, locale=locale)

    def resolve_toggle(self, name: str) -> bool:
        """
        Return the value of a recognized toggle.

        Raises:
            ConfigurationError: When name is not a recognized toggle
        """
        try:
            return self.toggles[name]
        except KeyError:
            raise ConfigurationError(f'Unknown toggle "{name}"') from None

    def with_locale(self, locale: Optional[str]) -> 'PipelineConfiguration':
        """Copy of this configuration bound to another locale."""
        tag = normalize_locale(locale)
        if not tag or tag == self.locale:
            return self
        return replace(self, locale=tag, rules=load_rules(tag, self.rules_overrides))
