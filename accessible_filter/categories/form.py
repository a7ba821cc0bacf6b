"""
Form category: expose field constraints through WAI-ARIA.
"""

import logging
import re
from typing import Optional
from urllib.parse import urlparse

import regex
from bs4 import Tag

from .base import Category, load_resource


logger = logging.getLogger(__name__)


FIELD_SELECTOR = 'input, select, textarea'
AUTOCOMPLETE_TYPES = frozenset(['', 'email', 'password', 'search', 'tel', 'text', 'url'])
RANGE_TYPES = frozenset(['number', 'range'])
VALIDATE_ATTRIBUTE = 'data-a11y-validate'
# Seconds a page supplied pattern may spend matching one value
PATTERN_TIMEOUT = 0.05

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+$')


def field_type(field: Tag) -> str:
    if field.name != 'input':
        return field.name
    return field.get('type', 'text').strip().lower()


def field_value(field: Tag) -> str:
    """Current value of a field as it would be submitted."""
    if field.name == 'textarea':
        return field.get_text()
    if field.name == 'select':
        option = field.find('option', selected=True) or field.find('option')
        if option is None:
            return ''
        return option.get('value', option.get_text(strip=True))
    return field.get('value', '')


def _number(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _integer(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def is_invalid(field: Tag) -> bool:
    """
    Check the current value of a field against its constraints.

    Empty fields are not reported; the bundled validation script marks them
    once the user has interacted with the form.
    """
    value = field_value(field)
    if not value:
        return False
    kind = field_type(field)

    pattern = field.get('pattern')
    if pattern and kind not in RANGE_TYPES:
        try:
            if regex.fullmatch(pattern, value, timeout=PATTERN_TIMEOUT) is None:
                return True
        except regex.error:
            logger.debug(f"Ignoring pattern {pattern!r}, not a Python regular expression")
        except TimeoutError:
            logger.warning(f"Pattern {pattern!r} took too long to match, field not checked")

    minlength = _integer(field.get('minlength'))
    if minlength is not None and len(value) < minlength:
        return True
    maxlength = _integer(field.get('maxlength'))
    if maxlength is not None and len(value) > maxlength:
        return True

    if kind == 'email':
        return EMAIL_PATTERN.match(value) is None
    if kind == 'url':
        parsed = urlparse(value)
        return not (parsed.scheme and parsed.netloc)
    if kind in RANGE_TYPES:
        number = _number(value)
        if number is None:
            return True
        minimum = _number(field.get('min'))
        maximum = _number(field.get('max'))
        if minimum is not None and number < minimum:
            return True
        if maximum is not None and number > maximum:
            return True
    return False


def has_constraints(field: Tag) -> bool:
    if any(field.has_attr(name) for name in ('required', 'pattern', 'minlength', 'maxlength')):
        return True
    kind = field_type(field)
    if kind in ('email', 'url'):
        return True
    return kind in RANGE_TYPES and (field.has_attr('min') or field.has_attr('max'))


class AccessibleForm(Category):
    """Marks autocomplete, range, required and invalid fields."""

    def _form_of(self, field: Tag) -> Optional[Tag]:
        owner = field.get('form')
        if owner:
            form = self.soup.find('form', id=owner)
            if form is not None:
                return form
        return field.find_parent('form')

    def mark_all_autocomplete_fields(self) -> None:
        for field in self.select('input, textarea'):
            if field.get('aria-autocomplete'):
                continue
            if field.name == 'input' and field.get('type', '').strip().lower() not in AUTOCOMPLETE_TYPES:
                continue
            value = self._autocomplete(field)
            if value:
                field['aria-autocomplete'] = value

    def _autocomplete(self, field: Tag) -> Optional[str]:
        autocomplete = field.get('autocomplete', '').strip().lower()
        if not autocomplete:
            form = self._form_of(field)
            if form is not None:
                autocomplete = form.get('autocomplete', '').strip().lower()
        has_list = bool(field.get('list')) and self.soup.find('datalist', id=field['list']) is not None

        if autocomplete == 'off':
            return 'list' if has_list else 'none'
        if autocomplete or has_list:
            return 'list'
        return None

    def mark_all_range_fields(self) -> None:
        for field in self.select('input'):
            if field_type(field) not in RANGE_TYPES:
                continue
            for attribute, aria in (('min', 'aria-valuemin'), ('max', 'aria-valuemax'),
                                    ('value', 'aria-valuenow')):
                if field.get(attribute) and not field.get(aria):
                    field[aria] = field[attribute]

    def mark_all_required_fields(self) -> None:
        for field in self.select(FIELD_SELECTOR):
            if field.has_attr('required'):
                field['aria-required'] = 'true'

    def mark_all_invalid_fields(self) -> None:
        fields = [field for field in self.select(FIELD_SELECTOR) if has_constraints(field)]
        if not fields:
            return
        for field in fields:
            field[VALIDATE_ATTRIBUTE] = 'true'
            if is_invalid(field):
                field['aria-invalid'] = 'true'
        self.ensure_script('validation', load_resource('validation.js'))
