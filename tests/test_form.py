"""
Tests for the Form category.
"""

import time
from unittest.mock import patch

import pytest
from accessible_filter.categories import AccessibleForm
from accessible_filter.categories.form import field_value, has_constraints, is_invalid


class TestValidation:
    """Tests for the constraint helpers."""

    @pytest.mark.parametrize('markup,invalid', [
        ('<input type="email" value="nope">', True),
        ('<input type="email" value="a@b.c">', False),
        ('<input type="url" value="example">', True),
        ('<input type="url" value="https://example.com/">', False),
        ('<input pattern="[0-9]+" value="12a">', True),
        ('<input pattern="[0-9]+" value="12">', False),
        ('<input type="number" min="1" max="5" value="9">', True),
        ('<input type="number" min="1" max="5" value="3">', False),
        ('<input type="number" value="abc">', True),
        ('<input minlength="3" value="ab">', True),
        ('<input maxlength="3" value="abcd">', True),
        ('<input required>', False),
        ('<input type="email">', False),
    ])
    def test_is_invalid(self, parse, markup, invalid):
        """Test current values against field constraints."""
        assert is_invalid(parse(markup).input) is invalid

    def test_backtracking_pattern_bounded(self, parse):
        """Test a catastrophic pattern cannot stall the check."""
        field = parse('<input pattern="(a+)+b" value="' + 'a' * 40 + '">').input

        started = time.monotonic()
        is_invalid(field)
        assert time.monotonic() - started < 1

    def test_pattern_timeout_not_invalid(self, parse, caplog):
        """Test a pattern that runs out of time leaves the field unmarked."""
        field = parse('<input pattern="[a-z]+" value="abc">').input

        with patch('accessible_filter.categories.form.regex.fullmatch',
                   side_effect=TimeoutError('regex timed out')):
            assert is_invalid(field) is False
        assert 'took too long' in caplog.text

    def test_unsupported_pattern_ignored(self, parse):
        """Test a pattern that does not compile is skipped."""
        assert is_invalid(parse('<input pattern="(" value="x">').input) is False

    def test_field_value(self, parse):
        """Test values of the different field kinds."""
        soup = parse('<textarea>notes</textarea>'
                     '<select><option value="a">A</option><option value="b" selected>B</option></select>'
                     '<input value="x">')
        assert field_value(soup.textarea) == 'notes'
        assert field_value(soup.find('select')) == 'b'
        assert field_value(soup.input) == 'x'

    def test_has_constraints(self, parse):
        """Test which fields can be validated."""
        assert has_constraints(parse('<input required>').input)
        assert has_constraints(parse('<input type="email">').input)
        assert has_constraints(parse('<input type="range" max="3">').input)
        assert not has_constraints(parse('<input type="text">').input)


class TestFormOperations:
    """Tests for the AccessibleForm operations."""

    def test_required(self, parse, config):
        """Test required fields are marked."""
        soup = parse('<input required><select required></select><textarea></textarea>')
        AccessibleForm(soup, config).mark_all_required_fields()

        assert soup.input['aria-required'] == 'true'
        assert soup.find('select')['aria-required'] == 'true'
        assert not soup.textarea.has_attr('aria-required')

    def test_range(self, parse, config):
        """Test range limits and value are exposed."""
        soup = parse('<input type="range" min="0" max="10" value="5"><input type="text" value="5">')
        AccessibleForm(soup, config).mark_all_range_fields()

        slider, text = soup.find_all('input')
        assert slider['aria-valuemin'] == '0'
        assert slider['aria-valuemax'] == '10'
        assert slider['aria-valuenow'] == '5'
        assert not text.has_attr('aria-valuenow')

    def test_autocomplete(self, parse, config):
        """Test autocomplete behavior inherited from the form or set on the field."""
        soup = parse(
            '<form autocomplete="on">'
            '<input id="a" type="text">'
            '<input id="b" type="text" autocomplete="off">'
            '<input id="c" type="checkbox">'
            '</form>'
            '<input id="d" type="text" list="colors"><datalist id="colors"></datalist>'
            '<input id="e" type="text">'
        )
        AccessibleForm(soup, config).mark_all_autocomplete_fields()

        assert soup.find(id='a')['aria-autocomplete'] == 'list'
        assert soup.find(id='b')['aria-autocomplete'] == 'none'
        assert not soup.find(id='c').has_attr('aria-autocomplete')
        assert soup.find(id='d')['aria-autocomplete'] == 'list'
        assert not soup.find(id='e').has_attr('aria-autocomplete')

    def test_invalid(self, parse, config):
        """Test invalid fields are marked and the validation script added."""
        soup = parse('<body><form>'
                     '<input id="a" type="email" value="nope">'
                     '<input id="b" type="email" value="a@b.c">'
                     '<input id="c" required>'
                     '<input id="d" type="text">'
                     '</form></body>')
        AccessibleForm(soup, config).mark_all_invalid_fields()

        assert soup.find(id='a')['aria-invalid'] == 'true'
        assert not soup.find(id='b').has_attr('aria-invalid')
        assert not soup.find(id='c').has_attr('aria-invalid')
        assert soup.find(id='c')['data-a11y-validate'] == 'true'
        assert not soup.find(id='d').has_attr('data-a11y-validate')

        scripts = soup.find_all('script', attrs={'data-a11y-generated': 'validation'})
        assert len(scripts) == 1
        assert 'checkValidity' in scripts[0].string

    def test_no_constrained_fields(self, parse, config):
        """Test no script is added when nothing can be validated."""
        soup = parse('<body><input type="text"></body>')
        AccessibleForm(soup, config).mark_all_invalid_fields()

        assert soup.find('script') is None
