"""
Tests for the CSS-speech category.
"""

from unittest.mock import Mock

import pytest
from accessible_filter.categories import AccessibleCSS, StyleSheetModel
from accessible_filter.categories.css import parse_declarations
from accessible_filter.pipeline import RequestContext


def spoken(soup):
    return [span.get_text() for span in soup.find_all(attrs={'data-a11y-generated': 'speak-as'})]


class TestStyleSheetModel:
    """Tests for StyleSheetModel."""

    def test_parse_declarations(self):
        """Test declaration parsing and normalization."""
        assert parse_declarations('Speak: None; color: red') == {'speak': 'none', 'color': 'red'}
        assert parse_declarations('') == {}

    def test_embedded_rules(self, parse):
        """Test rules from style elements."""
        soup = parse('<style>p { speak: none } .x { color: red }</style><p>Hi</p>')
        model = StyleSheetModel(soup)

        assert [rule.selector for rule in model.rules] == ['p', '.x']
        (element, values), = model.computed(('speak',))
        assert element is soup.p
        assert values == {'speak': 'none'}

    def test_inline_style_wins(self, parse):
        """Test inline declarations override stylesheet rules."""
        soup = parse('<style>p { speak-as: digits }</style>'
                     '<p style="speak-as: spell-out">Hi</p>')
        (element, values), = StyleSheetModel(soup).computed(('speak-as',))

        assert values['speak-as'] == 'spell-out'

    def test_media_rules(self, parse):
        """Test only media reaching speech engines are read."""
        soup = parse('<style>'
                     '@media speech { .a { speak: none } }'
                     '@media print { .b { speak: none } }'
                     '</style>')
        model = StyleSheetModel(soup)

        assert [rule.selector for rule in model.rules] == ['.a']

    def test_unsupported_selector_skipped(self, parse):
        """Test rules with selectors the engine rejects are skipped."""
        soup = parse('<style>p:unknown-pseudo { speak: none } p { speak: normal }</style><p>Hi</p>')
        (element, values), = StyleSheetModel(soup).computed(('speak',))

        assert values == {'speak': 'normal'}

    def test_linked_stylesheet(self, parse):
        """Test linked stylesheets are resolved against the base URL."""
        loader = Mock(return_value='.x { speak: none }')
        soup = parse('<link rel="stylesheet" href="s.css"><p class="x">Hi</p>')
        model = StyleSheetModel(soup, 'http://example.com/dir/page.html', loader)

        loader.assert_called_once_with('http://example.com/dir/s.css')
        assert model.rules[0].selector == '.x'

    def test_linked_stylesheet_without_loader(self, parse):
        """Test linked stylesheets are skipped when nothing can fetch them."""
        soup = parse('<link rel="stylesheet" href="s.css">')
        assert StyleSheetModel(soup, 'http://example.com/').rules == []

    def test_loader_failure(self, parse):
        """Test a failing loader does not stop the model."""
        loader = Mock(side_effect=OSError('unreachable'))
        soup = parse('<link rel="stylesheet" href="s.css"><style>p { speak: none }</style>')
        model = StyleSheetModel(soup, 'http://example.com/', loader)

        assert [rule.selector for rule in model.rules] == ['p']


class TestSpeakProperties:
    """Tests for provide_all_speak_properties."""

    def run(self, soup, config, context=None):
        AccessibleCSS(soup, config, context).provide_all_speak_properties()

    def test_speak_none(self, parse, config):
        """Test speak: none hides the element from assistive technology."""
        soup = parse('<style>.secret { speak: none }</style><p class="secret">x</p><p>y</p>')
        self.run(soup, config)

        assert soup.find('p', class_='secret')['aria-hidden'] == 'true'
        assert not soup.find_all('p')[1].has_attr('aria-hidden')

    def test_spell_out(self, parse, config):
        """Test spelled out text is split in visual and spoken copies."""
        soup = parse('<span style="speak-as: spell-out">abc</span>')
        self.run(soup, config)

        visual, speech = soup.span.find_all('span', recursive=False)
        assert visual['aria-hidden'] == 'true'
        assert visual.get_text() == 'abc'
        assert speech['data-a11y-generated'] == 'speak-as'
        assert speech.get_text() == 'a b c'

    def test_digits(self, parse, config):
        """Test numbers read digit by digit."""
        soup = parse('<p style="speak-as: digits">Call 123</p>')
        self.run(soup, config)

        assert spoken(soup) == ['Call 1 2 3']

    def test_literal_punctuation(self, parse, config):
        """Test punctuation read by name."""
        soup = parse('<p style="speak-as: literal-punctuation">Hi!</p>')
        self.run(soup, config)

        assert spoken(soup) == ['Hi exclamation mark']

    def test_no_punctuation(self, parse, config):
        """Test punctuation dropped."""
        soup = parse('<p style="speak-as: no-punctuation">Hi, you.</p>')
        self.run(soup, config)

        assert spoken(soup) == ['Hi you']

    def test_inherited_by_descendants(self, parse, config):
        """Test text in child elements follows the nearest declaration."""
        soup = parse('<div style="speak-as: digits"><b>42</b></div>')
        self.run(soup, config)

        assert spoken(soup) == ['4 2']
        assert soup.b.find('span')['aria-hidden'] == 'true'

    def test_unchanged_text_left_alone(self, parse, config):
        """Test text the mode does not change keeps a single copy."""
        markup = '<p style="speak-as: digits">no numbers</p>'
        soup = parse(markup)
        self.run(soup, config)

        assert str(soup) == markup

    def test_localized_punctuation(self, parse, only):
        """Test punctuation names come from the rule set."""
        soup = parse('<p style="speak-as: literal-punctuation">Oi?</p>')
        self.run(soup, only(locale='pt_BR'))

        assert spoken(soup) == ['Oi ponto de interrogação']

    def test_linked_stylesheet_through_context(self, parse, config):
        """Test the request context provides the stylesheet loader."""
        context = RequestContext(
            base_url='http://example.com/',
            stylesheet_loader=Mock(return_value='p { speak: none }'),
        )
        soup = parse('<link rel="stylesheet" href="/s.css"><p>Hi</p>')
        self.run(soup, config, context)

        assert soup.p['aria-hidden'] == 'true'

    @pytest.mark.parametrize('modes,expected', [
        (['spell-out'], 'a 1 .'),
        (['digits'], 'a 1 .'),
        (['spell-out', 'no-punctuation'], 'a 1'),
        (['spell-out', 'literal-punctuation'], 'a 1 period'),
    ])
    def test_spoken_form(self, parse, config, modes, expected):
        """Test mode combinations on a short word."""
        category = AccessibleCSS(parse(''), config)
        assert category.spoken_form('a1.', modes) == expected
