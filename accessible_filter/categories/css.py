"""
CSS-speech category: honor the speak and speak-as properties.

Browsers ignore speak / speak-as, so the declarations found in the page's
stylesheets are turned into markup screen readers understand:

- speak: none                       -> aria-hidden="true"
- speak-as: spell-out               -> characters read one by one
- speak-as: digits                  -> numbers read digit by digit
- speak-as: literal-punctuation     -> punctuation read by name
- speak-as: no-punctuation          -> punctuation not read

Text affected by speak-as is split in a visual copy hidden from assistive
technology and a spoken copy flagged as generated.
"""

import logging
import string
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import tinycss2
from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from soupsieve import SelectorSyntaxError

from .base import GENERATED_ATTRIBUTE, Category, attribute_list, is_valid_element


logger = logging.getLogger(__name__)

SPEAK_PROPERTIES = ('speak', 'speak-as')
SPEECH_MEDIA = ('all', 'speech', 'aural')
VISUAL_ATTRIBUTE = 'data-a11y-speak'
PUNCTUATION = frozenset(string.punctuation + '¡¿«»…–—')


@dataclass
class StyleRule:
    """One qualified rule: selector and lower-cased declarations."""
    selector: str
    declarations: Dict[str, str]


class StyleSheetModel:
    """
    Style rules reachable from a document.

    Embedded <style> elements and linked stylesheets are read in document
    order; linked URLs are resolved against base_url and fetched through
    loader, which is optional. Inline style attributes are kept apart since
    they win over every stylesheet rule.
    """

    def __init__(self, soup: BeautifulSoup, base_url: Optional[str] = None,
                 loader: Optional[Callable[[str], str]] = None):
        self.soup = soup
        self.base_url = base_url or ''
        self.loader = loader
        self.rules: List[StyleRule] = []

        for element in soup.find_all(['style', 'link']):
            if element.name == 'style':
                if element.get('type', 'text/css').lower() in ('', 'text/css'):
                    self.add_stylesheet(element.get_text())
            elif 'stylesheet' in [rel.lower() for rel in attribute_list(element, 'rel')]:
                self._add_linked(element.get('href'))

    def _add_linked(self, href: Optional[str]) -> None:
        if not href:
            return
        url = urljoin(self.base_url, href)
        if self.loader is None:
            logger.debug(f"No stylesheet loader, skipping {url}")
            return
        try:
            css = self.loader(url)
        except Exception as e:
            logger.warning(f"Could not load stylesheet {url}: {e}")
            return
        self.add_stylesheet(css)

    def add_stylesheet(self, css: str) -> None:
        """Parse css and append its qualified rules."""
        for rule in tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True):
            if rule.type == 'qualified-rule':
                declarations = parse_declarations(rule.content)
                if declarations:
                    selector = tinycss2.serialize(rule.prelude).strip()
                    self.rules.append(StyleRule(selector, declarations))
            elif rule.type == 'at-rule' and rule.lower_at_keyword == 'media' and rule.content:
                media = tinycss2.serialize(rule.prelude).lower()
                if any(medium in media for medium in SPEECH_MEDIA):
                    self.add_stylesheet(tinycss2.serialize(rule.content))
            elif rule.type == 'error':
                logger.debug(f"Skipping invalid CSS: {rule.message}")

    def computed(self, properties: Tuple[str, ...]) -> List[Tuple[Tag, Dict[str, str]]]:
        """
        Values of properties per element.

        Rules apply in document order, inline styles last. Specificity is not
        taken into account.

        Returns:
            (element, {property: value}) pairs in first-match order
        """
        found: Dict[int, Tuple[Tag, Dict[str, str]]] = {}

        def assign(element: Tag, declarations: Dict[str, str]) -> None:
            values = {name: declarations[name] for name in properties if name in declarations}
            if not values:
                return
            entry = found.setdefault(id(element), (element, {}))
            entry[1].update(values)

        for rule in self.rules:
            if not any(name in rule.declarations for name in properties):
                continue
            try:
                matches = self.soup.select(rule.selector)
            except (SelectorSyntaxError, NotImplementedError) as e:
                logger.debug(f"Skipping selector {rule.selector!r}: {e}")
                continue
            for element in matches:
                assign(element, rule.declarations)

        for element in self.soup.find_all(style=True):
            assign(element, parse_declarations(element['style']))

        return list(found.values())


def parse_declarations(content) -> Dict[str, str]:
    """Declarations of a rule body or a style attribute."""
    declarations = {}
    if not content:
        return declarations
    for declaration in tinycss2.parse_declaration_list(content, skip_comments=True,
                                                       skip_whitespace=True):
        if declaration.type == 'declaration':
            value = tinycss2.serialize(declaration.value).strip().lower()
            declarations[declaration.lower_name] = value
    return declarations


class AccessibleCSS(Category):
    """Provides speak and speak-as behavior through markup."""

    def __init__(self, soup, config, context=None):
        super().__init__(soup, config, context)
        self.stylesheets = StyleSheetModel(
            soup,
            base_url=getattr(context, 'base_url', None),
            loader=getattr(context, 'stylesheet_loader', None),
        )

    def provide_all_speak_properties(self) -> None:
        speak_as: Dict[int, List[str]] = {}
        for element, values in self.stylesheets.computed(SPEAK_PROPERTIES):
            if not is_valid_element(element):
                continue
            if values.get('speak') == 'none':
                element['aria-hidden'] = 'true'
            modes = values.get('speak-as', '').split()
            if modes and modes != ['normal']:
                speak_as[id(element)] = modes

        if not speak_as:
            return

        for text in list(self.soup.find_all(string=True)):
            if isinstance(text, Comment) or not text.strip():
                continue
            modes = self._modes_for(text, speak_as)
            if modes:
                self._speak_text(text, modes)

    @staticmethod
    def _modes_for(text: NavigableString, speak_as: Dict[int, List[str]]) -> Optional[List[str]]:
        for parent in text.parents:
            if parent.name in ('script', 'style', 'template', 'title', 'head'):
                return None
            if parent.has_attr(VISUAL_ATTRIBUTE) or parent.has_attr(GENERATED_ATTRIBUTE):
                return None
            if id(parent) in speak_as:
                return speak_as[id(parent)] if is_valid_element(parent) else None
        return None

    def _speak_text(self, text: NavigableString, modes: List[str]) -> None:
        original = str(text)
        spoken = self.spoken_form(original, modes)
        if spoken == ' '.join(original.split()):
            return

        visual = self.soup.new_tag('span', attrs={'aria-hidden': 'true'})
        visual[VISUAL_ATTRIBUTE] = 'visual'
        visual.string = original
        text.replace_with(visual)
        visual.insert_after(self.new_generated('span', 'speak-as', spoken))

    def spoken_form(self, text: str, modes: List[str]) -> str:
        """Rewrite text the way a speech engine honoring modes would read it."""
        pieces = []
        word = ''
        for char in text:
            if char.isspace():
                if word:
                    pieces.append(word)
                    word = ''
                continue
            if char in PUNCTUATION:
                if 'literal-punctuation' in modes:
                    if word:
                        pieces.append(word)
                        word = ''
                    pieces.append(self.rules.get_text(f'punctuation-{char}') or char)
                    continue
                if 'no-punctuation' in modes:
                    continue
            if 'spell-out' in modes or (char.isdigit() and 'digits' in modes):
                if word:
                    pieces.append(word)
                    word = ''
                pieces.append(char)
                continue
            word += char
        if word:
            pieces.append(word)
        return ' '.join(pieces)
