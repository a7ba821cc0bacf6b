"""
Display category: make invisible semantics visible as text.

Each operation adds short <span data-a11y-generated="..."> annotations that
screen readers announce with the element: alternative texts, cell headers,
drag and drop cues, languages, link behaviors, roles, titles, keyboard
shortcuts and WAI-ARIA states. The hide-changes stylesheet keeps them out of
the visual rendering.
"""

from typing import List, Optional

from bs4 import Tag

from .base import Category, attribute_list, visible_text


DRAG_SELECTOR = '[ondrag], [ondragstart], [ondragend], [draggable="true"], [aria-grabbed]'
DROP_SELECTOR = '[ondrop], [ondragenter], [ondragleave], [ondragover], [dropzone], [aria-dropeffect]'

# Elements never annotated: document scaffolding and non-rendered content
HIDDEN_ELEMENTS = frozenset([
    'base', 'head', 'html', 'link', 'meta', 'noscript', 'script',
    'style', 'template', 'title',
])

INPUT_ROLES = {
    'button': 'button',
    'checkbox': 'checkbox',
    'email': 'textbox',
    'image': 'button',
    'number': 'spinbutton',
    'radio': 'radio',
    'range': 'slider',
    'reset': 'button',
    'search': 'searchbox',
    'submit': 'button',
    'tel': 'textbox',
    'text': 'textbox',
    'url': 'textbox',
}

TAG_ROLES = {
    'article': 'article',
    'aside': 'complementary',
    'button': 'button',
    'datalist': 'listbox',
    'dd': 'definition',
    'details': 'group',
    'dialog': 'dialog',
    'dt': 'term',
    'fieldset': 'group',
    'figure': 'figure',
    'footer': 'contentinfo',
    'form': 'form',
    'h1': 'heading',
    'h2': 'heading',
    'h3': 'heading',
    'h4': 'heading',
    'h5': 'heading',
    'h6': 'heading',
    'header': 'banner',
    'hr': 'separator',
    'li': 'listitem',
    'main': 'main',
    'math': 'math',
    'menu': 'list',
    'nav': 'navigation',
    'ol': 'list',
    'output': 'status',
    'progress': 'progressbar',
    'select': 'listbox',
    'table': 'table',
    'td': 'cell',
    'textarea': 'textbox',
    'th': 'columnheader',
    'ul': 'list',
}

ARIA_STATES = (
    'aria-autocomplete',
    'aria-busy',
    'aria-checked',
    'aria-dropeffect',
    'aria-expanded',
    'aria-grabbed',
    'aria-haspopup',
    'aria-invalid',
    'aria-level',
    'aria-multiline',
    'aria-multiselectable',
    'aria-orientation',
    'aria-pressed',
    'aria-readonly',
    'aria-required',
    'aria-selected',
    'aria-sort',
    'aria-valuemax',
    'aria-valuemin',
)

# States announced with their value rather than a fixed text per value
VALUE_STATES = frozenset(['aria-level', 'aria-valuemax', 'aria-valuemin'])


def implicit_role(element: Tag) -> Optional[str]:
    """ARIA role an element has without a role attribute."""
    name = element.name
    if name in ('a', 'area'):
        return 'link' if element.has_attr('href') else None
    if name == 'img':
        return 'presentation' if element.get('alt') == '' else 'img'
    if name == 'input':
        if element.has_attr('list'):
            return 'combobox'
        return INPUT_ROLES.get(element.get('type', 'text').lower())
    if name == 'section':
        if element.get('aria-label') or element.get('aria-labelledby'):
            return 'region'
        return None
    if name == 'th' and element.get('scope') == 'row':
        return 'rowheader'
    return TAG_ROLES.get(name)


def shortcut_prefix(user_agent: Optional[str]) -> str:
    """Keys a browser combines with an accesskey."""
    agent = (user_agent or '').lower()
    opera = 'opera' in agent or 'opr/' in agent
    mac = 'mac' in agent
    firefox = 'firefox' in agent
    konqueror = 'konqueror' in agent
    if opera:
        return 'SHIFT + ESC'
    if konqueror:
        return 'CTRL'
    if mac:
        return 'CTRL + ALT'
    if firefox:
        return 'ALT + SHIFT'
    return 'ALT'


class AccessibleDisplay(Category):
    """Displays element semantics as text for screen reader users."""

    def _displayable(self, element: Tag) -> bool:
        if element.name in HIDDEN_ELEMENTS:
            return False
        return element.find_parent('head') is None

    def _annotate(self, element: Tag, kind: str, text: str, before: bool = True) -> None:
        if self.was_applied(element, kind) or not self._displayable(element):
            return
        if self.insert_annotation(element, kind, text, before=before) is not None:
            self.mark_applied(element, kind)

    def display_all_alternative_text_images(self) -> None:
        for image in self.select('img, input[type="image"]'):
            if image.get('alt') == '' and not image.get('aria-label'):
                continue
            name = image.get('alt') or image.get('aria-label') or image.get('title')
            if not name:
                name = self.rules.get_text('alternative-text-missing')
            text = self.rules.get_text('alternative-text', text=name)
            self._annotate(image, 'alternative-text', text, before=False)

    def display_all_cell_headers(self) -> None:
        for cell in self.select('td[headers], th[headers]'):
            names = []
            for header_id in attribute_list(cell, 'headers'):
                header = self.soup.find(id=header_id)
                if header is not None and header is not cell:
                    name = visible_text(header)
                    if name:
                        names.append(name)
            if names:
                text = self.rules.get_text('cell-headers', headers=', '.join(names))
                self._annotate(cell, 'cell-headers', text)

    def display_all_drags_and_drops(self) -> None:
        for element in self.select(DRAG_SELECTOR):
            if not element.get('aria-grabbed'):
                element['aria-grabbed'] = 'false'
            self._annotate(element, 'draggable', self.rules.get_text('draggable'), before=False)

        for element in self.select(DROP_SELECTOR):
            if element.get('aria-dropeffect') == 'none':
                continue
            if not element.get('aria-dropeffect'):
                element['aria-dropeffect'] = 'move'
            self._annotate(element, 'droppable', self.rules.get_text('droppable'), before=False)

    def display_all_languages(self) -> None:
        for element in self.select('[lang]'):
            code = element['lang'].strip()
            if not code:
                continue
            target = self.body if element.name == 'html' else element
            if target is None:
                continue
            text = self.rules.get_text('language', language=self._language_name(code))
            self._annotate(target, 'language', text)

    def _language_name(self, code: str) -> str:
        code = code.lower()
        return (self.rules.get_text(f'language-{code}')
                or self.rules.get_text(f'language-{code.split("-")[0]}')
                or code)

    def display_all_links_attributes(self) -> None:
        for link in self.select('a[href]'):
            parts = []
            if link.get('target') == '_blank':
                parts.append(self.rules.get_text('link-new-window'))
            if link.has_attr('download'):
                parts.append(self.rules.get_text('link-download'))
            parts = [part for part in parts if part]
            if parts:
                self._annotate(link, 'link-attributes', ' '.join(parts), before=False)

    def display_all_roles(self) -> None:
        for element in list(self.iter_elements()):
            roles = attribute_list(element, 'role')
            role = roles[0].lower() if roles else implicit_role(element)
            if not role or role in ('presentation', 'none'):
                continue
            name = self.rules.get_text(f'role-{role}') or role
            self._annotate(element, 'role', self.rules.get_text('role', role=name))

    def display_all_titles(self) -> None:
        for element in self.select('[title]'):
            title = ' '.join(element['title'].split())
            if not title or title == visible_text(element):
                continue
            self._annotate(element, 'title', self.rules.get_text('title', title=title), before=False)

    def display_all_shortcuts(self) -> None:
        prefix = shortcut_prefix(getattr(self.context, 'user_agent', None))
        for element in self.select('[accesskey]'):
            keys = attribute_list(element, 'accesskey')
            if not keys:
                continue
            shortcut = f'{prefix} + {keys[0].upper()}'
            self._annotate(element, 'shortcut', self.rules.get_text('shortcut', shortcut=shortcut),
                           before=False)

    def display_all_wai_aria_states(self) -> None:
        for element in list(self.iter_elements()):
            parts = self._state_texts(element)
            if parts:
                self._annotate(element, 'aria-states', ' '.join(parts), before=False)

    def _state_texts(self, element: Tag) -> List[str]:
        parts = []
        for attribute in ARIA_STATES:
            value = element.get(attribute)
            if value is None:
                continue
            value = value.strip().lower()
            if not value:
                continue
            if attribute in VALUE_STATES:
                text = self.rules.get_text(attribute, value=value)
            else:
                text = self.rules.get_text(f'{attribute}-{value}')
            if text:
                parts.append(text)
        return parts
