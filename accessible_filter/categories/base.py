"""
Shared building blocks of the transformation categories.

Every category mutates one BeautifulSoup document in place. Elements marked
with data-a11y-ignore (and everything inside them) are left alone, and the
elements a category creates carry data-a11y-generated so later categories
and later runs recognize them.
"""

from functools import lru_cache
from importlib import resources
from typing import Iterator, List, Optional, Set

from bs4 import BeautifulSoup, Comment, Tag

from ..config import PipelineConfiguration, RuleSet


IGNORE_ATTRIBUTE = 'data-a11y-ignore'
GENERATED_ATTRIBUTE = 'data-a11y-generated'
APPLIED_ATTRIBUTE = 'data-a11y-applied'

ID_PREFIX = 'a11y-'

VOID_ELEMENTS = frozenset([
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input', 'link',
    'meta', 'param', 'source', 'track', 'wbr',
])

# Elements whose content model does not allow a text annotation inside
CLOSED_ELEMENTS = VOID_ELEMENTS | frozenset([
    'audio', 'canvas', 'colgroup', 'dl', 'head', 'html', 'iframe', 'object',
    'ol', 'optgroup', 'option', 'script', 'select', 'style', 'table', 'tbody',
    'template', 'textarea', 'tfoot', 'thead', 'title', 'tr', 'ul', 'video',
])

# Containers that must not receive a sibling annotation either
STRUCTURAL_PARENTS = frozenset([
    'colgroup', 'datalist', 'dl', 'head', 'ol', 'optgroup', 'select',
    'table', 'tbody', 'tfoot', 'thead', 'tr', 'ul',
])

NATIVELY_FOCUSABLE = frozenset(['a', 'area', 'button', 'input', 'select', 'textarea'])


class IdGenerator:
    """Hands out ids that are unique within one document."""

    def __init__(self, soup: BeautifulSoup):
        self.used: Set[str] = {tag['id'] for tag in soup.find_all(id=True)}
        self.counter = 0

    def generate(self) -> str:
        while True:
            self.counter += 1
            candidate = f'{ID_PREFIX}{self.counter}'
            if candidate not in self.used:
                self.used.add(candidate)
                return candidate

    def ensure(self, element: Tag) -> str:
        """Return the id of element, assigning a new one when it has none."""
        if not element.get('id'):
            element['id'] = self.generate()
        return element['id']


@lru_cache(maxsize=None)
def load_resource(name: str) -> str:
    """Text of a file bundled under accessible_filter/resources."""
    return (resources.files('accessible_filter') / 'resources' / name).read_text(encoding='utf-8')


def is_valid_element(element: Tag) -> bool:
    """False for ignored or generated elements and their descendants."""
    for attribute in (IGNORE_ATTRIBUTE, GENERATED_ATTRIBUTE):
        if element.has_attr(attribute):
            return False
        if element.find_parent(attrs={attribute: True}) is not None:
            return False
    return True


def visible_text(element: Tag) -> str:
    """Text content of element, skipping comments, scripts and annotations."""
    parts = []
    for string in element.find_all(string=True):
        if isinstance(string, Comment):
            continue
        parent = string.parent
        if parent is not None and parent.name in ('script', 'style', 'template'):
            continue
        if string.find_parent(attrs={GENERATED_ATTRIBUTE: True}) is not None:
            continue
        parts.append(str(string))
    return ' '.join(''.join(parts).split())


class Category:
    """
    Base class of the six transformation categories.

    Args:
        soup: Parsed document, mutated in place
        config: Configuration of the current run
        context: Request data of the current run
    """

    def __init__(self, soup: BeautifulSoup, config: PipelineConfiguration, context=None):
        self.soup = soup
        self.config = config
        self.context = context
        self.rules: RuleSet = config.rules
        self.ids = IdGenerator(soup)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def select(self, selector: str) -> List[Tag]:
        """Elements matching selector that may be transformed."""
        return [element for element in self.soup.select(selector) if is_valid_element(element)]

    def iter_elements(self) -> Iterator[Tag]:
        """All transformable elements in document order."""
        for element in self.soup.find_all(True):
            if is_valid_element(element):
                yield element

    @property
    def body(self) -> Optional[Tag]:
        return self.soup.find('body')

    # -------------------------------------------------------------------------
    # Markers
    # -------------------------------------------------------------------------

    @staticmethod
    def was_applied(element: Tag, kind: str) -> bool:
        return kind in element.get(APPLIED_ATTRIBUTE, '').split()

    @staticmethod
    def mark_applied(element: Tag, kind: str) -> None:
        kinds = element.get(APPLIED_ATTRIBUTE, '').split()
        if kind not in kinds:
            kinds.append(kind)
        element[APPLIED_ATTRIBUTE] = ' '.join(kinds)

    def new_generated(self, name: str, kind: str, text: Optional[str] = None, **attrs) -> Tag:
        """Create an element flagged as generated by the pipeline."""
        tag = self.soup.new_tag(name, attrs=attrs)
        tag[GENERATED_ATTRIBUTE] = kind
        if text is not None:
            tag.string = text
        return tag

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------

    def insert_annotation(self, element: Tag, kind: str, text: str,
                          before: bool = True) -> Optional[Tag]:
        """
        Attach a visible text annotation to element.

        The annotation goes inside the element when its content model allows
        text, otherwise next to it. Returns None when neither is possible.
        """
        if not text:
            return None
        span = self.new_generated('span', kind, text)
        if not self.attach(element, span, before=before):
            return None
        return span

    @staticmethod
    def attach(element: Tag, node: Tag, before: bool = True, inside: bool = True) -> bool:
        """Put node inside element when allowed, else beside it."""
        if inside and element.name not in CLOSED_ELEMENTS:
            if before:
                element.insert(0, node)
            else:
                element.append(node)
            return True

        parent = element.parent
        if parent is None or parent.name in STRUCTURAL_PARENTS or element.name in ('html', 'head'):
            return False
        if before:
            element.insert_before(node)
        else:
            element.insert_after(node)
        return True

    def prepend_to_body(self, element: Tag) -> bool:
        body = self.body
        if body is None:
            return False
        body.insert(0, element)
        return True

    def ensure_script(self, name: str, source: str) -> Optional[Tag]:
        """Append a bundled script to the body once per document."""
        existing = self.soup.find('script', attrs={GENERATED_ATTRIBUTE: name})
        if existing is not None:
            return existing
        body = self.body
        if body is None:
            return None
        script = self.new_generated('script', name, source)
        body.append(script)
        return script


def attribute_list(element: Tag, name: str) -> List[str]:
    """Whitespace separated attribute value as a list, whatever bs4 stored."""
    value = element.get(name)
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if item]
    return value.split()
