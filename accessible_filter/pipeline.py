"""
Accessibility Pipeline

Rewrites one HTML document to be more accessible.

The document is parsed once and every enabled operation mutates the same
tree, category by category, in a fixed order:

1. Association  - data cells with header cells, labels with fields
2. CSS          - speak / speak-as properties
3. Display      - alternative texts, cell headers, drag and drop cues,
                  languages, link attributes, roles, titles, shortcuts,
                  WAI-ARIA states
4. Event        - keyboard access to click, drag and drop, hover handlers
5. Form         - autocomplete, range, required, invalid fields
6. Navigation   - long descriptions, headings outline, skip links

Display reads the relations Association writes, so the order is part of the
contract. After the categories, the hide-changes stylesheet is injected when
enabled.

A run is all or nothing: if parsing, any operation or serialization raises,
the original markup is returned untouched and the failure is logged.

Usage:
    pipeline = AccessibilityPipeline()
    html = pipeline.run(html, PipelineConfiguration.from_settings({}),
                        RequestContext(base_url='https://example.com/'))
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, Type

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction, Tag

from .categories import (
    AccessibleAssociation,
    AccessibleCSS,
    AccessibleDisplay,
    AccessibleEvent,
    AccessibleForm,
    AccessibleNavigation,
)
from .categories.base import Category, load_resource
from .config import (
    ASSOCIATE_DATA_CELLS,
    ASSOCIATE_LABELS,
    DISPLAY_ALTERNATIVE_TEXT,
    DISPLAY_CELL_HEADERS,
    DISPLAY_DRAGS_DROPS,
    DISPLAY_LANGUAGES,
    DISPLAY_LINK_ATTRIBUTES,
    DISPLAY_ROLES,
    DISPLAY_SHORTCUTS,
    DISPLAY_TITLES,
    DISPLAY_WAI_ARIA,
    HIDE_CHANGES,
    MAKE_ACCESSIBLE_CLICK,
    MAKE_ACCESSIBLE_DRAG_DROP,
    MAKE_ACCESSIBLE_HOVER,
    MARK_AUTOCOMPLETE_FIELDS,
    MARK_INVALID_FIELDS,
    MARK_RANGE_FIELDS,
    MARK_REQUIRED_FIELDS,
    NAVIGATE_BY_HEADINGS,
    NAVIGATE_BY_SKIPPERS,
    NAVIGATE_TO_LONG_DESCRIPTIONS,
    PROVIDE_SPEAK_PROPERTIES,
    PipelineConfiguration,
)


logger = logging.getLogger(__name__)


HIDE_CHANGES_ID = 'accessible-filter-hide-changes'
HIDE_CHANGES_STYLESHEET = 'hide_changes.css'


# =============================================================================
# Request context
# =============================================================================

@dataclass(frozen=True)
class RequestContext:
    """Read-only request data needed by the CSS and Display categories."""
    base_url: str = ''
    user_agent: str = ''
    # Fetches a linked stylesheet by absolute URL; None skips linked CSS
    stylesheet_loader: Optional[Callable[[str], str]] = None


def _prolog_length(soup: BeautifulSoup) -> int:
    """Number of top-level nodes up to the last leading doctype or declaration."""
    length = 0
    for index, node in enumerate(soup.contents):
        if isinstance(node, (Doctype, Declaration, ProcessingInstruction)):
            length = index + 1
        elif isinstance(node, Tag) or (not isinstance(node, Comment) and node.strip()):
            break
    return length


# =============================================================================
# Dispatch table
# =============================================================================

Operation = Callable[[Category], None]
CategoryEntry = Tuple[str, Type[Category], Tuple[Tuple[str, Operation], ...]]

CATEGORIES: Tuple[CategoryEntry, ...] = (
    ('association', AccessibleAssociation, (
        (ASSOCIATE_DATA_CELLS, AccessibleAssociation.associate_all_data_cells_with_header_cells),
        (ASSOCIATE_LABELS, AccessibleAssociation.associate_all_labels_with_fields),
    )),
    ('css', AccessibleCSS, (
        (PROVIDE_SPEAK_PROPERTIES, AccessibleCSS.provide_all_speak_properties),
    )),
    ('display', AccessibleDisplay, (
        (DISPLAY_ALTERNATIVE_TEXT, AccessibleDisplay.display_all_alternative_text_images),
        (DISPLAY_CELL_HEADERS, AccessibleDisplay.display_all_cell_headers),
        (DISPLAY_DRAGS_DROPS, AccessibleDisplay.display_all_drags_and_drops),
        (DISPLAY_LANGUAGES, AccessibleDisplay.display_all_languages),
        (DISPLAY_LINK_ATTRIBUTES, AccessibleDisplay.display_all_links_attributes),
        (DISPLAY_ROLES, AccessibleDisplay.display_all_roles),
        (DISPLAY_TITLES, AccessibleDisplay.display_all_titles),
        (DISPLAY_SHORTCUTS, AccessibleDisplay.display_all_shortcuts),
        (DISPLAY_WAI_ARIA, AccessibleDisplay.display_all_wai_aria_states),
    )),
    ('event', AccessibleEvent, (
        (MAKE_ACCESSIBLE_CLICK, AccessibleEvent.make_accessible_all_click_events),
        (MAKE_ACCESSIBLE_DRAG_DROP, AccessibleEvent.make_accessible_all_drag_and_drop_events),
        (MAKE_ACCESSIBLE_HOVER, AccessibleEvent.make_accessible_all_hover_events),
    )),
    ('form', AccessibleForm, (
        (MARK_AUTOCOMPLETE_FIELDS, AccessibleForm.mark_all_autocomplete_fields),
        (MARK_RANGE_FIELDS, AccessibleForm.mark_all_range_fields),
        (MARK_REQUIRED_FIELDS, AccessibleForm.mark_all_required_fields),
        (MARK_INVALID_FIELDS, AccessibleForm.mark_all_invalid_fields),
    )),
    ('navigation', AccessibleNavigation, (
        (NAVIGATE_TO_LONG_DESCRIPTIONS, AccessibleNavigation.provide_navigation_to_all_long_descriptions),
        (NAVIGATE_BY_HEADINGS, AccessibleNavigation.provide_navigation_by_all_headings),
        (NAVIGATE_BY_SKIPPERS, AccessibleNavigation.provide_navigation_by_all_skippers),
    )),
)


# =============================================================================
# Pipeline
# =============================================================================

class AccessibilityPipeline:
    """
    Runs the enabled accessibility operations over one document.

    The pipeline keeps no per-run state, so one instance can serve
    concurrent requests.

    Args:
        categories: Ordered dispatch table of
            (name, category class, ((toggle, operation), ...)) entries
    """

    def __init__(self, categories: Sequence[CategoryEntry] = CATEGORIES):
        self.categories = tuple(categories)

    def run(self, markup: str, config: PipelineConfiguration,
            context: Optional[RequestContext] = None) -> str:
        """
        Rewrite markup to be more accessible.

        Args:
            markup: HTML document
            config: Toggles, locale and rules of this run
            context: Base URL and user agent of the request

        Returns:
            The rewritten document, or markup itself when anything failed
        """
        if context is None:
            context = RequestContext()

        try:
            soup = BeautifulSoup(markup, 'html.parser')

            for name, category_class, operations in self.categories:
                self._execute(soup, config, context, name, category_class, operations)

            if config.resolve_toggle(HIDE_CHANGES):
                self._hide_changes(soup)

            return str(soup)
        except Exception as e:
            logger.warning(f"Accessibility pipeline failed, serving original markup: {e}",
                           exc_info=True)
            return markup

    @staticmethod
    def _execute(soup: BeautifulSoup, config: PipelineConfiguration, context: RequestContext,
                 name: str, category_class: Type[Category],
                 operations: Tuple[Tuple[str, Operation], ...]) -> None:
        enabled = [operation for toggle, operation in operations if config.resolve_toggle(toggle)]
        if not enabled:
            return

        category = category_class(soup, config, context)
        for operation in enabled:
            logger.debug(f"Running {name}: {operation.__name__}")
            operation(category)

    @staticmethod
    def _hide_changes(soup: BeautifulSoup) -> None:
        """Make the hide-changes stylesheet the first child of <head>."""
        head = soup.find('head')
        if head is None:
            head = soup.new_tag('head')
            if soup.html:
                soup.html.insert(0, head)
            else:
                soup.insert(_prolog_length(soup), head)

        style = soup.find('style', id=HIDE_CHANGES_ID)
        if style is None:
            style = soup.new_tag('style', attrs={'type': 'text/css', 'id': HIDE_CHANGES_ID})
            style.string = load_resource(HIDE_CHANGES_STYLESHEET)
        else:
            style.extract()
        head.insert(0, style)


# =============================================================================
# Convenience Functions
# =============================================================================

def convert_html(markup: str, settings: Optional[Mapping[str, Any]] = None,
                 rules_path: Optional[str] = None, locale: Optional[str] = None,
                 base_url: str = '', user_agent: str = '') -> str:
    """
    Convenience function to make an HTML document more accessible.

    Args:
        markup: Input HTML string
        settings: Toggle settings; every toggle is enabled when omitted
        rules_path: Optional rules file
        locale: Locale of the reader
        base_url: URL the document was served from
        user_agent: User agent of the reader

    Returns:
        Rewritten HTML string

    Raises:
        ConfigurationError: For invalid settings
    """
    config = PipelineConfiguration.from_settings(settings, rules_path=rules_path, locale=locale)
    context = RequestContext(base_url=base_url, user_agent=user_agent)
    return AccessibilityPipeline().run(markup, config, context)


def convert_html_file(input_path: str, output_path: Optional[str] = None, **kwargs) -> str:
    """
    Make an HTML file more accessible.

    Args:
        input_path: Path to input HTML file
        output_path: Path for output file (default: input.accessible.html)
        **kwargs: Passed to convert_html

    Returns:
        Path to output file
    """
    input_path = Path(input_path)
    if output_path is None:
        output_path = input_path.with_suffix('.accessible.html')
    else:
        output_path = Path(output_path)

    with open(input_path, 'r', encoding='utf-8') as f:
        markup = f.read()

    if 'base_url' not in kwargs:
        kwargs['base_url'] = input_path.resolve().as_uri()
    converted = convert_html(markup, **kwargs)

    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(converted)

    return str(output_path)
