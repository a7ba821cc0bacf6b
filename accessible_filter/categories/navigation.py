"""
Navigation category: links to long descriptions, a page outline built from
the headings and skip links to the landmarks named by the rule set.
"""

import logging
from typing import List

from bs4 import Tag
from soupsieve import SelectorSyntaxError

from .base import GENERATED_ATTRIBUTE, Category, visible_text


logger = logging.getLogger(__name__)


HEADING_SELECTOR = 'h1, h2, h3, h4, h5, h6'


def heading_level(heading: Tag) -> int:
    return int(heading.name[1])


def is_valid_heading_structure(headings: List[Tag]) -> bool:
    """
    One h1, placed first, and no level skipped on the way down.
    """
    if not headings or headings[0].name != 'h1':
        return False
    if sum(1 for heading in headings if heading.name == 'h1') != 1:
        return False
    previous = 1
    for heading in headings[1:]:
        level = heading_level(heading)
        if level > previous + 1:
            return False
        previous = level
    return True


class AccessibleNavigation(Category):
    """Adds navigation aids to the page."""

    def _generated_exists(self, kind: str) -> bool:
        return self.soup.find(attrs={GENERATED_ATTRIBUTE: kind}) is not None

    def provide_navigation_to_all_long_descriptions(self) -> None:
        for element in self.select('[longdesc]'):
            if self.was_applied(element, 'long-description') or not element['longdesc'].strip():
                continue
            name = (element.get('alt') or element.get('title')
                    or self.rules.get_text('alternative-text-missing'))
            link = self.new_generated(
                'a', 'long-description',
                self.rules.get_text('long-description', text=name),
                href=element['longdesc'].strip(),
            )
            if self.attach(element, link, before=False, inside=False):
                self.mark_applied(element, 'long-description')

    def provide_navigation_by_all_headings(self) -> None:
        if self._generated_exists('headings'):
            return
        headings = self.select(HEADING_SELECTOR)
        if not is_valid_heading_structure(headings):
            logger.debug("Heading structure is not valid, no headings navigation")
            return

        nav = self.new_generated('nav', 'headings')
        nav['aria-label'] = self.rules.get_text('headings-navigation')
        root = self.soup.new_tag('ul')
        nav.append(root)

        # (level, list) pairs from the outermost list inwards
        stack = [(1, root)]
        last_item = None
        for heading in headings:
            level = heading_level(heading)
            if level > stack[-1][0] and last_item is not None:
                sublist = self.soup.new_tag('ul')
                last_item.append(sublist)
                stack.append((level, sublist))
            while len(stack) > 1 and level < stack[-1][0]:
                stack.pop()

            item = self.soup.new_tag('li')
            link = self.soup.new_tag('a', href=f'#{self.ids.ensure(heading)}')
            link.string = visible_text(heading)
            item.append(link)
            stack[-1][1].append(item)
            last_item = item

        self.prepend_to_body(nav)

    def provide_navigation_by_all_skippers(self) -> None:
        if self._generated_exists('skippers'):
            return

        links = []
        for skipper in self.rules.skippers:
            try:
                targets = self.select(skipper.selector)
            except SelectorSyntaxError as e:
                logger.warning(f"Invalid skipper selector {skipper.selector!r}: {e}")
                continue
            if not targets:
                continue
            link = self.soup.new_tag('a', href=f'#{self.ids.ensure(targets[0])}')
            link.string = skipper.text
            if skipper.shortcut:
                link['accesskey'] = skipper.shortcut
            links.append(link)

        if not links:
            return
        nav = self.new_generated('nav', 'skippers')
        nav['aria-label'] = self.rules.get_text('skippers-navigation')
        listing = self.soup.new_tag('ul')
        for link in links:
            item = self.soup.new_tag('li')
            item.append(link)
            listing.append(item)
        nav.append(listing)
        self.prepend_to_body(nav)
