"""
Event category: keyboard equivalents for pointer-only event handlers.
"""

import logging
from typing import List

from bs4 import Tag

from .base import NATIVELY_FOCUSABLE, Category, load_resource
from .display import DRAG_SELECTOR, DROP_SELECTOR


logger = logging.getLogger(__name__)


CLICK_SELECTOR = '[onclick], [ondblclick]'
HOVER_SELECTOR = '[onmouseover], [onmouseout], [onmouseenter], [onmouseleave]'

KEYBOARD_CLICK_HANDLER = (
    "if(event.key==='Enter'||event.key===' '){event.preventDefault();this.click();}"
)


def is_focusable(element: Tag) -> bool:
    if element.has_attr('tabindex'):
        return True
    if element.name in ('a', 'area'):
        return element.has_attr('href')
    return element.name in NATIVELY_FOCUSABLE


class AccessibleEvent(Category):
    """Makes click, hover and drag and drop handlers reachable by keyboard."""

    def _make_focusable(self, element: Tag) -> None:
        if not is_focusable(element):
            element['tabindex'] = '0'

    def make_accessible_all_click_events(self) -> None:
        for element in self.select(CLICK_SELECTOR):
            if self.was_applied(element, 'keyboard-click'):
                continue
            native = is_focusable(element) and not element.has_attr('tabindex')
            self._make_focusable(element)
            if not native:
                if not element.get('role'):
                    element['role'] = 'button'
                if not element.get('onkeydown'):
                    element['onkeydown'] = KEYBOARD_CLICK_HANDLER
            self.mark_applied(element, 'keyboard-click')

    def make_accessible_all_drag_and_drop_events(self) -> None:
        draggables: List[Tag] = self.select(DRAG_SELECTOR)
        droppables: List[Tag] = [
            element for element in self.select(DROP_SELECTOR)
            if element.get('aria-dropeffect') != 'none'
        ]
        if not draggables and not droppables:
            return

        for element in draggables:
            self._make_focusable(element)
            if not element.get('aria-grabbed'):
                element['aria-grabbed'] = 'false'
            self.mark_applied(element, 'keyboard-drag')
        for element in droppables:
            self._make_focusable(element)
            if not element.get('aria-dropeffect'):
                element['aria-dropeffect'] = 'move'
            self.mark_applied(element, 'keyboard-drop')

        self.ensure_script('drag-and-drop', load_resource('drag_and_drop.js'))
        logger.debug(f"Keyboard drag and drop for {len(draggables)} source(s), "
                     f"{len(droppables)} target(s)")

    def make_accessible_all_hover_events(self) -> None:
        for element in self.select(HOVER_SELECTOR):
            if self.was_applied(element, 'keyboard-hover'):
                continue
            self._make_focusable(element)
            enter = element.get('onmouseover') or element.get('onmouseenter')
            leave = element.get('onmouseout') or element.get('onmouseleave')
            if enter and not element.get('onfocus'):
                element['onfocus'] = enter
            if leave and not element.get('onblur'):
                element['onblur'] = leave
            self.mark_applied(element, 'keyboard-hover')
