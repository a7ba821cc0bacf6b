"""
Association category: wire data cells to header cells and labels to fields.
"""

import logging
from typing import List, Optional

from bs4 import Tag

from .base import Category, attribute_list, is_valid_element, visible_text


logger = logging.getLogger(__name__)

FORM_FIELDS = ['input', 'select', 'textarea']


# Largest spans browsers honor
MAX_SPAN = {'colspan': 1000, 'rowspan': 65534}


def _span(cell: Tag, attribute: str) -> int:
    try:
        span = int(cell.get(attribute, 1))
    except (TypeError, ValueError):
        return 1
    return min(max(1, span), MAX_SPAN[attribute])


def table_rows(table: Tag) -> List[Tag]:
    """Rows of table in document order, ignoring nested tables."""
    return [row for row in table.find_all('tr') if row.find_parent('table') is table]


def build_grid(rows: List[Tag]) -> List[List[Optional[Tag]]]:
    """
    Lay the cells of rows out on a grid, repeating spanned cells.

    Returns:
        One list per row; grid[r][c] is the cell covering row r, column c
    """
    grid: List[List[Optional[Tag]]] = [[] for _ in rows]
    for r, row in enumerate(rows):
        column = 0
        for cell in row.find_all(['td', 'th'], recursive=False):
            while column < len(grid[r]) and grid[r][column] is not None:
                column += 1
            rowspan = _span(cell, 'rowspan')
            colspan = _span(cell, 'colspan')
            for offset in range(min(rowspan, len(rows) - r)):
                line = grid[r + offset]
                while len(line) < column + colspan:
                    line.append(None)
                for c in range(column, column + colspan):
                    line[c] = cell
            column += colspan
    return grid


class AccessibleAssociation(Category):
    """Makes the relations between cells and between labels and fields explicit."""

    def associate_all_data_cells_with_header_cells(self) -> None:
        for table in self.select('table'):
            if self.was_applied(table, 'headers'):
                continue
            self._associate_table(table)
            self.mark_applied(table, 'headers')

    def _associate_table(self, table: Tag) -> None:
        rows = table_rows(table)
        if not rows:
            return
        grid = build_grid(rows)

        header_rows = set()
        for index, row in enumerate(rows):
            cells = row.find_all(['td', 'th'], recursive=False)
            in_thead = row.parent is not None and row.parent.name == 'thead'
            if in_thead or (cells and all(cell.name == 'th' for cell in cells)):
                header_rows.add(index)
            else:
                break

        for index, row in enumerate(rows):
            for cell in row.find_all('th', recursive=False):
                self.ids.ensure(cell)
                if not cell.get('scope'):
                    cell['scope'] = 'col' if index in header_rows else 'row'

        for r, line in enumerate(grid):
            if r in header_rows:
                continue
            for c, cell in enumerate(line):
                if cell is None or cell.name != 'td' or cell.find_parent('tr') is not rows[r]:
                    continue
                headers = attribute_list(cell, 'headers')
                for hr in sorted(header_rows):
                    if c < len(grid[hr]):
                        header = grid[hr][c]
                        if header is not None and header.name == 'th' and header['id'] not in headers:
                            headers.append(header['id'])
                for header in line:
                    if header is not None and header.name == 'th' and header['id'] not in headers:
                        headers.append(header['id'])
                if headers:
                    cell['headers'] = ' '.join(headers)

    def associate_all_labels_with_fields(self) -> None:
        for label in self.select('label'):
            field = self._field_of(label)
            if field is None or not is_valid_element(field):
                continue
            label['for'] = self.ids.ensure(field)
            if not field.get('aria-label'):
                text = self._label_text(label, field)
                if text:
                    field['aria-label'] = text
            logger.debug(f"Associated label with field #{field['id']}")

    def _field_of(self, label: Tag) -> Optional[Tag]:
        target = label.get('for')
        if target:
            field = self.soup.find(id=target)
            if field is not None and field.name in FORM_FIELDS:
                return field
            return None
        return label.find(FORM_FIELDS)

    @staticmethod
    def _label_text(label: Tag, field: Tag) -> str:
        if any(node is field for node in label.descendants):
            copy_text = visible_text(label)
            field_text = visible_text(field)
            if field_text:
                copy_text = copy_text.replace(field_text, '')
            return ' '.join(copy_text.split())
        return visible_text(label)
