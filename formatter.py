"""
Output formatting for cron event and schedule listings.

Renders a list of records as a box-drawn table, JSON, CSV, or a plain
space-separated list of identifiers.
"""

import csv
import json
import sys
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO

FORMATS = ('table', 'json', 'csv', 'ids')


def _cell(value: Any) -> str:
    """Render a single value for table or CSV output."""
    if value is None:
        return ''
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def make_row(cells: Sequence[str], widths: Sequence[int]) -> str:
    return "│ " + " │ ".join(cell.ljust(w) for cell, w in zip(cells, widths)) + " │"


def make_separator(widths: Sequence[int], left: str, mid: str, right: str, fill: str = '─') -> str:
    return left + mid.join(fill * (w + 2) for w in widths) + right


class Formatter:
    """
    Renders records restricted to a set of fields.

    Args:
        fields: Fields to output, as a list or a comma-separated string.
                Falls back to default_fields when empty.
        format: One of 'table', 'json', 'csv', 'ids'
        default_fields: Fields shown when none are requested
        available_fields: Every field a caller may request
        id_field: Field printed by the 'ids' format
    """

    def __init__(
        self,
        fields: Optional[Any],
        format: str,
        default_fields: Sequence[str],
        available_fields: Sequence[str],
        id_field: str
    ):
        if format not in FORMATS:
            raise ValueError(
                f"Invalid format '{format}'. Accepted values: {', '.join(FORMATS)}"
            )

        if isinstance(fields, str):
            fields = [f.strip() for f in fields.split(',') if f.strip()]
        self.fields: List[str] = list(fields or default_fields)

        unknown = [f for f in self.fields if f not in available_fields]
        if unknown:
            raise ValueError(
                f"Invalid field(s): {', '.join(unknown)}. "
                f"Available fields: {', '.join(available_fields)}"
            )

        self.format = format
        self.id_field = id_field

    def _rows(self, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [{f: item.get(f) for f in self.fields} for item in items]

    def display_items(self, items: Iterable[Dict[str, Any]], stream: Optional[TextIO] = None):
        """Write items to stream (stdout by default) in the chosen format."""
        stream = stream or sys.stdout
        items = list(items)

        if self.format == 'ids':
            ids = ' '.join(_cell(item.get(self.id_field)) for item in items)
            if ids:
                print(ids, file=stream)
        elif self.format == 'json':
            print(json.dumps(self._rows(items)), file=stream)
        elif self.format == 'csv':
            if items:
                writer = csv.DictWriter(stream, fieldnames=self.fields, lineterminator='\n')
                writer.writeheader()
                for row in self._rows(items):
                    writer.writerow({k: _cell(v) for k, v in row.items()})
        else:
            self._display_table(items, stream)

    def _display_table(self, items: List[Dict[str, Any]], stream: TextIO):
        if not items:
            return

        rows = [[_cell(v) for v in row.values()] for row in self._rows(items)]
        widths = [
            max(len(header), max(len(row[i]) for row in rows))
            for i, header in enumerate(self.fields)
        ]

        print(make_separator(widths, '┌', '┬', '┐'), file=stream)
        print(make_row(self.fields, widths), file=stream)
        print(make_separator(widths, '├', '┼', '┤'), file=stream)
        for row in rows:
            print(make_row(row, widths), file=stream)
        print(make_separator(widths, '└', '┴', '┘'), file=stream)
