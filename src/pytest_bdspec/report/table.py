"""Gherkin table formatting for example data."""

from collections.abc import Mapping, Sequence
from typing import Any

MISSING = object()


def cell(item: Any, column: str) -> str:  # noqa: ANN401
    """Extract and format one cell.

    Mappings are looked up by key, pydantic models and plain objects by
    attribute. Floats get two decimals; missing values are empty.
    """
    if isinstance(item, Mapping):
        value = item.get(column, MISSING)
    else:
        value = getattr(item, column, MISSING)

    if value is MISSING or value is None:
        return ''

    if isinstance(value, float):
        return f'{value:.2f}'

    return f'{value}'


def format_table(items: Sequence[Any], columns: Sequence[str]) -> list[str]:
    """Format items as table lines, header first.

    Args:
        items: Rows of the table.
        columns: Column names, in display order.

    Returns:
        Unindented lines such as `| Name | Price |`.

    Raises:
        TypeError: If `items` is not a sequence of rows.
    """
    if isinstance(items, str | bytes) or not isinstance(items, Sequence):
        raise TypeError(f'expected items to be a sequence but was of type: {type(items).__name__}')

    rows = [
        {column: cell(item, column) for column in columns}
        for item in items
    ]

    widths = {
        column: max([len(column), *(len(row[column]) for row in rows)])
        for column in columns
    }

    def line(values: Mapping[str, str]) -> str:
        return '|' + ''.join(
            f' {values[column]:<{widths[column]}} |'
            for column in columns
        )

    return [
        line({column: column for column in columns}),
        *(line(row) for row in rows),
    ]
