"""
Row engine - column-aligned edits to block instances.

Every function returns a rebuilt BlockInstance (or Node) and leaves its
input untouched. After any operation all columns of the block have the
same length. Indices past the end of a block pad with empty rows or do
nothing; they never raise.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from chuk_mcp_tracker.models.node import EMPTY, BlockInstance, Node, Row, empty_row


def _from_columns(block: BlockInstance, columns: list[list[Any]]) -> BlockInstance:
    length = len(columns[0]) if columns else 0
    return replace(block, rows=tuple(tuple(col[i] for col in columns) for i in range(length)))


def pad_rows(block: BlockInstance, length: int, width: int) -> BlockInstance:
    """Extend a block with empty rows up to `length` rows."""
    missing = length - block.row_count
    if missing <= 0:
        return block
    return replace(block, rows=block.rows + (empty_row(width),) * missing)


def set_cell(block: BlockInstance, column: int, row: int, value: Any, width: int) -> BlockInstance:
    """
    Rewrite one cell.

    If `row` is past the end, exactly `row - row_count` empty rows are
    appended before the target row.
    """
    block = pad_rows(block, row + 1, width)
    rows = list(block.rows)
    cells = list(rows[row])
    cells[column] = value
    rows[row] = tuple(cells)
    return replace(block, rows=tuple(rows))


def set_row(block: BlockInstance, row: int, values: Row, width: int) -> BlockInstance:
    """Replace a whole row, padding like set_cell."""
    block = pad_rows(block, row + 1, width)
    rows = list(block.rows)
    rows[row] = _fit(values, width)
    return replace(block, rows=tuple(rows))


def remove_column_row(block: BlockInstance, column: int, row: int, width: int) -> BlockInstance:
    """
    Delete cell `row` from one column and append an empty cell to it.

    Other columns are untouched. No-op if `row` is past the end.
    """
    if row >= block.row_count or row < 0:
        return block
    columns = block.columns(width)
    del columns[column][row]
    columns[column].append(EMPTY)
    return _from_columns(block, columns)


def insert_column_row(
    block: BlockInstance, column: int, row: int, value: Any, width: int
) -> BlockInstance:
    """
    Insert a cell into one column.

    Every other column gets an empty cell appended so all columns stay the
    same length. If `row` is past the end, the block is first padded with
    empty rows up to `row`.
    """
    block = pad_rows(block, row, width)
    columns = block.columns(width)
    for index, cells in enumerate(columns):
        if index == column:
            cells.insert(row, value)
        else:
            cells.append(EMPTY)
    return _from_columns(block, columns)


def splice_rows(
    rows: Sequence[Row], inserts: Iterable[tuple[int, Row]], width: int
) -> tuple[tuple[Row, ...], list[int]]:
    """
    Splice rows in at their final indices.

    Target indices are walked in ascending order; original rows fill the
    positions not taken by an inserted row, and gaps past the end of the
    original rows are filled with empty rows.

    Returns:
        The new rows and the final indices that were added (inserted or
        padding), ascending
    """
    pending = {index: _fit(values, width) for index, values in inserts}
    source = iter(rows)
    remaining = len(rows)
    last_insert = max(pending, default=-1)

    result: list[Row] = []
    added: list[int] = []
    position = 0
    while remaining or position <= last_insert:
        if position in pending:
            result.append(pending[position])
            added.append(position)
        elif remaining:
            result.append(next(source))
            remaining -= 1
        else:
            result.append(empty_row(width))
            added.append(position)
        position += 1
    return tuple(result), added


def insert_rows(
    block: BlockInstance, inserts: Iterable[tuple[int, Row]], width: int
) -> BlockInstance:
    """Insert whole rows into one block instance."""
    rows, _ = splice_rows(block.rows, inserts, width)
    return replace(block, rows=rows)


def remove_rows(block: BlockInstance, indices: Iterable[int]) -> BlockInstance:
    """Filter out the given row indices, keeping the order of the rest."""
    drop = set(indices)
    return replace(block, rows=tuple(r for i, r in enumerate(block.rows) if i not in drop))


def bulk_insert_rows(
    node: Node, specs: Mapping[int, Iterable[tuple[int, Row]]], width: int
) -> Node:
    """
    Insert rows into several instances of a block node at once.

    Args:
        node: The block node
        specs: block instance id -> (row index, row values) pairs
        width: Column count of the block

    Instance ids that do not exist are skipped.
    """
    for instance_id, inserts in specs.items():
        block = node.get_instance(instance_id)
        if isinstance(block, BlockInstance):
            node = node.with_instance(insert_rows(block, inserts, width))
    return node


def bulk_remove_rows(node: Node, specs: Mapping[int, Iterable[int]]) -> Node:
    """Remove rows from several instances of a block node at once."""
    for instance_id, indices in specs.items():
        block = node.get_instance(instance_id)
        if isinstance(block, BlockInstance):
            node = node.with_instance(remove_rows(block, indices))
    return node


def fit_rows(rows: Iterable[Sequence[Any]], width: int) -> tuple[Row, ...]:
    """Pad or cut every row to `width` cells."""
    return tuple(_fit(row, width) for row in rows)


def _fit(values: Sequence[Any], width: int) -> Row:
    # Short rows are padded with empty cells, long rows cut
    values = tuple(values)[:width]
    return values + (EMPTY,) * (width - len(values))
