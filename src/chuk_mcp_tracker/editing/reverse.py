"""
Reverse actions for undo/redo.

make_reverse_action computes, against the tree as it is *before* an action
is applied, the action that restores that tree exactly once the original
has been applied: same instance ids, same row counts, same values.

Where an action keeps the shape of the data (setting existing cells or
instances, removing/inserting group instances) the reverse is the same
kind of action with the old values. Where rows were added as a side
effect (padding, column inserts) the reverse also removes those rows.
"""

from __future__ import annotations

from typing import Any

from chuk_mcp_tracker.editing.mutation import apply_action, target_column
from chuk_mcp_tracker.editing.rows import splice_rows
from chuk_mcp_tracker.exceptions import PathNotFound, UnsupportedActionKind
from chuk_mcp_tracker.models.actions import (
    CompoundAction,
    EditAction,
    InsertAction,
    RemoveAction,
    SetAction,
)
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import BlockInstance, GroupInstance, Node
from chuk_mcp_tracker.models.path import NodePath, resolve


def make_reverse_action(tree: Node, config: ModuleConfig, action: Any) -> EditAction:
    """
    Compute the reverse of `action` against the pre-edit tree.

    Raises:
        PathNotFound: if the action does not resolve against `tree`
        UnsupportedActionKind: if `action` is not an edit action
    """
    if isinstance(action, CompoundAction):
        reverses = []
        for child in action.actions:
            reverses.append(make_reverse_action(tree, config, child))
            tree = apply_action(tree, config, child)
        return CompoundAction(tuple(reversed(reverses)))

    if not isinstance(action, (SetAction, InsertAction, RemoveAction)):
        raise UnsupportedActionKind(getattr(action, "kind", type(action).__name__))

    parent = resolve(tree, action.path)
    if isinstance(parent, GroupInstance):
        return _reverse_group_action(parent, action)
    if isinstance(parent, BlockInstance):
        column = target_column(config, action.path, action.node_id)
        if isinstance(action, SetAction):
            return _reverse_block_set(tree, config, parent, column, action)
        if isinstance(action, InsertAction):
            if column is None:
                return _reverse_row_insert(config, parent, action)
            return _reverse_sequentially(tree, config, action)
        if column is None:
            return _reverse_row_remove(parent, action)
        return _reverse_sequentially(tree, config, action)
    raise PathNotFound(action.path, action.node_id)


# -- group parents -------------------------------------------------------------


def _reverse_group_action(
    group: GroupInstance, action: SetAction | InsertAction | RemoveAction
) -> EditAction:
    node = group.get_node(action.node_id) or Node(action.node_id)

    if isinstance(action, RemoveAction):
        restored = [
            (i, node.get_instance(i)) for i in dict.fromkeys(action.ids) if node.has_instance(i)
        ]
        return InsertAction(action.path, action.node_id, tuple(restored))

    if isinstance(action, InsertAction):
        return RemoveAction(action.path, action.node_id, tuple(i for i, _ in action.values))

    ids = list(dict.fromkeys(i for i, _ in action.values))
    previous = tuple((i, node.get_instance(i)) for i in ids if node.has_instance(i))
    created = tuple(i for i in ids if not node.has_instance(i))
    restore = SetAction(action.path, action.node_id, previous)
    if not created:
        return restore
    drop = RemoveAction(action.path, action.node_id, created)
    return CompoundAction((restore, drop)) if previous else drop


# -- block parents -------------------------------------------------------------


def _rows_action(path: NodePath, start: int, stop: int) -> RemoveAction:
    """Whole-row removal of rows start..stop-1 of the block at path."""
    block_id = path.node_id
    assert block_id is not None
    return RemoveAction(path, block_id, tuple(range(start, stop)))


def _reverse_block_set(
    tree: Node,
    config: ModuleConfig,
    block: BlockInstance,
    column: int | None,
    action: SetAction,
) -> EditAction:
    length = block.row_count
    if any(row >= length for row, _ in action.values):
        return _reverse_sequentially(tree, config, action)

    if column is None:
        previous = tuple((row, block.rows[row]) for row, _ in action.values)
    else:
        previous = tuple((row, block.rows[row][column]) for row, _ in action.values)
    return SetAction(action.path, action.node_id, previous)


def _reverse_row_insert(
    config: ModuleConfig, block: BlockInstance, action: InsertAction
) -> EditAction:
    block_id = action.path.node_id
    assert block_id is not None
    _, added = splice_rows(block.rows, action.values, config.block_width(block_id))
    return RemoveAction(action.path, block_id, tuple(added))


def _reverse_row_remove(block: BlockInstance, action: RemoveAction) -> EditAction:
    rows = sorted(i for i in set(action.ids) if 0 <= i < block.row_count)
    return InsertAction(action.path, action.node_id, tuple((i, block.rows[i]) for i in rows))


def _reverse_sequentially(tree: Node, config: ModuleConfig, action: Any) -> EditAction:
    """
    Split a block-parented action into single-value steps and reverse each
    against the tree as it stands when that step runs.
    """
    if isinstance(action, RemoveAction):
        steps: list[Any] = [RemoveAction(action.path, action.node_id, (i,)) for i in action.ids]
    else:
        steps = [type(action)(action.path, action.node_id, (pair,)) for pair in action.values]

    reverses: list[EditAction] = []
    for step in steps:
        reverse = _reverse_block_step(tree, config, step)
        if reverse is not None:
            reverses.append(reverse)
        tree = apply_action(tree, config, step)
    if len(reverses) == 1:
        return reverses[0]
    return CompoundAction(tuple(reversed(reverses)))


def _reverse_block_step(tree: Node, config: ModuleConfig, step: Any) -> EditAction | None:
    block = resolve(tree, step.path)
    assert isinstance(block, BlockInstance)
    length = block.row_count
    column = target_column(config, step.path, step.node_id)

    if isinstance(step, SetAction):
        ((row, _),) = step.values
        if row >= length:
            return _rows_action(step.path, length, row + 1)
        old = block.rows[row] if column is None else block.rows[row][column]
        return SetAction(step.path, step.node_id, ((row, old),))

    if isinstance(step, InsertAction):
        ((row, _),) = step.values
        if row > length:
            return _rows_action(step.path, length, row + 1)
        return CompoundAction(
            (
                RemoveAction(step.path, step.node_id, (row,)),
                _rows_action(step.path, length, length + 1),
            )
        )

    (row,) = step.ids
    if row < 0 or row >= length:
        return None
    assert column is not None
    return CompoundAction(
        (
            InsertAction(step.path, step.node_id, ((row, block.rows[row][column]),)),
            _rows_action(step.path, length, length + 1),
        )
    )
