"""
Derivation - reduced module copies for preview playback.

A derived tree plays only part of a song: one row at one order position,
or one order position's patterns. Derivations are pure. The input tree is
never modified and the result shares every sub-tree it does not change.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import (
    EMPTY,
    BlockInstance,
    GroupInstance,
    Node,
    Row,
    empty_row,
)
from chuk_mcp_tracker.models.path import NodePath, replace_instance, resolve


def _group_instance(
    tree: Node, config: ModuleConfig, group_id: str, group_instance: int
) -> tuple[NodePath, GroupInstance]:
    path = config.default_path(group_id, group_instance)
    instance = resolve(tree, path)
    if not isinstance(instance, GroupInstance):
        raise ValueError(f"{group_id} is not a group")
    return path, instance


def _order_block(group: GroupInstance, config: ModuleConfig, group_id: str) -> BlockInstance:
    order = group.get_node(config.order_id(group_id))
    block = order.get_instance(0) if order is not None else None
    if not isinstance(block, BlockInstance):
        raise ValueError(f"{group_id} has no order list")
    return block


def order_entry(
    tree: Node, config: ModuleConfig, group_id: str, order_pos: int, group_instance: int = 0
) -> Row:
    """
    The order list row at `order_pos`: (repeat count, block refs...).

    Raises:
        IndexError: if order_pos is outside the order list
    """
    _, group = _group_instance(tree, config, group_id, group_instance)
    order = _order_block(group, config, group_id)
    if not 0 <= order_pos < order.row_count:
        raise IndexError(
            f"Order position {order_pos} out of range for {group_id} ({order.row_count} entries)"
        )
    return order.rows[order_pos]


def derive_single_row(
    tree: Node,
    config: ModuleConfig,
    group_id: str,
    order_pos: int,
    row: int,
    group_instance: int = 0,
) -> Node:
    """
    Reduce a group to a single row of a single order position.

    Every block referenced at `order_pos` is cut down to `row` (an empty
    row if the pattern is shorter), keeping its instance id, and the order
    list becomes the single entry (1, refs...).

    Returns:
        The derived tree
    """
    path, group = _group_instance(tree, config, group_id, group_instance)
    entry = order_entry(tree, config, group_id, order_pos, group_instance)
    refs = entry[1:]

    for block_id, ref in zip(config.group_blocks(group_id), refs, strict=False):
        node = group.get_node(block_id)
        if node is None or ref is EMPTY:
            continue
        width = config.block_width(block_id)
        source = node.get_instance(ref)
        if isinstance(source, BlockInstance):
            picked = source.rows[row] if 0 <= row < source.row_count else empty_row(width)
            reduced = replace(source, rows=(picked,))
        else:
            reduced = BlockInstance(ref, (empty_row(width),))
        group = group.with_node(node.with_instance(reduced))

    group = _with_order(group, config, group_id, (1, *refs))
    return replace_instance(tree, path, group)


def derive_single_pattern(
    tree: Node,
    config: ModuleConfig,
    group_id: str,
    order_pos: int,
    group_instance: int = 0,
) -> Node:
    """
    Reduce a group's order list to the entry at `order_pos`.

    The referenced pattern blocks are left at full length.
    """
    path, group = _group_instance(tree, config, group_id, group_instance)
    entry = order_entry(tree, config, group_id, order_pos, group_instance)
    group = _with_order(group, config, group_id, entry)
    return replace_instance(tree, path, group)


def order_block_rows(
    tree: Node,
    config: ModuleConfig,
    group_id: str,
    block_id: str,
    group_instance: int = 0,
) -> list[Row]:
    """
    Rows a block plays over the whole order list.

    Each order entry contributes `repeat` rows of the referenced instance;
    rows the pattern does not have are empty.
    """
    _, group = _group_instance(tree, config, group_id, group_instance)
    order = _order_block(group, config, group_id)
    column = config.group_blocks(group_id).index(block_id) + 1
    node = group.get_node(block_id)
    width = config.block_width(block_id)

    played: list[Row] = []
    for entry in order.rows:
        repeat = entry[0] or 0
        ref = entry[column]
        source = node.get_instance(ref) if node is not None and ref is not EMPTY else None
        rows: tuple[Row, ...] = source.rows if isinstance(source, BlockInstance) else ()
        played.extend(rows[i] if i < len(rows) else empty_row(width) for i in range(repeat))
    return played


def _with_order(
    group: GroupInstance, config: ModuleConfig, group_id: str, entry: tuple[Any, ...]
) -> GroupInstance:
    order_id = config.order_id(group_id)
    order = group.get_node(order_id)
    assert order is not None
    current = order.get_instance(0)
    assert isinstance(current, BlockInstance)
    return group.with_node(order.with_instance(replace(current, rows=(tuple(entry),))))
