"""
Mutation engine - applies edit actions to a module tree.

apply_action is a pure function: it returns a new tree and never touches
its input. Group-parented actions work on the child node's instances,
block-parented actions are handed to the row engine.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from chuk_mcp_tracker.constants import NodeKind
from chuk_mcp_tracker.editing import rows as row_engine
from chuk_mcp_tracker.exceptions import InstanceExistsError, PathNotFound, UnsupportedActionKind
from chuk_mcp_tracker.models.actions import (
    CompoundAction,
    InsertAction,
    RemoveAction,
    SetAction,
)
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import (
    BlockInstance,
    FieldInstance,
    GroupInstance,
    Instance,
    Node,
)
from chuk_mcp_tracker.models.path import NodePath, replace_instance, resolve


def apply_action(tree: Node, config: ModuleConfig, action: Any) -> Node:
    """
    Apply an edit action and return the new tree.

    Args:
        tree: Root node of the module
        config: The module's configuration
        action: A set, insert, remove or compound action

    Raises:
        PathNotFound: if the action's path or node id does not resolve
        UnsupportedActionKind: if `action` is not an edit action
        InstanceExistsError: on a group-level insert of an id in use
    """
    if isinstance(action, CompoundAction):
        for child in action.actions:
            tree = apply_action(tree, config, child)
        return tree
    if isinstance(action, (SetAction, InsertAction, RemoveAction)):
        parent = resolve(tree, action.path)
        if isinstance(parent, GroupInstance):
            updated: Instance = _apply_to_group(parent, config, action)
        elif isinstance(parent, BlockInstance):
            updated = _apply_to_block(parent, config, action)
        else:
            # Fields have no children to address
            raise PathNotFound(action.path, action.node_id)
        return replace_instance(tree, action.path, updated)
    raise UnsupportedActionKind(getattr(action, "kind", type(action).__name__))


def target_column(config: ModuleConfig, path: NodePath, node_id: str) -> int | None:
    """
    Column addressed by a block-parented action.

    Returns None when the action addresses whole rows (node id is the
    block itself).

    Raises:
        PathNotFound: if node_id is neither the block nor one of its fields
    """
    block_id = path.node_id
    assert block_id is not None
    if node_id == block_id:
        return None
    try:
        return config.column_index(block_id, node_id)
    except KeyError:
        raise PathNotFound(path, node_id) from None


# -- block parents -------------------------------------------------------------


def _apply_to_block(
    block: BlockInstance, config: ModuleConfig, action: SetAction | InsertAction | RemoveAction
) -> BlockInstance:
    block_id = action.path.node_id
    assert block_id is not None
    width = config.block_width(block_id)
    column = target_column(config, action.path, action.node_id)

    if isinstance(action, SetAction):
        for row, value in action.values:
            if column is None:
                block = row_engine.set_row(block, row, value, width)
            else:
                block = row_engine.set_cell(block, column, row, value, width)
        return block

    if isinstance(action, InsertAction):
        if column is None:
            return row_engine.insert_rows(block, action.values, width)
        for row, value in action.values:
            block = row_engine.insert_column_row(block, column, row, value, width)
        return block

    if column is None:
        return row_engine.remove_rows(block, action.ids)
    for row in action.ids:
        block = row_engine.remove_column_row(block, column, row, width)
    return block


# -- group parents -------------------------------------------------------------


def _group_node_id(path: NodePath) -> str:
    node_id = path.node_id
    assert node_id is not None
    return node_id


def _apply_to_group(
    group: GroupInstance, config: ModuleConfig, action: SetAction | InsertAction | RemoveAction
) -> GroupInstance:
    node = group.get_node(action.node_id)
    if node is None:
        if action.node_id not in config.child_ids(_group_node_id(action.path)):
            raise PathNotFound(action.path, action.node_id)
        if isinstance(action, RemoveAction):
            return group
        node = Node(action.node_id)

    if isinstance(action, SetAction):
        for instance_id, value in action.values:
            node = node.with_instance(_make_instance(config, node, instance_id, value))
    elif isinstance(action, InsertAction):
        for instance_id, _ in action.values:
            if node.has_instance(instance_id):
                raise InstanceExistsError(node.node_id, instance_id)
        for instance_id, value in action.values:
            node = node.with_instance(_make_instance(config, node, instance_id, value))
    else:
        for instance_id in action.ids:
            node = node.without_instance(instance_id)
    return group.with_node(node)


def _make_instance(config: ModuleConfig, node: Node, instance_id: int, value: Any) -> Instance:
    """
    Build the instance a group-level set/insert stores.

    Instances are taken as given (with the pair's id). Anything else is a
    payload: it replaces the payload of an existing instance, keeping its
    name, or becomes a new instance of the node's kind. Block rows are
    padded or cut to the block's column count either way.
    """
    kind = config.node_type(node.node_id)
    existing = node.get_instance(instance_id)
    instance: Instance
    if isinstance(value, (FieldInstance, BlockInstance, GroupInstance)):
        instance = replace(value, id=instance_id)
    elif existing is not None:
        instance = existing.with_payload(value)
    elif kind == NodeKind.FIELD:
        instance = FieldInstance(instance_id, value)
    elif kind == NodeKind.BLOCK:
        instance = BlockInstance(instance_id, tuple(tuple(r) for r in value or ()))
    elif kind == NodeKind.GROUP:
        instance = GroupInstance(instance_id, tuple(value or ()))
    else:
        raise ValueError(f"Unknown node kind: {kind}")

    if kind == NodeKind.BLOCK and isinstance(instance, BlockInstance):
        width = config.block_width(node.node_id)
        instance = replace(instance, rows=row_engine.fit_rows(instance.rows, width))
    return instance
