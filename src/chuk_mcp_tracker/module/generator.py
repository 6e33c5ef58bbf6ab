"""
Fresh module generation.

Builds an instance tree from a configuration: fields take their command
defaults, blocks get `block_length` empty rows, order lists get a single
entry that plays instance 0 of every pattern block for `block_length`
rows.
"""

from __future__ import annotations

from chuk_mcp_tracker.constants import DEFAULT_BLOCK_LENGTH, ROOT_NODE_ID, NodeKind
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import (
    BlockInstance,
    FieldInstance,
    GroupInstance,
    Instance,
    Node,
    empty_row,
)


def generate_tree(config: ModuleConfig, block_length: int = DEFAULT_BLOCK_LENGTH) -> Node:
    """Generate the tree of an empty module for `config`."""
    if block_length < 0:
        raise ValueError("block_length must be non-negative")
    return Node(ROOT_NODE_ID, (generate_instance(config, ROOT_NODE_ID, 0, block_length),))


def generate_node(config: ModuleConfig, node_id: str, block_length: int) -> Node:
    """Generate a node with the number of instances its schema entry asks for."""
    count = config.get_inode(node_id).instances
    return Node(
        node_id,
        tuple(generate_instance(config, node_id, i, block_length) for i in range(count)),
    )


def generate_instance(
    config: ModuleConfig, node_id: str, instance_id: int, block_length: int
) -> Instance:
    kind = config.node_type(node_id)

    if kind == NodeKind.FIELD:
        return FieldInstance(instance_id, config.default_value(node_id))

    if kind == NodeKind.BLOCK:
        width = config.block_width(node_id)
        if config.is_order_node(node_id):
            return BlockInstance(instance_id, ((block_length,) + (0,) * (width - 1),))
        return BlockInstance(instance_id, (empty_row(width),) * block_length)

    return GroupInstance(
        instance_id,
        tuple(generate_node(config, child, block_length) for child in config.child_ids(node_id)),
    )
