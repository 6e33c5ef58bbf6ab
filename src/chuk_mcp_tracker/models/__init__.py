"""
Data model for tracker modules.

This module provides:
- Node, FieldInstance, BlockInstance, GroupInstance: the immutable module tree
- NodePath: typed instance paths
- ModuleConfig, SourceCommand, InodeConfig: format configurations
- SetAction, InsertAction, RemoveAction, CompoundAction: edit actions
"""

from chuk_mcp_tracker.models.actions import (
    CompoundAction,
    EditAction,
    InsertAction,
    RemoveAction,
    SetAction,
    action_from_value,
    insert_action,
    remove_action,
    set_action,
)
from chuk_mcp_tracker.models.config import (
    ConfigMetadata,
    InodeConfig,
    ModuleConfig,
    SourceCommand,
    chromatic_keys,
)
from chuk_mcp_tracker.models.node import (
    EMPTY,
    BlockInstance,
    FieldInstance,
    GroupInstance,
    Instance,
    Node,
    Row,
    empty_row,
)
from chuk_mcp_tracker.models.path import NodePath, resolve, resolve_node

__all__ = [
    # Tree
    "EMPTY",
    "BlockInstance",
    "FieldInstance",
    "GroupInstance",
    "Instance",
    "Node",
    "Row",
    "empty_row",
    # Paths
    "NodePath",
    "resolve",
    "resolve_node",
    # Configuration
    "ConfigMetadata",
    "InodeConfig",
    "ModuleConfig",
    "SourceCommand",
    "chromatic_keys",
    # Actions
    "CompoundAction",
    "EditAction",
    "InsertAction",
    "RemoveAction",
    "SetAction",
    "action_from_value",
    "insert_action",
    "remove_action",
    "set_action",
]
