"""
Module - a module tree bound to its configuration.

The Module owns the live tree of an editing session. Edits go through
Module.apply, which commits each leaf action as it is applied and returns
the reverse action for the caller's undo stack.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from chuk_mcp_tracker.constants import DEFAULT_BLOCK_LENGTH, ROOT_NODE_ID
from chuk_mcp_tracker.editing.mutation import apply_action
from chuk_mcp_tracker.editing.reverse import make_reverse_action
from chuk_mcp_tracker.models.actions import CompoundAction, EditAction
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import GroupInstance, Instance, Node
from chuk_mcp_tracker.models.path import NodePath, resolve, resolve_node
from chuk_mcp_tracker.module.generator import generate_tree


class Module:
    """
    A tracker module: configuration plus node tree.

    Derived copies for previews are made with `with_tree` and share the
    configuration; they are never written back.
    """

    def __init__(self, config: ModuleConfig, tree: Node, name: str = "untitled"):
        if tree.node_id != ROOT_NODE_ID or not isinstance(tree.get_instance(0), GroupInstance):
            raise ValueError(f"Module tree must be a {ROOT_NODE_ID} group with instance 0")
        self.config = config
        self.tree = tree
        self.name = name
        self.modified = datetime.now(UTC)

    @classmethod
    def new(
        cls,
        config: ModuleConfig,
        name: str = "untitled",
        block_length: int = DEFAULT_BLOCK_LENGTH,
    ) -> Module:
        """Create an empty module from a configuration."""
        return cls(config, generate_tree(config, block_length), name)

    @property
    def root(self) -> GroupInstance:
        """The single instance of the top-level group."""
        instance = self.tree.get_instance(0)
        assert isinstance(instance, GroupInstance)
        return instance

    def get(self, path: NodePath | str) -> Instance:
        """Resolve an instance path against the current tree."""
        return resolve(self.tree, path)

    def get_node(self, path: NodePath | str, node_id: str) -> Node:
        """Resolve a child node of the group instance at `path`."""
        return resolve_node(self.tree, path, node_id)

    def apply(self, action: Any) -> EditAction:
        """
        Apply an edit action to the live tree.

        Compound actions are applied child by child. If a child fails, the
        children before it stay applied and the error propagates with two
        attributes: `applied`, a compound of the children that were
        committed, and `applied_reverse`, the compound that reverts them.

        Returns:
            The action that reverts this one
        """
        if isinstance(action, CompoundAction):
            return self._apply_compound(action)

        reverse = make_reverse_action(self.tree, self.config, action)
        self.tree = apply_action(self.tree, self.config, action)
        self.modified = datetime.now(UTC)
        return reverse

    def _apply_compound(self, action: CompoundAction) -> EditAction:
        applied: list[EditAction] = []
        reverses: list[EditAction] = []
        try:
            for child in action.actions:
                reverses.append(self.apply(child))
                applied.append(child)
        except Exception as e:
            # A failed nested compound already reports its own committed prefix
            inner = getattr(e, "applied", None)
            if inner:
                applied.append(inner)
                reverses.append(e.applied_reverse)
            e.applied = CompoundAction(tuple(applied))
            e.applied_reverse = CompoundAction(tuple(reversed(reverses)))
            raise
        return CompoundAction(tuple(reversed(reverses)))

    def with_tree(self, tree: Node) -> Module:
        """A module sharing this configuration and name, over another tree."""
        return Module(self.config, tree, self.name)

    def __repr__(self) -> str:
        return f"Module({self.name!r}, config={self.config.id!r})"
