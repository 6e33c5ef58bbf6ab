"""
Node addressing.

A NodePath is a sequence of (node_id, instance_id) steps from the tree
root, e.g. GLOBAL/0/PATTERNS/0/DRUMS/3. It is built once by the caller and
resolved by structural descent, so it stays meaningful independent of any
one tree snapshot.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from chuk_mcp_tracker.exceptions import PathNotFound
from chuk_mcp_tracker.models.node import GroupInstance, Instance, Node


@dataclass(frozen=True)
class NodePath:
    """Typed path to a node instance."""

    steps: tuple[tuple[str, int], ...] = ()

    @classmethod
    def parse(cls, text: str) -> NodePath:
        """
        Parse a textual path of alternating node ids and instance ids.

        A trailing slash is allowed: "GLOBAL/0/CH1/0/" == "GLOBAL/0/CH1/0".

        Raises:
            ValueError: if the segment count is odd or an instance id
                is not a non-negative integer
        """
        segments = [s for s in text.strip().strip("/").split("/") if s]
        if len(segments) % 2:
            raise ValueError(f"Path must alternate node ids and instance ids: {text!r}")
        steps = []
        for node_id, raw_id in zip(segments[::2], segments[1::2], strict=True):
            if not raw_id.isdigit():
                raise ValueError(f"Invalid instance id {raw_id!r} in path {text!r}")
            steps.append((node_id, int(raw_id)))
        return cls(tuple(steps))

    @classmethod
    def of(cls, *steps: tuple[str, int]) -> NodePath:
        return cls(tuple(steps))

    def child(self, node_id: str, instance_id: int = 0) -> NodePath:
        """Extend the path by one step."""
        return NodePath(self.steps + ((node_id, instance_id),))

    @property
    def parent(self) -> NodePath:
        return NodePath(self.steps[:-1])

    @property
    def node_id(self) -> str | None:
        """Node id of the last step."""
        return self.steps[-1][0] if self.steps else None

    @property
    def instance_id(self) -> int | None:
        return self.steps[-1][1] if self.steps else None

    def __iter__(self) -> Iterator[tuple[str, int]]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __str__(self) -> str:
        return "".join(f"{node_id}/{instance_id}/" for node_id, instance_id in self.steps)


def as_path(path: NodePath | str) -> NodePath:
    """Accept a NodePath or its textual form."""
    if isinstance(path, NodePath):
        return path
    return NodePath.parse(path)


def resolve(root: Node, path: NodePath | str) -> Instance:
    """
    Resolve a path against a tree root.

    Args:
        root: The root node of the tree
        path: Path whose first step names the root

    Returns:
        The instance at the end of the path

    Raises:
        PathNotFound: if any step does not resolve
    """
    path = as_path(path)
    if not path.steps:
        raise PathNotFound(path)

    node = root
    instance: Instance | None = None
    for depth, (node_id, instance_id) in enumerate(path.steps):
        if depth > 0:
            if not isinstance(instance, GroupInstance):
                raise PathNotFound(path, node_id)
            child = instance.get_node(node_id)
            if child is None:
                raise PathNotFound(path, node_id)
            node = child
        elif node.node_id != node_id:
            raise PathNotFound(path, node_id)

        instance = node.get_instance(instance_id)
        if instance is None:
            raise PathNotFound(path, f"{node_id}/{instance_id}")
    assert instance is not None
    return instance


def resolve_node(root: Node, path: NodePath | str, node_id: str) -> Node:
    """Resolve the child node `node_id` of the group instance at `path`."""
    path = as_path(path)
    instance = resolve(root, path)
    if not isinstance(instance, GroupInstance):
        raise PathNotFound(path, node_id)
    node = instance.get_node(node_id)
    if node is None:
        raise PathNotFound(path, node_id)
    return node


def replace_instance(root: Node, path: NodePath | str, instance: Instance) -> Node:
    """
    Write an instance back at `path`, rebuilding only its ancestors.

    The instance at `path` must already exist; siblings and unrelated
    sub-trees are shared with the input tree.

    Returns:
        The new root node
    """
    path = as_path(path)
    resolve(root, path)
    return _replace(root, path.steps, instance)


def _replace(node: Node, steps: tuple[tuple[str, int], ...], instance: Instance) -> Node:
    _, instance_id = steps[0]
    if len(steps) == 1:
        return node.with_instance(instance)

    current = node.get_instance(instance_id)
    assert isinstance(current, GroupInstance)
    child = current.get_node(steps[1][0])
    assert child is not None
    new_child = _replace(child, steps[1:], instance)
    return node.with_instance(current.with_node(new_child))
