"""
Node tree - the in-memory module document.

A module is a tree of nodes. Each node is an identifier plus the ordered
list of its instances, and each instance is one of:

- FieldInstance: a single scalar value (None means unset)
- BlockInstance: rows of field values, one column per child field
- GroupInstance: child nodes

All classes are frozen. Edits build new instances and share everything
they do not touch, so a derived tree can never alias-corrupt the live one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Union

# Marker for an unset field value or an empty cell
EMPTY = None

Row = tuple[Any, ...]


def empty_row(width: int) -> Row:
    """Return an all-empty row of the given width."""
    return (EMPTY,) * width


def is_empty_row(row: Row) -> bool:
    """Return True if every cell of the row is empty."""
    return all(cell is EMPTY for cell in row)


@dataclass(frozen=True)
class FieldInstance:
    """One occurrence of a field node."""

    id: int
    value: Any = EMPTY
    name: str | None = None

    @property
    def payload(self) -> Any:
        return self.value

    def with_payload(self, payload: Any) -> FieldInstance:
        return replace(self, value=payload)


@dataclass(frozen=True)
class BlockInstance:
    """
    One occurrence of a block node.

    Rows are positionally dense: row indices are list positions,
    not ids.
    """

    id: int
    rows: tuple[Row, ...] = ()
    name: str | None = None

    def __post_init__(self) -> None:
        # Accept lists from callers, store tuples
        if not isinstance(self.rows, tuple) or any(not isinstance(r, tuple) for r in self.rows):
            object.__setattr__(self, "rows", tuple(tuple(r) for r in self.rows))

    @property
    def payload(self) -> tuple[Row, ...]:
        return self.rows

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def with_payload(self, payload: Any) -> BlockInstance:
        return replace(self, rows=tuple(tuple(r) for r in payload))

    def column(self, index: int) -> list[Any]:
        """Get the values of one field column."""
        return [row[index] for row in self.rows]

    def columns(self, width: int) -> list[list[Any]]:
        """Split rows into columns. `width` covers blocks with no rows."""
        return [self.column(i) for i in range(width)]


@dataclass(frozen=True)
class GroupInstance:
    """One occurrence of a group node, holding its child nodes."""

    id: int
    nodes: tuple[Node, ...] = ()
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.nodes, tuple):
            object.__setattr__(self, "nodes", tuple(self.nodes))

    @property
    def payload(self) -> tuple[Node, ...]:
        return self.nodes

    def with_payload(self, payload: Any) -> GroupInstance:
        return replace(self, nodes=tuple(payload))

    def get_node(self, node_id: str) -> Node | None:
        """Get a child node by id."""
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def node_ids(self) -> list[str]:
        return [node.node_id for node in self.nodes]

    def with_node(self, node: Node) -> GroupInstance:
        """Return a copy with the child node replaced, or appended if new."""
        nodes = list(self.nodes)
        for i, existing in enumerate(nodes):
            if existing.node_id == node.node_id:
                nodes[i] = node
                break
        else:
            nodes.append(node)
        return replace(self, nodes=tuple(nodes))


Instance = Union[FieldInstance, BlockInstance, GroupInstance]


@dataclass(frozen=True)
class Node:
    """
    A named node and its instances.

    Instances are kept in ascending id order. Ids are unique but may
    have gaps.
    """

    node_id: str
    instances: tuple[Instance, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.instances, tuple):
            object.__setattr__(self, "instances", tuple(self.instances))

    def get_instance(self, instance_id: int) -> Instance | None:
        """Get an instance by id."""
        for instance in self.instances:
            if instance.id == instance_id:
                return instance
        return None

    def has_instance(self, instance_id: int) -> bool:
        return self.get_instance(instance_id) is not None

    def instance_ids(self) -> list[int]:
        return [instance.id for instance in self.instances]

    def next_instance_id(self) -> int:
        """Lowest id greater than every id in use."""
        return max(self.instance_ids(), default=-1) + 1

    def with_instance(self, instance: Instance) -> Node:
        """
        Return a copy with the instance replaced in place, or inserted
        before the first instance with a higher id.
        """
        instances = list(self.instances)
        for i, existing in enumerate(instances):
            if existing.id == instance.id:
                instances[i] = instance
                return replace(self, instances=tuple(instances))
        position = len(instances)
        for i, existing in enumerate(instances):
            if existing.id > instance.id:
                position = i
                break
        instances.insert(position, instance)
        return replace(self, instances=tuple(instances))

    def without_instance(self, instance_id: int) -> Node:
        """Return a copy without the given instance. Unknown ids are ignored."""
        return replace(
            self,
            instances=tuple(i for i in self.instances if i.id != instance_id),
        )
