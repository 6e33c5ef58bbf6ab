"""
Edit actions - the unit of document mutation and of undo/redo.

Every leaf action names the parent instance (by path) and a node id local
to it:

- parent is a group instance: the values address instances of the child
  node by instance id
- parent is a block instance and the node id is one of its fields: the
  values address cells of that column by row index
- parent is a block instance and the node id is the block itself: the
  values address whole rows by row index

Actions can be built from plain lists, e.g. the JSON an editor sends:

    ["set", "GLOBAL/0/PATTERNS/0/", "NOTE", [[0, "c4"], [4, "e4"]]]
    ["remove", "GLOBAL/0/PATTERNS/0/", "PATTERNS", [3]]
    ["compound", [...], [...]]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from chuk_mcp_tracker.constants import ActionKind
from chuk_mcp_tracker.exceptions import UnsupportedActionKind
from chuk_mcp_tracker.models.node import BlockInstance, FieldInstance, GroupInstance, Node
from chuk_mcp_tracker.models.path import NodePath, as_path


def _normalize_value(value: Any) -> Any:
    # Rows arrive as lists from JSON
    if isinstance(value, list):
        return tuple(_normalize_value(v) for v in value)
    return value


def _check_ids(ids: Any) -> None:
    for i in ids:
        if i < 0:
            raise ValueError(f"Negative instance id or row index: {i}")


def _plain(value: Any) -> Any:
    # Instance values render as mappings; the list form stays JSON-safe
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if isinstance(value, Node):
        return {"node": value.node_id, "instances": [_plain(i) for i in value.instances]}
    if isinstance(value, (FieldInstance, BlockInstance, GroupInstance)):
        form: dict[str, Any] = {"id": value.id, "payload": _plain(value.payload)}
        if value.name is not None:
            form["name"] = value.name
        return form
    return value


@dataclass(frozen=True)
class SetAction:
    """Replace instance payloads, cells or rows."""

    kind: ClassVar[ActionKind] = ActionKind.SET

    path: NodePath
    node_id: str
    values: tuple[tuple[int, Any], ...]

    def __post_init__(self) -> None:
        _check_ids(i for i, _ in self.values)

    def to_value(self) -> list[Any]:
        values = [[i, _plain(v)] for i, v in self.values]
        return [self.kind.value, str(self.path), self.node_id, values]


@dataclass(frozen=True)
class InsertAction:
    """Add instances, column cells or rows."""

    kind: ClassVar[ActionKind] = ActionKind.INSERT

    path: NodePath
    node_id: str
    values: tuple[tuple[int, Any], ...]

    def __post_init__(self) -> None:
        _check_ids(i for i, _ in self.values)

    def to_value(self) -> list[Any]:
        values = [[i, _plain(v)] for i, v in self.values]
        return [self.kind.value, str(self.path), self.node_id, values]


@dataclass(frozen=True)
class RemoveAction:
    """Delete instances, column cells or rows."""

    kind: ClassVar[ActionKind] = ActionKind.REMOVE

    path: NodePath
    node_id: str
    ids: tuple[int, ...]

    def __post_init__(self) -> None:
        _check_ids(self.ids)

    def to_value(self) -> list[Any]:
        return [self.kind.value, str(self.path), self.node_id, list(self.ids)]


@dataclass(frozen=True)
class CompoundAction:
    """Actions applied strictly in order."""

    kind: ClassVar[ActionKind] = ActionKind.COMPOUND

    actions: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.actions, tuple):
            object.__setattr__(self, "actions", tuple(self.actions))

    def __len__(self) -> int:
        return len(self.actions)

    def to_value(self) -> list[Any]:
        return [self.kind.value, *(a.to_value() for a in self.actions)]


EditAction = Union[SetAction, InsertAction, RemoveAction, CompoundAction]


def set_action(path: NodePath | str, node_id: str, values: Any) -> SetAction:
    """Build a SetAction from a path and (id, value) pairs."""
    pairs = tuple((int(i), _normalize_value(v)) for i, v in values)
    return SetAction(as_path(path), node_id, pairs)


def insert_action(path: NodePath | str, node_id: str, values: Any) -> InsertAction:
    """Build an InsertAction from a path and (id, value) pairs."""
    return InsertAction(
        as_path(path), node_id, tuple((int(i), _normalize_value(v)) for i, v in values)
    )


def remove_action(path: NodePath | str, node_id: str, ids: Any) -> RemoveAction:
    """Build a RemoveAction from a path and ids."""
    return RemoveAction(as_path(path), node_id, tuple(int(i) for i in ids))


def action_from_value(value: Any) -> EditAction:
    """
    Build an action from its list form.

    Raises:
        UnsupportedActionKind: if the verb is not set/insert/remove/compound
        ValueError: if the list is malformed
    """
    if not isinstance(value, (list, tuple)) or not value:
        raise ValueError(f"Malformed action: {value!r}")

    verb = value[0]
    try:
        kind = ActionKind(verb)
    except ValueError:
        raise UnsupportedActionKind(verb) from None

    if kind == ActionKind.COMPOUND:
        return CompoundAction(tuple(action_from_value(v) for v in value[1:]))

    if len(value) != 4:
        raise ValueError(f"Malformed {kind.value} action: {value!r}")
    _, path, node_id, payload = value
    if kind == ActionKind.SET:
        return set_action(path, node_id, payload)
    if kind == ActionKind.INSERT:
        return insert_action(path, node_id, payload)
    return remove_action(path, node_id, payload)
