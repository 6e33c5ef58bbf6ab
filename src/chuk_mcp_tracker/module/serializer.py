"""
Module value format.

A module is stored as a nested list:

    ["mdal-module", {"version": 2, "config": "Beeper2", "config-version": 1},
     ["BPM", 140],
     ["PATTERNS",
      ["CH1", [["NOTE1", "c4"]], 3, [["NOTE1", "e4"]], 4],
      ["CH1", {"id": 1}, 8],
      ["PATTERNS_ORDER", [["PATTERNS_LENGTH", 8], ["R_CH1", 0]]]]]

Each instance is a form `[node_id, attributes?, payload...]`. The
attribute mapping holds `id` and `name` and is left out for an unnamed
instance 0. Field payload is the value itself (nothing when unset), block
payload is one entry per row - the `[field, value]` pairs of its non-empty
cells, or an integer counting a run of all-empty rows - and group payload
is the forms of its children.

Only lists, dicts and scalars appear in the value, so it can be dumped
with yaml.safe_dump as is.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from chuk_mcp_tracker.constants import (
    MODULE_FORMAT_TAG,
    MODULE_FORMAT_VERSION,
    ROOT_NODE_ID,
    NodeKind,
)
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import (
    EMPTY,
    BlockInstance,
    FieldInstance,
    GroupInstance,
    Instance,
    Node,
    is_empty_row,
)

if TYPE_CHECKING:
    from chuk_mcp_tracker.module.document import Module


class ModuleHeader(BaseModel):
    """Header of a stored module."""

    format: str = Field(MODULE_FORMAT_TAG, description="Format tag")
    version: int = Field(MODULE_FORMAT_VERSION, description="Format version")
    config: str = Field(..., description="Configuration id")
    config_version: int = Field(1, alias="config-version", description="Configuration version")

    model_config = {"populate_by_name": True}


def read_header(value: list[Any]) -> ModuleHeader:
    """
    Read the header of a module value.

    Raises:
        ValueError: if the value is not a module of a supported version
    """
    if not isinstance(value, list) or len(value) < 2 or value[0] != MODULE_FORMAT_TAG:
        raise ValueError("Not a module: missing format tag")
    if not isinstance(value[1], dict):
        raise ValueError("Not a module: missing header")
    header = ModuleHeader(format=value[0], **value[1])
    if header.version > MODULE_FORMAT_VERSION:
        raise ValueError(f"Unsupported module format version: {header.version}")
    return header


def module_to_value(module: Module) -> list[Any]:
    """Serialize a module to its value form."""
    return tree_to_value(module.tree, module.config)


def tree_to_value(tree: Node, config: ModuleConfig) -> list[Any]:
    """Serialize a tree to the module value form for `config`."""
    header = {
        "version": MODULE_FORMAT_VERSION,
        "config": config.id,
        "config-version": config.version,
    }
    root = tree.get_instance(0)
    if not isinstance(root, GroupInstance):
        raise ValueError("Tree has no root group instance")
    forms: list[Any] = []
    for node in root.nodes:
        forms.extend(node_to_forms(config, node))
    return [MODULE_FORMAT_TAG, header, *forms]


def tree_from_value(value: list[Any], config: ModuleConfig) -> Node:
    """
    Parse a module value into a tree.

    Raises:
        ValueError: if the value is malformed or names unknown nodes
    """
    read_header(value)
    nodes = _parse_children(config, ROOT_NODE_ID, value[2:])
    return Node(ROOT_NODE_ID, (GroupInstance(0, nodes),))


def node_to_forms(config: ModuleConfig, node: Node) -> list[list[Any]]:
    """One form per instance of the node."""
    return [instance_to_form(config, node.node_id, instance) for instance in node.instances]


def instance_to_form(config: ModuleConfig, node_id: str, instance: Instance) -> list[Any]:
    form: list[Any] = [node_id]
    if instance.id != 0 or instance.name is not None:
        attributes: dict[str, Any] = {"id": instance.id}
        if instance.name is not None:
            attributes["name"] = instance.name
        form.append(attributes)

    if isinstance(instance, FieldInstance):
        if instance.value is not EMPTY:
            form.append(instance.value)
    elif isinstance(instance, BlockInstance):
        form.extend(_rows_to_entries(config.child_ids(node_id), instance.rows))
    elif isinstance(instance, GroupInstance):
        for child in instance.nodes:
            form.extend(node_to_forms(config, child))
    else:
        raise TypeError(f"Not a node instance: {instance!r}")
    return form


def form_to_instance(config: ModuleConfig, form: list[Any]) -> tuple[str, Instance]:
    """Parse one instance form, returning the node id and the instance."""
    if not isinstance(form, list) or not form or not isinstance(form[0], str):
        raise ValueError(f"Malformed node form: {form!r}")
    node_id = form[0]
    rest = form[1:]
    instance_id, name = 0, None
    if rest and isinstance(rest[0], dict):
        instance_id = int(rest[0].get("id", 0))
        name = rest[0].get("name")
        rest = rest[1:]

    try:
        kind = config.node_type(node_id)
    except KeyError as e:
        raise ValueError(str(e)) from None

    if kind == NodeKind.FIELD:
        if len(rest) > 1:
            raise ValueError(f"Field {node_id} has more than one value")
        return node_id, FieldInstance(instance_id, rest[0] if rest else EMPTY, name)
    if kind == NodeKind.BLOCK:
        rows = _entries_to_rows(config.child_ids(node_id), rest)
        return node_id, BlockInstance(instance_id, rows, name)
    return node_id, GroupInstance(instance_id, _parse_children(config, node_id, rest), name)


def _parse_children(config: ModuleConfig, group_id: str, forms: list[Any]) -> tuple[Node, ...]:
    """
    Parse child forms of a group into nodes in schema order.

    Schema children without forms become nodes with no instances.
    """
    children = config.child_ids(group_id)
    collected: dict[str, list[Instance]] = {child: [] for child in children}
    for form in forms:
        node_id, instance = form_to_instance(config, form)
        if node_id not in collected:
            raise ValueError(f"{node_id} is not a child of {group_id}")
        collected[node_id].append(instance)
    return tuple(
        Node(node_id, tuple(sorted(instances, key=lambda i: i.id)))
        for node_id, instances in collected.items()
    )


def _rows_to_entries(columns: list[str], rows: tuple[tuple[Any, ...], ...]) -> list[Any]:
    entries: list[Any] = []
    run = 0
    for row in rows:
        if is_empty_row(row):
            run += 1
            continue
        if run:
            entries.append(run)
            run = 0
        entries.append([[field, value] for field, value in zip(columns, row) if value is not EMPTY])
    if run:
        entries.append(run)
    return entries


def _entries_to_rows(columns: list[str], entries: list[Any]) -> tuple[tuple[Any, ...], ...]:
    width = len(columns)
    rows: list[tuple[Any, ...]] = []
    for entry in entries:
        if isinstance(entry, int) and not isinstance(entry, bool):
            rows.extend([(EMPTY,) * width] * entry)
            continue
        if not isinstance(entry, list):
            raise ValueError(f"Malformed block row: {entry!r}")
        cells = [EMPTY] * width
        for field, value in entry:
            if field not in columns:
                raise ValueError(f"{field} is not a column of this block")
            cells[columns.index(field)] = value
        rows.append(tuple(cells))
    return tuple(rows)
