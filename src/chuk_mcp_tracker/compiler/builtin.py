"""
Built-in compiler backends.

FlatCompiler lays a module out in schema order with no player-specific
packing: fields are emitted as little-endian values of their command's
width, block instances as consecutive rows, and order list references as
16-bit addresses of the referenced block instances. It is the backend of
the bundled configurations and a reference for writing real ones.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from chuk_mcp_tracker.compiler.backend import register_compiler
from chuk_mcp_tracker.compiler.output import ByteNode, CommentNode, OutputNode, SymbolNode
from chuk_mcp_tracker.constants import ROOT_NODE_ID, CommandType, NodeKind
from chuk_mcp_tracker.models.config import ModuleConfig, SourceCommand
from chuk_mcp_tracker.models.node import EMPTY, BlockInstance, FieldInstance, GroupInstance

if TYPE_CHECKING:
    from chuk_mcp_tracker.module.document import Module

logger = logging.getLogger(__name__)

# Commands that produce no bytes
TEXT_COMMANDS = (CommandType.STRING, CommandType.LABEL)


def encode_value(command: SourceCommand, value: Any) -> bytes:
    """
    Encode a field value as little-endian bytes of the command's width.

    Raises:
        ValueError: if the value does not fit
    """
    number = command.encode(value)
    width = command.byte_width
    try:
        return number.to_bytes(width, "little", signed=command.command_type == CommandType.INT)
    except OverflowError:
        raise ValueError(
            f"Value {value!r} does not fit in {command.bits} bits ({command.id})"
        ) from None


def block_symbol(prefix: str, block_id: str, instance_id: int) -> str:
    return f"{prefix}{block_id}_{instance_id}"


@dataclass
class _Layout:
    """Addresses of block instances, keyed by (scope prefix, block id, instance id)."""

    addresses: dict[tuple[str, str, int], int] = field(default_factory=dict)
    size: int = 0


@register_compiler("flat")
class FlatCompiler:
    """Schema-order flat layout."""

    def compile(
        self, module: Module, origin: int, symbols: Mapping[str, Any]
    ) -> list[OutputNode]:
        config = module.config
        root = module.root

        # Sizes do not depend on values, so addresses are known before emitting
        layout = _Layout()
        self._measure_group(config, ROOT_NODE_ID, root, "", origin, layout)
        logger.debug(f"Flat layout: {layout.size} bytes, {len(layout.addresses)} blocks")

        nodes: list[OutputNode] = [
            CommentNode(f"{module.name} ({config.id} v{config.version})"),
            SymbolNode("module_start", origin),
        ]
        self._emit_group(config, ROOT_NODE_ID, root, "", layout, nodes)
        nodes.append(SymbolNode("module_end", origin + layout.size))
        return nodes

    # -- pass 1 ------------------------------------------------------------

    def _field_size(self, config: ModuleConfig, field_id: str) -> int:
        command = config.source_command(field_id)
        if command.command_type in TEXT_COMMANDS:
            return 0
        return command.byte_width

    def _measure_group(
        self,
        config: ModuleConfig,
        group_id: str,
        group: GroupInstance,
        prefix: str,
        address: int,
        layout: _Layout,
    ) -> int:
        start = address
        for node in group.nodes:
            kind = config.node_type(node.node_id)
            for instance in node.instances:
                if kind == NodeKind.FIELD:
                    address += self._field_size(config, node.node_id)
                elif kind == NodeKind.BLOCK:
                    assert isinstance(instance, BlockInstance)
                    layout.addresses[(prefix, node.node_id, instance.id)] = address
                    row_size = sum(
                        self._field_size(config, column)
                        for column in config.child_ids(node.node_id)
                    )
                    address += row_size * instance.row_count
                else:
                    assert isinstance(instance, GroupInstance)
                    address = self._measure_group(
                        config,
                        node.node_id,
                        instance,
                        self._scope(prefix, node.node_id, instance.id),
                        address,
                        layout,
                    )
        if group_id == ROOT_NODE_ID:
            layout.size = address - start
        return address

    @staticmethod
    def _scope(prefix: str, group_id: str, instance_id: int) -> str:
        if instance_id == 0:
            return prefix
        return f"{prefix}{group_id}{instance_id}_"

    # -- pass 2 ------------------------------------------------------------

    def _emit_group(
        self,
        config: ModuleConfig,
        group_id: str,
        group: GroupInstance,
        prefix: str,
        layout: _Layout,
        nodes: list[OutputNode],
    ) -> None:
        for node in group.nodes:
            kind = config.node_type(node.node_id)
            for instance in node.instances:
                if isinstance(instance, FieldInstance):
                    nodes.extend(
                        self._emit_field(config, node.node_id, instance.value, prefix, layout)
                    )
                elif isinstance(instance, BlockInstance):
                    nodes.append(
                        SymbolNode(
                            block_symbol(prefix, node.node_id, instance.id),
                            layout.addresses[(prefix, node.node_id, instance.id)],
                        )
                    )
                    columns = config.child_ids(node.node_id)
                    data = bytearray()
                    for row in instance.rows:
                        for column, value in zip(columns, row, strict=True):
                            for out in self._emit_field(config, column, value, prefix, layout):
                                if isinstance(out, ByteNode):
                                    data.extend(out.data)
                    if data:
                        nodes.append(ByteNode(bytes(data)))
                elif isinstance(instance, GroupInstance):
                    nodes.append(CommentNode(f"{node.node_id} {instance.id}"))
                    self._emit_group(
                        config,
                        node.node_id,
                        instance,
                        self._scope(prefix, node.node_id, instance.id),
                        layout,
                        nodes,
                    )
                else:
                    raise TypeError(f"Unexpected {kind.value} instance: {instance!r}")

    def _emit_field(
        self,
        config: ModuleConfig,
        field_id: str,
        value: Any,
        prefix: str,
        layout: _Layout,
    ) -> list[OutputNode]:
        command = config.source_command(field_id)
        if command.command_type == CommandType.STRING:
            return [CommentNode(f"{field_id}: {value}")] if value is not EMPTY else []
        if command.command_type == CommandType.LABEL:
            return [CommentNode(f"label {value}")] if value is not EMPTY else []
        if command.command_type == CommandType.REFERENCE and command.reference_to is not None:
            if value is EMPTY:
                return [ByteNode(bytes(command.byte_width))]
            key = (prefix, command.reference_to, int(value))
            if key not in layout.addresses:
                raise ValueError(
                    f"{field_id} references missing instance {value} of {command.reference_to}"
                )
            address = layout.addresses[key]
            return [ByteNode(address.to_bytes(command.byte_width, "little"))]
        return [ByteNode(encode_value(command, value))]
