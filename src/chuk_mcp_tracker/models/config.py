"""
Module configuration - the per-format schema.

A configuration describes which nodes a module of that format has, how
they nest, which source command each field is bound to, and which
compiler turns a module into bytes for the target machine.

The engine only reads configurations. Order lists are not declared:
every group with block children gets a derived <GROUP>_ORDER block.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import (
    BaseModel,
    Field,
    PrivateAttr,
    ValidationInfo,
    field_validator,
    model_validator,
)

from chuk_mcp_tracker.constants import (
    ORDER_LENGTH_SUFFIX,
    ORDER_REFERENCE_PREFIX,
    ORDER_SUFFIX,
    ROOT_NODE_ID,
    CommandType,
    NodeKind,
)
from chuk_mcp_tracker.models.path import NodePath

if TYPE_CHECKING:
    from chuk_mcp_tracker.compiler.backend import ModuleCompiler

NOTE_NAMES = ["c", "c#", "d", "d#", "e", "f", "f#", "g", "g#", "a", "a#", "b"]


def chromatic_keys(octaves: int = 8) -> dict[str, int]:
    """Build a note-name key table: c0 -> 0, c#0 -> 1, ... b7 -> 95."""
    return {
        f"{name}{octave}": octave * 12 + index
        for octave in range(octaves)
        for index, name in enumerate(NOTE_NAMES)
    }


class SourceCommand(BaseModel):
    """
    A command definition that fields are bound to.

    The command decides the field's value type, its default, and how a
    value is encoded by a compiler.
    """

    id: str = Field(..., description="Command identifier")
    command_type: CommandType = Field(..., alias="type", description="Value type")
    bits: int = Field(8, gt=0, le=64, description="Encoded width in bits")
    default: Any = Field(None, description="Default value")
    keys: dict[str, int] | None = Field(
        None, validate_default=True, description="Key table for key commands"
    )
    reference_to: str | None = Field(None, description="Referenced node for reference commands")
    description: str = Field("", description="Human-readable description")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("keys")
    @classmethod
    def default_key_table(
        cls, v: dict[str, int] | None, info: ValidationInfo
    ) -> dict[str, int] | None:
        """Key commands without a table get the chromatic one."""
        if v is None and info.data.get("command_type") in (CommandType.KEY, CommandType.UKEY):
            return chromatic_keys()
        return v

    @property
    def byte_width(self) -> int:
        return (self.bits + 7) // 8

    def encode(self, value: Any) -> int:
        """
        Map a field value to the integer the compiler emits.

        Empty values fall back to the command default, then to 0.
        """
        if value is None:
            value = self.default
        if value is None:
            return 0
        if self.command_type in (CommandType.KEY, CommandType.UKEY):
            assert self.keys is not None
            if isinstance(value, str):
                return self.keys[value]
            return int(value)
        if self.command_type == CommandType.TRIGGER:
            return 1 if value else 0
        return int(value)


class InodeConfig(BaseModel):
    """Schema entry for one node."""

    id: str = Field(..., description="Node identifier")
    kind: NodeKind = Field(..., description="field, block or group")
    parent: str | None = Field(None, description="Parent node id")
    children: list[str] = Field(default_factory=list, description="Ordered child node ids")
    command: str | None = Field(None, description="Source command id for fields")
    instances: int = Field(1, ge=0, description="Instances created in a fresh module")


class ModuleConfig(BaseModel):
    """
    A complete format configuration.

    Provides the configuration interface consumed by the engine:
    node_type, child_ids, source_command, default_value, compiler.
    """

    id: str = Field(..., description="Configuration identifier")
    version: int = Field(1, description="Configuration version")
    description: str = Field("", description="Human-readable description")
    compiler_name: str | None = Field(None, alias="compiler", description="Registered compiler")
    commands: dict[str, SourceCommand] = Field(default_factory=dict)
    inodes: dict[str, InodeConfig] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    _compiler: Any = PrivateAttr(default=None)

    @model_validator(mode="after")
    def derive_order_nodes(self) -> ModuleConfig:
        """Add the <GROUP>_ORDER block to every group that has blocks."""
        if ROOT_NODE_ID not in self.inodes:
            self.inodes[ROOT_NODE_ID] = InodeConfig(id=ROOT_NODE_ID, kind=NodeKind.GROUP)

        for group in list(self.inodes.values()):
            if group.kind != NodeKind.GROUP:
                continue
            order_id = f"{group.id}{ORDER_SUFFIX}"
            if order_id in self.inodes:
                continue
            blocks = [
                child
                for child in group.children
                if self.inodes[child].kind == NodeKind.BLOCK
            ]
            if not blocks:
                continue

            length_id = f"{group.id}{ORDER_LENGTH_SUFFIX}"
            columns = [length_id] + [f"{ORDER_REFERENCE_PREFIX}{b}" for b in blocks]
            self.commands.setdefault(
                length_id,
                SourceCommand(id=length_id, type=CommandType.UINT, bits=8),
            )
            self.inodes[length_id] = InodeConfig(
                id=length_id, kind=NodeKind.FIELD, parent=order_id, command=length_id
            )
            for block in blocks:
                ref_id = f"{ORDER_REFERENCE_PREFIX}{block}"
                self.commands.setdefault(
                    ref_id,
                    SourceCommand(
                        id=ref_id, type=CommandType.REFERENCE, bits=16, reference_to=block
                    ),
                )
                self.inodes[ref_id] = InodeConfig(
                    id=ref_id, kind=NodeKind.FIELD, parent=order_id, command=ref_id
                )
            self.inodes[order_id] = InodeConfig(
                id=order_id, kind=NodeKind.BLOCK, parent=group.id, children=columns
            )
            group.children.append(order_id)
        return self

    # -- configuration interface -------------------------------------------

    def get_inode(self, node_id: str) -> InodeConfig:
        """
        Get the schema entry for a node.

        Raises:
            KeyError: if the node id is not part of this configuration
        """
        try:
            return self.inodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node id: {node_id}") from None

    def node_type(self, node_id: str) -> NodeKind:
        return self.get_inode(node_id).kind

    def child_ids(self, node_id: str) -> list[str]:
        return list(self.get_inode(node_id).children)

    def source_command(self, field_id: str) -> SourceCommand:
        inode = self.get_inode(field_id)
        command_id = inode.command or field_id
        try:
            return self.commands[command_id]
        except KeyError:
            raise KeyError(f"No source command for field {field_id}") from None

    def default_value(self, field_id: str) -> Any:
        return self.source_command(field_id).default

    @property
    def compiler(self) -> ModuleCompiler | None:
        return self._compiler

    def attach_compiler(self, compiler: ModuleCompiler | None) -> None:
        self._compiler = compiler

    # -- schema helpers ----------------------------------------------------

    def parent_id(self, node_id: str) -> str | None:
        return self.get_inode(node_id).parent

    def block_width(self, block_id: str) -> int:
        return len(self.get_inode(block_id).children)

    def column_index(self, block_id: str, field_id: str) -> int:
        """
        Column of a field within its block.

        Raises:
            KeyError: if the field is not a column of the block
        """
        columns = self.child_ids(block_id)
        if field_id not in columns:
            raise KeyError(f"{field_id} is not a field of block {block_id}")
        return columns.index(field_id)

    def order_id(self, group_id: str) -> str:
        return f"{group_id}{ORDER_SUFFIX}"

    def is_order_node(self, node_id: str) -> bool:
        parent = self.parent_id(node_id)
        return parent is not None and node_id == self.order_id(parent)

    def group_blocks(self, group_id: str) -> list[str]:
        """Non-order block children of a group, in order-column order."""
        return [
            child
            for child in self.child_ids(group_id)
            if self.node_type(child) == NodeKind.BLOCK and not self.is_order_node(child)
        ]

    def default_path(self, node_id: str, instance_id: int = 0) -> NodePath:
        """
        Path to an instance of `node_id`, taking instance 0 of every ancestor.
        """
        chain = [node_id]
        parent = self.parent_id(node_id)
        while parent is not None:
            chain.append(parent)
            parent = self.parent_id(parent)
        chain.reverse()
        if chain[0] != ROOT_NODE_ID:
            chain.insert(0, ROOT_NODE_ID)
        steps = [(nid, 0) for nid in chain[:-1]] + [(chain[-1], instance_id)]
        return NodePath(tuple(steps))


class ConfigMetadata(BaseModel):
    """Lightweight configuration metadata for listing."""

    id: str
    version: int
    description: str = ""
    compiler: str | None = None
    path: str | None = None

    @classmethod
    def from_config(cls, config: ModuleConfig, path: str | None = None) -> ConfigMetadata:
        return cls(
            id=config.id,
            version=config.version,
            description=config.description,
            compiler=config.compiler_name,
            path=path,
        )
