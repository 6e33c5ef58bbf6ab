"""
Compiler output nodes.

A compiler turns a module into an ordered list of output nodes:

- ByteNode: bytes to emit at the current address
- SymbolNode: a symbol definition (name = value)
- CommentNode: a comment for assembly listings

Only byte nodes contribute to the binary; symbols and comments exist for
listings, debugging and diffing.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from chuk_mcp_tracker.constants import OutputKind


@dataclass(frozen=True)
class ByteNode:
    """Emits bytes."""

    kind: ClassVar[OutputKind] = OutputKind.BYTES

    data: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "data": self.data.hex()}


@dataclass(frozen=True)
class SymbolNode:
    """Defines a symbol."""

    kind: ClassVar[OutputKind] = OutputKind.SYMBOL

    name: str
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "name": self.name, "value": self.value}


@dataclass(frozen=True)
class CommentNode:
    """A comment line."""

    kind: ClassVar[OutputKind] = OutputKind.COMMENT

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "text": self.text}


OutputNode = Union[ByteNode, SymbolNode, CommentNode]


def output_from_dict(d: dict[str, Any]) -> OutputNode:
    """Create an output node from its dict form."""
    kind = OutputKind(d["kind"])
    if kind == OutputKind.BYTES:
        return ByteNode(bytes.fromhex(d["data"]))
    if kind == OutputKind.SYMBOL:
        return SymbolNode(d["name"], d["value"])
    return CommentNode(d["text"])


def flatten(nodes: Iterable[OutputNode]) -> bytes:
    """Concatenate the byte nodes, in order."""
    return b"".join(node.data for node in nodes if isinstance(node, ByteNode))


def symbol_table(nodes: Iterable[OutputNode]) -> dict[str, int]:
    """Symbols defined by the output, later definitions winning."""
    return {node.name: node.value for node in nodes if isinstance(node, SymbolNode)}


def to_asm(nodes: Sequence[OutputNode], origin: int, bytes_per_line: int = 8) -> str:
    """
    Render output nodes as an assembly listing.

    Symbols at the current address become labels, others become equates.
    """
    lines = [f"    org ${origin:04x}"]
    address = origin
    for node in nodes:
        if isinstance(node, CommentNode):
            lines.append(f"; {node.text}")
        elif isinstance(node, SymbolNode):
            if node.value == address:
                lines.append(f"{node.name}:")
            else:
                lines.append(f"{node.name} equ ${node.value:04x}")
        elif isinstance(node, ByteNode):
            for start in range(0, len(node.data), bytes_per_line):
                chunk = node.data[start : start + bytes_per_line]
                lines.append("    db " + ",".join(f"${b:02x}" for b in chunk))
            address += len(node.data)
        else:
            raise TypeError(f"Not an output node: {node!r}")
    return "\n".join(lines) + "\n"
