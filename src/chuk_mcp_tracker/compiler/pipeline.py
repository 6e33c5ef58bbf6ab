"""
Compilation pipeline - turns a module into bytes for the target machine.

The pipeline:
    Module (tree + config)
    → config.compiler.compile(module, origin, symbols)
    → list[OutputNode]
    → bytes / binary file / assembly listing

The compiler is whatever the configuration carries. Compiler errors are
not caught here.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from chuk_mcp_tracker.compiler.output import OutputNode, flatten, symbol_table, to_asm
from chuk_mcp_tracker.constants import DEFAULT_ORIGIN, MODULE_SYMBOL, ErrorMessages

if TYPE_CHECKING:
    from chuk_mcp_tracker.module.document import Module

logger = logging.getLogger(__name__)


@dataclass
class CompileResult:
    """Result of compiling a module."""

    nodes: list[OutputNode]
    data: bytes
    origin: int
    symbols: dict[str, int] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.data)

    def to_asm(self) -> str:
        return to_asm(self.nodes, self.origin)


def compile_module(
    module: Module,
    origin: int = DEFAULT_ORIGIN,
    extra_symbols: Mapping[str, Any] | None = None,
) -> CompileResult:
    """
    Compile a module with its configuration's compiler.

    Args:
        module: Module to compile
        origin: Load address of the output
        extra_symbols: Additional symbols passed to the compiler

    Returns:
        CompileResult with the output nodes and the flattened bytes

    Raises:
        ValueError: if the configuration has no compiler
    """
    compiler = module.config.compiler
    if compiler is None:
        raise ValueError(ErrorMessages.NO_COMPILER.format(config=module.config.id))

    symbols: dict[str, Any] = {MODULE_SYMBOL: module, **(extra_symbols or {})}
    logger.debug(f"Compiling {module.name} with {type(compiler).__name__} at ${origin:04x}")
    nodes = list(compiler.compile(module, origin, symbols))

    data = flatten(nodes)
    logger.debug(f"Compiled {module.name}: {len(nodes)} nodes, {len(data)} bytes")
    return CompileResult(nodes=nodes, data=data, origin=origin, symbols=symbol_table(nodes))


def compile_to_bytes(module: Module, origin: int = DEFAULT_ORIGIN) -> bytes:
    """Compile a module and return the concatenated bytes."""
    return compile_module(module, origin).data


def export_bin(module: Module, path: str | Path, origin: int = DEFAULT_ORIGIN) -> Path:
    """
    Compile a module and write the bytes to a file.

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(compile_to_bytes(module, origin))
    logger.info(f"Exported {module.name} to {path}")
    return path


def export_asm(module: Module, path: str | Path, origin: int = DEFAULT_ORIGIN) -> Path:
    """
    Compile a module and write an assembly listing.

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(compile_module(module, origin).to_asm())
    logger.info(f"Exported listing of {module.name} to {path}")
    return path
