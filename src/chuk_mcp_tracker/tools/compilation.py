"""
Compilation tools - MCP tools for building module binaries.

Tools for compiling modules with their configuration's compiler, exporting
binaries and listings, and building preview binaries of a single row or
order position.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from chuk_mcp_tracker.compiler import compile_module, export_asm, export_bin, list_compilers
from chuk_mcp_tracker.constants import DEFAULT_ORIGIN, ErrorMessages, SuccessMessages
from chuk_mcp_tracker.module import ModuleManager
from chuk_mcp_tracker.module.document import Module
from chuk_mcp_tracker.preview import derive_single_pattern, derive_single_row

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def register_compilation_tools(
    mcp: ChukMCPServer,
    manager: ModuleManager,
    output_dir: Path,
) -> dict[str, Any]:
    """
    Register compilation/export tools with the MCP server.

    Args:
        mcp: The MCP server instance
        manager: The module manager
        output_dir: Directory for output files

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}

    async def get_module(name: str) -> Module:
        module = await manager.get(name)
        if module is None:
            raise ValueError(ErrorMessages.MODULE_NOT_FOUND.format(name=name))
        return module

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_list_compilers() -> str:
        """
        List registered compiler backends.

        Returns:
            JSON string with compiler names

        Example:
            tracker_list_compilers()
        """
        try:
            names = list_compilers()
            return json.dumps({"status": "success", "compilers": names, "count": len(names)})
        except Exception as e:
            logger.exception("Failed to list compilers")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_list_compilers"] = tracker_list_compilers

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_compile(module: str, origin: int = DEFAULT_ORIGIN) -> str:
        """
        Compile a module and return the bytes.

        Args:
            module: Module name
            origin: Load address (default: 0x8000)

        Returns:
            JSON string with size, hex data and symbol table

        Example:
            tracker_compile(module="my-song", origin=32768)
        """
        try:
            mod = await get_module(module)
            result = compile_module(mod, origin)
            return json.dumps(
                {
                    "status": "success",
                    "size": result.size,
                    "origin": result.origin,
                    "data": result.data.hex(),
                    "symbols": result.symbols,
                    "message": SuccessMessages.MODULE_COMPILED.format(
                        name=module, size=result.size, origin=origin
                    ),
                }
            )
        except Exception as e:
            logger.exception("Failed to compile module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_compile"] = tracker_compile

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_export_bin(
        module: str,
        output_name: str | None = None,
        origin: int = DEFAULT_ORIGIN,
    ) -> str:
        """
        Compile a module to a binary file.

        Args:
            module: Module name
            output_name: Optional output filename (without .bin extension)
            origin: Load address (default: 0x8000)

        Returns:
            JSON string with the file path and size

        Example:
            tracker_export_bin(module="my-song")
        """
        try:
            mod = await get_module(module)
            path = export_bin(mod, output_dir / f"{output_name or module}.bin", origin)
            return json.dumps(
                {
                    "status": "success",
                    "path": str(path),
                    "size": path.stat().st_size,
                    "message": SuccessMessages.MODULE_EXPORTED.format(name=module, path=path),
                }
            )
        except Exception as e:
            logger.exception("Failed to export binary")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_export_bin"] = tracker_export_bin

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_export_asm(
        module: str,
        output_name: str | None = None,
        origin: int = DEFAULT_ORIGIN,
    ) -> str:
        """
        Compile a module to an assembly listing.

        The listing has an org line, a label per symbol and db lines for
        the data.

        Args:
            module: Module name
            output_name: Optional output filename (without .asm extension)
            origin: Load address (default: 0x8000)

        Returns:
            JSON string with the file path

        Example:
            tracker_export_asm(module="my-song")
        """
        try:
            mod = await get_module(module)
            path = export_asm(mod, output_dir / f"{output_name or module}.asm", origin)
            return json.dumps(
                {
                    "status": "success",
                    "path": str(path),
                    "message": SuccessMessages.MODULE_EXPORTED.format(name=module, path=path),
                }
            )
        except Exception as e:
            logger.exception("Failed to export listing")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_export_asm"] = tracker_export_asm

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_preview_row(
        module: str,
        group: str,
        order_pos: int,
        row: int,
        origin: int = DEFAULT_ORIGIN,
    ) -> str:
        """
        Compile a single row for preview.

        The module is reduced to one row of the patterns playing at
        `order_pos`; the module itself is not changed.

        Args:
            module: Module name
            group: Group owning the order list (e.g., 'PATTERNS')
            order_pos: Order list position
            row: Row within the patterns
            origin: Load address (default: 0x8000)

        Returns:
            JSON string with size and hex data

        Example:
            tracker_preview_row(module="my-song", group="PATTERNS", order_pos=0, row=4)
        """
        try:
            mod = await get_module(module)
            derived = derive_single_row(mod.tree, mod.config, group, order_pos, row)
            result = compile_module(mod.with_tree(derived), origin)
            return json.dumps(
                {
                    "status": "success",
                    "order_pos": order_pos,
                    "row": row,
                    "size": result.size,
                    "data": result.data.hex(),
                }
            )
        except Exception as e:
            logger.exception("Failed to preview row")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_preview_row"] = tracker_preview_row

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_preview_pattern(
        module: str,
        group: str,
        order_pos: int,
        origin: int = DEFAULT_ORIGIN,
    ) -> str:
        """
        Compile a single order position for preview.

        The order list is reduced to the entry at `order_pos`; the
        patterns it references play in full.

        Args:
            module: Module name
            group: Group owning the order list (e.g., 'PATTERNS')
            order_pos: Order list position
            origin: Load address (default: 0x8000)

        Returns:
            JSON string with size and hex data

        Example:
            tracker_preview_pattern(module="my-song", group="PATTERNS", order_pos=2)
        """
        try:
            mod = await get_module(module)
            derived = derive_single_pattern(mod.tree, mod.config, group, order_pos)
            result = compile_module(mod.with_tree(derived), origin)
            return json.dumps(
                {
                    "status": "success",
                    "order_pos": order_pos,
                    "size": result.size,
                    "data": result.data.hex(),
                }
            )
        except Exception as e:
            logger.exception("Failed to preview pattern")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_preview_pattern"] = tracker_preview_pattern

    return tools
