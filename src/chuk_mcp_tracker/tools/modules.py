"""
Module tools - MCP tools for module lifecycle.

Tools for discovering configurations and creating, saving, listing and
validating modules.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from chuk_mcp_tracker.config import ConfigLoader
from chuk_mcp_tracker.constants import (
    DEFAULT_BLOCK_LENGTH,
    ROOT_NODE_ID,
    ErrorMessages,
    NodeKind,
    SuccessMessages,
)
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.module import ModuleManager, ModuleValidator, module_to_value

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def describe_node(config: ModuleConfig, node_id: str) -> dict[str, Any]:
    """Nested schema description of a node, for display."""
    inode = config.get_inode(node_id)
    info: dict[str, Any] = {"id": node_id, "kind": inode.kind.value}
    if inode.kind == NodeKind.FIELD:
        command = config.source_command(node_id)
        info["command"] = command.id
        info["type"] = command.command_type.value
        if command.default is not None:
            info["default"] = command.default
    else:
        info["children"] = [describe_node(config, child) for child in inode.children]
    return info


def register_module_tools(
    mcp: ChukMCPServer,
    manager: ModuleManager,
    config_loader: ConfigLoader,
) -> dict[str, Any]:
    """
    Register module lifecycle tools with the MCP server.

    Args:
        mcp: The MCP server instance
        manager: The module manager
        config_loader: The configuration loader

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}
    validator = ModuleValidator()

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_list_configs() -> str:
        """
        List available module configurations.

        A configuration defines the node layout of a module (global fields,
        pattern channels, columns) and the compiler used to build it.

        Returns:
            JSON string with configuration ids, versions and compilers

        Example:
            tracker_list_configs()
        """
        try:
            configs = config_loader.list_configs()
            return json.dumps(
                {
                    "status": "success",
                    "configs": [c.model_dump() for c in configs],
                    "count": len(configs),
                }
            )
        except Exception as e:
            logger.exception("Failed to list configurations")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_list_configs"] = tracker_list_configs

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_describe_config(config: str) -> str:
        """
        Describe a configuration's node tree.

        Args:
            config: Configuration id (e.g., 'Beeper2')

        Returns:
            JSON string with the nested node layout

        Example:
            tracker_describe_config(config="Beeper2")
        """
        try:
            cfg = config_loader.get_config(config)
            if cfg is None:
                message = ErrorMessages.CONFIG_NOT_FOUND.format(config=config)
                return json.dumps({"status": "error", "message": message})

            return json.dumps(
                {
                    "status": "success",
                    "config": {
                        "id": cfg.id,
                        "version": cfg.version,
                        "description": cfg.description,
                        "compiler": cfg.compiler_name,
                        "root": describe_node(cfg, ROOT_NODE_ID),
                    },
                }
            )
        except Exception as e:
            logger.exception("Failed to describe configuration")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_describe_config"] = tracker_describe_config

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_create_module(
        name: str,
        config: str,
        block_length: int = DEFAULT_BLOCK_LENGTH,
    ) -> str:
        """
        Create a new, empty module.

        Every field takes its default, every pattern block gets
        `block_length` empty rows, and each order list plays pattern 0
        once.

        Args:
            name: Unique name for the module
            config: Configuration id (e.g., 'Beeper2')
            block_length: Rows per pattern (default: 16)

        Returns:
            JSON string with module details

        Example:
            tracker_create_module(name="my-song", config="Beeper2", block_length=32)
        """
        try:
            module = await manager.create(name=name, config_id=config, block_length=block_length)
            return json.dumps(
                {
                    "status": "success",
                    "module": {
                        "name": module.name,
                        "config": module.config.id,
                        "block_length": block_length,
                    },
                    "message": SuccessMessages.MODULE_CREATED.format(
                        name=module.name, config=module.config.id
                    ),
                }
            )
        except Exception as e:
            logger.exception("Failed to create module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_create_module"] = tracker_create_module

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_get_module(name: str) -> str:
        """
        Get a module's full content.

        Returns the module in its value form: a header followed by one
        form per node instance.

        Args:
            name: Module name

        Returns:
            JSON string with the module value

        Example:
            tracker_get_module(name="my-song")
        """
        try:
            module = await manager.get(name)
            if module is None:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.MODULE_NOT_FOUND.format(name=name)}
                )

            return json.dumps(
                {
                    "status": "success",
                    "name": module.name,
                    "config": module.config.id,
                    "value": module_to_value(module),
                }
            )
        except Exception as e:
            logger.exception("Failed to get module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_get_module"] = tracker_get_module

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_list_modules() -> str:
        """
        List saved modules.

        Returns:
            JSON string with module names, configurations and modification times

        Example:
            tracker_list_modules()
        """
        try:
            modules = await manager.list_modules()
            return json.dumps(
                {
                    "status": "success",
                    "modules": [
                        {
                            "name": m.name,
                            "config": m.config,
                            "config_version": m.config_version,
                            "path": str(m.path),
                            "modified": m.modified.isoformat(),
                        }
                        for m in modules
                    ],
                    "count": len(modules),
                }
            )
        except Exception as e:
            logger.exception("Failed to list modules")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_list_modules"] = tracker_list_modules

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_save_module(name: str) -> str:
        """
        Save a module to disk.

        Args:
            name: Module name

        Returns:
            JSON string with the saved file path

        Example:
            tracker_save_module(name="my-song")
        """
        try:
            module = await manager.get(name)
            if module is None:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.MODULE_NOT_FOUND.format(name=name)}
                )

            path = await manager.save(module)
            return json.dumps(
                {
                    "status": "success",
                    "path": str(path),
                    "message": SuccessMessages.MODULE_SAVED.format(name=name, path=path),
                }
            )
        except Exception as e:
            logger.exception("Failed to save module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_save_module"] = tracker_save_module

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_delete_module(name: str) -> str:
        """
        Delete a module.

        Args:
            name: Module name

        Returns:
            JSON string confirming deletion

        Example:
            tracker_delete_module(name="old-song")
        """
        try:
            deleted = await manager.delete(name)
            if not deleted:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.MODULE_NOT_FOUND.format(name=name)}
                )
            return json.dumps({"status": "success", "message": f"Deleted module '{name}'"})
        except Exception as e:
            logger.exception("Failed to delete module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_delete_module"] = tracker_delete_module

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_duplicate_module(name: str, new_name: str) -> str:
        """
        Duplicate a module under a new name.

        Args:
            name: Module to copy
            new_name: Name of the copy

        Returns:
            JSON string confirming the copy

        Example:
            tracker_duplicate_module(name="my-song", new_name="my-song-v2")
        """
        try:
            module = await manager.duplicate(name, new_name)
            return json.dumps(
                {
                    "status": "success",
                    "module": {"name": module.name, "config": module.config.id},
                    "message": f"Duplicated '{name}' as '{new_name}'",
                }
            )
        except Exception as e:
            logger.exception("Failed to duplicate module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_duplicate_module"] = tracker_duplicate_module

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_validate_module(name: str) -> str:
        """
        Validate a module against its configuration.

        Checks node layout, row widths, field values and order list
        references.

        Args:
            name: Module name

        Returns:
            JSON string with validation issues

        Example:
            tracker_validate_module(name="my-song")
        """
        try:
            module = await manager.get(name)
            if module is None:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.MODULE_NOT_FOUND.format(name=name)}
                )

            result = validator.validate(module)
            return json.dumps(
                {
                    "status": "success",
                    "valid": result.is_valid,
                    "errors": len(result.errors),
                    "warnings": len(result.warnings),
                    "issues": [issue.to_dict() for issue in result.issues],
                }
            )
        except Exception as e:
            logger.exception("Failed to validate module")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_validate_module"] = tracker_validate_module

    return tools
