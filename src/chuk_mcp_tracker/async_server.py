#!/usr/bin/env python3
"""
Async Tracker MCP Server using chuk-mcp-server

This server provides MCP tools for editing chiptune tracker modules. A
module's layout (global fields, pattern channels, order lists) comes from
a format configuration, and a compiler named by the configuration turns
the module into bytes for the target player.

The server provides tools for:
- Discovering configurations and creating modules
- Editing fields, pattern cells and rows with undo/redo
- Validating modules against their configuration
- Compiling modules to binaries and assembly listings
- Previewing a single row or order position
"""

import logging
from pathlib import Path

from chuk_mcp_server import ChukMCPServer

from chuk_mcp_tracker.config import ConfigLoader
from chuk_mcp_tracker.module import ModuleManager
from chuk_mcp_tracker.tools import (
    register_compilation_tools,
    register_editing_tools,
    register_module_tools,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer("chuk-mcp-tracker")

# Paths - use standard project structure
BASE_PATH = Path.cwd()
MODULES_DIR = BASE_PATH / "modules"
CONFIGS_DIR = BASE_PATH / "configs"
OUTPUT_DIR = BASE_PATH / "output"
CONFIG_LIBRARY_PATH = Path(__file__).parent / "config" / "library"

# Create managers
config_loader = ConfigLoader(
    library_path=CONFIG_LIBRARY_PATH,
    project_path=CONFIGS_DIR,
)
module_manager = ModuleManager(MODULES_DIR, config_loader)

# Register all tools
module_tools = register_module_tools(mcp, module_manager, config_loader)
editing_tools = register_editing_tools(mcp, module_manager)
compilation_tools = register_compilation_tools(mcp, module_manager, OUTPUT_DIR)

# Export tool functions for direct access
tracker_list_configs = module_tools["tracker_list_configs"]
tracker_describe_config = module_tools["tracker_describe_config"]
tracker_create_module = module_tools["tracker_create_module"]
tracker_get_module = module_tools["tracker_get_module"]
tracker_list_modules = module_tools["tracker_list_modules"]
tracker_save_module = module_tools["tracker_save_module"]
tracker_delete_module = module_tools["tracker_delete_module"]
tracker_duplicate_module = module_tools["tracker_duplicate_module"]
tracker_validate_module = module_tools["tracker_validate_module"]

tracker_get_node = editing_tools["tracker_get_node"]
tracker_set = editing_tools["tracker_set"]
tracker_insert = editing_tools["tracker_insert"]
tracker_remove = editing_tools["tracker_remove"]
tracker_apply_action = editing_tools["tracker_apply_action"]
tracker_add_pattern = editing_tools["tracker_add_pattern"]
tracker_undo = editing_tools["tracker_undo"]
tracker_redo = editing_tools["tracker_redo"]

tracker_list_compilers = compilation_tools["tracker_list_compilers"]
tracker_compile = compilation_tools["tracker_compile"]
tracker_export_bin = compilation_tools["tracker_export_bin"]
tracker_export_asm = compilation_tools["tracker_export_asm"]
tracker_preview_row = compilation_tools["tracker_preview_row"]
tracker_preview_pattern = compilation_tools["tracker_preview_pattern"]

logger.info("CHUK Tracker MCP Server initialized")
logger.info(f"  Config library: {CONFIG_LIBRARY_PATH}")
logger.info(f"  Modules dir: {MODULES_DIR}")
logger.info(f"  Output dir: {OUTPUT_DIR}")
