"""
MCP tool implementations.

Tools are organized by domain:
- modules - Configuration discovery and module lifecycle
- editing - Set/insert/remove actions, undo and redo
- compilation - Binary and listing export, previews
"""

from chuk_mcp_tracker.tools.compilation import register_compilation_tools
from chuk_mcp_tracker.tools.editing import register_editing_tools
from chuk_mcp_tracker.tools.modules import register_module_tools

__all__ = [
    "register_compilation_tools",
    "register_editing_tools",
    "register_module_tools",
]
