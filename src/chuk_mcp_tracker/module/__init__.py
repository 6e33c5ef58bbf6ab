"""
Modules - documents, generation, persistence and validation.
"""

from chuk_mcp_tracker.module.document import Module
from chuk_mcp_tracker.module.generator import generate_tree
from chuk_mcp_tracker.module.manager import ModuleManager, ModuleMetadata
from chuk_mcp_tracker.module.serializer import (
    module_to_value,
    tree_from_value,
    tree_to_value,
)
from chuk_mcp_tracker.module.validator import (
    ModuleValidator,
    ValidationResult,
    validate_module,
)

__all__ = [
    "Module",
    "ModuleManager",
    "ModuleMetadata",
    "ModuleValidator",
    "ValidationResult",
    "generate_tree",
    "module_to_value",
    "tree_from_value",
    "tree_to_value",
    "validate_module",
]
