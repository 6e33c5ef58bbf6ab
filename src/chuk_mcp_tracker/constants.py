"""
Constants and enums for the tracker module engine.

No magic strings - use enums for node kinds, command types and action verbs.
"""

from enum import Enum


class NodeKind(str, Enum):
    """
    Kinds of nodes in a module schema.

    Fields hold a single value, blocks hold rows of field values,
    groups hold child nodes.
    """

    FIELD = "field"
    BLOCK = "block"
    GROUP = "group"


class CommandType(str, Enum):
    """Source command types a field can be bound to."""

    INT = "int"  # Signed integer
    UINT = "uint"  # Unsigned integer
    KEY = "key"  # Note name mapped through a key table
    UKEY = "ukey"  # Key table lookup without arithmetic
    REFERENCE = "reference"  # Instance id of another node
    TRIGGER = "trigger"  # Set/unset flag
    STRING = "string"  # Free text
    LABEL = "label"  # Symbolic label


class ActionKind(str, Enum):
    """Verbs of edit actions."""

    SET = "set"
    INSERT = "insert"
    REMOVE = "remove"
    COMPOUND = "compound"


class OutputKind(str, Enum):
    """Kinds of compiler output nodes."""

    BYTES = "bytes"
    SYMBOL = "symbol"
    COMMENT = "comment"


# Top-level group of every module
ROOT_NODE_ID = "GLOBAL"

# Order list naming convention, derived from the owning group id
ORDER_SUFFIX = "_ORDER"
ORDER_LENGTH_SUFFIX = "_LENGTH"
ORDER_REFERENCE_PREFIX = "R_"

# Module value format header
MODULE_FORMAT_TAG = "mdal-module"
MODULE_FORMAT_VERSION = 2
MODULE_FILE_SUFFIX = ".mdmod.yaml"

# Fresh modules
DEFAULT_BLOCK_LENGTH = 16

# Compilation
DEFAULT_ORIGIN = 0x8000
MODULE_SYMBOL = "module"


class ErrorMessages:
    """Standardized error messages."""

    MODULE_NOT_FOUND = "Module '{name}' not found."
    CONFIG_NOT_FOUND = "Configuration '{config}' not found."
    COMPILER_NOT_FOUND = "Compiler '{compiler}' is not registered."
    NO_COMPILER = "Configuration '{config}' has no compiler."
    NOTHING_TO_UNDO = "Nothing to undo."
    NOTHING_TO_REDO = "Nothing to redo."


class SuccessMessages:
    """Standardized success messages."""

    MODULE_CREATED = "Created module '{name}' ({config})."
    MODULE_SAVED = "Saved module '{name}' to {path}."
    MODULE_COMPILED = "Compiled module '{name}': {size} bytes at ${origin:04x}."
    MODULE_EXPORTED = "Exported module '{name}' to {path}."
