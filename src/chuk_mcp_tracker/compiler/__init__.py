"""
Compilation pipeline - turns modules into bytes for the target machine.

The pipeline:
    Module → config.compiler → list[OutputNode] → bytes / .bin / .asm

Backends register by name (see backend.register_compiler); the
configuration's `compiler` key selects one at load time.
"""

# Output nodes first (no circular dependencies)
from chuk_mcp_tracker.compiler.output import (
    ByteNode,
    CommentNode,
    OutputNode,
    SymbolNode,
    flatten,
    output_from_dict,
    symbol_table,
    to_asm,
)


def __getattr__(name: str):
    """Lazy imports for the pipeline and backends to avoid circular dependencies."""
    if name in ("CompileResult", "compile_module", "compile_to_bytes", "export_asm", "export_bin"):
        from chuk_mcp_tracker.compiler import pipeline

        return getattr(pipeline, name)
    if name in (
        "ModuleCompiler",
        "get_compiler",
        "list_compilers",
        "register_compiler",
        "unregister_compiler",
    ):
        from chuk_mcp_tracker.compiler import backend

        return getattr(backend, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Output
    "ByteNode",
    "CommentNode",
    "OutputNode",
    "SymbolNode",
    "flatten",
    "output_from_dict",
    "symbol_table",
    "to_asm",
    # Backends (lazy loaded)
    "ModuleCompiler",
    "get_compiler",
    "list_compilers",
    "register_compiler",
    "unregister_compiler",
    # Pipeline (lazy loaded)
    "CompileResult",
    "compile_module",
    "compile_to_bytes",
    "export_asm",
    "export_bin",
]
