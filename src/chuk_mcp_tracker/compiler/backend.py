"""
Compiler backends.

Each target format supplies a compiler object with a single `compile`
method. Backends register under a name; a configuration names its backend
and the loader attaches it when the configuration is loaded.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from chuk_mcp_tracker.constants import ErrorMessages

if TYPE_CHECKING:
    from chuk_mcp_tracker.compiler.output import OutputNode
    from chuk_mcp_tracker.module.document import Module


class ModuleCompiler(Protocol):
    """Turns a module into output nodes for one target format."""

    def compile(
        self, module: Module, origin: int, symbols: Mapping[str, Any]
    ) -> list[OutputNode]: ...


CompilerFactory = Callable[[], ModuleCompiler]

_REGISTRY: dict[str, CompilerFactory] = {}


def register_compiler(name: str) -> Callable[[CompilerFactory], CompilerFactory]:
    """
    Register a compiler factory under a name.

    Usable as a class decorator:

        @register_compiler("flat")
        class FlatCompiler: ...
    """

    def decorator(factory: CompilerFactory) -> CompilerFactory:
        _REGISTRY[name] = factory
        return factory

    return decorator


def unregister_compiler(name: str) -> None:
    _REGISTRY.pop(name, None)


def get_compiler(name: str) -> ModuleCompiler:
    """
    Create the compiler registered under `name`.

    Raises:
        KeyError: if no compiler has that name
    """
    # Built-in backends register on import
    import chuk_mcp_tracker.compiler.builtin  # noqa: F401

    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise KeyError(ErrorMessages.COMPILER_NOT_FOUND.format(compiler=name)) from None
    return factory()


def list_compilers() -> list[str]:
    import chuk_mcp_tracker.compiler.builtin  # noqa: F401

    return sorted(_REGISTRY)
