"""
Module Manager - handles module lifecycle.

Provides async operations for creating, loading, saving, and managing
modules. Modules are stored as `<name>.mdmod.yaml` files holding the
module value form.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import yaml

from chuk_mcp_tracker.config.loader import ConfigLoader
from chuk_mcp_tracker.constants import DEFAULT_BLOCK_LENGTH, MODULE_FILE_SUFFIX, ErrorMessages
from chuk_mcp_tracker.module.document import Module
from chuk_mcp_tracker.module.serializer import module_to_value, read_header, tree_from_value

logger = logging.getLogger(__name__)


class ModuleMetadata:
    """Lightweight metadata for listing modules."""

    def __init__(
        self,
        name: str,
        path: Path,
        config: str,
        config_version: int,
        modified: datetime,
    ):
        self.name = name
        self.path = path
        self.config = config
        self.config_version = config_version
        self.modified = modified

    def __repr__(self) -> str:
        return f"ModuleMetadata({self.name!r}, {self.config} v{self.config_version})"


class ModuleManager:
    """
    Manages module lifecycle with file persistence.

    Provides methods to create, load, save, and list modules.
    All I/O operations are async-ready.
    """

    def __init__(self, modules_dir: Path, config_loader: ConfigLoader | None = None):
        """
        Initialize the manager.

        Args:
            modules_dir: Directory for storing module files
            config_loader: Loader used to resolve module configurations
        """
        self.modules_dir = modules_dir
        self.config_loader = config_loader or ConfigLoader()
        self._cache: dict[str, Module] = {}

    async def create(
        self,
        name: str,
        config_id: str,
        block_length: int = DEFAULT_BLOCK_LENGTH,
    ) -> Module:
        """
        Create a new module.

        Args:
            name: Module name
            config_id: Configuration id (e.g., 'Beeper2')
            block_length: Rows per pattern block

        Returns:
            The created Module
        """
        config = self.config_loader.get_config(config_id)
        if config is None:
            raise ValueError(ErrorMessages.CONFIG_NOT_FOUND.format(config=config_id))

        module = Module.new(config, name=name, block_length=block_length)
        self._cache[name] = module
        return module

    async def get(self, name: str) -> Module | None:
        """
        Get a module by name.

        Checks cache first, then loads from file if not cached.

        Args:
            name: Module name

        Returns:
            The Module or None if not found
        """
        if name in self._cache:
            return self._cache[name]

        path = self._get_path(name)
        if path.exists():
            return await self.load(path)

        return None

    async def save(self, module: Module) -> Path:
        """
        Save a module to disk.

        Args:
            module: The module to save

        Returns:
            Path to the saved file
        """
        self.modules_dir.mkdir(parents=True, exist_ok=True)

        path = self._get_path(module.name)
        with open(path, "w") as f:
            yaml.safe_dump(module_to_value(module), f, default_flow_style=None, sort_keys=False)

        logger.debug(f"Saved module {module.name} to {path}")
        self._cache[module.name] = module
        return path

    async def load(self, path: Path) -> Module:
        """
        Load a module from a file.

        The module name is taken from the file name.

        Args:
            path: Path to the module file

        Returns:
            The loaded Module
        """
        with open(path) as f:
            value = yaml.safe_load(f)

        header = read_header(value)
        config = self.config_loader.get_config(header.config)
        if config is None:
            raise ValueError(ErrorMessages.CONFIG_NOT_FOUND.format(config=header.config))
        if header.config_version != config.version:
            logger.warning(
                f"{path} was written for {header.config} v{header.config_version}, "
                f"loading with v{config.version}"
            )

        module = Module(config, tree_from_value(value, config), name=self._name_from_path(path))
        logger.debug(f"Loaded module {module.name} from {path}")
        self._cache[module.name] = module
        return module

    async def list_modules(self) -> list[ModuleMetadata]:
        """
        List all modules in the directory.

        Returns:
            List of module metadata, most recently modified first
        """
        if not self.modules_dir.exists():
            return []

        result = []
        for path in self.modules_dir.glob(f"*{MODULE_FILE_SUFFIX}"):
            try:
                with open(path) as f:
                    header = read_header(yaml.safe_load(f))

                result.append(
                    ModuleMetadata(
                        name=self._name_from_path(path),
                        path=path,
                        config=header.config,
                        config_version=header.config_version,
                        modified=datetime.fromtimestamp(path.stat().st_mtime),
                    )
                )
            except Exception:
                # Skip files that can't be parsed
                continue

        return sorted(result, key=lambda m: m.modified, reverse=True)

    async def delete(self, name: str) -> bool:
        """
        Delete a module.

        Args:
            name: Module name

        Returns:
            True if deleted, False if not found
        """
        path = self._get_path(name)

        if path.exists():
            path.unlink()
            self._cache.pop(name, None)
            return True

        return self._cache.pop(name, None) is not None

    async def duplicate(self, name: str, new_name: str) -> Module:
        """
        Duplicate a module with a new name.

        The copy shares the original's tree, which is never mutated in place.
        """
        original = await self.get(name)
        if original is None:
            raise ValueError(ErrorMessages.MODULE_NOT_FOUND.format(name=name))

        module = Module(original.config, original.tree, name=new_name)
        self._cache[new_name] = module
        return module

    def _get_path(self, name: str) -> Path:
        """Get the file path for a module."""
        # Sanitize name for filename
        safe_name = name.replace(" ", "_").replace("/", "_")
        return self.modules_dir / f"{safe_name}{MODULE_FILE_SUFFIX}"

    @staticmethod
    def _name_from_path(path: Path) -> str:
        return path.name.removesuffix(MODULE_FILE_SUFFIX)
