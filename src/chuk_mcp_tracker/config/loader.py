"""
Configuration loader - discovers and loads module configurations.

Configurations can come from:
1. Built-in library (shipped with package)
2. Project configurations (user's configs directory)

A configuration file declares its node tree nested:

    id: Beeper2
    compiler: flat
    commands:
      NOTE: {type: key, bits: 8}
    nodes:
      - id: PATTERNS
        kind: group
        children:
          - id: CH1
            kind: block
            children:
              - {id: NOTE1, kind: field, command: NOTE}

Top-level nodes become children of GLOBAL.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from chuk_mcp_tracker.compiler.backend import get_compiler
from chuk_mcp_tracker.constants import ROOT_NODE_ID, NodeKind
from chuk_mcp_tracker.models.config import ConfigMetadata, InodeConfig, ModuleConfig

logger = logging.getLogger(__name__)


def parse_config(data: dict[str, Any], attach: bool = True) -> ModuleConfig:
    """
    Build a ModuleConfig from its YAML form.

    Args:
        data: Parsed YAML mapping
        attach: Attach the named compiler from the registry

    Raises:
        KeyError: if the named compiler is not registered
        ValueError: if the node tree is malformed
    """
    commands = {
        command_id: {"id": command_id, **(spec or {})}
        for command_id, spec in (data.get("commands") or {}).items()
    }

    inodes: dict[str, InodeConfig] = {}
    root_children = _flatten_nodes(data.get("nodes") or [], ROOT_NODE_ID, inodes)
    inodes[ROOT_NODE_ID] = InodeConfig(id=ROOT_NODE_ID, kind=NodeKind.GROUP, children=root_children)

    config = ModuleConfig(
        id=data["id"],
        version=data.get("version", 1),
        description=data.get("description", ""),
        compiler=data.get("compiler"),
        commands=commands,
        inodes=inodes,
    )
    if attach and config.compiler_name:
        config.attach_compiler(get_compiler(config.compiler_name))
    return config


def _flatten_nodes(
    nodes: list[dict[str, Any]], parent: str, inodes: dict[str, InodeConfig]
) -> list[str]:
    """Flatten a nested node list into inodes, returning the child ids."""
    ids = []
    for node in nodes:
        node_id = node["id"]
        if node_id in inodes or node_id == ROOT_NODE_ID:
            raise ValueError(f"Duplicate node id: {node_id}")
        kind = NodeKind(node.get("kind", NodeKind.FIELD))
        children = node.get("children") or []
        if kind == NodeKind.FIELD and children:
            raise ValueError(f"Field {node_id} cannot have children")
        # Reserve the id before recursing so duplicates below are caught
        inodes[node_id] = InodeConfig(id=node_id, kind=kind, parent=parent)
        child_ids = _flatten_nodes(children, node_id, inodes)
        if kind == NodeKind.BLOCK:
            for child_id in child_ids:
                if inodes[child_id].kind != NodeKind.FIELD:
                    raise ValueError(f"Block {node_id} can only contain fields")
        inodes[node_id] = InodeConfig(
            id=node_id,
            kind=kind,
            parent=parent,
            children=child_ids,
            command=node.get("command"),
            instances=node.get("instances", 1),
        )
        ids.append(node_id)
    return ids


class ConfigLoader:
    """
    Discovers and loads module configurations.

    Configurations are loaded from YAML files in the library and project
    directories. Project configurations override library ones with the
    same id.
    """

    def __init__(
        self,
        library_path: Path | None = None,
        project_path: Path | None = None,
    ):
        """
        Initialize the configuration loader.

        Args:
            library_path: Path to built-in configuration library
            project_path: Path to project configurations directory
        """
        self.library_path = library_path or (Path(__file__).parent / "library")
        self.project_path = project_path
        self._cache: dict[str, ModuleConfig] = {}

    def list_configs(self) -> list[ConfigMetadata]:
        """
        List all available configurations.

        Returns configurations from both library and project, with project
        configurations taking precedence.
        """
        configs: dict[str, ConfigMetadata] = {}
        for directory in self._search_paths(project_first=False):
            for path in sorted(directory.glob("*.yaml")):
                config = self._load_config_file(path)
                if config:
                    configs[config.id] = ConfigMetadata.from_config(config, str(path))
        for config_id, config in self._cache.items():
            configs.setdefault(config_id, ConfigMetadata.from_config(config))
        return list(configs.values())

    def get_config(self, config_id: str) -> ModuleConfig | None:
        """
        Get a configuration by id.

        Files named after the id are tried first, project before library,
        then every file is scanned for a matching id.

        Args:
            config_id: Configuration id

        Returns:
            ModuleConfig if found, None otherwise
        """
        if config_id in self._cache:
            return self._cache[config_id]

        candidates: list[Path] = []
        for directory in self._search_paths(project_first=True):
            for stem in (config_id, config_id.lower()):
                path = directory / f"{stem}.yaml"
                if path.exists() and path not in candidates:
                    candidates.append(path)
        for directory in self._search_paths(project_first=True):
            candidates.extend(p for p in sorted(directory.glob("*.yaml")) if p not in candidates)

        for path in candidates:
            config = self._load_config_file(path)
            if config and config.id == config_id:
                self._cache[config_id] = config
                return config
        return None

    def register_config(self, config: ModuleConfig) -> None:
        """Make an in-memory configuration available by id."""
        self._cache[config.id] = config

    def _search_paths(self, project_first: bool) -> list[Path]:
        paths = []
        if self.library_path.exists():
            paths.append(self.library_path)
        if self.project_path and self.project_path.exists():
            paths.append(self.project_path)
        return list(reversed(paths)) if project_first else paths

    def _load_config_file(self, path: Path) -> ModuleConfig | None:
        """Load a configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
            return parse_config(data)
        except Exception as e:
            logger.warning(f"Skipping configuration {path}: {e}")
            return None

    def clear_cache(self) -> None:
        """Clear the configuration cache."""
        self._cache.clear()
