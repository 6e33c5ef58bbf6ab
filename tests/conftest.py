"""
Pytest configuration and shared fixtures.
"""

import copy
import tempfile
from pathlib import Path
from typing import Any

import pytest

from chuk_mcp_tracker.config import parse_config
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.module import Module

# Two channels, a tempo field, and the derived PATTERNS_ORDER list
SONG_CONFIG: dict[str, Any] = {
    "id": "Song",
    "version": 1,
    "description": "Test configuration",
    "compiler": "flat",
    "commands": {
        "BPM": {"type": "uint", "bits": 8, "default": 120},
        "NOTE": {"type": "key", "bits": 8},
        "VOL": {"type": "uint", "bits": 8},
        "TRIG": {"type": "trigger"},
    },
    "nodes": [
        {"id": "BPM", "kind": "field"},
        {
            "id": "PATTERNS",
            "kind": "group",
            "children": [
                {
                    "id": "CH1",
                    "kind": "block",
                    "children": [
                        {"id": "NOTE1", "kind": "field", "command": "NOTE"},
                        {"id": "VOL1", "kind": "field", "command": "VOL"},
                    ],
                },
                {
                    "id": "CH2",
                    "kind": "block",
                    "children": [
                        {"id": "NOTE2", "kind": "field", "command": "NOTE"},
                        {"id": "TRIG2", "kind": "field", "command": "TRIG"},
                    ],
                },
            ],
        },
    ],
}


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def song_config_data() -> dict[str, Any]:
    """A mutable copy of the test configuration in its YAML form."""
    return copy.deepcopy(SONG_CONFIG)


@pytest.fixture
def song_config() -> ModuleConfig:
    """The two-channel test configuration."""
    return parse_config(SONG_CONFIG)


@pytest.fixture
def song_module(song_config: ModuleConfig) -> Module:
    """A fresh module with 4-row patterns."""
    return Module.new(song_config, name="song", block_length=4)
