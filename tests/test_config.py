"""
Tests for configurations and the configuration loader.
"""

from pathlib import Path
from typing import Any

import pytest
import yaml

from chuk_mcp_tracker.compiler.builtin import FlatCompiler
from chuk_mcp_tracker.config import ConfigLoader, parse_config
from chuk_mcp_tracker.constants import CommandType, NodeKind
from chuk_mcp_tracker.models import ModuleConfig, NodePath, chromatic_keys


class TestModuleConfig:
    """Tests for ModuleConfig and its derived order lists."""

    def test_order_block_derived(self, song_config: ModuleConfig) -> None:
        """Groups with blocks get an order list as their last child."""
        assert song_config.child_ids("PATTERNS") == ["CH1", "CH2", "PATTERNS_ORDER"]
        assert song_config.node_type("PATTERNS_ORDER") == NodeKind.BLOCK
        assert song_config.child_ids("PATTERNS_ORDER") == [
            "PATTERNS_LENGTH",
            "R_CH1",
            "R_CH2",
        ]

    def test_order_commands(self, song_config: ModuleConfig) -> None:
        """Order columns are bound to length and reference commands."""
        assert song_config.source_command("PATTERNS_LENGTH").command_type == CommandType.UINT
        reference = song_config.source_command("R_CH2")
        assert reference.command_type == CommandType.REFERENCE
        assert reference.reference_to == "CH2"
        assert reference.bits == 16

    def test_root_has_no_order(self, song_config: ModuleConfig) -> None:
        """GLOBAL only holds a field and a group, so it has no order list."""
        assert "GLOBAL_ORDER" not in song_config.inodes
        assert song_config.child_ids("GLOBAL") == ["BPM", "PATTERNS"]

    def test_group_blocks(self, song_config: ModuleConfig) -> None:
        """Order lists are not pattern blocks."""
        assert song_config.group_blocks("PATTERNS") == ["CH1", "CH2"]
        assert song_config.is_order_node("PATTERNS_ORDER")
        assert not song_config.is_order_node("CH1")

    def test_source_command(self, song_config: ModuleConfig) -> None:
        """Fields use their bound command, or the one named like them."""
        assert song_config.source_command("NOTE2").id == "NOTE"
        assert song_config.source_command("BPM").default == 120
        assert song_config.default_value("VOL1") is None

    def test_unknown_node(self, song_config: ModuleConfig) -> None:
        """Unknown node ids raise KeyError."""
        with pytest.raises(KeyError):
            song_config.node_type("NOPE")

    def test_column_index(self, song_config: ModuleConfig) -> None:
        """Columns are numbered in declaration order."""
        assert song_config.column_index("CH2", "TRIG2") == 1
        with pytest.raises(KeyError):
            song_config.column_index("CH2", "NOTE1")

    def test_default_path(self, song_config: ModuleConfig) -> None:
        """Default paths take instance 0 of every ancestor."""
        assert song_config.default_path("CH2", 3) == NodePath.parse("GLOBAL/0/PATTERNS/0/CH2/3/")
        assert str(song_config.default_path("PATTERNS")) == "GLOBAL/0/PATTERNS/0/"

    def test_key_table(self, song_config: ModuleConfig) -> None:
        """Key commands default to the chromatic table."""
        note = song_config.source_command("NOTE1")
        assert note.keys["c4"] == 48
        assert note.encode("a#2") == 34
        assert chromatic_keys(1) == {
            name: i
            for i, name in enumerate(
                ["c0", "c#0", "d0", "d#0", "e0", "f0", "f#0", "g0", "g#0", "a0", "a#0", "b0"]
            )
        }

    def test_encode_defaults(self, song_config: ModuleConfig) -> None:
        """Empty values encode as the command default."""
        assert song_config.source_command("BPM").encode(None) == 120
        assert song_config.source_command("VOL1").encode(None) == 0
        assert song_config.source_command("TRIG2").encode(True) == 1


class TestParseConfig:
    """Tests for parse_config."""

    def test_compiler_attached(self, song_config: ModuleConfig) -> None:
        """The named compiler is attached on parse."""
        assert song_config.compiler_name == "flat"
        assert isinstance(song_config.compiler, FlatCompiler)

    def test_without_attach(self, song_config_data: dict[str, Any]) -> None:
        """attach=False leaves the compiler unset."""
        config = parse_config(song_config_data, attach=False)
        assert config.compiler is None

    def test_unknown_compiler(self, song_config_data: dict[str, Any]) -> None:
        """Naming an unregistered compiler fails."""
        data = {**song_config_data, "compiler": "nope"}
        with pytest.raises(KeyError):
            parse_config(data)

    def test_duplicate_id(self, song_config_data: dict[str, Any]) -> None:
        """Node ids are unique across the whole tree."""
        data = song_config_data
        data["nodes"].append({"id": "CH1", "kind": "block"})
        with pytest.raises(ValueError, match="Duplicate"):
            parse_config(data)

    def test_field_with_children(self, song_config_data: dict[str, Any]) -> None:
        """Fields cannot nest."""
        data = song_config_data
        data["nodes"].append({"id": "X", "kind": "field", "children": [{"id": "Y"}]})
        with pytest.raises(ValueError):
            parse_config(data)

    def test_block_with_group(self, song_config_data: dict[str, Any]) -> None:
        """Blocks only contain fields."""
        data = song_config_data
        data["nodes"].append(
            {"id": "B", "kind": "block", "children": [{"id": "G", "kind": "group"}]}
        )
        with pytest.raises(ValueError, match="only contain fields"):
            parse_config(data)

    def test_instances(self, song_config_data: dict[str, Any]) -> None:
        """Nodes can ask for more than one instance in a fresh module."""
        data = song_config_data
        data["nodes"][1]["children"][0]["instances"] = 2
        config = parse_config(data)
        assert config.get_inode("CH1").instances == 2


class TestConfigLoader:
    """Tests for ConfigLoader."""

    @pytest.fixture
    def project_dir(self, temp_dir: Path, song_config_data: dict[str, Any]) -> Path:
        """A project configs directory holding the Song config."""
        path = temp_dir / "configs"
        path.mkdir()
        (path / "song.yaml").write_text(yaml.safe_dump(song_config_data))
        return path

    def test_library_config(self) -> None:
        """The bundled Beeper2 configuration loads."""
        config = ConfigLoader().get_config("Beeper2")
        assert config is not None
        assert config.child_ids("PATTERNS_ORDER") == [
            "PATTERNS_LENGTH",
            "R_CH1",
            "R_CH2",
            "R_DRUMS",
        ]
        assert config.source_command("DRUM").keys == {"kick": 1, "snare": 2, "hat": 3}

    def test_list_configs(self, project_dir: Path) -> None:
        """Library and project configurations are both listed."""
        loader = ConfigLoader(project_path=project_dir)
        ids = {meta.id for meta in loader.list_configs()}
        assert {"Beeper2", "Song"} <= ids

    def test_project_config(self, project_dir: Path) -> None:
        """Project configurations are found by id."""
        loader = ConfigLoader(project_path=project_dir)
        config = loader.get_config("Song")
        assert config is not None
        assert config.version == 1

    def test_cached(self, project_dir: Path) -> None:
        """Loaded configurations are cached until cleared."""
        loader = ConfigLoader(project_path=project_dir)
        first = loader.get_config("Song")
        assert loader.get_config("Song") is first
        loader.clear_cache()
        assert loader.get_config("Song") is not first

    def test_project_overrides_library(self, temp_dir: Path) -> None:
        """A project file with a library id wins."""
        library = ConfigLoader().library_path
        data = yaml.safe_load((library / "beeper2.yaml").read_text())
        data["version"] = 7
        project = temp_dir / "configs"
        project.mkdir()
        (project / "beeper2.yaml").write_text(yaml.safe_dump(data))

        loader = ConfigLoader(project_path=project)
        assert loader.get_config("Beeper2").version == 7
        listed = {meta.id: meta for meta in loader.list_configs()}
        assert listed["Beeper2"].version == 7

    def test_found_by_scan(self, temp_dir: Path, song_config_data: dict[str, Any]) -> None:
        """Files not named after the id are scanned."""
        project = temp_dir / "configs"
        project.mkdir()
        (project / "my_song.yaml").write_text(yaml.safe_dump(song_config_data))
        assert ConfigLoader(project_path=project).get_config("Song") is not None

    def test_broken_file_skipped(self, project_dir: Path) -> None:
        """Files that fail to parse are skipped."""
        (project_dir / "broken.yaml").write_text("id: Broken\nnodes: [{kind: field}]\n")
        loader = ConfigLoader(project_path=project_dir)
        ids = {meta.id for meta in loader.list_configs()}
        assert "Broken" not in ids
        assert "Song" in ids

    def test_not_found(self) -> None:
        """Unknown ids give None."""
        assert ConfigLoader().get_config("Nope") is None

    def test_register_config(self, song_config: ModuleConfig) -> None:
        """Registered configurations are served and listed."""
        loader = ConfigLoader()
        loader.register_config(song_config)
        assert loader.get_config("Song") is song_config
        assert "Song" in {meta.id for meta in loader.list_configs()}
