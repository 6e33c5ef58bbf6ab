"""
Tests for the module manager.
"""

from pathlib import Path

import pytest
import yaml

from chuk_mcp_tracker.config import ConfigLoader
from chuk_mcp_tracker.models import ModuleConfig, set_action
from chuk_mcp_tracker.module import ModuleManager


@pytest.fixture
def loader(song_config: ModuleConfig) -> ConfigLoader:
    """Library configurations plus the Song test configuration."""
    loader = ConfigLoader()
    loader.register_config(song_config)
    return loader


@pytest.fixture
def manager(temp_dir: Path, loader: ConfigLoader) -> ModuleManager:
    return ModuleManager(temp_dir / "modules", loader)


class TestModuleManager:
    """Tests for ModuleManager."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, manager: ModuleManager) -> None:
        """Created modules are served from the cache."""
        module = await manager.create("tune", "Song", block_length=8)
        assert module.name == "tune"
        assert module.get("GLOBAL/0/PATTERNS/0/CH1/0/").row_count == 8
        assert await manager.get("tune") is module

    @pytest.mark.asyncio
    async def test_create_unknown_config(self, manager: ModuleManager) -> None:
        """Creating with an unknown configuration fails."""
        with pytest.raises(ValueError, match="not found"):
            await manager.create("tune", "Nope")

    @pytest.mark.asyncio
    async def test_get_missing(self, manager: ModuleManager) -> None:
        """Unknown modules give None."""
        assert await manager.get("nothing") is None

    @pytest.mark.asyncio
    async def test_save_and_load(self, manager: ModuleManager, loader: ConfigLoader) -> None:
        """Saved modules load back with the same tree."""
        module = await manager.create("tune", "Song", block_length=4)
        module.apply(set_action("GLOBAL/0/PATTERNS/0/CH1/0/", "NOTE1", [(2, "c4")]))
        path = await manager.save(module)
        assert path.name == "tune.mdmod.yaml"

        value = yaml.safe_load(path.read_text())
        assert value[0] == "mdal-module"
        assert value[1]["config"] == "Song"

        fresh = ModuleManager(manager.modules_dir, loader)
        loaded = await fresh.get("tune")
        assert loaded is not None
        assert loaded.name == "tune"
        assert loaded.tree == module.tree

    @pytest.mark.asyncio
    async def test_load_unknown_config(self, manager: ModuleManager, temp_dir: Path) -> None:
        """Files naming a missing configuration cannot be loaded."""
        path = temp_dir / "odd.mdmod.yaml"
        path.write_text(yaml.safe_dump(["mdal-module", {"version": 2, "config": "Nope"}]))
        with pytest.raises(ValueError, match="not found"):
            await manager.load(path)

    @pytest.mark.asyncio
    async def test_list_modules(self, manager: ModuleManager) -> None:
        """Saved modules are listed, unreadable files skipped."""
        assert await manager.list_modules() == []
        await manager.save(await manager.create("one", "Song"))
        await manager.save(await manager.create("two", "Beeper2"))
        (manager.modules_dir / "junk.mdmod.yaml").write_text("not a module")

        listed = {meta.name: meta for meta in await manager.list_modules()}
        assert set(listed) == {"one", "two"}
        assert listed["two"].config == "Beeper2"
        assert listed["one"].config_version == 1

    @pytest.mark.asyncio
    async def test_delete(self, manager: ModuleManager) -> None:
        """Deleting removes the file and the cached module."""
        path = await manager.save(await manager.create("tune", "Song"))
        assert await manager.delete("tune") is True
        assert not path.exists()
        assert await manager.get("tune") is None
        assert await manager.delete("tune") is False

    @pytest.mark.asyncio
    async def test_delete_unsaved(self, manager: ModuleManager) -> None:
        """Unsaved modules can be deleted from the cache."""
        await manager.create("draft", "Song")
        assert await manager.delete("draft") is True

    @pytest.mark.asyncio
    async def test_duplicate(self, manager: ModuleManager) -> None:
        """Duplicates share content but edit independently."""
        original = await manager.create("tune", "Song")
        copy = await manager.duplicate("tune", "tune2")
        assert copy.tree == original.tree

        copy.apply(set_action("GLOBAL/0/", "BPM", [(0, 99)]))
        assert original.get("GLOBAL/0/BPM/0/").value == 120
        assert await manager.get("tune2") is copy

    @pytest.mark.asyncio
    async def test_duplicate_missing(self, manager: ModuleManager) -> None:
        """Duplicating an unknown module fails."""
        with pytest.raises(ValueError):
            await manager.duplicate("nothing", "copy")

    @pytest.mark.asyncio
    async def test_name_sanitized(self, manager: ModuleManager) -> None:
        """Spaces and slashes do not reach the file name."""
        path = await manager.save(await manager.create("my song/b", "Song"))
        assert path.name == "my_song_b.mdmod.yaml"
