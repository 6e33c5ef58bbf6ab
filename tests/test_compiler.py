"""
Tests for the compilation pipeline, output nodes and the flat backend.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from chuk_mcp_tracker.compiler import (
    ByteNode,
    CommentNode,
    SymbolNode,
    compile_module,
    compile_to_bytes,
    export_asm,
    export_bin,
    flatten,
    get_compiler,
    list_compilers,
    output_from_dict,
    register_compiler,
    symbol_table,
    to_asm,
    unregister_compiler,
)
from chuk_mcp_tracker.compiler.builtin import FlatCompiler, encode_value
from chuk_mcp_tracker.models import ModuleConfig, SourceCommand, insert_action, set_action
from chuk_mcp_tracker.module import Module

GROUP = "GLOBAL/0/PATTERNS/0/"


class StubCompiler:
    """Records its calls and emits two bytes."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, int, dict[str, Any]]] = []

    def compile(self, module: Any, origin: int, symbols: Mapping[str, Any]) -> list:
        self.calls.append((module, origin, dict(symbols)))
        return [SymbolNode("start", origin), ByteNode(b"\x01"), CommentNode("x"), ByteNode(b"\x02")]


class FailingCompiler:
    def compile(self, module: Any, origin: int, symbols: Mapping[str, Any]) -> list:
        raise RuntimeError("backend exploded")


@pytest.fixture
def small_module(song_config: ModuleConfig) -> Module:
    """A fresh module with 2-row patterns."""
    return Module.new(song_config, name="small", block_length=2)


class TestOutputNodes:
    """Tests for output nodes and their helpers."""

    def test_flatten(self) -> None:
        """Only byte nodes contribute, in order."""
        nodes = [ByteNode(b"\x01"), SymbolNode("a", 1), CommentNode("c"), ByteNode([2, 3])]
        assert flatten(nodes) == b"\x01\x02\x03"

    def test_symbol_table(self) -> None:
        """Later symbol definitions win."""
        assert symbol_table([SymbolNode("a", 1), SymbolNode("a", 2)]) == {"a": 2}

    def test_dict_round_trip(self) -> None:
        """Output nodes survive their dict form."""
        for node in (ByteNode(b"\xff\x00"), SymbolNode("a", 5), CommentNode("hi")):
            assert output_from_dict(node.to_dict()) == node

    def test_to_asm(self) -> None:
        """Symbols at the current address become labels."""
        nodes = [
            CommentNode("song"),
            SymbolNode("start", 0x8000),
            ByteNode(b"\x01\x02"),
            SymbolNode("far", 0x9000),
            SymbolNode("end", 0x8002),
        ]
        assert to_asm(nodes, 0x8000) == (
            "    org $8000\n"
            "; song\n"
            "start:\n"
            "    db $01,$02\n"
            "far equ $9000\n"
            "end:\n"
        )

    def test_to_asm_wraps_lines(self) -> None:
        """Long byte runs are split over several db lines."""
        listing = to_asm([ByteNode(bytes(10))], 0, bytes_per_line=4)
        assert listing.count("    db ") == 3


class TestCompileModule:
    """Tests for compile_module with an attached compiler."""

    def test_stub_compiler(self, song_module: Module) -> None:
        """The compiler's byte nodes are concatenated."""
        stub = StubCompiler()
        song_module.config.attach_compiler(stub)
        result = compile_module(song_module, origin=0x4000)
        assert result.data == b"\x01\x02"
        assert result.size == 2
        assert result.symbols == {"start": 0x4000}

    def test_symbols_passed(self, song_module: Module) -> None:
        """The module is passed under the module symbol, with any extras."""
        stub = StubCompiler()
        song_module.config.attach_compiler(stub)
        compile_module(song_module, origin=0x8000, extra_symbols={"engine": 3})
        module, origin, symbols = stub.calls[0]
        assert module is song_module
        assert origin == 0x8000
        assert symbols == {"module": song_module, "engine": 3}

    def test_no_compiler(self, song_module: Module) -> None:
        """Compiling without a compiler is an error."""
        song_module.config.attach_compiler(None)
        with pytest.raises(ValueError, match="no compiler"):
            compile_module(song_module)

    def test_compiler_error_propagates(self, song_module: Module) -> None:
        """Errors raised by the backend are not caught."""
        song_module.config.attach_compiler(FailingCompiler())
        with pytest.raises(RuntimeError, match="exploded"):
            compile_module(song_module)

    def test_export_bin(self, song_module: Module, temp_dir: Path) -> None:
        """export_bin writes the compiled bytes."""
        song_module.config.attach_compiler(StubCompiler())
        path = export_bin(song_module, temp_dir / "out" / "song.bin")
        assert path.read_bytes() == b"\x01\x02"

    def test_export_asm(self, song_module: Module, temp_dir: Path) -> None:
        """export_asm writes the listing."""
        song_module.config.attach_compiler(StubCompiler())
        path = export_asm(song_module, temp_dir / "song.asm", origin=0x4000)
        assert path.read_text().startswith("    org $4000\nstart:\n")


class TestRegistry:
    """Tests for the compiler registry."""

    def test_builtin_registered(self) -> None:
        """The flat backend is always available."""
        assert "flat" in list_compilers()
        assert isinstance(get_compiler("flat"), FlatCompiler)

    def test_unknown_compiler(self) -> None:
        """Unknown names raise KeyError."""
        with pytest.raises(KeyError):
            get_compiler("nope")

    def test_register(self) -> None:
        """Registered factories are created on lookup."""
        register_compiler("stub")(StubCompiler)
        try:
            assert isinstance(get_compiler("stub"), StubCompiler)
        finally:
            unregister_compiler("stub")
        assert "stub" not in list_compilers()


class TestFlatCompiler:
    """Tests for the flat reference backend."""

    def test_fresh_module_layout(self, small_module: Module) -> None:
        """Fields, pattern rows and order list, in schema order."""
        result = compile_module(small_module, origin=0x8000)
        assert result.data == bytes.fromhex("78" "00000000" "00000000" "02" "0180" "0580")
        assert result.symbols["module_start"] == 0x8000
        assert result.symbols["CH1_0"] == 0x8001
        assert result.symbols["CH2_0"] == 0x8005
        assert result.symbols["PATTERNS_ORDER_0"] == 0x8009
        assert result.symbols["module_end"] == 0x800E

    def test_values_encoded(self, small_module: Module) -> None:
        """Notes use the key table, triggers encode as 0/1."""
        small_module.apply(set_action(GROUP + "CH1/0/", "CH1", [(0, ["c4", 15])]))
        small_module.apply(set_action(GROUP + "CH2/0/", "TRIG2", [(1, True)]))
        data = compile_to_bytes(small_module)
        assert data[1:3] == bytes([0x30, 15])
        assert data[5:9] == bytes([0, 0, 0, 1])

    def test_references_follow_layout(self, small_module: Module) -> None:
        """Order references point at the referenced instance."""
        small_module.apply(insert_action(GROUP, "CH1", [(1, [["c4", 1]])]))
        small_module.apply(
            set_action(GROUP + "PATTERNS_ORDER/0/", "PATTERNS_ORDER", [(1, [1, 1, 0])])
        )
        result = compile_module(small_module, origin=0x8000)
        # CH1_1 follows CH1_0: one 2-byte row
        assert result.symbols["CH1_1"] == 0x8005
        assert result.data[-5:] == bytes([1, 0x05, 0x80, 0x07, 0x80])

    def test_missing_reference(self, small_module: Module) -> None:
        """A reference to a missing instance fails compilation."""
        small_module.apply(
            set_action(GROUP + "PATTERNS_ORDER/0/", "PATTERNS_ORDER", [(0, [2, 3, 0])])
        )
        with pytest.raises(ValueError, match="missing instance"):
            compile_module(small_module)

    def test_value_out_of_range(self, small_module: Module) -> None:
        """Values wider than the command fail compilation."""
        small_module.apply(set_action(GROUP + "CH1/0/", "VOL1", [(0, 300)]))
        with pytest.raises(ValueError, match="does not fit"):
            compile_module(small_module)

    def test_encode_signed(self) -> None:
        """Signed commands encode two's complement."""
        command = SourceCommand(id="DETUNE", type="int", bits=8)
        assert encode_value(command, -1) == b"\xff"
        assert encode_value(SourceCommand(id="W", type="uint", bits=16), 0x1234) == b"\x34\x12"

    def test_listing(self, small_module: Module) -> None:
        """The listing labels each block instance."""
        listing = compile_module(small_module).to_asm()
        assert "CH1_0:" in listing
        assert "module_end:" in listing
        assert "; small (Song v1)" in listing
