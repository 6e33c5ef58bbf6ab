"""
Tests for module validation.
"""

from dataclasses import replace

from chuk_mcp_tracker.models import (
    BlockInstance,
    FieldInstance,
    GroupInstance,
    Node,
    insert_action,
    set_action,
)
from chuk_mcp_tracker.models.path import replace_instance
from chuk_mcp_tracker.module import Module, ModuleValidator, validate_module

GROUP = "GLOBAL/0/PATTERNS/0/"
ORDER = "GLOBAL/0/PATTERNS/0/PATTERNS_ORDER/0/"


def with_group(module: Module, group: GroupInstance) -> Module:
    return module.with_tree(replace_instance(module.tree, GROUP, group))


class TestModuleValidator:
    """Tests for ModuleValidator."""

    def test_fresh_module_valid(self, song_module: Module) -> None:
        """A fresh module has no issues."""
        result = validate_module(song_module)
        assert result.is_valid
        assert result.issues == []
        assert str(result) == "Validation passed: no issues found"

    def test_invalid_root(self, song_module: Module) -> None:
        """The tree must start at GLOBAL."""
        result = ModuleValidator().validate_tree(Node("SONG"), song_module.config)
        assert result.codes() == ["INVALID_ROOT"]
        assert not result

    def test_unknown_node(self, song_module: Module) -> None:
        """Nodes the group does not declare are errors."""
        group = song_module.get(GROUP)
        module = with_group(song_module, group.with_node(Node("BPM", (FieldInstance(0, 1),))))
        assert "UNKNOWN_NODE" in validate_module(module).codes()

    def test_missing_node(self, song_module: Module) -> None:
        """Declared nodes without instances are reported as info."""
        group = song_module.get(GROUP)
        nodes = tuple(n for n in group.nodes if n.node_id != "CH2")
        module = with_group(song_module, replace(group, nodes=nodes))
        result = validate_module(module)
        assert "MISSING_NODE" in result.codes()

    def test_duplicate_instance(self, song_module: Module) -> None:
        """Instance ids are unique within a node."""
        group = song_module.get(GROUP)
        node = Node("CH1", (BlockInstance(0), BlockInstance(0)))
        module = with_group(song_module, group.with_node(node))
        assert "DUPLICATE_INSTANCE" in validate_module(module).codes()

    def test_instance_order(self, song_module: Module) -> None:
        """Instances out of id order are a warning."""
        group = song_module.get(GROUP)
        node = Node("CH1", (BlockInstance(2), BlockInstance(0)))
        result = validate_module(with_group(song_module, group.with_node(node)))
        assert "INSTANCE_ORDER" in [w.code for w in result.warnings]

    def test_kind_mismatch(self, song_module: Module) -> None:
        """Instances must match their node kind."""
        group = song_module.get(GROUP)
        node = Node("CH1", (FieldInstance(0, 1),))
        result = validate_module(with_group(song_module, group.with_node(node)))
        assert "KIND_MISMATCH" in result.codes()

    def test_row_width(self, song_module: Module) -> None:
        """Rows need one cell per column."""
        group = song_module.get(GROUP)
        node = Node("CH1", (BlockInstance(0, (("c4",),)),))
        result = validate_module(with_group(song_module, group.with_node(node)))
        assert "ROW_WIDTH" in result.codes()

    def test_invalid_key(self, song_module: Module) -> None:
        """Key fields only take names from their key table."""
        song_module.apply(set_action(GROUP + "CH1/0/", "NOTE1", [(0, "h4")]))
        result = validate_module(song_module)
        assert result.codes() == ["INVALID_VALUE"]
        assert result.errors[0].location == "GLOBAL/0/PATTERNS/0/CH1/0/0"

    def test_non_integer(self, song_module: Module) -> None:
        """Numeric fields take integers."""
        song_module.apply(set_action("GLOBAL/0/", "BPM", [(0, "fast")]))
        assert validate_module(song_module).codes() == ["INVALID_VALUE"]

    def test_value_range(self, song_module: Module) -> None:
        """Values must fit the command's width."""
        song_module.apply(set_action(GROUP + "CH1/0/", "VOL1", [(1, 256)]))
        assert validate_module(song_module).codes() == ["VALUE_RANGE"]

    def test_no_order(self, song_module: Module) -> None:
        """Groups with blocks need an order list."""
        group = song_module.get(GROUP)
        module = with_group(song_module, group.with_node(Node("PATTERNS_ORDER")))
        assert "NO_ORDER" in validate_module(module).codes()

    def test_empty_order(self, song_module: Module) -> None:
        """An empty order list is a warning."""
        group = song_module.get(GROUP)
        node = Node("PATTERNS_ORDER", (BlockInstance(0, ()),))
        result = validate_module(with_group(song_module, group.with_node(node)))
        assert result.is_valid
        assert [w.code for w in result.warnings] == ["EMPTY_ORDER"]

    def test_missing_pattern(self, song_module: Module) -> None:
        """Order references must name existing instances."""
        song_module.apply(set_action(ORDER, "R_CH2", [(0, 4)]))
        result = validate_module(song_module)
        assert result.codes() == ["MISSING_PATTERN"]
        assert not result.is_valid

    def test_short_pattern(self, song_module: Module) -> None:
        """Playing more rows than a pattern has is a warning."""
        song_module.apply(insert_action(GROUP, "CH1", [(1, [["c4", 1]])]))
        song_module.apply(set_action(ORDER, "PATTERNS_ORDER", [(1, [4, 1, 0])]))
        result = validate_module(song_module)
        assert result.is_valid
        assert result.codes() == ["SHORT_PATTERN"]

    def test_issue_dict(self, song_module: Module) -> None:
        """Issues render as plain mappings."""
        song_module.apply(set_action(GROUP + "CH1/0/", "VOL1", [(0, -1)]))
        issue = validate_module(song_module).issues[0]
        assert issue.to_dict()["severity"] == "error"
        assert issue.to_dict()["code"] == "VALUE_RANGE"
        assert str(issue).startswith("[ERROR] VALUE_RANGE:")

    def test_result_summary(self, song_module: Module) -> None:
        """The text form counts issues before listing them."""
        song_module.apply(set_action(GROUP + "CH1/0/", "VOL1", [(1, 256)]))
        lines = str(validate_module(song_module)).splitlines()
        assert lines[0] == "1 error(s), 0 warning(s)"
        assert lines[1].startswith("[ERROR] VALUE_RANGE:")
        assert lines[1].endswith("at GLOBAL/0/PATTERNS/0/CH1/0/1")
