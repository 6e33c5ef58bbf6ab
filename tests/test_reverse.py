"""
Tests for reverse actions.

Every action applied and then reverted must give back the original tree
exactly: instance ids, row counts and values.
"""

import pytest

from chuk_mcp_tracker.editing import make_reverse_action
from chuk_mcp_tracker.models import (
    BlockInstance,
    CompoundAction,
    InsertAction,
    RemoveAction,
    SetAction,
    insert_action,
    remove_action,
    set_action,
)
from chuk_mcp_tracker.module import Module

ROOT = "GLOBAL/0/"
GROUP = "GLOBAL/0/PATTERNS/0/"
CH1 = "GLOBAL/0/PATTERNS/0/CH1/0/"
ORDER = "GLOBAL/0/PATTERNS/0/PATTERNS_ORDER/0/"


@pytest.fixture
def edited_module(song_module: Module) -> Module:
    """A module with some content and a second pattern instance."""
    song_module.apply(set_action(CH1, "CH1", [(0, ["c4", 1]), (1, ["e4", 2]), (3, ["g4", 3])]))
    song_module.apply(insert_action(GROUP, "CH1", [(2, [["a4", 4], [None, 5]])]))
    return song_module


ACTIONS = {
    "field set": set_action(ROOT, "BPM", [(0, 180)]),
    "cell set": set_action(CH1, "NOTE1", [(1, "d4"), (2, "f4")]),
    "cell set padding": set_action(CH1, "VOL1", [(2, 9), (8, 7)]),
    "row set padding": set_action(CH1, "CH1", [(6, ["b4", 1])]),
    "cell insert": insert_action(CH1, "NOTE1", [(1, "d4"), (0, "c3")]),
    "cell insert at end": insert_action(CH1, "VOL1", [(4, 6)]),
    "cell insert past end": insert_action(CH1, "VOL1", [(7, 6)]),
    "cell remove": remove_action(CH1, "NOTE1", [0, 2]),
    "cell remove out of range": remove_action(CH1, "NOTE1", [10]),
    "row insert": insert_action(CH1, "CH1", [(0, ["c5", 1]), (3, ["d5", 2])]),
    "row insert past end": insert_action(CH1, "CH1", [(9, ["c5", 1])]),
    "row remove": remove_action(CH1, "CH1", [3, 0, 9]),
    "order edit": set_action(ORDER, "PATTERNS_ORDER", [(1, [2, 2, 0])]),
    "group insert": insert_action(GROUP, "CH2", [(5, [["c4", 1]])]),
    "group remove": remove_action(GROUP, "CH1", [2, 0, 11]),
    "group set existing": set_action(GROUP, "CH1", [(2, [["b2", 1]])]),
    "group set new": set_action(GROUP, "CH1", [(2, []), (6, [])]),
    "compound": CompoundAction(
        (
            insert_action(CH1, "NOTE1", [(0, "c2")]),
            remove_action(GROUP, "CH1", [2]),
            set_action(ROOT, "BPM", [(0, 60)]),
            insert_action(GROUP, "CH1", [(2, [])]),
        )
    ),
}


class TestReverseRestoresTree:
    """Apply then revert gives back the original tree."""

    @pytest.mark.parametrize("name", sorted(ACTIONS))
    def test_round_trip(self, edited_module: Module, name: str) -> None:
        """Reverse of each action kind restores the tree exactly."""
        before = edited_module.tree
        reverse = edited_module.apply(ACTIONS[name])
        edited_module.apply(reverse)
        assert edited_module.tree == before

    @pytest.mark.parametrize("name", sorted(ACTIONS))
    def test_redo_after_undo(self, edited_module: Module, name: str) -> None:
        """Reapplying the action after reverting gives the edited tree again."""
        reverse = edited_module.apply(ACTIONS[name])
        after = edited_module.tree
        edited_module.apply(reverse)
        edited_module.apply(ACTIONS[name])
        assert edited_module.tree == after


class TestReverseShape:
    """Reverse actions keep the kind and shape of the original where they can."""

    def test_set_in_range(self, edited_module: Module) -> None:
        """Setting existing cells reverses to a set of the old values."""
        reverse = make_reverse_action(
            edited_module.tree, edited_module.config, set_action(CH1, "NOTE1", [(0, "d4")])
        )
        assert isinstance(reverse, SetAction)
        assert reverse.values == ((0, "c4"),)

    def test_group_remove(self, edited_module: Module) -> None:
        """Removing instances reverses to inserting them back."""
        reverse = make_reverse_action(
            edited_module.tree, edited_module.config, remove_action(GROUP, "CH1", [2])
        )
        assert isinstance(reverse, InsertAction)
        assert reverse.values == ((2, BlockInstance(2, (("a4", 4), (None, 5)))),)

    def test_group_insert(self, edited_module: Module) -> None:
        """Inserting instances reverses to removing them."""
        reverse = make_reverse_action(
            edited_module.tree, edited_module.config, insert_action(GROUP, "CH1", [(4, [])])
        )
        assert reverse == RemoveAction(reverse.path, "CH1", (4,))

    def test_row_insert(self, edited_module: Module) -> None:
        """Inserting rows reverses to removing the added indices."""
        reverse = make_reverse_action(
            edited_module.tree,
            edited_module.config,
            insert_action(CH1, "CH1", [(1, ["c5", 1]), (6, ["c5", 1])]),
        )
        assert isinstance(reverse, RemoveAction)
        assert reverse.node_id == "CH1"
        assert reverse.ids == (1, 5, 6)

    def test_row_remove(self, edited_module: Module) -> None:
        """Removing rows reverses to inserting the old rows."""
        reverse = make_reverse_action(
            edited_module.tree, edited_module.config, remove_action(CH1, "CH1", [1])
        )
        assert isinstance(reverse, InsertAction)
        assert reverse.values == ((1, ("e4", 2)),)

    def test_padding_set(self, song_module: Module) -> None:
        """A padding set reverses to removing the rows it created."""
        reverse = make_reverse_action(
            song_module.tree, song_module.config, set_action(CH1, "NOTE1", [(6, "c4")])
        )
        assert reverse == RemoveAction(reverse.path, "CH1", (4, 5, 6))

    def test_reverse_is_pure(self, edited_module: Module) -> None:
        """Computing a reverse does not touch the tree."""
        before = edited_module.tree
        make_reverse_action(before, edited_module.config, ACTIONS["compound"])
        assert edited_module.tree is before
