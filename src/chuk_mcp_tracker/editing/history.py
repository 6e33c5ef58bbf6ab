"""
Undo/redo history for a module editing session.

The engine itself keeps no history: every applied action yields its
reverse, and this helper keeps the two stacks on behalf of a caller.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chuk_mcp_tracker.models.actions import CompoundAction, EditAction

if TYPE_CHECKING:
    from chuk_mcp_tracker.module.document import Module


@dataclass(frozen=True)
class HistoryEntry:
    """An applied action and the action that reverts it."""

    action: EditAction
    reverse: EditAction
    label: str | None = None


@dataclass
class EditBatch:
    """Actions collected by EditHistory.batch, undone as one entry."""

    label: str | None = None
    actions: list[EditAction] = field(default_factory=list)
    reverses: list[EditAction] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.actions)


class EditHistory:
    """Applies actions to a module and keeps undo/redo stacks."""

    def __init__(self, module: Module, limit: int | None = None) -> None:
        if limit is not None and limit <= 0:
            raise ValueError("limit must be positive")
        self._module = module
        self._limit = limit
        self._undo_stack: list[HistoryEntry] = []
        self._redo_stack: list[HistoryEntry] = []
        self._active_batch: EditBatch | None = None

    @property
    def module(self) -> Module:
        return self._module

    @property
    def undo_stack(self) -> list[HistoryEntry]:
        """Pending undo entries, most recent last."""
        return list(self._undo_stack)

    @property
    def redo_stack(self) -> list[HistoryEntry]:
        """Pending redo entries, most recent last."""
        return list(self._redo_stack)

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def apply(self, action: EditAction, label: str | None = None) -> EditAction:
        """
        Apply an action, record it, and return its reverse.

        When a compound fails part way, the children it committed are
        recorded before the error propagates, so they can still be undone.
        """
        try:
            reverse = self._module.apply(action)
        except Exception as e:
            applied = getattr(e, "applied", None)
            if applied:
                self._record(applied, e.applied_reverse, label)
            raise
        self._record(action, reverse, label)
        return reverse

    def _record(self, action: EditAction, reverse: EditAction, label: str | None) -> None:
        if self._active_batch is not None:
            self._active_batch.actions.append(action)
            self._active_batch.reverses.append(reverse)
        else:
            self._push(HistoryEntry(action, reverse, label))

    def undo(self, steps: int = 1) -> list[HistoryEntry]:
        """Revert the most recent entries, returning them."""
        undone: list[HistoryEntry] = []
        for _ in range(min(max(steps, 0), len(self._undo_stack))):
            entry = self._undo_stack.pop()
            self._module.apply(entry.reverse)
            self._redo_stack.append(entry)
            undone.append(entry)
        return undone

    def redo(self, steps: int = 1) -> list[HistoryEntry]:
        """Reapply the most recently undone entries, returning them."""
        replayed: list[HistoryEntry] = []
        for _ in range(min(max(steps, 0), len(self._redo_stack))):
            entry = self._redo_stack.pop()
            self._module.apply(entry.action)
            self._undo_stack.append(entry)
            replayed.append(entry)
        return replayed

    def clear(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()

    @contextmanager
    def batch(self, label: str | None = None) -> Iterator[EditBatch]:
        """Group several actions so they undo/redo as a single entry."""
        if self._active_batch is not None:
            raise RuntimeError("Cannot nest EditHistory batches")
        batch = EditBatch(label=label)
        self._active_batch = batch
        try:
            yield batch
        finally:
            self._active_batch = None
            if batch:
                self._push(
                    HistoryEntry(
                        CompoundAction(tuple(batch.actions)),
                        CompoundAction(tuple(reversed(batch.reverses))),
                        label,
                    )
                )

    def _push(self, entry: HistoryEntry) -> None:
        self._undo_stack.append(entry)
        self._redo_stack.clear()
        if self._limit is not None and len(self._undo_stack) > self._limit:
            del self._undo_stack[0]
