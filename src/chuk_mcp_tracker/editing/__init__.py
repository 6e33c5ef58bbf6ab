"""
Editing - applying actions, computing their reverses, undo history.
"""

from chuk_mcp_tracker.editing.history import EditHistory, HistoryEntry
from chuk_mcp_tracker.editing.mutation import apply_action
from chuk_mcp_tracker.editing.reverse import make_reverse_action

__all__ = [
    "EditHistory",
    "HistoryEntry",
    "apply_action",
    "make_reverse_action",
]
