"""
Preview derivations - reduced module trees for partial playback.
"""

from chuk_mcp_tracker.preview.derive import (
    derive_single_pattern,
    derive_single_row,
    order_block_rows,
    order_entry,
)

__all__ = [
    "derive_single_pattern",
    "derive_single_row",
    "order_block_rows",
    "order_entry",
]
