"""
Exceptions raised by the module engine.

Out-of-range row access during editing is not an error: it pads or does
nothing. These are the failures that reach the caller.
"""

from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    """Base class for module engine errors."""


class PathNotFound(TrackerError, LookupError):
    """A node path segment does not resolve against the current tree."""

    def __init__(self, path: Any, segment: str | None = None):
        self.path = path
        self.segment = segment
        location = f" at '{segment}'" if segment else ""
        super().__init__(f"Path not found: {path}{location}")


class UnsupportedActionKind(TrackerError, ValueError):
    """An edit action's verb is not set/insert/remove/compound."""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Unsupported action kind: {kind!r}")


class InstanceExistsError(TrackerError, ValueError):
    """An insert targets an instance id that is already in use."""

    def __init__(self, node_id: str, instance_id: int):
        self.node_id = node_id
        self.instance_id = instance_id
        super().__init__(f"Instance {instance_id} of {node_id} already exists")
