"""
Editing tools - MCP tools for changing module content.

Every edit is an action on a parent instance path (e.g.
"GLOBAL/0/PATTERNS/0/CH1/0/") and a node id local to it. Each module has
its own undo history for the lifetime of the server.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from chuk_mcp_tracker.constants import DEFAULT_BLOCK_LENGTH, ErrorMessages, NodeKind
from chuk_mcp_tracker.editing import EditHistory
from chuk_mcp_tracker.models.actions import (
    EditAction,
    action_from_value,
    insert_action,
    remove_action,
    set_action,
)
from chuk_mcp_tracker.module import ModuleManager
from chuk_mcp_tracker.module.document import Module
from chuk_mcp_tracker.module.generator import generate_instance
from chuk_mcp_tracker.module.serializer import instance_to_form

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def register_editing_tools(
    mcp: ChukMCPServer,
    manager: ModuleManager,
) -> dict[str, Any]:
    """
    Register module editing tools with the MCP server.

    Args:
        mcp: The MCP server instance
        manager: The module manager

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}
    histories: dict[str, EditHistory] = {}

    def history_for(module: Module) -> EditHistory:
        # A reloaded module starts a fresh history
        history = histories.get(module.name)
        if history is None or history.module is not module:
            history = EditHistory(module)
            histories[module.name] = history
        return history

    async def get_module(name: str) -> Module:
        module = await manager.get(name)
        if module is None:
            raise ValueError(ErrorMessages.MODULE_NOT_FOUND.format(name=name))
        return module

    def edited(history: EditHistory, reverse: EditAction) -> str:
        return json.dumps(
            {
                "status": "success",
                "reverse": reverse.to_value(),
                "can_undo": history.can_undo(),
                "can_redo": history.can_redo(),
            }
        )

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_get_node(module: str, path: str, node_id: str) -> str:
        """
        Get all instances of a node.

        Args:
            module: Module name
            path: Path of the parent group instance (e.g., 'GLOBAL/0/PATTERNS/0/')
            node_id: Child node id (e.g., 'CH1')

        Returns:
            JSON string with one form per instance

        Example:
            tracker_get_node(module="my-song", path="GLOBAL/0/PATTERNS/0/", node_id="CH1")
        """
        try:
            mod = await get_module(module)
            node = mod.get_node(path, node_id)
            return json.dumps(
                {
                    "status": "success",
                    "node_id": node_id,
                    "instance_ids": node.instance_ids(),
                    "instances": [
                        instance_to_form(mod.config, node_id, instance)
                        for instance in node.instances
                    ],
                }
            )
        except Exception as e:
            logger.exception("Failed to get node")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_get_node"] = tracker_get_node

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_set(
        module: str,
        path: str,
        node_id: str,
        values: list[list[Any]],
    ) -> str:
        """
        Set instances, cells or rows.

        With a group path, `values` are [instance_id, value] pairs. With a
        block path and a field id, they are [row, value] pairs of that
        column. With a block path and the block's own id, they are
        [row, [cells...]] pairs. Blocks grow as needed.

        Args:
            module: Module name
            path: Parent instance path
            node_id: Node id local to the parent
            values: [id, value] pairs

        Returns:
            JSON string with the reverse action

        Example:
            tracker_set(
                module="my-song",
                path="GLOBAL/0/PATTERNS/0/CH1/0/",
                node_id="NOTE1",
                values=[[0, "c4"], [4, "e4"]]
            )
        """
        try:
            mod = await get_module(module)
            history = history_for(mod)
            reverse = history.apply(set_action(path, node_id, values))
            return edited(history, reverse)
        except Exception as e:
            logger.exception("Failed to set values")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_set"] = tracker_set

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_insert(
        module: str,
        path: str,
        node_id: str,
        values: list[list[Any]],
    ) -> str:
        """
        Insert instances, cells or rows.

        Inserting into a column shifts the cells below down and grows the
        block by one row. Inserting whole rows shifts every column.

        Args:
            module: Module name
            path: Parent instance path
            node_id: Node id local to the parent
            values: [id, value] pairs

        Returns:
            JSON string with the reverse action

        Example:
            tracker_insert(
                module="my-song",
                path="GLOBAL/0/PATTERNS/0/CH1/0/",
                node_id="NOTE1",
                values=[[2, "g4"]]
            )
        """
        try:
            mod = await get_module(module)
            history = history_for(mod)
            reverse = history.apply(insert_action(path, node_id, values))
            return edited(history, reverse)
        except Exception as e:
            logger.exception("Failed to insert values")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_insert"] = tracker_insert

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_remove(
        module: str,
        path: str,
        node_id: str,
        ids: list[int],
    ) -> str:
        """
        Remove instances, cells or rows.

        Removing a cell shifts the cells below up and leaves an empty cell
        at the end of the column. Removing whole rows shrinks the block.

        Args:
            module: Module name
            path: Parent instance path
            node_id: Node id local to the parent
            ids: Instance ids or row indices

        Returns:
            JSON string with the reverse action

        Example:
            tracker_remove(module="my-song", path="GLOBAL/0/PATTERNS/0/", node_id="CH1", ids=[1])
        """
        try:
            mod = await get_module(module)
            history = history_for(mod)
            reverse = history.apply(remove_action(path, node_id, ids))
            return edited(history, reverse)
        except Exception as e:
            logger.exception("Failed to remove values")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_remove"] = tracker_remove

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_apply_action(module: str, action: list[Any]) -> str:
        """
        Apply an action given in list form.

        Leaf actions are [verb, path, node_id, payload] with verb one of
        set, insert, remove. Compound actions are ["compound", action...]
        and undo as one step. If a compound fails part way, the children
        already applied are kept, reported under "applied", and can be undone.

        Args:
            module: Module name
            action: Action in list form

        Returns:
            JSON string with the reverse action

        Example:
            tracker_apply_action(
                module="my-song",
                action=["compound",
                        ["set", "GLOBAL/0/", "BPM", [[0, 150]]],
                        ["set", "GLOBAL/0/PATTERNS/0/CH1/0/", "NOTE1", [[0, "a3"]]]]
            )
        """
        try:
            mod = await get_module(module)
            history = history_for(mod)
            reverse = history.apply(action_from_value(action))
            return edited(history, reverse)
        except Exception as e:
            logger.exception("Failed to apply action")
            result: dict[str, Any] = {"status": "error", "message": str(e)}
            applied = getattr(e, "applied", None)
            if applied:
                # Committed children of a failed compound stay on the undo stack
                result["applied"] = applied.to_value()
                result["can_undo"] = True
            return json.dumps(result)

    tools["tracker_apply_action"] = tracker_apply_action

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_add_pattern(
        module: str,
        block: str,
        instance_id: int | None = None,
        length: int = DEFAULT_BLOCK_LENGTH,
        group_instance: int = 0,
    ) -> str:
        """
        Add an empty pattern instance to a block node.

        Args:
            module: Module name
            block: Block node id (e.g., 'CH1')
            instance_id: Id for the new pattern (default: next free id)
            length: Number of empty rows
            group_instance: Instance of the enclosing group

        Returns:
            JSON string with the new instance id

        Example:
            tracker_add_pattern(module="my-song", block="CH1", length=32)
        """
        try:
            mod = await get_module(module)
            config = mod.config
            if config.node_type(block) != NodeKind.BLOCK:
                raise ValueError(f"{block} is not a block")
            parent = config.parent_id(block)
            assert parent is not None
            path = config.default_path(parent, group_instance)
            if instance_id is None:
                instance_id = mod.get_node(path, block).next_instance_id()

            instance = generate_instance(config, block, instance_id, length)
            history = history_for(mod)
            history.apply(insert_action(path, block, [(instance_id, instance)]))
            return json.dumps(
                {
                    "status": "success",
                    "block": block,
                    "instance_id": instance_id,
                    "rows": length,
                    "message": f"Added {block} pattern {instance_id} ({length} rows)",
                }
            )
        except Exception as e:
            logger.exception("Failed to add pattern")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_add_pattern"] = tracker_add_pattern

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_undo(module: str, steps: int = 1) -> str:
        """
        Undo the most recent edits.

        Args:
            module: Module name
            steps: Number of edits to undo

        Returns:
            JSON string with the undone actions

        Example:
            tracker_undo(module="my-song")
        """
        try:
            mod = await get_module(module)
            history = history_for(mod)
            if not history.can_undo():
                return json.dumps({"status": "error", "message": ErrorMessages.NOTHING_TO_UNDO})

            undone = history.undo(steps)
            return json.dumps(
                {
                    "status": "success",
                    "undone": [entry.action.to_value() for entry in undone],
                    "can_undo": history.can_undo(),
                    "can_redo": history.can_redo(),
                }
            )
        except Exception as e:
            logger.exception("Failed to undo")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_undo"] = tracker_undo

    @mcp.tool  # type: ignore[arg-type]
    async def tracker_redo(module: str, steps: int = 1) -> str:
        """
        Redo the most recently undone edits.

        Args:
            module: Module name
            steps: Number of edits to redo

        Returns:
            JSON string with the replayed actions

        Example:
            tracker_redo(module="my-song")
        """
        try:
            mod = await get_module(module)
            history = history_for(mod)
            if not history.can_redo():
                return json.dumps({"status": "error", "message": ErrorMessages.NOTHING_TO_REDO})

            replayed = history.redo(steps)
            return json.dumps(
                {
                    "status": "success",
                    "redone": [entry.action.to_value() for entry in replayed],
                    "can_undo": history.can_undo(),
                    "can_redo": history.can_redo(),
                }
            )
        except Exception as e:
            logger.exception("Failed to redo")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tracker_redo"] = tracker_redo

    return tools
