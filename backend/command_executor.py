"""
Command Executor - Run a parsed command batch against a document context

Commands run strictly in order with a single cursor. Recoverable conditions
(blocked properties, empty selection, unknown command types) are collected as
advisories; anything else aborts the batch with one CommandExecutionError.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from command_parser import (
    COMMAND_ARRANGE,
    COMMAND_CREATE,
    COMMAND_DELETE,
    COMMAND_MODIFY,
    COMMAND_STYLE,
    ArrangeParams,
    Command,
    CommandBatch,
    CreateParams,
    ModifyParams,
)
from document_context import DocumentContext, SceneNodeHandle
from engine_errors import CommandExecutionError, FormatError, PropertyAssignError
from execution_result import (
    ADVISORY_EMPTY_SELECTION,
    ADVISORY_TOO_FEW_SELECTED,
    ADVISORY_UNKNOWN_COMMAND,
    ADVISORY_UNKNOWN_OPERATION,
    Advisory,
    ExecutionResult,
)
from node_factory import create_node
from property_policy import node_kind
from selection_mutator import apply_to_selection

logger = logging.getLogger(__name__)

ARRANGE_AXES = {
    "horizontal": ("x", "width"),
    "vertical": ("y", "height"),
}

SUCCESS_MESSAGE = "Commands executed successfully"

ProgressHook = Callable[[Dict[str, Any]], Awaitable[None]]
P = TypeVar("P", bound=BaseModel)


def _peek_type(raw: Any) -> str:
    if isinstance(raw, dict) and isinstance(raw.get("type"), str):
        return raw["type"].strip().lower()
    return "unknown"


def _params(model: Type[P], command: Command) -> P:
    try:
        return model.model_validate(command.params)
    except ValidationError as e:
        raise FormatError(
            f"Invalid params for '{command.type}' command",
            details={"command_type": command.type, "errors": e.errors(include_url=False, include_context=False)},
        ) from e


def _number(value: Any) -> float:
    return 0 if value is None else value


def arrange_nodes(nodes: List[SceneNodeHandle], operation: str, spacing: float) -> List[SceneNodeHandle]:
    """Pack nodes contiguously along one axis.

    Nodes are stable-sorted by their coordinate; the first keeps its position
    and each following node starts `spacing` after the previous one ends.
    Returns the nodes in their new order.
    """
    position, extent = ARRANGE_AXES[operation]
    ordered = sorted(nodes, key=lambda n: _number(n.get(position)))
    cursor = _number(ordered[0].get(position))
    for node in ordered:
        try:
            node.set(position, cursor)
        except Exception as e:
            raise PropertyAssignError(position, cursor, node_kind(node), e) from e
        cursor += _number(node.get(extent)) + spacing
    return ordered


class CommandExecutor:
    def __init__(self, ctx: DocumentContext, progress_hook: Optional[ProgressHook] = None):
        self.ctx = ctx
        self._progress_hook = progress_hook
        self._handlers = {
            COMMAND_CREATE: self._handle_create,
            COMMAND_MODIFY: self._handle_modify,
            COMMAND_STYLE: self._handle_modify,
            COMMAND_DELETE: self._handle_delete,
            COMMAND_ARRANGE: self._handle_arrange,
        }

    async def execute(self, batch: CommandBatch) -> ExecutionResult:
        """Execute every command in order.

        Raises:
            CommandExecutionError: a command failed; earlier commands' effects
                stay in the document and later commands never run.
        """
        result = ExecutionResult()
        logger.info(f"▶️ Executing batch of {len(batch.commands)} command(s)")

        for index, raw in enumerate(batch.commands):
            command_type = _peek_type(raw)
            # Unknown types are skipped whatever their params look like
            if command_type != "unknown" and command_type not in self._handlers:
                logger.warning(f"⚠️ Unknown command type: {command_type}")
                result.skipped += 1
                result.advisories.append(Advisory(
                    code=ADVISORY_UNKNOWN_COMMAND,
                    message=f"Unknown command type: {command_type}",
                    command_type=command_type,
                    details={"index": index},
                    user_visible=False,
                ))
                await self._emit("command_skipped", index, command_type)
                continue

            try:
                command = Command.model_validate(raw)
            except ValidationError as e:
                cause = FormatError(
                    "Malformed command entry",
                    details={"index": index, "errors": e.errors(include_url=False, include_context=False)},
                )
                logger.error(f"❌ Command #{index} is malformed: {e}")
                await self._emit("command_failed", index, command_type, error=str(cause))
                raise CommandExecutionError(command_type, index, cause) from e

            handler = self._handlers[command.type]

            await self._emit("command_started", index, command.type)
            try:
                await handler(command, result)
            except Exception as e:
                logger.error(f"❌ Command #{index} ({command.type}) failed: {e}")
                await self._emit("command_failed", index, command.type, error=str(e))
                raise CommandExecutionError(command.type, index, e) from e
            result.executed += 1
            await self._emit("command_succeeded", index, command.type)

        result.finished_at_ms = int(time.time() * 1000)
        logger.info(f"✅ Batch complete: executed={result.executed}, skipped={result.skipped}, advisories={len(result.advisories)}")
        self.ctx.notify(SUCCESS_MESSAGE)
        return result

    # Internal
    def _advise(self, result: ExecutionResult, code: str, message: str, command_type: str, **details: Any) -> None:
        logger.info(f"ℹ️ {message}")
        self.ctx.notify(message)
        result.advisories.append(Advisory(code=code, message=message, command_type=command_type, details=details))

    async def _emit(self, status: str, index: int, command_type: str, **data: Any) -> None:
        if not callable(self._progress_hook):
            return
        try:
            await self._progress_hook({"status": status, "index": index, "command_type": command_type, **data})
        except Exception as e:
            logger.debug(f"Progress hook failed: {e}")

    async def _handle_create(self, command: Command, result: ExecutionResult) -> None:
        params = _params(CreateParams, command)
        node = await create_node(self.ctx, params.nodeType, params.properties, result.advisories)
        self.ctx.append_to_page(node)
        result.created_node_ids.append(node.id)
        logger.info(f"🆕 Appended {node.type} {node.id} to current page")

    async def _handle_modify(self, command: Command, result: ExecutionResult) -> None:
        params = _params(ModifyParams, command)
        await apply_to_selection(
            self.ctx,
            params.node_kinds(),
            params.properties,
            result.advisories,
            command_type=command.type,
        )

    async def _handle_delete(self, command: Command, result: ExecutionResult) -> None:
        selection = list(self.ctx.selection)
        if not selection:
            self._advise(result, ADVISORY_EMPTY_SELECTION, "No nodes selected for deletion", command.type)
            return
        for node in selection:
            self.ctx.remove_node(node)
        logger.info(f"🗑️ Deleted {len(selection)} node(s)")

    async def _handle_arrange(self, command: Command, result: ExecutionResult) -> None:
        params = _params(ArrangeParams, command)
        nodes = list(self.ctx.selection)
        if len(nodes) < 2:
            self._advise(result, ADVISORY_TOO_FEW_SELECTED, "Select at least 2 nodes to arrange", command.type, selected=len(nodes))
            return
        if params.operation not in ARRANGE_AXES:
            self._advise(
                result,
                ADVISORY_UNKNOWN_OPERATION,
                f"Unknown arrange operation: {params.operation}",
                command.type,
                operation=params.operation,
            )
            return
        spacing = params.resolved_spacing()
        arrange_nodes(nodes, params.operation, spacing)
        logger.info(f"📏 Arranged {len(nodes)} node(s) {params.operation}ly with spacing={spacing}")


async def execute_commands(
    ctx: DocumentContext,
    batch: CommandBatch,
    progress_hook: Optional[ProgressHook] = None,
) -> ExecutionResult:
    """Convenience wrapper around CommandExecutor.execute."""
    return await CommandExecutor(ctx, progress_hook=progress_hook).execute(batch)
