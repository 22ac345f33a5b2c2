"""
Command Engine - instruction -> relay -> parse -> execute

Also builds the outbound events the bridge sends back to the plugin UI.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from command_executor import ProgressHook, SUCCESS_MESSAGE, execute_commands
from command_parser import parse
from document_context import DocumentContext
from engine_errors import CommandEngineError, CommandExecutionError
from execution_result import ExecutionResult
from system_prompt import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

EVENT_COMMAND_COMPLETE = "command-complete"
EVENT_COMMAND_ERROR = "command-error"


class Relay(Protocol):
    async def send(self, prompt: str, system_prompt: str = ...) -> str: ...


class CommandEngine:
    def __init__(self, relay: Relay, system_prompt: str = SYSTEM_PROMPT):
        self.relay = relay
        self.system_prompt = system_prompt

    async def process(
        self,
        ctx: DocumentContext,
        instruction: str,
        progress_hook: Optional[ProgressHook] = None,
    ) -> ExecutionResult:
        """Run one user instruction end to end.

        Raises RelayError or FormatError before any document mutation, and
        CommandExecutionError when a command fails mid-batch.
        """
        logger.info(f"💬 Processing instruction: {instruction!r}")
        raw_text = await self.relay.send(instruction, self.system_prompt)
        batch = parse(raw_text)
        return await execute_commands(ctx, batch, progress_hook=progress_hook)


def success_event(result: ExecutionResult) -> Dict[str, Any]:
    return {
        "type": EVENT_COMMAND_COMPLETE,
        "message": SUCCESS_MESSAGE,
        "notices": result.notices(),
        "result": result.to_dict(),
    }


def error_event(error: BaseException) -> Dict[str, Any]:
    """Error notice: message, failing command type and root cause."""
    command_type = None
    cause: Any = error
    if isinstance(error, CommandExecutionError):
        command_type = error.command_type
        cause = error.cause

    if isinstance(cause, CommandEngineError):
        cause_payload = cause.payload
    else:
        cause_payload = {"code": "unknown_error", "message": str(cause) or "An unexpected error occurred", "details": {}}

    return {
        "type": EVENT_COMMAND_ERROR,
        "message": str(error) or "An unexpected error occurred",
        "command_type": command_type,
        "cause": cause_payload,
    }
