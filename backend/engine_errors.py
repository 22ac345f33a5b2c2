"""
Engine Errors - Structured failures of the command engine

Every error carries a structured payload so callers (the bridge agent, the UI)
can present it verbatim or branch on its code.
Payload shape: { code: str, message: str, details?: dict }
"""

from typing import Dict, Any, Optional


class CommandEngineError(Exception):
    """
    Base class for engine failures.

    Carries a structured payload for the caller to relay to the user.
    """

    default_code = "engine_error"

    def __init__(self, message: str = "", code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.code: str = str(code or self.default_code)
        self.message: str = str(message or "")
        self.details: Dict[str, Any] = details or {}
        self.payload: Dict[str, Any] = {"code": self.code, "message": self.message, "details": self.details}

        # Exception text is simply the message (or the code when empty)
        super().__init__(self.message if self.message else self.code)


class FormatError(CommandEngineError):
    """Raw model output is not parseable or lacks the required shape."""

    default_code = "invalid_response_format"


class UnsupportedKindError(CommandEngineError):
    """A create command names a node kind outside the creatable set."""

    default_code = "unsupported_node_type"

    def __init__(self, node_type: Any):
        self.node_type = node_type
        super().__init__(f"Unsupported node type: {node_type}", details={"node_type": node_type})


class FontLoadError(CommandEngineError):
    default_code = "font_load_failed"

    def __init__(self, font: Any, cause: BaseException):
        self.font = font
        self.cause = cause
        super().__init__(f"Failed to load font: {cause}", details={"font": font, "cause": str(cause)})


class PropertyAssignError(CommandEngineError):
    """A policy-approved, normalized value was still rejected by the document."""

    default_code = "property_assign_failed"

    def __init__(self, property_name: str, value: Any, node_kind: str, cause: BaseException):
        self.property_name = property_name
        self.value = value
        self.node_kind = node_kind
        self.cause = cause
        super().__init__(
            f"Failed to set property {property_name}: {cause}",
            details={"property": property_name, "value": value, "node_kind": node_kind, "cause": str(cause)},
        )


class RelayError(CommandEngineError):
    """The prompt relay could not be reached or returned a failure."""

    default_code = "relay_failed"


class CommandExecutionError(CommandEngineError):
    """
    Aggregated failure of a command batch.

    Names the failing command's type and position and wraps the root cause.
    """

    default_code = "command_failed"

    def __init__(self, command_type: str, index: int, cause: BaseException):
        self.command_type = command_type
        self.index = index
        self.cause = cause
        cause_payload = getattr(cause, "payload", None) or {"code": "unknown_error", "message": str(cause)}
        super().__init__(
            f"Failed to execute commands: {cause}",
            details={"command_type": command_type, "index": index, "cause": cause_payload},
        )
