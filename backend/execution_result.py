import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


ADVISORY_PROPERTY_SKIPPED = "property_skipped"
ADVISORY_NO_MATCHING_NODES = "no_matching_nodes"
ADVISORY_EMPTY_SELECTION = "empty_selection"
ADVISORY_TOO_FEW_SELECTED = "too_few_selected"
ADVISORY_UNKNOWN_COMMAND = "unknown_command"
ADVISORY_UNKNOWN_OPERATION = "unknown_arrange_operation"


@dataclass
class Advisory:
    """A non-fatal notice: the command was a valid no-op or part of it was skipped."""

    code: str
    message: str
    command_type: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    user_visible: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "command_type": self.command_type,
            "details": self.details,
        }


@dataclass
class ExecutionResult:
    """Outcome of a batch that ran to completion."""

    executed: int = 0
    skipped: int = 0
    created_node_ids: List[str] = field(default_factory=list)
    advisories: List[Advisory] = field(default_factory=list)
    started_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    finished_at_ms: Optional[int] = None

    def notices(self) -> List[str]:
        """User-visible advisory messages, in the order they were raised."""
        return [a.message for a in self.advisories if a.user_visible]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "executed": self.executed,
            "skipped": self.skipped,
            "created_node_ids": list(self.created_node_ids),
            "advisories": [a.to_dict() for a in self.advisories],
        }
