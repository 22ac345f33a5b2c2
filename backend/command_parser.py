"""
Command Parser - Wire contract between the model and the executor

The model must answer with:
    { "commands": [ { "type": "<string>", "params": { ... } }, ... ] }

`parse` only checks the envelope. Individual command shapes are validated by
the executor, one step at a time, where the document context is available.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine_errors import FormatError

logger = logging.getLogger(__name__)

COMMAND_CREATE = "create"
COMMAND_MODIFY = "modify"
COMMAND_STYLE = "style"
COMMAND_DELETE = "delete"
COMMAND_ARRANGE = "arrange"

COMMAND_TYPES = (COMMAND_CREATE, COMMAND_MODIFY, COMMAND_STYLE, COMMAND_DELETE, COMMAND_ARRANGE)

DEFAULT_ARRANGE_SPACING = 10

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n(?P<body>.*?)\n?\s*```\s*$", re.DOTALL)


# ============================================
# ============ WIRE CONTRACT MODELS ==========
# ============================================

class Command(BaseModel):
    model_config = ConfigDict(extra="ignore")
    type: str
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def _lower_type(cls, value: str) -> str:
        return value.strip().lower()


class CommandBatch(BaseModel):
    """Ordered commands as received; entries are validated lazily by the executor."""

    commands: List[Any]

    def __len__(self) -> int:
        return len(self.commands)


class CreateParams(BaseModel):
    model_config = ConfigDict(extra="ignore")
    nodeType: str
    properties: Dict[str, Any] = Field(default_factory=dict)


class ModifyParams(BaseModel):
    model_config = ConfigDict(extra="ignore")
    nodeTypes: Union[str, List[str]]
    properties: Dict[str, Any] = Field(default_factory=dict)

    def node_kinds(self) -> List[str]:
        kinds = self.nodeTypes if isinstance(self.nodeTypes, list) else [self.nodeTypes]
        return [str(kind).upper() for kind in kinds]


class ArrangeParams(BaseModel):
    model_config = ConfigDict(extra="ignore")
    operation: str
    spacing: Optional[float] = None

    @field_validator("operation")
    @classmethod
    def _lower_operation(cls, value: str) -> str:
        return value.strip().lower()

    def resolved_spacing(self) -> float:
        return DEFAULT_ARRANGE_SPACING if self.spacing is None else self.spacing


# ============================================
# ================== PARSE ===================
# ============================================

def _strip_code_fence(raw_text: str) -> str:
    match = _FENCE_RE.match(raw_text)
    if match:
        return match.group("body")
    return raw_text


def parse(raw_text: Any) -> CommandBatch:
    """Turn raw model text into a CommandBatch.

    Raises:
        FormatError: the text is not JSON, has no `commands` field, or
            `commands` is not a list.
    """
    if not isinstance(raw_text, str):
        raise FormatError("Invalid response format from AI", details={"reason": "not_text"})

    try:
        parsed = json.loads(_strip_code_fence(raw_text))
    except json.JSONDecodeError as e:
        logger.error(f"❌ Invalid JSON response from model: {raw_text[:200]}")
        raise FormatError("Invalid response format from AI", details={"reason": "invalid_json", "error": str(e)})

    if not isinstance(parsed, dict) or "commands" not in parsed:
        logger.error("❌ Model response has no 'commands' field")
        raise FormatError("Invalid response format from AI", details={"reason": "missing_commands"})

    commands = parsed["commands"]
    if not isinstance(commands, list):
        logger.error(f"❌ 'commands' is {type(commands).__name__}, expected a list")
        raise FormatError("Invalid response format from AI", details={"reason": "commands_not_list"})

    logger.info(f"🧾 Parsed command batch with {len(commands)} command(s)")
    return CommandBatch(commands=commands)
