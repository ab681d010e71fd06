"""
Result shapes that cross the boundary between the orchestration loop and the
launcher UI. The set of terminal outcomes is closed: every value returned by
`OrchestrationLoop.run` or `AssistantSession` is one of the four classes below.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Union


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    CONFIRM_INTERRUPT = "confirm_interrupt"
    TEXT_DONE = "text_done"
    ERROR = "error"
    MAX_TURNS_REACHED = "max_turns_reached"


@dataclass(frozen=True)
class ConfirmationRequest:
    """A proposed automation script waiting for the user to run or discard it."""

    script_content: str


@dataclass(frozen=True)
class TextResponse:
    type: ClassVar[str] = "text_response"
    content: str


@dataclass(frozen=True)
class ToolExecuted:
    type: ClassVar[str] = "tool_executed"
    results: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class AutomationConfirmationRequired:
    type: ClassVar[str] = "automation_confirmation_required"
    script_content: str


@dataclass(frozen=True)
class ErrorOutcome:
    type: ClassVar[str] = "error"
    message: str


TerminalOutcome = Union[TextResponse, ToolExecuted, AutomationConfirmationRequired, ErrorOutcome]


def error_payload(message: str) -> dict:
    return {"success": False, "error": message}
