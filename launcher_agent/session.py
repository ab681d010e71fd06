import logging
import threading
from typing import Optional

from launcher_agent import catalog
from launcher_agent.confirmation import ConfirmationGate
from launcher_agent.outcomes import (
    AutomationConfirmationRequired,
    ConfirmationRequest,
    ErrorOutcome,
    TerminalOutcome,
    ToolExecuted,
)

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    pass


class AssistantSession:
    """
    Entry points the launcher UI talks to. One instance lives for the whole process.

    Queries are processed one at a time; a pending automation script survives the query
    that proposed it until the user runs or discards it, or submits another query.
    """

    def __init__(self, loop, gate: Optional[ConfirmationGate] = None):
        self.loop = loop
        self.gate = gate or ConfirmationGate()
        self.pending_confirmation: Optional[ConfirmationRequest] = None
        self._busy = threading.Lock()

    def submit_query(self, text: str) -> TerminalOutcome:
        if not self._busy.acquire(blocking=False):
            raise SessionBusyError("A query is already being processed.")
        if self.pending_confirmation is not None:
            logger.info("New query submitted; discarding the pending automation script.")
            self.pending_confirmation = None
        try:
            outcome = self.loop.run(text)
        finally:
            self._busy.release()

        if isinstance(outcome, AutomationConfirmationRequired):
            self.pending_confirmation = ConfirmationRequest(outcome.script_content)
        return outcome

    def confirm_and_execute(self, script_content: str) -> dict:
        pending = self.pending_confirmation
        self.pending_confirmation = None
        if pending is None:
            logger.warning("Executing a script without a pending confirmation request.")
        elif pending.script_content != script_content:
            logger.warning("Executing a script that differs from the one the model proposed.")
        return self.gate.execute_confirmed(script_content)

    def cancel_confirmation(self) -> None:
        if self.pending_confirmation is not None:
            logger.info("Pending automation script discarded by the user.")
        self.pending_confirmation = None

    def run_capability(self, name, args=None) -> TerminalOutcome:
        """Runs one capability directly for the UI, without the model."""
        try:
            capability = catalog.resolve(name)
        except ValueError:
            return ErrorOutcome(f"Unknown tool: {name}")

        if capability in catalog.GATED_CAPABILITIES:
            return ErrorOutcome(f"{capability.value} can only be run through confirm_and_execute.")

        error = catalog.validate_arguments(capability, args)
        if error is not None:
            return ErrorOutcome(error)

        result = catalog.invoke_capability(capability, args)
        return ToolExecuted([{"tool": capability.value, "result": result}])
