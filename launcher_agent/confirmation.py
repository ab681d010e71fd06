"""
Two-phase handling for automation scripts.

Phase 1 (`request_confirmation`) only validates and packages the script; it is the
whole body of the `run_automation_script` tool the model sees. Phase 2
(`ConfirmationGate.execute_confirmed`) runs the script and is reachable only from
the session after the user approves it.
"""
import logging
from typing import Callable, Optional

from langchain_core.tools import tool

from launcher_agent.outcomes import ConfirmationRequest, error_payload
from launcher_agent.tools.automation_tools import SCRIPT_TIMEOUT_SECONDS, run_script

logger = logging.getLogger(__name__)

EMPTY_SCRIPT_ERROR = "Empty script content provided."
EMPTY_CONFIRMED_SCRIPT_ERROR = "Cannot execute empty script."


def _is_blank(script_content) -> bool:
    return not isinstance(script_content, str) or not script_content.strip()


def request_confirmation(script_content):
    if _is_blank(script_content):
        logger.warning("Automation script requested with empty content.")
        return error_payload(EMPTY_SCRIPT_ERROR)
    logger.info("Automation script held for user confirmation.")
    return ConfirmationRequest(script_content=script_content)


@tool
def run_automation_script(script_content: str):
    """
    Generate an AppleScript to control applications or macOS features. Use this for tasks
    not covered by the other tools (opening browser tabs, creating documents, controlling
    music players). Put the raw AppleScript in script_content. The script is NOT run right
    away: it is shown to the user, who decides whether to run it. Only write scripts that
    directly fulfil the user's request and avoid anything harmful.

    Args:
        script_content (str): The raw AppleScript source, e.g. 'tell application "Safari" to activate'.
    """
    return request_confirmation(script_content)


class ConfirmationGate:
    def __init__(self, runner: Optional[Callable[..., dict]] = None, timeout: float = SCRIPT_TIMEOUT_SECONDS):
        self.runner = runner or run_script
        self.timeout = timeout

    def execute_confirmed(self, script_content) -> dict:
        if _is_blank(script_content):
            logger.warning("Refusing to execute an empty confirmed script.")
            return error_payload(EMPTY_CONFIRMED_SCRIPT_ERROR)
        try:
            return self.runner(script_content, timeout=self.timeout)
        except Exception as e:
            logger.error("Confirmed script runner raised.", exc_info=True)
            return error_payload(f"Script execution failed: {e}")
