"""
Static catalog of the capabilities the model may call.

`Capability` is the closed set of tool names. Every member maps to exactly one
langchain tool; the model-facing description and JSON schema are derived from
that tool, so `describe()` is a pure function of these definitions.
"""
import json
import logging
from enum import Enum
from typing import Any, Dict, List

from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import ValidationError

from launcher_agent.confirmation import run_automation_script
from launcher_agent.outcomes import error_payload
from launcher_agent.tools.system_tools import list_applications, open_path, read_file_content, search_files

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    LIST_APPLICATIONS = "list_applications"
    OPEN_PATH = "open_path"
    SEARCH_FILES = "search_files"
    READ_FILE_CONTENT = "read_file_content"
    RUN_AUTOMATION_SCRIPT = "run_automation_script"


TOOLS_BY_CAPABILITY: Dict[Capability, BaseTool] = {
    Capability.LIST_APPLICATIONS: list_applications,
    Capability.OPEN_PATH: open_path,
    Capability.SEARCH_FILES: search_files,
    Capability.READ_FILE_CONTENT: read_file_content,
    Capability.RUN_AUTOMATION_SCRIPT: run_automation_script,
}

GATED_CAPABILITIES = frozenset({Capability.RUN_AUTOMATION_SCRIPT})

for _capability in Capability:
    if TOOLS_BY_CAPABILITY[_capability].name != _capability.value:
        raise RuntimeError(f"Tool registered for {_capability.value} is named {TOOLS_BY_CAPABILITY[_capability].name}")


def resolve(name) -> Capability:
    """Raises ValueError for a name outside the catalog."""
    return Capability(name)


def get_tools() -> List[BaseTool]:
    return [TOOLS_BY_CAPABILITY[capability] for capability in Capability]


def describe() -> List[Dict[str, Any]]:
    return [convert_to_openai_tool(tool)["function"] for tool in get_tools()]


def invoke_capability(capability: Capability, args) -> Any:
    tool = TOOLS_BY_CAPABILITY[capability]
    logger.info(f"Invoking {capability.value} with args: {args}")
    try:
        return tool.invoke(args or {})
    except ValidationError as e:
        logger.warning(f"Invalid arguments for {capability.value}: {e}")
        return error_payload(f"Invalid arguments for {capability.value}: {e}")
    except Exception as e:
        logger.error(f"Capability {capability.value} raised an unexpected error.", exc_info=True)
        return error_payload(f"{capability.value} failed: {type(e).__name__}: {e}")


def serialize_result(result) -> str:
    return json.dumps(result, ensure_ascii=False, default=str)


def validate_arguments(capability: Capability, args):
    """Returns an error message when `args` does not match the capability's input schema."""
    schema = TOOLS_BY_CAPABILITY[capability].get_input_schema()
    try:
        schema.model_validate(args or {})
    except ValidationError as e:
        return f"Invalid arguments for {capability.value}: {e}"
    return None
