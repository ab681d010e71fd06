import pytest
from langchain_core.messages import AIMessage, ToolMessage

from launcher_agent import confirmation
from launcher_agent.tools import system_tools


class FakeChatModel:
    """Returns scripted responses in order; an Exception in the script is raised instead."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.bound_tools = None
        self.tool_choice = None
        self.calls = []

    def bind_tools(self, tools, tool_choice=None):
        self.bound_tools = list(tools)
        self.tool_choice = tool_choice
        return self

    def invoke(self, messages):
        self.calls.append(list(messages))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def tool_call_message(*calls, content=""):
    return AIMessage(
        content=content,
        tool_calls=[{"name": name, "args": args, "id": call_id} for call_id, name, args in calls],
    )


def assert_tool_messages_reference_preceding_calls(messages):
    assistant_call_ids = None
    for message in messages:
        if isinstance(message, ToolMessage):
            assert assistant_call_ids is not None
            assert message.tool_call_id in assistant_call_ids
        elif isinstance(message, AIMessage):
            assistant_call_ids = {call["id"] for call in message.tool_calls}
            assistant_call_ids |= {call["id"] for call in message.invalid_tool_calls}
        else:
            assistant_call_ids = None


@pytest.fixture
def script_runs(monkeypatch):
    """Records every attempt to actually run an automation script."""
    runs = []

    def fake_run_script(script_content, timeout=None):
        runs.append(script_content)
        return {"success": True, "output": "ran\n"}

    monkeypatch.setattr(confirmation, "run_script", fake_run_script)
    return runs


@pytest.fixture
def installed_apps(monkeypatch):
    apps = [
        {"name": "Google Chrome", "path": "/Applications/Google Chrome.app", "running": True},
        {"name": "Safari", "path": "/Applications/Safari.app", "running": False},
    ]
    monkeypatch.setattr(system_tools, "_get_installed_applications", lambda: list(apps))
    return apps
