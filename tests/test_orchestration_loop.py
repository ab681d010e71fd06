import json

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from conftest import FakeChatModel, assert_tool_messages_reference_preceding_calls, tool_call_message
from launcher_agent.main import OrchestrationLoop, ordered_tool_calls
from launcher_agent.outcomes import AutomationConfirmationRequired, ErrorOutcome, LoopState, TextResponse
from launcher_agent.tools import system_tools


def test_loop_binds_catalog_tools_with_automatic_choice() -> None:
    model = FakeChatModel([AIMessage(content="hi")])

    OrchestrationLoop(model)

    assert [tool.name for tool in model.bound_tools] == [
        "list_applications",
        "open_path",
        "search_files",
        "read_file_content",
        "run_automation_script",
    ]
    assert model.tool_choice == "auto"


def test_loop_rejects_non_positive_turn_budget() -> None:
    with pytest.raises(ValueError):
        OrchestrationLoop(FakeChatModel([]), max_turns=0)


def test_plain_text_answer_ends_immediately() -> None:
    model = FakeChatModel([AIMessage(content="Hello there.")])

    result = OrchestrationLoop(model, system_prompt="be helpful").invoke("hi")

    assert result.outcome == TextResponse("Hello there.")
    assert result.state is LoopState.TEXT_DONE
    assert result.turns == 0
    sent = model.calls[0]
    assert isinstance(sent[0], SystemMessage) and sent[0].content == "be helpful"
    assert isinstance(sent[1], HumanMessage) and sent[1].content == "hi"


def test_empty_text_answer_is_not_an_error() -> None:
    model = FakeChatModel([AIMessage(content="")])

    assert OrchestrationLoop(model).run("hi") == TextResponse("")


def test_list_applications_then_text_answer(installed_apps) -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "list_applications", {})),
        AIMessage(content="You have Google Chrome and Safari installed."),
    ])

    result = OrchestrationLoop(model).invoke("list my applications")

    assert result.outcome == TextResponse("You have Google Chrome and Safari installed.")
    assert result.turns == 1
    tool_message = model.calls[1][-1]
    assert isinstance(tool_message, ToolMessage)
    assert tool_message.tool_call_id == "call_1"
    assert json.loads(tool_message.content) == installed_apps
    assert_tool_messages_reference_preceding_calls(result.messages)


def test_automation_call_interrupts_with_confirmation(script_runs) -> None:
    script = 'tell application "Google Chrome" to make new tab at end of tabs of front window'
    model = FakeChatModel([tool_call_message(("call_1", "run_automation_script", {"script_content": script}))])

    result = OrchestrationLoop(model).invoke("open a new tab in Chrome")

    assert result.outcome == AutomationConfirmationRequired(script)
    assert result.state is LoopState.CONFIRM_INTERRUPT
    assert len(model.calls) == 1
    assert not any(isinstance(message, ToolMessage) for message in result.messages)
    assert script_runs == []


def test_calls_after_automation_call_are_not_executed(monkeypatch, script_runs) -> None:
    executed = []
    monkeypatch.setattr(system_tools, "_get_installed_applications", lambda: executed.append("list") or [])
    monkeypatch.setattr(system_tools.subprocess, "run", lambda *args, **kwargs: executed.append("subprocess"))
    model = FakeChatModel([
        tool_call_message(
            ("call_1", "list_applications", {}),
            ("call_2", "run_automation_script", {"script_content": "beep"}),
            ("call_3", "search_files", {"query": "report"}),
            ("call_4", "list_applications", {}),
        )
    ])

    outcome = OrchestrationLoop(model).run("do several things")

    assert outcome == AutomationConfirmationRequired("beep")
    assert executed == ["list"]
    assert script_runs == []


def test_empty_automation_script_is_folded_back_as_error(installed_apps) -> None:
    model = FakeChatModel([
        tool_call_message(
            ("call_1", "run_automation_script", {"script_content": ""}),
            ("call_2", "list_applications", {}),
        ),
        AIMessage(content="I could not write a script, but here are your apps."),
    ])

    result = OrchestrationLoop(model).invoke("do something")

    assert result.outcome == TextResponse("I could not write a script, but here are your apps.")
    first, second = [message for message in model.calls[1] if isinstance(message, ToolMessage)]
    assert json.loads(first.content) == {"success": False, "error": "Empty script content provided."}
    assert json.loads(second.content) == installed_apps


def test_directory_read_error_is_folded_back(tmp_path) -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "read_file_content", {"path": str(tmp_path)})),
        AIMessage(content="Sorry, that path is a folder."),
    ])

    result = OrchestrationLoop(model).invoke("read that")

    assert result.outcome == TextResponse("Sorry, that path is a folder.")
    tool_message = model.calls[1][-1]
    assert json.loads(tool_message.content) == {"success": False, "error": f"Path is not a file: {tmp_path}"}


def test_unknown_tool_becomes_error_result_and_batch_continues(installed_apps) -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "format_disk", {}), ("call_2", "list_applications", {})),
        AIMessage(content="Done."),
    ])

    result = OrchestrationLoop(model).invoke("hi")

    assert result.outcome == TextResponse("Done.")
    tool_messages = [message for message in result.messages if isinstance(message, ToolMessage)]
    assert [message.tool_call_id for message in tool_messages] == ["call_1", "call_2"]
    assert json.loads(tool_messages[0].content) == {"success": False, "error": "Unknown tool: format_disk"}
    assert_tool_messages_reference_preceding_calls(result.messages)


def test_batch_of_rejected_scripts_uses_assistant_text() -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "run_automation_script", {"script_content": " "}), content="Let me try that."),
    ])

    result = OrchestrationLoop(model).invoke("do it")

    assert result.outcome == TextResponse("Let me try that.")
    assert result.state is LoopState.TEXT_DONE
    assert len(model.calls) == 1


def test_batch_of_rejected_scripts_without_text_is_an_error() -> None:
    model = FakeChatModel([tool_call_message(("call_1", "run_automation_script", {"script_content": ""}))])

    result = OrchestrationLoop(model).invoke("do it")

    assert result.outcome == ErrorOutcome("Model produced no usable tool results or text.")
    assert result.state is LoopState.ERROR
    assert len(model.calls) == 1
    assert_tool_messages_reference_preceding_calls(result.messages)


def test_lone_unknown_tool_gives_the_model_another_turn() -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "no_such_tool", {})),
        AIMessage(content="That tool does not exist, sorry."),
    ])

    result = OrchestrationLoop(model).invoke("do it")

    assert result.outcome == TextResponse("That tool does not exist, sorry.")
    assert len(model.calls) == 2
    assert json.loads(model.calls[1][-1].content) == {"success": False, "error": "Unknown tool: no_such_tool"}
    assert_tool_messages_reference_preceding_calls(result.messages)


def test_lone_invalid_arguments_give_the_model_another_turn(installed_apps) -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "open_path", {"where": "/tmp"})),
        tool_call_message(("call_2", "list_applications", {})),
        AIMessage(content="Here are your apps instead."),
    ])

    result = OrchestrationLoop(model).invoke("open it")

    assert result.outcome == TextResponse("Here are your apps instead.")
    assert result.turns == 2
    assert json.loads(model.calls[1][-1].content)["error"].startswith("Invalid arguments for open_path")


def test_malformed_arguments_become_error_results(installed_apps) -> None:
    message = AIMessage(
        content="",
        tool_calls=[{"name": "list_applications", "args": {}, "id": "call_2"}],
        invalid_tool_calls=[{"name": "open_path", "args": "{\"path\": ", "id": "call_1", "error": "bad json"}],
        additional_kwargs={"tool_calls": [{"id": "call_1"}, {"id": "call_2"}]},
    )
    model = FakeChatModel([message, AIMessage(content="ok")])

    result = OrchestrationLoop(model).invoke("open it")

    assert [call["id"] for call in ordered_tool_calls(message)] == ["call_1", "call_2"]
    tool_messages = [m for m in result.messages if isinstance(m, ToolMessage)]
    assert [m.tool_call_id for m in tool_messages] == ["call_1", "call_2"]
    assert json.loads(tool_messages[0].content)["error"] == "Malformed arguments for open_path: bad json"


def test_schema_violations_become_error_results(installed_apps) -> None:
    model = FakeChatModel([
        tool_call_message(("call_1", "open_path", {"where": "/tmp"}), ("call_2", "list_applications", {})),
        AIMessage(content="ok"),
    ])

    result = OrchestrationLoop(model).invoke("open it")

    error = json.loads(model.calls[1][-2].content)
    assert result.outcome == TextResponse("ok")
    assert error["success"] is False
    assert error["error"].startswith("Invalid arguments for open_path")


def test_model_failure_returns_error_without_retry() -> None:
    model = FakeChatModel([ConnectionError("network unreachable"), AIMessage(content="never")])

    result = OrchestrationLoop(model).invoke("hi")

    assert result.outcome == ErrorOutcome("network unreachable")
    assert result.state is LoopState.ERROR
    assert len(model.calls) == 1


def test_model_failure_after_tool_turn_returns_error(installed_apps) -> None:
    model = FakeChatModel([tool_call_message(("call_1", "list_applications", {})), RuntimeError("rate limited")])

    assert OrchestrationLoop(model).run("hi") == ErrorOutcome("rate limited")


def test_max_turns_without_text_is_an_error(installed_apps) -> None:
    model = FakeChatModel([tool_call_message((f"call_{turn}", "list_applications", {})) for turn in range(5)])

    result = OrchestrationLoop(model, max_turns=5).invoke("keep going")

    assert result.outcome == ErrorOutcome("max turns reached")
    assert result.state is LoopState.MAX_TURNS_REACHED
    assert result.turns == 5
    assert len(model.calls) == 5
    assert_tool_messages_reference_preceding_calls(result.messages)


def test_max_turns_returns_last_assistant_text(installed_apps) -> None:
    responses = [tool_call_message((f"call_{turn}", "list_applications", {})) for turn in range(5)]
    responses[2] = tool_call_message(("call_2", "list_applications", {}), content="Still checking...")
    responses[3] = tool_call_message(("call_3", "list_applications", {}), content="Almost there.")
    model = FakeChatModel(responses)

    result = OrchestrationLoop(model, max_turns=5).invoke("keep going")

    assert result.state is LoopState.MAX_TURNS_REACHED
    assert result.outcome == TextResponse("Almost there.")


def test_text_on_last_allowed_turn_is_not_max_turns(installed_apps) -> None:
    responses = [tool_call_message((f"call_{turn}", "list_applications", {})) for turn in range(4)]
    responses.append(AIMessage(content="Finished."))
    model = FakeChatModel(responses)

    result = OrchestrationLoop(model, max_turns=5).invoke("keep going")

    assert result.state is LoopState.TEXT_DONE
    assert result.outcome == TextResponse("Finished.")
    assert len(model.calls) == 5


def test_list_content_blocks_are_joined_into_text() -> None:
    model = FakeChatModel([AIMessage(content=[{"type": "text", "text": "Hello "}, {"type": "text", "text": "world"}])])

    assert OrchestrationLoop(model).run("hi") == TextResponse("Hello world")


def test_tool_results_keep_call_order_across_turns(installed_apps, tmp_path) -> None:
    target = tmp_path / "todo.txt"
    target.write_text("buy milk", encoding="utf-8")
    model = FakeChatModel([
        tool_call_message(("a", "read_file_content", {"path": str(target)}), ("b", "list_applications", {})),
        tool_call_message(("c", "search_files", {"query": ""})),
        AIMessage(content="done"),
    ])

    result = OrchestrationLoop(model).invoke("hi")

    tool_messages = [m for m in result.messages if isinstance(m, ToolMessage)]
    assert [m.tool_call_id for m in tool_messages] == ["a", "b", "c"]
    assert json.loads(tool_messages[0].content) == {"success": True, "content": "buy milk"}
    assert json.loads(tool_messages[2].content) == []
    assert_tool_messages_reference_preceding_calls(result.messages)
