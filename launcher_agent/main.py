import logging
from dataclasses import dataclass
from typing import List, Optional, TypedDict

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langgraph.graph import END, StateGraph

from launcher_agent import catalog
from launcher_agent.outcomes import (
    AutomationConfirmationRequired,
    ConfirmationRequest,
    ErrorOutcome,
    LoopState,
    TerminalOutcome,
    TextResponse,
    error_payload,
)
from launcher_agent.prompts.main_system_prompt import prompt

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 5
MAX_TURNS_ERROR = "max turns reached"
NO_USABLE_RESULT_ERROR = "Model produced no usable tool results or text."


class AgentState(TypedDict):
    messages: List[BaseMessage]
    turn: int
    status: LoopState
    outcome: Optional[TerminalOutcome]


@dataclass
class LoopResult:
    outcome: TerminalOutcome
    state: LoopState
    messages: List[BaseMessage]
    turns: int


def message_text(message) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


def ordered_tool_calls(message: AIMessage) -> List[dict]:
    """
    Valid and unparseable tool calls of an assistant message, in the order the model issued them.
    Unparseable calls carry their parse error under "error" and have no args.
    """
    calls = [{"name": call["name"], "args": call["args"], "id": call.get("id"), "error": None} for call in message.tool_calls]
    for call in message.invalid_tool_calls:
        calls.append({
            "name": call.get("name"),
            "args": None,
            "id": call.get("id"),
            "error": call.get("error") or "arguments are not valid JSON",
        })

    raw_calls = message.additional_kwargs.get("tool_calls") or []
    raw_order = {raw.get("id"): index for index, raw in enumerate(raw_calls) if isinstance(raw, dict)}
    if raw_order:
        calls.sort(key=lambda call: raw_order.get(call["id"], len(raw_order)))
    return calls


def should_continue(state):
    if state.get("outcome") is not None:
        return "end"
    return "continue"


class OrchestrationLoop:
    """
    Drives one user query through the model: the "agent" node asks the model for the next
    step, the "action" node runs the tool calls it asked for and feeds the results back.
    Ends with exactly one terminal outcome.
    """

    def __init__(self, model, max_turns: int = DEFAULT_MAX_TURNS, system_prompt: str = prompt):
        if max_turns < 1:
            raise ValueError(f"max_turns must be a positive integer, got {max_turns}")
        self.model_with_tools = model.bind_tools(catalog.get_tools(), tool_choice="auto")
        self.max_turns = max_turns
        self.system_prompt = system_prompt
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(AgentState)

        workflow.add_node("agent", self.agent_node)
        workflow.add_node("action", self.tool_node)

        workflow.set_entry_point("agent")

        workflow.add_conditional_edges("agent", should_continue, {"continue": "action", "end": END})
        workflow.add_conditional_edges("action", should_continue, {"continue": "agent", "end": END})

        return workflow.compile()

    def agent_node(self, state: AgentState) -> dict:
        logger.info(f"Turn {state['turn'] + 1}/{self.max_turns}: sending {len(state['messages'])} messages to the model.")
        try:
            response = self.model_with_tools.invoke(state["messages"])
        except Exception as e:
            logger.error("Model request failed.", exc_info=True)
            return {"status": LoopState.ERROR, "outcome": ErrorOutcome(str(e) or type(e).__name__)}

        if not isinstance(response, AIMessage):
            logger.error(f"Model returned {type(response).__name__} instead of an assistant message.")
            return {
                "status": LoopState.ERROR,
                "outcome": ErrorOutcome(f"Unexpected model response: {type(response).__name__}"),
            }

        messages = state["messages"] + [response]
        tool_calls = ordered_tool_calls(response)
        if not tool_calls:
            logger.info("Model answered with text.")
            return {"messages": messages, "status": LoopState.TEXT_DONE, "outcome": TextResponse(message_text(response))}

        logger.info(f"Model requested {len(tool_calls)} tool call(s): {[call['name'] for call in tool_calls]}")
        return {"messages": messages, "status": LoopState.DISPATCHING_TOOLS}

    def tool_node(self, state: AgentState) -> dict:
        last_message = state["messages"][-1]
        tool_calls = ordered_tool_calls(last_message)
        tool_messages = []
        rejected_scripts = 0

        for position, call in enumerate(tool_calls):
            name = call["name"]
            try:
                capability = catalog.resolve(name)
            except ValueError:
                logger.warning(f"Model requested unknown tool: {name}")
                result = error_payload(f"Unknown tool: {name}")
            else:
                if call["error"] is not None:
                    error = f"Malformed arguments for {name}: {call['error']}"
                else:
                    error = catalog.validate_arguments(capability, call["args"])

                if error is not None:
                    logger.warning(error)
                    result = error_payload(error)
                else:
                    result = catalog.invoke_capability(capability, call["args"])
                    if isinstance(result, ConfirmationRequest):
                        logger.info(
                            f"{name} needs user confirmation; dropping {len(tool_calls) - position - 1} "
                            f"remaining tool call(s) of this batch."
                        )
                        return {
                            "status": LoopState.CONFIRM_INTERRUPT,
                            "outcome": AutomationConfirmationRequired(result.script_content),
                        }
                    if capability in catalog.GATED_CAPABILITIES:
                        rejected_scripts += 1

            tool_messages.append(
                ToolMessage(content=catalog.serialize_result(result), tool_call_id=call["id"] or "", name=name)
            )

        messages = state["messages"] + tool_messages
        turn = state["turn"] + 1

        if rejected_scripts == len(tool_calls):
            text = message_text(last_message)
            if text.strip():
                logger.info("Every script in this batch was rejected; using the assistant text as the answer.")
                return {"messages": messages, "turn": turn, "status": LoopState.TEXT_DONE, "outcome": TextResponse(text)}
            logger.error("Every script in this batch was rejected and the assistant gave no text.")
            return {
                "messages": messages,
                "turn": turn,
                "status": LoopState.ERROR,
                "outcome": ErrorOutcome(NO_USABLE_RESULT_ERROR),
            }

        if turn >= self.max_turns:
            logger.warning(f"Max turns ({self.max_turns}) reached without a final answer.")
            return {
                "messages": messages,
                "turn": turn,
                "status": LoopState.MAX_TURNS_REACHED,
                "outcome": self._max_turns_outcome(messages),
            }

        return {"messages": messages, "turn": turn, "status": LoopState.AWAITING_MODEL}

    @staticmethod
    def _max_turns_outcome(messages) -> TerminalOutcome:
        for message in reversed(messages):
            if isinstance(message, AIMessage):
                text = message_text(message)
                if text.strip():
                    return TextResponse(text)
        return ErrorOutcome(MAX_TURNS_ERROR)

    def invoke(self, query: str) -> LoopResult:
        logger.info(f"Received query: \"{query}\"")
        input_data = {
            "messages": [SystemMessage(self.system_prompt), HumanMessage(query)],
            "turn": 0,
            "status": LoopState.AWAITING_MODEL,
            "outcome": None,
        }

        try:
            final_state = self.graph.invoke(input_data, config={"recursion_limit": 2 * self.max_turns + 4})
        except Exception as e:
            logger.error(f"Orchestration graph failed for query: {query}", exc_info=True)
            return LoopResult(ErrorOutcome(str(e) or type(e).__name__), LoopState.ERROR, input_data["messages"], 0)

        outcome = final_state.get("outcome")
        status = final_state.get("status")
        if outcome is None:
            logger.error("Orchestration graph ended without an outcome.")
            outcome, status = ErrorOutcome(NO_USABLE_RESULT_ERROR), LoopState.ERROR

        logger.info(f"Query finished in state {status.value} with outcome {outcome.type}.")
        return LoopResult(outcome, status, final_state["messages"], final_state["turn"])

    def run(self, query: str) -> TerminalOutcome:
        return self.invoke(query).outcome
