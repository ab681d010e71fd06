import argparse
import json
import logging

from langchain_core.globals import set_debug

from launcher_agent.config import AssistantConfig
from launcher_agent.confirmation import ConfirmationGate
from launcher_agent.main import OrchestrationLoop
from launcher_agent.models.openai_models import build_chat_model
from launcher_agent.outcomes import AutomationConfirmationRequired
from launcher_agent.session import AssistantSession
from launcher_gui.rendering import render_execution, render_outcome


def setup_logging(config):
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        filename=config.log_file,
        filemode='a',
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        encoding='utf-8'
    )
    set_debug(config.debug)


def build_session(config):
    loop = OrchestrationLoop(build_chat_model(config), max_turns=config.max_turns)
    gate = ConfirmationGate(timeout=config.script_timeout)
    return AssistantSession(loop, gate)


def run_console(session):
    print("Launcher assistant. Empty line or Ctrl+D to quit.")
    while True:
        try:
            query = input("> ").strip()
        except EOFError:
            break
        if not query:
            break

        outcome = session.submit_query(query)
        view = render_outcome(outcome)

        if isinstance(outcome, AutomationConfirmationRequired):
            print(f"The assistant wants to run this script:\n---\n{outcome.script_content}\n---")
            answer = input("Run it? [y/N] ").strip().lower()
            if answer in ("y", "yes"):
                print(render_execution(session.confirm_and_execute(outcome.script_content))["text"])
            else:
                session.cancel_confirmation()
                print("Script discarded.")
        elif view["view"] == "results":
            print(json.dumps(view["items"], indent=2, ensure_ascii=False))
        else:
            print(view["text"])


def main():
    parser = argparse.ArgumentParser(description="Natural-language desktop launcher.")
    parser.add_argument("--console", action="store_true", help="use a terminal prompt instead of the launcher window")
    args = parser.parse_args()

    config = AssistantConfig.from_env()
    setup_logging(config)
    config.report_api_key()

    session = build_session(config)
    logging.info("Assistant session ready.")

    if args.console:
        run_console(session)
        return

    from launcher_gui.overlay import LauncherWindow

    app = LauncherWindow(session)
    app.mainloop()
    logging.info("Launcher shut down.")


if __name__ == '__main__':
    main()
