"""Recap Chat -- terminal entry point.

Chats with an Anthropic model, keeping the conversation in a JSON file and
folding old turns into a running summary once the window grows too long.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml

from llm.anthropic_client import AnthropicClient
from llm.errors import CompletionError
from assistant.metrics import MetricsLogger
from assistant.session import Session
from assistant.store import ConversationStore
from assistant.usage import UsageAccountant, build_price_table, format_usage

EXIT_COMMANDS = {"exit", "quit"}
RESET_COMMAND = "reset"
STATS_COMMAND = "stats"
SUMMARY_COMMAND = "summary"


def load_config(path: str | None = None) -> dict:
    """Load config from YAML file."""
    if path is None:
        path = str(Path(__file__).parent / "config.yaml")

    config_path = Path(path)
    if not config_path.exists():
        print(f"Config file not found: {path}")
        sys.exit(1)
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def build_session(config: dict, history_file: str | None = None) -> tuple[Session, MetricsLogger]:
    """Wire client, accountant, store and metrics into a session."""
    llm_cfg = config["llm"]
    llm_client = AnthropicClient(llm_cfg)
    accountant = UsageAccountant(llm_cfg["model"], build_price_table(config.get("pricing")))
    metrics = MetricsLogger(config.get("metrics", {}), model=llm_cfg["model"])

    conversation_cfg = config.get("conversation", {})
    if history_file is None:
        history_file = conversation_cfg.get("history_file")
    store = ConversationStore(history_file) if history_file else None

    session = Session(conversation_cfg, llm_client, accountant, store=store, metrics=metrics)
    return session, metrics


def handle_line(session: Session, line: str) -> bool:
    """Process one input line. Returns False when the user asked to exit."""
    text = line.strip()
    if not text:
        return True

    command = text.lower()
    if command in EXIT_COMMANDS:
        print("Goodbye!")
        return False
    if command == RESET_COMMAND:
        session.reset()
        print("\033[33m[History cleared, starting a new conversation]\033[0m")
        return True
    if command == STATS_COMMAND:
        print(format_usage(session.usage))
        return True
    if command == SUMMARY_COMMAND:
        print(session.summary or "[No summary yet]")
        return True

    try:
        reply = session.submit(text)
    except CompletionError as e:
        print(f"\033[31mError: {e}\033[0m")
        return True

    print(f"\nAssistant: {reply.text}")
    if reply.compressed:
        print(f"\033[33m[Older messages folded into the summary, "
              f"{session.usage.compressions} compression(s) so far]\033[0m")
    usage = session.usage
    print(f"[turns in window: {session.turn_count} | "
          f"last: in={usage.last_input_tokens} out={usage.last_output_tokens} "
          f"cost=${usage.last_cost:.6f} | total: ${usage.total_cost:.6f}]")
    return True


def run(session: Session) -> None:
    if session.turn_count > 0:
        print(f"[Loaded history: {session.turn_count} messages]")

    print(f"Chat ('exit' to quit, '{RESET_COMMAND}' for a new topic, "
          f"'{STATS_COMMAND}' for usage, '{SUMMARY_COMMAND}' for the running summary)")
    print("=" * 60)

    while True:
        try:
            line = input("\nYou: ")
        except EOFError:
            print()
            break
        if not handle_line(session, line):
            break


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Recap Chat")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--history-file", type=str, default=None,
                        help="Conversation file (overrides config)")
    parser.add_argument("--model", type=str, default=None, help="Model id (overrides config)")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if not os.environ.get("ANTHROPIC_API_KEY"):
        print("\033[31mANTHROPIC_API_KEY is not set\033[0m")
        return 1

    config = load_config(args.config)
    if args.model:
        config.setdefault("llm", {})["model"] = args.model

    session, metrics = build_session(config, args.history_file)
    try:
        run(session)
    except KeyboardInterrupt:
        print()
    finally:
        metrics.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
