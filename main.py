"""
main.py

Entry point for Vesper.
Starts an interactive CLI chat loop, or runs a one-shot command.
Part of Vesper — Local-First Personal Assistant.
"""

import argparse
import base64
import logging
import sys
import uuid
from pathlib import Path

import config
from core import classifier, orchestrator
from core.pipeline import Pipeline, TurnResult, default_providers
from core.summary import save_conversation_summary
from database.history_store import HistoryStore


_log = logging.getLogger("vesper.main")
_handler = logging.FileHandler(config.LOGS_DIR / "main.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

console_handler = logging.StreamHandler(sys.stderr)
console_handler.setFormatter(logging.Formatter("%(message)s"))
logging.getLogger().addHandler(console_handler)
logging.getLogger().setLevel(logging.WARNING)

EXIT_WORDS = ("exit", "quit", "bye")


def print_banner() -> None:
    """Print the Vesper welcome banner."""
    print()
    print("=" * 60)
    print(f"   {config.ASSISTANT_NAME.upper()} - Local-First Personal Assistant")
    print("=" * 60)
    print()


def print_stage(stage: str) -> None:
    print(f"  [{stage}...]", flush=True)


def format_result(result: TurnResult) -> str:
    """
    Render a TurnResult for the terminal, with a usage footer when
    personal context was used.
    """
    lines = [f"! {warning}" for warning in result.warnings]
    lines.append(result.text)
    usage = result.usage
    if usage.any():
        footer = f"(notes: {usage.notes_used}, history: {usage.history_used}, facts: {usage.facts_used}"
        if result.verification.value != "unverified":
            footer += f", {result.verification.value}"
        lines.append(footer + ")")
    return "\n".join(lines)


def read_image(path_text: str) -> str:
    """
    Read an image file as base64.

    Raises:
        OSError: If the file cannot be read.
    """
    return base64.b64encode(Path(path_text).expanduser().read_bytes()).decode("ascii")


def chat_loop(pipeline: Pipeline, chat_engine, store: HistoryStore) -> None:
    """
    Run the interactive chat loop.

    Commands:
        /image <path>  attach an image to the next message
        exit | quit    end the conversation (a summary is saved)
    """
    conversation_id = uuid.uuid4().hex
    history: list[dict] = []
    pending_images: list[str] = []

    print("Type your message and press Enter to chat.")
    print("Type '/image <path>' to attach an image, 'exit' to stop.")
    print()

    while True:
        try:
            user_input = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in EXIT_WORDS:
            print("Goodbye!")
            break

        if user_input.startswith("/image "):
            try:
                pending_images.append(read_image(user_input[len("/image "):].strip()))
                print(f"Attached image ({len(pending_images)} pending).")
            except OSError as exc:
                print(f"[Error] Could not read image: {exc}")
            continue

        images = pending_images or None
        pending_images = []
        result = pipeline.submit(user_input, history, images).result()
        if result.cancelled:
            break

        print(f"{config.ASSISTANT_NAME}: {format_result(result)}")
        print()

        # Notices and errors are not part of the conversation record.
        if result.answer is not None:
            history.append({"role": "user", "content": user_input})
            history.append({"role": "assistant", "content": result.answer})
        _log.info("Conversation turn completed")

    try:
        saved = save_conversation_summary(chat_engine, store, conversation_id, history)
    except Exception as exc:
        print(f"[Warning] Could not save conversation summary: {exc}")
        _log.warning("Summary save failed: %s", exc)
        return
    if saved:
        _log.info("Saved summary for conversation %s", conversation_id)


def run_weather() -> int:
    """One-shot weather command. Returns the process exit code."""
    answer = classifier.classify("weather")
    if answer is None:
        print("Weather is not configured. Set WEATHER_LOCATION in .env.")
        return 1
    print(answer.text)
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Vesper - Local-First Personal Assistant"
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["chat", "weather", "config"],
        default="chat",
        help="What to run (default: chat)",
    )
    parser.add_argument(
        "--engine",
        choices=["local", "remote"],
        default=None,
        help=f"Model engine (default: {config.DEFAULT_ENGINE})",
    )
    parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip the verification pass",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Process exit code.
    """
    args = parse_args(argv)

    if args.command == "config":
        for key, value in config.as_dict().items():
            print(f"{key:24} {value}")
        return 0

    if args.command == "weather":
        return run_weather()

    print_banner()

    engine_name = args.engine or config.DEFAULT_ENGINE
    config.validate_required_for_engine(engine_name)
    orchestrator.log_startup_status()

    chat_engine = orchestrator.route("chat", override=args.engine)
    routing_engine = orchestrator.route("routing", override=args.engine if not config.ROUTING_ENGINE else None)
    if not chat_engine.is_available():
        print(f"[Warning] Engine '{chat_engine.get_name()}' is not reachable right now.")

    store = HistoryStore()
    pipeline = Pipeline(
        chat_engine=chat_engine,
        routing_engine=routing_engine,
        providers=default_providers(store),
        verify=False if args.no_verify else None,
        stage_callback=print_stage,
    )

    print(f"Engine: {chat_engine.get_name()}")
    print("-" * 60)
    print()

    try:
        chat_loop(pipeline, chat_engine, store)
    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")
    finally:
        pipeline.close()

    _log.info("Vesper shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
