"""
summary.py

Conversation summaries written when a conversation ends. The history
provider later reads them back for recap questions.
Part of Vesper — Local-First Personal Assistant.
"""

import logging
from datetime import datetime
from typing import Optional

import config
from core.errors import EngineError

_log = logging.getLogger("vesper.summary")
_handler = logging.FileHandler(config.LOGS_DIR / "history.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

FALLBACK_SUMMARY = "Conversation"
SHORT_SUMMARY_WORDS = 12

SUMMARY_PROMPT = (
    "Summarize the conversation above for a personal history log.\n"
    "Reply with exactly two lines:\n"
    "Short: <at most 12 words>\n"
    "Detailed: <two or three sentences covering topics, decisions and follow-ups>"
)


def build_summary_messages(history: list[dict]) -> list[dict]:
    transcript = "\n".join(
        f"{msg['role'].capitalize()}: {msg['content']}"
        for msg in history
        if msg.get("role") in ("user", "assistant") and msg.get("content")
    )
    return [
        {"role": "system", "content": "You write concise conversation summaries. Respond in English only."},
        {"role": "user", "content": f"{transcript}\n\n{SUMMARY_PROMPT}"},
    ]


def clamp_words(text: str, limit: int) -> str:
    return " ".join(text.split()[:limit])


def parse_summary_reply(reply: str) -> tuple[str, str]:
    """
    Parse "Short:" / "Detailed:" lines.

    Returns:
        (short, detailed). Missing parts fall back to each other, then to
        FALLBACK_SUMMARY.

    Example:
        parse_summary_reply("Short: Trip plans\\nDetailed: Planned Brno.")
        # ("Trip plans", "Planned Brno.")
    """
    short = detailed = ""
    for line in reply.splitlines():
        stripped = line.strip()
        lowered = stripped.lower()
        if lowered.startswith("short:"):
            short = stripped[len("short:"):].strip()
        elif lowered.startswith("detailed:"):
            detailed = stripped[len("detailed:"):].strip()
    if not short and not detailed:
        detailed = reply.strip()
    short = clamp_words(short or detailed, SHORT_SUMMARY_WORDS) or FALLBACK_SUMMARY
    return short, detailed or short


def summarize_conversation(engine, history: list[dict]) -> tuple[str, str]:
    """
    Ask the chat engine for a summary of a finished conversation.

    Args:
        engine: Any BaseEngine.
        history: The conversation's messages, oldest first.

    Returns:
        (short, detailed). ("Conversation", "Conversation") if the engine fails.
    """
    try:
        reply = engine.chat(build_summary_messages(history))
    except EngineError as exc:
        _log.warning("SUMMARY FAILED | error=%s", exc)
        return FALLBACK_SUMMARY, FALLBACK_SUMMARY
    return parse_summary_reply(reply)


def save_conversation_summary(
    engine,
    store,
    conversation_id: str,
    history: list[dict],
    created_at: Optional[datetime] = None,
) -> Optional[tuple[str, str]]:
    """
    Summarize and persist a conversation. Conversations without a user
    message are skipped.

    Returns:
        The (short, detailed) pair that was saved, or None if skipped.
    """
    if not any(msg.get("role") == "user" and msg.get("content") for msg in history):
        return None
    short, detailed = summarize_conversation(engine, history)
    store.save_summary(conversation_id, short, detailed, created_at=created_at)
    return short, detailed
