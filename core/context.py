"""
context.py

Prompt assembler. Builds the message list before each primary model call.

System content order:
  preamble -> always-on facts -> topic facts -> conversation summaries
  -> notes -> web search results -> identity overlay -> personality overlay
followed by the trailing chat window and the current user turn.

Each block group carries a fixed marker header and an instruction line
so the verification pass can tell which kinds of context were used.
Part of Vesper — Local-First Personal Assistant.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import config
from core.providers import ContextBlock, ContextUsage, SourceKind

_log = logging.getLogger("vesper.context")
_handler = logging.FileHandler(config.LOGS_DIR / "context.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

_SYSTEM_PROMPT = """You are {name}, a local-first personal assistant.

- You answer from the context you are given: the user's facts, their notes,
  summaries of earlier conversations and, when present, live web results.
- When the context does not contain the answer, say so plainly instead of guessing.
- Be concise and concrete. Ask a short clarifying question when the request is ambiguous."""

FACTS_MARKER = "--- User facts ---"
HISTORY_MARKER = "--- Conversation summaries ---"
NOTES_MARKER = "--- Notes ---"
SEARCH_MARKER = "--- Web search results ---"
SEARCH_LABEL_PREFIX = "Web search results for"
SEARCH_LABEL = SEARCH_LABEL_PREFIX + ' "{query}":'

FACTS_INSTRUCTION = (
    "Use the user facts above as persistent background about the user. "
    "Prefer matching context tags and ignore low-confidence items unless confirmed."
)
HISTORY_INSTRUCTION = (
    "Use the summaries above to answer recap questions. "
    "If they are insufficient, ask a clarifying question."
)
NOTES_INSTRUCTION = (
    "Use the notes below to answer questions about the user's notes.\n"
    "Do not add or infer information that is not explicitly present in the notes."
)
SEARCH_INSTRUCTION = (
    "All temperatures must be in Celsius (metric units). Do not use Fahrenheit.\n"
    "Use only the search results below to answer. If they are missing or unclear, "
    "say you cannot find the up-to-date information."
)
CLARIFY_INSTRUCTION = "The request may be ambiguous. If it is, ask one short clarifying question instead of answering."


@dataclass
class PromptPlan:
    """Everything sent to the primary model for one turn."""

    preamble: str
    blocks: list[ContextBlock]
    chat_window: list[dict]
    user_turn: dict
    system_context: str
    usage: ContextUsage
    should_verify: bool

    @property
    def messages(self) -> list[dict]:
        return [{"role": "system", "content": self.system_context}, *self.chat_window, self.user_turn]


def get_system_prompt() -> str:
    """
    Return Vesper's base system prompt.

    Example:
        prompt = get_system_prompt()
    """
    return _SYSTEM_PROMPT.format(name=config.ASSISTANT_NAME)


def build_preamble(now: datetime, clarify: bool = False) -> str:
    lines = [
        get_system_prompt(),
        f"Current date and time: {now:%Y-%m-%d %H:%M:%S}",
        "Respond in plain text. Do not use Markdown formatting.",
        "Respond in English unless the user asks otherwise.",
    ]
    if clarify:
        lines.append(CLARIFY_INSTRUCTION)
    return "\n\n".join(lines)


def _order_key(block: ContextBlock) -> int:
    if block.source_kind is SourceKind.FACTS:
        return 0 if block.always_on else 1
    return {
        SourceKind.HISTORY: 2,
        SourceKind.NOTES: 3,
        SourceKind.SEARCH: 4,
        SourceKind.IDENTITY: 5,
        SourceKind.PERSONALITY: 6,
    }[block.source_kind]


def order_blocks(blocks: Iterable[ContextBlock]) -> list[ContextBlock]:
    """Stable sort into assembly order; within a kind, provider order is kept."""
    return sorted(blocks, key=_order_key)


def _render_group(kind: SourceKind, group: list[ContextBlock]) -> str:
    if kind is SourceKind.FACTS:
        parts = [FACTS_MARKER]
        parts.extend(f"User context ({block.label}):\n{block.body.strip()}" for block in group)
        parts.append(FACTS_INSTRUCTION)
        return "\n\n".join(parts)
    if kind is SourceKind.HISTORY:
        bullets = "\n".join(block.body.strip() for block in group)
        return "\n\n".join([HISTORY_MARKER, bullets, HISTORY_INSTRUCTION])
    if kind is SourceKind.NOTES:
        parts = [NOTES_MARKER, NOTES_INSTRUCTION]
        parts.extend(f"### {block.label}\n{block.body.strip()}" for block in group)
        return "\n\n".join(parts)
    if kind is SourceKind.SEARCH:
        parts = [SEARCH_MARKER, SEARCH_INSTRUCTION]
        parts.extend(f"{SEARCH_LABEL.format(query=block.label)}\n{block.body.strip()}" for block in group)
        return "\n\n".join(parts)
    return "\n\n".join(block.body.strip() for block in group)


def render_system_context(preamble: str, blocks: list[ContextBlock]) -> str:
    """Join the preamble and each block group, grouped by source kind in order."""
    sections = [preamble]
    current_kind: Optional[SourceKind] = None
    group: list[ContextBlock] = []
    for block in blocks:
        if block.source_kind is not current_kind and group:
            sections.append(_render_group(current_kind, group))
            group = []
        current_kind = block.source_kind
        group.append(block)
    if group:
        sections.append(_render_group(current_kind, group))
    return "\n\n".join(sections)


def compute_usage(blocks: Iterable[ContextBlock]) -> ContextUsage:
    notes = history = facts = 0
    for block in blocks:
        if block.source_kind is SourceKind.NOTES:
            notes += block.units_counted
        elif block.source_kind is SourceKind.HISTORY:
            history += block.units_counted
        elif block.source_kind is SourceKind.FACTS and not block.always_on:
            facts += block.units_counted
    return ContextUsage(notes_used=notes, history_used=history, facts_used=facts)


def is_verifiable(block: ContextBlock) -> bool:
    if block.units_counted == 0:
        return False
    if block.source_kind is SourceKind.FACTS:
        return not block.always_on
    return block.source_kind in (SourceKind.HISTORY, SourceKind.NOTES, SourceKind.SEARCH)


def chat_window(chat_history: Iterable[dict], size: int) -> list[dict]:
    """Last `size` user/assistant messages with non-empty content."""
    if size <= 0:
        return []
    kept = [
        {"role": msg["role"], "content": msg["content"]}
        for msg in chat_history
        if msg.get("role") in ("user", "assistant") and msg.get("content")
    ]
    return kept[-size:]


def load_overlay_blocks(
    identity_path: Optional[Path] = None,
    personality_path: Optional[Path] = None,
) -> list[ContextBlock]:
    """
    Read identity and personality overlay texts. Missing or blank files are skipped.

    Returns:
        Up to two ContextBlocks (IDENTITY, PERSONALITY), uncounted.
    """
    overlays = []
    for kind, path in (
        (SourceKind.IDENTITY, Path(identity_path or config.IDENTITY_FILE)),
        (SourceKind.PERSONALITY, Path(personality_path or config.PERSONALITY_FILE)),
    ):
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            _log.warning("OVERLAY SKIP | path=%s | error=%s", path, exc)
            continue
        if text:
            overlays.append(ContextBlock(kind, kind.value, text, units_counted=0))
    return overlays


def build(
    query: str,
    blocks: Iterable[ContextBlock],
    chat_history: Iterable[dict] = (),
    now: Optional[datetime] = None,
    images: Optional[list[str]] = None,
    history_window: Optional[int] = None,
    clarify: bool = False,
) -> PromptPlan:
    """
    Assemble the prompt for one turn.

    Args:
        query: The current user message.
        blocks: Every ContextBlock selected this turn, including overlays.
        chat_history: Prior messages, oldest first, excluding the current one.
        now: Reference time for the preamble. Defaults to now.
        images: Base64 image attachments for the current user turn.
        history_window: Trailing messages to keep. Defaults to config.HISTORY_WINDOW.
        clarify: Add the clarifying-question directive.

    Returns:
        A PromptPlan; plan.messages is ready for any engine.

    Example:
        plan = build("what did i write last week?", note_blocks)
        reply = engine.chat(plan.messages)
    """
    ordered = order_blocks(blocks)
    preamble = build_preamble(now or datetime.now(), clarify=clarify)
    system_context = render_system_context(preamble, ordered)
    window = chat_window(chat_history, config.HISTORY_WINDOW if history_window is None else history_window)

    user_turn: dict = {"role": "user", "content": query}
    if images:
        user_turn["images"] = list(images)

    usage = compute_usage(ordered)
    should_verify = any(is_verifiable(block) for block in ordered)

    _log.info(
        "BUILD | blocks=%d | window=%d | notes=%d | history=%d | facts=%d | verify=%s",
        len(ordered), len(window), usage.notes_used, usage.history_used, usage.facts_used, should_verify,
    )
    return PromptPlan(
        preamble=preamble,
        blocks=ordered,
        chat_window=window,
        user_turn=user_turn,
        system_context=system_context,
        usage=usage,
        should_verify=should_verify,
    )
