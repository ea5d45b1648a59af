"""
verification.py

Second-pass check of a primary answer against the exact system context
it was generated from. At most one extra model call per turn; the call
sees only the system context and the answer, never earlier turns.
Part of Vesper — Local-First Personal Assistant.
"""

import logging
from enum import Enum

import config
from core.context import HISTORY_MARKER, NOTES_MARKER, SEARCH_LABEL_PREFIX
from core.errors import EngineError, VerificationError

_log = logging.getLogger("vesper.verification")
_handler = logging.FileHandler(config.LOGS_DIR / "pipeline.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

VERIFY_SYSTEM_PROMPT = "You verify responses against provided context. Respond in English only."
VERIFY_INSTRUCTION = (
    "Verify the response using only the provided context. "
    "Correct any statements not supported by the context. "
    "If nothing needs correction, return the original response. "
    "Respond in English. Output only the final response text."
)

VERIFY_MARKERS = (
    HISTORY_MARKER,
    NOTES_MARKER,
    SEARCH_LABEL_PREFIX,
)


class VerificationOutcome(str, Enum):
    UNVERIFIED = "unverified"
    CONFIRMED = "confirmed"
    CORRECTED = "corrected"
    FAILED = "failed"


def has_verifiable_context(system_context: str) -> bool:
    """True if the context contains a history, notes or search marker."""
    return any(marker in system_context for marker in VERIFY_MARKERS)


def build_verification_messages(system_context: str, answer: str) -> list[dict]:
    """
    Build the single verification request.

    Example:
        build_verification_messages("--- Notes ---\\n...", "You wrote X.")
        # [{"role": "system", ...}, {"role": "user", "content": "Context:\\n..."}]
    """
    return [
        {"role": "system", "content": VERIFY_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Context:\n{system_context}\n\nOriginal response:\n{answer}\n\n{VERIFY_INSTRUCTION}",
        },
    ]


def _run_check(engine, system_context: str, answer: str) -> str:
    try:
        reply = engine.chat(build_verification_messages(system_context, answer))
    except EngineError as exc:
        raise VerificationError(str(exc)) from exc
    if not reply or not reply.strip():
        raise VerificationError("verifier returned an empty response")
    return reply


def verify(engine, system_context: str, answer: str, should_verify: bool) -> tuple[str, VerificationOutcome]:
    """
    Optionally verify an answer.

    Args:
        engine: Any BaseEngine.
        system_context: The exact system content used for the primary answer.
        answer: The primary answer.
        should_verify: The PromptPlan's should_verify flag.

    Returns:
        (final_answer, outcome). On CONFIRMED the original answer object is
        returned unchanged; on FAILED or UNVERIFIED the original stands.

    Example:
        text, outcome = verify(engine, plan.system_context, answer, plan.should_verify)
    """
    if not should_verify or not answer or not answer.strip():
        return answer, VerificationOutcome.UNVERIFIED
    if not has_verifiable_context(system_context):
        return answer, VerificationOutcome.UNVERIFIED

    try:
        reply = _run_check(engine, system_context, answer)
    except VerificationError as exc:
        _log.warning("VERIFY | outcome=failed | error=%s", exc)
        return answer, VerificationOutcome.FAILED

    if reply.strip() == answer.strip():
        _log.info("VERIFY | outcome=confirmed | chars=%d", len(answer))
        return answer, VerificationOutcome.CONFIRMED

    corrected = reply.strip()
    _log.info("VERIFY | outcome=corrected | before=%d | after=%d", len(answer), len(corrected))
    return corrected, VerificationOutcome.CORRECTED
