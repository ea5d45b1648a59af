"""
orchestrator.py

Creates and caches model engines and picks which one serves each role:
  "chat"    — primary answers, verification and conversation summaries
  "routing" — the small search-routing classification call
Part of Vesper — Local-First Personal Assistant.
"""

from __future__ import annotations

import logging
from typing import Optional

import config
from engines.base import BaseEngine
from engines.local_engine import LocalEngine
from engines.remote_engine import RemoteEngine

_log = logging.getLogger("vesper.orchestrator")
_handler = logging.FileHandler(config.LOGS_DIR / "orchestrator.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

_ENGINE_INSTANCES: dict[str, BaseEngine] = {}

_ENGINE_CLASS_MAP = {
    "local": LocalEngine,
    "remote": RemoteEngine,
}


def _normalize_engine_name(name: str) -> str:
    """
    Normalize engine aliases to canonical keys.

    Args:
        name: Engine name or alias.

    Returns:
        Canonical engine key.
    """
    normalized = name.lower().strip()
    alias_map = {
        "ollama": "local",
        "venice": "remote",
        "openai": "remote",
        "openrouter": "remote",
    }
    return alias_map.get(normalized, normalized)


def get_engine(name: str) -> Optional[BaseEngine]:
    """
    Get or create an engine instance by name.

    Args:
        name: "local", "remote" or an alias.

    Returns:
        Engine instance, or None if the name is unknown.
    """
    canonical = _normalize_engine_name(name)

    if canonical in _ENGINE_INSTANCES:
        return _ENGINE_INSTANCES[canonical]

    engine_class = _ENGINE_CLASS_MAP.get(canonical)
    if not engine_class:
        _log.error("Unknown engine name: %s", name)
        return None

    instance = engine_class()
    _ENGINE_INSTANCES[canonical] = instance
    return instance


def route(role: str, override: Optional[str] = None) -> BaseEngine:
    """
    Pick the engine for a role.

    Args:
        role: "chat" or "routing".
        override: Engine name that wins over configuration (e.g. --engine).

    Returns:
        The engine instance.

    Raises:
        RuntimeError: If the configured engine name is unknown.

    Example:
        chat_engine = route("chat")
        router_engine = route("routing")
    """
    if override:
        name = override
    elif role == "routing" and config.ROUTING_ENGINE:
        name = config.ROUTING_ENGINE
    else:
        name = config.DEFAULT_ENGINE

    engine = get_engine(name)
    if engine is None:
        raise RuntimeError(f"Unknown engine '{name}' for role '{role}'. Use 'local' or 'remote'.")
    _log.info("Routed role '%s' to engine '%s'", role, engine.get_name())
    return engine


def log_startup_status() -> None:
    """Log configured engines and their availability."""
    for name in _ENGINE_CLASS_MAP:
        engine = get_engine(name)
        status = "available" if engine and engine.is_available() else "unavailable"
        _log.info("Engine %-8s %s", name, status)
