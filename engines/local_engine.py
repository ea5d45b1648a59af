"""
local_engine.py

Ollama local model engine implementation.
Runs entirely on localhost — no API keys required.
Connects to the Ollama service at config.OLLAMA_BASE_URL.
Part of Vesper — Local-First Personal Assistant.
"""

import logging

import requests

import config
from core.errors import EngineError
from engines.base import BaseEngine

_log = logging.getLogger("vesper.engines.local")
_handler = logging.FileHandler(config.LOGS_DIR / "engines.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


class LocalEngine(BaseEngine):
    """
    Model engine for Ollama local models.
    No authentication required — runs on localhost.
    Ollama accepts base64 images directly on a message's "images" field.
    """

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the local Ollama engine.

        Args:
            model: The Ollama model to use. Defaults to config.OLLAMA_MODEL.
            base_url: The Ollama API base URL. Defaults to config.OLLAMA_BASE_URL.
            timeout: Request timeout in seconds. Defaults to config.REQUEST_TIMEOUT.
        """
        self.model = model or config.OLLAMA_MODEL
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT

    def get_name(self) -> str:
        """Return the engine name identifier."""
        return "local"

    def chat(self, messages: list[dict]) -> str:
        """
        Send messages to Ollama's /api/chat endpoint (non-streaming).

        Args:
            messages: Ordered message dicts (role, content, optional images).

        Returns:
            The reply text.

        Raises:
            EngineError: On timeout, HTTP error or a malformed body.
        """
        payload_messages = []
        for msg in messages:
            entry = {"role": msg.get("role", "user"), "content": msg.get("content", "")}
            if msg.get("images"):
                entry["images"] = list(msg["images"])
            payload_messages.append(entry)

        try:
            response = requests.post(
                f"{self.base_url}/api/chat",
                json={
                    "model": self.model,
                    "messages": payload_messages,
                    "stream": False,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as exc:
            _log.error("Local chat timeout")
            raise EngineError("Local engine timeout") from exc
        except requests.exceptions.RequestException as exc:
            _log.error("Local chat error: %s", exc)
            raise EngineError(f"Ollama error: {exc}") from exc
        except ValueError as exc:
            _log.error("Local chat returned invalid JSON: %s", exc)
            raise EngineError("Ollama returned an invalid response") from exc

        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            raise EngineError("Ollama response has no message")
        result = message.get("content") or ""
        _log.info("Local chat: %d chars returned", len(result))
        return result

    def is_available(self) -> bool:
        """
        Check if Ollama is running.

        Returns:
            True if the tags endpoint answers with HTTP 200, False otherwise.
        """
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
        except requests.exceptions.RequestException as exc:
            _log.debug("Local engine unavailable: %s", exc)
            return False
        if response.status_code != 200:
            return False
        try:
            models = [m.get("name", "") for m in response.json().get("models", [])]
        except ValueError:
            return True
        if not any(m.startswith(self.model) for m in models):
            _log.debug("Ollama running but model %s not found. Available: %s", self.model, models)
        return True
