"""
remote_engine.py

Remote engine for any OpenAI-compatible chat endpoint
(Venice, OpenRouter, Groq, a self-hosted vLLM, ...).
Uses the openai SDK with a custom base_url.
Part of Vesper — Local-First Personal Assistant.
"""

from __future__ import annotations

import logging

import config
from core.errors import EngineError
from engines.base import BaseEngine

_log = logging.getLogger("vesper.engines.remote")
_handler = logging.FileHandler(config.LOGS_DIR / "engines.log")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))


def to_openai_messages(messages: list[dict]) -> list[dict]:
    """
    Convert pipeline messages to OpenAI chat format.

    Image attachments become image_url content parts with a data URI.

    Example:
        to_openai_messages([{"role": "user", "content": "hi", "images": ["AAAA"]}])
        # [{"role": "user", "content": [
        #     {"type": "text", "text": "hi"},
        #     {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}]}]
    """
    converted = []
    for msg in messages:
        role = msg.get("role", "user")
        content = msg.get("content", "")
        images = msg.get("images") or []
        if not images:
            converted.append({"role": role, "content": content})
            continue
        parts: list[dict] = [{"type": "text", "text": content}]
        for image in images:
            parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{image}"},
            })
        converted.append({"role": role, "content": parts})
    return converted


class RemoteEngine(BaseEngine):
    """Model engine for a remote OpenAI-compatible API."""

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the remote engine.

        Args:
            model: Remote model id. Defaults to config.REMOTE_MODEL.
            base_url: API base URL. Defaults to config.REMOTE_BASE_URL.
            api_key: Bearer key. Defaults to config.REMOTE_API_KEY.
            timeout: Request timeout in seconds. Defaults to config.REQUEST_TIMEOUT.
        """
        self.model = model or config.REMOTE_MODEL
        self.base_url = base_url or config.REMOTE_BASE_URL
        self.api_key = api_key if api_key is not None else config.REMOTE_API_KEY
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._client = None

    def get_name(self) -> str:
        """Return the engine name identifier."""
        return "remote"

    def _get_client(self):
        """
        Create or reuse the OpenAI-compatible client.

        Raises:
            EngineError: If no API key is configured.
        """
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise EngineError("Remote engine is not configured. Set REMOTE_API_KEY.")

        from openai import OpenAI

        self._client = OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
        )
        return self._client

    def chat(self, messages: list[dict]) -> str:
        """
        Send messages to the remote chat completions endpoint.

        Args:
            messages: Ordered message dicts (role, content, optional images).

        Returns:
            The reply text.

        Raises:
            EngineError: On missing credentials, SDK/transport errors or an
                empty choices list.
        """
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=to_openai_messages(messages),
            )
        except Exception as exc:
            _log.error("Remote chat error: %s", exc)
            raise EngineError(f"Remote API error: {exc}") from exc

        if not response.choices:
            raise EngineError("Remote API returned no choices")
        result = response.choices[0].message.content or ""
        _log.info("Remote chat: %d chars returned", len(result))
        return result

    def is_available(self) -> bool:
        """
        Check if credentials are configured and the endpoint answers.

        Returns:
            True if the remote engine is usable, otherwise False.
        """
        try:
            self._get_client().models.list()
            return True
        except Exception as exc:
            _log.debug("Remote engine unavailable: %s", exc)
            return False
