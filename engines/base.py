"""
base.py

Abstract base class that all model engines must implement.
Defines the chat interface used by the pipeline for answering,
routing, verification and summaries.
Part of Vesper — Local-First Personal Assistant.
"""

from abc import ABC, abstractmethod


class BaseEngine(ABC):
    """
    Abstract base class for all model engines in Vesper.

    Every engine (Ollama, OpenAI-compatible remote) subclasses this and
    implements chat() so the pipeline can swap them freely.

    Messages are dicts of the form
    {"role": "system"|"user"|"assistant", "content": "...", "images": [b64, ...]}
    where "images" is optional and only meaningful on user turns.

    Example:
        class MyEngine(BaseEngine):
            def chat(self, messages):
                return "response"
            def is_available(self):
                return True
            def get_name(self):
                return "mine"
    """

    @abstractmethod
    def chat(self, messages: list[dict]) -> str:
        """
        Send a full message list and return the assistant's reply.

        Args:
            messages: Ordered message dicts (role, content, optional images).

        Returns:
            The reply text. May be empty if the model produced nothing.

        Raises:
            EngineError: On transport failure or an unusable payload.

        Example:
            reply = engine.chat([{"role": "user", "content": "Hello"}])
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this engine is currently reachable.

        Returns:
            True if the engine can accept requests, False otherwise.
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        """
        Return the name identifier for this engine.

        Returns:
            A string name like "local" or "remote".
        """
        ...
