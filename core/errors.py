"""
errors.py

Exception hierarchy for the Vesper pipeline.
Each class maps to one failure kind and its recovery policy:
some are surfaced to the user as plain text, others are recovered locally.
Part of Vesper — Local-First Personal Assistant.
"""


class VesperError(Exception):
    """Base class for all pipeline errors."""


class EngineError(VesperError):
    """A model endpoint could not be reached or returned an unusable payload."""


class ClassifierCollaboratorError(VesperError):
    """A deterministic handler's collaborator failed. Surfaced as assistant text."""


class WeatherError(ClassifierCollaboratorError):
    """The weather service request failed."""


class RouterParseError(VesperError):
    """The routing model returned a malformed payload. Recovered by heuristics."""


class SearchError(VesperError):
    """The web search request failed at the transport level."""


class SearchUnavailable(VesperError):
    """
    Live search was selected but cannot produce results.

    Attributes:
        notice: The user-facing pending notice. The turn ends without a model call.
        reason: One of "missing_key", "empty", "transport".
    """

    def __init__(self, notice: str, reason: str) -> None:
        super().__init__(notice)
        self.notice = notice
        self.reason = reason


class ProviderIOError(VesperError):
    """A single backing item (note, profile file) could not be read. Skipped."""


class StoreConfigurationError(VesperError):
    """A configured store path is invalid. Reported once, not per query."""


class PrimaryModelError(VesperError):
    """The main answer could not be generated. No answer is recorded."""


class VerificationError(VesperError):
    """The verification call failed. The original answer stands."""


class TurnCancelled(VesperError):
    """The pipeline was closed while a turn was in flight."""
