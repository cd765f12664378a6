from typing import Optional


class DreamWeaverError(Exception):
    """Base class for every error raised by the journal."""


class ReportGenerationError(DreamWeaverError):
    """The analysis report could not be produced.

    Carries the message shown to the user on the failure screen.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ChatTurnError(DreamWeaverError):
    """A single follow-up chat turn failed."""


class EmptyDreamError(DreamWeaverError):
    """The dream narrative is empty."""


class PerspectiveRequiredError(DreamWeaverError):
    """At least one perspective has to stay selected."""


class InvalidViewError(DreamWeaverError):
    """The operation is not allowed in the current view."""
