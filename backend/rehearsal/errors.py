from __future__ import annotations


class RehearsalError(Exception):
    """Base class for errors raised by the session engine."""


class ValidationError(RehearsalError):
    """A required input is missing or blank; the operation is never attempted."""


class RemoteUnavailable(RehearsalError):
    """No credential is configured for the generative service."""


class RemoteFailure(RehearsalError):
    """The generative service errored, timed out, or returned nothing usable."""


class SpeechUnsupported(RehearsalError):
    """The client runtime has no speech recognizer."""

    def __init__(self, message: str = "Speech recognition not supported in this browser. Please use Chrome or Edge.") -> None:
        super().__init__(message)
