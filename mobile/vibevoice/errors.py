"""
Exceptions raised by the voice input core.

Every failure a session can end with maps to one class here so the session
controller can pick the user-facing message by type.
"""


class VoiceInputError(Exception):
    """Base exception for all voice input errors."""
    pass


class ConfigurationMissing(VoiceInputError):
    """Raised when the server URL or auth token is not set."""
    pass


class PermissionDenied(VoiceInputError):
    """Raised when microphone capture is not authorized."""
    pass


class CaptureUnavailable(VoiceInputError):
    """Raised when the input device cannot be acquired or is already in use."""
    pass


# Transcription Exceptions
class TranscriptionError(VoiceInputError):
    """Base exception for failures while talking to the ASR server."""
    pass


class TransportError(TranscriptionError):
    """Raised on DNS, connect or I/O failures before a usable response."""
    pass


class RequestTimeout(TransportError):
    """Raised when the HTTP request itself timed out."""
    pass


class ServerError(TranscriptionError):
    """Raised when the server answers with a non-200 status."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f"Server returned {status}: {body[:200]}" if body else f"Server returned {status}")


class ParseError(TranscriptionError):
    """Raised when the response body cannot be decoded at all."""
    pass


# Session Exceptions
class TranscriptionTimeout(VoiceInputError):
    """Raised when a session exceeds the transcription deadline."""
    pass


class TranscriptionCancelled(VoiceInputError):
    """Raised inside the network worker when its session is no longer current."""
    pass
