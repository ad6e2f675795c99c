"""SCPI protocol error types.

This module defines exception classes for failures that may occur while
talking to an instrument: transport failures, malformed binary blocks,
unparseable responses and errors reported by the instrument itself. All
exceptions inherit from :class:`labctl_core.errors.LabctlError`.

Exception hierarchy:
    ScpiError
    +-- TransportError
    |   +-- TransportOpenError: the channel could not be opened
    |   +-- TransportTimeoutError: a read did not complete in time
    |   +-- ChannelClosedError: the channel is closed or was lost
    |   +-- TransportWriteError: bytes could not be written
    +-- FramingError
    |   +-- BadHeaderError: the block header is not ``#<d><digits>``
    |   +-- LengthMismatchError: fewer bytes than the header declares
    +-- ScpiParseError: a response is not numeric (also a ValueError)
    +-- ScpiCommandError: the instrument error queue was not empty
"""

from __future__ import annotations

from dataclasses import dataclass

from labctl_core.errors import LabctlError


class ScpiError(LabctlError):
    """Base exception for SCPI protocol errors.

    All SCPI-related exceptions inherit from this class, allowing callers
    to catch all SCPI errors with a single except clause.
    """


# -- Transport ---------------------------------------------------------------


class TransportError(ScpiError):
    """Base exception for transport failures."""


class TransportOpenError(TransportError):
    """Raised when a transport cannot be opened."""


class TransportTimeoutError(TransportError):
    """Raised when a read does not complete within the transport timeout.

    The transport stays open and usable after this error; no reconnect is
    required before the next operation.
    """


class ChannelClosedError(TransportError):
    """Raised when the channel is closed or the device went away."""


class TransportWriteError(TransportError):
    """Raised when a write to the channel fails."""


# -- Framing -----------------------------------------------------------------


class FramingError(ScpiError):
    """Base exception for malformed binary blocks."""


class BadHeaderError(FramingError):
    """Raised when a binary block does not start with a valid ``#<d>`` header."""


class LengthMismatchError(FramingError):
    """Raised when a binary block is shorter than its header declares."""


# -- Responses ---------------------------------------------------------------


class ScpiParseError(ScpiError, ValueError):
    """Raised when a response cannot be parsed as the requested type.

    Subclasses :class:`ValueError` so callers that only care about bad
    values can catch it without importing labctl types.
    """


@dataclass(frozen=True)
class ScpiInstrumentError:
    """Single error from an instrument's error queue.

    Attributes:
        code: SCPI error code (negative for standard errors, positive for device-specific).
        message: Human-readable error description from the instrument.
    """

    code: int
    message: str

    def __str__(self) -> str:
        """Return SCPI-format error string.

        Returns:
            Error formatted as ``code,"message"``.
        """
        return f'{self.code},"{self.message}"'


class ScpiCommandError(ScpiError):
    """Raised when an instrument reports errors after a command or query.

    This exception is raised by :class:`ScpiConnection` when error queue
    checking is enabled and the instrument's error queue contains errors
    after a command or query.

    Attributes:
        errors: One or more errors drained from the instrument's error queue.

    Example:
        >>> try:
        ...     conn.command(":SOUR:VOLT:ILIM abc")
        ... except ScpiCommandError as e:
        ...     for err in e.errors:
        ...         print(f"Error {err.code}: {err.message}")
    """

    def __init__(self, errors: tuple[ScpiInstrumentError, ...]) -> None:
        """Initialize the command error with instrument errors.

        Args:
            errors: Tuple of instrument errors from the error queue.
        """
        self.errors = errors
        messages = "; ".join(str(e) for e in errors)
        super().__init__(f"SCPI instrument error(s): {messages}")
