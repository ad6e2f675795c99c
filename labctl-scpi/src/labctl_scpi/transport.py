"""SCPI transport protocol definition.

This module defines the :class:`ScpiTransport` protocol, which specifies the
interface that all transport implementations must provide. Transports handle
the physical layer: line-terminated text for commands and queries, and
unframed raw bytes for binary blocks and binary motion frames.

Implementations include:
- :class:`labctl_scpi.VisaResource`: PyVISA-backed transport (GPIB, USB, LAN)
- :class:`labctl_scpi.SerialPort`: pyserial-backed transport (RS-232)
- Emulator transports in the instrument driver packages
"""

from __future__ import annotations

from typing import Protocol


class ScpiTransport(Protocol):
    """Protocol for instrument message transport.

    Implementations provide the physical layer for sending commands to and
    receiving responses from instruments. Callers are responsible for opening
    the transport before passing it to :class:`ScpiConnection`.

    Line operations append (on write) and strip (on read) the configured
    terminator. Byte operations perform no framing at all; framing belongs
    to the caller.

    A read that times out raises
    :class:`~labctl_scpi.errors.TransportTimeoutError` and must leave the
    transport usable for the next operation. Leftover bytes from an
    abandoned response are cleared with :meth:`discard_input`.

    Example:
        >>> class MyTransport:
        ...     def write(self, message: str) -> None: ...
        ...     def read(self) -> str: return "response"
        ...     def write_raw(self, data: bytes) -> None: ...
        ...     def read_bytes(self, count: int) -> bytes: return bytes(count)
        ...     def discard_input(self) -> None: ...
        ...     def close(self) -> None: ...
        ...
        >>> transport: ScpiTransport = MyTransport()  # Type checks OK
    """

    def write(self, message: str) -> None:
        """Send a line to the instrument.

        Args:
            message: The command or query string to send, without terminator.
        """
        ...

    def read(self) -> str:
        """Read one terminated line from the instrument.

        Returns:
            The response string with the terminator stripped.
        """
        ...

    def write_raw(self, data: bytes) -> None:
        """Send raw bytes with no terminator.

        Args:
            data: Bytes to send verbatim.
        """
        ...

    def read_bytes(self, count: int) -> bytes:
        """Read exactly *count* raw bytes.

        Args:
            count: Number of bytes to read.

        Returns:
            Exactly *count* bytes.
        """
        ...

    def discard_input(self) -> None:
        """Drop any unread input so the next read starts at a fresh response.

        Called after a framing error or timeout left part of a response on
        the channel.
        """
        ...

    def close(self) -> None:
        """Close the transport and release resources."""
        ...
