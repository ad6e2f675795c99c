"""PyVISA transport for bus-addressed instruments.

This module provides a VISA-based transport implementation for communicating
with GPIB, USB-TMC and LAN instruments. It wraps the PyVISA library, which is
lazily imported to allow the rest of labctl-scpi to work without VISA
installed.

Supported resource string formats include:
- GPIB: ``GPIB0::8::INSTR``
- USB: ``USB0::0x0699::0x0374::C012345::INSTR``
- TCPIP: ``TCPIP::192.168.1.100::INSTR``
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

from labctl_scpi.errors import (
    ChannelClosedError,
    TransportOpenError,
    TransportTimeoutError,
    TransportWriteError,
)

logger = logging.getLogger(__name__)

# pyvisa.constants.StatusCode.error_timeout
VI_ERROR_TMO = -1073807339


class VisaResource:
    """Transport backed by PyVISA.

    Uses NI-style VISA resource strings (e.g. ``"GPIB0::8::INSTR"``) to
    address instruments. The ``pyvisa`` library is imported lazily on
    :meth:`open` so the rest of ``labctl-scpi`` works without it installed.

    This class implements the :class:`ScpiTransport` protocol and can be
    passed to :class:`ScpiConnection` for high-level SCPI operations.

    Attributes:
        resource_string: The VISA resource address string.
        is_open: Whether the resource is currently open.

    Args:
        resource_string: VISA resource address.
        timeout_ms: I/O timeout in milliseconds (applied on open).
        read_termination: Character(s) that terminate read operations.
        write_termination: Character(s) appended to write operations.

    Example:
        >>> with VisaResource("GPIB0::8::INSTR", timeout_ms=10000) as resource:
        ...     resource.write("*IDN?")
        ...     print(resource.read())
    """

    def __init__(
        self,
        resource_string: str,
        *,
        timeout_ms: int = 5000,
        read_termination: str = "\n",
        write_termination: str = "\n",
    ) -> None:
        """Initialize the VISA resource.

        Args:
            resource_string: VISA resource address string.
            timeout_ms: I/O timeout in milliseconds. Defaults to 5000.
            read_termination: Character(s) that terminate read operations.
                Defaults to newline.
            write_termination: Character(s) appended to write operations.
                Defaults to newline.
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        self._resource_string = resource_string
        self._timeout_ms = timeout_ms
        self._read_termination = read_termination
        self._write_termination = write_termination
        self._rm: Any = None
        self._resource: Any = None
        self._io_error: type[Exception] = Exception

    # -- Properties ----------------------------------------------------------

    @property
    def resource_string(self) -> str:
        """The VISA resource string."""
        return self._resource_string

    @property
    def timeout_ms(self) -> int:
        """The I/O timeout in milliseconds."""
        return self._timeout_ms

    @property
    def is_open(self) -> bool:
        """Return True if the resource is currently open."""
        return self._resource is not None

    @property
    def byte_order(self) -> str:
        """Byte order of multi-byte binary fields, always ``"big"``."""
        return "big"

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the VISA resource.

        Lazily imports ``pyvisa`` and creates a :class:`ResourceManager`.

        Raises:
            TransportOpenError: If ``pyvisa`` is not installed or the resource
                cannot be opened.
        """
        if self._resource is not None:
            return

        try:
            import pyvisa  # type: ignore[import-not-found]  # pylint: disable=import-outside-toplevel
        except ImportError as exc:
            raise TransportOpenError(
                "pyvisa library is not installed. Install with: pip install pyvisa"
            ) from exc

        try:
            self._rm = pyvisa.ResourceManager()
            self._resource = self._rm.open_resource(
                self._resource_string,
                read_termination=self._read_termination,
                write_termination=self._write_termination,
            )
            self._resource.timeout = self._timeout_ms
        except Exception as exc:
            self._resource = None
            if self._rm is not None:
                try:
                    self._rm.close()
                except Exception:  # pylint: disable=broad-except
                    pass
            self._rm = None
            raise TransportOpenError(
                f"Failed to open VISA resource {self._resource_string!r}: {exc}"
            ) from exc

        self._io_error = pyvisa.errors.VisaIOError
        logger.info("Opened VISA resource %s", self._resource_string)

    def close(self) -> None:
        """Close the VISA resource and resource manager.

        Safe to call multiple times.
        """
        if self._resource is not None:
            try:
                self._resource.close()
            except Exception:  # pylint: disable=broad-except
                pass
            self._resource = None
            logger.info("Closed VISA resource %s", self._resource_string)
        if self._rm is not None:
            try:
                self._rm.close()
            except Exception:  # pylint: disable=broad-except
                pass
            self._rm = None

    def __enter__(self) -> VisaResource:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Transport interface -------------------------------------------------

    def write(self, message: str) -> None:
        """Send a message to the instrument.

        Args:
            message: The SCPI command or query string.

        Raises:
            ChannelClosedError: If the resource is not open.
            TransportWriteError: If VISA reports an I/O error.
        """
        resource = self._require_open()
        try:
            resource.write(message)
        except self._io_error as exc:
            raise TransportWriteError(f"Write to {self._resource_string} failed: {exc}") from exc

    def read(self) -> str:
        """Read a response from the instrument.

        Returns:
            The response string.

        Raises:
            ChannelClosedError: If the resource is not open or the read fails.
            TransportTimeoutError: If no terminated response arrived in time.
        """
        resource = self._require_open()
        try:
            result: str = resource.read()
        except self._io_error as exc:
            raise self._translate_read_error(exc) from exc
        return result

    def write_raw(self, data: bytes) -> None:
        """Send raw bytes with no write termination.

        Raises:
            ChannelClosedError: If the resource is not open.
            TransportWriteError: If VISA reports an I/O error.
        """
        resource = self._require_open()
        try:
            resource.write_raw(bytes(data))
        except self._io_error as exc:
            raise TransportWriteError(f"Write to {self._resource_string} failed: {exc}") from exc

    def read_bytes(self, count: int) -> bytes:
        """Read exactly *count* raw bytes.

        Raises:
            ChannelClosedError: If the resource is not open or the read fails.
            TransportTimeoutError: If fewer than *count* bytes arrived in time.
        """
        resource = self._require_open()
        try:
            data: bytes = resource.read_bytes(count)
        except self._io_error as exc:
            raise self._translate_read_error(exc) from exc
        return data

    def discard_input(self) -> None:
        """Clear the device and drop any unread response data.

        Raises:
            ChannelClosedError: If the resource is not open or the clear fails.
        """
        resource = self._require_open()
        try:
            resource.clear()
        except self._io_error as exc:
            raise ChannelClosedError(
                f"Clear of {self._resource_string} failed: {exc}"
            ) from exc
        logger.debug("Discarded pending input on %s", self._resource_string)

    # -- Private helpers -----------------------------------------------------

    def _require_open(self) -> Any:
        if self._resource is None:
            raise ChannelClosedError(f"VISA resource {self._resource_string} is not open")
        return self._resource

    def _translate_read_error(self, exc: Exception) -> Exception:
        if getattr(exc, "error_code", None) == VI_ERROR_TMO:
            return TransportTimeoutError(
                f"Timed out after {self._timeout_ms} ms reading from {self._resource_string}"
            )
        return ChannelClosedError(f"Read from {self._resource_string} failed: {exc}")
