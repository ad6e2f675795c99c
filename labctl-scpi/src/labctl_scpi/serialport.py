"""pyserial transport for RS-232 instruments.

This module provides a serial-line transport implementation, used for the
stage controller. It wraps the pyserial library, which is lazily imported on
:meth:`SerialPort.open` in the same way :class:`~labctl_scpi.visa.VisaResource`
handles PyVISA.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from labctl_scpi.errors import (
    ChannelClosedError,
    TransportOpenError,
    TransportTimeoutError,
    TransportWriteError,
)

logger = logging.getLogger(__name__)

_VALID_PARITIES = frozenset({"N", "E", "O", "M", "S"})


@dataclass(frozen=True)
class SerialConfig:
    """Line settings for a serial transport.

    The defaults match the stage controller: 19200 baud, 8N1 and a CR/LF
    line terminator.

    Args:
        baudrate: Line speed in baud (> 0).
        bytesize: Data bits per character (5-8).
        parity: Parity letter as understood by pyserial (``"N"``, ``"E"``, ...).
        stopbits: Stop bits (1, 1.5 or 2).
        timeout_s: Read timeout in seconds (> 0).
        terminator: Line terminator appended on write and stripped on read.
    """

    baudrate: int = 19200
    bytesize: int = 8
    parity: str = "N"
    stopbits: float = 1
    timeout_s: float = 2.0
    terminator: str = "\r\n"

    def __post_init__(self) -> None:
        if self.baudrate <= 0:
            raise ValueError("baudrate must be > 0")
        if self.bytesize not in (5, 6, 7, 8):
            raise ValueError("bytesize must be 5, 6, 7 or 8")
        if self.parity not in _VALID_PARITIES:
            raise ValueError(f"parity must be one of {sorted(_VALID_PARITIES)}")
        if self.stopbits not in (1, 1.5, 2):
            raise ValueError("stopbits must be 1, 1.5 or 2")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if not self.terminator:
            raise ValueError("terminator must be non-empty")


class SerialPort:
    """Transport backed by pyserial.

    Implements the :class:`ScpiTransport` protocol. A line read that does not
    see the terminator before the timeout, or a byte read that comes back
    short, raises :class:`TransportTimeoutError` after flushing the input
    buffer, so a late partial reply cannot corrupt the next read.

    Args:
        port: Serial port name (e.g. ``"COM3"`` or ``"/dev/ttyUSB0"``).
        config: Line settings. Defaults to :class:`SerialConfig` defaults.

    Example:
        >>> with SerialPort("/dev/ttyUSB0") as port:
        ...     port.write_raw(bytes([0xAA]))
    """

    def __init__(self, port: str, config: SerialConfig | None = None) -> None:
        self._port = port
        self._config = config or SerialConfig()
        self._serial: Any = None
        self._serial_error: type[Exception] = Exception

    @property
    def port(self) -> str:
        """The serial port name."""
        return self._port

    @property
    def config(self) -> SerialConfig:
        """The line settings."""
        return self._config

    @property
    def is_open(self) -> bool:
        """Return True if the port is currently open."""
        return self._serial is not None

    @property
    def byte_order(self) -> str:
        """Byte order of multi-byte binary fields, always ``"big"``."""
        return "big"

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port.

        Raises:
            TransportOpenError: If ``pyserial`` is not installed or the port
                cannot be opened.
        """
        if self._serial is not None:
            return

        try:
            import serial  # type: ignore[import-untyped]  # pylint: disable=import-outside-toplevel
        except ImportError as exc:
            raise TransportOpenError(
                "pyserial library is not installed. Install with: pip install pyserial"
            ) from exc

        cfg = self._config
        try:
            self._serial = serial.Serial(
                self._port,
                baudrate=cfg.baudrate,
                bytesize=cfg.bytesize,
                parity=cfg.parity,
                stopbits=cfg.stopbits,
                timeout=cfg.timeout_s,
            )
        except Exception as exc:
            self._serial = None
            raise TransportOpenError(f"Failed to open serial port {self._port!r}: {exc}") from exc

        self._serial_error = serial.SerialException
        logger.info("Opened serial port %s at %d baud", self._port, cfg.baudrate)

    def close(self) -> None:
        """Close the serial port. Safe to call multiple times."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except Exception:  # pylint: disable=broad-except
            pass
        self._serial = None
        logger.info("Closed serial port %s", self._port)

    def __enter__(self) -> SerialPort:
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
        """Send a line, appending the configured terminator."""
        self.write_raw((message + self._config.terminator).encode("ascii"))

    def read(self) -> str:
        """Read one terminated line and return it without the terminator.

        Raises:
            TransportTimeoutError: If the terminator was not seen in time.
        """
        port = self._require_open()
        terminator = self._config.terminator.encode("ascii")
        try:
            data: bytes = port.read_until(terminator)
        except self._serial_error as exc:
            raise ChannelClosedError(f"Read from {self._port} failed: {exc}") from exc
        if not data.endswith(terminator):
            self._flush_input(port)
            raise TransportTimeoutError(
                f"Timed out after {self._config.timeout_s} s waiting for a line on {self._port}"
            )
        return data[: -len(terminator)].decode("ascii", errors="replace")

    def write_raw(self, data: bytes) -> None:
        """Send raw bytes verbatim."""
        port = self._require_open()
        try:
            port.write(bytes(data))
            port.flush()
        except self._serial_error as exc:
            raise TransportWriteError(f"Write to {self._port} failed: {exc}") from exc

    def read_bytes(self, count: int) -> bytes:
        """Read exactly *count* bytes.

        Raises:
            TransportTimeoutError: If fewer than *count* bytes arrived in time.
        """
        port = self._require_open()
        try:
            data: bytes = port.read(count)
        except self._serial_error as exc:
            raise ChannelClosedError(f"Read from {self._port} failed: {exc}") from exc
        if len(data) < count:
            self._flush_input(port)
            raise TransportTimeoutError(
                f"Timed out on {self._port}: expected {count} bytes, got {len(data)}"
            )
        return data

    def discard_input(self) -> None:
        """Drop everything waiting in the receive buffer.

        Raises:
            ChannelClosedError: If the port is not open or has been lost.
        """
        self._flush_input(self._require_open())
        logger.debug("Discarded pending input on %s", self._port)

    # -- Private helpers -----------------------------------------------------

    def _require_open(self) -> Any:
        if self._serial is None:
            raise ChannelClosedError(f"Serial port {self._port} is not open")
        return self._serial

    def _flush_input(self, port: Any) -> None:
        try:
            port.reset_input_buffer()
        except self._serial_error as exc:
            raise ChannelClosedError(f"Serial port {self._port} lost: {exc}") from exc
