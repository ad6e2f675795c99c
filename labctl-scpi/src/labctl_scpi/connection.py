"""SCPI connection: the command/response protocol engine.

This module provides the :class:`ScpiConnection` class, which wraps a
transport layer to provide high-level SCPI operations: fire-and-forget
commands, single-read queries, typed query variants, binary block queries,
optional error queue checking and IEEE 488.2 common commands.

Instrument buses are half-duplex at the command layer, so a connection
never issues a new command while a response is still expected: every
operation holds the connection lock from write to final read.

Typical usage::

    from labctl_scpi import VisaResource, ScpiConnection

    transport = VisaResource("GPIB0::8::INSTR")
    transport.open()
    with ScpiConnection(transport) as conn:
        identity = conn.get_identity()
        x, y = conn.query_numbers("SNAP? 1,2")
"""

from __future__ import annotations

import logging
import re
import threading
from types import TracebackType
from typing import TYPE_CHECKING

from labctl_core.types import InstrumentIdentity

from labctl_scpi.block import read_block
from labctl_scpi.errors import (
    FramingError,
    LengthMismatchError,
    ScpiCommandError,
    ScpiInstrumentError,
    TransportTimeoutError,
)
from labctl_scpi.number import parse_bool, parse_int, parse_number, parse_numbers

if TYPE_CHECKING:
    from labctl_scpi.transport import ScpiTransport

logger = logging.getLogger(__name__)


def parse_idn_response(response: str) -> InstrumentIdentity:
    """Parse a SCPI ``*IDN?`` response into an :class:`InstrumentIdentity`.

    The standard ``*IDN?`` response format is four comma-separated fields::

        manufacturer,model,serial_number,firmware_version

    If the response contains more than four comma-separated fields, the
    extra fields are joined into the firmware string.

    Args:
        response: The raw ``*IDN?`` response string.

    Returns:
        Parsed identity with manufacturer, model, serial, and firmware.

    Raises:
        ValueError: If the response has fewer than four fields.
    """
    parts = [p.strip() for p in response.split(",")]
    if len(parts) < 4:
        raise ValueError(
            f"Expected at least 4 comma-separated fields in *IDN? response, "
            f"got {len(parts)}: {response!r}"
        )
    return InstrumentIdentity(
        manufacturer=parts[0],
        model=parts[1],
        serial=parts[2],
        firmware=",".join(parts[3:]),
    )


# Matches SCPI error responses: optional +/- code, comma, optional quoted message.
_ERROR_RE = re.compile(r"^\s*([+-]?\d+)\s*,\s*\"?([^\"]*)\"?\s*$")


class ScpiConnection:
    """High-level SCPI connection wrapping a transport.

    Provides command/query methods, typed query variants, binary block
    retrieval, and common IEEE 488.2 convenience methods. Transport errors
    (including :class:`~labctl_scpi.errors.TransportTimeoutError`) propagate
    unchanged; the connection never retries.

    When error checking is enabled, the connection drains the instrument's
    error queue via ``SYST:ERR?`` after each command or query and raises
    :class:`ScpiCommandError` if errors are present. It is off by default
    because many instruments (lock-ins, older scopes) do not implement
    ``SYST:ERR?``.

    Args:
        transport: An open :class:`ScpiTransport` instance.
        check_errors: If True, every command and query is followed by
            draining the instrument error queue.

    Example:
        >>> conn = ScpiConnection(transport, check_errors=True)
        >>> conn.reset()  # Send *RST
        >>> current = conn.query_number(":MEAS:CURR?")
    """

    def __init__(self, transport: ScpiTransport, *, check_errors: bool = False) -> None:
        """Initialize the SCPI connection.

        Args:
            transport: An open transport implementing :class:`ScpiTransport`.
            check_errors: Enable automatic error queue checking. Defaults to False.
        """
        self._transport = transport
        self._check_errors = check_errors
        self._lock = threading.RLock()

    @property
    def transport(self) -> ScpiTransport:
        """The underlying transport."""
        return self._transport

    # -- Core operations -----------------------------------------------------

    def command(self, cmd: str, *, check: bool | None = None) -> None:
        """Send a SCPI command (no response expected).

        Args:
            cmd: The SCPI command string (e.g. ``":SOUR:VOLT 1.5"``).
            check: Override the instance-level error check setting.

        Raises:
            ScpiCommandError: If the instrument reports errors.
        """
        with self._lock:
            logger.debug("-> %s", cmd)
            self._transport.write(cmd)
            self._check(check)

    def query(self, cmd: str, *, check: bool | None = None) -> str:
        """Send a SCPI query and return the response.

        Args:
            cmd: The SCPI query string (e.g. ``"WFMPRE:XINCR?"``).
            check: Override the instance-level error check setting.

        Returns:
            The instrument response with surrounding whitespace stripped.

        Raises:
            TransportTimeoutError: If no response arrives within the timeout.
            ScpiCommandError: If the instrument reports errors.
        """
        with self._lock:
            logger.debug("-> %s", cmd)
            self._transport.write(cmd)
            response = self._transport.read().strip()
            logger.debug("<- %s", response)
            self._check(check)
            return response

    def query_block(
        self,
        cmd: str,
        *,
        terminator: bytes = b"\n",
        check: bool | None = None,
    ) -> bytes:
        """Send a query whose response is a definite-length binary block.

        Reads the ``#<d><L>`` header, exactly ``L`` payload bytes and then the
        response terminator, so the channel is left clean for the next query. If the
        block is malformed or stalls, pending input is discarded before the
        error is raised.

        Args:
            cmd: The SCPI query string (e.g. ``"CURVE?"``).
            terminator: Bytes the instrument sends after the block. Pass
                ``b""`` for instruments that send none.
            check: Override the instance-level error check setting.

        Returns:
            The block payload.

        Raises:
            BadHeaderError: If the response is not a binary block.
            LengthMismatchError: If the block or its terminator is short.
            TransportTimeoutError: If the block does not arrive in time.
        """
        with self._lock:
            logger.debug("-> %s", cmd)
            self._transport.write(cmd)
            try:
                payload = read_block(self._transport.read_bytes)
                if terminator:
                    trailer = self._transport.read_bytes(len(terminator))
                    if trailer != terminator:
                        raise LengthMismatchError(
                            f"Expected {terminator!r} after binary block, got {trailer!r}"
                        )
            except (FramingError, TransportTimeoutError) as exc:
                logger.warning("Discarding rest of %s response: %s", cmd, exc)
                self._transport.discard_input()
                raise
            logger.debug("<- binary block, %d bytes", len(payload))
            self._check(check)
            return payload

    def write_raw(self, data: bytes) -> None:
        """Send raw bytes through the transport, with no terminator."""
        with self._lock:
            logger.debug("-> raw %s", bytes(data).hex(" "))
            self._transport.write_raw(data)

    # -- Typed query variants ------------------------------------------------

    def query_number(self, cmd: str, *, check: bool | None = None) -> float:
        """Query and parse the response as a SCPI number.

        Parses NR1, NR2, NR3 formats and special values (NAN, INF, NINF).

        Raises:
            ScpiParseError: If the response cannot be parsed as a number.
        """
        return parse_number(self.query(cmd, check=check))

    def query_numbers(self, cmd: str, *, check: bool | None = None) -> tuple[float, ...]:
        """Query and parse the response as a comma-separated list of numbers.

        Raises:
            ScpiParseError: If any element cannot be parsed as a number.
        """
        return parse_numbers(self.query(cmd, check=check))

    def query_int(self, cmd: str, *, check: bool | None = None) -> int:
        """Query and parse the response as an integer.

        Raises:
            ScpiParseError: If the response is not a valid integer.
        """
        return parse_int(self.query(cmd, check=check))

    def query_bool(self, cmd: str, *, check: bool | None = None) -> bool:
        """Query and parse the response as a boolean.

        Accepts ``"1"``/``"0"`` and ``"ON"``/``"OFF"`` (case-insensitive).

        Raises:
            ScpiParseError: If the response is not a recognized boolean token.
        """
        return parse_bool(self.query(cmd, check=check))

    # -- IEEE 488.2 convenience methods --------------------------------------

    def identify(self) -> str:
        """Query the instrument identification string (``*IDN?``)."""
        return self.query("*IDN?")

    def get_identity(self) -> InstrumentIdentity:
        """Query and parse the instrument identification (``*IDN?``)."""
        return parse_idn_response(self.identify())

    def reset(self) -> None:
        """Send a reset command (``*RST``)."""
        self.command("*RST")

    def clear_status(self) -> None:
        """Clear the status registers (``*CLS``)."""
        self.command("*CLS")

    def wait_complete(self) -> None:
        """Wait for all pending operations to complete (``*OPC?``).

        Error checking is disabled for this query since ``*OPC?`` blocks
        until the instrument is ready.
        """
        self.query("*OPC?", check=False)

    # -- Error queue ---------------------------------------------------------

    def get_errors(self) -> tuple[ScpiInstrumentError, ...]:
        """Drain the instrument error queue.

        Repeatedly queries ``SYST:ERR?`` until the instrument returns a
        ``0,"No error"`` response.

        Returns:
            A tuple of :class:`ScpiInstrumentError` for every queued error.
        """
        errors: list[ScpiInstrumentError] = []
        with self._lock:
            while True:
                self._transport.write("SYST:ERR?")
                raw = self._transport.read().strip()
                error = self._parse_error_response(raw)
                if error is None:
                    break
                errors.append(error)
        return tuple(errors)

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Close the underlying transport."""
        with self._lock:
            self._transport.close()

    def __enter__(self) -> ScpiConnection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Private helpers -----------------------------------------------------

    def _check(self, override: bool | None) -> None:
        """Drain the error queue and raise if errors are found."""
        should_check = self._check_errors if override is None else override
        if not should_check:
            return
        errors = self.get_errors()
        if errors:
            logger.warning("Instrument reported errors: %s", "; ".join(str(e) for e in errors))
            raise ScpiCommandError(errors)

    @staticmethod
    def _parse_error_response(raw: str) -> ScpiInstrumentError | None:
        """Parse a ``SYST:ERR?`` response into an error object.

        Returns ``None`` when the response indicates no error (code 0).
        """
        match = _ERROR_RE.match(raw)
        if match is None:
            return None
        code = int(match.group(1))
        message = match.group(2).strip()
        if code == 0:
            return None
        return ScpiInstrumentError(code=code, message=message)
