"""Tektronix DPO2000-series oscilloscope driver.

Wraps a ``ScpiConnection`` with the acquisition sequence used to capture a
single channel as 8-bit binary data and convert it to seconds and volts.
"""

from __future__ import annotations

import logging
import math
import time
from types import TracebackType
from typing import Callable

from labctl_core import InstrumentIdentity
from labctl_scpi import ScpiConnection, VisaResource, format_command

from labctl_tektronix.waveform import PREAMBLE_QUERIES, Waveform, WaveformPreamble, to_waveform

logger = logging.getLogger(__name__)

VALID_SOURCES = frozenset(
    {"CH1", "CH2", "CH3", "CH4", "MATH", "REF1", "REF2", "REF3", "REF4"}
)

MAX_RECORD_POINTS = 1_250_000


class TektronixScope:
    """High-level driver for Tektronix DPO2000-series oscilloscopes.

    Args:
        connection: An open ``ScpiConnection`` to the instrument.
        sleep: Blocking wait used for the acquisition dwell. Tests pass a
            recorder here instead of :func:`time.sleep`.
    """

    def __init__(
        self,
        connection: ScpiConnection,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._conn = connection
        self._sleep = sleep

    # -- Identity / lifecycle -----------------------------------------------

    def identify(self) -> str:
        """Query instrument identification string (``*IDN?``)."""
        return self._conn.identify()

    def get_identity(self) -> InstrumentIdentity:
        """Query and parse instrument identification (``*IDN?``)."""
        return self._conn.get_identity()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> TektronixScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Raw access ---------------------------------------------------------

    def write_command(self, command: str) -> None:
        """Send an arbitrary command."""
        self._conn.command(command)

    def query(self, command: str) -> str:
        """Send an arbitrary query and return the response."""
        return self._conn.query(command)

    # -- Waveform retrieval -------------------------------------------------

    def query_preamble(self) -> WaveformPreamble:
        """Read the scale and offset parameters of the current acquisition.

        Raises:
            ScpiParseError: If any field is not numeric.
        """
        values = {
            name: self._conn.query_number(query) for name, query in PREAMBLE_QUERIES.items()
        }
        return WaveformPreamble(**values)

    def read_curve(self) -> bytes:
        """Request the curve data and return the raw sample codes."""
        return self._conn.query_block("CURVE?")

    def record_waveform(
        self,
        channel: str,
        duration: float,
        *,
        start: int = 1,
        stop: int = 10000,
    ) -> Waveform:
        """Acquire *channel* for *duration* seconds and return the waveform.

        The sequence is: stop and clear the previous acquisition, select the
        source, RPBinary encoding, 1-byte width and point range, run for the
        dwell, stop, read the preamble, then read and convert the curve. The
        dwell is a plain wall-clock wait, not an acquisition-complete poll.

        Args:
            channel: Source name (``"CH1"`` .. ``"CH4"``, ``"MATH"``, ``"REF1"`` ..).
            duration: Seconds to let the scope acquire before stopping.
            start: First record point to transfer (1-based).
            stop: Last record point to transfer.

        Returns:
            The converted waveform.

        Raises:
            ValueError: If the channel, duration or point range is invalid.
        """
        source = channel.strip().upper()
        if source not in VALID_SOURCES:
            raise ValueError(f"Invalid waveform source {channel!r}")
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"duration must be a non-negative number of seconds, got {duration}")
        if not 1 <= start <= stop <= MAX_RECORD_POINTS:
            raise ValueError(f"Invalid point range {start}..{stop}")

        self._conn.command("STOP")
        self._conn.command("CLEAR")
        self._conn.command(format_command("DATA:SOURCE", source))
        self._conn.command("DATA:ENC RPB")
        self._conn.command("DATA:WIDTH 1")
        self._conn.command(format_command("DATA:START", start))
        self._conn.command(format_command("DATA:STOP", stop))

        logger.info("Acquiring %s for %g s", source, duration)
        self._conn.command("ACQUIRE:STATE RUN")
        self._sleep(duration)
        self._conn.command("ACQUIRE:STATE STOP")

        preamble = self.query_preamble()
        samples = self.read_curve()
        logger.info("Read %d points from %s", len(samples), source)
        return to_waveform(samples, preamble)


def create_instrument(visa_address: str, *, timeout_ms: int = 10000) -> TektronixScope:
    """Create a scope driver from a VISA address.

    Args:
        visa_address: VISA resource string
            (e.g. ``"USB0::0x0699::0x0374::C012345::INSTR"``).
        timeout_ms: I/O timeout in milliseconds.

    Returns:
        Connected scope driver instance.
    """
    resource = VisaResource(visa_address, timeout_ms=timeout_ms)
    resource.open()
    try:
        return TektronixScope(ScpiConnection(resource))
    except Exception:
        resource.close()
        raise
