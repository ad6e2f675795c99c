"""Stanford Research Systems SR830 lock-in amplifier driver.

Wraps a ``ScpiConnection`` with the configuration sequence used for a
voltage-drop measurement (internal reference, grounded shield, AC coupling)
and with snapshot reads of the X/Y or R/theta outputs.

The SR830 does not implement ``SYST:ERR?``, so connections to it must not
enable error queue checking.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Callable

from labctl_core import InstrumentIdentity, MeasurementSample
from labctl_scpi import ScpiConnection, ScpiParseError, VisaResource, format_command

logger = logging.getLogger(__name__)

DEFAULT_GPIB_ADDRESS = 8

SENSITIVITY_MAX_INDEX = 26  # 1 V full scale
TIME_CONSTANT_MAX_INDEX = 19  # 30 ks

# SNAP? parameter codes
_SNAP_X = 1
_SNAP_Y = 2
_SNAP_R = 3
_SNAP_THETA = 4


def gpib_resource(address: int = DEFAULT_GPIB_ADDRESS, board: int = 0) -> str:
    """Build a VISA resource string for a GPIB primary address.

    Args:
        address: GPIB primary address (0-30).
        board: GPIB interface board index.

    Returns:
        A resource string like ``"GPIB0::8::INSTR"``.

    Raises:
        ValueError: If the address or board is out of range.
    """
    if not 0 <= address <= 30:
        raise ValueError(f"GPIB address must be in 0..30, got {address}")
    if board < 0:
        raise ValueError(f"GPIB board must be >= 0, got {board}")
    return f"GPIB{board}::{address}::INSTR"


@dataclass(frozen=True)
class LockinSettings:
    """Front-panel settings applied by :meth:`SR830.configure`.

    Attributes:
        frequency_hz: Internal reference frequency.
        amplitude_v: Sine output amplitude (RMS).
        sensitivity: Sensitivity index, 0 (2 nV) to 26 (1 V).
        time_constant: Time constant index, 0 (10 us) to 19 (30 ks).
        settle_s: Seconds to wait after the settings are written.
    """

    frequency_hz: float = 1000.0
    amplitude_v: float = 1.0
    sensitivity: int = 22
    time_constant: int = 10
    settle_s: float = 2.0

    def __post_init__(self) -> None:
        if not 0.001 <= self.frequency_hz <= 102000.0:
            raise ValueError(f"frequency_hz must be in 0.001..102000, got {self.frequency_hz}")
        if not 0.004 <= self.amplitude_v <= 5.0:
            raise ValueError(f"amplitude_v must be in 0.004..5.0, got {self.amplitude_v}")
        if not 0 <= self.sensitivity <= SENSITIVITY_MAX_INDEX:
            raise ValueError(
                f"sensitivity index must be in 0..{SENSITIVITY_MAX_INDEX}, got {self.sensitivity}"
            )
        if not 0 <= self.time_constant <= TIME_CONSTANT_MAX_INDEX:
            raise ValueError(
                f"time_constant index must be in 0..{TIME_CONSTANT_MAX_INDEX}, "
                f"got {self.time_constant}"
            )
        if self.settle_s < 0:
            raise ValueError("settle_s must be >= 0")


class SR830:
    """High-level driver for the SR830 lock-in amplifier.

    Args:
        connection: An open ``ScpiConnection`` to the instrument.
        sleep: Blocking wait used for the settle time after configuration.
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
        logger.info("SR830 connection closed")

    def __enter__(self) -> SR830:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Configuration ------------------------------------------------------

    def configure(self, settings: LockinSettings | None = None) -> None:
        """Reset the instrument and apply *settings*.

        Channel 1 displays R and channel 2 displays theta afterwards. The
        call blocks for ``settings.settle_s`` once every setting is written.

        Args:
            settings: Settings to apply. Defaults to :class:`LockinSettings`.
        """
        settings = settings or LockinSettings()
        commands = [
            "*RST",
            format_command("FREQ", settings.frequency_hz),
            format_command("SLVL", settings.amplitude_v),
            format_command("SENS", settings.sensitivity),
            format_command("OFLT", settings.time_constant),
            "FMOD 1",
            "ISRC 0",
            "IGND 0",
            "ICPL 0",
            "DDEF 1,0,0",
            "DDEF 2,1,0",
        ]
        for command in commands:
            self._conn.command(command)
        self._sleep(settings.settle_s)
        logger.info(
            "SR830 configured: %g Hz, %g V, sensitivity %d, time constant %d",
            settings.frequency_hz,
            settings.amplitude_v,
            settings.sensitivity,
            settings.time_constant,
        )

    def set_sensitivity(self, index: int) -> None:
        """Set the sensitivity by index (0-26).

        Raises:
            ValueError: If *index* is out of range. Nothing is written.
        """
        if not 0 <= index <= SENSITIVITY_MAX_INDEX:
            raise ValueError(f"sensitivity index must be in 0..{SENSITIVITY_MAX_INDEX}, got {index}")
        self._conn.command(format_command("SENS", index))

    def set_time_constant(self, index: int) -> None:
        """Set the time constant by index (0-19).

        Raises:
            ValueError: If *index* is out of range. Nothing is written.
        """
        if not 0 <= index <= TIME_CONSTANT_MAX_INDEX:
            raise ValueError(
                f"time_constant index must be in 0..{TIME_CONSTANT_MAX_INDEX}, got {index}"
            )
        self._conn.command(format_command("OFLT", index))

    # -- Measurement --------------------------------------------------------

    def measure_xy(self) -> MeasurementSample:
        """Read X and Y simultaneously (``SNAP? 1,2``), in volts."""
        return self._snap(_SNAP_X, _SNAP_Y)

    def measure_polar(self) -> MeasurementSample:
        """Read R (volts) and theta (degrees) simultaneously (``SNAP? 3,4``)."""
        return self._snap(_SNAP_R, _SNAP_THETA)

    def _snap(self, first: int, second: int) -> MeasurementSample:
        values = self._conn.query_numbers(format_command("SNAP?", first, second))
        if len(values) != 2:
            raise ScpiParseError(f"SNAP? returned {len(values)} values, expected 2")
        return MeasurementSample(elapsed_s=0.0, values=values)


def create_instrument(
    resource: str | int = DEFAULT_GPIB_ADDRESS,
    *,
    timeout_ms: int = 10000,
) -> SR830:
    """Create an SR830 driver.

    Args:
        resource: VISA resource string, or a GPIB primary address on board 0.
        timeout_ms: I/O timeout in milliseconds.

    Returns:
        Connected driver instance.
    """
    address = gpib_resource(resource) if isinstance(resource, int) else resource
    visa = VisaResource(address, timeout_ms=timeout_ms)
    visa.open()
    logger.info("Connected to SR830 at %s", address)
    return SR830(ScpiConnection(visa))
