"""Keithley 2450 source-measure unit driver.

Wraps a ``ScpiConnection`` with typed methods for sourcing voltage or
current, setting compliance limits and measurement ranges, and reading back
voltage and current. Every command is followed by an error queue check, so
an out-of-range setting surfaces as :class:`ScpiCommandError`.
"""

from __future__ import annotations

import logging
from types import TracebackType

from labctl_core import InstrumentIdentity, MeasurementSample
from labctl_scpi import ScpiConnection, VisaResource, format_command

logger = logging.getLogger(__name__)


class Keithley2450:
    """High-level driver for the Keithley 2450 SourceMeter.

    Args:
        connection: An open ``ScpiConnection`` to the instrument. Use
            ``check_errors=True`` so instrument errors are raised.
    """

    def __init__(self, connection: ScpiConnection) -> None:
        self._conn = connection

    # -- Identity / lifecycle -----------------------------------------------

    def identify(self) -> str:
        """Query instrument identification string (``*IDN?``)."""
        return self._conn.identify()

    def get_identity(self) -> InstrumentIdentity:
        """Query and parse instrument identification (``*IDN?``).

        Returns:
            Parsed identity with manufacturer, model, serial, and firmware.
        """
        return self._conn.get_identity()

    def reset(self) -> None:
        """Reset instrument to factory defaults (``*RST``)."""
        self._conn.reset()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()
        logger.info("Keithley 2450 connection closed")

    def __enter__(self) -> Keithley2450:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Source -------------------------------------------------------------

    def set_voltage_source(self, voltage: float) -> None:
        """Switch to voltage sourcing and set the level.

        Args:
            voltage: Source level in volts.
        """
        self._conn.command(":SOUR:FUNC VOLT")
        self._conn.command(format_command(":SOUR:VOLT", voltage))

    def set_current_source(self, current: float) -> None:
        """Switch to current sourcing and set the level.

        Args:
            current: Source level in amps.
        """
        self._conn.command(":SOUR:FUNC CURR")
        self._conn.command(format_command(":SOUR:CURR", current))

    # -- Compliance ---------------------------------------------------------

    def set_current_compliance(self, limit: float) -> None:
        """Set the current limit applied while sourcing voltage.

        Args:
            limit: Current limit in amps.
        """
        self._conn.command(format_command(":SOUR:VOLT:ILIM", limit))

    def set_voltage_compliance(self, limit: float) -> None:
        """Set the voltage limit applied while sourcing current.

        Args:
            limit: Voltage limit in volts.
        """
        self._conn.command(format_command(":SOUR:CURR:VLIM", limit))

    # -- Measurement range --------------------------------------------------

    def set_voltage_range(self, voltage: float) -> None:
        """Set the voltage measurement range (largest expected reading)."""
        self._conn.command(format_command(":SENS:VOLT:RANGE", voltage))

    def set_current_range(self, current: float) -> None:
        """Set the current measurement range (largest expected reading)."""
        self._conn.command(format_command(":SENS:CURR:RANGE", current))

    # -- Output -------------------------------------------------------------

    def enable_output(self, enable: bool = True) -> None:
        """Turn the output on, or off when *enable* is False."""
        self._conn.command(":OUTP ON" if enable else ":OUTP OFF")
        logger.info("Keithley 2450 output %s", "on" if enable else "off")

    def disable_output(self) -> None:
        """Turn the output off."""
        self.enable_output(False)

    def is_output_enabled(self) -> bool:
        """Query whether the output is on."""
        return self._conn.query_bool(":OUTP?")

    # -- Measurement --------------------------------------------------------

    def measure_current(self) -> float:
        """Measure the current through the output terminals, in amps."""
        return self._conn.query_number(":MEAS:CURR?")

    def measure_voltage(self) -> float:
        """Measure the voltage across the output terminals, in volts."""
        return self._conn.query_number(":MEAS:VOLT?")

    def measure(self) -> MeasurementSample:
        """Measure voltage then current.

        Returns:
            A sample with ``values == (voltage, current)`` and zero elapsed
            time.
        """
        voltage = self.measure_voltage()
        current = self.measure_current()
        return MeasurementSample(elapsed_s=0.0, values=(voltage, current))


def create_instrument(visa_address: str, *, timeout_ms: int = 5000) -> Keithley2450:
    """Create a Keithley 2450 driver from a VISA address.

    Args:
        visa_address: VISA resource string
            (e.g. ``"USB0::0x05E6::0x2450::04412345::INSTR"``).
        timeout_ms: I/O timeout in milliseconds.

    Returns:
        Connected driver with instrument error checking enabled.
    """
    resource = VisaResource(visa_address, timeout_ms=timeout_ms)
    resource.open()
    logger.info("Connected to Keithley 2450 at %s", visa_address)
    return Keithley2450(ScpiConnection(resource, check_errors=True))
