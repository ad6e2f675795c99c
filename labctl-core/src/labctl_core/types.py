"""Common types shared by the labctl instrument drivers.

Classes:
    InstrumentIdentity: Instrument identification metadata.
    MeasurementSample: Timestamped tuple of channel readings.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InstrumentIdentity:
    """Instrument identification metadata.

    Represents the four standard fields returned by the SCPI ``*IDN?`` query.
    Used by the bench to verify that connected instruments match the expected
    configuration.

    Attributes:
        manufacturer: Instrument manufacturer name (e.g., "Stanford_Research_Systems").
        model: Instrument model number or name (e.g., "SR830").
        serial: Serial number string.
        firmware: Firmware or hardware version string.

    Example:
        >>> identity = InstrumentIdentity(
        ...     manufacturer="KEITHLEY INSTRUMENTS",
        ...     model="MODEL 2450",
        ...     serial="04412345",
        ...     firmware="1.7.3b"
        ... )
    """

    manufacturer: str
    model: str
    serial: str
    firmware: str


@dataclass(frozen=True)
class MeasurementSample:
    """A single row of instrument readings.

    Lock-in and source-meter drivers return their readings as a fixed tuple
    of floats (X/Y, R/theta or voltage/current). The sample pairs those
    readings with the elapsed time since the start of a measurement run so
    it can be exported as one row of a flat table.

    Attributes:
        elapsed_s: Seconds since the start of the run (0.0 for a one-off read).
        values: Channel readings in the order the instrument reported them.
    """

    elapsed_s: float
    values: tuple[float, ...]

    def __len__(self) -> int:
        return len(self.values)

    def as_row(self) -> tuple[float, ...]:
        """Return the sample as ``(elapsed_s, *values)``."""
        return (self.elapsed_s, *self.values)
