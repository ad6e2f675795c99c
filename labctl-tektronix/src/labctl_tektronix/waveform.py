"""Waveform preamble and raw-sample conversion.

Tektronix scopes return curve data as raw 8-bit codes. The scale and offset
needed to turn those codes into seconds and volts are device settings that
can change between acquisitions, so they are queried fresh (the *preamble*)
right before each curve is read and never cached here.

Conversion, for sample ``i`` with raw code ``c``::

    time    = x_zero + i * x_increment
    voltage = (c - y_offset) * y_mult + y_zero
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

# Preamble field -> query, in the order they are read from the instrument.
PREAMBLE_QUERIES: dict[str, str] = {
    "x_increment": "WFMPRE:XINCR?",
    "x_zero": "WFMPRE:XZERO?",
    "y_mult": "WFMPRE:YMULT?",
    "y_zero": "WFMPRE:YZERO?",
    "y_offset": "WFMPRE:YOFF?",
}


@dataclass(frozen=True)
class WaveformPreamble:
    """Scale and offset parameters reported by the scope for one acquisition.

    Attributes:
        x_increment: Seconds between samples.
        x_zero: Time of the first sample, in seconds.
        y_mult: Volts per raw code.
        y_zero: Volts added after scaling.
        y_offset: Raw code subtracted before scaling.
    """

    x_increment: float
    x_zero: float
    y_mult: float
    y_zero: float
    y_offset: float


@dataclass(frozen=True)
class Waveform:
    """A converted waveform: parallel time and voltage sequences."""

    times: tuple[float, ...]
    voltages: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.times) != len(self.voltages):
            raise ValueError(
                f"times and voltages differ in length: {len(self.times)} != {len(self.voltages)}"
            )

    def __len__(self) -> int:
        return len(self.voltages)

    def points(self) -> Iterator[tuple[float, float]]:
        """Yield ``(time, voltage)`` pairs in sample order."""
        return zip(self.times, self.voltages)


def to_waveform(samples: bytes | Sequence[int], preamble: WaveformPreamble) -> Waveform:
    """Convert raw sample codes to a :class:`Waveform`.

    Degenerate preambles (NaN or infinite values) are not rejected; the
    resulting NaN/inf values pass through for the caller to handle.

    Args:
        samples: Raw unsigned codes, one per sample.
        preamble: The preamble queried for this acquisition.

    Returns:
        The converted waveform, one point per sample.
    """
    times = tuple(preamble.x_zero + i * preamble.x_increment for i in range(len(samples)))
    voltages = tuple(
        (code - preamble.y_offset) * preamble.y_mult + preamble.y_zero for code in samples
    )
    return Waveform(times=times, voltages=voltages)
