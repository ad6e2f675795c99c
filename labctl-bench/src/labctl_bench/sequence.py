"""Timed sampling loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Callable

from labctl_core import MeasurementSample

logger = logging.getLogger(__name__)

Reading = MeasurementSample | Sequence[float]


def run_sequence(
    read: Callable[[], Reading],
    count: int,
    interval_s: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    on_sample: Callable[[int, MeasurementSample], None] | None = None,
) -> list[MeasurementSample]:
    """Call *read* ``count`` times, ``interval_s`` apart.

    Each reading is stamped with the seconds elapsed since the loop started,
    measured just before the read. The wait is a plain sleep after each read
    (none after the last), so the period is ``interval_s`` plus read time.
    Errors raised by *read* propagate and end the run.

    Args:
        read: Returns one reading, either a :class:`MeasurementSample`
            (its ``elapsed_s`` is replaced) or a sequence of floats.
        count: Number of readings to take.
        interval_s: Seconds to wait between readings.
        clock: Monotonic time source.
        sleep: Blocking wait.
        on_sample: Called with the 1-based index and each new sample.

    Returns:
        The samples in acquisition order.

    Raises:
        ValueError: If *count* or *interval_s* is negative.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if interval_s < 0:
        raise ValueError(f"interval_s must be >= 0, got {interval_s}")

    logger.info("Starting %d-sample sequence at %g s interval", count, interval_s)
    samples: list[MeasurementSample] = []
    start = clock()
    for index in range(1, count + 1):
        elapsed = clock() - start
        reading = read()
        values = reading.values if isinstance(reading, MeasurementSample) else tuple(reading)
        sample = MeasurementSample(elapsed_s=elapsed, values=tuple(float(v) for v in values))
        samples.append(sample)
        logger.debug("Sample %d of %d: t=%.2f s %s", index, count, elapsed, sample.values)
        if on_sample is not None:
            on_sample(index, sample)
        if index < count:
            sleep(interval_s)
    logger.info("Sequence complete: %d samples", len(samples))
    return samples
