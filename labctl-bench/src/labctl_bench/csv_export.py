"""Flat CSV export of measurement runs and waveforms.

Files have one header row followed by one row per sample; the first column
is always ``Time(s)``.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from labctl_core import MeasurementSample
from labctl_tektronix import Waveform

logger = logging.getLogger(__name__)

TIME_COLUMN = "Time(s)"
LOCKIN_XY_COLUMNS = ("X(V)", "Y(V)")
LOCKIN_POLAR_COLUMNS = ("R(V)", "Theta(deg)")
SMU_COLUMNS = ("Voltage(V)", "Current(A)")
WAVEFORM_COLUMNS = ("Voltage(V)",)


def write_samples_csv(
    path: str | Path,
    columns: Sequence[str],
    samples: Iterable[MeasurementSample],
) -> int:
    """Write samples as ``Time(s), <columns...>`` rows.

    Args:
        path: Output file; parent directories are created.
        columns: Header names for the sample values, e.g. ``("X(V)", "Y(V)")``.
        samples: Samples whose value count matches *columns*.

    Returns:
        Number of data rows written.

    Raises:
        ValueError: If a sample has a different number of values than
            there are columns.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([TIME_COLUMN, *columns])
        for sample in samples:
            if len(sample) != len(columns):
                raise ValueError(
                    f"Sample has {len(sample)} values but {len(columns)} columns were given"
                )
            writer.writerow(sample.as_row())
            rows += 1
    logger.info("Wrote %d rows to %s", rows, path)
    return rows


def write_waveform_csv(path: str | Path, waveform: Waveform) -> int:
    """Write a waveform as ``Time(s), Voltage(V)`` rows.

    Returns:
        Number of data rows written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([TIME_COLUMN, *WAVEFORM_COLUMNS])
        writer.writerows(waveform.points())
    logger.info("Wrote %d points to %s", len(waveform), path)
    return len(waveform)
