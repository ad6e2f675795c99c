"""Bench orchestration for labctl.

This package ties the instrument drivers together for experiment scripts:

- ``config``: YAML bench files (instruments, driver factories, identities)
- ``loader``: ``"module:function"`` driver factory resolution
- ``bench``: :class:`Bench`, scoped ownership of every bench instrument
- ``sequence``: :func:`run_sequence`, a timed sampling loop
- ``csv_export``: flat ``Time(s), ...`` CSV files
- ``cli``: the ``labctl`` command

Example::

    from labctl_bench import Bench, load_config, run_sequence, write_samples_csv

    with Bench(load_config("bench.yaml")) as bench:
        lockin = bench.get_instrument("lockin")
        lockin.configure()
        samples = run_sequence(lockin.measure_xy, count=100, interval_s=0.5)
    write_samples_csv("voltage_drop_data.csv", ("X(V)", "Y(V)"), samples)
"""

from labctl_bench.bench import Bench, InstrumentState, ManagedInstrument
from labctl_bench.config import (
    BenchConfig,
    ExpectedIdentity,
    InstrumentConfig,
    load_config,
    parse_config,
)
from labctl_bench.csv_export import (
    LOCKIN_POLAR_COLUMNS,
    LOCKIN_XY_COLUMNS,
    SMU_COLUMNS,
    TIME_COLUMN,
    write_samples_csv,
    write_waveform_csv,
)
from labctl_bench.errors import BenchConfigError, BenchError
from labctl_bench.loader import load_driver
from labctl_bench.sequence import run_sequence

__all__ = [
    # Bench
    "Bench",
    "InstrumentState",
    "ManagedInstrument",
    # Config
    "BenchConfig",
    "ExpectedIdentity",
    "InstrumentConfig",
    "load_config",
    "parse_config",
    "load_driver",
    # Errors
    "BenchConfigError",
    "BenchError",
    # Sequence and export
    "run_sequence",
    "LOCKIN_POLAR_COLUMNS",
    "LOCKIN_XY_COLUMNS",
    "SMU_COLUMNS",
    "TIME_COLUMN",
    "write_samples_csv",
    "write_waveform_csv",
]
