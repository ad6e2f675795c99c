"""Core library for labctl instrument control.

This package provides the foundational error type and the small set of data
types shared by every labctl driver package. It is stdlib-only so it can sit
underneath the transport, codec and driver layers.

Key components:
    - Errors: :class:`LabctlError`, root of the labctl exception hierarchy.
    - Types: :class:`InstrumentIdentity` (parsed ``*IDN?`` fields) and
      :class:`MeasurementSample` (timestamped channel readings).
"""

from labctl_core.errors import LabctlError
from labctl_core.types import InstrumentIdentity, MeasurementSample

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "InstrumentIdentity",
    "LabctlError",
    "MeasurementSample",
]
