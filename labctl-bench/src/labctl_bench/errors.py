"""Exception types for labctl-bench."""

from __future__ import annotations

from labctl_core import LabctlError


class BenchError(LabctlError):
    """Raised when a bench cannot be opened or an instrument is unavailable."""


class BenchConfigError(BenchError, ValueError):
    """Raised when a bench configuration file is malformed."""
