"""Exception types for labctl-core.

This module defines the root of the exception hierarchy used throughout the
labctl packages. Every labctl exception inherits from :class:`LabctlError`,
allowing callers to catch all framework-specific errors with a single except
clause.

Exception hierarchy:
    LabctlError (base)
    +-- ScpiError (labctl_scpi): transport, framing and parse failures
    +-- StepRangeError (labctl_holmarc): motion command out of range
    +-- BenchError (labctl_bench): bench configuration and lifetime failures
"""


class LabctlError(Exception):
    """Base exception for all labctl errors.

    This is the root of the labctl exception hierarchy. Catch this to handle
    any framework-specific error.
    """
