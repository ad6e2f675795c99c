"""Fixed-point motion frames for the Holmarc stage controller.

The controller takes one 4-byte binary frame per move and sends no
acknowledgement::

    [axis_id, high, mid, low]

``high``/``mid``/``low`` are the big-endian bytes of the step count in 24-bit
two's complement. Negative counts are stored as ``count + 2**24`` before the
bytes are split off, so -13 steps becomes 16777203 = ``FF FF F3``.

STOP and RESET are single control bytes with no payload and never pass
through :func:`encode_step`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from labctl_core.errors import LabctlError

AXIS_A = 1
AXIS_B = 2

# Provisional: taken from the vendor's LabVIEW front panel, not from a
# published protocol document.
STOP_CODE = 0xAA
RESET_CODE = 0xAB

DEFAULT_MM_PER_STEP = 0.390625

STEP_MIN = -(2**23)
STEP_MAX = 2**23 - 1
FRAME_SIZE = 4

_SPAN = 2**24


class StepRangeError(LabctlError, ValueError):
    """Raised when a move does not fit the 24-bit step field."""


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Python's :func:`round` rounds ties to even, which would turn a 2.5 step
    move into 2 steps; the controller expects 3.
    """
    magnitude = abs(value)
    whole = math.floor(magnitude)
    if magnitude - whole >= 0.5:
        whole += 1
    return int(whole) if value >= 0 else -int(whole)


@dataclass(frozen=True)
class StepCommand:
    """One relative move of one axis.

    Attributes:
        axis_id: Controller axis identifier (0-255; ``AXIS_A`` or ``AXIS_B``).
        step_count: Signed step count in ``[-2**23, 2**23 - 1]``.
    """

    axis_id: int
    step_count: int

    def __post_init__(self) -> None:
        if not 0 <= self.axis_id <= 0xFF:
            raise ValueError(f"axis_id must fit in one byte, got {self.axis_id}")
        if not STEP_MIN <= self.step_count <= STEP_MAX:
            raise StepRangeError(
                f"Step count {self.step_count} outside 24-bit range [{STEP_MIN}, {STEP_MAX}]"
            )

    def to_bytes(self) -> bytes:
        """Serialize the command; see :func:`serialize`."""
        return serialize(self)


def encode_step(axis_id: int, distance_mm: float, mm_per_step: float = DEFAULT_MM_PER_STEP) -> StepCommand:
    """Convert a relative displacement into a step command.

    Args:
        axis_id: Controller axis identifier.
        distance_mm: Signed displacement in millimetres.
        mm_per_step: Stage resolution in millimetres per step (> 0).

    Returns:
        The step command, with ``step_count = round(distance_mm / mm_per_step)``
        rounded half away from zero.

    Raises:
        StepRangeError: If the step count overflows 24 bits or the distance
            is not finite.
        ValueError: If *mm_per_step* is not positive or *axis_id* is not a byte.

    Example:
        >>> encode_step(AXIS_A, 10.0, 0.390625)
        StepCommand(axis_id=1, step_count=26)
    """
    if not mm_per_step > 0 or not math.isfinite(mm_per_step):
        raise ValueError(f"mm_per_step must be a positive finite number, got {mm_per_step}")
    if not math.isfinite(distance_mm):
        raise StepRangeError(f"Distance must be finite, got {distance_mm}")
    return StepCommand(axis_id=axis_id, step_count=round_half_away(distance_mm / mm_per_step))


def serialize(command: StepCommand) -> bytes:
    """Serialize *command* as ``[axis_id, high, mid, low]``."""
    unsigned = command.step_count + _SPAN if command.step_count < 0 else command.step_count
    high = unsigned // 65536
    mid = (unsigned % 65536) // 256
    low = unsigned % 256
    return bytes((command.axis_id, high, mid, low))


def decode_step(frame: bytes) -> StepCommand:
    """Parse a 4-byte frame back into a :class:`StepCommand`.

    Raises:
        ValueError: If *frame* is not exactly four bytes.
    """
    if len(frame) != FRAME_SIZE:
        raise ValueError(f"Motion frame must be {FRAME_SIZE} bytes, got {len(frame)}")
    axis_id, high, mid, low = bytes(frame)
    unsigned = high * 65536 + mid * 256 + low
    step_count = unsigned - _SPAN if unsigned > STEP_MAX else unsigned
    return StepCommand(axis_id=axis_id, step_count=step_count)
