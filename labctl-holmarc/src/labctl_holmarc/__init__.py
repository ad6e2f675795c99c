"""Holmarc XY stage driver and emulator for labctl.

Modules:
    motion: Pure fixed-point motion frame codec.
    stage: High-level stage driver.
    emulator: In-process controller emulator for testing without hardware.

Example:
    Drive a real stage::

        from labctl_holmarc import create_instrument

        with create_instrument("/dev/ttyUSB0") as stage:
            stage.move_a(10.0)
            stage.move_b(-5.0)
            stage.stop()
"""

from labctl_holmarc.emulator import HolmarcStageEmulator
from labctl_holmarc.motion import (
    AXIS_A,
    AXIS_B,
    DEFAULT_MM_PER_STEP,
    RESET_CODE,
    STOP_CODE,
    StepCommand,
    StepRangeError,
    decode_step,
    encode_step,
    serialize,
)
from labctl_holmarc.stage import HolmarcStage, create_instrument

__all__ = [
    # Motion codec
    "AXIS_A",
    "AXIS_B",
    "DEFAULT_MM_PER_STEP",
    "RESET_CODE",
    "STOP_CODE",
    "StepCommand",
    "StepRangeError",
    "decode_step",
    "encode_step",
    "serialize",
    # Driver
    "HolmarcStage",
    "create_instrument",
    # Emulator
    "HolmarcStageEmulator",
]
