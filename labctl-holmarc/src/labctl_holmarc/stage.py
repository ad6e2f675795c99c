"""Holmarc XY stage driver.

Wraps a ``ScpiConnection`` over a serial line with typed move, stop and
reset operations. The controller speaks binary frames only, so every
operation is a raw write; see :mod:`labctl_holmarc.motion` for the frame
layout.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from types import TracebackType

from labctl_scpi import ScpiConnection, SerialConfig, SerialPort

from labctl_holmarc.motion import (
    AXIS_A,
    AXIS_B,
    DEFAULT_MM_PER_STEP,
    RESET_CODE,
    STOP_CODE,
    StepCommand,
    encode_step,
)

logger = logging.getLogger(__name__)

STAGE_SERIAL_CONFIG = SerialConfig(baudrate=19200, bytesize=8, parity="N", stopbits=1, terminator="\r\n")


class HolmarcStage:
    """High-level driver for the Holmarc two-axis stage controller.

    Moves are relative and unacknowledged. The step count is computed and
    range-checked before anything is written, so an out-of-range move never
    reaches the controller.

    Args:
        connection: An open ``ScpiConnection`` to the controller.
        mm_per_step: Stage resolution in millimetres per step.
    """

    def __init__(self, connection: ScpiConnection, *, mm_per_step: float = DEFAULT_MM_PER_STEP) -> None:
        if not mm_per_step > 0:
            raise ValueError("mm_per_step must be > 0")
        self._conn = connection
        self._mm_per_step = mm_per_step

    @property
    def mm_per_step(self) -> float:
        """Stage resolution in millimetres per step."""
        return self._mm_per_step

    # -- Motion -------------------------------------------------------------

    def move_axis(self, axis_id: int, distance_mm: float) -> StepCommand:
        """Move one axis by a relative distance.

        Args:
            axis_id: Controller axis identifier.
            distance_mm: Signed displacement in millimetres.

        Returns:
            The step command that was sent.

        Raises:
            StepRangeError: If the move does not fit the 24-bit step field.
        """
        command = encode_step(axis_id, distance_mm, self._mm_per_step)
        logger.info(
            "Moving axis %d by %g mm (%d steps)", axis_id, distance_mm, command.step_count
        )
        self._conn.write_raw(command.to_bytes())
        return command

    def move_a(self, distance_mm: float) -> StepCommand:
        """Move axis A by *distance_mm*."""
        return self.move_axis(AXIS_A, distance_mm)

    def move_b(self, distance_mm: float) -> StepCommand:
        """Move axis B by *distance_mm*."""
        return self.move_axis(AXIS_B, distance_mm)

    def stop(self) -> None:
        """Send the single-byte STOP code."""
        logger.info("Stopping stage")
        self._conn.write_raw(bytes((STOP_CODE,)))

    def reset(self) -> None:
        """Send the single-byte RESET code."""
        logger.info("Resetting stage")
        self._conn.write_raw(bytes((RESET_CODE,)))

    # -- Lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> HolmarcStage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def create_instrument(
    port: str,
    *,
    mm_per_step: float = DEFAULT_MM_PER_STEP,
    timeout_s: float = 2.0,
) -> HolmarcStage:
    """Create a stage driver on a serial port.

    Opens the port at 19200 baud 8N1 with a CR/LF terminator.

    Args:
        port: Serial port name (e.g. ``"COM4"`` or ``"/dev/ttyUSB0"``).
        mm_per_step: Stage resolution in millimetres per step.
        timeout_s: Serial read timeout in seconds.

    Returns:
        Connected stage driver instance.
    """
    config = replace(STAGE_SERIAL_CONFIG, timeout_s=timeout_s)
    transport = SerialPort(port, config)
    transport.open()
    try:
        return HolmarcStage(ScpiConnection(transport), mm_per_step=mm_per_step)
    except Exception:
        transport.close()
        raise
