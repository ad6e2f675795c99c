"""Holmarc stage controller emulator.

Provides an in-process transport that parses the binary byte stream the way
the controller does: a STOP or RESET code at a frame boundary is a control
byte, anything else starts a 4-byte move frame.
"""

from __future__ import annotations

from labctl_scpi.errors import TransportTimeoutError

from labctl_holmarc.motion import FRAME_SIZE, RESET_CODE, STOP_CODE, StepCommand, decode_step


class HolmarcStageEmulator:
    """In-process stage controller implementing ``ScpiTransport``.

    Attributes:
        raw_writes: Every ``write_raw`` payload, in order.
        moves: Every decoded move frame, in order.
        positions: Accumulated step position per axis id.
        stop_count: Number of STOP codes received.
        reset_count: Number of RESET codes received.
    """

    def __init__(self) -> None:
        self.raw_writes: list[bytes] = []
        self.moves: list[StepCommand] = []
        self.positions: dict[int, int] = {}
        self.stop_count = 0
        self.reset_count = 0
        self.closed = False
        self._pending = bytearray()

    # -- Transport interface ------------------------------------------------

    def write(self, message: str) -> None:
        """Text lines are ignored by the controller."""

    def read(self) -> str:
        """The controller never replies."""
        raise TransportTimeoutError("Stage controller sends no responses")

    def write_raw(self, data: bytes) -> None:
        """Consume raw bytes as control codes and move frames."""
        self.raw_writes.append(bytes(data))
        for byte in bytes(data):
            if not self._pending and byte == STOP_CODE:
                self.stop_count += 1
                continue
            if not self._pending and byte == RESET_CODE:
                self.reset_count += 1
                self.positions.clear()
                continue
            self._pending.append(byte)
            if len(self._pending) == FRAME_SIZE:
                self._apply(decode_step(bytes(self._pending)))
                self._pending.clear()

    def read_bytes(self, count: int) -> bytes:
        """The controller never replies."""
        raise TransportTimeoutError("Stage controller sends no responses")

    def discard_input(self) -> None:
        """Nothing is ever left pending."""

    def close(self) -> None:
        """Mark the emulator closed."""
        self.closed = True

    # -- Test helpers -------------------------------------------------------

    def position_mm(self, axis_id: int, mm_per_step: float) -> float:
        """Return the accumulated position of *axis_id* in millimetres."""
        return self.positions.get(axis_id, 0) * mm_per_step

    def _apply(self, command: StepCommand) -> None:
        self.moves.append(command)
        self.positions[command.axis_id] = self.positions.get(command.axis_id, 0) + command.step_count
