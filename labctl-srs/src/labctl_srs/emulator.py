"""SR830 lock-in amplifier emulator.

Provides an in-process transport implementing ``ScpiTransport``. The input
signal is a fixed phasor set by the test; ``SNAP?`` reports it as X, Y, R
or theta.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable

from labctl_scpi.errors import TransportTimeoutError


@dataclass
class _LockinState:
    frequency_hz: float = 1000.0
    amplitude_v: float = 1.0
    sensitivity: int = 26
    time_constant: int = 10
    reference_source: int = 1
    input_source: int = 0
    ground: int = 0
    coupling: int = 0
    displays: dict[int, str] = field(default_factory=lambda: {1: "0,0", 2: "0,0"})


class SR830Emulator:
    """In-process SR830 emulator implementing ``ScpiTransport``.

    Args:
        identity: ``*IDN?`` response string.

    Attributes:
        commands: Every line written, in order.
        rejected: Commands the instrument would flag as unknown or invalid.
    """

    def __init__(
        self, identity: str = "Stanford_Research_Systems,SR830,s/n00001,ver1.07"
    ) -> None:
        self._identity = identity
        self._state = _LockinState()
        self._x = 0.0
        self._y = 0.0
        self._response_buffer = ""
        self._garbled = False
        self.commands: list[str] = []
        self.rejected: list[str] = []
        self.closed = False

        self._set_handlers: dict[str, Callable[[str], None]] = {
            "FREQ": self._set_float("frequency_hz"),
            "SLVL": self._set_float("amplitude_v"),
            "SENS": self._set_index("sensitivity", 26),
            "OFLT": self._set_index("time_constant", 19),
            "FMOD": self._set_index("reference_source", 1),
            "ISRC": self._set_index("input_source", 3),
            "IGND": self._set_index("ground", 1),
            "ICPL": self._set_index("coupling", 1),
            "DDEF": self._set_display,
        }
        self._query_handlers: dict[str, Callable[[str], str]] = {
            "*IDN?": lambda _: self._identity,
            "FREQ?": lambda _: f"{self._state.frequency_hz:g}",
            "SLVL?": lambda _: f"{self._state.amplitude_v:g}",
            "SENS?": lambda _: str(self._state.sensitivity),
            "OFLT?": lambda _: str(self._state.time_constant),
            "FMOD?": lambda _: str(self._state.reference_source),
            "DDEF?": lambda args: self._state.displays.get(int(args or 0), ""),
            "SNAP?": self._snap,
            "OUTP?": self._snap,
        }

    # -- Transport interface ------------------------------------------------

    def write(self, message: str) -> None:
        """Process one command or query line."""
        line = message.strip()
        if not line:
            return
        self.commands.append(line)
        parts = line.split(None, 1)
        header = parts[0].upper()
        args = parts[1].strip() if len(parts) > 1 else ""
        if header == "*RST":
            self._state = _LockinState()
            return
        if header.endswith("?"):
            handler = self._query_handlers.get(header)
            self._response_buffer = handler(args) if handler is not None else ""
            return
        set_handler = self._set_handlers.get(header)
        if set_handler is None:
            self.rejected.append(line)
            return
        try:
            set_handler(args)
        except ValueError:
            self.rejected.append(line)

    def read(self) -> str:
        """Return the buffered response or time out when none is pending."""
        if not self._response_buffer:
            raise TransportTimeoutError("No response pending")
        response = self._response_buffer
        self._response_buffer = ""
        return response

    def write_raw(self, data: bytes) -> None:
        """Raw writes are not used by the lock-in."""

    def read_bytes(self, count: int) -> bytes:
        """The lock-in is only read as text here."""
        raise TransportTimeoutError(f"Expected {count} bytes, none pending")

    def discard_input(self) -> None:
        """Drop any buffered response."""
        self._response_buffer = ""

    def close(self) -> None:
        """Mark the emulator closed."""
        self.closed = True

    # -- Test helpers -------------------------------------------------------

    def set_signal(self, x: float, y: float) -> None:
        """Set the in-phase and quadrature input, in volts."""
        self._x = x
        self._y = y

    def garble_next_snapshot(self) -> None:
        """Make the next ``SNAP?`` answer with a non-numeric field."""
        self._garbled = True

    @property
    def frequency_hz(self) -> float:
        return self._state.frequency_hz

    @property
    def amplitude_v(self) -> float:
        return self._state.amplitude_v

    @property
    def sensitivity(self) -> int:
        return self._state.sensitivity

    @property
    def time_constant(self) -> int:
        return self._state.time_constant

    # -- Private helpers ----------------------------------------------------

    def _output(self, code: int) -> float:
        if code == 1:
            return self._x
        if code == 2:
            return self._y
        if code == 3:
            return math.hypot(self._x, self._y)
        if code == 4:
            return math.degrees(math.atan2(self._y, self._x))
        return 0.0

    def _snap(self, args: str) -> str:
        if self._garbled:
            self._garbled = False
            return "1.0E-3,??"
        codes = [int(token) for token in args.split(",") if token.strip()]
        return ",".join(f"{self._output(code):.6E}" for code in codes)

    def _set_float(self, name: str) -> Callable[[str], None]:
        def handler(args: str) -> None:
            setattr(self._state, name, float(args))

        return handler

    def _set_index(self, name: str, maximum: int) -> Callable[[str], None]:
        def handler(args: str) -> None:
            value = int(args)
            if not 0 <= value <= maximum:
                raise ValueError(f"{name} index out of range: {value}")
            setattr(self._state, name, value)

        return handler

    def _set_display(self, args: str) -> None:
        channel, _, rest = args.partition(",")
        self._state.displays[int(channel)] = rest
