"""Keithley 2450 SourceMeter emulator.

Provides an in-process SCPI emulator implementing the ``ScpiTransport``
protocol. The output drives a resistive load so measurements follow Ohm's
law, clamped by the active compliance limit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from labctl_scpi.errors import TransportTimeoutError

# ---------------------------------------------------------------------------
# Long-form -> short-form SCPI keyword map
# ---------------------------------------------------------------------------

_LONG_TO_SHORT: dict[str, str] = {
    "SOURCE": "SOUR",
    "SENSE": "SENS",
    "FUNCTION": "FUNC",
    "VOLTAGE": "VOLT",
    "CURRENT": "CURR",
    "OUTPUT": "OUTP",
    "MEASURE": "MEAS",
    "ILIMIT": "ILIM",
    "VLIMIT": "VLIM",
    "RANGE": "RANG",
    "LEVEL": "LEV",
    "STATE": "STAT",
    "SYSTEM": "SYST",
    "ERROR": "ERR",
}

# Segments that are optional and should be stripped during normalization
_OPTIONAL_SEGMENTS: set[str] = {"LEV", "STAT", "DC"}


def _normalize_header(header: str) -> str:
    """Normalize a SCPI header to canonical short form.

    1. Uppercase
    2. Strip leading colon
    3. Split on ``:``
    4. Map long forms to short forms
    5. Drop optional segments
    6. Rejoin with ``:``
    """
    upper = header.upper()
    if upper.startswith(":"):
        upper = upper[1:]
    segments = upper.split(":")
    short_segments = [_LONG_TO_SHORT.get(seg, seg) for seg in segments]
    filtered = [seg for seg in short_segments if seg not in _OPTIONAL_SEGMENTS]
    return ":".join(filtered)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Keithley2450EmulatorConfig:
    """Configuration for a Keithley 2450 emulator instance.

    Args:
        identity: ``*IDN?`` response string.
        load_ohms: Resistance connected across the output (> 0).
        max_voltage: Largest accepted voltage level or limit, in volts.
        max_current: Largest accepted current level or limit, in amps.
    """

    identity: str
    load_ohms: float = 1000.0
    max_voltage: float = 210.0
    max_current: float = 1.05

    def __post_init__(self) -> None:
        if not self.identity:
            raise ValueError("identity must be non-empty")
        if self.load_ohms <= 0:
            raise ValueError("load_ohms must be > 0")
        if self.max_voltage <= 0:
            raise ValueError("max_voltage must be > 0")
        if self.max_current <= 0:
            raise ValueError("max_current must be > 0")


# ---------------------------------------------------------------------------
# Internal state
# ---------------------------------------------------------------------------


@dataclass
class _SourceState:
    function: str = "VOLT"
    voltage_level: float = 0.0
    current_level: float = 0.0
    current_limit: float = 1.05e-4
    voltage_limit: float = 21.0
    voltage_range: float = 21.0
    current_range: float = 1.0e-4
    output_enabled: bool = False


# ---------------------------------------------------------------------------
# Emulator
# ---------------------------------------------------------------------------


class Keithley2450Emulator:
    """In-process Keithley 2450 emulator implementing ``ScpiTransport``.

    Args:
        config: Emulator configuration.

    Attributes:
        commands: Every line written, in order.
    """

    def __init__(self, config: Keithley2450EmulatorConfig) -> None:
        self._config = config
        self._state = _SourceState()
        self._response_buffer: str = ""
        self._error_queue: list[tuple[int, str]] = []
        self.commands: list[str] = []
        self.closed = False

        self._set_handlers: dict[str, Callable[[str], None]] = {
            "SOUR:FUNC": self._set_function,
            "SOUR:VOLT": self._set_voltage_level,
            "SOUR:CURR": self._set_current_level,
            "SOUR:VOLT:ILIM": self._set_current_limit,
            "SOUR:CURR:VLIM": self._set_voltage_limit,
            "SENS:VOLT:RANG": self._set_voltage_range,
            "SENS:CURR:RANG": self._set_current_range,
            "OUTP": self._set_output,
        }

        self._query_handlers: dict[str, Callable[[], str]] = {
            "SOUR:FUNC?": lambda: self._state.function,
            "SOUR:VOLT?": lambda: f"{self._state.voltage_level:.6E}",
            "SOUR:CURR?": lambda: f"{self._state.current_level:.6E}",
            "SOUR:VOLT:ILIM?": lambda: f"{self._state.current_limit:.6E}",
            "SOUR:CURR:VLIM?": lambda: f"{self._state.voltage_limit:.6E}",
            "OUTP?": lambda: "1" if self._state.output_enabled else "0",
            "MEAS:VOLT?": self._measure_voltage,
            "MEAS:CURR?": self._measure_current,
        }

    # -- Transport interface ------------------------------------------------

    def write(self, message: str) -> None:
        """Process a SCPI command or query string."""
        line = message.strip()
        if not line:
            return
        self.commands.append(line)

        is_query = "?" in line
        if is_query:
            qmark_idx = line.index("?")
            header = line[: qmark_idx + 1]
            args = line[qmark_idx + 1 :].strip()
        else:
            parts = line.split(None, 1)
            header = parts[0]
            args = parts[1] if len(parts) > 1 else ""

        if self._handle_common_command(header, is_query):
            return

        norm = _normalize_header(header.rstrip("?"))
        if is_query:
            query_handler = self._query_handlers.get(norm + "?")
            if query_handler is None:
                self._error_queue.append((-113, "Undefined header"))
                self._response_buffer = ""
                return
            self._response_buffer = query_handler()
        else:
            set_handler = self._set_handlers.get(norm)
            if set_handler is None:
                self._error_queue.append((-113, "Undefined header"))
                return
            set_handler(args)

    def read(self) -> str:
        """Return the buffered response or time out when none is pending."""
        if not self._response_buffer:
            raise TransportTimeoutError("No response pending")
        response = self._response_buffer
        self._response_buffer = ""
        return response

    def write_raw(self, data: bytes) -> None:
        """Raw writes are not used by the SourceMeter."""

    def read_bytes(self, count: int) -> bytes:
        """The SourceMeter never sends binary data."""
        raise TransportTimeoutError(f"Expected {count} bytes, none pending")

    def discard_input(self) -> None:
        """Drop any buffered response."""
        self._response_buffer = ""

    def close(self) -> None:
        """Mark the emulator closed."""
        self.closed = True

    # -- Test helpers -------------------------------------------------------

    @property
    def output_enabled(self) -> bool:
        """Whether the emulated output is on."""
        return self._state.output_enabled

    @property
    def function(self) -> str:
        """The active source function, ``"VOLT"`` or ``"CURR"``."""
        return self._state.function

    # -- Private helpers ----------------------------------------------------

    def _handle_common_command(self, header: str, is_query: bool) -> bool:
        upper_header = header.upper()
        if upper_header == "*IDN?":
            self._response_buffer = self._config.identity
            return True
        if upper_header == "*OPC?":
            self._response_buffer = "1"
            return True
        if upper_header == "*RST":
            self._state = _SourceState()
            return True
        if upper_header == "*CLS":
            self._error_queue.clear()
            return True
        if is_query and _normalize_header(header.rstrip("?")) == "SYST:ERR":
            self._response_buffer = self._pop_error()
            return True
        return False

    def _pop_error(self) -> str:
        if self._error_queue:
            code, msg = self._error_queue.pop(0)
            return f'{code},"{msg}"'
        return '0,"No error"'

    def _parse_float(self, args: str, limit: float) -> float | None:
        try:
            value = float(args.strip())
        except ValueError:
            self._error_queue.append((-220, "Parameter error"))
            return None
        if abs(value) > limit:
            self._error_queue.append((-222, "Data out of range"))
            return None
        return value

    def _set_function(self, args: str) -> None:
        raw = args.strip().strip('"').upper()
        token = _LONG_TO_SHORT.get(raw, raw)
        if token not in ("VOLT", "CURR"):
            self._error_queue.append((-224, "Illegal parameter value"))
            return
        self._state.function = token

    def _set_voltage_level(self, args: str) -> None:
        value = self._parse_float(args, self._config.max_voltage)
        if value is not None:
            self._state.voltage_level = value

    def _set_current_level(self, args: str) -> None:
        value = self._parse_float(args, self._config.max_current)
        if value is not None:
            self._state.current_level = value

    def _set_current_limit(self, args: str) -> None:
        value = self._parse_float(args, self._config.max_current)
        if value is not None:
            self._state.current_limit = abs(value)

    def _set_voltage_limit(self, args: str) -> None:
        value = self._parse_float(args, self._config.max_voltage)
        if value is not None:
            self._state.voltage_limit = abs(value)

    def _set_voltage_range(self, args: str) -> None:
        value = self._parse_float(args, self._config.max_voltage)
        if value is not None:
            self._state.voltage_range = abs(value)

    def _set_current_range(self, args: str) -> None:
        value = self._parse_float(args, self._config.max_current)
        if value is not None:
            self._state.current_range = abs(value)

    def _set_output(self, args: str) -> None:
        token = args.strip().upper()
        if token in ("ON", "1"):
            self._state.output_enabled = True
        elif token in ("OFF", "0"):
            self._state.output_enabled = False
        else:
            self._error_queue.append((-220, "Parameter error"))

    def _operating_point(self) -> tuple[float, float]:
        """Return the (voltage, current) at the load."""
        state = self._state
        if not state.output_enabled:
            return 0.0, 0.0
        load = self._config.load_ohms
        if state.function == "VOLT":
            current = state.voltage_level / load
            current = max(-state.current_limit, min(state.current_limit, current))
            return current * load, current
        voltage = state.current_level * load
        voltage = max(-state.voltage_limit, min(state.voltage_limit, voltage))
        return voltage, voltage / load

    def _measure_voltage(self) -> str:
        return f"{self._operating_point()[0]:.6E}"

    def _measure_current(self) -> str:
        return f"{self._operating_point()[1]:.6E}"


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def make_2450_emulator(serial: str = "04400001", load_ohms: float = 1000.0) -> Keithley2450Emulator:
    """Create a Keithley 2450 emulator driving a resistive load."""
    config = Keithley2450EmulatorConfig(
        identity=f"KEITHLEY INSTRUMENTS,MODEL 2450,{serial},1.7.3b",
        load_ohms=load_ohms,
    )
    return Keithley2450Emulator(config)
