"""Tektronix DPO2000 oscilloscope emulator.

Provides an in-process transport implementing ``ScpiTransport``. It tracks
the acquisition state machine, answers preamble queries and serves the
configured curve as a definite-length binary block.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from labctl_scpi.block import encode_block
from labctl_scpi.errors import TransportTimeoutError

from labctl_tektronix.waveform import PREAMBLE_QUERIES, WaveformPreamble

_DEFAULT_PREAMBLE = WaveformPreamble(
    x_increment=1.0e-6,
    x_zero=-5.0e-3,
    y_mult=4.0e-2,
    y_zero=0.0,
    y_offset=128.0,
)


@dataclass
class TektronixScopeEmulatorConfig:
    """Configuration for a scope emulator instance.

    Args:
        identity: ``*IDN?`` response string.
        preamble: Values returned by the ``WFMPRE`` queries.
        curve: Raw codes captured by an acquisition, per source.
    """

    identity: str = "TEKTRONIX,DPO2014,C000001,CF:91.1CT FV:v1.52"
    preamble: WaveformPreamble = _DEFAULT_PREAMBLE
    curve: dict[str, bytes] = field(default_factory=dict)


class TektronixScopeEmulator:
    """In-process DPO2000 emulator implementing ``ScpiTransport``.

    Attributes:
        commands: Every line written, in order.
    """

    def __init__(self, config: TektronixScopeEmulatorConfig | None = None) -> None:
        self._config = config or TektronixScopeEmulatorConfig()
        self.commands: list[str] = []
        self.closed = False
        self._text = ""
        self._binary = bytearray()
        self._running = False
        self._acquired: dict[str, bytes] = {}
        self._source = "CH1"
        self._start = 1
        self._stop = 10000
        self._set_handlers: dict[str, Callable[[str], None]] = {
            "STOP": lambda _: self._stop_acquisition(),
            "CLEAR": lambda _: self._acquired.clear(),
            "DATA:SOURCE": self._set_source,
            "DATA:ENC": lambda _: None,
            "DATA:WIDTH": lambda _: None,
            "DATA:START": self._set_start,
            "DATA:STOP": self._set_stop,
            "ACQUIRE:STATE": self._set_acquire_state,
        }
        preamble_values = {
            query: getattr(self._config.preamble, name) for name, query in PREAMBLE_QUERIES.items()
        }
        self._query_handlers: dict[str, Callable[[], str]] = {
            "*IDN?": lambda: self._config.identity,
            "ACQUIRE:STATE?": lambda: "1" if self._running else "0",
            "DATA:SOURCE?": lambda: self._source,
        }
        for query, value in preamble_values.items():
            self._query_handlers[query] = lambda value=value: f"{value:.6E}"

    # -- Transport interface ------------------------------------------------

    def write(self, message: str) -> None:
        """Process one command or query line."""
        line = message.strip()
        if not line:
            return
        self.commands.append(line)
        parts = line.split(None, 1)
        header = parts[0].upper()
        args = parts[1] if len(parts) > 1 else ""
        if header == "CURVE?":
            self._binary = bytearray(encode_block(self._curve()) + b"\n")
            return
        if header.endswith("?"):
            handler = self._query_handlers.get(header)
            self._text = handler() if handler is not None else ""
            return
        set_handler = self._set_handlers.get(header)
        if set_handler is not None:
            set_handler(args)

    def read(self) -> str:
        """Return the buffered text response or time out."""
        if not self._text:
            raise TransportTimeoutError("No response pending")
        response, self._text = self._text, ""
        return response

    def write_raw(self, data: bytes) -> None:
        """Raw writes are not used by the scope."""

    def read_bytes(self, count: int) -> bytes:
        """Return *count* bytes of the pending binary response or time out."""
        if len(self._binary) < count:
            self._binary.clear()
            raise TransportTimeoutError(f"Expected {count} bytes, fewer pending")
        chunk = bytes(self._binary[:count])
        del self._binary[:count]
        return chunk

    def discard_input(self) -> None:
        """Drop any pending text or binary response."""
        self._binary.clear()
        self._text = ""

    def close(self) -> None:
        """Mark the emulator closed."""
        self.closed = True

    # -- Test helpers -------------------------------------------------------

    def set_curve(self, source: str, codes: bytes) -> None:
        """Set the raw codes the next acquisition of *source* will capture."""
        self._config.curve[source.upper()] = bytes(codes)

    @property
    def running(self) -> bool:
        """Whether the emulated acquisition is running."""
        return self._running

    # -- Private helpers ----------------------------------------------------

    def _curve(self) -> bytes:
        data = self._acquired.get(self._source, b"")
        return data[self._start - 1 : self._stop]

    def _stop_acquisition(self) -> None:
        if self._running:
            self._acquired = dict(self._config.curve)
        self._running = False

    def _set_acquire_state(self, args: str) -> None:
        token = args.strip().upper()
        if token in ("RUN", "ON", "1"):
            self._running = True
        else:
            self._stop_acquisition()

    def _set_source(self, args: str) -> None:
        self._source = args.strip().upper()

    def _set_start(self, args: str) -> None:
        self._start = int(args)

    def _set_stop(self, args: str) -> None:
        self._stop = int(args)


def make_dpo2014_emulator(serial: str = "C000001") -> TektronixScopeEmulator:
    """Create a DPO2014 emulator with a 1000-point mid-scale curve on CH1."""
    config = TektronixScopeEmulatorConfig(
        identity=f"TEKTRONIX,DPO2014,{serial},CF:91.1CT FV:v1.52",
        curve={"CH1": bytes([128]) * 1000},
    )
    return TektronixScopeEmulator(config)
