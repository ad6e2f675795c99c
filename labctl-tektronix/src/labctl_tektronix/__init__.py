"""Tektronix oscilloscope driver and emulator for labctl.

Modules:
    waveform: Preamble type and raw-code to seconds/volts conversion.
    scope: High-level driver with the single-channel acquisition sequence.
    emulator: In-process emulator for testing without hardware.

Example:
    Capture a channel from a real instrument::

        from labctl_tektronix import create_instrument

        with create_instrument("USB0::0x0699::0x0374::C012345::INSTR") as scope:
            waveform = scope.record_waveform("CH1", duration=0.5)
            for t, v in waveform.points():
                ...
"""

from labctl_tektronix.emulator import (
    TektronixScopeEmulator,
    TektronixScopeEmulatorConfig,
    make_dpo2014_emulator,
)
from labctl_tektronix.scope import TektronixScope, create_instrument
from labctl_tektronix.waveform import PREAMBLE_QUERIES, Waveform, WaveformPreamble, to_waveform

__all__ = [
    # Waveform codec
    "PREAMBLE_QUERIES",
    "Waveform",
    "WaveformPreamble",
    "to_waveform",
    # Driver
    "TektronixScope",
    "create_instrument",
    # Emulator
    "TektronixScopeEmulator",
    "TektronixScopeEmulatorConfig",
    "make_dpo2014_emulator",
]
