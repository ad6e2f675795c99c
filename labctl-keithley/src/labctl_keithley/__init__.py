"""Keithley 2450 SourceMeter driver and emulator for labctl.

Example:
    Source a voltage and read back the current::

        from labctl_keithley import create_instrument

        with create_instrument("USB0::0x05E6::0x2450::04412345::INSTR") as smu:
            smu.set_voltage_source(1.0)
            smu.set_current_compliance(0.01)
            smu.enable_output()
            print(smu.measure_current())
            smu.enable_output(False)
"""

from labctl_keithley.emulator import (
    Keithley2450Emulator,
    Keithley2450EmulatorConfig,
    make_2450_emulator,
)
from labctl_keithley.smu import Keithley2450, create_instrument

__all__ = [
    # Driver
    "Keithley2450",
    "create_instrument",
    # Emulator
    "Keithley2450Emulator",
    "Keithley2450EmulatorConfig",
    "make_2450_emulator",
]
