"""Stanford Research Systems SR830 lock-in driver and emulator for labctl.

Example:
    Configure with defaults and take one reading::

        from labctl_srs import create_instrument

        with create_instrument(8) as lockin:
            lockin.configure()
            x, y = lockin.measure_xy().values
"""

from labctl_srs.emulator import SR830Emulator
from labctl_srs.lockin import (
    DEFAULT_GPIB_ADDRESS,
    SENSITIVITY_MAX_INDEX,
    SR830,
    TIME_CONSTANT_MAX_INDEX,
    LockinSettings,
    create_instrument,
    gpib_resource,
)

__all__ = [
    # Driver
    "DEFAULT_GPIB_ADDRESS",
    "LockinSettings",
    "SENSITIVITY_MAX_INDEX",
    "SR830",
    "TIME_CONSTANT_MAX_INDEX",
    "create_instrument",
    "gpib_resource",
    # Emulator
    "SR830Emulator",
]
