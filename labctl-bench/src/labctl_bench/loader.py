"""Dynamic instrument driver loading via importlib.

Bench files name driver factories as strings so that the bench does not
import every driver package up front. The part after the colon may be a
dotted attribute path, so classmethod factories work too.

Example:
    factory = load_driver("labctl_srs.lockin:create_instrument")
    lockin = factory(resource=8)
"""

from __future__ import annotations

import importlib
from typing import Any, Callable


def load_driver(driver_path: str) -> Callable[..., Any]:
    """Resolve a ``"module:attribute"`` driver path to a callable.

    Args:
        driver_path: Path in "module:function" or "module:Class.method"
            format (e.g., "labctl_keithley.smu:create_instrument").

    Returns:
        The loaded factory.

    Raises:
        ValueError: If the driver path format is invalid.
        ImportError: If the module cannot be imported.
        AttributeError: If the attribute doesn't exist in the module.
        TypeError: If the attribute is not callable.
    """
    module_path, sep, attr_path = driver_path.partition(":")
    if not sep or not module_path or not attr_path or ":" in attr_path:
        raise ValueError(
            f"Invalid driver path '{driver_path}': must be in 'module:function' format"
        )

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ImportError(f"Failed to import module '{module_path}': {exc}") from exc

    target: Any = module
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise AttributeError(f"Module '{module_path}' has no attribute '{attr_path}'") from exc

    if not callable(target):
        raise TypeError(f"'{driver_path}' is not callable")

    return target
