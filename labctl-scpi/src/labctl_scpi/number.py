"""SCPI number parsing and formatting utilities.

Handles NR1 (integer), NR2 (fixed-point), and NR3 (scientific notation)
numeric formats as well as the special values defined by SCPI (NAN, INF,
NINF, MIN, MAX, DEF), and builds command strings from a header plus
parameters.
"""

from __future__ import annotations

import math
from enum import Enum

from labctl_scpi.errors import ScpiParseError


class ScpiSpecial(Enum):
    """SCPI special parameter values."""

    MIN = "MIN"
    MAX = "MAX"
    DEF = "DEF"
    NAN = "NAN"
    INF = "INF"
    NINF = "NINF"


_SPECIAL_FLOAT_MAP: dict[str, float] = {
    "NAN": float("nan"),
    "INF": float("inf"),
    "NINF": float("-inf"),
    "-INF": float("-inf"),
}


def parse_number(text: str) -> float:
    """Parse a SCPI numeric response into a float.

    Accepts NR1 (``"42"``), NR2 (``"1.23"``), NR3 (``"1.23E+4"``),
    and the special tokens ``NAN``, ``INF``, ``NINF``, and ``-INF``.

    Args:
        text: The raw response string (leading/trailing whitespace is stripped).

    Returns:
        The parsed float value.

    Raises:
        ScpiParseError: If *text* cannot be parsed as a SCPI number.
    """
    token = text.strip().upper()
    special = _SPECIAL_FLOAT_MAP.get(token)
    if special is not None:
        return special
    try:
        return float(token)
    except ValueError:
        raise ScpiParseError(f"Invalid SCPI number: {text!r}") from None


def parse_numbers(text: str) -> tuple[float, ...]:
    """Parse a comma-separated list of SCPI numbers.

    Args:
        text: Comma-separated numeric values (e.g. ``"1.0,2.0,3.0"``).

    Returns:
        A tuple of parsed float values.

    Raises:
        ScpiParseError: If any element cannot be parsed.
    """
    return tuple(parse_number(part) for part in text.split(","))


def parse_int(text: str) -> int:
    """Parse a SCPI NR1 (integer) response.

    Raises:
        ScpiParseError: If *text* is not a valid integer.
    """
    token = text.strip()
    try:
        return int(token)
    except ValueError:
        raise ScpiParseError(f"Invalid SCPI integer: {text!r}") from None


def parse_bool(text: str) -> bool:
    """Parse a SCPI boolean response.

    Accepts ``"1"`` / ``"0"`` and ``"ON"`` / ``"OFF"`` (case-insensitive).

    Raises:
        ScpiParseError: If *text* is not a recognized boolean token.
    """
    token = text.strip().upper()
    if token in ("1", "ON"):
        return True
    if token in ("0", "OFF"):
        return False
    raise ScpiParseError(f"Invalid SCPI boolean: {text!r}")


def format_number(value: float) -> str:
    """Format a number for use in a SCPI command.

    ``nan``, ``inf``, and ``-inf`` are rendered as ``NAN``, ``INF``, and
    ``NINF`` respectively. Finite values use the shortest decimal that
    round-trips to the same float, and integral values drop the ``.0``
    (``10.0`` becomes ``"10"``), matching ``%g`` output for everyday values
    without losing precision on long mantissas.

    Args:
        value: The numeric value to format.

    Returns:
        A SCPI-compatible string representation.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    value = float(value)
    if math.isnan(value):
        return "NAN"
    if math.isinf(value):
        return "NINF" if value < 0 else "INF"
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_bool(value: bool) -> str:
    """Format a boolean for use in a SCPI command.

    Returns:
        ``"1"`` for True, ``"0"`` for False.
    """
    return "1" if value else "0"


def format_command(header: str, *args: float | int | bool | str | ScpiSpecial) -> str:
    """Build a command string from a header and parameters.

    Parameters are formatted individually and joined with commas after a
    single space: ``format_command("SNAP?", 1, 2)`` gives ``"SNAP? 1,2"``.
    Strings are passed through verbatim, booleans become ``1``/``0`` and
    numbers go through :func:`format_number`.

    Args:
        header: The command or query header (e.g. ``":SOUR:VOLT"``).
        *args: Parameters, in order.

    Returns:
        The complete command string, without terminator.

    Raises:
        ValueError: If *header* is empty or contains whitespace at its ends.
    """
    if not header or header != header.strip():
        raise ValueError(f"Invalid command header: {header!r}")
    if not args:
        return header
    parts: list[str] = []
    for arg in args:
        if isinstance(arg, bool):
            parts.append(format_bool(arg))
        elif isinstance(arg, ScpiSpecial):
            parts.append(arg.value)
        elif isinstance(arg, str):
            parts.append(arg)
        else:
            parts.append(format_number(arg))
    return f"{header} {','.join(parts)}"
