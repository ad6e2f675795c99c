"""IEEE 488.2 definite-length binary block codec.

Instruments return bulk binary data (oscilloscope curves, screenshots) as a
length-prefixed block on an otherwise text-oriented channel::

    #<d><L digits><L raw bytes>

``<d>`` is a single ASCII digit giving the number of digits in the decimal
length field that follows. For example ``#41000`` announces 1000 data bytes.

The functions here are pure: they never touch a transport, so framing
errors are raised before anything else happens.
"""

from __future__ import annotations

from typing import Callable

from labctl_scpi.errors import BadHeaderError, LengthMismatchError

_BLOCK_MARK = b"#"
_ALLOWED_TRAILERS = (b"", b"\n", b"\r\n")


def _digit_count(marker: bytes) -> int:
    """Parse the single digit after ``#``."""
    if len(marker) != 1 or not marker.isdigit():
        raise BadHeaderError(f"Block digit count must be an ASCII digit, got {marker!r}")
    count = int(marker)
    if count == 0:
        raise BadHeaderError("Indefinite-length blocks (#0) are not supported")
    return count


def _declared_length(digits: bytes) -> int:
    if not digits.isdigit():
        raise BadHeaderError(f"Block length field must be decimal digits, got {digits!r}")
    return int(digits)


def decode_block(raw: bytes | bytearray | memoryview) -> bytes:
    """Extract the payload of a complete binary block.

    A trailing line terminator (``\\n`` or ``\\r\\n``) after the payload is
    accepted, since that is how most instruments end a block response.

    Args:
        raw: The full response, starting at ``#``.

    Returns:
        Exactly the declared number of payload bytes.

    Raises:
        BadHeaderError: If *raw* does not start with ``#`` followed by a
            non-zero digit and a decimal length field.
        LengthMismatchError: If *raw* is shorter than the header declares,
            or carries unexpected bytes after the payload.

    Example:
        >>> decode_block(b"#13abc")
        b'abc'
    """
    data = bytes(raw)
    if data[:1] != _BLOCK_MARK:
        raise BadHeaderError(f"Binary block must start with '#', got {data[:1]!r}")
    if len(data) < 2:
        raise LengthMismatchError("Binary block ends before its digit count")

    ndigits = _digit_count(data[1:2])
    start = 2 + ndigits
    if len(data) < start:
        raise LengthMismatchError(
            f"Binary block header declares {ndigits} length digits, got {len(data) - 2}"
        )

    length = _declared_length(data[2:start])
    end = start + length
    if len(data) < end:
        raise LengthMismatchError(
            f"Binary block declares {length} bytes, got {len(data) - start}"
        )
    if data[end:] not in _ALLOWED_TRAILERS:
        raise LengthMismatchError(
            f"Binary block declares {length} bytes, got {len(data) - start}"
        )
    return data[start:end]


def read_block(read_bytes: Callable[[int], bytes]) -> bytes:
    """Read one binary block using an exact-count byte reader.

    This is the streaming counterpart of :func:`decode_block`: it reads the
    ``#<d>`` prefix, then the length field, then exactly that many bytes.
    Any trailing terminator is left for the caller to consume.

    Args:
        read_bytes: Callable returning exactly the requested number of bytes,
            typically :meth:`ScpiTransport.read_bytes`.

    Returns:
        The block payload.

    Raises:
        BadHeaderError: If the prefix or length field is malformed.
        LengthMismatchError: If the reader returns fewer bytes than requested.
    """
    prefix = _read_exact(read_bytes, 2)
    if prefix[:1] != _BLOCK_MARK:
        raise BadHeaderError(f"Binary block must start with '#', got {prefix[:1]!r}")
    ndigits = _digit_count(prefix[1:2])
    length = _declared_length(_read_exact(read_bytes, ndigits))
    if length == 0:
        return b""
    return _read_exact(read_bytes, length)


def encode_block(payload: bytes) -> bytes:
    """Wrap *payload* in a definite-length block header.

    Raises:
        ValueError: If the payload length needs more than nine digits.
    """
    length = str(len(payload))
    if len(length) > 9:
        raise ValueError("Payload too large for a definite-length block")
    return b"#" + str(len(length)).encode("ascii") + length.encode("ascii") + bytes(payload)


def _read_exact(read_bytes: Callable[[int], bytes], count: int) -> bytes:
    data = read_bytes(count)
    if len(data) != count:
        raise LengthMismatchError(f"Expected {count} block bytes, got {len(data)}")
    return data
