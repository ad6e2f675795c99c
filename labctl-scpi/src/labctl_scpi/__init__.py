"""SCPI protocol library for labctl instrument control.

This package provides the communication layer shared by every labctl
instrument driver. It includes:

- Transport abstraction for line and raw byte message passing
- PyVISA-backed transport for GPIB/USB/LAN instruments
- pyserial-backed transport for RS-232 instruments
- High-level connection (the command/response protocol engine)
- Binary block codec for IEEE 488.2 definite-length blocks
- Number parsing and command formatting utilities
- Exception types for transport, framing and parse failures

Typical usage::

    from labctl_scpi import VisaResource, ScpiConnection

    with VisaResource("GPIB0::8::INSTR") as transport:
        conn = ScpiConnection(transport)
        identity = conn.get_identity()
        print(f"Connected to {identity.manufacturer} {identity.model}")
"""

from labctl_scpi.block import decode_block, encode_block, read_block
from labctl_scpi.connection import ScpiConnection, parse_idn_response
from labctl_scpi.errors import (
    BadHeaderError,
    ChannelClosedError,
    FramingError,
    LengthMismatchError,
    ScpiCommandError,
    ScpiError,
    ScpiInstrumentError,
    ScpiParseError,
    TransportError,
    TransportOpenError,
    TransportTimeoutError,
    TransportWriteError,
)
from labctl_scpi.number import (
    ScpiSpecial,
    format_bool,
    format_command,
    format_number,
    parse_bool,
    parse_int,
    parse_number,
    parse_numbers,
)
from labctl_scpi.serialport import SerialConfig, SerialPort
from labctl_scpi.transport import ScpiTransport
from labctl_scpi.visa import VisaResource

__all__ = [
    # Binary blocks
    "decode_block",
    "encode_block",
    "read_block",
    # Connection
    "ScpiConnection",
    "parse_idn_response",
    # Errors
    "BadHeaderError",
    "ChannelClosedError",
    "FramingError",
    "LengthMismatchError",
    "ScpiCommandError",
    "ScpiError",
    "ScpiInstrumentError",
    "ScpiParseError",
    "TransportError",
    "TransportOpenError",
    "TransportTimeoutError",
    "TransportWriteError",
    # Number parsing/formatting
    "ScpiSpecial",
    "format_bool",
    "format_command",
    "format_number",
    "parse_bool",
    "parse_int",
    "parse_number",
    "parse_numbers",
    # Transports
    "ScpiTransport",
    "SerialConfig",
    "SerialPort",
    "VisaResource",
]
