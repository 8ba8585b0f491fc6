"""29-bit extended frames used by the CBUS firmware bootloader.

Only a fixed identifier range is used.  The 9th hex digit of a
``:X0008000d`` identifier carries two flags:

    bit 1  GET (1) / PUT (0)
    bit 0  DATA (1) / CONTROL (0)

A CONTROL frame carries a 24-bit address (low byte first), a reserved
byte and the CTLBT, SPCMD, CPDTL and CPDTH bytes.  A DATA frame carries
eight raw bytes.  The bootloader answers with a one-byte RESPONSE frame
under identifier ``80080004``.

Example:
    >>> from cbusgc.extended import decode_extended, encode_extended
    >>> encode_extended("PUT", "CONTROL", address="000000", CTLBT=13,
    ...                 SPCMD=4, CPDTL=0, CPDTH=0)
    ':X00080004N000000000D040000;'
    >>> decode_extended(":X80080004N02;")["response"]
    2
"""

import json
import logging

from cbusgc.fields import HEX_DIGITS, byte, encode_hex_passthrough, hex_to_int

log = logging.getLogger(__name__)

EXT_PREFIX = ":X0008000"
EXT_FRAME_LENGTH = 27
RESPONSE_MIN_LENGTH = 13
RESPONSE_IDENTIFIER = "80080004"

FLAG_GET = 0x02
FLAG_DATA = 0x01
FLAG_BASE = 0x04

CONTROL_BYTES = ("CTLBT", "SPCMD", "CPDTL", "CPDTH")
DATA_LENGTH = 8


def _byte_at(message: str, offset: int) -> int | None:
    try:
        return hex_to_int(message[offset:offset + 2])
    except ValueError:
        log.debug("bad byte at offset %d: %r", offset, message)
        return None


# -- Decoding ----------------------------------------------------------------


def decode_extended(message: str) -> dict:
    """Decode an extended frame into a record.

    Returns:
        dict: Always has ``encoded``, ``id_type`` ("X") and ``text``
            (the rest of the record as JSON).  Bootloader frames add
            ``operation`` ("PUT"/"GET") and ``type`` ("CONTROL"/"DATA")
            plus their fields; other frames of 13+ characters add
            ``operation`` "RESPONSE" and ``response``; anything shorter
            gets ``type`` "UNKNOWN MESSAGE".
    """
    output = {"encoded": message, "id_type": "X"}
    flags = message[9:10]

    if (
        len(message) >= EXT_FRAME_LENGTH
        and message.startswith(EXT_PREFIX)
        and flags in HEX_DIGITS
    ):
        flags = int(flags, 16)
        output["operation"] = "GET" if flags & FLAG_GET else "PUT"
        if flags & FLAG_DATA:
            output["type"] = "DATA"
            output["data"] = [_byte_at(message, 11 + 2 * i) for i in range(DATA_LENGTH)]
        else:
            output["type"] = "CONTROL"
            output["address"] = message[15:17] + message[13:15] + message[11:13]
            output["RESVD"] = _byte_at(message, 17)
            for i, name in enumerate(CONTROL_BYTES):
                output[name] = _byte_at(message, 19 + 2 * i)
    elif len(message) >= RESPONSE_MIN_LENGTH:
        output["operation"] = "RESPONSE"
        output["response"] = _byte_at(message, 11)
    else:
        log.debug("short extended frame: %s", message)
        output["type"] = "UNKNOWN MESSAGE"

    output["text"] = json.dumps(output)
    return output


# -- Encoding ----------------------------------------------------------------


def _identifier(operation: str, frame_type: str) -> str:
    flags = FLAG_BASE
    if operation == "GET":
        flags |= FLAG_GET
    if frame_type == "DATA":
        flags |= FLAG_DATA
    return "{}{:X}".format(EXT_PREFIX, flags)


def encode_extended(operation: str, frame_type: str | None = None, strict: bool = False, **fields) -> str:
    """Build an extended bootloader frame.

    Args:
        operation: ``"PUT"``, ``"GET"`` or ``"RESPONSE"``.
        frame_type: ``"CONTROL"`` or ``"DATA"``; unused for RESPONSE.
        strict: Reject out-of-range byte values and an address longer
            than 6 digits.
        **fields: CONTROL needs ``address`` (6 hex digits) and the four
            control bytes; DATA needs ``data`` (8 ints); RESPONSE needs
            ``response``.

    Returns:
        str: The encoded frame.

    Raises:
        ValueError: On an unknown operation or type, a missing or
            mistyped field, or a non-hex address.

    Example:
        >>> encode_extended("RESPONSE", response=2)
        ':X80080004N02;'
    """
    if operation == "RESPONSE":
        return ":X%sN%s;" % (RESPONSE_IDENTIFIER, byte("response").encode(fields, strict))

    if operation not in ("PUT", "GET"):
        raise ValueError("extended operation %r not supported" % (operation,))

    if frame_type == "CONTROL":
        if "address" not in fields:
            raise ValueError("missing required key: address")
        try:
            address = encode_hex_passthrough(fields["address"], 6, strict)
        except ValueError as e:
            raise ValueError("address: %s" % e) from e
        body = address[4:6] + address[2:4] + address[0:2] + "00"
        body += "".join(byte(name).encode(fields, strict) for name in CONTROL_BYTES)
    elif frame_type == "DATA":
        if "data" not in fields:
            raise ValueError("missing required key: data")
        data = list(fields["data"])
        if len(data) != DATA_LENGTH:
            raise ValueError("data must have %d bytes, got %d" % (DATA_LENGTH, len(data)))
        body = "".join(byte("data").encode({"data": value}, strict) for value in data)
    else:
        raise ValueError("extended type %r not supported" % (frame_type,))

    return "%sN%s;" % (_identifier(operation, frame_type), body)
