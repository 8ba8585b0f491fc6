"""Whole-frame classification and standard (11-bit) frame coding.

A Grid Connect frame looks like ``:S<ID>N<OP><DATA>;`` for standard
frames and ``:X<ID>N<DATA>;`` for extended ones.  :func:`decode_frame`
picks the shape and always returns a record dict; it never raises for
string input.

Example:
    >>> from cbusgc.frame import decode_frame
    >>> rec = decode_frame(":SB780N9000010002;")
    >>> rec["mnemonic"], rec["node_number"], rec["event_number"]
    ('ACON', 1, 2)
    >>> rec["text"]
    'ACON (90) node_number 1 event_number 2'
"""

import logging
from typing import Mapping

from cbusgc.extended import decode_extended
from cbusgc.header import build_header, check_header_values, parse_header
from cbusgc.opcodes import EVENT_LONG, EVENT_SHORT, REGISTRY, OpcodeRegistry, OpcodeSpec

log = logging.getLogger(__name__)

ID_STANDARD = "S"
ID_EXTENDED = "X"
ID_UNKNOWN = ""

UNSUPPORTED_TEXT = "Unsupported message"

# Offsets into a standard frame.
STD_MIN_LENGTH = 9
STD_OPCODE = slice(7, 9)
STD_PAYLOAD_START = 9

# Offsets into an extended frame.
EXT_MIN_LENGTH = 11
EXT_FLAG_INDEX = 10


def undecoded_record(message: str, id_type: str, text: str) -> dict:
    return {"encoded": message, "id_type": id_type, "text": text}


# -- Classification ----------------------------------------------------------


def decode_frame(message: str, registry: OpcodeRegistry = REGISTRY) -> dict:
    """Classify *message* and decode it.

    Standard frames need at least 9 characters and extended frames at
    least 11.  A frame with no data (``:S<ID>N;``) or a remote
    transmission request (``R`` in place of ``N``) comes back as a
    record with only ``encoded``, ``id_type`` and ``text`` (plus
    ``rtr`` for requests).  Anything else that is not recognised gives
    ``{"id_type": "", "text": "Unsupported message"}``.

    Args:
        message: One frame, including ``:`` and ``;``.
        registry: Opcode table to decode against.

    Returns:
        dict: The decoded record.
    """
    id_type = message[1:2]

    if id_type == ID_STANDARD:
        flag = message[6:7]
        if flag == "R":
            log.debug("RTR frame: %s", message)
            rec = undecoded_record(message, ID_STANDARD, "RTR message %s" % message)
            rec["rtr"] = True
            return rec
        if flag == "N" and len(message) == STD_MIN_LENGTH - 1:
            log.debug("empty frame: %s", message)
            return undecoded_record(message, ID_STANDARD, "Empty message %s" % message)
        if len(message) >= STD_MIN_LENGTH:
            return decode_standard(message, registry)

    elif id_type == ID_EXTENDED and len(message) >= EXT_MIN_LENGTH:
        flag = message[EXT_FLAG_INDEX]
        if flag == "R":
            log.debug("RTR frame: %s", message)
            rec = undecoded_record(message, ID_EXTENDED, "RTR message %s" % message)
            rec["rtr"] = True
            return rec
        if flag == "N" and len(message) == EXT_MIN_LENGTH + 1:
            log.debug("empty frame: %s", message)
            return undecoded_record(message, ID_EXTENDED, "Empty message %s" % message)
        return decode_extended(message)

    log.debug("unsupported frame: %r", message)
    return undecoded_record(message, ID_UNKNOWN, UNSUPPORTED_TEXT)


# -- Standard frames ---------------------------------------------------------


def _event_fields(spec: OpcodeSpec, payload: str, values: dict) -> dict:
    """Derive ``event_identifier`` and ``event_data`` for event opcodes."""
    extra = {}
    if spec.event == EVENT_LONG:
        extra["event_identifier"] = payload[0:8].upper()
    elif spec.event == EVENT_SHORT:
        extra["event_identifier"] = "0000" + payload[4:8].upper()

    if spec.event_data:
        names = [f.name for f in spec.fields[2:]]
        event_data = {name: values[name] for name in names}
        event_data["hex"] = payload[8:8 + 2 * len(names)].upper()
        extra["event_data"] = event_data
    return extra


def summary_text(mnemonic: str, opcode: str, values: Mapping) -> str:
    """Build ``"MNEMONIC (OP) key value key value ..."``."""
    parts = ["%s (%s)" % (mnemonic, opcode)]
    for key, value in values.items():
        parts.append("%s %s" % (key, value))
    return " ".join(parts)


def decode_standard(message: str, registry: OpcodeRegistry = REGISTRY) -> dict:
    """Decode a standard frame of at least 9 characters.

    Unassigned opcodes return
    ``{"mnemonic": "UNSUPPORTED", "opcode": <hex>, ...}``.

    Example:
        >>> decode_standard(":SB780N0B;")["mnemonic"]
        'UNSUPPORTED'
    """
    opcode = message[STD_OPCODE].upper()
    spec = registry.lookup(opcode)
    if spec is None:
        log.debug("unsupported opcode %s in %s", opcode, message)
        return {
            "encoded": message,
            "id_type": ID_STANDARD,
            "mnemonic": "UNSUPPORTED",
            "opcode": opcode,
            "text": "UNSUPPORTED (%s)" % opcode,
        }

    payload = message[STD_PAYLOAD_START:].split(";", 1)[0]
    values = registry.decode_fields(payload, spec)

    record = {
        "encoded": message,
        "id_type": ID_STANDARD,
        "mnemonic": spec.mnemonic,
        "opcode": opcode,
    }
    record.update(values)
    record.update(_event_fields(spec, payload, values))
    record["header"] = parse_header(message[2:6])
    record["text"] = summary_text(spec.mnemonic, opcode, values)
    return record


def encode_standard(
    spec: OpcodeSpec,
    args: Mapping,
    major_priority: int,
    can_id: int,
    minor_priority: int | None = None,
    strict: bool = False,
    registry: OpcodeRegistry = REGISTRY,
) -> str:
    """Assemble a standard frame.

    Args:
        spec: Opcode to encode.
        args: Field values keyed by record key.
        major_priority: Header major priority.
        can_id: Header CAN id.
        minor_priority: Overrides the opcode's default minor priority.
        strict: Reject out-of-range header and field values.
        registry: Registry whose field walker is used.

    Returns:
        str: The frame, e.g. ``":SB780N10;"``.

    Raises:
        ValueError: On missing or mistyped fields, or strict range errors.
    """
    if minor_priority is None:
        minor_priority = spec.minor_priority
    if strict:
        check_header_values(major_priority, minor_priority, can_id)
    payload = registry.encode_fields(spec, args, strict)
    return build_header(major_priority, minor_priority, can_id) + spec.opcode_hex + payload + ";"
