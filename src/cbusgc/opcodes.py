"""The CBUS opcode table and the registry that walks it.

Each opcode is described once, as an :class:`OpcodeSpec`: mnemonic,
default minor priority and an ordered tuple of fields.  Field positions
are never stored; they follow from cumulative width, starting right
after the opcode byte.

Example:
    >>> from cbusgc.opcodes import REGISTRY
    >>> spec = REGISTRY.lookup("90")
    >>> spec.mnemonic, [f.name for f in spec.fields]
    ('ACON', ['node_number', 'event_number'])
    >>> REGISTRY.decode_fields("00010002", spec)
    {'node_number': 1, 'event_number': 2}
"""

from dataclasses import dataclass
from typing import Iterator, Mapping

from cbusgc.fields import (
    Field,
    ascii_text,
    byte,
    hex_text,
    hex_to_int,
    signed_byte,
    speed_direction,
    weekday_month,
    word,
)

EVENT_LONG = "long"
EVENT_SHORT = "short"


@dataclass(frozen=True)
class OpcodeSpec:
    """Static description of one opcode.

    Attributes:
        opcode: Opcode byte, 0-255.
        mnemonic: Upper-case short name, e.g. ``"ACON"``.
        minor_priority: Default minor priority (0-3) for the header.
        fields: Payload fields in wire order.
        event: ``"long"`` or ``"short"`` for event opcodes, else None.
        event_data: True if the fields after the event number are an
            opaque data blob (``data1``..``data3``).
        alternate: ``(selector, value, fields)``.  When the decoded or
            supplied *selector* equals *value*, the fields after the
            selector are replaced by *fields*.
    """

    opcode: int
    mnemonic: str
    minor_priority: int
    fields: tuple[Field, ...] = ()
    event: str | None = None
    event_data: bool = False
    alternate: tuple[str, int, tuple[Field, ...]] | None = None

    @property
    def opcode_hex(self) -> str:
        return "{:02X}".format(self.opcode)

    def layout(self, values: Mapping) -> tuple[Field, ...]:
        """Return the field tuple that applies to *values*."""
        if self.alternate is None:
            return self.fields
        selector, match, alt_fields = self.alternate
        if values.get(selector) != match:
            return self.fields
        cut = [f.name for f in self.fields].index(selector) + 1
        return self.fields[:cut] + alt_fields


# -- Table -------------------------------------------------------------------

_NN = word("node_number")
_EN = word("event_number")
_DN = word("device_number")
_SESSION = byte("session")


def _op(opcode, mnemonic, minor_priority, *fields, **kwargs):
    return OpcodeSpec(opcode, mnemonic, minor_priority, tuple(fields), **kwargs)


def _data(count, first=1):
    return tuple(byte("data%d" % i) for i in range(first, first + count))


def _long_event(opcode, mnemonic, data_count):
    return _op(opcode, mnemonic, 3, _NN, _EN, *_data(data_count),
               event=EVENT_LONG, event_data=True)


def _short_event(opcode, mnemonic, data_count):
    return _op(opcode, mnemonic, 3, _NN, _DN, *_data(data_count),
               event=EVENT_SHORT, event_data=True)


def _extc(opcode, mnemonic, count):
    return _op(opcode, mnemonic, 3, byte("ext_opc"),
               *(byte("byte%d" % i) for i in range(1, count + 1)))


def _rdcc(opcode, mnemonic, count):
    return _op(opcode, mnemonic, 2, byte("repetitions"),
               *(byte("byte%d" % i) for i in range(count)))


def _nn_only(opcode, mnemonic):
    return _op(opcode, mnemonic, 3, _NN)


OPCODES = (
    # 00-1F: no data bytes
    _op(0x00, "ACK", 2),
    _op(0x01, "NAK", 2),
    _op(0x02, "HLT", 0),
    _op(0x03, "BON", 1),
    _op(0x04, "TOF", 1),
    _op(0x05, "TON", 1),
    _op(0x06, "ESTOP", 1),
    _op(0x07, "ARST", 0),
    _op(0x08, "RTOF", 1),
    _op(0x09, "RTON", 1),
    _op(0x0A, "RESTP", 0),
    _op(0x0C, "RSTAT", 2),
    _op(0x0D, "QNN", 3),
    _op(0x10, "RQNP", 3),
    _op(0x11, "RQMN", 2),
    _op(0x12, "GSTOP", 1),
    # 20-3F: one data byte
    _op(0x21, "KLOC", 2, _SESSION),
    _op(0x22, "QLOC", 2, _SESSION),
    _op(0x23, "DKEEP", 2, _SESSION),
    _op(0x30, "DBG1", 2, byte("status")),
    _op(0x3F, "EXTC", 3, byte("ext_opc")),
    # 40-5F: two data bytes
    _op(0x40, "RLOC", 2, word("address")),
    _op(0x41, "QCON", 2, byte("con_id"), byte("index")),
    _op(0x42, "SNN", 3, _NN),
    _op(0x43, "ALOC", 2, _SESSION, byte("allocation_code")),
    _op(0x44, "STMOD", 2, _SESSION, byte("mode_byte")),
    _op(0x45, "PCON", 2, _SESSION, byte("consist_address")),
    _op(0x46, "KCON", 2, _SESSION, byte("consist_address")),
    _op(0x47, "DSPD", 2, _SESSION, speed_direction()),
    _op(0x48, "DFLG", 2, _SESSION, byte("flags")),
    _op(0x49, "DFNON", 2, _SESSION, byte("function_number")),
    _op(0x4A, "DFNOF", 2, _SESSION, byte("function_number")),
    _op(0x4C, "SSTAT", 3, _SESSION, byte("status")),
    _nn_only(0x4F, "NNRSM"),
    _nn_only(0x50, "RQNN"),
    _nn_only(0x51, "NNREL"),
    _nn_only(0x52, "NNACK"),
    _nn_only(0x53, "NNLRN"),
    _nn_only(0x54, "NNULN"),
    _nn_only(0x55, "NNCLR"),
    _nn_only(0x56, "NNEVN"),
    _nn_only(0x57, "NERD"),
    _nn_only(0x58, "RQEVN"),
    _nn_only(0x59, "WRACK"),
    _nn_only(0x5A, "RQDAT"),
    _nn_only(0x5B, "RQDDS"),
    _nn_only(0x5C, "BOOTM"),
    _nn_only(0x5D, "ENUM"),
    _nn_only(0x5E, "NNRST"),
    _extc(0x5F, "EXTC1", 1),
    # 60-7F: three data bytes
    _op(0x60, "DFUN", 2, _SESSION, byte("fn1"), byte("fn2")),
    _op(0x61, "GLOC", 2, word("address"), byte("flags")),
    _op(0x63, "ERR", 2, byte("data1"), byte("data2"), byte("error_number")),
    _op(0x66, "SQU", 0, _NN, byte("capacity_index")),
    _op(0x6F, "CMDERR", 3, _NN, byte("error_number")),
    _op(0x70, "EVNLF", 3, _NN, byte("evspc")),
    _op(0x71, "NVRD", 3, _NN, byte("node_variable_index")),
    _op(0x72, "NENRD", 3, _NN, byte("event_index")),
    _op(0x73, "RQNPN", 3, _NN, byte("parameter_index")),
    _op(0x74, "NUMEV", 3, _NN, byte("event_count")),
    _op(0x75, "CANID", 3, _NN, byte("can_id")),
    _op(0x76, "MODE", 3, _NN, byte("mode_number")),
    _op(0x78, "RQSD", 3, _NN, byte("service_index")),
    _extc(0x7F, "EXTC2", 2),
    # 80-9F: four data bytes
    _rdcc(0x80, "RDCC3", 3),
    _op(0x82, "WCVO", 2, _SESSION, word("cv"), byte("value")),
    _op(0x83, "WCVB", 2, _SESSION, word("cv"), byte("value")),
    _op(0x84, "QCVS", 2, _SESSION, word("cv"), byte("mode")),
    _op(0x85, "PCVS", 2, _SESSION, word("cv"), byte("value")),
    _op(0x87, "RDGN", 3, _NN, byte("service_index"), byte("diagnostic_code")),
    _op(0x8E, "NVSETRD", 3, _NN, byte("node_variable_index"),
        byte("node_variable_value")),
    _long_event(0x90, "ACON", 0),
    _long_event(0x91, "ACOF", 0),
    _long_event(0x92, "AREQ", 0),
    _long_event(0x93, "ARON", 0),
    _long_event(0x94, "AROF", 0),
    _op(0x95, "EVULN", 3, _NN, _EN, event=EVENT_LONG),
    _op(0x96, "NVSET", 3, _NN, byte("node_variable_index"),
        byte("node_variable_value")),
    _op(0x97, "NVANS", 3, _NN, byte("node_variable_index"),
        byte("node_variable_value")),
    _short_event(0x98, "ASON", 0),
    _short_event(0x99, "ASOF", 0),
    _short_event(0x9A, "ASRQ", 0),
    _op(0x9B, "PARAN", 3, _NN, byte("parameter_index"), byte("parameter_value")),
    _op(0x9C, "REVAL", 3, _NN, byte("event_index"), byte("event_variable_index")),
    _short_event(0x9D, "ARSON", 0),
    _short_event(0x9E, "ARSOF", 0),
    _extc(0x9F, "EXTC3", 3),
    # A0-BF: five data bytes
    _rdcc(0xA0, "RDCC4", 4),
    _op(0xA2, "WCVS", 2, _SESSION, word("cv"), byte("mode"), byte("value")),
    _op(0xAB, "HEARTB", 3, _NN, byte("sequence_count"), byte("status_byte1"),
        byte("status_byte2")),
    _op(0xAC, "SD", 3, _NN, byte("service_index"), byte("service_type"),
        byte("service_version")),
    _op(0xAF, "GRSP", 3, _NN, hex_text("request_opcode", 2),
        byte("service_type"), byte("result")),
    _long_event(0xB0, "ACON1", 1),
    _long_event(0xB1, "ACOF1", 1),
    _op(0xB2, "REQEV", 3, _NN, _EN, byte("event_variable_index"),
        event=EVENT_LONG),
    _long_event(0xB3, "ARON1", 1),
    _long_event(0xB4, "AROF1", 1),
    _op(0xB5, "NEVAL", 3, _NN, byte("event_index"), byte("event_variable_index"),
        byte("event_variable_value")),
    _op(0xB6, "PNN", 3, _NN, byte("manufacturer_id"), byte("module_id"),
        byte("flags")),
    _short_event(0xB8, "ASON1", 1),
    _short_event(0xB9, "ASOF1", 1),
    _short_event(0xBD, "ARSON1", 1),
    _short_event(0xBE, "ARSOF1", 1),
    _extc(0xBF, "EXTC4", 4),
    # C0-DF: six data bytes
    _rdcc(0xC0, "RDCC5", 5),
    _op(0xC1, "WCVOA", 2, word("address"), word("cv"), byte("mode"),
        byte("value")),
    _op(0xC2, "CABDAT", 2, word("address"), byte("datcode"), byte("aspect1"),
        byte("aspect2"), byte("speed")),
    _op(0xC7, "DGN", 3, _NN, byte("service_index"), byte("diagnostic_code"),
        word("diagnostic_value")),
    _op(0xCF, "FCLK", 3, byte("minutes"), byte("hours"), weekday_month("wdmon"),
        byte("div"), byte("day_of_month"), signed_byte("temperature")),
    _long_event(0xD0, "ACON2", 2),
    _long_event(0xD1, "ACOF2", 2),
    _op(0xD2, "EVLRN", 3, _NN, _EN, byte("event_variable_index"),
        byte("event_variable_value"), event=EVENT_LONG),
    _op(0xD3, "EVANS", 3, _NN, _EN, byte("event_variable_index"),
        byte("event_variable_value"), event=EVENT_LONG),
    _long_event(0xD4, "ARON2", 2),
    _long_event(0xD5, "AROF2", 2),
    _short_event(0xD8, "ASON2", 2),
    _short_event(0xD9, "ASOF2", 2),
    _short_event(0xDD, "ARSON2", 2),
    _short_event(0xDE, "ARSOF2", 2),
    _extc(0xDF, "EXTC5", 5),
    # E0-FF: seven data bytes
    _rdcc(0xE0, "RDCC6", 6),
    _op(0xE1, "PLOC", 2, _SESSION, word("address"), speed_direction(),
        byte("fn1"), byte("fn2"), byte("fn3")),
    _op(0xE2, "NAME", 3, ascii_text("name", 7)),
    _op(0xE3, "STAT", 2, _NN, byte("cs"), byte("flags"), byte("major"),
        byte("minor"), byte("build")),
    _op(0xE6, "ENACK", 2, _NN, hex_text("ack_opcode", 2),
        hex_text("event_identifier", 8)),
    _op(0xE7, "ESD", 2, _NN, byte("service_index"), byte("service_type"),
        *_data(3)),
    _op(0xE9, "DTXC", 3, byte("stream_identifier"), byte("sequence_number"),
        *_data(5),
        alternate=("sequence_number", 0,
                   (word("message_length"), word("crc16"), byte("flags")))),
    _op(0xEF, "PARAMS", 3, *(byte("param%d" % i) for i in range(1, 8))),
    _long_event(0xF0, "ACON3", 3),
    _long_event(0xF1, "ACOF3", 3),
    _op(0xF2, "ENRSP", 3, _NN, hex_text("event_identifier", 8),
        byte("event_index")),
    _long_event(0xF3, "ARON3", 3),
    _long_event(0xF4, "AROF3", 3),
    _op(0xF5, "EVLRNI", 3, _NN, _EN, byte("event_number_index"),
        byte("event_variable_index"), byte("event_variable_value"),
        event=EVENT_LONG),
    _op(0xF6, "ACDAT", 3, _NN, *_data(5)),
    _op(0xF7, "ARDAT", 3, _NN, *_data(5)),
    _short_event(0xF8, "ASON3", 3),
    _short_event(0xF9, "ASOF3", 3),
    _op(0xFA, "DDES", 3, _DN, *_data(5)),
    _op(0xFB, "DDRS", 3, _DN, *_data(5)),
    _op(0xFC, "DDWS", 3, _DN, *_data(5)),
    _short_event(0xFD, "ARSON3", 3),
    _short_event(0xFE, "ARSOF3", 3),
    _extc(0xFF, "EXTC6", 6),
)


# -- Registry ----------------------------------------------------------------


class OpcodeRegistry:
    """Lookup and field walking over a table of :class:`OpcodeSpec`.

    Raises:
        ValueError: On construction, if two specs share an opcode byte
            or a mnemonic.
    """

    def __init__(self, specs):
        self._by_opcode = {}
        self._by_mnemonic = {}
        for spec in specs:
            if spec.opcode in self._by_opcode:
                raise ValueError(
                    "duplicate opcode {}: {} and {}".format(
                        spec.opcode_hex, self._by_opcode[spec.opcode].mnemonic,
                        spec.mnemonic,
                    )
                )
            if spec.mnemonic in self._by_mnemonic:
                raise ValueError("duplicate mnemonic: %s" % spec.mnemonic)
            self._by_opcode[spec.opcode] = spec
            self._by_mnemonic[spec.mnemonic] = spec

    def __iter__(self) -> Iterator[OpcodeSpec]:
        return iter(sorted(self._by_opcode.values(), key=lambda s: s.opcode))

    def __len__(self) -> int:
        return len(self._by_opcode)

    def lookup(self, opcode) -> OpcodeSpec | None:
        """Find the spec for an opcode byte.

        Args:
            opcode: Int 0-255 or a 2-character hex string (any case).

        Returns:
            OpcodeSpec or None if the opcode is unassigned or *opcode*
            is not valid hex.
        """
        if isinstance(opcode, str):
            if len(opcode) != 2:
                return None
            try:
                opcode = hex_to_int(opcode)
            except ValueError:
                return None
        return self._by_opcode.get(opcode)

    def by_mnemonic(self, mnemonic: str) -> OpcodeSpec | None:
        return self._by_mnemonic.get(str(mnemonic).upper())

    def decode_fields(self, payload: str, spec: OpcodeSpec) -> dict:
        """Decode the payload that follows the opcode byte.

        Each field consumes its width from where the previous one ended.
        A payload that runs out early leaves the remaining fields as
        None; trailing characters beyond the layout are ignored.

        Args:
            payload: Hex text after the opcode, without the ``;``.
            spec: Spec describing the layout.

        Returns:
            dict: Record keys in field order.
        """
        values = {}
        fields = spec.fields
        pos = 0
        i = 0
        while i < len(fields):
            field = fields[i]
            values.update(field.decode(payload[pos:pos + field.width]))
            pos += field.width
            i += 1
            if spec.alternate is not None and field.name == spec.alternate[0]:
                fields = spec.layout(values)
        return values

    def encode_fields(self, spec: OpcodeSpec, args: Mapping, strict: bool = False) -> str:
        """Encode *args* into payload hex for *spec*.

        Raises:
            ValueError: If a field is missing or has the wrong type, or
                (strict) is out of range.
        """
        return "".join(field.encode(args, strict) for field in spec.layout(args))


REGISTRY = OpcodeRegistry(OPCODES)
