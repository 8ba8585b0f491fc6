"""The codec object callers hold on to.

:class:`CbusCodec` owns the CAN header defaults used when an encode
call does not supply its own, and whether encoding is strict.  Decoding
needs no state at all.

Example:
    >>> from cbusgc.codec import CbusCodec
    >>> from cbusgc.header import CanHeaderConfig
    >>> codec = CbusCodec(header=CanHeaderConfig(major_priority=2, can_id=60))
    >>> codec.encode("RQNP")
    ':SB780N10;'
    >>> codec.encode("ACON", node_number=1, event_number=2)
    ':SB780N9000010002;'
    >>> codec.decode(":SB780N10;")["mnemonic"]
    'RQNP'
"""

import logging
from typing import Mapping

from cbusgc.extended import encode_extended
from cbusgc.frame import ID_EXTENDED, ID_STANDARD, decode_frame, encode_standard
from cbusgc.header import CanHeaderConfig, check_header_values
from cbusgc.opcodes import REGISTRY, OpcodeRegistry

log = logging.getLogger(__name__)


class CbusCodec:
    """Encode and decode CBUS Grid Connect frames.

    Args:
        header: Header defaults; ``CanHeaderConfig()`` if omitted.
        strict: If True, encode rejects out-of-range values with
            ValueError instead of clamping or wrapping them.
        registry: Opcode table; the built-in one if omitted.

    Not thread-safe for :meth:`set_can_header`; share a codec between
    threads only if nobody changes its defaults, or pass ``header`` to
    each encode call instead.
    """

    def __init__(
        self,
        header: CanHeaderConfig | None = None,
        strict: bool = False,
        registry: OpcodeRegistry = REGISTRY,
    ):
        self._header = header if header is not None else CanHeaderConfig()
        self.strict = strict
        self.registry = registry

    # -- Header defaults -----------------------------------------------------

    @property
    def header(self) -> CanHeaderConfig:
        return self._header

    def get_can_header(self) -> dict:
        """Return the defaults as ``{"major_priority": .., "can_id": ..}``."""
        return self._header.as_dict()

    def set_can_header(self, major_priority: int | None = None, can_id: int | None = None) -> None:
        """Change the header defaults.  None leaves a value as it is.

        Raises:
            ValueError: In strict mode, if a value is out of range.
        """
        if self.strict:
            check_header_values(
                self._header.major_priority if major_priority is None else major_priority,
                0,
                self._header.can_id if can_id is None else can_id,
            )
        self._header = self._header.replace(major_priority, can_id)
        log.debug("CAN header defaults now %s", self._header)

    def _resolve_header(self, header) -> tuple[int, int, int | None]:
        """Return ``(major_priority, can_id, minor_priority)`` for an encode.

        *header* may be None, a ``CanHeaderConfig`` or a mapping with
        any of ``major_priority``, ``can_id`` and ``minor_priority``.
        """
        if header is None:
            return self._header.major_priority, self._header.can_id, None
        if isinstance(header, CanHeaderConfig):
            return header.major_priority, header.can_id, None
        if not isinstance(header, Mapping):
            raise ValueError(
                "header must be CanHeaderConfig or mapping, got %s" % type(header).__name__
            )
        return (
            header.get("major_priority", self._header.major_priority),
            header.get("can_id", self._header.can_id),
            header.get("minor_priority"),
        )

    # -- Decoding ------------------------------------------------------------

    def decode(self, message) -> dict:
        """Decode one frame.

        Args:
            message: Frame text, or a mapping carrying it under
                ``"encoded"`` (e.g. a record from an earlier decode).

        Returns:
            dict: Never raises for string input; malformed frames and
                unknown opcodes come back as marker records.

        Raises:
            TypeError: If *message* is neither str nor such a mapping.
        """
        if isinstance(message, Mapping) and "encoded" in message:
            message = message["encoded"]
        if not isinstance(message, str):
            raise TypeError("message must be str, got %s" % type(message).__name__)
        return decode_frame(message, self.registry)

    # -- Encoding ------------------------------------------------------------

    def encode(self, mnemonic, /, header=None, minor_priority=None, **fields) -> str:
        """Encode a standard frame.

        Args:
            mnemonic: Opcode name, e.g. ``"ACON"`` (any case).
            header: Overrides the stored defaults for this call only.
            minor_priority: Overrides the opcode's default minor priority.
            **fields: Field values keyed by their record names.

        Returns:
            str: The frame text.

        Raises:
            ValueError: Unknown mnemonic, missing or mistyped field, or
                (strict) an out-of-range value.

        Example:
            >>> CbusCodec().encode("DSPD", session=1, speed=127, direction="Forward")
            ':SAF60N4701FF;'
        """
        spec = self.registry.by_mnemonic(mnemonic)
        if spec is None:
            raise ValueError("unknown mnemonic: %s" % mnemonic)
        major_priority, can_id, header_minor = self._resolve_header(header)
        if minor_priority is None:
            minor_priority = header_minor
        return encode_standard(
            spec, fields, major_priority, can_id,
            minor_priority=minor_priority, strict=self.strict, registry=self.registry,
        )

    def encode_extended(self, operation: str, frame_type: str | None = None, **fields) -> str:
        """Encode a bootloader frame.  See :func:`cbusgc.extended.encode_extended`."""
        return encode_extended(operation, frame_type, strict=self.strict, **fields)

    def encode_message(self, message: Mapping) -> dict:
        """Encode a record dict and return a copy with ``encoded`` set.

        Dispatches on ``id_type`` ("S" or "X"); without one the record
        must carry ``mnemonic``.  A ``header`` entry, as found on
        decoded records, is used as the header for this frame, so a
        decoded standard record re-encodes to the frame it came from.

        Raises:
            ValueError: If the record type cannot be determined or a
                required key is missing.

        Example:
            >>> codec = CbusCodec()
            >>> codec.encode_message({"mnemonic": "QNN"})["encoded"]
            ':SBF60N0D;'
        """
        result = dict(message)
        id_type = message.get("id_type")

        if id_type == ID_EXTENDED:
            if "operation" not in message:
                raise ValueError("missing required key: operation")
            fields = {
                k: v for k, v in message.items()
                if k not in ("encoded", "id_type", "operation", "type", "text")
            }
            result["encoded"] = self.encode_extended(
                message["operation"], message.get("type"), **fields
            )
            return result

        if id_type not in (None, ID_STANDARD):
            raise ValueError("id_type %r not supported" % (id_type,))
        if "mnemonic" not in message:
            raise ValueError("missing required key: mnemonic")

        spec = self.registry.by_mnemonic(message["mnemonic"])
        if spec is None:
            raise ValueError("unknown mnemonic: %s" % message["mnemonic"])
        major_priority, can_id, minor_priority = self._resolve_header(message.get("header"))
        result["encoded"] = encode_standard(
            spec, message, major_priority, can_id,
            minor_priority=minor_priority, strict=self.strict, registry=self.registry,
        )
        return result
