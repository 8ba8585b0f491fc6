"""Field-level conversions between CBUS payload hex and Python values.

Every payload field is a fixed number of hex characters ("nybbles").
Most fields are plain unsigned integers; a few carry a transform:

- speed/direction: bit 7 is the direction, bits 0-6 the speed
- weekday/month: low nibble weekday (1=Sun), high nibble month (1=Jan)
- ASCII text: space padded, UTF-8 bytes as hex
- signed byte: two's complement
- hex passthrough: the hex text itself is the value

The module-level functions are pure.  :class:`Field` ties a name, a
width and one of these transforms together so the opcode table can be
purely declarative.

Example:
    >>> from cbusgc.fields import int_to_hex, encode_ascii
    >>> int_to_hex(300, 4)
    '012C'
    >>> encode_ascii("CANPAN", 7)
    '43414E50414E20'
"""

import logging
from dataclasses import dataclass
from typing import Mapping

log = logging.getLogger(__name__)

# -- Field kinds -------------------------------------------------------------

KIND_INT = "int"
KIND_SIGNED = "signed"
KIND_SPEED_DIR = "speed_direction"
KIND_WEEKDAY_MONTH = "weekday_month"
KIND_ASCII = "ascii"
KIND_HEX = "hex"

FORWARD = "Forward"
REVERSE = "Reverse"

HEX_DIGITS = "0123456789abcdefABCDEF"

# -- Integer conversion ------------------------------------------------------


def hex_to_int(text: str) -> int:
    """Convert a run of hex digits to an unsigned int.

    Raises:
        ValueError: If *text* is empty or contains a non-hex character.

    Example:
        >>> hex_to_int("FF")
        255
    """
    # int() accepts "0x", "_" and surrounding whitespace; wire hex never does.
    if not text or not all(c in HEX_DIGITS for c in text):
        raise ValueError("not a hex field: {!r}".format(text))
    return int(text, 16)


def int_to_hex(value: int, width: int) -> str:
    """Format *value* as *width* uppercase hex digits.

    Values that do not fit are reduced mod ``16 ** width``, so a node
    number of 65536 goes out as ``0000``.

    Example:
        >>> int_to_hex(10, 2)
        '0A'
    """
    return "{:0{}X}".format(value % (16 ** width), width)


# -- Special transforms ------------------------------------------------------


def encode_speed_direction(speed: int, direction: str) -> int:
    """Pack a speed (0-127) and direction into one byte.

    Anything other than ``"Reverse"`` (case-insensitive) is forward.

    Example:
        >>> encode_speed_direction(127, "Forward")
        255
    """
    forward = 0 if str(direction).lower() == REVERSE.lower() else 0x80
    return forward + (speed & 0x7F)


def decode_speed_direction(value: int) -> tuple[int, str]:
    """Split a speed/direction byte.

    Bit 7 alone picks the direction: 127 is full speed reverse, 128 is
    stopped forward.

    Example:
        >>> decode_speed_direction(128)
        (0, 'Forward')
    """
    return value % 128, FORWARD if value > 127 else REVERSE


def encode_weekday_month(day_of_week: int, month: int) -> int:
    """Combine weekday (1=Sun) and month (1=Jan) into the FCLK byte."""
    return ((month & 0x0F) << 4) | (day_of_week & 0x0F)


def decode_weekday_month(value: int) -> tuple[int, int]:
    """Return ``(day_of_week, month)`` from the FCLK byte."""
    return value % 16, value >> 4


def encode_ascii(text: str, length: int, strict: bool = False) -> str:
    """UTF-8 encode *text*, then pad or truncate it to *length* bytes.

    Width is counted in bytes, so a non-ASCII character takes more than
    one slot and truncation may split it.

    Raises:
        ValueError: In strict mode, if the encoded text is longer than
            *length* bytes.

    Example:
        >>> encode_ascii("", 3)
        '202020'
    """
    raw = str(text).encode("utf-8")
    if strict and len(raw) > length:
        raise ValueError(
            "text {!r} is {} bytes, longer than {}".format(text, len(raw), length)
        )
    return raw[:length].ljust(length, b" ").hex().upper()


def decode_ascii(hex_text: str) -> str:
    """Decode hex back to text.  Padding is kept."""
    return bytes.fromhex(hex_text).decode("utf-8", errors="replace")


def encode_signed_byte(value: int) -> int:
    """Two's complement a value in -128..127 into 0..255."""
    return value & 0xFF


def decode_signed_byte(value: int) -> int:
    return value - 256 if value > 127 else value


def encode_hex_passthrough(text: str, width: int, strict: bool = False) -> str:
    """Normalise caller-supplied hex to exactly *width* uppercase digits.

    Surrounding whitespace is trimmed and short text is left padded
    with zeros.  Long text keeps its leading *width* digits.

    Raises:
        ValueError: If the text holds a non-hex character, or in strict
            mode if it is longer than *width*.

    Example:
        >>> encode_hex_passthrough("ab", 4)
        '00AB'
    """
    text = str(text).strip()
    if not all(c in HEX_DIGITS for c in text):
        raise ValueError("not a hex field: {!r}".format(text))
    if strict and len(text) > width:
        raise ValueError(
            "hex text {!r} longer than {} digits".format(text, width)
        )
    return text[:width].rjust(width, "0").upper()


# -- Field descriptor --------------------------------------------------------


def _require(values: Mapping, key: str):
    if key not in values:
        raise ValueError("missing required key: %s" % key)
    return values[key]


def _require_int(values: Mapping, key: str) -> int:
    value = _require(values, key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError("%s must be int, got %s" % (key, type(value).__name__))
    return value


def _check_range(key: str, value: int, low: int, high: int) -> None:
    if not (low <= value <= high):
        raise ValueError(
            "{} must be in range {}-{}, got {}".format(key, low, high, value)
        )


@dataclass(frozen=True)
class Field:
    """One fixed-width payload field.

    Attributes:
        name: Record key for the decoded value.
        width: Width on the wire in hex characters.
        kind: One of the ``KIND_*`` constants.
    """

    name: str
    width: int
    kind: str = KIND_INT

    @property
    def keys(self) -> tuple[str, ...]:
        """Record keys this field produces on decode."""
        if self.kind == KIND_SPEED_DIR:
            return ("speed", "direction")
        if self.kind == KIND_WEEKDAY_MONTH:
            return (self.name, "day_of_week", "month")
        return (self.name,)

    @property
    def max_value(self) -> int:
        return 16 ** self.width - 1

    def encode(self, values: Mapping, strict: bool = False) -> str:
        """Encode this field's value(s) taken from *values*.

        Args:
            values: Mapping of record keys to values.
            strict: Reject out-of-range values instead of reducing them.

        Returns:
            str: Exactly ``self.width`` hex characters.

        Raises:
            ValueError: On a missing key or wrong type, non-hex text in a
                hex field, or in strict mode on an out-of-range value or
                over-long text.
        """
        if self.kind == KIND_HEX:
            try:
                return encode_hex_passthrough(_require(values, self.name), self.width, strict)
            except ValueError as e:
                raise ValueError("%s: %s" % (self.name, e)) from e

        if self.kind == KIND_ASCII:
            try:
                return encode_ascii(_require(values, self.name), self.width // 2, strict)
            except ValueError as e:
                raise ValueError("%s: %s" % (self.name, e)) from e

        if self.kind == KIND_SPEED_DIR:
            speed = _require_int(values, "speed")
            direction = _require(values, "direction")
            if strict:
                _check_range("speed", speed, 0, 127)
                if direction not in (FORWARD, REVERSE):
                    raise ValueError(
                        "direction must be 'Forward' or 'Reverse', got %r" % (direction,)
                    )
            return int_to_hex(encode_speed_direction(speed, direction), self.width)

        if self.kind == KIND_WEEKDAY_MONTH and self.name not in values:
            day_of_week = _require_int(values, "day_of_week")
            month = _require_int(values, "month")
            if strict:
                _check_range("day_of_week", day_of_week, 0, 15)
                _check_range("month", month, 0, 15)
            return int_to_hex(encode_weekday_month(day_of_week, month), self.width)

        value = _require_int(values, self.name)
        if self.kind == KIND_SIGNED:
            if strict:
                _check_range(self.name, value, -128, 127)
            return int_to_hex(encode_signed_byte(value), self.width)
        if strict:
            _check_range(self.name, value, 0, self.max_value)
        return int_to_hex(value, self.width)

    def decode(self, chunk: str) -> dict:
        """Decode *chunk* into a dict of record keys.

        A chunk that is short or not hex yields None for every key
        rather than raising.
        """
        if len(chunk) != self.width:
            log.debug("field %s truncated: %r", self.name, chunk)
            return dict.fromkeys(self.keys)

        if self.kind == KIND_HEX:
            return {self.name: chunk}

        try:
            value = hex_to_int(chunk)
        except ValueError:
            log.debug("field %s not hex: %r", self.name, chunk)
            return dict.fromkeys(self.keys)

        if self.kind == KIND_ASCII:
            return {self.name: decode_ascii(chunk)}
        if self.kind == KIND_SIGNED:
            return {self.name: decode_signed_byte(value)}
        if self.kind == KIND_SPEED_DIR:
            speed, direction = decode_speed_direction(value)
            return {"speed": speed, "direction": direction}
        if self.kind == KIND_WEEKDAY_MONTH:
            day_of_week, month = decode_weekday_month(value)
            return {self.name: value, "day_of_week": day_of_week, "month": month}
        return {self.name: value}


# -- Table shorthands --------------------------------------------------------


def byte(name: str) -> Field:
    return Field(name, 2)


def word(name: str) -> Field:
    return Field(name, 4)


def signed_byte(name: str) -> Field:
    return Field(name, 2, KIND_SIGNED)


def speed_direction() -> Field:
    return Field("speed_direction", 2, KIND_SPEED_DIR)


def weekday_month(name: str) -> Field:
    return Field(name, 2, KIND_WEEKDAY_MONTH)


def ascii_text(name: str, length: int) -> Field:
    return Field(name, length * 2, KIND_ASCII)


def hex_text(name: str, width: int) -> Field:
    return Field(name, width, KIND_HEX)
