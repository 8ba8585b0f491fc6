"""CAN arbitration header packing for standard (11-bit) CBUS frames.

The identifier is sent as four hex digits laid out to match the PIC
SIDH/SIDL register pair:

    bits 15-14  major priority
    bits 13-12  minor priority
    bits 11-5   CAN id
    bits 4-0    unused, always zero

Example:
    >>> from cbusgc.header import build_header, parse_header
    >>> build_header(2, 3, 60)
    ':SB780N'
    >>> parse_header("B780")
    {'major_priority': 2, 'minor_priority': 3, 'can_id': 60}
"""

import logging
from dataclasses import dataclass

from cbusgc.config import DEFAULT_CAN_ID, DEFAULT_MAJOR_PRIORITY, MAX_MAJOR_PRIORITY
from cbusgc.fields import hex_to_int

log = logging.getLogger(__name__)

CAN_ID_MODULUS = 128
MINOR_PRIORITY_MODULUS = 4


# -- Range reduction ---------------------------------------------------------


def clamp_major_priority(major_priority: int) -> int:
    """Clamp *major_priority* to 0..2.

    A value of 3 would put seven leading one-bits on the bus, which
    CAN framing does not allow, so anything above 2 becomes 2.
    """
    if major_priority > MAX_MAJOR_PRIORITY:
        log.debug("major priority %d clamped to %d", major_priority, MAX_MAJOR_PRIORITY)
        return MAX_MAJOR_PRIORITY
    return max(major_priority, 0)


def check_header_values(major_priority: int, minor_priority: int, can_id: int) -> None:
    """Reject header values that would need range reduction.

    Used by strict-mode encoders.

    Raises:
        ValueError: If any value is outside its field.
    """
    if not (0 <= major_priority <= MAX_MAJOR_PRIORITY):
        raise ValueError(
            "major_priority must be in range 0-{}, got {}".format(
                MAX_MAJOR_PRIORITY, major_priority
            )
        )
    if not (0 <= minor_priority < MINOR_PRIORITY_MODULUS):
        raise ValueError(
            "minor_priority must be in range 0-3, got {}".format(minor_priority)
        )
    if not (0 <= can_id < CAN_ID_MODULUS):
        raise ValueError("can_id must be in range 0-127, got {}".format(can_id))


@dataclass(frozen=True)
class CanHeaderConfig:
    """Header defaults used when an encode call does not pass its own.

    Values are range-reduced on construction: major priority is clamped
    to 2 and the CAN id is taken mod 128.
    """

    major_priority: int = DEFAULT_MAJOR_PRIORITY
    can_id: int = DEFAULT_CAN_ID

    def __post_init__(self):
        object.__setattr__(self, "major_priority", clamp_major_priority(self.major_priority))
        object.__setattr__(self, "can_id", self.can_id % CAN_ID_MODULUS)

    def replace(self, major_priority: int | None = None, can_id: int | None = None) -> "CanHeaderConfig":
        """Return a copy with the given values changed; None keeps the current one."""
        return CanHeaderConfig(
            self.major_priority if major_priority is None else major_priority,
            self.can_id if can_id is None else can_id,
        )

    def as_dict(self) -> dict:
        return {"major_priority": self.major_priority, "can_id": self.can_id}


# -- Encoding ----------------------------------------------------------------


def pack_identifier(major_priority: int, minor_priority: int, can_id: int) -> int:
    """Pack the three header values into the 16-bit identifier.

    Inputs are range-reduced, never rejected.

    Example:
        >>> hex(pack_identifier(2, 3, 60))
        '0xb780'
    """
    major_priority = clamp_major_priority(major_priority)
    minor_priority = minor_priority % MINOR_PRIORITY_MODULUS
    can_id = can_id % CAN_ID_MODULUS
    return (major_priority << 14) | (minor_priority << 12) | (can_id << 5)


def build_header(major_priority: int, minor_priority: int, can_id: int) -> str:
    """Build the ``:S<ID>N`` prefix of a standard frame.

    Args:
        major_priority: 0-2; larger values are clamped to 2.
        minor_priority: 0-3; taken mod 4.
        can_id: 0-127; taken mod 128.

    Returns:
        str: Seven characters, e.g. ``":SB780N"``.

    Example:
        >>> build_header(3, 4, 128)
        ':S8000N'
    """
    identifier = pack_identifier(major_priority, minor_priority, can_id)
    return ":S{:04X}N".format(identifier)


# -- Decoding ----------------------------------------------------------------


def parse_header(identifier: str) -> dict | None:
    """Unpack a 4-hex-digit standard identifier.

    Returns None if *identifier* is not four hex digits.

    Example:
        >>> parse_header("A780")
        {'major_priority': 2, 'minor_priority': 2, 'can_id': 60}
    """
    if len(identifier) != 4:
        return None
    try:
        value = hex_to_int(identifier)
    except ValueError:
        return None
    return {
        "major_priority": (value >> 14) & 0x03,
        "minor_priority": (value >> 12) & 0x03,
        "can_id": (value >> 5) & 0x7F,
    }
