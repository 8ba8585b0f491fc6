"""Project-wide constants and optional config-file loading.

The codec never reads files on its own. Host applications that keep
their CAN header defaults in TOML can load them here and hand the
result to :class:`cbusgc.codec.CbusCodec`.

Example:
    >>> from cbusgc.config import load_config
    >>> from cbusgc.codec import CbusCodec
    >>> codec = CbusCodec(header=load_config("cbus.toml"))
"""

import tomllib

# Header defaults used when an encode call omits them.
DEFAULT_MAJOR_PRIORITY = 2
DEFAULT_CAN_ID = 123

# Three would put seven leading one-bits on the wire.
MAX_MAJOR_PRIORITY = 2


def load_config(path: str):
    """Read a TOML config file and return a ``CanHeaderConfig``.

    Keys live in an optional ``[can]`` table: ``major_priority`` (int)
    and ``can_id`` (int). Either may be omitted to keep its default.
    Values are range-reduced the same way the encoder does it.

    Raises:
        ValueError: If ``[can]`` is not a table or a key has the wrong type.

    Example:
        >>> cfg = load_config("cbus.toml")
        >>> cfg.can_id
        60
    """
    from cbusgc.header import CanHeaderConfig

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    can = raw.get("can", {})
    if not isinstance(can, dict):
        raise ValueError("[can] must be a table")

    _optional_int(can, "major_priority")
    _optional_int(can, "can_id")

    return CanHeaderConfig(
        major_priority=can.get("major_priority", DEFAULT_MAJOR_PRIORITY),
        can_id=can.get("can_id", DEFAULT_CAN_ID),
    )


def _optional_int(raw: dict[str, object], key: str) -> None:
    """Validate that *key*, if present in *raw*, is an int."""
    if key not in raw:
        return
    # bool is an int subclass; TOML true/false is never a priority.
    if not isinstance(raw[key], int) or isinstance(raw[key], bool):
        raise ValueError("can.%s must be int, got %s" % (key, type(raw[key]).__name__))
