"""CBUS Grid Connect ASCII frame codec.

The module-level functions use one shared :class:`CbusCodec` with the
default header (major priority 2, CAN id 123).  Programs that change
header defaults from more than one thread should make their own codec.

Example:
    >>> import cbusgc
    >>> cbusgc.decode(":SB780N10;")["mnemonic"]
    'RQNP'
"""

from cbusgc.codec import CbusCodec
from cbusgc.config import load_config
from cbusgc.header import CanHeaderConfig, build_header, parse_header
from cbusgc.opcodes import REGISTRY, OpcodeRegistry, OpcodeSpec

__all__ = [
    "CanHeaderConfig",
    "CbusCodec",
    "OpcodeRegistry",
    "OpcodeSpec",
    "REGISTRY",
    "build_header",
    "decode",
    "encode",
    "encode_extended",
    "encode_message",
    "get_can_header",
    "load_config",
    "parse_header",
    "set_can_header",
]

_default = CbusCodec()

decode = _default.decode
encode = _default.encode
encode_extended = _default.encode_extended
encode_message = _default.encode_message
get_can_header = _default.get_can_header
set_can_header = _default.set_can_header
