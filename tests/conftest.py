"""Shared pytest fixtures for cbusgc tests."""

import pytest

from cbusgc.codec import CbusCodec
from cbusgc.fields import (
    KIND_ASCII,
    KIND_HEX,
    KIND_SIGNED,
    KIND_SPEED_DIR,
    KIND_WEEKDAY_MONTH,
    Field,
)
from cbusgc.header import CanHeaderConfig
from cbusgc.opcodes import OpcodeSpec

# MjPri 2, CAN id 60: ":SB780N" at minor priority 3.
REFERENCE_HEADER = CanHeaderConfig(major_priority=2, can_id=60)


@pytest.fixture
def codec():
    """Lenient codec pinned to the reference header."""
    return CbusCodec(header=REFERENCE_HEADER)


@pytest.fixture
def strict_codec():
    """Strict codec pinned to the reference header."""
    return CbusCodec(header=REFERENCE_HEADER, strict=True)


def sample_value(field: Field, index: int) -> dict:
    """Return boundary values for *field*: 0 -> low, 1 -> one, 2 -> high."""
    if field.kind == KIND_SPEED_DIR:
        return {
            "speed": (0, 1, 127)[index],
            "direction": ("Reverse", "Forward", "Forward")[index],
        }
    if field.kind == KIND_ASCII:
        length = field.width // 2
        return {field.name: (" " * length, "1".ljust(length), "Z" * length)[index]}
    if field.kind == KIND_HEX:
        return {field.name: ("0" * field.width, "1".rjust(field.width, "0"), "F" * field.width)[index]}
    if field.kind == KIND_SIGNED:
        return {field.name: (0, 1, 127)[index]}
    if field.kind == KIND_WEEKDAY_MONTH:
        return {field.name: (0, 1, 255)[index]}
    return {field.name: (0, 1, field.max_value)[index]}


def sample_args(spec: OpcodeSpec, index: int) -> dict:
    """Build encode arguments for every field *spec* uses at *index*."""
    head = {}
    for field in spec.fields:
        head.update(sample_value(field, index))
    args = {}
    for field in spec.layout(head):
        args.update(sample_value(field, index))
    return args
