"""Tests for cbusgc.header."""

import pytest

from cbusgc.config import DEFAULT_CAN_ID, DEFAULT_MAJOR_PRIORITY
from cbusgc.header import (
    CanHeaderConfig,
    build_header,
    check_header_values,
    clamp_major_priority,
    pack_identifier,
    parse_header,
)


# -- build_header ------------------------------------------------------------


class TestBuildHeader:
    """Identifier packing and range reduction."""

    def test_reference_vector(self):
        """MjPri 2, MinPri 3, CAN id 60 packs to B780."""
        assert build_header(2, 3, 60) == ":SB780N"

    def test_bit_layout(self):
        """Each value lands in its own bit range."""
        assert pack_identifier(1, 0, 0) == 0x4000
        assert pack_identifier(0, 1, 0) == 0x1000
        assert pack_identifier(0, 0, 1) == 0x0020

    def test_low_five_bits_zero(self):
        """Bits 4-0 are never set."""
        assert pack_identifier(2, 3, 127) & 0x1F == 0

    def test_major_priority_clamped(self):
        """Major priority 3 goes out as 2."""
        assert build_header(3, 0, 0) == build_header(2, 0, 0)

    def test_can_id_wraps(self):
        """CAN id 128 goes out as 0."""
        assert build_header(0, 0, 128) == ":S0000N"

    def test_minor_priority_wraps(self):
        """Minor priority 4 goes out as 0."""
        assert build_header(0, 4, 0) == ":S0000N"

    def test_all_reduced_together(self):
        """Clamp and both wraps combine."""
        assert build_header(3, 4, 128) == ":S8000N"

    def test_uppercase_hex(self):
        """Identifier hex is uppercase."""
        assert build_header(2, 2, 127) == ":SAFE0N"


class TestClamp:
    """Major priority clamping."""

    def test_in_range_kept(self):
        """0-2 are unchanged."""
        assert [clamp_major_priority(v) for v in (0, 1, 2)] == [0, 1, 2]

    def test_above_clamped(self):
        """Anything above 2 becomes 2."""
        assert clamp_major_priority(7) == 2

    def test_negative_floor(self):
        """Negative values become 0."""
        assert clamp_major_priority(-1) == 0


class TestCheckHeaderValues:
    """Strict-mode range checks."""

    def test_valid(self):
        """Boundary values pass."""
        check_header_values(2, 3, 127)
        check_header_values(0, 0, 0)

    @pytest.mark.parametrize("args, key", [
        ((3, 0, 0), "major_priority"),
        ((0, 4, 0), "minor_priority"),
        ((0, 0, 128), "can_id"),
        ((0, -1, 0), "minor_priority"),
    ])
    def test_out_of_range(self, args, key):
        """Each out-of-range value is named in the error."""
        with pytest.raises(ValueError, match=key):
            check_header_values(*args)


# -- parse_header ------------------------------------------------------------


class TestParseHeader:
    """Identifier unpacking."""

    def test_reference_vector(self):
        """B780 unpacks to MjPri 2, MinPri 3, CAN id 60."""
        assert parse_header("B780") == {
            "major_priority": 2, "minor_priority": 3, "can_id": 60,
        }

    def test_lowercase(self):
        """Lowercase hex is accepted."""
        assert parse_header("b780")["can_id"] == 60

    def test_major_priority_three_visible(self):
        """A received MjPri of 3 is reported as-is."""
        assert parse_header("C000")["major_priority"] == 3

    def test_wrong_length(self):
        """Anything but four characters gives None."""
        assert parse_header("B78") is None
        assert parse_header("B7800") is None

    def test_not_hex(self):
        """Non-hex gives None."""
        assert parse_header("ZZZZ") is None

    def test_roundtrip_all_can_ids(self):
        """Every CAN id survives pack then parse."""
        for can_id in range(128):
            identifier = build_header(1, 2, can_id)[2:6]
            assert parse_header(identifier)["can_id"] == can_id


# -- CanHeaderConfig ---------------------------------------------------------


class TestCanHeaderConfig:
    """Header defaults value object."""

    def test_defaults(self):
        """Defaults come from cbusgc.config."""
        cfg = CanHeaderConfig()
        assert cfg.major_priority == DEFAULT_MAJOR_PRIORITY
        assert cfg.can_id == DEFAULT_CAN_ID

    def test_range_reduced(self):
        """Construction clamps and wraps."""
        cfg = CanHeaderConfig(major_priority=3, can_id=130)
        assert cfg.major_priority == 2
        assert cfg.can_id == 2

    def test_replace_keeps_unset(self):
        """None keeps the current value."""
        cfg = CanHeaderConfig(1, 10).replace(can_id=20)
        assert cfg == CanHeaderConfig(1, 20)

    def test_frozen(self):
        """Instances are immutable."""
        cfg = CanHeaderConfig()
        with pytest.raises(AttributeError):
            cfg.can_id = 1

    def test_as_dict(self):
        """as_dict has exactly the two keys."""
        assert CanHeaderConfig(0, 5).as_dict() == {"major_priority": 0, "can_id": 5}
