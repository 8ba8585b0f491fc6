"""Tests for cbusgc.extended."""

import json

import pytest

from cbusgc.extended import decode_extended, encode_extended


CONTROL_ARGS = {"address": "000000", "CTLBT": 13, "SPCMD": 4, "CPDTL": 0, "CPDTH": 0}


# -- Decoding ----------------------------------------------------------------


class TestDecodeExtended:
    """Extended frame decoding."""

    def test_put_control(self):
        """The reference PUT CONTROL frame."""
        rec = decode_extended(":X00080004N000000000D040000;")
        assert rec["id_type"] == "X"
        assert rec["operation"] == "PUT"
        assert rec["type"] == "CONTROL"
        assert rec["address"] == "000000"
        assert rec["RESVD"] == 0
        assert rec["CTLBT"] == 13
        assert rec["SPCMD"] == 4
        assert rec["CPDTL"] == 0
        assert rec["CPDTH"] == 0

    def test_address_byte_order(self):
        """Address bytes arrive low byte first."""
        rec = decode_extended(":X00080004N563412000D040000;")
        assert rec["address"] == "123456"

    def test_put_data(self):
        """A DATA frame carries eight bytes."""
        rec = decode_extended(":X00080005N20EF04F0FFFFFFFF;")
        assert rec["operation"] == "PUT"
        assert rec["type"] == "DATA"
        assert rec["data"] == [0x20, 0xEF, 0x04, 0xF0, 255, 255, 255, 255]

    def test_get_flags(self):
        """Bit 1 of the flag digit selects GET."""
        assert decode_extended(":X00080006N000000000D040000;")["operation"] == "GET"
        rec = decode_extended(":X00080007N0001020304050607;")
        assert (rec["operation"], rec["type"]) == ("GET", "DATA")

    def test_response(self):
        """A short frame outside the bootloader prefix is a response."""
        rec = decode_extended(":X80080004N02;")
        assert rec["operation"] == "RESPONSE"
        assert rec["response"] == 2

    def test_short_bootloader_frame_is_response(self):
        """A bootloader-prefixed frame under 27 characters is a response."""
        assert decode_extended(":X00080004N01;")["operation"] == "RESPONSE"

    def test_unknown(self):
        """Anything under 13 characters is unknown."""
        rec = decode_extended(":X00080004N0")
        assert rec["type"] == "UNKNOWN MESSAGE"

    def test_text_is_json(self):
        """text is the rest of the record as JSON."""
        rec = decode_extended(":X00080004N000000000D040000;")
        body = json.loads(rec["text"])
        assert body == {k: v for k, v in rec.items() if k != "text"}

    def test_bad_byte(self):
        """A non-hex byte decodes as None."""
        rec = decode_extended(":X00080004N000000000DZZ0000;")
        assert rec["SPCMD"] is None
        assert rec["CTLBT"] == 13


# -- Encoding ----------------------------------------------------------------


class TestEncodeExtended:
    """Extended frame encoding."""

    def test_put_control(self):
        """The reference PUT CONTROL frame."""
        assert encode_extended("PUT", "CONTROL", **CONTROL_ARGS) == ":X00080004N000000000D040000;"

    def test_address_reversed(self):
        """The address goes out low byte first."""
        args = dict(CONTROL_ARGS, address="123456")
        assert encode_extended("PUT", "CONTROL", **args) == ":X00080004N563412000D040000;"

    def test_address_padded(self):
        """A short address is left padded."""
        args = dict(CONTROL_ARGS, address="800")
        assert encode_extended("PUT", "CONTROL", **args).startswith(":X00080004N000800")

    def test_put_data(self):
        """PUT DATA writes eight bytes."""
        data = [0x20, 0xEF, 0x04, 0xF0, 255, 255, 255, 255]
        assert encode_extended("PUT", "DATA", data=data) == ":X00080005N20EF04F0FFFFFFFF;"

    def test_get(self):
        """GET sets bit 1 of the flag digit."""
        assert encode_extended("GET", "CONTROL", **CONTROL_ARGS).startswith(":X00080006N")
        assert encode_extended("GET", "DATA", data=[0] * 8).startswith(":X00080007N")

    def test_response(self):
        """RESPONSE uses its own identifier."""
        assert encode_extended("RESPONSE", response=2) == ":X80080004N02;"

    def test_decode_roundtrip(self):
        """Encoded control frames decode to the same values."""
        args = {"address": "0A0B0C", "CTLBT": 1, "SPCMD": 2, "CPDTL": 3, "CPDTH": 255}
        rec = decode_extended(encode_extended("GET", "CONTROL", **args))
        for key, value in args.items():
            assert rec[key] == value

    def test_unknown_operation(self):
        """Unknown operations raise."""
        with pytest.raises(ValueError, match="operation"):
            encode_extended("POST", "CONTROL", **CONTROL_ARGS)

    def test_unknown_type(self):
        """Unknown types raise."""
        with pytest.raises(ValueError, match="type"):
            encode_extended("PUT", "STATUS")

    def test_missing_control_byte(self):
        """A missing control byte is named."""
        args = dict(CONTROL_ARGS)
        del args["SPCMD"]
        with pytest.raises(ValueError, match="missing required key: SPCMD"):
            encode_extended("PUT", "CONTROL", **args)

    def test_missing_address(self):
        """address is required for CONTROL."""
        with pytest.raises(ValueError, match="address"):
            encode_extended("PUT", "CONTROL", CTLBT=0, SPCMD=0, CPDTL=0, CPDTH=0)

    def test_non_hex_address(self):
        """A non-hex address raises in either mode."""
        args = dict(CONTROL_ARGS, address="ZZZZZZ")
        with pytest.raises(ValueError, match="address"):
            encode_extended("PUT", "CONTROL", **args)
        with pytest.raises(ValueError, match="address"):
            encode_extended("PUT", "CONTROL", strict=True, **args)

    def test_long_address(self):
        """A seven-digit address is cut when lenient and rejected when strict."""
        args = dict(CONTROL_ARGS, address="1234567")
        assert encode_extended("PUT", "CONTROL", **args).startswith(":X00080004N563412")
        with pytest.raises(ValueError, match="address"):
            encode_extended("PUT", "CONTROL", strict=True, **args)

    def test_wrong_data_length(self):
        """DATA needs exactly eight bytes."""
        with pytest.raises(ValueError, match="8 bytes"):
            encode_extended("PUT", "DATA", data=[1, 2, 3])

    def test_missing_response(self):
        """RESPONSE needs its byte."""
        with pytest.raises(ValueError, match="response"):
            encode_extended("RESPONSE")

    def test_strict_range(self):
        """Strict mode rejects bytes over 255."""
        args = dict(CONTROL_ARGS, CTLBT=256)
        assert encode_extended("PUT", "CONTROL", **args) == ":X00080004N0000000000040000;"
        with pytest.raises(ValueError, match="CTLBT"):
            encode_extended("PUT", "CONTROL", strict=True, **args)
