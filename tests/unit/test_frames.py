"""Unit tests for the h2harness.frames module."""

import pytest
from hyperframe.frame import GoAwayFrame, PingFrame, SettingsFrame

from h2harness.constants import ErrorCodes, FrameFlags, FrameType, SettingsParameter
from h2harness.exceptions import FrameError
from h2harness.frames import FrameHeader, InboundFrame, build_frame, build_settings_payload, frame_type_name


class TestFrameHeader:

    def test_serialize_layout(self) -> None:
        header = FrameHeader(length=0x010203, type=FrameType.SETTINGS, flags=FrameFlags.ACK, stream_id=3)

        assert header.serialize() == b"\x01\x02\x03\x04\x01\x00\x00\x00\x03"

    def test_serialize_reserved_bit(self) -> None:
        header = FrameHeader(length=0, type=FrameType.PING, stream_id=1, reserved=True)

        assert header.serialize() == b"\x00\x00\x00\x06\x00\x80\x00\x00\x01"

    def test_parse(self) -> None:
        header = FrameHeader.parse(data=b"\x00\x00\x08\x07\x00\x80\x00\x00\x05")

        assert header.length == 8
        assert header.type == FrameType.GOAWAY
        assert header.flags == 0
        assert header.stream_id == 5
        assert header.reserved is True

    def test_parse_serialize_agree(self) -> None:
        raw = b"\xff\xff\xff\x09\x04\x7f\xff\xff\xff"

        assert FrameHeader.parse(data=raw).serialize() == raw

    @pytest.mark.parametrize("data", [b"", b"\x00" * 8, b"\x00" * 10])
    def test_parse_wrong_size(self, data: bytes) -> None:
        with pytest.raises(FrameError, match="Frame header must be 9 octets"):
            FrameHeader.parse(data=data)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"length": 2**24, "type": 0},
            {"length": -1, "type": 0},
            {"length": 0, "type": 256},
            {"length": 0, "type": 0, "flags": 256},
            {"length": 0, "type": 0, "stream_id": 2**31},
        ],
    )
    def test_out_of_range_fields(self, kwargs: dict[str, int]) -> None:
        with pytest.raises(FrameError):
            FrameHeader(**kwargs)


class TestBuildFrame:

    def test_builds_header_and_payload(self) -> None:
        data = build_frame(frame_type=FrameType.PING, stream_id=1, payload=b"\x00" * 8)

        assert data == b"\x00\x00\x08\x06\x00\x00\x00\x00\x01" + b"\x00" * 8

    def test_declared_length_can_differ_from_payload(self) -> None:
        data = build_frame(frame_type=FrameType.SETTINGS, payload=b"\x00\x00\x01", length=2)

        assert data == b"\x00\x00\x02\x04\x00\x00\x00\x00\x00\x00\x00\x01"

    def test_empty_frame(self) -> None:
        data = build_frame(frame_type=FrameType.SETTINGS, flags=FrameFlags.ACK)

        assert data == b"\x00\x00\x00\x04\x01\x00\x00\x00\x00"

    def test_settings_payload(self) -> None:
        payload = build_settings_payload(
            settings=[(SettingsParameter.ENABLE_PUSH, 2), (SettingsParameter.MAX_FRAME_SIZE, 0x3FFF)]
        )

        assert payload == b"\x00\x02\x00\x00\x00\x02\x00\x05\x00\x00\x3f\xff"

    def test_settings_payload_from_mapping(self) -> None:
        payload = build_settings_payload(settings={SettingsParameter.MAX_CONCURRENT_STREAMS: 100})

        assert payload == b"\x00\x03\x00\x00\x00\x64"

    def test_settings_payload_empty(self) -> None:
        assert build_settings_payload(settings={}) == b""

    @pytest.mark.parametrize("pair", [(0x10000, 0), (1, 2**32), (-1, 0)])
    def test_settings_payload_out_of_range(self, pair: tuple[int, int]) -> None:
        with pytest.raises(FrameError):
            build_settings_payload(settings=[pair])


class TestInboundFrame:

    def _decode(self, raw: bytes) -> InboundFrame:
        header = FrameHeader.parse(data=raw[:9])
        return InboundFrame.decode(header=header, payload=raw[9:])

    def test_decode_settings_ack(self) -> None:
        frame = self._decode(b"\x00\x00\x00\x04\x01\x00\x00\x00\x00")

        assert isinstance(frame.frame, SettingsFrame)
        assert frame.decode_error is None
        assert frame.frame_type == FrameType.SETTINGS
        assert frame.is_ack is True
        assert frame.has_flag(flag=FrameFlags.ACK)
        assert frame.error_code is None

    def test_decode_goaway_error_code(self) -> None:
        raw = GoAwayFrame(0, last_stream_id=1, error_code=ErrorCodes.FRAME_SIZE_ERROR).serialize()

        frame = self._decode(raw)

        assert isinstance(frame.frame, GoAwayFrame)
        assert frame.error_code == ErrorCodes.FRAME_SIZE_ERROR

    def test_decode_rst_stream_error_code(self) -> None:
        frame = self._decode(b"\x00\x00\x04\x03\x00\x00\x00\x00\x01\x00\x00\x00\x01")

        assert frame.frame_type == FrameType.RST_STREAM
        assert frame.stream_id == 1
        assert frame.error_code == ErrorCodes.PROTOCOL_ERROR

    def test_decode_ping_ack(self) -> None:
        raw = PingFrame(0, opaque_data=b"12345678", flags=["ACK"]).serialize()

        frame = self._decode(raw)

        assert frame.is_ack is True
        assert frame.payload == b"12345678"

    def test_undecodable_body_is_kept(self) -> None:
        frame = self._decode(b"\x00\x00\x01\x04\x01\x00\x00\x00\x00\x00")

        assert frame.frame is None
        assert frame.decode_error is not None
        assert frame.frame_type == FrameType.SETTINGS
        assert frame.payload == b"\x00"

    def test_undecodable_goaway_falls_back_to_payload(self) -> None:
        frame = self._decode(b"\x00\x00\x08\x07\x00\x00\x00\x00\x01" + b"\x00\x00\x00\x00\x00\x00\x00\x06")

        assert frame.frame is None
        assert frame.error_code == ErrorCodes.FRAME_SIZE_ERROR

    def test_truncated_goaway_has_no_error_code(self) -> None:
        frame = self._decode(b"\x00\x00\x02\x07\x00\x00\x00\x00\x01\x00\x00")

        assert frame.error_code is None

    def test_repr(self) -> None:
        frame = self._decode(b"\x00\x00\x00\x04\x01\x00\x00\x00\x00")

        assert repr(frame) == "<InboundFrame type=SETTINGS flags=0x01 stream_id=0 length=0>"


class TestFrameTypeName:

    def test_known(self) -> None:
        assert frame_type_name(frame_type=0x7) == "GOAWAY"

    def test_unknown(self) -> None:
        assert frame_type_name(frame_type=0xFA) == "UNKNOWN(0xfa)"
