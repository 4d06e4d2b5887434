"""Bit-exact frame construction and tolerant frame decoding."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Self

from aioquic.buffer import Buffer as WireBuffer
from aioquic.buffer import BufferReadError
from hyperframe.exceptions import HyperframeError
from hyperframe.frame import Frame

from h2harness.constants import (
    FRAME_HEADER_SIZE,
    GOAWAY_PAYLOAD_SIZE,
    MAX_FRAME_LENGTH,
    MAX_STREAM_ID,
    RST_STREAM_PAYLOAD_SIZE,
    SETTINGS_PARAMETER_SIZE,
    FrameFlags,
    FrameType,
)
from h2harness.exceptions import FrameError
from h2harness.types import Buffer, ErrorCode, FrameTypeCode, StreamId
from h2harness.utils import ensure_bytes, get_logger

__all__: list[str] = [
    "FrameHeader",
    "InboundFrame",
    "build_frame",
    "build_settings_payload",
    "frame_type_name",
]

logger = get_logger(name=__name__)


@dataclass(kw_only=True, frozen=True)
class FrameHeader:
    """The fixed 9-octet header that precedes every frame."""

    length: int
    type: FrameTypeCode
    flags: int = 0
    stream_id: StreamId = 0
    reserved: bool = False

    @classmethod
    def parse(cls, *, data: Buffer) -> Self:
        """Decode a frame header from exactly nine octets."""
        if len(data) != FRAME_HEADER_SIZE:
            raise FrameError(f"Frame header must be {FRAME_HEADER_SIZE} octets, got {len(data)}")

        buf = WireBuffer(data=bytes(data))
        try:
            length = (buf.pull_uint8() << 16) | buf.pull_uint16()
            frame_type = buf.pull_uint8()
            flags = buf.pull_uint8()
            raw_stream_id = buf.pull_uint32()
        except BufferReadError as e:
            raise FrameError("Truncated frame header") from e

        return cls(
            length=length,
            type=frame_type,
            flags=flags,
            stream_id=raw_stream_id & MAX_STREAM_ID,
            reserved=bool(raw_stream_id >> 31),
        )

    def serialize(self) -> bytes:
        """Encode the header into its 9-octet wire form."""
        buf = WireBuffer(capacity=FRAME_HEADER_SIZE)
        buf.push_uint8(self.length >> 16)
        buf.push_uint16(self.length & 0xFFFF)
        buf.push_uint8(self.type)
        buf.push_uint8(self.flags)
        buf.push_uint32((int(self.reserved) << 31) | self.stream_id)
        return buf.data

    def __post_init__(self) -> None:
        """Reject values that do not fit their wire fields."""
        if not (0 <= self.length <= MAX_FRAME_LENGTH):
            raise FrameError(f"Frame length {self.length} does not fit in 24 bits", frame_type=self.type)
        if not (0 <= self.type <= 0xFF):
            raise FrameError(f"Frame type {self.type} does not fit in 8 bits")
        if not (0 <= self.flags <= 0xFF):
            raise FrameError(f"Frame flags {self.flags} do not fit in 8 bits", frame_type=self.type)
        if not (0 <= self.stream_id <= MAX_STREAM_ID):
            raise FrameError(f"Stream ID {self.stream_id} does not fit in 31 bits", frame_type=self.type)


@dataclass(kw_only=True, frozen=True)
class InboundFrame:
    """A frame read from the peer, kept even when its body cannot be decoded."""

    header: FrameHeader
    payload: bytes
    frame: Frame | None = None
    decode_error: str | None = None

    @classmethod
    def decode(cls, *, header: FrameHeader, payload: bytes) -> Self:
        """Decode the body with the frame codec, recording failures instead of raising."""
        try:
            frame, _ = Frame.parse_frame_header(memoryview(header.serialize()))
            frame.parse_body(memoryview(payload))
        except HyperframeError as e:
            logger.warning(
                "Could not decode %s frame body on stream %d: %s",
                frame_type_name(frame_type=header.type),
                header.stream_id,
                e,
            )
            return cls(header=header, payload=payload, decode_error=str(e))

        return cls(header=header, payload=payload, frame=frame)

    @property
    def error_code(self) -> ErrorCode | None:
        """Return the error code carried by GOAWAY and RST_STREAM frames."""
        match self.header.type:
            case FrameType.GOAWAY:
                offset, size = 4, GOAWAY_PAYLOAD_SIZE
            case FrameType.RST_STREAM:
                offset, size = 0, RST_STREAM_PAYLOAD_SIZE
            case _:
                return None

        if self.frame is not None:
            return int(getattr(self.frame, "error_code"))
        if len(self.payload) < size:
            return None
        return int.from_bytes(self.payload[offset : offset + 4], "big")

    @property
    def flags(self) -> int:
        """Return the raw flag bits of the frame."""
        return self.header.flags

    @property
    def frame_type(self) -> FrameTypeCode:
        """Return the frame type code."""
        return self.header.type

    @property
    def is_ack(self) -> bool:
        """Return True for SETTINGS or PING frames with the ACK flag."""
        return self.header.type in (FrameType.SETTINGS, FrameType.PING) and self.has_flag(flag=FrameFlags.ACK)

    @property
    def stream_id(self) -> StreamId:
        """Return the stream identifier of the frame."""
        return self.header.stream_id

    def has_flag(self, *, flag: int) -> bool:
        """Check whether every bit of the given flag is set."""
        return (self.header.flags & flag) == flag

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        return (
            f"<InboundFrame type={frame_type_name(frame_type=self.frame_type)} flags={self.flags:#04x} "
            f"stream_id={self.stream_id} length={self.header.length}>"
        )


def build_frame(
    *,
    frame_type: FrameTypeCode,
    flags: int = 0,
    stream_id: StreamId = 0,
    payload: Buffer | str = b"",
    length: int | None = None,
    reserved: bool = False,
) -> bytes:
    """Build a frame octet by octet, optionally declaring a length that differs from the payload."""
    body = ensure_bytes(data=payload)
    header = FrameHeader(
        length=len(body) if length is None else length,
        type=frame_type,
        flags=flags,
        stream_id=stream_id,
        reserved=reserved,
    )
    return header.serialize() + body


def build_settings_payload(*, settings: Mapping[int, int] | Iterable[tuple[int, int]]) -> bytes:
    """Build a SETTINGS body of 6-octet identifier/value pairs, in the given order."""
    pairs = list(settings.items()) if isinstance(settings, Mapping) else list(settings)
    if not pairs:
        return b""

    buf = WireBuffer(capacity=len(pairs) * SETTINGS_PARAMETER_SIZE)
    for identifier, value in pairs:
        if not (0 <= identifier <= 0xFFFF):
            raise FrameError(
                f"Settings identifier {identifier:#x} does not fit in 16 bits", frame_type=FrameType.SETTINGS
            )
        if not (0 <= value <= 0xFFFFFFFF):
            raise FrameError(f"Settings value {value:#x} does not fit in 32 bits", frame_type=FrameType.SETTINGS)
        buf.push_uint16(identifier)
        buf.push_uint32(value)
    return buf.data


def frame_type_name(*, frame_type: FrameTypeCode) -> str:
    """Return the registered name of a frame type or its hex code."""
    try:
        return FrameType(frame_type).name
    except ValueError:
        return f"UNKNOWN({frame_type:#04x})"
