"""Scenarios for section 6.7 (PING)."""

from __future__ import annotations

from h2harness.case import TestCase
from h2harness.config import ExecutionContext
from h2harness.connection import Http2Connection
from h2harness.constants import ErrorCodes, FrameFlags, FrameType
from h2harness.group import TestGroup
from h2harness.result import Outcome
from h2harness.suites._common import send_raw_expecting_connection_error
from h2harness.verify import expect_frame

__all__: list[str] = ["PING_INVALID_LENGTH", "PING_ON_STREAM", "ping_group"]

# length=8, type=PING, flags=0, stream=1 | opaque data
PING_ON_STREAM = b"\x00\x00\x08\x06\x00\x00\x00\x00\x01" + b"\x00" * 8
# length=6, type=PING, flags=0, stream=0 | short opaque data
PING_INVALID_LENGTH = b"\x00\x00\x06\x06\x00\x00\x00\x00\x00" + b"\x00" * 6

_OPAQUE_DATA = b"h2harnes"


async def _send_ping(context: ExecutionContext, conn: Http2Connection) -> Outcome:
    await conn.write_ping(data=_OPAQUE_DATA)
    return await expect_frame(conn=conn, frame_type=FrameType.PING, flags=FrameFlags.ACK)


def ping_group() -> TestGroup:
    """Build the PING group."""
    group = TestGroup(section="6.7", title="PING")

    group.add_test_case(
        case=TestCase(
            description="Sends a PING frame",
            requirement="The endpoint MUST send a PING frame with ACK.",
            handler=_send_ping,
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a PING frame with the stream identifier that is not 0x0",
            requirement="The endpoint MUST respond with a connection error of type PROTOCOL_ERROR.",
            handler=send_raw_expecting_connection_error(data=PING_ON_STREAM, codes=[ErrorCodes.PROTOCOL_ERROR]),
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a PING frame with a length field value other than 8",
            requirement="The endpoint MUST respond with a connection error of type FRAME_SIZE_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=PING_INVALID_LENGTH, codes=[ErrorCodes.FRAME_SIZE_ERROR]
            ),
        )
    )

    return group
