"""Scenarios for section 6.9 (WINDOW_UPDATE) and 6.9.1 (The Flow Control Window)."""

from __future__ import annotations

from h2harness.case import TestCase
from h2harness.config import ExecutionContext
from h2harness.connection import Http2Connection
from h2harness.constants import MAX_WINDOW_SIZE, ErrorCodes, FrameType
from h2harness.frames import build_frame
from h2harness.group import TestGroup
from h2harness.result import Outcome
from h2harness.suites._common import send_raw_expecting_connection_error
from h2harness.verify import expect_stream_error

__all__: list[str] = [
    "WINDOW_UPDATE_INVALID_LENGTH",
    "WINDOW_UPDATE_MAX_INCREMENT",
    "WINDOW_UPDATE_ZERO_INCREMENT",
    "flow_control_window_group",
    "window_update_group",
]

# length=4, type=WINDOW_UPDATE, flags=0, stream=0 | increment 0
WINDOW_UPDATE_ZERO_INCREMENT = b"\x00\x00\x04\x08\x00\x00\x00\x00\x00" + b"\x00\x00\x00\x00"
# length=3, type=WINDOW_UPDATE, flags=0, stream=0 | truncated increment
WINDOW_UPDATE_INVALID_LENGTH = b"\x00\x00\x03\x08\x00\x00\x00\x00\x00" + b"\x00\x00\x01"
# length=4, type=WINDOW_UPDATE, flags=0, stream=0 | increment 2^31-1
WINDOW_UPDATE_MAX_INCREMENT = b"\x00\x00\x04\x08\x00\x00\x00\x00\x00" + b"\x7f\xff\xff\xff"


async def _zero_increment_on_stream(context: ExecutionContext, conn: Http2Connection) -> Outcome:
    stream_id = conn.allocate_stream_id()
    await conn.write_headers(stream_id=stream_id, headers=conn.request_headers(), end_stream=False)
    await conn.write_raw(
        data=build_frame(frame_type=FrameType.WINDOW_UPDATE, stream_id=stream_id, payload=b"\x00\x00\x00\x00")
    )
    return await expect_stream_error(conn=conn, codes=[ErrorCodes.PROTOCOL_ERROR], stream_id=stream_id)


def window_update_group() -> TestGroup:
    """Build the WINDOW_UPDATE group."""
    group = TestGroup(section="6.9", title="WINDOW_UPDATE")

    group.add_test_case(
        case=TestCase(
            description="Sends a WINDOW_UPDATE frame with a flow control window increment of 0",
            requirement="The endpoint MUST respond with a connection error of type PROTOCOL_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=WINDOW_UPDATE_ZERO_INCREMENT, codes=[ErrorCodes.PROTOCOL_ERROR]
            ),
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a WINDOW_UPDATE frame with a flow control window increment of 0 on a stream",
            requirement="The endpoint MUST respond with a stream error of type PROTOCOL_ERROR.",
            handler=_zero_increment_on_stream,
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a WINDOW_UPDATE frame with a length other than 4 octets",
            requirement="The endpoint MUST respond with a connection error of type FRAME_SIZE_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=WINDOW_UPDATE_INVALID_LENGTH, codes=[ErrorCodes.FRAME_SIZE_ERROR]
            ),
        )
    )

    group.add_test_group(group=flow_control_window_group())
    return group


def flow_control_window_group() -> TestGroup:
    """Build The Flow Control Window group."""
    group = TestGroup(section="6.9.1", title="The Flow Control Window")

    group.add_test_case(
        case=TestCase(
            description=(
                f"Sends multiple WINDOW_UPDATE frames increasing the flow control window to above {MAX_WINDOW_SIZE}"
            ),
            requirement="The endpoint MUST send a GOAWAY frame with a FLOW_CONTROL_ERROR code.",
            handler=send_raw_expecting_connection_error(
                data=WINDOW_UPDATE_MAX_INCREMENT * 2, codes=[ErrorCodes.FLOW_CONTROL_ERROR], allow_close=False
            ),
        )
    )

    return group
