"""Scenarios for section 6.5 (SETTINGS) and 6.5.2 (Defined SETTINGS Parameters)."""

from __future__ import annotations

from h2harness.case import TestCase
from h2harness.config import ExecutionContext
from h2harness.connection import Http2Connection
from h2harness.constants import ErrorCodes, FrameFlags, FrameType, SettingsParameter
from h2harness.group import TestGroup
from h2harness.result import Outcome
from h2harness.suites._common import send_raw_expecting_connection_error
from h2harness.verify import expect_frame

__all__: list[str] = [
    "SETTINGS_ACK_WITH_PAYLOAD",
    "SETTINGS_ENABLE_PUSH_INVALID",
    "SETTINGS_INITIAL_WINDOW_SIZE_TOO_LARGE",
    "SETTINGS_INVALID_LENGTH",
    "SETTINGS_MAX_FRAME_SIZE_TOO_LARGE",
    "SETTINGS_MAX_FRAME_SIZE_TOO_SMALL",
    "SETTINGS_ON_STREAM",
    "defined_settings_parameters_group",
    "settings_group",
]

# length=1, type=SETTINGS, flags=ACK, stream=0 | one payload octet
SETTINGS_ACK_WITH_PAYLOAD = b"\x00\x00\x01\x04\x01\x00\x00\x00\x00" + b"\x00"
# length=6, type=SETTINGS, flags=0, stream=3 | MAX_CONCURRENT_STREAMS=100
SETTINGS_ON_STREAM = b"\x00\x00\x06\x04\x00\x00\x00\x00\x03" + b"\x00\x03\x00\x00\x00\x64"
# length=3, type=SETTINGS, flags=0, stream=0 | half a parameter
SETTINGS_INVALID_LENGTH = b"\x00\x00\x03\x04\x00\x00\x00\x00\x00" + b"\x00\x00\x01"

_SETTINGS_HEADER = b"\x00\x00\x06\x04\x00\x00\x00\x00\x00"
SETTINGS_ENABLE_PUSH_INVALID = _SETTINGS_HEADER + b"\x00\x02\x00\x00\x00\x02"
SETTINGS_INITIAL_WINDOW_SIZE_TOO_LARGE = _SETTINGS_HEADER + b"\x00\x04\x80\x00\x00\x00"
SETTINGS_MAX_FRAME_SIZE_TOO_SMALL = _SETTINGS_HEADER + b"\x00\x05\x00\x00\x3f\xff"
SETTINGS_MAX_FRAME_SIZE_TOO_LARGE = _SETTINGS_HEADER + b"\x00\x05\x01\x00\x00\x00"


async def _send_settings(context: ExecutionContext, conn: Http2Connection) -> Outcome:
    await conn.write_settings(settings={SettingsParameter.MAX_CONCURRENT_STREAMS: 100})
    return await expect_frame(conn=conn, frame_type=FrameType.SETTINGS, flags=FrameFlags.ACK)


def settings_group() -> TestGroup:
    """Build the SETTINGS group."""
    group = TestGroup(section="6.5", title="SETTINGS")

    group.add_test_case(
        case=TestCase(
            description="Sends a SETTINGS frame",
            requirement="The endpoint MUST send a SETTINGS frame with ACK.",
            handler=_send_settings,
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a SETTINGS frame that is not a zero-length with ACK flag",
            requirement="The endpoint MUST respond with a connection error of type FRAME_SIZE_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_ACK_WITH_PAYLOAD, codes=[ErrorCodes.FRAME_SIZE_ERROR]
            ),
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a SETTINGS frame with the stream identifier that is not 0x0",
            requirement="The endpoint MUST respond with a connection error of type PROTOCOL_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_ON_STREAM, codes=[ErrorCodes.PROTOCOL_ERROR]
            ),
        )
    )
    group.add_test_case(
        case=TestCase(
            description="Sends a SETTINGS frame with a length other than a multiple of 6 octets",
            requirement="The endpoint MUST respond with a connection error of type FRAME_SIZE_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_INVALID_LENGTH, codes=[ErrorCodes.FRAME_SIZE_ERROR]
            ),
        )
    )

    group.add_test_group(group=defined_settings_parameters_group())
    return group


def defined_settings_parameters_group() -> TestGroup:
    """Build the Defined SETTINGS Parameters group."""
    group = TestGroup(section="6.5.2", title="Defined SETTINGS Parameters")

    group.add_test_case(
        case=TestCase(
            description="SETTINGS_ENABLE_PUSH (0x2): Sends the value other than 0 or 1",
            requirement="The endpoint MUST respond with a connection error of type PROTOCOL_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_ENABLE_PUSH_INVALID, codes=[ErrorCodes.PROTOCOL_ERROR]
            ),
        )
    )
    group.add_test_case(
        case=TestCase(
            description=(
                "SETTINGS_INITIAL_WINDOW_SIZE (0x4): Sends the value above the maximum flow control window size"
            ),
            requirement="The endpoint MUST respond with a connection error of type FLOW_CONTROL_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_INITIAL_WINDOW_SIZE_TOO_LARGE, codes=[ErrorCodes.FLOW_CONTROL_ERROR]
            ),
        )
    )
    group.add_test_case(
        case=TestCase(
            description="SETTINGS_MAX_FRAME_SIZE (0x5): Sends the value below the initial value",
            requirement="The endpoint MUST respond with a connection error of type PROTOCOL_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_MAX_FRAME_SIZE_TOO_SMALL, codes=[ErrorCodes.PROTOCOL_ERROR]
            ),
        )
    )
    group.add_test_case(
        case=TestCase(
            description="SETTINGS_MAX_FRAME_SIZE (0x5): Sends the value above the maximum allowed frame size",
            requirement="The endpoint MUST respond with a connection error of type PROTOCOL_ERROR.",
            handler=send_raw_expecting_connection_error(
                data=SETTINGS_MAX_FRAME_SIZE_TOO_LARGE, codes=[ErrorCodes.PROTOCOL_ERROR]
            ),
        )
    )

    return group
