"""Unit tests for the h2harness.suites.window_update module."""

from typing import cast
from unittest.mock import MagicMock

import pytest
from pytest_mock import MockerFixture

from h2harness.config import ExecutionContext
from h2harness.connection import Http2Connection
from h2harness.constants import MAX_WINDOW_SIZE, ErrorCodes, FrameType
from h2harness.frames import FrameHeader, InboundFrame, build_frame
from h2harness.result import ResultConnectionClose, ResultFrame, matches_any
from h2harness.suites.window_update import (
    WINDOW_UPDATE_INVALID_LENGTH,
    WINDOW_UPDATE_MAX_INCREMENT,
    WINDOW_UPDATE_ZERO_INCREMENT,
    flow_control_window_group,
    window_update_group,
)


def goaway(code: int) -> InboundFrame:
    header = FrameHeader(length=8, type=FrameType.GOAWAY)
    return InboundFrame.decode(header=header, payload=b"\x00\x00\x00\x00" + code.to_bytes(4, "big"))


class TestScenarioOctets:

    def test_zero_increment(self) -> None:
        assert WINDOW_UPDATE_ZERO_INCREMENT == build_frame(frame_type=FrameType.WINDOW_UPDATE, payload=b"\x00" * 4)

    def test_invalid_length(self) -> None:
        assert FrameHeader.parse(data=WINDOW_UPDATE_INVALID_LENGTH[:9]).length == 3
        assert len(WINDOW_UPDATE_INVALID_LENGTH) == 12

    def test_max_increment(self) -> None:
        payload = MAX_WINDOW_SIZE.to_bytes(4, "big")

        assert WINDOW_UPDATE_MAX_INCREMENT == build_frame(frame_type=FrameType.WINDOW_UPDATE, payload=payload)


class TestWindowUpdateGroups:

    def test_structure(self) -> None:
        group = window_update_group()

        assert (group.section, group.title) == ("6.9", "WINDOW_UPDATE")
        assert len(group.test_cases) == 3
        assert [child.section for child in group.test_groups] == ["6.9.1"]
        assert group.test_groups[0].title == "The Flow Control Window"
        assert group.count_cases() == 4

    @pytest.fixture
    def mock_conn(self, mocker: MockerFixture) -> MagicMock:
        conn = mocker.Mock(spec=Http2Connection)
        conn.context = ExecutionContext(timeout=0.5)
        conn.read_frame = mocker.AsyncMock()
        conn.write_raw = mocker.AsyncMock()
        conn.write_headers = mocker.AsyncMock()
        conn.allocate_stream_id.return_value = 1
        conn.request_headers.return_value = [(":method", "GET")]
        return cast(MagicMock, conn)

    @pytest.mark.asyncio
    async def test_zero_increment_on_stream(self, mock_conn: MagicMock) -> None:
        rst_stream = InboundFrame.decode(
            header=FrameHeader(length=4, type=FrameType.RST_STREAM, stream_id=1),
            payload=ErrorCodes.PROTOCOL_ERROR.to_bytes(4, "big"),
        )
        mock_conn.read_frame.side_effect = [rst_stream]

        expected, actual = await window_update_group().test_cases[1].handler(mock_conn.context, mock_conn)

        mock_conn.write_headers.assert_awaited_once_with(
            stream_id=1, headers=[(":method", "GET")], end_stream=False
        )
        mock_conn.write_raw.assert_awaited_once_with(data=b"\x00\x00\x04\x08\x00\x00\x00\x00\x01\x00\x00\x00\x00")
        assert actual == ResultFrame(frame_type=FrameType.RST_STREAM, flags=0, error_code=ErrorCodes.PROTOCOL_ERROR)
        assert matches_any(expected=expected, actual=actual)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "index, octets, code",
        [
            (0, WINDOW_UPDATE_ZERO_INCREMENT, ErrorCodes.PROTOCOL_ERROR),
            (2, WINDOW_UPDATE_INVALID_LENGTH, ErrorCodes.FRAME_SIZE_ERROR),
        ],
    )
    async def test_connection_errors(self, mock_conn: MagicMock, index: int, octets: bytes, code: int) -> None:
        mock_conn.read_frame.side_effect = [goaway(code)]

        expected, actual = await window_update_group().test_cases[index].handler(mock_conn.context, mock_conn)

        mock_conn.write_raw.assert_awaited_once_with(data=octets)
        assert matches_any(expected=expected, actual=actual)

    @pytest.mark.asyncio
    async def test_window_overflow_requires_goaway(self, mock_conn: MagicMock) -> None:
        case = flow_control_window_group().test_cases[0]
        mock_conn.read_frame.side_effect = [goaway(ErrorCodes.FLOW_CONTROL_ERROR)]

        expected, actual = await case.handler(mock_conn.context, mock_conn)

        mock_conn.write_raw.assert_awaited_once_with(data=WINDOW_UPDATE_MAX_INCREMENT * 2)
        assert matches_any(expected=expected, actual=actual)
        assert not matches_any(expected=expected, actual=ResultConnectionClose())
