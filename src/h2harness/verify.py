"""Shared drain-and-classify routines used by the scenario handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

from h2harness.connection import Http2Connection
from h2harness.constants import FrameType
from h2harness.exceptions import ConnectionClosedError, HarnessError, TimeoutError
from h2harness.frames import InboundFrame
from h2harness.result import (
    Outcome,
    Result,
    ResultConnectionClose,
    ResultError,
    ResultFrame,
    ResultTimeout,
    connection_error_expectations,
    stream_error_expectations,
)
from h2harness.types import ErrorCode, FrameTypeCode, StreamId
from h2harness.utils import get_logger

__all__: list[str] = [
    "classify_error",
    "drain_until",
    "expect_connection_error",
    "expect_frame",
    "expect_stream_error",
]

logger = get_logger(name=__name__)


def classify_error(*, error: BaseException, last_frame: ResultFrame | None = None) -> Result:
    """Map a failed read to the result it represents."""
    match error:
        case TimeoutError():
            return ResultTimeout(last_frame=last_frame)
        case ConnectionClosedError(reset=reset):
            return ResultConnectionClose(reset=reset)
        case _:
            return ResultError(error=error)


async def drain_until(*, conn: Http2Connection, is_decisive: Callable[[InboundFrame], bool]) -> Result:
    """Read frames until a decisive one, closure, failure or the deadline of the whole loop."""
    context = conn.context
    loop = asyncio.get_running_loop()
    deadline = loop.time() + context.timeout
    last_frame: ResultFrame | None = None
    intervening = 0

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            return ResultTimeout(last_frame=last_frame)

        try:
            frame = await conn.read_frame(timeout=remaining)
        except HarnessError as e:
            logger.debug("Drain loop ended by %r", e)
            return classify_error(error=e, last_frame=last_frame)

        observed = ResultFrame.from_frame(frame=frame)
        if is_decisive(frame):
            return observed

        intervening += 1
        last_frame = observed
        if intervening > context.max_intervening_frames:
            logger.warning(
                "Peer sent %d frames without a decisive one; giving up on %s",
                intervening,
                conn,
            )
            return observed
        logger.debug("Ignoring non-decisive %r", frame)


async def expect_connection_error(
    *, conn: Http2Connection, codes: Iterable[ErrorCode], allow_close: bool = True
) -> Outcome:
    """Wait for the peer to terminate the connection with one of the given error codes."""
    expected = connection_error_expectations(codes=codes, allow_close=allow_close)
    actual = await drain_until(conn=conn, is_decisive=lambda frame: frame.frame_type == FrameType.GOAWAY)
    return expected, actual


async def expect_frame(*, conn: Http2Connection, frame_type: FrameTypeCode, flags: int | None = None) -> Outcome:
    """Wait for a frame of the given type and flags; a GOAWAY first ends the wait as a mismatch."""

    def is_decisive(frame: InboundFrame) -> bool:
        if frame.frame_type == FrameType.GOAWAY:
            return True
        return frame.frame_type == frame_type and (flags is None or frame.flags == flags)

    expected: list[Result] = [ResultFrame(frame_type=frame_type, flags=flags)]
    actual = await drain_until(conn=conn, is_decisive=is_decisive)
    return expected, actual


async def expect_stream_error(
    *,
    conn: Http2Connection,
    codes: Iterable[ErrorCode],
    stream_id: StreamId | None = None,
    allow_close: bool = True,
) -> Outcome:
    """Wait for RST_STREAM (or a connection error) with one of the given error codes."""

    def is_decisive(frame: InboundFrame) -> bool:
        match frame.frame_type:
            case FrameType.GOAWAY:
                return True
            case FrameType.RST_STREAM:
                return stream_id is None or frame.stream_id == stream_id
            case _:
                return False

    expected = stream_error_expectations(codes=codes, allow_close=allow_close)
    actual = await drain_until(conn=conn, is_decisive=is_decisive)
    return expected, actual
