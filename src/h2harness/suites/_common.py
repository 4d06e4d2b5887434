"""Handler factories shared by the scenario modules."""

from __future__ import annotations

from collections.abc import Iterable

from h2harness.case import Handler
from h2harness.config import ExecutionContext
from h2harness.connection import Http2Connection
from h2harness.result import Outcome
from h2harness.types import ErrorCode
from h2harness.verify import expect_connection_error

__all__: list[str] = []


def send_raw_expecting_connection_error(
    *, data: bytes, codes: Iterable[ErrorCode], allow_close: bool = True
) -> Handler:
    """Build a handler that writes fixed octets and waits for a connection error."""
    acceptable = tuple(codes)

    async def handler(context: ExecutionContext, conn: Http2Connection) -> Outcome:
        await conn.write_raw(data=data)
        return await expect_connection_error(conn=conn, codes=acceptable, allow_close=allow_close)

    return handler
