"""Core data types and enumerations for the library."""

from __future__ import annotations

import ssl
from enum import StrEnum
from typing import TypeAlias

__all__: list[str] = [
    "Address",
    "Buffer",
    "ConnectionMode",
    "ErrorCode",
    "FrameTypeCode",
    "Headers",
    "ResultKind",
    "SSLContext",
    "SectionId",
    "Settings",
    "StreamId",
    "Timeout",
    "Verdict",
]


Address: TypeAlias = tuple[str, int]
Buffer: TypeAlias = bytes | bytearray | memoryview
ErrorCode: TypeAlias = int
FrameTypeCode: TypeAlias = int
Headers: TypeAlias = list[tuple[str, str]]
SSLContext: TypeAlias = ssl.SSLContext
SectionId: TypeAlias = str
Settings: TypeAlias = dict[int, int]
StreamId: TypeAlias = int
Timeout: TypeAlias = float | None


class ConnectionMode(StrEnum):
    """Enumeration of the ways a connection to the target is negotiated."""

    TLS = "tls"
    PRIOR_KNOWLEDGE = "prior_knowledge"
    UPGRADE = "upgrade"


class ResultKind(StrEnum):
    """Enumeration of observable outcome variants."""

    FRAME = "frame"
    CONNECTION_CLOSE = "connection_close"
    TIMEOUT = "timeout"
    ERROR = "error"


class Verdict(StrEnum):
    """Enumeration of test case verdicts."""

    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
