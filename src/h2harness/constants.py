"""Protocol constants and harness defaults."""

from __future__ import annotations

import ssl
from enum import IntEnum, IntFlag
from typing import Final

from h2harness.types import ConnectionMode

__all__: list[str] = [
    "ALPN_PROTOCOLS",
    "CONNECTION_PREFACE",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_CONNECTION_MODE",
    "DEFAULT_HOST",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_INTERVENING_FRAMES",
    "DEFAULT_PATH",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_TLS_PORT",
    "DEFAULT_VERIFY_MODE",
    "DEFAULT_WINDOW_SIZE",
    "ErrorCodes",
    "FRAME_HEADER_SIZE",
    "FrameFlags",
    "FrameType",
    "GOAWAY_PAYLOAD_SIZE",
    "MAX_FRAME_LENGTH",
    "MAX_MAX_FRAME_SIZE",
    "MAX_STREAM_ID",
    "MAX_WINDOW_SIZE",
    "MIN_MAX_FRAME_SIZE",
    "PING_PAYLOAD_SIZE",
    "RST_STREAM_PAYLOAD_SIZE",
    "SETTINGS_PARAMETER_SIZE",
    "SettingsParameter",
    "UPGRADE_TOKEN",
    "USER_AGENT",
    "WINDOW_UPDATE_PAYLOAD_SIZE",
]


class ErrorCodes(IntEnum):
    """HTTP/2 error codes carried by RST_STREAM and GOAWAY frames."""

    NO_ERROR = 0x0
    PROTOCOL_ERROR = 0x1
    INTERNAL_ERROR = 0x2
    FLOW_CONTROL_ERROR = 0x3
    SETTINGS_TIMEOUT = 0x4
    STREAM_CLOSED = 0x5
    FRAME_SIZE_ERROR = 0x6
    REFUSED_STREAM = 0x7
    CANCEL = 0x8
    COMPRESSION_ERROR = 0x9
    CONNECT_ERROR = 0xA
    ENHANCE_YOUR_CALM = 0xB
    INADEQUATE_SECURITY = 0xC
    HTTP_1_1_REQUIRED = 0xD


class FrameType(IntEnum):
    """HTTP/2 frame type codes."""

    DATA = 0x0
    HEADERS = 0x1
    PRIORITY = 0x2
    RST_STREAM = 0x3
    SETTINGS = 0x4
    PUSH_PROMISE = 0x5
    PING = 0x6
    GOAWAY = 0x7
    WINDOW_UPDATE = 0x8
    CONTINUATION = 0x9


class FrameFlags(IntFlag):
    """HTTP/2 frame flag bits (meaning depends on the frame type)."""

    NONE = 0x0
    ACK = 0x1
    END_STREAM = 0x1
    END_HEADERS = 0x4
    PADDED = 0x8
    PRIORITY = 0x20


class SettingsParameter(IntEnum):
    """Identifiers of the defined SETTINGS parameters."""

    HEADER_TABLE_SIZE = 0x1
    ENABLE_PUSH = 0x2
    MAX_CONCURRENT_STREAMS = 0x3
    INITIAL_WINDOW_SIZE = 0x4
    MAX_FRAME_SIZE = 0x5
    MAX_HEADER_LIST_SIZE = 0x6


ALPN_PROTOCOLS: Final[tuple[str, ...]] = ("h2",)
CONNECTION_PREFACE: Final[bytes] = b"PRI * HTTP/2.0\r\n\r\nSM\r\n\r\n"
UPGRADE_TOKEN: Final[str] = "h2c"

FRAME_HEADER_SIZE: Final[int] = 9
GOAWAY_PAYLOAD_SIZE: Final[int] = 8
PING_PAYLOAD_SIZE: Final[int] = 8
RST_STREAM_PAYLOAD_SIZE: Final[int] = 4
SETTINGS_PARAMETER_SIZE: Final[int] = 6
WINDOW_UPDATE_PAYLOAD_SIZE: Final[int] = 4

DEFAULT_WINDOW_SIZE: Final[int] = 65535
MAX_FRAME_LENGTH: Final[int] = 2**24 - 1
MAX_MAX_FRAME_SIZE: Final[int] = 2**24 - 1
MAX_STREAM_ID: Final[int] = 2**31 - 1
MAX_WINDOW_SIZE: Final[int] = 2**31 - 1
MIN_MAX_FRAME_SIZE: Final[int] = 2**14

DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
DEFAULT_CONNECTION_MODE: Final[ConnectionMode] = ConnectionMode.PRIOR_KNOWLEDGE
DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_LOG_LEVEL: Final[str] = "WARNING"
DEFAULT_MAX_INTERVENING_FRAMES: Final[int] = 100
DEFAULT_PATH: Final[str] = "/"
DEFAULT_PORT: Final[int] = 80
DEFAULT_TIMEOUT: Final[float] = 2.0
DEFAULT_TLS_PORT: Final[int] = 443
DEFAULT_VERIFY_MODE: Final[ssl.VerifyMode] = ssl.CERT_NONE
USER_AGENT: Final[str] = "h2harness"
