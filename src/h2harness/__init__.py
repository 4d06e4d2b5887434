"""A conformance test harness for HTTP/2 implementations."""

from .case import CaseReport, TestCase
from .config import ExecutionContext
from .connection import Http2Connection
from .constants import ErrorCodes, FrameFlags, FrameType, SettingsParameter
from .exceptions import (
    ConfigurationError,
    ConnectionClosedError,
    ConnectionError,
    FrameError,
    HandshakeError,
    HarnessError,
    RegistrationError,
    TimeoutError,
)
from .group import GroupReport, RunSummary, TestGroup
from .result import Result, ResultConnectionClose, ResultError, ResultFrame, ResultTimeout
from .runner import format_report, run
from .suites import build_test_tree
from .types import ConnectionMode, ResultKind, Verdict
from .version import __version__

__all__: list[str] = [
    "CaseReport",
    "ConfigurationError",
    "ConnectionClosedError",
    "ConnectionError",
    "ConnectionMode",
    "ErrorCodes",
    "ExecutionContext",
    "FrameError",
    "FrameFlags",
    "FrameType",
    "GroupReport",
    "HandshakeError",
    "HarnessError",
    "Http2Connection",
    "RegistrationError",
    "Result",
    "ResultConnectionClose",
    "ResultError",
    "ResultFrame",
    "ResultKind",
    "ResultTimeout",
    "RunSummary",
    "SettingsParameter",
    "TestCase",
    "TestGroup",
    "TimeoutError",
    "Verdict",
    "__version__",
    "build_test_tree",
    "format_report",
    "run",
]
