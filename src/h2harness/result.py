"""Typed observations used as both expected and actual test outcomes."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import ClassVar, Self, TypeAlias

from h2harness.constants import ErrorCodes, FrameType
from h2harness.frames import InboundFrame, frame_type_name
from h2harness.types import ErrorCode, FrameTypeCode, ResultKind

__all__: list[str] = [
    "Outcome",
    "Result",
    "ResultConnectionClose",
    "ResultError",
    "ResultFrame",
    "ResultTimeout",
    "connection_error_expectations",
    "format_results",
    "matches_any",
    "result_matches",
    "stream_error_expectations",
]


@dataclass(kw_only=True, frozen=True)
class ResultFrame:
    """A frame observation; None fields act as wildcards in an expected result."""

    kind: ClassVar[ResultKind] = ResultKind.FRAME

    frame_type: FrameTypeCode
    flags: int | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def from_frame(cls, *, frame: InboundFrame) -> Self:
        """Record what was actually received."""
        return cls(frame_type=frame.frame_type, flags=frame.flags, error_code=frame.error_code)

    def __str__(self) -> str:
        """Return a readable description of the frame."""
        parts = []
        if self.flags is not None:
            parts.append(f"Flags: {self.flags:#04x}")
        if self.error_code is not None:
            parts.append(f"Error Code: {_error_code_name(code=self.error_code)}")
        name = frame_type_name(frame_type=self.frame_type)
        return f"{name} frame ({', '.join(parts)})" if parts else f"{name} frame"


@dataclass(kw_only=True, frozen=True)
class ResultConnectionClose:
    """The peer closed or reset the transport without a further frame."""

    kind: ClassVar[ResultKind] = ResultKind.CONNECTION_CLOSE

    reset: bool = False

    def __str__(self) -> str:
        """Return a readable description of the closure."""
        return "Connection reset" if self.reset else "Connection closed"


@dataclass(kw_only=True, frozen=True)
class ResultTimeout:
    """No decisive event happened before the deadline."""

    kind: ClassVar[ResultKind] = ResultKind.TIMEOUT

    last_frame: ResultFrame | None = None

    def __str__(self) -> str:
        """Return a readable description of the timeout."""
        if self.last_frame is not None:
            return f"Timeout (last frame: {self.last_frame})"
        return "Timeout"


@dataclass(kw_only=True, frozen=True)
class ResultError:
    """Any other transport failure; an expected instance without error matches any error."""

    kind: ClassVar[ResultKind] = ResultKind.ERROR

    error: BaseException | None = None

    def __str__(self) -> str:
        """Return a readable description of the error."""
        return f"Error: {self.error}" if self.error is not None else "Error"


Result: TypeAlias = ResultFrame | ResultConnectionClose | ResultTimeout | ResultError
Outcome: TypeAlias = tuple[Sequence[Result], Result]


def connection_error_expectations(*, codes: Iterable[ErrorCode], allow_close: bool = True) -> list[Result]:
    """Build the acceptable results for a connection error with one of the codes."""
    expected: list[Result] = [ResultFrame(frame_type=FrameType.GOAWAY, error_code=code) for code in codes]
    if allow_close:
        expected.append(ResultConnectionClose())
    return expected


def format_results(*, results: Sequence[Result]) -> str:
    """Join several results into one line for reports."""
    return " / ".join(str(result) for result in results)


def matches_any(*, expected: Iterable[Result], actual: Result) -> bool:
    """Check whether the actual result matches at least one expected result."""
    return any(result_matches(expected=candidate, actual=actual) for candidate in expected)


def result_matches(*, expected: Result, actual: Result) -> bool:
    """Compare two results variant by variant, honoring wildcard fields of the expected one."""
    match expected, actual:
        case ResultFrame(), ResultFrame():
            return (
                expected.frame_type == actual.frame_type
                and (expected.flags is None or expected.flags == actual.flags)
                and (expected.error_code is None or expected.error_code == actual.error_code)
            )
        case ResultConnectionClose(), ResultConnectionClose():
            return True
        case ResultTimeout(), ResultTimeout():
            return True
        case ResultError(), ResultError():
            return expected.error is None or type(expected.error) is type(actual.error)
        case _:
            return False


def stream_error_expectations(*, codes: Iterable[ErrorCode], allow_close: bool = True) -> list[Result]:
    """Build the acceptable results for a stream error with one of the codes."""
    code_list = list(codes)
    expected: list[Result] = [ResultFrame(frame_type=FrameType.RST_STREAM, error_code=code) for code in code_list]
    expected.extend(ResultFrame(frame_type=FrameType.GOAWAY, error_code=code) for code in code_list)
    if allow_close:
        expected.append(ResultConnectionClose())
    return expected


def _error_code_name(*, code: ErrorCode) -> str:
    """Return the registered name of an error code or its hex value."""
    try:
        return ErrorCodes(code).name
    except ValueError:
        return f"UNKNOWN({code:#x})"
