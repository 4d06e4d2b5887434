"""A single cited conformance scenario and its verdict."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar, TypeAlias

from h2harness.config import ExecutionContext
from h2harness.connection import Http2Connection
from h2harness.exceptions import HarnessError
from h2harness.result import Outcome, Result, ResultError, matches_any
from h2harness.types import Verdict
from h2harness.utils import Timer, get_logger

__all__: list[str] = ["CaseReport", "Handler", "TestCase", "evaluate"]

logger = get_logger(name=__name__)

Handler: TypeAlias = Callable[[ExecutionContext, Http2Connection], Awaitable[Outcome]]


@dataclass(kw_only=True, frozen=True)
class CaseReport:
    """The recorded outcome of running one test case."""

    description: str
    requirement: str
    verdict: Verdict
    expected: tuple[Result, ...] = field(default_factory=tuple)
    actual: Result | None = None
    error: str | None = None
    duration: float = 0.0

    @property
    def passed(self) -> bool:
        """Return True if the case passed."""
        return self.verdict == Verdict.PASSED

    def to_dict(self) -> dict[str, Any]:
        """Convert the report to a dictionary."""
        return {
            "description": self.description,
            "requirement": self.requirement,
            "verdict": self.verdict.value,
            "expected": [str(result) for result in self.expected],
            "actual": str(self.actual) if self.actual is not None else None,
            "error": self.error,
            "duration": self.duration,
        }


@dataclass(kw_only=True, frozen=True)
class TestCase:
    """A named scenario citing the requirement it checks."""

    __test__: ClassVar[bool] = False

    description: str
    requirement: str
    handler: Handler

    async def run(self, *, context: ExecutionContext) -> CaseReport:
        """Run the scenario on a fresh connection and derive its verdict."""
        logger.info("Running case: %s", self.description)

        with Timer(name=self.description) as timer:
            try:
                async with await Http2Connection.open(context=context) as conn:
                    expected, actual = await self.handler(context, conn)
                    logger.debug("Connection diagnostics: %s", conn.diagnostics())
            except (HarnessError, OSError) as e:
                logger.error("Case '%s' errored: %s", self.description, e)
                return self._errored(error=e, duration=timer.elapsed)
            except Exception as e:
                logger.error("Case '%s' raised unexpectedly: %s", self.description, e, exc_info=True)
                return self._errored(error=e, duration=timer.elapsed)

        verdict = evaluate(expected=expected, actual=actual)
        logger.info("Case '%s' %s (actual: %s)", self.description, verdict, actual)
        return CaseReport(
            description=self.description,
            requirement=self.requirement,
            verdict=verdict,
            expected=tuple(expected),
            actual=actual,
            duration=timer.elapsed,
        )

    def _errored(self, *, error: BaseException, duration: float) -> CaseReport:
        """Build the report of a case that could not produce an observation."""
        return CaseReport(
            description=self.description,
            requirement=self.requirement,
            verdict=Verdict.ERRORED,
            error=str(error),
            duration=duration,
        )


def evaluate(*, expected: Sequence[Result], actual: Result) -> Verdict:
    """Derive the verdict of an observation against the acceptable results."""
    if matches_any(expected=expected, actual=actual):
        return Verdict.PASSED
    if isinstance(actual, ResultError):
        return Verdict.ERRORED
    return Verdict.FAILED
