"""Hierarchical grouping of test cases mirroring the sections of the protocol document."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, ClassVar

from h2harness.case import CaseReport, TestCase
from h2harness.config import ExecutionContext
from h2harness.exceptions import RegistrationError
from h2harness.types import SectionId, Verdict
from h2harness.utils import get_logger

__all__: list[str] = ["GroupReport", "RunSummary", "TestGroup"]

logger = get_logger(name=__name__)


@dataclass(kw_only=True, frozen=True)
class RunSummary:
    """Verdict counts over a group and its descendants."""

    passed: int = 0
    failed: int = 0
    errored: int = 0

    @property
    def all_passed(self) -> bool:
        """Return True if no case failed or errored."""
        return self.failed == 0 and self.errored == 0

    @property
    def total(self) -> int:
        """Return the number of cases counted."""
        return self.passed + self.failed + self.errored


@dataclass(kw_only=True)
class GroupReport:
    """The recorded outcome of running a group."""

    section: SectionId
    title: str
    cases: list[CaseReport] = field(default_factory=list)
    groups: list[GroupReport] = field(default_factory=list)

    def iter_cases(self) -> Iterator[CaseReport]:
        """Yield every case report in declaration order, depth first."""
        yield from self.cases
        for group in self.groups:
            yield from group.iter_cases()

    def summary(self) -> RunSummary:
        """Count verdicts over this group and all subgroups."""
        verdicts = [report.verdict for report in self.iter_cases()]
        return RunSummary(
            passed=verdicts.count(Verdict.PASSED),
            failed=verdicts.count(Verdict.FAILED),
            errored=verdicts.count(Verdict.ERRORED),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the report to a dictionary."""
        return {
            "section": self.section,
            "title": self.title,
            "cases": [case.to_dict() for case in self.cases],
            "groups": [group.to_dict() for group in self.groups],
        }


class TestGroup:
    """A named container of test cases and nested groups."""

    __test__: ClassVar[bool] = False

    def __init__(self, *, section: SectionId, title: str) -> None:
        """Initialize an empty group."""
        self._section = section
        self._title = title
        self._test_cases: list[TestCase] = []
        self._test_groups: list[TestGroup] = []

    @property
    def section(self) -> SectionId:
        """Get the section number identifying the group."""
        return self._section

    @property
    def test_cases(self) -> tuple[TestCase, ...]:
        """Get the direct child cases in declaration order."""
        return tuple(self._test_cases)

    @property
    def test_groups(self) -> tuple[TestGroup, ...]:
        """Get the direct child groups in declaration order."""
        return tuple(self._test_groups)

    @property
    def title(self) -> str:
        """Get the section title."""
        return self._title

    def add_test_case(self, *, case: TestCase) -> None:
        """Append a case; descriptions must be unique among siblings."""
        if any(existing.description == case.description for existing in self._test_cases):
            raise RegistrationError(
                f"Duplicate test case in section {self._section}: {case.description!r}", identifier=case.description
            )
        self._test_cases.append(case)

    def add_test_group(self, *, group: TestGroup) -> None:
        """Append a subgroup; sections must be unique among siblings."""
        if group is self:
            raise RegistrationError(f"Section {self._section} cannot contain itself", identifier=group.section)
        if any(existing.section == group.section for existing in self._test_groups):
            raise RegistrationError(
                f"Duplicate subgroup in section {self._section}: {group.section}", identifier=group.section
            )
        self._test_groups.append(group)

    def count_cases(self) -> int:
        """Count the cases in this group and all subgroups."""
        return len(self._test_cases) + sum(group.count_cases() for group in self._test_groups)

    def find(self, *, section: SectionId) -> TestGroup | None:
        """Find the group with the given section number, searching depth first."""
        if self._section == section:
            return self
        for group in self._test_groups:
            if (found := group.find(section=section)) is not None:
                return found
        return None

    async def run(self, *, context: ExecutionContext) -> GroupReport:
        """Run every case and subgroup sequentially in declaration order."""
        logger.info("Running group %s %s", self._section, self._title)
        report = GroupReport(section=self._section, title=self._title)

        for case in self._test_cases:
            report.cases.append(await case.run(context=context))
        for group in self._test_groups:
            report.groups.append(await group.run(context=context))

        return report

    def walk(self) -> Iterator[tuple[TestGroup, TestCase]]:
        """Yield (group, case) pairs over the whole tree in declaration order."""
        for case in self._test_cases:
            yield self, case
        for group in self._test_groups:
            yield from group.walk()

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        return f"<TestGroup section={self._section} title={self._title!r} cases={self.count_cases()}>"
