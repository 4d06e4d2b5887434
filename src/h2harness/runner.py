"""Run the scenario tree against a target and render the outcome."""

from __future__ import annotations

from h2harness.case import CaseReport
from h2harness.config import ExecutionContext
from h2harness.exceptions import ConfigurationError
from h2harness.group import GroupReport, TestGroup
from h2harness.result import format_results
from h2harness.suites import ROOT_SECTION, build_test_tree
from h2harness.types import SectionId, Verdict
from h2harness.utils import Timer, format_duration, get_logger

__all__: list[str] = ["format_report", "run", "select_group"]

logger = get_logger(name=__name__)

_INDENT = "  "
_MARKERS: dict[Verdict, str] = {
    Verdict.PASSED: "✔",
    Verdict.FAILED: "×",
    Verdict.ERRORED: "!",
}


async def run(
    *, context: ExecutionContext, section: SectionId | None = None, tree: TestGroup | None = None
) -> GroupReport:
    """Run the whole tree, or the group with the given section number, against the target."""
    group = select_group(tree=tree if tree is not None else build_test_tree(), section=section)
    logger.info(
        "Running %d test cases of section %s against %s:%d (%s)",
        group.count_cases(),
        group.section,
        context.host,
        context.port,
        context.mode,
    )

    with Timer(name=f"section {group.section}") as timer:
        report = await group.run(context=context)

    summary = report.summary()
    logger.info(
        "Finished in %s: %d passed, %d failed, %d errored",
        format_duration(seconds=timer.elapsed),
        summary.passed,
        summary.failed,
        summary.errored,
    )
    return report


def select_group(*, tree: TestGroup, section: SectionId | None) -> TestGroup:
    """Narrow the tree to one section, raising if it does not exist."""
    if section is None:
        return tree

    group = tree.find(section=section)
    if group is None:
        raise ConfigurationError(f"Unknown section: {section!r}", config_key="section")
    return group


def format_report(*, report: GroupReport) -> list[str]:
    """Render a report as indented lines followed by a summary line."""
    lines: list[str] = []
    _format_group(report=report, depth=0, lines=lines)

    summary = report.summary()
    lines.append("")
    lines.append(
        f"{summary.total} tests, {summary.passed} passed, {summary.failed} failed, {summary.errored} errored"
    )
    return lines


def _format_case(*, case: CaseReport, depth: int, lines: list[str]) -> None:
    """Append the lines describing one case."""
    indent = _INDENT * depth
    lines.append(f"{indent}{_MARKERS[case.verdict]} {case.description}")
    if case.passed:
        return

    detail = _INDENT * (depth + 1)
    lines.append(f"{detail}-> {case.requirement}")
    if case.expected:
        lines.append(f"{detail}   Expected: {format_results(results=case.expected)}")
    if case.actual is not None:
        lines.append(f"{detail}     Actual: {case.actual}")
    if case.error is not None:
        lines.append(f"{detail}      Error: {case.error}")


def _format_group(*, report: GroupReport, depth: int, lines: list[str]) -> None:
    """Append the lines of a group and its descendants."""
    indent = _INDENT * depth
    if report.section == ROOT_SECTION:
        lines.append(f"{indent}{report.title}")
    else:
        lines.append(f"{indent}{report.section}. {report.title}")

    for case in report.cases:
        _format_case(case=case, depth=depth + 1, lines=lines)
    for group in report.groups:
        _format_group(report=group, depth=depth + 1, lines=lines)
