"""Run the collector, parser, rules and aggregator for one role."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import typing as typ

from .checks import build_registry
from .collector import collect_role
from .config import Settings
from .engine import PARSE_RULE_ID, UNREADABLE_RULE_ID, TaskPool, timeout_finding
from .errors import PhaseTimeoutError
from .models import Finding, Span
from .report import build_report

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .engine import RuleRegistry, Runner
    from .models import RoleRepository, RuleDefinition, SourceFile
    from .report import Report

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CheckRun:
    """Outcome of checking one role: the report and the rules that ran."""

    report: Report
    rules: tuple[RuleDefinition, ...]
    repository: RoleRepository


async def parse_repository(
    repository: RoleRepository,
    *,
    pool: TaskPool,
) -> tuple[RoleRepository, list[Finding]]:
    """Parse every YAML file concurrently.

    Returns a new snapshot in which files that failed to parse (or ran out of
    time) are marked so rules skip their documents, plus one error finding per
    failed file.
    """
    results = await asyncio.gather(
        *(_parse_one(source, pool) for source in repository.files)
    )
    files = [source for source, _ in results]
    findings = [finding for _, found in results for finding in found]
    return repository.with_files(files), findings


async def _parse_one(
    source: SourceFile,
    pool: TaskPool,
) -> tuple[SourceFile, list[Finding]]:
    if not source.is_structured:
        return source, []
    try:
        outcome = await pool.run("parse", source.relpath, lambda: source.outcome)
    except PhaseTimeoutError as error:
        _logger.debug("parsing %s timed out", source.relpath)
        return dataclasses.replace(source, parse_failed=True), [timeout_finding(error)]
    if outcome.error is None:
        return source, []
    error = outcome.error
    _logger.debug("parse error in %s: %s", source.relpath, error)
    finding = Finding(
        rule_id=PARSE_RULE_ID,
        severity="error",
        span=Span(source.relpath, error.line, error.column),
        message=f"syntax error: {error.message}",
    )
    return dataclasses.replace(source, parse_failed=True), [finding]


def unreadable_findings(repository: RoleRepository) -> list[Finding]:
    """Report files that were found but could not be read."""
    return [
        Finding(
            rule_id=UNREADABLE_RULE_ID,
            severity="error",
            span=Span(entry.relpath),
            message=f"cannot read file: {entry.reason}",
        )
        for entry in repository.unreadable
    ]


async def check_role(
    root: Path | str,
    settings: Settings | None = None,
    *,
    registry: RuleRegistry | None = None,
    runner: Runner | None = None,
) -> CheckRun:
    """Check one role directory and return the aggregated report.

    Raises:
        CollectionError: when the role directory cannot be read.
        UnknownRuleError: when the settings select unregistered rules.

    """
    options = settings or Settings()
    selected = (registry or build_registry()).select(
        options.rules or None, exclude=options.disable
    )
    repository = collect_role(
        root,
        role_name=options.role_name,
        respect_gitignore=options.respect_gitignore,
    )
    pool = TaskPool(timeout=options.timeout, jobs=options.jobs, runner=runner)
    parsed, parse_findings = await parse_repository(repository, pool=pool)
    rule_findings = await selected.evaluate(parsed, pool=pool)
    report = build_report(
        [*unreadable_findings(repository), *parse_findings, *rule_findings],
        fail_on=options.fail_on,
    )
    _logger.debug(
        "role %r: %d finding(s), verdict %s",
        parsed.role_name,
        len(report.findings),
        report.verdict,
    )
    return CheckRun(report=report, rules=tuple(selected.rules), repository=parsed)


def run_check(
    root: Path | str,
    settings: Settings | None = None,
    *,
    registry: RuleRegistry | None = None,
) -> CheckRun:
    """Synchronous wrapper around :func:`check_role`."""
    return asyncio.run(check_role(root, settings, registry=registry))
