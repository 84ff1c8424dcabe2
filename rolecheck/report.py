"""Aggregate findings into a report and render or publish it."""

from __future__ import annotations

import contextlib
import dataclasses
import json
import os
import typing as typ
from pathlib import Path
from tempfile import NamedTemporaryFile

from .models import SEVERITY_RANK, Finding

if typ.TYPE_CHECKING:
    from .models import Severity

SEVERITIES: tuple[Severity, ...] = ("error", "warning")
EXIT_PASS = 0
EXIT_FINDINGS = 1


@dataclasses.dataclass(frozen=True)
class Report:
    """Sorted, de-duplicated findings with verdict and exit status."""

    findings: tuple[Finding, ...]
    fail_on: Severity = "error"

    @property
    def verdict(self) -> str:
        """Return 'pass' when no error-severity finding exists."""
        if any(finding.severity == "error" for finding in self.findings):
            return "fail"
        return "pass"

    @property
    def summary(self) -> dict[str, int]:
        """Count findings per severity; every severity is always present."""
        counts = dict.fromkeys(SEVERITIES, 0)
        for finding in self.findings:
            counts[finding.severity] += 1
        return counts

    @property
    def exit_code(self) -> int:
        """Return 1 when a finding reaches the ``fail_on`` threshold."""
        threshold = SEVERITY_RANK[self.fail_on]
        if any(SEVERITY_RANK[f.severity] >= threshold for f in self.findings):
            return EXIT_FINDINGS
        return EXIT_PASS


def build_report(
    findings: typ.Iterable[Finding],
    *,
    fail_on: Severity = "error",
) -> Report:
    """Drop exact duplicates and sort by file, line, column and rule id."""
    unique: dict[tuple[object, ...], Finding] = {}
    for finding in findings:
        unique.setdefault(finding.identity, finding)
    ordered = sorted(unique.values(), key=lambda finding: finding.sort_key)
    return Report(findings=tuple(ordered), fail_on=fail_on)


def report_payload(report: Report) -> dict[str, typ.Any]:
    """Return the structured form of the report."""
    return {
        "verdict": report.verdict,
        "summary": report.summary,
        "findings": [
            {
                "rule": finding.rule_id,
                "severity": finding.severity,
                "file": finding.file,
                "line": finding.line,
                "column": finding.column,
                "message": finding.message,
            }
            for finding in report.findings
        ],
    }


def render_json(report: Report) -> str:
    """Render the report as indented JSON with a trailing newline."""
    return json.dumps(report_payload(report), indent=2) + "\n"


def render_text(report: Report) -> str:
    """Render one ``path:line:col: severity: message (rule)`` line per finding."""
    lines = [
        f"{finding.file}:{finding.line}:{finding.column}: "
        f"{finding.severity}: {finding.message} ({finding.rule_id})"
        for finding in report.findings
    ]
    summary = report.summary
    lines.append(
        f"{summary['error']} error(s), {summary['warning']} warning(s): "
        f"{report.verdict}"
    )
    return "\n".join(lines) + "\n"


def write_report(contents: str, path: Path) -> Path:
    """Publish ``contents`` to ``path`` atomically.

    The text goes to a temporary file beside the destination and is renamed
    into place, so readers see either the previous file or the complete new
    report. Any failure, including cancellation, removes the temporary file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handle = NamedTemporaryFile(  # noqa: SIM115 - closed before the rename
        "w",
        encoding="utf-8",
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with handle:
            handle.write(contents)
            handle.flush()
            os.fsync(handle.fileno())
        Path(handle.name).replace(target)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            Path(handle.name).unlink()
        raise
    return target
