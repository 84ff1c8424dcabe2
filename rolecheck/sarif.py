"""SARIF log builder for rolecheck reports."""

from __future__ import annotations

import hashlib
import json
import typing as typ

from . import __version__
from .models import REPOSITORY_FILE

if typ.TYPE_CHECKING:
    from .models import Finding, RuleDefinition
    from .report import Report


class SarifBuilder:
    """Accumulate rule metadata and findings into one SARIF 2.1.0 run."""

    def __init__(
        self,
        *,
        tool_name: str = "rolecheck",
        tool_version: str = __version__,
        information_uri: str | None = None,
    ) -> None:
        """Record the tool identity reported in the driver block."""
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.information_uri = information_uri
        self._rules: dict[str, RuleDefinition] = {}
        self._results: list[dict[str, object]] = []

    def register_rules(self, rules: typ.Iterable[RuleDefinition]) -> None:
        """Record rule metadata; a later entry with the same id wins."""
        for rule in rules:
            self._rules[rule.rule_id] = rule

    def add_findings(self, findings: typ.Sequence[Finding]) -> None:
        """Append one result per finding, located by file and region."""
        for finding in findings:
            fingerprint_source = (
                f"{finding.rule_id}-{finding.file}-{finding.line}-{finding.message}"
            )
            fingerprint = hashlib.sha256(fingerprint_source.encode()).hexdigest()
            serialized: dict[str, object] = {
                "ruleId": finding.rule_id,
                "level": finding.severity,
                "message": {"text": finding.message},
                "locations": [self._location(finding)],
                "partialFingerprints": {"findingId": fingerprint},
            }
            if finding.properties:
                serialized["properties"] = finding.properties
            self._results.append(serialized)

    def build(self) -> dict[str, object]:
        """Return the SARIF document.

        No timestamps are recorded so that identical input yields an identical
        log.
        """
        driver: dict[str, object] = {
            "name": self.tool_name,
            "version": self.tool_version,
            "rules": [self._serialize_rule(rule) for rule in self._rules.values()],
        }
        if self.information_uri:
            driver["informationUri"] = self.information_uri
        run = {
            "tool": {"driver": driver},
            "results": self._results,
            "invocations": [{"executionSuccessful": True}],
        }
        return {
            "version": "2.1.0",
            "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
            "runs": [run],
        }

    def _location(self, finding: Finding) -> dict[str, object]:
        if finding.file == REPOSITORY_FILE:
            return {"physicalLocation": {"artifactLocation": {"uri": "."}}}
        span = finding.span
        return {
            "physicalLocation": {
                "artifactLocation": {"uri": finding.file, "uriBaseId": "%SRCROOT%"},
                "region": {
                    "startLine": span.line,
                    "startColumn": span.column,
                    "endLine": span.end_line,
                    "endColumn": span.end_column,
                },
            }
        }

    def _serialize_rule(self, rule: RuleDefinition) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": rule.rule_id,
            "name": rule.name,
            "shortDescription": {"text": rule.short_description},
            "fullDescription": {"text": rule.long_description},
            "defaultConfiguration": {"level": rule.level},
        }
        if rule.help_uri:
            payload["helpUri"] = rule.help_uri
        payload["properties"] = {"tags": [rule.rule_id.split(".", 1)[0]]}
        return payload


def render_sarif(report: Report, rules: typ.Iterable[RuleDefinition]) -> str:
    """Render a report as an indented SARIF log."""
    builder = SarifBuilder()
    builder.register_rules(rules)
    builder.add_findings(report.findings)
    return json.dumps(builder.build(), indent=2) + "\n"
