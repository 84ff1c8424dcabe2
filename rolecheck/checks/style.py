"""Text style rules for quoting and template placeholder spacing."""

from __future__ import annotations

import re
import typing as typ

from ..models import Finding, RuleDefinition, Span
from ..nodes import ScalarNode

if typ.TYPE_CHECKING:
    from ..models import RoleRepository, SourceFile

QUOTING_STYLE = "quoting.style"
TEMPLATE_SPACING = "template.spacing"

YAML_CATEGORIES = ("defaults", "vars", "tasks", "handlers", "meta")

_EXPRESSION = re.compile(r"\{\{(?P<inner>.*?)\}\}")
_TEMPLATE_SEGMENT = re.compile(r"\{\{.*?\}\}|\{%.*?%\}")


def quoting_style_rule(doc_url: str) -> RuleDefinition:
    """Describe the quoting convention rule."""
    return RuleDefinition(
        rule_id=QUOTING_STYLE,
        name="Double quotes outside templates, single quotes inside",
        short_description=(
            "YAML strings use double quotes; template string literals use single."
        ),
        long_description=(
            "Quoted YAML strings use double quotes unless the text itself needs "
            "single quoting (it contains double quotes or backslashes). String "
            "literals inside '{{ }}' and '{% %}' use single quotes so they never "
            "clash with the surrounding YAML quotes. Values that start with a "
            "template expression must be quoted. Plain (unquoted) scalars such as "
            "'state: present' are not checked."
        ),
        level="warning",
        help_uri=f"{doc_url}#quoting",
    )


def template_spacing_rule(doc_url: str) -> RuleDefinition:
    """Describe the template placeholder spacing rule."""
    return RuleDefinition(
        rule_id=TEMPLATE_SPACING,
        name="One space inside template delimiters",
        short_description="Write '{{ expr }}' with exactly one inner space.",
        long_description=(
            "Every templating placeholder has exactly one space after '{{' and "
            "exactly one space before '}}'. Whitespace-control markers ('{{-' "
            "and '-}}') are allowed."
        ),
        level="warning",
        help_uri=f"{doc_url}#template-spacing",
    )


def check_quoting_style(repository: RoleRepository) -> list[Finding]:
    """Report quoting style problems in YAML files."""
    findings: list[Finding] = []
    for source in repository.files_in(*YAML_CATEGORIES):
        if not source.is_structured:
            continue
        findings.extend(_template_literal_quotes(source))
        document = source.document
        if document is None:
            continue
        for node in document.walk():
            if not isinstance(node, ScalarNode):
                continue
            if node.unquoted_template:
                findings.append(
                    Finding(
                        rule_id=QUOTING_STYLE,
                        severity="warning",
                        span=node.span,
                        message=(
                            "value starting with a template expression must be "
                            "double quoted"
                        ),
                    )
                )
            elif node.style == "'" and not _needs_single_quotes(node.value):
                findings.append(
                    Finding(
                        rule_id=QUOTING_STYLE,
                        severity="warning",
                        span=node.span,
                        message=(
                            f"string {node.value!r} uses single quotes; use double "
                            "quotes outside template expressions"
                        ),
                    )
                )
    return findings


def _needs_single_quotes(value: str) -> bool:
    return '"' in value or "\\" in value


def _template_literal_quotes(source: SourceFile) -> typ.Iterator[Finding]:
    """Scan raw text so files that failed to parse are still covered."""
    for number, line in enumerate(source.lines, start=1):
        if line.lstrip().startswith("#"):
            continue
        for match in _TEMPLATE_SEGMENT.finditer(line):
            offset = match.group(0).find('"')
            if offset < 0:
                continue
            yield Finding(
                rule_id=QUOTING_STYLE,
                severity="warning",
                span=Span(source.relpath, number, match.start() + offset + 1),
                message=(
                    "string literal inside a template expression uses double "
                    "quotes; use single quotes inside '{{ }}' and '{% %}'"
                ),
            )


def check_template_spacing(repository: RoleRepository) -> list[Finding]:
    """Report placeholders without exactly one space inside the delimiters."""
    findings: list[Finding] = []
    for source in repository.files_in(*YAML_CATEGORIES, "templates"):
        if source.category != "templates" and not source.is_structured:
            continue
        for number, line in enumerate(source.lines, start=1):
            if source.is_structured and line.lstrip().startswith("#"):
                continue
            for match in _EXPRESSION.finditer(line):
                if _is_well_spaced(match.group("inner")):
                    continue
                findings.append(
                    Finding(
                        rule_id=TEMPLATE_SPACING,
                        severity="warning",
                        span=Span(
                            source.relpath,
                            number,
                            match.start() + 1,
                            number,
                            match.end() + 1,
                        ),
                        message=(
                            f"template expression {match.group(0)!r} needs exactly "
                            "one space after '{{' and before '}}'"
                        ),
                    )
                )
    return findings


def _is_well_spaced(inner: str) -> bool:
    body = inner.removeprefix("-").removesuffix("-")
    if not body.strip():
        return False
    return (
        body.startswith(" ")
        and not body.startswith("  ")
        and body.endswith(" ")
        and not body.endswith("  ")
    )
