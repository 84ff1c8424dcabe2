"""Layout rules: required files and provider selection variables."""

from __future__ import annotations

import re
import typing as typ
from pathlib import PurePosixPath

from ..models import Finding, RuleDefinition, Span
from .playbook import top_level_keys

if typ.TYPE_CHECKING:
    from ..models import RoleRepository, SourceFile

REQUIRED_FILE = "structure.required-file"
PROVIDER_VARIABLE = "provider.variable-present"

REQUIRED_FILES: tuple[tuple[str, ...], ...] = (("tasks/main.yml", "tasks/main.yaml"),)
DEFAULTS_MAIN = ("defaults/main.yml", "defaults/main.yaml")
PROVIDER_TASK_FILE = re.compile(r"main-(?P<provider>[\w.\-]+)\.ya?ml")


def required_file_rule(doc_url: str) -> RuleDefinition:
    """Describe the required file rule."""
    return RuleDefinition(
        rule_id=REQUIRED_FILE,
        name="Role entry point exists",
        short_description="tasks/main.yml is present.",
        long_description=(
            "A role is executed through tasks/main.yml. Without it the role "
            "cannot be applied and no provider dispatch can happen."
        ),
        level="error",
        help_uri=f"{doc_url}#role-layout",
    )


def provider_variable_rule(doc_url: str) -> RuleDefinition:
    """Describe the provider variable rule."""
    return RuleDefinition(
        rule_id=PROVIDER_VARIABLE,
        name="Provider roles declare a provider variable",
        short_description=(
            "Roles with several tasks/main-<provider>.yml declare <role>_provider."
        ),
        long_description=(
            "When a role ships interchangeable implementations as "
            "tasks/main-<provider>.yml files, users pick one through the "
            "'<role>_provider' variable, which must be declared in "
            "defaults/main.yml so the choice is part of the documented interface."
        ),
        level="error",
        help_uri=f"{doc_url}#providers",
    )


def check_required_file(repository: RoleRepository) -> list[Finding]:
    """Report conventional files that are missing from the role."""
    findings: list[Finding] = []
    for alternatives in REQUIRED_FILES:
        if any(repository.has(relpath) for relpath in alternatives):
            continue
        expected = alternatives[0]
        findings.append(
            Finding(
                rule_id=REQUIRED_FILE,
                severity="error",
                span=Span(expected),
                message=f"required file {expected!r} is missing",
            )
        )
    return findings


def provider_names(repository: RoleRepository) -> list[str]:
    """Return provider names taken from top-level tasks/main-<provider>.yml files."""
    names: set[str] = set()
    for source in repository.files_in("tasks"):
        path = PurePosixPath(source.relpath)
        if path.parent != PurePosixPath("tasks"):
            continue
        match = PROVIDER_TASK_FILE.fullmatch(path.name)
        if match:
            names.add(match.group("provider"))
    return sorted(names)


def check_provider_variable(repository: RoleRepository) -> list[Finding]:
    """Report multi-provider roles that do not declare '<role>_provider'."""
    providers = provider_names(repository)
    if len(providers) < 2:
        return []
    variable = f"{repository.prefix}provider"
    defaults = _defaults_main(repository)
    if defaults is not None:
        if defaults.document is None:
            # Unparseable defaults are reported as a syntax error instead.
            return []
        if variable in {key.value for key in top_level_keys(defaults.document)}:
            return []
    relpath = defaults.relpath if defaults is not None else DEFAULTS_MAIN[0]
    listed = ", ".join(providers)
    return [
        Finding(
            rule_id=PROVIDER_VARIABLE,
            severity="error",
            span=Span(relpath),
            message=(
                f"role has provider task files ({listed}) but {relpath} does not "
                f"declare {variable!r}"
            ),
            properties={"providers": providers, "variable": variable},
        )
    ]


def _defaults_main(repository: RoleRepository) -> SourceFile | None:
    for relpath in DEFAULTS_MAIN:
        source = repository.get(relpath)
        if source is not None:
            return source
    return None
