"""Task rules: idempotency of command modules and per-distribution variables."""

from __future__ import annotations

import re
import typing as typ

from ..models import Finding, RuleDefinition
from ..nodes import MappingNode, ScalarNode
from .playbook import (
    TASK_CATEGORIES,
    argument_names,
    iter_document_tasks,
    node_text,
    task_module,
)

if typ.TYPE_CHECKING:
    from ..models import RoleRepository
    from ..nodes import Document
    from .playbook import TaskModule

COMMAND_MODULE = "idempotency.command-module"
VARS_FILE_PER_DISTRO = "structure.vars-file-per-distro"

COMMAND_MODULES = frozenset({"command", "shell"})
CHANGE_OVERRIDES = ("changed_when", "check_mode")
IDEMPOTENT_ARGUMENTS = frozenset({"creates", "removes"})
VARIABLE_MODULES = frozenset({"include_vars", "set_fact"})
MAIN_TASK_FILES = ("tasks/main.yml", "tasks/main.yaml")

DISTRIBUTION_FACT = re.compile(
    r"ansible_(?:facts(?:\[\s*['\"]|\.))?(?:distribution|os_family)"
)
FIRST_FOUND = "first_found"


def command_module_rule(doc_url: str) -> RuleDefinition:
    """Describe the command idempotency rule."""
    return RuleDefinition(
        rule_id=COMMAND_MODULE,
        name="Command tasks declare their change status",
        short_description=(
            "command/shell tasks set changed_when or check_mode."
        ),
        long_description=(
            "The command and shell modules always report a change, so repeated "
            "runs of an unchanged system look like drift. Each such task sets "
            "'changed_when' (or 'check_mode') unless 'creates'/'removes' lets "
            "the module decide on its own."
        ),
        level="error",
        help_uri=f"{doc_url}#idempotency",
    )


def vars_file_per_distro_rule(doc_url: str) -> RuleDefinition:
    """Describe the per-distribution variables file rule."""
    return RuleDefinition(
        rule_id=VARS_FILE_PER_DISTRO,
        name="Per-distribution variables come from vars files",
        short_description=(
            "tasks/main.yml loads distribution variables with with_first_found."
        ),
        long_description=(
            "Platform-specific values live in vars/<Distribution>.yml files and "
            "are loaded by an include_vars task that uses the with_first_found "
            "pattern. Inline conditionals on distribution facts that pick "
            "variables spread platform knowledge across tasks."
        ),
        level="error",
        help_uri=f"{doc_url}#platform-variables",
    )


def check_command_module(repository: RoleRepository) -> list[Finding]:
    """Report command/shell tasks that always report a change."""
    findings: list[Finding] = []
    for _source, document in repository.documents_in(*TASK_CATEGORIES):
        for task in iter_document_tasks(document):
            module = task_module(task)
            if module is None or module.short_name not in COMMAND_MODULES:
                continue
            if any(override in task for override in CHANGE_OVERRIDES):
                continue
            if argument_names(task, module) & IDEMPOTENT_ARGUMENTS:
                continue
            findings.append(
                Finding(
                    rule_id=COMMAND_MODULE,
                    severity="error",
                    span=task.span,
                    message=(
                        f"{module.short_name!r} task has no 'changed_when' or "
                        "'check_mode'; declare when it changes the system"
                    ),
                    properties={"module": module.name},
                )
            )
    return findings


def check_vars_file_per_distro(repository: RoleRepository) -> list[Finding]:
    """Report distribution-dependent variable loading in tasks/main.yml."""
    findings: list[Finding] = []
    for relpath in MAIN_TASK_FILES:
        source = repository.get(relpath)
        if source is None or source.document is None:
            continue
        findings.extend(_distribution_findings(source.document))
    return findings


def _distribution_findings(document: Document) -> typ.Iterator[Finding]:
    for task in iter_document_tasks(document):
        module = task_module(task)
        if module is None or module.short_name not in VARIABLE_MODULES:
            continue
        if DISTRIBUTION_FACT.search(node_text(task.get("when"))):
            yield Finding(
                rule_id=VARS_FILE_PER_DISTRO,
                severity="error",
                span=task.span,
                message=(
                    f"{module.short_name!r} is conditioned on distribution facts; "
                    "put the values in vars/<distribution>.yml and load them with "
                    "'with_first_found'"
                ),
                properties={"module": module.name},
            )
            continue
        if module.short_name == "include_vars" and _needs_first_found(task, module):
            yield Finding(
                rule_id=VARS_FILE_PER_DISTRO,
                severity="error",
                span=task.span,
                message=(
                    "'include_vars' names a distribution-specific file directly; "
                    "use 'with_first_found' so missing platforms fall back"
                ),
                properties={"module": module.name},
            )


def _needs_first_found(task: MappingNode, module: TaskModule) -> bool:
    arguments = module.arguments
    if isinstance(arguments, MappingNode):
        target = node_text(arguments.get("file")) or node_text(arguments.get("name"))
    elif isinstance(arguments, ScalarNode):
        target = arguments.value
    else:
        target = ""
    if not DISTRIBUTION_FACT.search(target):
        return False
    if "with_first_found" in task or FIRST_FOUND in target:
        return False
    return FIRST_FOUND not in node_text(task.get("loop"))
