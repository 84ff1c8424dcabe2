"""Variable naming rules: role prefixes and allowed characters."""

from __future__ import annotations

import re
import typing as typ

from ..models import Finding, RuleDefinition
from .playbook import documented_variables, file_variables, task_variables

if typ.TYPE_CHECKING:
    from ..models import RoleRepository
    from .playbook import VariableDefinition

VARIABLE_PREFIX = "naming.variable-prefix"
INTERNAL_PREFIX = "naming.internal-prefix"
NO_SPECIAL_CHARS = "naming.no-special-chars"

VALID_NAME = re.compile(r"[a-z][a-z0-9_]*")
INTERNAL_MARKER = "__"


def variable_prefix_rule(doc_url: str) -> RuleDefinition:
    """Describe the public variable prefix rule."""
    return RuleDefinition(
        rule_id=VARIABLE_PREFIX,
        name="Role variables carry the role prefix",
        short_description="Variables in defaults/ and vars/ start with '<role>_'.",
        long_description=(
            "Role variables share one global namespace with every other role in "
            "a play. Prefixing each variable with the role name keeps the role's "
            "interface stable and prevents collisions between roles."
        ),
        level="error",
        help_uri=f"{doc_url}#variable-prefix",
    )


def internal_prefix_rule(doc_url: str) -> RuleDefinition:
    """Describe the internal variable prefix rule."""
    return RuleDefinition(
        rule_id=INTERNAL_PREFIX,
        name="Internal variables carry the double-underscore prefix",
        short_description=(
            "Variables not declared in defaults/ start with '__<role>_'."
        ),
        long_description=(
            "Variables that are not part of the documented interface (vars/ "
            "entries, set_fact results and registered results that are not "
            "declared in defaults/) must use the '__<role>_' prefix so users can "
            "tell them apart from supported inputs. Usage is inferred "
            "statically, so the rule is a heuristic."
        ),
        level="error",
        help_uri=f"{doc_url}#internal-variables",
    )


def no_special_chars_rule(doc_url: str) -> RuleDefinition:
    """Describe the variable character set rule."""
    return RuleDefinition(
        rule_id=NO_SPECIAL_CHARS,
        name="Variable names use lowercase letters, digits and underscores",
        short_description="Variable names match [a-z][a-z0-9_]*.",
        long_description=(
            "Variable names start with a lowercase letter followed by lowercase "
            "letters, digits or underscores. The '__' internal marker is allowed "
            "in front of the name."
        ),
        level="error",
        help_uri=f"{doc_url}#variable-names",
    )


def check_variable_prefix(repository: RoleRepository) -> list[Finding]:
    """Report defaults/vars keys lacking the role prefix."""
    prefix = repository.prefix
    allowed = (prefix, repository.internal_prefix)
    return [
        _finding(
            VARIABLE_PREFIX,
            definition,
            f"variable {definition.name!r} must be prefixed {prefix!r}",
        )
        for definition in file_variables(repository)
        if not definition.name.startswith(allowed)
    ]


def check_internal_prefix(repository: RoleRepository) -> list[Finding]:
    """Report undocumented variables lacking the internal prefix."""
    documented = documented_variables(repository)
    internal = repository.internal_prefix
    findings: list[Finding] = []
    candidates = [
        definition
        for definition in [*file_variables(repository), *task_variables(repository)]
        if definition.origin != "defaults"
    ]
    for definition in candidates:
        name = definition.name
        if name in documented or name.startswith(internal):
            continue
        # Unprefixed vars/ keys are already reported by the public prefix rule.
        if definition.origin == "vars" and not name.startswith(repository.prefix):
            continue
        findings.append(
            _finding(
                INTERNAL_PREFIX,
                definition,
                (
                    f"variable {name!r} from {definition.origin} is not declared "
                    f"in defaults and must be prefixed {internal!r}"
                ),
            )
        )
    return findings


def check_no_special_chars(repository: RoleRepository) -> list[Finding]:
    """Report variable names outside the allowed character set."""
    findings: list[Finding] = []
    for definition in [*file_variables(repository), *task_variables(repository)]:
        bare = definition.name.removeprefix(INTERNAL_MARKER)
        if VALID_NAME.fullmatch(bare):
            continue
        findings.append(
            _finding(
                NO_SPECIAL_CHARS,
                definition,
                (
                    f"variable {definition.name!r} must match [a-z][a-z0-9_]* "
                    "(lowercase letters, digits and underscores)"
                ),
            )
        )
    return findings


def _finding(rule_id: str, definition: VariableDefinition, message: str) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity="error",
        span=definition.node.span,
        message=message,
        properties={"variable": definition.name, "origin": definition.origin},
    )
