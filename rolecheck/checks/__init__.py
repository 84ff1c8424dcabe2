"""Rule catalog for role convention checks."""

from __future__ import annotations

from ..engine import RuleRegistry
from . import naming, structure, style, tasks

DOC_URL = "docs/conventions.md"


def build_registry(doc_url: str = DOC_URL) -> RuleRegistry:
    """Build the default set of rules."""
    registry = RuleRegistry()
    registry.register(
        naming.variable_prefix_rule(doc_url), naming.check_variable_prefix
    )
    registry.register(
        naming.internal_prefix_rule(doc_url), naming.check_internal_prefix
    )
    registry.register(
        naming.no_special_chars_rule(doc_url), naming.check_no_special_chars
    )
    registry.register(style.quoting_style_rule(doc_url), style.check_quoting_style)
    registry.register(
        style.template_spacing_rule(doc_url), style.check_template_spacing
    )
    registry.register(tasks.command_module_rule(doc_url), tasks.check_command_module)
    registry.register(
        tasks.vars_file_per_distro_rule(doc_url), tasks.check_vars_file_per_distro
    )
    registry.register(
        structure.provider_variable_rule(doc_url),
        structure.check_provider_variable,
    )
    registry.register(
        structure.required_file_rule(doc_url),
        structure.check_required_file,
        always=True,
    )
    return registry


__all__ = ["DOC_URL", "build_registry"]
