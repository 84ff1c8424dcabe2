"""Unit tests for the quoting and template spacing rules."""

from __future__ import annotations

import typing as typ

import pytest

from rolecheck.checks import style
from rolecheck.collector import collect_role

if typ.TYPE_CHECKING:
    from tests.conftest import RoleBuilder


def test_quoting_reports_single_quoted_strings(role: RoleBuilder) -> None:
    """Single quotes are reserved for text that needs them."""
    role.write(
        "defaults/main.yml",
        """
        foo_a: 'single'
        foo_b: 'say "hi"'
        foo_c: "double"
        foo_d: plain
        """,
    )

    findings = style.check_quoting_style(collect_role(role.path))

    assert [(f.line, f.column) for f in findings] == [(1, 8)]
    assert findings[0].severity == "warning"
    assert findings[0].rule_id == "quoting.style"


def test_quoting_reports_unquoted_template_values(role: RoleBuilder) -> None:
    """A value starting with '{{' must be quoted."""
    role.write("defaults/main.yml", "foo_url: {{ foo_host }}\n")

    findings = style.check_quoting_style(collect_role(role.path))

    assert [(f.file, f.line, f.column) for f in findings] == [
        ("defaults/main.yml", 1, 10)
    ]
    assert "double quoted" in findings[0].message


def test_quoting_reports_double_quotes_inside_templates(role: RoleBuilder) -> None:
    """String literals inside template delimiters use single quotes."""
    role.write(
        "tasks/main.yml",
        """
        - name: Greet
          ansible.builtin.debug:
            msg: '{{ foo_a | default("x") }}'
        - name: Fine
          ansible.builtin.debug:
            msg: "{{ foo_a | default('x') }}"
        """,
    )

    findings = style.check_quoting_style(collect_role(role.path))

    assert [(f.line, f.column) for f in findings] == [(3, 30)]
    assert "single quotes" in findings[0].message


def test_quoting_scans_text_of_unparseable_files(role: RoleBuilder) -> None:
    """The raw text scan still runs when YAML parsing fails."""
    role.write("vars/main.yml", 'foo_a: {% if x == "y" %}\nfoo_b: [\n')

    findings = style.check_quoting_style(collect_role(role.path))

    assert [f.line for f in findings] == [1]


@pytest.mark.parametrize(
    ("expression", "reported"),
    [
        ("{{ foo_a }}", False),
        ("{{- foo_a -}}", False),
        ("{{ foo_a | join(', ') }}", False),
        ("{{foo_a}}", True),
        ("{{ foo_a}}", True),
        ("{{foo_a }}", True),
        ("{{  foo_a }}", True),
        ("{{ foo_a  }}", True),
        ("{{}}", True),
    ],
)
def test_template_spacing_expressions(
    role: RoleBuilder, expression: str, *, reported: bool
) -> None:
    """Exactly one space sits inside each delimiter."""
    role.write("templates/app.conf.j2", f"value={expression}\n")

    findings = style.check_template_spacing(collect_role(role.path))

    assert bool(findings) is reported
    if reported:
        assert findings[0].span.start == (1, 7)
        assert findings[0].severity == "warning"


def test_template_spacing_checks_yaml_and_skips_comments(role: RoleBuilder) -> None:
    """YAML values are scanned line by line; comment lines are ignored."""
    role.write(
        "tasks/main.yml",
        """
        # {{bad}} in a comment
        - name: Show
          ansible.builtin.debug:
            msg: "{{foo_a}} and {{ foo_b }} and {{ foo_c}}"
        """,
    )

    findings = style.check_template_spacing(collect_role(role.path))

    assert [(f.line, f.column) for f in findings] == [(4, 11), (4, 41)]
