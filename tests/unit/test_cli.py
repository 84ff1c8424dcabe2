"""Tests for the rolecheck command line interface."""

from __future__ import annotations

import json
import subprocess
import sys
import typing as typ
from pathlib import Path

import pytest

from rolecheck import cli

if typ.TYPE_CHECKING:
    from tests.conftest import RoleBuilder

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's own rolecheck configuration out of the tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def test_conforming_role_exits_zero(
    role: RoleBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    """A clean role prints only the summary line."""
    role.write_minimal()

    exit_code = cli.main([str(role.path)])

    assert exit_code == 0
    assert capsys.readouterr().out == "0 error(s), 0 warning(s): pass\n"


def test_json_report_for_unprefixed_default(
    role: RoleBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    """The JSON report lists the prefix violation and the exit code is 1."""
    role.write_minimal()
    role.write("defaults/main.yml", "packages: [a, b]\n")

    exit_code = cli.main(
        [str(role.path), "--format", "json", "--rules", "naming.variable-prefix"]
    )

    assert exit_code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["verdict"] == "fail"
    assert payload["summary"] == {"error": 1, "warning": 0}
    assert payload["findings"] == [
        {
            "rule": "naming.variable-prefix",
            "severity": "error",
            "file": "defaults/main.yml",
            "line": 1,
            "column": 1,
            "message": "variable 'packages' must be prefixed 'foo_'",
        }
    ]


def test_fail_on_warning_raises_exit_code(
    role: RoleBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    """Warnings only fail the run when --fail-on warning is given."""
    role.write_minimal()
    role.write("templates/motd.j2", "Welcome to {{inventory_hostname}}\n")

    assert cli.main([str(role.path)]) == 0
    assert cli.main([str(role.path), "--fail-on", "warning"]) == 1
    assert "template.spacing" in capsys.readouterr().out


def test_output_file_receives_report(
    role: RoleBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """--output writes the report to a file instead of stdout."""
    role.write_minimal()
    target = tmp_path / "reports" / "role.sarif"

    exit_code = cli.main([str(role.path), "--format", "sarif", "--output", str(target)])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "wrote" in captured.err
    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["runs"][0]["tool"]["driver"]["name"] == "rolecheck"


def test_role_name_override(
    role: RoleBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    """--role-name changes the required prefix."""
    role.write("tasks/main.yml", "[]\n")
    role.write("defaults/main.yml", "web_port: 80\n")

    assert cli.main([str(role.path), "--role-name", "web"]) == 0
    assert cli.main([str(role.path)]) == 1
    assert "must be prefixed 'foo_'" in capsys.readouterr().out


def test_list_rules(capsys: pytest.CaptureFixture[str]) -> None:
    """--list-rules prints the catalog without a path."""
    assert cli.main(["--list-rules"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert [line.split("\t")[0] for line in lines] == [
        "naming.variable-prefix",
        "naming.internal-prefix",
        "naming.no-special-chars",
        "quoting.style",
        "template.spacing",
        "idempotency.command-module",
        "structure.vars-file-per-distro",
        "provider.variable-present",
        "structure.required-file",
    ]


@pytest.mark.parametrize(
    "arguments",
    [
        pytest.param(["{role}", "--rules", "no.such-rule"], id="unknown-rule"),
        pytest.param(["{role}/missing"], id="missing-path"),
        pytest.param([], id="no-path"),
        pytest.param(["{role}", "--timeout-ms", "0"], id="bad-timeout"),
    ],
)
def test_invocation_errors_exit_two(
    role: RoleBuilder, capsys: pytest.CaptureFixture[str], arguments: list[str]
) -> None:
    """Bad paths and options exit with status 2 and a message on stderr."""
    role.write_minimal()
    argv = [argument.format(role=role.path) for argument in arguments]

    assert cli.main(argv) == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("rolecheck: ")


def test_invalid_format_choice_exits_two(role: RoleBuilder) -> None:
    """Option values outside the allowed choices are rejected by the parser."""
    role.write_minimal()
    assert cli.main([str(role.path), "--format", "html"]) == 2


def test_cli_runs_as_module(role: RoleBuilder, tmp_path: Path) -> None:
    """Integration smoke test for `python -m rolecheck`."""
    role.write_minimal()
    role.write("tasks/main.yml", "- name: Run\n  ansible.builtin.command: ls\n")
    report = tmp_path / "report.json"
    command = [
        sys.executable,
        "-m",
        "rolecheck",
        str(role.path),
        "--format",
        "json",
        "--output",
        str(report),
    ]
    completed = subprocess.run(  # noqa: S603
        command,
        capture_output=True,
        text=True,
        check=False,
        cwd=PROJECT_ROOT,
    )
    assert completed.returncode == 1, completed.stdout + completed.stderr
    data = json.loads(report.read_text(encoding="utf-8"))
    assert [finding["rule"] for finding in data["findings"]] == [
        "idempotency.command-module"
    ]
