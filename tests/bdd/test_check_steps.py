"""Behavioural tests for the `rolecheck` command."""

from __future__ import annotations

import json
import shlex
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from rolecheck import cli
from tests.conftest import RoleBuilder

from .conftest import RunResult

if typ.TYPE_CHECKING:
    from pathlib import Path

scenarios("features/check.feature")


@given(
    parsers.cfparse('a role named "{name}" that follows the conventions'),
    target_fixture="role_under_test",
)
def given_conforming_role(tmp_path: Path, name: str) -> RoleBuilder:
    """Create a role directory that satisfies every rule."""
    path = tmp_path / f"ansible-role-{name}"
    path.mkdir()
    return RoleBuilder(path=path, name=name).write_minimal()


@given(parsers.cfparse('the file "{relpath}" contains "{contents}"'))
def given_file_contents(
    role_under_test: RoleBuilder, relpath: str, contents: str
) -> None:
    """Write a single line file into the role."""
    role_under_test.write(relpath, f"{contents}\n")


@given(parsers.cfparse('the file "{relpath}" contains a bare "{module}" task'))
def given_bare_command_task(
    role_under_test: RoleBuilder, relpath: str, module: str
) -> None:
    """Write a task list with one command task lacking changed_when."""
    role_under_test.write(
        relpath,
        f"""
        - name: Run without change tracking
          ansible.builtin.{module}: /usr/local/bin/refresh
        """,
    )


@given(parsers.cfparse('the role has provider task files "{providers}"'))
def given_provider_files(role_under_test: RoleBuilder, providers: str) -> None:
    """Create tasks/main-<provider>.yml for each listed provider."""
    for provider in (item.strip() for item in providers.split(",")):
        if provider:
            role_under_test.write(f"tasks/main-{provider}.yml", "[]\n")


def _run(
    role_under_test: RoleBuilder,
    arguments: list[str],
    capsys: pytest.CaptureFixture[str],
) -> RunResult:
    returncode = cli.main([str(role_under_test.path), *arguments])
    captured = capsys.readouterr()
    return RunResult(stdout=captured.out, stderr=captured.err, returncode=returncode)


@when("I run rolecheck on the role")
def when_run_rolecheck(
    role_under_test: RoleBuilder,
    cli_invocation: dict[str, RunResult],
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Execute the CLI with default options."""
    cli_invocation["result"] = _run(role_under_test, [], capsys)


@when(parsers.cfparse('I run rolecheck on the role with "{options}"'))
def when_run_rolecheck_with(
    role_under_test: RoleBuilder,
    cli_invocation: dict[str, RunResult],
    capsys: pytest.CaptureFixture[str],
    options: str,
) -> None:
    """Execute the CLI with extra options."""
    cli_invocation["result"] = _run(role_under_test, shlex.split(options), capsys)


@then(parsers.cfparse("the exit code is {code:d}"))
def then_exit_code(cli_invocation: dict[str, RunResult], code: int) -> None:
    """Assert the CLI exit status."""
    result = cli_invocation["result"]
    assert result.returncode == code, result.stdout + result.stderr


@then(parsers.cfparse('the output reports "{text}"'))
def then_output_reports(cli_invocation: dict[str, RunResult], text: str) -> None:
    """Assert stdout contains the expected text."""
    assert text in cli_invocation["result"].stdout


@then(parsers.cfparse('stderr mentions "{text}"'))
def then_stderr_mentions(cli_invocation: dict[str, RunResult], text: str) -> None:
    """Assert stderr contains the expected text."""
    assert text in cli_invocation["result"].stderr


def _findings(cli_invocation: dict[str, RunResult]) -> list[dict[str, typ.Any]]:
    payload = json.loads(cli_invocation["result"].stdout)
    return typ.cast("list[dict[str, typ.Any]]", payload["findings"])


@then(
    parsers.cfparse(
        'the JSON report has a "{rule}" error at "{file}" '
        "line {line:d} column {column:d}"
    )
)
def then_json_has_error(
    cli_invocation: dict[str, RunResult],
    rule: str,
    file: str,
    line: int,
    column: int,
) -> None:
    """Assert a specific error finding is present."""
    matches = [
        finding
        for finding in _findings(cli_invocation)
        if finding["rule"] == rule
        and finding["severity"] == "error"
        and (finding["file"], finding["line"], finding["column"])
        == (file, line, column)
    ]
    assert len(matches) == 1, _findings(cli_invocation)


@then(parsers.cfparse('the JSON report lists "{rule}" {count:d} time'))
def then_json_lists_rule(
    cli_invocation: dict[str, RunResult], rule: str, count: int
) -> None:
    """Assert how often a rule was reported."""
    reported = [f for f in _findings(cli_invocation) if f["rule"] == rule]
    assert len(reported) == count, _findings(cli_invocation)
