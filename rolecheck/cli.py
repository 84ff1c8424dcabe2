"""Command line entry point for rolecheck."""

from __future__ import annotations

import logging
import sys
import typing as typ
from pathlib import Path  # noqa: TC003

from cyclopts import App, CycloptsError, Parameter

from . import __version__
from .checks import build_registry
from .config import load_settings
from .errors import ConfigError, RolecheckError
from .pipeline import run_check
from .report import render_json, render_text, write_report
from .sarif import render_sarif

if typ.TYPE_CHECKING:
    from .pipeline import CheckRun

EXIT_USAGE = 2
EXIT_CANCELLED = 130
ERROR_PATH_REQUIRED = "A role directory is required (see --help)."

app = App(
    name="rolecheck",
    help="Check a role repository against naming and style conventions.",
    version=__version__,
)


@app.default
def check(
    path: Path | None = None,
    *,
    output_format: typ.Annotated[
        typ.Literal["text", "json", "sarif"] | None,
        Parameter(name="--format"),
    ] = None,
    fail_on: typ.Literal["error", "warning"] | None = None,
    rules: str | None = None,
    timeout_ms: int | None = None,
    jobs: int | None = None,
    role_name: str | None = None,
    output: Path | None = None,
    config: Path | None = None,
    list_rules: bool = False,
    verbose: bool = False,
) -> int:
    """Check the role at PATH and print a report.

    Parameters
    ----------
    path
        Role repository to check.
    output_format
        Report rendering: text, json or sarif.
    fail_on
        Lowest severity that makes the exit status non-zero.
    rules
        Comma separated rule ids to run instead of the full catalog.
    timeout_ms
        Per-file parse and per-rule time budget in milliseconds.
    jobs
        Maximum number of parse or rule tasks running at once.
    role_name
        Role name used for variable prefixes instead of the directory name.
    output
        Write the report atomically to this file instead of stdout.
    config
        Configuration file to use instead of the discovered one.
    list_rules
        Print the rule catalog and exit.
    verbose
        Log progress to stderr.

    """
    if verbose:
        _configure_logging()
    if list_rules:
        for rule in build_registry().rules:
            print(f"{rule.rule_id}\t{rule.level}\t{rule.short_description}")
        return 0
    if path is None:
        raise ConfigError(ERROR_PATH_REQUIRED)

    settings = load_settings(
        path,
        config_path=config,
        overrides={
            "format": output_format,
            "fail_on": fail_on,
            "rules": rules,
            "timeout_ms": timeout_ms,
            "jobs": jobs,
            "role_name": role_name,
        },
    )
    run = run_check(path, settings)
    rendered = _render(run, settings.format)
    if output is not None:
        write_report(rendered, output)
        summary = run.report.summary
        print(
            f"rolecheck: wrote {output} ({summary['error']} error(s), "
            f"{summary['warning']} warning(s))",
            file=sys.stderr,
        )
    else:
        sys.stdout.write(rendered)
    return run.report.exit_code


def _render(run: CheckRun, output_format: str) -> str:
    if output_format == "json":
        return render_json(run.report)
    if output_format == "sarif":
        return render_sarif(run.report, run.rules)
    return render_text(run.report)


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | tuple[str, ...] | None = None) -> int:
    """Entry point for the rolecheck CLI."""
    try:
        result = app(argv, exit_on_error=False)
    except CycloptsError:
        return EXIT_USAGE
    except RolecheckError as error:
        print(f"rolecheck: {error}", file=sys.stderr)
        return EXIT_USAGE
    except KeyboardInterrupt:
        print("rolecheck: cancelled", file=sys.stderr)
        return EXIT_CANCELLED
    return int(result or 0)


if __name__ == "__main__":
    raise SystemExit(main())
