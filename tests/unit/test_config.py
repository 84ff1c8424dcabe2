"""Unit tests for settings resolution."""

from __future__ import annotations

import typing as typ

import pytest

from rolecheck.config import (
    Settings,
    default_config_path,
    discover_config,
    load_settings,
    parse_rule_list,
)
from rolecheck.errors import ConfigError

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the user configuration directory at an empty location."""
    home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    return home


def test_defaults_without_config(tmp_path: Path) -> None:
    """No config file and no overrides yields the built-in defaults."""
    settings = load_settings(tmp_path)
    assert settings == Settings()
    assert settings.timeout == 5.0
    assert settings.format == "text"


def test_role_config_file_is_discovered(tmp_path: Path) -> None:
    """A .rolecheck.yaml in the role root is loaded."""
    (tmp_path / ".rolecheck.yaml").write_text(
        "format: json\nfail-on: warning\ndisable:\n  - quoting.style\njobs: 2\n",
        encoding="utf-8",
    )

    settings = load_settings(tmp_path)

    assert settings.format == "json"
    assert settings.fail_on == "warning"
    assert settings.disable == ("quoting.style",)
    assert settings.jobs == 2


def test_overrides_win_and_none_falls_through(tmp_path: Path) -> None:
    """Explicit values beat the file; None leaves the file value in place."""
    (tmp_path / ".rolecheck.yaml").write_text(
        "format: json\ntimeout_ms: 100\n", encoding="utf-8"
    )

    settings = load_settings(
        tmp_path,
        overrides={"format": "sarif", "timeout_ms": None, "rules": "a.rule, b.rule"},
    )

    assert settings.format == "sarif"
    assert settings.timeout_ms == 100
    assert settings.rules == ("a.rule", "b.rule")


def test_user_config_is_used_as_fallback(
    tmp_path: Path, isolated_config_home: Path
) -> None:
    """$XDG_CONFIG_HOME/rolecheck/config.yaml applies when the role has none."""
    user_config = default_config_path()
    assert user_config == isolated_config_home / "rolecheck" / "config.yaml"
    user_config.parent.mkdir(parents=True)
    user_config.write_text("role_name: custom\n", encoding="utf-8")

    assert discover_config(tmp_path) == user_config
    assert load_settings(tmp_path).role_name == "custom"


def test_explicit_config_must_exist(tmp_path: Path) -> None:
    """A missing --config file is an invocation error."""
    with pytest.raises(ConfigError, match="does not exist"):
        load_settings(tmp_path, config_path=tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    ("contents", "message"),
    [
        ("format: [\n", "not valid YAML"),
        ("- just\n- a list\n", "must contain a mapping"),
        ("colour: red\n", "Unknown config key"),
        ("format: html\n", "format must be one of"),
        ("timeout_ms: 0\n", "positive integer"),
        ("jobs: many\n", "positive integer"),
        ("respect_gitignore: maybe\n", "true or false"),
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, contents: str, message: str) -> None:
    """Malformed or out-of-range values raise ConfigError."""
    config = tmp_path / "custom.yaml"
    config.write_text(contents, encoding="utf-8")
    with pytest.raises(ConfigError, match=message):
        load_settings(tmp_path, config_path=config)


def test_parse_rule_list_accepts_strings_and_lists() -> None:
    """Rule lists come from comma separated text or YAML sequences."""
    assert parse_rule_list("a.rule, ,b.rule") == ("a.rule", "b.rule")
    assert parse_rule_list(["a.rule", "b.rule"]) == ("a.rule", "b.rule")
    with pytest.raises(ConfigError):
        parse_rule_list(3)
