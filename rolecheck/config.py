"""Settings resolution: command line over config file over defaults."""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from pathlib import Path

from cyclopts import CycloptsError
from cyclopts import config as cyclopts_config
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError

if typ.TYPE_CHECKING:
    from .models import Severity

CONFIG_FILENAME = ".rolecheck.yaml"
USER_CONFIG_FILENAME = "config.yaml"
FORMATS = ("text", "json", "sarif")
FAIL_ON_CHOICES = ("error", "warning")
DEFAULT_TIMEOUT_MS = 5000

_yaml = YAML(typ="safe")


class _YamlConfig(cyclopts_config.ConfigFromFile):
    """Cyclopts config provider backed by ruamel.yaml."""

    def _load_config(self, path: Path) -> dict[str, typ.Any]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                contents = _yaml.load(handle) or {}
        except YAMLError as error:
            message = f"Config file {path} is not valid YAML: {error}"
            raise ConfigError(message) from error
        if not isinstance(contents, dict):
            message = f"Config file {path} must contain a mapping."
            raise ConfigError(message)
        return dict(contents)


@dataclasses.dataclass(frozen=True, slots=True)
class Settings:
    """Resolved options for one checker run."""

    format: str = "text"
    fail_on: Severity = "error"
    rules: tuple[str, ...] | None = None
    disable: tuple[str, ...] = ()
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    jobs: int | None = None
    role_name: str | None = None
    respect_gitignore: bool = True

    @property
    def timeout(self) -> float:
        """Return the per-task timeout in seconds."""
        return self.timeout_ms / 1000


_FIELDS = frozenset(field.name for field in dataclasses.fields(Settings))


def default_config_path() -> Path:
    """Return the user-level rolecheck configuration file."""
    root = os.environ.get("XDG_CONFIG_HOME")
    base = Path(root).expanduser() if root else Path.home() / ".config"
    return base / "rolecheck" / USER_CONFIG_FILENAME


def discover_config(role_root: Path, explicit: Path | None = None) -> Path | None:
    """Pick the config file: explicit, then the role's own, then the user's."""
    if explicit is not None:
        if not explicit.is_file():
            message = f"Config file {explicit} does not exist."
            raise ConfigError(message)
        return explicit
    for candidate in (Path(role_root) / CONFIG_FILENAME, default_config_path()):
        if candidate.is_file():
            return candidate
    return None


def load_settings(
    role_root: Path,
    *,
    config_path: Path | None = None,
    overrides: typ.Mapping[str, object] | None = None,
) -> Settings:
    """Merge config file values with explicit overrides into Settings.

    ``None`` overrides are ignored so unset command line flags fall through to
    the config file and then to the defaults.
    """
    path = discover_config(role_root, config_path)
    raw: dict[str, typ.Any] = {}
    if path is not None:
        provider = _YamlConfig(path=str(path), must_exist=False)
        try:
            loaded = provider.config or {}
        except CycloptsError as error:
            raise ConfigError(str(error)) from error
        raw = dict(loaded) if isinstance(loaded, dict) else {}
    values = {key.replace("-", "_"): value for key, value in raw.items()}
    unknown = sorted(set(values) - _FIELDS)
    if unknown:
        message = f"Unknown config key(s) in {path}: {', '.join(unknown)}."
        raise ConfigError(message)
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    return _validate(values)


def parse_rule_list(value: object) -> tuple[str, ...]:
    """Accept a comma separated string or a list of rule identifiers."""
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list | tuple):
        items = [str(item) for item in value]
    else:
        message = f"Expected a rule list, got {value!r}."
        raise ConfigError(message)
    return tuple(item.strip() for item in items if item.strip())


def _validate(values: dict[str, typ.Any]) -> Settings:
    settings: dict[str, typ.Any] = {}
    if "format" in values:
        settings["format"] = _choice("format", values["format"], FORMATS)
    if "fail_on" in values:
        settings["fail_on"] = _choice("fail_on", values["fail_on"], FAIL_ON_CHOICES)
    if "rules" in values:
        settings["rules"] = parse_rule_list(values["rules"])
    if "disable" in values:
        settings["disable"] = parse_rule_list(values["disable"])
    if "timeout_ms" in values:
        settings["timeout_ms"] = _positive_int("timeout_ms", values["timeout_ms"])
    if values.get("jobs") is not None:
        settings["jobs"] = _positive_int("jobs", values["jobs"])
    if values.get("role_name") is not None:
        settings["role_name"] = str(values["role_name"])
    if "respect_gitignore" in values:
        flag = values["respect_gitignore"]
        if not isinstance(flag, bool):
            message = f"respect_gitignore must be true or false, got {flag!r}."
            raise ConfigError(message)
        settings["respect_gitignore"] = flag
    return Settings(**settings)


def _choice(name: str, value: object, choices: tuple[str, ...]) -> str:
    text = str(value).strip().lower()
    if text not in choices:
        message = f"{name} must be one of {', '.join(choices)}; got {value!r}."
        raise ConfigError(message)
    return text


def _positive_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int | str):
        message = f"{name} must be a positive integer, got {value!r}."
        raise ConfigError(message)
    try:
        number = int(value)
    except ValueError as error:
        message = f"{name} must be a positive integer, got {value!r}."
        raise ConfigError(message) from error
    if number <= 0:
        message = f"{name} must be a positive integer, got {value!r}."
        raise ConfigError(message)
    return number
