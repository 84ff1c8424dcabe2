"""Shared pytest fixtures for rolecheck tests."""

from __future__ import annotations

import dataclasses
import pathlib
import textwrap

import pygit2
import pytest


@dataclasses.dataclass(slots=True)
class RoleBuilder:
    """Write role files beneath a temporary role directory."""

    path: pathlib.Path
    name: str = "foo"

    def write(self, relative_path: str, contents: str | bytes) -> pathlib.Path:
        """Create ``relative_path`` with dedented text or raw bytes."""
        target = self.path / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(contents, bytes):
            target.write_bytes(contents)
        else:
            target.write_text(textwrap.dedent(contents).lstrip(), encoding="utf-8")
        return target

    def write_minimal(self) -> RoleBuilder:
        """Create a role that satisfies every convention."""
        variable = f"{self.name}_packages"
        self.write(
            "defaults/main.yml",
            f"""
            ---
            {variable}:
              - "curl"
            """,
        )
        self.write(
            "tasks/main.yml",
            f"""
            ---
            - name: Install packages
              ansible.builtin.package:
                name: "{{{{ {variable} }}}}"
            """,
        )
        return self


@pytest.fixture
def role(tmp_path: pathlib.Path) -> RoleBuilder:
    """Return a builder for a role named ``foo``."""
    path = tmp_path / "ansible-role-foo"
    path.mkdir()
    return RoleBuilder(path=path)


@pytest.fixture
def git_role(role: RoleBuilder) -> RoleBuilder:
    """Turn the role directory into a git work tree."""
    repository = pygit2.init_repository(str(role.path), initial_head="main")
    config = repository.config
    config["user.name"] = "Test User"
    config["user.email"] = "test@example.com"
    return role
