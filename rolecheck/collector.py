"""Collect the files of a role repository into an immutable snapshot."""

from __future__ import annotations

import logging
import os
import typing as typ
from pathlib import Path, PurePosixPath

import pygit2

from .errors import CollectionError
from .models import (
    CATEGORIES,
    STRUCTURED_SUFFIXES,
    RoleRepository,
    SourceFile,
    UnreadableFile,
)

if typ.TYPE_CHECKING:
    from .models import Category

_logger = logging.getLogger(__name__)

ROLE_NAME_PREFIXES = ("ansible-role-", "ansible_role_")
TEMPLATES_CATEGORY = "templates"


def collect_role(
    root: Path | str,
    *,
    role_name: str | None = None,
    respect_gitignore: bool = True,
) -> RoleRepository:
    """Walk ``root`` and return the classified, path-sorted file snapshot.

    Raises:
        CollectionError: when ``root`` is missing, not a directory or unreadable.

    """
    path = Path(root).expanduser()
    _ensure_readable_directory(path)
    resolved_root = path.resolve()
    ignored = _gitignore_filter(resolved_root) if respect_gitignore else None

    files: list[SourceFile] = []
    unreadable: list[UnreadableFile] = []
    directories: list[str] = []
    for category in CATEGORIES:
        subdirectory = resolved_root / category
        if not subdirectory.is_dir():
            continue
        directories.append(category)
        for file_path in _walk_files(subdirectory):
            relpath = file_path.relative_to(resolved_root).as_posix()
            if not _is_collectable(relpath, category):
                continue
            if ignored is not None and ignored(file_path):
                _logger.debug("skipping git-ignored file %s", relpath)
                continue
            try:
                content = file_path.read_bytes()
            except OSError as error:
                reason = error.strerror or str(error)
                _logger.warning("cannot read %s: %s", relpath, reason)
                unreadable.append(UnreadableFile(relpath=relpath, reason=reason))
                continue
            files.append(
                SourceFile(
                    path=file_path, relpath=relpath, category=category, content=content
                )
            )

    name = normalize_role_name(role_name or resolved_root.name)
    _logger.debug("collected %d files for role %r", len(files), name)
    repository = RoleRepository(
        root=resolved_root,
        role_name=name,
        files=(),
        directories=tuple(directories),
        unreadable=tuple(unreadable),
    )
    return repository.with_files(files)


def normalize_role_name(name: str) -> str:
    """Derive the variable prefix stem from a role directory name."""
    stem = name.strip()
    for prefix in ROLE_NAME_PREFIXES:
        if stem.startswith(prefix) and len(stem) > len(prefix):
            stem = stem[len(prefix) :]
            break
    return stem.replace("-", "_").replace(".", "_").lower()


def _ensure_readable_directory(path: Path) -> None:
    if not path.exists():
        raise CollectionError(path, "path does not exist")
    if not path.is_dir():
        raise CollectionError(path, "path is not a directory")
    if not os.access(path, os.R_OK | os.X_OK):
        raise CollectionError(path, "directory is not readable")


def _walk_files(directory: Path) -> typ.Iterator[Path]:
    """Yield regular files below ``directory``, following symlinks once."""
    seen: set[Path] = set()
    for current, dirnames, filenames in os.walk(directory, followlinks=True):
        real = Path(current).resolve()
        if real in seen:
            _logger.debug("skipping symlink cycle at %s", current)
            dirnames[:] = []
            continue
        seen.add(real)
        dirnames.sort()
        for filename in sorted(filenames):
            candidate = Path(current, filename)
            if candidate.is_file():
                yield candidate


def _is_collectable(relpath: str, category: Category) -> bool:
    if category == TEMPLATES_CATEGORY:
        return True
    return PurePosixPath(relpath).suffix.lower() in STRUCTURED_SUFFIXES


def _gitignore_filter(root: Path) -> typ.Callable[[Path], bool] | None:
    """Return a predicate for git-ignored paths when root is in a work tree."""
    try:
        discovered = pygit2.discover_repository(str(root))
    except pygit2.GitError:
        return None
    if discovered is None:
        return None
    try:
        repository = pygit2.Repository(discovered)
    except pygit2.GitError:
        return None
    workdir = repository.workdir
    if workdir is None:
        return None
    base = Path(workdir).resolve()

    def is_ignored(path: Path) -> bool:
        try:
            relative = path.resolve().relative_to(base).as_posix()
        except ValueError:
            return False
        return bool(repository.path_is_ignored(relative))

    return is_ignored
