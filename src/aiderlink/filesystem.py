"""Filesystem helpers for scope resolution and path handling.

Remote paths use the ``/method:host:/local/path`` form (multi-hop
``/ssh:a|sudo:b:/path`` included). They are never probed on the local
filesystem.
"""

from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path

from aiderlink.errors import TooManyFilesError

_REMOTE_RE = re.compile(r"^(/[A-Za-z][\w-]*:[^/]*:)(.*)$")

VCS_MARKERS = (".git",)


def is_remote(path: str) -> bool:
    """True for ``/method:host:/path`` style remote paths."""
    return bool(_REMOTE_RE.match(path))


def remote_prefix(path: str) -> str:
    """The ``/method:host:`` part of a remote path, or ``""``."""
    match = _REMOTE_RE.match(path)
    return match.group(1) if match else ""


def localize(path: str) -> str:
    """Return the filesystem-local segment of ``path``."""
    match = _REMOTE_RE.match(path)
    if match:
        return match.group(2) or "/"
    return path


def normalize_dir(path: str) -> str:
    """Normalize a directory path into a scope key.

    Local paths become absolute with ``~`` expanded and no trailing
    separator. Remote paths keep their prefix and get a normalized
    local part.
    """
    if is_remote(path):
        local = posixpath.normpath(localize(path))
        return remote_prefix(path) + local
    return os.path.abspath(os.path.expanduser(path))


def working_directory(path: str) -> str:
    """Directory a path belongs to: the path itself if it is a directory."""
    normalized = normalize_dir(path)
    if is_remote(normalized):
        # Cannot stat remotely; a trailing component with a dot is a file.
        prefix, local = remote_prefix(normalized), localize(normalized)
        if "." in posixpath.basename(local):
            local = posixpath.dirname(local)
        return prefix + local
    if os.path.isdir(normalized):
        return normalized
    return os.path.dirname(normalized)


def is_ancestor_or_equal(ancestor: str, path: str) -> bool:
    """True when ``ancestor`` is ``path`` or one of its parent directories."""
    if ancestor == path:
        return True
    sep = "/" if is_remote(ancestor) else os.sep
    base = ancestor if ancestor.endswith(sep) else ancestor + sep
    return path.startswith(base)


def scope_exists(path: str) -> bool:
    """Whether a scope directory still exists (remote scopes are assumed to)."""
    return is_remote(path) or os.path.isdir(path)


def find_project_root(directory: str) -> str | None:
    """Find the version-control root above ``directory``.

    Falls back to the directory itself when no VCS marker is found.
    Returns None when ``directory`` is not a usable directory.
    """
    if not directory:
        return None
    if is_remote(directory):
        return directory
    if not os.path.isdir(directory):
        return None

    current = Path(directory)
    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in VCS_MARKERS):
            return str(candidate)
    return str(current)


def relative_to_root(path: str, root: str) -> str:
    """Express ``path`` relative to ``root`` using forward slashes."""
    return Path(os.path.relpath(path, root)).as_posix()


def collect_directory_files(
    directory: str,
    *,
    suffix: str | None = None,
    max_files: int,
    ignore_dirs: list[str] | None = None,
) -> list[str]:
    """List regular files under ``directory`` for a bulk add.

    Args:
        directory: Directory to scan recursively.
        suffix: Only include files with this suffix (e.g. ".py").
        max_files: Reject the scan when more candidates than this are found.
        ignore_dirs: Directory names that are never descended into.

    Returns:
        Sorted absolute file paths.

    Raises:
        TooManyFilesError: If the candidate count exceeds ``max_files``.
    """
    ignored = set(ignore_dirs or ())
    found: list[str] = []

    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if d not in ignored)
        for name in files:
            if suffix and not name.endswith(suffix):
                continue
            path = os.path.join(root, name)
            if os.path.isfile(path):
                found.append(path)

    if len(found) > max_files:
        raise TooManyFilesError(directory, len(found), max_files)

    return sorted(found)
