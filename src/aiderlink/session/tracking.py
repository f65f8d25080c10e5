"""Per-session bookkeeping of files in the assistant's context.

The assistant's ``/ls`` listing is authoritative; it looks like::

    Repo files not in the chat:
      README.md
    Read-only files:
      docs/api.md
    Files in chat:
      src/main.py
"""

from __future__ import annotations

import os
import posixpath
from collections.abc import Iterable
from dataclasses import dataclass

from aiderlink.filesystem import is_ancestor_or_equal, is_remote, localize, relative_to_root

READ_ONLY_LABEL = "Read-only files:"
IN_CHAT_LABEL = "Files in chat:"

READ_ONLY_SUFFIX = " (read-only)"


@dataclass(frozen=True)
class TrackedFile:
    """A file the assistant has in its context."""

    path: str
    read_only: bool = False

    @property
    def display(self) -> str:
        return self.path + READ_ONLY_SUFFIX if self.read_only else self.path


def parse_listing(text: str, scope_root: str, *, remote: bool | None = None) -> list[TrackedFile]:
    """Extract tracked files from a ``/ls`` response.

    Only the read-only and in-chat sections count; any other unindented
    line ends the current section. Within a section every indented line
    contributes its first token. Local paths are checked for existence and
    made relative to ``scope_root``; remote paths are kept as they are.
    The result is de-duplicated in first-occurrence order.
    """
    if remote is None:
        remote = is_remote(scope_root)

    files: list[TrackedFile] = []
    seen: set[TrackedFile] = set()
    read_only: bool | None = None  # None: outside a tracked section

    for line in text.splitlines():
        if not line.strip():
            continue
        if not line[0].isspace():
            label = line.strip()
            if label == READ_ONLY_LABEL:
                read_only = True
            elif label == IN_CHAT_LABEL:
                read_only = False
            else:
                read_only = None
            continue
        if read_only is None:
            continue

        token = line.split()[0]
        if remote:
            entry = TrackedFile(token, read_only)
        else:
            absolute = os.path.join(scope_root, token)
            if not os.path.exists(absolute):
                continue
            entry = TrackedFile(relative_to_root(absolute, scope_root), read_only)

        if entry not in seen:
            seen.add(entry)
            files.append(entry)

    return files


class FileTracker:
    """Ordered, duplicate-free set of the files a session has in context."""

    def __init__(self, scope_root: str) -> None:
        self._root = scope_root
        self._remote = is_remote(scope_root)
        self._files: dict[str, TrackedFile] = {}

    @property
    def files(self) -> list[TrackedFile]:
        return list(self._files.values())

    @property
    def paths(self) -> list[str]:
        """Display strings, read-only entries suffixed."""
        return [f.display for f in self._files.values()]

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self):
        return iter(self._files.values())

    def key(self, path: str) -> str:
        """Normalize a path to the form tracked entries are stored in."""
        if self._remote:
            local, root = localize(path), localize(self._root)
            if posixpath.isabs(local) and is_ancestor_or_equal(root, local):
                return posixpath.relpath(local, root)
            return local
        if os.path.isabs(path):
            return relative_to_root(path, self._root)
        return relative_to_root(os.path.join(self._root, path), self._root)

    def contains(self, path: str) -> bool:
        return self.key(path) in self._files

    def add(self, paths: Iterable[str], *, read_only: bool = False) -> None:
        for path in paths:
            if path:
                key = self.key(path)
                self._files[key] = TrackedFile(key, read_only)

    def discard(self, paths: Iterable[str]) -> None:
        for path in paths:
            if path:
                self._files.pop(self.key(path), None)

    def clear(self) -> None:
        self._files.clear()

    def refresh_from_listing(self, text: str) -> list[str]:
        """Replace the tracked set with the contents of a listing.

        Returns:
            The new tracked paths (display form).
        """
        entries = parse_listing(text, self._root, remote=self._remote)
        self._files = {}
        for entry in entries:
            # A file listed in both sections keeps its first entry
            self._files.setdefault(entry.path, entry)
        return self.paths

