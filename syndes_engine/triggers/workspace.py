"""Trigger scripts — Workspace path resolution.

Trigger paths are resolved inside a configured directory tree:

    /notes/todo.txt     from the work root
    home/notes          same, ``home`` names the work root
    notes/todo.txt      from the current directory (or the root)

``.`` is ignored and ``..`` never climbs above the root.
"""

from __future__ import annotations

import os
from pathlib import Path

from syndes_engine.exceptions import ResourceUnavailableError


class Workspace:
    def __init__(self, root: Path, current: Path | None = None) -> None:
        self.root = root.expanduser().resolve()
        current_dir = current.expanduser().resolve() if current else self.root
        # Ignore a current directory that lies outside the root.
        if current_dir != self.root and self.root not in current_dir.parents:
            current_dir = self.root
        self.current = current_dir

    @classmethod
    def from_config(cls, work_dir: Path | None, current_dir: Path | None = None) -> "Workspace | None":
        if work_dir is None:
            return None
        return cls(work_dir, current_dir)

    def resolve(self, path: str) -> Path | None:
        """Return the existing path *path* refers to, or None."""
        components = [c for c in path.strip().split("/") if c]
        if path.strip().startswith("/") or (components and components[0].lower() == "home"):
            cursor = self.root
            if components and components[0].lower() == "home":
                components = components[1:]
        else:
            cursor = self.current

        for component in components:
            if component == ".":
                continue
            if component == "..":
                if cursor != self.root:
                    cursor = cursor.parent
                continue
            candidate = cursor / component
            if not candidate.exists():
                return None
            cursor = candidate
        return cursor

    @staticmethod
    def total_size(path: Path) -> int:
        """Size of a file, or the recursive size of every file under a directory."""
        if path.is_file():
            return path.stat().st_size
        total = 0
        for dirpath, _dirnames, filenames in os.walk(path):
            for name in filenames:
                try:
                    total += (Path(dirpath) / name).stat().st_size
                except OSError:
                    continue
        return total


def require_workspace(workspace: Workspace | None) -> Workspace:
    if workspace is None:
        raise ResourceUnavailableError(
            "work directory not configured (set workspace.work_dir)"
        )
    return workspace
