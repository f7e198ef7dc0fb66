"""
Helpers for turning a GitHub push payload into a list of theme files.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

THEME_PATH_PREFIXES: tuple[str, ...] = (
    "assets/",
    "config/",
    "layout/",
    "locales/",
    "sections/",
    "snippets/",
    "templates/",
)

_BRANCH_REF_PREFIX = "refs/heads/"


def is_theme_file(path: str) -> bool:
    """Check whether a repository path belongs to the Shopify theme."""
    return path.startswith(THEME_PATH_PREFIXES)


def filter_theme_files(paths: Iterable[str]) -> list[str]:
    """Keep theme-relevant paths, preserving order."""
    return [p for p in paths if is_theme_file(p)]


def changed_files_from_push(payload: dict[str, Any]) -> list[str]:
    """
    Collect added and modified files across all commits of a push.

    Files appear once, in the order they were first seen. Removed files are
    not synced.
    """
    seen: dict[str, None] = {}
    commits = payload.get("commits")
    if not isinstance(commits, list):
        return []

    for commit in commits:
        if not isinstance(commit, dict):
            continue
        for key in ("added", "modified"):
            files = commit.get(key)
            if not isinstance(files, list):
                continue
            for path in files:
                if isinstance(path, str):
                    seen.setdefault(path, None)
    return list(seen)


def branch_from_ref(ref: Any) -> str | None:
    """``refs/heads/main`` -> ``main``. Anything but a non-empty string gives None."""
    if not ref or not isinstance(ref, str):
        return None
    return ref.removeprefix(_BRANCH_REF_PREFIX)
