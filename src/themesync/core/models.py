"""
Data model shared by the resolver, the extractor and the delivery layer.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ThemeRole(str, Enum):
    """Publication state of a theme as reported by the Admin API."""

    MAIN = "MAIN"
    PUBLISHED = "PUBLISHED"
    UNPUBLISHED = "UNPUBLISHED"
    DEVELOPMENT = "DEVELOPMENT"
    DEMO = "DEMO"
    ARCHIVED = "ARCHIVED"
    LOCKED = "LOCKED"

    @classmethod
    def parse(cls, value: str | ThemeRole | None) -> ThemeRole | str:
        """Map an API role string onto the enum, keeping unknown roles as raw strings."""
        if isinstance(value, ThemeRole):
            return value
        if not value:
            return ""
        try:
            return cls(value.upper())
        except ValueError:
            return value


@dataclass(frozen=True)
class ThemeCandidate:
    """A theme returned by the theme listing query."""

    id: str
    name: str
    role: ThemeRole | str = ""

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, ThemeRole) else str(self.role)

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> ThemeCandidate:
        """Build from a GraphQL ``themes.nodes`` entry."""
        return cls(
            id=str(node.get("id", "")),
            name=str(node.get("name", "")),
            role=ThemeRole.parse(node.get("role")),
        )

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "role": self.role_name}


@dataclass(frozen=True)
class SettingRecord:
    """
    One flattened setting of a theme file.

    ``block`` is empty for section-level settings. Records have no identity
    beyond their fields; duplicates are legal.
    """

    file: str
    section: str
    block: str
    setting: str
    value: Any

    @property
    def key(self) -> tuple[str, str, str, str]:
        """Update-in-place key used by the spreadsheet."""
        return (self.file, self.section, self.block, self.setting)

    def to_row(self) -> list[Any]:
        """Spreadsheet row; structured values are sent as JSON text."""
        value = self.value
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        return [self.file, self.section, self.block, self.setting, value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "section": self.section,
            "block": self.block,
            "setting": self.setting,
            "value": self.value,
        }


@dataclass(frozen=True)
class ThemeFileContent:
    """Raw text of one theme file. ``content`` is None for files without a text body."""

    filename: str
    content: str | None
