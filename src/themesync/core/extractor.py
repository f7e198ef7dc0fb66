"""
Settings extraction for Shopify theme files.

Flattens the JSON content of a theme file into ``SettingRecord`` rows. The
traversal depends on the kind of file, computed once from its path:

- ``config/settings_data.json``: global theme settings (``current`` payload,
  presets, dotted ``current.*`` keys)
- ``locales/*.json``: arbitrarily nested translation strings
- anything else: a template / section group with ``sections`` and ``blocks``

Records are produced in document key order, depth-first, so the output is
stable for a given input. Malformed content never raises: the failure is
logged and the file yields no records.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from enum import Enum
from typing import Any

from themesync.core.errors import ThemeFileParseError
from themesync.core.models import SettingRecord, ThemeFileContent

logger = logging.getLogger(__name__)

SETTINGS_DATA_PATH = "config/settings_data.json"
LOCALES_PREFIX = "locales/"

_COMMENT_OPEN = "/*"
_COMMENT_CLOSE = "*/"


class FileCategory(str, Enum):
    """How a theme file's JSON is traversed."""

    SETTINGS_DATA = "settings_data"
    LOCALE = "locale"
    TEMPLATE = "template"

    @classmethod
    def from_path(cls, file_path: str) -> FileCategory:
        if file_path == SETTINGS_DATA_PATH:
            return cls.SETTINGS_DATA
        if file_path.startswith(LOCALES_PREFIX) and file_path.endswith(".json"):
            return cls.LOCALE
        return cls.TEMPLATE


# =============================================================================
# Preprocessing
# =============================================================================


def clean_content(content: str) -> str:
    """
    Strip the leading comment block and any trailing non-JSON text.

    Shopify prefixes generated JSON templates with a ``/* ... */`` banner;
    everything after the last closing brace is discarded as well.
    """
    cleaned = content
    if cleaned.startswith(_COMMENT_OPEN):
        comment_end = cleaned.find(_COMMENT_CLOSE)
        if comment_end != -1:
            cleaned = cleaned[comment_end + len(_COMMENT_CLOSE) :].strip()

    last_brace = cleaned.rfind("}")
    if last_brace != -1:
        cleaned = cleaned[: last_brace + 1]
    return cleaned


def parse_theme_json(content: str, file_path: str) -> dict[str, Any]:
    """
    Clean and parse a theme file.

    Raises:
        ThemeFileParseError: Content is not a JSON object
    """
    try:
        document = json.loads(clean_content(content))
    except json.JSONDecodeError as e:
        raise ThemeFileParseError(file_path, str(e)) from e

    if not isinstance(document, dict):
        raise ThemeFileParseError(
            file_path, f"expected a JSON object, got {type(document).__name__}"
        )
    return document


# =============================================================================
# Template sections and blocks
# =============================================================================


def _settings_records(
    file_path: str, section: str, block: str, settings: Any
) -> Iterator[SettingRecord]:
    if not isinstance(settings, dict):
        return
    for setting, value in settings.items():
        yield SettingRecord(file_path, section, block, setting, value)


def _block_records(file_path: str, section: str, blocks: Any) -> Iterator[SettingRecord]:
    if not isinstance(blocks, dict):
        return
    for block_key, block in blocks.items():
        if not isinstance(block, dict):
            continue
        yield from _settings_records(file_path, section, block_key, block.get("settings"))
        # Blocks may nest their own blocks (theme blocks); report them under their own key.
        yield from _block_records(file_path, section, block.get("blocks"))


def _section_records(
    file_path: str, sections: dict[str, Any], prefix: str = ""
) -> Iterator[SettingRecord]:
    for section_key, section in sections.items():
        if not isinstance(section, dict):
            continue
        section_name = f"{prefix}{section_key}"
        yield from _settings_records(file_path, section_name, "", section.get("settings"))
        yield from _block_records(file_path, section_name, section.get("blocks"))


def _extract_template(document: dict[str, Any], file_path: str) -> Iterator[SettingRecord]:
    sections = document.get("sections")
    if isinstance(sections, dict):
        yield from _section_records(file_path, sections)


# =============================================================================
# config/settings_data.json
# =============================================================================


def _extract_settings_data(document: dict[str, Any], file_path: str) -> Iterator[SettingRecord]:
    for key, value in document.items():
        if key == "current" and isinstance(value, dict):
            for entry_key, entry in value.items():
                if entry_key == "sections":
                    if isinstance(entry, dict):
                        yield from _section_records(file_path, entry, prefix="current.sections.")
                elif not isinstance(entry, dict):
                    yield SettingRecord(file_path, "current", "", entry_key, entry)
        elif key == "sections" and isinstance(value, dict):
            yield from _section_records(file_path, value)
        elif key.startswith("current.") and isinstance(value, dict):
            for setting, setting_value in value.items():
                yield SettingRecord(file_path, key, "", setting, setting_value)
        elif not isinstance(value, dict):
            yield SettingRecord(file_path, "root", "", key, value)


# =============================================================================
# locales/*.json
# =============================================================================


def _walk_locale(node: dict[str, Any], file_path: str, path: str) -> Iterator[SettingRecord]:
    for key, value in node.items():
        if isinstance(value, dict):
            yield from _walk_locale(value, file_path, f"{path}.{key}" if path else key)
        elif path or key:
            yield SettingRecord(file_path, path or key, "", key, value)
        else:
            logger.warning("Skipping top-level locale entry with an empty key in %s", file_path)


def _extract_locale(document: dict[str, Any], file_path: str) -> Iterator[SettingRecord]:
    yield from _walk_locale(document, file_path, "")


_HANDLERS: dict[FileCategory, Callable[[dict[str, Any], str], Iterator[SettingRecord]]] = {
    FileCategory.SETTINGS_DATA: _extract_settings_data,
    FileCategory.LOCALE: _extract_locale,
    FileCategory.TEMPLATE: _extract_template,
}


# =============================================================================
# Public API
# =============================================================================


def extract_document(document: dict[str, Any], file_path: str) -> list[SettingRecord]:
    """Flatten an already parsed theme document."""
    handler = _HANDLERS[FileCategory.from_path(file_path)]
    return list(handler(document, file_path))


def extract_settings(content: str, file_path: str) -> list[SettingRecord]:
    """
    Extract all settings from a theme file's raw content.

    Args:
        content: Raw file text, possibly with a leading comment banner
        file_path: Theme-relative path, e.g. ``templates/index.json``

    Returns:
        Setting records in document order; empty if the content is malformed
    """
    try:
        document = parse_theme_json(content, file_path)
    except ThemeFileParseError as e:
        logger.error("Error extracting settings from %s: %s", file_path, e.reason)
        return []

    records = extract_document(document, file_path)
    logger.info("Extracted %d settings from %s", len(records), file_path)
    return records


def extract_many(files: Iterable[ThemeFileContent]) -> list[SettingRecord]:
    """Extract and concatenate records for several files, in input order."""
    records: list[SettingRecord] = []
    for file in files:
        if file.content is None:
            logger.warning("No content found for file: %s", file.filename)
            continue
        records.extend(extract_settings(file.content, file.filename))
    return records
