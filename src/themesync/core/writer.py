"""
Write a single setting back into a parsed theme document.

The inverse of the extractor for one row: given the coordinates a row was
extracted under, locate the same spot in the document and replace the value.
Used when a spreadsheet edit is pushed back to the theme.
"""

from __future__ import annotations

import logging
from typing import Any

from themesync.core.extractor import FileCategory

logger = logging.getLogger(__name__)

_CURRENT_SECTIONS_PREFIX = "current.sections."


def _set_in_section(
    sections: Any, section: str, block: str, setting: str, value: Any
) -> bool:
    if not isinstance(sections, dict) or not isinstance(sections.get(section), dict):
        logger.info("Section %s not found in file", section)
        return False

    target = sections[section]
    if block:
        blocks = target.get("blocks")
        if not isinstance(blocks, dict) or not isinstance(blocks.get(block), dict):
            logger.info("Block %s not found in section %s", block, section)
            return False
        target = blocks[block]

    settings = target.get("settings")
    if not isinstance(settings, dict):
        settings = target["settings"] = {}
    settings[setting] = value
    return True


def _set_in_settings_data(
    document: dict[str, Any], section: str, block: str, setting: str, value: Any
) -> bool:
    if section == "root":
        document[setting] = value
        return True

    current = document.get("current")
    if section == "current":
        if not isinstance(current, dict):
            return False
        current[setting] = value
        return True

    if section.startswith(_CURRENT_SECTIONS_PREFIX):
        if not isinstance(current, dict):
            return False
        name = section.removeprefix(_CURRENT_SECTIONS_PREFIX)
        return _set_in_section(current.get("sections"), name, block, setting, value)

    if section.startswith("current.") and isinstance(document.get(section), dict):
        document[section][setting] = value
        return True

    return _set_in_section(document.get("sections"), section, block, setting, value)


def _set_in_locale(document: dict[str, Any], section: str, setting: str, value: Any) -> bool:
    # Top-level leaves are extracted with section == setting.
    if section == setting and setting in document and not isinstance(document[setting], dict):
        document[setting] = value
        return True

    node: Any = document
    for part in section.split("."):
        if not isinstance(node, dict) or not isinstance(node.get(part), dict):
            logger.info("Locale path %s not found in file", section)
            return False
        node = node[part]
    node[setting] = value
    return True


def apply_setting(
    document: dict[str, Any],
    file_path: str,
    section: str,
    block: str,
    setting: str,
    value: Any,
) -> bool:
    """
    Set one setting in a parsed theme document, in place.

    Returns:
        True if the document was changed, False if the section, block or
        locale path does not exist
    """
    category = FileCategory.from_path(file_path)
    if category is FileCategory.SETTINGS_DATA:
        return _set_in_settings_data(document, section, block, setting, value)
    if category is FileCategory.LOCALE:
        return _set_in_locale(document, section, setting, value)
    return _set_in_section(document.get("sections"), section, block, setting, value)
