# File: utils/record_utils.py
"""Structural update helpers for routine records.

Routine records are plain JSON-shaped dicts:

    {
        "id": "r-2024-01-05",
        "date": "2024-01-05",
        "sections": {"morning": {"gym": False}},
        "config": {"morning": {"gym": {...recurrence config...}}},
        "historical_completions": {"morning": {"2024-01-02": {"gym": True}}},
        "completion": 0.5,
    }

Every helper here returns a NEW record and copies only the containers on the
path it changes. Untouched sections and configs are shared with the input,
so callers must treat records as immutable values.

UTILS PURITY: NO `homeassistant.*` imports allowed.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

# Local copies of the record keys (mirrors const.py, kept here for purity)
KEY_ID = "id"
KEY_DATE = "date"
KEY_SECTIONS = "sections"
KEY_CONFIG = "config"
KEY_HISTORICAL = "historical_completions"
KEY_COMPLETION = "completion"


def _as_mapping(value: Any) -> Mapping[str, Any]:
    """Return `value` if it is a mapping, else an empty one.

    Stored records are user data. A null or mistyped container reads as empty
    instead of breaking every caller that walks the record.
    """
    return value if isinstance(value, Mapping) else {}


def get_record_id(record: Mapping[str, Any]) -> str:
    """Return the record id as a string."""
    return str(record.get(KEY_ID, ""))


def get_section_items(record: Mapping[str, Any], section: str) -> Mapping[str, Any]:
    """Return the live `{item_id: bool}` map for a section (empty if absent)."""
    return _as_mapping(_as_mapping(record.get(KEY_SECTIONS)).get(section))


def iter_sections(record: Mapping[str, Any]) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Yield `(section, items)` for every section of the record."""
    for section, items in _as_mapping(record.get(KEY_SECTIONS)).items():
        yield section, _as_mapping(items)


def get_section_history(record: Mapping[str, Any], section: str) -> Any:
    """Return the raw historical completions stored for a section, if any."""
    return _as_mapping(record.get(KEY_HISTORICAL)).get(section)


def get_live_flag(record: Mapping[str, Any], section: str, item_id: str) -> bool:
    """Return whether an item is checked in this record."""
    return bool(get_section_items(record, section).get(item_id, False))


def get_item_config(
    record: Mapping[str, Any], section: str, item_id: str
) -> dict[str, Any] | None:
    """Return the recurrence config of an item, or None if it has none."""
    section_config = _as_mapping(_as_mapping(record.get(KEY_CONFIG)).get(section))
    config = section_config.get(item_id)
    return config if isinstance(config, dict) else None


def iter_configured_items(
    record: Mapping[str, Any],
) -> Iterator[tuple[str, str, dict[str, Any]]]:
    """Yield `(section, item_id, config)` for every configured item."""
    for section, items in _as_mapping(record.get(KEY_CONFIG)).items():
        for item_id, config in _as_mapping(items).items():
            if isinstance(config, dict):
                yield section, item_id, config


def with_item_completion(
    record: Mapping[str, Any], section: str, item_id: str, completed: bool
) -> dict[str, Any]:
    """Return a copy of `record` with one live completion flag set."""
    sections = dict(_as_mapping(record.get(KEY_SECTIONS)))
    items = dict(_as_mapping(sections.get(section)))
    items[item_id] = bool(completed)
    sections[section] = items
    return {**record, KEY_SECTIONS: sections}


def with_item_config(
    record: Mapping[str, Any],
    section: str,
    item_id: str,
    fields: Mapping[str, Any],
    *,
    replace: bool = False,
) -> dict[str, Any]:
    """Return a copy of `record` with an item's config merged with `fields`.

    Args:
        record: Source record (not modified)
        section: Section id
        item_id: Item id
        fields: Config fields to write
        replace: When True the item's config becomes exactly `fields`
    """
    config = dict(_as_mapping(record.get(KEY_CONFIG)))
    section_config = dict(_as_mapping(config.get(section)))
    base = {} if replace else dict(_as_mapping(section_config.get(item_id)))
    base.update(fields)
    section_config[item_id] = base
    config[section] = section_config
    return {**record, KEY_CONFIG: config}


def with_completion_fraction(
    record: Mapping[str, Any], completion: float
) -> dict[str, Any]:
    """Return a copy of `record` with its completion fraction replaced."""
    return {**record, KEY_COMPLETION: completion}
