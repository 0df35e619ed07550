"""Semantic version helpers for process files.

Two parsers live here on purpose:

- ``increment_version`` is strict: anything that is not three integers
  restarts at ``1.0.0``.
- ``bump_patch_lenient`` is what the node service applies on every
  advanced-details update: each unparseable component falls back to its
  default (major 1, minor 0, patch 0) and the patch is incremented, so a
  missing or garbled version becomes ``1.0.1``.
"""

import re
from datetime import datetime, timezone

DEFAULT_VERSION = "1.0.0"
INCREMENT_TYPES = ("major", "minor", "patch")

_CHANGE_INCREMENT = {
    "diagram": "patch",
    "process": "minor",
    "advanced": "patch",
    "tables": "patch",
}

_CHANGE_DESCRIPTIONS = {
    "diagram": "Diagram elements modified",
    "process": "Process details updated",
    "advanced": "Advanced details modified",
    "tables": "Table data updated",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def increment_version(current_version: str | None, increment_type: str = "patch") -> str:
    """Increment ``major.minor.patch``; an invalid version restarts at 1.0.0."""
    parts = (current_version or "").split(".")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return DEFAULT_VERSION
    major, minor, patch = (int(p) for p in parts)
    if increment_type == "major":
        return f"{major + 1}.0.0"
    if increment_type == "minor":
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def auto_increment_version(current_version: str | None, change_type: str) -> str:
    """Pick the increment for a kind of edit (process details bump minor)."""
    return increment_version(current_version, _CHANGE_INCREMENT.get(change_type, "patch"))


def _component(raw: str | None, default: int) -> int:
    match = _LEADING_INT.match(raw or "")
    if not match:
        return default
    return int(match.group(1))


def bump_patch_lenient(current_version: str | None) -> str:
    """Return the next patch version, tolerating missing/garbled input.

    >>> bump_patch_lenient("1.0.0")
    '1.0.1'
    >>> bump_patch_lenient(None)
    '1.0.1'
    >>> bump_patch_lenient("2.x")
    '2.0.1'
    """
    parts = (current_version or DEFAULT_VERSION).split(".")
    parts += [None] * (3 - len(parts))
    major = _component(parts[0], 1)
    minor = _component(parts[1], 0)
    patch = _component(parts[2], 0)
    return f"{major}.{minor}.{patch + 1}"


def create_change_description(change_type: str, additional_info: str | None = None) -> str:
    base = _CHANGE_DESCRIPTIONS.get(change_type, "Process updated")
    if additional_info:
        return f"{base}: {additional_info}"
    return base


def current_date_string() -> str:
    """Today as ``YYYY-MM-DD`` (UTC)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def current_datetime_string() -> str:
    """Now as ``YYYY-MM-DD HH:MM:SS`` (UTC)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
