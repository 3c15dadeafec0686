from __future__ import annotations

ANONYMOUS_NAME = "Anonymous"


def normalize_display_name(raw: str | None) -> str:
    name = (raw or "").strip()
    return name or ANONYMOUS_NAME


def normalize_key(raw: str) -> str:
    """Badge/quest keys: lowercase, spaces and dashes collapsed to underscores."""
    key = raw.strip().lower().replace("-", " ")
    return "_".join(key.split())

