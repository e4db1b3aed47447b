# core/utils.py

import re


def sanitize(data: dict) -> dict:
    """
    Sanitize dictionary data:
    - Empty strings → None
    - Preserve booleans, None values
    - Strip string whitespace
    Numeric-looking strings stay strings (room numbers, floor ids).
    """
    clean = {}

    for k, v in data.items():
        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped or None
            continue

        # For other types, keep as-is
        clean[k] = v

    return clean


def slugify(value: str, fallback: str = "user") -> str:
    """"Jane Doe <jane@x.io>" -> "jane-doe-jane-x-io" (blob folder names)."""
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug or fallback
