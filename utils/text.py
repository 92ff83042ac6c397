from __future__ import annotations

import re


def split_names(text: str) -> list[str]:
    """Names separated by whitespace, commas or semicolons; duplicates are kept."""
    return [part for part in re.split(r"[\s,;]+", (text or "").strip()) if part]


def short_list(lines: list[str], *, limit: int = 50) -> str:
    if not lines:
        return "-"
    if len(lines) <= limit:
        return "\n".join(lines)
    return "\n".join(lines[:limit]) + f"\n... +{len(lines) - limit} more"


def clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)] + "..."
