"""Display helpers used only at the reporting boundary."""
from __future__ import annotations

import re
from typing import Mapping, Optional

from ..models import Badge

BADGE_GLYPHS: Mapping[Badge, str] = {
    Badge.STAR: "⭐",
    Badge.WHITE: "⚪",
    Badge.PURPLE: "\U0001f7e3",
    Badge.ORANGE: "\U0001f7e0",
    Badge.RED: "\U0001f534",
}

_WORD_RE = re.compile(r"[^\W\d_][\w'’]*", re.UNICODE)


def badge_glyph(badge: Optional[Badge]) -> str:
    if badge is None:
        return ""
    return BADGE_GLYPHS.get(Badge(badge), "")


def _title_case(text: str) -> str:
    return _WORD_RE.sub(lambda match: match.group(0)[0].upper() + match.group(0)[1:].lower(), text)


def normalize_person_name(name: Optional[str]) -> str:
    """Turn ``"DOE, JANE Q"`` into ``"Jane Q Doe"``; title-case anything else."""

    text = " ".join((name or "").split())
    if not text:
        return ""
    if "," in text:
        last, rest = (part.strip() for part in text.split(",", 1))
        if last and rest:
            return f"{_title_case(rest)} {_title_case(last)}"
        text = last or rest
    return _title_case(text)


__all__ = ["BADGE_GLYPHS", "badge_glyph", "normalize_person_name"]
