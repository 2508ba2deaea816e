"""Spreadsheet reporting for summarized leads."""
from __future__ import annotations

from .exporters import export_report, numbers_to_dataframes, summary_to_dataframe
from .formatting import BADGE_GLYPHS, badge_glyph, normalize_person_name

__all__ = [
    "BADGE_GLYPHS",
    "badge_glyph",
    "export_report",
    "normalize_person_name",
    "numbers_to_dataframes",
    "summary_to_dataframe",
]
