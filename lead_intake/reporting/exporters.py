"""Export utilities for lead summaries."""
from __future__ import annotations

from pathlib import Path
from typing import List, MutableMapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..models import Badge, LeadSummary
from .formatting import badge_glyph, normalize_person_name

PathLike = Union[str, Path]

SUMMARY_COLUMNS = ["Badge", "Lead", "Total Premium", "Listed #'s", "+ Policy #'s"]
VALID_COLUMNS = ["Lead", "Phone"]
FLAGGED_COLUMNS = ["Lead", "Phone", "Flag"]

SUMMARY_SHEET = "Summary"
NUMBERS_SHEET = "AllNumbers"
_CURRENCY_FORMAT = "$#,##0.00;[Red]-$#,##0.00;$0.00"

_HEADER_TINT = "D9EAF7"
_POLICY_NUMBERS_TINT = "E8F5E9"
_DIVIDER_COLOR = "CCCCCC"
_BADGE_TINTS = (
    (Badge.STAR, "FFF4CC"),
    (Badge.RED, "FDEAEA"),
    (Badge.PURPLE, "F3E8FD"),
    (Badge.ORANGE, "FFF1E6"),
)


def summary_to_dataframe(summaries: Sequence[LeadSummary]) -> pd.DataFrame:
    """One row per lead: badge glyph, name, premium and number counts."""

    records = [
        {
            "Badge": badge_glyph(summary.badge),
            "Lead": normalize_person_name(summary.primary_name),
            "Total Premium": float(summary.monthly_premium_total),
            "Listed #'s": len(summary.primary_numbers),
            "+ Policy #'s": len(summary.extra_numbers),
        }
        for summary in summaries
    ]
    return pd.DataFrame(records, columns=SUMMARY_COLUMNS)


def numbers_to_dataframes(summaries: Sequence[LeadSummary]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Return ``(valid, flagged)`` number listings across every lead."""

    valid_rows: List[dict] = []
    flagged_rows: List[dict] = []
    for summary in summaries:
        lead = normalize_person_name(summary.primary_name)
        for candidate in summary.phone_set.valid_numbers:
            valid_rows.append({"Lead": lead, "Phone": candidate.display()})
        for candidate in summary.phone_set.flagged_numbers:
            flagged_rows.append({"Lead": lead, "Phone": candidate.display(), "Flag": candidate.flag_text()})
    return (
        pd.DataFrame(valid_rows, columns=VALID_COLUMNS),
        pd.DataFrame(flagged_rows, columns=FLAGGED_COLUMNS),
    )


def export_report(
    path: PathLike,
    summaries: Sequence[LeadSummary],
    *,
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write the summary and number listings to an Excel workbook or CSV files."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    summary_frame = summary_to_dataframe(summaries)
    valid_frame, flagged_frame = numbers_to_dataframes(summaries)
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = output_path.suffix.lower()

    if suffix == ".csv":
        summary_frame.to_csv(output_path, index=False, **exporter_kwargs)
        numbers_frame = pd.concat(
            [valid_frame.assign(Section="Valid"), flagged_frame.assign(Section="Flagged")],
            ignore_index=True,
        )
        numbers_frame = numbers_frame.reindex(columns=["Section", *FLAGGED_COLUMNS])
        numbers_frame.to_csv(numbers_csv_path(output_path), index=False, **exporter_kwargs)
        return output_path

    if suffix in {".xlsx", ".xlsm"}:
        _write_workbook(output_path, summary_frame, valid_frame, flagged_frame)
        return output_path

    raise ValueError(f"Unsupported export file extension: {suffix}")


def numbers_csv_path(path: PathLike) -> Path:
    path = Path(path)
    return path.with_name(f"{path.stem}_numbers.csv")


def _write_workbook(
    path: Path,
    summary_frame: pd.DataFrame,
    valid_frame: pd.DataFrame,
    flagged_frame: pd.DataFrame,
) -> None:
    from openpyxl.formatting.rule import FormulaRule
    from openpyxl.styles import Alignment, Border, Font, Side

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        summary_frame.to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)
        valid_frame.to_excel(writer, sheet_name=NUMBERS_SHEET, index=False, startrow=1, startcol=0)
        flagged_frame.to_excel(writer, sheet_name=NUMBERS_SHEET, index=False, startrow=1, startcol=len(VALID_COLUMNS))

        summary_sheet = writer.sheets[SUMMARY_SHEET]
        summary_sheet.freeze_panes = "A2"
        last_row = len(summary_frame) + 1
        for row in range(2, last_row + 1):
            summary_sheet.cell(row=row, column=3).number_format = _CURRENCY_FORMAT
        if last_row >= 2:
            tinted = f"A2:E{last_row}"
            # A lead with policy numbers is green whatever its badge.
            summary_sheet.conditional_formatting.add(
                tinted, FormulaRule(formula=["$E2>0"], fill=_fill(_POLICY_NUMBERS_TINT), stopIfTrue=True)
            )
            for badge, color in _BADGE_TINTS:
                summary_sheet.conditional_formatting.add(
                    tinted, FormulaRule(formula=[f'$A2="{badge_glyph(badge)}"'], fill=_fill(color))
                )

        numbers_sheet = writer.sheets[NUMBERS_SHEET]
        numbers_sheet["A1"] = "Valid Numbers"
        numbers_sheet["C1"] = "Flagged Numbers"
        numbers_sheet.merge_cells("A1:B1")
        numbers_sheet.merge_cells("C1:E1")
        for row in numbers_sheet["A1:E2"]:
            for cell in row:
                cell.fill = _fill(_HEADER_TINT)
        for cell in ("A1", "C1"):
            numbers_sheet[cell].font = Font(bold=True)
            numbers_sheet[cell].alignment = Alignment(horizontal="center")
        divider = Side(style="medium", color=_DIVIDER_COLOR)
        for row in range(1, max(len(valid_frame), len(flagged_frame)) + 3):
            cell = numbers_sheet.cell(row=row, column=len(VALID_COLUMNS) + 1)
            current = cell.border
            cell.border = Border(left=divider, right=current.right, top=current.top, bottom=current.bottom)
        numbers_sheet.freeze_panes = "A3"


def _fill(color: str):
    from openpyxl.styles import PatternFill

    return PatternFill(start_color=color, end_color=color, fill_type="solid")


__all__ = [
    "export_report",
    "numbers_csv_path",
    "numbers_to_dataframes",
    "summary_to_dataframe",
]
