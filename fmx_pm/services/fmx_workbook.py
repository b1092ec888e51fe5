"""openpyxl rendering of the FMX planned-maintenance import workbook.

The header geometry (text, order, merges, band colours) is what FMX's
importer keys on, so it is declared once here as data and the renderer only
walks it.
"""

from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

if TYPE_CHECKING:
    from fmx_pm.services.fmx_export import ExportRows

INSTRUCTIONS_SHEET = "Instructions"
TASKS_SHEET = "Time-based tasks"
OCCURRENCES_SHEET = "Occurrences"

INSTRUCTIONS_COLOR = "993366"

# (label, first column, last column, fill colour), 1-based inclusive
TASK_SECTIONS: tuple[tuple[str, int, int, str], ...] = (
    ("TASK", 1, 7, "1F4E78"),
    ("DAILY", 8, 8, "548235"),
    ("WEEKLY", 9, 16, "BF8F00"),
    ("MONTHLY", 17, 18, "C65911"),
    ("YEARLY", 19, 19, "7030A0"),
    ("TASK", 20, 26, "1F4E78"),
    ("OCCURRENCES", 27, 28, "993366"),
)

# (leaf header, group header on row 2 or None, width)
TASK_COLUMNS: tuple[tuple[str, Optional[str], int], ...] = (
    ("Instruction*", None, 30),
    ("Name*", None, 30),
    ("Request type*", None, 20),
    ("Buildings*", None, 24),
    ("Location", None, 20),
    ("First due date*", None, 15),
    ("Repeat*", None, 12),
    ("Every X days", None, 12),
    ("Sun", "Weekly on", 6),
    ("Mon", "Weekly on", 6),
    ("Tues", "Weekly on", 6),
    ("Wed", "Weekly on", 6),
    ("Thur", "Weekly on", 6),
    ("Fri", "Weekly on", 6),
    ("Sat", "Weekly on", 6),
    ("Every X weeks", None, 12),
    ("Mode", None, 24),
    ("Every X months", None, 14),
    ("Every X years", None, 13),
    ("From", "Exclude dates", 13),
    ("Thru", "Exclude dates", 13),
    ("Next due date mode", None, 18),
    ("Names", "Inventory used", 24),
    ("Quantities", "Inventory used", 14),
    ("Estimated time (hours)", None, 14),
    ("Notes", None, 40),
    ("Equipment items", None, 30),
    ("Occurrences", None, 12),
)

INSTRUCTION_COLUMNS: tuple[tuple[str, int], ...] = (
    ("Name*", 30),
    ("Description", 50),
    ("Steps*", 80),
)

OCCURRENCE_COLUMNS: tuple[tuple[str, int], ...] = (
    ("Task name", 30),
    ("Equipment items", 40),
    ("Assigned users", 30),
    ("Outsourced", 12),
    ("Email reminder days before (primary)", 35),
    ("Email reminder days before (secondary)", 38),
    ("Email reminder days after", 25),
)

_THIN = Side(style="thin", color="BFBFBF")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_BAND_FONT = Font(bold=True, color="FFFFFF")
_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
_WRAP = Alignment(vertical="top", wrap_text=True)


def _fill(color: str) -> PatternFill:
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


def section_color(column: int) -> str:
    for _label, first, last, color in TASK_SECTIONS:
        if first <= column <= last:
            return color
    raise ValueError(f"column {column} is outside the task layout")


def _band(ws: Worksheet, cell_range: str, value: Optional[str], color: str) -> None:
    """Write ``value`` into the top-left of ``cell_range``, style it and merge."""
    first = cell_range.split(":")[0]
    ws[first] = value
    for row in ws[cell_range] if ":" in cell_range else ((ws[first],),):
        for cell in row:
            cell.fill = _fill(color)
            cell.font = _BAND_FONT
            cell.alignment = _CENTER
            cell.border = _BORDER
    if ":" in cell_range:
        ws.merge_cells(cell_range)


def _group_spans(columns: Sequence[tuple[str, Optional[str], int]]) -> Iterable[tuple[str, int, int]]:
    """Yield (group header, first column, last column) for runs sharing a group."""
    col = 1
    while col <= len(columns):
        group = columns[col - 1][1]
        end = col
        if group is not None:
            while end < len(columns) and columns[end][1] == group:
                end += 1
            yield group, col, end
        col = end + 1


def _write_rows(ws: Worksheet, start_row: int, rows: Iterable[Sequence[object]], wrap_columns: set[int]) -> None:
    for r_offset, values in enumerate(rows):
        for c_idx, value in enumerate(values, start=1):
            cell = ws.cell(row=start_row + r_offset, column=c_idx, value=value)
            if c_idx in wrap_columns:
                cell.alignment = _WRAP


def write_instructions_sheet(ws: Worksheet, rows: "ExportRows") -> None:
    ws.title = INSTRUCTIONS_SHEET
    _band(ws, "A1:C2", "Instructions", INSTRUCTIONS_COLOR)
    for idx, (header, width) in enumerate(INSTRUCTION_COLUMNS, start=1):
        _band(ws, f"{get_column_letter(idx)}3", header, INSTRUCTIONS_COLOR)
        ws.column_dimensions[get_column_letter(idx)].width = width
    _write_rows(ws, 4, (r.cells() for r in rows.instructions), wrap_columns={2, 3})
    ws.freeze_panes = "A4"


def write_tasks_sheet(ws: Worksheet, rows: "ExportRows") -> None:
    ws.title = TASKS_SHEET

    for label, first, last, color in TASK_SECTIONS:
        a, b = get_column_letter(first), get_column_letter(last)
        _band(ws, f"{a}1:{b}1" if first != last else f"{a}1", label, color)

    grouped: set[int] = set()
    for group, first, last in _group_spans(TASK_COLUMNS):
        a, b = get_column_letter(first), get_column_letter(last)
        _band(ws, f"{a}2:{b}2", group, section_color(first))
        grouped.update(range(first, last + 1))

    for idx, (header, _group, width) in enumerate(TASK_COLUMNS, start=1):
        letter = get_column_letter(idx)
        color = section_color(idx)
        if idx in grouped:
            _band(ws, f"{letter}3", header, color)
        else:
            _band(ws, f"{letter}2:{letter}3", header, color)
        ws.column_dimensions[letter].width = width

    # Location, Notes and Equipment items can hold several lines.
    _write_rows(ws, 4, (r.cells() for r in rows.tasks), wrap_columns={5, 26, 27})
    ws.freeze_panes = "C4"


def write_occurrences_sheet(ws: Worksheet, rows: "ExportRows") -> None:
    ws.title = OCCURRENCES_SHEET
    bold = Font(bold=True)
    for idx, (header, width) in enumerate(OCCURRENCE_COLUMNS, start=1):
        cell = ws.cell(row=1, column=idx, value=header)
        cell.font = bold
        ws.column_dimensions[get_column_letter(idx)].width = width
    _write_rows(ws, 2, (r.cells() for r in rows.occurrences), wrap_columns=set())
    ws.freeze_panes = "A2"


def build_workbook(rows: "ExportRows") -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    write_instructions_sheet(wb.active, rows)
    write_tasks_sheet(wb.create_sheet(), rows)
    write_occurrences_sheet(wb.create_sheet(), rows)
    return wb


def render_workbook(rows: "ExportRows") -> bytes:
    output = BytesIO()
    build_workbook(rows).save(output)
    return output.getvalue()
