"""
src/importer/csv_rows.py
─────────────────────────
Batch CSV text → typed rows.

Column order (header row is skipped, never interpreted):
  machineName, machineId (ignored), partName, category, serialNumber,
  installDate, lifetimeDays

Each data line becomes a RowResult holding either a validated ImportRow or
a RowIssue explaining why the row is skipped. Rows missing a machine name,
part name or serial number are skipped, not fatal.
"""
from __future__ import annotations

import csv
import re
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError, field_validator

from config.parts import IMPORT_COLUMNS
from src.errors import ImportFormatError

_BOM = "\ufeff"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_LEADING_INT = re.compile(r"^[+-]?\d+")


class ImportRow(BaseModel):
    line_number: int
    machine_name: str = Field(min_length=1)
    part_name: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    category: str = ""
    install_date_raw: str = ""
    lifetime_days: int | None = None

    @field_validator("lifetime_days", mode="before")
    @classmethod
    def _parse_lifetime(cls, value):
        """Leading integer of the cell, e.g. "180 days" → 180; else None."""
        if value is None or isinstance(value, int):
            return value if value is None or value > 0 else None
        match = _LEADING_INT.match(str(value).strip())
        if not match:
            return None
        days = int(match.group())
        return days if days > 0 else None


class RowIssue(BaseModel):
    line_number: int
    reason: str
    detail: str = ""


@dataclass
class RowResult:
    line_number: int
    row: ImportRow | None = None
    issue: RowIssue | None = None


def split_lines(text: str) -> list[tuple[int, str]]:
    """
    Data lines of a batch file with their 1-based line numbers.

    Strips a leading BOM, accepts any line ending, drops blank lines and the
    first remaining line (header).
    """
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    lines = [(n, line) for n, line in enumerate(_LINE_BREAK.split(text), start=1) if line.strip()]
    if len(lines) < 2:
        raise ImportFormatError("CSV contains no data rows (a header row plus at least one row is required)")
    return lines[1:]


def split_row(line: str) -> list[str]:
    """Comma split honoring "quoted, fields" and "" escapes; cells trimmed."""
    cells = next(csv.reader([line], skipinitialspace=True), [])
    return [c.strip() for c in cells]


def parse_row(cells: list[str], line_number: int) -> RowResult:
    padded = cells + [""] * (len(IMPORT_COLUMNS) - len(cells))
    data = dict(zip(IMPORT_COLUMNS, padded, strict=False))
    data.pop("machine_id")
    try:
        row = ImportRow.model_validate({**data, "line_number": line_number})
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors()})
        return RowResult(
            line_number=line_number,
            issue=RowIssue(line_number=line_number, reason="missing_fields", detail=", ".join(missing)),
        )
    return RowResult(line_number=line_number, row=row)


def parse_rows(text: str) -> list[RowResult]:
    return [parse_row(split_row(line), n) for n, line in split_lines(text)]
