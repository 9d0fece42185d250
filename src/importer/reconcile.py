"""
src/importer/reconcile.py
──────────────────────────
Batch Reconciliation Importer.

Merges CSV rows into the catalog without touching existing entities:

  1. Machine     : case-insensitive name match (existing, then created in
                   this batch); otherwise a new machine at "Imported"
  2. Definition  : case-insensitive name match; otherwise a new definition
                   (category or "General", lifetime or 365 days, cost 0)
  3. Part        : skipped when its serial is already installed or was staged
                   earlier in the batch; serial is the "already imported" key

The result only describes additions. Applying it is the caller's decision
(FleetManager.commit_import). Re-importing a corrected file does not update
machines or definitions created by an earlier import.
"""
from __future__ import annotations

import math
from datetime import UTC, datetime

import pandas as pd
from pydantic import BaseModel

from config.parts import (
    IMPORT_DEFAULT_CATEGORY,
    IMPORT_DEFAULT_LIFETIME_DAYS,
    IMPORT_MACHINE_LOCATION,
    IMPORT_MACHINE_MODEL,
    SECONDS_PER_DAY,
)
from src.data.models import FleetState, InstalledPart, Machine, MachineStatus, PartDefinition, new_id
from src.importer.csv_rows import ImportRow, RowIssue, parse_rows
from src.logger import get_logger

logger = get_logger(__name__)


class ImportResult(BaseModel):
    new_machines: list[Machine] = []
    new_definitions: list[PartDefinition] = []
    new_parts: list[InstalledPart] = []
    skipped: list[RowIssue] = []

    @property
    def counts(self) -> dict[str, int]:
        return {
            "machines": len(self.new_machines),
            "definitions": len(self.new_definitions),
            "parts": len(self.new_parts),
            "skipped": len(self.skipped),
        }

    @property
    def is_empty(self) -> bool:
        return not (self.new_machines or self.new_definitions or self.new_parts)


def parse_install_date(raw: str) -> datetime | None:
    """Lenient date parse; None when the cell is empty or unparseable."""
    if not raw:
        return None
    ts = pd.to_datetime(raw, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def days_since(start: datetime, now: datetime) -> int:
    return max(0, int(math.floor((now - start).total_seconds() / SECONDS_PER_DAY)))


class _Reconciler:
    """One batch: lookup tables seeded from the snapshot, grown per row."""

    def __init__(self, state: FleetState, now: datetime):
        self.now = now
        self.result = ImportResult()
        self.machines = {m.name.lower(): m for m in reversed(state.machines)}
        self.definitions = {d.name.lower(): d for d in reversed(state.definitions)}
        self.serials = {p.part_number for p in state.parts}

    def resolve_machine(self, name: str) -> Machine:
        key = name.lower()
        machine = self.machines.get(key)
        if machine is None:
            machine = Machine(
                id=new_id("m"),
                name=name,
                location=IMPORT_MACHINE_LOCATION,
                model=IMPORT_MACHINE_MODEL,
                status=MachineStatus.ACTIVE,
            )
            self.machines[key] = machine
            self.result.new_machines.append(machine)
        return machine

    def resolve_definition(self, row: ImportRow) -> PartDefinition:
        key = row.part_name.lower()
        definition = self.definitions.get(key)
        if definition is None:
            definition = PartDefinition(
                id=new_id("p"),
                name=row.part_name,
                category=row.category or IMPORT_DEFAULT_CATEGORY,
                max_lifetime_days=row.lifetime_days or IMPORT_DEFAULT_LIFETIME_DAYS,
                cost=0.0,
            )
            self.definitions[key] = definition
            self.result.new_definitions.append(definition)
        return definition

    def add(self, row: ImportRow) -> None:
        if row.serial_number in self.serials:
            self.result.skipped.append(RowIssue(
                line_number=row.line_number,
                reason="duplicate_serial",
                detail=row.serial_number,
            ))
            return

        machine = self.resolve_machine(row.machine_name)
        definition = self.resolve_definition(row)

        installed = parse_install_date(row.install_date_raw)
        if installed is None:
            install_date, days_used = self.now, 0
        else:
            install_date, days_used = installed, days_since(installed, self.now)

        self.serials.add(row.serial_number)
        self.result.new_parts.append(InstalledPart(
            id=new_id("inst"),
            definition_id=definition.id,
            machine_id=machine.id,
            install_date=install_date,
            current_days_used=days_used,
            part_number=row.serial_number,
        ))


def reconcile_rows(state: FleetState, rows, now: datetime | None = None) -> ImportResult:
    """Resolve parsed rows (RowResult list) against the snapshot."""
    reconciler = _Reconciler(state, now or datetime.now(tz=UTC))
    for result in rows:
        if result.issue is not None:
            reconciler.result.skipped.append(result.issue)
            continue
        reconciler.add(result.row)
    return reconciler.result


def reconcile_csv(state: FleetState, text: str, now: datetime | None = None) -> ImportResult:
    """
    Parse batch CSV text and compute the additions it implies.

    Raises ImportFormatError when the text has no data rows; nothing else
    in the file is fatal.
    """
    rows = parse_rows(text)
    result = reconcile_rows(state, rows, now)
    logger.info("csv_reconciled", rows=len(rows), **result.counts)
    return result
