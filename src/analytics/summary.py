"""
src/analytics/summary.py
─────────────────────────
Fleet-level aggregates over the derived health view.

Provides:
  - parts_frame()         : PopulatedParts as a flat DataFrame
  - fleet_summary()       : status counts + critical details (report payload)
  - category_breakdown()  : critical / warning counts per part category
  - machine_breakdown()   : installed / critical / warning counts per machine
  - definition_health()   : average health per part definition
  - history_frame()       : maintenance logs, newest first
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence

import pandas as pd
from pydantic import BaseModel

from src.data.models import Machine, MaintenanceLog, PartDefinition, PartStatus, PopulatedPart

_PART_COLUMNS = [
    "id", "machine_id", "machine_name", "definition_id", "part_name", "category",
    "part_number", "install_date", "current_days_used", "max_lifetime_days",
    "health_percentage", "status",
]

_HISTORY_COLUMNS = [
    "id", "machine_id", "part_definition_id", "part_name", "old_part_number",
    "new_part_number", "replaced_date", "days_used_at_replacement",
]


class CriticalDetail(BaseModel):
    part: str
    machine: str
    health: str
    days_used: int
    max_life_days: int


class FleetSummary(BaseModel):
    total_machines: int
    total_parts: int
    good_count: int
    warning_count: int
    critical_count: int
    critical_details: list[CriticalDetail]
    machines: list[str]


def parts_frame(parts: Sequence[PopulatedPart]) -> pd.DataFrame:
    rows = [
        {
            "id": p.id,
            "machine_id": p.machine_id,
            "machine_name": p.machine_name,
            "definition_id": p.definition_id,
            "part_name": p.definition.name,
            "category": p.definition.category,
            "part_number": p.part_number,
            "install_date": p.install_date,
            "current_days_used": p.current_days_used,
            "max_lifetime_days": p.definition.max_lifetime_days,
            "health_percentage": p.health_percentage,
            "status": p.status.value,
        }
        for p in parts
    ]
    return pd.DataFrame(rows, columns=_PART_COLUMNS)


def fleet_summary(parts: Sequence[PopulatedPart], machines: Sequence[Machine]) -> FleetSummary:
    df = parts_frame(parts)
    counts = df["status"].value_counts()
    critical = df[df["status"] == PartStatus.CRITICAL.value]

    return FleetSummary(
        total_machines=len(machines),
        total_parts=len(df),
        good_count=int(counts.get(PartStatus.GOOD.value, 0)),
        warning_count=int(counts.get(PartStatus.WARNING.value, 0)),
        critical_count=int(counts.get(PartStatus.CRITICAL.value, 0)),
        critical_details=[
            CriticalDetail(
                part=row.part_name,
                machine=row.machine_name,
                health=f"{row.health_percentage:.1f}%",
                days_used=int(row.current_days_used),
                max_life_days=int(row.max_lifetime_days),
            )
            for row in critical.itertuples(index=False)
        ],
        machines=[m.name for m in machines],
    )


def category_breakdown(parts: Sequence[PopulatedPart]) -> pd.DataFrame:
    """Per category: number of critical and warning parts, first-seen order."""
    df = parts_frame(parts)
    if df.empty:
        return pd.DataFrame(columns=["category", "critical", "warning"])

    df["critical"] = (df["status"] == PartStatus.CRITICAL.value).astype(int)
    df["warning"] = (df["status"] == PartStatus.WARNING.value).astype(int)
    grouped = df.groupby("category", sort=False)[["critical", "warning"]].sum()
    return grouped.reset_index()


def history_frame(logs: Iterable[MaintenanceLog], machine_id: str | None = None) -> pd.DataFrame:
    """Replacement history, newest first, optionally for a single machine."""
    df = pd.DataFrame([log.model_dump() for log in logs], columns=_HISTORY_COLUMNS)
    if machine_id is not None:
        df = df[df["machine_id"] == machine_id]
    if df.empty:
        return df.reset_index(drop=True)
    df["replaced_date"] = pd.to_datetime(df["replaced_date"], utc=True)
    return df.sort_values("replaced_date", ascending=False, kind="stable").reset_index(drop=True)


def machine_breakdown(parts: Sequence[PopulatedPart], machines: Sequence[Machine]) -> pd.DataFrame:
    """Per machine, in machine order: installed, critical and warning counts."""
    df = parts_frame(parts)
    df["critical"] = (df["status"] == PartStatus.CRITICAL.value).astype(int)
    df["warning"] = (df["status"] == PartStatus.WARNING.value).astype(int)
    df["installed"] = 1
    ids = [m.id for m in machines]
    counts = (
        df.groupby("machine_id")[["installed", "critical", "warning"]].sum()
        .reindex(ids, fill_value=0)
        .astype(int)
    )
    counts.insert(0, "machine_name", [m.name for m in machines])
    return counts.rename_axis("machine_id").reset_index()


def definition_health(parts: Sequence[PopulatedPart], definitions: Sequence[PartDefinition]) -> pd.DataFrame:
    """Per part type: installed count and mean health, 0 when nothing is installed."""
    df = parts_frame(parts)
    ids = [d.id for d in definitions]
    grouped = df["health_percentage"].astype(float).groupby(df["definition_id"])
    result = pd.DataFrame({
        "definition_id": ids,
        "name": [d.name for d in definitions],
        "installed": grouped.size().reindex(ids, fill_value=0).astype(int).to_numpy(),
        "avg_health": grouped.mean().reindex(ids, fill_value=0.0).astype(float).to_numpy(),
    })
    return result
