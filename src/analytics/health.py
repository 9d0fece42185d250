"""
src/analytics/health.py
────────────────────────
Health Derivation Engine.

Projects installed parts into PopulatedPart rows, recomputed on every call:

  days_used  = floor(|now − install_date| / 1 day)   (stored value ignored)
  health     = max(0, (1 − days_used / max_lifetime_days) × 100)
  status     = classify_health(health)

Parts whose machine or definition no longer exists are left out of the view
but reported through HealthView.orphaned_ids; they are never deleted here.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import numpy as np

from config.parts import SECONDS_PER_DAY
from src.analytics.thresholds import classify_health
from src.data.models import InstalledPart, Machine, PartDefinition, PopulatedPart


@dataclass
class HealthView:
    parts: list[PopulatedPart] = field(default_factory=list)
    orphaned_ids: list[str] = field(default_factory=list)


def days_between(start: datetime, now: datetime | None = None) -> int:
    """Whole days between two instants, regardless of their order."""
    now = now or datetime.now(tz=UTC)
    elapsed = abs((now - start).total_seconds())
    return int(math.floor(elapsed / SECONDS_PER_DAY))


def health_percentage(days_used: int, max_lifetime_days: int) -> float:
    """
    Remaining lifetime in percent, floored at 0.

    Computed as (max − used) × 100 / max so integer inputs hit the status
    boundaries exactly (90 of 100 days → 10.0, not 9.999…).
    """
    raw = (max_lifetime_days - days_used) * 100.0 / max_lifetime_days
    return float(np.clip(raw, 0.0, 100.0))


def populate_part(
    part: InstalledPart,
    definition: PartDefinition,
    machine: Machine,
    now: datetime | None = None,
) -> PopulatedPart:
    days = days_between(part.install_date, now)
    health = health_percentage(days, definition.max_lifetime_days)
    return PopulatedPart(
        **{**part.model_dump(), "current_days_used": days},
        definition=definition,
        machine_name=machine.name,
        health_percentage=health,
        status=classify_health(health),
    )


def derive_health(
    parts: Iterable[InstalledPart],
    definitions: Iterable[PartDefinition],
    machines: Iterable[Machine],
    now: datetime | None = None,
) -> HealthView:
    """Populate every resolvable part, keeping input order."""
    now = now or datetime.now(tz=UTC)
    defs_by_id = {d.id: d for d in definitions}
    machines_by_id = {m.id: m for m in machines}

    view = HealthView()
    for part in parts:
        definition = defs_by_id.get(part.definition_id)
        machine = machines_by_id.get(part.machine_id)
        if definition is None or machine is None:
            view.orphaned_ids.append(part.id)
            continue
        view.parts.append(populate_part(part, definition, machine, now))
    return view


def populate_parts(
    parts: Iterable[InstalledPart],
    definitions: Iterable[PartDefinition],
    machines: Iterable[Machine],
    now: datetime | None = None,
) -> list[PopulatedPart]:
    return derive_health(parts, definitions, machines, now).parts


def sort_by_health(parts: Sequence[PopulatedPart]) -> list[PopulatedPart]:
    """Lowest health first; ties keep their original order."""
    return sorted(parts, key=lambda p: p.health_percentage)
