"""
src/data/seed.py
────────────────
Demo fleet generator for an empty store.

Generates:
  - The fixed seed catalog of machines and part definitions (config/parts.py)
  - Installed parts: each machine carries each part type with probability
    SEED_INSTALL_PROBABILITY, at a random point of its lifetime

Design:
  - Reproducible with SEED for consistent demos
  - Serial numbers are drawn without replacement, so the seed fleet never
    violates fleet-wide serial uniqueness
"""
from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

import numpy as np

from config.parts import SEED_DEFINITIONS, SEED_INSTALL_PROBABILITY, SEED_MACHINES
from config.settings import settings
from src.data.models import FleetState, InstalledPart, Machine, PartDefinition

_SERIAL_SPACE = 10_000


def seed_machines() -> list[Machine]:
    return [Machine(**m) for m in SEED_MACHINES]


def seed_definitions() -> list[PartDefinition]:
    return [PartDefinition(**d) for d in SEED_DEFINITIONS]


def generate_installed_parts(
    machines: list[Machine],
    definitions: list[PartDefinition],
    seed: int = settings.SEED,
    now: datetime | None = None,
) -> list[InstalledPart]:
    rng = np.random.default_rng(seed)
    now = now or datetime.now(tz=UTC)

    slots = [
        (machine, definition)
        for machine in machines
        for definition in definitions
        if rng.random() < SEED_INSTALL_PROBABILITY
    ]
    serials = rng.choice(_SERIAL_SPACE, size=len(slots), replace=False)

    parts: list[InstalledPart] = []
    for n, ((machine, definition), serial) in enumerate(zip(slots, serials, strict=True), start=1):
        usage_ratio = float(rng.random())
        days_used = int(math.floor(definition.max_lifetime_days * usage_ratio))
        parts.append(InstalledPart(
            id=f"inst_{n}",
            definition_id=definition.id,
            machine_id=machine.id,
            install_date=now - timedelta(days=days_used),
            current_days_used=days_used,
            part_number=f"SN-{int(serial):04d}",
        ))
    return parts


def generate_seed_state(seed: int = settings.SEED, now: datetime | None = None) -> FleetState:
    machines = seed_machines()
    definitions = seed_definitions()
    parts = generate_installed_parts(machines, definitions, seed=seed, now=now)
    return FleetState(
        machines=tuple(machines),
        definitions=tuple(definitions),
        parts=tuple(parts),
    )
