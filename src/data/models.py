"""
src/data/models.py
──────────────────
Pydantic v2 data models for machines, part definitions, installed parts,
maintenance history, and the derived health view.

Attributes are snake_case; serialization by alias produces the camelCase
field names used in backup files (`maxLifetimeDays`, `installDate`, ...).
All models are frozen: transitions build new instances instead of mutating.
"""
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class MachineStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"


class PartStatus(str, Enum):
    GOOD = "GOOD"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class _Entity(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Machine(_Entity):
    id: str
    name: str
    location: str = ""
    model: str = ""
    status: MachineStatus = MachineStatus.ACTIVE


class PartDefinition(_Entity):
    id: str
    name: str
    category: str
    max_lifetime_days: int = Field(gt=0)
    cost: float = Field(default=0.0, ge=0.0)


class InstalledPart(_Entity):
    id: str
    definition_id: str
    machine_id: str
    install_date: datetime
    current_days_used: int = Field(default=0, ge=0)
    part_number: str

    @field_validator("install_date")
    @classmethod
    def _install_date_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class MaintenanceLog(_Entity):
    id: str
    machine_id: str
    part_definition_id: str
    part_name: str
    old_part_number: str
    new_part_number: str
    replaced_date: datetime
    days_used_at_replacement: int = Field(ge=0)

    @field_validator("replaced_date")
    @classmethod
    def _replaced_date_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class PopulatedPart(InstalledPart):
    """InstalledPart joined with its definition and machine. Never persisted."""
    definition: PartDefinition
    machine_name: str
    health_percentage: float = Field(ge=0.0, le=100.0)
    status: PartStatus


class FleetState(_Entity):
    """Snapshot of the four collections, in insertion order."""
    machines: tuple[Machine, ...] = ()
    definitions: tuple[PartDefinition, ...] = ()
    parts: tuple[InstalledPart, ...] = ()
    logs: tuple[MaintenanceLog, ...] = ()

    def machine(self, machine_id: str) -> Machine | None:
        return next((m for m in self.machines if m.id == machine_id), None)

    def definition(self, definition_id: str) -> PartDefinition | None:
        return next((d for d in self.definitions if d.id == definition_id), None)

    def part(self, part_id: str) -> InstalledPart | None:
        return next((p for p in self.parts if p.id == part_id), None)
