"""
src/lifecycle/transitions.py
─────────────────────────────
Lifecycle transitions on a FleetState snapshot.

Every function takes the current snapshot and returns a new one; nothing is
mutated in place, and a function that raises leaves the caller's snapshot
exactly as it was. Replace is the only transition that writes history: the
new MaintenanceLog and the new part instance travel in the same returned
snapshot.

Serial numbers are treated as unique across the installed fleet: install,
replace and serial edits reject a serial that another part already carries,
matching the batch importer's dedup key.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from config.parts import UNKNOWN_PART_NAME
from src.analytics.health import days_between
from src.data.models import (
    FleetState,
    InstalledPart,
    Machine,
    MaintenanceLog,
    PartDefinition,
    new_id,
)
from src.errors import (
    DefinitionInUseError,
    DefinitionNotFoundError,
    DuplicateSerialError,
    InvalidUpdateError,
    MachineNotFoundError,
    PartNotFoundError,
)

_PART_EDITABLE = {"install_date", "current_days_used", "part_number", "machine_id", "definition_id"}


def _check_serial_free(state: FleetState, serial: str, ignore_part_id: str | None = None) -> None:
    for part in state.parts:
        if part.part_number == serial and part.id != ignore_part_id:
            raise DuplicateSerialError(serial, part.id)


def _merge(entity, updates: dict[str, Any], editable: set[str]):
    """Re-validate `entity` with `updates` applied, keeping its id."""
    if "id" in updates and updates["id"] != entity.id:
        raise InvalidUpdateError(f"Cannot change the id of '{entity.id}'")
    unknown = set(updates) - editable - {"id"}
    if unknown:
        raise InvalidUpdateError(f"Unknown or read-only field(s): {', '.join(sorted(unknown))}")
    try:
        return type(entity).model_validate({**entity.model_dump(), **updates, "id": entity.id})
    except ValidationError as exc:
        raise InvalidUpdateError(str(exc)) from exc


# ── Installed parts ───────────────────────────────────────────────────────────

def install_part(
    state: FleetState,
    machine_id: str,
    definition_id: str,
    part_number: str,
    now: datetime | None = None,
) -> tuple[FleetState, InstalledPart]:
    if state.machine(machine_id) is None:
        raise MachineNotFoundError(machine_id)
    if state.definition(definition_id) is None:
        raise DefinitionNotFoundError(definition_id)
    _check_serial_free(state, part_number)

    part = InstalledPart(
        id=new_id("inst"),
        definition_id=definition_id,
        machine_id=machine_id,
        install_date=now or datetime.now(tz=UTC),
        current_days_used=0,
        part_number=part_number,
    )
    return state.model_copy(update={"parts": state.parts + (part,)}), part


def replace_part(
    state: FleetState,
    part_id: str,
    new_part_number: str,
    replace_date: datetime | None = None,
    now: datetime | None = None,
) -> tuple[FleetState, InstalledPart, MaintenanceLog]:
    """
    Close out the current instance and open a new one in the same slot.

    The log records days used up to `now`; the new instance starts at
    `replace_date` (defaults to `now`) with a fresh id and zero usage.
    """
    old = state.part(part_id)
    if old is None:
        raise PartNotFoundError(part_id)
    _check_serial_free(state, new_part_number, ignore_part_id=part_id)

    now = now or datetime.now(tz=UTC)
    effective = replace_date or now
    definition = state.definition(old.definition_id)

    log = MaintenanceLog(
        id=new_id("log"),
        machine_id=old.machine_id,
        part_definition_id=old.definition_id,
        part_name=definition.name if definition else UNKNOWN_PART_NAME,
        old_part_number=old.part_number,
        new_part_number=new_part_number,
        replaced_date=effective,
        days_used_at_replacement=days_between(old.install_date, now),
    )
    new = InstalledPart(
        id=new_id("inst"),
        definition_id=old.definition_id,
        machine_id=old.machine_id,
        install_date=effective,
        current_days_used=0,
        part_number=new_part_number,
    )
    parts = tuple(new if p.id == part_id else p for p in state.parts)
    return state.model_copy(update={"parts": parts, "logs": state.logs + (log,)}), new, log


def update_part(state: FleetState, part_id: str, updates: dict[str, Any]) -> tuple[FleetState, InstalledPart]:
    """Manual correction: same id, no history entry."""
    old = state.part(part_id)
    if old is None:
        raise PartNotFoundError(part_id)
    updated = _merge(old, updates, _PART_EDITABLE)
    if updated.machine_id != old.machine_id and state.machine(updated.machine_id) is None:
        raise MachineNotFoundError(updated.machine_id)
    if updated.definition_id != old.definition_id and state.definition(updated.definition_id) is None:
        raise DefinitionNotFoundError(updated.definition_id)
    if updated.part_number != old.part_number:
        _check_serial_free(state, updated.part_number, ignore_part_id=part_id)
    parts = tuple(updated if p.id == part_id else p for p in state.parts)
    return state.model_copy(update={"parts": parts}), updated


def delete_installed_part(state: FleetState, part_id: str) -> FleetState:
    return state.model_copy(update={"parts": tuple(p for p in state.parts if p.id != part_id)})


# ── Machines ──────────────────────────────────────────────────────────────────

def add_machine(state: FleetState, **fields: Any) -> tuple[FleetState, Machine]:
    machine = Machine(id=new_id("m"), **fields)
    return state.model_copy(update={"machines": state.machines + (machine,)}), machine


def update_machine(state: FleetState, machine_id: str, updates: dict[str, Any]) -> tuple[FleetState, Machine]:
    old = state.machine(machine_id)
    if old is None:
        raise MachineNotFoundError(machine_id)
    updated = _merge(old, updates, {"name", "location", "model", "status"})
    machines = tuple(updated if m.id == machine_id else m for m in state.machines)
    return state.model_copy(update={"machines": machines}), updated


def delete_machine(state: FleetState, machine_id: str) -> tuple[FleetState, list[str]]:
    """Remove the machine and every part installed on it. History is kept."""
    removed = [p.id for p in state.parts if p.machine_id == machine_id]
    new_state = state.model_copy(update={
        "machines": tuple(m for m in state.machines if m.id != machine_id),
        "parts": tuple(p for p in state.parts if p.machine_id != machine_id),
    })
    return new_state, removed


# ── Part definitions ──────────────────────────────────────────────────────────

def add_definition(state: FleetState, **fields: Any) -> tuple[FleetState, PartDefinition]:
    definition = PartDefinition(id=new_id("p"), **fields)
    return state.model_copy(update={"definitions": state.definitions + (definition,)}), definition


def update_definition(
    state: FleetState,
    definition_id: str,
    updates: dict[str, Any],
) -> tuple[FleetState, PartDefinition]:
    old = state.definition(definition_id)
    if old is None:
        raise DefinitionNotFoundError(definition_id)
    updated = _merge(old, updates, {"name", "category", "max_lifetime_days", "cost"})
    definitions = tuple(updated if d.id == definition_id else d for d in state.definitions)
    return state.model_copy(update={"definitions": definitions}), updated


def delete_definition(state: FleetState, definition_id: str) -> FleetState:
    in_use = [p.id for p in state.parts if p.definition_id == definition_id]
    if in_use:
        raise DefinitionInUseError(definition_id, in_use)
    return state.model_copy(update={"definitions": tuple(d for d in state.definitions if d.id != definition_id)})
