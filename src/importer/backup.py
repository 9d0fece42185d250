"""
src/importer/backup.py
───────────────────────
JSON backup export and validation.

Shape:
  {
    "machines":        [Machine, ...],
    "partDefinitions": [PartDefinition, ...],
    "installedParts":  [InstalledPart, ...],
    "maintenanceLogs": [MaintenanceLog, ...],   # optional on import
    "timestamp":       ISO-8601
  }

Entities use camelCase field names. parse_backup() validates everything up
front so a rejected file never reaches the fleet state.
"""
from __future__ import annotations

import json
from datetime import UTC, datetime

from pydantic import TypeAdapter, ValidationError

from src.data.models import FleetState, InstalledPart, Machine, MaintenanceLog, PartDefinition
from src.errors import BackupFormatError

REQUIRED_KEYS = ("machines", "partDefinitions", "installedParts")

_MACHINES = TypeAdapter(list[Machine])
_DEFINITIONS = TypeAdapter(list[PartDefinition])
_PARTS = TypeAdapter(list[InstalledPart])
_LOGS = TypeAdapter(list[MaintenanceLog])


def build_backup(state: FleetState, now: datetime | None = None) -> dict:
    def dump(entities) -> list[dict]:
        return [e.model_dump(mode="json", by_alias=True) for e in entities]

    return {
        "machines": dump(state.machines),
        "partDefinitions": dump(state.definitions),
        "installedParts": dump(state.parts),
        "maintenanceLogs": dump(state.logs),
        "timestamp": (now or datetime.now(tz=UTC)).isoformat(),
    }


def dump_backup(state: FleetState, now: datetime | None = None) -> str:
    return json.dumps(build_backup(state, now), indent=2)


def backup_filename(now: datetime | None = None) -> str:
    return f"lifecycle_backup_{(now or datetime.now(tz=UTC)).date().isoformat()}.json"


def parse_backup(text: str) -> FleetState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BackupFormatError(f"Backup is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise BackupFormatError("Invalid backup file format: expected a JSON object")
    missing = [k for k in REQUIRED_KEYS if k not in data]
    if missing:
        raise BackupFormatError(f"Invalid backup file format: missing {', '.join(missing)}")

    try:
        return FleetState(
            machines=tuple(_MACHINES.validate_python(data["machines"])),
            definitions=tuple(_DEFINITIONS.validate_python(data["partDefinitions"])),
            parts=tuple(_PARTS.validate_python(data["installedParts"])),
            logs=tuple(_LOGS.validate_python(data.get("maintenanceLogs") or [])),
        )
    except ValidationError as exc:
        raise BackupFormatError(f"Invalid backup contents: {exc.error_count()} error(s)\n{exc}") from exc
