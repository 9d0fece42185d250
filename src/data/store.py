"""
src/data/store.py
─────────────────
Entity store contract and its SQLite implementation.

Contract (EntityStore):
  - load_all()            : FleetState with all four collections; never raises
  - save_machines() ...   : upsert by id; an empty list is a no-op
  - delete_machine() ...  : idempotent; unknown ids are not an error
  - replace_part()        : swap an installed part for its successor in place
  - replace_all()         : overwrite every collection (backup restore only)

SQLiteEntityStore keeps one connection per instance, guarded by an RLock so
the FleetManager's persistence worker and the caller's thread can share it.
Rows come back in rowid order, which upserts preserve, so collections keep
their insertion order across reloads.
"""
from __future__ import annotations

import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import ValidationError

from config.settings import settings
from src.data.models import FleetState, InstalledPart, Machine, MaintenanceLog, PartDefinition
from src.logger import get_logger

logger = get_logger(__name__)


class EntityStore(ABC):
    """Durable home of the four collections."""

    @abstractmethod
    def load_all(self) -> FleetState: ...

    @abstractmethod
    def save_machines(self, machines: Sequence[Machine]) -> None: ...

    @abstractmethod
    def save_definitions(self, definitions: Sequence[PartDefinition]) -> None: ...

    @abstractmethod
    def save_parts(self, parts: Sequence[InstalledPart]) -> None: ...

    @abstractmethod
    def save_logs(self, logs: Sequence[MaintenanceLog]) -> None: ...

    @abstractmethod
    def delete_machine(self, machine_id: str) -> None: ...

    @abstractmethod
    def delete_definition(self, definition_id: str) -> None: ...

    @abstractmethod
    def delete_part(self, part_id: str) -> None: ...

    @abstractmethod
    def replace_part(self, old_part_id: str, part: InstalledPart) -> None: ...

    @abstractmethod
    def replace_all(self, state: FleetState) -> None: ...


# ── Schema ────────────────────────────────────────────────────────────────────

_CREATE_MACHINES = """
CREATE TABLE IF NOT EXISTS machines (
    id        TEXT PRIMARY KEY,
    name      TEXT NOT NULL,
    location  TEXT NOT NULL DEFAULT '',
    model     TEXT NOT NULL DEFAULT '',
    status    TEXT NOT NULL DEFAULT 'active'
);
"""

_CREATE_DEFINITIONS = """
CREATE TABLE IF NOT EXISTS part_definitions (
    id                 TEXT PRIMARY KEY,
    name               TEXT NOT NULL,
    category           TEXT NOT NULL,
    max_lifetime_days  INTEGER NOT NULL,
    cost               REAL NOT NULL DEFAULT 0
);
"""

_CREATE_PARTS = """
CREATE TABLE IF NOT EXISTS installed_parts (
    id                 TEXT PRIMARY KEY,
    definition_id      TEXT NOT NULL,
    machine_id         TEXT NOT NULL,
    install_date       TEXT NOT NULL,
    current_days_used  INTEGER NOT NULL DEFAULT 0,
    part_number        TEXT NOT NULL
);
"""

_CREATE_LOGS = """
CREATE TABLE IF NOT EXISTS maintenance_logs (
    id                        TEXT PRIMARY KEY,
    machine_id                TEXT NOT NULL,
    part_definition_id        TEXT NOT NULL,
    part_name                 TEXT NOT NULL,
    old_part_number           TEXT NOT NULL,
    new_part_number           TEXT NOT NULL,
    replaced_date             TEXT NOT NULL,
    days_used_at_replacement  INTEGER NOT NULL
);
"""

_CREATE_IDX = """
CREATE INDEX IF NOT EXISTS idx_parts_machine ON installed_parts (machine_id);
CREATE INDEX IF NOT EXISTS idx_logs_machine  ON maintenance_logs (machine_id);
"""

# table → ordered column list (first column is the primary key)
_TABLES: dict[str, list[str]] = {
    "machines": ["id", "name", "location", "model", "status"],
    "part_definitions": ["id", "name", "category", "max_lifetime_days", "cost"],
    "installed_parts": [
        "id", "definition_id", "machine_id", "install_date", "current_days_used", "part_number",
    ],
    "maintenance_logs": [
        "id", "machine_id", "part_definition_id", "part_name", "old_part_number",
        "new_part_number", "replaced_date", "days_used_at_replacement",
    ],
}


def _upsert_sql(table: str) -> str:
    columns = _TABLES[table]
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns[1:])
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )


def _row(entity, table: str) -> tuple:
    data = entity.model_dump(mode="json")
    return tuple(data[c] for c in _TABLES[table])


# ── SQLite implementation ─────────────────────────────────────────────────────

class SQLiteEntityStore(EntityStore):
    def __init__(self, path: str = settings.DATABASE_URL, seed_on_empty: bool = settings.SEED_ON_EMPTY):
        self.path = path
        self.seed_on_empty = seed_on_empty
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.executescript(
                _CREATE_MACHINES + _CREATE_DEFINITIONS + _CREATE_PARTS + _CREATE_LOGS + _CREATE_IDX
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ── Reads ────────────────────────────────────────────────────────────────

    def _select(self, table: str) -> list[dict]:
        with self._lock:
            rows = self._conn.execute(f"SELECT * FROM {table} ORDER BY rowid").fetchall()
        return [dict(r) for r in rows]

    def load_all(self) -> FleetState:
        """
        Load every collection. An empty database is seeded with the demo
        fleet when `seed_on_empty` is set; a store holding any row, history
        included, is never seeded. Errors yield an empty state.
        """
        try:
            state = FleetState(
                machines=tuple(Machine.model_validate(r) for r in self._select("machines")),
                definitions=tuple(PartDefinition.model_validate(r) for r in self._select("part_definitions")),
                parts=tuple(InstalledPart.model_validate(r) for r in self._select("installed_parts")),
                logs=tuple(MaintenanceLog.model_validate(r) for r in self._select("maintenance_logs")),
            )
            empty = not (state.machines or state.definitions or state.parts or state.logs)
            if empty and self.seed_on_empty:
                from src.data.seed import generate_seed_state

                logger.info("store_seeding", path=self.path)
                state = generate_seed_state()
                self.save_machines(state.machines)
                self.save_definitions(state.definitions)
                self.save_parts(state.parts)
                self.save_logs(state.logs)
            return state
        except (sqlite3.Error, ValidationError) as exc:
            logger.error("store_load_failed", path=self.path, error=str(exc))
            return FleetState()

    # ── Writes ───────────────────────────────────────────────────────────────

    def _upsert(self, table: str, entities: Sequence) -> None:
        if not entities:
            return
        rows = [_row(e, table) for e in entities]
        with self._lock, self._conn:
            self._conn.executemany(_upsert_sql(table), rows)

    def _delete(self, table: str, entity_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(f"DELETE FROM {table} WHERE id = ?", (entity_id,))

    def save_machines(self, machines: Sequence[Machine]) -> None:
        self._upsert("machines", machines)

    def save_definitions(self, definitions: Sequence[PartDefinition]) -> None:
        self._upsert("part_definitions", definitions)

    def save_parts(self, parts: Sequence[InstalledPart]) -> None:
        self._upsert("installed_parts", parts)

    def save_logs(self, logs: Sequence[MaintenanceLog]) -> None:
        self._upsert("maintenance_logs", logs)

    def delete_machine(self, machine_id: str) -> None:
        self._delete("machines", machine_id)

    def delete_definition(self, definition_id: str) -> None:
        self._delete("part_definitions", definition_id)

    def delete_part(self, part_id: str) -> None:
        self._delete("installed_parts", part_id)

    def replace_part(self, old_part_id: str, part: InstalledPart) -> None:
        """Rewrite the old part's row as the new instance, keeping its position."""
        columns = _TABLES["installed_parts"]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        with self._lock, self._conn:
            cursor = self._conn.execute(
                f"UPDATE installed_parts SET {assignments} WHERE id = ?",
                (*_row(part, "installed_parts"), old_part_id),
            )
            if cursor.rowcount == 0:
                self._conn.execute(_upsert_sql("installed_parts"), _row(part, "installed_parts"))

    def replace_all(self, state: FleetState) -> None:
        collections = {
            "machines": state.machines,
            "part_definitions": state.definitions,
            "installed_parts": state.parts,
            "maintenance_logs": state.logs,
        }
        with self._lock, self._conn:
            for table, entities in collections.items():
                self._conn.execute(f"DELETE FROM {table}")
                if entities:
                    self._conn.executemany(_upsert_sql(table), [_row(e, table) for e in entities])
