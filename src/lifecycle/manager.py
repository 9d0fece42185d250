"""
src/lifecycle/manager.py
─────────────────────────
FleetManager: the single owner of the in-memory fleet snapshot.

Each mutation:
  1. runs the pure transition against the current snapshot (may raise;
     nothing changes then)
  2. swaps the snapshot in one assignment, so a reader sees either the old
     state or the complete new one
  3. queues the matching store writes on a single worker thread

Store writes are optimistic: the in-memory snapshot is authoritative, a
failed write is logged as a warning and neither retried nor rolled back.
Call flush() to wait for queued writes, close() when done.
"""
from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any

import pandas as pd

from src.analytics.health import HealthView, derive_health
from src.analytics.summary import FleetSummary, fleet_summary, history_frame
from src.data.models import FleetState, InstalledPart, Machine, MaintenanceLog, PartDefinition
from src.data.store import EntityStore
from src.importer.backup import dump_backup, parse_backup
from src.importer.reconcile import ImportResult, reconcile_csv
from src.lifecycle import transitions
from src.logger import get_logger

logger = get_logger(__name__)


class FleetManager:
    def __init__(self, store: EntityStore, state: FleetState | None = None):
        self.store = store
        self._state = state if state is not None else FleetState()
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fleet-persist")

    @classmethod
    def load(cls, store: EntityStore) -> FleetManager:
        state = store.load_all()
        logger.info(
            "fleet_loaded",
            machines=len(state.machines),
            definitions=len(state.definitions),
            parts=len(state.parts),
            logs=len(state.logs),
        )
        return cls(store, state)

    @property
    def state(self) -> FleetState:
        return self._state

    # ── Persistence ──────────────────────────────────────────────────────────

    def _persist(self, action: str, fn: Callable, *args: Any) -> Future:
        def run() -> None:
            try:
                fn(*args)
            except Exception as exc:
                logger.warning("persistence_failed", action=action, error=str(exc))

        return self._writer.submit(run)

    def flush(self) -> None:
        """Block until every queued store write has run."""
        self._writer.submit(lambda: None).result()

    def close(self) -> None:
        self._writer.shutdown(wait=True)

    def __enter__(self) -> FleetManager:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ── Read side ────────────────────────────────────────────────────────────

    def view(self, now: datetime | None = None) -> HealthView:
        state = self._state
        return derive_health(state.parts, state.definitions, state.machines, now)

    def summary(self, now: datetime | None = None) -> FleetSummary:
        return fleet_summary(self.view(now).parts, self._state.machines)

    def history(self, machine_id: str | None = None) -> pd.DataFrame:
        return history_frame(self._state.logs, machine_id)

    # ── Installed parts ──────────────────────────────────────────────────────

    def install_part(
        self,
        machine_id: str,
        definition_id: str,
        part_number: str,
        now: datetime | None = None,
    ) -> InstalledPart:
        self._state, part = transitions.install_part(self._state, machine_id, definition_id, part_number, now)
        logger.info("part_installed", part_id=part.id, machine_id=machine_id, serial=part_number)
        self._persist("save_parts", self.store.save_parts, [part])
        return part

    def replace_part(
        self,
        part_id: str,
        new_part_number: str,
        replace_date: datetime | None = None,
        now: datetime | None = None,
    ) -> tuple[InstalledPart, MaintenanceLog]:
        self._state, part, log = transitions.replace_part(
            self._state, part_id, new_part_number, replace_date, now
        )
        logger.info(
            "part_replaced",
            old_part_id=part_id,
            new_part_id=part.id,
            old_serial=log.old_part_number,
            new_serial=new_part_number,
            days_used=log.days_used_at_replacement,
        )
        self._persist("save_logs", self.store.save_logs, [log])
        self._persist("replace_part", self.store.replace_part, part_id, part)
        return part, log

    def update_part(self, part_id: str, updates: dict[str, Any]) -> InstalledPart:
        self._state, part = transitions.update_part(self._state, part_id, updates)
        self._persist("save_parts", self.store.save_parts, [part])
        return part

    def delete_installed_part(self, part_id: str) -> None:
        self._state = transitions.delete_installed_part(self._state, part_id)
        self._persist("delete_part", self.store.delete_part, part_id)

    # ── Machines ─────────────────────────────────────────────────────────────

    def add_machine(self, **fields: Any) -> Machine:
        self._state, machine = transitions.add_machine(self._state, **fields)
        self._persist("save_machines", self.store.save_machines, [machine])
        return machine

    def update_machine(self, machine_id: str, updates: dict[str, Any]) -> Machine:
        self._state, machine = transitions.update_machine(self._state, machine_id, updates)
        self._persist("save_machines", self.store.save_machines, [machine])
        return machine

    def delete_machine(self, machine_id: str) -> list[str]:
        self._state, removed = transitions.delete_machine(self._state, machine_id)
        logger.info("machine_deleted", machine_id=machine_id, removed_parts=len(removed))
        for part_id in removed:
            self._persist("delete_part", self.store.delete_part, part_id)
        self._persist("delete_machine", self.store.delete_machine, machine_id)
        return removed

    # ── Part definitions ─────────────────────────────────────────────────────

    def add_definition(self, **fields: Any) -> PartDefinition:
        self._state, definition = transitions.add_definition(self._state, **fields)
        self._persist("save_definitions", self.store.save_definitions, [definition])
        return definition

    def update_definition(self, definition_id: str, updates: dict[str, Any]) -> PartDefinition:
        self._state, definition = transitions.update_definition(self._state, definition_id, updates)
        self._persist("save_definitions", self.store.save_definitions, [definition])
        return definition

    def delete_definition(self, definition_id: str) -> None:
        self._state = transitions.delete_definition(self._state, definition_id)
        self._persist("delete_definition", self.store.delete_definition, definition_id)

    # ── Batch import ─────────────────────────────────────────────────────────

    def preview_import(self, text: str, now: datetime | None = None) -> ImportResult:
        return reconcile_csv(self._state, text, now)

    def commit_import(self, result: ImportResult) -> None:
        state = self._state
        self._state = state.model_copy(update={
            "machines": state.machines + tuple(result.new_machines),
            "definitions": state.definitions + tuple(result.new_definitions),
            "parts": state.parts + tuple(result.new_parts),
        })
        logger.info("import_committed", **result.counts)
        if result.new_machines:
            self._persist("save_machines", self.store.save_machines, list(result.new_machines))
        if result.new_definitions:
            self._persist("save_definitions", self.store.save_definitions, list(result.new_definitions))
        if result.new_parts:
            self._persist("save_parts", self.store.save_parts, list(result.new_parts))

    def import_csv(self, text: str, now: datetime | None = None) -> ImportResult:
        result = self.preview_import(text, now)
        self.commit_import(result)
        return result

    # ── Backup ───────────────────────────────────────────────────────────────

    def export_backup(self, now: datetime | None = None) -> str:
        return dump_backup(self._state, now)

    def restore_backup(self, text: str) -> FleetState:
        """Overwrite all four collections. The file is validated first."""
        self._state = parse_backup(text)
        logger.info(
            "backup_restored",
            machines=len(self._state.machines),
            parts=len(self._state.parts),
            logs=len(self._state.logs),
        )
        self._persist("replace_all", self.store.replace_all, self._state)
        return self._state

    # ── Report ───────────────────────────────────────────────────────────────

    def generate_report(self, narrator, now: datetime | None = None) -> str:
        return narrator.summarize(self.view(now).parts, list(self._state.machines))
