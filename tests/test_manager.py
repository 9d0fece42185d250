"""
tests/test_manager.py
──────────────────────
Tests for FleetManager: in-memory transitions plus optimistic persistence.
"""
import json

import pytest
from structlog.testing import capture_logs

from src.data.models import FleetState
from src.data.store import EntityStore
from src.errors import BackupFormatError, DefinitionInUseError, ImportFormatError, PartNotFoundError
from src.lifecycle.manager import FleetManager

CSV = (
    "Machine,Machine ID,Part,Category,Serial,Install Date,Lifetime\n"
    '"Acme CNC",, "Drive Belt","Mechanical","SN-100","2024-01-01","180"\n'
    "Acme CNC,,Coolant Filter,Consumable,SN-101,2024-05-01,30\n"
)


class FailingStore(EntityStore):
    """Every write raises; loads return a fixed state."""

    def __init__(self, state: FleetState):
        self.state = state
        self.calls: list[str] = []

    def load_all(self):
        return self.state

    def _fail(self, name):
        self.calls.append(name)
        raise ConnectionError(f"{name} unavailable")

    def save_machines(self, machines):
        self._fail("save_machines")

    def save_definitions(self, definitions):
        self._fail("save_definitions")

    def save_parts(self, parts):
        self._fail("save_parts")

    def save_logs(self, logs):
        self._fail("save_logs")

    def delete_machine(self, machine_id):
        self._fail("delete_machine")

    def delete_definition(self, definition_id):
        self._fail("delete_definition")

    def delete_part(self, part_id):
        self._fail("delete_part")

    def replace_part(self, old_part_id, part):
        self._fail("replace_part")

    def replace_all(self, state):
        self._fail("replace_all")


class TestLoad:
    def test_load_from_store(self, memory_store, fleet_state):
        memory_store.replace_all(fleet_state)
        with FleetManager.load(memory_store) as fm:
            assert fm.state == fleet_state


class TestTransitionsPersist:
    def test_install_persists(self, manager, memory_store):
        part = manager.install_part("m2", "p2", "SN-100")
        manager.flush()
        assert memory_store.load_all().part(part.id) == part

    def test_replace_persists_log_and_instance_together(self, manager, memory_store, now):
        part, log = manager.replace_part("inst_1", "SN-500", now=now)
        manager.flush()
        stored = memory_store.load_all()
        assert stored.part("inst_1") is None
        assert stored.part(part.id) == part
        assert stored.logs == (log,)

    def test_replace_keeps_position_after_reload(self, manager, memory_store, now):
        part, _ = manager.replace_part("inst_1", "SN-500", now=now)
        manager.flush()
        expected = [part.id, "inst_2", "inst_3"]
        assert [p.id for p in manager.state.parts] == expected
        assert [p.id for p in memory_store.load_all().parts] == expected

    def test_replace_is_visible_atomically(self, manager, now):
        before = manager.state
        part, log = manager.replace_part("inst_1", "SN-500", now=now)
        after = manager.state
        assert before.logs == () and before.part("inst_1") is not None
        assert after.logs == (log,) and after.part(part.id) == part

    def test_failed_transition_leaves_state(self, manager):
        before = manager.state
        with pytest.raises(PartNotFoundError):
            manager.replace_part("inst_404", "SN-500")
        assert manager.state is before

    def test_update_part(self, manager, memory_store):
        part = manager.update_part("inst_2", {"current_days_used": 5})
        manager.flush()
        assert memory_store.load_all().part("inst_2") == part

    def test_delete_machine_cascade(self, manager, memory_store):
        removed = manager.delete_machine("m1")
        manager.flush()
        stored = memory_store.load_all()
        assert removed == ["inst_1", "inst_2"]
        assert [m.id for m in stored.machines] == ["m2"]
        assert [p.id for p in stored.parts] == ["inst_3"]

    def test_delete_definition_in_use(self, manager, memory_store, fleet_state):
        with pytest.raises(DefinitionInUseError):
            manager.delete_definition("p1")
        manager.flush()
        assert manager.state == fleet_state
        assert memory_store.load_all() == fleet_state

    def test_delete_installed_part(self, manager, memory_store):
        manager.delete_installed_part("inst_3")
        manager.flush()
        assert memory_store.load_all().part("inst_3") is None

    def test_catalog_editing(self, manager, memory_store):
        machine = manager.add_machine(name="Laser Cutter", location="Zone D", model="LC-1")
        definition = manager.add_definition(name="Lens", category="Optical", max_lifetime_days=60)
        manager.update_machine(machine.id, {"status": "maintenance"})
        manager.update_definition(definition.id, {"cost": 99.0})
        manager.flush()
        stored = memory_store.load_all()
        assert stored.machine(machine.id).status.value == "maintenance"
        assert stored.definition(definition.id).cost == 99.0


class TestOptimisticPersistence:
    def test_store_failure_keeps_memory_and_warns(self, fleet_state, now):
        store = FailingStore(fleet_state)
        fm = FleetManager.load(store)
        with capture_logs() as logs:
            part, log = fm.replace_part("inst_1", "SN-500", now=now)
            fm.flush()
        fm.close()

        assert fm.state.part(part.id) == part
        assert fm.state.logs == (log,)
        assert store.calls == ["save_logs", "replace_part"]
        warnings = [e for e in logs if e["event"] == "persistence_failed"]
        assert len(warnings) == 2
        assert all(e["log_level"] == "warning" for e in warnings)

    def test_writes_run_in_order(self, fleet_state):
        store = FailingStore(fleet_state)
        with FleetManager.load(store) as fm:
            fm.install_part("m2", "p2", "SN-100")
            fm.delete_installed_part("inst_3")
            fm.delete_machine("m1")
            fm.flush()
        assert store.calls == ["save_parts", "delete_part", "delete_part", "delete_part", "delete_machine"]


class TestImport:
    def test_preview_applies_nothing(self, manager, fleet_state, now):
        result = manager.preview_import(CSV, now)
        assert result.counts["parts"] == 2
        assert manager.state == fleet_state

    def test_import_commits_and_persists(self, manager, memory_store, now):
        result = manager.import_csv(CSV, now)
        manager.flush()
        stored = memory_store.load_all()
        assert result.counts == {"machines": 1, "definitions": 1, "parts": 2, "skipped": 0}
        assert len(manager.state.parts) == 5
        assert stored == manager.state

    def test_reimport_is_idempotent_for_parts(self, manager, now):
        manager.import_csv(CSV, now)
        second = manager.import_csv(CSV, now)
        assert second.counts["parts"] == 0
        assert len(manager.state.parts) == 5

    def test_only_non_empty_lists_persisted(self, fleet_state, now):
        store = FailingStore(fleet_state)
        with FleetManager.load(store) as fm:
            fm.import_csv(
                "h\nCNC Router Alpha,,Drive Belt,,SN-900,2024-05-01,\n", now
            )
            fm.flush()
        assert store.calls == ["save_parts"]

    def test_empty_csv_rejected(self, manager, fleet_state):
        with pytest.raises(ImportFormatError):
            manager.import_csv("Machine,Part\n")
        assert manager.state == fleet_state


class TestBackup:
    def test_export_then_restore(self, manager, memory_store, now):
        manager.replace_part("inst_1", "SN-500", now=now)
        text = manager.export_backup(now)
        snapshot = manager.state

        manager.delete_machine("m1")
        restored = manager.restore_backup(text)
        manager.flush()

        assert restored == snapshot
        assert manager.state == snapshot
        assert memory_store.load_all() == snapshot

    def test_bad_backup_rejected_before_mutation(self, manager, fleet_state):
        with pytest.raises(BackupFormatError):
            manager.restore_backup(json.dumps({"machines": []}))
        assert manager.state == fleet_state


class TestReadSide:
    def test_view_and_summary(self, manager, now):
        view = manager.view(now)
        assert [p.status.value for p in view.parts] == ["CRITICAL", "GOOD", "WARNING"]
        assert manager.summary(now).critical_count == 1

    def test_history(self, manager, now):
        manager.replace_part("inst_1", "SN-500", now=now)
        df = manager.history("m1")
        assert list(df["new_part_number"]) == ["SN-500"]
        assert manager.history("m2").empty

    def test_generate_report_uses_view(self, manager, now):
        class Narrator:
            def summarize(self, parts, machines):
                return f"{len(parts)} parts / {len(machines)} machines"

        assert manager.generate_report(Narrator(), now) == "3 parts / 2 machines"
