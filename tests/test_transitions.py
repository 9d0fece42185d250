"""
tests/test_transitions.py
──────────────────────────
Tests for the pure lifecycle transitions.
"""
from datetime import timedelta

import pytest

from src.data.models import MachineStatus
from src.errors import (
    DefinitionInUseError,
    DefinitionNotFoundError,
    DuplicateSerialError,
    InvalidUpdateError,
    MachineNotFoundError,
    PartNotFoundError,
)
from src.lifecycle import transitions as tx


class TestInstallPart:
    def test_appends_fresh_part(self, fleet_state, now):
        new_state, part = tx.install_part(fleet_state, "m2", "p2", "SN-100", now)
        assert new_state.parts[-1] == part
        assert part.current_days_used == 0
        assert part.install_date == now
        assert part.id not in {p.id for p in fleet_state.parts}
        # Original snapshot untouched
        assert len(fleet_state.parts) == 3

    def test_unknown_machine(self, fleet_state):
        with pytest.raises(MachineNotFoundError):
            tx.install_part(fleet_state, "m9", "p1", "SN-100")

    def test_unknown_definition(self, fleet_state):
        with pytest.raises(DefinitionNotFoundError):
            tx.install_part(fleet_state, "m1", "p9", "SN-100")

    def test_duplicate_serial_rejected(self, fleet_state):
        with pytest.raises(DuplicateSerialError) as exc_info:
            tx.install_part(fleet_state, "m2", "p2", "SN-001")
        assert exc_info.value.existing_part_id == "inst_1"


class TestReplacePart:
    def test_new_identity_and_log(self, fleet_state, now):
        new_state, part, log = tx.replace_part(fleet_state, "inst_1", "SN-500", now=now)

        assert part.id != "inst_1"
        assert part.current_days_used == 0
        assert part.part_number == "SN-500"
        assert part.install_date == now
        assert (part.machine_id, part.definition_id) == ("m1", "p1")

        assert new_state.logs == (log,)
        assert log.old_part_number == "SN-001"
        assert log.new_part_number == "SN-500"
        assert log.days_used_at_replacement == 95
        assert log.part_name == "Drive Belt"
        assert log.replaced_date == now

    def test_replaced_in_same_slot(self, fleet_state, now):
        new_state, part, _ = tx.replace_part(fleet_state, "inst_1", "SN-500", now=now)
        assert [p.id for p in new_state.parts] == [part.id, "inst_2", "inst_3"]
        assert new_state.part("inst_1") is None

    def test_replace_date_sets_install_date(self, fleet_state, now):
        earlier = now - timedelta(days=2)
        _, part, log = tx.replace_part(fleet_state, "inst_1", "SN-500", replace_date=earlier, now=now)
        assert part.install_date == earlier
        assert log.replaced_date == earlier
        # Usage at replacement is measured up to now
        assert log.days_used_at_replacement == 95

    def test_unknown_part_leaves_state(self, fleet_state):
        with pytest.raises(PartNotFoundError):
            tx.replace_part(fleet_state, "inst_404", "SN-500")
        assert fleet_state.logs == ()

    def test_serial_of_other_part_rejected(self, fleet_state):
        with pytest.raises(DuplicateSerialError):
            tx.replace_part(fleet_state, "inst_1", "SN-002")

    def test_same_serial_reinstall_allowed(self, fleet_state, now):
        _, part, log = tx.replace_part(fleet_state, "inst_1", "SN-001", now=now)
        assert log.old_part_number == log.new_part_number == "SN-001"
        assert part.id != "inst_1"

    def test_missing_definition_logs_unknown_name(self, fleet_state, now):
        orphaned = fleet_state.model_copy(update={"definitions": fleet_state.definitions[1:]})
        _, _, log = tx.replace_part(orphaned, "inst_1", "SN-500", now=now)
        assert log.part_name == "Unknown Part"

    def test_history_appends(self, fleet_state, now):
        state, part, _ = tx.replace_part(fleet_state, "inst_1", "SN-500", now=now)
        state, _, _ = tx.replace_part(state, part.id, "SN-501", now=now)
        assert [log.new_part_number for log in state.logs] == ["SN-500", "SN-501"]


class TestUpdatePart:
    def test_overrides_keep_id(self, fleet_state, now):
        new_date = now - timedelta(days=3)
        new_state, part = tx.update_part(
            fleet_state, "inst_2", {"install_date": new_date, "current_days_used": 3}
        )
        assert part.id == "inst_2"
        assert part.install_date == new_date
        assert part.current_days_used == 3
        assert new_state.logs == ()

    def test_id_cannot_change(self, fleet_state):
        with pytest.raises(InvalidUpdateError):
            tx.update_part(fleet_state, "inst_2", {"id": "inst_99"})

    def test_unknown_field(self, fleet_state):
        with pytest.raises(InvalidUpdateError):
            tx.update_part(fleet_state, "inst_2", {"colour": "red"})

    def test_invalid_value(self, fleet_state):
        with pytest.raises(InvalidUpdateError):
            tx.update_part(fleet_state, "inst_2", {"current_days_used": -5})

    def test_serial_conflict(self, fleet_state):
        with pytest.raises(DuplicateSerialError):
            tx.update_part(fleet_state, "inst_2", {"part_number": "SN-003"})

    def test_unknown_part(self, fleet_state):
        with pytest.raises(PartNotFoundError):
            tx.update_part(fleet_state, "inst_404", {"current_days_used": 1})

    def test_move_to_unknown_machine(self, fleet_state):
        with pytest.raises(MachineNotFoundError):
            tx.update_part(fleet_state, "inst_2", {"machine_id": "m9"})

    def test_retype_to_unknown_definition(self, fleet_state):
        with pytest.raises(DefinitionNotFoundError):
            tx.update_part(fleet_state, "inst_2", {"definition_id": "p9"})

    def test_move_to_existing_machine(self, fleet_state):
        state, part = tx.update_part(fleet_state, "inst_2", {"machine_id": "m2", "definition_id": "p1"})
        assert (part.machine_id, part.definition_id) == ("m2", "p1")
        assert state.part("inst_2") == part


class TestDeletes:
    def test_delete_installed_part(self, fleet_state):
        new_state = tx.delete_installed_part(fleet_state, "inst_2")
        assert [p.id for p in new_state.parts] == ["inst_1", "inst_3"]

    def test_delete_installed_part_idempotent(self, fleet_state):
        assert tx.delete_installed_part(fleet_state, "inst_404") == fleet_state

    def test_delete_machine_cascades_exactly(self, fleet_state):
        new_state, removed = tx.delete_machine(fleet_state, "m1")
        assert removed == ["inst_1", "inst_2"]
        assert [m.id for m in new_state.machines] == ["m2"]
        assert [p.id for p in new_state.parts] == ["inst_3"]

    def test_delete_machine_keeps_history(self, fleet_state, now):
        state, _, _ = tx.replace_part(fleet_state, "inst_1", "SN-500", now=now)
        state, _ = tx.delete_machine(state, "m1")
        assert len(state.logs) == 1

    def test_delete_definition_in_use_rejected(self, fleet_state):
        with pytest.raises(DefinitionInUseError) as exc_info:
            tx.delete_definition(fleet_state, "p1")
        assert exc_info.value.part_ids == ["inst_1", "inst_3"]
        assert len(fleet_state.definitions) == 2

    def test_delete_unused_definition(self, fleet_state):
        state = tx.delete_installed_part(fleet_state, "inst_2")
        state = tx.delete_definition(state, "p2")
        assert [d.id for d in state.definitions] == ["p1"]


class TestCatalogEditing:
    def test_add_machine(self, fleet_state):
        state, machine = tx.add_machine(fleet_state, name="Laser Cutter", location="Zone D", model="LC-1")
        assert state.machines[-1] == machine
        assert machine.id.startswith("m_")
        assert machine.status == MachineStatus.ACTIVE

    def test_update_machine(self, fleet_state):
        state, machine = tx.update_machine(fleet_state, "m2", {"status": "offline"})
        assert machine.status == MachineStatus.OFFLINE
        assert state.machine("m2").status == MachineStatus.OFFLINE

    def test_update_unknown_machine(self, fleet_state):
        with pytest.raises(MachineNotFoundError):
            tx.update_machine(fleet_state, "m9", {"name": "X"})

    def test_add_definition(self, fleet_state):
        state, definition = tx.add_definition(
            fleet_state, name="Filter Unit", category="Consumable", max_lifetime_days=30, cost=25.0
        )
        assert state.definitions[-1] == definition

    def test_update_definition_validates_lifetime(self, fleet_state):
        with pytest.raises(InvalidUpdateError):
            tx.update_definition(fleet_state, "p1", {"max_lifetime_days": 0})

    def test_update_definition_changes_health_basis(self, fleet_state):
        state, definition = tx.update_definition(fleet_state, "p1", {"max_lifetime_days": 200})
        assert state.definition("p1").max_lifetime_days == 200
        assert definition.name == "Drive Belt"
