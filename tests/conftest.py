"""
tests/conftest.py
─────────────────
Shared pytest fixtures for the part lifecycle test suite.
"""
import os
from datetime import UTC, datetime, timedelta

import pytest

# Use in-memory SQLite and no demo seeding unless a test asks for it
os.environ.setdefault("DATABASE_URL", ":memory:")
os.environ.setdefault("SEED_ON_EMPTY", "false")
os.environ.setdefault("SEED", "42")
os.environ.setdefault("OPENAI_API_KEY", "")


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def machines():
    from src.data.models import Machine, MachineStatus
    return [
        Machine(id="m1", name="CNC Router Alpha", location="Zone A", model="X-2000"),
        Machine(id="m2", name="Injection Molder Beta", location="Zone B", model="Inj-500",
                status=MachineStatus.MAINTENANCE),
    ]


@pytest.fixture
def definitions():
    from src.data.models import PartDefinition
    return [
        PartDefinition(id="p1", name="Drive Belt", category="Mechanical", max_lifetime_days=100, cost=45.0),
        PartDefinition(id="p2", name="Hydraulic Pump", category="Hydraulic", max_lifetime_days=730, cost=1200.0),
    ]


@pytest.fixture
def make_part(now):
    """Factory: an installed part put in service `days_ago` days before `now`."""
    from src.data.models import InstalledPart

    def _make(part_id, machine_id, definition_id, days_ago, serial, stored_days=0):
        return InstalledPart(
            id=part_id,
            definition_id=definition_id,
            machine_id=machine_id,
            install_date=now - timedelta(days=days_ago),
            current_days_used=stored_days,
            part_number=serial,
        )

    return _make


@pytest.fixture
def parts(make_part):
    return [
        make_part("inst_1", "m1", "p1", 95, "SN-001"),   # 5 % → CRITICAL
        make_part("inst_2", "m1", "p2", 73, "SN-002"),   # 90 % → GOOD
        make_part("inst_3", "m2", "p1", 80, "SN-003"),   # 20 % → WARNING
    ]


@pytest.fixture
def fleet_state(machines, definitions, parts):
    from src.data.models import FleetState
    return FleetState(machines=tuple(machines), definitions=tuple(definitions), parts=tuple(parts))


@pytest.fixture
def memory_store():
    from src.data.store import SQLiteEntityStore
    store = SQLiteEntityStore(":memory:", seed_on_empty=False)
    yield store
    store.close()


@pytest.fixture
def manager(memory_store, fleet_state):
    from src.lifecycle.manager import FleetManager
    memory_store.replace_all(fleet_state)
    fm = FleetManager(memory_store, fleet_state)
    yield fm
    fm.close()
