"""
config/parts.py
───────────────
Part lifecycle constants: health status boundaries, batch import defaults,
and the demo catalog written into an empty store.

Health status bands (percentage of remaining lifetime):
  h < critical_below                  → CRITICAL
  critical_below ≤ h < warning_below  → WARNING
  h ≥ warning_below                   → GOOD
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class HealthBand:
    """Lower bounds are inclusive on the healthier side."""
    critical_below: float
    warning_below: float


HEALTH_BAND = HealthBand(critical_below=10.0, warning_below=30.0)

SECONDS_PER_DAY = 86_400

# ── Batch import defaults ─────────────────────────────────────────────────────
IMPORT_MACHINE_LOCATION = "Imported"
IMPORT_MACHINE_MODEL = "Unknown"
IMPORT_DEFAULT_CATEGORY = "General"
IMPORT_DEFAULT_LIFETIME_DAYS = 365
IMPORT_COLUMNS = [
    "machine_name",
    "machine_id",      # ignored, ids are always generated
    "part_name",
    "category",
    "serial_number",
    "install_date_raw",
    "lifetime_days",
]

UNKNOWN_PART_NAME = "Unknown Part"

# ── Seed catalog ──────────────────────────────────────────────────────────────
SEED_MACHINES: list[dict] = [
    {"id": "m1", "name": "CNC Router Alpha", "location": "Zone A", "model": "X-2000", "status": "active"},
    {"id": "m2", "name": "Injection Molder Beta", "location": "Zone B", "model": "Inj-500", "status": "active"},
    {"id": "m3", "name": "Conveyor Belt System", "location": "Zone C", "model": "Conv-Pro", "status": "maintenance"},
    {"id": "m4", "name": "Robotic Arm Delta", "location": "Zone A", "model": "Arm-V6", "status": "active"},
]

SEED_DEFINITIONS: list[dict] = [
    {"id": "p1", "name": "Spindle Bearing", "category": "Mechanical", "max_lifetime_days": 365, "cost": 250.0},
    {"id": "p2", "name": "Hydraulic Pump", "category": "Hydraulic", "max_lifetime_days": 730, "cost": 1200.0},
    {"id": "p3", "name": "Servo Motor", "category": "Electrical", "max_lifetime_days": 1095, "cost": 800.0},
    {"id": "p4", "name": "Drive Belt", "category": "Mechanical", "max_lifetime_days": 180, "cost": 45.0},
    {"id": "p5", "name": "Filter Unit", "category": "Consumable", "max_lifetime_days": 30, "cost": 25.0},
]

# Probability that a seeded machine carries a given part type
SEED_INSTALL_PROBABILITY = 0.7
