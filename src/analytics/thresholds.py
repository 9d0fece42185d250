"""
src/analytics/thresholds.py
────────────────────────────
Health status classification.

Maps a remaining-lifetime percentage to GOOD / WARNING / CRITICAL using the
fixed band in config/parts.py. Lower boundaries belong to the healthier
status: exactly 10 % is WARNING, exactly 30 % is GOOD.
"""
from __future__ import annotations

from config.parts import HEALTH_BAND, HealthBand
from src.data.models import PartStatus

# Sorting helper for callers that list the most urgent parts first
STATUS_ORDER: dict[PartStatus, int] = {
    PartStatus.CRITICAL: 3,
    PartStatus.WARNING: 2,
    PartStatus.GOOD: 1,
}


def classify_health(health_percentage: float, band: HealthBand = HEALTH_BAND) -> PartStatus:
    if health_percentage < band.critical_below:
        return PartStatus.CRITICAL
    if health_percentage < band.warning_below:
        return PartStatus.WARNING
    return PartStatus.GOOD
