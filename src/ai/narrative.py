"""
src/ai/narrative.py
────────────────────
Narrative maintenance report.

Turns the derived fleet view into a short HTML executive summary through an
OpenAI chat completion. Best effort only: a missing key, a client error or
an empty reply each map to a fixed message, and nothing is raised.

Configure with OPENAI_API_KEY / OPENAI_MODEL (config/settings.py).
"""
from __future__ import annotations

import json
from collections.abc import Sequence

from config.settings import settings
from src.analytics.summary import fleet_summary
from src.data.models import Machine, PartStatus, PopulatedPart
from src.logger import get_logger

logger = get_logger(__name__)

NO_API_KEY = "API Key not found. Unable to generate analysis."
NO_ANALYSIS = "No analysis generated."
SERVICE_FAILED = "Failed to communicate with AI service."

SYSTEM_PROMPT = "You are an industrial maintenance expert."

PROMPT_TEMPLATE = """Analyze the following JSON data representing the current state of a factory's machinery and parts.

Data: {payload}

Please provide a concise executive summary in HTML format (using <h3>, <ul>, <li>, <strong>, <p> tags, but no markdown code blocks).
Focus on:
1. Immediate risks (Critical parts).
2. Upcoming maintenance needs (Warning parts).
3. A specific recommendation for the most urgent machine.
4. Keep the tone professional and urgent if necessary."""


def build_payload(parts: Sequence[PopulatedPart], machines: Sequence[Machine]) -> dict:
    summary = fleet_summary(parts, machines)
    return {
        "totalMachines": summary.total_machines,
        "totalParts": summary.total_parts,
        "criticalCount": summary.critical_count,
        "warningCount": summary.warning_count,
        "criticalDetails": [
            {
                "part": d.part,
                "machine": d.machine,
                "health": d.health,
                "daysUsed": d.days_used,
                "maxLifeDays": d.max_life_days,
            }
            for d in summary.critical_details
        ],
        "warningParts": [p.definition.name for p in parts if p.status == PartStatus.WARNING],
        "machines": summary.machines,
    }


def build_prompt(parts: Sequence[PopulatedPart], machines: Sequence[Machine]) -> str:
    return PROMPT_TEMPLATE.format(payload=json.dumps(build_payload(parts, machines), indent=2))


class MaintenanceNarrator:
    """`summarize(parts, machines) -> str` backed by an OpenAI client."""

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.api_key = settings.OPENAI_API_KEY if api_key is None else api_key
        self.model = model or settings.OPENAI_MODEL
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def summarize(self, parts: Sequence[PopulatedPart], machines: Sequence[Machine]) -> str:
        if not self.available:
            return NO_API_KEY

        try:
            response = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(parts, machines)},
                ],
                temperature=0.3,
            )
            text = response.choices[0].message.content
        except Exception as exc:
            logger.error("narrative_failed", model=self.model, error=str(exc))
            return SERVICE_FAILED

        return text or NO_ANALYSIS
