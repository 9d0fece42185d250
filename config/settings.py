"""
config/settings.py
──────────────────
Application configuration loaded from environment variables.
"""
import os
from dataclasses import dataclass


@dataclass
class Settings:
    # Runtime
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Unset → JSON everywhere except development
    LOG_JSON: str = os.getenv("LOG_JSON", "")

    # Entity store (SQLite path; ":memory:" for throwaway sessions)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "lifecycle.db")

    # Seed catalog written into an empty store on first load
    SEED_ON_EMPTY: bool = os.getenv("SEED_ON_EMPTY", "true").lower() == "true"
    SEED: int = int(os.getenv("SEED", "42"))

    # Narrative report
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")


settings = Settings()
