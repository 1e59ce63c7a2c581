"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. Connection strings are injected via environment,
never hard-coded for production.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.1.0"


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── MongoDB ───────────────────────────────────────────────────
    # Local dev default matches a plain `mongod` on the default port.
    # In production, replace with an Atlas connection string.
    mongo_uri: str = "mongodb://localhost:27017/resq"
    mongo_db_name: str = "resq"
    reports_collection: str = "hazard_reports"

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the dashboard front end.
    cors_origins_str: str = "http://localhost:5173,https://ocean-res-q.vercel.app"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    # ─── Rate limits (slowapi limit strings) ───────────────────────
    submit_rate_limit: str = "20/minute"
    export_rate_limit: str = "10/minute"

    # ─── Proximity search ──────────────────────────────────────────
    nearby_default_radius_km: float = 10.0
    nearby_max_results: int = 20

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton: import this instead of instantiating Settings()
settings = Settings()
