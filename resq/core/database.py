"""
Where the hazard report collection lives.

One process-wide Motor handle backs every ReportStore. main.py opens it
before the first request, creates the report indexes when the ping
succeeds, and drops it when the app stops. A failed ping is not fatal:
db stays None, deps.get_report_store() turns that into a 503 for report and
analytics routes, and /health shows the outage as "disconnected".
"""

import logging
import re

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from resq.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseClient:
    """Motor client plus the selected database; both None while offline."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None


# Shared by every request; tests swap .client and .db in conftest
db_client = DatabaseClient()


async def connect_to_mongo() -> None:
    """Open the report database and ping it; leave db unset if the ping fails."""
    logger.info("Connecting to MongoDB at %s", _redact_uri(settings.mongo_uri))
    options = {
        "serverSelectionTimeoutMS": 5000,
        # Aware UTC datetimes keep created_at / resolved_at arithmetic consistent
        "tz_aware": True,
    }
    if settings.mongo_uri.startswith("mongodb+srv"):
        # Atlas TLS: use certifi's CA bundle instead of the system store
        options["tlsCAFile"] = certifi.where()
    try:
        db_client.client = AsyncIOMotorClient(settings.mongo_uri, **options)
        db_client.db = db_client.client[settings.mongo_db_name]
        await db_client.client.admin.command("ping")
        logger.info("Report database ready (db: %s)", settings.mongo_db_name)
    except Exception as exc:
        logger.warning(
            "Report database unreachable at startup: %s. "
            "Report and analytics routes will answer 503 until restart.",
            exc,
        )
        db_client.client = None
        db_client.db = None


async def close_mongo_connection() -> None:
    """Release the Motor client on shutdown."""
    if db_client.client is not None:
        db_client.client.close()
        db_client.client = None
        db_client.db = None
        logger.info("MongoDB connection closed")


def get_db() -> AsyncIOMotorDatabase | None:
    """The report database, or None while MongoDB is unreachable."""
    return db_client.db


def _redact_uri(uri: str) -> str:
    """Hide the user:password part of a connection string."""
    return re.sub(r"://[^:]+:[^@]+@", "://<redacted>@", uri)
