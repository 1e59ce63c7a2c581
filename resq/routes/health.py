"""
GET /health: is the ResQ API up, and can it reach the report database?

The coastal dashboard polls this for its connectivity badge. The route
always answers 200 while the process runs; the database field is what
separates "no reports can be filed" from "service gone".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from resq.core import database as db_module
from resq.core.config import VERSION, settings

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str  # connected / disconnected
    environment: str


async def _database_state() -> str:
    # Looked up on the module at call time; tests replace db_client.client
    client = db_module.db_client.client
    if client is None:
        return "disconnected"
    try:
        await client.admin.command("ping")
    except Exception as exc:
        logger.warning("Report database ping failed: %s", exc)
        return "disconnected"
    return "connected"


@router.get("", response_model=HealthResponse, summary="Service and database status")
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=VERSION,
        database=await _database_state(),
        environment=settings.environment,
    )
