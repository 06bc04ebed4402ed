"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from reagent.auth import auth_configured
from reagent.config import settings
from reagent.database import engine
from reagent.logger import logger
from reagent.storage import storage

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        database_ok = True
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        database_ok = False

    storage_ok = storage.root.is_dir()

    return {
        "status": "ok" if (database_ok and storage_ok) else "degraded",
        "database": {"reachable": database_ok},
        "storage": {"bucket": storage.bucket, "writable_root": storage_ok},
        "integrations": {
            "auth": auth_configured(),
            "payments": bool(settings.stripe_secret_key),
            "ai_description": bool(settings.gemini_api_key),
        },
    }
