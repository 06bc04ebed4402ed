"""Re-Agent API: property photo enhancement and video generation."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from reagent.config import settings
from reagent.confirm import delete_confirmations
from reagent.database import init_db
from reagent.logger import logger
from reagent.uploads import upload_tracker


async def _periodic_cleanup(interval: int = 60) -> None:
    """Background task: forget faded uploads and expired delete confirmations."""
    while True:
        await asyncio.sleep(interval)
        try:
            pruned = upload_tracker.prune() + delete_confirmations.prune()
            if pruned:
                logger.debug(f"[cleanup] Pruned {pruned} stale UI entries")
        except Exception as exc:
            logger.error(f"[cleanup] Error: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Init database
    await init_db()

    # Start background cleanup task
    cleanup_task = asyncio.create_task(_periodic_cleanup())

    yield

    cleanup_task.cancel()


app = FastAPI(
    title="Re-Agent API",
    description="AI-enhanced property photos and listing videos",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.site_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.jwt_secret)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# --- Mount routers ---
from reagent.routers import auth as auth_routes  # noqa: E402
from reagent.routers import description as description_routes  # noqa: E402
from reagent.routers import health as health_routes  # noqa: E402
from reagent.routers import images as image_routes  # noqa: E402
from reagent.routers import media as media_routes  # noqa: E402
from reagent.routers import payments as payment_routes  # noqa: E402
from reagent.routers import projects as project_routes  # noqa: E402
from reagent.routers import user as user_routes  # noqa: E402

app.include_router(health_routes.router)
app.include_router(auth_routes.router)
app.include_router(user_routes.router)
app.include_router(project_routes.router)
app.include_router(image_routes.router)
app.include_router(payment_routes.router)
app.include_router(description_routes.router)
app.include_router(media_routes.router)
