"""AI listing description endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from reagent import description
from reagent.auth import require_user
from reagent.logger import logger
from reagent.models import User
from reagent.schemas import GenerateDescriptionRequest

router = APIRouter(prefix="/api", tags=["description"])


@router.post("/generate-description")
async def generate_description(
    body: GenerateDescriptionRequest,
    user: User = Depends(require_user),
):
    if not (body.project_name or "").strip():
        raise HTTPException(status_code=400, detail="Project name is required")

    prompt = description.build_prompt(
        body.project_name, body.address, body.global_instructions, body.image_count
    )
    try:
        text = await run_in_threadpool(description.generate_description, prompt)
    except Exception:
        logger.exception("AI description generation error")
        raise HTTPException(status_code=500, detail="Failed to generate description")

    return {"success": True, "description": text}
