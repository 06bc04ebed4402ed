"""Per-image endpoints: tweak requests and deletion."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.auth import require_user
from reagent.confirm import delete_confirmations
from reagent.database import get_db
from reagent.gate import check_processing_gate, enforce
from reagent.models import User
from reagent.projects import delete_image, get_owned_image, serialize_image
from reagent.queue import enqueue_tweak
from reagent.schemas import TweakRequest

router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("/{image_id}/tweak")
async def tweak_image(
    image_id: str,
    body: TweakRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    instruction = body.instruction.strip()
    if not instruction:
        raise HTTPException(status_code=400, detail="Instruction is required")

    image, project = await get_owned_image(db, user, image_id)
    enforce(check_processing_gate(project, "tweak", image=image))

    await enqueue_tweak(db, image, instruction)
    return serialize_image(image)


@router.delete("/{image_id}")
async def delete_image_route(
    image_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    image, _ = await get_owned_image(db, user, image_id)
    outcome = delete_confirmations.press(
        (user.id, "image", image.id), lambda: delete_image(db, image)
    )
    if not outcome.deleted:
        return JSONResponse(
            status_code=202,
            content={"status": "confirming", "expires_in": round(outcome.expires_in, 3)},
        )
    await outcome.result
    return {"status": "deleted"}


@router.delete("/{image_id}/confirmation")
async def cancel_delete_image(
    image_id: str,
    user: User = Depends(require_user),
):
    cancelled = delete_confirmations.cancel((user.id, "image", image_id))
    return {"status": "idle", "cancelled": cancelled}
