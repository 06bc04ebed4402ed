"""Project endpoints: creation, dashboard, uploads, processing and downloads."""

from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.archive import build_archive, folder_name
from reagent.auth import require_user
from reagent.confirm import delete_confirmations
from reagent.database import get_db
from reagent.gate import check_processing_gate, enforce
from reagent.imaging import measure_aspect_ratio
from reagent.logger import logger
from reagent.models import Project, ProjectImage, User
from reagent.projects import (
    count_images,
    delete_project,
    get_owned_project,
    list_images,
    next_sequence,
    serialize_image,
    serialize_project,
)
from reagent.queue import enqueue_initial_processing, enqueue_video
from reagent.realtime import stream_changes
from reagent.schemas import Base64File, CreateProjectRequest, ProjectRef, UpdateProjectRequest
from reagent.storage import original_filename, original_path, storage
from reagent.tier import PACKAGES, check_image_quota
from reagent.uploads import (
    IncomingFile,
    discard_original,
    run_upload_batch,
    upload_tracker,
    validate_files,
)

router = APIRouter(prefix="/api", tags=["projects"])


def _decode_data_url(upload: Base64File) -> bytes:
    payload = upload.data.split(",", 1)[1] if "," in upload.data else upload.data
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError(f"{upload.name} is not valid base64 data")


@router.post("/create-project")
async def create_project(
    body: CreateProjectRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    incoming = len(body.pre_uploaded_images) or len(body.uploaded_files)

    if body.is_adding_to_existing:
        if not body.project_id:
            raise HTTPException(status_code=400, detail="Project ID is required")
        if not incoming:
            raise HTTPException(status_code=400, detail="At least one image is required")
        project = await get_owned_project(db, user, body.project_id)
        existing = await count_images(db, project.id)
        check_image_quota(project.package, existing, incoming)
    else:
        if not (body.project_name or "").strip():
            raise HTTPException(status_code=400, detail="Project name is required")
        package = body.selected_package
        if body.is_free_trial:
            if user.free_trial_used:
                raise HTTPException(status_code=400, detail="Free trial already used")
            package = "starter"
            user.free_trial_used = True
        if package not in PACKAGES:
            raise HTTPException(status_code=400, detail="Invalid package")
        existing = 0
        check_image_quota(package, existing, incoming)

        project = Project(
            user_id=user.id,
            name=body.project_name.strip(),
            address=body.address or None,
            global_instructions=body.global_instructions or None,
            package=package,
            status="draft",
            ai_description=body.ai_description or None,
        )
        db.add(project)
        await db.commit()
        logger.info(f"Created project {project.id} ({package}) for user {user.id}")

    # A failed row rolls the session back and expires loaded objects
    project_id, project_name, project_package = project.id, project.name, project.package
    results = []

    if body.pre_uploaded_images:
        for i, pre in enumerate(body.pre_uploaded_images):
            filename = pre.filename or pre.url.rstrip("/").split("/")[-1] or f"image-{i + 1}"
            try:
                db.add(
                    ProjectImage(
                        project_id=project_id,
                        original_filename=filename,
                        attempt_number=1,
                        tweak_history=[""],
                    )
                )
                await db.commit()
            except Exception as exc:
                await db.rollback()
                logger.exception(f"Project image creation error for {filename}")
                results.append({"fileName": filename, "success": False, "error": str(exc)})
                continue
            results.append({"fileName": filename, "success": True})

    elif body.uploaded_files:
        first = await next_sequence(db, project_id)
        for i, upload in enumerate(body.uploaded_files):
            filename = original_filename(project_name, first + i, upload.name)
            stored = False
            try:
                data = _decode_data_url(upload)
                errors = validate_files([IncomingFile(upload.name, upload.type, data)])
                if errors:
                    raise ValueError(errors[0])
                storage.upload(original_path(filename), data, upsert=False)
                stored = True
                instruction = body.image_instructions[i] if i < len(body.image_instructions) else ""
                db.add(
                    ProjectImage(
                        project_id=project_id,
                        original_filename=filename,
                        attempt_number=1,
                        tweak_history=[instruction or ""],
                        aspect_ratio=measure_aspect_ratio(data),
                    )
                )
                await db.commit()
            except Exception as exc:
                await db.rollback()
                logger.exception(f"Error processing file {upload.name}")
                if stored:
                    discard_original(filename)
                results.append({"fileName": filename, "success": False, "error": str(exc)})
                continue
            results.append({"fileName": filename, "success": True})

    return {
        "success": True,
        "project": {"id": project_id, "name": project_name, "package": project_package},
        "uploads": results,
    }


@router.get("/projects")
async def list_projects(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    image_counts = (
        select(ProjectImage.project_id, func.count(ProjectImage.id).label("n"))
        .group_by(ProjectImage.project_id)
        .subquery()
    )
    result = await db.execute(
        select(Project, func.coalesce(image_counts.c.n, 0))
        .outerjoin(image_counts, image_counts.c.project_id == Project.id)
        .where(Project.user_id == user.id)
        .order_by(Project.created_at.desc())
    )
    rows = result.all()
    projects = [serialize_project(p, image_count=n) for p, n in rows]
    return {
        "projects": projects,
        "stats": {
            "total": len(projects),
            "completed": sum(1 for p in projects if p["status"] == "completed"),
            "videos": sum(
                1 for p in projects if p["package"] != "starter" and p["status"] == "completed"
            ),
        },
    }


@router.get("/projects/{project_id}")
async def get_project(
    project_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    images = await list_images(db, project.id)
    data = serialize_project(project, image_count=len(images))
    data["images"] = [serialize_image(img, with_url=True) for img in images]
    data["uploads"] = upload_tracker.visible(project.id)
    return data


@router.patch("/projects/{project_id}")
async def update_project(
    project_id: str,
    body: UpdateProjectRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    changes = body.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Project name is required")
    for field, value in changes.items():
        setattr(project, field, value)
    await db.commit()
    return serialize_project(project)


@router.delete("/projects/{project_id}")
async def delete_project_route(
    project_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    outcome = delete_confirmations.press(
        (user.id, "project", project.id), lambda: delete_project(db, project)
    )
    if not outcome.deleted:
        return JSONResponse(
            status_code=202,
            content={"status": "confirming", "expires_in": round(outcome.expires_in, 3)},
        )
    await outcome.result
    return {"status": "deleted"}


@router.delete("/projects/{project_id}/confirmation")
async def cancel_delete_project(
    project_id: str,
    user: User = Depends(require_user),
):
    cancelled = delete_confirmations.cancel((user.id, "project", project_id))
    return {"status": "idle", "cancelled": cancelled}


@router.post("/projects/{project_id}/images")
async def upload_images(
    project_id: str,
    files: list[UploadFile] = File(...),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    incoming = [
        IncomingFile(name=f.filename or "upload", content_type=f.content_type or "", data=await f.read())
        for f in files
    ]

    errors = validate_files(incoming)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={"message": f"Upload failed: {', '.join(errors)}", "errors": errors},
        )

    existing = await count_images(db, project.id)
    check_image_quota(project.package, existing, len(incoming))

    first = await next_sequence(db, project.id)
    results = await run_upload_batch(project.id, project.name, incoming, first)
    succeeded = sum(1 for r in results if r["success"])
    return {"uploads": results, "image_count": existing + succeeded}


@router.get("/projects/{project_id}/uploads")
async def upload_progress(
    project_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    return {"uploads": upload_tracker.visible(project.id)}


@router.post("/projects/{project_id}/generate")
async def generate_all_images(
    project_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    image_count = await count_images(db, project.id)
    enforce(check_processing_gate(project, "initial_processing", image_count=image_count))

    queued = await enqueue_initial_processing(db, project)
    return {"message": f"Started processing {queued} images", "queued": queued, "status": project.status}


@router.post("/projects/{project_id}/video")
async def generate_video(
    project_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    enforce(check_processing_gate(project, "video_generation"))

    image_count = await count_images(db, project.id)
    await enqueue_video(db, project, image_count)
    return {"status": project.status, "video_status": project.video_status}


@router.get("/projects/{project_id}/video")
async def get_video(
    project_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    if not project.video_url or project.status != "completed":
        raise HTTPException(
            status_code=409, detail="Video is not yet available. Please check back later."
        )
    return {"id": project.id, "name": project.name, "video_url": project.video_url}


@router.get("/projects/{project_id}/events")
async def project_events(
    project_id: str,
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, project_id)
    return StreamingResponse(
        stream_changes(project.id, user.id, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/download-images")
async def download_images(
    body: ProjectRef,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, user, body.project_id)

    result = await db.execute(
        select(ProjectImage)
        .where(
            ProjectImage.project_id == project.id,
            ProjectImage.processing_status == "completed",
            ProjectImage.processed_url.is_not(None),
        )
        .order_by(ProjectImage.created_at)
    )
    images = list(result.scalars().all())
    if not images:
        raise HTTPException(status_code=404, detail="No completed images found")

    content, added = build_archive(project.name, images, storage.download)
    logger.info(f"Bundled {added}/{len(images)} processed images of project {project.id}")

    filename = f"{folder_name(project.name)}.zip"
    return Response(
        content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
