"""Project and image lookups scoped to their owner, plus deletion."""

from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.logger import logger
from reagent.models import BillingLogEntry, ProcessingQueueEntry, Project, ProjectImage, User
from reagent.storage import StorageError, original_path, sequence_of, storage
from reagent.tier import get_display_name, get_image_limit


async def get_owned_project(db: AsyncSession, user: User, project_id: str | None) -> Project:
    """Load ``project_id`` if ``user`` owns it, else 404 (never 403)."""
    if not project_id:
        raise HTTPException(status_code=400, detail="Project ID is required")
    result = await db.execute(
        select(Project).where(Project.id == project_id, Project.user_id == user.id)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found or access denied")
    return project


async def get_owned_image(db: AsyncSession, user: User, image_id: str) -> tuple[ProjectImage, Project]:
    result = await db.execute(
        select(ProjectImage, Project)
        .join(Project, Project.id == ProjectImage.project_id)
        .where(ProjectImage.id == image_id, Project.user_id == user.id)
    )
    row = result.one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Image not found or access denied")
    return row[0], row[1]


async def count_images(db: AsyncSession, project_id: str) -> int:
    return (
        await db.execute(
            select(func.count(ProjectImage.id)).where(ProjectImage.project_id == project_id)
        )
    ).scalar_one()


async def next_sequence(db: AsyncSession, project_id: str) -> int:
    """One past the highest ``_NN`` suffix among the project's images."""
    result = await db.execute(
        select(ProjectImage.original_filename).where(ProjectImage.project_id == project_id)
    )
    taken = [sequence_of(name) for name in result.scalars().all()]
    return max((n for n in taken if n is not None), default=0) + 1


async def list_images(db: AsyncSession, project_id: str) -> list[ProjectImage]:
    result = await db.execute(
        select(ProjectImage)
        .where(ProjectImage.project_id == project_id)
        .order_by(ProjectImage.created_at)
    )
    return list(result.scalars().all())


def _remove_originals(filenames: list[str]) -> None:
    try:
        storage.remove([original_path(name) for name in filenames])
    except (StorageError, OSError) as exc:
        # Rows are deleted even when the objects are not
        logger.error(f"Storage deletion error: {exc}")


async def delete_project(db: AsyncSession, project: Project) -> None:
    """Delete the project with its images, queue entries and billing rows."""
    images = await list_images(db, project.id)
    _remove_originals([img.original_filename for img in images])
    await db.execute(delete(ProcessingQueueEntry).where(ProcessingQueueEntry.project_id == project.id))
    await db.execute(delete(ProjectImage).where(ProjectImage.project_id == project.id))
    await db.execute(delete(BillingLogEntry).where(BillingLogEntry.project_id == project.id))
    await db.delete(project)
    await db.commit()
    logger.info(f"Deleted project {project.id} with {len(images)} images")


async def delete_image(db: AsyncSession, image: ProjectImage) -> None:
    _remove_originals([image.original_filename])
    await db.execute(delete(ProcessingQueueEntry).where(ProcessingQueueEntry.image_id == image.id))
    await db.delete(image)
    await db.commit()
    logger.info(f"Deleted image {image.id} from project {image.project_id}")


def serialize_image(image: ProjectImage, with_url: bool = False) -> dict:
    data = {
        "id": image.id,
        "original_filename": image.original_filename,
        "processed_url": image.processed_url,
        "aspect_ratio": image.aspect_ratio,
        "attempt_number": image.attempt_number,
        "processing_status": image.processing_status,
        "tweak_history": image.tweak_history or [],
        "created_at": image.created_at.isoformat() if image.created_at else None,
    }
    if with_url:
        data["url"] = storage.create_signed_url(original_path(image.original_filename))
    return data


def serialize_project(project: Project, image_count: int | None = None) -> dict:
    data = {
        "id": project.id,
        "name": project.name,
        "address": project.address,
        "global_instructions": project.global_instructions,
        "package": project.package,
        "package_name": get_display_name(project.package),
        "image_limit": get_image_limit(project.package),
        "status": project.status,
        "ai_description": project.ai_description,
        "video_url": project.video_url,
        "video_status": project.video_status,
        "selected_images": project.selected_images or [],
        "processing_progress": project.processing_progress,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }
    if image_count is not None:
        data["image_count"] = image_count
    return data
