"""Hand-off of image and video work to the external processing worker.

Each function inserts ``processing_queue`` rows and moves the affected
project/image rows to their "waiting" status in a single commit. Completion is
never read back from the queue; the worker updates ``projects`` and
``project_images`` and callers observe that through the realtime stream.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.logger import logger
from reagent.models import ProcessingQueueEntry, Project, ProjectImage


async def enqueue_initial_processing(db: AsyncSession, project: Project) -> int:
    """Queue every image of ``project`` with the project's global instructions."""
    result = await db.execute(
        select(ProjectImage)
        .where(ProjectImage.project_id == project.id)
        .order_by(ProjectImage.created_at)
    )
    images = result.scalars().all()

    db.add_all(
        [
            ProcessingQueueEntry(
                project_id=project.id,
                image_id=image.id,
                operation_type="initial_processing",
                payload={
                    "global_instructions": project.global_instructions or "",
                    "attempt_number": image.attempt_number + 1,
                },
            )
            for image in images
        ]
    )
    project.status = "processing"
    await db.execute(
        update(ProjectImage)
        .where(ProjectImage.project_id == project.id)
        .values(processing_status="pending")
    )
    await db.commit()
    logger.info(f"Queued {len(images)} images of project {project.id} for processing")
    return len(images)


async def enqueue_tweak(db: AsyncSession, image: ProjectImage, instruction: str) -> ProcessingQueueEntry:
    """Queue one re-generation of ``image`` and record the instruction in its history."""
    next_attempt = image.attempt_number + 1
    entry = ProcessingQueueEntry(
        project_id=image.project_id,
        image_id=image.id,
        operation_type="tweak",
        payload={"instruction": instruction, "attempt_number": next_attempt},
    )
    db.add(entry)
    image.attempt_number = next_attempt
    image.tweak_history = [*(image.tweak_history or []), instruction]
    image.processing_status = "pending"
    await db.commit()
    logger.info(f"Queued tweak attempt {next_attempt} for image {image.id}")
    return entry


async def enqueue_video(db: AsyncSession, project: Project, image_count: int) -> ProcessingQueueEntry:
    """Queue video generation for ``project``."""
    entry = ProcessingQueueEntry(
        project_id=project.id,
        operation_type="video_generation",
        payload={
            "package": project.package,
            "image_count": image_count,
            "project_name": project.name,
        },
    )
    db.add(entry)
    project.status = "filming"
    project.video_status = "processing"
    await db.commit()
    logger.info(f"Queued video generation for project {project.id}")
    return entry
