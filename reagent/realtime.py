"""Row-change stream for one project and its images.

The processing worker writes straight to ``projects`` and ``project_images``,
so changes are detected by polling and diffing against a local view. Each
change is a partial patch keyed by primary key; the same merge rule is used to
keep the local view current: patch the cached row if present, otherwise ignore.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from sqlalchemy import select

from reagent.config import settings
from reagent.database import async_session
from reagent.models import Project, ProjectImage

PROJECT_FIELDS = (
    "name",
    "address",
    "global_instructions",
    "package",
    "status",
    "ai_description",
    "video_url",
    "video_status",
    "selected_images",
    "processing_progress",
)
IMAGE_FIELDS = (
    "original_filename",
    "processed_url",
    "aspect_ratio",
    "attempt_number",
    "processing_status",
    "tweak_history",
    "image_metadata",
)


def project_row(project: Project) -> dict:
    return {"id": project.id, **{f: getattr(project, f) for f in PROJECT_FIELDS}}


def image_row(image: ProjectImage) -> dict:
    return {"id": image.id, **{f: getattr(image, f) for f in IMAGE_FIELDS}}


@dataclass
class RowChange:
    event: str  # INSERT | UPDATE | DELETE
    table: str  # projects | project_images
    id: str
    patch: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"event": self.event, "table": self.table, "id": self.id, "new": self.patch}


def _changed(old: dict, new: dict) -> dict:
    return {k: v for k, v in new.items() if k != "id" and old.get(k) != v}


class StatusReflector:
    """Local view of a project merged from row changes."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        self.project: dict | None = None
        self.images: dict[str, dict] = {}

    def load(self, project: dict, images: list[dict]) -> None:
        self.project = dict(project)
        self.images = {img["id"]: dict(img) for img in images}

    def apply(self, change: RowChange) -> bool:
        """Merge ``change`` into the view. Returns False when it was ignored."""
        if change.table == "projects":
            if self.project is None or change.id != self.project["id"]:
                return False
            if change.event == "DELETE":
                self.project = None
                self.images = {}
            else:
                self.project.update(change.patch)
            return True

        if change.table == "project_images":
            if change.event == "INSERT":
                self.images[change.id] = {"id": change.id, **change.patch}
                return True
            if change.id not in self.images:
                return False
            if change.event == "DELETE":
                del self.images[change.id]
            else:
                self.images[change.id].update(change.patch)
            return True
        return False

    def diff(self, project: dict | None, images: list[dict]) -> list[RowChange]:
        """Changes that turn the current view into ``project`` / ``images``."""
        changes = []
        if self.project is not None and project is None:
            return [RowChange("DELETE", "projects", self.project["id"])]
        if project is not None and self.project is not None:
            patch = _changed(self.project, project)
            if patch:
                changes.append(RowChange("UPDATE", "projects", project["id"], patch))

        seen = set()
        for img in images:
            seen.add(img["id"])
            cached = self.images.get(img["id"])
            if cached is None:
                changes.append(
                    RowChange("INSERT", "project_images", img["id"], _changed({}, img))
                )
                continue
            patch = _changed(cached, img)
            if patch:
                changes.append(RowChange("UPDATE", "project_images", img["id"], patch))
        for image_id in self.images:
            if image_id not in seen:
                changes.append(RowChange("DELETE", "project_images", image_id))
        return changes

    def snapshot(self) -> dict:
        return {"project": self.project, "images": list(self.images.values())}


async def load_rows(project_id: str, user_id: str) -> tuple[dict | None, list[dict]]:
    async with async_session() as db:
        result = await db.execute(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        project = result.scalar_one_or_none()
        if project is None:
            return None, []
        result = await db.execute(
            select(ProjectImage)
            .where(ProjectImage.project_id == project_id)
            .order_by(ProjectImage.created_at)
        )
        return project_row(project), [image_row(i) for i in result.scalars().all()]


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


async def stream_changes(
    project_id: str,
    user_id: str,
    is_disconnected: Callable[[], Awaitable[bool]],
    interval: float | None = None,
) -> AsyncIterator[str]:
    """Yield server-sent events: one ``snapshot`` then one event per row change."""
    interval = interval or settings.realtime_poll_interval
    reflector = StatusReflector(project_id)
    project, images = await load_rows(project_id, user_id)
    if project is None:
        return
    reflector.load(project, images)
    yield format_sse("snapshot", reflector.snapshot())

    while not await is_disconnected():
        await asyncio.sleep(interval)
        project, images = await load_rows(project_id, user_id)
        for change in reflector.diff(project, images):
            reflector.apply(change)
            yield format_sse("change", change.as_dict())
        if reflector.project is None:
            return
