"""Multi-file photo upload with per-file progress tracking.

A batch is validated as a whole (type, size, package quota) and then fanned
out into one independent task per file. A failing file is reported next to
the successful ones; nothing is rolled back.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

from reagent.config import settings
from reagent.database import async_session
from reagent.imaging import measure_aspect_ratio
from reagent.logger import logger
from reagent.models import ProjectImage
from reagent.storage import StorageError, original_filename, original_path, storage


@dataclass
class IncomingFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_files(files: list[IncomingFile], max_bytes: int | None = None) -> list[str]:
    """Return one message per invalid file; an empty list means the batch is acceptable."""
    max_bytes = max_bytes or settings.max_image_bytes
    errors = []
    for f in files:
        if not (f.content_type or "").startswith("image/"):
            errors.append(f"{f.name} is not an image file")
        elif f.size > max_bytes:
            errors.append(f"{f.name} is larger than {max_bytes // (1024 * 1024)}MB")
    return errors


@dataclass
class UploadState:
    file_id: str
    project_id: str
    name: str
    progress: int = 0
    status: str = "queued"  # queued | uploading | completed | error
    error: str | None = None
    completed_at: float | None = field(default=None, repr=False)


class UploadTracker:
    """In-memory progress for uploads in flight.

    A completed entry stays visible for ``fade_delay`` seconds, is flagged as
    fading for ``fade_duration`` more, and then disappears. Errors stay until
    the next batch for the same project starts.
    """

    def __init__(
        self,
        fade_delay: float = settings.upload_fade_delay,
        fade_duration: float = settings.upload_fade_duration,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fade_delay = fade_delay
        self.fade_duration = fade_duration
        self._clock = clock
        self._entries: dict[str, UploadState] = {}

    def add(self, project_id: str, name: str) -> str:
        file_id = f"{name}-{uuid.uuid4().hex[:8]}"
        self._entries[file_id] = UploadState(file_id=file_id, project_id=project_id, name=name)
        return file_id

    def get(self, file_id: str) -> UploadState | None:
        return self._entries.get(file_id)

    def advance(self, file_id: str, progress: int) -> None:
        entry = self._entries.get(file_id)
        if entry is not None:
            entry.status = "uploading"
            entry.progress = progress

    def complete(self, file_id: str) -> None:
        entry = self._entries.get(file_id)
        if entry is not None:
            entry.status = "completed"
            entry.progress = 100
            entry.completed_at = self._clock()

    def fail(self, file_id: str, message: str) -> None:
        entry = self._entries.get(file_id)
        if entry is not None:
            entry.status = "error"
            entry.progress = 0
            entry.error = message

    def clear_errors(self, project_id: str) -> None:
        for file_id in [
            k for k, e in self._entries.items()
            if e.project_id == project_id and e.status == "error"
        ]:
            del self._entries[file_id]

    def _phase(self, entry: UploadState, now: float) -> str:
        if entry.completed_at is None:
            return "active"
        elapsed = now - entry.completed_at
        if elapsed < self.fade_delay:
            return "active"
        if elapsed < self.fade_delay + self.fade_duration:
            return "fading"
        return "gone"

    def visible(self, project_id: str) -> list[dict]:
        now = self._clock()
        out = []
        for entry in self._entries.values():
            if entry.project_id != project_id:
                continue
            phase = self._phase(entry, now)
            if phase == "gone":
                continue
            out.append(
                {
                    "file_id": entry.file_id,
                    "name": entry.name,
                    "progress": entry.progress,
                    "status": entry.status,
                    "error": entry.error,
                    "fading": phase == "fading",
                }
            )
        return out

    def prune(self) -> int:
        """Forget entries that have fully faded out. Returns the count removed."""
        now = self._clock()
        gone = [k for k, e in self._entries.items() if self._phase(e, now) == "gone"]
        for file_id in gone:
            del self._entries[file_id]
        return len(gone)


def discard_original(filename: str) -> None:
    """Remove an object whose image row was never written, freeing its name."""
    try:
        storage.remove([original_path(filename)])
    except (StorageError, OSError) as exc:
        logger.error(f"Could not remove orphaned object {filename}: {exc}")


async def _upload_one(
    project_id: str,
    project_name: str,
    upload: IncomingFile,
    sequence: int,
    file_id: str,
    tracker: UploadTracker,
) -> dict:
    filename = original_filename(project_name, sequence, upload.name)
    stored = False
    try:
        tracker.advance(file_id, 50)
        storage.upload(original_path(filename), upload.data, upsert=False)
        stored = True

        tracker.advance(file_id, 75)
        async with async_session() as db:
            db.add(
                ProjectImage(
                    project_id=project_id,
                    original_filename=filename,
                    attempt_number=1,
                    tweak_history=[""],
                    aspect_ratio=measure_aspect_ratio(upload.data),
                    image_metadata={
                        "source_name": upload.name,
                        "content_type": upload.content_type,
                        "size": upload.size,
                    },
                )
            )
            await db.commit()
    except Exception as exc:
        logger.exception(f"Upload of {upload.name} as {filename} failed")
        if stored:
            discard_original(filename)
        tracker.fail(file_id, f"Upload failed: {exc}")
        return {"fileName": filename, "success": False, "error": str(exc)}

    tracker.complete(file_id)
    logger.info(f"Upload completed for {filename}")
    return {"fileName": filename, "success": True}


async def run_upload_batch(
    project_id: str,
    project_name: str,
    files: list[IncomingFile],
    first_sequence: int,
    tracker: UploadTracker | None = None,
) -> list[dict]:
    """Upload ``files`` concurrently, numbered from ``first_sequence`` upwards.

    Returns one result per file in input order.
    """
    tracker = tracker or upload_tracker
    tracker.clear_errors(project_id)
    file_ids = [tracker.add(project_id, f.name) for f in files]
    return await asyncio.gather(
        *[
            _upload_one(project_id, project_name, f, first_sequence + i, file_ids[i], tracker)
            for i, f in enumerate(files)
        ]
    )


# Module-level singleton
upload_tracker = UploadTracker()
