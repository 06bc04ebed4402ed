"""ZIP bundles of processed images."""

from __future__ import annotations

import io
import zipfile
from typing import Callable

from reagent.logger import logger
from reagent.models import ProjectImage
from reagent.storage import processed_path, sanitize_name


def folder_name(project_name: str) -> str:
    return f"{sanitize_name(project_name)}_images"


def build_archive(
    project_name: str,
    images: list[ProjectImage],
    fetch: Callable[[str], bytes],
) -> tuple[bytes, int]:
    """Zip every image ``fetch`` can read. Returns ``(zip_bytes, images_added)``.

    A failed fetch is logged and skipped; the rest of the archive is still built.
    Entries keep their position in ``images`` so gaps show which ones were missing.
    """
    folder = folder_name(project_name)
    buf = io.BytesIO()
    added = 0
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as zf:
        for i, image in enumerate(images):
            try:
                data = fetch(processed_path(image.processed_url))
            except Exception as exc:
                logger.error(f"Failed to download image {image.original_filename}: {exc}")
                continue
            zf.writestr(f"{folder}/image_{i + 1:02d}.jpg", data)
            added += 1
    return buf.getvalue(), added
