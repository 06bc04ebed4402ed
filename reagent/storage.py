"""Bucket-style object storage on local disk with signed download URLs."""

from __future__ import annotations

import os
import re
import time
from pathlib import Path
from urllib.parse import quote

from jose import JWTError, jwt

from reagent.config import settings


class StorageError(Exception):
    """Raised when an object cannot be written, read or removed."""


def sanitize_name(name: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def original_filename(project_name: str, sequence: int, source_name: str) -> str:
    """Deterministic upload name: ``<sanitized-project>_<seq:02d>.<ext>``."""
    ext = source_name.rsplit(".", 1)[-1]
    return f"{sanitize_name(project_name)}_{sequence:02d}.{ext}"


_SEQUENCE_RE = re.compile(r"_(\d+)\.[^./]+$")


def sequence_of(filename: str) -> int | None:
    """The ``NN`` of ``<name>_NN.<ext>``, or None for names not built by :func:`original_filename`."""
    match = _SEQUENCE_RE.search(filename)
    return int(match.group(1)) if match else None


def original_path(filename: str) -> str:
    return f"original/{filename}"


def processed_path(filename: str) -> str:
    return f"processed/{filename}"


class StorageClient:
    """One bucket rooted at ``<storage_path>/<bucket>``.

    Object keys are slash-separated paths such as ``original/Villa_01.jpg``.
    """

    def __init__(self, root: str, bucket: str) -> None:
        self.root = Path(root)
        self.bucket = bucket

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    def _resolve(self, path: str) -> Path:
        target = (self.bucket_dir / path).resolve()
        if not str(target).startswith(str(self.bucket_dir.resolve()) + os.sep):
            raise StorageError(f"Invalid object path: {path}")
        return target

    def upload(self, path: str, data: bytes, upsert: bool = False) -> str:
        """Write bytes to ``path``. Refuses to overwrite unless ``upsert``."""
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise StorageError(f"The resource already exists: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as f:
            f.write(data)
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Object not found: {path}")
        return target.read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def local_path(self, path: str) -> Path:
        return self._resolve(path)

    def remove(self, paths: list[str]) -> list[str]:
        """Delete objects, returning the ones that were actually removed."""
        removed = []
        for path in paths:
            target = self._resolve(path)
            if target.is_file():
                target.unlink()
                removed.append(path)
        return removed

    def create_signed_url(self, path: str, expires_in: int | None = None) -> str:
        """Return a relative URL granting read access to ``path`` for ``expires_in`` seconds."""
        expires_in = expires_in or settings.signed_url_expiry_seconds
        token = jwt.encode(
            {"bucket": self.bucket, "path": path, "exp": int(time.time()) + expires_in},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        return f"/storage/{quote(path)}?token={token}"

    def verify_signed_path(self, path: str, token: str) -> bool:
        try:
            claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        except JWTError:
            return False
        return claims.get("bucket") == self.bucket and claims.get("path") == path


# Module-level singleton
storage = StorageClient(settings.storage_path, settings.storage_bucket)
