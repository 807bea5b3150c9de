"""Upload service — image storage on local disk.

Learn: uploads are written under settings.upload_dir with a generated
name (`image-<ms>-<random><ext>`), and callers get back a stable URL
path `/uploads/<name>`. Whatever form an image reference arrives in
(bare filename, absolute disk path, `/uploads/...`), ensure_upload_path
folds it into that one shape before it's stored on a post.
"""

import os
import secrets
import shutil
import time
from pathlib import Path
from typing import Optional

import structlog

from inkwell.config import settings

logger = structlog.get_logger()

UPLOAD_PREFIX = settings.upload_url_prefix.rstrip("/") + "/"


class InvalidUpload(Exception):
    """Upload rejected (wrong type or bad name)."""


class UploadTooLarge(Exception):
    """Upload exceeds settings.upload_max_bytes."""


def ensure_upload_path(value: str) -> str:
    """Normalise an image reference to `/uploads/<file>`.

    - ""                          → ""
    - "/uploads/a.png"            → unchanged
    - "/srv/public/uploads/a.png" → "/uploads/a.png"
    - "a.png"                     → "/uploads/a.png"
    - "https://cdn/x.png"         → unchanged (external images)
    """
    if not value:
        return ""
    if value.startswith(("http://", "https://")):
        return value
    if value.startswith(UPLOAD_PREFIX):
        return value
    if UPLOAD_PREFIX in value:
        return UPLOAD_PREFIX + value.split(UPLOAD_PREFIX, 1)[1]
    return UPLOAD_PREFIX + value.lstrip("/")


class UploadService:
    """Stores images and answers questions about stored files."""

    def __init__(self, upload_dir: Optional[Path] = None, max_bytes: Optional[int] = None):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.max_bytes = max_bytes or settings.upload_max_bytes

    def ensure_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    def _resolve(self, filename: str) -> Path:
        """Path of `filename` inside upload_dir; refuses anything outside it."""
        if not filename or filename in (".", "..") or os.sep in filename or "/" in filename:
            raise InvalidUpload("Invalid filename")
        path = (self.upload_dir / filename).resolve()
        if path.parent != self.upload_dir.resolve():
            raise InvalidUpload("Invalid filename")
        return path

    @staticmethod
    def generate_name(original_name: str, field: str = "image") -> str:
        ext = Path(original_name or "").suffix.lower()
        suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        return f"{field}-{suffix}{ext}"

    def save_image(self, data: bytes, original_name: str, content_type: Optional[str]) -> dict:
        """Validate and write one image. Returns {imageUrl, filename}."""
        if not content_type or not content_type.startswith("image/"):
            raise InvalidUpload("Not an image! Please upload only images.")
        if len(data) > self.max_bytes:
            raise UploadTooLarge()
        if not data:
            raise InvalidUpload("Please upload an image file")

        filename = self.generate_name(original_name)
        self.ensure_dir()
        path = self._resolve(filename)
        path.write_bytes(data)
        logger.info(
            "upload.saved",
            filename=filename,
            original_name=original_name,
            size=len(data),
        )
        return {"imageUrl": ensure_upload_path(filename), "filename": filename}

    def check(self, filename: str) -> dict:
        path = self._resolve(filename)
        if path.is_file():
            return {"exists": True, "filename": filename, "size": path.stat().st_size}
        return {"exists": False, "filename": filename}

    def list_files(self) -> dict:
        if not self.upload_dir.is_dir():
            return {"count": 0, "files": []}
        names = sorted(p.name for p in self.upload_dir.iterdir() if p.is_file())
        return {
            "count": len(names),
            "files": [{"name": n, "path": ensure_upload_path(n)} for n in names],
        }

    def repair_from(self, source_dir: Path) -> int:
        """Copy regular files missing from upload_dir out of `source_dir`."""
        self.ensure_dir()
        copied = 0
        for src in sorted(Path(source_dir).iterdir()):
            if not src.is_file():
                continue
            dest = self.upload_dir / src.name
            if dest.exists():
                continue
            shutil.copy2(src, dest)
            copied += 1
        logger.info("upload.repaired", source=str(source_dir), copied=copied)
        return copied
