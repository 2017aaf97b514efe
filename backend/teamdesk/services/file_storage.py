"""
Upload storage on local disk

Files live flat under settings.UPLOAD_DIR as "<uuid>-<cleaned original name>",
so a stored name is unique and never contains a path separator. Lookups
only accept such bare names.
"""
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from teamdesk.core.config import settings
from teamdesk.core.exceptions import ValidationError
from teamdesk.core.logging_config import logger


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class UploadTooLargeError(ValidationError):
    status_code = 413
    code = "FILE_TOO_LARGE"


@dataclass
class StoredFile:
    file_name: str
    original_name: str
    content_type: Optional[str]
    size: int


def clean_name(name: Optional[str]) -> str:
    base = Path(name or "").name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:200] or "file"


class FileStorage:

    @property
    def root(self) -> Path:
        # Read on each use so UPLOAD_DIR can change under tests
        return Path(settings.UPLOAD_DIR)

    @property
    def max_bytes(self) -> int:
        return settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    async def save(self, upload: UploadFile) -> StoredFile:
        content = await upload.read()
        if len(content) > self.max_bytes:
            raise UploadTooLargeError(
                f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB}MB", field=upload.filename
            )

        self.root.mkdir(parents=True, exist_ok=True)
        file_name = f"{uuid.uuid4().hex}-{clean_name(upload.filename)}"
        async with aiofiles.open(self.root / file_name, "wb") as f:
            await f.write(content)

        logger.debug(f"[Uploads] Stored {upload.filename!r} as {file_name} ({len(content)} bytes)")
        return StoredFile(
            file_name=file_name,
            original_name=upload.filename or file_name,
            content_type=upload.content_type,
            size=len(content),
        )

    async def save_all(self, uploads: List[UploadFile]) -> List[StoredFile]:
        """Store every upload or none of them"""
        stored: List[StoredFile] = []
        try:
            for upload in uploads:
                stored.append(await self.save(upload))
        except Exception:
            await self.discard(stored)
            raise
        return stored

    def path_for(self, file_name: str) -> Optional[Path]:
        if not file_name or file_name in (".", "..") or "/" in file_name or "\\" in file_name:
            return None
        path = self.root / file_name
        return path if path.is_file() else None

    async def delete(self, file_name: str) -> bool:
        path = self.path_for(file_name)
        if path is None:
            return False
        await aiofiles.os.remove(path)
        return True

    async def discard(self, stored: List[StoredFile]) -> None:
        """Remove files whose database rows never got written"""
        for item in stored:
            try:
                await self.delete(item.file_name)
            except OSError as e:
                logger.error(f"[Uploads] Could not remove {item.file_name}: {e}")


file_storage = FileStorage()
