from __future__ import annotations

import base64
import binascii
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
_MIME_EXTENSIONS = {"image/jpeg": ".jpg", "image/jpg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


class CaptureStorage(Protocol):
    def store(
        self,
        *,
        person_id: int,
        kind: str,
        now: datetime,
        upload: Optional[FileStorage] = None,
        data_url: Optional[str] = None,
    ) -> Optional[str]:
        """Persist a punch photo and return its retrievable path (None when nothing was sent)."""

        raise NotImplementedError

    def discard(self, ref: str) -> None:
        """Remove a photo returned by `store`; missing files are ignored."""

        raise NotImplementedError


class LocalCaptureStorage(CaptureStorage):
    """Stores punch photos under `root/<yyyy-mm-dd>/` on the local disk."""

    def __init__(self, root: str):
        self._root = Path(root)

    @staticmethod
    def _decode_data_url(data_url: str) -> tuple[bytes, str]:
        header, _, encoded = data_url.partition(",")
        if not encoded:
            # Bare base64 without the data: prefix.
            header, encoded = "", data_url
        mime = header[5:].split(";")[0].lower() if header.startswith("data:") else "image/jpeg"
        ext = _MIME_EXTENSIONS.get(mime)
        if ext is None:
            raise ValidationError(f"Unsupported photo type: {mime}")
        try:
            return base64.b64decode(encoded, validate=True), ext
        except (binascii.Error, ValueError):
            raise ValidationError("Photo is not valid base64")

    def store(
        self,
        *,
        person_id: int,
        kind: str,
        now: datetime,
        upload: Optional[FileStorage] = None,
        data_url: Optional[str] = None,
    ) -> Optional[str]:
        if upload is not None and upload.filename:
            ext = Path(secure_filename(upload.filename)).suffix.lower() or ".jpg"
            if ext not in ALLOWED_EXTENSIONS:
                raise ValidationError(f"Unsupported photo type: {ext}")
            content = upload.read()
        elif data_url:
            content, ext = self._decode_data_url(data_url.strip())
        else:
            return None

        if not content:
            raise ValidationError("Photo is empty")

        relative = Path(now.strftime("%Y-%m-%d")) / f"{person_id}_{kind}_{now:%H%M%S}_{uuid.uuid4().hex[:8]}{ext}"
        target = self._root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.debug("Stored %s photo for person %s at %s", kind, person_id, target)
        return relative.as_posix()

    def discard(self, ref: str) -> None:
        target = (self._root / ref).resolve()
        if self._root.resolve() not in target.parents:
            raise ValidationError(f"Photo reference outside the upload folder: {ref}")
        try:
            target.unlink()
        except FileNotFoundError:
            return
        logger.debug("Discarded photo %s", target)
