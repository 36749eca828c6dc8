"""Display handles for uploaded images.

A handle is a ``blob:<hex>`` string that the presentation layer can render
through the image endpoint without re-sending the raw bytes.
"""
import base64
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    data: bytes


def encode_image(upload: ImageUpload) -> str:
    """Return the image as a data URL, the format the AI service consumes."""
    b64 = base64.b64encode(upload.data).decode("utf-8")
    content_type = upload.content_type or "image/jpeg"
    return f"data:{content_type};base64,{b64}"


class ResourceLifecycle:
    def __init__(self) -> None:
        self._handles: dict[str, ImageUpload] = {}
        self.revoked_count = 0

    def create(self, files: Iterable[ImageUpload]) -> list[str]:
        handles = []
        for upload in files:
            handle = f"blob:{uuid.uuid4().hex}"
            self._handles[handle] = upload
            handles.append(handle)
        return handles

    def revoke(self, handles: Iterable[str]) -> None:
        for handle in handles:
            # pop() keeps a second revoke of the same handle a no-op
            if self._handles.pop(handle, None) is not None:
                self.revoked_count += 1
        logger.debug("%d display handle(s) still active", len(self._handles))

    def resolve(self, handle: str) -> ImageUpload | None:
        return self._handles.get(handle)

    @property
    def active(self) -> frozenset[str]:
        return frozenset(self._handles)
