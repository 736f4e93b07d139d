"""
In-memory representation of an uploaded file.

Moderation, compression and the blob store all work on the same bytes, so
the request's UploadedFile is wrapped in a MediaPayload, read once and passed along.

A payload built from an upload is not read straight away: its size comes
from the upload's declared size, and ``load()`` reads the bytes only after
the size ceiling and quota checks have passed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile


@dataclass(frozen=True)
class MediaPayload:
    """
    Bytes of one media file plus the metadata the services need.

    Attributes:
        content: Raw file bytes (empty until load() for upload-backed payloads).
        file_name: Client-supplied file name.
        content_type: MIME type as reported by the client.
        source: Unread upload backing this payload, if any.
    """

    content: bytes
    file_name: str
    content_type: str
    source: UploadedFile | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_upload(cls, uploaded: UploadedFile) -> MediaPayload:
        """Wrap a Django UploadedFile without reading it."""
        return cls(
            content=b"",
            file_name=uploaded.name or "upload",
            content_type=uploaded.content_type or "application/octet-stream",
            source=uploaded,
        )

    @property
    def size(self) -> int:
        if self.source is not None:
            return self.source.size or 0
        return len(self.content)

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")

    def load(self) -> MediaPayload:
        """Return a payload holding the file's bytes, reading the upload once."""
        if self.source is None:
            return self
        self.source.seek(0)
        return replace(self, content=b"".join(self.source.chunks()), source=None)
