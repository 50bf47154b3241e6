from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class EncodedFile:
    """A whole file, base64-encoded for the JSON upload payload."""

    original_name: str
    payload: str

    @classmethod
    def from_bytes(cls, original_name: str, data: bytes) -> "EncodedFile":
        return cls(original_name=original_name, payload=base64.b64encode(data).decode("ascii"))

    def decode(self) -> bytes:
        try:
            return base64.b64decode(self.payload, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Encoded payload for {self.original_name} is not valid base64.") from exc


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


@dataclass
class AnnouncementDraft:
    id: str
    title: str
    body: str
    pinned: bool = False

    def to_update_payload(self) -> Dict[str, Any]:
        if not _clean(self.id):
            raise ValueError("This announcement could not be loaded, so it cannot be updated.")
        if not _clean(self.title):
            raise ValueError("Title is required.")
        if not _clean(self.body):
            raise ValueError("Body is required.")
        return {
            "title": self.title,
            "body": self.body,
            "pinned": bool(self.pinned),
        }


@dataclass
class UploadDraft:
    name: str = ""
    description: str = ""
    category_slug: Optional[str] = None
    source_slug: Optional[str] = None
    anonymous: bool = False
    tags: str = ""
    file_encoded: Optional[EncodedFile] = None

    def to_upload_payload(self) -> Dict[str, Any]:
        if self.file_encoded is None:
            raise ValueError("Choose a .torrent file to upload.")
        if not _clean(self.name):
            raise ValueError("Name is required.")
        if not _clean(self.description):
            raise ValueError("Description is required.")
        return {
            "name": self.name,
            "description": self.description,
            "type": self.category_slug or None,
            "source": self.source_slug or None,
            "anonymous": bool(self.anonymous),
            "torrent": self.file_encoded.payload,
            "tags": self.tags or "",
        }
