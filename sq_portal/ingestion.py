"""
Single-file ingestion for the upload form.

A drop moves the pipeline ``EMPTY -> READING -> READY | FAILED``. Each drop bumps a
generation counter; a read that completes after a newer drop is discarded, so the
most recent drop always wins.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
import mimetypes
from pathlib import Path
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, Optional, Union

from sq_portal.drafts import EncodedFile

logger = logging.getLogger(__name__)

INVALID_TYPE_MESSAGE = "must be a valid file of the expected type"
TOO_MANY_FILES_MESSAGE = "only one file can be uploaded at a time"


class IngestionStatus(str, Enum):
    EMPTY = "empty"
    READING = "reading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class DroppedFile:
    name: str
    path: Path
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()

    @classmethod
    def from_upload(cls, upload: Any) -> "DroppedFile":
        """Build from whatever Gradio hands back for a file: a path, a dict or a FileData-like object."""
        name_hint: Optional[str] = None
        path_value: Optional[str] = None
        mime_type: Optional[str] = None

        if isinstance(upload, (str, Path)):
            path_value = str(upload)
        elif isinstance(upload, dict):
            name_hint = upload.get("orig_name") or upload.get("name")
            path_value = upload.get("path") or upload.get("name")
            mime_type = upload.get("mime_type")
        else:
            name_hint = getattr(upload, "orig_name", None)
            path_value = getattr(upload, "path", None) or getattr(upload, "name", None)
            mime_type = getattr(upload, "mime_type", None)

        if not path_value:
            raise ValueError("Unable to access the uploaded file on disk.")
        path = Path(path_value)
        name = Path(name_hint).name if name_hint else path.name
        if not mime_type:
            mime_type = mimetypes.guess_type(name)[0]
        return cls(name=name, path=path, mime_type=mime_type)


@dataclass(frozen=True)
class AcceptRule:
    """
    Allow-list of MIME types and extensions; a file matching either is accepted.

    Gradio hands `type="filepath"` uploads over as bare paths, so on the upload page
    the MIME type is guessed from the file name and the extension is the effective
    filter. A declared `mime_type` only counts for callers that pass FileData-like
    objects or dicts.
    """

    mime_types: FrozenSet[str]
    extensions: FrozenSet[str]

    def accepts(self, dropped: DroppedFile) -> bool:
        mime = (dropped.mime_type or "").strip().lower()
        if mime and mime in self.mime_types:
            return True
        return dropped.extension in self.extensions


TORRENT_ACCEPT = AcceptRule(
    mime_types=frozenset({"application/x-bittorrent"}),
    extensions=frozenset({".torrent"}),
)


@dataclass(frozen=True)
class Ready:
    encoded: EncodedFile


@dataclass(frozen=True)
class Failed:
    reason: str


ReadResult = Union[Ready, Failed]
FileReader = Callable[[DroppedFile, int], Awaitable[ReadResult]]


def _read_file_bytes(path: Path, max_bytes: int) -> bytes:
    size = path.stat().st_size
    if size > max_bytes:
        raise ValueError(f"file is {size} bytes, the maximum is {max_bytes} bytes")
    with path.open("rb") as handle:
        data = handle.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValueError(f"file is larger than the maximum of {max_bytes} bytes")
    return data


async def read_encoded_file(dropped: DroppedFile, max_bytes: int) -> ReadResult:
    """Read the whole file off the event loop; any failure becomes ``Failed``."""
    try:
        data = await asyncio.to_thread(_read_file_bytes, dropped.path, max_bytes)
    except (OSError, ValueError) as exc:
        logger.warning("Could not read dropped file %s: %s", dropped.name, exc)
        return Failed(str(exc) or exc.__class__.__name__)
    return Ready(EncodedFile.from_bytes(dropped.name, data))


@dataclass(frozen=True)
class IngestionSnapshot:
    status: IngestionStatus
    generation: int
    encoded: Optional[EncodedFile] = None
    error: str = ""


class FileIngestion:
    def __init__(
        self,
        max_bytes: int,
        accept: AcceptRule = TORRENT_ACCEPT,
        reader: Optional[FileReader] = None,
    ) -> None:
        self.max_bytes = max_bytes
        self.accept = accept
        self._reader = reader or read_encoded_file
        self.generation = 0
        self.status = IngestionStatus.EMPTY
        self.encoded: Optional[EncodedFile] = None
        self.error = ""

    def snapshot(self) -> IngestionSnapshot:
        return IngestionSnapshot(
            status=self.status,
            generation=self.generation,
            encoded=self.encoded,
            error=self.error,
        )

    def reset(self) -> None:
        self.generation += 1
        self.status = IngestionStatus.EMPTY
        self.encoded = None
        self.error = ""

    def _fail(self, reason: str) -> None:
        self.status = IngestionStatus.FAILED
        self.encoded = None
        self.error = reason

    def reject(self, reason: str) -> None:
        """Fail the current drop without reading anything."""
        self.generation += 1
        self._fail(reason)

    def begin(self, files: Iterable[DroppedFile]) -> Optional[DroppedFile]:
        """
        Start a new drop. Returns the file to read, or ``None`` when the drop was
        rejected and the pipeline is already ``FAILED``.
        """
        dropped = list(files)
        self.generation += 1
        if len(dropped) > 1:
            self._fail(TOO_MANY_FILES_MESSAGE)
            return None
        accepted = [item for item in dropped if self.accept.accepts(item)]
        if not accepted:
            self._fail(INVALID_TYPE_MESSAGE)
            return None
        self.status = IngestionStatus.READING
        self.encoded = None
        self.error = ""
        return accepted[0]

    def settle(self, generation: int, result: ReadResult) -> bool:
        """Apply a finished read; stale generations are dropped and ``False`` is returned."""
        if generation != self.generation:
            logger.debug(
                "Discarding stale read generation=%s current=%s", generation, self.generation
            )
            return False
        if isinstance(result, Ready):
            self.status = IngestionStatus.READY
            self.encoded = result.encoded
            self.error = ""
        else:
            self._fail(result.reason)
        return True

    async def on_files_dropped(self, files: Iterable[DroppedFile]) -> IngestionSnapshot:
        target = self.begin(files)
        if target is None:
            return self.snapshot()
        generation = self.generation
        try:
            result = await self._reader(target, self.max_bytes)
        except Exception as exc:
            logger.exception("Unexpected error while reading %s", target.name)
            result = Failed(str(exc) or exc.__class__.__name__)
        self.settle(generation, result)
        return self.snapshot()
