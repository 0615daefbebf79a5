"""
Chunked file transfer from the controller into a page's file inputs.

The bridge only carries JSON, so files travel in three phases, each its own
round-trip:

1. manifest: per-file `{name, url}` or `{name, dataUrl: ""}` is stored in the
   page session's file table and the batch's session index comes back;
2. chunks: inline files are sent as a `data:` URL split into fixed-size
   pieces, appended one awaited call at a time;
3. commit: the page builds `File` objects, assigns them to the input,
   dispatches `input` and `change`, and drops the table entry.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from .bridge import ExecutionWorld
from .config import DEFAULT_UPLOAD_CHUNK_SIZE
from .host import BlobStager
from .locators import FIRST_MATCH
from .logging_utils import _log_bridge_event
from .runtime import PageOperation, PageRuntime

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class TransferFile:
    """A file to upload: inline `data`, or a `url` the page can fetch itself."""

    name: str
    data: Optional[bytes] = None
    mime_type: str = DEFAULT_MIME_TYPE
    url: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.data is None) == (self.url is None):
            raise ValueError(f"TransferFile {self.name!r} needs exactly one of data or url")

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "TransferFile":
        file_path = Path(path)
        guessed, _ = mimetypes.guess_type(file_path.name)
        return cls(
            name=file_path.name,
            data=file_path.read_bytes(),
            mime_type=mime_type or guessed or DEFAULT_MIME_TYPE,
        )

    def data_url(self) -> str:
        if self.data is None:
            raise ValueError(f"TransferFile {self.name!r} has no inline data")
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def iter_chunks(payload: str, chunk_size: int) -> Iterator[str]:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    for start in range(0, len(payload), chunk_size):
        yield payload[start : start + chunk_size]


class FileTransfer:
    def __init__(
        self,
        runtime: PageRuntime,
        *,
        chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
        stager: Optional[BlobStager] = None,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.runtime = runtime
        self.chunk_size = chunk_size
        self.stager = stager

    async def upload(
        self,
        files: Sequence[TransferFile],
        *,
        path: Optional[str] = None,
        locator: Optional[str] = None,
        index: int = FIRST_MATCH,
        caught: Optional[int] = None,
        world: ExecutionWorld = ExecutionWorld.PRIVILEGED,
        scroll: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Upload `files` into the addressed input and return how many were assigned."""
        if not files:
            raise ValueError("upload needs at least one file")
        if path is None and locator is None and caught is None:
            raise ValueError("upload needs a path, a locator or a caught element index")

        staged: List[str] = []
        try:
            manifest, payloads = await self._prepare(files, staged)
            session_index = await self.runtime.call(
                PageOperation.FILES_OPEN, manifest, world=world
            )
            _log_bridge_event(
                logger,
                level=logging.INFO,
                event="upload_manifest",
                session=session_index,
                files=len(files),
                staged=len(staged) or None,
            )
            try:
                await self._send_chunks(session_index, payloads, world)
                count = await self.runtime.call(
                    PageOperation.FILES_COMMIT,
                    session_index,
                    path=path,
                    locator=locator,
                    index=index,
                    caught=caught,
                    scroll=scroll,
                    world=world,
                )
            except BaseException:
                # Also reached on cancellation; the discard must still reach the page.
                await asyncio.shield(self._discard(session_index, world))
                raise
            _log_bridge_event(
                logger, level=logging.INFO, event="upload_done", session=session_index, files=count
            )
            return count
        finally:
            await self._revoke(staged)

    async def _prepare(
        self, files: Sequence[TransferFile], staged: List[str]
    ) -> tuple[List[Dict[str, Any]], Dict[int, str]]:
        manifest: List[Dict[str, Any]] = []
        payloads: Dict[int, str] = {}
        for file_index, item in enumerate(files):
            if item.url is not None:
                manifest.append({"name": item.name, "url": item.url})
            elif self.stager is not None:
                url = await self.stager.stage(item.data, item.mime_type)
                staged.append(url)
                manifest.append({"name": item.name, "url": url})
            else:
                manifest.append({"name": item.name})
                payloads[file_index] = item.data_url()
        return manifest, payloads

    async def _send_chunks(
        self, session_index: int, payloads: Dict[int, str], world: ExecutionWorld
    ) -> None:
        # Each append extends the previous one page-side; never run these concurrently.
        for file_index, payload in payloads.items():
            for chunk_number, chunk in enumerate(iter_chunks(payload, self.chunk_size)):
                await self.runtime.call(
                    PageOperation.FILES_APPEND, session_index, file_index, chunk, world=world
                )
                _log_bridge_event(
                    logger,
                    level=logging.DEBUG,
                    event="upload_chunk",
                    session=session_index,
                    file=file_index,
                    chunk=chunk_number,
                    size=len(chunk),
                )

    async def _discard(self, session_index: int, world: ExecutionWorld) -> None:
        try:
            await self.runtime.call(PageOperation.FILES_DISCARD, session_index, world=world)
        except Exception as exc:
            _log_bridge_event(
                logger,
                level=logging.WARNING,
                event="upload_discard_failed",
                session=session_index,
                error=type(exc).__name__,
            )

    async def _revoke(self, staged: List[str]) -> None:
        if self.stager is None:
            return
        for url in staged:
            try:
                await self.stager.revoke(url)
            except Exception as exc:
                _log_bridge_event(
                    logger,
                    level=logging.WARNING,
                    event="upload_revoke_failed",
                    url=url,
                    error=type(exc).__name__,
                )
