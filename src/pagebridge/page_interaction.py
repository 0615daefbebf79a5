"""Element lookup, actions and uploads mixin for Page."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

from .bridge import ExecutionWorld
from .element import RemoteElement
from .locators import FIRST_MATCH, join_path
from .runtime import PageOperation
from .transfer import FileTransfer, TransferFile

UploadTarget = Union[str, RemoteElement, int]


class PageInteractionMixin:
    async def element_exists(self, locator: str, index: int = FIRST_MATCH) -> bool:
        return bool(
            await self.runtime.call(PageOperation.EXISTS, locator=locator, index=index)
        )

    async def get_element(
        self,
        locator: str,
        index: int = FIRST_MATCH,
        *,
        context_path: Optional[str] = None,
    ) -> Optional[RemoteElement]:
        """Return a handle for the match, or None when nothing matches."""
        path = join_path(context_path, locator, index)
        described = await self.runtime.call(PageOperation.DESCRIBE, path=path)
        if not described:
            return None
        return RemoteElement(self, path, described.get("tagName"))

    async def get_elements(
        self, locator: str, *, context_path: Optional[str] = None
    ) -> List[RemoteElement]:
        tag_names = await self.runtime.call(
            PageOperation.LIST, path=context_path, locator=locator
        )
        return [
            RemoteElement(self, join_path(context_path, locator, position), tag_name)
            for position, tag_name in enumerate(tag_names or [])
        ]

    async def click(self, locator: str, index: int = FIRST_MATCH) -> None:
        await self.runtime.call(
            PageOperation.CLICK,
            locator=locator,
            index=index,
            scroll=self.config.action_scroll(),
        )

    async def input(self, locator: str, value: Any, index: int = FIRST_MATCH) -> None:
        await self.runtime.call(
            PageOperation.INPUT,
            value,
            locator=locator,
            index=index,
            scroll=self.config.action_scroll(),
        )

    async def trigger_event(self, locator: str, event_type: str, index: int = FIRST_MATCH) -> None:
        await self.runtime.call(
            PageOperation.TRIGGER_EVENT,
            event_type,
            locator=locator,
            index=index,
            scroll=self.config.action_scroll(),
        )

    async def exec_paste_to(self, locator: str, index: int = FIRST_MATCH) -> None:
        await self.runtime.call(
            PageOperation.EXEC_PASTE,
            locator=locator,
            index=index,
            scroll=self.config.action_scroll(),
        )

    async def exec_copy(self, text: str) -> bool:
        return bool(await self.runtime.call(PageOperation.EXEC_COPY, text))

    async def registry_paths(
        self, world: ExecutionWorld = ExecutionWorld.PRIVILEGED
    ) -> List[str]:
        """Paths currently cached by the page's handle registry, oldest first."""
        return list(await self.runtime.call(PageOperation.REGISTRY_PATHS, world=world) or [])

    async def upload_files(
        self,
        files: Sequence[TransferFile],
        target: UploadTarget,
        *,
        index: int = FIRST_MATCH,
        world: Optional[ExecutionWorld] = None,
    ) -> int:
        """
        Upload `files` into a file input.

        `target` is a locator (with `index`), a `RemoteElement`, or the index
        of an element caught by `element_catcher`. Caught elements live in the
        page world, so that is the default world for them.
        """
        transfer = FileTransfer(
            self.runtime,
            chunk_size=self.config.upload_chunk_size,
            stager=self.stager,
        )
        scroll = self.config.action_scroll()
        if isinstance(target, RemoteElement):
            return await transfer.upload(
                files,
                path=target.path,
                world=world or ExecutionWorld.PRIVILEGED,
                scroll=scroll,
            )
        if isinstance(target, bool) or not isinstance(target, (str, int)):
            raise TypeError(f"unsupported upload target {target!r}")
        if isinstance(target, int):
            return await transfer.upload(
                files,
                caught=target,
                world=world or ExecutionWorld.PAGE,
                scroll=scroll,
            )
        return await transfer.upload(
            files,
            locator=target,
            index=index,
            world=world or ExecutionWorld.PRIVILEGED,
            scroll=scroll,
        )
