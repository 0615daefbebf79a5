"""Controller-side proxy for one element addressed by its element path."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .locators import FIRST_MATCH
from .runtime import PageOperation

if TYPE_CHECKING:
    from .page import Page


class RemoteElement:
    """
    A handle that holds no node, only the path used to re-resolve it.

    Every method is one bridge round-trip resolved through the page's handle
    registry. Once the underlying node is removed the handle is dangling and
    its operations raise `ElementNotFoundError` (or act on a detached node
    still cached by the registry).
    """

    def __init__(self, page: "Page", path: str, tag_name: Optional[str] = None):
        self.page = page
        self.path = path
        self.tag_name = tag_name

    def __repr__(self) -> str:
        return f"RemoteElement(path={self.path!r}, tag_name={self.tag_name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteElement):
            return NotImplemented
        return self.page is other.page and self.path == other.path

    def __hash__(self) -> int:
        return hash((id(self.page), self.path))

    async def _call(self, op: PageOperation, *args: Any, action: bool = False) -> Any:
        scroll = self.page.config.action_scroll() if action else None
        return await self.page.runtime.call(op, *args, path=self.path, scroll=scroll)

    async def get_tag_name(self) -> str:
        if self.tag_name:
            return self.tag_name
        self.tag_name = await self._call(PageOperation.GET_TAG_NAME)
        return self.tag_name

    async def get_text(self) -> str:
        return await self._call(PageOperation.GET_TEXT)

    async def get_html(self) -> str:
        return await self._call(PageOperation.GET_HTML)

    async def set_html(self, html: str) -> None:
        await self._call(PageOperation.SET_HTML, html)

    async def click(self) -> None:
        await self._call(PageOperation.CLICK, action=True)

    async def focus(self) -> None:
        await self._call(PageOperation.FOCUS)

    async def scroll_into_view(self, options: Optional[Dict[str, Any]] = None) -> None:
        await self._call(PageOperation.SCROLL_INTO_VIEW, options)

    async def get_attribute(self, name: str) -> Optional[str]:
        return await self._call(PageOperation.GET_ATTRIBUTE, name)

    async def set_attribute(self, name: str, value: str) -> None:
        await self._call(PageOperation.SET_ATTRIBUTE, name, value)

    async def input(self, value: Any) -> None:
        """Set the value and dispatch focus, key*, input, change and blur in order."""
        await self._call(PageOperation.INPUT, value, action=True)

    async def trigger_event(self, event_type: str) -> None:
        await self._call(PageOperation.TRIGGER_EVENT, event_type, action=True)

    async def exec_paste(self) -> None:
        await self._call(PageOperation.EXEC_PASTE, action=True)

    async def get_element(self, locator: str, index: int = FIRST_MATCH) -> Optional["RemoteElement"]:
        return await self.page.get_element(locator, index, context_path=self.path)

    async def get_elements(self, locator: str) -> List["RemoteElement"]:
        return await self.page.get_elements(locator, context_path=self.path)
