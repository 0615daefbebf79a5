"""
Controller-side facade for one target document.

`Page` wires an evaluation bridge, the page runtime RPC and the wait engine
to a target, and exposes navigation, element lookup, actions, uploads,
screenshots, the element catcher and the manual-click guard on top of them.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from .bridge import EvaluationBridge, EvaluationRequest, ExecutionWorld
from .config import PageConfig, get_default_config
from .host import BlobStager, Clip, ScreenCapture, ScriptInjector, TabHost, Target
from .page_interaction import PageInteractionMixin
from .page_navigation import PageNavigationMixin
from .runtime import PageOperation, PageRuntime
from .waiting import Sleep, wait_for


class ElementCatcher:
    """
    Records elements the page creates through `document.createElement`.

    Lives in the page world because it patches the page's own
    `document.createElement`. Caught elements stay addressable by their
    position (see `Page.upload_files`) until `clear()`.
    """

    def __init__(self, runtime: PageRuntime):
        self.runtime = runtime

    async def catch(self, tag_names: Union[str, Sequence[str]]) -> bool:
        names = [tag_names] if isinstance(tag_names, str) else list(tag_names)
        return bool(
            await self.runtime.call(PageOperation.CATCHER_START, names, world=ExecutionWorld.PAGE)
        )

    async def terminate(self) -> bool:
        """Stop catching; already caught elements are kept."""
        return bool(await self.runtime.call(PageOperation.CATCHER_STOP, world=ExecutionWorld.PAGE))

    async def clear(self) -> bool:
        return bool(await self.runtime.call(PageOperation.CATCHER_CLEAR, world=ExecutionWorld.PAGE))

    async def count(self) -> int:
        return int(
            await self.runtime.call(PageOperation.CATCHER_COUNT, world=ExecutionWorld.PAGE) or 0
        )


class ManualClick:
    """Toggles a full-viewport overlay that blocks the user's own clicks."""

    def __init__(self, runtime: PageRuntime):
        self.runtime = runtime

    async def disable(self) -> bool:
        return bool(await self.runtime.call(PageOperation.CLICK_GUARD_ON))

    async def enable(self) -> bool:
        return bool(await self.runtime.call(PageOperation.CLICK_GUARD_OFF))


class Page(PageNavigationMixin, PageInteractionMixin):
    def __init__(
        self,
        target: Target,
        injector: ScriptInjector,
        *,
        tabs: Optional[TabHost] = None,
        capture: Optional[ScreenCapture] = None,
        stager: Optional[BlobStager] = None,
        config: Optional[PageConfig] = None,
        sleep: Sleep = asyncio.sleep,
        **overrides: Any,
    ):
        self.target = target
        self.bridge = EvaluationBridge(target, injector)
        self.runtime = PageRuntime(self.bridge)
        self.tabs = tabs
        self.capture = capture
        self.stager = stager
        self._config = (config or get_default_config()).merged(**overrides)
        self._sleep = sleep
        self.element_catcher = ElementCatcher(self.runtime)
        self.manual_click = ManualClick(self.runtime)

    def __repr__(self) -> str:
        return f"Page(target={self.target!r})"

    @property
    def config(self) -> PageConfig:
        return self._config

    def configure(self, **overrides: Any) -> PageConfig:
        self._config = self._config.merged(**overrides)
        return self._config

    async def evaluate(
        self,
        function: Union[str, EvaluationRequest, None] = None,
        *args: Any,
        files: Optional[Sequence[str]] = None,
        world: Union[ExecutionWorld, str] = ExecutionWorld.PRIVILEGED,
        all_frames: bool = False,
        frame_ids: Optional[Iterable[str]] = None,
        document_ids: Optional[Iterable[str]] = None,
    ) -> Any:
        return await self.bridge.evaluate(
            function,
            *args,
            files=files,
            world=world,
            all_frames=all_frames,
            frame_ids=frame_ids,
            document_ids=document_ids,
        )

    async def wait_for(
        self,
        predicate: Callable[..., Any],
        *args: Any,
        retry_limit: Optional[int] = None,
        interval: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Any:
        return await wait_for(
            predicate,
            *args,
            retry_limit=self._config.retry_limit if retry_limit is None else retry_limit,
            interval=self._config.interval if interval is None else interval,
            sleep=self._sleep,
            description=description,
        )

    async def screenshot(self, clip: Optional[Clip] = None) -> str:
        """PNG `data:` URL of the visible viewport, cropped to `clip` when given."""
        if self.capture is None:
            raise RuntimeError("This page has no screen capture collaborator.")
        image = await self.capture.capture(self.target, clip)
        return "data:image/png;base64," + base64.b64encode(image).decode("ascii")
