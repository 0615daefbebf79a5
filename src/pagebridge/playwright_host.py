"""
Host collaborators backed by Playwright and the Chrome DevTools Protocol.

`attach(page)` turns a Playwright page into a `pagebridge.Page`:

- `CDPScriptInjector` runs evaluation requests through `Runtime.callFunctionOn`
  in the page world or in an isolated world created with
  `Page.createIsolatedWorld`.
- `PlaywrightTabHost` navigates with `Page.navigate` and tracks URL, pending
  navigation and load status from `Page.*` events.
- `PlaywrightScreenCapture` wraps `page.screenshot`.
- `RouteBlobStager` serves staged upload bytes from a routed URL.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from uuid import uuid4

from .bridge import EvaluationRequest, EvaluationScope, ExecutionWorld
from .config import PageConfig
from .errors import InjectionError
from .host import (
    TAB_STATUS_COMPLETE,
    TAB_STATUS_INTERACTIVE,
    TAB_STATUS_LOADING,
    Clip,
    TabInfo,
    Target,
)
from .logging_utils import _log_bridge_event
from .page import Page

logger = logging.getLogger(__name__)

ISOLATED_WORLD_NAME = "pagebridge"
STAGING_BASE_URL = "https://pagebridge.invalid/blob/"

_SET_FILE_ARGUMENTS_JS = "(args) => { globalThis.pageBridgeArguments = args; }"


def _walk_frame_tree(node: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    frame = node.get("frame")
    if frame:
        yield frame
    for child in node.get("childFrames") or []:
        yield from _walk_frame_tree(child)


def _select_frames(frames: List[Dict[str, Any]], scope: EvaluationScope) -> List[Dict[str, Any]]:
    if scope.is_default:
        return frames[:1]
    selected = frames
    if scope.frame_ids:
        selected = [frame for frame in selected if frame.get("id") in scope.frame_ids]
    if scope.document_ids:
        selected = [frame for frame in selected if frame.get("loaderId") in scope.document_ids]
    return selected


def _exception_message(details: Dict[str, Any]) -> str:
    exception = details.get("exception") or {}
    return str(exception.get("description") or details.get("text") or "script threw")


class CDPScriptInjector:
    """Script injector over one CDP session attached to a page target."""

    def __init__(self, session: Any, *, world_name: str = ISOLATED_WORLD_NAME):
        self.session = session
        self.world_name = world_name
        self._contexts: Dict[Tuple[str, ExecutionWorld], int] = {}
        self._enabled = False
        self._lock = asyncio.Lock()

    async def _ensure_enabled(self) -> None:
        if self._enabled:
            return
        self.session.on("Runtime.executionContextCreated", self._on_context_created)
        self.session.on("Runtime.executionContextDestroyed", self._on_context_destroyed)
        self.session.on("Runtime.executionContextsCleared", self._on_contexts_cleared)
        await self.session.send("Runtime.enable")
        self._enabled = True

    def _on_context_created(self, params: Dict[str, Any]) -> None:
        context = params.get("context") or {}
        aux = context.get("auxData") or {}
        frame_id = aux.get("frameId")
        if not frame_id:
            return
        if aux.get("isDefault"):
            self._contexts[(frame_id, ExecutionWorld.PAGE)] = context["id"]
        elif context.get("name") == self.world_name:
            self._contexts[(frame_id, ExecutionWorld.PRIVILEGED)] = context["id"]

    def _on_context_destroyed(self, params: Dict[str, Any]) -> None:
        destroyed = params.get("executionContextId")
        for key, context_id in list(self._contexts.items()):
            if context_id == destroyed:
                self._contexts.pop(key, None)

    def _on_contexts_cleared(self, params: Optional[Dict[str, Any]] = None) -> None:
        self._contexts.clear()

    async def _frames(self, scope: EvaluationScope) -> List[Dict[str, Any]]:
        tree = await self.session.send("Page.getFrameTree")
        frames = list(_walk_frame_tree(tree.get("frameTree") or {}))
        return _select_frames(frames, scope)

    async def _context_id(self, frame_id: str, world: ExecutionWorld) -> int:
        known = self._contexts.get((frame_id, world))
        if known is not None:
            return known
        if world is ExecutionWorld.PAGE:
            raise InjectionError(
                f"no page-world execution context for frame {frame_id}",
                details={"frameId": frame_id},
            )
        created = await self.session.send(
            "Page.createIsolatedWorld",
            {"frameId": frame_id, "worldName": self.world_name, "grantUniveralAccess": True},
        )
        context_id = created["executionContextId"]
        self._contexts[(frame_id, world)] = context_id
        return context_id

    async def inject(self, target: Target, request: EvaluationRequest) -> List[Any]:
        async with self._lock:
            await self._ensure_enabled()
            frames = await self._frames(request.scope)
            contexts = [
                (frame["id"], await self._context_id(frame["id"], request.world))
                for frame in frames
            ]

        results: List[Any] = []
        for frame_id, context_id in contexts:
            if request.function:
                value = await self._call_function(context_id, request.function, request.args)
            else:
                value = await self._run_files(context_id, request.files, request.args)
            results.append(value)
        _log_bridge_event(
            logger,
            level=logging.DEBUG,
            event="inject",
            target=target.document_target_id,
            frames=len(contexts),
            world=request.world.value,
        )
        return results

    async def _call_function(self, context_id: int, function: str, args: Tuple[Any, ...]) -> Any:
        response = await self.session.send(
            "Runtime.callFunctionOn",
            {
                "functionDeclaration": function,
                "executionContextId": context_id,
                "arguments": [{"value": arg} for arg in args],
                "returnByValue": True,
                "awaitPromise": True,
            },
        )
        return self._result_value(response)

    async def _run_files(
        self, context_id: int, files: Tuple[str, ...], args: Tuple[Any, ...]
    ) -> Any:
        if args:
            await self._call_function(context_id, _SET_FILE_ARGUMENTS_JS, (list(args),))
        value = None
        for file_name in files:
            source = Path(file_name).read_text(encoding="utf-8")
            response = await self.session.send(
                "Runtime.evaluate",
                {
                    "expression": source,
                    "contextId": context_id,
                    "returnByValue": True,
                    "awaitPromise": True,
                },
            )
            value = self._result_value(response)
        return value

    @staticmethod
    def _result_value(response: Dict[str, Any]) -> Any:
        details = response.get("exceptionDetails")
        if details:
            raise InjectionError(_exception_message(details), details=details)
        return (response.get("result") or {}).get("value")


class PlaywrightTabHost:
    """Tab navigation and metadata for one Playwright page."""

    def __init__(self, page: Any, session: Any):
        self.page = page
        self.session = session
        self._main_frame_id: Optional[str] = None
        self._url: str = page.url
        self._pending_url: Optional[str] = None
        self._status = TAB_STATUS_COMPLETE
        self._enabled = False
        self._lock = asyncio.Lock()

    async def _ensure_enabled(self) -> None:
        async with self._lock:
            if self._enabled:
                return
            self.session.on("Page.frameNavigated", self._on_frame_navigated)
            self.session.on("Page.navigatedWithinDocument", self._on_navigated_within_document)
            self.session.on("Page.domContentEventFired", self._on_dom_content)
            self.session.on("Page.loadEventFired", self._on_load)
            await self.session.send("Page.enable")
            tree = await self.session.send("Page.getFrameTree")
            self._main_frame_id = ((tree.get("frameTree") or {}).get("frame") or {}).get("id")
            self._enabled = True

    def _is_main_frame(self, frame_id: Optional[str]) -> bool:
        return frame_id is not None and frame_id == self._main_frame_id

    def _on_frame_navigated(self, params: Dict[str, Any]) -> None:
        frame = params.get("frame") or {}
        if frame.get("parentId") or not self._is_main_frame(frame.get("id")):
            return
        self._url = frame.get("url") or self._url
        self._pending_url = None
        self._status = TAB_STATUS_LOADING

    def _on_navigated_within_document(self, params: Dict[str, Any]) -> None:
        if not self._is_main_frame(params.get("frameId")):
            return
        self._url = params.get("url") or self._url
        self._pending_url = None

    def _on_dom_content(self, params: Dict[str, Any]) -> None:
        if self._status == TAB_STATUS_LOADING:
            self._status = TAB_STATUS_INTERACTIVE

    def _on_load(self, params: Dict[str, Any]) -> None:
        self._status = TAB_STATUS_COMPLETE

    async def navigate(self, target: Target, url: str) -> None:
        await self._ensure_enabled()
        self._pending_url = url
        self._status = TAB_STATUS_LOADING
        response = await self.session.send("Page.navigate", {"url": url})
        error_text = response.get("errorText")
        if error_text:
            _log_bridge_event(
                logger,
                level=logging.WARNING,
                event="navigate_error",
                target=target.document_target_id,
                url=url,
                error=error_text,
            )
        if not response.get("loaderId"):
            # Same-document or failed navigation: no new document will commit.
            self._pending_url = None
            if not error_text:
                self._url = url
                self._status = TAB_STATUS_COMPLETE

    async def get_info(self, target: Target) -> TabInfo:
        await self._ensure_enabled()
        return TabInfo(url=self._url, pending_url=self._pending_url, status=self._status)


class PlaywrightScreenCapture:
    def __init__(self, page: Any):
        self.page = page

    async def capture(self, target: Target, clip: Optional[Clip] = None) -> bytes:
        return await self.page.screenshot(type="png", clip=clip.as_dict() if clip else None)


class RouteBlobStager:
    """Stages bytes behind a routed URL the page can fetch; `revoke` unroutes it."""

    def __init__(self, page: Any, *, base_url: str = STAGING_BASE_URL):
        self.page = page
        self.base_url = base_url
        self._handlers: Dict[str, Any] = {}

    async def stage(self, data: bytes, mime_type: str) -> str:
        url = f"{self.base_url}{uuid4().hex}"

        async def fulfill(route: Any) -> None:
            await route.fulfill(
                status=200,
                body=data,
                content_type=mime_type,
                headers={"Access-Control-Allow-Origin": "*"},
            )

        await self.page.route(url, fulfill)
        self._handlers[url] = fulfill
        return url

    async def revoke(self, url: str) -> None:
        handler = self._handlers.pop(url, None)
        if handler is not None:
            await self.page.unroute(url, handler)


async def attach(
    page: Any,
    *,
    config: Optional[PageConfig] = None,
    stage_blobs: bool = False,
    **overrides: Any,
) -> Page:
    """Build a `pagebridge.Page` for a Playwright page (Chromium only)."""
    session = await page.context.new_cdp_session(page)
    info = await session.send("Target.getTargetInfo")
    target_info = info.get("targetInfo") or {}
    target = Target(
        document_target_id=target_info.get("targetId") or f"page-{id(page)}",
        container_target_id=target_info.get("browserContextId"),
    )
    return Page(
        target,
        CDPScriptInjector(session),
        tabs=PlaywrightTabHost(page, session),
        capture=PlaywrightScreenCapture(page),
        stager=RouteBlobStager(page) if stage_blobs else None,
        config=config,
        **overrides,
    )
