"""Navigation and wait specialisations mixin for Page."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .errors import EvaluationError
from .host import (
    BLANK_URL,
    TAB_STATUS_COMPLETE,
    TAB_STATUS_INTERACTIVE,
    TabHost,
)
from .locators import FIRST_MATCH
from .logging_utils import _log_bridge_event
from .runtime import PageOperation

logger = logging.getLogger(__name__)

WAIT_UNTIL_STATUSES = {
    "load": {TAB_STATUS_COMPLETE},
    "domcontentloaded": {TAB_STATUS_INTERACTIVE, TAB_STATUS_COMPLETE},
}


class PageNavigationMixin:
    def _require_tabs(self) -> TabHost:
        if self.tabs is None:
            raise RuntimeError("This page has no tab host; navigation needs one.")
        return self.tabs

    async def url(self) -> str:
        info = await self._require_tabs().get_info(self.target)
        return info.url

    async def goto(
        self,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        retry_limit: Optional[int] = None,
        interval: Optional[int] = None,
    ) -> None:
        """
        Navigate and block until the tab reports the new document.

        The tab is first sent to `about:blank` so the transition to `url` is
        always observable, then tab metadata is polled until nothing is
        pending and the load status satisfies `wait_until`.
        """
        if wait_until not in WAIT_UNTIL_STATUSES:
            raise ValueError(
                f"wait_until must be one of {sorted(WAIT_UNTIL_STATUSES)}, got {wait_until!r}"
            )
        tabs = self._require_tabs()
        accepted = WAIT_UNTIL_STATUSES[wait_until]
        _log_bridge_event(
            logger,
            level=logging.INFO,
            event="goto",
            target=self.target.document_target_id,
            url=url,
            wait_until=wait_until,
        )
        if url != BLANK_URL:
            await tabs.navigate(self.target, BLANK_URL)
        await tabs.navigate(self.target, url)

        async def settled() -> bool:
            info = await tabs.get_info(self.target)
            if info.pending_url is not None:
                return False
            if url != BLANK_URL and info.url == BLANK_URL:
                return False
            return info.status in accepted

        await self.wait_for(
            settled,
            retry_limit=retry_limit,
            interval=interval,
            description=f"navigation to {url}",
        )

    async def reload(self, **options: Any) -> None:
        await self.goto(await self.url(), **options)

    async def _location(self) -> Optional[str]:
        return await self.runtime.call(PageOperation.LOCATION)

    async def wait_for_navigation(
        self, *, retry_limit: Optional[int] = None, interval: Optional[int] = None
    ) -> str:
        """Wait until the document's URL differs from the one seen on entry; return it."""
        last_url = await self._location()

        async def changed() -> Optional[str]:
            try:
                current = await self._location()
            except EvaluationError as exc:
                # The old document is being torn down; not navigated yet.
                _log_bridge_event(
                    logger,
                    level=logging.DEBUG,
                    event="navigation_probe_failed",
                    error=type(exc.cause).__name__,
                )
                return None
            if current and current != last_url:
                return current
            return None

        return await self.wait_for(
            changed,
            retry_limit=retry_limit,
            interval=interval,
            description=f"navigation away from {last_url}",
        )

    async def wait_for_selector(
        self,
        locator: str,
        index: int = FIRST_MATCH,
        *,
        retry_limit: Optional[int] = None,
        interval: Optional[int] = None,
    ) -> bool:
        """Wait until `locator` (CSS or XPath) matches an element at `index`."""
        return await self.wait_for(
            self.element_exists,
            locator,
            index,
            retry_limit=retry_limit,
            interval=interval,
            description=f"{locator!r}[{index}] to appear",
        )

    async def wait_for_selector_miss(
        self,
        locator: str,
        index: int = FIRST_MATCH,
        *,
        retry_limit: Optional[int] = None,
        interval: Optional[int] = None,
    ) -> bool:
        """Wait until `locator` no longer matches an element at `index`."""

        async def missing() -> bool:
            return not await self.element_exists(locator, index)

        return await self.wait_for(
            missing,
            retry_limit=retry_limit,
            interval=interval,
            description=f"{locator!r}[{index}] to disappear",
        )
