"""
Closed RPC schema between the controller and the page runtime script.

Instead of shipping a fresh closure per operation, every DOM call ships the
same `PAGE_RUNTIME_JS` function with a `PageCall` message naming one of a
fixed set of operations. The page runtime answers with an envelope that is
unwrapped here into a value or a typed error.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .bridge import EvaluationBridge, ExecutionWorld
from .errors import ElementNotFoundError, EvaluationError, LocatorSyntaxError
from .locators import FIRST_MATCH, last_segment
from .page_scripts import PAGE_RUNTIME_JS

logger = logging.getLogger(__name__)


class PageOperation(str, Enum):
    EXISTS = "exists"
    DESCRIBE = "describe"
    LIST = "list"
    CLICK = "click"
    FOCUS = "focus"
    SCROLL_INTO_VIEW = "scroll_into_view"
    GET_ATTRIBUTE = "get_attribute"
    SET_ATTRIBUTE = "set_attribute"
    GET_TAG_NAME = "get_tag_name"
    GET_TEXT = "get_text"
    GET_HTML = "get_html"
    SET_HTML = "set_html"
    INPUT = "input"
    TRIGGER_EVENT = "trigger_event"
    EXEC_PASTE = "exec_paste"
    EXEC_COPY = "exec_copy"
    LOCATION = "location"
    REGISTRY_PATHS = "registry_paths"
    CATCHER_START = "catcher_start"
    CATCHER_STOP = "catcher_stop"
    CATCHER_CLEAR = "catcher_clear"
    CATCHER_COUNT = "catcher_count"
    CLICK_GUARD_ON = "click_guard_on"
    CLICK_GUARD_OFF = "click_guard_off"
    FILES_OPEN = "files_open"
    FILES_APPEND = "files_append"
    FILES_COMMIT = "files_commit"
    FILES_DISCARD = "files_discard"


class PageCall(BaseModel):
    """
    One message to the page runtime.

    The element is addressed by `caught` (element catcher index), else by
    `path` (resolved through the handle registry), else by `locator` +
    `index` (resolved directly against the document). For `list`, `path` is
    the context element and `locator` the query run inside it.
    """

    op: PageOperation
    path: Optional[str] = None
    locator: Optional[str] = None
    index: int = Field(default=FIRST_MATCH, ge=FIRST_MATCH)
    caught: Optional[int] = Field(default=None, ge=0)
    args: List[Any] = Field(default_factory=list)
    scroll: Optional[Dict[str, Any]] = None

    def describe_target(self) -> Optional[str]:
        if self.caught is not None:
            return f"<caught #{self.caught}>"
        if self.op is PageOperation.LIST and self.locator:
            return self.locator
        return self.path or self.locator


class PageRuntime:
    """Typed front end to the page runtime script, on top of an evaluation bridge."""

    def __init__(self, bridge: EvaluationBridge):
        self.bridge = bridge

    async def call(
        self,
        op: PageOperation,
        *args: Any,
        path: Optional[str] = None,
        locator: Optional[str] = None,
        index: int = FIRST_MATCH,
        caught: Optional[int] = None,
        scroll: Optional[Dict[str, Any]] = None,
        world: ExecutionWorld = ExecutionWorld.PRIVILEGED,
    ) -> Any:
        message = PageCall(
            op=op,
            path=path,
            locator=locator,
            index=index,
            caught=caught,
            args=list(args),
            scroll=scroll,
        )
        envelope = await self.bridge.evaluate(
            PAGE_RUNTIME_JS,
            message.model_dump(mode="json"),
            world=world,
            locator=message.describe_target(),
        )
        return self._unwrap(message, envelope)

    def _unwrap(self, message: PageCall, envelope: Any) -> Any:
        if not isinstance(envelope, dict) or "ok" not in envelope:
            raise EvaluationError(
                ValueError(f"unexpected page runtime response: {envelope!r}"),
                args=[message.op.value],
                locator=message.describe_target(),
            )
        if envelope["ok"]:
            return envelope.get("value")

        error = envelope.get("error")
        if error == "not_found":
            raise self._not_found(message)
        if error == "locator_syntax":
            raise LocatorSyntaxError(
                str(envelope.get("message") or "malformed locator"),
                locator=message.describe_target(),
            )
        raise EvaluationError(
            ValueError(f"page runtime error {error!r}: {envelope.get('message')}"),
            args=[message.op.value],
            locator=message.describe_target(),
        )

    @staticmethod
    def _not_found(message: PageCall) -> ElementNotFoundError:
        operation = message.op.value
        if message.caught is not None:
            return ElementNotFoundError(operation, None, message.caught)
        # For `list` this reports the missing context element, not the listed locator.
        if message.path:
            segment = last_segment(message.path)
            return ElementNotFoundError(
                operation, segment.locator, segment.index, path=message.path
            )
        return ElementNotFoundError(operation, message.locator, message.index)
