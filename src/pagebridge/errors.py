"""Error taxonomy shared by every pagebridge layer."""

from __future__ import annotations

from typing import Any, Optional, Sequence


class PageBridgeError(Exception):
    """Base class for every failure raised by pagebridge."""


class InjectionError(PageBridgeError):
    """Raised by a script injector when code could not run in the target."""

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class EvaluationError(PageBridgeError):
    """A cross-context evaluation could not be delivered or threw."""

    def __init__(
        self,
        cause: BaseException,
        *,
        function: Optional[str] = None,
        files: Sequence[str] = (),
        args: Sequence[Any] = (),
        locator: Optional[str] = None,
    ):
        self.cause = cause
        self.function = function
        self.files = tuple(files)
        self.args_summary = _summarize_args(args)
        self.locator = locator
        super().__init__(self._render())

    def _render(self) -> str:
        parts = [f"evaluation failed: {self.cause}"]
        if self.function:
            parts.append(f"function={_shorten(self.function)}")
        if self.files:
            parts.append(f"files={list(self.files)}")
        if self.args_summary:
            parts.append(f"args={self.args_summary}")
        if self.locator:
            parts.append(f"locator={self.locator!r}")
        return " ".join(parts)


class ElementNotFoundError(PageBridgeError):
    """An operation that requires an element matched nothing."""

    def __init__(
        self,
        operation: str,
        locator: Optional[str],
        index: int = -1,
        *,
        path: Optional[str] = None,
    ):
        self.operation = operation
        self.locator = locator
        self.index = index
        self.path = path
        where = f"path {path!r}" if path else f"locator {locator!r} at index {index}"
        super().__init__(f"{operation}: no element found for {where}")


class LocatorSyntaxError(PageBridgeError, ValueError):
    """A selector or path expression is malformed."""

    def __init__(self, message: str, *, locator: Optional[str] = None):
        self.locator = locator
        super().__init__(message if locator is None else f"{message} (locator={locator!r})")


class WaitTimeoutError(PageBridgeError, TimeoutError):
    """The wait engine exhausted its retry budget without a truthy result."""

    def __init__(self, description: str, *, attempts: int, last_value: Any = None):
        self.description = description
        self.attempts = attempts
        self.last_value = last_value
        super().__init__(f"timed out waiting for {description} after {attempts} attempts")


def _shorten(text: str, limit: int = 80) -> str:
    flat = " ".join(str(text).split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3] + "..."


def _summarize_args(args: Sequence[Any]) -> str:
    if not args:
        return ""
    return _shorten(repr(list(args)), limit=160)
