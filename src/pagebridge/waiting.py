"""Generic truthy-polling wait engine."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional

from .errors import WaitTimeoutError
from .logging_utils import _log_bridge_event

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def _describe(predicate: Callable[..., Any]) -> str:
    return getattr(predicate, "__qualname__", None) or repr(predicate)


async def wait_for(
    predicate: Callable[..., Any],
    *args: Any,
    retry_limit: int,
    interval: int,
    sleep: Sleep = asyncio.sleep,
    description: Optional[str] = None,
) -> Any:
    """
    Call `predicate(*args)` until it returns a truthy value.

    The predicate may be sync or async. It is evaluated once, then retried up
    to `retry_limit` times with `interval` milliseconds between attempts, so a
    predicate that never succeeds is evaluated `retry_limit + 1` times before
    `WaitTimeoutError` is raised. Exceptions from the predicate propagate
    immediately.
    """
    if retry_limit < 0:
        raise ValueError(f"retry_limit must be >= 0, got {retry_limit}")
    if interval < 0:
        raise ValueError(f"interval must be >= 0, got {interval}")

    label = description or _describe(predicate)
    remaining = int(retry_limit)
    attempts = 0
    while True:
        value = predicate(*args)
        if inspect.isawaitable(value):
            value = await value
        attempts += 1
        if value:
            _log_bridge_event(
                logger, level=logging.DEBUG, event="wait_done", target=label, attempts=attempts
            )
            return value
        if remaining <= 0:
            break
        remaining -= 1
        _log_bridge_event(
            logger, level=logging.DEBUG, event="wait_retry", target=label, attempts=attempts
        )
        await sleep(interval / 1000)

    _log_bridge_event(
        logger, level=logging.INFO, event="wait_timeout", target=label, attempts=attempts
    )
    raise WaitTimeoutError(label, attempts=attempts, last_value=value)
