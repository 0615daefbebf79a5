"""
Key=value event lines for pagebridge loggers.

Every line reads `pagebridge event=<name> key=value ...` so bridge traffic,
waits and uploads can be grepped by event. Values containing spaces, quotes
or `=` are JSON-quoted so a URL or an error message stays one token.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Iterator, Tuple

_BARE_UNSAFE = (" ", "\t", "\n", '"', "=")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        value = ",".join(_format_value(item) for item in value)
    text = str(value)
    if not text or any(mark in text for mark in _BARE_UNSAFE):
        return json.dumps(text, ensure_ascii=False)
    return text


def _event_fields(event: str, fields: dict) -> Iterator[Tuple[str, str]]:
    yield "event", event
    for key, value in fields.items():
        if value is None:
            continue
        yield key, _format_value(value)


def _log_bridge_event(
    logger: logging.Logger,
    *,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Log one event line; `None` fields are dropped."""
    if not logger.isEnabledFor(level):
        return
    rendered = " ".join(f"{key}={value}" for key, value in _event_fields(event, fields))
    logger.log(level, "pagebridge %s", rendered)
