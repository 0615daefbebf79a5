"""
Locator classification and the element-path wire format.

An element path is a chain of `locator⟮index⟯` segments joined by `→`. Index
`-1` selects the first match, `n >= 0` the nth match in document order. Each
segment is resolved with the previous segment's element as context, so a
path addresses nested elements without the controller holding any node.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import LocatorSyntaxError

SEGMENT_SEPARATOR = "→"
INDEX_OPEN = "⟮"
INDEX_CLOSE = "⟯"
FIRST_MATCH = -1

RESERVED_CHARACTERS = (SEGMENT_SEPARATOR, INDEX_OPEN, INDEX_CLOSE)

PATH_EXPRESSION_PATTERN = r"^(/|\./|\()"
_PATH_EXPRESSION_RE = re.compile(PATH_EXPRESSION_PATTERN)
_SEGMENT_RE = re.compile(
    rf"^(?P<locator>.+){re.escape(INDEX_OPEN)}(?P<index>-?\d+){re.escape(INDEX_CLOSE)}$",
    re.DOTALL,
)


def is_path_expression(locator: str) -> bool:
    """True for XPath-style locators (`/`, `./` or `(` prefix), False for CSS selectors."""
    return bool(_PATH_EXPRESSION_RE.match(locator))


@dataclass(frozen=True)
class PathSegment:
    locator: str
    index: int = FIRST_MATCH

    def encode(self) -> str:
        return encode_segment(self.locator, self.index)


def _check_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise LocatorSyntaxError(f"element index must be an int, got {index!r}")
    if index < FIRST_MATCH:
        raise LocatorSyntaxError(f"element index must be >= {FIRST_MATCH}, got {index}")
    return index


def _check_locator(locator: str) -> str:
    if not isinstance(locator, str) or not locator.strip():
        raise LocatorSyntaxError("locator must be a non-empty string", locator=locator)
    for reserved in RESERVED_CHARACTERS:
        if reserved in locator:
            raise LocatorSyntaxError(
                f"locator contains reserved character {reserved!r}", locator=locator
            )
    return locator


def encode_segment(locator: str, index: int = FIRST_MATCH) -> str:
    return f"{_check_locator(locator)}{INDEX_OPEN}{_check_index(index)}{INDEX_CLOSE}"


def join_path(context: Optional[str], locator: str, index: int = FIRST_MATCH) -> str:
    segment = PathSegment(locator, index).encode()
    if not context:
        return segment
    return f"{context}{SEGMENT_SEPARATOR}{segment}"


def parse_path(path: str) -> List[PathSegment]:
    if not path:
        raise LocatorSyntaxError("element path must be a non-empty string")
    segments: List[PathSegment] = []
    for raw in path.split(SEGMENT_SEPARATOR):
        match = _SEGMENT_RE.match(raw)
        if match is None:
            raise LocatorSyntaxError(f"malformed element path segment {raw!r}", locator=path)
        segments.append(PathSegment(match.group("locator"), int(match.group("index"))))
    return segments


def last_segment(path: str) -> PathSegment:
    return parse_path(path)[-1]
