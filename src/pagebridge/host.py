"""Interfaces of the host collaborators pagebridge consumes but does not own."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .bridge import EvaluationRequest

BLANK_URL = "about:blank"

TAB_STATUS_LOADING = "loading"
TAB_STATUS_INTERACTIVE = "interactive"
TAB_STATUS_COMPLETE = "complete"


@dataclass(frozen=True)
class Target:
    """Opaque addressing keys for one document and the container that holds it."""

    document_target_id: str
    container_target_id: Optional[str] = None


@dataclass(frozen=True)
class TabInfo:
    url: str
    pending_url: Optional[str] = None
    status: str = TAB_STATUS_COMPLETE


@dataclass(frozen=True)
class Clip:
    x: float
    y: float
    width: float
    height: float

    def as_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class ScriptInjector(Protocol):
    async def inject(self, target: Target, request: "EvaluationRequest") -> List[Any]:
        """Run the request in every matched execution target; one result per target."""
        ...


class TabHost(Protocol):
    async def navigate(self, target: Target, url: str) -> None: ...

    async def get_info(self, target: Target) -> TabInfo: ...


class ScreenCapture(Protocol):
    async def capture(self, target: Target, clip: Optional[Clip] = None) -> bytes:
        """PNG bytes of the visible viewport, cropped to `clip` when given."""
        ...


class BlobStager(Protocol):
    async def stage(self, data: bytes, mime_type: str) -> str:
        """Make `data` fetchable from the page and return its URL."""
        ...

    async def revoke(self, url: str) -> None: ...
