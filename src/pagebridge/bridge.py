"""
Evaluation bridge: the single channel for running code inside a target document.

The bridge knows nothing about what it ships. It packs a JS function source
(or a list of script files) with JSON arguments into an `EvaluationRequest`,
hands it to the host's `ScriptInjector`, and returns the first result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Tuple, Union

from .errors import EvaluationError
from .host import ScriptInjector, Target
from .logging_utils import _log_bridge_event

logger = logging.getLogger(__name__)


class ExecutionWorld(str, Enum):
    PRIVILEGED = "isolated"
    PAGE = "main"


@dataclass(frozen=True)
class EvaluationScope:
    all_frames: bool = False
    frame_ids: Tuple[str, ...] = ()
    document_ids: Tuple[str, ...] = ()

    @property
    def is_default(self) -> bool:
        return not (self.all_frames or self.frame_ids or self.document_ids)


@dataclass(frozen=True)
class EvaluationRequest:
    function: Optional[str] = None
    files: Tuple[str, ...] = ()
    args: Tuple[Any, ...] = ()
    world: ExecutionWorld = ExecutionWorld.PRIVILEGED
    scope: EvaluationScope = field(default_factory=EvaluationScope)
    # Diagnostics only; never shipped to the page.
    locator: Optional[str] = None

    def __post_init__(self) -> None:
        if bool(self.function) == bool(self.files):
            raise ValueError("EvaluationRequest needs exactly one of function or files")


def _as_tuple(values: Optional[Iterable[Any]]) -> Tuple[Any, ...]:
    if values is None:
        return ()
    if isinstance(values, (str, bytes)):
        return (values,)
    return tuple(values)


class EvaluationBridge:
    """Ships evaluation requests into one target through a script injector."""

    def __init__(self, target: Target, injector: ScriptInjector):
        self.target = target
        self.injector = injector

    def build_request(
        self,
        function: Optional[str] = None,
        *args: Any,
        files: Optional[Sequence[str]] = None,
        world: Union[ExecutionWorld, str] = ExecutionWorld.PRIVILEGED,
        all_frames: bool = False,
        frame_ids: Optional[Iterable[str]] = None,
        document_ids: Optional[Iterable[str]] = None,
        locator: Optional[str] = None,
    ) -> EvaluationRequest:
        return EvaluationRequest(
            function=function,
            files=_as_tuple(files),
            args=tuple(args),
            world=ExecutionWorld(world),
            scope=EvaluationScope(
                all_frames=bool(all_frames),
                frame_ids=_as_tuple(frame_ids),
                document_ids=_as_tuple(document_ids),
            ),
            locator=locator,
        )

    async def evaluate(
        self,
        function: Union[str, EvaluationRequest, None] = None,
        *args: Any,
        files: Optional[Sequence[str]] = None,
        world: Union[ExecutionWorld, str] = ExecutionWorld.PRIVILEGED,
        all_frames: bool = False,
        frame_ids: Optional[Iterable[str]] = None,
        document_ids: Optional[Iterable[str]] = None,
        locator: Optional[str] = None,
    ) -> Any:
        """
        Run `function(*args)` (or the script `files`) in the target and return
        the first execution result, or None when no execution target matched.

        `function` may also be a prebuilt `EvaluationRequest`, in which case the
        remaining keyword options are ignored.
        """
        if isinstance(function, EvaluationRequest):
            request = function
        else:
            request = self.build_request(
                function,
                *args,
                files=files,
                world=world,
                all_frames=all_frames,
                frame_ids=frame_ids,
                document_ids=document_ids,
                locator=locator,
            )
        return await self.run(request)

    async def run(self, request: EvaluationRequest) -> Any:
        _log_bridge_event(
            logger,
            level=logging.DEBUG,
            event="evaluate",
            target=self.target.document_target_id,
            world=request.world.value,
            files=len(request.files) or None,
            locator=request.locator,
        )
        try:
            results = await self.injector.inject(self.target, request)
        except EvaluationError:
            raise
        except Exception as exc:
            _log_bridge_event(
                logger,
                level=logging.WARNING,
                event="evaluate_failed",
                target=self.target.document_target_id,
                world=request.world.value,
                locator=request.locator,
                error=type(exc).__name__,
            )
            raise EvaluationError(
                exc,
                function=request.function,
                files=request.files,
                args=request.args,
                locator=request.locator,
            ) from exc
        if not results:
            return None
        return results[0]

