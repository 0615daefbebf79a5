"""
pagebridge: drive a browser document from a controller that cannot touch it.

Elements are addressed by element paths re-resolved inside the page, every
DOM call crosses one evaluation bridge, waits poll through that bridge, and
files reach file inputs in JSON-sized chunks.
"""

from .bridge import EvaluationBridge, EvaluationRequest, EvaluationScope, ExecutionWorld
from .config import PageConfig, get_default_config, set_default_config
from .element import RemoteElement
from .errors import (
    ElementNotFoundError,
    EvaluationError,
    InjectionError,
    LocatorSyntaxError,
    PageBridgeError,
    WaitTimeoutError,
)
from .host import Clip, TabInfo, Target
from .locators import encode_segment, is_path_expression, join_path, parse_path
from .page import Page
from .runtime import PageCall, PageOperation, PageRuntime
from .transfer import FileTransfer, TransferFile
from .waiting import wait_for

__all__ = [
    "Clip",
    "ElementNotFoundError",
    "EvaluationBridge",
    "EvaluationError",
    "EvaluationRequest",
    "EvaluationScope",
    "ExecutionWorld",
    "FileTransfer",
    "InjectionError",
    "LocatorSyntaxError",
    "Page",
    "PageBridgeError",
    "PageCall",
    "PageConfig",
    "PageOperation",
    "PageRuntime",
    "RemoteElement",
    "TabInfo",
    "Target",
    "TransferFile",
    "WaitTimeoutError",
    "encode_segment",
    "get_default_config",
    "is_path_expression",
    "join_path",
    "parse_path",
    "set_default_config",
    "wait_for",
]
