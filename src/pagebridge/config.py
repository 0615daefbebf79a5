"""Page configuration: retry budget, polling interval and action options."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_RETRY_LIMIT = 30
DEFAULT_INTERVAL_MS = 1000
DEFAULT_UPLOAD_CHUNK_SIZE = 5_242_880


def _default_scroll_options() -> Dict[str, Any]:
    return {"behavior": "smooth", "block": "center"}


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}
_ENV_MINIMUMS = {"retry_limit": 0, "interval": 0, "upload_chunk_size": 1}


class PageEnvironment(BaseModel):
    """
    Lenient reading of the `PAGEBRIDGE_*` variables.

    Unparseable values become None so `PageConfig` keeps its default; numbers
    below a field's minimum are clamped to it.
    """

    model_config = ConfigDict(extra="ignore")

    retry_limit: Optional[int] = Field(default=None, validation_alias="PAGEBRIDGE_RETRY_LIMIT")
    interval: Optional[int] = Field(default=None, validation_alias="PAGEBRIDGE_INTERVAL_MS")
    scroll_before_action: Optional[bool] = Field(
        default=None, validation_alias="PAGEBRIDGE_SCROLL_BEFORE_ACTION"
    )
    upload_chunk_size: Optional[int] = Field(
        default=None, validation_alias="PAGEBRIDGE_UPLOAD_CHUNK_SIZE"
    )

    @field_validator("retry_limit", "interval", "upload_chunk_size", mode="before")
    @classmethod
    def _clamped_int(cls, value: Any, info: ValidationInfo) -> Optional[int]:
        try:
            parsed = int(str(value).strip())
        except ValueError:
            return None
        return max(_ENV_MINIMUMS[info.field_name], parsed)

    @field_validator("scroll_before_action", mode="before")
    @classmethod
    def _switch(cls, value: Any) -> Optional[bool]:
        text = str(value).strip().lower()
        if text in _TRUE_WORDS:
            return True
        if text in _FALSE_WORDS:
            return False
        return None

    def overrides(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PageConfig(BaseModel):
    """
    Settings applied to one target document.

    `retry_limit` and `interval` (milliseconds) drive every wait; the scroll
    settings are applied before click/input/paste/event/upload actions.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_limit: int = Field(default=DEFAULT_RETRY_LIMIT, ge=0)
    interval: int = Field(default=DEFAULT_INTERVAL_MS, ge=0)
    scroll_before_action: bool = True
    scroll_options: Dict[str, Any] = Field(default_factory=_default_scroll_options)
    upload_chunk_size: int = Field(default=DEFAULT_UPLOAD_CHUNK_SIZE, gt=0)

    @classmethod
    def from_env(cls) -> "PageConfig":
        return cls(**PageEnvironment.model_validate(dict(os.environ)).overrides())

    def merged(self, **overrides: Any) -> "PageConfig":
        """Shallow merge: nested values such as `scroll_options` are replaced, not combined."""
        if not overrides:
            return self
        payload = self.model_dump()
        payload.update({key: value for key, value in overrides.items() if value is not None})
        return type(self).model_validate(payload)

    def action_scroll(self) -> Optional[Dict[str, Any]]:
        if not self.scroll_before_action:
            return None
        return dict(self.scroll_options)


_default_config: Optional[PageConfig] = None


def get_default_config() -> PageConfig:
    global _default_config
    if _default_config is None:
        _default_config = PageConfig.from_env()
    return _default_config


def set_default_config(config: Optional[PageConfig]) -> None:
    """Install the process-wide default; `None` re-reads the environment on next use."""
    global _default_config
    _default_config = config
