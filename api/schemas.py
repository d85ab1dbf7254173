from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class FilterCriteriaModel(BaseModel):
    date_window: Union[int, str] = "all"
    device_model: str = "all"
    android_version: str = "all"
    device_query: str = ""


class MetaOptionsResponse(BaseModel):
    ok: bool
    error: Optional[str] = None
    record_count: int = 0
    device_models: List[str] = Field(default_factory=list)
    android_versions: List[str] = Field(default_factory=list)
    date_windows: List[Union[int, str]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    type: str
