"""
JSON report models of the lune CLI.

Serialized with model_dump(mode="json") and written through jsonic.dumps.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class CacheReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    size: int = Field(..., ge=0)
    max_size: int = Field(..., ge=0)
    hit_ratio: float = Field(..., ge=0.0, le=1.0)


class RenderReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tool_version: str
    template: str
    output: str
    cache: CacheReport


class DependencyReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    template: str
    includes: List[str] = Field(default_factory=list)
    variables: List[str] = Field(default_factory=list)
    has_conditional_content: bool = False


class FilterList(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filters: List[str] = Field(default_factory=list)


__all__ = ["CacheReport", "RenderReport", "DependencyReport", "FilterList"]
