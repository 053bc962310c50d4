from __future__ import annotations

from typing import Any
from pydantic import BaseModel, Field


class UrlRequest(BaseModel):
    url: str = Field(default="", examples=["https://example.com/data.csv"])


class ProcessResponse(BaseModel):
    success: bool = True
    data: Any = None
    message: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    ok: bool = True
