from __future__ import annotations

from typing import Any

from pydantic import AnyHttpUrl, BaseModel, Field

from bot_adapter.fetch.fetcher import FetchMode


class HealthResponse(BaseModel):
    status: str
    analysis: bool
    ocr: bool


class AnalyzeRequest(BaseModel):
    text: str | None = None


class AnalyzeResponse(BaseModel):
    result: Any


class OcrUrlRequest(BaseModel):
    url: AnyHttpUrl
    mode: FetchMode = FetchMode.BUFFER


class OcrResponse(BaseModel):
    text: str = Field(description="Recognized text; empty when nothing was recognized")
