from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bot_adapter.core.errors import MalformedServiceResult


@dataclass(frozen=True)
class ImagePayload:
    """Fully materialized image bytes handed to an OCR service."""

    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class OCRSuccess:
    text: str


@dataclass(frozen=True)
class OCRFailure:
    reason: str | None = None


@dataclass(frozen=True)
class OCRMalformed:
    raw: Any = None

    @property
    def error(self) -> MalformedServiceResult:
        return MalformedServiceResult("OCR", self.raw)


OCROutcome = OCRSuccess | OCRFailure | OCRMalformed


def coerce_ocr_result(raw: Any) -> OCROutcome:
    """Map whatever an OCR service returned onto the tagged outcome type.

    Services may return an ``OCROutcome`` directly or the legacy mapping
    shape ``{"success": bool, "text": str}``.
    """
    if isinstance(raw, (OCRSuccess, OCRFailure, OCRMalformed)):
        if isinstance(raw, OCRSuccess) and not isinstance(raw.text, str):
            return OCRMalformed(raw)
        return raw

    if not isinstance(raw, Mapping) or "success" not in raw:
        return OCRMalformed(raw)

    if not raw["success"]:
        reason = raw.get("error")
        return OCRFailure(reason if isinstance(reason, str) else None)

    text = raw.get("text")
    if not isinstance(text, str):
        return OCRMalformed(raw)
    return OCRSuccess(text)


class TextAnalysisService:
    async def analyze_content(self, text: str, kind: str) -> Any:
        raise NotImplementedError


class OCRService:
    async def extract_text_from_image(self, blob: ImagePayload) -> OCROutcome | Mapping[str, Any]:
        raise NotImplementedError
