from __future__ import annotations

from typing import Any

from bot_adapter.services.base import ImagePayload, OCRService, OCRSuccess, TextAnalysisService


class MockTextAnalysisService(TextAnalysisService):
    async def analyze_content(self, text: str, kind: str) -> dict[str, Any]:
        # Deterministic stand-in for development/testing
        words = text.split()
        return {
            "kind": kind,
            "characters": len(text),
            "words": len(words),
            "summary": " ".join(words[:12]),
        }


class MockOCRService(OCRService):
    async def extract_text_from_image(self, blob: ImagePayload) -> OCRSuccess:
        return OCRSuccess(
            text="RECEIPT\nStore: Corner Market\nDate: 2024-01-15\n\nMilk 2.49\nBread 3.10\nTotal: 5.59",
        )
