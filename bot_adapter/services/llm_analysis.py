"""LLM-backed text analysis.

Sends the message text to an OpenAI chat model and asks for a structured
JSON analysis (summary, language, sentiment, topics). Retries live here,
inside the service; the adapter layer above never retries.

Config:
    ANALYSIS_PROVIDER=openai
    OPENAI_API_KEY=...
    LLM_MODEL=gpt-4o-mini
"""
from __future__ import annotations

import json
import logging
from typing import Any

from tenacity import retry, stop_after_attempt, wait_exponential

from bot_adapter.core.config import settings
from bot_adapter.services.base import TextAnalysisService

logger = logging.getLogger(__name__)


_ANALYSIS_SYSTEM_PROMPT = """\
You analyze short pieces of content sent to a chat bot.
Return a JSON object with these keys:
- summary: string, one or two sentences
- language: ISO 639-1 code of the content
- sentiment: one of "positive", "neutral", "negative"
- topics: array of short strings

Respond ONLY with valid JSON. No explanation, no markdown fences.
"""


class LLMTextAnalysisService(TextAnalysisService):
    def __init__(self, model: str | None = None) -> None:
        self._model = model or settings.llm_model

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10))
    async def _call(self, text: str, kind: str) -> str:
        try:
            from openai import AsyncOpenAI  # type: ignore[import]
        except ModuleNotFoundError as exc:
            raise RuntimeError(
                "openai package is not installed. Run: pip install openai"
            ) from exc

        client = AsyncOpenAI(api_key=settings.openai_api_key)
        response = await client.chat.completions.create(
            model=self._model,
            temperature=0.0,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": _ANALYSIS_SYSTEM_PROMPT},
                {"role": "user", "content": f"Content kind: {kind}\n\n{text}"},
            ],
        )
        return response.choices[0].message.content or "{}"

    async def analyze_content(self, text: str, kind: str) -> dict[str, Any]:
        raw_json = await self._call(text, kind)
        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError:
            logger.error("llm_analysis_json_parse_error", extra={"raw": raw_json[:200]})
            raise

        logger.info("llm_analysis_complete", extra={"model": self._model, "keys": sorted(data)})
        return data
