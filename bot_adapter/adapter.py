"""Normalized text-analysis and OCR calls for the chat bot.

Each call is a stateless one-shot pipeline:

    locate service -> (fetch bytes) -> bounded external call -> normalize

Service handles are resolved once, when this module is imported. A missing
service does not prevent startup; it surfaces as ``ServiceUnavailable`` on
the first call that needs it.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from bot_adapter.core.config import operation_timeout_ms
from bot_adapter.core.errors import FetchError, ServiceUnavailable, TimeoutExceeded
from bot_adapter.core.timeout import with_timeout
from bot_adapter.fetch.fetcher import (
    BufferedResource,
    BytesLike,
    FetchedResource,
    FetchMode,
    fetch_to_buffer_or_file,
)
from bot_adapter.services.base import ImagePayload, OCRMalformed, OCRSuccess, coerce_ocr_result
from bot_adapter.services.registry import ServiceRegistry, resolve_services

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

Fetcher = Callable[..., Awaitable[FetchedResource]]


class OperationOptions(BaseModel):
    """Per-call options. Unknown keys are accepted and ignored."""

    model_config = ConfigDict(extra="allow", frozen=True)

    mode: FetchMode = FetchMode.BUFFER


@dataclass(frozen=True)
class TextRequest:
    text: str


@dataclass(frozen=True)
class ImageRequest:
    source: str | BytesLike
    mode: FetchMode = FetchMode.BUFFER

    @property
    def label(self) -> str:
        return self.source if isinstance(self.source, str) else "<bytes>"


def _options(options: OperationOptions | Mapping[str, Any] | None) -> OperationOptions:
    if options is None:
        return OperationOptions()
    if isinstance(options, OperationOptions):
        return options
    return OperationOptions.model_validate(dict(options))


class BotAdapter:
    def __init__(self, registry: ServiceRegistry, *, fetch: Fetcher = fetch_to_buffer_or_file) -> None:
        self._registry = registry
        self._fetch = fetch

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    async def analyze_text(self, text: Any, options: OperationOptions | Mapping[str, Any] | None = None) -> Any:
        """Run text analysis and return the service's result unchanged."""
        if self._registry.text_analysis is None:
            raise ServiceUnavailable(
                "Text analysis",
                "Set ANALYSIS_PROVIDER to an installed provider (mock | openai).",
            )
        _options(options)

        request = TextRequest(text=text if isinstance(text, str) else "")
        service = self._registry.text_analysis()
        timeout_ms = operation_timeout_ms()

        result = await with_timeout(service.analyze_content(request.text, "text"), timeout_ms)
        logger.info("text_analysis_complete", extra={"characters": len(request.text)})
        return result

    async def ocr_image(
        self,
        url_or_buffer: str | BytesLike,
        options: OperationOptions | Mapping[str, Any] | None = None,
    ) -> str:
        """Extract text from an image URL or buffer.

        Returns ``""`` when the OCR service reports failure, returns an
        unexpected shape, raises, or times out. Fetch failures are raised as
        ``FetchError``.
        """
        if self._registry.ocr is None:
            raise ServiceUnavailable(
                "OCR",
                "Set OCR_PROVIDER to an installed provider (mock | paddleocr | aws_textract).",
            )
        opts = _options(options)
        request = ImageRequest(source=url_or_buffer, mode=opts.mode)
        timeout_ms = operation_timeout_ms()

        fetched = await with_timeout(
            self._fetch(request.source, mode=request.mode),
            timeout_ms,
            FetchError(f"Fetching image timed out after {timeout_ms} ms", source=request.label),
        )
        payload = await self._to_payload(fetched)

        ocr = self._registry.ocr()
        try:
            raw = await with_timeout(ocr.extract_text_from_image(payload), timeout_ms)
        except TimeoutExceeded:
            logger.warning("ocr_timed_out", extra={"source": request.label, "timeout_ms": timeout_ms})
            return ""
        except Exception:
            logger.exception("ocr_service_failed", extra={"source": request.label})
            return ""

        outcome = coerce_ocr_result(raw)
        if isinstance(outcome, OCRSuccess):
            logger.info("ocr_complete", extra={"source": request.label, "characters": len(outcome.text)})
            return outcome.text

        if isinstance(outcome, OCRMalformed):
            logger.warning("ocr_malformed_result", extra={"source": request.label, "error": str(outcome.error)})
            return ""

        logger.info(
            "ocr_no_text",
            extra={"source": request.label, "outcome": type(outcome).__name__},
        )
        return ""

    @staticmethod
    async def _to_payload(fetched: FetchedResource) -> ImagePayload:
        if isinstance(fetched, BufferedResource):
            data = fetched.data
        else:
            try:
                data = await asyncio.to_thread(fetched.path.read_bytes)
            except OSError as exc:
                raise FetchError(f"Could not read fetched file: {exc}", source=str(fetched.path)) from exc
            finally:
                fetched.path.unlink(missing_ok=True)
        return ImagePayload(data=data, content_type=fetched.content_type or DEFAULT_CONTENT_TYPE)


default_adapter = BotAdapter(resolve_services())


async def analyze_text_normalized(
    text: Any, options: OperationOptions | Mapping[str, Any] | None = None
) -> Any:
    return await default_adapter.analyze_text(text, options)


async def ocr_from_image_url_or_buffer(
    url_or_buffer: str | BytesLike, options: OperationOptions | Mapping[str, Any] | None = None
) -> str:
    return await default_adapter.ocr_image(url_or_buffer, options)
