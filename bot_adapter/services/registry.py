from __future__ import annotations

import importlib.util
import logging
from collections.abc import Callable
from dataclasses import dataclass

from bot_adapter.core.config import Settings
from bot_adapter.services.base import OCRService, TextAnalysisService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceRegistry:
    """Service handles resolved once at startup; ``None`` marks an absent service."""

    text_analysis: Callable[[], TextAnalysisService] | None = None
    ocr: Callable[[], OCRService] | None = None


def _installed(module: str) -> bool:
    return importlib.util.find_spec(module) is not None


def _resolve_analysis(cfg: Settings) -> Callable[[], TextAnalysisService] | None:
    """Resolve ANALYSIS_PROVIDER.

    ANALYSIS_PROVIDER options:
        mock   — deterministic summary (dev/test, no deps required)
        openai — LLMTextAnalysisService (pip install openai + OPENAI_API_KEY)
        none   — disabled
    """
    provider = cfg.analysis_provider.lower().strip()

    if provider == "mock":
        from bot_adapter.services.mock import MockTextAnalysisService
        return MockTextAnalysisService

    if provider == "openai":
        if not _installed("openai"):
            logger.warning("analysis_provider_missing_dependency", extra={"provider": provider, "dependency": "openai"})
            return None
        if not cfg.openai_api_key:
            logger.warning("analysis_provider_missing_credentials", extra={"provider": provider})
            return None
        from bot_adapter.services.llm_analysis import LLMTextAnalysisService
        return LLMTextAnalysisService

    if provider != "none":
        logger.warning("analysis_provider_unknown", extra={"provider": cfg.analysis_provider})
    return None


def _resolve_ocr(cfg: Settings) -> Callable[[], OCRService] | None:
    """Resolve OCR_PROVIDER.

    OCR_PROVIDER options:
        mock         — fixed text (dev/test, no deps required)
        paddleocr    — PaddleOCRService (pip install paddlepaddle paddleocr)
        aws_textract — TextractOCRService (pip install boto3 + AWS credentials)
        none         — disabled
    """
    provider = cfg.ocr_provider.lower().strip()

    if provider == "mock":
        from bot_adapter.services.mock import MockOCRService
        return MockOCRService

    if provider == "paddleocr":
        if not _installed("paddleocr"):
            logger.warning("ocr_provider_missing_dependency", extra={"provider": provider, "dependency": "paddleocr"})
            return None
        from bot_adapter.services.ocr_engines import PaddleOCRService
        return PaddleOCRService

    if provider == "aws_textract":
        if not _installed("boto3"):
            logger.warning("ocr_provider_missing_dependency", extra={"provider": provider, "dependency": "boto3"})
            return None
        from bot_adapter.services.ocr_engines import TextractOCRService
        return TextractOCRService

    if provider != "none":
        logger.warning("ocr_provider_unknown", extra={"provider": cfg.ocr_provider})
    return None


def resolve_services(cfg: Settings | None = None) -> ServiceRegistry:
    cfg = cfg or Settings()
    registry = ServiceRegistry(text_analysis=_resolve_analysis(cfg), ocr=_resolve_ocr(cfg))

    if registry.text_analysis is None:
        logger.warning("text_analysis_service_absent")
    if registry.ocr is None:
        logger.warning("ocr_service_absent")
    logger.info(
        "services_resolved",
        extra={"analysis_provider": cfg.analysis_provider, "ocr_provider": cfg.ocr_provider},
    )
    return registry
