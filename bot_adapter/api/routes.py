from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from bot_adapter import adapter
from bot_adapter.adapter import OperationOptions
from bot_adapter.core.errors import FetchError, ServiceUnavailable, TimeoutExceeded
from bot_adapter.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    HealthResponse,
    OcrResponse,
    OcrUrlRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    registry = adapter.default_adapter.registry
    return HealthResponse(
        status="ok",
        analysis=registry.text_analysis is not None,
        ocr=registry.ocr is not None,
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(body: AnalyzeRequest) -> AnalyzeResponse:
    try:
        result = await adapter.analyze_text_normalized(body.text)
    except ServiceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except TimeoutExceeded as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    return AnalyzeResponse(result=result)


@router.post("/ocr", response_model=OcrResponse)
async def ocr_from_url(body: OcrUrlRequest) -> OcrResponse:
    try:
        text = await adapter.ocr_from_image_url_or_buffer(str(body.url), OperationOptions(mode=body.mode))
    except ServiceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except FetchError as exc:
        logger.warning("ocr_fetch_failed", extra={"url": str(body.url), "error": str(exc)})
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return OcrResponse(text=text)


@router.post("/ocr/upload", response_model=OcrResponse)
async def ocr_from_upload(file: UploadFile = File(...)) -> OcrResponse:
    content_type = file.content_type or ""
    if content_type and not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail=f"Unsupported content_type={content_type!r}")

    image_bytes = await file.read()
    if not image_bytes:
        raise HTTPException(status_code=400, detail="Empty upload")

    try:
        text = await adapter.ocr_from_image_url_or_buffer(image_bytes)
    except ServiceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    logger.info("image_uploaded", extra={"upload_filename": file.filename, "bytes": len(image_bytes)})
    return OcrResponse(text=text)
