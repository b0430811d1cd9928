"""PaddleOCR (local) and AWS Textract (cloud) OCR services."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from bot_adapter.core.config import settings
from bot_adapter.services.base import ImagePayload, OCRFailure, OCROutcome, OCRService, OCRSuccess

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# PaddleOCRService — local inference
# ---------------------------------------------------------------------------

class PaddleOCRService(OCRService):
    """OCR backed by PaddleOCR (runs locally, no cloud calls).

    Install dependency:
        pip install "bot-adapter[paddle]"

    Config (via .env):
        OCR_PROVIDER=paddleocr
        PADDLE_LANG=en
        PADDLE_USE_GPU=false
    """

    # Model load is expensive; share one instance per (lang, gpu) across calls.
    # Built and used from executor threads: construction under _build_lock, inference under the per-engine lock.
    _engines: dict[tuple[str, bool], Any] = {}
    _engine_locks: dict[tuple[str, bool], threading.Lock] = {}
    _build_lock = threading.Lock()

    def __init__(self, lang: str | None = None, use_gpu: bool | None = None) -> None:
        self._lang = lang or settings.paddle_lang
        self._use_gpu = settings.paddle_use_gpu if use_gpu is None else use_gpu

    def _get_engine(self):
        key = (self._lang, self._use_gpu)
        with self._build_lock:
            if key not in self._engines:
                try:
                    from paddleocr import PaddleOCR  # type: ignore[import]
                except ModuleNotFoundError as exc:
                    raise RuntimeError(
                        "PaddleOCR is not installed. Run: pip install paddlepaddle paddleocr"
                    ) from exc
                self._engines[key] = PaddleOCR(
                    use_angle_cls=True,
                    lang=self._lang,
                    use_gpu=self._use_gpu,
                    show_log=False,
                )
                self._engine_locks[key] = threading.Lock()
            return self._engines[key], self._engine_locks[key]

    async def extract_text_from_image(self, blob: ImagePayload) -> OCROutcome:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._run, blob.data)

    def _run(self, image_bytes: bytes) -> OCROutcome:
        import io

        import numpy as np  # type: ignore[import]
        from PIL import Image, UnidentifiedImageError  # type: ignore[import]

        try:
            img = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        except UnidentifiedImageError as exc:
            logger.warning("paddleocr_undecodable_image", extra={"error": str(exc)})
            return OCRFailure("undecodable image")

        engine, engine_lock = self._get_engine()
        with engine_lock:
            result = engine.ocr(np.array(img), cls=True)

        lines: list[str] = []
        if result and result[0]:
            for line in result[0]:
                # Each line: [bounding_box, [text, confidence]]
                text, _conf = line[1]
                lines.append(text)

        logger.info("paddleocr_complete", extra={"lines": len(lines)})
        return OCRSuccess("\n".join(lines))


# ---------------------------------------------------------------------------
# TextractOCRService — AWS Textract
# ---------------------------------------------------------------------------

class TextractOCRService(OCRService):
    """OCR backed by AWS Textract ``DetectDocumentText``.

    Config (via .env):
        OCR_PROVIDER=aws_textract
        AWS_REGION=us-east-1
        AWS_ACCESS_KEY_ID=...      (or use IAM role)
        AWS_SECRET_ACCESS_KEY=...
    """

    def __init__(
        self,
        region: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
    ) -> None:
        self._region = region or settings.aws_region
        self._access_key = aws_access_key_id or settings.aws_access_key_id
        self._secret_key = aws_secret_access_key or settings.aws_secret_access_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                import boto3  # type: ignore[import]
            except ModuleNotFoundError as exc:
                raise RuntimeError("boto3 is not installed. Run: pip install boto3") from exc
            kwargs: dict = {"region_name": self._region}
            if self._access_key:
                kwargs["aws_access_key_id"] = self._access_key
                kwargs["aws_secret_access_key"] = self._secret_key
            self._client = boto3.client("textract", **kwargs)
        return self._client

    async def extract_text_from_image(self, blob: ImagePayload) -> OCROutcome:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._call_textract, blob.data)

    def _call_textract(self, image_bytes: bytes) -> OCROutcome:
        client = self._get_client()
        try:
            response = client.detect_document_text(Document={"Bytes": image_bytes})
        except client.exceptions.UnsupportedDocumentException as exc:
            logger.warning("textract_unsupported_document", extra={"error": str(exc)})
            return OCRFailure("unsupported document")

        lines = [
            block.get("Text", "")
            for block in response.get("Blocks", [])
            if block.get("BlockType") == "LINE"
        ]

        logger.info("textract_complete", extra={"lines": len(lines)})
        return OCRSuccess("\n".join(lines))
