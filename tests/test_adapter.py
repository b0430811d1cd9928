"""Facade tests — stub services, no network."""
from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from bot_adapter import adapter as adapter_module
from bot_adapter.adapter import BotAdapter, OperationOptions
from bot_adapter.core.errors import FetchError, ServiceUnavailable, TimeoutExceeded
from bot_adapter.fetch.fetcher import BufferedResource, fetch_to_buffer_or_file
from bot_adapter.services.base import ImagePayload, OCRFailure, OCRSuccess
from bot_adapter.services.mock import MockTextAnalysisService
from bot_adapter.services.registry import ServiceRegistry

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _analysis_service(result=None) -> MagicMock:
    service = MagicMock()
    service.analyze_content = AsyncMock(return_value=result)
    return service


def _ocr_service(result) -> MagicMock:
    service = MagicMock()
    service.extract_text_from_image = AsyncMock(return_value=result)
    return service


def _adapter(analysis=None, ocr=None, fetch=fetch_to_buffer_or_file) -> BotAdapter:
    registry = ServiceRegistry(
        text_analysis=(lambda: analysis) if analysis is not None else None,
        ocr=(lambda: ocr) if ocr is not None else None,
    )
    return BotAdapter(registry, fetch=fetch)


async def _hang(*args, **kwargs):
    await asyncio.Event().wait()


# ---------------------------------------------------------------------------
# analyze_text
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_analyze_passes_text_and_kind() -> None:
    service = _analysis_service({"summary": "hi"})
    result = await _adapter(analysis=service).analyze_text("hello there")

    service.analyze_content.assert_awaited_once_with("hello there", "text")
    assert result == {"summary": "hi"}


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [None, 42, b"bytes", ["list"]])
async def test_analyze_coerces_non_string_to_empty(value) -> None:
    service = _analysis_service("ok")
    assert await _adapter(analysis=service).analyze_text(value) == "ok"
    service.analyze_content.assert_awaited_once_with("", "text")


@pytest.mark.asyncio
async def test_analyze_returns_service_result_unchanged() -> None:
    sentinel = object()
    service = _analysis_service(sentinel)
    assert await _adapter(analysis=service).analyze_text("x") is sentinel


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["hello", "", None])
async def test_analyze_without_service_raises_service_unavailable(value) -> None:
    with pytest.raises(ServiceUnavailable, match="Text analysis"):
        await _adapter(ocr=_ocr_service(None)).analyze_text(value)


@pytest.mark.asyncio
async def test_analyze_is_idempotent_with_deterministic_service() -> None:
    facade = _adapter(analysis=MockTextAnalysisService())
    first = await facade.analyze_text("same input twice")
    second = await facade.analyze_text("same input twice")
    assert first == second


@pytest.mark.asyncio
async def test_analyze_timeout_propagates(monkeypatch) -> None:
    monkeypatch.setenv("BOT_OPERATION_TIMEOUT_MS", "20")
    service = MagicMock()
    service.analyze_content = _hang

    with pytest.raises(TimeoutExceeded) as info:
        await _adapter(analysis=service).analyze_text("slow")
    assert info.value.timeout_ms == 20


@pytest.mark.asyncio
async def test_analyze_service_error_propagates() -> None:
    service = MagicMock()
    service.analyze_content = AsyncMock(side_effect=RuntimeError("quota exhausted"))

    with pytest.raises(RuntimeError, match="quota exhausted"):
        await _adapter(analysis=service).analyze_text("x")


@pytest.mark.asyncio
async def test_analyze_accepts_options_bag() -> None:
    service = _analysis_service("ok")
    facade = _adapter(analysis=service)
    assert await facade.analyze_text("x", {"timeout_ms": 5, "anything": True}) == "ok"


# ---------------------------------------------------------------------------
# ocr_image — result normalization
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ocr_success_returns_text() -> None:
    service = _ocr_service({"success": True, "text": "hello"})
    assert await _adapter(ocr=service).ocr_image(PNG_BYTES) == "hello"


@pytest.mark.asyncio
async def test_ocr_tagged_success_returns_text() -> None:
    service = _ocr_service(OCRSuccess("line one\nline two"))
    assert await _adapter(ocr=service).ocr_image(PNG_BYTES) == "line one\nline two"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result",
    [
        {"success": False},
        {"success": True, "text": 42},
        {"success": True},
        None,
        "hello",
        OCRFailure("engine offline"),
    ],
)
async def test_ocr_failure_or_malformed_returns_empty(result) -> None:
    service = _ocr_service(result)
    assert await _adapter(ocr=service).ocr_image(PNG_BYTES) == ""


@pytest.mark.asyncio
async def test_ocr_malformed_result_is_logged(caplog) -> None:
    service = _ocr_service({"success": True, "text": 42})

    with caplog.at_level(logging.WARNING, logger="bot_adapter.adapter"):
        assert await _adapter(ocr=service).ocr_image(PNG_BYTES) == ""

    records = [r for r in caplog.records if r.getMessage() == "ocr_malformed_result"]
    assert len(records) == 1
    assert "unexpected result" in records[0].error


@pytest.mark.asyncio
async def test_ocr_service_exception_returns_empty() -> None:
    service = MagicMock()
    service.extract_text_from_image = AsyncMock(side_effect=RuntimeError("engine crashed"))
    assert await _adapter(ocr=service).ocr_image(PNG_BYTES) == ""


@pytest.mark.asyncio
async def test_ocr_service_timeout_returns_empty(monkeypatch) -> None:
    monkeypatch.setenv("BOT_OPERATION_TIMEOUT_MS", "20")
    service = MagicMock()
    service.extract_text_from_image = _hang
    assert await _adapter(ocr=service).ocr_image(PNG_BYTES) == ""


@pytest.mark.asyncio
async def test_ocr_without_service_raises_service_unavailable() -> None:
    with pytest.raises(ServiceUnavailable, match="OCR"):
        await _adapter(analysis=_analysis_service()).ocr_image(PNG_BYTES)


# ---------------------------------------------------------------------------
# ocr_image — payload preparation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ocr_payload_carries_bytes_and_content_type() -> None:
    service = _ocr_service({"success": True, "text": "ok"})
    await _adapter(ocr=service).ocr_image(PNG_BYTES)

    (payload,), _ = service.extract_text_from_image.await_args
    assert isinstance(payload, ImagePayload)
    assert payload.data == PNG_BYTES
    assert payload.content_type == "image/png"


@pytest.mark.asyncio
async def test_ocr_payload_defaults_content_type() -> None:
    service = _ocr_service({"success": True, "text": "ok"})
    await _adapter(ocr=service).ocr_image(b"unrecognized bytes")

    (payload,), _ = service.extract_text_from_image.await_args
    assert payload.content_type == "application/octet-stream"


@pytest.mark.asyncio
async def test_ocr_default_mode_is_buffer() -> None:
    fetch = AsyncMock(return_value=BufferedResource(data=PNG_BYTES, content_type="image/png"))
    service = _ocr_service({"success": True, "text": "ok"})

    await _adapter(ocr=service, fetch=fetch).ocr_image("https://files.example/a.png")

    fetch.assert_awaited_once()
    assert fetch.await_args.kwargs["mode"].value == "buffer"


@pytest.mark.asyncio
async def test_ocr_file_mode_reads_and_removes_temp_file() -> None:
    fetched = []

    async def recording_fetch(source, *, mode):
        result = await fetch_to_buffer_or_file(source, mode=mode)
        fetched.append(result)
        return result

    service = _ocr_service({"success": True, "text": "from file"})
    facade = _adapter(ocr=service, fetch=recording_fetch)

    assert await facade.ocr_image(PNG_BYTES, OperationOptions(mode="file")) == "from file"

    (payload,), _ = service.extract_text_from_image.await_args
    assert payload.data == PNG_BYTES
    assert not fetched[0].path.exists()


# ---------------------------------------------------------------------------
# ocr_image — fetch failures propagate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ocr_fetch_failure_raises_fetch_error() -> None:
    fetch = AsyncMock(side_effect=FetchError("GET failed", source="https://down.example/a.png"))
    service = _ocr_service({"success": True, "text": "never"})

    with pytest.raises(FetchError):
        await _adapter(ocr=service, fetch=fetch).ocr_image("https://down.example/a.png")
    service.extract_text_from_image.assert_not_awaited()


@pytest.mark.asyncio
async def test_ocr_unsupported_source_raises_fetch_error() -> None:
    service = _ocr_service({"success": True, "text": "never"})
    with pytest.raises(FetchError):
        await _adapter(ocr=service).ocr_image("ftp://files.example/a.png")


@pytest.mark.asyncio
async def test_ocr_malformed_url_raises_fetch_error() -> None:
    service = _ocr_service({"success": True, "text": "never"})
    with pytest.raises(FetchError, match="Malformed URL"):
        await _adapter(ocr=service).ocr_image("http://[::1/x.png")
    service.extract_text_from_image.assert_not_awaited()


@pytest.mark.asyncio
async def test_ocr_fetch_timeout_raises_fetch_error(monkeypatch) -> None:
    monkeypatch.setenv("BOT_OPERATION_TIMEOUT_MS", "20")
    service = _ocr_service({"success": True, "text": "never"})

    with pytest.raises(FetchError, match="timed out"):
        await _adapter(ocr=service, fetch=_hang).ocr_image("https://slow.example/a.png")


# ---------------------------------------------------------------------------
# Concurrency and module-level surface
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_concurrent_ocr_calls_are_independent() -> None:
    class EchoOCR:
        async def extract_text_from_image(self, blob: ImagePayload):
            await asyncio.sleep(0)
            return OCRSuccess(blob.data.decode())

    registry = ServiceRegistry(ocr=EchoOCR)
    facade = BotAdapter(registry)

    results = await asyncio.gather(facade.ocr_image(b"first"), facade.ocr_image(b"second"))
    assert results == ["first", "second"]


@pytest.mark.asyncio
async def test_module_functions_use_default_adapter(monkeypatch) -> None:
    analysis = _analysis_service("analysed")
    ocr = _ocr_service({"success": True, "text": "read"})
    monkeypatch.setattr(adapter_module, "default_adapter", _adapter(analysis=analysis, ocr=ocr))

    assert await adapter_module.analyze_text_normalized("hi") == "analysed"
    assert await adapter_module.ocr_from_image_url_or_buffer(PNG_BYTES) == "read"
