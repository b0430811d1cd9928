"""Shared pytest configuration and fixtures for the adapter tests."""
from __future__ import annotations

import os

# Provide env vars before any bot_adapter module is imported
os.environ.setdefault("ANALYSIS_PROVIDER", "mock")
os.environ.setdefault("OCR_PROVIDER", "mock")
os.environ.setdefault("BOT_OPERATION_TIMEOUT_MS", "2000")
