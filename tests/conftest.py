"""Pytest configuration helpers."""

from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

import pytest  # noqa: E402

from fakes import DeferredExecutor, ManualDispatcher, RecordingOverlay  # noqa: E402


@pytest.fixture()
def dispatcher() -> ManualDispatcher:
    return ManualDispatcher()


@pytest.fixture()
def executor() -> DeferredExecutor:
    return DeferredExecutor()


@pytest.fixture()
def overlay() -> RecordingOverlay:
    return RecordingOverlay()


@pytest.fixture()
def asr_app():
    """Reference server in mock mode, accepting the token ``e2e-token``."""
    from src.api.app import create_app
    from src.api.services.transcript_service import reset_engine_cache
    from src.api.settings import APISettings, get_settings

    get_settings.cache_clear()  # type: ignore
    reset_engine_cache()
    settings = APISettings(auth_tokens=["e2e-token"], whisper_mock_transcriber=True, sse_chunk_chars=8)
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    return app
