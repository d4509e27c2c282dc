"""HTTP client for the VibeVoice ASR server.

Uploads a finished WAV recording as multipart/form-data and reads back a
server-sent-event stream whose ``data:`` lines carry fragments of a JSON
segment array.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

import httpx

from ..config import CONFIG
from ..errors import (
    ParseError,
    RequestTimeout,
    ServerError,
    TranscriptionCancelled,
    TranscriptionError,
    TransportError,
)
from ..store.settings_store import AppSettings
from .transcript import TranscriptionResult, parse_transcription_json

LOGGER = logging.getLogger("vibevoice.client")

DATA_PREFIX = "data: "
DONE_EVENT = "event: done"

PartialCallback = Callable[[str], None]


def iter_sse_lines(response: httpx.Response) -> Iterator[str]:
    """Lazily yield body lines up to ``event: done`` or end of stream.

    The iterator consumes the response, so it can be walked only once.
    """
    for line in response.iter_lines():
        if line.startswith(DONE_EVENT):
            return
        yield line


def extract_text_field(payload: str) -> Optional[str]:
    """Return the ``text`` member of one SSE data payload, or None if unusable."""
    try:
        obj = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        LOGGER.warning("Failed to parse SSE chunk %r: %s", payload[:200], exc)
        return None
    text = obj.get("text") if isinstance(obj, dict) else None
    if not isinstance(text, str):
        LOGGER.warning("SSE chunk without a text field: %r", payload[:200])
        return None
    return text


class TranscriptionClient:
    def __init__(
        self,
        server_url: str,
        auth_token: str,
        *,
        verify: Union[bool, str] = True,
        timeout: Optional[httpx.Timeout] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.server_url = server_url.strip().rstrip("/")
        self.auth_token = auth_token.strip()
        self.transcribe_url = f"{self.server_url}/v1/transcribe"
        self.health_url = f"{self.server_url}/health"
        self.timeout = timeout or httpx.Timeout(CONFIG.read_timeout, connect=CONFIG.connect_timeout)
        self._client = client or httpx.Client(timeout=self.timeout, verify=verify)

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs) -> Optional["TranscriptionClient"]:
        """Build a client from user settings, or None if they are incomplete."""
        if not settings.is_configured():
            return None
        kwargs.setdefault("verify", settings.tls_policy())
        return cls(settings.server_url, settings.auth_token, **kwargs)

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.auth_token}", "Accept": "text/event-stream"}

    def transcribe(
        self,
        audio_path: Union[str, Path],
        on_partial: Optional[PartialCallback] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> TranscriptionResult:
        """Upload one recording and block until its transcript is complete."""
        audio_path = Path(audio_path)
        try:
            with audio_path.open("rb") as fh:
                files = {"audio": (audio_path.name, fh, "audio/wav")}
                with self._client.stream(
                    "POST",
                    self.transcribe_url,
                    headers=self._headers(),
                    files=files,
                    timeout=self.timeout,
                ) as response:
                    if response.status_code != 200:
                        raise ServerError(response.status_code, self._error_body(response))
                    raw = self._read_stream(response, on_partial, is_current)
        except httpx.TimeoutException as exc:
            raise RequestTimeout(f"Request timed out: {exc}") from exc
        except httpx.DecodingError as exc:
            raise ParseError(f"Undecodable response body: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Cannot reach {self.server_url}: {exc}") from exc
        except OSError as exc:
            raise TranscriptionError(f"Cannot read recording {audio_path}: {exc}") from exc
        return parse_transcription_json(raw)

    def _read_stream(
        self,
        response: httpx.Response,
        on_partial: Optional[PartialCallback],
        is_current: Optional[Callable[[], bool]],
    ) -> str:
        accumulated: list[str] = []
        for line in iter_sse_lines(response):
            if is_current is not None and not is_current():
                raise TranscriptionCancelled("Session superseded while streaming")
            if not line.startswith(DATA_PREFIX):
                continue
            text = extract_text_field(line[len(DATA_PREFIX):])
            if text is None:
                continue
            accumulated.append(text)
            if on_partial is not None:
                on_partial("".join(accumulated))
        return "".join(accumulated)

    def _error_body(self, response: httpx.Response) -> str:
        try:
            response.read()
            return response.text
        except (httpx.HTTPError, UnicodeDecodeError) as exc:
            LOGGER.debug("Could not read error body: %s", exc)
            return ""

    def health_check(self) -> bool:
        """Quick liveness probe; every failure reads as unhealthy."""
        try:
            resp = self._client.get(self.health_url, timeout=CONFIG.health_timeout)
            return resp.status_code == 200
        except Exception as exc:
            LOGGER.warning("Health check failed: %s", exc)
            return False

    def close(self) -> None:
        self._client.close()


__all__ = ["TranscriptionClient", "extract_text_field", "iter_sse_lines"]
