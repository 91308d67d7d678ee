"""Speech-to-text backends and the gateway that calls them.

A recognizer is any coroutine function taking a complete WAVE container and
returning a mapping with at least a ``text`` key.
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from willow_bridge.errors import BackendFailure, RecognizerError
from willow_bridge.types import TranscriptionResult

log = logging.getLogger("stt")

# The backend response carries no language, so every result reports this one.
DEFAULT_LANGUAGE = "en"

STT_BACKEND = os.environ.get("WILLOW_STT_BACKEND", "http")
STT_SERVICE_URL = os.environ.get("STT_SERVICE_URL", "http://localhost:8200/transcribe")
STT_API_TOKEN = os.environ.get("STT_API_TOKEN")
STT_TIMEOUT = float(os.environ.get("STT_TIMEOUT", "120"))

MODEL_SIZE = os.environ.get("WHISPER_MODEL", "base")
MODEL_DEVICE = os.environ.get("WHISPER_DEVICE", "cpu")
MODEL_COMPUTE_TYPE = os.environ.get("WHISPER_COMPUTE_TYPE", "int8")

Recognizer = Callable[[bytes], Awaitable[Mapping[str, Any]]]

# Lazy-loaded Whisper model
_model = None


def _get_model():
    """Load the faster-whisper model on first use (auto-downloads)."""
    global _model
    if _model is not None:
        return _model

    from faster_whisper import WhisperModel

    log.info("Loading faster-whisper model: %s on %s (%s)", MODEL_SIZE, MODEL_DEVICE, MODEL_COMPUTE_TYPE)
    _model = WhisperModel(MODEL_SIZE, device=MODEL_DEVICE, compute_type=MODEL_COMPUTE_TYPE)
    log.info("Whisper model loaded: %s", MODEL_SIZE)
    return _model


def transcribe_container(container: bytes) -> str:
    """Blocking transcription of an in-memory WAVE container."""
    model = _get_model()
    segments, _info = model.transcribe(io.BytesIO(container), beam_size=5, language=DEFAULT_LANGUAGE)
    return " ".join(seg.text.strip() for seg in segments).strip()


async def whisper_recognizer(container: bytes) -> Mapping[str, Any]:
    """Run the local model in the default executor."""
    loop = asyncio.get_running_loop()
    try:
        text = await loop.run_in_executor(None, transcribe_container, container)
    except ImportError as exc:
        raise RecognizerError("faster-whisper is not installed") from exc
    except (RuntimeError, ValueError, OSError) as exc:
        raise RecognizerError(f"Local transcription failed: {exc}") from exc
    return {"text": text}


class HttpRecognizer:
    """POSTs the container to a remote transcription endpoint.

    Understands both a bare ``{"text": ...}`` body and the Workers AI
    envelope ``{"success": true, "result": {"text": ...}}``.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = STT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def __call__(self, container: bytes) -> Mapping[str, Any]:
        headers = {"Content-Type": "audio/wav"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, content=container, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RecognizerError(
                f"STT backend returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RecognizerError(f"STT backend unreachable: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise RecognizerError("STT backend returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RecognizerError("STT backend returned an unexpected payload")

        if data.get("success") is False:
            errors = data.get("errors") or []
            detail = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise RecognizerError(detail or "STT backend reported failure")
        if isinstance(data.get("result"), dict):
            return data["result"]
        return data


def build_recognizer(name: Optional[str] = None) -> Recognizer:
    name = name or STT_BACKEND
    if name == "http":
        return HttpRecognizer(STT_SERVICE_URL, token=STT_API_TOKEN)
    if name == "whisper":
        return whisper_recognizer
    raise ValueError(f"Unknown STT backend: {name!r}")


async def transcribe(container: bytes, recognizer: Recognizer) -> TranscriptionResult:
    """Send a container to the recognizer and normalize its answer.

    Raises BackendFailure when the call fails or the answer has no text.
    """
    try:
        result = await recognizer(container)
    except RecognizerError as exc:
        log.error("Recognition failed: %s", exc)
        raise BackendFailure(str(exc)) from exc
    except (httpx.HTTPError, OSError) as exc:
        log.exception("Recognizer call failed")
        raise BackendFailure(str(exc) or type(exc).__name__) from exc

    text = result.get("text") if isinstance(result, Mapping) else None
    if not isinstance(text, str):
        raise BackendFailure("Recognition backend returned no text.")

    log.info("Transcription: %r", text[:100])
    return TranscriptionResult(language=DEFAULT_LANGUAGE, text=text)
