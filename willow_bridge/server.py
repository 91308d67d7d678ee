"""Willow bridge server: raw PCM from Willow devices in, transcription out.

Accepts the PCM stream a Willow device uploads to ``/api/willow``, frames it
as a WAVE container from the x-audio-* headers and forwards it to the
configured STT backend.
"""

import logging
import os

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from willow_bridge.errors import BridgeError, ConfigurationError
from willow_bridge.stt import Recognizer, build_recognizer, transcribe
from willow_bridge.validator import Rejected, validate
from willow_bridge.wav import assemble, header_for

log = logging.getLogger("willow-bridge")

HOST = os.environ.get("WILLOW_HOST", "0.0.0.0")
PORT = int(os.environ.get("WILLOW_PORT", "8080"))
ERROR_PREFIX = "Error processing the file. - "

app = FastAPI()


def get_recognizer() -> Recognizer:
    try:
        return build_recognizer()
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _error_response(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(ERROR_PREFIX + message, status_code=status_code)


@app.exception_handler(BridgeError)
async def bridge_error_handler(request: Request, exc: BridgeError):
    log.error("Request failed (%d): %s", exc.status_code, exc.message)
    return _error_response(exc.message, exc.status_code)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/willow")
async def willow(request: Request, recognizer: Recognizer = Depends(get_recognizer)):
    """Transcribe one Willow upload.

    Headers:
        User-Agent: must contain "Willow"
        x-audio-channel, x-audio-sample-rate, x-audio-bits: integers
        x-audio-codec: must contain "pcm"
        Content-Length: payload size in bytes

    Body:
        Raw PCM samples

    Returns:
        JSON: { "language": "en", "text": "..." }
    """
    result = validate(request.headers)
    if isinstance(result, Rejected):
        log.warning("Rejected upload (%s): %s", result.reason.name, result.message)
        return _error_response(result.message, result.status_code)

    descriptor = result.descriptor
    log.info("Upload: %d ch, %d Hz, %d bit, %d bytes (%.2fs)",
             descriptor.channels, descriptor.sample_rate, descriptor.bits_per_sample,
             descriptor.payload_length, descriptor.duration_seconds)

    payload = await request.body()
    try:
        container = assemble(header_for(descriptor), payload)
        transcription = await transcribe(container, recognizer)
    except BridgeError as exc:
        log.error("Upload failed (%d): %s", exc.status_code, exc.message)
        return _error_response(exc.message, exc.status_code)

    return JSONResponse(transcription.to_dict())


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)-14s %(levelname)-5s %(message)s",
    )
    log.info("Willow bridge starting on %s:%d", HOST, PORT)
    uvicorn.run(app, host=HOST, port=PORT)
    log.info("Willow bridge stopped")
