"""Standalone STT service — the default backend for the Willow bridge.

Accepts a PCM WAVE container, transcribes it with faster-whisper, returns text.
Run it on the GPU host and point STT_SERVICE_URL at its /transcribe route.
"""

import asyncio
import logging
import os
import time

import uvicorn
from fastapi import FastAPI, HTTPException, Request

from willow_bridge.stt import transcribe_container
from willow_bridge.wav import HEADER_SIZE, ContainerFormatError, parse_header

log = logging.getLogger("stt-service")

PORT = int(os.environ.get("STT_SERVICE_PORT", "8200"))

app = FastAPI()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/transcribe")
async def transcribe(request: Request):
    """Transcribe a WAVE container to text.

    Body:
        44-byte PCM WAVE header followed by the samples (audio/wav)

    Returns:
        JSON: { "text": "...", "duration_s": 4.56 }
    """
    container = await request.body()
    try:
        descriptor = parse_header(container)
    except ContainerFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    received = len(container) - HEADER_SIZE
    if received != descriptor.payload_length:
        raise HTTPException(
            status_code=400,
            detail=f"Header declares {descriptor.payload_length} data bytes, received {received}",
        )

    if not descriptor.payload_length:
        return {"text": "", "duration_s": 0.0}

    duration_s = descriptor.duration_seconds
    log.info("Received %.2fs audio (%d bytes, %dHz, %d ch, %d bit)",
             duration_s, descriptor.payload_length, descriptor.sample_rate,
             descriptor.channels, descriptor.bits_per_sample)

    start = time.time()
    loop = asyncio.get_running_loop()
    text = await loop.run_in_executor(None, transcribe_container, container)
    elapsed = time.time() - start

    log.info("Transcribed in %.2fs → %r", elapsed, text[:100])

    return {"text": text, "duration_s": round(duration_s, 2)}


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)-14s %(levelname)-5s %(message)s",
    )
    log.info("Starting STT service on port %d", PORT)
    uvicorn.run(app, host="0.0.0.0", port=PORT)
