import struct

import pytest
from fastapi.testclient import TestClient

from willow_bridge import server, stt
from willow_bridge.errors import RecognizerError
from willow_bridge.types import AudioDescriptor
from willow_bridge.validator import Valid


@pytest.fixture
def client(stub_recognizer):
    server.app.dependency_overrides[server.get_recognizer] = lambda: stub_recognizer
    yield TestClient(server.app)
    server.app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_upload_is_framed_and_transcribed(client, stub_recognizer, willow_headers):
    resp = client.post("/api/willow", content=b"\x01\x02\x03\x04", headers=willow_headers)

    assert resp.status_code == 200
    assert resp.json() == {"language": "en", "text": "hello"}

    (container,) = stub_recognizer.calls
    assert len(container) == 48
    riff_size, = struct.unpack_from("<I", container, 4)
    byte_rate, block_align = struct.unpack_from("<IH", container, 28)
    data_size, = struct.unpack_from("<I", container, 40)
    assert (riff_size, byte_rate, block_align, data_size) == (40, 32000, 2, 4)
    assert container[44:] == b"\x01\x02\x03\x04"


def test_missing_codec_header_is_rejected(client, stub_recognizer, willow_headers):
    del willow_headers["x-audio-codec"]
    resp = client.post("/api/willow", content=b"\x00" * 4, headers=willow_headers)

    assert resp.status_code == 400
    assert "Bad header data received." in resp.text
    assert resp.text == "Error processing the file. - Bad header data received."
    assert resp.headers["content-type"].startswith("text/plain")
    assert stub_recognizer.calls == []


def test_non_willow_client_is_rejected(client, willow_headers):
    willow_headers["user-agent"] = "python-httpx"
    resp = client.post("/api/willow", content=b"\x00" * 4, headers=willow_headers)

    assert resp.status_code == 400
    assert resp.text == "Error processing the file. - Bad user-agent received (not Willow)."


def test_opus_upload_is_rejected(client, stub_recognizer, willow_headers):
    willow_headers["x-audio-codec"] = "opus"
    resp = client.post("/api/willow", content=b"\x00" * 4, headers=willow_headers)

    assert resp.status_code == 400
    assert resp.text.endswith("Only PCM codec accepted.")
    assert stub_recognizer.calls == []


def test_backend_failure_carries_backend_message(willow_headers):
    async def failing(container):
        raise RecognizerError("STT backend returned 503: warming up")

    server.app.dependency_overrides[server.get_recognizer] = lambda: failing
    try:
        resp = TestClient(server.app).post("/api/willow", content=b"\x00" * 4, headers=willow_headers)
    finally:
        server.app.dependency_overrides.clear()

    assert resp.status_code == 502
    assert resp.text == "Error processing the file. - STT backend returned 503: warming up"


def test_declared_length_mismatch_is_internal_error(client, stub_recognizer, willow_headers, monkeypatch):
    descriptor = AudioDescriptor(channels=1, sample_rate=16000, bits_per_sample=16, payload_length=8)
    monkeypatch.setattr(server, "validate", lambda headers: Valid(descriptor))

    resp = client.post("/api/willow", content=b"\x00" * 4, headers=willow_headers)

    assert resp.status_code == 500
    assert resp.text.startswith("Error processing the file. - Payload length 4")
    assert stub_recognizer.calls == []


def test_empty_upload_still_produces_header_only_container(client, stub_recognizer, willow_headers):
    willow_headers["content-length"] = "0"
    resp = client.post("/api/willow", content=b"", headers=willow_headers)

    assert resp.status_code == 200
    (container,) = stub_recognizer.calls
    assert len(container) == 44


def test_unknown_backend_uses_error_contract(willow_headers, monkeypatch):
    monkeypatch.setattr(stt, "STT_BACKEND", "deepgram")

    resp = TestClient(server.app).post("/api/willow", content=b"\x00" * 4, headers=willow_headers)

    assert resp.status_code == 500
    assert resp.text == "Error processing the file. - Unknown STT backend: 'deepgram'"
