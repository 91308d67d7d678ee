import pytest

WILLOW_HEADERS = {
    "user-agent": "Willow/1.0 (esp32-s3-box)",
    "x-audio-channel": "1",
    "x-audio-sample-rate": "16000",
    "x-audio-bits": "16",
    "x-audio-codec": "pcm",
}


@pytest.fixture
def willow_headers():
    """Headers a Willow device sends with a 16 kHz mono upload."""
    return dict(WILLOW_HEADERS)


@pytest.fixture
def stub_recognizer():
    """Recognizer that records the containers it receives and answers 'hello'."""
    calls: list[bytes] = []

    async def recognizer(container: bytes):
        calls.append(container)
        return {"text": "hello"}

    recognizer.calls = calls
    return recognizer
