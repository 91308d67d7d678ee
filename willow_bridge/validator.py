"""Inbound header checks for Willow audio uploads.

Gates run in a fixed order and the first failure wins:

1. the user agent identifies a Willow device
2. every x-audio-* transport header is present
3. the codec is linear PCM

Only then are the header strings parsed into an AudioDescriptor.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from willow_bridge.types import AudioDescriptor
from willow_bridge.wav import HEADER_SIZE

DEVICE_MARKER = "Willow"
PCM_MARKER = "pcm"

REQUIRED_HEADERS = (
    "x-audio-channel",
    "x-audio-sample-rate",
    "x-audio-bits",
    "x-audio-codec",
)

MAX_U16 = 0xFFFF
MAX_U32 = 0xFFFFFFFF


class Rejection(enum.Enum):
    INVALID_ORIGIN = "invalid_origin"
    MISSING_FIELD = "missing_field"
    UNSUPPORTED_CODEC = "unsupported_codec"
    INVALID_FIELD = "invalid_field"

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def status_code(self) -> int:
        return 400


_MESSAGES = {
    Rejection.INVALID_ORIGIN: "Bad user-agent received (not Willow).",
    Rejection.MISSING_FIELD: "Bad header data received.",
    Rejection.UNSUPPORTED_CODEC: "Only PCM codec accepted.",
    Rejection.INVALID_FIELD: "Bad header data received.",
}


@dataclass(frozen=True)
class Valid:
    descriptor: AudioDescriptor


@dataclass(frozen=True)
class Rejected:
    reason: Rejection

    @property
    def message(self) -> str:
        return self.reason.message

    @property
    def status_code(self) -> int:
        return self.reason.status_code


ValidationResult = Union[Valid, Rejected]


def validate(metadata: Mapping[str, str]) -> ValidationResult:
    headers = {key.lower(): value for key, value in metadata.items()}

    if DEVICE_MARKER not in headers.get("user-agent", ""):
        return Rejected(Rejection.INVALID_ORIGIN)

    if any(name not in headers for name in REQUIRED_HEADERS):
        return Rejected(Rejection.MISSING_FIELD)

    if PCM_MARKER not in headers["x-audio-codec"]:
        return Rejected(Rejection.UNSUPPORTED_CODEC)

    descriptor = parse_descriptor(headers)
    if descriptor is None:
        return Rejected(Rejection.INVALID_FIELD)
    return Valid(descriptor)


def parse_descriptor(headers: Mapping[str, str]) -> Optional[AudioDescriptor]:
    """Turn transport header text into a typed descriptor, or None if any value is unusable."""
    channels = _parse_int(headers.get("x-audio-channel"), 1, MAX_U16)
    sample_rate = _parse_int(headers.get("x-audio-sample-rate"), 1, MAX_U32)
    bits = _parse_int(headers.get("x-audio-bits"), 8, MAX_U16)
    # RIFF chunk size (36 + length) must still fit in 32 bits
    payload_length = _parse_int(headers.get("content-length"), 0, MAX_U32 - HEADER_SIZE)

    if None in (channels, sample_rate, bits, payload_length):
        return None
    if bits % 8:
        return None

    descriptor = AudioDescriptor(
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits,
        payload_length=payload_length,
    )
    if descriptor.byte_rate > MAX_U32 or descriptor.block_align > MAX_U16:
        return None
    return descriptor


def _parse_int(value: Optional[str], low: int, high: int) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    number = int(value)
    if not low <= number <= high:
        return None
    return number
