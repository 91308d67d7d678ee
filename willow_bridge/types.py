"""Shared data types for the Willow bridge."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioDescriptor:
    """Shape of a raw PCM payload as declared by the capture device."""
    channels: int
    sample_rate: int
    bits_per_sample: int
    payload_length: int     # bytes of sample data following the header

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.channels * self.bits_per_sample // 8

    @property
    def riff_chunk_size(self) -> int:
        return 36 + self.payload_length

    @property
    def data_chunk_size(self) -> int:
        return self.payload_length

    @property
    def duration_seconds(self) -> float:
        if not self.byte_rate:
            return 0.0
        return self.payload_length / self.byte_rate


@dataclass(frozen=True)
class ContainerHeader:
    """The 44-byte WAVE header and the descriptor it was built from."""
    descriptor: AudioDescriptor
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TranscriptionResult:
    language: str
    text: str

    def to_dict(self) -> dict:
        return {"language": self.language, "text": self.text}
