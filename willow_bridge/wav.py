"""RIFF/WAVE framing for raw linear PCM.

The header is the canonical 44-byte layout: a RIFF chunk wrapping one
16-byte ``fmt `` chunk (audio format 1) and one ``data`` chunk. All
integers are little-endian.
"""

from __future__ import annotations

import struct

from willow_bridge.errors import InternalConsistencyError
from willow_bridge.types import AudioDescriptor, ContainerHeader

HEADER_SIZE = 44
FMT_CHUNK_SIZE = 16
PCM_FORMAT = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")

_U16 = 0xFFFF
_U32 = 0xFFFFFFFF


class ContainerFormatError(ValueError):
    """Bytes do not start with a canonical PCM WAVE header."""


def synthesize(channels: int, sample_rate: int, bits_per_sample: int,
               payload_length: int) -> ContainerHeader:
    """Build the 44-byte WAVE header for a PCM payload.

    No range checking happens here. Values too wide for their slot wrap
    the way a little-endian typed view would store them.
    """
    descriptor = AudioDescriptor(
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits_per_sample,
        payload_length=payload_length,
    )
    data = _HEADER.pack(
        b"RIFF",
        descriptor.riff_chunk_size & _U32,
        b"WAVE",
        b"fmt ",
        FMT_CHUNK_SIZE,
        PCM_FORMAT,
        channels & _U16,
        sample_rate & _U32,
        descriptor.byte_rate & _U32,
        descriptor.block_align & _U16,
        bits_per_sample & _U16,
        b"data",
        descriptor.data_chunk_size & _U32,
    )
    return ContainerHeader(descriptor=descriptor, data=data)


def header_for(descriptor: AudioDescriptor) -> ContainerHeader:
    return synthesize(
        descriptor.channels,
        descriptor.sample_rate,
        descriptor.bits_per_sample,
        descriptor.payload_length,
    )


def assemble(header: ContainerHeader, payload: bytes) -> bytes:
    """Concatenate header and payload into one WAVE container.

    Raises InternalConsistencyError when the payload length differs from
    the data chunk size written in the header.
    """
    declared = header.descriptor.data_chunk_size
    if len(payload) != declared:
        raise InternalConsistencyError(
            f"Payload length {len(payload)} does not match declared data size {declared}."
        )
    return header.data + bytes(payload)


def parse_header(data: bytes) -> AudioDescriptor:
    """Read the descriptor back out of a canonical 44-byte header."""
    if len(data) < HEADER_SIZE:
        raise ContainerFormatError(f"Need {HEADER_SIZE} header bytes, got {len(data)}")

    (riff, riff_size, wave, fmt, fmt_size, audio_format, channels, sample_rate,
     byte_rate, block_align, bits, data_tag, data_size) = _HEADER.unpack_from(data)

    if riff != b"RIFF" or wave != b"WAVE":
        raise ContainerFormatError("Not a RIFF/WAVE container")
    if fmt != b"fmt " or fmt_size != FMT_CHUNK_SIZE:
        raise ContainerFormatError("Unexpected fmt chunk")
    if audio_format != PCM_FORMAT:
        raise ContainerFormatError(f"Unsupported audio format {audio_format}")
    if data_tag != b"data":
        raise ContainerFormatError("Missing data chunk")

    return AudioDescriptor(
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits,
        payload_length=data_size,
    )
