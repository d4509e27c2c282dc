"""Canonical 44-byte RIFF/WAVE header for 16-bit PCM.

The recorder streams PCM straight to disk, so the header is written twice:
first as a zero placeholder before any sample, then patched with the real
sizes once the payload has been flushed.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

WAV_HEADER_SIZE = 44
PCM_FORMAT = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_MAX_DATA_LENGTH = 0xFFFFFFFF - (WAV_HEADER_SIZE - 8)


@dataclass(frozen=True, slots=True)
class WavHeader:
    sample_rate: int
    channels: int
    bits_per_sample: int
    data_length: int

    @property
    def riff_size(self) -> int:
        return self.data_length + WAV_HEADER_SIZE - 8

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align


def build_header(
    data_length: int,
    sample_rate: int,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    header = WavHeader(sample_rate, channels, bits_per_sample, data_length)
    if header.block_align <= 0:
        raise ValueError(f"Unsupported PCM layout: {channels} channel(s) x {bits_per_sample} bits")
    if data_length < 0 or data_length > _MAX_DATA_LENGTH:
        raise ValueError(f"PCM payload of {data_length} bytes does not fit a WAV container")
    if data_length % header.block_align:
        raise ValueError(f"PCM payload of {data_length} bytes is not frame aligned")
    return _HEADER.pack(
        b"RIFF",
        header.riff_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        channels,
        sample_rate,
        header.byte_rate,
        header.block_align,
        bits_per_sample,
        b"data",
        data_length,
    )


def write_placeholder(fh: BinaryIO) -> None:
    fh.write(bytes(WAV_HEADER_SIZE))


def patch_header(
    fh: BinaryIO,
    data_length: int,
    sample_rate: int,
    channels: int = 1,
    bits_per_sample: int = 16,
) -> None:
    fh.flush()
    fh.seek(0)
    fh.write(build_header(data_length, sample_rate, channels, bits_per_sample))
    fh.seek(0, 2)
    fh.flush()


def read_header(data: bytes) -> WavHeader:
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError("Truncated WAV header")
    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_id,
        data_length,
    ) = _HEADER.unpack_from(data)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise ValueError("Not a canonical RIFF/WAVE header")
    if fmt_size != 16 or audio_format != PCM_FORMAT:
        raise ValueError("Only uncompressed PCM is supported")
    header = WavHeader(sample_rate, channels, bits_per_sample, data_length)
    if riff_size != header.riff_size or byte_rate != header.byte_rate or block_align != header.block_align:
        raise ValueError("Inconsistent WAV header sizes")
    return header


__all__ = ["WAV_HEADER_SIZE", "WavHeader", "build_header", "patch_header", "read_header", "write_placeholder"]
