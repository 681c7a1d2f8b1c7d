# ABOUTME: This file provides audio container utilities for wrapping raw PCM from the upstream.
# ABOUTME: Functions build and read the 44-byte RIFF/WAVE header and encode results for transport.

import base64
import struct
from dataclasses import dataclass

WAV_HEADER_SIZE = 44
WAV_HEADER_FORMAT = '<4sI4s4sIHHIIHH4sI'
PCM_AUDIO_FORMAT = 1

DEFAULT_SAMPLE_RATE = 24000
DEFAULT_NUM_CHANNELS = 1
DEFAULT_BITS_PER_SAMPLE = 16


@dataclass(frozen=True)
class WavHeader:
    chunk_size: int
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def pcm_to_wav(pcm: bytes,
               sample_rate: int = DEFAULT_SAMPLE_RATE,
               num_channels: int = DEFAULT_NUM_CHANNELS,
               bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE) -> bytes:
    """Wrap raw linear PCM bytes in a WAV container.

    The payload is copied verbatim; no resampling or validation of sample
    content is done.

    Args:
        pcm: Raw PCM bytes (little-endian)
        sample_rate: Sample rate in Hz (Gemini TTS emits 24000)
        num_channels: Number of audio channels
        bits_per_sample: Sample width in bits

    Returns:
        Complete WAV file as bytes, exactly 44 + len(pcm) long
    """
    byte_rate = sample_rate * num_channels * bits_per_sample // 8
    block_align = num_channels * bits_per_sample // 8
    data_size = len(pcm)

    wav_header = struct.pack(WAV_HEADER_FORMAT,
        b'RIFF',            # ChunkID
        36 + data_size,     # ChunkSize
        b'WAVE',            # Format
        b'fmt ',            # Subchunk1ID
        16,                 # Subchunk1Size (PCM format)
        PCM_AUDIO_FORMAT,   # AudioFormat
        num_channels,       # NumChannels
        sample_rate,        # SampleRate
        byte_rate,          # ByteRate
        block_align,        # BlockAlign
        bits_per_sample,    # BitsPerSample
        b'data',            # Subchunk2ID
        data_size           # Subchunk2Size
    )

    return wav_header + bytes(pcm)


def read_wav_header(wav: bytes) -> WavHeader:
    """Decode the fixed 44-byte header written by pcm_to_wav.

    Raises:
        ValueError: If the buffer is too short or the chunk tags don't match
    """
    if len(wav) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV buffer too short: {len(wav)} bytes")

    (riff, chunk_size, wave, fmt, _fmt_size, audio_format, num_channels,
     sample_rate, byte_rate, block_align, bits_per_sample, data, data_size) = struct.unpack(
        WAV_HEADER_FORMAT, wav[:WAV_HEADER_SIZE]
    )
    if (riff, wave, fmt, data) != (b'RIFF', b'WAVE', b'fmt ', b'data'):
        raise ValueError("Not a canonical PCM WAV header")

    return WavHeader(
        chunk_size=chunk_size,
        audio_format=audio_format,
        num_channels=num_channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )


def pcm_duration_sec(pcm_length: int,
                     sample_rate: int = DEFAULT_SAMPLE_RATE,
                     num_channels: int = DEFAULT_NUM_CHANNELS,
                     bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE) -> float:
    """Playback duration of a PCM payload of the given byte length."""
    byte_rate = sample_rate * num_channels * bits_per_sample / 8
    if byte_rate <= 0:
        return 0.0
    return pcm_length / byte_rate


def wav_to_base64(wav_bytes: bytes) -> str:
    """Convert WAV bytes to base64 string."""
    return base64.b64encode(wav_bytes).decode('utf-8')
