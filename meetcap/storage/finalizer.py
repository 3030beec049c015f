"""Convert raw PCM16LE mono payloads into WAV containers."""

import wave
from pathlib import Path

import structlog

logger = structlog.get_logger()

WAV_HEADER_BYTES = 44
SAMPLE_WIDTH = 2
DEFAULT_SAMPLE_RATE = 16000
COPY_BLOCK_BYTES = 1024 * 1024


def finalize_raw(
    raw_path: Path,
    wav_path: Path,
    sample_rate: int | None = None,
    fallback_sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> Path | None:
    """Write a 44-byte PCM header followed by the raw payload.

    The payload is copied in fixed-size blocks, never loaded whole. The raw
    file is removed once the container is complete.

    Args:
        raw_path: Headerless 16-bit little-endian mono samples
        wav_path: Destination container
        sample_rate: Rate discovered from the track, if any
        fallback_sample_rate: Rate used when none was discovered

    Returns:
        wav_path, or None when the payload was empty (raw file discarded)

    Raises:
        OSError: Reading the payload or writing the container failed
    """
    raw_path = Path(raw_path)
    wav_path = Path(wav_path)
    size = raw_path.stat().st_size

    if size == 0:
        raw_path.unlink()
        logger.info("discarded empty recording", path=str(raw_path))
        return None

    rate = sample_rate or fallback_sample_rate
    if not sample_rate:
        logger.warning(
            "sample rate never discovered, using fallback",
            path=str(raw_path),
            sample_rate=rate,
        )

    with raw_path.open("rb") as src, wave.open(str(wav_path), "wb") as dst:
        dst.setnchannels(1)
        dst.setsampwidth(SAMPLE_WIDTH)
        dst.setframerate(rate)
        # Declared up front so the header is written once with the final length.
        dst.setnframes(size // SAMPLE_WIDTH)
        while block := src.read(COPY_BLOCK_BYTES):
            dst.writeframesraw(block)

    raw_path.unlink()
    logger.info(
        "finalized recording",
        path=str(wav_path),
        payload_bytes=size,
        sample_rate=rate,
        duration_seconds=round(size / SAMPLE_WIDTH / rate, 3),
    )
    return wav_path
