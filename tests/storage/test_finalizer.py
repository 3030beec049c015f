"""Tests for raw PCM to WAV finalization."""

import struct
import wave
from pathlib import Path

import pytest

from meetcap.storage.finalizer import WAV_HEADER_BYTES, finalize_raw


@pytest.fixture
def raw_file(tmp_path: Path) -> Path:
    path = tmp_path / "track_t1.pcm16le.raw"
    path.write_bytes(struct.pack("<4h", 0, 1000, -1000, 32767))
    return path


def test_container_is_header_plus_payload(tmp_path: Path, raw_file: Path):
    payload = raw_file.read_bytes()
    wav_path = tmp_path / "track_t1.wav"

    result = finalize_raw(raw_file, wav_path, sample_rate=48000)

    assert result == wav_path
    data = wav_path.read_bytes()
    assert len(data) == len(payload) + WAV_HEADER_BYTES
    assert data[WAV_HEADER_BYTES:] == payload
    assert not raw_file.exists()


def test_header_fields(tmp_path: Path, raw_file: Path):
    wav_path = tmp_path / "track_t1.wav"

    finalize_raw(raw_file, wav_path, sample_rate=48000)

    data = wav_path.read_bytes()
    assert data[0:4] == b"RIFF"
    assert struct.unpack("<I", data[4:8])[0] == 36 + 8
    assert data[8:16] == b"WAVEfmt "
    fmt_size, audio_format, channels, rate, byte_rate, align, bits = struct.unpack(
        "<IHHIIHH", data[16:36]
    )
    assert (fmt_size, audio_format, channels) == (16, 1, 1)
    assert rate == 48000
    assert byte_rate == 96000
    assert (align, bits) == (2, 16)
    assert data[36:40] == b"data"
    assert struct.unpack("<I", data[40:44])[0] == 8


def test_readable_by_wave(tmp_path: Path, raw_file: Path):
    wav_path = tmp_path / "track_t1.wav"

    finalize_raw(raw_file, wav_path, sample_rate=16000)

    with wave.open(str(wav_path), "rb") as w:
        assert w.getnframes() == 4
        assert w.getframerate() == 16000


def test_empty_payload_leaves_no_file(tmp_path: Path):
    raw = tmp_path / "track_t2.pcm16le.raw"
    raw.touch()
    wav_path = tmp_path / "track_t2.wav"

    assert finalize_raw(raw, wav_path, sample_rate=48000) is None
    assert not raw.exists()
    assert not wav_path.exists()


def test_fallback_sample_rate(tmp_path: Path, raw_file: Path):
    wav_path = tmp_path / "track_t1.wav"

    finalize_raw(raw_file, wav_path, sample_rate=None, fallback_sample_rate=22050)

    with wave.open(str(wav_path), "rb") as w:
        assert w.getframerate() == 22050


def test_large_payload_copied_in_blocks(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    raw = tmp_path / "big.pcm16le.raw"
    payload = bytes(range(256)) * 10_000
    raw.write_bytes(payload)
    wav_path = tmp_path / "big.wav"

    monkeypatch.setattr("meetcap.storage.finalizer.COPY_BLOCK_BYTES", 4096)
    finalize_raw(raw, wav_path, sample_rate=16000)

    assert wav_path.read_bytes()[WAV_HEADER_BYTES:] == payload
