"""Unit tests for the rotating WAV writer and the background audio recorder.

No audio hardware is touched: sounddevice is replaced by a fake stream and
time is simulated with a manually advanced clock.
"""

import logging
import threading
import time
import wave
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pytest

from monitor.errors import AudioDeviceError
from recorder import audio_recorder
from recorder.audio_recorder import (
    MAX_SAMPLES_PER_CALLBACK,
    AudioRecorder,
    RotatingWavWriter,
    audio_filename,
    to_int16,
)
from recorder.device_selector import InputDevice

SAMPLE_RATE = 100


def read_wav(path: Path):
    with wave.open(str(path), "rb") as wf:
        return wf.getnchannels(), wf.getsampwidth(), wf.getframerate(), wf.getnframes()


# =============================================================================
# Sample conversion
# =============================================================================

class TestToInt16:

    def test_truncates_toward_zero(self):
        pcm = to_int16(np.array([0.5, -0.5, 1.0, -1.0, 0.0], dtype=np.float32))

        assert pcm.dtype == np.int16
        assert pcm.tolist() == [16383, -16383, 32767, -32767, 0]

    def test_saturates_out_of_range_samples(self):
        pcm = to_int16(np.array([1.5, -1.5, 1.0001, -1.0001], dtype=np.float32))

        assert pcm.tolist() == [32767, -32768, 32767, -32768]

    def test_nan_becomes_silence(self):
        assert to_int16(np.array([np.nan], dtype=np.float32)).tolist() == [0]

    def test_clips_to_max_samples_per_callback(self):
        pcm = to_int16(np.zeros(MAX_SAMPLES_PER_CALLBACK + 1000, dtype=np.float32))

        assert len(pcm) == MAX_SAMPLES_PER_CALLBACK

    def test_flattens_interleaved_channels(self):
        block = np.array([[0.5, -0.5], [0.25, -0.25]], dtype=np.float32)

        assert to_int16(block).tolist() == [16383, -16383, 8191, -8191]


def test_audio_filename():
    assert audio_filename(datetime(2024, 1, 1, 12, 0, 0)) == "20240101_120000_audio.wav"


# =============================================================================
# RotatingWavWriter
# =============================================================================

class TestRotatingWavWriter:

    def test_no_segment_until_first_append(self, tmp_path: Path, clock):
        writer = RotatingWavWriter(tmp_path, channels=1, sample_rate=SAMPLE_RATE, now=clock)

        assert writer.is_open is False
        assert writer.rotate() is None
        assert list(tmp_path.iterdir()) == []

    def test_append_opens_segment(self, tmp_path: Path, clock):
        writer = RotatingWavWriter(tmp_path / "audio", channels=2, sample_rate=SAMPLE_RATE, now=clock)

        frames = writer.append(np.zeros((10, 2), dtype=np.float32))

        assert frames == 10
        assert writer.is_open is True
        assert writer.current_segment.path == tmp_path / "audio" / "20240101_120000_audio.wav"

    def test_rotation_over_125_seconds_gives_three_segments(self, tmp_path: Path, clock):
        writer = RotatingWavWriter(tmp_path, channels=1, sample_rate=SAMPLE_RATE, now=clock)
        one_second = np.full(SAMPLE_RATE, 0.25, dtype=np.float32)

        for second in range(125):
            if second > 0 and second % 60 == 0:
                writer.rotate()
            writer.append(one_second)
            clock.advance(1)
        writer.close()

        assert [s.path.name for s in writer.segments] == [
            "20240101_120000_audio.wav",
            "20240101_120100_audio.wav",
            "20240101_120200_audio.wav",
        ]
        assert [s.frames_written for s in writer.segments] == [
            60 * SAMPLE_RATE, 60 * SAMPLE_RATE, 5 * SAMPLE_RATE,
        ]
        for segment in writer.segments:
            assert segment.finalized is True
            assert read_wav(segment.path) == (1, 2, SAMPLE_RATE, segment.frames_written)

    def test_written_samples_round_trip(self, tmp_path: Path, clock):
        writer = RotatingWavWriter(tmp_path, channels=1, sample_rate=SAMPLE_RATE, now=clock)
        writer.append(np.array([0.5, -0.5, 0.0], dtype=np.float32))
        segment = writer.close()

        with wave.open(str(segment.path), "rb") as wf:
            data = np.frombuffer(wf.readframes(wf.getnframes()), dtype="<i2")

        assert data.tolist() == [16383, -16383, 0]

    def test_concurrent_append_and_rotate_never_overlap(self, tmp_path: Path):
        start = datetime(2024, 1, 1, 12, 0, 0)
        ticks = iter(range(10_000))

        def now():
            # every segment gets its own second so file names never collide
            return start + timedelta(seconds=next(ticks))

        writer = RotatingWavWriter(tmp_path, channels=1, sample_rate=SAMPLE_RATE, now=now)
        block = np.full(SAMPLE_RATE, 0.1, dtype=np.float32)
        appends = 200

        def feed():
            for _ in range(appends):
                writer.append(block)

        def rotate():
            for _ in range(50):
                writer.rotate()

        threads = [threading.Thread(target=feed), threading.Thread(target=rotate)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        writer.close()

        assert writer.is_open is False
        assert sum(s.frames_written for s in writer.segments) == appends * SAMPLE_RATE
        assert len({s.path for s in writer.segments}) == len(writer.segments)
        for segment in writer.segments:
            assert read_wav(segment.path)[3] == segment.frames_written


# =============================================================================
# AudioRecorder
# =============================================================================

class FakeInputStream:
    instances = []

    def __init__(self, device, channels, samplerate, dtype, callback):
        self.device = device
        self.channels = channels
        self.samplerate = samplerate
        self.dtype = dtype
        self.callback = callback
        self.started = threading.Event()
        self.closed = False
        FakeInputStream.instances.append(self)

    def start(self):
        self.started.set()

    def stop(self):
        pass

    def close(self):
        self.closed = True


@pytest.fixture
def fake_stream(monkeypatch):
    FakeInputStream.instances = []
    sd = type("FakeSoundDevice", (), {"InputStream": FakeInputStream})
    monkeypatch.setattr(audio_recorder, "load_sounddevice", lambda: sd)
    monkeypatch.setattr(
        audio_recorder,
        "select_device",
        lambda mode, timeout: InputDevice(index=3, name="Test Mic", channels=1, sample_rate=SAMPLE_RATE),
    )
    return FakeInputStream


class TestAudioRecorder:

    def test_background_recording_writes_wav(self, tmp_path: Path, fake_stream):
        recorder = AudioRecorder(tmp_path, segment_seconds=60)

        recorder.start_background()
        try:
            deadline = time.monotonic() + 5
            while not fake_stream.instances and time.monotonic() < deadline:
                time.sleep(0.01)
            stream = fake_stream.instances[0]
            assert stream.started.wait(5)
            assert stream.device == 3
            assert stream.samplerate == SAMPLE_RATE

            for _ in range(3):
                stream.callback(np.zeros((SAMPLE_RATE, 1), dtype=np.float32), SAMPLE_RATE, None, None)
        finally:
            recorder.stop()

        assert stream.closed is True
        assert len(recorder.writer.segments) == 1
        segment = recorder.writer.segments[0]
        assert segment.frames_written == 3 * SAMPLE_RATE
        assert read_wav(segment.path) == (1, 2, SAMPLE_RATE, 3 * SAMPLE_RATE)

    def test_device_error_is_logged_not_raised(self, tmp_path: Path, monkeypatch, caplog):
        def no_device(mode, timeout):
            raise AudioDeviceError("No input device available")

        monkeypatch.setattr(audio_recorder, "select_device", no_device)
        recorder = AudioRecorder(tmp_path)

        with caplog.at_level(logging.ERROR):
            thread = recorder.start_background()
            thread.join(timeout=5)

        assert not thread.is_alive()
        assert "Error recording audio: No input device available" in caplog.text

    def test_stream_status_logged_once_per_value(self, tmp_path: Path, clock, caplog):
        recorder = AudioRecorder(tmp_path)
        recorder.writer = RotatingWavWriter(tmp_path, channels=1, sample_rate=SAMPLE_RATE, now=clock)
        block = np.zeros((10, 1), dtype=np.float32)

        with caplog.at_level(logging.WARNING):
            recorder._callback(block, 10, None, "input overflow")
            recorder._callback(block, 10, None, "input overflow")
            recorder._callback(block, 10, None, None)
            recorder._callback(block, 10, None, "input underflow")

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2
        assert recorder.writer.current_segment.frames_written == 40

    def test_rotation_timer_finalizes_segments(self, tmp_path: Path, fake_stream):
        start = datetime(2024, 1, 1, 12, 0, 0)
        ticks = iter(range(10_000))

        def now():
            return start + timedelta(seconds=next(ticks))

        recorder = AudioRecorder(tmp_path, segment_seconds=0.05, now=now)
        block = np.full((10, 1), 0.1, dtype=np.float32)
        callbacks = 0

        recorder.start_background()
        try:
            deadline = time.monotonic() + 5
            while not fake_stream.instances and time.monotonic() < deadline:
                time.sleep(0.01)
            stream = fake_stream.instances[0]
            assert stream.started.wait(5)

            # several timer ticks, with callbacks arriving between them
            feed_until = time.monotonic() + 0.4
            while time.monotonic() < feed_until:
                stream.callback(block, 10, None, None)
                callbacks += 1
                time.sleep(0.01)
        finally:
            recorder.stop()

        segments = recorder.writer.segments
        assert len(segments) > 1
        assert recorder.writer.is_open is False
        assert sum(s.frames_written for s in segments) == callbacks * 10
        for segment in segments:
            assert segment.finalized is True
            assert read_wav(segment.path) == (1, 2, SAMPLE_RATE, segment.frames_written)

    def test_write_error_logged_once_per_value(self, tmp_path: Path, clock, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        recorder = AudioRecorder(tmp_path)
        recorder.writer = RotatingWavWriter(blocker, channels=1, sample_rate=SAMPLE_RATE, now=clock)
        block = np.zeros((10, 1), dtype=np.float32)

        with caplog.at_level(logging.ERROR):
            for _ in range(20):
                recorder._callback(block, 10, None, None)

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert recorder.writer.is_open is False
