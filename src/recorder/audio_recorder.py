"""
マイク音声を録音し、一定間隔（デフォルト60秒）ごとにWAVファイルをローテーションするモジュール

【使用方法】
from recorder.audio_recorder import AudioRecorder

recorder = AudioRecorder(output_dir="output", segment_seconds=60, mic_selection="auto")
thread = recorder.start_background()   # デーモンスレッドで録音開始（join しない）
...
recorder.stop()

# 書き込み部分だけ使う場合
writer = RotatingWavWriter("output", channels=2, sample_rate=48000)
writer.append(block)      # 区間が無ければ新規WAVを開いて追記
segment = writer.rotate() # 開いている区間を確定してクローズ

出力:
    output_dir/YYYYMMDD_HHMMSS_audio.wav   ローテーション1区間分の音声

【処理内容】
RotatingWavWriter（状態: NoActiveSegment / SegmentOpen、1つのロックで保護）
1. append: 区間が無ければタイムスタンプ名のWAVを開く（16bit PCM, デバイスのch数・サンプルレート）
   コールバック1回あたり MAX_SAMPLES_PER_CALLBACK サンプルまでに切り詰め、
   float を sample * 32767 の切り捨てで int16 に変換して追記
2. rotate: 区間が開いていれば close してヘッダに最終長を書き戻し、NoActiveSegment に戻る
   次の append で新しい区間が開く。同時に2区間が開くことはない

AudioRecorder
1. device_selector で入力デバイスを選択（auto / interactive）
2. sounddevice.InputStream のコールバックから writer.append を呼ぶ
3. segment_seconds ごとに writer.rotate を呼ぶ（ローテーションタイマー）
4. start_background はデーモンスレッドで run() を実行し、例外はログのみ
   （デバイスが無い・ストリーム生成失敗でもメインループは止めない）

【依存】
numpy, sounddevice（遅延インポート）, wave, recorder.device_selector, monitor.models
"""

import logging
import threading
import wave
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np

from monitor.errors import AudioDeviceError
from monitor.models import AudioSegment
from recorder.device_selector import SELECTION_TIMEOUT, load_sounddevice, select_device

logger = logging.getLogger(__name__)

MAX_SAMPLES_PER_CALLBACK = 44100
SAMPLE_WIDTH = 2  # int16
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def to_int16(samples) -> np.ndarray:
    """
    float サンプルを int16 に変換（インターリーブ済み1次元配列で返す）

    先頭 MAX_SAMPLES_PER_CALLBACK 個に切り詰め、sample * 32767 を0方向に切り捨てる。
    [-1.0, 1.0] の範囲外は int16 の上下限で飽和させる（NaN は 0）。
    """
    flat = np.asarray(samples, dtype=np.float32).reshape(-1)[:MAX_SAMPLES_PER_CALLBACK]
    scaled = np.nan_to_num(flat * np.float32(32767), nan=0.0)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def audio_filename(started_at: datetime) -> str:
    return f"{started_at.strftime(TIMESTAMP_FORMAT)}_audio.wav"


class RotatingWavWriter:
    def __init__(
        self,
        output_dir: Union[str, Path],
        channels: int,
        sample_rate: int,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.output_dir = Path(output_dir)
        self.channels = channels
        self.sample_rate = sample_rate
        self._now = now
        self._lock = threading.Lock()
        self._wave: Optional[wave.Wave_write] = None
        self._segment: Optional[AudioSegment] = None
        self.segments: List[AudioSegment] = []

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._wave is not None

    @property
    def current_segment(self) -> Optional[AudioSegment]:
        return self._segment

    def _open_segment(self) -> None:
        started_at = self._now()
        path = self.output_dir / audio_filename(started_at)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        wf = wave.open(str(path), "wb")
        wf.setnchannels(self.channels)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(self.sample_rate)

        self._wave = wf
        self._segment = AudioSegment(
            path=path,
            started_at=started_at,
            channels=self.channels,
            sample_rate=self.sample_rate,
        )
        logger.info("音声セグメント開始: %s", path.name)

    def append(self, samples) -> int:
        """サンプルを追記し、書き込んだフレーム数を返す"""
        pcm = to_int16(samples)
        with self._lock:
            if self._wave is None:
                self._open_segment()
            self._wave.writeframesraw(pcm.tobytes())
            frames = len(pcm) // self.channels
            self._segment.frames_written += frames
            return frames

    def rotate(self) -> Optional[AudioSegment]:
        """開いている区間を確定してクローズする。区間が無ければ None"""
        with self._lock:
            if self._wave is None:
                return None
            # close() がヘッダの長さフィールドを書き戻す
            self._wave.close()
            segment = self._segment
            segment.finalized = True
            self.segments.append(segment)
            self._wave = None
            self._segment = None

        logger.info("音声セグメント確定: %s (%d frames)", segment.path.name, segment.frames_written)
        return segment

    def close(self) -> Optional[AudioSegment]:
        return self.rotate()


class AudioRecorder:
    def __init__(
        self,
        output_dir: Union[str, Path] = "output",
        segment_seconds: float = 60,
        mic_selection: str = "auto",
        selection_timeout: float = SELECTION_TIMEOUT,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.output_dir = Path(output_dir)
        self.segment_seconds = segment_seconds
        self.mic_selection = mic_selection
        self.selection_timeout = selection_timeout
        self._now = now
        self.writer: Optional[RotatingWavWriter] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_status: Optional[str] = None
        self._last_write_error: Optional[str] = None

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            status_str = str(status)
            if status_str != self._last_status:
                logger.warning("An error occurred on the audio stream: %s", status_str)
                self._last_status = status_str
        try:
            self.writer.append(indata)
        except Exception as e:
            # 同じエラーはコールバックごとに繰り返さない
            if str(e) != self._last_write_error:
                logger.error("音声の書き込みに失敗: %s", e)
                self._last_write_error = str(e)
            return
        self._last_write_error = None

    def _open_stream(self, device):
        sd = load_sounddevice()
        try:
            stream = sd.InputStream(
                device=device.index,
                channels=device.channels,
                samplerate=device.sample_rate,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            raise AudioDeviceError(f"入力ストリームの生成に失敗: {e}") from e
        return stream

    def run(self) -> None:
        """デバイス選択 → ストリーム開始 → stop() までローテーションタイマーを回す"""
        device = select_device(self.mic_selection, self.selection_timeout)
        logger.info(
            "録音デバイス: %s (%dch, %dHz)", device.name, device.channels, device.sample_rate,
        )
        self.writer = RotatingWavWriter(
            self.output_dir, device.channels, device.sample_rate, now=self._now,
        )

        stream = self._open_stream(device)
        try:
            while not self._stop_event.wait(self.segment_seconds):
                self.writer.rotate()
        finally:
            try:
                stream.stop()
                stream.close()
            finally:
                self.writer.close()

    def _run_safely(self) -> None:
        try:
            self.run()
        except Exception as e:
            logger.error("Error recording audio: %s", e)

    def start_background(self) -> threading.Thread:
        """デーモンスレッドで録音を開始する（呼び出し側は join・監視しない）"""
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_safely, name="AudioRecorder", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
