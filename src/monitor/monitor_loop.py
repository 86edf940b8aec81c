"""
画面モニター本体: スクリーンショット → ウィンドウ情報 → Vision API → テキスト保存 を一定間隔で繰り返す

【使用方法】
python -m monitor                        # 常駐（音声録音あり）
python -m monitor --once                 # 1回だけ実行（音声なし）
python -m monitor --no-audio             # 音声録音なしで常駐
python -m monitor --env-file ./prod.env  # .env の場所を指定
screen-monitor                           # pip install 後のコンソールスクリプト

# 停止: Ctrl+C (SIGINT) / SIGTERM

【処理内容】
1. MonitorConfig をロードしてバリデーション（エラーなら終了コード1）
2. 音声録音を有効にしていれば AudioRecorder.start_background() を1回だけ起動
3. メインループ（interval 秒ごと）
   a. ScreenCapture.capture() で撮影・PNG保存
   b. WindowInspector でウィンドウ情報取得（WINDOW_INFO=true のとき）
   c. DescriptionClient.describe() で説明文取得
   d. save_description() で <basename>.txt に保存
   いずれかの段階で失敗したらログを出してそのイテレーションを打ち切る
   （リトライ・バックオフなし、次のイテレーションは通常どおり interval 後）
4. SIGINT/SIGTERM で stop() → 待機中の Event.wait が即座に戻る → サマリーを出して終了

出力:
    output_dir/YYYYMMDD_HHMMSS_screenshot.png
    output_dir/YYYYMMDD_HHMMSS_screenshot.txt
    output_dir/YYYYMMDD_HHMMSS_audio.wav

【依存】
monitor.config, monitor.screen_capture, monitor.description_client, monitor.persistence,
common.window_inspector, recorder.audio_recorder
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from common.window_inspector import WindowInspector
from monitor.config import MonitorConfig
from monitor.description_client import DescriptionClient
from monitor.errors import CaptureError, ConfigError, DescriptionError, PersistenceError
from monitor.persistence import compose_description, save_description
from monitor.screen_capture import ScreenCapture
from recorder.audio_recorder import AudioRecorder

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 80


class MonitorLoop:
    def __init__(
        self,
        config: MonitorConfig,
        capture: Optional[ScreenCapture] = None,
        client: Optional[DescriptionClient] = None,
        inspector: Optional[WindowInspector] = None,
        recorder: Optional[AudioRecorder] = None,
    ):
        self.config = config
        self.capture = capture or ScreenCapture(config.output_dir)
        self.client = client or DescriptionClient(
            api_key=config.api_key,
            endpoint=config.api_endpoint,
            model=config.model,
            prompt=config.prompt,
            payload_format=config.payload_format,
            max_tokens=config.max_tokens,
        )
        if inspector is None and config.window_info:
            inspector = WindowInspector()
        self.inspector = inspector
        if recorder is None and config.audio_enabled:
            recorder = AudioRecorder(
                output_dir=config.output_dir,
                segment_seconds=config.segment_seconds,
                mic_selection=config.mic_selection,
            )
        self.recorder = recorder

        self.cycles = 0
        self.errors = 0
        self._stop_event = threading.Event()

    def run_once(self) -> Optional[Path]:
        """
        1イテレーション実行

        Output:
            Path: 保存した説明文ファイル（どこかの段階で失敗したら None）
        """
        self.cycles += 1

        try:
            frame = self.capture.capture()
        except CaptureError as e:
            self.errors += 1
            logger.error("[capture] #%d %s", self.cycles, e)
            return None
        logger.info("#%d 撮影: %s", self.cycles, frame.filename)

        window_text = None
        if self.inspector is not None:
            window_text = self.inspector.get_active_window_info()

        try:
            description = self.client.describe(frame.image_bytes)
        except DescriptionError as e:
            self.errors += 1
            logger.error("[describe] #%d %s: %s", self.cycles, type(e).__name__, e)
            return None
        logger.info("#%d 説明文: %s", self.cycles, description[:PREVIEW_LENGTH].replace("\n", " "))

        try:
            path = save_description(
                self.config.output_dir,
                frame.filename,
                compose_description(window_text, description),
            )
        except PersistenceError as e:
            self.errors += 1
            logger.error("[persist] #%d %s", self.cycles, e)
            return None
        logger.info("#%d 保存: %s", self.cycles, path)
        return path

    def run(self) -> None:
        logger.info("=" * 50)
        logger.info("Screen Monitor 起動")
        logger.info("  Interval: %ds", self.config.interval)
        logger.info("  Output  : %s", Path(self.config.output_dir).resolve())
        logger.info("  Endpoint: %s (%s)", self.config.api_endpoint, self.config.payload_format)
        logger.info("  Model   : %s", self.config.model)
        logger.info("  Audio   : %s", "on" if self.recorder is not None else "off")
        logger.info("=" * 50)

        if self.recorder is not None:
            self.recorder.start_background()

        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                self.errors += 1
                logger.error("イテレーション #%d で予期しないエラー: %s", self.cycles, e, exc_info=True)
            if self._stop_event.wait(self.config.interval):
                break

        if self.recorder is not None:
            self.recorder.stop()
        self._log_summary()

    def stop(self) -> None:
        logger.info("停止要求を受け付けました")
        self._stop_event.set()

    def _log_summary(self) -> None:
        logger.info("=" * 50)
        logger.info("停止しました (実行: %d回, エラー: %d回)", self.cycles, self.errors)
        logger.info("=" * 50)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="画面モニター（スクリーンショット + AI説明文 + 音声録音）")
    parser.add_argument("--once", action="store_true", help="1回だけ実行（音声録音なし）")
    parser.add_argument("--no-audio", action="store_true", help="音声録音を無効化")
    parser.add_argument("--env-file", type=str, help=".env ファイルのパス")
    args = parser.parse_args(argv)

    try:
        config = MonitorConfig.from_env(Path(args.env_file) if args.env_file else None)
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        logger.error("設定エラー: %s", e)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.once or args.no_audio:
        config.audio_enabled = False

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error("設定エラー: %s", error)
        sys.exit(1)

    loop = MonitorLoop(config)
    signal.signal(signal.SIGINT, lambda s, f: loop.stop())
    signal.signal(signal.SIGTERM, lambda s, f: loop.stop())

    if args.once:
        path = loop.run_once()
        sys.exit(0 if path is not None else 1)
    loop.run()


if __name__ == "__main__":
    main()
