"""
スクリーンショット撮影モジュール（Capture Provider）

【使用方法】
from monitor.screen_capture import ScreenCapture

capture = ScreenCapture(output_dir="output")
frame = capture.capture()
print(frame.filename)      # => 20260101_120000_screenshot.png
print(len(frame.image_bytes))

【処理内容】
1. 保存先ディレクトリが無ければ作成
2. mss でプライマリモニターを撮影し、Pillow で BGRA → RGB に変換
3. PNG にエンコードして <timestamp>_screenshot.png として保存
   （秒単位のタイムスタンプ。同一秒の衝突は後勝ちで上書き）
4. 保存したPNGのバイト列とファイル名を CapturedFrame で返す
失敗時（画面収録の権限なし・エンコード/保存失敗）は CaptureError

【必要環境】
- Linux: X11ディスプレイサーバー + DISPLAY環境変数
- macOS: スクリーン録画権限
- pip: mss, Pillow

【依存】
mss, Pillow, monitor.models, monitor.errors
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Union

import mss
from PIL import Image

from monitor.errors import CaptureError
from monitor.models import CapturedFrame

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def screenshot_filename(captured_at: datetime) -> str:
    return f"{captured_at.strftime(TIMESTAMP_FORMAT)}_screenshot.png"


class ScreenCapture:
    def __init__(
        self,
        output_dir: Union[str, Path] = "output",
        now: Callable[[], datetime] = datetime.now,
    ):
        self.output_dir = Path(output_dir)
        self._now = now

    def take_full_screenshot(self) -> Image.Image:
        """
        プライマリモニターを撮影してPIL Imageで返す

        Output:
            Image.Image: スクリーンショット画像（RGB）
        """
        with mss.mss() as sct:
            monitor = sct.monitors[1]  # [0] は全モニター結合
            screenshot = sct.grab(monitor)
            return Image.frombytes("RGB", screenshot.size, screenshot.bgra, "raw", "BGRX")

    def capture(self) -> CapturedFrame:
        """
        スクリーンショットを撮影してPNG保存し、CapturedFrame を返す

        Raises:
            CaptureError: 撮影・エンコード・保存のいずれかに失敗した場合
        """
        captured_at = self._now()
        filename = screenshot_filename(captured_at)
        filepath = self.output_dir / filename

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            image = self.take_full_screenshot()

            buf = io.BytesIO()
            image.save(buf, format="PNG")
            png_data = buf.getvalue()
            filepath.write_bytes(png_data)
        except Exception as e:
            raise CaptureError(f"スクリーンショット撮影に失敗: {e}") from e

        logger.debug("スクリーンショット保存: %s (%d bytes)", filepath, len(png_data))
        return CapturedFrame(
            image_bytes=png_data,
            filename=filename,
            captured_at=captured_at,
            path=filepath,
        )
