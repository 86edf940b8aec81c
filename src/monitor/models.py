"""
モニター全体で共有するデータモデル定義

【使用方法】
from monitor.models import CapturedFrame, WindowInfo, AudioSegment

frame = CapturedFrame(
    image_bytes=b"...png...",
    filename="20260101_120000_screenshot.png",
    captured_at=datetime.now(),
    path=Path("output/20260101_120000_screenshot.png"),
)

info = WindowInfo(app_name="Firefox", title="GitHub", exec_name="firefox", path="/usr/bin/firefox")
print(info.render())
# => Active app: Firefox
#    Title: GitHub
#    Exec: firefox
#    Path: /usr/bin/firefox

segment = AudioSegment(path=Path("output/20260101_120000_audio.wav"),
                       started_at=datetime.now(), channels=2, sample_rate=48000)

【処理内容】
CapturedFrame: 1回のループで撮影したスクリーンショット（イテレーション終了で破棄）
WindowInfo: 最前面ウィンドウのスナップショット（毎回取り直す）
AudioSegment: ローテーション1区間分のWAVファイルのメタデータ

【依存】
Python標準ライブラリのみ (dataclasses, datetime, pathlib)
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass
class CapturedFrame:
    image_bytes: bytes
    filename: str
    captured_at: datetime
    path: Path


@dataclass
class WindowInfo:
    app_name: str
    title: str
    exec_name: str
    path: str

    def render(self) -> str:
        return (
            f"Active app: {self.app_name}\n"
            f"Title: {self.title}\n"
            f"Exec: {self.exec_name}\n"
            f"Path: {self.path}"
        )


@dataclass
class AudioSegment:
    path: Path
    started_at: datetime
    channels: int
    sample_rate: int
    frames_written: int = 0
    finalized: bool = False
