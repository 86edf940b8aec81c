"""
最前面ウィンドウの情報（アプリ名・タイトル・実行ファイル名・パス）を取得するモジュール

【使用方法】
from common.window_inspector import WindowInspector

inspector = WindowInspector()
text = inspector.get_active_window_info()
# => "Active app: Firefox\nTitle: GitHub\nExec: firefox\nPath: /usr/bin/firefox"
# 取得失敗時 => "Unknown"

info = inspector.get_window_info()
# => WindowInfo(...) or None

【処理内容】
1. OSに応じたdetectorをファクトリで生成（Linux: xdotool, macOS: Quartz, Windows: user32）
2. detector.get_active_window() で WindowInfo を取得
3. 失敗時はエラーログを出して "Unknown" を返す（説明文の付加情報なので例外は投げない）

【依存】
common.window_detector / window_detector_mac / window_detector_win, monitor.models
"""

import logging
import sys
from typing import Optional

from monitor.models import WindowInfo

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def _create_detector():
    """
    OSに応じたWindowDetectorを生成するファクトリ関数

    Output:
        WindowDetector / WindowDetectorMac / WindowDetectorWin
    """
    if sys.platform == "darwin":
        from common.window_detector_mac import WindowDetectorMac
        return WindowDetectorMac()
    if sys.platform == "win32":
        from common.window_detector_win import WindowDetectorWin
        return WindowDetectorWin()
    from common.window_detector import WindowDetector
    return WindowDetector()


class WindowInspector:
    def __init__(self, detector=None):
        self.detector = detector
        if self.detector is None:
            try:
                self.detector = _create_detector()
            except Exception as e:
                logger.warning("ウィンドウ検出器の初期化に失敗（ウィンドウ情報は Unknown になります）: %s", e)

    def get_window_info(self) -> Optional[WindowInfo]:
        if self.detector is None:
            return None
        try:
            return self.detector.get_active_window()
        except Exception as e:
            logger.error("Error occurred while getting the active window title: %s", e)
            return None

    def get_active_window_info(self) -> str:
        info = self.get_window_info()
        if info is None:
            return UNKNOWN
        return info.render()
