"""
Windows用: 最前面ウィンドウの情報を取得するモジュール

【使用方法】
from common.window_detector_win import WindowDetectorWin

detector = WindowDetectorWin()
info = detector.get_active_window()

【処理内容】
1. user32.GetForegroundWindow でウィンドウハンドルを取得
2. GetWindowTextW でタイトル、GetWindowThreadProcessId でpidを取得
3. psutil でプロセス名・実行ファイルパスを取得

【依存】
ctypes (標準ライブラリ), psutil
"""

import ctypes
import sys

if sys.platform != "win32":
    raise ImportError("このモジュールはWindows専用です")

from ctypes import wintypes

import psutil

from monitor.models import WindowInfo


class WindowDetectorWin:
    def __init__(self):
        self._user32 = ctypes.windll.user32

    def get_active_window(self) -> WindowInfo:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            raise RuntimeError("最前面ウィンドウがありません")

        length = self._user32.GetWindowTextLengthW(hwnd)
        buf = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buf, length + 1)

        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))

        proc = psutil.Process(pid.value)
        path = proc.exe()
        exec_name = proc.name()
        # "chrome.exe" -> "chrome"
        app_name = exec_name.rsplit(".", 1)[0] if exec_name.lower().endswith(".exe") else exec_name

        return WindowInfo(app_name=app_name, title=buf.value, exec_name=exec_name, path=path)
