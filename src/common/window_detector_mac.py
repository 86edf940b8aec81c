"""
macOS用: 最前面アプリとそのウィンドウの情報を取得するモジュール

【使用方法】
from common.window_detector_mac import WindowDetectorMac

detector = WindowDetectorMac()
info = detector.get_active_window()
# => WindowInfo(app_name="Safari", title="Apple", exec_name="Safari",
#               path="/Applications/Safari.app/Contents/MacOS/Safari")

【処理内容】
1. NSWorkspace で最前面アプリ（名前, pid）を取得
2. CGWindowListCopyWindowInfo で同じpidの通常レイヤーウィンドウを探してタイトルを取得
3. psutil で実行ファイル名・パスを取得

【必要環境】
- macOS
- pip install pyobjc-framework-Quartz pyobjc-framework-Cocoa
- ウィンドウタイトル取得にはスクリーン録画権限が必要
"""

import sys

if sys.platform != "darwin":
    raise ImportError("このモジュールはmacOS専用です")

import psutil
from AppKit import NSWorkspace
from Quartz import (
    CGWindowListCopyWindowInfo,
    kCGNullWindowID,
    kCGWindowListExcludeDesktopElements,
    kCGWindowListOptionOnScreenOnly,
)

from monitor.models import WindowInfo


class WindowDetectorMac:
    """
    macOS用: 最前面ウィンドウを検出するクラス
    Quartz / AppKit を使用
    """

    def _window_title(self, pid: int) -> str:
        options = kCGWindowListOptionOnScreenOnly | kCGWindowListExcludeDesktopElements
        window_list = CGWindowListCopyWindowInfo(options, kCGNullWindowID)
        # Z-order順（先頭が最前面）
        for win in window_list:
            if win.get("kCGWindowOwnerPID") != pid:
                continue
            if win.get("kCGWindowLayer", 0) != 0:
                continue
            name = win.get("kCGWindowName")
            if name:
                return str(name)
        return ""

    def get_active_window(self) -> WindowInfo:
        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        if app is None:
            raise RuntimeError("最前面アプリを取得できません")
        pid = int(app.processIdentifier())
        app_name = str(app.localizedName() or "")

        proc = psutil.Process(pid)
        try:
            path = proc.exe()
        except psutil.AccessDenied:
            url = app.executableURL()
            path = str(url.path()) if url else ""

        return WindowInfo(
            app_name=app_name,
            title=self._window_title(pid),
            exec_name=proc.name(),
            path=path,
        )
