"""
Linux(X11)用: 最前面ウィンドウの情報を取得するモジュール

【使用方法】
from common.window_detector import WindowDetector

detector = WindowDetector()
info = detector.get_active_window()
# => WindowInfo(app_name="firefox", title="GitHub - Mozilla Firefox",
#               exec_name="firefox", path="/usr/lib/firefox/firefox")

【処理内容】
1. xdotool getactivewindow でアクティブウィンドウIDを取得
2. xdotool getwindowname でタイトルを取得
3. xdotool getwindowpid でプロセスIDを取得
4. psutil でプロセス名・実行ファイルパスを取得

【必要環境】
- Linux + X11ディスプレイサーバー
- xdotool コマンド
- DISPLAY環境変数が設定されていること

【依存】
psutil, monitor.models
"""

import shutil
import subprocess

import psutil

from monitor.models import WindowInfo


class WindowDetector:
    """
    最前面ウィンドウを検出するクラス
    X11環境 + xdotool が必要
    """

    def __init__(self):
        """初期化時にxdotoolの存在を確認"""
        if shutil.which("xdotool") is None:
            raise EnvironmentError(
                "xdotoolが見つかりません。sudo apt install xdotool でインストールしてください"
            )

    def _run_cmd(self, cmd: list) -> str:
        """
        コマンドを実行して標準出力を返す

        Input:
            cmd: 実行するコマンドのリスト
        Output:
            str: 標準出力の文字列
        """
        result = subprocess.run(
            cmd, capture_output=True, text=True, timeout=5
        )
        if result.returncode != 0:
            raise RuntimeError(
                f"コマンド失敗: {' '.join(cmd)}\nstderr: {result.stderr}"
            )
        return result.stdout.strip()

    def get_active_window(self) -> WindowInfo:
        window_id = self._run_cmd(["xdotool", "getactivewindow"])
        title = self._run_cmd(["xdotool", "getwindowname", window_id])
        pid = int(self._run_cmd(["xdotool", "getwindowpid", window_id]))

        proc = psutil.Process(pid)
        exec_name = proc.name()
        try:
            path = proc.exe()
        except psutil.AccessDenied:
            path = ""

        return WindowInfo(app_name=exec_name, title=title, exec_name=exec_name, path=path)
