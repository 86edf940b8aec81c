"""
モニター全体で使う例外クラス定義

【使用方法】
from monitor.errors import CaptureError, RemoteError

try:
    frame = capture.capture()
except CaptureError as e:
    logger.error("キャプチャ失敗: %s", e)

【処理内容】
MonitorError を基底に、失敗したステージごとに例外を分ける。
- ConfigError: 起動時の設定エラー（プロセス終了）
- CaptureError: スクリーンショット撮影・保存の失敗
- DescriptionError: Vision API 呼び出しの失敗
  - TransportError: 通信そのものの失敗
  - RemoteError: 非2xxステータス or レスポンス内の error オブジェクト
  - DataError: 正常応答だが説明文が無い
- PersistenceError: 説明文ファイルの書き込み失敗
- AudioDeviceError: 入力デバイスが無い・ストリーム生成失敗（音声タスクのみ停止）

【依存】
Python標準ライブラリのみ
"""

from typing import Optional


class MonitorError(Exception):
    """モニター例外の基底クラス"""


class ConfigError(MonitorError):
    pass


class CaptureError(MonitorError):
    pass


class DescriptionError(MonitorError):
    pass


class TransportError(DescriptionError):
    pass


class RemoteError(DescriptionError):
    """API がエラーを返した場合。error オブジェクトがあれば message/type を保持"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_message: Optional[str] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.error_message = error_message
        self.error_type = error_type


class DataError(DescriptionError):
    pass


class PersistenceError(MonitorError):
    pass


class AudioDeviceError(MonitorError):
    pass
