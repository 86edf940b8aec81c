"""
モニター設定管理モジュール

【使用方法】
from monitor.config import MonitorConfig

# .env + 環境変数からロード
config = MonitorConfig.from_env()

# .env の場所を明示
config = MonitorConfig.from_env(env_file=Path("/path/to/.env"))

# 個別指定
config = MonitorConfig(api_key="sk-...", interval=30, payload_format="multipart")

errors = config.validate()
if errors:
    ...  # 起動時エラー（プロセス終了）

【処理内容】
1. python-dotenv で .env ファイルを読み込み
2. 環境変数からモニター設定値を取得（未設定ならデフォルト値）
3. 数値・真偽値のパースに失敗したら ConfigError（変数名付き）
4. validate() で必須項目・値の範囲をチェックしエラーメッセージのリストを返す

【環境変数】
SCREENSHOT_INTERVAL: 撮影間隔・秒 (default: 60)
OUTPUT_FOLDER: 保存先ディレクトリ (default: output)
OPENAI_API_ENDPOINT: Vision API エンドポイント
OPENAI_API_KEY: API キー（必須）
MODEL: モデル名
AI_VISION_PROMPT: Vision プロンプト
PAYLOAD_FORMAT: chat / multipart
MAX_TOKENS: 最大トークン数 (default: 1024)
WINDOW_INFO: 最前面ウィンドウ情報を説明文に付与するか (default: true)
AUDIO_ENABLED: 音声録音を行うか (default: true)
MIC_SELECTION: auto / interactive
AUDIO_SEGMENT_SECONDS: WAV ローテーション間隔・秒 (default: 60)
LOG_LEVEL: ログレベル (default: INFO)

【依存】
python-dotenv, monitor.errors
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from monitor.errors import ConfigError

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4-vision-preview"
DEFAULT_PROMPT = "Describe this image of user screen, and try to describe what the user is doing."

PAYLOAD_FORMATS = ("chat", "multipart")
MIC_SELECTION_MODES = ("auto", "interactive")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} は整数である必要があります: {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} は true/false のいずれかである必要があります: {raw!r}")


@dataclass
class MonitorConfig:
    interval: int = 60
    output_dir: Path = Path("output")
    api_endpoint: str = DEFAULT_ENDPOINT
    api_key: str = ""
    model: str = DEFAULT_MODEL
    prompt: str = DEFAULT_PROMPT
    payload_format: str = "chat"
    max_tokens: int = 1024
    window_info: bool = True
    audio_enabled: bool = True
    mic_selection: str = "auto"
    segment_seconds: int = 60
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "MonitorConfig":
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()
        return cls(
            interval=_env_int("SCREENSHOT_INTERVAL", 60),
            output_dir=Path(os.getenv("OUTPUT_FOLDER", "output")),
            api_endpoint=os.getenv("OPENAI_API_ENDPOINT", DEFAULT_ENDPOINT),
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("MODEL", DEFAULT_MODEL),
            prompt=os.getenv("AI_VISION_PROMPT", DEFAULT_PROMPT),
            payload_format=os.getenv("PAYLOAD_FORMAT", "chat").strip().lower(),
            max_tokens=_env_int("MAX_TOKENS", 1024),
            window_info=_env_bool("WINDOW_INFO", True),
            audio_enabled=_env_bool("AUDIO_ENABLED", True),
            mic_selection=os.getenv("MIC_SELECTION", "auto").strip().lower(),
            segment_seconds=_env_int("AUDIO_SEGMENT_SECONDS", 60),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )

    def validate(self) -> List[str]:
        """設定のバリデーション。エラーメッセージのリストを返す（空なら正常）"""
        errors = []
        if not self.api_key:
            errors.append("OPENAI_API_KEY が設定されていません (.envファイルを確認)")
        if self.interval <= 0:
            errors.append("SCREENSHOT_INTERVAL は正の数である必要があります")
        if self.segment_seconds <= 0:
            errors.append("AUDIO_SEGMENT_SECONDS は正の数である必要があります")
        if self.payload_format not in PAYLOAD_FORMATS:
            errors.append(f"PAYLOAD_FORMAT は {'/'.join(PAYLOAD_FORMATS)} のいずれかです: {self.payload_format}")
        if self.mic_selection not in MIC_SELECTION_MODES:
            errors.append(f"MIC_SELECTION は {'/'.join(MIC_SELECTION_MODES)} のいずれかです: {self.mic_selection}")
        return errors
