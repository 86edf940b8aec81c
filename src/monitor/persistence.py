"""
説明文をスクリーンショットの隣にテキストファイルとして保存するユーティリティ

【使用方法】
from monitor.persistence import compose_description, save_description

content = compose_description(window_text, description)
path = save_description("output", "20260101_120000_screenshot.png", content)
# => output/20260101_120000_screenshot.txt

【処理内容】
1. 画像ファイル名の拡張子を外して .txt を付けたファイル名を作る
2. ウィンドウ情報があれば "<window>\n\nDescription:\n<説明文>" の形に整形
3. UTF-8 で書き込み（既存ファイルは無条件に上書き）
失敗時は PersistenceError

【依存】
Python標準ライブラリのみ (pathlib), monitor.errors
"""

from pathlib import Path
from typing import Optional, Union

from monitor.errors import PersistenceError


def description_filename(image_filename: str) -> str:
    return f"{Path(image_filename).stem}.txt"


def compose_description(window_text: Optional[str], description: str) -> str:
    if window_text is None:
        return description
    return f"{window_text}\n\nDescription:\n{description}"


def save_description(output_dir: Union[str, Path], image_filename: str, description: str) -> Path:
    """
    説明文を <basename>.txt として保存する

    Input:
        output_dir: 保存先ディレクトリ
        image_filename: 対応するスクリーンショットのファイル名
        description: 書き込む本文
    Output:
        Path: 保存したテキストファイルのパス
    """
    path = Path(output_dir) / description_filename(image_filename)
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(description)
    except OSError as e:
        raise PersistenceError(f"説明文の保存に失敗 {path}: {e}") from e
    return path
