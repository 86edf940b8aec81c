"""
Vision API クライアント: スクリーンショットを送って画面の説明文を受け取る

【使用方法】
from monitor.description_client import DescriptionClient

# chat-completion 形式（デフォルト）
client = DescriptionClient(api_key="sk-...")
text = client.describe(frame.image_bytes)

# multipart 形式（data[0].description を返すエンドポイント）
client = DescriptionClient(
    endpoint="https://example.com/v1/describe",
    api_key="...",
    payload_format="multipart",
)

【処理内容】
1. payload_format に応じてリクエストを構築
   - chat: base64 data-URI の画像 + テキストプロンプトを messages に詰めた JSON
   - multipart: model / prompt フィールド + image ファイルのフォームアップロード
2. Authorization: Bearer <api_key> を付けて requests.post で送信
   （タイムアウトは指定しない・リトライなし）
3. レスポンスを解析
   - chat: choices[0].message.content / error{message,type}
   - multipart: data[0].description / error{message,type}
4. 失敗の種類で例外を分ける
   - TransportError: 通信エラー
   - RemoteError: 非2xxステータス、またはレスポンス内の error オブジェクト
   - DataError: JSON でない・説明文が無い

【依存】
requests, monitor.config, monitor.errors
"""

import base64
import json
import logging
from typing import Any, Dict, Optional

import requests

from monitor.config import DEFAULT_ENDPOINT, DEFAULT_MODEL, DEFAULT_PROMPT, PAYLOAD_FORMATS
from monitor.errors import DataError, RemoteError, TransportError

logger = logging.getLogger(__name__)


def build_chat_payload(image_bytes: bytes, prompt: str, model: str, max_tokens: int) -> Dict[str, Any]:
    """chat-completion 形式のリクエストボディを構築"""
    b64 = base64.b64encode(image_bytes).decode("utf-8")
    return {
        "model": model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/png;base64,{b64}"},
                    },
                ],
            }
        ],
        "max_tokens": max_tokens,
    }


def _raise_embedded_error(body: Dict[str, Any], status: int) -> None:
    error = body.get("error")
    if not error:
        return
    if isinstance(error, dict):
        message = str(error.get("message", ""))
        error_type = str(error.get("type", ""))
    else:
        message, error_type = str(error), ""
    raise RemoteError(
        f"API error: {message} ({error_type})",
        status=status,
        error_message=message,
        error_type=error_type,
    )


def parse_chat_response(body: Dict[str, Any], status: int = 200) -> str:
    _raise_embedded_error(body, status)
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str):
        raise DataError("No description found in response")
    return content


def parse_multipart_response(body: Dict[str, Any], status: int = 200) -> str:
    _raise_embedded_error(body, status)
    try:
        description = body["data"][0]["description"]
    except (KeyError, IndexError, TypeError):
        description = None
    if not isinstance(description, str):
        raise DataError("No description found in response")
    return description


class DescriptionClient:
    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        prompt: str = DEFAULT_PROMPT,
        payload_format: str = "chat",
        max_tokens: int = 1024,
        session: Optional[requests.Session] = None,
    ):
        if payload_format not in PAYLOAD_FORMATS:
            raise NotImplementedError(f"Payload format '{payload_format}' is not supported")
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.prompt = prompt
        self.payload_format = payload_format
        self.max_tokens = max_tokens
        self._http = session or requests

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _send(self, image_bytes: bytes) -> requests.Response:
        if self.payload_format == "chat":
            payload = build_chat_payload(image_bytes, self.prompt, self.model, self.max_tokens)
            return self._http.post(self.endpoint, headers=self._headers(), json=payload)

        files = {"image": ("screenshot.png", image_bytes, "image/png")}
        data = {"model": self.model, "prompt": self.prompt}
        return self._http.post(self.endpoint, headers=self._headers(), data=data, files=files)

    def describe(self, image_bytes: bytes) -> str:
        """
        画像を API に送信して説明文を返す

        Input:
            image_bytes: PNG エンコード済みの画像
        Output:
            str: API が返した説明文
        Raises:
            TransportError / RemoteError / DataError
        """
        try:
            response = self._send(image_bytes)
            body_text = response.text
        except requests.RequestException as e:
            raise TransportError(f"API への送信に失敗: {e}") from e

        logger.debug("API response (%d): %s", response.status_code, body_text)

        if not 200 <= response.status_code < 300:
            error_message = error_type = None
            try:
                error = json.loads(body_text).get("error")
                if isinstance(error, dict):
                    error_message = error.get("message")
                    error_type = error.get("type")
            except (ValueError, AttributeError):
                pass
            raise RemoteError(
                f"API error {response.status_code}: {body_text}",
                status=response.status_code,
                error_message=error_message,
                error_type=error_type,
            )

        try:
            body = json.loads(body_text)
        except ValueError as e:
            raise DataError(f"JSON 以外のレスポンス: {body_text[:200]}") from e
        if not isinstance(body, dict):
            raise DataError("No description found in response")

        if self.payload_format == "chat":
            return parse_chat_response(body, response.status_code)
        return parse_multipart_response(body, response.status_code)
