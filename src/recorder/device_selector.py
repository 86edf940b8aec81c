"""
マイク入力デバイスの列挙と選択

【使用方法】
from recorder.device_selector import select_device

# デフォルト入力デバイス
device = select_device("auto")

# 一覧を表示して番号入力（10秒以内に入力がなければデフォルト）
device = select_device("interactive", timeout=10.0)
print(device.name, device.channels, device.sample_rate)

【処理内容】
1. sounddevice.query_devices() から max_input_channels > 0 のデバイスを列挙
   （録音チャンネル数は MAX_RECORD_CHANNELS までに抑える）
2. auto: sounddevice.default.device[0]（無ければ先頭の入力デバイス）
3. interactive: 番号付き一覧を表示し、標準入力をデーモンスレッドで読み取って
   timeout 秒だけ待つ。タイムアウト・空入力・不正な番号ならデフォルトを使う
4. 入力デバイスが1つも無ければ AudioDeviceError

【依存】
sounddevice（遅延インポート）, monitor.errors
"""

import logging
import queue
import sys
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from monitor.errors import AudioDeviceError

logger = logging.getLogger(__name__)

SELECTION_TIMEOUT = 10.0
# ALSA の default/pulse は 32ch を報告するので録音はステレオまでに抑える
MAX_RECORD_CHANNELS = 2


@dataclass
class InputDevice:
    index: int
    name: str
    channels: int
    sample_rate: int


def load_sounddevice():
    """sounddevice は PortAudio をロードするので使う時にだけインポートする"""
    import sounddevice
    return sounddevice


def list_input_devices() -> List[InputDevice]:
    devices = []
    for index, info in enumerate(load_sounddevice().query_devices()):
        channels = int(info.get("max_input_channels", 0) or 0)
        if channels <= 0:
            continue
        devices.append(InputDevice(
            index=index,
            name=info.get("name", f"Device {index}"),
            channels=min(channels, MAX_RECORD_CHANNELS),
            sample_rate=int(info.get("default_samplerate") or 44100),
        ))
    return devices


def default_input_device(devices: List[InputDevice]) -> InputDevice:
    if not devices:
        raise AudioDeviceError("No input device available")

    try:
        default_index = load_sounddevice().default.device[0]
    except Exception as e:
        logger.debug("デフォルト入力デバイスの取得に失敗: %s", e)
        default_index = None

    for device in devices:
        if device.index == default_index:
            return device
    return devices[0]


def parse_choice(choice: Optional[str], devices: List[InputDevice]) -> Optional[InputDevice]:
    """入力文字列（1始まりの番号）をデバイスに変換。不正なら None"""
    if choice is None or not choice.strip():
        return None
    try:
        index = int(choice.strip())
    except ValueError:
        return None
    if 0 < index <= len(devices):
        return devices[index - 1]
    return None


def read_line_with_timeout(
    timeout: float,
    read_line: Optional[Callable[[], str]] = None,
) -> Optional[str]:
    """デーモンスレッドで1行読み取り、timeout 秒で諦めて None を返す"""
    read_line = read_line or sys.stdin.readline
    lines: "queue.Queue[str]" = queue.Queue(maxsize=1)

    def reader():
        try:
            lines.put(read_line())
        except (OSError, ValueError) as e:
            logger.debug("標準入力の読み取りに失敗: %s", e)

    threading.Thread(target=reader, name="MicPrompt", daemon=True).start()
    try:
        return lines.get(timeout=timeout)
    except queue.Empty:
        return None


def prompt_for_device(
    devices: List[InputDevice],
    timeout: float = SELECTION_TIMEOUT,
    read_line: Optional[Callable[[], str]] = None,
) -> Optional[InputDevice]:
    if not devices:
        print("No input devices found.")
        return None

    print("Available input devices:")
    for i, device in enumerate(devices, start=1):
        print(f"{i}. {device.name}")
    print("Enter the number of the device you want to use (or press Enter for default):")

    choice = read_line_with_timeout(timeout, read_line)
    if choice is None or not choice.strip():
        print("No selection made. Using default device.")
        return None

    device = parse_choice(choice, devices)
    if device is None:
        print("Invalid choice. Using default device.")
    return device


def select_device(mode: str = "auto", timeout: float = SELECTION_TIMEOUT) -> InputDevice:
    devices = list_input_devices()
    if mode == "interactive":
        chosen = prompt_for_device(devices, timeout)
        if chosen is not None:
            return chosen
    return default_input_device(devices)
