from __future__ import annotations

from queue import Queue
from typing import Protocol, Union


class PollingProvider(Protocol):
    # 毎フレーム App から呼ばれ、Pyxel の入力状態をイベントに変換する
    def poll(self, px, out_queue: Queue) -> None: ...


class ThreadedProvider(Protocol):
    # カメラなど、別スレッドで入力を集めるプロバイダ
    def start(self, out_queue: Queue) -> None: ...
    def stop(self) -> None: ...


InputProvider = Union[PollingProvider, ThreadedProvider]
