from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Tuple


class TimerHandle:
    """call_later が返すハンドル。cancel() 後はコールバックが実行されない。"""

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def _run(self) -> None:
        if not self.cancelled:
            self.cancelled = True  # 一度だけ実行
            self._callback()


class Scheduler:
    """
    ミリ秒単位の仮想時計で動く、遅延コールバックの待ち行列。
    実ゲームではフレーム毎の経過時間で advance() し、テストでは任意に進める。
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.now + max(0.0, float(delay_ms)), callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def advance(self, ms: float) -> None:
        target = self.now + max(0.0, float(ms))
        # コールバック内で追加された予定も、期限が範囲内なら同じ advance で実行する
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = due
            handle._run()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)
