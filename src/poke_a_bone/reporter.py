from __future__ import annotations

import sys
import traceback
from typing import Callable, Optional


class ScoreReporter:
    """
    ゲーム終了時に一度だけホスト側のコールバックへ最終スコアを通知する。
    コールバックの例外はログに出して握りつぶす（ゲーム側には影響させない）。
    """

    def __init__(self, on_game_end: Optional[Callable[[int], None]] = None) -> None:
        self.on_game_end = on_game_end
        self._armed = False
        self.last_score: Optional[int] = None

    def arm(self) -> None:
        # 新しいゲームの開始時に呼ぶ
        self._armed = True

    def report(self, score: int) -> bool:
        if not self._armed:
            return False
        self._armed = False
        self.last_score = score
        if self.on_game_end is None:
            return True
        try:
            self.on_game_end(score)
        except Exception:
            print("[ScoreReporter] on_game_end handler failed", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
        return True
