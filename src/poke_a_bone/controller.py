from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Optional, Set

from .bones import BONES, Bone
from .config import CONFIG, GameConfig
from .reporter import ScoreReporter
from .scheduler import Scheduler, TimerHandle
from .storage import KeyValueStore, MemoryStore, load_high_score, save_high_score


class GameState(Enum):
    IDLE = auto()              # マウント前 / teardown 後
    ACTIVE = auto()            # 出題中（カウントダウン中）
    ROUND_TRANSITION = auto()  # 正解後、次の骨を出すまでのクールダウン
    ENDED = auto()             # 時間切れ
    COMPLETED = auto()         # 全ての骨を出し切った


class Feedback(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass
class RoundState:
    pool: Set[str]
    target: Optional[Bone] = None
    time_remaining: int = 0
    feedback: Dict[str, Feedback] = field(default_factory=dict)
    score: int = 0


class GameController:
    """
    ラウンドの進行（出題・カウントダウン・採点・終了判定）を管理するステートマシン。

    - 時間経過はすべて Scheduler 上の遅延コールバックで表現する
    - 状態をリセットするたびに保留中のタイマーを全てキャンセルする
    - Pyxel には依存しない（テストでそのまま動かせる）
    """

    def __init__(
        self,
        scheduler: Scheduler,
        bones: Iterable[Bone] = BONES,
        store: Optional[KeyValueStore] = None,
        reporter: Optional[ScoreReporter] = None,
        rng: Optional[random.Random] = None,
        config: GameConfig = CONFIG,
    ) -> None:
        self.scheduler = scheduler
        self.bones: Dict[str, Bone] = {b.name: b for b in bones}
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self.reporter = reporter if reporter is not None else ScoreReporter()
        self.rng = rng if rng is not None else random.Random()
        self.config = config

        self.state = GameState.IDLE
        self.round = RoundState(pool=set(self.bones), time_remaining=config.round_time)
        self.high_score = load_high_score(self.store)
        self.new_high_score = False

        self._tick_handle: Optional[TimerHandle] = None
        self._advance_handle: Optional[TimerHandle] = None
        self._feedback_handle: Optional[TimerHandle] = None

    # --- 参照用 ---

    @property
    def target(self) -> Optional[Bone]:
        return self.round.target

    @property
    def time_remaining(self) -> int:
        return self.round.time_remaining

    @property
    def score(self) -> int:
        return self.round.score

    @property
    def feedback(self) -> Dict[str, Feedback]:
        return dict(self.round.feedback)

    @property
    def pool(self) -> frozenset:
        return frozenset(self.round.pool)

    @property
    def active(self) -> bool:
        return self.state in (GameState.ACTIVE, GameState.ROUND_TRANSITION)

    @property
    def completed(self) -> bool:
        return self.state == GameState.COMPLETED

    @property
    def over(self) -> bool:
        return self.state in (GameState.ENDED, GameState.COMPLETED)

    # --- ライフサイクル ---

    def start(self) -> None:
        # マウント時: Idle -> Active
        self.restart_game()

    def restart_game(self) -> None:
        self._cancel_timers()
        self.round = RoundState(pool=set(self.bones), time_remaining=self.config.round_time)
        self.new_high_score = False
        self.reporter.arm()
        self.state = GameState.ACTIVE
        self.select_new_bone()

    def teardown(self) -> None:
        # アンマウント時: 以降のコールバックは何もしない
        self._cancel_timers()
        self.state = GameState.IDLE

    def select_new_bone(self) -> None:
        self._advance_handle = None
        if not self.round.pool:
            self.end_game(completed=True)
            return
        # 乱数の再現性のため、集合を並べてから選ぶ
        name = self.rng.choice(sorted(self.round.pool))
        self.round.pool.discard(name)
        self.round.target = self.bones[name]
        self.round.time_remaining = self.config.round_time
        self._clear_feedback()
        self.state = GameState.ACTIVE
        self._arm_tick()

    def tick(self) -> None:
        self._tick_handle = None
        if self.state != GameState.ACTIVE:
            return
        self.round.time_remaining = max(self.round.time_remaining - 1, 0)
        if self.round.time_remaining == 0:
            self.end_game(completed=False)
        else:
            self._arm_tick()

    def handle_click(self, bone_name: Optional[str]) -> Optional[Feedback]:
        """クリックを採点する。無視された場合は None を返す。"""
        if self.state != GameState.ACTIVE or self.round.target is None:
            return None
        if bone_name is None or bone_name not in self.bones:
            return None

        if bone_name == self.round.target.name:
            self.round.score += self.round.time_remaining
            self._cancel(self._feedback_handle)
            self._feedback_handle = None
            self.round.feedback = {bone_name: Feedback.CORRECT}
            # クールダウン中はカウントダウンを止める
            self._cancel(self._tick_handle)
            self._tick_handle = None
            self.state = GameState.ROUND_TRANSITION
            self._advance_handle = self.scheduler.call_later(self.config.advance_delay_ms, self._advance)
            return Feedback.CORRECT

        self.round.time_remaining = max(self.round.time_remaining - self.config.wrong_penalty, 0)
        self.round.feedback = {bone_name: Feedback.INCORRECT}
        # 最後に設定したタイマーだけを有効にする
        self._cancel(self._feedback_handle)
        self._feedback_handle = self.scheduler.call_later(self.config.feedback_ms, self._clear_feedback)
        if self.round.time_remaining == 0:
            self.end_game(completed=False)
        return Feedback.INCORRECT

    def end_game(self, completed: bool) -> None:
        if not self.active:
            return
        self._cancel_timers()
        self.round.feedback = {}
        self.state = GameState.COMPLETED if completed else GameState.ENDED
        score = self.round.score
        self.reporter.report(score)
        if score > self.high_score:
            self.high_score = score
            self.new_high_score = True
            save_high_score(self.store, score)

    # --- 内部処理 ---

    def _advance(self) -> None:
        if self.state != GameState.ROUND_TRANSITION:
            return
        self.select_new_bone()

    def _arm_tick(self) -> None:
        self._cancel(self._tick_handle)
        self._tick_handle = self.scheduler.call_later(self.config.tick_interval_ms, self.tick)

    def _clear_feedback(self) -> None:
        self._cancel(self._feedback_handle)
        self._feedback_handle = None
        self.round.feedback = {}

    def _cancel_timers(self) -> None:
        for handle in (self._tick_handle, self._advance_handle, self._feedback_handle):
            self._cancel(handle)
        self._tick_handle = None
        self._advance_handle = None
        self._feedback_handle = None

    @staticmethod
    def _cancel(handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()
