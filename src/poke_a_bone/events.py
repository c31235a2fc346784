from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional
import time


class Action(Enum):
    # ゲーム内で扱う抽象アクション
    CLICK = auto()     # 画面上の位置をクリック（x, y を使用）
    POINTER = auto()   # カーソル位置の更新のみ（手のトラッキングなど）
    RESTART = auto()   # リスタート要求
    QUIT = auto()      # 終了要求


@dataclass
class InputEvent:
    # 入力イベント（抽象アクション＋画面座標）
    action: Action
    x: float = 0.0  # キャンバス座標
    y: float = 0.0
    value: float = 1.0  # 連続量がある場合に使用（ピンチの強さなど）
    timestamp: float = field(default_factory=time.time)  # イベント発生時刻（秒）
    note: Optional[str] = None  # 入力元のメモ
