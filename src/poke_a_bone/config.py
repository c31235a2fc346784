from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GameConfig:
    title_text: str = "Poke a Bone!"
    window_title: str = "Poke a Bone!"
    width: int = 256
    height: int = 256

    # ラウンド進行
    round_time: int = 100             # 1ラウンドの持ち時間（カウント数）
    tick_interval_ms: int = 100       # カウントダウン 1 回あたりの間隔
    wrong_penalty: int = 10           # 不正解時に減る残り時間
    feedback_ms: int = 1000           # 不正解ハイライトを消すまでの時間
    advance_delay_ms: int = 1000      # 正解後、次の骨を出すまでの時間
    max_frame_ms: int = 250           # 1フレームで進める時間の上限（ウィンドウ移動などの停止対策）

    # 画面レイアウト
    frame_x: int = 0                  # 骨格画像を置く枠
    frame_y: int = 24
    frame_w: int = 160
    frame_h: int = 232
    panel_x: int = 164                # 右側の情報パネル
    panel_y: int = 28
    restart_button: tuple[int, int, int, int] = (168, 196, 84, 16)

    # 色（Pyxel パレット番号）
    background_color: int = 0
    region_color: int = 5
    correct_color: int = 11
    incorrect_color: int = 8
    text_color: int = 7
    accent_color: int = 10
    prompt_blink: int = 30

    image_path: str = "assets/skeleton.png"
    scores_path: str = "scores.json"


CONFIG = GameConfig()
