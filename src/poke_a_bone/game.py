from __future__ import annotations

import random
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional

from . import hud
from .bones import BONES
from .config import CONFIG, GameConfig
from .controller import Feedback, GameController, GameState
from .events import Action, InputEvent
from .geometry import HitRegionMapper, ImageLayout, Rect
from .reporter import ScoreReporter
from .scheduler import Scheduler
from .storage import KeyValueStore

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# 効果音スロット
_SFX_CORRECT = 5
_SFX_INCORRECT = 6
_SFX_GAME_OVER = 7


class SkeletonGame:
    """
    骨当てゲーム本体（Pyxel 側の表示と入力の受け口）。

    - 左側の枠に骨格画像を表示し、骨ごとのクリック領域を重ねる
    - 右側のパネルに「探す骨」「残り時間」「スコア」を表示
    - 進行ロジックは GameController に任せる
    """

    width = CONFIG.width
    height = CONFIG.height

    def __init__(
        self,
        on_game_end: Optional[Callable[[int], None]] = None,
        store: Optional[KeyValueStore] = None,
        image_path: Optional[Path | str] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        config: GameConfig = CONFIG,
    ) -> None:
        self.config = config
        self.image_path = Path(image_path) if image_path else PROJECT_ROOT / config.image_path
        self.image: Any = None
        self._px: Any = None
        self._sfx_ready = False
        self._clock = clock
        self._last_time: Optional[float] = None

        self.scheduler = Scheduler()
        self.layout = ImageLayout(config.frame_x, config.frame_y, config.frame_w, config.frame_h)
        self.mapper = HitRegionMapper(BONES, self.layout)
        self.reporter = ScoreReporter(on_game_end)
        self.controller = GameController(
            self.scheduler,
            bones=BONES,
            store=store,
            reporter=self.reporter,
            rng=rng,
            config=config,
        )
        self.pointer: Optional[tuple[float, float]] = None
        self.pointer_note: Optional[str] = None
        self._last_state = GameState.IDLE
        self.controller.start()
        self._last_state = self.controller.state

    # --- game lifecycle ---

    def load_assets(self, px) -> bool:
        """Pyxel 初期化後に App から呼ばれる。画像の読み込みに失敗してもゲームは続行する。"""
        self._px = px
        self._ensure_sounds()
        if not self.image_path.exists():
            print(f"[SkeletonGame] Image not found: {self.image_path}", file=sys.stderr)
            return False
        try:
            self.image = px.Image.from_image(str(self.image_path))
        except Exception as e:
            print(f"[SkeletonGame] Image load error for '{self.image_path}': {e}", file=sys.stderr)
            self.image = None
            return False
        self.layout.image_loaded(self.image.width, self.image.height)
        return True

    def reset(self) -> None:
        self.controller.restart_game()
        self._last_state = self.controller.state

    def close(self) -> None:
        self.controller.teardown()

    def on_event(self, event: InputEvent) -> None:
        if event.action == Action.POINTER:
            self.pointer = (event.x, event.y)
            self.pointer_note = event.note
        elif event.action == Action.CLICK:
            self.pointer = (event.x, event.y)
            self.pointer_note = event.note
            self._handle_click(event.x, event.y)
        elif event.action == Action.RESTART:
            # 進行中のリスタートは受け付けない（終了画面のボタンと同じ扱い）
            if self.controller.over:
                self.reset()

    def _handle_click(self, x: float, y: float) -> None:
        if self.controller.over:
            if self.restart_button_rect().contains(x, y):
                self.reset()
            return
        name = self.mapper.hit_test(x, y)
        result = self.controller.handle_click(name)
        if result == Feedback.CORRECT:
            self._play(_SFX_CORRECT)
        elif result == Feedback.INCORRECT:
            self._play(_SFX_INCORRECT)

    def update(self) -> None:
        now = self._clock()
        if self._last_time is None:
            elapsed = 0.0
        else:
            # 秒の浮動小数点誤差で期限ちょうどのタイマーを取りこぼさないよう丸める
            elapsed = min(round((now - self._last_time) * 1000.0, 3), float(self.config.max_frame_ms))
        self._last_time = now
        self.scheduler.advance(elapsed)
        self._check_game_over()

    def _check_game_over(self) -> None:
        state = self.controller.state
        if state != self._last_state and self.controller.over:
            self._play(_SFX_GAME_OVER)
        self._last_state = state

    def restart_button_rect(self) -> Rect:
        x, y, w, h = self.config.restart_button
        return Rect(x, y, x + w, y + h)

    # --- sound ---

    def _setup_sounds(self) -> None:
        px = self._px
        px.sounds[_SFX_CORRECT].set(notes="c3e3g3c4", tones="t", volumes="4", effects="n", speed=6)
        px.sounds[_SFX_INCORRECT].set(notes="c2", tones="s", volumes="3", effects="f", speed=15)
        px.sounds[_SFX_GAME_OVER].set(notes="g3e3c3", tones="p", volumes="4", effects="s", speed=12)
        self._sfx_ready = True

    def _ensure_sounds(self) -> None:
        if self._sfx_ready or self._px is None:
            return
        try:
            self._setup_sounds()
        except Exception as e:
            print(f"[SkeletonGame] Sound setup failed: {e}", file=sys.stderr)
            self._sfx_ready = False

    def _play(self, sound: int) -> None:
        if not self._sfx_ready:
            return
        try:
            self._px.play(1, sound)
        except Exception as e:
            print(f"[SkeletonGame] Sound play failed: {e}", file=sys.stderr)

    # --- draw ---

    def draw(self, px) -> None:
        c = self.config
        px.cls(c.background_color)
        hud.draw_centered_text(c.title_text, 4, c.text_color, scale=2, width=self.width, outline=True)
        self._draw_skeleton(px)
        self._draw_regions(px)
        self._draw_panel(px)
        if self.pointer is not None and self.pointer_note == "hand":
            x, y = self.pointer
            px.circb(int(x), int(y), 3, c.accent_color)

    def _draw_skeleton(self, px) -> None:
        c = self.config
        lay = self.layout.measure()
        if self.image is None or lay.width <= 0:
            px.rectb(c.frame_x, c.frame_y, c.frame_w, c.frame_h, 1)
            px.text(c.frame_x + 8, c.frame_y + c.frame_h // 2, "Skeleton image missing", c.region_color)
            return
        iw, ih = self.image.width, self.image.height
        scale = lay.width / iw
        # scale 指定時の blt は転送先矩形の中心を基準に拡縮される
        x = lay.offset_x + (lay.width - iw) / 2
        y = lay.offset_y + (lay.height - ih) / 2
        px.blt(x, y, self.image, 0, 0, iw, ih, None, scale=scale)

    def _draw_regions(self, px) -> None:
        c = self.config
        feedback = self.controller.feedback
        hovered = None
        if self.pointer is not None and self.controller.state == GameState.ACTIVE:
            hovered = self.mapper.hit_test(*self.pointer)
        for region in self.mapper.regions:
            r = region.rect
            if r.width <= 0 or r.height <= 0:
                continue
            fb = feedback.get(region.bone_name)
            if fb is not None:
                color = c.correct_color if fb == Feedback.CORRECT else c.incorrect_color
                px.rect(r.x1, r.y1, r.width, r.height, color)
            else:
                color = c.accent_color if region.bone_name == hovered else c.region_color
                px.rectb(r.x1, r.y1, r.width, r.height, color)

    def _draw_panel(self, px) -> None:
        c = self.config
        ctl = self.controller
        x, y = c.panel_x, c.panel_y
        px.text(x, y, "Find the:", c.region_color)
        px.text(x, y + 8, ctl.target.name if ctl.target else "-", c.text_color)

        px.text(x, y + 24, "Time left:", c.region_color)
        px.text(x, y + 32, str(ctl.time_remaining), c.text_color)
        gauge_w = self.width - x - 6
        ratio = ctl.time_remaining / max(1, c.round_time)
        px.rect(x, y + 40, gauge_w, 3, 2)
        px.rect(x, y + 40, int(gauge_w * ratio), 3, c.incorrect_color)

        px.text(x, y + 52, "Score:", c.region_color)
        px.text(x, y + 60, str(ctl.score), c.text_color)
        px.text(x, y + 76, "Best:", c.region_color)
        px.text(x, y + 84, str(ctl.high_score), c.text_color)
        remaining = len(ctl.pool) + (1 if ctl.active else 0)
        px.text(x, y + 100, f"Bones left: {remaining}/{len(BONES)}", c.region_color)

        if not ctl.over:
            return
        message = "Completed!" if ctl.completed else "Time Up!"
        px.text(x, y + 120, message, c.accent_color)
        if ctl.new_high_score:
            px.text(x, y + 130, "New best!", c.correct_color)
        last = self.reporter.last_score
        if last:
            px.text(x, y + 144, f"Final Score: {last}", c.text_color)

        bx, by, bw, bh = c.restart_button
        blink_on = (px.frame_count // c.prompt_blink) % 2 == 0
        px.rectb(bx, by, bw, bh, c.accent_color if blink_on else c.text_color)
        px.text(bx + 12, by + 5, "Restart Game", c.text_color)
