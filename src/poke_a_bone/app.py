from __future__ import annotations

import queue
from queue import Queue
import sys
import traceback
from typing import Any, List

from .config import CONFIG
from .events import Action, InputEvent
from .input_providers import InputProvider


class App:
    def __init__(self, game: Any, providers: List[InputProvider], scale: int = 3) -> None:
        self.game = game
        self.providers = providers
        self.scale = scale
        self.events: "Queue[InputEvent]" = Queue()
        self._px = None  # Pyxel モジュール（遅延読み込み）
        self._should_quit = False

    # --- ライフサイクル ---

    def run(self) -> None:
        import pyxel  # ユニットテスト時の import 失敗を避けるため遅延インポート

        self._px = pyxel
        # Esc はプロバイダ経由の QUIT で処理するので、Pyxel 標準の終了キーは無効にする
        pyxel.init(
            self.game.width,
            self.game.height,
            title=CONFIG.window_title,
            display_scale=self.scale,
            quit_key=pyxel.KEY_NONE,
        )
        pyxel.mouse(True)

        # スレッド型プロバイダを起動（カメラが無い等で失敗してもマウスで遊べる）
        for p in self.providers:
            if hasattr(p, "start"):
                try:
                    p.start(self.events)
                except Exception:
                    traceback.print_exc(file=sys.stderr)
                    setattr(p, "_error_logged", True)

        loader = getattr(self.game, "load_assets", None)
        if callable(loader):
            loader(pyxel)
        pyxel.run(self._update, self._draw)

    def shutdown(self) -> None:
        # ゲームのタイマーとプロバイダのスレッドを片付ける
        close = getattr(self.game, "close", None)
        if callable(close):
            close()
        for p in self.providers:
            if hasattr(p, "stop"):
                try:
                    p.stop()
                except Exception:
                    traceback.print_exc(file=sys.stderr)

    def _update(self) -> None:
        self.poll_providers()
        self.dispatch_events()

        # ゲームロジックの更新
        try:
            self.game.update()
        except Exception:
            traceback.print_exc(file=sys.stderr)

        if self._should_quit:
            self.shutdown()
            assert self._px is not None
            self._px.quit()

    def poll_providers(self) -> None:
        # 1フレーム毎に Pyxel へアクセスが必要なプロバイダをポーリング
        for p in self.providers:
            if not hasattr(p, "poll") or getattr(p, "_error_logged", False):
                continue
            try:
                p.poll(self._px, self.events)
            except Exception:
                # ログが毎フレーム大量に出ないよう、各プロバイダにつき一度だけ詳細を出力し以後は止める
                traceback.print_exc(file=sys.stderr)
                setattr(p, "_error_logged", True)

    def dispatch_events(self) -> None:
        # 入力イベントキューを空にしつつゲームへ転送
        while True:
            try:
                e = self.events.get_nowait()
            except queue.Empty:
                break
            if e.action == Action.QUIT:
                self._should_quit = True
                continue
            try:
                self.game.on_event(e)
            except Exception:
                traceback.print_exc(file=sys.stderr)

    def _draw(self) -> None:
        assert self._px is not None
        try:
            self.game.draw(self._px)
        except Exception:
            # 描画で例外が起きても画面をクリアして安全に継続
            traceback.print_exc(file=sys.stderr)
            self._px.cls(0)
