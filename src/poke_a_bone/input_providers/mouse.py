from __future__ import annotations

from queue import Queue

from ..events import Action, InputEvent


class MouseProvider:
    """
    Pyxel のマウス・キーボード状態をポーリングする入力プロバイダ。
    - 左クリック -> CLICK (マウス座標)
    - R / Enter  -> RESTART
    - Esc        -> QUIT
    """

    def __init__(self, note: str = "mouse") -> None:
        self._note = note
        self._last_pos = (-1, -1)

    def poll(self, px, out_queue: Queue) -> None:  # type: ignore[override]
        # Pyxel が利用可能になった後にキーコードへアクセスする（遅延参照）
        if px is None:
            return

        x, y = px.mouse_x, px.mouse_y
        if (x, y) != self._last_pos:
            self._last_pos = (x, y)
            out_queue.put(InputEvent(action=Action.POINTER, x=x, y=y, note=self._note))

        if px.btnp(px.MOUSE_BUTTON_LEFT):
            out_queue.put(InputEvent(action=Action.CLICK, x=x, y=y, note=self._note))
        if px.btnp(px.KEY_R) or px.btnp(px.KEY_RETURN):
            out_queue.put(InputEvent(action=Action.RESTART, note=self._note))
        if px.btnp(px.KEY_ESCAPE):
            out_queue.put(InputEvent(action=Action.QUIT, note=self._note))
