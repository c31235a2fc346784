from __future__ import annotations

from typing import Optional

from PyxelUniversalFont import Writer as PythonUniversalFont

FONT_NAME = "IPA_Gothic.ttf"
FONT_BASE_SIZE = 8

_writer: Optional[PythonUniversalFont] = None


def _get_writer() -> PythonUniversalFont:
    # フォント読み込みは重いので初回描画時に行う
    global _writer
    if _writer is None:
        _writer = PythonUniversalFont(FONT_NAME)
    return _writer


def measure_text_width(text: str, scale: int = 1) -> int:
    if not text:
        return 0
    font_size = FONT_BASE_SIZE * max(1, scale)
    # 英数字はおおよそ全角の半分の幅
    return (font_size * len(text) + 1) // 2


def draw_text(text: str, x: int, y: int, color: int, scale: int = 1, outline: bool = False) -> None:
    if not text:
        return
    writer = _get_writer()
    font_size = FONT_BASE_SIZE * max(1, scale)
    if outline:
        for ox, oy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            writer.draw(x + ox, y + oy, text, font_size=font_size, font_color=0, background_color=-1)
    writer.draw(x, y, text, font_size=font_size, font_color=color, background_color=-1)


def draw_centered_text(text: str, y: int, color: int, scale: int = 1, width: int = 256, offset_x: int = 0, outline: bool = False) -> None:
    x = width // 2 - measure_text_width(text, scale) // 2 + offset_x
    draw_text(text, x, y, color, scale, outline)
