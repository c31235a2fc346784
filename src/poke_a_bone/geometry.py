from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Protocol

if TYPE_CHECKING:
    from .bones import Bone


@dataclass(frozen=True)
class Rect:
    """軸に平行な矩形。パーセント座標・ピクセル座標のどちらにも使う。"""
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def contains(self, x: float, y: float) -> bool:
        # 隣接する矩形で二重に当たらないよう右端・下端は含めない
        return self.x1 <= x < self.x2 and self.y1 <= y < self.y2

    def scaled(self, sx: float, sy: float, ox: float = 0.0, oy: float = 0.0) -> "Rect":
        return Rect(self.x1 * sx + ox, self.y1 * sy + oy, self.x2 * sx + ox, self.y2 * sy + oy)


@dataclass(frozen=True)
class Layout:
    # 表示中の画像サイズと、枠（フレーム）左上からのオフセット
    width: float = 0.0
    height: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0


class LayoutProvider(Protocol):
    def measure(self) -> Layout: ...
    def subscribe(self, callback: Callable[[Layout], None]) -> None: ...


class ImageLayout:
    """
    画像を枠の中にアスペクト比を保って中央配置したときの位置を計測する。
    - 画像が読み込まれるまではサイズ 0
    - resize / image_loaded のたびに購読者へ通知する
    """

    def __init__(self, frame_x: float = 0, frame_y: float = 0, frame_w: float = 0, frame_h: float = 0) -> None:
        self.frame = (float(frame_x), float(frame_y), float(frame_w), float(frame_h))
        self.image_size = (0, 0)
        self._listeners: List[Callable[[Layout], None]] = []

    def subscribe(self, callback: Callable[[Layout], None]) -> None:
        self._listeners.append(callback)

    def resize(self, frame_x: float, frame_y: float, frame_w: float, frame_h: float) -> None:
        self.frame = (float(frame_x), float(frame_y), float(frame_w), float(frame_h))
        self._notify()

    def image_loaded(self, width: int, height: int) -> None:
        self.image_size = (max(0, int(width)), max(0, int(height)))
        self._notify()

    def measure(self) -> Layout:
        fx, fy, fw, fh = self.frame
        iw, ih = self.image_size
        if iw <= 0 or ih <= 0 or fw <= 0 or fh <= 0:
            return Layout(0.0, 0.0, fx, fy)
        scale = min(fw / iw, fh / ih)
        width = iw * scale
        height = ih * scale
        return Layout(width, height, fx + (fw - width) / 2, fy + (fh - height) / 2)

    def _notify(self) -> None:
        layout = self.measure()
        for cb in list(self._listeners):
            cb(layout)


def scale_rect(rect: Rect, layout: Layout) -> Rect:
    # パーセント座標 -> 画面上のピクセル座標
    return rect.scaled(layout.width / 100, layout.height / 100, layout.offset_x, layout.offset_y)


@dataclass(frozen=True)
class HitRegion:
    bone_name: str
    side: Optional[str]  # None: 単独 / "left" / "right": 左右一対
    rect: Rect


class HitRegionMapper:
    """骨のパーセント座標を、現在のレイアウトでのクリック領域に変換して保持する。"""

    def __init__(self, bones: Iterable["Bone"], layout_provider: LayoutProvider) -> None:
        self.bones = tuple(bones)
        self.layout = layout_provider.measure()
        self.regions: List[HitRegion] = []
        self._rebuild()
        layout_provider.subscribe(self.on_layout_changed)

    def on_layout_changed(self, layout: Layout) -> None:
        self.layout = layout
        self._rebuild()

    def _rebuild(self) -> None:
        regions: List[HitRegion] = []
        for bone in self.bones:
            if len(bone.regions) == 2:
                sides: tuple[Optional[str], ...] = ("left", "right")
            else:
                sides = (None,) * len(bone.regions)
            for side, rect in zip(sides, bone.regions):
                regions.append(HitRegion(bone.name, side, scale_rect(rect, self.layout)))
        self.regions = regions

    def regions_for(self, bone_name: str) -> List[HitRegion]:
        return [r for r in self.regions if r.bone_name == bone_name]

    def hit_test(self, x: float, y: float) -> Optional[str]:
        # 後から定義した領域が上に描かれるので、逆順に調べる
        for region in reversed(self.regions):
            if region.rect.contains(x, y):
                return region.bone_name
        return None
