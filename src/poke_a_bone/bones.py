from __future__ import annotations

from dataclasses import dataclass

from .geometry import Rect


@dataclass(frozen=True)
class Bone:
    # 骨の名前（表示名を兼ねる）と、画像に対するパーセント座標の矩形（1つ or 左右2つ）
    name: str
    regions: tuple[Rect, ...]

    @property
    def bilateral(self) -> bool:
        return len(self.regions) == 2


# 参照画像（assets/skeleton.png）上の位置。値は画像幅・高さに対する % 。
# 8 個の値を持つものは左右一対の骨。
BONE_TABLE: tuple[tuple[str, str], ...] = (
    ("Skull", "39,0,61,13"),
    ("Clavicle", "23,17,76,19"),
    ("Scapula", "24,19,35,22,65,19,75,22"),
    ("Ribs", "36,20,64,32"),
    ("Humerus", "18,22,27,35,70,22,80,35"),
    ("Ulna", "17,35,23,48,75,35,83,48"),
    ("Radius", "10,35,16,48,83,35,90,48"),
    ("Carpals", "2,48,20,50,82,48,98,50"),
    ("Metacarpals", "2,50,20,52,82,50,98,52"),
    ("Phalanges (Hand)", "2,52,20,54,82,52,98,54"),
    ("Pelvis", "29,37,70,47"),
    ("Femur", "30,48,47,66,53,48,68,66"),
    ("Patella", "30,67,47,72,53,67,68,72"),
    ("Tibia", "37,73,45,90,53,73,60,90"),
    ("Fibula", "30,73,35,90,62,73,66,90"),
    ("Tarsals", "28,91,45,93,53,91,69,93"),
    ("Metatarsals", "24,93,45,95,53,93,72,95"),
    ("Phalanges (Foot)", "20,95,45,99,53,95,74,99"),
)


def parse_coords(coords: str) -> tuple[Rect, ...]:
    """
    "x1,y1,x2,y2" または "x1,y1,x2,y2,x1,y1,x2,y2" を矩形のタプルに変換する。
    値の個数・範囲・向きが不正なら ValueError。
    """
    try:
        values = [float(v) for v in coords.split(",")]
    except ValueError as exc:
        raise ValueError(f"Non-numeric coordinate in {coords!r}") from exc
    if len(values) not in (4, 8):
        raise ValueError(f"Expected 4 or 8 coordinates, got {len(values)}: {coords!r}")

    rects = []
    for i in range(0, len(values), 4):
        x1, y1, x2, y2 = values[i:i + 4]
        if not all(0.0 <= v <= 100.0 for v in (x1, y1, x2, y2)):
            raise ValueError(f"Coordinate out of 0-100 range: {coords!r}")
        if x1 >= x2 or y1 >= y2:
            raise ValueError(f"Empty or inverted rectangle: {coords!r}")
        rects.append(Rect(x1, y1, x2, y2))
    return tuple(rects)


def build_catalog(table: tuple[tuple[str, str], ...] = BONE_TABLE) -> tuple[Bone, ...]:
    catalog = tuple(Bone(name=name, regions=parse_coords(coords)) for name, coords in table)
    validate_catalog(catalog)
    return catalog


def validate_catalog(catalog: tuple[Bone, ...]) -> None:
    # 名前の重複はプールの管理を壊すので起動時に弾く
    seen: set[str] = set()
    for bone in catalog:
        if not bone.name:
            raise ValueError("Bone name must not be empty")
        if bone.name in seen:
            raise ValueError(f"Duplicate bone name: {bone.name}")
        if len(bone.regions) not in (1, 2):
            raise ValueError(f"{bone.name}: expected one or two regions")
        seen.add(bone.name)


BONES: tuple[Bone, ...] = build_catalog()
BONES_BY_NAME: dict[str, Bone] = {bone.name: bone for bone in BONES}
