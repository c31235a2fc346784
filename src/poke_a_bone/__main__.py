from __future__ import annotations

import argparse
import random
from typing import List, Optional

from . import __version__
from .app import App
from .config import CONFIG
from .game import PROJECT_ROOT, SkeletonGame
from .storage import JsonFileStore, KeyValueStore, MemoryStore


def _build_provider(spec: str):
    name, _, param = spec.partition(":")
    name = name.strip()
    arg = param.strip()

    if name == "mouse":
        from .input_providers.mouse import MouseProvider

        return MouseProvider()
    if name == "mediapipe_hand":
        from .input_providers.mediapipe_hand import HandProvider

        camera_index = 0
        if arg:
            try:
                camera_index = int(arg)
            except ValueError as exc:
                raise SystemExit(f"Invalid camera index '{arg}' for mediapipe_hand provider") from exc
        return HandProvider(camera_index=camera_index)
    raise SystemExit(f"Unknown provider: {name}")


def _report_final_score(score: int) -> None:
    print(f"Final Score: {score}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Poke a Bone! - find the highlighted bone before time runs out")
    parser.add_argument(
        "--provider",
        action="append",
        metavar="SPEC",
        help="Input provider spec (mouse, mediapipe_hand or mediapipe_hand:1). Repeat to combine.",
    )
    parser.add_argument("--image", default=None, help="Skeleton reference image (default: assets/skeleton.png)")
    parser.add_argument("--scores", default=None, help="High score file (default: scores.json)")
    parser.add_argument("--no-save", action="store_true", help="Keep the high score for this session only")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the bone order")
    parser.add_argument("--scale", type=int, default=3, help="Pyxel window scale")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    store: KeyValueStore
    if args.no_save:
        store = MemoryStore()
    else:
        store = JsonFileStore(args.scores or PROJECT_ROOT / CONFIG.scores_path)

    provider_specs: List[str] = list(args.provider) if args.provider else []
    # マウスは常に使えるようにしておく（Esc での終了もここで拾う）
    if not any(spec.split(":")[0].strip().lower() == "mouse" for spec in provider_specs):
        provider_specs.append("mouse")
    providers = [_build_provider(spec) for spec in provider_specs]

    rng: Optional[random.Random] = random.Random(args.seed) if args.seed is not None else None
    game = SkeletonGame(
        on_game_end=_report_final_score,
        store=store,
        image_path=args.image,
        rng=rng,
    )

    app = App(game=game, providers=providers, scale=args.scale)
    app.run()


if __name__ == "__main__":
    main()
