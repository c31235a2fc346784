from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, Optional, Protocol

HIGH_SCORE_KEY = "highScore"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    # セッション中だけ保持するストア（テスト用・--no-save 用）
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """フラットな JSON オブジェクトとしてファイルに保存するストア。"""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8-sig") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return {str(k): str(v) for k, v in raw.items()}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read()
        except ValueError:
            # 壊れたファイルは上書きする
            data = {}
        data[key] = value
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def load_high_score(store: KeyValueStore) -> int:
    # 読めない・壊れている場合は 0 として扱い、ゲームは続行する
    try:
        raw = store.get(HIGH_SCORE_KEY)
    except (OSError, ValueError) as e:
        print(f"[storage] Could not read high score: {e}", file=sys.stderr)
        return 0
    if raw is None:
        return 0
    try:
        return max(0, int(raw, 10))
    except ValueError:
        print(f"[storage] Ignoring malformed high score {raw!r}", file=sys.stderr)
        return 0


def save_high_score(store: KeyValueStore, score: int) -> bool:
    try:
        store.set(HIGH_SCORE_KEY, str(int(score)))
    except (OSError, ValueError) as e:
        print(f"[storage] Could not save high score: {e}", file=sys.stderr)
        return False
    return True
