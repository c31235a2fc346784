from __future__ import annotations

import math
import os
import threading
import time
from queue import Queue
from typing import Any, List, Optional, Sequence, Tuple

import cv2

from ..events import Action, InputEvent

# MediaPipe Hand Landmarker のランドマーク番号
WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8
MIDDLE_MCP = 9


def pinch_ratio(landmarks: Sequence[Any]) -> Optional[float]:
    # 親指先と人差し指先の距離を、手の大きさ（手首〜中指付け根）で正規化
    try:
        thumb = landmarks[THUMB_TIP]
        index = landmarks[INDEX_TIP]
        wrist = landmarks[WRIST]
        mcp = landmarks[MIDDLE_MCP]
    except (IndexError, TypeError):
        return None
    palm = math.hypot(wrist.x - mcp.x, wrist.y - mcp.y)
    if palm <= 1e-6:
        return None
    return math.hypot(thumb.x - index.x, thumb.y - index.y) / palm


def fingertip_to_canvas(landmarks: Sequence[Any], width: int, height: int, mirror: bool = True) -> Optional[Tuple[float, float]]:
    try:
        tip = landmarks[INDEX_TIP]
    except (IndexError, TypeError):
        return None
    nx = 1.0 - tip.x if mirror else tip.x
    x = min(max(nx, 0.0), 1.0) * (width - 1)
    y = min(max(tip.y, 0.0), 1.0) * (height - 1)
    return x, y


class HandProvider:
    """
    - 人差し指の先 -> POINTER（カーソル移動）
    - 親指と人差し指でつまむ -> CLICK（指先の位置）
    """

    def __init__(
        self,
        camera_index: int = 0,
        pinch_threshold: float = 0.35,
        hysteresis: float = 0.15,  # ON/OFFの二段閾値
        frame_width: int = 320,
        frame_height: int = 240,
        fps: int | None = 30,
        mirror: bool = True,
        delegate: str | None = None,  # 'CPU' or 'GPU'
    ) -> None:
        self._camera_index = camera_index
        self._pinch_on = float(pinch_threshold)
        self._pinch_off = float(pinch_threshold + max(0.0, hysteresis))
        self._pinching = False
        self._frame_width = frame_width
        self._frame_height = frame_height
        self._fps = fps
        self._mirror = mirror
        self._delegate = delegate

        self._cap = None
        self._time_base = time.monotonic()
        self._result_lock = threading.Lock()
        # 最新のランドマークとタイムスタンプのみ保持
        self._latest_result: Optional[Tuple[Optional[List[Any]], int]] = None
        self._last_processed_ts: int = -1
        self._running = False
        self._worker: Optional[threading.Thread] = None
        self._detector = None  # type: ignore[assignment]
        self._mp_image_cls = None  # type: ignore[assignment]
        self._mp_format = None  # type: ignore[assignment]

        base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
        self._model_path = os.path.join(base_dir, "assets", "models", "hand_landmarker.task")

    def _open_camera(self) -> None:
        cap = cv2.VideoCapture(self._camera_index)
        if not cap.isOpened():
            raise RuntimeError(f"Cannot open camera index {self._camera_index}.")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._frame_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._frame_height)
        if self._fps is not None:
            cap.set(cv2.CAP_PROP_FPS, int(self._fps))
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        self._cap = cap

    def _create_detector(self) -> None:
        try:
            import mediapipe as mp  # type: ignore
            from mediapipe.tasks import python  # type: ignore
            from mediapipe.tasks.python import vision  # type: ignore
        except ImportError as e:
            raise RuntimeError(f"Failed to import MediaPipe: {e}") from e

        base_opts_kwargs: dict[str, Any] = {"model_asset_path": self._model_path}
        if self._delegate:
            if self._delegate.upper() == "CPU":
                base_opts_kwargs["delegate"] = python.BaseOptions.Delegate.CPU
            elif self._delegate.upper() == "GPU":
                base_opts_kwargs["delegate"] = python.BaseOptions.Delegate.GPU

        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(**base_opts_kwargs),
            num_hands=1,
            running_mode=vision.RunningMode.LIVE_STREAM,
            result_callback=self._on_async_result,
        )
        self._detector = vision.HandLandmarker.create_from_options(options)
        self._mp_image_cls = mp.Image
        self._mp_format = mp.ImageFormat.SRGB

    def start(self, _out_queue: Queue | None = None) -> None:
        if self._running:
            return
        if self._cap is None:
            self._open_camera()
        if self._detector is None:
            self._create_detector()

        self._running = True
        self._worker = threading.Thread(target=self._run_worker, name="HandProviderWorker", daemon=True)
        self._worker.start()

    def stop(self) -> None:
        self._running = False
        worker = self._worker
        if worker and worker.is_alive():
            worker.join(timeout=1.0)
        self._worker = None

        if self._detector is not None:
            self._detector.close()
            self._detector = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def _run_worker(self) -> None:
        while self._running:
            ok, frame_bgr = self._cap.read()
            if not ok or frame_bgr is None:
                time.sleep(0.01)
                continue

            rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
            mp_image = self._mp_image_cls(image_format=self._mp_format, data=rgb)
            timestamp_ms = int((time.monotonic() - self._time_base) * 1000)
            try:
                self._detector.detect_async(mp_image, timestamp_ms)
            except RuntimeError:
                # タイムスタンプの逆転などは次フレームで回復する
                time.sleep(0.01)

    def _on_async_result(self, result: Any, _output_image: Any, timestamp_ms: int) -> None:
        hands = getattr(result, "hand_landmarks", None)
        landmarks = list(hands[0]) if hands else None
        with self._result_lock:
            self._latest_result = (landmarks, timestamp_ms)

    def _consume_latest_result(self) -> Optional[Tuple[Optional[List[Any]], int]]:
        with self._result_lock:
            latest = self._latest_result
            if not latest:
                return None
            landmarks, ts_ms = latest
            if ts_ms == self._last_processed_ts:
                return None
            self._last_processed_ts = ts_ms
        return landmarks, ts_ms

    def poll(self, px, out_queue: Queue) -> None:  # type: ignore[override]
        if not self._running:
            self.start()

        payload = self._consume_latest_result()
        if payload is None:
            return
        landmarks, _ = payload
        width = px.width if px is not None else 0
        height = px.height if px is not None else 0
        self.process_landmarks(landmarks, width, height, out_queue)

    def process_landmarks(self, landmarks: Optional[Sequence[Any]], width: int, height: int, out_queue: Queue) -> None:
        if not landmarks:
            self._pinching = False
            return
        pos = fingertip_to_canvas(landmarks, width, height, mirror=self._mirror)
        if pos is None:
            return
        x, y = pos
        out_queue.put(InputEvent(action=Action.POINTER, x=x, y=y, note="hand"))

        ratio = pinch_ratio(landmarks)
        if ratio is None:
            return
        if not self._pinching:
            pinching = ratio <= self._pinch_on
        else:
            pinching = ratio <= self._pinch_off
        if pinching and not self._pinching:
            out_queue.put(InputEvent(action=Action.CLICK, x=x, y=y, value=ratio, note="hand"))
        self._pinching = pinching
