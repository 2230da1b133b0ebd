"""
wedjat/gesture/camera.py — Upward-gaze detection by camera template matching.

The user captures two templates from the live camera: one looking at the
screen (``rest``) and one looking up (``gaze``). Each polled frame is
downscaled to 160×120 and compared to both templates with an L1 distance;
the closer template is the current state, and a rest→gaze change begins a
gesture while gaze→rest ends it.

Key design decisions
--------------------
* Polling runs on a daemon thread at 5 Hz while listening and 20 Hz while
  scanning; going idle stops the thread and releases nothing else, so the
  camera stays open for template capture.
* When the camera cannot be opened or a frame cannot be read, the failure is
  logged and the source simply emits nothing.
* Until both templates exist no state change is ever detected.

All logging goes through :func:`wedjat.core.logger.get_logger`.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import cv2
import numpy as np

from wedjat.core.constants import C, DetectorMode
from wedjat.core.logger import get_logger
from wedjat.core.loop import EventLoop
from wedjat.gesture.base import GestureSource

_log = get_logger()

TEMPLATE_NAMES: tuple[str, ...] = ("rest", "gaze")

CaptureFactory = Callable[[int], Any]


def l1_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    Sum of absolute pixel differences between two images.

    Args:
        a: Image array (H × W × channels).
        b: Image array with the same shape.

    Returns:
        The L1 distance.

    Raises:
        ValueError: If the shapes differ.
    """
    if a.shape != b.shape:
        raise ValueError(f"Image dimensions do not match: {a.shape} vs {b.shape}")
    return float(np.abs(a.astype(np.int32) - b.astype(np.int32)).sum())


def downscale(frame: np.ndarray) -> np.ndarray:
    """Resize a camera frame to the comparison size."""
    return cv2.resize(frame, (C.FRAME_WIDTH, C.FRAME_HEIGHT), interpolation=cv2.INTER_AREA)


class CameraGestureSource(GestureSource):
    """
    Camera-based upward-gaze gesture source.

    Args:
        loop: Event loop receiving the events.
        camera_index: OpenCV device index.
        refresh_hz_listen: Polling rate while listening.
        refresh_hz_scan: Polling rate while scanning.
        capture_factory: Opens a capture device; ``cv2.VideoCapture`` by default.
    """

    name = "camera"

    def __init__(
        self,
        loop: EventLoop,
        camera_index: int = 0,
        refresh_hz_listen: float = C.REFRESH_HZ_LISTEN,
        refresh_hz_scan: float = C.REFRESH_HZ_SCAN,
        capture_factory: CaptureFactory = cv2.VideoCapture,
    ) -> None:
        super().__init__(loop)
        self._camera_index = camera_index
        self._rates = {
            DetectorMode.LISTENING: refresh_hz_listen,
            DetectorMode.SCANNING: refresh_hz_scan,
        }
        self._capture_factory = capture_factory

        self._cap: Any = None
        self._camera_error = False
        self._lock = threading.Lock()
        self._templates: dict[str, Optional[np.ndarray]] = {name: None for name in TEMPLATE_NAMES}
        self._latest: Optional[np.ndarray] = None
        self._state = "rest"

        self._interval_s: float = 0.0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ── Templates ─────────────────────────────────────────────

    @property
    def state(self) -> str:
        """``"rest"`` or ``"gaze"``."""
        return self._state

    @property
    def has_templates(self) -> bool:
        with self._lock:
            return all(t is not None for t in self._templates.values())

    def capture_template(self, name: str, frame: Optional[np.ndarray] = None) -> bool:
        """
        Store a template from *frame*, or from the current camera image.

        Args:
            name: ``"rest"`` or ``"gaze"``.
            frame: Image to use instead of the camera.

        Returns:
            True if a template was stored.

        Raises:
            KeyError: If *name* is not a template name.
        """
        if name not in self._templates:
            raise KeyError(name)
        if frame is None:
            with self._lock:
                frame = self._latest
        if frame is None:
            frame = self._read_frame()
        if frame is None:
            _log.warn("gesture", "template_capture_failed", {"template": name})
            return False
        with self._lock:
            self._templates[name] = downscale(frame)
        _log.info("gesture", "template_captured", {"template": name})
        return True

    def template(self, name: str) -> Optional[np.ndarray]:
        with self._lock:
            return self._templates[name]

    def latest_frame(self) -> Optional[np.ndarray]:
        """Most recent downscaled camera frame (for the preview)."""
        with self._lock:
            return self._latest

    # ── Detection ─────────────────────────────────────────────

    def classify(self, frame: np.ndarray) -> Optional[str]:
        """
        Return the template name closest to *frame*.

        Returns:
            ``"rest"`` or ``"gaze"``, or ``None`` while a template is missing.
        """
        with self._lock:
            rest, gaze = self._templates["rest"], self._templates["gaze"]
        if rest is None or gaze is None:
            return None
        return "gaze" if l1_distance(frame, gaze) < l1_distance(frame, rest) else "rest"

    def process_frame(self, frame: np.ndarray) -> None:
        """Compare a downscaled frame to the templates and emit on change."""
        with self._lock:
            self._latest = frame
        new_state = self.classify(frame)
        if new_state is None:
            return
        if self._state == "rest" and new_state == "gaze":
            self._emit_begin()
        elif self._state == "gaze" and new_state == "rest":
            self._emit_end()
        self._state = new_state

    # ── Mode / polling ────────────────────────────────────────

    def _apply_mode(self, mode: DetectorMode) -> None:
        if mode is DetectorMode.IDLE:
            self._stop_polling()
            self._state = "rest"
            return
        self._interval_s = 1.0 / self._rates[mode]
        self._start_polling()

    def _start_polling(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        if not self._open():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll, name="camera-poll", daemon=True)
        self._thread.start()
        _log.info("gesture", "camera_polling", {"interval_s": self._interval_s})

    def _stop_polling(self) -> None:
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _poll(self) -> None:
        while not self._stop_event.is_set():
            frame = self._read_frame()
            if frame is not None:
                try:
                    self.process_frame(downscale(frame))
                except ValueError as exc:
                    _log.error("gesture", "frame_compare_failed", {"error": str(exc)})
            self._stop_event.wait(self._interval_s)

    # ── Device ────────────────────────────────────────────────

    def _open(self) -> bool:
        if self._cap is not None:
            return True
        if self._camera_error:
            return False
        cap = self._capture_factory(self._camera_index)
        if not cap.isOpened():
            self._camera_error = True
            _log.error("gesture", "camera_open_failed", {
                "camera_index": self._camera_index,
                "hint": "check the device index or use --detector key",
            })
            return False
        self._cap = cap
        return True

    def _read_frame(self) -> Optional[np.ndarray]:
        if not self._open():
            return None
        ret, frame = self._cap.read()
        if not ret:
            _log.warn("gesture", "frame_read_failed", {"camera_index": self._camera_index})
            return None
        return frame

    def shutdown(self) -> None:
        super().shutdown()
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        _log.info("gesture", "camera_released", {"camera_index": self._camera_index})
