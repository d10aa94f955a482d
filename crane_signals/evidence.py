"""
Fire-and-forget evidence capture for committed signals.

When a hold starts, the current camera frame is handed to a background
worker which:

- stamps a watermark (user id + UTC timestamp) onto a copy of the frame
- encodes it as JPEG with OpenCV
- writes it atomically to evidence_dir/<user>/<drill>_<ms>.jpg

capture() returns an EvidenceHandle immediately; the frame loop never
waits for encoding or disk I/O. A failed capture is logged and resolves
to None, it never raises into classification.
"""
# crane_signals/evidence.py
from __future__ import annotations

import logging
import re
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from crane_signals.config import EvidenceConfig

logger = logging.getLogger(__name__)


def _safe_component(text: str, default: str) -> str:
    key = (text or "").strip().casefold()
    key = re.sub(r"[^a-z0-9_-]+", "_", key)
    key = key.strip("_")
    return key or default


class EvidenceHandle:
    """Opaque handle for one pending or finished capture."""

    def __init__(self, future: Optional[Future] = None, signal: str = ""):
        self._future = future
        self.signal = signal

    def done(self) -> bool:
        return self._future is None or self._future.done()

    def result(self, timeout: Optional[float] = None) -> Optional[str]:
        """Path of the stored image, or None if capture failed / had no frame."""
        if self._future is None:
            return None
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeout:
            return None

    def to_json(self) -> Optional[str]:
        # never blocks: unresolved captures serialize as None
        if not self.done():
            return None
        return self.result(timeout=0)

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"EvidenceHandle(signal={self.signal!r}, {state})"


def render_evidence(
    frame_bgr: np.ndarray, user_id: str, ts: Optional[datetime] = None, watermark: bool = True
) -> np.ndarray:
    """Copy of the frame with the audit watermark drawn in the top-left corner."""
    out = frame_bgr.copy()
    if watermark:
        ts = ts or datetime.now(timezone.utc)
        cv2.putText(
            out,
            f"ID: {user_id} | {ts.isoformat()}",
            (10, 30),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (255, 255, 255),
            2,
            cv2.LINE_AA,
        )
    return out


def encode_jpeg(frame_bgr: np.ndarray, quality: int = 70) -> bytes:
    ok, buf = cv2.imencode(".jpg", frame_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise RuntimeError("JPEG encoding failed")
    return buf.tobytes()


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(data)
    tmp.replace(path)


class EvidenceCapture:
    def __init__(self, cfg: Optional[EvidenceConfig] = None):
        self.cfg = cfg or EvidenceConfig()
        self.root_dir = Path(self.cfg.evidence_dir)
        self._pool = ThreadPoolExecutor(
            max_workers=int(self.cfg.max_workers), thread_name_prefix="evidence"
        )

    def capture(
        self,
        frame_bgr: Optional[np.ndarray],
        signal: str,
        user_id: str = "anonymous",
        drill_id: str = "drill",
    ) -> EvidenceHandle:
        if frame_bgr is None:
            return EvidenceHandle(None, signal)

        # the caller keeps drawing on its frame, the worker gets its own copy
        frame = np.array(frame_bgr, copy=True)
        try:
            fut = self._pool.submit(self._store, frame, signal, user_id, drill_id)
        except RuntimeError:
            logger.exception("Evidence capture rejected for %s", signal)
            return EvidenceHandle(None, signal)
        return EvidenceHandle(fut, signal)

    def _store(self, frame: np.ndarray, signal: str, user_id: str, drill_id: str) -> Optional[str]:
        try:
            img = render_evidence(frame, user_id, watermark=self.cfg.watermark)
            data = encode_jpeg(img, self.cfg.jpeg_quality)

            user_dir = self.root_dir / _safe_component(user_id, "anonymous")
            user_dir.mkdir(parents=True, exist_ok=True)
            name = f"{_safe_component(drill_id, 'drill')}_{int(time.time() * 1000)}.jpg"
            path = user_dir / name
            _atomic_write_bytes(path, data)
        except Exception:
            logger.exception("Evidence capture failed for %s", signal)
            return None

        logger.debug("Evidence stored: %s (%s)", path, signal)
        return str(path)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
