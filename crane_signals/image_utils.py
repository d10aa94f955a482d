"""
Drawing helpers for the live HUD.

This module provides helper functions for:

- The current signal label and drill target
- The hold progress bar (colored by hold phase)
- Raw debug measurements in a side panel

Used by live_runtime.run_live and the test_cam command.
"""
# crane_signals/image_utils.py
from __future__ import annotations

from typing import Any, Dict, Optional

import cv2
import numpy as np

PHASE_COLORS = {
    "IDLE": (180, 180, 180),
    "HOLDING": (0, 150, 255),
    "COMMITTED": (0, 200, 0),
    "PAUSED": (120, 120, 120),
}


def draw_signal_label(
    frame: np.ndarray, signal: str, target: Optional[str] = None, passed: Optional[bool] = None
) -> None:
    """
    Draw the live signal (and the active drill target) at the bottom left.

    Parameters:
        frame (np.ndarray):
            Target frame (modified in place).

        signal (str):
            Current per-frame classification.

        target (Optional[str]):
            Drill target, shown above the live label when set.

        passed (Optional[bool]):
            Result of the last commit; colors the label green/red.

    Returns:
        None
    """
    h, w = frame.shape[:2]
    cv2.rectangle(frame, (10, h - 90), (min(w - 10, 560), h - 10), (40, 40, 40), -1)

    if target:
        cv2.putText(
            frame, f"TARGET: {target}", (22, h - 60),
            cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2, cv2.LINE_AA,
        )

    col = (255, 255, 255)
    if passed is True:
        col = (0, 220, 0)
    elif passed is False:
        col = (0, 0, 220)
    cv2.putText(
        frame, f"SIGNAL: {signal or '-'}", (22, h - 25),
        cv2.FONT_HERSHEY_SIMPLEX, 0.7, col, 2, cv2.LINE_AA,
    )


def draw_hold_bar(frame: np.ndarray, phase: str, progress: float, seconds_left: float) -> None:
    """Hold progress bar in the top-left corner, filled 0..1."""
    p = min(1.0, max(0.0, float(progress)))
    x0, y0, bar_w, bar_h = 10, 10, 300, 26
    color = PHASE_COLORS.get(phase, (200, 200, 200))

    cv2.rectangle(frame, (x0, y0), (x0 + bar_w, y0 + bar_h), (60, 60, 60), -1)
    if p > 0:
        cv2.rectangle(frame, (x0, y0), (x0 + int(bar_w * p), y0 + bar_h), color, -1)
    cv2.rectangle(frame, (x0, y0), (x0 + bar_w, y0 + bar_h), color, 2)

    cv2.putText(
        frame, f"{phase}  {seconds_left:.1f}s", (x0 + 8, y0 + 19),
        cv2.FONT_HERSHEY_SIMPLEX, 0.55, (0, 0, 0), 2, cv2.LINE_AA,
    )


def draw_debug_lines(frame: np.ndarray, stats: Optional[Dict[str, Any]]) -> None:
    if not stats:
        return
    h, w = frame.shape[:2]
    x0 = max(10, w - 260)
    for i, (key, val) in enumerate(stats.items()):
        if isinstance(val, dict):
            val = ",".join("-" if v is None else str(v) for v in val.values())
        cv2.putText(
            frame, f"{key}: {val}", (x0, 20 + i * 16),
            cv2.FONT_HERSHEY_SIMPLEX, 0.42, (255, 255, 0), 1, cv2.LINE_AA,
        )
