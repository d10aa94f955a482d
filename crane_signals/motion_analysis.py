"""
Motion pattern detectors over a history window.

All detectors are pure functions of a history snapshot and never mutate
the buffer they are given. A history can be a MotionHistory or any
sequence of (x, y) tuples / landmark-like objects; hand histories are
sequences of 21-landmark snapshots.

Tortuosity (path length / bounding-box diagonal) is the main measure: a
single straight move has a ratio close to 1.0, circling or back-and-forth
movement covers a much longer path than its net extent.
"""
# crane_signals/motion_analysis.py
from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

import numpy as np

from crane_signals.geometry import is_fist


def _as_points(history: Optional[Sequence[Any]]) -> np.ndarray:
    if history is None:
        return np.zeros((0, 2), dtype=float)
    if hasattr(history, "as_array"):
        return history.as_array()

    rows = []
    for p in history:
        if p is None:
            continue
        if hasattr(p, "x") and hasattr(p, "y"):
            rows.append((float(p.x), float(p.y)))
        else:
            rows.append((float(p[0]), float(p[1])))
    if not rows:
        return np.zeros((0, 2), dtype=float)
    return np.asarray(rows, dtype=float)


def motion_extent(history: Optional[Sequence[Any]]) -> Tuple[float, float, float]:
    """
    Returns (width, height, path_length) of a point history.

    width/height are the axis-aligned bounding box, path_length is the sum
    of consecutive point distances.
    """
    pts = _as_points(history)
    if len(pts) == 0:
        return 0.0, 0.0, 0.0

    mins = np.min(pts, axis=0)
    maxs = np.max(pts, axis=0)
    width, height = (maxs - mins).tolist()

    if len(pts) > 1:
        path = float(np.sum(np.linalg.norm(np.diff(pts, axis=0), axis=1)))
    else:
        path = 0.0
    return float(width), float(height), path


def detect_repetitive_motion(
    history: Optional[Sequence[Any]],
    min_samples: int = 10,
    min_extent: float = 0.02,
    min_ratio: float = 1.2,
) -> bool:
    """Circling / arcing movement, as opposed to a single point-to-point move or jitter."""
    if history is None or len(history) < min_samples:
        return False

    width, height, path = motion_extent(history)
    diagonal = float(np.hypot(width, height))
    if diagonal < min_extent:
        return False
    return path / diagonal > min_ratio


def detect_horizontal_wave(
    history: Optional[Sequence[Any]],
    min_samples: int = 5,
    min_width: float = 0.15,
    aspect: float = 1.5,
    min_ratio: float = 1.2,
) -> bool:
    """Oscillation that is wide, mostly sideways and travels back over itself."""
    if history is None or len(history) < min_samples:
        return False

    width, height, path = motion_extent(history)
    significant_move = width > min_width
    is_horizontal = width > height * aspect
    is_oscillating = path > width * min_ratio
    return significant_move and is_horizontal and is_oscillating


def detect_repetitive_clench(
    hand_history: Optional[Sequence[Any]], min_samples: int = 15
) -> bool:
    """
    At least one open->fist->open (or fist->open->fist) cycle in the window.

    Samples the oldest, middle and newest snapshots; the fist state has to
    change twice.
    """
    if hand_history is None or len(hand_history) < min_samples:
        return False

    n = len(hand_history)
    oldest = hand_history[0]
    mid = hand_history[n // 2]
    recent = hand_history[n - 1]
    if oldest is None or mid is None or recent is None:
        return False

    oldest_fist = is_fist(oldest)
    mid_fist = is_fist(mid)
    recent_fist = is_fist(recent)
    return oldest_fist != mid_fist and mid_fist != recent_fist
