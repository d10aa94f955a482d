# crane_signals/landmarks.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

# ------------------------------------------------------------
# Pose indices (MediaPipe Pose / Holistic, 33 landmarks)
# ------------------------------------------------------------
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ELBOW = 13
RIGHT_ELBOW = 14
LEFT_WRIST = 15
RIGHT_WRIST = 16
LEFT_HIP = 23
RIGHT_HIP = 24

POSE_LANDMARK_COUNT = 33

# ------------------------------------------------------------
# Hand indices (MediaPipe Hands, 21 landmarks)
# ------------------------------------------------------------
WRIST = 0
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_TIP = 12
RING_PIP = 14
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_TIP = 20

HAND_LANDMARK_COUNT = 21


@dataclass(frozen=True)
class Landmark:
    """
    Normalized keypoint as produced by the pose model.

    x, y are in [0..1] relative to frame width/height, origin top-left,
    y grows downward. z and visibility are optional extras.
    """

    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


Pose = Sequence[Optional[Landmark]]
Hand = Sequence[Optional[Landmark]]


@dataclass(frozen=True)
class FramePayload:
    """One frame from the pose producer. Any part may be missing."""

    pose: Optional[Pose] = None
    left_hand: Optional[Hand] = None
    right_hand: Optional[Hand] = None


def get_point(points: Optional[Sequence[Any]], idx: int) -> Optional[Any]:
    """Index into a pose/hand without ever raising. Missing -> None."""
    if points is None:
        return None
    try:
        return points[idx]
    except (IndexError, TypeError, KeyError):
        return None


def to_landmarks(
    raw: Optional[Sequence[Any]], min_visibility: float = 0.0
) -> Optional[List[Optional[Landmark]]]:
    """
    Convert a producer-specific landmark list into Landmark objects.

    Accepts MediaPipe landmark objects (x, y, z, visibility attributes) or
    plain (x, y[, z[, visibility]]) tuples. Points whose visibility is below
    min_visibility become None, so the rules treat them as absent.
    """
    if raw is None:
        return None

    out: List[Optional[Landmark]] = []
    for p in raw:
        if p is None:
            out.append(None)
            continue

        if hasattr(p, "x") and hasattr(p, "y"):
            x, y = float(p.x), float(p.y)
            z = float(getattr(p, "z", 0.0) or 0.0)
            vis = getattr(p, "visibility", None)
            vis = 1.0 if vis is None else float(vis)
        else:
            vals = tuple(p)
            if len(vals) < 2:
                out.append(None)
                continue
            x, y = float(vals[0]), float(vals[1])
            z = float(vals[2]) if len(vals) > 2 else 0.0
            vis = float(vals[3]) if len(vals) > 3 else 1.0

        if vis < min_visibility:
            out.append(None)
        else:
            out.append(Landmark(x=x, y=y, z=z, visibility=vis))
    return out
