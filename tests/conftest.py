import math

import pytest

from crane_signals.landmarks import (
    LEFT_ELBOW,
    LEFT_HIP,
    LEFT_SHOULDER,
    LEFT_WRIST,
    NOSE,
    POSE_LANDMARK_COUNT,
    RIGHT_ELBOW,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    RIGHT_WRIST,
    Landmark,
)

# ------------------------------------------------------------
# Synthetic hand in local units: wrist at (0, 0), fingers along -y,
# index knuckle at distance ~1.04 (the hand size reference).
# ------------------------------------------------------------
_KNUCKLES = {
    "index": (5, (-0.3, -1.0)),
    "middle": (9, (-0.1, -1.05)),
    "ring": (13, (0.1, -1.0)),
    "pinky": (17, (0.3, -0.9)),
}

_EXTENDED = ((0.0, -0.5), (0.0, -0.8), (0.0, -1.0))  # PIP, DIP, TIP offsets
_CURLED = ((0.0, -0.35), (0.0, -0.15), (0.0, 0.2))

# thumb tip for a right hand; the left hand is mirrored
THUMB_TIPS = {
    "neutral": (-0.35, -0.9),
    "up": (-0.4, -1.6),
    "down": (-0.4, -0.3),
    "out": (-0.9, -0.9),
    "in": (0.0, -0.9),
}


def build_hand(
    thumb="neutral",
    index="extended",
    others="extended",
    origin=(0.5, 0.5),
    scale=0.1,
    rotation=0.0,
    left=False,
):
    """
    21 hand landmarks in image coordinates.

    rotation (degrees, y down): 0 = fingers up, 90 = fingers to +x,
    -90 = fingers to -x, 180 = fingers down.
    """
    pts = [None] * 21
    pts[0] = (0.0, 0.0)
    pts[1] = (-0.3, -0.25)
    pts[2] = (-0.5, -0.45)
    pts[3] = (-0.6, -0.6)
    pts[4] = THUMB_TIPS[thumb]

    for name, (mcp_idx, (mx, my)) in _KNUCKLES.items():
        state = index if name == "index" else others
        offsets = _EXTENDED if state == "extended" else _CURLED
        pts[mcp_idx] = (mx, my)
        for k, (dx, dy) in enumerate(offsets, start=1):
            pts[mcp_idx + k] = (mx + dx, my + dy)

    th = math.radians(rotation)
    c, s = math.cos(th), math.sin(th)
    ox, oy = origin
    out = []
    for x, y in pts:
        if left:
            x = -x
        rx = x * c - y * s
        ry = x * s + y * c
        out.append(Landmark(ox + rx * scale, oy + ry * scale))
    return out


RELAXED = {
    NOSE: (0.5, 0.15),
    RIGHT_SHOULDER: (0.4, 0.3),
    LEFT_SHOULDER: (0.6, 0.3),
    RIGHT_ELBOW: (0.37, 0.45),
    LEFT_ELBOW: (0.63, 0.45),
    RIGHT_WRIST: (0.36, 0.6),
    LEFT_WRIST: (0.64, 0.6),
    RIGHT_HIP: (0.45, 0.7),
    LEFT_HIP: (0.55, 0.7),
}

# right arm straight out to image-left, wrist slightly below shoulder (170 deg at elbow)
RIGHT_ARM_OUT = {
    RIGHT_SHOULDER: (0.4, 0.3),
    RIGHT_ELBOW: (0.25, 0.3),
    RIGHT_WRIST: (0.25 - 0.15 * math.cos(math.radians(10)), 0.3 + 0.15 * math.sin(math.radians(10))),
}
LEFT_ARM_OUT = {
    LEFT_SHOULDER: (0.6, 0.3),
    LEFT_ELBOW: (0.75, 0.3),
    LEFT_WRIST: (0.75 + 0.15 * math.cos(math.radians(10)), 0.3 + 0.15 * math.sin(math.radians(10))),
}


def build_pose(*overrides):
    """33 pose landmarks: relaxed stance, updated by the given {index: (x, y)} dicts."""
    coords = dict(RELAXED)
    for o in overrides:
        coords.update(o)
    pose = [Landmark(0.5, 0.9) for _ in range(POSE_LANDMARK_COUNT)]
    for idx, (x, y) in coords.items():
        pose[idx] = Landmark(x, y)
    return pose


def wrist_of(pose, idx):
    p = pose[idx]
    return (p.x, p.y)


@pytest.fixture
def make_hand():
    return build_hand


@pytest.fixture
def make_pose():
    return build_pose


@pytest.fixture
def raise_boom_frame():
    """(pose, left_hand, right_hand): right arm out, fist, thumb up."""
    pose = build_pose(RIGHT_ARM_OUT)
    right = build_hand(thumb="up", index="curled", others="curled", origin=wrist_of(pose, RIGHT_WRIST))
    return pose, None, right


@pytest.fixture
def lower_boom_frame():
    pose = build_pose(RIGHT_ARM_OUT)
    right = build_hand(thumb="down", index="curled", others="curled", origin=wrist_of(pose, RIGHT_WRIST))
    return pose, None, right
