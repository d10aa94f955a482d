"""
Stateless geometry helpers over normalized landmarks.

Every function here is total: a missing hand, a missing landmark or a
too-short landmark list never raises. Instead each helper returns a fixed
sentinel that callers read as "condition not met":

    calculate_angle    -> 0.0
    calculate_distance -> 1.0 (maximally far, never "close")
    classifiers        -> "NONE" / False

Points only need .x and .y attributes, so MediaPipe landmarks can be passed
in directly.
"""
# crane_signals/geometry.py
from __future__ import annotations

import math
from typing import Any, Optional, Sequence

from crane_signals.landmarks import (
    INDEX_MCP,
    INDEX_PIP,
    INDEX_TIP,
    MIDDLE_PIP,
    MIDDLE_TIP,
    PINKY_MCP,
    PINKY_PIP,
    PINKY_TIP,
    RING_PIP,
    RING_TIP,
    THUMB_TIP,
    WRIST,
    get_point,
)

UP = "UP"
DOWN = "DOWN"
OUT = "OUT"
IN = "IN"
NEUTRAL = "NEUTRAL"
NONE = "NONE"

# ------------------------------------------------------------
# Basic helpers
# ------------------------------------------------------------
def calculate_angle(a: Any, b: Any, c: Any) -> float:
    """Interior angle at b in degrees, in [0, 180]."""
    if a is None or b is None or c is None:
        return 0.0
    radians = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def calculate_distance(p1: Any, p2: Any) -> float:
    if p1 is None or p2 is None:
        return 1.0
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def hand_size(hand: Optional[Sequence[Any]]) -> float:
    """Wrist -> index knuckle distance, the scale reference for thumb tests."""
    return calculate_distance(get_point(hand, WRIST), get_point(hand, INDEX_MCP))


# ------------------------------------------------------------
# Posture helpers
# ------------------------------------------------------------
def is_arm_horizontal(
    shoulder: Any,
    elbow: Any,
    wrist: Any,
    min_angle: float = 125.0,
    max_y_diff: float = 0.25,
) -> bool:
    """Arm roughly straight and the wrist roughly at shoulder height."""
    if shoulder is None or elbow is None or wrist is None:
        return False
    if calculate_angle(shoulder, elbow, wrist) < min_angle:
        return False
    return abs(wrist.y - shoulder.y) <= max_y_diff


def are_hands_level(
    left_hand: Optional[Sequence[Any]],
    right_hand: Optional[Sequence[Any]],
    max_y_diff: float = 0.2,
) -> bool:
    lw = get_point(left_hand, WRIST)
    rw = get_point(right_hand, WRIST)
    if lw is None or rw is None:
        return False
    return abs(lw.y - rw.y) < max_y_diff


# ------------------------------------------------------------
# Finger helpers
# ------------------------------------------------------------
def is_finger_curled(hand: Optional[Sequence[Any]], tip_idx: int, pip_idx: int) -> bool:
    """A curled finger has its tip closer to the wrist than its middle joint."""
    wrist = get_point(hand, WRIST)
    tip = get_point(hand, tip_idx)
    pip = get_point(hand, pip_idx)
    if wrist is None or tip is None or pip is None:
        return False
    return calculate_distance(tip, wrist) < calculate_distance(pip, wrist)


def is_finger_extended(
    hand: Optional[Sequence[Any]], tip_idx: int, pip_idx: int, ratio: float = 1.0
) -> bool:
    wrist = get_point(hand, WRIST)
    tip = get_point(hand, tip_idx)
    pip = get_point(hand, pip_idx)
    if wrist is None or tip is None or pip is None:
        return False
    return calculate_distance(tip, wrist) > calculate_distance(pip, wrist) * ratio


def are_other_fingers_curled(hand: Optional[Sequence[Any]]) -> bool:
    # index excluded on purpose, rules test its direction separately
    return (
        is_finger_curled(hand, MIDDLE_TIP, MIDDLE_PIP)
        and is_finger_curled(hand, RING_TIP, RING_PIP)
        and is_finger_curled(hand, PINKY_TIP, PINKY_PIP)
    )


def is_fist(hand: Optional[Sequence[Any]]) -> bool:
    return are_other_fingers_curled(hand) and is_finger_curled(hand, INDEX_TIP, INDEX_PIP)


def is_palm_open(hand: Optional[Sequence[Any]], ratio: float = 1.05) -> bool:
    """All four fingers clearly extended (flat / open hand)."""
    return (
        is_finger_extended(hand, INDEX_TIP, INDEX_PIP, ratio)
        and is_finger_extended(hand, MIDDLE_TIP, MIDDLE_PIP, ratio)
        and is_finger_extended(hand, RING_TIP, RING_PIP, ratio)
        and is_finger_extended(hand, PINKY_TIP, PINKY_PIP, ratio)
    )


def detect_index_finger(hand: Optional[Sequence[Any]], straight_ratio: float = 1.1) -> str:
    """
    Direction of a straight index finger: UP, DOWN or NEUTRAL.

    NEUTRAL covers both a bent index and one pointing sideways; UP/DOWN
    require vertical travel to dominate horizontal travel.
    """
    wrist = get_point(hand, WRIST)
    tip = get_point(hand, INDEX_TIP)
    pip = get_point(hand, INDEX_PIP)
    if wrist is None or tip is None or pip is None:
        return NONE

    if calculate_distance(tip, wrist) <= calculate_distance(pip, wrist) * straight_ratio:
        return NEUTRAL

    dy = tip.y - pip.y
    dx = abs(tip.x - pip.x)
    if dy < -dx:
        return UP
    if dy > dx:
        return DOWN
    return NEUTRAL


def is_index_pointing(hand: Optional[Sequence[Any]], straight_ratio: float = 1.1) -> bool:
    return is_finger_extended(hand, INDEX_TIP, INDEX_PIP, straight_ratio)


# ------------------------------------------------------------
# Thumb helpers
# ------------------------------------------------------------
def detect_thumb_vertical(hand: Optional[Sequence[Any]], ratio: float = 0.4) -> str:
    """
    Thumb UP / DOWN / NEUTRAL relative to the index knuckle.

    The threshold is a fraction of the hand size, so the result does not
    change with the subject's distance from the camera.
    """
    thumb_tip = get_point(hand, THUMB_TIP)
    index_mcp = get_point(hand, INDEX_MCP)
    wrist = get_point(hand, WRIST)
    if thumb_tip is None or index_mcp is None or wrist is None:
        return NONE

    tip_to_knuckle = index_mcp.y - thumb_tip.y
    threshold = calculate_distance(wrist, index_mcp) * ratio

    if tip_to_knuckle > threshold:
        return UP
    if tip_to_knuckle < -threshold:
        return DOWN
    return NEUTRAL


def detect_thumb_horizontal(
    hand: Optional[Sequence[Any]], is_right_hand: bool, ratio: float = 0.15
) -> str:
    """
    Thumb OUT / IN / NEUTRAL.

    Mirrored view: the subject's right hand appears on the left of the
    image, so "out" is negative x for the right hand and positive x for
    the left hand.
    """
    thumb_tip = get_point(hand, THUMB_TIP)
    index_mcp = get_point(hand, INDEX_MCP)
    wrist = get_point(hand, WRIST)
    if thumb_tip is None or index_mcp is None or wrist is None:
        return NONE

    diff = thumb_tip.x - index_mcp.x
    threshold = calculate_distance(wrist, index_mcp) * ratio

    if is_right_hand:
        if diff < -threshold:
            return OUT
        if diff > threshold:
            return IN
    else:
        if diff > threshold:
            return OUT
        if diff < -threshold:
            return IN
    return NEUTRAL


def get_thumb_status(hand: Optional[Sequence[Any]], is_right_hand: bool) -> str:
    # vertical wins over horizontal
    if hand is None:
        return "N/A"
    vert = detect_thumb_vertical(hand)
    if vert != NEUTRAL:
        return vert
    return detect_thumb_horizontal(hand, is_right_hand)


def is_thumb_neutral(hand: Optional[Sequence[Any]], ratio: float = 0.4) -> bool:
    return detect_thumb_vertical(hand, ratio) == NEUTRAL


# ------------------------------------------------------------
# Hand orientation
# ------------------------------------------------------------
def is_hand_horizontal(hand: Optional[Sequence[Any]], ratio: float = 0.8) -> bool:
    wrist = get_point(hand, WRIST)
    index_tip = get_point(hand, INDEX_TIP)
    if wrist is None or index_tip is None:
        return False
    dx = abs(index_tip.x - wrist.x)
    dy = abs(index_tip.y - wrist.y)
    return dx > dy * ratio


def get_palm_direction(hand: Optional[Sequence[Any]]) -> str:
    """LEFT / RIGHT when seen edge-on, FRONT_OR_BACK when knuckles stack vertically."""
    index_mcp = get_point(hand, INDEX_MCP)
    pinky_mcp = get_point(hand, PINKY_MCP)
    if index_mcp is None or pinky_mcp is None:
        return NONE

    dx = index_mcp.x - pinky_mcp.x
    dy = abs(index_mcp.y - pinky_mcp.y)
    if abs(dx) < dy:
        return "FRONT_OR_BACK"
    return "LEFT" if dx > 0 else "RIGHT"


# ------------------------------------------------------------
# Debug ratios
# ------------------------------------------------------------
def index_straightness(hand: Optional[Sequence[Any]]) -> float:
    wrist = get_point(hand, WRIST)
    tip = get_point(hand, INDEX_TIP)
    pip = get_point(hand, INDEX_PIP)
    if wrist is None or tip is None or pip is None:
        return 0.0
    dist_pip = calculate_distance(pip, wrist)
    if dist_pip == 0:
        return 0.0
    return calculate_distance(tip, wrist) / dist_pip


def hand_flatness_ratio(hand: Optional[Sequence[Any]]) -> float:
    """Knuckle width over wrist-to-knuckle height."""
    wrist = get_point(hand, WRIST)
    index_mcp = get_point(hand, INDEX_MCP)
    pinky_mcp = get_point(hand, PINKY_MCP)
    if wrist is None or index_mcp is None or pinky_mcp is None:
        return 0.0
    height = abs(wrist.y - index_mcp.y)
    if height == 0:
        return 0.0
    return calculate_distance(index_mcp, pinky_mcp) / height
