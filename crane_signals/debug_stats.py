# crane_signals/debug_stats.py
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from crane_signals.geometry import (
    calculate_angle,
    calculate_distance,
    get_thumb_status,
    hand_flatness_ratio,
    index_straightness,
)
from crane_signals.landmarks import (
    INDEX_MCP,
    LEFT_ELBOW,
    LEFT_SHOULDER,
    LEFT_WRIST,
    NOSE,
    RIGHT_ELBOW,
    RIGHT_SHOULDER,
    RIGHT_WRIST,
    THUMB_TIP,
    get_point,
)
from crane_signals.motion_analysis import (
    detect_horizontal_wave,
    detect_repetitive_clench,
    detect_repetitive_motion,
)
from crane_signals.motion_history import FrameHistories


def _level(wrist, shoulder) -> Optional[float]:
    if wrist is None or shoulder is None:
        return None
    return round(wrist.y - shoulder.y, 2)


def _thumb_offset(hand) -> Dict[str, Optional[float]]:
    tip, mcp = get_point(hand, THUMB_TIP), get_point(hand, INDEX_MCP)
    if tip is None or mcp is None:
        return {"x": None, "y": None}
    return {"x": round(tip.x - mcp.x, 2), "y": round(mcp.y - tip.y, 2)}


def get_debug_stats(
    pose: Optional[Sequence[Any]],
    left_hand: Optional[Sequence[Any]],
    right_hand: Optional[Sequence[Any]],
    histories: Optional[FrameHistories] = None,
) -> Optional[Dict[str, Any]]:
    """
    Raw measurements behind the rules, for the HUD and /api/debug.
    Returns None without a pose.
    """
    if pose is None:
        return None

    ls, le, lw = (get_point(pose, i) for i in (LEFT_SHOULDER, LEFT_ELBOW, LEFT_WRIST))
    rs, re, rw = (get_point(pose, i) for i in (RIGHT_SHOULDER, RIGHT_ELBOW, RIGHT_WRIST))
    nose = get_point(pose, NOSE)

    h = histories
    return {
        # arms
        "l_arm_angle": round(calculate_angle(ls, le, lw)),
        "r_arm_angle": round(calculate_angle(rs, re, rw)),
        "l_wrist_level": _level(lw, ls),
        "r_wrist_level": _level(rw, rs),
        # pose
        "wrist_distance": round(calculate_distance(lw, rw), 2),
        "l_hand_to_head": round(calculate_distance(lw, nose), 2),
        "r_hand_to_head": round(calculate_distance(rw, nose), 2),
        # hands
        "l_index_ratio": round(index_straightness(left_hand), 2),
        "r_index_ratio": round(index_straightness(right_hand), 2),
        "l_flat_ratio": round(hand_flatness_ratio(left_hand), 2),
        "r_flat_ratio": round(hand_flatness_ratio(right_hand), 2),
        # thumbs
        "l_thumb": _thumb_offset(left_hand),
        "r_thumb": _thumb_offset(right_hand),
        "l_thumb_status": get_thumb_status(left_hand, False),
        "r_thumb_status": get_thumb_status(right_hand, True),
        # motion
        "l_clench": bool(h is not None and detect_repetitive_clench(h.left_hand)),
        "r_clench": bool(h is not None and detect_repetitive_clench(h.right_hand)),
        "l_circling": bool(h is not None and detect_repetitive_motion(h.left_index)),
        "r_circling": bool(h is not None and detect_repetitive_motion(h.right_index)),
        "wave": bool(
            h is not None
            and (detect_horizontal_wave(h.left_wrist) or detect_horizontal_wave(h.right_wrist))
        ),
    }
