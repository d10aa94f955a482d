"""
Crane operator hand signals as ordered geometric rules.

Each rule is a named predicate

    predicate(pose, left_hand, right_hand, histories, th) -> bool

The rule set is an ordered tuple and the order is the priority: the
classifier returns the first rule that matches. Postures overlap in the
small feature space of one pose and two hands, so each predicate also
excludes the primary condition of its neighbours, and safety signals
(EMERGENCY STOP, DOG EVERYTHING, STOP) come first.

Error policy:
    - missing pose -> False
    - missing hand -> that side fails, the other side may still match
"""
# crane_signals/signal_rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, NamedTuple, Optional, Sequence, Tuple

from crane_signals.config import SignalThresholds
from crane_signals.geometry import (
    DOWN,
    IN,
    NEUTRAL,
    OUT,
    UP,
    are_hands_level,
    are_other_fingers_curled,
    calculate_angle,
    calculate_distance,
    detect_index_finger,
    detect_thumb_horizontal,
    detect_thumb_vertical,
    is_arm_horizontal,
    is_fist,
    is_hand_horizontal,
    is_index_pointing,
    is_palm_open,
    is_thumb_neutral,
)
from crane_signals.landmarks import (
    LEFT_ELBOW,
    LEFT_SHOULDER,
    LEFT_WRIST,
    NOSE,
    RIGHT_ELBOW,
    RIGHT_SHOULDER,
    RIGHT_WRIST,
    WRIST,
    get_point,
)
from crane_signals.motion_analysis import (
    detect_horizontal_wave,
    detect_repetitive_clench,
    detect_repetitive_motion,
)
from crane_signals.motion_history import FrameHistories

NO_SIGNAL = "NONE"

EMERGENCY_STOP = "EMERGENCY STOP"
DOG_EVERYTHING = "DOG EVERYTHING"
STOP = "STOP"
MAIN_HOIST = "MAIN HOIST"
AUX_HOIST = "AUX HOIST"
HOIST_LOAD = "HOIST LOAD"
LOWER_LOAD = "LOWER LOAD"
RAISE_BOOM_LOWER_LOAD = "RAISE BOOM & LOWER LOAD"
LOWER_BOOM_RAISE_LOAD = "LOWER BOOM & RAISE LOAD"
RAISE_BOOM = "RAISE BOOM"
LOWER_BOOM = "LOWER BOOM"
SWING_BOOM = "SWING BOOM"
EXTEND_BOOM = "EXTEND BOOM"
RETRACT_BOOM = "RETRACT BOOM"
BRIDGE_TRAVEL = "BRIDGE TRAVEL"
TROLLEY_TRAVEL = "TROLLEY TRAVEL"

Predicate = Callable[..., bool]


@dataclass(frozen=True)
class SignalRule:
    name: str
    predicate: Predicate

    def matches(
        self,
        pose: Optional[Sequence[Any]],
        left_hand: Optional[Sequence[Any]],
        right_hand: Optional[Sequence[Any]],
        histories: Optional[FrameHistories] = None,
        th: Optional[SignalThresholds] = None,
    ) -> bool:
        return bool(
            self.predicate(pose, left_hand, right_hand, histories, th or DEFAULT_THRESHOLDS)
        )


DEFAULT_THRESHOLDS = SignalThresholds()


# ------------------------------------------------------------
# Per-side view of a frame
# ------------------------------------------------------------
class _Side(NamedTuple):
    is_right: bool
    hand: Any
    shoulder: Any
    elbow: Any
    wrist: Any
    other_hand: Any
    other_shoulder: Any
    other_elbow: Any
    other_wrist: Any
    index_history: Any
    hand_history: Any


def _sides(pose, left_hand, right_hand, histories) -> Tuple[_Side, _Side]:
    rs, re, rw = (get_point(pose, i) for i in (RIGHT_SHOULDER, RIGHT_ELBOW, RIGHT_WRIST))
    ls, le, lw = (get_point(pose, i) for i in (LEFT_SHOULDER, LEFT_ELBOW, LEFT_WRIST))
    h = histories
    right = _Side(
        True, right_hand, rs, re, rw, left_hand, ls, le, lw,
        h.right_index if h is not None else None,
        h.right_hand if h is not None else None,
    )
    left = _Side(
        False, left_hand, ls, le, lw, right_hand, rs, re, rw,
        h.left_index if h is not None else None,
        h.left_hand if h is not None else None,
    )
    return right, left


def _arm_complete(side: _Side) -> bool:
    return side.shoulder is not None and side.elbow is not None and side.wrist is not None


def _arm_angle(side: _Side) -> float:
    return calculate_angle(side.shoulder, side.elbow, side.wrist)


def _arm_horizontal(shoulder, elbow, wrist, th: SignalThresholds) -> bool:
    return is_arm_horizontal(
        shoulder,
        elbow,
        wrist,
        min_angle=th.arm_horizontal_min_angle,
        max_y_diff=th.arm_horizontal_max_y_diff,
    )


def _is_pointing_gesture(hand, th: SignalThresholds) -> bool:
    return is_index_pointing(hand, th.index_straight_ratio) and are_other_fingers_curled(hand)


def _repetitive(history, th: SignalThresholds) -> bool:
    return detect_repetitive_motion(
        history,
        min_samples=th.repetitive_min_samples,
        min_extent=th.repetitive_min_extent,
        min_ratio=th.repetitive_min_ratio,
    )


def _wave(history, th: SignalThresholds) -> bool:
    return detect_horizontal_wave(
        history,
        min_samples=th.wave_min_samples,
        min_width=th.wave_min_width,
        aspect=th.wave_aspect,
        min_ratio=th.wave_min_ratio,
    )


# ------------------------------------------------------------
# Safety signals
# ------------------------------------------------------------
def emergency_stop(pose, left_hand, right_hand, histories, th) -> bool:
    """
    Both arms out horizontally with neutral thumbs, or a sideways wave.

    Thumb UP/DOWN on extended arms is RAISE/LOWER BOOM, not a stop.
    A missing hand counts as a neutral thumb.
    """
    if pose is None:
        return False

    r_static = _arm_horizontal(*(get_point(pose, i) for i in (RIGHT_SHOULDER, RIGHT_ELBOW, RIGHT_WRIST)), th)
    l_static = _arm_horizontal(*(get_point(pose, i) for i in (LEFT_SHOULDER, LEFT_ELBOW, LEFT_WRIST)), th)

    if r_static and l_static:
        r_neutral = right_hand is None or is_thumb_neutral(right_hand, th.thumb_vertical_ratio)
        l_neutral = left_hand is None or is_thumb_neutral(left_hand, th.thumb_vertical_ratio)
        if r_neutral and l_neutral:
            return True

    if histories is None:
        return False
    return _wave(histories.left_wrist, th) or _wave(histories.right_wrist, th)


def dog_everything(pose, left_hand, right_hand, histories, th) -> bool:
    """Hands clasped low in front of the body, both open."""
    if pose is None:
        return False

    lw, rw = get_point(pose, LEFT_WRIST), get_point(pose, RIGHT_WRIST)
    ls, rs = get_point(pose, LEFT_SHOULDER), get_point(pose, RIGHT_SHOULDER)
    if lw is None or rw is None or ls is None or rs is None:
        return False

    if calculate_distance(lw, rw) >= th.dog_max_wrist_distance:
        return False
    if not (lw.y > ls.y and rw.y > rs.y):
        return False

    # open hands separate this from two fists held together
    return is_palm_open(left_hand, th.palm_open_ratio) and is_palm_open(right_hand, th.palm_open_ratio)


def stop(pose, left_hand, right_hand, histories, th) -> bool:
    """One arm out with a flat, horizontal blade hand."""
    if pose is None:
        return False

    for side in _sides(pose, left_hand, right_hand, histories):
        if side.hand is None:
            continue
        if not _arm_horizontal(side.shoulder, side.elbow, side.wrist, th):
            continue
        if _arm_horizontal(side.other_shoulder, side.other_elbow, side.other_wrist, th):
            continue
        if is_hand_horizontal(side.hand, th.hand_horizontal_ratio) and is_palm_open(
            side.hand, th.palm_open_ratio
        ):
            return True
    return False


# ------------------------------------------------------------
# Hoist signals
# ------------------------------------------------------------
def main_hoist(pose, left_hand, right_hand, histories, th) -> bool:
    if pose is None:
        return False
    nose = get_point(pose, NOSE)
    if nose is None:
        return False

    for wrist in (get_point(pose, RIGHT_WRIST), get_point(pose, LEFT_WRIST)):
        if wrist is None:
            continue
        if wrist.y < nose.y and calculate_distance(wrist, nose) < th.main_hoist_max_head_distance:
            return True
    return False


def aux_hoist(pose, left_hand, right_hand, histories, th) -> bool:
    """Forearm bent sharply, the other hand tapping the active elbow."""
    if pose is None:
        return False

    for side in _sides(pose, left_hand, right_hand, histories):
        if not _arm_complete(side) or side.other_wrist is None:
            continue
        # a raised pointing finger on the bent arm is HOIST LOAD
        if side.hand is not None and _is_pointing_gesture(side.hand, th):
            continue
        if _arm_angle(side) >= th.aux_hoist_max_arm_angle:
            continue
        if calculate_distance(side.other_wrist, side.elbow) < th.aux_hoist_max_tap_distance:
            return True
    return False


def hoist_load(pose, left_hand, right_hand, histories, th) -> bool:
    """Forearm vertical, index pointing up and circling."""
    if pose is None:
        return False

    for side in _sides(pose, left_hand, right_hand, histories):
        if side.hand is None or side.elbow is None or side.wrist is None:
            continue
        forearm_vertical = abs(side.wrist.x - side.elbow.x) < th.forearm_vertical_max_dx
        if not forearm_vertical or not side.wrist.y < side.elbow.y:
            continue
        if detect_index_finger(side.hand, th.index_straight_ratio) != UP:
            continue
        if not are_other_fingers_curled(side.hand):
            continue
        if _repetitive(side.index_history, th):
            return True
    return False


def lower_load(pose, left_hand, right_hand, histories, th) -> bool:
    """Arm down, index pointing down and circling."""
    if pose is None:
        return False

    for side in _sides(pose, left_hand, right_hand, histories):
        if side.hand is None or side.elbow is None or side.wrist is None:
            continue
        if not side.wrist.y > side.elbow.y:
            continue
        if detect_index_finger(side.hand, th.index_straight_ratio) != DOWN:
            continue
        if not are_other_fingers_curled(side.hand):
            continue
        if _repetitive(side.index_history, th):
            return True
    return False


# ------------------------------------------------------------
# Boom signals
# ------------------------------------------------------------
def _thumb_on_extended_arm(side: _Side, direction: str, th: SignalThresholds) -> bool:
    if side.hand is None or not _arm_complete(side):
        return False
    if _arm_angle(side) < th.boom_min_arm_angle:
        return False
    return detect_thumb_vertical(side.hand, th.thumb_vertical_ratio) == direction


def raise_boom_lower_load(pose, left_hand, right_hand, histories, th) -> bool:
    """Thumb up on an extended arm while the fingers flex in and out."""
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if _thumb_on_extended_arm(side, UP, th) and detect_repetitive_clench(
            side.hand_history, th.clench_min_samples
        ):
            return True
    return False


def lower_boom_raise_load(pose, left_hand, right_hand, histories, th) -> bool:
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if _thumb_on_extended_arm(side, DOWN, th) and detect_repetitive_clench(
            side.hand_history, th.clench_min_samples
        ):
            return True
    return False


def raise_boom(pose, left_hand, right_hand, histories, th) -> bool:
    # closed hand only: a flat hand on an extended arm is STOP / SWING territory
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if _thumb_on_extended_arm(side, UP, th) and not is_palm_open(side.hand, th.palm_open_ratio):
            return True
    return False


def lower_boom(pose, left_hand, right_hand, histories, th) -> bool:
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if _thumb_on_extended_arm(side, DOWN, th) and not is_palm_open(side.hand, th.palm_open_ratio):
            return True
    return False


def swing_boom(pose, left_hand, right_hand, histories, th) -> bool:
    """Arm out horizontally, index pointing sideways, rest of the hand closed."""
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if side.hand is None:
            continue
        if not _arm_horizontal(side.shoulder, side.elbow, side.wrist, th):
            continue
        if not _is_pointing_gesture(side.hand, th):
            continue
        if detect_index_finger(side.hand, th.index_straight_ratio) == NEUTRAL:
            return True
    return False


def _both_thumbs(left_hand, right_hand, direction: str, th: SignalThresholds) -> bool:
    if left_hand is None or right_hand is None:
        return False
    if not (is_fist(left_hand) and is_fist(right_hand)):
        return False
    if detect_thumb_horizontal(left_hand, False, th.thumb_horizontal_ratio) != direction:
        return False
    if detect_thumb_horizontal(right_hand, True, th.thumb_horizontal_ratio) != direction:
        return False
    if not are_hands_level(left_hand, right_hand, th.hands_level_max_y_diff):
        return False
    # hands apart, otherwise it reads as DOG EVERYTHING
    separation = calculate_distance(get_point(left_hand, WRIST), get_point(right_hand, WRIST))
    return separation > th.dog_max_wrist_distance


def extend_boom(pose, left_hand, right_hand, histories, th) -> bool:
    """Two fists, both thumbs pointing outward."""
    if pose is None:
        return False
    return _both_thumbs(left_hand, right_hand, OUT, th)


def retract_boom(pose, left_hand, right_hand, histories, th) -> bool:
    """Two fists, both thumbs pointing toward each other."""
    if pose is None:
        return False
    return _both_thumbs(left_hand, right_hand, IN, th)


# ------------------------------------------------------------
# Travel signals
# ------------------------------------------------------------
def bridge_travel(pose, left_hand, right_hand, histories, th) -> bool:
    """Raised open hand held upright (pushing motion)."""
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if side.hand is None or side.elbow is None or side.wrist is None:
            continue
        if not side.wrist.y < side.elbow.y:
            continue
        if _is_pointing_gesture(side.hand, th):
            continue
        if is_palm_open(side.hand, th.palm_open_ratio) and not is_hand_horizontal(
            side.hand, th.hand_horizontal_ratio
        ):
            return True
    return False


def trolley_travel(pose, left_hand, right_hand, histories, th) -> bool:
    """Bent arm, one thumb showing the direction of travel."""
    if pose is None:
        return False
    for side in _sides(pose, left_hand, right_hand, histories):
        if side.hand is None or not _arm_complete(side):
            continue
        # bent arm keeps this apart from RAISE BOOM
        if _arm_angle(side) > th.trolley_max_arm_angle:
            continue
        if _is_pointing_gesture(side.hand, th):
            continue

        vert = detect_thumb_vertical(side.hand, th.thumb_vertical_ratio)
        horiz = detect_thumb_horizontal(side.hand, side.is_right, th.thumb_horizontal_ratio)
        if not (vert == UP or horiz == OUT):
            continue

        # two mirrored thumbs is EXTEND BOOM
        if side.other_hand is not None and horiz == OUT:
            other = detect_thumb_horizontal(side.other_hand, not side.is_right, th.thumb_horizontal_ratio)
            if other == OUT:
                continue
        return True
    return False


# ------------------------------------------------------------
# Rule set (order == priority)
# ------------------------------------------------------------
SIGNAL_RULES: Tuple[SignalRule, ...] = (
    SignalRule(EMERGENCY_STOP, emergency_stop),
    SignalRule(DOG_EVERYTHING, dog_everything),
    SignalRule(STOP, stop),
    SignalRule(MAIN_HOIST, main_hoist),
    SignalRule(AUX_HOIST, aux_hoist),
    SignalRule(HOIST_LOAD, hoist_load),
    SignalRule(LOWER_LOAD, lower_load),
    SignalRule(RAISE_BOOM_LOWER_LOAD, raise_boom_lower_load),
    SignalRule(LOWER_BOOM_RAISE_LOAD, lower_boom_raise_load),
    SignalRule(RAISE_BOOM, raise_boom),
    SignalRule(LOWER_BOOM, lower_boom),
    SignalRule(SWING_BOOM, swing_boom),
    SignalRule(EXTEND_BOOM, extend_boom),
    SignalRule(RETRACT_BOOM, retract_boom),
    SignalRule(BRIDGE_TRAVEL, bridge_travel),
    SignalRule(TROLLEY_TRAVEL, trolley_travel),
)

SIGNAL_NAMES: Tuple[str, ...] = tuple(r.name for r in SIGNAL_RULES)


def matching_signals(
    pose,
    left_hand,
    right_hand,
    histories: Optional[FrameHistories] = None,
    th: Optional[SignalThresholds] = None,
    rules: Sequence[SignalRule] = SIGNAL_RULES,
) -> List[str]:
    """All rules that match this frame, in priority order. Debug aid, no history update."""
    return [r.name for r in rules if r.matches(pose, left_hand, right_hand, histories, th)]
