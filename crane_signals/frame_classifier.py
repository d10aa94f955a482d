# crane_signals/frame_classifier.py
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from crane_signals.config import HistoryConfig, SignalThresholds
from crane_signals.motion_history import FrameHistories
from crane_signals.signal_rules import NO_SIGNAL, SIGNAL_RULES, SignalRule

logger = logging.getLogger(__name__)


def classify_frame(
    pose: Optional[Sequence[Any]],
    left_hand: Optional[Sequence[Any]],
    right_hand: Optional[Sequence[Any]],
    histories: FrameHistories,
    rules: Sequence[SignalRule] = SIGNAL_RULES,
    thresholds: Optional[SignalThresholds] = None,
) -> str:
    """
    Classify one frame.

    Steps:
        1. push this frame's tracked points into the histories
           (a missing landmark clears its buffer)
        2. evaluate the rules in priority order
        3. return the first matching rule name, or NO_SIGNAL

    A rule that raises is logged and counted as "no match"; one bad rule
    never aborts the frame.
    """
    histories.update(pose, left_hand, right_hand)

    for rule in rules:
        try:
            hit = rule.matches(pose, left_hand, right_hand, histories, thresholds)
        except Exception:
            logger.exception("Rule %r failed, treating as no match", rule.name)
            continue
        if hit:
            return rule.name
    return NO_SIGNAL


class FrameClassifier:
    """Owns the history arena for one tracking session."""

    def __init__(
        self,
        thresholds: Optional[SignalThresholds] = None,
        history_cfg: Optional[HistoryConfig] = None,
        rules: Sequence[SignalRule] = SIGNAL_RULES,
    ):
        self.thresholds = thresholds or SignalThresholds()
        self.history_cfg = history_cfg or HistoryConfig()
        self.rules = tuple(rules)
        self.histories = FrameHistories.create(self.history_cfg.capacity)
        self.last_signal = NO_SIGNAL

    def classify(
        self,
        pose: Optional[Sequence[Any]],
        left_hand: Optional[Sequence[Any]] = None,
        right_hand: Optional[Sequence[Any]] = None,
    ) -> str:
        self.last_signal = classify_frame(
            pose, left_hand, right_hand, self.histories, self.rules, self.thresholds
        )
        return self.last_signal

    def reset(self) -> None:
        self.histories.clear()
        self.last_signal = NO_SIGNAL
