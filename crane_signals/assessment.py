"""
Assessment drills on top of the classifier and the hold state machine.

One drill = one target signal. Frames are classified, the hold machine
debounces the result, and the first committed signal is graded against
the target. The hold machine is then reset for the next drill.
The whole assessment passes once the share of passed drills reaches
AssessmentConfig.pass_threshold.

Switching input modality (e.g. to voice) pauses the session: all history
buffers and the hold state are cleared synchronously, so nothing held
before the switch can commit afterwards.

The camera loop and the web server touch the same session from different
threads; every public method takes the session lock.
"""
# crane_signals/assessment.py
from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from crane_signals.config import AssessmentConfig, HistoryConfig, HoldConfig, SignalThresholds
from crane_signals.evidence import EvidenceCapture, EvidenceHandle
from crane_signals.frame_classifier import FrameClassifier
from crane_signals.hold_state_machine import HoldState, HoldStateMachine
from crane_signals.signal_rules import NO_SIGNAL, SIGNAL_NAMES

logger = logging.getLogger(__name__)

MODALITY_SIGNALS = "signals"
MODALITY_VOICE = "voice"
MODALITIES = (MODALITY_SIGNALS, MODALITY_VOICE)


@dataclass
class DrillResult:
    target: Optional[str]
    committed_signal: str
    passed: bool
    evidence: Any
    held_s: float
    ts: float = field(default_factory=time.time)

    def evidence_path(self) -> Optional[str]:
        ev = self.evidence
        if isinstance(ev, EvidenceHandle):
            return ev.to_json()
        return ev if isinstance(ev, str) else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "committed_signal": self.committed_signal,
            "passed": self.passed,
            "evidence": self.evidence_path(),
            "held_s": self.held_s,
            "ts": self.ts,
        }


@dataclass
class FrameOutcome:
    signal: str
    hold: HoldState
    progress: float
    result: Optional[DrillResult] = None


class AssessmentSession:
    def __init__(
        self,
        thresholds: Optional[SignalThresholds] = None,
        history_cfg: Optional[HistoryConfig] = None,
        hold_cfg: Optional[HoldConfig] = None,
        evidence: Optional[EvidenceCapture] = None,
        targets: Sequence[str] = SIGNAL_NAMES,
        rng: Optional[random.Random] = None,
        user_id: str = "anonymous",
        assessment_cfg: Optional[AssessmentConfig] = None,
    ):
        unknown = [t for t in targets if t not in SIGNAL_NAMES]
        if unknown or not targets:
            raise ValueError(f"Invalid drill targets: {unknown or 'empty'}")

        self.classifier = FrameClassifier(thresholds, history_cfg)
        self.hold = HoldStateMachine(hold_cfg, capture_evidence=self._capture_evidence)
        self.evidence = evidence
        self.targets = tuple(targets)
        self.rng = rng or random.Random()
        self.user_id = user_id
        self.assessment_cfg = assessment_cfg or AssessmentConfig()

        self.target: Optional[str] = None
        self.results: List[DrillResult] = []
        self.modality = MODALITY_SIGNALS
        self._drill_no = 0
        self._frame: Optional[np.ndarray] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------
    # Drill control
    # ------------------------------------------------------------
    def start_drill(self, target: Optional[str] = None) -> str:
        with self._lock:
            if target is None:
                target = self.rng.choice(self.targets)
            elif target not in SIGNAL_NAMES:
                raise ValueError(f"Unknown signal: {target!r}")

            self.target = target
            self._drill_no += 1
            self.hold.reset()
            logger.info("Drill %d started, target=%s", self._drill_no, target)
            return target

    def ensure_drill(self) -> Optional[str]:
        """Start a random drill if none is running. No-op while paused."""
        with self._lock:
            if self.target is None and not self.paused:
                self.start_drill()
            return self.target

    def pause(self) -> None:
        """Leave signal mode: drop all histories and hold progress."""
        with self._lock:
            self.modality = MODALITY_VOICE
            self.classifier.reset()
            self.hold.reset()

    def resume(self) -> None:
        with self._lock:
            self.modality = MODALITY_SIGNALS
            self.classifier.reset()
            self.hold.reset()

    def set_modality(self, modality: str) -> None:
        if modality == MODALITY_VOICE:
            self.pause()
        elif modality == MODALITY_SIGNALS:
            self.resume()
        else:
            raise ValueError(f"Unknown modality: {modality!r}")
        logger.info("Modality switched to %s", modality)

    @property
    def paused(self) -> bool:
        return self.modality != MODALITY_SIGNALS

    def score(self) -> Tuple[int, int]:
        with self._lock:
            passed = sum(1 for r in self.results if r.passed)
            return passed, len(self.results)

    def passed_assessment(self) -> bool:
        passed, total = self.score()
        if total == 0:
            return False
        return passed / total >= self.assessment_cfg.pass_threshold

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            passed, total = self.score()
            return {
                "passed": passed,
                "total": total,
                "ratio": passed / total if total else 0.0,
                "assessment_passed": self.passed_assessment(),
            }

    # ------------------------------------------------------------
    # Per-frame
    # ------------------------------------------------------------
    def _capture_evidence(self, signal: str) -> Any:
        if self.evidence is None:
            return None
        return self.evidence.capture(
            self._frame, signal, user_id=self.user_id, drill_id=f"drill{self._drill_no}"
        )

    def process_frame(
        self,
        pose: Optional[Sequence[Any]],
        left_hand: Optional[Sequence[Any]] = None,
        right_hand: Optional[Sequence[Any]] = None,
        frame_bgr: Optional[np.ndarray] = None,
        now: Optional[float] = None,
    ) -> FrameOutcome:
        with self._lock:
            return self._process_locked(pose, left_hand, right_hand, frame_bgr, now)

    def _process_locked(self, pose, left_hand, right_hand, frame_bgr, now) -> FrameOutcome:
        if self.paused:
            return FrameOutcome(NO_SIGNAL, self.hold.state, 0.0)

        signal = self.classifier.classify(pose, left_hand, right_hand)

        self._frame = frame_bgr
        try:
            state = self.hold.update(signal, ts=now)
        finally:
            self._frame = None

        if not state.is_committed:
            return FrameOutcome(signal, state, self.hold.progress())

        result = DrillResult(
            target=self.target,
            committed_signal=state.signal,
            passed=(self.target is not None and state.signal == self.target),
            evidence=state.evidence,
            held_s=self.hold.held_s(),
        )
        self.results.append(result)
        logger.info(
            "Committed %s (target=%s, passed=%s)", result.committed_signal, result.target, result.passed
        )

        self.hold.reset()
        self.target = None
        return FrameOutcome(signal, state, 1.0, result)
