# crane_signals/live_runtime.py
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import cv2
import numpy as np

from crane_signals.assessment import AssessmentSession, DrillResult, FrameOutcome
from crane_signals.config import AppConfig
from crane_signals.debug_stats import get_debug_stats
from crane_signals.evidence import EvidenceCapture
from crane_signals.image_utils import draw_debug_lines, draw_hold_bar, draw_signal_label
from crane_signals.landmarks import FramePayload
from crane_signals.pose_tracking import PoseTracker

logger = logging.getLogger(__name__)

CommitCallback = Callable[[DrillResult, np.ndarray], None]
RenderCallback = Callable[[np.ndarray, str, float], None]
# (phase, signal, progress, seconds_left, target, modality, debug)
TelemetryCallback = Callable[
    [str, str, float, float, Optional[str], str, Optional[Dict[str, Any]]], None
]


class SignalRuntime:
    """
    Per-frame glue between tracker output, the assessment session and the UI.

    Kept separate from the camera loop so it can be driven with synthetic
    payloads.
    """

    def __init__(
        self,
        cfg: AppConfig,
        session: AssessmentSession,
        on_commit: Optional[CommitCallback] = None,
        on_render: Optional[RenderCallback] = None,
        on_telemetry: Optional[TelemetryCallback] = None,
    ):
        self.cfg = cfg
        self.session = session
        self.on_commit = on_commit
        self.on_render = on_render
        self.on_telemetry = on_telemetry

        self._last_tel_t = float("-inf")
        self._last_passed: Optional[bool] = None

    def step(self, frame_bgr: np.ndarray, payload: FramePayload, now: float) -> FrameOutcome:
        session = self.session

        # auto-start the next drill once the previous one committed
        session.ensure_drill()

        outcome = session.process_frame(
            payload.pose, payload.left_hand, payload.right_hand, frame_bgr=frame_bgr, now=now
        )

        phase = "PAUSED" if session.paused else outcome.hold.phase
        seconds_left = session.hold.seconds_left()

        if outcome.result is not None:
            self._last_passed = outcome.result.passed
            if self.on_commit is not None:
                self.on_commit(outcome.result, frame_bgr)

        live = self.cfg.live
        debug = None
        if live.draw_debug or self.on_telemetry is not None:
            debug = get_debug_stats(
                payload.pose, payload.left_hand, payload.right_hand, session.classifier.histories
            )

        if self.on_render is not None:
            self.on_render(frame_bgr, phase, seconds_left)

        if self.on_telemetry is not None and (now - self._last_tel_t) >= live.telemetry_interval_s:
            self._last_tel_t = now
            self.on_telemetry(
                phase,
                outcome.signal,
                float(outcome.progress),
                float(seconds_left),
                session.target,
                session.modality,
                debug,
            )

        if live.draw_overlay:
            draw_hold_bar(frame_bgr, phase, outcome.progress, seconds_left)
            draw_signal_label(frame_bgr, outcome.signal, session.target, self._last_passed)
        if live.draw_debug:
            draw_debug_lines(frame_bgr, debug)

        return outcome


def build_session(cfg: AppConfig, user_id: str = "anonymous") -> AssessmentSession:
    return AssessmentSession(
        thresholds=cfg.thresholds,
        history_cfg=cfg.history,
        hold_cfg=cfg.hold,
        assessment_cfg=cfg.assessment,
        evidence=EvidenceCapture(cfg.evidence),
        user_id=user_id,
    )


def run_live(
    cfg: Optional[AppConfig] = None,
    on_commit: Optional[CommitCallback] = None,
    on_render: Optional[RenderCallback] = None,
    on_telemetry: Optional[TelemetryCallback] = None,
    session: Optional[AssessmentSession] = None,
) -> None:
    """
    Camera loop: track -> classify -> hold -> grade, until 'q' or Ctrl+C.

    on_commit: fired once per committed signal (DrillResult + frame)
    on_render: fired every frame (after tracking, before HUD)
    on_telemetry: throttled to cfg.live.telemetry_interval_s
    """
    cfg = cfg or AppConfig()
    if not isinstance(cfg, AppConfig):
        raise TypeError(f"run_live expects an AppConfig, got {type(cfg).__name__}")

    live = cfg.live
    session = session or build_session(cfg)
    runtime = SignalRuntime(cfg, session, on_commit, on_render, on_telemetry)

    tracker = PoseTracker(
        model_complexity=live.model_complexity,
        min_detection_confidence=live.min_detection_confidence,
        min_tracking_confidence=live.min_tracking_confidence,
        min_visibility=live.min_visibility,
    )

    cap = cv2.VideoCapture(live.camera_index)
    if not cap.isOpened():
        tracker.close()
        raise RuntimeError(f"Could not open camera {live.camera_index}")

    cap.set(cv2.CAP_PROP_FPS, 30)
    logger.info("Live loop started on camera %d", live.camera_index)

    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                continue

            now = time.monotonic()
            frame, payload = tracker.process_frame(frame, draw_landmarks=live.draw_overlay)

            # landmarks stay in camera coordinates, only the view is mirrored
            if live.flip:
                frame = cv2.flip(frame, 1)

            runtime.step(frame, payload, now)

            if live.show_window:
                cv2.imshow("Crane signals", frame)
                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    break
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        cap.release()
        cv2.destroyAllWindows()
        tracker.close()
        if session.evidence is not None:
            session.evidence.shutdown(wait=True)
        summary = session.summary()
        logger.info(
            "Live loop stopped, score %d/%d, assessment %s",
            summary["passed"],
            summary["total"],
            "passed" if summary["assessment_passed"] else "failed",
        )
