# crane_signals/pose_tracking.py
from __future__ import annotations

from typing import List, Tuple

import cv2
import mediapipe as mp
import numpy as np

from crane_signals.landmarks import FramePayload, to_landmarks


class PoseTracker:
    """Wrapper um MediaPipe Holistic: 33 pose landmarks plus both hands per frame."""

    def __init__(
        self,
        static_image_mode: bool = False,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        min_visibility: float = 0.5,
        draw_style: bool = True,
    ) -> None:
        self._mp_holistic = mp.solutions.holistic
        self._mp_drawing = mp.solutions.drawing_utils
        self._mp_styles = mp.solutions.drawing_styles

        self._holistic = self._mp_holistic.Holistic(
            static_image_mode=static_image_mode,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self.min_visibility = float(min_visibility)
        self._draw_style = draw_style

    def close(self) -> None:
        if self._holistic is not None:
            self._holistic.close()
            self._holistic = None

    def __enter__(self) -> "PoseTracker":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def process_frame(
        self, frame_bgr: np.ndarray, draw_landmarks: bool = True
    ) -> Tuple[np.ndarray, FramePayload]:
        """
        Run Holistic on one BGR frame.

        Pose points below min_visibility become None. Hand landmarks carry no
        visibility score, so hands are either present as a whole or None.
        Left/right are the subject's own sides as reported by Holistic.
        """
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        frame_rgb.flags.writeable = False
        result = self._holistic.process(frame_rgb)

        pose = None
        if result.pose_landmarks:
            pose = to_landmarks(result.pose_landmarks.landmark, min_visibility=self.min_visibility)

        left = to_landmarks(result.left_hand_landmarks.landmark) if result.left_hand_landmarks else None
        right = to_landmarks(result.right_hand_landmarks.landmark) if result.right_hand_landmarks else None

        if draw_landmarks:
            self._draw(frame_bgr, result)

        return frame_bgr, FramePayload(pose=pose, left_hand=left, right_hand=right)

    def _draw(self, frame_bgr: np.ndarray, result) -> None:
        if result.pose_landmarks:
            if self._draw_style:
                self._mp_drawing.draw_landmarks(
                    frame_bgr,
                    result.pose_landmarks,
                    self._mp_holistic.POSE_CONNECTIONS,
                    landmark_drawing_spec=self._mp_styles.get_default_pose_landmarks_style(),
                )
            else:
                self._mp_drawing.draw_landmarks(
                    frame_bgr, result.pose_landmarks, self._mp_holistic.POSE_CONNECTIONS
                )

        for hand_lms in (result.left_hand_landmarks, result.right_hand_landmarks):
            if not hand_lms:
                continue
            if self._draw_style:
                self._mp_drawing.draw_landmarks(
                    frame_bgr,
                    hand_lms,
                    self._mp_holistic.HAND_CONNECTIONS,
                    self._mp_styles.get_default_hand_landmarks_style(),
                    self._mp_styles.get_default_hand_connections_style(),
                )
            else:
                self._mp_drawing.draw_landmarks(frame_bgr, hand_lms, self._mp_holistic.HAND_CONNECTIONS)


def put_hud(
    frame_bgr: np.ndarray,
    text_lines: List[str],
    origin: Tuple[int, int] = (10, 24),
    line_height: int = 22,
) -> None:
    """Einfaches Overlay mehrerer Textzeilen links oben."""
    x0, y0 = origin
    for i, line in enumerate(text_lines):
        y = y0 + i * line_height
        cv2.putText(
            frame_bgr,
            line,
            (x0, y),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (255, 255, 255),
            2,
            cv2.LINE_AA,
        )
