# crane_signals/motion_history.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Iterator, Optional, Sequence, Tuple

import numpy as np

from crane_signals.landmarks import INDEX_TIP, LEFT_WRIST, RIGHT_WRIST, get_point


# ------------------------------------------------------------
# Sliding Window Buffer
# ------------------------------------------------------------
class MotionHistory:
    """
    Fixed-capacity FIFO of recent positions or hand snapshots for one tracked point.

    push(None) clears the buffer: after a tracking gap the old positions are
    dropped, so the next sample never looks like a jump.
    """

    def __init__(self, capacity: int = 30):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"capacity must be a positive int, got {capacity!r}")
        self.capacity = capacity
        self.buf: Deque[Any] = deque(maxlen=capacity)

    def push(self, item: Any) -> None:
        if item is None:
            self.buf.clear()
            return
        self.buf.append(_freeze(item))

    def clear(self) -> None:
        self.buf.clear()

    def as_array(self) -> np.ndarray:
        """Positions as (T, 2). Only meaningful for point histories."""
        if not self.buf:
            return np.zeros((0, 2), dtype=float)
        return np.asarray(list(self.buf), dtype=float).reshape(-1, 2)

    def __len__(self) -> int:
        return len(self.buf)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.buf)

    def __getitem__(self, idx: int) -> Any:
        return self.buf[idx]


def _freeze(item: Any) -> Any:
    # single landmark -> (x, y); hand -> immutable snapshot
    if hasattr(item, "x") and hasattr(item, "y"):
        return (float(item.x), float(item.y))
    if isinstance(item, tuple) and len(item) == 2 and all(
        isinstance(v, (int, float)) for v in item
    ):
        return (float(item[0]), float(item[1]))
    return tuple(item)


def update_history(buffer: MotionHistory, item: Any) -> None:
    """Append a point/snapshot, or clear the buffer when item is None."""
    buffer.push(item)


@dataclass
class FrameHistories:
    """
    Per-session arena of history buffers, owned by the caller and threaded
    through every classify_frame call.
    """

    left_wrist: MotionHistory
    right_wrist: MotionHistory
    left_index: MotionHistory
    right_index: MotionHistory
    left_hand: MotionHistory
    right_hand: MotionHistory

    @classmethod
    def create(cls, capacity: int = 30) -> "FrameHistories":
        return cls(
            left_wrist=MotionHistory(capacity),
            right_wrist=MotionHistory(capacity),
            left_index=MotionHistory(capacity),
            right_index=MotionHistory(capacity),
            left_hand=MotionHistory(capacity),
            right_hand=MotionHistory(capacity),
        )

    def update(
        self,
        pose: Optional[Sequence[Any]],
        left_hand: Optional[Sequence[Any]],
        right_hand: Optional[Sequence[Any]],
    ) -> None:
        update_history(self.left_wrist, get_point(pose, LEFT_WRIST))
        update_history(self.right_wrist, get_point(pose, RIGHT_WRIST))
        update_history(self.left_index, get_point(left_hand, INDEX_TIP))
        update_history(self.right_index, get_point(right_hand, INDEX_TIP))
        update_history(self.left_hand, left_hand)
        update_history(self.right_hand, right_hand)

    def clear(self) -> None:
        for buf in self.buffers():
            buf.clear()

    def buffers(self) -> Tuple[MotionHistory, ...]:
        return (
            self.left_wrist,
            self.right_wrist,
            self.left_index,
            self.right_index,
            self.left_hand,
            self.right_hand,
        )
