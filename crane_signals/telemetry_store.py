# crane_signals/telemetry_store.py
from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
from threading import Lock
from time import time
from typing import Any, Deque, Dict, Optional

_EMPTY_SCORE = {"passed": 0, "total": 0, "ratio": 0.0, "assessment_passed": False}


@dataclass
class CommitEvent:
    t: float
    signal: str
    target: Optional[str]
    passed: bool
    evidence: Optional[str]


class TelemetryStore:
    """
    Thread-safe in-memory telemetry:
    - current: hold phase, live signal, progress, active target, debug stats
    - score: passed / total drills and the overall assessment verdict
    - history: last N committed signals
    """

    def __init__(self, max_history: int = 25):
        self._lock = Lock()
        self._history: Deque[CommitEvent] = deque(maxlen=max_history)

        self._state: str = "IDLE"
        self._signal: str = "NONE"
        self._progress: float = 0.0
        self._seconds_left: float = 0.0
        self._target: Optional[str] = None
        self._modality: str = "signals"
        self._debug: Optional[Dict[str, Any]] = None
        self._score: Dict[str, Any] = dict(_EMPTY_SCORE)
        self._last_update_t: float = 0.0

    def update(
        self,
        state: str,
        signal: str,
        progress: float,
        seconds_left: float,
        target: Optional[str] = None,
        modality: str = "signals",
        debug: Optional[Dict[str, Any]] = None,
        ts: Optional[float] = None,
    ) -> None:
        ts = time() if ts is None else float(ts)
        p = min(1.0, max(0.0, float(progress)))

        with self._lock:
            self._state = str(state)
            self._signal = str(signal)
            self._progress = p
            self._seconds_left = float(seconds_left)
            self._target = target
            self._modality = str(modality)
            self._debug = dict(debug) if debug is not None else None
            self._last_update_t = ts

    def push_commit(
        self,
        signal: str,
        target: Optional[str],
        passed: bool,
        evidence: Optional[str] = None,
        score: Optional[Dict[str, Any]] = None,
        ts: Optional[float] = None,
    ) -> None:
        ts = time() if ts is None else float(ts)
        with self._lock:
            self._history.append(
                CommitEvent(t=ts, signal=str(signal), target=target, passed=bool(passed), evidence=evidence)
            )
            if score is not None:
                self._score = {**_EMPTY_SCORE, **score}

    def debug_stats(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return dict(self._debug) if self._debug is not None else None

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "current": {
                    "state": self._state,
                    "signal": self._signal,
                    "progress": self._progress,
                    "seconds_left": self._seconds_left,
                    "target": self._target,
                    "modality": self._modality,
                    "last_update_t": self._last_update_t,
                },
                "score": dict(self._score),
                "history": [asdict(e) for e in list(self._history)[::-1]],  # newest first
            }

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
            self._state, self._signal = "IDLE", "NONE"
            self._progress, self._seconds_left = 0.0, 0.0
            self._target, self._debug = None, None
            self._modality = "signals"
            self._score = dict(_EMPTY_SCORE)
            self._last_update_t = 0.0


TELEMETRY = TelemetryStore(max_history=30)
