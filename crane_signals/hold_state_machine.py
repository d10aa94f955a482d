"""
Commit/hold state machine for noisy per-frame classifications.

A signal only counts once it has been classified continuously for
commit_duration_s. A single frame with a different result (or NONE)
drops all hold progress; there is no partial credit.

States:

    IDLE:
        No candidate. A real signal starts a hold: evidence is captured
        once (via the optional callback) and the start time is recorded.
        A callback that raises is logged and the hold starts without
        evidence.

    HOLDING:
        Same signal again -> stay, or COMMITTED once the duration is
        reached. Anything else (NONE or another signal) -> back to IDLE;
        a new hold can only start on the next frame.

    COMMITTED:
        Terminal for one drill instance. The consumer reads the signal and
        evidence, then calls reset().
"""
# crane_signals/hold_state_machine.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from crane_signals.config import HoldConfig
from crane_signals.signal_rules import NO_SIGNAL

logger = logging.getLogger(__name__)

IDLE = "IDLE"
HOLDING = "HOLDING"
COMMITTED = "COMMITTED"

EvidenceCallback = Callable[[str], Any]


@dataclass(frozen=True)
class HoldState:
    """
    Snapshot of the hold machine.

    Attributes:
        phase (str): IDLE, HOLDING or COMMITTED.
        signal (Optional[str]): Signal being held / committed.
        start_time (float): Clock value when the hold began.
        evidence (Any): Opaque payload captured at hold start, passed
            through unmodified.
    """

    phase: str = IDLE
    signal: Optional[str] = None
    start_time: float = 0.0
    evidence: Any = None

    @property
    def is_committed(self) -> bool:
        return self.phase == COMMITTED

    @property
    def is_holding(self) -> bool:
        return self.phase == HOLDING


IDLE_STATE = HoldState()


def _start_hold(
    signal: str, now: float, capture_evidence: Optional[EvidenceCallback]
) -> HoldState:
    evidence = None
    if capture_evidence is not None:
        try:
            evidence = capture_evidence(signal)
        except Exception:
            logger.exception("Evidence capture failed for %s", signal)
    return HoldState(phase=HOLDING, signal=signal, start_time=now, evidence=evidence)


def advance_hold(
    state: HoldState,
    current_signal: Optional[str],
    now: float,
    commit_duration_s: float = 1.5,
    capture_evidence: Optional[EvidenceCallback] = None,
) -> HoldState:
    """
    Pure transition function: (state, classifier output, clock) -> new state.

    Parameters:
        state (HoldState): Current state.
        current_signal (Optional[str]): This frame's classification,
            NO_SIGNAL / None for nothing.
        now (float): Monotonic clock reading in seconds.
        commit_duration_s (float): Required continuous hold.
        capture_evidence (Optional[Callable[[str], Any]]): Called once when a
            hold starts; whatever it returns is stored as evidence.

    Returns:
        HoldState: The next state.
    """
    if state.phase == COMMITTED:
        return state

    real = current_signal is not None and current_signal != NO_SIGNAL

    if state.phase == IDLE:
        if real:
            return _start_hold(current_signal, now, capture_evidence)
        return state

    # HOLDING
    if current_signal != state.signal:
        return IDLE_STATE

    if now - state.start_time >= commit_duration_s:
        return HoldState(
            phase=COMMITTED,
            signal=state.signal,
            start_time=state.start_time,
            evidence=state.evidence,
        )
    return state


class HoldStateMachine:
    """Stateful wrapper around advance_hold with a monotonic default clock."""

    def __init__(
        self,
        cfg: Optional[HoldConfig] = None,
        capture_evidence: Optional[EvidenceCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cfg = cfg or HoldConfig()
        self.capture_evidence = capture_evidence
        self.clock = clock
        self.reset()

    def reset(self) -> None:
        self.state = IDLE_STATE
        self._last_t = 0.0

    def update(self, signal: Optional[str], ts: Optional[float] = None) -> HoldState:
        now = float(self.clock() if ts is None else ts)
        self._last_t = now
        self.state = advance_hold(
            self.state,
            signal,
            now,
            commit_duration_s=self.cfg.commit_duration_s,
            capture_evidence=self.capture_evidence,
        )
        return self.state

    @property
    def is_committed(self) -> bool:
        return self.state.is_committed

    @property
    def committed_signal(self) -> Optional[str]:
        return self.state.signal if self.state.is_committed else None

    def held_s(self, now: Optional[float] = None) -> float:
        if self.state.phase == IDLE:
            return 0.0
        now = self._last_t if now is None else now
        return max(0.0, now - self.state.start_time)

    def progress(self, now: Optional[float] = None) -> float:
        """Hold progress 0..1."""
        if self.state.phase == COMMITTED:
            return 1.0
        return min(1.0, self.held_s(now) / max(1e-6, self.cfg.commit_duration_s))

    def seconds_left(self, now: Optional[float] = None) -> float:
        if self.state.phase == COMMITTED:
            return 0.0
        if self.state.phase == IDLE:
            return self.cfg.commit_duration_s
        return max(0.0, self.cfg.commit_duration_s - self.held_s(now))

    def debug(self) -> Dict[str, Any]:
        return {
            "state": self.state.phase,
            "signal": self.state.signal,
            "progress": self.progress(),
            "seconds_left": self.seconds_left(),
        }
