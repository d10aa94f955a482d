# crane_signals/command_protocol.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from time import time
from typing import Any, Dict, Optional


@dataclass
class CommitMsg:
    type: str  # "commit"
    signal: str  # committed signal name
    target: Optional[str]
    passed: bool
    ts: float
    meta: Dict[str, Any]


@dataclass
class StateMsg:
    type: str  # "state"
    state: str  # "IDLE"|"HOLDING"|"COMMITTED"
    signal: str  # live per-frame signal
    progress: float  # 0..1 (hold progress)
    ts: float
    info: Dict[str, Any]


def make_commit(
    signal: str, target: Optional[str], passed: bool, meta: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return asdict(
        CommitMsg(
            type="commit",
            signal=str(signal),
            target=target,
            passed=bool(passed),
            ts=float(time()),
            meta=dict(meta or {}),
        )
    )


def make_state(
    state: str, signal: str, progress: float, info: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    p = float(progress)
    if p < 0:
        p = 0.0
    if p > 1:
        p = 1.0
    return asdict(
        StateMsg(
            type="state",
            state=str(state),
            signal=str(signal),
            progress=p,
            ts=float(time()),
            info=dict(info or {}),
        )
    )
