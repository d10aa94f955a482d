import logging

import pytest

from crane_signals.config import HoldConfig
from crane_signals.hold_state_machine import (
    COMMITTED,
    HOLDING,
    IDLE,
    IDLE_STATE,
    HoldStateMachine,
    advance_hold,
)
from crane_signals.signal_rules import NO_SIGNAL

FPS = 30.0


def test_idle_ignores_no_signal():
    assert advance_hold(IDLE_STATE, NO_SIGNAL, 0.0) is IDLE_STATE
    assert advance_hold(IDLE_STATE, None, 0.0) is IDLE_STATE


def test_start_hold_captures_evidence_once():
    calls = []

    def capture(sig):
        calls.append(sig)
        return f"ev:{sig}"

    s = advance_hold(IDLE_STATE, "STOP", 1.0, capture_evidence=capture)
    assert s.phase == HOLDING
    assert s.signal == "STOP"
    assert s.start_time == 1.0
    assert s.evidence == "ev:STOP"

    s = advance_hold(s, "STOP", 1.5, capture_evidence=capture)
    s = advance_hold(s, "STOP", 2.6, capture_evidence=capture)
    assert s.phase == COMMITTED
    assert s.evidence == "ev:STOP"
    assert calls == ["STOP"]


def test_commit_exactly_at_duration():
    s = advance_hold(IDLE_STATE, "STOP", 0.0)
    assert advance_hold(s, "STOP", 1.49).phase == HOLDING
    assert advance_hold(s, "STOP", 1.5).phase == COMMITTED


def test_holding_drops_on_none():
    s = advance_hold(IDLE_STATE, "STOP", 0.0)
    assert advance_hold(s, NO_SIGNAL, 0.5) == IDLE_STATE


def test_switch_drops_to_idle_then_restarts():
    s = advance_hold(IDLE_STATE, "STOP", 0.0)
    s = advance_hold(s, "MAIN HOIST", 1.0)
    assert s == IDLE_STATE

    s = advance_hold(s, "MAIN HOIST", 1.1)
    assert s.phase == HOLDING
    assert s.signal == "MAIN HOIST"
    assert s.start_time == 1.1


def test_switch_does_not_capture_on_the_switch_frame():
    calls = []
    s = advance_hold(IDLE_STATE, "STOP", 0.0, capture_evidence=calls.append)
    advance_hold(s, "MAIN HOIST", 0.5, capture_evidence=calls.append)
    assert calls == ["STOP"]


def test_failing_evidence_callback_is_logged(caplog):
    def capture(sig):
        raise RuntimeError("camera gone")

    with caplog.at_level(logging.ERROR, logger="crane_signals.hold_state_machine"):
        s = advance_hold(IDLE_STATE, "STOP", 0.0, capture_evidence=capture)
    assert s.phase == HOLDING
    assert s.evidence is None
    assert "Evidence capture failed" in caplog.text

    hsm = HoldStateMachine(HoldConfig(commit_duration_s=1.0), capture_evidence=capture)
    hsm.update("STOP", ts=0.0)
    assert hsm.update("STOP", ts=1.0).is_committed
    assert hsm.state.evidence is None


def test_committed_is_terminal():
    s = advance_hold(IDLE_STATE, "STOP", 0.0)
    s = advance_hold(s, "STOP", 2.0)
    assert s.phase == COMMITTED
    for sig in (NO_SIGNAL, "MAIN HOIST", "STOP"):
        assert advance_hold(s, sig, 10.0) is s


def test_continuous_hold_commits_once():
    hsm = HoldStateMachine(HoldConfig(commit_duration_s=1.5))
    commits = 0
    for i in range(60):
        state = hsm.update("HOIST LOAD", ts=i / FPS)
        if state.is_committed and hsm.committed_signal == "HOIST LOAD":
            commits += 1
            hsm.reset()
    # 60 frames = 2 s: one commit at 1.5 s, the restarted hold is still running
    assert commits == 1
    assert hsm.state.phase == HOLDING


def test_single_dropout_prevents_commit():
    hsm = HoldStateMachine()
    frames = ["HOIST LOAD"] * 30 + [NO_SIGNAL] + ["HOIST LOAD"] * 30
    for i, sig in enumerate(frames):
        state = hsm.update(sig, ts=i / FPS)
        assert state.phase != COMMITTED


def test_progress_and_seconds_left():
    hsm = HoldStateMachine(HoldConfig(commit_duration_s=2.0))
    assert hsm.progress() == 0.0
    assert hsm.seconds_left() == 2.0

    hsm.update("STOP", ts=10.0)
    hsm.update("STOP", ts=11.0)
    assert hsm.progress() == pytest.approx(0.5)
    assert hsm.seconds_left() == pytest.approx(1.0)
    assert hsm.held_s() == pytest.approx(1.0)

    hsm.update("STOP", ts=12.0)
    assert hsm.is_committed
    assert hsm.progress() == 1.0
    assert hsm.seconds_left() == 0.0
    assert hsm.debug()["state"] == COMMITTED


def test_default_clock_is_used_without_ts():
    t = [100.0]
    hsm = HoldStateMachine(HoldConfig(commit_duration_s=1.0), clock=lambda: t[0])
    hsm.update("STOP")
    t[0] = 101.0
    assert hsm.update("STOP").phase == COMMITTED


def test_reset_returns_to_idle():
    hsm = HoldStateMachine()
    hsm.update("STOP", ts=0.0)
    hsm.reset()
    assert hsm.state.phase == IDLE
    assert hsm.committed_signal is None
