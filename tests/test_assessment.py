import random

import numpy as np
import pytest

from crane_signals.assessment import AssessmentSession, DrillResult
from crane_signals.config import AssessmentConfig, EvidenceConfig, HoldConfig
from crane_signals.evidence import EvidenceCapture, EvidenceHandle
from crane_signals.signal_rules import LOWER_BOOM, NO_SIGNAL, RAISE_BOOM, SIGNAL_NAMES

FPS = 30.0


def run(session, frame, n, start=0, image=None):
    results = []
    outcomes = []
    for i in range(start, start + n):
        out = session.process_frame(*frame, frame_bgr=image, now=i / FPS)
        outcomes.append(out)
        if out.result is not None:
            results.append(out.result)
    return outcomes, results


def test_drill_passes_on_target(raise_boom_frame):
    s = AssessmentSession()
    assert s.start_drill(RAISE_BOOM) == RAISE_BOOM

    outcomes, results = run(s, raise_boom_frame, 50)
    assert len(results) == 1
    r = results[0]
    assert r.target == RAISE_BOOM
    assert r.committed_signal == RAISE_BOOM
    assert r.passed
    assert r.held_s >= 1.5
    assert r.evidence is None

    # the commit frame is the first with t >= 1.5 s
    assert outcomes[45].result is r
    assert outcomes[44].hold.phase == "HOLDING"
    assert 0.9 < outcomes[44].progress < 1.0

    assert s.target is None
    assert s.score() == (1, 1)


def test_drill_fails_on_other_signal(lower_boom_frame):
    s = AssessmentSession()
    s.start_drill(RAISE_BOOM)
    _, results = run(s, lower_boom_frame, 50)
    assert len(results) == 1
    assert results[0].committed_signal == LOWER_BOOM
    assert not results[0].passed
    assert s.score() == (0, 1)


def test_random_target_uses_rng():
    s1 = AssessmentSession(rng=random.Random(7))
    s2 = AssessmentSession(rng=random.Random(7))
    picks = [s1.start_drill() for _ in range(5)]
    assert picks == [s2.start_drill() for _ in range(5)]
    assert all(p in SIGNAL_NAMES for p in picks)


def test_restricted_targets():
    s = AssessmentSession(targets=[RAISE_BOOM], rng=random.Random(1))
    assert s.start_drill() == RAISE_BOOM
    with pytest.raises(ValueError):
        AssessmentSession(targets=["JUMP"])
    with pytest.raises(ValueError):
        s.start_drill("JUMP")


def test_pause_discards_hold_progress(raise_boom_frame):
    s = AssessmentSession()
    s.start_drill(RAISE_BOOM)
    _, results = run(s, raise_boom_frame, 30)
    assert results == []

    s.set_modality("voice")
    assert s.paused
    assert all(len(b) == 0 for b in s.classifier.histories.buffers())
    out = s.process_frame(*raise_boom_frame, now=1.0)
    assert out.signal == NO_SIGNAL

    s.set_modality("signals")
    # 1 s before the pause plus 1 s after is not a continuous 1.5 s hold
    _, results = run(s, raise_boom_frame, 30, start=31)
    assert results == []

    with pytest.raises(ValueError):
        s.set_modality("gestures")


def test_evidence_captured_at_hold_start(raise_boom_frame, tmp_path):
    ev = EvidenceCapture(EvidenceConfig(evidence_dir=str(tmp_path)))
    try:
        s = AssessmentSession(hold_cfg=HoldConfig(commit_duration_s=0.5), evidence=ev, user_id="u1")
        s.start_drill(RAISE_BOOM)
        image = np.zeros((90, 160, 3), dtype=np.uint8)
        _, results = run(s, raise_boom_frame, 20, image=image)

        assert len(results) == 1
        handle = results[0].evidence
        assert isinstance(handle, EvidenceHandle)
        path = handle.result(timeout=10)
        assert path is not None
        assert (tmp_path / "u1").is_dir()
        assert results[0].to_dict()["evidence"] == path
    finally:
        ev.shutdown()


def test_result_to_dict(raise_boom_frame):
    s = AssessmentSession(hold_cfg=HoldConfig(commit_duration_s=0.2))
    s.start_drill(RAISE_BOOM)
    _, results = run(s, raise_boom_frame, 10)
    d = results[0].to_dict()
    assert d["committed_signal"] == RAISE_BOOM
    assert d["passed"] is True
    assert d["evidence"] is None


def graded(n_passed, n_failed):
    return [DrillResult(RAISE_BOOM, RAISE_BOOM, True, None, 1.5)] * n_passed + [
        DrillResult(RAISE_BOOM, LOWER_BOOM, False, None, 1.5)
    ] * n_failed


def test_assessment_verdict_at_threshold():
    s = AssessmentSession()
    assert s.passed_assessment() is False
    assert s.summary() == {"passed": 0, "total": 0, "ratio": 0.0, "assessment_passed": False}

    s.results.extend(graded(4, 1))
    assert s.passed_assessment() is True
    summary = s.summary()
    assert summary["ratio"] == pytest.approx(0.8)
    assert summary["assessment_passed"] is True

    s.results.extend(graded(0, 1))
    # 4 / 6 is below 80 %
    assert s.passed_assessment() is False


def test_assessment_threshold_is_configurable():
    s = AssessmentSession(assessment_cfg=AssessmentConfig(pass_threshold=0.5))
    s.results.extend(graded(1, 1))
    assert s.passed_assessment() is True


def test_ensure_drill_keeps_explicit_target():
    s = AssessmentSession(rng=random.Random(3))
    s.start_drill(LOWER_BOOM)
    assert s.ensure_drill() == LOWER_BOOM

    s.target = None
    assert s.ensure_drill() in SIGNAL_NAMES

    s.target = None
    s.pause()
    assert s.ensure_drill() is None
