from crane_signals.debug_stats import get_debug_stats
from crane_signals.motion_history import FrameHistories


def test_no_pose_gives_none():
    assert get_debug_stats(None, None, None) is None


def test_raise_boom_measurements(raise_boom_frame):
    pose, left, right = raise_boom_frame
    hist = FrameHistories.create(30)
    hist.update(pose, left, right)
    stats = get_debug_stats(pose, left, right, hist)

    assert stats["r_arm_angle"] == 170
    assert stats["r_thumb_status"] == "UP"
    assert stats["l_thumb_status"] == "N/A"
    assert stats["l_thumb"] == {"x": None, "y": None}
    assert stats["r_thumb"]["y"] > 0
    assert stats["r_wrist_level"] == 0.03
    assert stats["wave"] is False
    assert stats["r_clench"] is False


def test_without_histories_motion_flags_are_false(make_pose):
    stats = get_debug_stats(make_pose(), None, None)
    assert stats["l_circling"] is False
    assert stats["wave"] is False
    assert stats["l_index_ratio"] == 0.0
