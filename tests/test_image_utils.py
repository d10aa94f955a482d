import numpy as np

from crane_signals.image_utils import draw_debug_lines, draw_hold_bar, draw_signal_label


def blank():
    return np.zeros((240, 320, 3), dtype=np.uint8)


def test_draw_hold_bar_fills_with_progress():
    empty, half = blank(), blank()
    draw_hold_bar(empty, "IDLE", 0.0, 1.5)
    draw_hold_bar(half, "HOLDING", 0.5, 0.75)
    # inside the filled part, above the text
    assert tuple(half[14, 110]) == (0, 150, 255)
    assert tuple(empty[14, 110]) != (0, 150, 255)


def test_draw_hold_bar_clamps_progress():
    f = blank()
    draw_hold_bar(f, "COMMITTED", 3.0, 0.0)
    assert tuple(f[14, 300]) == (0, 200, 0)


def test_draw_signal_label_and_debug():
    f = blank()
    draw_signal_label(f, "STOP", target="STOP", passed=True)
    assert f[-50:].any()

    g = blank()
    draw_debug_lines(g, None)
    assert not g.any()
    draw_debug_lines(g, {"r_arm_angle": 170, "r_thumb": {"x": 0.1, "y": None}})
    assert g.any()
