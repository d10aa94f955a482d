"""
Configuration for the crane signal classifier and its runtime.

All tunables live in small dataclasses with defaults, so a caller can
override single values without touching the rest:

    SignalThresholds(boom_min_arm_angle=115.0)

Every dataclass validates itself in __post_init__. Invalid values
(non-finite numbers, non-positive durations, empty buffers) raise
ValueError immediately: the classifier must refuse to start rather than
produce silently wrong results.
"""
# crane_signals/config.py
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union


def _check_finite(obj: Any) -> None:
    for f in fields(obj):
        val = getattr(obj, f.name)
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            continue
        if not math.isfinite(val):
            raise ValueError(f"{type(obj).__name__}.{f.name} must be finite, got {val!r}")


@dataclass
class SignalThresholds:
    """
    Geometric thresholds used by the primitives, analyzers and rules.

    Distances are in normalized image units, angles in degrees, ratios are
    relative to hand size (wrist -> index knuckle) unless noted otherwise.
    """

    # Arm posture
    arm_horizontal_min_angle: float = 125.0
    arm_horizontal_max_y_diff: float = 0.25

    # Thumb direction (fraction of hand size)
    thumb_vertical_ratio: float = 0.40
    thumb_horizontal_ratio: float = 0.15

    # Finger shape
    index_straight_ratio: float = 1.10
    palm_open_ratio: float = 1.05
    hand_horizontal_ratio: float = 0.80
    hands_level_max_y_diff: float = 0.20

    # DOG EVERYTHING
    dog_max_wrist_distance: float = 0.15

    # MAIN HOIST / AUX HOIST
    main_hoist_max_head_distance: float = 0.25
    aux_hoist_max_arm_angle: float = 85.0
    aux_hoist_max_tap_distance: float = 0.35

    # HOIST LOAD / LOWER LOAD
    forearm_vertical_max_dx: float = 0.20

    # Boom / travel
    boom_min_arm_angle: float = 120.0
    trolley_max_arm_angle: float = 110.0

    # Motion analyzers
    repetitive_min_samples: int = 10
    repetitive_min_extent: float = 0.02
    repetitive_min_ratio: float = 1.2
    wave_min_samples: int = 5
    wave_min_width: float = 0.15
    wave_aspect: float = 1.5
    wave_min_ratio: float = 1.2
    clench_min_samples: int = 15

    def __post_init__(self):
        _check_finite(self)
        for f in fields(self):
            val = getattr(self, f.name)
            if val <= 0:
                raise ValueError(f"SignalThresholds.{f.name} must be > 0, got {val!r}")
        for name in ("arm_horizontal_min_angle", "aux_hoist_max_arm_angle",
                     "boom_min_arm_angle", "trolley_max_arm_angle"):
            if getattr(self, name) > 180.0:
                raise ValueError(f"SignalThresholds.{name} must be <= 180 degrees")


@dataclass
class HistoryConfig:
    # ~1 s at typical frame rates
    capacity: int = 30

    def __post_init__(self):
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise ValueError(f"HistoryConfig.capacity must be an int, got {self.capacity!r}")
        if self.capacity < 1:
            raise ValueError(f"HistoryConfig.capacity must be >= 1, got {self.capacity}")


@dataclass
class HoldConfig:
    # continuous agreement required before a signal is locked in
    commit_duration_s: float = 1.5

    def __post_init__(self):
        _check_finite(self)
        if self.commit_duration_s <= 0:
            raise ValueError(
                f"HoldConfig.commit_duration_s must be > 0, got {self.commit_duration_s}"
            )


@dataclass
class AssessmentConfig:
    # share of passed drills needed to pass the whole assessment
    pass_threshold: float = 0.8

    def __post_init__(self):
        _check_finite(self)
        if not (0.0 < self.pass_threshold <= 1.0):
            raise ValueError(
                f"AssessmentConfig.pass_threshold must be in (0, 1], got {self.pass_threshold}"
            )


@dataclass
class EvidenceConfig:
    evidence_dir: str = "evidence"
    jpeg_quality: int = 70
    max_workers: int = 1
    watermark: bool = True

    def __post_init__(self):
        if not (1 <= int(self.jpeg_quality) <= 100):
            raise ValueError(f"EvidenceConfig.jpeg_quality must be in 1..100, got {self.jpeg_quality}")
        if int(self.max_workers) < 1:
            raise ValueError(f"EvidenceConfig.max_workers must be >= 1, got {self.max_workers}")


@dataclass
class LiveConfig:
    camera_index: int = 0
    flip: bool = True

    # pose landmarks below this visibility are treated as missing
    min_visibility: float = 0.5

    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    model_complexity: int = 1

    # Wie oft Telemetry (UI) aktualisiert werden soll
    telemetry_interval_s: float = 1.0 / 15.0

    show_window: bool = True
    draw_overlay: bool = True
    draw_debug: bool = False

    def __post_init__(self):
        _check_finite(self)
        for name in ("min_visibility", "min_detection_confidence", "min_tracking_confidence"):
            val = getattr(self, name)
            if not (0.0 <= val <= 1.0):
                raise ValueError(f"LiveConfig.{name} must be in 0..1, got {val}")
        if self.telemetry_interval_s <= 0:
            raise ValueError("LiveConfig.telemetry_interval_s must be > 0")


@dataclass
class AppConfig:
    thresholds: SignalThresholds = field(default_factory=SignalThresholds)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    hold: HoldConfig = field(default_factory=HoldConfig)
    assessment: AssessmentConfig = field(default_factory=AssessmentConfig)
    evidence: EvidenceConfig = field(default_factory=EvidenceConfig)
    live: LiveConfig = field(default_factory=LiveConfig)


_SECTIONS = {
    "thresholds": SignalThresholds,
    "history": HistoryConfig,
    "hold": HoldConfig,
    "assessment": AssessmentConfig,
    "evidence": EvidenceConfig,
    "live": LiveConfig,
}


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from nested dicts, e.g. {"hold": {"commit_duration_s": 2.0}}.

    Unknown sections or keys raise ValueError instead of being ignored.
    """
    kwargs: Dict[str, Any] = {}
    for section, values in (data or {}).items():
        cls = _SECTIONS.get(section)
        if cls is None:
            raise ValueError(f"Unknown config section: {section!r}")
        if not isinstance(values, dict):
            raise ValueError(f"Config section {section!r} must be an object")
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown keys in {section!r}: {sorted(unknown)}")
        kwargs[section] = cls(**values)
    return AppConfig(**kwargs)


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    if path is None:
        return AppConfig()
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a JSON object")
    return config_from_dict(data)
