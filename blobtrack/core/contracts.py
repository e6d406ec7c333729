"""
Core data contracts for the blob tracking engine.

All components exchange these types for:
- Immutable per-frame observations
- Deterministic per-frame results
- A single, validated configuration surface
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Tuple
import numpy as np
from numpy.typing import NDArray


Point2D = Tuple[float, float]


# ============================================================
# ENUMERATIONS
# ============================================================

class MotionModelType(Enum):
    """Kinematic model used by each track's estimator."""
    CONSTANT_VELOCITY = "constant_velocity"
    CONSTANT_ACCELERATION = "constant_acceleration"


# ============================================================
# OBSERVATIONS
# ============================================================

@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box in pixels (top-left corner + size)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point2D:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def max_dimension(self) -> float:
        return max(self.width, self.height)

    @property
    def corners(self) -> NDArray[np.float64]:
        """Corner points as a (4, 2) array, clockwise from top-left."""
        x2 = self.x + self.width
        y2 = self.y + self.height
        return np.array(
            [[self.x, self.y], [x2, self.y], [x2, y2], [self.x, y2]],
            dtype=np.float64,
        )

    def contains(self, point: Point2D) -> bool:
        """Half-open containment: left/top edges inside, right/bottom outside."""
        px, py = point
        return (
            self.x <= px < self.x + self.width
            and self.y <= py < self.y + self.height
        )


@dataclass(frozen=True)
class Blob:
    """
    A spatial observation of one candidate object in one frame.

    The contour is optional: blobs handed over by an external detector may
    carry only a centroid and a box. When present it is an (N, 2) array of
    the points the centroid and box were computed from.
    """
    centroid: Point2D
    bounding_box: BoundingBox
    contour: Optional[NDArray[np.float64]] = field(default=None, compare=False)

    @property
    def points(self) -> NDArray[np.float64]:
        """Point set representing this blob (contour, else box corners)."""
        if self.contour is not None and len(self.contour) > 0:
            return np.asarray(self.contour, dtype=np.float64).reshape(-1, 2)
        return self.bounding_box.corners


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass
class TrackerConfig:
    """
    Tunables for merging, association and state estimation.

    Misconfiguration degrades tracking quality but never breaks the frame
    loop; validate() only rejects values that make the math meaningless.
    """
    # Lifecycle
    maturation_threshold: int = 20       # frames before a track is emitted
    missed_frames_threshold: int = 10    # frames without update before death
    distance_threshold_factor: float = 1.0  # gate = factor * (W + H) / 2

    # Merging
    merge_factor: float = 0.7            # k in d < k * max dimension
    contour_size_ratio: float = 0.0      # drop contours <= ratio * largest area

    # Estimator
    motion_model: MotionModelType = MotionModelType.CONSTANT_VELOCITY
    dt: float = 0.2
    process_noise: float = 0.5           # acceleration noise magnitude
    measurement_noise: float = 0.1
    initial_uncertainty: float = 0.1

    # Pipeline
    latency_budget_ms: float = 33.0

    def validate(self) -> "TrackerConfig":
        """Raise ValueError on values no tracker can run with."""
        if self.maturation_threshold < 0:
            raise ValueError(f"maturation_threshold must be >= 0, got {self.maturation_threshold}")
        if self.missed_frames_threshold < 0:
            raise ValueError(f"missed_frames_threshold must be >= 0, got {self.missed_frames_threshold}")
        if self.distance_threshold_factor <= 0:
            raise ValueError(f"distance_threshold_factor must be > 0, got {self.distance_threshold_factor}")
        if self.merge_factor < 0:
            raise ValueError(f"merge_factor must be >= 0, got {self.merge_factor}")
        if not 0.0 <= self.contour_size_ratio <= 1.0:
            raise ValueError(f"contour_size_ratio must be in [0, 1], got {self.contour_size_ratio}")
        if self.dt <= 0:
            raise ValueError(f"dt must be > 0, got {self.dt}")
        if self.process_noise < 0 or self.measurement_noise < 0:
            raise ValueError("noise magnitudes must be >= 0")
        if self.initial_uncertainty <= 0:
            raise ValueError(f"initial_uncertainty must be > 0, got {self.initial_uncertainty}")
        if not isinstance(self.motion_model, MotionModelType):
            raise ValueError(f"Unknown motion model: {self.motion_model!r}")
        return self


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class TrackingOutput:
    """One mature, live track as reported for a frame."""
    track_id: int
    position: Point2D
    trajectory: List[Point2D]


@dataclass
class TrackingResult:
    """Result of one tracker update."""
    frame_index: int
    outputs: List[TrackingOutput] = field(default_factory=list)
    new_track_ids: List[int] = field(default_factory=list)
    lost_track_ids: List[int] = field(default_factory=list)

    @property
    def output_ids(self) -> List[int]:
        return [output.track_id for output in self.outputs]
