"""
Core contracts and configuration for the blob tracking engine.
"""

from .contracts import (
    Point2D,
    BoundingBox,
    Blob,
    MotionModelType,
    TrackerConfig,
    TrackingOutput,
    TrackingResult,
)
from .config import load_config, tracker_config_from_dict
