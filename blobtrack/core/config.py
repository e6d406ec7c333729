"""
Configuration loading.

Settings live in a YAML file with one section per concern:

    tracking:   maturation_threshold, missed_frames_threshold, distance_threshold_factor
    merge:      merge_factor, contour_size_ratio
    estimator:  motion_model, dt, process_noise, measurement_noise, initial_uncertainty
    pipeline:   latency_budget_ms
    frame:      width, height          (read by the entry point)
    logging:    level, file            (read by the entry point)
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger

from .contracts import MotionModelType, TrackerConfig


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "settings.yaml"

# Sections of the YAML file that map onto TrackerConfig fields
_TRACKER_SECTIONS = ("tracking", "merge", "estimator", "pipeline")


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration from file, falling back to the bundled defaults."""
    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}

    if config_path:
        logger.warning(f"Config file not found: {config_path}, using defaults")

    if DEFAULT_CONFIG_PATH.exists():
        with open(DEFAULT_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}

    return {}


def tracker_config_from_dict(data: Optional[Dict[str, Any]]) -> TrackerConfig:
    """
    Build a validated TrackerConfig from a loaded configuration dict.

    Unknown keys are logged and ignored so that an older config file keeps
    working against a newer tracker.

    Raises:
        ValueError: if a value is out of range or the motion model is unknown
    """
    data = data or {}
    known = {f.name for f in fields(TrackerConfig)}
    values: Dict[str, Any] = {}

    for section in _TRACKER_SECTIONS:
        for key, value in (data.get(section) or {}).items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {section}.{key}")
                continue
            values[key] = value

    if "motion_model" in values:
        values["motion_model"] = _parse_motion_model(values["motion_model"])

    return TrackerConfig(**values).validate()


def _parse_motion_model(value: Any) -> MotionModelType:
    if isinstance(value, MotionModelType):
        return value
    try:
        return MotionModelType(str(value).lower())
    except ValueError:
        available = [m.value for m in MotionModelType]
        raise ValueError(f"Unknown motion model '{value}'. Available: {available}") from None
