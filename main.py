#!/usr/bin/env python3
"""
Blob Tracker

Replays recorded per-frame blob detections through the tracking pipeline
and logs every mature track.

Usage:
    python main.py DETECTIONS [--config CONFIG_PATH] [--width W --height H]

Detections file (JSON lines, one frame per line, in capture order):
    {"blobs": [{"centroid": [x, y], "bbox": [x, y, w, h]}, ...]}
    {"contours": [[[x, y], [x, y], ...], ...]}
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from loguru import logger

from blobtrack.core.config import load_config, tracker_config_from_dict
from blobtrack.core.contracts import Blob, BoundingBox, TrackingResult
from blobtrack.pipeline.orchestrator import TrackingPipeline


# ============================================================
# LOGGING CONFIGURATION
# ============================================================

def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging."""
    logger.remove()  # Remove default handler

    # Console output with colors
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        colorize=True,
    )

    # File output
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {module}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )


# ============================================================
# DETECTION REPLAY
# ============================================================

def parse_blob(data: Dict[str, Any]) -> Blob:
    """Build a Blob from {"centroid": [x, y], "bbox": [x, y, w, h]}."""
    cx, cy = data["centroid"]
    x, y, w, h = data["bbox"]
    return Blob(
        centroid=(float(cx), float(cy)),
        bounding_box=BoundingBox(float(x), float(y), float(w), float(h)),
    )


def parse_contour(data: Any) -> NDArray[np.float64]:
    """Build an (N, 2) contour from [[x, y], ...], N >= 1."""
    points = np.asarray(data, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2 or len(points) == 0:
        raise ValueError(f"expected a non-empty list of [x, y] points, got shape {points.shape}")
    return points


def _record_list(record: Dict[str, Any], key: str) -> List[Any]:
    items = record.get(key) or []
    if not isinstance(items, list):
        logger.error(f"Expected a list under '{key}', got {type(items).__name__}; treated as empty")
        return []
    return items


def read_frames(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield one decoded frame record per non-empty line, skipping bad lines."""
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.error(f"{path}:{line_no}: invalid JSON ({e}), frame skipped")
                continue
            if not isinstance(record, dict):
                logger.error(f"{path}:{line_no}: expected an object, frame skipped")
                continue
            yield record


class TrackingApp:
    """Main application class."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        frame_width: Optional[int] = None,
        frame_height: Optional[int] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.config = config if config is not None else load_config(config_path)

        frame = self.config.get('frame', {}) or {}
        frame_size = (
            frame_width or frame.get('width', 640),
            frame_height or frame.get('height', 480),
        )

        self.pipeline = TrackingPipeline(frame_size, tracker_config_from_dict(self.config))

    def process_record(self, record: Dict[str, Any]) -> TrackingResult:
        """Run one decoded frame record through the pipeline."""
        if "contours" in record:
            contours: List[NDArray[np.float64]] = []
            for item in _record_list(record, "contours"):
                try:
                    contours.append(parse_contour(item))
                except (TypeError, ValueError) as e:
                    logger.error(f"Malformed contour ignored: {e}")
            return self.pipeline.process_contours(contours)

        blobs: List[Blob] = []
        for item in _record_list(record, "blobs"):
            try:
                blobs.append(parse_blob(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Malformed blob {item!r} ignored: {e}")
        return self.pipeline.process_frame(blobs)

    def run(self, detections_path: Path) -> int:
        """Replay a detections file. Returns the number of frames processed."""
        logger.info(f"Replaying detections from {detections_path}")

        for record in read_frames(detections_path):
            result = self.process_record(record)
            for output in result.outputs:
                x, y = output.position
                logger.info(
                    f"frame={result.frame_index} track={output.track_id} "
                    f"pos=({x:.1f}, {y:.1f}) trajectory_len={len(output.trajectory)}"
                )

        stats = self.pipeline.stats
        logger.info(
            f"Done: {stats.frames_processed} frames, {stats.tracks_created} tracks created, "
            f"{stats.tracks_lost} lost, avg latency {self.pipeline.average_latency_ms:.2f}ms"
        )
        return stats.frames_processed


# ============================================================
# ENTRY POINT
# ============================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Multi-target blob tracker (detection replay)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "detections",
        type=Path,
        help="JSON-lines file with one frame of blobs per line",
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to configuration file",
    )

    parser.add_argument("--width", type=int, default=None, help="Frame width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Frame height in pixels")

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config, else INFO)",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    log_config = config.get('logging', {}) or {}

    # Setup logging
    setup_logging(
        args.log_level or log_config.get('level', "INFO"),
        args.log_file or log_config.get('file'),
    )

    if not args.detections.exists():
        logger.error(f"Detections file not found: {args.detections}")
        return 1

    try:
        app = TrackingApp(args.config, args.width, args.height, config=config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    app.run(args.detections)
    return 0


if __name__ == "__main__":
    sys.exit(main())
