"""
Tracking Pipeline Orchestrator.

Executes the per-frame tracking pipeline in strict order:

1. Convert contours to blobs (when the segmenter hands over contours)
2. Merge blobs fragmented by segmentation
3. Associate, gate and update tracks
4. Report mature tracks
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from numpy.typing import NDArray
from loguru import logger

from blobtrack.core.contracts import Blob, TrackerConfig, TrackingResult
from blobtrack.detection.blob_merger import merge_blobs
from blobtrack.detection.contour_blobs import blobs_from_contours
from blobtrack.tracking.object_tracker import MultiObjectTracker


@dataclass
class PipelineStats:
    """Running counters for one pipeline instance."""
    frames_processed: int = 0
    tracks_created: int = 0
    tracks_lost: int = 0
    last_frame_latency_ms: float = 0.0
    latency_budget_exceeded_count: int = 0


class TrackingPipeline:
    """
    Per-frame tracking pipeline.

    Frames must be delivered strictly in capture order: the estimator
    assumes a fixed timestep between consecutive calls.
    """

    def __init__(
        self,
        frame_size: Tuple[int, int],
        config: Optional[TrackerConfig] = None,
    ):
        """
        Initialize tracking pipeline.

        Args:
            frame_size: (width, height) of every frame in pixels
            config: Tracker configuration
        """
        self.config = (config or TrackerConfig()).validate()
        self.tracker = MultiObjectTracker(frame_size, self.config)

        self._stats = PipelineStats()
        self._frame_latencies: List[float] = []

        logger.info(
            f"Tracking pipeline initialized: frame={self.tracker.frame_size}, "
            f"model={self.config.motion_model.value}, gate={self.tracker.gate_distance:.1f}px"
        )

    def process_frame(self, raw_blobs: Sequence[Blob]) -> TrackingResult:
        """
        Run one frame of raw blobs through merging and tracking.

        Args:
            raw_blobs: Unmerged blobs detected in the frame

        Returns:
            TrackingResult for the frame
        """
        pipeline_start = time.perf_counter()

        merged = merge_blobs(raw_blobs, self.config.merge_factor)
        result = self.tracker.update(merged)

        total_latency = (time.perf_counter() - pipeline_start) * 1000
        self._record(result, total_latency)
        return result

    def process_contours(self, contours: Sequence[NDArray]) -> TrackingResult:
        """Run one frame of segmenter contours through the pipeline."""
        blobs = blobs_from_contours(contours, self.config.contour_size_ratio)
        return self.process_frame(blobs)

    def _record(self, result: TrackingResult, total_latency: float) -> None:
        # Track latency
        self._frame_latencies.append(total_latency)
        if len(self._frame_latencies) > 100:
            self._frame_latencies.pop(0)

        # Check latency budget
        if total_latency > self.config.latency_budget_ms:
            self._stats.latency_budget_exceeded_count += 1
            logger.warning(
                f"Latency budget exceeded: {total_latency:.1f}ms > "
                f"{self.config.latency_budget_ms}ms"
            )

        self._stats.frames_processed += 1
        self._stats.tracks_created += len(result.new_track_ids)
        self._stats.tracks_lost += len(result.lost_track_ids)
        self._stats.last_frame_latency_ms = total_latency

    def reset(self):
        """Drop all tracks and counters."""
        self.tracker.reset()
        self._stats = PipelineStats()
        self._frame_latencies.clear()
        logger.info("Tracking pipeline reset")

    @property
    def stats(self) -> PipelineStats:
        """Get current pipeline counters."""
        return self._stats

    @property
    def average_latency_ms(self) -> float:
        """Get average frame latency."""
        if not self._frame_latencies:
            return 0.0
        return sum(self._frame_latencies) / len(self._frame_latencies)
