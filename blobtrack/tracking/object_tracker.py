"""
Multi-Object Tracker with Persistent Identity.

Guarantees:
- Track ids are unique, monotonically assigned and never reused
- A track is reported only after it has matured
- A track is destroyed as soon as it misses too many frames, never resurrected
- Every lifecycle transition of a frame is applied after a full pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from loguru import logger

from blobtrack.core.contracts import (
    Blob,
    Point2D,
    TrackerConfig,
    TrackingOutput,
    TrackingResult,
)
from .assignment import AssignmentSolver, UNASSIGNED
from .association import (
    build_cost_matrix,
    find_occluded_tracks,
    gate_assignment,
    gate_distance,
    unclaimed_detections,
)
from .kalman_tracker import KalmanPointTracker, MotionModel, make_motion_model


@dataclass
class TrackedObject:
    """Internal representation of a tracked object."""
    track_id: int
    estimator: KalmanPointTracker
    last_measurement: Point2D

    # Lifecycle state
    missed_frames: int = 0
    lifetime: int = 0

    # Estimated positions, newest last (output only)
    trajectory: List[Point2D] = field(default_factory=list)

    @property
    def position(self) -> Point2D:
        return self.estimator.latest_estimate()

    def is_mature(self, maturation_threshold: int) -> bool:
        return self.lifetime > maturation_threshold

    def to_output(self) -> TrackingOutput:
        return TrackingOutput(
            track_id=self.track_id,
            position=self.position,
            trajectory=list(self.trajectory),
        )


class MultiObjectTracker:
    """
    Persistent blob tracker using Hungarian assignment and Kalman filtering.

    Ensures:
    - Objects keep stable ids across frames
    - Implausibly distant pairings are gated out
    - Tracks hidden inside another object's blob survive the overlap
    - Short-lived noise blobs are never reported
    """

    def __init__(
        self,
        frame_size: Tuple[int, int],
        config: Optional[TrackerConfig] = None,
    ):
        """
        Initialize multi-object tracker.

        Args:
            frame_size: (width, height) in pixels, fixed for the tracker's life
            config: Tracker configuration

        Raises:
            ValueError: on a non-positive frame size or invalid configuration
        """
        width, height = frame_size
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame size must be positive, got {frame_size}")

        self.frame_size = (int(width), int(height))
        self.config = (config or TrackerConfig()).validate()

        self._motion_model: MotionModel = make_motion_model(
            self.config.motion_model,
            self.config.dt,
            self.config.process_noise,
        )
        self._solver = AssignmentSolver()
        self._gate = gate_distance(self.frame_size, self.config.distance_threshold_factor)

        # Live tracks, keyed by id (insertion order == creation order)
        self._tracks: Dict[int, TrackedObject] = {}

        # ID generation
        self._next_id_counter: int = 0

        self._frame_index: int = 0

    def update(self, blobs: Sequence[Blob]) -> TrackingResult:
        """
        Update tracks with the merged blobs of one frame.

        Args:
            blobs: Merged blobs, possibly empty

        Returns:
            TrackingResult with mature tracks and this frame's births/deaths
        """
        self._frame_index += 1
        result = TrackingResult(frame_index=self._frame_index)
        blobs = list(blobs)

        if not blobs:
            self._coast(result)
            return result

        tracks = list(self._tracks.values())

        # Predict new positions for existing tracks
        predictions = [track.estimator.predict() for track in tracks]

        # Match blobs to existing tracks
        centroids = [blob.centroid for blob in blobs]
        cost = build_cost_matrix(predictions, centroids)
        raw_assignment = self._solver.solve(cost)
        assignment, gated = gate_assignment(raw_assignment, cost, self._gate)
        rescued = find_occluded_tracks(
            assignment, predictions, [blob.bounding_box for blob in blobs]
        )

        for row in sorted(gated):
            logger.debug(
                f"Track {tracks[row].track_id} gated out "
                f"(distance {cost[row, raw_assignment[row]]:.1f} > {self._gate:.1f})"
            )

        # Update missed-frame counters
        for row, track in enumerate(tracks):
            if assignment[row] != UNASSIGNED:
                track.missed_frames = 0
            elif row in rescued:
                track.missed_frames = 0
                logger.debug(f"Track {track.track_id} kept alive inside another blob")
            else:
                track.missed_frames += 1

        # Remove tracks that haven't been updated in a while
        doomed = self._stale_rows(tracks)
        for row in doomed:
            self._destroy(tracks[row], result)

        # Correct surviving tracks
        for row, track in enumerate(tracks):
            if row in doomed:
                continue
            if assignment[row] != UNASSIGNED:
                measurement = blobs[assignment[row]].centroid
                track.estimator.correct(measurement)
                track.last_measurement = measurement
            elif row in rescued:
                track.estimator.correct(track.last_measurement)
            else:
                track.estimator.correct()
            self._age(track)

        # Create new tracks for unclaimed blobs
        for col in unclaimed_detections(assignment, len(blobs)):
            self._spawn(blobs[col], result)

        result.outputs = self._mature_outputs()
        return result

    def _coast(self, result: TrackingResult) -> None:
        """Frame without blobs: every track misses, survivors run on the motion model."""
        tracks = list(self._tracks.values())
        for track in tracks:
            track.missed_frames += 1

        doomed = self._stale_rows(tracks)
        for row in doomed:
            self._destroy(tracks[row], result)

        for row, track in enumerate(tracks):
            if row in doomed:
                continue
            track.estimator.predict()
            self._age(track)

        result.outputs = self._mature_outputs()

    def _stale_rows(self, tracks: List[TrackedObject]) -> Set[int]:
        threshold = self.config.missed_frames_threshold
        return {row for row, track in enumerate(tracks) if track.missed_frames > threshold}

    def _age(self, track: TrackedObject) -> None:
        track.lifetime += 1
        track.trajectory.append(track.position)

    def _spawn(self, blob: Blob, result: TrackingResult) -> TrackedObject:
        kalman = KalmanPointTracker(
            blob.centroid,
            self._motion_model,
            measurement_noise=self.config.measurement_noise,
            initial_uncertainty=self.config.initial_uncertainty,
        )
        kalman.predict()
        kalman.correct(blob.centroid)

        track = TrackedObject(
            track_id=self._generate_id(),
            estimator=kalman,
            last_measurement=blob.centroid,
        )
        self._age(track)

        self._tracks[track.track_id] = track
        result.new_track_ids.append(track.track_id)
        logger.debug(f"New track created: {track.track_id} at ({blob.centroid[0]:.1f}, {blob.centroid[1]:.1f})")
        return track

    def _destroy(self, track: TrackedObject, result: TrackingResult) -> None:
        del self._tracks[track.track_id]
        result.lost_track_ids.append(track.track_id)
        logger.debug(
            f"Track lost: {track.track_id} "
            f"(missed {track.missed_frames} frames, lifetime {track.lifetime})"
        )

    def _mature_outputs(self) -> List[TrackingOutput]:
        threshold = self.config.maturation_threshold
        return [
            track.to_output()
            for track in self._tracks.values()
            if track.is_mature(threshold)
        ]

    def _generate_id(self) -> int:
        """Generate a unique, never reused track id."""
        self._next_id_counter += 1
        return self._next_id_counter

    def get_track(self, track_id: int) -> Optional[TrackedObject]:
        """Get a live track by id."""
        return self._tracks.get(track_id)

    @property
    def tracks(self) -> List[TrackedObject]:
        """Snapshot of live tracks in creation order."""
        return list(self._tracks.values())

    def reset(self):
        """Drop all tracks. Ids keep counting so none is ever reused."""
        self._tracks.clear()
        self._frame_index = 0
        logger.info("Multi-object tracker reset")

    @property
    def active_track_count(self) -> int:
        """Number of currently live tracks."""
        return len(self._tracks)

    @property
    def gate_distance(self) -> float:
        """Maximum accepted track-to-blob distance in pixels."""
        return self._gate

    @property
    def frame_index(self) -> int:
        return self._frame_index
