"""
Track-to-blob association helpers.

Pure functions over per-frame snapshots. None of them mutates its inputs.
"""

from __future__ import annotations

from typing import List, Sequence, Set, Tuple

import numpy as np
from numpy.typing import NDArray

from blobtrack.core.contracts import BoundingBox, Point2D
from .assignment import UNASSIGNED


def build_cost_matrix(
    predictions: Sequence[Point2D],
    centroids: Sequence[Point2D],
) -> NDArray[np.float64]:
    """Euclidean distance between every predicted position and every centroid."""
    pred = np.asarray(predictions, dtype=np.float64).reshape(-1, 2)
    cent = np.asarray(centroids, dtype=np.float64).reshape(-1, 2)
    diff = pred[:, None, :] - cent[None, :, :]
    return np.linalg.norm(diff, axis=2)


def gate_distance(frame_size: Tuple[int, int], distance_threshold_factor: float) -> float:
    """Largest plausible frame-to-frame displacement for a frame of this size."""
    width, height = frame_size
    return distance_threshold_factor * (width + height) / 2.0


def gate_assignment(
    assignment: NDArray[np.int64],
    cost_matrix: NDArray[np.float64],
    gate: float,
) -> Tuple[NDArray[np.int64], Set[int]]:
    """
    Unassign every pair whose cost exceeds the gate.

    Returns:
        (gated assignment copy, rows whose pair was rejected)
    """
    gated = assignment.copy()
    rejected: Set[int] = set()
    for row, col in enumerate(assignment):
        if col != UNASSIGNED and cost_matrix[row, col] > gate:
            gated[row] = UNASSIGNED
            rejected.add(row)
    return gated, rejected


def find_occluded_tracks(
    assignment: NDArray[np.int64],
    predictions: Sequence[Point2D],
    boxes: Sequence[BoundingBox],
) -> Set[int]:
    """
    Rows left unassigned whose prediction lies inside some blob's box.

    Such a track is probably hidden by, or merged with, another object
    into a single blob. The first containing box wins.
    """
    rescued: Set[int] = set()
    for row, col in enumerate(assignment):
        if col != UNASSIGNED:
            continue
        if any(box.contains(predictions[row]) for box in boxes):
            rescued.add(row)
    return rescued


def unclaimed_detections(assignment: NDArray[np.int64], num_detections: int) -> List[int]:
    """Detection indices no row is assigned to, in ascending order."""
    claimed = {int(col) for col in assignment if col != UNASSIGNED}
    return [j for j in range(num_detections) if j not in claimed]
