"""
Contour to Blob Conversion.

Turns contour point sets produced by an external segmenter into blobs:
- Centroid from image moments
- Bounding box around a polygon approximation of the contour
- Relative-size filtering of small contours
"""

from __future__ import annotations

from typing import List, Sequence

import cv2
import numpy as np
from numpy.typing import NDArray

from blobtrack.core.contracts import Blob, BoundingBox


# Max distance (px) between a contour and its polygon approximation
POLY_APPROX_EPSILON = 3.0


def _as_cv_points(points: NDArray) -> NDArray[np.float32]:
    """Reshape any (N, 2)-like point set to OpenCV's (N, 1, 2) float32 layout."""
    return np.asarray(points, dtype=np.float32).reshape(-1, 1, 2)


def _centroid(cv_points: NDArray[np.float32]) -> tuple:
    moments = cv2.moments(cv_points)
    if abs(moments["m00"]) > 1e-9:
        return (moments["m10"] / moments["m00"], moments["m01"] / moments["m00"])
    # Degenerate (line or point) shapes have no area
    mean = cv_points.reshape(-1, 2).mean(axis=0)
    return (float(mean[0]), float(mean[1]))


def _bounding_box(cv_points: NDArray[np.float32]) -> BoundingBox:
    x, y, w, h = cv2.boundingRect(cv_points)
    return BoundingBox(float(x), float(y), float(w), float(h))


def blob_from_contour(contour: NDArray) -> Blob:
    """
    Build a blob from a single contour.

    Args:
        contour: (N, 2) or (N, 1, 2) contour points, N >= 1

    Returns:
        Blob with moment centroid and approximated bounding box
    """
    cv_points = _as_cv_points(contour)
    if len(cv_points) == 0:
        raise ValueError("Cannot build a blob from an empty contour")

    polygon = cv2.approxPolyDP(cv_points, POLY_APPROX_EPSILON, True)
    return Blob(
        centroid=_centroid(cv_points),
        bounding_box=_bounding_box(polygon),
        contour=cv_points.reshape(-1, 2).astype(np.float64),
    )


def blob_from_points(points: NDArray) -> Blob:
    """
    Build a blob from an unordered point set (e.g. several merged contours).

    Concatenated contours do not form a simple polygon, so the centroid is
    taken from the moments of their convex hull.
    """
    cv_points = _as_cv_points(points)
    if len(cv_points) == 0:
        raise ValueError("Cannot build a blob from an empty point set")

    hull = cv2.convexHull(cv_points)
    return Blob(
        centroid=_centroid(hull),
        bounding_box=_bounding_box(cv_points),
        contour=cv_points.reshape(-1, 2).astype(np.float64),
    )


def filter_small_contours(
    contours: Sequence[NDArray],
    size_ratio: float,
) -> List[NDArray]:
    """
    Drop contours whose area is at most size_ratio times the largest area.

    A ratio of 0 keeps every contour.
    """
    contours = list(contours)
    if not contours or size_ratio <= 0:
        return contours

    areas = [
        cv2.contourArea(_as_cv_points(c)) if len(c) > 0 else 0.0
        for c in contours
    ]
    threshold = size_ratio * max(areas)
    return [c for c, area in zip(contours, areas) if area > threshold]


def blobs_from_contours(
    contours: Sequence[NDArray],
    size_ratio: float = 0.0,
) -> List[Blob]:
    """Filter contours by relative size and convert the survivors to blobs."""
    return [
        blob_from_contour(contour)
        for contour in filter_small_contours(contours, size_ratio)
        if len(contour) > 0
    ]
