"""
Blob Merging.

Segmentation often splits one physical object into several nearby blobs.
Blobs whose centroids are close relative to their size are grouped with a
disjoint-set forest and each group is collapsed into a single blob.
"""

from __future__ import annotations

import math
from typing import Dict, List, Sequence

import numpy as np
from loguru import logger

from blobtrack.core.contracts import Blob
from .contour_blobs import blob_from_points


class DisjointSet:
    """
    Union-find over the integers 0..n-1.

    Union by size with path-compressed find.
    """

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.size = [1] * n

    def __len__(self) -> int:
        return len(self.parent)

    def find(self, x: int) -> int:
        """Return the representative of x's set, compressing the path."""
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> bool:
        """Join the sets holding a and b. Returns False if already joined."""
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self.size[ra] < self.size[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        self.size[ra] += self.size[rb]
        return True

    def groups(self) -> Dict[int, List[int]]:
        """Members of every set keyed by representative, in first-member order."""
        result: Dict[int, List[int]] = {}
        for i in range(len(self.parent)):
            result.setdefault(self.find(i), []).append(i)
        return result


def should_merge(a: Blob, b: Blob, merge_factor: float) -> bool:
    """True when the centroid distance is below merge_factor times the larger box side."""
    dimension = max(a.bounding_box.max_dimension, b.bounding_box.max_dimension)
    distance = math.hypot(a.centroid[0] - b.centroid[0], a.centroid[1] - b.centroid[1])
    return distance < merge_factor * dimension


def merge_blobs(blobs: Sequence[Blob], merge_factor: float = 0.7) -> List[Blob]:
    """
    Merge blobs that likely belong to one fragmented object.

    Args:
        blobs: Raw blobs for one frame
        merge_factor: k in ``distance < k * max(w_i, h_i, w_j, h_j)``

    Returns:
        One blob per group. Singletons are passed through as-is; merged
        groups get their centroid and box recomputed from the union of
        member points. Groups are ordered by their lowest member index.

    A merged blob has a larger box than its members and may now reach a
    neighbour that was out of range, so passes repeat until nothing merges.
    Merging the result again changes nothing.
    """
    blobs = list(blobs)
    if not blobs:
        return []

    merged = _merge_pass(blobs, merge_factor)
    while len(merged) < len(blobs) and len(merged) > 1:
        blobs, merged = merged, _merge_pass(merged, merge_factor)

    return merged


def _merge_pass(blobs: List[Blob], merge_factor: float) -> List[Blob]:
    """Group blobs pairwise within range once and collapse every group."""
    sets = DisjointSet(len(blobs))
    for i in range(len(blobs)):
        for j in range(len(blobs)):
            if i != j and should_merge(blobs[i], blobs[j], merge_factor):
                sets.union(i, j)

    merged: List[Blob] = []
    for members in sets.groups().values():
        if len(members) == 1:
            merged.append(blobs[members[0]])
            continue

        points = np.concatenate([blobs[m].points for m in members], axis=0)
        merged.append(blob_from_points(points))

    if len(merged) < len(blobs):
        logger.debug(f"Merged {len(blobs)} blobs into {len(merged)}")

    return merged
