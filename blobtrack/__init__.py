"""
Multi-target blob tracking engine.

Associates noisy, unlabeled per-frame blob observations (centroid + bounding
box) with persistent object identities and estimates each object's
trajectory through time.

Per-frame processing order:
1. Merge raw blobs fragmented by segmentation noise
2. Predict every live track forward one timestep
3. Associate tracks to blobs (minimum-cost bipartite assignment)
4. Gate implausible pairs and rescue occluded tracks
5. Destroy stale tracks and correct the survivors
6. Spawn tracks for unclaimed blobs and emit mature tracks
"""

__version__ = "0.1.0"
__author__ = "blobtrack developers"
