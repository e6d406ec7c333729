"""
Blob Detection Post-processing.

Responsibilities:
- Contour to blob conversion (moments + bounding boxes)
- Relative-size filtering of small contours
- Merging of blobs fragmented by segmentation noise
"""

from .blob_merger import DisjointSet, merge_blobs
from .contour_blobs import blob_from_contour, blob_from_points, blobs_from_contours
