"""
Minimum-cost bipartite assignment.

Thin, validated wrapper around scipy's Hungarian solver that reports the
result in the row-indexed form the tracker consumes.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import linear_sum_assignment


UNASSIGNED = -1


class AssignmentSolver:
    """
    Solves rectangular assignment problems (rows = tracks, columns = detections).

    Guarantees:
    - Total cost of the assigned pairs is minimal
    - Exactly min(m, n) pairs are assigned, each row and column at most once
    - The same matrix always yields the same assignment
    """

    def solve(self, cost_matrix: ArrayLike) -> NDArray[np.int64]:
        """
        Assign columns to rows.

        Args:
            cost_matrix: (m, n) non-negative, finite costs

        Returns:
            Array of length m holding the assigned column per row, or
            UNASSIGNED

        Raises:
            ValueError: if the matrix is not 2-D or has negative/non-finite entries
        """
        cost = np.asarray(cost_matrix, dtype=np.float64)
        if cost.ndim != 2:
            raise ValueError(f"Cost matrix must be 2-D, got shape {cost.shape}")

        assignment = np.full(cost.shape[0], UNASSIGNED, dtype=np.int64)
        if cost.size == 0:
            return assignment

        if not np.all(np.isfinite(cost)):
            raise ValueError("Cost matrix contains non-finite entries")
        if np.any(cost < 0):
            raise ValueError("Cost matrix contains negative entries")

        rows, cols = linear_sum_assignment(cost)
        assignment[rows] = cols
        return assignment

    @staticmethod
    def total_cost(cost_matrix: ArrayLike, assignment: NDArray[np.int64]) -> float:
        """Sum of costs over assigned pairs."""
        cost = np.asarray(cost_matrix, dtype=np.float64)
        rows = np.flatnonzero(assignment != UNASSIGNED)
        return float(cost[rows, assignment[rows]].sum())
