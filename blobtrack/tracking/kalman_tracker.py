"""
Kalman Filter for Point Tracking.

Provides recursive position/velocity (optionally acceleration) estimation
for a single tracked blob centroid.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from blobtrack.core.contracts import MotionModelType, Point2D


# Spatial axes (x, y); every per-axis model block is expanded over these
_AXES = 2


class MotionModel(ABC):
    """
    Linear kinematic model for a point moving in the image plane.

    Matrices are built for one axis and expanded to both axes, so the state
    vector is ordered by derivative: [x, y, vx, vy, (ax, ay)].
    """

    def __init__(self, dt: float, noise_magnitude: float):
        """
        Args:
            dt: Timestep between consecutive frames
            noise_magnitude: Process noise magnitude (variance of the
                unmodelled acceleration)
        """
        self.dt = dt
        self.noise_magnitude = noise_magnitude

    @property
    @abstractmethod
    def order(self) -> int:
        """Number of tracked derivatives per axis, position included."""

    @abstractmethod
    def _axis_transition(self) -> NDArray[np.float64]:
        """(order, order) transition matrix for one axis."""

    @abstractmethod
    def _axis_noise_gain(self) -> NDArray[np.float64]:
        """(order,) gain mapping a random acceleration into the axis state."""

    @property
    def state_dim(self) -> int:
        return self.order * _AXES

    def transition_matrix(self) -> NDArray[np.float64]:
        return np.kron(self._axis_transition(), np.eye(_AXES))

    def process_noise(self) -> NDArray[np.float64]:
        gain = self._axis_noise_gain().reshape(-1, 1)
        return self.noise_magnitude * np.kron(gain @ gain.T, np.eye(_AXES))

    def measurement_matrix(self) -> NDArray[np.float64]:
        """Observes position only."""
        selector = np.zeros((1, self.order))
        selector[0, 0] = 1.0
        return np.kron(selector, np.eye(_AXES))


class ConstantVelocityModel(MotionModel):
    """State [x, y, vx, vy]; acceleration is treated as noise."""

    @property
    def order(self) -> int:
        return 2

    def _axis_transition(self) -> NDArray[np.float64]:
        return np.array([
            [1.0, self.dt],
            [0.0, 1.0],
        ])

    def _axis_noise_gain(self) -> NDArray[np.float64]:
        return np.array([self.dt ** 2 / 2.0, self.dt])


class ConstantAccelerationModel(MotionModel):
    """State [x, y, vx, vy, ax, ay]; acceleration increments are treated as noise."""

    @property
    def order(self) -> int:
        return 3

    def _axis_transition(self) -> NDArray[np.float64]:
        dt = self.dt
        return np.array([
            [1.0, dt, dt ** 2 / 2.0],
            [0.0, 1.0, dt],
            [0.0, 0.0, 1.0],
        ])

    def _axis_noise_gain(self) -> NDArray[np.float64]:
        return np.array([self.dt ** 2 / 2.0, self.dt, 1.0])


_MODELS = {
    MotionModelType.CONSTANT_VELOCITY: ConstantVelocityModel,
    MotionModelType.CONSTANT_ACCELERATION: ConstantAccelerationModel,
}


def make_motion_model(
    kind: MotionModelType,
    dt: float,
    noise_magnitude: float,
) -> MotionModel:
    """Create the motion model registered for kind."""
    if kind not in _MODELS:
        available = [m.value for m in _MODELS]
        raise ValueError(f"Unknown motion model '{kind}'. Available: {available}")
    return _MODELS[kind](dt, noise_magnitude)


class KalmanPointTracker:
    """
    Kalman filter for tracking a blob centroid.

    State vector: [x, y, vx, vy] or [x, y, vx, vy, ax, ay]
    Measurement: [x, y]
    """

    def __init__(
        self,
        initial_position: Point2D,
        motion_model: MotionModel,
        measurement_noise: float = 0.1,
        initial_uncertainty: float = 0.1,
    ):
        """
        Initialize filter at a position with zero velocity/acceleration.

        Args:
            initial_position: First observed centroid (x, y)
            motion_model: Kinematic model (shared by all tracks of a tracker)
            measurement_noise: Measurement noise covariance
            initial_uncertainty: Initial state covariance
        """
        self.model = motion_model
        self.dim_x = motion_model.state_dim
        self.dim_z = _AXES

        # Model matrices are fixed for the lifetime of the filter
        self.F = motion_model.transition_matrix()
        self.H = motion_model.measurement_matrix()
        self.Q = motion_model.process_noise()
        self.R = np.eye(self.dim_z) * measurement_noise

        self.P = np.eye(self.dim_x) * initial_uncertainty

        self.x = np.zeros(self.dim_x)
        self.x[:_AXES] = initial_position

        self._last_prediction: Optional[NDArray[np.float64]] = None

    def predict(self) -> Point2D:
        """
        Advance the state one timestep with the motion model only.

        Returns:
            Predicted position
        """
        self.x = self.F @ self.x
        self.P = self.F @ self.P @ self.F.T + self.Q

        self._last_prediction = self.x[:_AXES].copy()
        return self._position(self.x)

    def correct(self, measurement: Optional[Point2D] = None) -> Point2D:
        """
        Update state with a measurement.

        Without a measurement the filter corrects against its own last
        prediction (or its current position if it never predicted).

        Args:
            measurement: Observed centroid (x, y), or None

        Returns:
            Corrected position
        """
        if measurement is not None:
            z = np.asarray(measurement, dtype=np.float64)
        elif self._last_prediction is not None:
            z = self._last_prediction
        else:
            z = self.x[:_AXES].copy()

        # Innovation (measurement residual)
        y = z - self.H @ self.x

        # Innovation covariance
        S = self.H @ self.P @ self.H.T + self.R

        # Kalman gain
        K = self.P @ self.H.T @ np.linalg.inv(S)

        # State update
        self.x = self.x + K @ y

        # Covariance update
        I = np.eye(self.dim_x)
        self.P = (I - K @ self.H) @ self.P

        return self._position(self.x)

    def latest_estimate(self) -> Point2D:
        """Current best position estimate."""
        return self._position(self.x)

    @property
    def last_prediction(self) -> Optional[Point2D]:
        if self._last_prediction is None:
            return None
        return self._position(self._last_prediction)

    @property
    def velocity(self) -> Tuple[float, float]:
        """Current velocity estimate (vx, vy)."""
        return float(self.x[2]), float(self.x[3])

    @property
    def covariance(self) -> NDArray[np.float64]:
        return self.P.copy()

    @staticmethod
    def _position(state: NDArray[np.float64]) -> Point2D:
        return float(state[0]), float(state[1])
