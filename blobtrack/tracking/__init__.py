"""
Object Tracking Module.

Responsibilities:
- Persistent track id assignment
- Minimum-cost track-to-blob association with distance gating
- Occlusion rescue for tracks hidden inside another blob
- Kalman filtering for smooth trajectories
"""

from .assignment import AssignmentSolver, UNASSIGNED
from .kalman_tracker import (
    KalmanPointTracker,
    MotionModel,
    ConstantVelocityModel,
    ConstantAccelerationModel,
    make_motion_model,
)
from .object_tracker import MultiObjectTracker, TrackedObject
