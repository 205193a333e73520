"""
Kinematics Module for the Motion Analyzer gesture engine.

Contains pose normalization, the weighted joint distance used as the
pointwise DTW cost, and the speed helper used by the motion assessor.

Công thức khoảng cách giữa 2 pose:

    d(P1, P2) = Σ w_j × ‖P1[j] − P2[j]‖ / Σ w_j

chỉ tính trên các khớp có trọng số > 0.
"""

from typing import Iterable, List, Optional
import math

import numpy as np
from scipy.spatial.distance import euclidean

from .data_types import JointType, JointWeights, Point3D, Pose, Sequence
from .exceptions import InvalidInputError


def normalize_pose(pose: Pose, reference: JointType = JointType.HIP_CENTER) -> Pose:
    """
    Re-express every joint relative to the reference joint.

    Returns a new Pose; the input is left untouched.

    Args:
        pose: Raw pose from the sensor.
        reference: Joint moved to the origin (hip center by default).

    Returns:
        Pose with the reference joint at (0, 0, 0).

    Raises:
        InvalidInputError: If the reference joint is absent.
    """
    if reference not in pose:
        raise InvalidInputError(f"Reference joint {reference.value} missing from pose")

    origin = pose[reference]
    return Pose({jt: point - origin for jt, point in pose.items()}, pose.timestamp)


def normalize_sequence(sequence: Iterable[Pose], reference: JointType = JointType.HIP_CENTER) -> List[Pose]:
    """Normalize every frame of a sequence into a new list."""
    return [normalize_pose(pose, reference) for pose in sequence]


def joint_distance(pose1: Pose, pose2: Pose, weights: JointWeights) -> float:
    """
    Weighted mean Euclidean distance between two poses.

    Args:
        pose1: First pose.
        pose2: Second pose.
        weights: Per-joint weights; joints with weight 0 are ignored.

    Returns:
        Σ(w × euclidean) / Σw over weighted joints.

    Raises:
        InvalidInputError: Zero weight sum or a weighted joint missing.
    """
    total_weight = weights.total
    if total_weight <= 0:
        raise InvalidInputError("Sum of joint weights must be positive")

    dist = 0.0
    for jt in weights.active_joints():
        if jt not in pose1 or jt not in pose2:
            raise InvalidInputError(f"Weighted joint {jt.value} missing from pose")
        dist += weights[jt] * euclidean(pose1[jt].to_array(), pose2[jt].to_array())

    return dist / total_weight


def weighted_frame_distances(frame: np.ndarray, frames: np.ndarray, weights: JointWeights) -> np.ndarray:
    """
    Vectorized joint_distance of one frame against many.

    Args:
        frame: Array (NUM_JOINTS, 3).
        frames: Array (T, NUM_JOINTS, 3).
        weights: Per-joint weights.

    Returns:
        np.ndarray shape (T,).
    """
    total_weight = weights.total
    if total_weight <= 0:
        raise InvalidInputError("Sum of joint weights must be positive")

    mask = weights.active_mask
    w = weights.values[mask]
    # (T, k)
    per_joint = np.linalg.norm(frames[:, mask, :] - frame[mask, :], axis=2)
    if np.isnan(per_joint).any():
        raise InvalidInputError("Weighted joint missing from pose")
    return per_joint @ w / total_weight


def displacement(previous: Point3D, current: Point3D) -> float:
    """Độ dài vector dịch chuyển giữa 2 vị trí (mét)."""
    return math.sqrt(
        (current.x - previous.x) ** 2 +
        (current.y - previous.y) ** 2 +
        (current.z - previous.z) ** 2
    )


def compute_speed(previous: Point3D, current: Point3D, elapsed: float) -> Optional[float]:
    """
    Instantaneous speed (m/s) from two samples.

    Returns None when elapsed time is not positive.
    """
    if elapsed <= 0:
        return None
    return displacement(previous, current) / elapsed


def validate_sequence(sequence: Sequence, reference: JointType) -> None:
    """Raise InvalidInputError unless the sequence can be matched."""
    if not sequence:
        raise InvalidInputError("Sequence is empty")
    for i, pose in enumerate(sequence):
        if reference not in pose:
            raise InvalidInputError(f"Frame {i}: reference joint {reference.value} missing")
