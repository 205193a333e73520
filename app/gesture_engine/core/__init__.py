"""
Core Module for the Motion Analyzer gesture engine.

Contains data types, pose normalization, joint distance, DTW and the capture state machine.
"""

from .data_types import (
    ALL_JOINTS, JOINT_INDEX, NUM_JOINTS,
    JointType, GestureName, MeasurementMetric, Point3D, Pose, Sequence, Skeleton,
    JointWeights, Template, MeasurementUnit, JointStatusView, MatchResult,
    create_gesture_weights, sequence_to_numpy,
)
from .exceptions import (
    GestureEngineError, InvalidInputError, TemplateFormatError, NotFoundError,
    ResourceUnavailableError, ConcurrentOperationRejectedError,
)
from .kinematics import (
    normalize_pose, normalize_sequence, joint_distance, weighted_frame_distances,
    displacement, compute_speed, validate_sequence,
)
from .dtw_analysis import (
    BACKEND_EXACT, BACKEND_FAST, DTW_BACKENDS, DTWResult,
    compute_dtw_distance, compute_weighted_dtw,
)
from .capture import CaptureSession, CaptureState, trim_sequence

__all__ = [
    # Data types
    'ALL_JOINTS', 'JOINT_INDEX', 'NUM_JOINTS',
    'JointType', 'GestureName', 'MeasurementMetric', 'Point3D', 'Pose', 'Sequence', 'Skeleton',
    'JointWeights', 'Template', 'MeasurementUnit', 'JointStatusView', 'MatchResult',
    'create_gesture_weights', 'sequence_to_numpy',

    # Exceptions
    'GestureEngineError', 'InvalidInputError', 'TemplateFormatError', 'NotFoundError',
    'ResourceUnavailableError', 'ConcurrentOperationRejectedError',

    # Kinematics
    'normalize_pose', 'normalize_sequence', 'joint_distance', 'weighted_frame_distances',
    'displacement', 'compute_speed', 'validate_sequence',

    # DTW
    'BACKEND_EXACT', 'BACKEND_FAST', 'DTW_BACKENDS', 'DTWResult',
    'compute_dtw_distance', 'compute_weighted_dtw',

    # Capture
    'CaptureSession', 'CaptureState', 'trim_sequence',
]
