import numpy as np
import pytest

from app.gesture_engine.core.data_types import (
    JointType, JointWeights, Point3D, Pose, create_gesture_weights, GestureName,
)
from app.gesture_engine.core.exceptions import InvalidInputError
from app.gesture_engine.core.kinematics import (
    compute_speed, joint_distance, normalize_pose, normalize_sequence,
    validate_sequence, weighted_frame_distances,
)

from conftest import make_pose


def test_normalize_zeroes_reference_joint(standing_pose):
    normalized = normalize_pose(standing_pose)

    hip = normalized[JointType.HIP_CENTER]
    assert (hip.x, hip.y, hip.z) == (0.0, 0.0, 0.0)
    head = normalized[JointType.HEAD]
    assert head.y == pytest.approx(0.65)
    assert head.z == pytest.approx(0.0)


def test_normalize_returns_new_pose(standing_pose):
    before = dict(standing_pose)
    normalized = normalize_pose(standing_pose)

    assert normalized is not standing_pose
    assert dict(standing_pose) == before
    assert normalized.timestamp == standing_pose.timestamp


def test_normalize_custom_reference(standing_pose):
    normalized = normalize_pose(standing_pose, JointType.SPINE)
    assert normalized[JointType.SPINE].to_array().tolist() == [0.0, 0.0, 0.0]


def test_normalize_keeps_tracked_flag():
    pose = Pose({
        JointType.HIP_CENTER: Point3D(1.0, 1.0, 1.0),
        JointType.HEAD: Point3D(1.0, 2.0, 1.0, tracked=False),
    })
    assert normalize_pose(pose)[JointType.HEAD].tracked is False


def test_normalize_missing_reference_raises():
    pose = make_pose(drop=(JointType.HIP_CENTER,))
    with pytest.raises(InvalidInputError):
        normalize_pose(pose)


def test_normalize_removes_translation():
    a = normalize_sequence([make_pose()])
    b = normalize_sequence([make_pose(shift=(0.5, -0.2, 1.0))])
    weights = JointWeights.uniform()
    assert joint_distance(a[0], b[0], weights) == pytest.approx(0.0, abs=1e-12)


def test_joint_distance_weighted_mean():
    p1 = Pose({JointType.HAND_LEFT: Point3D(0, 0, 0), JointType.HAND_RIGHT: Point3D(0, 0, 0)})
    p2 = Pose({JointType.HAND_LEFT: Point3D(3, 4, 0), JointType.HAND_RIGHT: Point3D(0, 1, 0)})
    weights = JointWeights.from_dict({"hand_left": 1.0, "hand_right": 3.0})

    # (1 * 5 + 3 * 1) / 4
    assert joint_distance(p1, p2, weights) == pytest.approx(2.0)


def test_joint_distance_ignores_zero_weight_joints():
    p1 = Pose({JointType.HAND_LEFT: Point3D(0, 0, 0)})
    p2 = Pose({JointType.HAND_LEFT: Point3D(0, 0, 0), JointType.HEAD: Point3D(9, 9, 9)})
    weights = JointWeights.from_dict({"hand_left": 1.0})
    assert joint_distance(p1, p2, weights) == 0.0


def test_joint_distance_zero_weights_raises(standing_pose):
    with pytest.raises(InvalidInputError):
        joint_distance(standing_pose, standing_pose, JointWeights.uniform(0.0))


def test_joint_distance_missing_weighted_joint_raises(standing_pose):
    partial = make_pose(drop=(JointType.KNEE_LEFT,))
    with pytest.raises(InvalidInputError):
        joint_distance(standing_pose, partial, create_gesture_weights(GestureName.SQUAT))


def test_vectorized_distance_agrees_with_scalar(squat_sequence):
    weights = create_gesture_weights(GestureName.SQUAT)
    frames = np.stack([p.to_numpy() for p in squat_sequence])
    vector = weighted_frame_distances(squat_sequence[0].to_numpy(), frames, weights)

    expected = [joint_distance(squat_sequence[0], p, weights) for p in squat_sequence]
    np.testing.assert_allclose(vector, expected)


def test_compute_speed():
    assert compute_speed(Point3D(0, 0, 0), Point3D(0.3, 0.4, 0), 0.5) == pytest.approx(1.0)
    assert compute_speed(Point3D(0, 0, 0), Point3D(1, 0, 0), 0.0) is None


def test_validate_sequence():
    with pytest.raises(InvalidInputError):
        validate_sequence([], JointType.HIP_CENTER)
    with pytest.raises(InvalidInputError):
        validate_sequence([make_pose(), make_pose(drop=(JointType.HIP_CENTER,))], JointType.HIP_CENTER)
    validate_sequence([make_pose()], JointType.HIP_CENTER)
