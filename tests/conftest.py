import math

import pytest

from app.gesture_engine.core.data_types import GestureName, JointType, Point3D, Pose

# Standing skeleton, sensor space (meters)
BASE_SKELETON = {
    JointType.HIP_CENTER: (0.0, 0.0, 2.0),
    JointType.SPINE: (0.0, 0.1, 2.0),
    JointType.SHOULDER_CENTER: (0.0, 0.45, 2.0),
    JointType.HEAD: (0.0, 0.65, 2.0),
    JointType.SHOULDER_LEFT: (-0.2, 0.4, 2.0),
    JointType.ELBOW_LEFT: (-0.25, 0.15, 2.0),
    JointType.WRIST_LEFT: (-0.27, -0.05, 2.0),
    JointType.HAND_LEFT: (-0.28, -0.12, 2.0),
    JointType.SHOULDER_RIGHT: (0.2, 0.4, 2.0),
    JointType.ELBOW_RIGHT: (0.25, 0.15, 2.0),
    JointType.WRIST_RIGHT: (0.27, -0.05, 2.0),
    JointType.HAND_RIGHT: (0.28, -0.12, 2.0),
    JointType.HIP_LEFT: (-0.1, -0.05, 2.0),
    JointType.KNEE_LEFT: (-0.1, -0.5, 2.0),
    JointType.ANKLE_LEFT: (-0.1, -0.9, 2.0),
    JointType.FOOT_LEFT: (-0.1, -0.95, 1.9),
    JointType.HIP_RIGHT: (0.1, -0.05, 2.0),
    JointType.KNEE_RIGHT: (0.1, -0.5, 2.0),
    JointType.ANKLE_RIGHT: (0.1, -0.9, 2.0),
    JointType.FOOT_RIGHT: (0.1, -0.95, 1.9),
}

ARM_JOINTS = (
    JointType.WRIST_LEFT, JointType.HAND_LEFT, JointType.WRIST_RIGHT, JointType.HAND_RIGHT,
)
LEG_JOINTS = (
    JointType.KNEE_LEFT, JointType.KNEE_RIGHT,
)


def make_pose(offsets=None, shift=(0.0, 0.0, 0.0), timestamp=None, drop=()):
    """Base skeleton + per-joint offsets + a whole-body shift."""
    offsets = offsets or {}
    joints = {}
    for jt, (x, y, z) in BASE_SKELETON.items():
        if jt in drop:
            continue
        dx, dy, dz = offsets.get(jt, (0.0, 0.0, 0.0))
        joints[jt] = Point3D(x + dx + shift[0], y + dy + shift[1], z + dz + shift[2])
    return Pose(joints, timestamp)


def make_squat(frames=12, depth=0.35, shift=(0.0, 0.0, 0.0)):
    """Hip-relative squat: knees travel forward, upper body leans."""
    sequence = []
    for i in range(frames):
        phase = math.sin(math.pi * i / (frames - 1))
        offsets = {jt: (0.0, 0.0, -depth * phase) for jt in LEG_JOINTS}
        offsets[JointType.HEAD] = (0.0, -0.1 * phase, -0.1 * phase)
        offsets[JointType.SHOULDER_CENTER] = (0.0, -0.08 * phase, -0.08 * phase)
        sequence.append(make_pose(offsets, shift=shift, timestamp=i / 30.0))
    return sequence


def make_curl(frames=10, lift=0.3, shift=(0.0, 0.0, 0.0)):
    """Both forearms rise toward the shoulders and come back down."""
    sequence = []
    for i in range(frames):
        phase = math.sin(math.pi * i / (frames - 1))
        offsets = {jt: (0.0, lift * phase, -0.15 * phase) for jt in ARM_JOINTS}
        sequence.append(make_pose(offsets, shift=shift, timestamp=i / 30.0))
    return sequence


@pytest.fixture
def standing_pose():
    return make_pose(timestamp=0.0)


@pytest.fixture
def squat_sequence():
    return make_squat()


@pytest.fixture
def curl_sequence():
    return make_curl()


@pytest.fixture
def recognizer_with_templates(squat_sequence, curl_sequence):
    from app.gesture_engine.modules.recognizer import GestureRecognizer

    recognizer = GestureRecognizer()
    recognizer.add_template(GestureName.SQUAT, squat_sequence)
    recognizer.add_template(GestureName.BICEP_CURL, curl_sequence)
    return recognizer
