import pytest

from app.gesture_engine.core.capture import CaptureSession, CaptureState, trim_sequence
from app.gesture_engine.core.exceptions import InvalidInputError

from conftest import make_pose


def frames(n):
    return [make_pose(timestamp=i / 30.0) for i in range(n)]


def test_capture_lifecycle():
    session = CaptureSession()
    assert session.state == CaptureState.IDLE
    assert session.append(make_pose()) is False

    session.begin()
    assert session.is_capturing
    for pose in frames(5):
        assert session.append(pose)

    sequence = session.end()
    assert len(sequence) == 5
    assert session.state == CaptureState.COMPLETED
    assert session.frame_count == 0


def test_begin_twice_raises():
    session = CaptureSession()
    session.begin()
    with pytest.raises(InvalidInputError):
        session.begin()


def test_end_without_capture_raises():
    with pytest.raises(InvalidInputError):
        CaptureSession().end()


def test_begin_clears_previous_buffer():
    session = CaptureSession()
    session.begin()
    session.append(make_pose())
    session.abort()

    session.begin()
    assert session.frame_count == 0
    assert session.end() == []


def test_abort_discards_frames():
    session = CaptureSession()
    assert session.abort() == 0

    session.begin()
    for pose in frames(4):
        session.append(pose)
    assert session.abort() == 4
    assert session.state == CaptureState.ABORTED
    assert session.append(make_pose()) is False


def test_buffer_is_bounded():
    session = CaptureSession(max_frames=3)
    session.begin()
    poses = frames(5)
    for pose in poses:
        session.append(pose)

    assert session.dropped_frames == 2
    assert session.end() == poses[2:]


def test_end_with_trim():
    session = CaptureSession()
    session.begin()
    poses = frames(10)
    for pose in poses:
        session.append(pose)

    assert session.end(start_frame=2, end_frame=5) == poses[2:6]


def test_invalid_trim_keeps_capture_running():
    session = CaptureSession()
    session.begin()
    for pose in frames(3):
        session.append(pose)

    with pytest.raises(InvalidInputError):
        session.end(start_frame=1, end_frame=7)
    assert session.is_capturing
    assert session.frame_count == 3


@pytest.mark.parametrize("start,end", [(-1, 2), (0, 10), (4, 3)])
def test_trim_sequence_bounds(start, end):
    with pytest.raises(InvalidInputError):
        trim_sequence(frames(5), start, end)


def test_trim_sequence_defaults():
    poses = frames(5)
    assert trim_sequence(poses) == poses
    assert trim_sequence(poses, start_frame=3) == poses[3:]
    assert trim_sequence(poses, end_frame=0) == poses[:1]
