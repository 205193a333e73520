"""
Motion Assessor Module for the Motion Analyzer gesture engine.

Theo dõi trạng thái động học (vị trí, tốc độ) của từng khớp theo
thời gian thực, độc lập với việc nhận diện động tác.

Mỗi frame được gọi update() một lần trong callback của cảm biến nên
mọi thao tác đều O(số khớp). Lịch sử mỗi khớp là ring buffer kích
thước cố định (history_size), không tăng theo thời gian buổi tập.
"""

from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Tuple
import logging

from ..core.data_types import JointStatusView, JointType, MeasurementMetric, MeasurementUnit, Point3D, Pose
from ..core.kinematics import compute_speed

logger = logging.getLogger(__name__)


@dataclass
class JointStatus:
    """
    Trạng thái động học của một khớp.

    Attributes:
        joint: Khớp.
        positions: Các vị trí gần nhất (ring buffer).
        speeds: Các tốc độ gần nhất (m/s).
        speed: Tốc độ hiện tại (m/s).
        last_timestamp: Thời điểm cập nhật gần nhất (giây).
        sample_count: Tổng số mẫu đã nhận.
    """
    joint: JointType
    positions: Deque[Point3D]
    speeds: Deque[float]
    speed: float = 0.0
    last_timestamp: Optional[float] = None
    sample_count: int = 0

    @property
    def position(self) -> Optional[Point3D]:
        return self.positions[-1] if self.positions else None


Snapshot = Mapping[JointType, JointStatusView]


class MotionAssessor:
    """
    Cập nhật JointStatus cho từng frame và trả snapshot đã lọc theo
    MeasurementUnit đang chọn.

    Example:
        >>> assessor = MotionAssessor(history_size=30)
        >>> assessor.set_measurement_units([
        ...     MeasurementUnit.create([JointType.HAND_RIGHT], MeasurementMetric.SPEED)
        ... ])
        >>> snapshot = assessor.update(pose, timestamp=0.033)
        >>> snapshot[JointType.HAND_RIGHT].speed
    """

    def __init__(self, history_size: int = 30):
        if history_size < 1:
            raise ValueError("history_size must be positive")
        self._history_size = history_size
        self._status: Dict[JointType, JointStatus] = {}
        self._units: Tuple[MeasurementUnit, ...] = ()
        self._frame_count = 0

    @property
    def history_size(self) -> int:
        return self._history_size

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def measurement_units(self) -> Tuple[MeasurementUnit, ...]:
        return self._units

    def set_measurement_units(self, units: Iterable[MeasurementUnit]) -> None:
        """Thay toàn bộ tập MeasurementUnit đang dùng."""
        self._units = tuple(units)
        logger.debug(f"Measurement units set: {len(self._units)}")

    def _new_status(self, joint: JointType) -> JointStatus:
        return JointStatus(
            joint=joint,
            positions=deque(maxlen=self._history_size),
            speeds=deque(maxlen=self._history_size)
        )

    def update(self, pose: Pose, timestamp: float) -> Snapshot:
        """
        Cập nhật trạng thái từ một frame.

        Khớp không có trong pose được bỏ qua. Mẫu đầu tiên của một khớp
        có tốc độ 0; nếu thời gian không tăng thì giữ tốc độ cũ.

        Args:
            pose: Pose của frame hiện tại.
            timestamp: Thời điểm frame (giây).

        Returns:
            Snapshot đã lọc theo measurement units.
        """
        for joint, point in pose.items():
            status = self._status.get(joint)
            if status is None:
                status = self._new_status(joint)
                self._status[joint] = status

            if status.last_timestamp is not None and status.positions:
                speed = compute_speed(status.positions[-1], point, timestamp - status.last_timestamp)
                if speed is not None:
                    status.speed = speed
            else:
                status.speed = 0.0

            status.positions.append(point)
            status.speeds.append(status.speed)
            status.last_timestamp = timestamp
            status.sample_count += 1

        self._frame_count += 1
        return self.snapshot()

    def status(self, joint: JointType) -> Optional[JointStatus]:
        return self._status.get(joint)

    def speed_history(self, joint: JointType) -> List[float]:
        status = self._status.get(joint)
        return list(status.speeds) if status else []

    def snapshot(self) -> Snapshot:
        """
        Read-only view của các khớp/đại lượng được chọn.

        Không có MeasurementUnit nào thì snapshot rỗng.
        """
        selected: Dict[JointType, set] = {}
        for unit in self._units:
            for joint in unit.joints:
                selected.setdefault(joint, set()).add(unit.metric)

        views = {}
        for joint, metrics in selected.items():
            status = self._status.get(joint)
            if status is None:
                continue
            views[joint] = JointStatusView(
                joint=joint,
                position=status.position if MeasurementMetric.POSITION in metrics else None,
                speed=status.speed if MeasurementMetric.SPEED in metrics else None,
                timestamp=status.last_timestamp
            )
        return MappingProxyType(views)

    def reset(self) -> None:
        self._status.clear()
        self._frame_count = 0
