"""
Data Types Module for the Motion Analyzer gesture engine.

Chứa các Data Classes và Type Definitions chuẩn hóa cho skeleton stream
của cảm biến chuyển động (20 khớp, tọa độ mét trong không gian cảm biến).

Author: Motion Analyzer Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple
import uuid

import numpy as np


class JointType(Enum):
    """
    20 khớp của skeleton cảm biến.

    Thứ tự khai báo chính là chỉ số dense (xem JOINT_INDEX) dùng cho
    weight vector và pose array.
    """
    HIP_CENTER = "hip_center"
    SPINE = "spine"
    SHOULDER_CENTER = "shoulder_center"
    HEAD = "head"

    # Chi trên
    SHOULDER_LEFT = "shoulder_left"
    ELBOW_LEFT = "elbow_left"
    WRIST_LEFT = "wrist_left"
    HAND_LEFT = "hand_left"
    SHOULDER_RIGHT = "shoulder_right"
    ELBOW_RIGHT = "elbow_right"
    WRIST_RIGHT = "wrist_right"
    HAND_RIGHT = "hand_right"

    # Chi dưới
    HIP_LEFT = "hip_left"
    KNEE_LEFT = "knee_left"
    ANKLE_LEFT = "ankle_left"
    FOOT_LEFT = "foot_left"
    HIP_RIGHT = "hip_right"
    KNEE_RIGHT = "knee_right"
    ANKLE_RIGHT = "ankle_right"
    FOOT_RIGHT = "foot_right"

    @classmethod
    def from_string(cls, name: str) -> "JointType":
        """Parse 'hip_center', 'HipCenter' hoặc 'HIP_CENTER'."""
        key = name.strip()
        for jt in cls:
            if key == jt.value or key.upper() == jt.name:
                return jt
        # CamelCase: HipCenter -> hip_center
        snake = "".join("_" + c.lower() if c.isupper() else c for c in key).lstrip("_")
        return cls(snake)


ALL_JOINTS: Tuple[JointType, ...] = tuple(JointType)
JOINT_INDEX: Dict[JointType, int] = {jt: i for i, jt in enumerate(ALL_JOINTS)}
NUM_JOINTS = len(ALL_JOINTS)


class GestureName(Enum):
    """Các loại động tác đã biết. UNKNOWN chỉ dùng làm giá trị mặc định."""
    UNKNOWN = "Unknown"
    BICEP_CURL = "Bicep_Curl"
    SQUAT = "Squat"
    SHOULDER_PRESS = "Shoulder_Press"

    @classmethod
    def from_string(cls, name: str) -> "GestureName":
        key = name.strip()
        for gn in cls:
            if key == gn.value or key.upper() == gn.name:
                return gn
        raise ValueError(f"Unknown gesture name: {name}")


class MeasurementMetric(Enum):
    """Đại lượng động học được hiển thị cho người dùng."""
    POSITION = "position"
    SPEED = "speed"


@dataclass(frozen=True)
class Point3D:
    """
    Một điểm khớp trong không gian cảm biến.

    Attributes:
        x: Tọa độ X (mét).
        y: Tọa độ Y (mét).
        z: Tọa độ Z, độ sâu (mét).
        tracked: True nếu khớp được theo dõi, False nếu chỉ được suy đoán.
    """
    x: float
    y: float
    z: float
    tracked: bool = True

    def to_array(self) -> np.ndarray:
        """Chuyển đổi sang numpy array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def __sub__(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z, self.tracked)


class Pose(Mapping):
    """
    Vị trí các khớp trong một frame.

    Immutable mapping JointType -> Point3D. Thứ tự khớp không quan trọng.
    """

    __slots__ = ("_joints", "_timestamp")

    def __init__(self, joints: Mapping[JointType, Point3D], timestamp: Optional[float] = None):
        self._joints = MappingProxyType(dict(joints))
        self._timestamp = timestamp

    @property
    def timestamp(self) -> Optional[float]:
        return self._timestamp

    def __getitem__(self, joint: JointType) -> Point3D:
        return self._joints[joint]

    def __iter__(self) -> Iterator[JointType]:
        return iter(self._joints)

    def __len__(self) -> int:
        return len(self._joints)

    def __repr__(self) -> str:
        return f"Pose({len(self._joints)} joints, timestamp={self._timestamp})"

    def to_numpy(self) -> np.ndarray:
        """
        Dense array shape (NUM_JOINTS, 3) theo JOINT_INDEX.

        Khớp không có trong pose được điền NaN.
        """
        arr = np.full((NUM_JOINTS, 3), np.nan, dtype=np.float64)
        for jt, point in self._joints.items():
            arr[JOINT_INDEX[jt]] = (point.x, point.y, point.z)
        return arr


# Một chuỗi động tác (captured hoặc template), index = số frame
Sequence = List[Pose]


def sequence_to_numpy(sequence: Iterable[Pose]) -> np.ndarray:
    """Chuyển chuỗi pose sang array shape (T, NUM_JOINTS, 3)."""
    frames = [pose.to_numpy() for pose in sequence]
    if not frames:
        return np.empty((0, NUM_JOINTS, 3), dtype=np.float64)
    return np.stack(frames)


@dataclass
class Skeleton:
    """Skeleton nhận từ cảm biến (có thể có nhiều người trong một frame)."""
    pose: Pose
    tracked: bool = True
    tracking_id: Optional[int] = None


class JointWeights:
    """
    Trọng số từng khớp dùng khi so khớp.

    Lưu dưới dạng vector dense indexed theo JointType vì tập khớp cố định.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[float]):
        arr = np.asarray(list(values), dtype=np.float64)
        if arr.shape != (NUM_JOINTS,):
            raise ValueError(f"Weight vector must have {NUM_JOINTS} entries, got {arr.shape}")
        if np.any(~np.isfinite(arr)) or np.any(arr < 0):
            raise ValueError("Joint weights must be finite and non-negative")
        arr.setflags(write=False)
        self._values = arr

    @classmethod
    def from_dict(cls, weights: Mapping, default: float = 0.0) -> "JointWeights":
        values = [default] * NUM_JOINTS
        for key, w in weights.items():
            jt = key if isinstance(key, JointType) else JointType.from_string(str(key))
            values[JOINT_INDEX[jt]] = float(w)
        return cls(values)

    @classmethod
    def uniform(cls, value: float = 1.0) -> "JointWeights":
        return cls([value] * NUM_JOINTS)

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def total(self) -> float:
        return float(self._values.sum())

    @property
    def active_mask(self) -> np.ndarray:
        return self._values > 0

    def active_joints(self) -> List[JointType]:
        return [jt for jt in ALL_JOINTS if self._values[JOINT_INDEX[jt]] > 0]

    def __getitem__(self, joint: JointType) -> float:
        return float(self._values[JOINT_INDEX[joint]])

    def to_dict(self) -> Dict[str, float]:
        return {jt.value: float(self._values[JOINT_INDEX[jt]]) for jt in ALL_JOINTS}

    def __repr__(self) -> str:
        return f"JointWeights(active={len(self.active_joints())}, total={self.total:.3f})"


def create_gesture_weights(gesture: GestureName) -> JointWeights:
    """
    Tạo bảng trọng số phù hợp cho từng loại động tác.

    Args:
        gesture: Loại động tác.

    Returns:
        JointWeights: Bảng trọng số (mặc định 0.5 cho khớp không liệt kê).
    """
    gesture_weights = {
        GestureName.BICEP_CURL: {
            JointType.ELBOW_LEFT: 1.0,
            JointType.ELBOW_RIGHT: 1.0,
            JointType.WRIST_LEFT: 1.0,
            JointType.WRIST_RIGHT: 1.0,
            JointType.HAND_LEFT: 0.8,
            JointType.HAND_RIGHT: 0.8,
            JointType.SHOULDER_LEFT: 0.5,
            JointType.SHOULDER_RIGHT: 0.5,
            JointType.KNEE_LEFT: 0.1,
            JointType.KNEE_RIGHT: 0.1,
            JointType.ANKLE_LEFT: 0.1,
            JointType.ANKLE_RIGHT: 0.1,
            JointType.FOOT_LEFT: 0.1,
            JointType.FOOT_RIGHT: 0.1,
        },
        GestureName.SQUAT: {
            JointType.KNEE_LEFT: 1.0,
            JointType.KNEE_RIGHT: 1.0,
            JointType.HIP_LEFT: 0.8,
            JointType.HIP_RIGHT: 0.8,
            JointType.SPINE: 0.6,
            JointType.SHOULDER_CENTER: 0.6,
            JointType.HEAD: 0.6,
            JointType.ELBOW_LEFT: 0.1,
            JointType.ELBOW_RIGHT: 0.1,
            JointType.WRIST_LEFT: 0.1,
            JointType.WRIST_RIGHT: 0.1,
        },
        GestureName.SHOULDER_PRESS: {
            JointType.HAND_LEFT: 1.0,
            JointType.HAND_RIGHT: 1.0,
            JointType.WRIST_LEFT: 1.0,
            JointType.WRIST_RIGHT: 1.0,
            JointType.ELBOW_LEFT: 0.8,
            JointType.ELBOW_RIGHT: 0.8,
            JointType.SHOULDER_LEFT: 0.6,
            JointType.SHOULDER_RIGHT: 0.6,
            JointType.KNEE_LEFT: 0.1,
            JointType.KNEE_RIGHT: 0.1,
        },
    }

    weights = {jt: 0.5 for jt in JointType}
    weights.update(gesture_weights.get(gesture, {}))
    return JointWeights.from_dict(weights)


@dataclass
class Template:
    """
    Động tác mẫu trong database.

    Attributes:
        name: Loại động tác (không bao giờ là UNKNOWN).
        frames: Chuỗi pose gốc.
        weights: Trọng số khớp dùng khi so khớp.
        template_id: ID duy nhất cho mỗi instance.
        source: Đường dẫn nguồn (nếu đọc từ store).
    """
    name: GestureName
    frames: Sequence
    weights: JointWeights
    template_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.frames)


@dataclass(frozen=True)
class MeasurementUnit:
    """
    Lựa chọn (tập khớp, đại lượng) cần hiển thị, do UI cấu hình.
    """
    joints: FrozenSet[JointType]
    metric: MeasurementMetric

    @classmethod
    def create(cls, joints: Iterable[JointType], metric: MeasurementMetric) -> "MeasurementUnit":
        return cls(frozenset(joints), metric)


@dataclass(frozen=True)
class JointStatusView:
    """Một dòng trong snapshot: chỉ chứa các đại lượng được chọn."""
    joint: JointType
    position: Optional[Point3D] = None
    speed: Optional[float] = None
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class MatchResult:
    """
    Kết quả so khớp động tác.

    Attributes:
        label: Động tác khớp nhất.
        distance: Khoảng cách DTW (càng nhỏ càng giống).
        template_id: Template khớp nhất.
        templates_compared: Số template đã so sánh.
        input_length: Số frame của chuỗi đầu vào.
        elapsed_seconds: Thời gian tính toán.
    """
    label: GestureName
    distance: float
    template_id: str
    templates_compared: int
    input_length: int
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "label": self.label.value,
            "distance": self.distance,
            "template_id": self.template_id,
            "templates_compared": self.templates_compared,
            "input_length": self.input_length,
            "elapsed_seconds": self.elapsed_seconds,
        }
