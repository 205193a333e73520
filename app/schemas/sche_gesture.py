"""
Gesture Schemas - Data Transfer Objects.

Request/response models cho HTTP API của gesture engine.

Author: Motion Analyzer Team
Version: 1.0.0
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum

from app.gesture_engine.core.data_types import (
    JointStatusView, JointType, MatchResult, MeasurementMetric,
    MeasurementUnit, Point3D, Pose, Skeleton, Template,
)
from app.gesture_engine.modules.recognizer import LoadReport


# ==================== ENUMS ====================

class MetricName(str, Enum):
    """Đại lượng đo cho một measurement unit."""
    POSITION = "position"
    SPEED = "speed"


# ==================== SHARED ====================

class PointSchema(BaseModel):
    """Vị trí một khớp (mét, không gian cảm biến)."""
    x: float
    y: float
    z: float
    tracked: bool = Field(True, description="False nếu khớp chỉ được suy đoán")

    def to_point(self) -> Point3D:
        return Point3D(self.x, self.y, self.z, self.tracked)

    @classmethod
    def from_point(cls, point: Point3D) -> "PointSchema":
        return cls(x=point.x, y=point.y, z=point.z, tracked=point.tracked)


def joints_to_pose(joints: Dict[str, PointSchema], timestamp: Optional[float] = None) -> Pose:
    """Dict tên khớp -> PointSchema thành Pose. Tên khớp sai gây ValueError."""
    return Pose({JointType.from_string(name): p.to_point() for name, p in joints.items()}, timestamp)


# ==================== REQUEST SCHEMAS ====================

class FrameRequest(BaseModel):
    """Một frame skeleton từ cảm biến."""
    joints: Dict[str, PointSchema] = Field(..., description="Tên khớp -> vị trí")
    timestamp: float = Field(..., description="Thời điểm frame (giây)")

    def to_pose(self) -> Pose:
        return joints_to_pose(self.joints, self.timestamp)


class SkeletonSchema(BaseModel):
    joints: Dict[str, PointSchema]
    tracked: bool = True
    tracking_id: Optional[int] = None


class SkeletonsRequest(BaseModel):
    """Tất cả skeleton trong một frame; skeleton tracked đầu tiên được dùng."""
    skeletons: List[SkeletonSchema] = Field(default_factory=list)
    timestamp: float = Field(..., description="Thời điểm frame (giây)")

    def to_skeletons(self) -> List[Skeleton]:
        return [
            Skeleton(pose=joints_to_pose(s.joints, self.timestamp), tracked=s.tracked, tracking_id=s.tracking_id)
            for s in self.skeletons
        ]


class CaptureEndRequest(BaseModel):
    """Kết thúc capture, có thể cắt lấy đoạn [start_frame, end_frame]."""
    start_frame: Optional[int] = Field(None, ge=0)
    end_frame: Optional[int] = Field(None, ge=0)


class TemplateCreateRequest(BaseModel):
    """Thêm một template từ chuỗi frame."""
    label: str = Field(..., description="Bicep_Curl | Squat | Shoulder_Press")
    frames: List[Dict[str, PointSchema]] = Field(..., description="Chuỗi pose mẫu")
    weights: Optional[Dict[str, float]] = Field(None, description="Trọng số khớp, mặc định theo động tác")
    persist: bool = Field(False, description="Ghi template vào thư mục template")

    def to_sequence(self) -> List[Pose]:
        return [joints_to_pose(frame) for frame in self.frames]


class SaveCaptureRequest(BaseModel):
    """Lưu chuỗi vừa capture thành template."""
    label: str
    weights: Optional[Dict[str, float]] = None
    persist: bool = True


class TemplateLoadRequest(BaseModel):
    path: Optional[str] = Field(None, description="Thư mục template trong TEMPLATE_DIR (tương đối hoặc tuyệt đối), mặc định TEMPLATE_DIR")


class MeasurementUnitSchema(BaseModel):
    joints: List[str] = Field(..., description="Tên các khớp")
    metric: MetricName

    def to_unit(self) -> MeasurementUnit:
        return MeasurementUnit.create(
            [JointType.from_string(j) for j in self.joints],
            MeasurementMetric(self.metric.value)
        )


class MeasurementUnitsRequest(BaseModel):
    units: List[MeasurementUnitSchema] = Field(default_factory=list)


# ==================== RESPONSE SCHEMAS ====================

class TemplateResponse(BaseModel):
    template_id: str
    label: str
    frame_count: int
    source: Optional[str] = None

    @classmethod
    def from_template(cls, template: Template) -> "TemplateResponse":
        return cls(
            template_id=template.template_id,
            label=template.name.value,
            frame_count=len(template),
            source=template.source
        )


class TemplateListResponse(BaseModel):
    templates: List[TemplateResponse]
    labels: List[str]
    gesture_min_len: int
    gesture_max_len: int


class LoadFailureSchema(BaseModel):
    entry: str
    reason: str


class LoadReportResponse(BaseModel):
    loaded: int
    skipped: int
    failures: List[LoadFailureSchema] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: LoadReport) -> "LoadReportResponse":
        return cls(**report.to_dict())


class MatchResultResponse(BaseModel):
    label: str
    distance: float
    template_id: str
    templates_compared: int
    input_length: int
    elapsed_seconds: float

    @classmethod
    def from_result(cls, result: MatchResult) -> "MatchResultResponse":
        return cls(**result.to_dict())


class MatchStatusResponse(BaseModel):
    """Trạng thái match gần nhất."""
    busy: bool
    result: Optional[MatchResultResponse] = None
    error: Optional[str] = None


class CaptureResponse(BaseModel):
    state: str
    frame_count: int = 0
    match_scheduled: bool = False


class JointStatusResponse(BaseModel):
    joint: str
    position: Optional[PointSchema] = None
    speed: Optional[float] = None
    timestamp: Optional[float] = None

    @classmethod
    def from_view(cls, view: JointStatusView) -> "JointStatusResponse":
        return cls(
            joint=view.joint.value,
            position=PointSchema.from_point(view.position) if view.position is not None else None,
            speed=view.speed,
            timestamp=view.timestamp
        )


class FrameResponse(BaseModel):
    capturing: bool
    capture_frames: int
    joints: List[JointStatusResponse] = Field(default_factory=list)