# Gesture Engine Package
# Weighted-DTW gesture recognition and joint kinematics for the Motion Analyzer backend

from .core import (
    GestureName, JointType, JointWeights, MatchResult, MeasurementMetric,
    MeasurementUnit, Point3D, Pose, Skeleton, Template, CaptureSession,
)
from .modules import (
    DirectoryTemplateSource, GestureRecognizer, MatchWorker, MotionAssessor,
    TemplateSource,
)
from .utils import SessionLogger

__all__ = [
    'GestureName',
    'JointType',
    'JointWeights',
    'MatchResult',
    'MeasurementMetric',
    'MeasurementUnit',
    'Point3D',
    'Pose',
    'Skeleton',
    'Template',
    'CaptureSession',
    'DirectoryTemplateSource',
    'GestureRecognizer',
    'MatchWorker',
    'MotionAssessor',
    'TemplateSource',
    'SessionLogger',
]
