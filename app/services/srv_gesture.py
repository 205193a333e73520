"""
Gesture Session Service for the Motion Analyzer backend.

High-level service that ties the gesture engine together for one sensor stream:
frame ingestion (motion assessor + capture buffer), capture lifecycle,
background matching and template management.

Frame submission runs on the caller's thread and must stay cheap; matching
runs on the MatchWorker thread.
"""

import logging
import threading
import uuid
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Union

from app.core.config import settings
from app.gesture_engine.core import (
    CaptureSession, CaptureState, GestureName, InvalidInputError,
    JointType, JointWeights, MeasurementUnit, Pose, ResourceUnavailableError,
    Sequence, Skeleton, Template,
)
from app.gesture_engine.modules import (
    DirectoryTemplateSource, GestureRecognizer, LoadReport, MatchOutcome,
    MatchWorker, MotionAssessor,
)
from app.gesture_engine.modules.match_worker import MatchListener
from app.gesture_engine.modules.motion_assessor import Snapshot
from app.gesture_engine.utils import SessionLogger

logger = logging.getLogger(__name__)

WeightsInput = Optional[Union[JointWeights, Mapping[str, float]]]


def _as_weights(weights: WeightsInput) -> Optional[JointWeights]:
    if weights is None or isinstance(weights, JointWeights):
        return weights
    try:
        return JointWeights.from_dict(weights)
    except ValueError as e:
        raise InvalidInputError(f"Invalid joint weights: {e}") from e


class GestureSessionService:
    """
    Service for a single skeleton stream: assess joints, capture gestures and recognize them.

    Example:
        >>> service = GestureSessionService(template_dir="data/gestures", autoload=True)
        >>> service.begin_capture()
        >>> for pose in stream:
        ...     service.submit_frame(pose, pose.timestamp)
        >>> service.end_capture()
        >>> outcome = service.wait_for_match(timeout=5.0)
    """

    def __init__(
        self,
        template_dir: Optional[str] = None,
        reference_joint: Optional[Union[JointType, str]] = None,
        history_size: Optional[int] = None,
        max_capture_frames: Optional[int] = None,
        dtw_backend: Optional[str] = None,
        dtw_radius: Optional[int] = None,
        session_logger: Optional[SessionLogger] = None,
        autoload: bool = False
    ):
        reference = reference_joint if reference_joint is not None else settings.REFERENCE_JOINT
        if not isinstance(reference, JointType):
            reference = JointType.from_string(reference)

        self._template_dir = template_dir if template_dir is not None else settings.TEMPLATE_DIR
        self._recognizer = GestureRecognizer(
            reference_joint=reference,
            dtw_backend=dtw_backend or settings.DTW_BACKEND,
            dtw_radius=dtw_radius if dtw_radius is not None else settings.DTW_RADIUS
        )
        self._assessor = MotionAssessor(history_size or settings.JOINT_HISTORY_SIZE)
        self._capture = CaptureSession(max_capture_frames or settings.MAX_CAPTURE_FRAMES)
        self._worker = MatchWorker(self._recognizer)
        self._worker.add_listener(self._on_match)

        # Guards assessor + capture buffer between the sensor thread and API calls
        self._lock = threading.Lock()
        # Match được lên lịch gần nhất (None nếu capture cuối không có match)
        self._pending_match: Optional["Future[MatchOutcome]"] = None
        self._last_capture: Sequence = []

        self._session_logger = session_logger
        if self._session_logger is not None and not self._session_logger.active:
            self._session_logger.start_session(uuid.uuid4().hex[:12], "gesture session")

        logger.info(
            f"[GESTURE_SERVICE] Initialized (reference={reference.value}, "
            f"backend={dtw_backend or settings.DTW_BACKEND}, templates={self._template_dir})"
        )

        if autoload:
            try:
                self.load_templates()
            except ResourceUnavailableError as e:
                logger.warning(f"[GESTURE_SERVICE] Template autoload skipped: {e}")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def recognizer(self) -> GestureRecognizer:
        return self._recognizer

    @property
    def assessor(self) -> MotionAssessor:
        return self._assessor

    @property
    def capture_state(self) -> CaptureState:
        return self._capture.state

    @property
    def capture_frame_count(self) -> int:
        return self._capture.frame_count

    @property
    def last_capture(self) -> Sequence:
        return list(self._last_capture)

    @property
    def match_in_flight(self) -> bool:
        return self._worker.busy

    @property
    def latest_match(self) -> Optional[MatchOutcome]:
        return self._worker.latest

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def submit_frame(self, pose: Pose, timestamp: Optional[float] = None) -> Snapshot:
        """
        Xử lý một frame: cập nhật trạng thái khớp và thêm vào buffer nếu đang capture.

        Args:
            pose: Pose của frame.
            timestamp: Thời điểm frame (giây), mặc định pose.timestamp.

        Returns:
            Snapshot theo measurement units đang chọn.
        """
        ts = timestamp if timestamp is not None else pose.timestamp
        if ts is None:
            raise InvalidInputError("Frame has no timestamp")

        with self._lock:
            snapshot = self._assessor.update(pose, ts)
            self._capture.append(pose)
            frame_number = self._assessor.frame_count

        if self._session_logger is not None and snapshot:
            self._session_logger.log_joint_status(frame_number, snapshot)
        return snapshot

    def submit_skeletons(self, skeletons: Iterable[Skeleton], timestamp: float) -> Optional[Snapshot]:
        """Dùng skeleton tracked đầu tiên; trả về None nếu không có skeleton nào được track."""
        for skeleton in skeletons:
            if skeleton.tracked:
                return self.submit_frame(skeleton.pose, timestamp)
        return None

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._assessor.snapshot()

    def set_measurement_units(self, units: Iterable[MeasurementUnit]) -> None:
        with self._lock:
            self._assessor.set_measurement_units(units)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def begin_capture(self) -> None:
        with self._lock:
            self._capture.begin()
        logger.info("[GESTURE_SERVICE] Capture started")
        if self._session_logger is not None:
            self._session_logger.log_capture("begin")

    def end_capture(self, start_frame: Optional[int] = None, end_frame: Optional[int] = None) -> Sequence:
        """
        Kết thúc capture và lên lịch match cho chuỗi vừa thu.

        Chuỗi luôn được giữ lại (last_capture) kể cả khi không lên lịch được match.

        Returns:
            Sequence: Chuỗi đã capture (đã cắt nếu có start_frame/end_frame).

        Raises:
            InvalidInputError: Không đang capture hoặc khoảng cắt không hợp lệ.
            ConcurrentOperationRejectedError: Đang có match chạy.
        """
        with self._lock:
            dropped = self._capture.dropped_frames
            sequence = self._capture.end(start_frame, end_frame)
            self._last_capture = sequence

        logger.info(f"[GESTURE_SERVICE] Capture ended with {len(sequence)} frames")
        if self._session_logger is not None:
            self._session_logger.log_capture("end", len(sequence), dropped)

        if not sequence:
            logger.warning("[GESTURE_SERVICE] Empty capture, nothing to match")
            self._pending_match = None
            return sequence

        self._pending_match = self._worker.submit(sequence)
        return sequence

    def abort_capture(self) -> int:
        """Hủy capture hiện tại (vd: mất kết nối cảm biến). Không gọi match."""
        with self._lock:
            discarded = self._capture.abort()
        if self._session_logger is not None and discarded:
            self._session_logger.log_capture("abort", discarded)
        return discarded

    # ------------------------------------------------------------------
    # Match results
    # ------------------------------------------------------------------

    def add_match_listener(self, listener: MatchListener) -> None:
        self._worker.add_listener(listener)

    def remove_match_listener(self, listener: MatchListener) -> None:
        self._worker.remove_listener(listener)

    def wait_for_match(self, timeout: Optional[float] = None) -> Optional[MatchOutcome]:
        """
        Chờ match được lên lịch gần nhất xong và trả về kết quả của chính nó.

        Capture bị từ chối (ConcurrentOperationRejectedError) không thay đổi match đang chờ.
        None nếu chưa có match nào được lên lịch hoặc hết timeout.
        """
        pending = self._pending_match
        if pending is None:
            return None
        try:
            return pending.result(timeout)
        except FutureTimeoutError:
            return None

    def _on_match(self, outcome: MatchOutcome) -> None:
        if self._session_logger is not None:
            self._session_logger.log_match(outcome.result, outcome.error)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def _resolve_template_path(self, path: Optional[str]) -> Path:
        root = Path(self._template_dir).resolve()
        if not path:
            return root
        # Đường dẫn tương đối tính từ TEMPLATE_DIR; không được thoát ra ngoài
        candidate = (root / path).resolve()
        if candidate != root and root not in candidate.parents:
            raise InvalidInputError(f"Template path must be inside {root}: {path}")
        return candidate

    def load_templates(self, path: Optional[str] = None) -> LoadReport:
        """
        Nạp template từ TEMPLATE_DIR hoặc một thư mục con của nó.

        Raises:
            InvalidInputError: path nằm ngoài TEMPLATE_DIR.
            ResourceUnavailableError: Thư mục không tồn tại.
        """
        root = self._resolve_template_path(path)
        report = self._recognizer.load_templates(DirectoryTemplateSource(root))
        if self._session_logger is not None:
            self._session_logger.log_template_load(str(root), report.loaded, report.skipped)
        return report

    def templates(self, label: Optional[Union[GestureName, str]] = None) -> List[Template]:
        return self._recognizer.templates(label)

    def add_template(
        self,
        label: Union[GestureName, str],
        sequence: Sequence,
        weights: WeightsInput = None,
        persist: bool = False
    ) -> Template:
        """
        Thêm template vào database, có thể ghi ra TEMPLATE_DIR.

        Args:
            label: Loại động tác.
            sequence: Chuỗi pose mẫu.
            weights: Trọng số khớp (JointWeights hoặc dict tên khớp -> trọng số).
            persist: Ghi file template.
        """
        template = self._recognizer.add_template(label, sequence, _as_weights(weights))
        if persist:
            entry_id = self._recognizer.save_template(DirectoryTemplateSource(self._template_dir), template)
            template.source = entry_id
        return template

    def remove_template(self, label: Union[GestureName, str]) -> int:
        return self._recognizer.remove_template(label)

    def remove_template_by_id(self, template_id: str) -> Template:
        return self._recognizer.remove_template_by_id(template_id)

    def save_capture_as_template(
        self,
        label: Union[GestureName, str],
        weights: WeightsInput = None,
        persist: bool = True
    ) -> Template:
        """Lưu chuỗi capture gần nhất thành template."""
        if not self._last_capture:
            raise InvalidInputError("No captured sequence to save")
        return self.add_template(label, self._last_capture, weights, persist)

    # ------------------------------------------------------------------
    # Session logging
    # ------------------------------------------------------------------

    def export_speed_series(self, joint: JointType) -> str:
        """Ghi chuỗi tốc độ gần nhất của một khớp ra file trong thư mục log."""
        if self._session_logger is None:
            raise ResourceUnavailableError("Session logging is disabled")
        with self._lock:
            speeds = self._assessor.speed_history(joint)
        return self._session_logger.export_speed_series(joint, speeds)

    def shutdown(self) -> None:
        self.abort_capture()
        self._worker.shutdown(wait=True)
        if self._session_logger is not None and self._session_logger.active:
            self._session_logger.end_session({"templates": self._recognizer.template_count})
        logger.info("[GESTURE_SERVICE] Shut down")


_gesture_service: Optional[GestureSessionService] = None
_service_lock = threading.Lock()


def get_gesture_service() -> GestureSessionService:
    """FastAPI dependency: service dùng chung cho toàn bộ app."""
    global _gesture_service
    with _service_lock:
        if _gesture_service is None:
            session_logger = None
            if settings.SESSION_LOG_ENABLED:
                session_logger = SessionLogger(
                    settings.SESSION_LOG_DIR, max_entries=settings.SESSION_LOG_MAX_ENTRIES
                )
            _gesture_service = GestureSessionService(
                session_logger=session_logger,
                autoload=settings.TEMPLATE_AUTOLOAD
            )
        return _gesture_service


def shutdown_gesture_service() -> None:
    global _gesture_service
    with _service_lock:
        if _gesture_service is not None:
            _gesture_service.shutdown()
            _gesture_service = None
