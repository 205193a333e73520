"""
Gesture Recognizer Module for the Motion Analyzer gesture engine.

Nhận diện động tác dựa trên DTW: so sánh chuỗi pose vừa capture với
mọi template trong database và chọn template có khoảng cách nhỏ nhất.

Database là copy-on-write: mọi thao tác ghi (add/remove/load) tạo một
tuple mới rồi thay thế tham chiếu, nên match() đang chạy luôn đọc một
snapshot bất biến.

Author: Motion Analyzer Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
import logging
import threading
import time

import numpy as np

from ..core.data_types import (
    GestureName, JointType, JointWeights, MatchResult, Sequence, Template,
    create_gesture_weights, sequence_to_numpy,
)
from ..core.dtw_analysis import BACKEND_EXACT, DTW_BACKENDS, compute_weighted_dtw
from ..core.exceptions import InvalidInputError, NotFoundError, ResourceUnavailableError
from ..core.kinematics import normalize_sequence, validate_sequence
from .template_store import TemplateSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TemplateEntry:
    template: Template
    # Chuỗi đã chuẩn hóa theo khớp tham chiếu, shape (T, NUM_JOINTS, 3)
    frames: np.ndarray


@dataclass
class LoadReport:
    """
    Kết quả nạp template từ một nguồn.

    Attributes:
        loaded: Số template nạp thành công.
        skipped: Số entry bị bỏ qua.
        failures: Danh sách (entry_id, lý do).
    """
    loaded: int = 0
    skipped: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "loaded": self.loaded,
            "skipped": self.skipped,
            "failures": [{"entry": entry, "reason": reason} for entry, reason in self.failures],
        }


def _as_gesture(label: Union[GestureName, str]) -> GestureName:
    if isinstance(label, GestureName):
        return label
    try:
        return GestureName.from_string(label)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e


class GestureRecognizer:
    """
    Template database + DTW matcher.

    Example:
        >>> recognizer = GestureRecognizer()
        >>> report = recognizer.load_templates(DirectoryTemplateSource("gdata"))
        >>> result = recognizer.match(captured_sequence)
        >>> print(result.label, result.distance)
    """

    def __init__(
        self,
        reference_joint: JointType = JointType.HIP_CENTER,
        dtw_backend: str = BACKEND_EXACT,
        dtw_radius: int = 1
    ):
        if dtw_backend not in DTW_BACKENDS:
            raise ValueError(f"Unknown DTW backend: {dtw_backend}")
        self._reference_joint = reference_joint
        self._dtw_backend = dtw_backend
        self._dtw_radius = dtw_radius

        self._entries: Tuple[_TemplateEntry, ...] = ()
        self._write_lock = threading.Lock()

    @property
    def reference_joint(self) -> JointType:
        return self._reference_joint

    @property
    def template_count(self) -> int:
        return len(self._entries)

    @property
    def gesture_min_len(self) -> int:
        """Số frame của template ngắn nhất (0 nếu database rỗng)."""
        entries = self._entries
        return min((len(e.template) for e in entries), default=0)

    @property
    def gesture_max_len(self) -> int:
        """Số frame của template dài nhất (0 nếu database rỗng)."""
        entries = self._entries
        return max((len(e.template) for e in entries), default=0)

    def labels(self) -> List[GestureName]:
        """Các label có template, theo thứ tự nạp."""
        seen = []
        for entry in self._entries:
            if entry.template.name not in seen:
                seen.append(entry.template.name)
        return seen

    def templates(self, label: Optional[Union[GestureName, str]] = None) -> List[Template]:
        entries = self._entries
        if label is None:
            return [e.template for e in entries]
        gesture = _as_gesture(label)
        return [e.template for e in entries if e.template.name == gesture]

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    def _prepare(self, template: Template) -> _TemplateEntry:
        if template.name == GestureName.UNKNOWN:
            raise InvalidInputError("Templates can't be labeled Unknown")
        if template.weights.total <= 0:
            raise InvalidInputError("Sum of joint weights must be positive")
        validate_sequence(template.frames, self._reference_joint)

        frames = sequence_to_numpy(normalize_sequence(template.frames, self._reference_joint))
        if np.isnan(frames[:, template.weights.active_mask]).any():
            raise InvalidInputError(f"Template {template.template_id} lacks a weighted joint")
        frames.setflags(write=False)
        return _TemplateEntry(template=template, frames=frames)

    def _publish(self, new_entries: List[_TemplateEntry]) -> None:
        with self._write_lock:
            self._entries = self._entries + tuple(new_entries)

    def add_template(
        self,
        label: Union[GestureName, str],
        sequence: Sequence,
        weights: Optional[JointWeights] = None
    ) -> Template:
        """
        Thêm một template mới.

        Args:
            label: Loại động tác.
            sequence: Chuỗi pose mẫu (không rỗng).
            weights: Trọng số khớp, mặc định theo create_gesture_weights.

        Returns:
            Template: Instance đã lưu vào database.
        """
        gesture = _as_gesture(label)
        template = Template(
            name=gesture,
            frames=list(sequence),
            weights=weights if weights is not None else create_gesture_weights(gesture)
        )
        return self.register(template)

    def register(self, template: Template) -> Template:
        """Thêm một Template đã dựng sẵn."""
        entry = self._prepare(template)
        self._publish([entry])
        logger.info(f"Added template {template.template_id} ({template.name.value}, {len(template)} frames)")
        return template

    def remove_template(self, label: Union[GestureName, str]) -> int:
        """
        Xóa mọi template của một label.

        Returns:
            int: Số template đã xóa.

        Raises:
            NotFoundError: Nếu label không có template nào.
        """
        gesture = _as_gesture(label)
        with self._write_lock:
            kept = tuple(e for e in self._entries if e.template.name != gesture)
            removed = len(self._entries) - len(kept)
            if removed == 0:
                raise NotFoundError(f"No templates for gesture {gesture.value}")
            self._entries = kept

        logger.info(f"Removed {removed} templates for {gesture.value}")
        return removed

    def remove_template_by_id(self, template_id: str) -> Template:
        with self._write_lock:
            for entry in self._entries:
                if entry.template.template_id == template_id:
                    self._entries = tuple(e for e in self._entries if e is not entry)
                    logger.info(f"Removed template {template_id}")
                    return entry.template
        raise NotFoundError(f"Template {template_id} not found")

    def clear(self) -> None:
        with self._write_lock:
            self._entries = ()

    def load_templates(self, source: TemplateSource) -> LoadReport:
        """
        Nạp toàn bộ template từ một nguồn.

        Entry hỏng bị bỏ qua và được đếm trong report.

        Raises:
            ResourceUnavailableError: Nếu nguồn không truy cập được.
        """
        entry_ids = source.list_entries()

        report = LoadReport()
        for unit, reason in source.enumeration_failures():
            report.skipped += 1
            report.failures.append((unit, reason))

        prepared = []
        for entry_id in entry_ids:
            try:
                prepared.append(self._prepare(source.read_entry(entry_id)))
                report.loaded += 1
            except (InvalidInputError, ResourceUnavailableError) as e:
                report.skipped += 1
                report.failures.append((entry_id, str(e)))
                logger.warning(f"Skipping template {entry_id}: {e}")

        self._publish(prepared)
        logger.info(f"Loaded {report.loaded} templates ({report.skipped} skipped)")
        return report

    def save_template(self, source: TemplateSource, template: Template) -> str:
        """Ghi một template qua contract của nguồn."""
        return source.write(template)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(self, sequence: Sequence) -> MatchResult:
        """
        Tìm template gần nhất với chuỗi đầu vào.

        Khi hai template có cùng khoảng cách, template được nạp trước thắng.

        Args:
            sequence: Chuỗi pose vừa capture.

        Returns:
            MatchResult: Label và khoảng cách DTW tốt nhất.

        Raises:
            InvalidInputError: Database rỗng hoặc chuỗi không hợp lệ.
        """
        entries = self._entries
        if not entries:
            raise InvalidInputError("No templates loaded")
        validate_sequence(sequence, self._reference_joint)

        started = time.perf_counter()
        frames = sequence_to_numpy(normalize_sequence(sequence, self._reference_joint))

        best_distance = float("inf")
        best_entry = entries[0]
        for entry in entries:
            result = compute_weighted_dtw(
                frames, entry.frames, entry.template.weights,
                backend=self._dtw_backend, radius=self._dtw_radius
            )
            if result.distance < best_distance:
                best_distance = result.distance
                best_entry = entry

        elapsed = time.perf_counter() - started
        logger.info(
            f"Matched {len(sequence)} frames against {len(entries)} templates: "
            f"{best_entry.template.name.value} ({best_distance:.4f}) in {elapsed * 1000:.1f}ms"
        )
        return MatchResult(
            label=best_entry.template.name,
            distance=best_distance,
            template_id=best_entry.template.template_id,
            templates_compared=len(entries),
            input_length=len(sequence),
            elapsed_seconds=elapsed
        )
