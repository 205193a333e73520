"""
Capture Session Module for the Motion Analyzer gesture engine.

FSM cho một lần capture động tác:

    IDLE ──► CAPTURING ──► COMPLETED
                 │
                 └────────► ABORTED   (cảm biến mất kết nối)

Buffer có giới hạn (max_frames), frame cũ nhất bị loại khi đầy.
"""

from collections import deque
from enum import Enum
from typing import Deque, Optional
import logging

from .data_types import Pose, Sequence
from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class CaptureState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    COMPLETED = "completed"
    ABORTED = "aborted"


def trim_sequence(sequence: Sequence, start_frame: Optional[int] = None, end_frame: Optional[int] = None) -> Sequence:
    """
    Giữ lại đoạn [start_frame, end_frame] (bao gồm cả 2 đầu).

    Raises:
        InvalidInputError: Nếu khoảng frame không hợp lệ.
    """
    if not sequence:
        raise InvalidInputError("Cannot trim an empty sequence")

    start = 0 if start_frame is None else start_frame
    end = len(sequence) - 1 if end_frame is None else end_frame
    if start < 0 or end >= len(sequence):
        raise InvalidInputError(f"Frame range [{start}, {end}] outside 0..{len(sequence) - 1}")
    if end < start:
        raise InvalidInputError("End frame can't be earlier than start frame")

    return list(sequence[start:end + 1])


class CaptureSession:
    """
    Bộ đệm frame cho một lần capture.

    Example:
        >>> session = CaptureSession(max_frames=900)
        >>> session.begin()
        >>> session.append(pose)
        >>> sequence = session.end()
    """

    def __init__(self, max_frames: int = 900):
        if max_frames < 1:
            raise ValueError("max_frames must be positive")
        self._max_frames = max_frames
        self._state = CaptureState.IDLE
        self._buffer: Deque[Pose] = deque(maxlen=max_frames)
        self._dropped = 0

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state == CaptureState.CAPTURING

    @property
    def frame_count(self) -> int:
        return len(self._buffer)

    @property
    def dropped_frames(self) -> int:
        """Số frame bị loại do buffer đầy."""
        return self._dropped

    def begin(self) -> None:
        """IDLE/COMPLETED/ABORTED -> CAPTURING, buffer được làm rỗng."""
        if self._state == CaptureState.CAPTURING:
            raise InvalidInputError("Capture already in progress")
        self._buffer.clear()
        self._dropped = 0
        self._state = CaptureState.CAPTURING
        logger.debug("Capture started")

    def append(self, pose: Pose) -> bool:
        """
        Thêm một frame nếu đang capture.

        Returns:
            bool: True nếu frame được lưu.
        """
        if self._state != CaptureState.CAPTURING:
            return False
        if len(self._buffer) == self._max_frames:
            self._dropped += 1
        self._buffer.append(pose)
        return True

    def end(self, start_frame: Optional[int] = None, end_frame: Optional[int] = None) -> Sequence:
        """
        CAPTURING -> COMPLETED.

        Args:
            start_frame: Frame đầu cần giữ (mặc định 0).
            end_frame: Frame cuối cần giữ (mặc định frame cuối).

        Returns:
            Sequence: Chuỗi đã capture (có thể rỗng nếu không có frame nào).
        """
        if self._state != CaptureState.CAPTURING:
            raise InvalidInputError(f"Cannot end capture in state {self._state.value}")

        sequence = list(self._buffer)
        if sequence and (start_frame is not None or end_frame is not None):
            sequence = trim_sequence(sequence, start_frame, end_frame)

        self._buffer.clear()
        self._state = CaptureState.COMPLETED

        logger.debug(f"Capture completed with {len(sequence)} frames ({self._dropped} dropped)")
        return sequence

    def abort(self) -> int:
        """
        CAPTURING -> ABORTED, buffer bị hủy.

        Returns:
            int: Số frame bị hủy (0 nếu không đang capture).
        """
        if self._state != CaptureState.CAPTURING:
            return 0
        discarded = len(self._buffer)
        self._buffer.clear()
        self._state = CaptureState.ABORTED
        logger.info(f"Capture aborted, {discarded} frames discarded")
        return discarded
