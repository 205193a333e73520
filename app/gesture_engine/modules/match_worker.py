"""
Single-flight match executor.

Chạy GestureRecognizer.match() trên một thread nền duy nhất để không
chặn callback của cảm biến. Khi đang có một lần match chưa xong, yêu
cầu mới bị từ chối bằng ConcurrentOperationRejectedError.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging
import threading

from ..core.data_types import MatchResult, Sequence
from ..core.exceptions import ConcurrentOperationRejectedError, GestureEngineError
from .recognizer import GestureRecognizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchOutcome:
    """Kết quả gửi tới listener: result hoặc error (không bao giờ cả hai)."""
    result: Optional[MatchResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


MatchListener = Callable[[MatchOutcome], None]


class MatchWorker:
    """
    Hàng đợi match kích thước 1.

    Example:
        >>> worker = MatchWorker(recognizer)
        >>> worker.add_listener(lambda outcome: print(outcome.result))
        >>> future = worker.submit(sequence)
    """

    def __init__(self, recognizer: GestureRecognizer):
        self._recognizer = recognizer
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gesture-match")
        self._in_flight = threading.Lock()
        self._listeners: List[MatchListener] = []
        self._latest: Optional[MatchOutcome] = None

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    @property
    def latest(self) -> Optional[MatchOutcome]:
        return self._latest

    def add_listener(self, listener: MatchListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MatchListener) -> None:
        self._listeners.remove(listener)

    def submit(self, sequence: Sequence) -> "Future[MatchOutcome]":
        """
        Lên lịch match cho một chuỗi đã capture.

        Raises:
            ConcurrentOperationRejectedError: Nếu đang có match chạy.
        """
        if not self._in_flight.acquire(blocking=False):
            raise ConcurrentOperationRejectedError("A match is already in flight")
        try:
            return self._executor.submit(self._run, list(sequence))
        except RuntimeError:
            self._in_flight.release()
            raise

    def _run(self, sequence: Sequence) -> MatchOutcome:
        try:
            try:
                outcome = MatchOutcome(result=self._recognizer.match(sequence))
            except GestureEngineError as e:
                logger.warning(f"Match failed: {e}")
                outcome = MatchOutcome(error=e)
            except Exception as e:
                logger.exception("Match raised an unexpected error")
                outcome = MatchOutcome(error=e)
            self._latest = outcome
        finally:
            self._in_flight.release()

        self._notify(outcome)
        return outcome

    def _notify(self, outcome: MatchOutcome) -> None:
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                logger.exception("Match listener raised")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
