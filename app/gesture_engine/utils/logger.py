"""
Logger Module for the Motion Analyzer gesture engine.

Hệ thống ghi nhật ký chi tiết cho:
- Các lần capture động tác
- Kết quả nhận diện (match)
- Trạng thái động học của khớp theo thời gian

Định dạng output:
- JSON: Cấu trúc đầy đủ cho phân tích
- CSV: Dễ mở bằng Excel
- Console: Real-time monitoring

Author: Motion Analyzer Team
Version: 1.0.0
"""

import csv
import json
import logging
import queue
import threading
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Mapping, Optional

from ..core.data_types import JointStatusView, JointType, MatchResult


class LogLevel(Enum):
    """Mức độ log."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogCategory(Enum):
    """Loại log."""
    SESSION = "session"            # Thông tin buổi tập
    CAPTURE = "capture"            # Bắt đầu/kết thúc capture
    MATCH = "match"                # Kết quả nhận diện
    JOINT_STATUS = "joint_status"  # Vị trí/tốc độ khớp
    TEMPLATE = "template"          # Nạp/lưu template
    SYSTEM = "system"              # Thông tin hệ thống


@dataclass
class LogEntry:
    """
    Một entry trong log.

    Attributes:
        timestamp: Thời điểm ghi log.
        level: Mức độ log.
        category: Loại log.
        message: Nội dung.
        data: Dữ liệu bổ sung (dict).
        session_id: ID buổi tập (nếu có).
    """
    timestamp: str
    level: str
    category: str
    message: str
    data: Dict = None
    session_id: str = ""

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "category": self.category,
            "message": self.message,
            "data": self.data or {},
            "session_id": self.session_id,
        }

    def to_csv_row(self) -> List[str]:
        return [
            self.timestamp,
            self.level,
            self.category,
            self.message,
            json.dumps(self.data or {}),
            self.session_id,
        ]


class SessionLogger:
    """
    Logger cho một buổi tập.

    Tự động ghi log vào:
    - Console (qua logging, logger "motion_analyzer.session")
    - JSON file (khi end_session)
    - CSV file (ghi nền qua queue để không chặn callback cảm biến)

    Example:
        >>> session_log = SessionLogger("./data/logs")
        >>> session_log.start_session("session_001")
        >>> session_log.log_match(result)
        >>> session_log.end_session()
    """

    CSV_HEADERS = [
        "timestamp", "level", "category", "message", "data", "session_id"
    ]

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(
        self,
        log_dir: str = "./data/logs",
        console_output: bool = True,
        async_write: bool = True,
        max_entries: int = DEFAULT_MAX_ENTRIES
    ):
        """
        Khởi tạo SessionLogger.

        Args:
            log_dir: Thư mục lưu log.
            console_output: Có in ra console không.
            async_write: Ghi CSV trên thread nền.
            max_entries: Số entry giữ trong bộ nhớ (file CSV vẫn có đủ).
        """
        self._log_dir = Path(log_dir)
        self._console_output = console_output
        self._async_write = async_write

        self._session_id: Optional[str] = None
        self._session_start: Optional[datetime] = None
        self._max_entries = max_entries
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self._counts: Counter = Counter()

        self._json_file: Optional[Path] = None
        self._csv_file: Optional[Path] = None
        self._csv_writer = None
        self._file_handle = None
        self._file_lock = threading.Lock()

        self._write_queue: "queue.Queue[LogEntry]" = queue.Queue()
        self._writer_thread: Optional[threading.Thread] = None
        self._stop_writer = threading.Event()

        self._console_logger = logging.getLogger("motion_analyzer.session")

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def active(self) -> bool:
        return self._session_id is not None

    @property
    def total_entries(self) -> int:
        return sum(self._counts.values())

    def start_session(self, session_id: str, description: str = "") -> None:
        """
        Bắt đầu logging cho một buổi tập.

        Args:
            session_id: ID buổi tập.
            description: Mô tả ngắn (vd: động tác đang tập).
        """
        self._session_id = session_id
        self._session_start = datetime.now()
        self._entries = deque(maxlen=self._max_entries)
        self._counts = Counter()

        date_str = self._session_start.strftime("%Y%m%d")
        time_str = self._session_start.strftime("%H%M%S")

        session_dir = self._log_dir / date_str
        session_dir.mkdir(parents=True, exist_ok=True)

        self._json_file = session_dir / f"{session_id}_{time_str}.json"
        self._csv_file = session_dir / f"{session_id}_{time_str}.csv"
        self._init_csv_file()

        if self._async_write:
            self._start_async_writer()

        self.log(
            LogLevel.INFO,
            LogCategory.SESSION,
            f"Session started: {description or session_id}",
            {
                "session_id": session_id,
                "start_time": self._session_start.isoformat(),
            }
        )

    def _init_csv_file(self) -> None:
        self._file_handle = open(self._csv_file, 'w', newline='', encoding='utf-8')
        self._csv_writer = csv.writer(self._file_handle)
        self._csv_writer.writerow(self.CSV_HEADERS)
        self._file_handle.flush()

    def _start_async_writer(self) -> None:
        self._stop_writer.clear()
        self._writer_thread = threading.Thread(target=self._async_write_loop, name="session-log-writer")
        self._writer_thread.daemon = True
        self._writer_thread.start()

    def _async_write_loop(self) -> None:
        while not (self._stop_writer.is_set() and self._write_queue.empty()):
            try:
                entry = self._write_queue.get(timeout=0.2)
            except queue.Empty:
                continue
            self._write_entry(entry)

    def _write_entry(self, entry: LogEntry) -> None:
        with self._file_lock:
            if self._csv_writer is None:
                return
            try:
                self._csv_writer.writerow(entry.to_csv_row())
                self._file_handle.flush()
            except (OSError, ValueError) as e:
                self._console_logger.error(f"Cannot write session log: {e}")

    def log(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        data: Optional[Dict] = None
    ) -> None:
        """
        Ghi một log entry.

        Args:
            level: Mức độ log.
            category: Loại log.
            message: Nội dung.
            data: Dữ liệu bổ sung.
        """
        entry = LogEntry(
            timestamp=datetime.now().isoformat(),
            level=level.value,
            category=category.value,
            message=message,
            data=data,
            session_id=self._session_id or "",
        )

        self._entries.append(entry)
        self._counts[(entry.category, entry.level)] += 1

        if self._console_output:
            log_method = getattr(self._console_logger, level.value.lower(), self._console_logger.info)
            log_method(f"[{category.value}] {message}")

        if self._async_write and self._writer_thread is not None:
            self._write_queue.put(entry)
        else:
            self._write_entry(entry)

    def log_capture(self, event: str, frame_count: int = 0, dropped: int = 0) -> None:
        """Ghi log sự kiện capture (begin / end / abort)."""
        self.log(
            LogLevel.INFO,
            LogCategory.CAPTURE,
            f"Capture {event}: {frame_count} frames",
            {"event": event, "frame_count": frame_count, "dropped_frames": dropped}
        )

    def log_match(self, result: Optional[MatchResult], error: Optional[Exception] = None) -> None:
        """Ghi log kết quả nhận diện hoặc lỗi khi nhận diện."""
        if result is None:
            self.log(
                LogLevel.WARNING,
                LogCategory.MATCH,
                f"Match failed: {error}",
                {"error": str(error), "error_type": type(error).__name__ if error else None}
            )
            return

        self.log(
            LogLevel.INFO,
            LogCategory.MATCH,
            f"Matched {result.label.value} (distance={result.distance:.4f})",
            result.to_dict()
        )

    def log_joint_status(self, frame_number: int, snapshot: Mapping[JointType, JointStatusView]) -> None:
        """
        Ghi log trạng thái khớp trong một frame.

        Args:
            frame_number: Số thứ tự frame.
            snapshot: Snapshot từ MotionAssessor.
        """
        joints = {}
        for joint, view in snapshot.items():
            item = {}
            if view.position is not None:
                item["position"] = [view.position.x, view.position.y, view.position.z]
            if view.speed is not None:
                item["speed"] = view.speed
            joints[joint.value] = item

        self.log(
            LogLevel.DEBUG,
            LogCategory.JOINT_STATUS,
            f"Frame {frame_number}: {len(joints)} joints",
            {"frame_number": frame_number, "joints": joints}
        )

    def log_template_load(self, source: str, loaded: int, skipped: int) -> None:
        level = LogLevel.WARNING if skipped else LogLevel.INFO
        self.log(
            level,
            LogCategory.TEMPLATE,
            f"Templates loaded from {source}: {loaded} loaded, {skipped} skipped",
            {"source": source, "loaded": loaded, "skipped": skipped}
        )

    def export_speed_series(self, joint: JointType, speeds: Iterable[float]) -> str:
        """
        Lưu chuỗi tốc độ của một khớp ra file text (mỗi dòng một giá trị).

        Returns:
            str: Đường dẫn file.
        """
        directory = self._json_file.parent if self._json_file else self._log_dir
        directory.mkdir(parents=True, exist_ok=True)
        prefix = self._session_id or "session"
        path = directory / f"{prefix}_{joint.value}_speed.txt"
        with open(path, 'w', encoding='utf-8') as f:
            for speed in speeds:
                f.write(f"{speed}\n")
        return str(path)

    def end_session(self, report: Optional[Dict] = None) -> str:
        """
        Kết thúc session và lưu báo cáo.

        Args:
            report: Báo cáo bổ sung.

        Returns:
            str: Đường dẫn đến JSON report ("" nếu chưa start).
        """
        if not self.active:
            return ""

        self.log(
            LogLevel.INFO,
            LogCategory.SESSION,
            "Session ended",
            {
                "end_time": datetime.now().isoformat(),
                "total_entries": self.total_entries,
            }
        )

        if self._writer_thread is not None:
            self._stop_writer.set()
            self._writer_thread.join(timeout=2.0)
            self._writer_thread = None

        with self._file_lock:
            if self._file_handle:
                self._file_handle.close()
                self._file_handle = None
                self._csv_writer = None

        full_report = {
            "session_id": self._session_id,
            "session_start": self._session_start.isoformat() if self._session_start else "",
            "session_end": datetime.now().isoformat(),
            "total_entries": self.total_entries,
            "entries": [e.to_dict() for e in self._entries],
            "report": report or {},
        }

        with open(self._json_file, 'w', encoding='utf-8') as f:
            json.dump(full_report, f, ensure_ascii=False, indent=2)

        if self._console_output:
            self._console_logger.info(f"Report saved: {self._json_file}")

        self._session_id = None
        return str(self._json_file)

    def get_entries(
        self,
        category: Optional[LogCategory] = None,
        level: Optional[LogLevel] = None
    ) -> List[LogEntry]:
        """Lấy các entries còn trong bộ nhớ, có thể lọc theo category/level."""
        entries = list(self._entries)

        if category:
            entries = [e for e in entries if e.category == category.value]

        if level:
            entries = [e for e in entries if e.level == level.value]

        return entries

    def _count(self, category: LogCategory, level: Optional[LogLevel] = None) -> int:
        return sum(
            n for (cat, lvl), n in self._counts.items()
            if cat == category.value and (level is None or lvl == level.value)
        )

    def get_summary(self) -> Dict:
        """Tổng kết toàn session, kể cả các entry đã bị đẩy khỏi bộ nhớ."""
        matches = self._count(LogCategory.MATCH, LogLevel.INFO)

        return {
            "session_id": self._session_id,
            "total_entries": self.total_entries,
            "retained_entries": len(self._entries),
            "captures": self._count(LogCategory.CAPTURE),
            "matches": matches,
            "failed_matches": self._count(LogCategory.MATCH) - matches,
            "files": {
                "json": str(self._json_file) if self._json_file else "",
                "csv": str(self._csv_file) if self._csv_file else "",
            }
        }
