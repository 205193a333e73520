"""
Template Store Module for the Motion Analyzer gesture engine.

Nguồn dữ liệu động tác mẫu. Recognizer chỉ làm việc qua contract
TemplateSource (list / read / write), định dạng lưu trữ là chuyện của
từng implementation.

DirectoryTemplateSource lưu mỗi template thành một file JSON:

    <root>/
        Bicep_Curl/
            3f2a....json
        Squat/
            91bc....json

    {
        "name": "Squat",
        "weights": {"knee_left": 1.0, ...},        # optional
        "frames": [
            {"hip_center": [0.1, 0.9, 2.3], ...},
            {"hip_center": {"x": 0.1, "y": 0.9, "z": 2.3, "tracked": true}, ...}
        ]
    }

Thư mục không trùng tên một GestureName hợp lệ sẽ bị bỏ qua.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union
import json
import logging

from ..core.data_types import (
    GestureName, JointType, JointWeights, Point3D, Pose, Template, create_gesture_weights
)
from ..core.exceptions import ResourceUnavailableError, TemplateFormatError

logger = logging.getLogger(__name__)


class TemplateSource(ABC):
    """Contract giữa recognizer và nơi lưu động tác mẫu."""

    @abstractmethod
    def list_entries(self) -> List[str]:
        """
        Liệt kê các entry có thể đọc.

        Raises:
            ResourceUnavailableError: Nếu nguồn không truy cập được.
        """

    @abstractmethod
    def read_entry(self, entry_id: str) -> Template:
        """
        Đọc một template.

        Raises:
            TemplateFormatError: Entry hỏng.
            ResourceUnavailableError: Entry không đọc được.
        """

    @abstractmethod
    def write(self, template: Template) -> str:
        """Ghi template, trả về entry id."""

    def enumeration_failures(self) -> List[Tuple[str, str]]:
        """(unit, lý do) bị bỏ qua trong lần list_entries gần nhất."""
        return []


def _parse_point(raw: Any) -> Point3D:
    if isinstance(raw, dict):
        return Point3D(float(raw["x"]), float(raw["y"]), float(raw["z"]), bool(raw.get("tracked", True)))
    x, y, z = raw
    return Point3D(float(x), float(y), float(z))


def template_from_dict(data: Dict[str, Any], label: GestureName, template_id: str, source: str = None) -> Template:
    """
    Dựng Template từ JSON đã parse.

    Raises:
        TemplateFormatError: Nếu cấu trúc không hợp lệ.
    """
    try:
        name = data.get("name")
        if name is not None and GestureName.from_string(name) != label:
            raise TemplateFormatError(f"Template name {name} does not match {label.value}")

        raw_frames = data["frames"]
        if not isinstance(raw_frames, list) or not raw_frames:
            raise TemplateFormatError("Template has no frames")

        frames = []
        for raw in raw_frames:
            joints = {JointType.from_string(key): _parse_point(value) for key, value in raw.items()}
            frames.append(Pose(joints))

        raw_weights = data.get("weights")
        weights = JointWeights.from_dict(raw_weights) if raw_weights else create_gesture_weights(label)
    except TemplateFormatError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
        raise TemplateFormatError(f"Malformed template: {e}") from e

    return Template(
        name=label,
        frames=frames,
        weights=weights,
        template_id=str(data.get("id") or template_id),
        source=source
    )


def template_to_dict(template: Template) -> Dict[str, Any]:
    return {
        "id": template.template_id,
        "name": template.name.value,
        "weights": template.weights.to_dict(),
        "frames": [
            {
                jt.value: {"x": p.x, "y": p.y, "z": p.z, "tracked": p.tracked}
                for jt, p in pose.items()
            }
            for pose in template.frames
        ],
    }


class DirectoryTemplateSource(TemplateSource):
    """Template store dạng thư mục, mỗi động tác một thư mục con."""

    SUFFIX = ".json"

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root)
        self._skipped_dirs: List[Tuple[str, str]] = []

    @property
    def root(self) -> Path:
        return self._root

    def _gesture_dirs(self) -> List[Path]:
        dirs = []
        for gdir in sorted(p for p in self._root.iterdir() if p.is_dir()):
            try:
                label = GestureName.from_string(gdir.name)
            except ValueError:
                logger.debug(f"Skipping unknown gesture directory: {gdir.name}")
                continue
            if label == GestureName.UNKNOWN:
                continue
            dirs.append(gdir)
        return dirs

    def list_entries(self) -> List[str]:
        if not self._root.is_dir():
            raise ResourceUnavailableError(f"Template directory not found: {self._root}")
        self._skipped_dirs = []

        try:
            gesture_dirs = self._gesture_dirs()
        except OSError as e:
            raise ResourceUnavailableError(f"Cannot enumerate {self._root}: {e}") from e

        entries = []
        for gdir in gesture_dirs:
            try:
                paths = sorted(gdir.iterdir())
            except OSError as e:
                # Thư mục động tác không đọc được: bỏ qua, các động tác khác vẫn nạp
                logger.warning(f"Skipping unreadable gesture directory {gdir.name}: {e}")
                self._skipped_dirs.append((gdir.name, str(e)))
                continue
            for path in paths:
                if path.is_file() and path.suffix == self.SUFFIX:
                    entries.append(path.relative_to(self._root).as_posix())

        return entries

    def enumeration_failures(self) -> List[Tuple[str, str]]:
        return list(self._skipped_dirs)

    def read_entry(self, entry_id: str) -> Template:
        path = self._root / entry_id
        try:
            label = GestureName.from_string(path.parent.name)
        except ValueError as e:
            raise TemplateFormatError(f"{entry_id}: {e}") from e

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TemplateFormatError(f"{entry_id}: invalid JSON ({e})") from e
        except OSError as e:
            raise ResourceUnavailableError(f"{entry_id}: {e}") from e

        if not isinstance(data, dict):
            raise TemplateFormatError(f"{entry_id}: expected a JSON object")

        return template_from_dict(data, label, template_id=path.stem, source=str(path))

    def write(self, template: Template) -> str:
        gdir = self._root / template.name.value
        path = gdir / f"{template.template_id}{self.SUFFIX}"
        try:
            gdir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(template_to_dict(template), f, indent=2)
        except OSError as e:
            raise ResourceUnavailableError(f"Cannot write template to {path}: {e}") from e

        logger.info(f"Template {template.template_id} saved to {path}")
        return path.relative_to(self._root).as_posix()
