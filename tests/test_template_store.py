import json
from pathlib import Path

import pytest

from app.gesture_engine.core.data_types import GestureName, JointType
from app.gesture_engine.core.exceptions import ResourceUnavailableError, TemplateFormatError
from app.gesture_engine.modules.recognizer import GestureRecognizer
from app.gesture_engine.modules.template_store import (
    DirectoryTemplateSource, template_from_dict, template_to_dict,
)

from conftest import make_curl, make_squat


def _frames_json(sequence):
    return [{jt.value: [p.x, p.y, p.z] for jt, p in pose.items()} for pose in sequence]


def _write(path, payload):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")


@pytest.fixture
def template_dir(tmp_path):
    _write(tmp_path / "Squat" / "a.json", {"name": "Squat", "frames": _frames_json(make_squat())})
    _write(tmp_path / "Squat" / "b.json", {"frames": _frames_json(make_squat(depth=0.2))})
    _write(tmp_path / "Bicep_Curl" / "c.json", {"name": "Bicep_Curl", "frames": _frames_json(make_curl())})
    _write(tmp_path / "Bicep_Curl" / "broken.json", "{not json")
    # Ignored: unknown gesture directory, UNKNOWN label, non-json file
    _write(tmp_path / "Jumping_Jack" / "d.json", {"frames": _frames_json(make_curl())})
    _write(tmp_path / "Unknown" / "e.json", {"frames": _frames_json(make_curl())})
    _write(tmp_path / "Squat" / "notes.txt", "hello")
    return tmp_path


def test_list_entries_skips_unknown_directories(template_dir):
    entries = DirectoryTemplateSource(template_dir).list_entries()
    assert entries == ["Bicep_Curl/broken.json", "Bicep_Curl/c.json", "Squat/a.json", "Squat/b.json"]


def test_load_reports_corrupt_entry(template_dir):
    recognizer = GestureRecognizer()
    report = recognizer.load_templates(DirectoryTemplateSource(template_dir))

    assert report.loaded == 3
    assert report.skipped == 1
    assert report.failures[0][0] == "Bicep_Curl/broken.json"
    assert recognizer.template_count == 3
    assert recognizer.match(make_squat()).label == GestureName.SQUAT


def test_missing_directory_is_unavailable(tmp_path):
    recognizer = GestureRecognizer()
    with pytest.raises(ResourceUnavailableError):
        recognizer.load_templates(DirectoryTemplateSource(tmp_path / "nope"))
    assert recognizer.template_count == 0


def test_template_without_reference_joint_is_skipped(tmp_path):
    frames = _frames_json(make_squat())
    for frame in frames:
        del frame["hip_center"]
    _write(tmp_path / "Squat" / "no_hip.json", {"frames": frames})

    report = GestureRecognizer().load_templates(DirectoryTemplateSource(tmp_path))
    assert (report.loaded, report.skipped) == (0, 1)


def test_read_entry_rejects_mismatched_name(tmp_path):
    _write(tmp_path / "Squat" / "x.json", {"name": "Bicep_Curl", "frames": _frames_json(make_squat())})
    with pytest.raises(TemplateFormatError):
        DirectoryTemplateSource(tmp_path).read_entry("Squat/x.json")


def test_read_entry_accepts_point_objects(tmp_path):
    _write(tmp_path / "Squat" / "obj.json", {
        "frames": [{"hip_center": {"x": 0, "y": 0, "z": 2}, "head": {"x": 0, "y": 0.6, "z": 2, "tracked": False}}],
        "weights": {"head": 1.0},
    })
    template = DirectoryTemplateSource(tmp_path).read_entry("Squat/obj.json")

    assert template.template_id == "obj"
    assert template.frames[0][JointType.HEAD].tracked is False
    assert template.weights[JointType.HEAD] == 1.0
    assert template.weights[JointType.KNEE_LEFT] == 0.0


@pytest.mark.parametrize("payload", [
    {"frames": []},
    {"frames": [{"elbow": [0, 0, 0]}]},
    {"frames": [{"head": [0, 0]}]},
    {"no_frames": True},
])
def test_template_from_dict_malformed(payload):
    with pytest.raises(TemplateFormatError):
        template_from_dict(payload, GestureName.SQUAT, "t1")


def test_write_then_load(tmp_path):
    recognizer = GestureRecognizer()
    template = recognizer.add_template("Bicep_Curl", make_curl())
    source = DirectoryTemplateSource(tmp_path)

    entry_id = recognizer.save_template(source, template)
    assert entry_id == f"Bicep_Curl/{template.template_id}.json"

    loaded = source.read_entry(entry_id)
    assert loaded.name == GestureName.BICEP_CURL
    assert loaded.template_id == template.template_id
    assert len(loaded) == len(template)
    assert template_to_dict(loaded)["weights"] == template.weights.to_dict()


def test_non_utf8_template_is_skipped(tmp_path):
    _write(tmp_path / "Squat" / "a.json", {"frames": _frames_json(make_squat())})
    (tmp_path / "Squat" / "b.json").write_bytes(b'{"frames": "\xff\xfe"}')

    report = GestureRecognizer().load_templates(DirectoryTemplateSource(tmp_path))

    assert (report.loaded, report.skipped) == (1, 1)
    assert report.failures[0][0] == "Squat/b.json"


def test_oversized_coordinate_is_skipped(tmp_path):
    frames = _frames_json(make_squat())
    frames[0]["head"] = [10 ** 400, 0, 0]
    _write(tmp_path / "Squat" / "a.json", {"frames": _frames_json(make_squat())})
    _write(tmp_path / "Squat" / "huge.json", {"frames": frames})

    report = GestureRecognizer().load_templates(DirectoryTemplateSource(tmp_path))

    assert (report.loaded, report.skipped) == (1, 1)
    assert report.failures[0][0] == "Squat/huge.json"


def test_template_from_dict_overflow_is_format_error():
    with pytest.raises(TemplateFormatError):
        template_from_dict({"frames": [{"hip_center": [10 ** 400, 0, 0]}]}, GestureName.SQUAT, "t1")


def test_unreadable_gesture_directory_is_skipped(template_dir, monkeypatch):
    real_iterdir = Path.iterdir

    def iterdir(self):
        if self.name == "Squat":
            raise PermissionError(13, "Permission denied", str(self))
        return real_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", iterdir)

    source = DirectoryTemplateSource(template_dir)
    recognizer = GestureRecognizer()
    report = recognizer.load_templates(source)

    # Bicep_Curl still loads; Squat dir and broken.json are counted as skipped
    assert report.loaded == 1
    assert report.skipped == 2
    assert "Squat" in [unit for unit, _ in report.failures]
    assert source.enumeration_failures()[0][0] == "Squat"
    assert recognizer.labels() == [GestureName.BICEP_CURL]
