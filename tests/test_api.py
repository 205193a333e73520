import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.srv_gesture import GestureSessionService, get_gesture_service

from conftest import make_curl, make_squat

PREFIX = "/api/gesture"


def frame_payload(pose):
    return {
        "joints": {jt.value: {"x": p.x, "y": p.y, "z": p.z} for jt, p in pose.items()},
        "timestamp": pose.timestamp,
    }


@pytest.fixture
def service(tmp_path):
    svc = GestureSessionService(template_dir=str(tmp_path / "gestures"))
    svc.add_template("Squat", make_squat())
    yield svc
    svc.shutdown()


@pytest.fixture
def client(service):
    app.dependency_overrides[get_gesture_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["services"]["templates"] == 1


def test_list_templates(client):
    body = client.get(f"{PREFIX}/templates").json()
    assert body["success"] is True
    assert body["data"]["labels"] == ["Squat"]
    assert body["data"]["gesture_max_len"] == 12


def test_add_template(client, service):
    frames = [frame_payload(p)["joints"] for p in make_curl()]
    response = client.post(f"{PREFIX}/templates", json={"label": "Bicep_Curl", "frames": frames})

    assert response.status_code == 200
    assert response.json()["data"]["frame_count"] == 10
    assert service.recognizer.template_count == 2


def test_add_template_bad_label(client):
    frames = [frame_payload(p)["joints"] for p in make_curl()]
    response = client.post(f"{PREFIX}/templates", json={"label": "Unknown", "frames": frames})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_add_template_bad_joint_name(client):
    response = client.post(f"{PREFIX}/templates", json={
        "label": "Squat", "frames": [{"elbow": {"x": 0, "y": 0, "z": 0}}],
    })
    assert response.status_code == 400


def test_remove_templates(client):
    assert client.delete(f"{PREFIX}/templates/label/Squat").json()["data"] == 1
    assert client.delete(f"{PREFIX}/templates/label/Squat").status_code == 404
    assert client.delete(f"{PREFIX}/templates/does-not-exist").status_code == 404


def test_load_missing_directory(client):
    response = client.post(f"{PREFIX}/templates/load", json={"path": "missing"})
    assert response.status_code == 503


def test_load_rejects_path_outside_template_dir(client, tmp_path):
    response = client.post(f"{PREFIX}/templates/load", json={"path": str(tmp_path)})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_capture_and_match_flow(client, service):
    assert client.post(f"{PREFIX}/capture/begin").json()["data"]["state"] == "capturing"
    assert client.post(f"{PREFIX}/capture/begin").status_code == 400

    for pose in make_squat():
        assert client.post(f"{PREFIX}/frames", json=frame_payload(pose)).status_code == 200

    body = client.post(f"{PREFIX}/capture/end", json={}).json()
    assert body["data"] == {"state": "completed", "frame_count": 12, "match_scheduled": True}

    assert service.wait_for_match(timeout=5).ok
    latest = client.get(f"{PREFIX}/match/latest").json()["data"]
    assert latest["busy"] is False
    assert latest["result"]["label"] == "Squat"
    assert latest["result"]["distance"] == 0.0


def test_end_capture_with_bad_range(client):
    client.post(f"{PREFIX}/capture/begin")
    for pose in make_squat(frames=4):
        client.post(f"{PREFIX}/frames", json=frame_payload(pose))
    response = client.post(f"{PREFIX}/capture/end", json={"start_frame": 2, "end_frame": 9})
    assert response.status_code == 400


def test_abort_capture(client):
    client.post(f"{PREFIX}/capture/begin")
    for pose in make_squat(frames=3):
        client.post(f"{PREFIX}/frames", json=frame_payload(pose))
    body = client.post(f"{PREFIX}/capture/abort").json()
    assert body["data"]["state"] == "aborted"
    assert body["data"]["frame_count"] == 3


def test_measurement_units_and_joints(client):
    response = client.put(f"{PREFIX}/measurement-units", json={
        "units": [{"joints": ["knee_left", "KneeRight"], "metric": "speed"}],
    })
    assert response.json()["data"] == 1

    for pose in make_squat(frames=3):
        client.post(f"{PREFIX}/frames", json=frame_payload(pose))

    joints = client.get(f"{PREFIX}/joints").json()["data"]
    assert sorted(j["joint"] for j in joints) == ["knee_left", "knee_right"]
    assert all(j["position"] is None and j["speed"] > 0 for j in joints)


def test_skeletons_without_tracked_body(client):
    pose = make_squat(frames=1)[0]
    response = client.post(f"{PREFIX}/skeletons", json={
        "skeletons": [{"joints": frame_payload(pose)["joints"], "tracked": False}],
        "timestamp": 0.0,
    })
    assert response.status_code == 200
    assert response.json()["data"]["joints"] == []


def test_latest_match_empty(client):
    data = client.get(f"{PREFIX}/match/latest").json()["data"]
    assert data == {"busy": False, "result": None, "error": None}
