"""
Smoke tests for the alignment API server.
"""
from fastapi.testclient import TestClient
from app import app

client = TestClient(app)


def make_csv(sensors=("left_thigh", "left_shin"), n=50):
    lines = ["sensor,timestamp_ms,quat_w,quat_x,quat_y,quat_z"]
    for i in range(n):
        for s in sensors:
            lines.append(f"{s},{i * 10},1,0,0,0")
    return "\n".join(lines).encode("utf-8")


def test_health_endpoint():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_process_endpoint_requires_file():
    response = client.post("/api/process/")
    assert response.status_code == 422


def test_process_endpoint_returns_chunks():
    response = client.post(
        "/api/process/",
        files={"file": ("rec.csv", make_csv(), "text/csv")},
        data={"target_hz": "50", "chunk_size": "10", "session_id": "session_api"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["strategy"] == "grid_snap"
    # 0..490 ms at 50 Hz
    assert body["sample_count"] == 25
    assert body["total_chunks"] == 3
    assert [c["chunk_index"] for c in body["chunks"]] == [0, 1, 2]
    assert body["chunks"][0]["session_id"] == "session_api"
    assert body["chunks"][0]["active_joints"] == ["left_knee"]
    assert body["chunks"][0]["right_flags"] == [2] * 10
    assert sorted(body["missing_sensors"]) == ["right_shin", "right_thigh"]


def test_process_endpoint_reports_alignment_failure():
    response = client.post(
        "/api/process/",
        files={"file": ("rec.csv", make_csv(("left_thigh", "right_thigh")), "text/csv")},
        data={"strategy": "direct"},
    )
    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "alignment_failed"
    assert "left_shin" in body["message"]


def test_process_endpoint_rejects_bad_input():
    bad_cols = client.post(
        "/api/process/",
        files={"file": ("rec.csv", b"a,b\n1,2\n", "text/csv")},
    )
    assert bad_cols.status_code == 400
    bad_strategy = client.post(
        "/api/process/",
        files={"file": ("rec.csv", make_csv(), "text/csv")},
        data={"strategy": "cubic"},
    )
    assert bad_strategy.status_code == 400
