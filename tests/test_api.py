"""Tests for the HTTP layer (v1 and the frontend compatibility routes)."""

import time

import pytest
from fastapi.testclient import TestClient

from app.backend.connection_check import ConnectionReport
from app.config import AwsConfig, ConfigStore, Settings
from app.main import build_app
from fakes import TASK_ARN, FakeBackend, running, stopped


def _settings(tmp_path) -> Settings:
    return Settings(
        config_path=str(tmp_path / "config.json"),
        poll_interval_seconds=0.0,
        dispatch_workers=1,
        _env_file=None,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(describe_script=[running(), stopped(0)])


@pytest.fixture
def client(tmp_path, config_store, backend):
    app = build_app(
        settings=_settings(tmp_path),
        config_store=config_store,
        backend_factory=lambda _config: backend,
    )
    with TestClient(app) as c:
        yield c


@pytest.fixture
def unconfigured_client(tmp_path):
    app = build_app(
        settings=_settings(tmp_path),
        config_store=ConfigStore(path=str(tmp_path / "config.json")),
        backend_factory=lambda _config: FakeBackend(),
    )
    with TestClient(app) as c:
        yield c


def _wait_for_status(client, job_id, statuses, attempts=200):
    for _ in range(attempts):
        body = client.get(f"/api/v1/jobs/{job_id}").json()
        if body["status"] in statuses:
            return body
        time.sleep(0.01)
    return body


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_submit_and_poll_to_completion(client, backend):
    response = client.post(
        "/api/v1/jobs", json={"video_key": "uploads/a.mp4", "performance_level": "premium"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "PENDING"
    job_id = body["job_id"]

    job = _wait_for_status(client, job_id, {"COMPLETED", "FAILED"})
    assert job["status"] == "COMPLETED"
    assert job["video_key"] == "uploads/a.mp4"
    messages = [entry["message"] for entry in job["logs"]]
    assert messages[0] == "Job created. Video key: uploads/a.mp4"
    assert f"Started ECS task: {TASK_ARN}" in messages
    assert backend.run_requests[0].environment["PERFORMANCE_LEVEL"] == "premium"


def test_submit_empty_video_key_is_rejected(client):
    response = client.post("/api/v1/jobs", json={"video_key": ""})

    assert response.status_code == 422
    assert client.get("/api/v1/jobs").json() == []


def test_submit_unknown_performance_level_is_rejected(client):
    response = client.post("/api/v1/jobs", json={"video_key": "a.mp4", "performance_level": "turbo"})

    assert response.status_code == 422


def test_submit_without_config_returns_400(unconfigured_client):
    response = unconfigured_client.post("/api/v1/jobs", json={"video_key": "a.mp4"})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert "ECS_CLUSTER" in detail["missing_fields"]
    assert unconfigured_client.get("/api/v1/jobs").json() == []


def test_unknown_job_returns_404(client):
    assert client.get("/api/v1/jobs/does-not-exist").status_code == 404
    assert client.get("/api/jobs/does-not-exist").status_code == 404


def test_list_jobs_in_submission_order(client):
    ids = [
        client.post("/api/v1/jobs", json={"video_key": f"v{i}.mp4"}).json()["job_id"]
        for i in range(3)
    ]

    listed = client.get("/api/v1/jobs").json()

    assert [j["job_id"] for j in listed] == ids
    assert all("logs" not in j for j in listed)


def test_compat_routes_use_camel_case(client):
    response = client.post(
        "/api/start-transcoding", json={"videoKey": "uploads/b.mp4", "performanceLevel": "economy"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    job_id = body["jobId"]

    job = client.get(f"/api/jobs/{job_id}").json()
    assert job["jobId"] == job_id
    assert job["videoKey"] == "uploads/b.mp4"
    assert job["logs"][0]["message"] == "Job created. Video key: uploads/b.mp4"

    summaries = client.get("/api/jobs").json()
    assert [s["jobId"] for s in summaries] == [job_id]


def test_compat_requires_video_key(client):
    response = client.post("/api/start-transcoding", json={"performanceLevel": "standard"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Video key is required"}


def test_compat_rejects_unknown_performance_level(client):
    response = client.post("/api/start-transcoding", json={"videoKey": "a.mp4", "performanceLevel": "turbo"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "turbo" in response.json()["error"]


def test_compat_unknown_job_uses_error_shape(client):
    response = client.get("/api/jobs/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Job not found"}


def test_compat_submit_without_config(unconfigured_client):
    response = unconfigured_client.post("/api/start-transcoding", json={"videoKey": "a.mp4"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("System not configured")
    assert "ECS_CLUSTER" in body["missingFields"]


def test_config_read_hides_secret(client):
    body = client.get("/api/v1/config").json()

    assert body["configured"] is True
    assert "AWS_SECRET_ACCESS_KEY" not in body["config"]


def test_config_save_validates_and_persists(unconfigured_client, aws_config: AwsConfig, tmp_path):
    assert unconfigured_client.get("/api/config").json()["configured"] is False

    bad = aws_config.model_dump(by_alias=True)
    bad["ECS_SUBNETS"] = "vpc-123"
    assert unconfigured_client.post("/api/config", json=bad).status_code == 400

    incomplete = {"AWS_REGION": "ap-south-1"}
    response = unconfigured_client.post("/api/config", json=incomplete)
    assert response.status_code == 400
    assert "ECS_CLUSTER" in response.json()["detail"]["missing_fields"]

    good = aws_config.model_dump(by_alias=True)
    assert unconfigured_client.post("/api/config", json=good).json()["success"] is True
    assert (tmp_path / "config.json").exists()

    response = unconfigured_client.post("/api/v1/jobs", json={"video_key": "a.mp4"})
    assert response.status_code == 200


def test_config_save_write_failure_returns_500(tmp_path, aws_config: AwsConfig):
    store = ConfigStore(path=str(tmp_path / "missing-dir" / "config.json"))
    app = build_app(
        settings=_settings(tmp_path),
        config_store=store,
        backend_factory=lambda _config: FakeBackend(),
    )

    with TestClient(app) as c:
        response = c.post("/api/v1/config", json=aws_config.model_dump(by_alias=True))

        assert response.status_code == 500
        assert "Failed to save configuration" in response.json()["detail"]
        assert c.get("/api/v1/config").json()["configured"] is False


class _FixedCheck:
    checked = []

    def __init__(self, config):
        self._config = config

    def run(self):
        self.checked.append(self._config.s3_bucket_name)
        return ConnectionReport(
            successes=["Successfully connected to AWS S3 and bucket is accessible"],
            errors=[f"ECS Cluster '{self._config.ecs_cluster}' not found"],
            details={"ecs": {"clusterStatus": "not found"}},
        )


def test_connection_check_reports_results(tmp_path, config_store):
    _FixedCheck.checked = []
    app = build_app(
        settings=_settings(tmp_path),
        config_store=config_store,
        backend_factory=lambda _config: FakeBackend(),
        connection_check_factory=_FixedCheck,
    )

    with TestClient(app) as c:
        body = c.get("/api/test-connection").json()

    assert _FixedCheck.checked == ["videos"]
    assert body["success"] is False
    assert body["successes"] == ["Successfully connected to AWS S3 and bucket is accessible"]
    assert "not found" in body["errors"][0]
    assert body["details"]["ecs"]["clusterStatus"] == "not found"


def test_connection_check_without_config(unconfigured_client):
    body = unconfigured_client.get("/api/v1/test-connection").json()

    assert body["success"] is False
    assert body["errors"] == ["Configuration not loaded. Please save configuration first."]
