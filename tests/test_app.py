import time
import uuid
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.run_store import RunStore
from services.runner import RunnerService, build_default_runner


@pytest.fixture
def api_client(fast_settings, monkeypatch) -> Iterator[TestClient]:
    runners: Dict[int, RunnerService] = {}

    def build_test_runner(workers: int | None = None) -> RunnerService:
        worker_count = workers or 1
        runner = runners.get(worker_count)
        if runner is None:
            runner = RunnerService(
                store=RunStore(),
                settings=fast_settings,
                workers=worker_count,
                echo=lambda _line: None,
            )
            runners[worker_count] = runner
        return runner

    def cache_clear() -> None:
        while runners:
            _, runner = runners.popitem()
            runner.shutdown()

    build_test_runner.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_runner", build_test_runner)
    monkeypatch.setattr("app.api.build_default_runner", build_test_runner)
    monkeypatch.setattr("services.runner.build_default_runner", build_test_runner)

    app = create_app()
    with TestClient(app) as client:
        yield client

    cache_clear()


def test_lifespan_shuts_down_runner_and_clears_cache() -> None:
    app = create_app()

    with TestClient(app):
        runner_during = build_default_runner()
        assert runner_during.executor._shutdown is False

    assert runner_during.executor._shutdown is True

    runner_after = build_default_runner()
    try:
        assert runner_after is not runner_during
        assert runner_after.executor._shutdown is False
    finally:
        runner_after.shutdown()
        build_default_runner.cache_clear()


def _poll_for_completion(client: TestClient, run_id: str, timeout: float = 10.0) -> dict:
    deadline = time.monotonic() + timeout
    last_payload: dict | None = None
    while time.monotonic() < deadline:
        response = client.get(f"/runs/{run_id}")
        assert response.status_code == 200
        payload = response.json()
        last_payload = payload
        if payload["status"] not in {"queued", "running"}:
            return payload
        time.sleep(0.05)
    pytest.fail(f"Run {run_id} did not complete: {last_payload}")


def test_submit_and_poll_run(api_client: TestClient) -> None:
    response = api_client.post(
        "/runs",
        json={"device_ids": ["sensor_001", "sensor_002"], "cycles": 2, "sample_rate": 400},
    )

    assert response.status_code == 202
    payload = response.json()
    assert set(payload.keys()) == {"run_id"}
    run_id = payload["run_id"]

    result = _poll_for_completion(api_client, run_id)

    assert result["run_id"] == run_id
    assert result["status"] == "completed"
    assert result["strategy"] == "sequential"
    assert len(result["outcomes"]) == 4
    first = result["outcomes"][0]
    assert first["raw_samples"] == 400
    assert first["compressed_samples"] == 100
    assert first["payload_samples"] == 100
    assert result["transmitted_count"] + result["failed_count"] == 4
    assert isinstance(result["processing_ms"], int)


def test_submit_defaults_to_single_sensor(api_client: TestClient) -> None:
    response = api_client.post("/runs", json={"cycles": 1, "strategy": "stage_parallel"})

    assert response.status_code == 202
    result = _poll_for_completion(api_client, response.json()["run_id"])
    assert result["device_ids"] == ["sensor_001"]
    assert result["strategy"] == "stage_parallel"


def test_duplicate_devices_return_bad_request(api_client: TestClient) -> None:
    response = api_client.post("/runs", json={"device_ids": ["s1", "s1"]})

    assert response.status_code == 400
    assert response.json()["detail"] == "Device ids must be unique."


def test_negative_cycles_fail_validation(api_client: TestClient) -> None:
    response = api_client.post("/runs", json={"cycles": -1})

    assert response.status_code == 422


def test_unknown_strategy_fails_validation(api_client: TestClient) -> None:
    response = api_client.post("/runs", json={"strategy": "turbo"})

    assert response.status_code == 422


def test_cancel_run(api_client: TestClient) -> None:
    response = api_client.post("/runs", json={"cycles": 5, "cooldown": 5.0})
    run_id = response.json()["run_id"]

    cancel = api_client.delete(f"/runs/{run_id}")

    assert cancel.status_code == 202
    assert cancel.json()["run_id"] == run_id
    result = _poll_for_completion(api_client, run_id)
    assert result["status"] == "cancelled"
    assert len(result["outcomes"]) <= 1


def test_get_missing_run_returns_not_found(api_client: TestClient) -> None:
    missing_id = str(uuid.uuid4())

    response = api_client.get(f"/runs/{missing_id}")
    assert response.status_code == 404
    assert missing_id in response.json()["detail"]

    response = api_client.delete(f"/runs/{missing_id}")
    assert response.status_code == 404


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_list_runs_newest_first_with_status_filter(api_client: TestClient) -> None:
    first = api_client.post("/runs", json={"cycles": 1}).json()["run_id"]
    _poll_for_completion(api_client, first)
    second = api_client.post("/runs", json={"cycles": 1}).json()["run_id"]
    _poll_for_completion(api_client, second)

    response = api_client.get("/runs")

    assert response.status_code == 200
    assert [item["run_id"] for item in response.json()] == [second, first]

    completed = api_client.get("/runs", params={"status": "completed", "limit": 1})
    assert [item["run_id"] for item in completed.json()] == [second]
    assert api_client.get("/runs", params={"status": "failed"}).json() == []


def test_list_runs_rejects_unknown_status(api_client: TestClient) -> None:
    assert api_client.get("/runs", params={"status": "paused"}).status_code == 422


@pytest.mark.parametrize(
    "overrides",
    [
        {"bit_depth": 0},
        {"bit_depth": 33},
        {"sample_rate": 10**9},
        {"sample_rate": -1},
        {"duration": 3600},
        {"cooldown": -0.5},
    ],
)
def test_out_of_range_device_parameters_fail_validation(
    api_client: TestClient, overrides: dict
) -> None:
    response = api_client.post("/runs", json={"cycles": 1, **overrides})

    assert response.status_code == 422


def test_oversized_block_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/runs", json={"cycles": 1, "sample_rate": 1_000_000, "duration": 11}
    )

    assert response.status_code == 400
    assert "sample_rate * duration" in response.json()["detail"]
