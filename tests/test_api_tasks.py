# tests/test_api_tasks.py

from __future__ import annotations

from fastapi.testclient import TestClient

from .fakes import FakeClock


def _create(client: TestClient, **body) -> dict:
    body.setdefault("title", "task")
    res = client.post("/api/tasks", json=body)
    assert res.status_code == 201, res.text
    return res.json()


def test_create_applies_defaults_and_renders_iso_times(client: TestClient) -> None:
    task = _create(client, title="  write report  ")

    assert task["title"] == "write report"
    assert task["status"] == "PENDING"
    assert task["priority"] == "MEDIUM"
    assert task["createdAt"] == "2025-01-01T00:00:00Z"
    assert task["updatedAt"] == "2025-01-01T00:00:00Z"
    assert task["completedAt"] is None
    assert task["reminderEnabled"] is False
    assert task["reminderNotified"] is False


def test_date_only_deadline_round_trips_as_utc_midnight(client: TestClient) -> None:
    task = _create(client, deadline="2025-01-01")
    assert task["deadline"] == "2025-01-01T00:00:00Z"

    fetched = client.get(f"/api/tasks/{task['id']}").json()
    assert fetched["deadline"] == "2025-01-01T00:00:00Z"


def test_due_date_is_accepted_as_deadline_alias(client: TestClient) -> None:
    task = _create(client, dueDate="2025-03-04T09:00:00+09:00")
    assert task["deadline"] == "2025-03-04T00:00:00Z"


def test_create_rejects_invalid_body_with_all_errors(client: TestClient) -> None:
    res = client.post("/api/tasks", json={"title": " ", "priority": "CRITICAL", "deadline": "tomorrow"})

    assert res.status_code == 400
    detail = res.json()["detail"]
    assert len(detail["errors"]) == 3
    assert "title is required" in detail["errors"]
    assert "title is required" in detail["message"]


def test_create_rejects_date_outside_supported_years(client: TestClient) -> None:
    res = client.post("/api/tasks", json={"title": "x", "deadline": "0001-01-01T00:00:00+01:00"})
    assert res.status_code == 400


def test_create_rejects_wrong_json_type_as_400(client: TestClient) -> None:
    res = client.post("/api/tasks", json={"title": 123})

    assert res.status_code == 400
    errors = res.json()["detail"]["errors"]
    assert errors and errors[0].startswith("title:")


def test_list_returns_page_and_pagination(client: TestClient, clock: FakeClock) -> None:
    for i in range(12):
        _create(client, title=f"t{i:02d}")
        clock.tick(1)

    res = client.get("/api/tasks", params={"limit": 5, "page": 3, "sortBy": "createdAt", "sortOrder": "asc"})
    assert res.status_code == 200
    body = res.json()
    assert [t["title"] for t in body["tasks"]] == ["t10", "t11"]
    assert body["pagination"] == {"page": 3, "limit": 5, "total": 12, "totalPages": 3}


def test_list_defaults_to_newest_first(client: TestClient, clock: FakeClock) -> None:
    _create(client, title="old")
    clock.tick(10)
    _create(client, title="new")

    body = client.get("/api/tasks").json()
    assert [t["title"] for t in body["tasks"]] == ["new", "old"]
    assert body["pagination"]["limit"] == 10


def test_list_page_past_end_is_empty_not_error(client: TestClient) -> None:
    _create(client)

    body = client.get("/api/tasks", params={"page": 9}).json()
    assert body["tasks"] == []
    assert body["pagination"]["total"] == 1


def test_list_rejects_page_beyond_storage_range(client: TestClient) -> None:
    _create(client)

    res = client.get("/api/tasks", params={"page": str(10**20)})
    assert res.status_code == 400
    assert res.json()["detail"]["errors"] == ["page is too large for the given limit"]


def test_list_filters_by_repeated_and_comma_separated_status(client: TestClient) -> None:
    _create(client, title="a", status="PENDING")
    _create(client, title="b", status="IN_PROGRESS")
    _create(client, title="c", status="COMPLETED")

    repeated = client.get("/api/tasks", params=[("status", "PENDING"), ("status", "COMPLETED")]).json()
    comma = client.get("/api/tasks", params={"status": "pending,completed"}).json()

    assert sorted(t["title"] for t in repeated["tasks"]) == ["a", "c"]
    assert sorted(t["title"] for t in comma["tasks"]) == ["a", "c"]


def test_list_search_matches_title_and_description(client: TestClient) -> None:
    _create(client, title="Buy milk")
    _create(client, title="other", description="remember the MILK")
    _create(client, title="unrelated")

    body = client.get("/api/tasks", params={"search": "milk"}).json()
    assert body["pagination"]["total"] == 2


def test_list_search_folds_non_ascii_case(client: TestClient) -> None:
    _create(client, title="Ärger")

    body = client.get("/api/tasks", params={"search": "ärger"}).json()
    assert body["pagination"]["total"] == 1


def test_list_rejects_invalid_parameters(client: TestClient) -> None:
    res = client.get("/api/tasks", params={"limit": 0, "sortBy": "color"})

    assert res.status_code == 400
    errors = res.json()["detail"]["errors"]
    assert errors[0] == "limit must be between 1 and 100"
    assert errors[1].startswith("sortBy must be one of")


def test_get_missing_task_is_404(client: TestClient) -> None:
    res = client.get("/api/tasks/does-not-exist")
    assert res.status_code == 404


def test_patch_updates_only_given_fields(client: TestClient, clock: FakeClock) -> None:
    task = _create(client, title="keep", description="old")
    clock.tick(30)

    res = client.patch(f"/api/tasks/{task['id']}", json={"description": "new", "priority": "high"})
    assert res.status_code == 200
    updated = res.json()
    assert updated["title"] == "keep"
    assert updated["description"] == "new"
    assert updated["priority"] == "HIGH"
    assert updated["updatedAt"] == "2025-01-01T00:00:30Z"


def test_patch_can_clear_deadline_with_null(client: TestClient) -> None:
    task = _create(client, deadline="2025-02-01")

    updated = client.patch(f"/api/tasks/{task['id']}", json={"deadline": None}).json()
    assert updated["deadline"] is None


def test_patch_with_no_fields_is_400(client: TestClient) -> None:
    task = _create(client)

    res = client.patch(f"/api/tasks/{task['id']}", json={})
    assert res.status_code == 400
    assert res.json()["detail"]["errors"] == ["no valid fields to update"]


def test_patch_missing_task_is_404(client: TestClient) -> None:
    res = client.patch("/api/tasks/nope", json={"title": "x"})
    assert res.status_code == 404


def test_status_endpoint_sets_and_clears_completed_at(client: TestClient, clock: FakeClock) -> None:
    task = _create(client)
    clock.tick(60)

    done = client.patch(f"/api/tasks/{task['id']}/status", json={"status": "COMPLETED"}).json()
    assert done["status"] == "COMPLETED"
    assert done["completedAt"] == "2025-01-01T00:01:00Z"

    reopened = client.patch(f"/api/tasks/{task['id']}/status", json={"status": "PENDING"}).json()
    assert reopened["completedAt"] is None


def test_status_endpoint_rejects_unknown_status(client: TestClient) -> None:
    task = _create(client)

    res = client.patch(f"/api/tasks/{task['id']}/status", json={"status": "DONE"})
    assert res.status_code == 400


def test_delete_then_get_is_404(client: TestClient) -> None:
    task = _create(client)

    res = client.delete(f"/api/tasks/{task['id']}")
    assert res.status_code == 204
    assert client.get(f"/api/tasks/{task['id']}").status_code == 404
    assert client.delete(f"/api/tasks/{task['id']}").status_code == 404


def test_bulk_update_counts_only_existing_ids(client: TestClient) -> None:
    a = _create(client, title="a")
    b = _create(client, title="b")

    res = client.post(
        "/api/tasks/bulk-update",
        json={"ids": [a["id"], b["id"], "missing"], "status": "IN_PROGRESS"},
    )
    assert res.status_code == 200
    assert res.json() == {"updated": 2}
    assert client.get(f"/api/tasks/{a['id']}").json()["status"] == "IN_PROGRESS"


def test_bulk_update_requires_a_field(client: TestClient) -> None:
    a = _create(client)

    res = client.post("/api/tasks/bulk-update", json={"ids": [a["id"]]})
    assert res.status_code == 400


def test_bulk_update_rejects_empty_id_list(client: TestClient) -> None:
    res = client.post("/api/tasks/bulk-update", json={"ids": [], "status": "PENDING"})
    assert res.status_code == 400


def test_bulk_delete(client: TestClient) -> None:
    a = _create(client, title="a")
    _create(client, title="b")

    res = client.post("/api/tasks/bulk-delete", json={"ids": [a["id"], "missing"]})
    assert res.json() == {"deleted": 1}
    assert client.get("/api/tasks").json()["pagination"]["total"] == 1


def test_stats_zero_fills_statuses(client: TestClient) -> None:
    _create(client, status="PENDING")
    _create(client, status="PENDING")
    _create(client, status="COMPLETED")

    body = client.get("/api/tasks/stats").json()
    assert body["total"] == 3
    assert body["counts"] == {"PENDING": 2, "IN_PROGRESS": 0, "COMPLETED": 1, "CANCELLED": 0}


def test_health_is_open(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "healthy"}
