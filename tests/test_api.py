"""Tests for the HTTP API."""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from scoresheets.api.app import create_app
from scoresheets.app_logging import LOGGER_NAME, configure_logging
from scoresheets.containers import AppContainer
from scoresheets.domain.definitions import serialize_definition
from tests.conftest import categories_definition

HEADERS = {"X-User-Id": "user-42"}


@pytest.fixture
def client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def _template_body(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "name": "Castles",
        "jsonDefinition": serialize_definition(categories_definition()),
        "minPlayers": 2,
        "maxPlayers": 4,
    }
    body.update(overrides)
    return body


def _create_session(client: TestClient) -> dict[str, object]:
    template = client.post(
        "/api/score-sheet-template", json=_template_body(), headers=HEADERS
    ).json()
    response = client.post(
        "/api/score-session",
        json={
            "name": "Friday",
            "scoreSheetTemplateId": template["id"],
            "players": [{"id": "p1", "name": "Ada"}, {"id": "p2", "name": "Grace"}],
        },
        headers=HEADERS,
    )
    assert response.status_code == 200
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_app_applies_configured_log_level(container: AppContainer) -> None:
    container.settings = container.settings.model_copy(update={"log_level": "DEBUG"})

    create_app(container)

    assert logging.getLogger(LOGGER_NAME).level == logging.DEBUG
    configure_logging()


def test_create_template_records_actor(client: TestClient) -> None:
    response = client.post(
        "/api/score-sheet-template", json=_template_body(), headers=HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["createdByUserId"] == "user-42"
    assert body["version"] == "1.0"
    assert client.get(f"/api/score-sheet-template/{body['id']}").json() == body


def test_create_template_without_header_is_anonymous(client: TestClient) -> None:
    response = client.post("/api/score-sheet-template", json=_template_body())

    assert response.json()["createdByUserId"] == "anonymous"


def test_invalid_template_returns_violations(client: TestClient) -> None:
    response = client.post(
        "/api/score-sheet-template", json=_template_body(minPlayers=0)
    )

    assert response.status_code == 422
    assert response.json() == {
        "error": "validation",
        "violations": [{"path": "minPlayers", "message": "must be at least 1"}],
    }


def test_validate_endpoint_does_not_save(
    client: TestClient, container: AppContainer
) -> None:
    definition = {
        "fields": [{"id": "a"}],
        "rules": [{"id": "t", "expression": "a +", "targetFieldId": "a"}],
    }
    response = client.post(
        "/api/score-sheet-template/validate",
        json=_template_body(jsonDefinition=json.dumps(definition)),
    )

    body = response.json()
    assert response.status_code == 200
    assert body["valid"] is False
    assert body["violations"][0]["path"] == "rules[0].expression"
    assert container.template_service.list_templates() == []


def test_presets_endpoint(client: TestClient) -> None:
    presets = client.get("/api/score-sheet-template/presets").json()

    assert set(presets) >= {"simple_high_score", "categories"}
    assert all("fields" in definition for definition in presets.values())


def test_missing_template_returns_404(client: TestClient) -> None:
    response = client.get(
        "/api/score-sheet-template/00000000-0000-0000-0000-000000000000"
    )

    assert response.status_code == 404
    assert "not found" in response.json()["error"]


def test_session_scoring_flow(client: TestClient) -> None:
    session = _create_session(client)
    session_id = session["id"]
    assert session["data"]["totals"] == {"p1": 0.0, "p2": 0.0}
    assert session["data"]["players"][1]["order"] == 1

    client.put(
        f"/api/score-session/{session_id}/field-values",
        json={"playerId": "p1", "fieldId": "coins", "value": 12},
    )
    edited = client.put(
        f"/api/score-session/{session_id}/field-values",
        json={"playerId": "p1", "fieldId": "penalties", "value": 2},
    ).json()

    assert edited["data"]["totals"]["p1"] == 10.0
    totals = client.get(f"/api/score-session/{session_id}/totals").json()
    assert totals["totals"] == {"p1": 10.0, "p2": 0.0}
    assert totals["failures"] == []


def test_round_endpoints(client: TestClient) -> None:
    session_id = _create_session(client)["id"]

    started = client.post(f"/api/score-session/{session_id}/rounds", json={})
    round_id = started.json()["data"]["rounds"][0]["id"]
    response = client.put(
        f"/api/score-session/{session_id}/rounds/{round_id}/field-values",
        json={"playerId": "p2", "fieldId": "bonuses", "value": 3},
    )

    assert started.status_code == 200
    assert response.json()["data"]["totals"]["p2"] == 3.0


def test_field_edit_errors(client: TestClient) -> None:
    session_id = _create_session(client)["id"]

    unknown = client.put(
        f"/api/score-session/{session_id}/field-values",
        json={"playerId": "p9", "fieldId": "coins", "value": 1},
    )
    out_of_bounds = client.put(
        f"/api/score-session/{session_id}/field-values",
        json={"playerId": "p1", "fieldId": "coins", "value": -1},
    )

    assert unknown.status_code == 404
    assert out_of_bounds.status_code == 422


def test_non_finite_field_value_is_rejected(client: TestClient) -> None:
    session_id = _create_session(client)["id"]

    response = client.put(
        f"/api/score-session/{session_id}/field-values",
        content='{"playerId": "p1", "fieldId": "bonuses", "value": NaN}',
        headers={"Content-Type": "application/json"},
    )
    stored = client.get(f"/api/score-session/{session_id}").json()

    assert response.status_code == 422
    assert response.json()["violations"][0]["message"] == "must be a finite number"
    assert stored["data"]["fieldValues"]["p1"]["bonuses"] == 0


def test_completed_session_rejects_edits(client: TestClient) -> None:
    session_id = _create_session(client)["id"]

    completed = client.post(f"/api/score-session/{session_id}/complete")
    again = client.post(f"/api/score-session/{session_id}/complete")
    edit = client.put(
        f"/api/score-session/{session_id}/field-values",
        json={"playerId": "p1", "fieldId": "coins", "value": 1},
    )
    renamed = client.put(
        f"/api/score-session/{session_id}", json={"notes": "Close game"}
    )

    assert completed.json()["isCompleted"] is True
    assert completed.json()["finishedAt"] is not None
    assert again.status_code == 409
    assert edit.status_code == 409
    assert renamed.status_code == 200
    assert renamed.json()["notes"] == "Close game"


def test_session_lists_and_delete(client: TestClient) -> None:
    session_id = _create_session(client)["id"]

    by_user = client.get("/api/score-session/by-user/user-42").json()
    deleted = client.delete(f"/api/score-session/{session_id}")
    missing = client.get(f"/api/score-session/{session_id}")

    assert [item["id"] for item in by_user] == [session_id]
    assert deleted.json() == {"status": "ok"}
    assert missing.status_code == 404
