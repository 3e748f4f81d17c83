"""HTTP contract tests for the questionnaire version endpoints.

Drives the FastAPI app through ``TestClient``: status codes, camelCase
payloads, problem+json error bodies (validated with jsonschema), display
locale projection, version comparison and the request id header.
"""

from __future__ import annotations

import pytest
from jsonschema import Draft202012Validator

BASE = "/api/v1/admin/questionnaire-versions"

PROBLEM_SCHEMA = {
    "type": "object",
    "required": ["type", "title", "status", "kind", "code", "detail"],
    "properties": {
        "type": {"type": "string"},
        "title": {"type": "string"},
        "status": {"type": "integer"},
        "kind": {"enum": ["InvalidState", "Conflict", "NotFound", "Validation"]},
        "code": {"type": "string"},
        "detail": {"type": "string"},
        "operation": {"type": "string"},
        "errors": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["path", "code"],
                "properties": {"path": {"type": "string"}, "code": {"type": "string"}},
            },
        },
    },
}


def _assert_problem(resp, status: int, kind: str, code: str | None = None) -> dict:
    assert resp.status_code == status, resp.text
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    Draft202012Validator(PROBLEM_SCHEMA).validate(body)
    assert body["status"] == status
    assert body["kind"] == kind
    if code is not None:
        assert body["code"] == code
    return body


def _question(text: str, step: int = 1, **extra) -> dict:
    body = {"questionText": text, "questionType": "ShortText", "stepNumber": step}
    body.update(extra)
    return body


@pytest.fixture
def published(client):
    """Publish a first version with questions Q1..Q3 through the API."""
    draft = client.post(BASE, json={"notes": "v1"}).json()
    for text in ("Q1", "Q2", "Q3"):
        assert client.post(f"{BASE}/{draft['id']}/questions", json=_question(text)).status_code == 201
    assert client.post(f"{BASE}/{draft['id']}/publish").status_code == 200
    return client.get(f"{BASE}/published").json()


@pytest.fixture
def draft(client, published):
    return client.post(BASE, headers={"X-Actor-Id": "editor"}).json()


# ---------------------------------------------------------------------------
# Reads and transitions
# ---------------------------------------------------------------------------


def test_empty_lineage(client):
    assert client.get(BASE).json() == []
    assert client.get(f"{BASE}/active").status_code == 204
    _assert_problem(client.get(f"{BASE}/published"), 404, "NotFound", "NO_PUBLISHED_VERSION")


def test_create_draft_returns_camel_case_detail(client):
    resp = client.post(BASE, json={"notes": "start"}, headers={"X-Actor-Id": "alice"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "Draft"
    assert body["versionNumber"] is None
    assert body["createdBy"] == "alice"
    assert body["questionCount"] == 0
    assert {"stepNumber", "titleFR", "titleEN", "questionCount"} <= set(body["steps"][0])
    assert client.get(f"{BASE}/active").json()["id"] == body["id"]


def test_create_draft_without_body_uses_default_actor(client):
    resp = client.post(BASE)

    assert resp.status_code == 201
    assert resp.json()["createdBy"] == "system"
    assert resp.json()["notes"] is None


def test_second_draft_is_a_conflict(client):
    client.post(BASE)

    body = _assert_problem(client.post(BASE), 409, "Conflict", "DRAFT_ALREADY_EXISTS")

    assert body["operation"] == "createDraft"


def test_publish_returns_summary_and_archives_previous(client, published, draft):
    resp = client.post(f"{BASE}/{draft['id']}/publish", headers={"X-Actor-Id": "publisher"})

    assert resp.status_code == 200
    summary = resp.json()
    assert summary["versionNumber"] == 2
    assert summary["publishedBy"] == "publisher"
    assert "questions" not in summary
    history = client.get(BASE).json()
    assert [(v["id"], v["status"]) for v in history] == [
        (draft["id"], "Published"),
        (published["id"], "Archived"),
    ]


def test_publish_of_published_is_invalid_state(client, published):
    body = _assert_problem(client.post(f"{BASE}/{published['id']}/publish"), 409, "InvalidState", "VERSION_NOT_DRAFT")

    assert body["operation"] == "publishDraft"


def test_discard_draft_returns_204(client, published, draft):
    resp = client.delete(f"{BASE}/{draft['id']}")

    assert resp.status_code == 204
    assert resp.content == b""
    assert client.get(f"{BASE}/active").status_code == 204
    _assert_problem(client.get(f"{BASE}/{draft['id']}"), 404, "NotFound")


def test_restore_creates_a_draft(client, published):
    resp = client.post(f"{BASE}/{published['id']}/restore")

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "Draft"
    assert body["restoredFromVersionId"] == published["id"]
    assert body["notes"] == "Restored from version 1"
    assert body["questionCount"] == 3


def test_unknown_version_is_404(client):
    _assert_problem(client.get(f"{BASE}/nope"), 404, "NotFound", "RESOURCE_NOT_FOUND")
    _assert_problem(client.post(f"{BASE}/nope/restore"), 404, "NotFound")


# ---------------------------------------------------------------------------
# Draft edits
# ---------------------------------------------------------------------------


def test_question_crud_on_draft(client, draft):
    created = client.post(f"{BASE}/{draft['id']}/questions", json=_question("Q4", order=2))
    assert created.status_code == 201
    qid = created.json()["id"]
    assert created.json()["order"] == 2

    updated = client.put(f"{BASE}/{draft['id']}/questions/{qid}", json={"questionTextEN": "Q4 en"})
    assert updated.status_code == 200
    assert updated.json()["questionTextEN"] == "Q4 en"
    assert updated.json()["questionText"] == "Q4"

    deleted = client.delete(f"{BASE}/{draft['id']}/questions/{qid}")
    assert deleted.status_code == 204

    detail = client.get(f"{BASE}/{draft['id']}").json()
    assert [(q["questionText"], q["order"]) for q in detail["questions"]] == [("Q1", 1), ("Q2", 2), ("Q3", 3)]


def test_reorder_route_is_not_captured_as_a_question_id(client, draft):
    ids = {q["questionText"]: q["id"] for q in draft["questions"]}

    resp = client.put(
        f"{BASE}/{draft['id']}/questions/reorder",
        json={"items": [{"questionId": ids["Q3"], "order": 1}, {"questionId": ids["Q1"], "order": 3}]},
    )

    assert resp.status_code == 200
    assert [(q["questionText"], q["order"]) for q in resp.json()] == [("Q3", 1), ("Q2", 2), ("Q1", 3)]


def test_update_step(client, draft):
    resp = client.put(f"{BASE}/{draft['id']}/steps/1", json={"titleEN": "Purpose"})

    assert resp.status_code == 200
    assert resp.json()["titleEN"] == "Purpose"
    assert resp.json()["questionCount"] == 3


def test_edits_on_published_are_409(client, published):
    qid = published["questions"][0]["id"]
    calls = [
        ("createQuestion", client.post(f"{BASE}/{published['id']}/questions", json=_question("x"))),
        ("updateQuestion", client.put(f"{BASE}/{published['id']}/questions/{qid}", json={"questionText": "y"})),
        ("deleteQuestion", client.delete(f"{BASE}/{published['id']}/questions/{qid}")),
        (
            "reorderQuestions",
            client.put(
                f"{BASE}/{published['id']}/questions/reorder",
                json={"items": [{"questionId": qid, "order": 2}]},
            ),
        ),
        ("updateStep", client.put(f"{BASE}/{published['id']}/steps/1", json={"titleEN": "z"})),
    ]

    for operation, resp in calls:
        body = _assert_problem(resp, 409, "InvalidState", "VERSION_NOT_DRAFT")
        assert body["operation"] == operation

    assert client.get(f"{BASE}/{published['id']}").json() == published


def test_choice_question_without_options_is_422(client, draft):
    resp = client.post(
        f"{BASE}/{draft['id']}/questions",
        json=_question("Pick", questionType="SingleChoice"),
    )

    body = _assert_problem(resp, 422, "Validation", "VALIDATION_FAILED")
    assert {"path": "$.options", "code": "missing_or_not_a_json_list"} in body["errors"]


def test_request_validation_errors_are_problem_json(client, draft):
    resp = client.post(f"{BASE}/{draft['id']}/questions", json={"questionType": "ShortText"})

    body = _assert_problem(resp, 422, "Validation", "REQUEST_VALIDATION_FAILED")
    paths = {e["path"] for e in body["errors"]}
    assert "$.questionText" in paths
    assert "$.stepNumber" in paths


def test_blank_step_title_is_422(client, draft):
    resp = client.put(f"{BASE}/{draft['id']}/steps/1", json={"titleFR": " "})

    _assert_problem(resp, 422, "Validation", "REQUEST_VALIDATION_FAILED")


# ---------------------------------------------------------------------------
# Locale, comparison, request id, health
# ---------------------------------------------------------------------------


def test_locale_projection(client, draft):
    qid = draft["questions"][0]["id"]
    client.put(f"{BASE}/{draft['id']}/questions/{qid}", json={"questionTextEN": "First"})

    en = client.get(f"{BASE}/{draft['id']}", params={"locale": "en"}).json()
    fr = client.get(f"{BASE}/{draft['id']}", params={"locale": "fr"}).json()
    plain = client.get(f"{BASE}/{draft['id']}").json()

    assert en["steps"][0]["displayTitle"] == en["steps"][0]["titleEN"]
    assert fr["steps"][0]["displayTitle"] == fr["steps"][0]["titleFR"]
    assert en["questions"][0]["displayText"] == "First"
    assert en["questions"][1]["displayText"] == "Q2"
    assert fr["questions"][0]["displayText"] == "Q1"
    assert plain["questions"][0]["displayText"] is None


def test_unsupported_locale_is_422(client, draft):
    _assert_problem(client.get(f"{BASE}/active", params={"locale": "de"}), 422, "Validation")


def test_compare_versions(client, published, draft):
    ids = {q["questionText"]: q["id"] for q in draft["questions"]}
    client.put(f"{BASE}/{draft['id']}/questions/{ids['Q1']}", json={"questionText": "Q1 bis"})
    client.delete(f"{BASE}/{draft['id']}/questions/{ids['Q2']}")
    client.post(f"{BASE}/{draft['id']}/questions", json=_question("Q4", step=2))
    client.put(f"{BASE}/{draft['id']}/steps/3", json={"descriptionEN": "What you sell"})

    resp = client.get(f"{BASE}/{published['id']}/compare/{draft['id']}")

    assert resp.status_code == 200
    diff = resp.json()
    assert diff["baseVersionId"] == published["id"]
    assert [q["questionText"] for q in diff["addedQuestions"]] == ["Q4"]
    assert [q["questionText"] for q in diff["removedQuestions"]] == ["Q2"]
    changed = {q["questionText"]: q["fields"] for q in diff["changedQuestions"]}
    assert changed["Q1 bis"] == ["questionText"]
    assert changed["Q3"] == ["order"]
    assert diff["changedSteps"] == [{"stepNumber": 3, "fields": ["descriptionEN"]}]


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get(BASE, headers={"X-Request-Id": "req-123"})
    generated = client.get(BASE)

    assert echoed.headers["X-Request-Id"] == "req-123"
    assert generated.headers["X-Request-Id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "db": True}
