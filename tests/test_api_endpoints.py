"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end. The language-model
client is replaced by the ``fake_ai_client`` fixture, so no network is used.
"""

import pytest
from datetime import datetime, timedelta

from tonyos.integrations.openai_client import (
    AINotConfiguredError,
    AIRequestError,
    AIResponseParseError,
)
from tonyos.models.constants import CHAT_CONTEXT_TASK_LIMIT
from tonyos.models.task import TaskBucket


def _create(test_client, **body):
    response = test_client.post("/tasks", json={"title": "Task", **body})
    assert response.status_code == 201, response.text
    return response.json()["task"]


class TestTaskEndpoints:
    """Test task CRUD API endpoints."""

    def test_create_task_defaults(self, test_client):
        """POST /tasks with only a title applies the defaults."""
        response = test_client.post("/tasks", json={"title": "  Renew passport "})

        assert response.status_code == 201
        task = response.json()["task"]
        assert task["id"]
        assert task["title"] == "Renew passport"
        assert task["status"] == "open"
        assert task["bucket"] == "later"
        assert task["priority"] == 3
        assert task["due_date"] is None
        # priority 3, bucket later, no description
        assert task["leverage_score"] == 3
        assert task["urgency_score"] == 1
        assert task["risk_score"] == 2
        assert task["friction_score"] == 2
        assert task["score"] == 4

    def test_create_task_with_fields(self, test_client):
        response = test_client.post(
            "/tasks",
            json={
                "title": "File taxes",
                "description": "send docs to accounting",
                "area": "Finance",
                "bucket": "this_week",
                "priority": 1,
                "estimated_minutes": 45,
            },
        )

        assert response.status_code == 201
        task = response.json()["task"]
        assert task["bucket"] == "this_week"
        assert task["area"] == "Finance"
        assert task["estimated_minutes"] == 45
        assert task["leverage_score"] == 5
        assert task["urgency_score"] == 2
        assert task["friction_score"] == 3

    def test_create_task_with_past_due_date(self, test_client):
        task = _create(test_client, due_date="2020-01-01")
        assert task["due_date"].startswith("2020-01-01")
        assert task["urgency_score"] == 5
        assert task["risk_score"] == 4

    def test_timestamps_carry_utc_offset(self, test_client):
        task = _create(test_client, due_date="2026-03-01T09:30:00-05:00")

        assert task["due_date"] == "2026-03-01T14:30:00+00:00"
        assert task["created_at"].endswith("+00:00")
        assert task["updated_at"].endswith("+00:00")

        listed = test_client.get("/tasks").json()["tasks"][0]
        assert listed["due_date"] == "2026-03-01T14:30:00+00:00"

    def test_create_task_with_score_override(self, test_client):
        task = _create(test_client, priority=1, leverage_score=1)
        assert task["leverage_score"] == 1

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"title": ""},
            {"title": "   "},
            {"title": "x", "bucket": "someday"},
            {"title": "x", "priority": 0},
            {"title": "x", "priority": 6},
            {"title": "x", "due_date": "not a date"},
            {"title": "x", "estimated_minutes": -5},
        ],
    )
    def test_create_task_validation(self, test_client, body):
        response = test_client.post("/tasks", json=body)
        assert response.status_code == 422

    def test_get_task(self, test_client):
        created = _create(test_client, title="Lookup")
        response = test_client.get(f"/tasks/{created['id']}")
        assert response.status_code == 200
        task = response.json()["task"]
        assert task["title"] == "Lookup"
        assert task["score"] == created["score"]

    def test_get_task_not_found(self, test_client):
        response = test_client.get("/tasks/nonexistent-id")
        assert response.status_code == 404

    def test_list_tasks_empty(self, test_client):
        response = test_client.get("/tasks")
        assert response.status_code == 200
        assert response.json() == {"tasks": [], "count": 0}

    def test_list_tasks_default_order(self, test_client):
        _create(test_client, title="later p1", bucket="later", priority=1)
        _create(test_client, title="today p5", bucket="today", priority=5)
        _create(test_client, title="backlog p1", bucket="backlog", priority=1)
        _create(test_client, title="this_week p2", bucket="this_week", priority=2)

        response = test_client.get("/tasks")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 4
        assert [task["title"] for task in data["tasks"]] == [
            "today p5",
            "this_week p2",
            "later p1",
            "backlog p1",
        ]
        assert all("score" in task for task in data["tasks"])

    def test_list_tasks_done_last(self, test_client):
        done = _create(test_client, title="done", bucket="today", priority=1)
        _create(test_client, title="open", bucket="backlog", priority=5)
        test_client.patch(f"/tasks/{done['id']}/complete")

        titles = [task["title"] for task in test_client.get("/tasks").json()["tasks"]]
        assert titles == ["open", "done"]

    def test_list_tasks_score_order(self, test_client):
        _create(test_client, title="quiet", bucket="today", priority=5)
        _create(test_client, title="overdue", bucket="later", priority=1, due_date="2020-01-01")

        default_titles = [t["title"] for t in test_client.get("/tasks").json()["tasks"]]
        score_titles = [t["title"] for t in test_client.get("/tasks", params={"order": "score"}).json()["tasks"]]

        assert default_titles == ["quiet", "overdue"]
        assert score_titles == ["overdue", "quiet"]

    def test_list_tasks_invalid_order(self, test_client):
        response = test_client.get("/tasks", params={"order": "alphabetical"})
        assert response.status_code == 422

    def test_next_task(self, test_client):
        _create(test_client, title="meh", priority=4)
        _create(test_client, title="best", priority=1, due_date="2020-01-01")

        response = test_client.get("/tasks/next")
        assert response.status_code == 200
        assert response.json()["task"]["title"] == "best"

    def test_next_task_none_open(self, test_client):
        assert test_client.get("/tasks/next").status_code == 404

        created = _create(test_client)
        test_client.patch(f"/tasks/{created['id']}/complete")
        assert test_client.get("/tasks/next").status_code == 404

    def test_update_task(self, test_client):
        created = _create(test_client, title="Original", description="old")

        response = test_client.patch(
            f"/tasks/{created['id']}",
            json={"title": "Updated", "status": "doing", "bucket": "today", "priority": 2},
        )
        assert response.status_code == 200
        task = response.json()["task"]
        assert task["title"] == "Updated"
        assert task["status"] == "doing"
        assert task["bucket"] == "today"
        assert task["priority"] == 2
        assert task["description"] == "old"
        assert task["urgency_score"] == 3

    def test_update_clears_optional_field_with_null(self, test_client):
        created = _create(test_client, description="call the bank", due_date="2030-01-01", friction_score=5)

        response = test_client.patch(
            f"/tasks/{created['id']}",
            json={"description": None, "due_date": None, "friction_score": None},
        )
        assert response.status_code == 200
        task = response.json()["task"]
        assert task["description"] is None
        assert task["due_date"] is None
        # back to inferred friction
        assert task["friction_score"] == 2

    @pytest.mark.parametrize(
        "body",
        [
            {"title": None},
            {"title": ""},
            {"status": "archived"},
            {"status": None},
            {"bucket": "someday"},
            {"priority": 9},
            {"due_date": "not a date"},
        ],
    )
    def test_update_validation(self, test_client, body):
        created = _create(test_client)
        response = test_client.patch(f"/tasks/{created['id']}", json=body)
        assert response.status_code == 422

    def test_update_empty_body_refreshes_updated_at_only(self, test_client):
        created = _create(test_client, title="Same")
        response = test_client.patch(f"/tasks/{created['id']}", json={})
        assert response.status_code == 200
        task = response.json()["task"]
        assert task["title"] == "Same"
        assert datetime.fromisoformat(task["updated_at"]) >= datetime.fromisoformat(created["updated_at"])

    def test_update_task_not_found(self, test_client):
        response = test_client.patch("/tasks/nonexistent-id", json={"title": "x"})
        assert response.status_code == 404

    def test_complete_task(self, test_client):
        created = _create(test_client)
        response = test_client.patch(f"/tasks/{created['id']}/complete")
        assert response.status_code == 200
        assert response.json()["task"]["status"] == "done"

        fetched = test_client.get(f"/tasks/{created['id']}").json()["task"]
        assert fetched["status"] == "done"

    def test_complete_task_not_found(self, test_client):
        assert test_client.patch("/tasks/nonexistent-id/complete").status_code == 404

    def test_delete_task(self, test_client):
        created = _create(test_client)

        response = test_client.delete(f"/tasks/{created['id']}")
        assert response.status_code == 204
        assert test_client.get(f"/tasks/{created['id']}").status_code == 404
        assert test_client.delete(f"/tasks/{created['id']}").status_code == 404


class TestChatEndpoint:
    """POST /chat."""

    def test_chat_returns_advice(self, test_client, fake_ai_client):
        _create(test_client, title="low", priority=5)
        _create(test_client, title="high", priority=1, due_date="2020-01-01")
        fake_ai_client.prioritization_advice.return_value = "Do the overdue one first."

        response = test_client.post("/chat", json={"prompt": "What now?"})

        assert response.status_code == 200
        assert response.json() == {"response": "Do the overdue one first."}

        prompt, context = fake_ai_client.prioritization_advice.call_args[0]
        assert prompt == "What now?"
        assert [task["title"] for task in context] == ["high", "low"]
        assert all("score" in task for task in context)

    def test_chat_context_timestamps_are_utc(self, test_client, fake_ai_client):
        _create(test_client, title="dated", due_date="2026-03-01")

        test_client.post("/chat", json={"prompt": "When is it due?"})

        _, context = fake_ai_client.prioritization_advice.call_args[0]
        assert context[0]["due_date"] == "2026-03-01T00:00:00+00:00"
        assert context[0]["created_at"].endswith("+00:00")

    def test_chat_context_is_limited(self, test_client, task_repository, make_task, now, fake_ai_client):
        for minutes in range(CHAT_CONTEXT_TASK_LIMIT + 5):
            task_repository.create(make_task(title=f"T{minutes}", created_at=now + timedelta(minutes=minutes)))

        response = test_client.post("/chat", json={"prompt": "Plan my day"})
        assert response.status_code == 200

        _, context = fake_ai_client.prioritization_advice.call_args[0]
        titles = {task["title"] for task in context}
        assert len(context) == CHAT_CONTEXT_TASK_LIMIT
        # oldest five are left out
        assert not titles & {f"T{minutes}" for minutes in range(5)}

    def test_chat_not_configured(self, test_client, fake_ai_client):
        fake_ai_client.is_configured = False
        response = test_client.post("/chat", json={"prompt": "What now?"})
        assert response.status_code == 503
        fake_ai_client.prioritization_advice.assert_not_called()

    def test_chat_api_failure(self, test_client, fake_ai_client):
        fake_ai_client.prioritization_advice.side_effect = AIRequestError("OpenAI request failed (500)", 500)
        response = test_client.post("/chat", json={"prompt": "What now?"})
        assert response.status_code == 502

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}])
    def test_chat_requires_prompt(self, test_client, body):
        assert test_client.post("/chat", json=body).status_code == 422


class TestBrainDumpEndpoint:
    """POST /brain-dump."""

    def test_brain_dump_creates_tasks(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.return_value = [
            {"title": "Call bank", "description": "call about loan"},
            {"title": "Pay quarterly taxes", "bucket": "this_week", "priority": 1, "due_date": "2020-01-01"},
        ]

        response = test_client.post("/brain-dump", json={"text": "call bank about loan, taxes are overdue"})

        assert response.status_code == 201
        data = response.json()
        assert data["count"] == 2
        call_bank, taxes = data["tasks"]

        assert call_bank["title"] == "Call bank"
        assert call_bank["status"] == "open"
        assert call_bank["bucket"] == "today"
        assert call_bank["priority"] == 3
        assert call_bank["area"] == "General"
        assert call_bank["leverage_score"] == 3
        assert call_bank["urgency_score"] == 3
        assert call_bank["friction_score"] == 1

        assert taxes["bucket"] == "this_week"
        assert taxes["urgency_score"] == 5

        stored = test_client.get("/tasks").json()
        assert stored["count"] == 2

    def test_brain_dump_scores_match_manual_create(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.return_value = [{"title": "Call bank", "description": "call about loan"}]
        from_dump = test_client.post("/brain-dump", json={"text": "call bank"}).json()["tasks"][0]
        manual = _create(test_client, title="Call bank", description="call about loan",
                         bucket="today", area="General")

        for field in ("leverage_score", "urgency_score", "risk_score", "friction_score", "score"):
            assert from_dump[field] == manual[field]

    def test_brain_dump_passes_defaults_to_model(self, test_client, fake_ai_client):
        test_client.post(
            "/brain-dump",
            json={"text": "stuff", "default_bucket": "backlog", "default_area": "Studio"},
        )
        text, default_bucket, default_area = fake_ai_client.extract_tasks.call_args[0]
        assert text == "stuff"
        assert default_bucket == TaskBucket.BACKLOG
        assert default_area == "Studio"

    def test_brain_dump_unknown_default_bucket_falls_back_to_today(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.return_value = [{"title": "x"}]
        response = test_client.post("/brain-dump", json={"text": "x", "default_bucket": "someday"})
        assert response.status_code == 201
        assert response.json()["tasks"][0]["bucket"] == "today"
        assert fake_ai_client.extract_tasks.call_args[0][1] == TaskBucket.TODAY

    def test_brain_dump_skips_candidates_without_title(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.return_value = [
            {"title": ""},
            {"description": "no title at all"},
            "not an object",
            {"title": "Keep me", "bucket": "nonsense", "priority": "99"},
        ]

        response = test_client.post("/brain-dump", json={"text": "mixed"})

        assert response.status_code == 201
        data = response.json()
        assert data["count"] == 1
        task = data["tasks"][0]
        assert task["title"] == "Keep me"
        assert task["bucket"] == "today"
        assert task["priority"] == 5

    def test_brain_dump_no_tasks(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.return_value = []
        response = test_client.post("/brain-dump", json={"text": "just thinking out loud"})
        assert response.status_code == 201
        assert response.json() == {"tasks": [], "count": 0}

    def test_brain_dump_preserves_candidate_order(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.return_value = [
            {"title": "First", "bucket": "backlog"},
            {"title": "Second", "bucket": "today", "priority": 1},
        ]
        response = test_client.post("/brain-dump", json={"text": "two things"})
        assert [task["title"] for task in response.json()["tasks"]] == ["First", "Second"]

    def test_brain_dump_parse_error(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.side_effect = AIResponseParseError(
            "Failed to parse AI response", raw="not json"
        )

        response = test_client.post("/brain-dump", json={"text": "something"})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["raw"] == "not json"
        assert test_client.get("/tasks").json()["count"] == 0

    def test_brain_dump_api_failure(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.side_effect = AIRequestError("OpenAI request failed (429)", 429)
        response = test_client.post("/brain-dump", json={"text": "something"})
        assert response.status_code == 502

    def test_brain_dump_not_configured(self, test_client, fake_ai_client):
        fake_ai_client.is_configured = False
        response = test_client.post("/brain-dump", json={"text": "something"})
        assert response.status_code == 503
        fake_ai_client.extract_tasks.assert_not_called()

    def test_brain_dump_client_reports_not_configured(self, test_client, fake_ai_client):
        fake_ai_client.extract_tasks.side_effect = AINotConfiguredError("OPENAI_API_KEY not configured")
        response = test_client.post("/brain-dump", json={"text": "something"})
        assert response.status_code == 503

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"text": ""},
            {"text": "   "},
            {"text": "x" * 4001},
        ],
    )
    def test_brain_dump_validation(self, test_client, fake_ai_client, body):
        response = test_client.post("/brain-dump", json=body)
        assert response.status_code == 422
        fake_ai_client.extract_tasks.assert_not_called()


class TestHealthEndpoint:

    def test_health(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"]
        assert data["uptime_seconds"] >= 0
        assert datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
