"""
tests/unit/test_api.py — Unit tests for api.py

Uses FastAPI's TestClient without entering the lifespan, so the background
poller never starts. The fetcher, summarizer and poller are patched.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient

import api
from tools.fetch import FetchError, FetchResult
from watcher.history import History
from watcher.poller import Poller
from watcher.state import SubjectChange, SummaryRecord, UNPARSEABLE_SUMMARY
from watcher.summarizer import SummarizeError


# ── Fixtures ──────────────────────────────────────────────────────────────────

URL = "https://school.example.com/weekly-assignments/"


@pytest.fixture
def client():
    return TestClient(api.app)


@pytest.fixture
def summarizer():
    mock = MagicMock()
    mock.summarize.return_value = SummaryRecord(
        has_changes=True,
        summary="Math homework added",
        subjects=[SubjectChange(name="Math", changes=["New worksheet due Friday"])],
    )
    with patch("api.get_summarizer", return_value=mock):
        yield mock


@pytest.fixture
def poller():
    pages = iter(["Math: p. 12", "Math: p. 14"])
    summarizer = MagicMock()
    summarizer.summarize.return_value = SummaryRecord(has_changes=True, summary="Math page changed")
    instance = Poller(
        fetch=lambda: FetchResult(url=URL, content=next(pages), success=True, source="direct", error=None),
        summarizer=summarizer,
        history=History(cap=20),
        save_traces=False,
    )
    with patch("api.get_poller", return_value=instance):
        yield instance


# ── /health ───────────────────────────────────────────────────────────────────

class TestHealth:
    def test_ok(self, client, poller):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["polling"] is False
        assert "target_url" in body


# ── GET /api/assignments ──────────────────────────────────────────────────────

class TestAssignments:
    @patch("api.fetch_or_raise")
    def test_success(self, mock_fetch, client):
        mock_fetch.return_value = FetchResult(
            url=URL, content="Math: p. 12", success=True, source="reader", error=None,
            fetched_at="2026-10-17T09:00:00+00:00",
        )

        response = client.get("/api/assignments")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "content": "Math: p. 12",
            "fetchedAt": "2026-10-17T09:00:00+00:00",
        }

    @patch("api.fetch_or_raise", side_effect=FetchError("HTTP 503: Service Unavailable"))
    def test_failure_is_500(self, _, client):
        response = client.get("/api/assignments")
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "HTTP 503: Service Unavailable"}


# ── POST /api/summarize ───────────────────────────────────────────────────────

class TestSummarize:
    def test_success(self, client, summarizer):
        response = client.post("/api/summarize", json={"previousContent": "A", "currentContent": "B"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "hasChanges": True,
            "summary": "Math homework added",
            "subjects": [{"name": "Math", "changes": ["New worksheet due Friday"]}],
        }
        summarizer.summarize.assert_called_once_with("A", "B")

    def test_missing_current_is_400(self, client, summarizer):
        response = client.post("/api/summarize", json={"previousContent": "A"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing content"}
        summarizer.summarize.assert_not_called()

    def test_missing_previous_is_400(self, client, summarizer):
        response = client.post("/api/summarize", json={"currentContent": "B"})
        assert response.status_code == 400

    def test_empty_string_is_400(self, client, summarizer):
        response = client.post("/api/summarize", json={"previousContent": "", "currentContent": "B"})
        assert response.status_code == 400

    def test_empty_body_is_400(self, client, summarizer):
        response = client.post("/api/summarize", json={})
        assert response.status_code == 400

    def test_no_body_is_400(self, client, summarizer):
        response = client.post("/api/summarize")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing content"}
        summarizer.summarize.assert_not_called()

    def test_non_string_field_is_400(self, client, summarizer):
        response = client.post("/api/summarize", json={"previousContent": 1, "currentContent": "B"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing content"}
        summarizer.summarize.assert_not_called()

    def test_malformed_json_is_400(self, client, summarizer):
        response = client.post(
            "/api/summarize",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing content"}

    def test_non_object_json_is_400(self, client, summarizer):
        response = client.post("/api/summarize", json=["A", "B"])
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing content"}

    def test_unparseable_answer_is_200(self, client, summarizer):
        summarizer.summarize.return_value = SummaryRecord.unparseable()

        response = client.post("/api/summarize", json={"previousContent": "A", "currentContent": "B"})

        assert response.status_code == 200
        body = response.json()
        assert body["hasChanges"] is False
        assert body["summary"] == UNPARSEABLE_SUMMARY
        assert body["subjects"] == []

    def test_model_failure_is_500(self, client, summarizer):
        summarizer.summarize.side_effect = SummarizeError("AuthenticationError: invalid key")

        response = client.post("/api/summarize", json={"previousContent": "A", "currentContent": "B"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert "invalid key" in body["error"]


# ── GET /api/history and POST /api/check ──────────────────────────────────────

class TestFeed:
    def test_empty_history(self, client, poller):
        response = client.get("/api/history")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["updates"] == []
        assert body["totalUpdates"] == 0
        assert body["lastChecked"] is None

    def test_check_then_history(self, client, poller):
        first = client.post("/api/check").json()
        second = client.post("/api/check").json()

        assert first["outcome"] == "first_run"
        assert second["outcome"] == "changed"
        assert second["recorded"]["summary"] == "Math page changed"

        body = client.get("/api/history").json()
        assert [u["summary"] for u in body["updates"]] == [
            "Math page changed",
            "Monitoring started. You'll see updates here when the page changes.",
        ]
        assert body["totalUpdates"] == 1
        assert body["cycles"] == 2
        assert body["lastChecked"] is not None
        assert body["lastUpdated"] == body["updates"][0]["timestamp"]
