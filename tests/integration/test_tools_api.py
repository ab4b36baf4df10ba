"""
Integration Tests for the tool API.

Drives the FastAPI app through TestClient with a temp-file store and a
deterministic oracle:
1. Card tools create, list, update and delete cards
2. get_due_card / submit_review run the review loop
3. Engine errors map to HTTP status codes
4. Resources report tags and due date progress
"""

import pytest
from fastapi.testclient import TestClient

from flashcards.api import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def create(client, front="Q", back="A", tags=None) -> dict:
    response = client.post("/tools/create_card", json={"front": front, "back": back, "tags": tags or []})
    assert response.status_code == 200, response.text
    return response.json()["card"]


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "flashcards"

    def test_health_reports_stats(self, client):
        create(client)
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["stats"]["total_cards"] == 1


class TestCardTools:
    def test_create_card(self, client):
        card = create(client, "What is DNA?", "Deoxyribonucleic acid", ["bio"])
        assert card["front"] == "What is DNA?"
        assert card["tags"] == ["bio"]
        assert card["fsrs"]["state"] == 0

    def test_create_card_requires_text(self, client):
        response = client.post("/tools/create_card", json={"front": "", "back": "A"})
        assert response.status_code == 422
        assert "error" in response.json()

    def test_update_card(self, client):
        card = create(client, tags=["bio"])
        response = client.post("/tools/update_card", json={"card_id": card["id"], "front": "Q2"})

        body = response.json()
        assert body["success"] is True
        assert body["card"]["front"] == "Q2"
        assert body["card"]["tags"] == ["bio"]

    def test_delete_card_then_not_found(self, client):
        card = create(client)

        response = client.post("/tools/delete_card", json={"card_id": card["id"]})
        assert response.json()["success"] is True

        response = client.post("/tools/get_card_reviews", json={"card_id": card["id"]})
        assert response.status_code == 404
        assert "card not found" in response.json()["error"]

    def test_list_cards_or_filter_with_stats(self, client):
        create(client, "1", tags=["a"])
        create(client, "2", tags=["b"])
        create(client, "3", tags=["c"])

        body = client.post("/tools/list_cards", json={"tags": ["a", "b"], "include_stats": True}).json()

        assert sorted(c["front"] for c in body["cards"]) == ["1", "2"]
        assert body["stats"]["total_cards"] == 3

    def test_list_cards_without_body(self, client):
        create(client)
        body = client.post("/tools/list_cards").json()
        assert len(body["cards"]) == 1
        assert "stats" not in body


class TestReviewLoop:
    def test_get_due_card_and_submit_review(self, client):
        card = create(client)

        due = client.post("/tools/get_due_card").json()
        assert due["card"]["id"] == card["id"]
        assert due["stats"]["due_cards"] == 1

        response = client.post(
            "/tools/submit_review",
            json={"card_id": card["id"], "rating": 3, "answer": "something"},
        )
        body = response.json()
        assert body["success"] is True
        assert body["card"]["fsrs"]["reps"] == 1

        reviews = client.post("/tools/get_card_reviews", json={"card_id": card["id"]}).json()["reviews"]
        assert len(reviews) == 1
        assert reviews[0]["answer"] == "something"

    def test_nothing_due_returns_error_with_stats(self, client):
        card = create(client)
        client.post("/tools/submit_review", json={"card_id": card["id"], "rating": 4})

        response = client.post("/tools/get_due_card")

        assert response.status_code == 200
        body = response.json()
        assert body["error"] == "no cards due for review"
        assert body["stats"]["total_cards"] == 1
        assert body["stats"]["due_cards"] == 0

    def test_no_matching_tags_reports_unfiltered_stats(self, client):
        create(client, tags=["a"])
        create(client, tags=["b"])

        body = client.post("/tools/get_due_card", json={"tags": ["a", "b"]}).json()

        assert "no cards found with the specified tags" in body["error"]
        assert body["stats"]["total_cards"] == 2

    @pytest.mark.parametrize("rating", [0, 5, 2.5, True, False, "3"])
    def test_invalid_rating(self, client, rating):
        card = create(client)
        response = client.post("/tools/submit_review", json={"card_id": card["id"], "rating": rating})
        assert response.status_code == 422

        reviews = client.post("/tools/get_card_reviews", json={"card_id": card["id"]}).json()["reviews"]
        assert reviews == []

    def test_unknown_card(self, client):
        response = client.post("/tools/submit_review", json={"card_id": "nope", "rating": 3})
        assert response.status_code == 404

    def test_stats_and_analysis(self, client):
        card = create(client, tags=["net"])
        client.post("/tools/submit_review", json={"card_id": card["id"], "rating": 1})

        stats = client.post("/tools/get_stats").json()
        assert stats["reviews_today"] == 1
        assert stats["retention_rate"] == 0.0

        analysis = client.post("/tools/help_analyze_learning").json()
        assert analysis["low_scoring_cards"][0]["card"]["id"] == card["id"]
        assert analysis["total_reviews"] == 1


class TestManageDueDates:
    def test_full_lifecycle(self, client):
        created = client.post(
            "/tools/manage_due_dates",
            json={"action": "create", "topic": "Biology Exam", "date": "2025-04-01"},
        ).json()
        assert created["tag"] == "test-biology-exam-2025-04-01"

        listed = client.post("/tools/manage_due_dates", json={"action": "list"}).json()
        assert [d["id"] for d in listed] == [created["id"]]

        updated = client.post(
            "/tools/manage_due_dates",
            json={"action": "update", "due_date_id": created["id"], "topic": "Bio Final"},
        ).json()
        assert updated["topic"] == "Bio Final"
        assert updated["tag"] == created["tag"]

        deleted = client.post(
            "/tools/manage_due_dates",
            json={"action": "delete", "due_date_id": created["id"]},
        )
        assert deleted.status_code == 200
        assert client.post("/tools/manage_due_dates", json={"action": "list"}).json() == []

    def test_invalid_action(self, client):
        response = client.post("/tools/manage_due_dates", json={"action": "archive"})
        assert response.status_code == 422
        assert "Invalid action" in response.json()["error"]

    def test_create_requires_date(self, client):
        response = client.post("/tools/manage_due_dates", json={"action": "create", "topic": "Exam"})
        assert response.status_code == 422

    def test_malformed_date(self, client):
        response = client.post(
            "/tools/manage_due_dates",
            json={"action": "create", "topic": "Exam", "date": "April 1st"},
        )
        assert response.status_code == 422

    def test_delete_unknown(self, client):
        response = client.post("/tools/manage_due_dates", json={"action": "delete", "due_date_id": "nope"})
        assert response.status_code == 404


class TestResources:
    def test_available_tags(self, client):
        create(client, tags=["bio", "cells"])
        create(client, tags=["bio"])

        tags = {t["tag"]: t for t in client.get("/resources/available-tags").json()}

        assert tags["bio"]["card_count"] == 2
        assert tags["cells"]["due_count"] == 1

    def test_due_date_progress(self, client):
        client.post(
            "/tools/manage_due_dates",
            json={"action": "create", "topic": "Exam", "date": "2025-03-20", "tag": "bio"},
        )
        cards = [create(client, f"Q{i}", tags=["bio"]) for i in range(3)]
        client.post("/tools/submit_review", json={"card_id": cards[0]["id"], "rating": 4})

        [info] = client.get("/resources/due-date-progress").json()
        assert info["mastered_cards"] == 1
        assert info["total_cards"] == 3

        progress = client.get("/resources/due-date-progress/bio").json()
        assert progress["progress_percent"] == pytest.approx(100 / 3)
