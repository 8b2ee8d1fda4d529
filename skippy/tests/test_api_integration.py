"""Integration tests for the FastAPI endpoints.

Uses TestClient against an in-memory database handed to the app before startup.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from skippy.db import Database


@pytest.fixture()
def test_db():
    """In-memory SQLite shared across connections via StaticPool."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    database = Database(engine=engine)
    yield database
    database.dispose()


@pytest.fixture()
def client(test_db):
    from skippy.app import app

    app.state.database = test_db
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    app.state.database = None


@pytest.fixture()
def screened_client(client):
    """Client with one investor already mid-screening at score -5."""
    resp = client.post("/api/investors/inv_1/screen", json={
        "response": "market conditions", "category": "pattern_recognition",
    })
    assert resp.status_code == 200
    return client


class TestEvaluateEndpoint:
    def test_evaluate(self, client):
        resp = client.post("/api/evaluate", json={
            "response": "what's your TAM and how does this scale", "category": "general",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["score_change"] == -8
        assert data["new_score"] == -8
        assert data["verdict"] == "continue"
        assert data["signals"] == ["tam", "scale_how"]

    def test_evaluate_with_score(self, client):
        resp = client.post("/api/evaluate", json={
            "response": "african renaissance", "category": "bottega_test", "current_score": 3,
        })
        assert resp.json()["qualified"] is True

    def test_unknown_category(self, client):
        resp = client.post("/api/evaluate", json={"response": "hi", "category": "vibes"})
        assert resp.status_code == 422


class TestScreenEndpoint:
    def test_screen(self, screened_client):
        resp = screened_client.get("/api/investors/inv_1")
        assert resp.status_code == 200
        data = resp.json()
        assert data["qualification_score"] == -5
        assert data["status"] == "screening"
        assert data["total_interactions"] == 1

    def test_screen_to_rejection_then_closed(self, screened_client):
        resp = screened_client.post("/api/investors/inv_1/screen", json={
            "response": "How is this different from Techstars?", "category": "general",
        })
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        resp = screened_client.post("/api/investors/inv_1/screen", json={
            "response": "wait, consciousness!", "category": "pattern_recognition",
        })
        assert resp.status_code == 409

    def test_get_unknown_investor(self, client):
        assert client.get("/api/investors/nobody").status_code == 404


class TestInvestorEndpoints:
    def test_log_interaction(self, client):
        resp = client.post("/api/investors/inv_2/interactions", json={
            "interaction_type": "initial_contact", "message": "Hi Skippy",
        })
        assert resp.status_code == 201
        assert resp.json()["interaction_id"] >= 1

    def test_log_interaction_bad_type(self, client):
        resp = client.post("/api/investors/inv_2/interactions", json={"interaction_type": "gossip"})
        assert resp.status_code == 422

    def test_update_status(self, screened_client):
        resp = screened_client.put("/api/investors/inv_1/status", json={
            "status": "rejected", "qualification_score": -12, "rejection_reason": "Asked about CAC/LTV",
        })
        assert resp.status_code == 200
        assert resp.json()["rejection_reason"] == "Asked about CAC/LTV"

    def test_update_status_contradiction(self, screened_client):
        resp = screened_client.put("/api/investors/inv_1/status", json={
            "status": "qualified", "qualification_score": 2,
        })
        assert resp.status_code == 409

    def test_update_status_unknown_investor(self, client):
        resp = client.put("/api/investors/nobody/status", json={"status": "screening"})
        assert resp.status_code == 404

    def test_store_email_requires_qualification(self, screened_client):
        resp = screened_client.post("/api/investors/inv_1/email", json={"email": "vc@fund.com"})
        assert resp.status_code == 409

    def test_store_email(self, client):
        client.post("/api/investors/inv_3/screen", json={
            "response": "the european swallow, a renaissance master", "category": "bottega_test",
        })
        resp = client.post("/api/investors/inv_3/email", json={"email": "vc@fund.com"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "founder_contact"
        assert client.get("/api/investors/inv_3").json()["status"] == "founder_contact"

    def test_store_email_invalid(self, client):
        resp = client.post("/api/investors/inv_3/email", json={"email": "not-an-email"})
        assert resp.status_code == 422


class TestMemeEndpoint:
    def test_meme(self, client):
        resp = client.post("/api/memes", json={"situation": "getting_angry", "stupidity_level": 6})
        assert resp.status_code == 200
        data = resp.json()
        assert data["meme_format"] == "Classic troll face"
        assert data["meme_power"] == 12

    def test_meme_level_out_of_range(self, client):
        resp = client.post("/api/memes", json={"situation": "getting_angry", "stupidity_level": 11})
        assert resp.status_code == 422

    def test_meme_unknown_situation(self, client):
        resp = client.post("/api/memes", json={"situation": "nap_time", "stupidity_level": 3})
        assert resp.status_code == 422

    def test_meme_recorded(self, client):
        client.post("/api/memes", json={
            "situation": "final_rejection", "stupidity_level": 10, "investor_id": "inv_4",
        })
        stats = client.get("/api/stats").json()
        assert stats["memes_deployed"] == {"Woman yelling at cat + Coffin dance + Gen Z roast": 1}


class TestStatsEndpoints:
    def test_stats(self, screened_client):
        resp = screened_client.get("/api/stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["daily_stats"]["total_interactions"] == 1
        assert data["weekly_stats"]["total_interactions"] == 1
        assert data["top_rejection_reasons"] == []

    def test_stats_for_other_day(self, screened_client):
        data = screened_client.get("/api/stats", params={"day": "2001-01-01"}).json()
        assert data["daily_stats"]["date"] == "2001-01-01"
        assert data["daily_stats"]["total_interactions"] == 0

    def test_report(self, screened_client):
        resp = screened_client.get("/api/report")
        assert resp.status_code == 200
        assert resp.json()["summary"]["total_investors_screened"] == 1


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
