"""Tests for the SQLAlchemy-backed interaction store."""
from __future__ import annotations

import json
from datetime import UTC, date, datetime

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from skippy.db import Database
from skippy.models import FounderAlert, InvestorInteraction, QualificationTest
from skippy.store import (
    InteractionStore,
    InvalidScoreState,
    InvestorNotFound,
    check_score_state,
    investor_dict,
)

DAY = datetime(2026, 3, 14, 10, 30, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Fixtures: in-memory SQLite database
# ---------------------------------------------------------------------------

@pytest.fixture()
def database():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = Database(engine=engine)
    yield db
    db.dispose()


@pytest.fixture()
def session(database):
    sess = database.get_session()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture()
def store(session: Session) -> InteractionStore:
    return InteractionStore(session)


@pytest.fixture()
def investor(store):
    return store.create_investor_if_absent("inv_1", "vc@fund.com", timestamp=DAY)


# =========================================================================
# Investors
# =========================================================================

class TestCreateInvestor:
    def test_creates_with_defaults(self, store, investor):
        assert investor.id == "inv_1"
        assert investor.email == "vc@fund.com"
        assert investor.status == "screening"
        assert investor.qualification_score == 0
        assert investor.total_interactions == 0

    def test_idempotent(self, store, investor):
        again = store.create_investor_if_absent("inv_1", "other@fund.com")
        assert again is investor
        assert again.email == "vc@fund.com"
        assert store.investor_count() == 1

    def test_get_unknown(self, store):
        with pytest.raises(InvestorNotFound):
            store.get_investor("nobody")

    def test_investor_dict(self, investor):
        d = investor_dict(investor)
        assert d["id"] == "inv_1"
        assert d["qualified"] is False
        assert d["created_at"].startswith("2026-03-14")

    def test_investor_dict_timestamps_share_utc_offset(self, store, session, investor):
        session.commit()
        session.expire_all()
        inv = store.update_investor_status("inv_1", "screening", 2, timestamp=DAY)
        d = investor_dict(inv)
        assert d["created_at"] == "2026-03-14T10:30:00+00:00"
        assert d["updated_at"] == "2026-03-14T10:30:00+00:00"


# =========================================================================
# Score/status invariant
# =========================================================================

class TestScoreState:
    @pytest.mark.parametrize("status, score", [
        ("qualified", 7), ("qualified", 12), ("founder_contact", 9),
        ("rejected", -10), ("rejected", -25),
        ("screening", 50), ("screening", -50),
    ])
    def test_allowed(self, status, score):
        check_score_state("x", status, score)

    @pytest.mark.parametrize("status, score", [
        ("qualified", 6), ("founder_contact", 0), ("rejected", -9), ("rejected", 3),
    ])
    def test_contradictions(self, status, score):
        with pytest.raises(InvalidScoreState):
            check_score_state("x", status, score)

    def test_update_refuses_contradiction(self, store, investor):
        with pytest.raises(InvalidScoreState, match="cannot be 'qualified'"):
            store.update_investor_status("inv_1", "qualified", 3)
        assert investor.status == "screening"

    def test_read_surfaces_contradiction(self, store, investor, session):
        investor.status = "rejected"
        investor.qualification_score = 4
        session.flush()
        with pytest.raises(InvalidScoreState):
            store.get_investor("inv_1")

    def test_unknown_status(self, store, investor):
        with pytest.raises(ValueError, match="Unknown investor status"):
            store.update_investor_status("inv_1", "ghosted", 0)

    def test_update_unknown_investor(self, store):
        with pytest.raises(InvestorNotFound):
            store.update_investor_status("nobody", "screening", 0)


# =========================================================================
# Interactions
# =========================================================================

class TestAppendInteraction:
    def test_append(self, store, investor, session):
        interaction_id = store.append_interaction(
            "inv_1", "session_1", "qualification_question",
            message="Why do startups fail?", response="funding", score_change=-5,
            qualification_data={"category": "pattern_recognition"}, timestamp=DAY,
        )
        row = session.get(InvestorInteraction, interaction_id)
        assert row.session_id == "session_1"
        assert row.score_change == -5
        assert json.loads(row.qualification_data_json) == {"category": "pattern_recognition"}
        assert investor.total_interactions == 1
        assert store.get_daily_stats(date(2026, 3, 14)).total_interactions == 1

    def test_generates_session_id(self, store, investor, session):
        interaction_id = store.append_interaction("inv_1", None, "initial_contact")
        assert session.get(InvestorInteraction, interaction_id).session_id.startswith("session_")

    def test_unknown_type(self, store, investor):
        with pytest.raises(ValueError, match="Unknown interaction type"):
            store.append_interaction("inv_1", None, "small_talk")

    def test_unknown_investor(self, store):
        with pytest.raises(InvestorNotFound):
            store.append_interaction("nobody", None, "initial_contact")

    def test_qualification_test(self, store, investor, session):
        store.record_qualification_test("inv_1", "bottega_test", "python!", 2, analysis="meh")
        test = session.execute(select(QualificationTest)).scalars().one()
        assert test.passed is True
        assert test.test_type == "bottega_test"


# =========================================================================
# Status transitions & daily stats
# =========================================================================

class TestStatusUpdates:
    def test_qualify_sets_timestamp_and_counts(self, store, investor):
        store.update_investor_status("inv_1", "qualified", 9, timestamp=DAY)
        assert investor.qualified_at is not None
        stats = store.get_daily_stats("2026-03-14")
        assert stats.qualifications == 1
        assert stats.rejections == 0
        assert stats.rejection_rate == 0.0

    def test_reject_counts_once(self, store, investor):
        store.update_investor_status("inv_1", "rejected", -12, "TAM question", timestamp=DAY)
        store.update_investor_status("inv_1", "rejected", -20, "TAM question", timestamp=DAY)
        stats = store.get_daily_stats("2026-03-14")
        assert stats.rejections == 1
        assert stats.rejection_rate == 1.0

    def test_rejection_rate(self, store):
        for i, (status, score) in enumerate([("rejected", -10), ("rejected", -11), ("qualified", 8)]):
            store.create_investor_if_absent(f"inv_{i}")
            store.update_investor_status(f"inv_{i}", status, score, timestamp=DAY)
        stats = store.get_daily_stats("2026-03-14")
        assert stats.rejection_rate == pytest.approx(2 / 3)

    def test_empty_day(self, store):
        stats = store.get_daily_stats("2020-01-01")
        assert stats.total_interactions == 0
        assert stats.rejection_rate == 0.0

    def test_top_rejection_reasons(self, store):
        reasons = ["asked about TAM", "asked about TAM", "compared to YC", "asked about TAM", "compared to YC", "moat"]
        for i, reason in enumerate(reasons):
            store.create_investor_if_absent(f"inv_{i}")
            store.update_investor_status(f"inv_{i}", "rejected", -10, reason)
        assert store.get_top_rejection_reasons(2) == [("asked about TAM", 3), ("compared to YC", 2)]

    def test_weekly_stats(self, store, investor):
        store.append_interaction("inv_1", None, "initial_contact", timestamp=DAY)
        store.update_investor_status("inv_1", "qualified", 10, timestamp=DAY)
        weekly = store.get_weekly_stats(today=date(2026, 3, 16))
        assert weekly.total_interactions == 1
        assert weekly.qualifications == 1
        assert weekly.average_qualification_score == 10.0
        assert store.get_weekly_stats(today=date(2026, 4, 30)).total_interactions == 0


# =========================================================================
# Founder contact & memes
# =========================================================================

class TestStoreEmail:
    def test_requires_qualification(self, store, investor):
        with pytest.raises(InvalidScoreState):
            store.store_email("inv_1", "vc@fund.com")

    def test_creates_alert(self, store, investor, session):
        store.update_investor_status("inv_1", "qualified", 8)
        alert = store.store_email("inv_1", "smart@fund.com")
        assert investor.status == "founder_contact"
        assert investor.founder_contacted_at is not None
        assert "smart@fund.com" in alert.message
        summary = json.loads(session.get(FounderAlert, alert.id).investor_summary_json)
        assert summary["qualification_score"] == 8


class TestMemeStats:
    def test_counts(self, store, investor):
        store.record_meme_deployment("inv_1", "This is Fine", "pattern_blind_response", 3, timestamp=DAY)
        store.record_meme_deployment("inv_1", "This is Fine", "pattern_blind_response", 4, timestamp=DAY)
        store.record_meme_deployment("inv_1", "Classic troll face", "getting_angry", 6, timestamp=DAY)
        assert store.get_meme_stats() == {"This is Fine": 2, "Classic troll face": 1}
        assert store.get_daily_stats("2026-03-14").memes_deployed == 3


# =========================================================================
# Report
# =========================================================================

class TestReport:
    def test_report(self, store):
        store.create_investor_if_absent("good", timestamp=DAY)
        store.create_investor_if_absent("bad", timestamp=DAY)
        store.update_investor_status("good", "qualified", 9, timestamp=DAY)
        store.update_investor_status("bad", "rejected", -14, "asked about TAM", timestamp=DAY)
        store.record_meme_deployment("bad", "Coffin dance", "final_rejection", 9, 8.0, timestamp=DAY)

        report = store.generate_report(date(2026, 3, 14))
        assert report["date"] == "2026-03-14"
        assert report["summary"]["total_investors_screened"] == 2
        assert report["summary"]["qualified_investors"] == 1
        assert report["summary"]["rejection_rate"] == "50.0%"
        assert report["summary"]["most_common_failure"] == "asked about TAM"
        assert report["summary"]["meme_effectiveness"] == "80.0%"
        assert report["qualified_investors"][0]["investor_id"] == "good"
        assert report["most_effective_meme"] == "Coffin dance"

    def test_empty_report(self, store):
        report = store.generate_report(date(2020, 1, 1))
        assert report["summary"]["total_investors_screened"] == 0
        assert report["summary"]["meme_effectiveness"] == "N/A"
        assert report["rejection_highlights"] == []
        assert report["most_effective_meme"] == "None"


class TestDatabase:
    def test_session_scope_rollback(self, database):
        with pytest.raises(RuntimeError):
            with database.session_scope() as sess:
                InteractionStore(sess).create_investor_if_absent("temp")
                raise RuntimeError("boom")
        with database.session_scope() as sess:
            assert InteractionStore(sess).find_investor("temp") is None

    def test_ping(self, database):
        assert database.ping() is True
