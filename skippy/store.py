"""Interaction store: investors, interactions and screening statistics.

Wraps a SQLAlchemy ``Session``.  Methods flush but never commit; the caller
owns the unit of work.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from skippy.models import (
    DailyStat, FounderAlert, Investor, InvestorInteraction, MemeDeployment, QualificationTest,
)
from skippy.qualification import QUALIFY_THRESHOLD, REJECT_THRESHOLD
from skippy.schemas import DailyStatsOut, WeeklyStatsOut
from skippy.utils import day_key, isoformat, json_dump, new_session_id, utcnow

log = logging.getLogger(__name__)

SCREENING = "screening"
REJECTED = "rejected"
QUALIFIED = "qualified"
FOUNDER_CONTACT = "founder_contact"

VALID_STATUSES = (SCREENING, REJECTED, QUALIFIED, FOUNDER_CONTACT)
TERMINAL_STATUSES = (REJECTED, QUALIFIED, FOUNDER_CONTACT)

VALID_INTERACTION_TYPES = (
    "initial_contact", "qualification_question", "meme_deployment",
    "rejection", "qualification_success",
)


class InvestorNotFound(LookupError):
    """No investor with the given id."""


class InvalidScoreState(Exception):
    """An investor's status contradicts its qualification score."""

    def __init__(self, investor_id: str, status: str, score: int):
        super().__init__(
            f"Investor {investor_id!r} cannot be {status!r} with qualification score {score}"
        )
        self.investor_id = investor_id
        self.status = status
        self.score = score


def check_score_state(investor_id: str, status: str, score: int) -> None:
    """Raise InvalidScoreState if *status* is not allowed at *score*."""
    if status in (QUALIFIED, FOUNDER_CONTACT) and score < QUALIFY_THRESHOLD:
        raise InvalidScoreState(investor_id, status, score)
    if status == REJECTED and score > REJECT_THRESHOLD:
        raise InvalidScoreState(investor_id, status, score)


def investor_dict(inv: Investor) -> dict[str, Any]:
    return {
        "id": inv.id, "email": inv.email,
        "qualification_score": inv.qualification_score, "status": inv.status,
        "rejection_reason": inv.rejection_reason,
        "total_interactions": inv.total_interactions,
        "qualified": inv.status in (QUALIFIED, FOUNDER_CONTACT),
        "created_at": isoformat(inv.created_at),
        "updated_at": isoformat(inv.updated_at),
    }


class InteractionStore:
    def __init__(self, session: Session):
        self.session = session

    # -- investors ---------------------------------------------------------

    def find_investor(self, investor_id: str) -> Investor | None:
        return self.session.get(Investor, investor_id)

    def _require(self, investor_id: str) -> Investor:
        inv = self.find_investor(investor_id)
        if inv is None:
            raise InvestorNotFound(f"Investor {investor_id!r} not found")
        return inv

    def get_investor(self, investor_id: str) -> Investor:
        """Load an investor, verifying that its stored status matches its score."""
        inv = self._require(investor_id)
        check_score_state(inv.id, inv.status, inv.qualification_score)
        return inv

    def create_investor_if_absent(
        self, investor_id: str, email: str | None = None, timestamp: datetime | None = None,
    ) -> Investor:
        inv = self.find_investor(investor_id)
        if inv is not None:
            return inv
        now = timestamp or utcnow()
        inv = Investor(
            id=investor_id, email=email, qualification_score=0, status=SCREENING,
            total_interactions=0, first_contact_at=now, created_at=now, updated_at=now,
        )
        self.session.add(inv)
        self.session.flush()
        log.info("New investor %s", investor_id)
        return inv

    def update_investor_status(
        self,
        investor_id: str,
        status: str,
        score: int,
        rejection_reason: str | None = None,
        timestamp: datetime | None = None,
    ) -> Investor:
        if status not in VALID_STATUSES:
            raise ValueError(f"Unknown investor status {status!r}")
        inv = self._require(investor_id)
        check_score_state(investor_id, status, score)
        now = timestamp or utcnow()
        previous = inv.status

        inv.status = status
        inv.qualification_score = score
        inv.rejection_reason = rejection_reason
        if status == QUALIFIED and previous != QUALIFIED:
            inv.qualified_at = now
        inv.updated_at = now

        if status != previous and status in (QUALIFIED, REJECTED):
            stat = self._daily(now)
            if status == QUALIFIED:
                stat.total_qualifications += 1
            else:
                stat.total_rejections += 1
            decided = stat.total_rejections + stat.total_qualifications
            stat.rejection_rate = stat.total_rejections / decided
            stat.updated_at = now
            log.info("Investor %s moved %s -> %s at score %d", investor_id, previous, status, score)
        self.session.flush()
        return inv

    # -- append-only records -----------------------------------------------

    def append_interaction(
        self,
        investor_id: str,
        session_id: str | None,
        interaction_type: str,
        message: str | None = None,
        score_change: int = 0,
        response: str | None = None,
        qualification_data: dict[str, Any] | None = None,
        meme_deployed: str | None = None,
        timestamp: datetime | None = None,
    ) -> int:
        if interaction_type not in VALID_INTERACTION_TYPES:
            raise ValueError(f"Unknown interaction type {interaction_type!r}")
        inv = self._require(investor_id)
        now = timestamp or utcnow()
        interaction = InvestorInteraction(
            investor_id=investor_id,
            session_id=session_id or new_session_id(),
            interaction_type=interaction_type,
            message=message,
            response=response,
            qualification_data_json=json_dump(qualification_data),
            meme_deployed=meme_deployed,
            score_change=score_change,
            created_at=now,
        )
        self.session.add(interaction)
        inv.total_interactions += 1
        inv.last_interaction_at = now
        inv.updated_at = now
        stat = self._daily(now)
        stat.total_interactions += 1
        stat.updated_at = now
        self.session.flush()
        return interaction.id

    def record_qualification_test(
        self, investor_id: str, test_type: str, response: str, score: int,
        analysis: str = "", question: str = "", timestamp: datetime | None = None,
    ) -> QualificationTest:
        self._require(investor_id)
        test = QualificationTest(
            investor_id=investor_id, test_type=test_type, question=question,
            response=response, score=score, analysis=analysis, passed=score > 0,
            created_at=timestamp or utcnow(),
        )
        self.session.add(test)
        self.session.flush()
        return test

    def record_meme_deployment(
        self, investor_id: str, meme_type: str, situation: str, stupidity_level: int,
        effectiveness_score: float | None = None, timestamp: datetime | None = None,
    ) -> MemeDeployment:
        self._require(investor_id)
        now = timestamp or utcnow()
        deployment = MemeDeployment(
            investor_id=investor_id, meme_type=meme_type, situation=situation,
            stupidity_level=stupidity_level, effectiveness_score=effectiveness_score,
            created_at=now,
        )
        self.session.add(deployment)
        stat = self._daily(now)
        stat.memes_deployed += 1
        stat.updated_at = now
        self.session.flush()
        return deployment

    def store_email(self, investor_id: str, email: str, timestamp: datetime | None = None) -> FounderAlert:
        """Attach an email to a qualified investor and raise a founder alert."""
        inv = self._require(investor_id)
        check_score_state(investor_id, FOUNDER_CONTACT, inv.qualification_score)
        now = timestamp or utcnow()
        inv.email = email
        inv.status = FOUNDER_CONTACT
        inv.founder_contacted_at = now
        inv.updated_at = now
        alert = FounderAlert(
            investor_id=investor_id,
            message=f"Qualified investor ready for founder contact: {email}",
            investor_summary_json=json_dump({
                "email": email,
                "qualification_score": inv.qualification_score,
                "total_interactions": inv.total_interactions,
            }),
            created_at=now,
        )
        self.session.add(alert)
        self.session.flush()
        log.info("Founder alert raised for investor %s", investor_id)
        return alert

    # -- statistics --------------------------------------------------------

    def _daily(self, when: datetime | date) -> DailyStat:
        key = day_key(when)
        stat = self.session.get(DailyStat, key)
        if stat is None:
            stat = DailyStat(
                date=key, total_interactions=0, total_rejections=0,
                total_qualifications=0, rejection_rate=0.0, memes_deployed=0,
            )
            self.session.add(stat)
            self.session.flush()
        return stat

    def get_daily_stats(self, day: date | str | None = None) -> DailyStatsOut:
        key = day if isinstance(day, str) else day_key(day)
        stat = self.session.get(DailyStat, key)
        if stat is None:
            return DailyStatsOut(date=key)
        return DailyStatsOut(
            date=key,
            total_interactions=stat.total_interactions,
            rejections=stat.total_rejections,
            qualifications=stat.total_qualifications,
            rejection_rate=stat.rejection_rate,
            memes_deployed=stat.memes_deployed,
        )

    def get_weekly_stats(self, today: date | None = None) -> WeeklyStatsOut:
        since = ((today or utcnow().date()) - timedelta(days=7)).isoformat()
        row = self.session.execute(
            select(
                func.sum(DailyStat.total_interactions),
                func.sum(DailyStat.total_rejections),
                func.sum(DailyStat.total_qualifications),
            ).where(DailyStat.date >= since)
        ).one()
        avg_score = self.session.execute(
            select(func.avg(Investor.qualification_score)).where(Investor.status == QUALIFIED)
        ).scalar()
        return WeeklyStatsOut(
            total_interactions=row[0] or 0,
            rejections=row[1] or 0,
            qualifications=row[2] or 0,
            average_qualification_score=float(avg_score or 0.0),
        )

    def get_top_rejection_reasons(self, limit: int = 5) -> list[tuple[str, int]]:
        count = func.count().label("count")
        rows = self.session.execute(
            select(Investor.rejection_reason, count)
            .where(Investor.rejection_reason.is_not(None))
            .group_by(Investor.rejection_reason)
            .order_by(count.desc(), Investor.rejection_reason)
            .limit(limit)
        ).all()
        return [(reason, n) for reason, n in rows]

    def get_meme_stats(self, limit: int = 5) -> dict[str, int]:
        count = func.count().label("count")
        rows = self.session.execute(
            select(MemeDeployment.meme_type, count)
            .group_by(MemeDeployment.meme_type)
            .order_by(count.desc(), MemeDeployment.meme_type)
            .limit(limit)
        ).all()
        return {meme_type: n for meme_type, n in rows}

    def investor_count(self) -> int:
        return self.session.execute(select(func.count()).select_from(Investor)).scalar() or 0

    def compute_stats(self, today: date | None = None) -> dict[str, Any]:
        today = today or utcnow().date()
        return {
            "daily_stats": self.get_daily_stats(today).model_dump(),
            "weekly_stats": self.get_weekly_stats(today).model_dump(),
            "top_rejection_reasons": [
                {"reason": r, "count": n} for r, n in self.get_top_rejection_reasons()
            ],
            "memes_deployed": self.get_meme_stats(),
        }

    def generate_report(self, day: date | None = None) -> dict[str, Any]:
        """Daily screening report: who got through, who didn't, which meme worked."""
        key = day_key(day)
        daily = self.get_daily_stats(key)
        screened = self.session.execute(
            select(func.count()).select_from(Investor).where(func.date(Investor.created_at) == key)
        ).scalar() or 0
        qualified = self.session.execute(
            select(Investor).where(func.date(Investor.qualified_at) == key)
            .order_by(Investor.qualification_score.desc())
        ).scalars().all()
        rejected = self.session.execute(
            select(Investor.rejection_reason)
            .where(Investor.status == REJECTED, func.date(Investor.updated_at) == key)
            .order_by(Investor.updated_at.desc())
            .limit(3)
        ).scalars().all()
        effectiveness = func.avg(MemeDeployment.effectiveness_score).label("avg_effectiveness")
        best_meme = self.session.execute(
            select(MemeDeployment.meme_type, effectiveness, func.count())
            .where(func.date(MemeDeployment.created_at) == key)
            .group_by(MemeDeployment.meme_type)
            .order_by(effectiveness.desc())
            .limit(1)
        ).first()

        highlights = [reason or "Unspecified" for reason in rejected]
        meme_effectiveness = "N/A"
        if best_meme is not None and best_meme[1] is not None:
            meme_effectiveness = f"{best_meme[1] * 10:.1f}%"
        return {
            "date": key,
            "summary": {
                "total_investors_screened": screened,
                "rejection_rate": f"{daily.rejection_rate * 100:.1f}%",
                "qualified_investors": len(qualified),
                "most_common_failure": highlights[0] if highlights else "None",
                "meme_effectiveness": meme_effectiveness,
            },
            "qualified_investors": [
                {
                    "investor_id": inv.id, "email": inv.email,
                    "qualification_score": inv.qualification_score,
                    "qualified_at": isoformat(inv.qualified_at),
                    "founder_meeting_scheduled": bool(inv.email),
                }
                for inv in qualified
            ],
            "rejection_highlights": highlights,
            "most_effective_meme": best_meme[0] if best_meme is not None else "None",
        }
