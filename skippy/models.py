from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Investor(Base):
    __tablename__ = "investors"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(300), nullable=True)
    qualification_score: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(30), default="screening")  # screening | rejected | qualified | founder_contact
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_interactions: Mapped[int] = mapped_column(Integer, default=0)
    session_data_json: Mapped[str] = mapped_column(Text, default="{}")
    first_contact_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_interaction_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    qualified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    founder_contacted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    interactions: Mapped[list[InvestorInteraction]] = relationship(
        "InvestorInteraction", back_populates="investor", cascade="all, delete-orphan",
    )
    tests: Mapped[list[QualificationTest]] = relationship(
        "QualificationTest", back_populates="investor", cascade="all, delete-orphan",
    )
    memes: Mapped[list[MemeDeployment]] = relationship(
        "MemeDeployment", back_populates="investor", cascade="all, delete-orphan",
    )
    alerts: Mapped[list[FounderAlert]] = relationship(
        "FounderAlert", back_populates="investor", cascade="all, delete-orphan",
    )


class InvestorInteraction(Base):
    __tablename__ = "investor_interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    investor_id: Mapped[str] = mapped_column(String(200), ForeignKey("investors.id"), nullable=False)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False)
    interaction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    response: Mapped[str | None] = mapped_column(Text, nullable=True)
    qualification_data_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    meme_deployed: Mapped[str | None] = mapped_column(String(100), nullable=True)
    score_change: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    investor: Mapped[Investor] = relationship("Investor", back_populates="interactions")


class QualificationTest(Base):
    __tablename__ = "qualification_tests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    investor_id: Mapped[str] = mapped_column(String(200), ForeignKey("investors.id"), nullable=False)
    test_type: Mapped[str] = mapped_column(String(50), nullable=False)
    question: Mapped[str] = mapped_column(Text, default="")
    response: Mapped[str] = mapped_column(Text, default="")
    score: Mapped[int] = mapped_column(Integer, default=0)
    analysis: Mapped[str] = mapped_column(Text, default="")
    passed: Mapped[bool] = mapped_column(default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    investor: Mapped[Investor] = relationship("Investor", back_populates="tests")


class MemeDeployment(Base):
    __tablename__ = "meme_deployments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    investor_id: Mapped[str] = mapped_column(String(200), ForeignKey("investors.id"), nullable=False)
    meme_type: Mapped[str] = mapped_column(String(100), nullable=False)
    situation: Mapped[str] = mapped_column(String(50), nullable=False)
    stupidity_level: Mapped[int] = mapped_column(Integer, default=1)
    effectiveness_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    investor_reaction: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    investor: Mapped[Investor] = relationship("Investor", back_populates="memes")


class FounderAlert(Base):
    __tablename__ = "founder_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    investor_id: Mapped[str] = mapped_column(String(200), ForeignKey("investors.id"), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), default="qualified_investor")
    message: Mapped[str] = mapped_column(Text, nullable=False)
    investor_summary_json: Mapped[str] = mapped_column(Text, default="{}")
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    investor: Mapped[Investor] = relationship("Investor", back_populates="alerts")


class DailyStat(Base):
    __tablename__ = "daily_stats"

    date: Mapped[str] = mapped_column(String(10), primary_key=True)  # YYYY-MM-DD
    total_interactions: Mapped[int] = mapped_column(Integer, default=0)
    total_rejections: Mapped[int] = mapped_column(Integer, default=0)
    total_qualifications: Mapped[int] = mapped_column(Integer, default=0)
    rejection_rate: Mapped[float] = mapped_column(Float, default=0.0)
    memes_deployed: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
