from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import date
from typing import Generator

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from sqlalchemy.orm import Session

from skippy import services
from skippy.db import Database
from skippy.memes import VALID_SITUATIONS
from skippy.qualification import evaluate
from skippy.schemas import (
    EmailUpdate,
    EvaluateRequest,
    EvaluationOut,
    InteractionCreate,
    InvestorOut,
    MemeOut,
    MemeRequest,
    ScreenOut,
    ScreenRequest,
    StatsOut,
    StatusUpdate,
)
from skippy.store import InteractionStore, InvalidScoreState, InvestorNotFound, investor_dict

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = getattr(app.state, "database", None) is None
    if owned:
        app.state.database = Database()
    yield
    if owned:
        app.state.database.dispose()
        app.state.database = None


app = FastAPI(
    title="Skippy",
    version="0.1.0",
    description=(
        "Investor screening API. Scores investor responses with keyword heuristics, "
        "tracks interactions and picks meme templates for the verdict. "
        "All endpoints return JSON. No authentication required."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Qualification", "description": "Score investor responses."},
        {"name": "Investors", "description": "Track investors, interactions and status."},
        {"name": "Memes", "description": "Meme template selection."},
        {"name": "Stats", "description": "Daily statistics and reports."},
        {"name": "Admin", "description": "Health and operational endpoints."},
    ],
)


# ---------------------------------------------------------------------------
# Dependencies & Helpers
# ---------------------------------------------------------------------------


def db_session(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.session_generator()


def get_store(session: Session = Depends(db_session)) -> InteractionStore:
    return InteractionStore(session)


def _commit_or_raise(store: InteractionStore, fn, *args, **kwargs):
    """Run a store/service call, mapping domain errors to HTTP errors."""
    try:
        result = fn(*args, **kwargs)
    except InvestorNotFound as exc:
        raise HTTPException(404, str(exc)) from exc
    except (InvalidScoreState, services.ScreeningClosed) as exc:
        raise HTTPException(409, str(exc)) from exc
    except ValueError as exc:  # includes InvalidCategory
        raise HTTPException(422, str(exc)) from exc
    store.session.commit()
    return result


# ---------------------------------------------------------------------------
# Routes: Qualification
# ---------------------------------------------------------------------------


@app.post("/api/evaluate", response_model=EvaluationOut,
          tags=["Qualification"], summary="Score a response against a running score (no persistence)")
async def evaluate_response(body: EvaluateRequest):
    return evaluate(body.current_score, body.response, body.category).as_dict()


@app.post("/api/investors/{investor_id}/screen", response_model=ScreenOut,
          tags=["Qualification", "Investors"], summary="Score a response and persist the outcome")
async def screen(investor_id: str, body: ScreenRequest, store: InteractionStore = Depends(get_store)):
    result, status = _commit_or_raise(
        store, services.screen_response, store, investor_id, body.response, body.category,
        session_id=body.session_id, question=body.question, email=body.email,
    )
    return services.screen_result_dict(investor_id, result, status)


# ---------------------------------------------------------------------------
# Routes: Investors
# ---------------------------------------------------------------------------


@app.get("/api/investors/{investor_id}", response_model=InvestorOut,
         tags=["Investors"], summary="Get an investor's status and score")
async def get_investor(investor_id: str, store: InteractionStore = Depends(get_store)):
    try:
        return investor_dict(store.get_investor(investor_id))
    except InvestorNotFound as exc:
        raise HTTPException(404, str(exc)) from exc
    except InvalidScoreState as exc:
        raise HTTPException(409, str(exc)) from exc


@app.post("/api/investors/{investor_id}/interactions", status_code=201,
          tags=["Investors"], summary="Log an interaction (creates the investor on first contact)")
async def log_interaction(investor_id: str, body: InteractionCreate, store: InteractionStore = Depends(get_store)):
    return _commit_or_raise(
        store, services.log_interaction, store, investor_id, body.interaction_type,
        session_id=body.session_id, message=body.message, email=body.email,
        response=body.response, score_change=body.score_change,
        qualification_data=body.qualification_data,
    )


@app.put("/api/investors/{investor_id}/status", response_model=InvestorOut,
         tags=["Investors"], summary="Set an investor's status and score")
async def update_status(investor_id: str, body: StatusUpdate, store: InteractionStore = Depends(get_store)):
    inv = _commit_or_raise(
        store, store.update_investor_status, investor_id, body.status,
        body.qualification_score, rejection_reason=body.rejection_reason,
    )
    return investor_dict(inv)


@app.post("/api/investors/{investor_id}/email",
          tags=["Investors"], summary="Store a qualified investor's email and alert the founder")
async def store_email(investor_id: str, body: EmailUpdate, store: InteractionStore = Depends(get_store)):
    alert = _commit_or_raise(store, store.store_email, investor_id, body.email)
    return {
        "success": True, "investor_id": investor_id, "email": body.email,
        "status": "founder_contact", "alert_id": alert.id,
        "founder_notification_scheduled": True,
    }


# ---------------------------------------------------------------------------
# Routes: Memes
# ---------------------------------------------------------------------------


@app.post("/api/memes", response_model=MemeOut,
          tags=["Memes"], summary=f"Select a meme for one of: {', '.join(VALID_SITUATIONS)}")
async def deploy_meme(body: MemeRequest, store: InteractionStore = Depends(get_store)):
    selection = _commit_or_raise(
        store, services.deploy_meme, store, body.situation, body.stupidity_level,
        investor_response=body.investor_response, investor_id=body.investor_id,
    )
    return selection.as_dict()


# ---------------------------------------------------------------------------
# Routes: Stats
# ---------------------------------------------------------------------------


@app.get("/api/stats", response_model=StatsOut,
         tags=["Stats"], summary="Daily and weekly screening statistics")
async def get_stats(
    day: date | None = Query(None, description="Day to report on (YYYY-MM-DD), defaults to today"),
    store: InteractionStore = Depends(get_store),
):
    return store.compute_stats(day)


@app.get("/api/report", tags=["Stats"], summary="Daily screening report")
async def get_report(
    day: date | None = Query(None, description="Day to report on (YYYY-MM-DD), defaults to today"),
    store: InteractionStore = Depends(get_store),
):
    return store.generate_report(day)


# ---------------------------------------------------------------------------
# Routes: Health
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Admin"], summary="Database connectivity check")
async def health(store: InteractionStore = Depends(get_store)):
    try:
        return services.health_check(store)
    except Exception as exc:
        log.error("Health check failed: %s", exc)
        raise HTTPException(503, f"unhealthy: {exc}") from exc


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    host = os.environ.get("SKIPPY_HOST", "127.0.0.1")
    port = int(os.environ.get("SKIPPY_PORT", "8001"))
    uvicorn.run("skippy.app:app", host=host, port=port)


if __name__ == "__main__":
    main()
