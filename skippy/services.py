"""Shared business logic for the Skippy API and MCP server."""
from __future__ import annotations

import logging
from typing import Any

from skippy.memes import MemeSelection, select_meme
from skippy.qualification import CONTINUE, INSTANT_REJECT, QUALIFIED, EvaluationResult, evaluate, validate_category
from skippy.store import QUALIFIED as QUALIFIED_STATUS
from skippy.store import REJECTED, SCREENING, TERMINAL_STATUSES, InteractionStore

log = logging.getLogger(__name__)

# Investor status written for each engine verdict.
STATUS_FOR_VERDICT = {
    QUALIFIED: QUALIFIED_STATUS,
    INSTANT_REJECT: REJECTED,
    CONTINUE: SCREENING,
}


class ScreeningClosed(Exception):
    """The investor already reached a terminal status; no further scoring."""

    def __init__(self, investor_id: str, status: str):
        super().__init__(f"Screening for investor {investor_id!r} is closed (status: {status})")
        self.investor_id = investor_id
        self.status = status


def screen_response(
    store: InteractionStore,
    investor_id: str,
    response: str,
    category: str,
    session_id: str | None = None,
    question: str = "",
    email: str | None = None,
) -> tuple[EvaluationResult, str]:
    """Score one response for an investor and persist the outcome (caller must commit).

    Returns the engine result and the investor's resulting status.
    """
    validate_category(category)
    store.create_investor_if_absent(investor_id, email)
    investor = store.get_investor(investor_id)
    if investor.status in TERMINAL_STATUSES:
        log.warning("Refusing to score %s: already %s", investor_id, investor.status)
        raise ScreeningClosed(investor_id, investor.status)

    result = evaluate(investor.qualification_score, response, category)
    store.append_interaction(
        investor_id, session_id, "qualification_question",
        message=question or None, response=response,
        score_change=result.score_change,
        qualification_data={"category": category, **result.as_dict()},
    )
    store.record_qualification_test(
        investor_id, category, response, result.score_change,
        analysis=result.rationale, question=question,
    )
    status = STATUS_FOR_VERDICT[result.verdict]
    store.update_investor_status(
        investor_id, status, result.new_score,
        rejection_reason=result.recommendation if status == REJECTED else None,
    )
    return result, status


def screen_result_dict(investor_id: str, result: EvaluationResult, status: str) -> dict[str, Any]:
    return {"investor_id": investor_id, "status": status, **result.as_dict()}


def log_interaction(
    store: InteractionStore,
    investor_id: str,
    interaction_type: str,
    session_id: str | None = None,
    message: str | None = None,
    email: str | None = None,
    **data: Any,
) -> dict[str, Any]:
    """Create the investor on first contact, then append the interaction."""
    store.create_investor_if_absent(investor_id, email)
    interaction_id = store.append_interaction(
        investor_id, session_id, interaction_type, message=message, **data,
    )
    return {"success": True, "interaction_id": interaction_id, "investor_id": investor_id,
            "interaction_type": interaction_type}


def deploy_meme(
    store: InteractionStore | None,
    situation: str,
    stupidity_level: int,
    investor_response: str | None = None,
    investor_id: str | None = None,
) -> MemeSelection:
    """Pick a meme; when an investor is given, record the deployment too."""
    selection = select_meme(situation, stupidity_level, investor_response)
    if store is not None and investor_id:
        store.create_investor_if_absent(investor_id)
        store.record_meme_deployment(investor_id, selection.meme_format, situation, stupidity_level)
        store.append_interaction(
            investor_id, None, "meme_deployment",
            message=selection.selected_meme, meme_deployed=selection.meme_format,
        )
    return selection


def health_check(store: InteractionStore) -> dict[str, Any]:
    return {
        "status": "healthy",
        "database": {"connected": True, "investor_count": store.investor_count()},
    }
