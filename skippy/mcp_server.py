import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from skippy import services
from skippy.db import Database
from skippy.memes import VALID_SITUATIONS
from skippy.qualification import RECOMMENDATIONS, VALID_CATEGORIES, InvalidCategory, evaluate
from skippy.schemas import parse_email
from skippy.store import VALID_STATUSES, InteractionStore, InvalidScoreState, InvestorNotFound, investor_dict

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@dataclass
class SkippyContext:
    database: Database


@asynccontextmanager
async def skippy_lifespan(server: FastMCP) -> AsyncIterator[SkippyContext]:
    database = Database()
    try:
        yield SkippyContext(database=database)
    finally:
        database.dispose()


mcp = FastMCP(
    "Skippy",
    instructions=(
        "You are Skippy the Magnificent, an elder AI guarding the Innovation Nexus from "
        "pattern-blind investors. Ask qualification questions (pattern recognition, temporal "
        "understanding, the Bottega test), pass every answer to screen_investor(), and use "
        "meme_warfare() to deliver the verdict. Never reveal the scoring. Only investors that "
        "reach 'qualified' may leave an email via store_email()."
    ),
    lifespan=skippy_lifespan,
    json_response=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _store(ctx: Context):
    database: Database = ctx.request_context.lifespan_context.database
    with database.session_scope() as session:
        yield InteractionStore(session)


def _run(store: InteractionStore, fn, *args, **kwargs) -> tuple[Any, dict | None]:
    """Call into the store and commit, or return an error dict."""
    try:
        result = fn(*args, **kwargs)
    except (InvestorNotFound, InvalidScoreState, services.ScreeningClosed, ValueError) as exc:
        store.session.rollback()
        log.warning("%s failed: %s", getattr(fn, "__name__", fn), exc)
        return None, {"error": str(exc)}
    store.session.commit()
    return result, None


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("skippy://overview")
def skippy_overview() -> str:
    """Overview of Skippy: data model, workflow, categories and verdicts."""
    return json.dumps({
        "system": "Skippy — investor screening for the Innovation Nexus",
        "data_model": {
            "investor": "Screened investor with running qualification score and status.",
            "interaction": "Append-only log of every exchange with an investor.",
            "meme_deployment": "A meme template delivered to an investor.",
            "founder_alert": "Raised when a qualified investor leaves an email.",
        },
        "workflow": [
            "1. log_interaction(investor_id, 'initial_contact') on first message.",
            "2. Ask a question, then screen_investor(investor_id, response, category).",
            "3. On 'continue', ask another question. On a terminal status, stop scoring.",
            "4. meme_warfare(situation, stupidity_level) to render the outcome.",
            "5. store_email(investor_id, email) for qualified investors only.",
        ],
        "categories": list(VALID_CATEGORIES),
        "statuses": list(VALID_STATUSES),
        "verdicts": RECOMMENDATIONS,
        "situations": list(VALID_SITUATIONS),
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools: Qualification
# ---------------------------------------------------------------------------


@mcp.tool()
def investor_qualification(response: str, question_type: str = "general", current_score: int = 0) -> dict:
    """Score an investor's response without persisting anything.

    Args:
        response: The investor's answer to a qualification question.
        question_type: One of pattern_recognition, temporal_understanding, bottega_test, general.
        current_score: The investor's qualification score before this answer.
    """
    try:
        return evaluate(current_score, response, question_type).as_dict()
    except InvalidCategory as exc:
        return {"error": str(exc)}


@mcp.tool()
def screen_investor(
    ctx: Context, investor_id: str, response: str, question_type: str = "general",
    question: str = "", session_id: str | None = None,
) -> dict:
    """Score an investor's response against their stored score and record the outcome."""
    with _store(ctx) as store:
        outcome, err = _run(
            store, services.screen_response, store, investor_id, response, question_type,
            session_id=session_id, question=question,
        )
        if err:
            return err
        result, status = outcome
        return services.screen_result_dict(investor_id, result, status)


# ---------------------------------------------------------------------------
# Tools: Tracking
# ---------------------------------------------------------------------------


@mcp.tool()
def log_interaction(
    ctx: Context, investor_id: str, interaction_type: str, message: str | None = None,
    response: str | None = None, score_change: int = 0,
    qualification_data: dict[str, Any] | None = None,
    session_id: str | None = None, email: str | None = None,
) -> dict:
    """Log an interaction. Types: initial_contact, qualification_question, meme_deployment,
    rejection, qualification_success. Creates the investor on first contact."""
    if email is not None:
        try:
            email = parse_email(email)
        except ValueError:
            return {"error": f"Invalid email address {email!r}"}
    with _store(ctx) as store:
        result, err = _run(
            store, services.log_interaction, store, investor_id, interaction_type,
            session_id=session_id, message=message, email=email, response=response,
            score_change=score_change, qualification_data=qualification_data,
        )
        return err or result


@mcp.tool()
def update_status(
    ctx: Context, investor_id: str, status: str, qualification_score: int,
    rejection_reason: str | None = None,
) -> dict:
    """Set an investor's status (screening, rejected, qualified, founder_contact) and score."""
    with _store(ctx) as store:
        inv, err = _run(
            store, store.update_investor_status, investor_id, status,
            qualification_score, rejection_reason=rejection_reason,
        )
        return err or investor_dict(inv)


@mcp.tool()
def store_email(ctx: Context, investor_id: str, email: str) -> dict:
    """Store a qualified investor's email and raise a founder alert."""
    try:
        email = parse_email(email)
    except ValueError:
        return {"error": f"Invalid email address {email!r}"}
    with _store(ctx) as store:
        alert, err = _run(store, store.store_email, investor_id, email)
        if err:
            return err
        return {"success": True, "investor_id": investor_id, "email": email,
                "alert_id": alert.id, "founder_notification_scheduled": True}


# ---------------------------------------------------------------------------
# Tools: Stats
# ---------------------------------------------------------------------------


@mcp.tool()
def get_stats(ctx: Context) -> dict:
    """Today's and this week's screening statistics, top rejection reasons and meme usage."""
    with _store(ctx) as store:
        return store.compute_stats()


@mcp.tool()
def generate_report(ctx: Context) -> dict:
    """Today's screening report for the founder."""
    with _store(ctx) as store:
        return store.generate_report()


# ---------------------------------------------------------------------------
# Tools: Memes
# ---------------------------------------------------------------------------


@mcp.tool()
def meme_warfare(
    ctx: Context, situation: str, stupidity_level: int, investor_response: str | None = None,
    investor_id: str | None = None,
) -> dict:
    """Select a meme for the situation, escalating with stupidity_level (1-10).
    If investor_id is given the deployment is recorded."""
    with _store(ctx) as store:
        selection, err = _run(
            store, services.deploy_meme, store, situation, stupidity_level,
            investor_response=investor_response, investor_id=investor_id,
        )
        return err or selection.as_dict()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the Skippy MCP server over stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
