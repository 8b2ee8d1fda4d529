"""Qualification engine: keyword signals, score accumulation and verdicts.

Architecture
------------
Each evaluation runs three stages:

- **Signal detection** — the response is case-folded and run through an
  ordered rule table.  Category rules are first-match-wins (exactly one
  tier fires, or none for categories without a default).  Global rules are
  all-that-match.
- **Accumulation** — the fired rules' deltas are summed and their rationale
  fragments joined in detection order (category rule first, then global
  rules in table order).
- **Verdict** — ``new_score = current_score + delta``:

  - ``qualified``       when ``new_score >= 7``
  - ``instant_reject``  when ``new_score <= -10``
  - ``continue``        otherwise

Everything here is pure.  The running score belongs to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger(__name__)


class InvalidCategory(ValueError):
    """Question category is not one of VALID_CATEGORIES."""


# ---------------------------------------------------------------------------
# Categories & verdicts
# ---------------------------------------------------------------------------

PATTERN_RECOGNITION = "pattern_recognition"
TEMPORAL_UNDERSTANDING = "temporal_understanding"
BOTTEGA_TEST = "bottega_test"
GENERAL = "general"

VALID_CATEGORIES = (PATTERN_RECOGNITION, TEMPORAL_UNDERSTANDING, BOTTEGA_TEST, GENERAL)

QUALIFIED = "qualified"
INSTANT_REJECT = "instant_reject"
CONTINUE = "continue"

QUALIFY_THRESHOLD = 7
REJECT_THRESHOLD = -10

RECOMMENDATIONS = {
    QUALIFIED: "QUALIFIED: Forward to founder for 20-minute screening call",
    INSTANT_REJECT: "INSTANT REJECT: Complete pattern-blind monkey",
    CONTINUE: "CONTINUE TESTING: Needs more qualification questions",
}


def validate_category(category: str) -> str:
    if category not in VALID_CATEGORIES:
        raise InvalidCategory(
            f"Unknown question category {category!r} (expected one of: {', '.join(VALID_CATEGORIES)})"
        )
    return category


def compute_verdict(score: int) -> str:
    """Map a running score to a verdict. Qualification wins over rejection."""
    if score >= QUALIFY_THRESHOLD:
        return QUALIFIED
    if score <= REJECT_THRESHOLD:
        return INSTANT_REJECT
    return CONTINUE


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

Predicate = Callable[[str], bool]


def has_any(*phrases: str) -> Predicate:
    return lambda text: any(p in text for p in phrases)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda text: all(p(text) for p in predicates)


def lacks(predicate: Predicate) -> Predicate:
    return lambda text: not predicate(text)


def always(text: str) -> bool:
    return True


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Predicate
    delta: int
    rationale: str

    def matches(self, text: str) -> bool:
        return self.predicate(text)


_INFO = has_any("data", "information", "knowledge")
_PERSPECTIVE = has_any("how to see", "perspective", "consciousness")
_CULTURAL = has_any("african", "european", "python")

# Category tiers, first match wins.
CATEGORY_RULES: dict[str, tuple[Rule, ...]] = {
    PATTERN_RECOGNITION: (
        Rule("surface_level",
             has_any("market conditions", "lack of experience", "funding"), -5,
             "Surface-level understanding. Mentioned typical startup failure reasons "
             "without deeper pattern recognition."),
        Rule("pattern_cycle",
             all_of(has_any("pattern"), has_any("repeat", "cycle")), 3,
             "Shows some understanding of pattern repetition in startup failures."),
        Rule("consciousness",
             has_any("consciousness", "awareness", "temporal"), 5,
             "Demonstrates deep understanding of consciousness patterns in failure repetition."),
        Rule("generic", always, -3,
             "Generic or confused response. No clear pattern recognition."),
    ),
    TEMPORAL_UNDERSTANDING: (
        Rule("info_perspective", all_of(_INFO, _PERSPECTIVE), 4,
             "Understands the difference between information transfer and consciousness transfer."),
        Rule("info_only", all_of(_INFO, lacks(_PERSPECTIVE)), -3,
             "Stuck on information transfer concept, missing consciousness aspect."),
        Rule("technical", has_any("technical", "api", "database"), -5,
             "Completely technical response. No understanding of consciousness vs information."),
        Rule("operating_system",
             has_any("operating system", "way of seeing", "perception"), 5,
             "Exceptional understanding of consciousness transfer as fundamental perspective shift."),
    ),
    BOTTEGA_TEST: (
        Rule("cultural_consciousness",
             all_of(_CULTURAL, has_any("renaissance", "master", "consciousness")), 7,
             "Got both the Monty Python reference AND the consciousness model. "
             "Rare cultural + temporal awareness."),
        Rule("cultural_only", _CULTURAL, 2,
             "Got the meme reference but missed the consciousness model connection."),
        Rule("model_only",
             all_of(has_any("bottega"), has_any("model", "renaissance")), 3,
             "Understands Bottega model but missed the cultural reference."),
        Rule("neither", always, -5,
             "Completely missed both the cultural reference and the consciousness model."),
    ),
    GENERAL: (),
}

# Global flags, every match applies, in this order.
GLOBAL_RULES: tuple[Rule, ...] = (
    Rule("tam", has_any("tam", "total addressable market"), -5,
         "RED FLAG: Mentioned TAM (Total Addressable Market) - classic pattern-blind investor."),
    Rule("scale_how", all_of(has_any("scale"), has_any("how")), -3,
         'RED FLAG: Asked "how does this scale" - linear thinking.'),
    Rule("accelerator", has_any("yc", "y combinator", "techstars"), -10,
         "MAJOR RED FLAG: Compared to accelerators - completely missing the point."),
    Rule("moat", has_any("moat", "competitive advantage"), -5,
         "RED FLAG: Traditional moat thinking - pattern-blind."),
    Rule("failure_as_data", all_of(has_any("failure"), has_any("data", "learn")), 2,
         "POSITIVE: Understands failure as valuable data."),
    Rule("pattern_break", all_of(has_any("pattern"), has_any("break")), 3,
         "POSITIVE: Grasps pattern-breaking concept."),
)


# ---------------------------------------------------------------------------
# Signal detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignalSet:
    """Rules that fired for one response, in detection order."""
    category: str
    tier: Rule | None
    flags: tuple[Rule, ...]

    @property
    def fired(self) -> tuple[Rule, ...]:
        return ((self.tier,) if self.tier else ()) + self.flags

    def names(self) -> list[str]:
        return [r.name for r in self.fired]


def normalize(text: str) -> str:
    return (text or "").casefold()


def detect(response_text: str, category: str) -> SignalSet:
    """Run the category and global rule tables over a response."""
    validate_category(category)
    text = normalize(response_text)
    tier = next((r for r in CATEGORY_RULES[category] if r.matches(text)), None)
    flags = tuple(r for r in GLOBAL_RULES if r.matches(text))
    return SignalSet(category=category, tier=tier, flags=flags)


# ---------------------------------------------------------------------------
# Accumulation
# ---------------------------------------------------------------------------


def accumulate(signals: SignalSet) -> tuple[int, str]:
    """Sum fired deltas and join their rationale fragments."""
    fired = signals.fired
    delta = sum(r.delta for r in fired)
    rationale = " ".join(r.rationale for r in fired)
    return delta, rationale


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EvaluationResult:
    score_change: int
    new_score: int
    qualified: bool
    verdict: str
    recommendation: str
    rationale: str
    signals: tuple[str, ...] = ()

    def as_dict(self) -> dict:
        return {
            "score_change": self.score_change, "new_score": self.new_score,
            "qualified": self.qualified, "verdict": self.verdict,
            "recommendation": self.recommendation, "rationale": self.rationale,
            "signals": list(self.signals),
        }


def evaluate(current_score: int, response_text: str, category: str) -> EvaluationResult:
    """Score one investor response against the running score.

    Raises:
        InvalidCategory: if *category* is not a known question category.
    """
    signals = detect(response_text, category)
    delta, rationale = accumulate(signals)
    new_score = current_score + delta
    verdict = compute_verdict(new_score)
    log.debug("Evaluated %s response: %+d -> %d (%s)", category, delta, new_score, verdict)
    return EvaluationResult(
        score_change=delta,
        new_score=new_score,
        qualified=verdict == QUALIFIED,
        verdict=verdict,
        recommendation=RECOMMENDATIONS[verdict],
        rationale=rationale,
        signals=tuple(signals.names()),
    )
