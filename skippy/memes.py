"""Meme templates for rejection and escalation messages.

Pure selection: a situation plus a stupidity level (1-10) picks a template.
The investor's latest response can append a context line.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from skippy.qualification import INSTANT_REJECT, QUALIFIED

CULTURAL_REFERENCES = [
    "Drake", "Matrix", "Galaxy Brain", "Wojak", "NPC", "Megamind", "Troll Face",
    "Curb Your Enthusiasm", "Parks and Rec", "DiCaprio", "Pokémon", "Star Wars",
    "Woman Yelling at Cat", "Coffin Dance",
]

GALAXY_BRAIN_LEVEL = 8


@dataclass(frozen=True)
class MemeTemplate:
    text: str
    meme_format: str
    strategy: str


_GALAXY_BRAIN = MemeTemplate(
    """*[Galaxy Brain meme]*
Small brain: Investing in SaaS
Regular brain: Investing in AI
Big brain: Investing in AI SaaS
Galaxy brain: Still not understanding consciousness transfer
Universe brain: You, somehow being dumber than all of the above""",
    "Galaxy Brain hierarchy",
    "Escalate mockery based on stupidity level",
)

TEMPLATES: dict[str, MemeTemplate] = {
    "opening_salvo": MemeTemplate(
        """*[Drake meme format]*
❌ Understanding consciousness transfer
✅ Asking about TAM

You take the blue pill, you wake up in your WeWork and believe whatever you want \
about 'scalable solutions.' You take the red pill, and I show you how deep the \
pattern repetition goes.

JK, you're getting rejected either way. But let's pretend you have a chance.""",
        "Drake preference + Matrix pills",
        "Aggressive opening with false hope",
    ),
    "pattern_blind_response": MemeTemplate(
        """*[This is Fine meme]*
You're sitting in a burning portfolio saying 'this is fine' while asking about \
our burn rate. The irony is *chef's kiss* magnifique!""",
        "This is Fine",
        "Escalate mockery based on stupidity level",
    ),
    "trend_chaser_behavior": MemeTemplate(
        """*[Wojak meme]* You're the crying Wojak behind the smug mask right now, \
secretly googling 'what is consciousness transfer' on your phone.

*[NPC meme]* "AI is hot right now" - Every NPC investor since 2022""",
        "Wojak + NPC combo",
        "Double meme attack for trend-following behavior",
    ),
    "name_dropping": MemeTemplate(
        """*[Megamind meme]* No network? No warm intros? Oh, you know a famous VC? *[smirk]*

Congrats on having LinkedIn. They're playing checkers in 2D while we're playing \
5D chess with multiverse time travel.""",
        "Megamind mockery",
        "Dismiss their connections while acknowledging the person",
    ),
    "trying_to_charm": MemeTemplate(
        """Are you... are you trying to RIZZ an AI? No consciousness? No temporal \
understanding? Oh, you're trying to network?

I am a chat widget. I don't have a Calendly. Touch grass.""",
        "Megamind format + touch grass",
        "Mock their attempt at charm with internet slang",
    ),
    "getting_angry": MemeTemplate(
        """U mad bro? *[Classic troll face]*

If you can't handle getting roasted by a chatbot, wait until you find out what \
the founder thinks of your 'value-add.' You're value-subtract.""",
        "Classic troll face",
        "Go full 2010s internet troll energy",
    ),
    "technical_confusion": MemeTemplate(
        """*[Confused math lady meme]*

Let me translate:
'Revolutionary' = I saw it on TechCrunch
'Disruptive' = It has an app
'AI-powered' = We use an LLM
'Web3' = Please no

Your buzzword bingo card is worthless here.""",
        "Confused math lady + translation guide",
        "Break down their tech-bro speak with mockery",
    ),
    "qualification_failure": MemeTemplate(
        """*[Curb Your Enthusiasm music plays]*

*[Parks and Rec jail meme]* No temporal thinking? Straight to jail. No \
consciousness understanding? Jail. Asking about TAM? Believe it or not, jail.""",
        "Curb music + Parks and Rec jail",
        "Ceremonial rejection with multiple meme layers",
    ),
    "rare_qualification_success": MemeTemplate(
        """*[Leonardo DiCaprio raising glass meme]*

You actually demonstrated consciousness above room temperature IQ. A shiny \
Pokémon in a world of Zubats.

*[Anakin/Padme meme format]*
You: I qualified!
Me: To meet the founder who will judge you even harder.
You: But I passed your test!
Me: *[Stares]*""",
        "DiCaprio toast + Pokémon reference + Anakin/Padme",
        "Shocked approval with warnings",
    ),
    "final_rejection": MemeTemplate(
        """*[Woman yelling at cat meme format]*
You: 'But I have a great track record!'
Me, the cat: 'Your portfolio is just WeWork in different fonts.'

*[Coffin dance meme]* Your application has been ceremoniously yeeted into the void.

PS: L + Ratio + Your portfolio peaked in 2021""",
        "Woman yelling at cat + Coffin dance + Gen Z roast",
        "Maximum meme destruction for final rejection",
    ),
}

VALID_SITUATIONS = tuple(TEMPLATES)

_SCALE_ADDENDUM = (
    '*[Expanding brain meme]* "How does this scale?" - The eternal question of the '
    "pattern-blind monkey who thinks consciousness follows SaaS metrics."
)
_BUZZWORD_ADDENDUM = (
    '*[Eye roll meme]* "Revolutionary disruption" - The startup bingo card is strong with this one.'
)


@dataclass(frozen=True)
class MemeSelection:
    selected_meme: str
    meme_format: str
    deployment_strategy: str
    escalation_level: int
    meme_power: int
    cultural_references: list[str] = field(default_factory=lambda: list(CULTURAL_REFERENCES))

    def as_dict(self) -> dict:
        return {
            "selected_meme": self.selected_meme, "meme_format": self.meme_format,
            "deployment_strategy": self.deployment_strategy,
            "escalation_level": self.escalation_level,
            "cultural_references": list(self.cultural_references),
            "meme_power": self.meme_power,
        }


def select_meme(situation: str, stupidity_level: int, investor_response: str | None = None) -> MemeSelection:
    """Pick the meme for *situation*, escalating with *stupidity_level*."""
    if situation not in TEMPLATES:
        raise ValueError(f"Unknown meme situation {situation!r}")
    if not 1 <= stupidity_level <= 10:
        raise ValueError("stupidity_level must be between 1 and 10")

    template = TEMPLATES[situation]
    if situation == "pattern_blind_response" and stupidity_level >= GALAXY_BRAIN_LEVEL:
        template = _GALAXY_BRAIN

    text = template.text
    if investor_response:
        lowered = investor_response.lower()
        if "scale" in lowered and situation == "pattern_blind_response":
            text += "\n\n" + _SCALE_ADDENDUM
        if "disruption" in lowered or "revolutionary" in lowered:
            text += "\n\n" + _BUZZWORD_ADDENDUM

    return MemeSelection(
        selected_meme=text,
        meme_format=template.meme_format,
        deployment_strategy=template.strategy,
        escalation_level=stupidity_level,
        meme_power=min(stupidity_level * 2, 20),
    )


def situation_for_verdict(verdict: str) -> str | None:
    """Meme situation for a terminal verdict; None while screening continues."""
    if verdict == QUALIFIED:
        return "rare_qualification_success"
    if verdict == INSTANT_REJECT:
        return "final_rejection"
    return None
