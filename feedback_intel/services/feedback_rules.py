"""
Keyword rule tables for category and priority derivation.

Each table is an ordered tuple of (predicate, outcome); the first predicate
that matches wins and the default applies when none do. Title matching is a
case-sensitive substring check, so short product tokens like "AI" or "UI"
do not fire inside ordinary words.
"""

from typing import Callable, Optional, Sequence, Tuple, TypeVar

from feedback_intel.models.feedback import Priority, Sentiment

T = TypeVar("T")

TitlePredicate = Callable[[str], bool]
PriorityPredicate = Callable[[Optional[str], str], bool]


def title_contains(*needles: str) -> TitlePredicate:
    def predicate(title: str) -> bool:
        return any(needle in title for needle in needles)

    return predicate


CATEGORY_RULES: Tuple[Tuple[TitlePredicate, str], ...] = (
    (title_contains("Dashboard", "UI"), "ux"),
    (title_contains("Workers AI", "AI"), "ai"),
    (title_contains("D1", "migration", "Database"), "database"),
    (title_contains("KV", "cache"), "storage"),
    (title_contains("API", "performance", "slow"), "performance"),
    (title_contains("Wrangler", "CLI"), "tooling"),
    (title_contains("documentation", "CORS"), "docs"),
)
DEFAULT_CATEGORY = "general"

FAILURE_KEYWORDS = ("error", "fail", "crash")


def _negative_failure(sentiment: Optional[str], title: str) -> bool:
    return sentiment == Sentiment.NEGATIVE.value and any(k in title for k in FAILURE_KEYWORDS)


def _positive(sentiment: Optional[str], title: str) -> bool:
    return sentiment == Sentiment.POSITIVE.value


PRIORITY_RULES: Tuple[Tuple[PriorityPredicate, Priority], ...] = (
    (_negative_failure, Priority.HIGH),
    (_positive, Priority.LOW),
)
DEFAULT_PRIORITY = Priority.MEDIUM


def first_match(rules: Sequence[Tuple[Callable[..., bool], T]], default: T, *args) -> T:
    for predicate, outcome in rules:
        if predicate(*args):
            return outcome
    return default


def derive_category(title: str) -> str:
    return first_match(CATEGORY_RULES, DEFAULT_CATEGORY, title)


def derive_priority(sentiment: Optional[str], title: str) -> Priority:
    return first_match(PRIORITY_RULES, DEFAULT_PRIORITY, sentiment, title)
