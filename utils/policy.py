import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from config import MAX_INTERVAL_HOURS, MIN_INTERVAL_HOURS
from models.card import CardType, RepeatPolicy
from models.review import RatingType


class EventKind(str, Enum):
    SKIP = "skip"
    RATING_EASY = "rating_easy"
    RATING_GOOD = "rating_good"
    RATING_HARD = "rating_hard"


@dataclass(frozen=True)
class CategoryRules:
    """How a card category reacts to queue events."""
    skip_grows_interval: bool
    accepts_ratings: bool
    can_complete: bool


CATEGORY_RULES: Dict[CardType, CategoryRules] = {
    # Skipping a note means "show me this later"
    CardType.NOTE: CategoryRules(skip_grows_interval=True, accepts_ratings=False, can_complete=False),
    CardType.TODO: CategoryRules(skip_grows_interval=False, accepts_ratings=False, can_complete=True),
    CardType.FLASHCARD: CategoryRules(skip_grows_interval=False, accepts_ratings=True, can_complete=False),
}

SHRINK_MULTIPLIERS: Dict[RepeatPolicy, float] = {
    RepeatPolicy.NONE: 1.0,
    RepeatPolicy.MILD: 0.75,
    RepeatPolicy.AGGRESSIVE: 0.5,
}

# Reciprocal of the shrink factors so that a grow followed by a shrink is a no-op
GROW_MULTIPLIERS: Dict[RepeatPolicy, float] = {
    policy: 1.0 / factor for policy, factor in SHRINK_MULTIPLIERS.items()
}

RATING_EVENTS: Dict[RatingType, EventKind] = {
    RatingType.EASY: EventKind.RATING_EASY,
    RatingType.GOOD: EventKind.RATING_GOOD,
    RatingType.HARD: EventKind.RATING_HARD,
}


def rules_for(card_type: CardType) -> CategoryRules:
    return CATEGORY_RULES[CardType(card_type)]


def resolve_multiplier(policy: RepeatPolicy, event: EventKind, card_type: CardType) -> float:
    """Interval multiplier for an event on a card of the given category.

    Total and side-effect free: ``none`` and the "good" rating always yield 1.0.
    """
    policy = RepeatPolicy(policy)
    event = EventKind(event)
    if event == EventKind.RATING_GOOD:
        return 1.0
    if event == EventKind.RATING_EASY:
        return GROW_MULTIPLIERS[policy]
    if event == EventKind.RATING_HARD:
        return SHRINK_MULTIPLIERS[policy]
    if rules_for(card_type).skip_grows_interval:
        return GROW_MULTIPLIERS[policy]
    return SHRINK_MULTIPLIERS[policy]


def clamp_interval(hours: float) -> int:
    """Round and clamp an interval into [1, 8760] hours."""
    if math.isnan(hours):
        return MIN_INTERVAL_HOURS
    if math.isinf(hours):
        return MAX_INTERVAL_HOURS if hours > 0 else MIN_INTERVAL_HOURS
    return max(MIN_INTERVAL_HOURS, min(MAX_INTERVAL_HOURS, int(round(hours))))
