import math

import pytest

from models.card import CardType, RepeatPolicy
from utils.policy import (
    GROW_MULTIPLIERS,
    SHRINK_MULTIPLIERS,
    EventKind,
    clamp_interval,
    resolve_multiplier,
    rules_for,
)


@pytest.mark.parametrize("card_type", [CardType.TODO, CardType.FLASHCARD])
def test_skip_shrinks_todos_and_flashcards(card_type):
    aggressive = resolve_multiplier(RepeatPolicy.AGGRESSIVE, EventKind.SKIP, card_type)
    mild = resolve_multiplier(RepeatPolicy.MILD, EventKind.SKIP, card_type)
    none = resolve_multiplier(RepeatPolicy.NONE, EventKind.SKIP, card_type)
    assert aggressive == 0.5
    assert mild == 0.75
    assert none == 1.0
    assert aggressive < mild < none


def test_skip_grows_notes():
    aggressive = resolve_multiplier(RepeatPolicy.AGGRESSIVE, EventKind.SKIP, CardType.NOTE)
    mild = resolve_multiplier(RepeatPolicy.MILD, EventKind.SKIP, CardType.NOTE)
    none = resolve_multiplier(RepeatPolicy.NONE, EventKind.SKIP, CardType.NOTE)
    assert aggressive == 2.0
    assert mild == pytest.approx(4 / 3)
    assert none == 1.0
    assert aggressive > mild > none


@pytest.mark.parametrize("policy", list(RepeatPolicy))
def test_rating_directions(policy):
    easy = resolve_multiplier(policy, EventKind.RATING_EASY, CardType.FLASHCARD)
    good = resolve_multiplier(policy, EventKind.RATING_GOOD, CardType.FLASHCARD)
    hard = resolve_multiplier(policy, EventKind.RATING_HARD, CardType.FLASHCARD)
    assert good == 1.0
    if policy == RepeatPolicy.NONE:
        assert easy == hard == 1.0
    else:
        assert easy > 1.0
        assert hard < 1.0


def test_grow_and_shrink_are_reciprocal():
    for policy in RepeatPolicy:
        assert GROW_MULTIPLIERS[policy] * SHRINK_MULTIPLIERS[policy] == pytest.approx(1.0)


def test_category_rules():
    assert rules_for(CardType.NOTE).skip_grows_interval
    assert rules_for(CardType.FLASHCARD).accepts_ratings
    assert not rules_for(CardType.TODO).accepts_ratings
    assert rules_for(CardType.TODO).can_complete
    assert not rules_for(CardType.FLASHCARD).can_complete


def test_clamp_interval_bounds():
    assert clamp_interval(0) == 1
    assert clamp_interval(-50) == 1
    assert clamp_interval(18000) == 8760
    assert clamp_interval(359.6) == 360
    assert clamp_interval(math.nan) == 1
    assert clamp_interval(math.inf) == 8760
