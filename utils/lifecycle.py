"""Card lifecycle: every mutation a card goes through while cycling the queue.

All operations take the acting timestamp explicitly and mutate the card in
place; the caller persists the result. Nothing here reads the wall clock.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from models.card import Card, CardCreate, CardType, CardUpdate, Priority, RepeatPolicy
from models.review import RatingEvent, RatingType
from utils.policy import RATING_EVENTS, EventKind, clamp_interval, resolve_multiplier, rules_for
from utils.tags import normalize_tag_names

logger = logging.getLogger(__name__)

# next_due_at of archived cards
ARCHIVE_SENTINEL = datetime(9999, 12, 31, tzinfo=timezone.utc)


class PreconditionError(ValueError):
    """Raised when an operation does not apply to the card in its current state."""


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _require_active(card: Card, action: str) -> None:
    if card.archived:
        raise PreconditionError(f"Cannot {action} an archived card")


def is_due(card: Card, now: datetime) -> bool:
    return not card.archived and ensure_utc(card.next_due_at) <= ensure_utc(now)


def hours_until_due(card: Card, now: datetime) -> int:
    """Whole hours until the card is due; negative once it is overdue."""
    delta = ensure_utc(card.next_due_at) - ensure_utc(now)
    return int(delta.total_seconds() // 3600)


def create_card(
    card_type: CardType,
    content: str,
    now: datetime,
    priority: Priority = Priority.NONE,
    initial_interval_hours: int = 240,
    folder_id: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    back: Optional[str] = None,
    next_due_at: Optional[datetime] = None,
    **settings: Any,
) -> Card:
    now = ensure_utc(now)
    interval = clamp_interval(initial_interval_hours)
    card = Card(
        card_type=card_type,
        content=content,
        back=back,
        priority=priority,
        folder_id=folder_id,
        tags=list(tags or []),
        created_at=now,
        interval_hours=interval,
        initial_interval_hours=interval,
        next_due_at=ensure_utc(next_due_at) if next_due_at else now,
        **settings,
    )
    logger.debug("Created %s card %s due %s", card.card_type.value, card.id, card.next_due_at)
    return card


def build_card(payload: CardCreate, now: datetime, scheduling: Dict[str, Any]) -> Card:
    """Create a card from an API payload, filling gaps from the scheduling config."""
    now = ensure_utc(now)
    next_due_at = payload.next_due_at
    if next_due_at is None:
        next_due_at = now + timedelta(hours=int(scheduling.get("new_card_delay_hours", 0)))
    return create_card(
        card_type=payload.card_type,
        content=payload.content,
        now=now,
        priority=payload.priority,
        initial_interval_hours=payload.interval_hours or scheduling["default_interval_hours"],
        folder_id=payload.folder_id,
        tags=payload.tags,
        back=payload.back,
        next_due_at=next_due_at,
        is_recurring=payload.is_recurring,
        is_essential=payload.is_essential,
        dynamic_interval=payload.dynamic_interval,
        skip_enabled=payload.skip_enabled,
        skip_policy=payload.skip_policy or RepeatPolicy(scheduling["default_skip_policy"]),
        rating_easy_policy=payload.rating_easy_policy or RepeatPolicy(scheduling["default_rating_easy_policy"]),
        rating_hard_policy=payload.rating_hard_policy or RepeatPolicy(scheduling["default_rating_hard_policy"]),
        reset_interval_on_complete=payload.reset_interval_on_complete,
    )


# --- interval arithmetic ---

def set_interval(card: Card, new_interval_hours: int) -> Card:
    card.interval_hours = clamp_interval(new_interval_hours)
    return card


def _scale_interval(card: Card, multiplier: float) -> None:
    card.interval_hours = clamp_interval(card.interval_hours * multiplier)


def adjust_interval(card: Card, multiplier: float) -> Card:
    """Scale the stored interval; does not move ``next_due_at``."""
    _require_active(card, "adjust the interval of")
    _scale_interval(card, multiplier)
    return card


def reschedule_from(card: Card, anchor: datetime) -> Card:
    card.next_due_at = ensure_utc(anchor) + timedelta(hours=card.interval_hours)
    return card


def override_interval(card: Card, new_interval_hours: int, now: datetime) -> Card:
    """Manual interval edit from the card settings.

    A card that is waiting for its next appearance is re-projected from its
    last queue departure (or creation) with the new interval. Due cards stay due.
    """
    _require_active(card, "change the interval of")
    set_interval(card, new_interval_hours)
    if is_due(card, now):
        return card
    reschedule_from(card, card.last_removed_at or card.created_at)
    return card


# --- queue transitions ---

def enqueue_now(card: Card, now: datetime) -> Card:
    _require_active(card, "enqueue")
    card.next_due_at = ensure_utc(now)
    return card


def _archive(card: Card, now: datetime, record_removal: bool) -> None:
    if record_removal:
        card.removals.append(now)
    card.archived = True
    card.next_due_at = ARCHIVE_SENTINEL
    card.last_removed_at = now
    logger.debug("Archived card %s", card.id)


def _leave_queue(card: Card, now: datetime) -> None:
    """Final step of a non-skip departure: archive one-shot cards, reschedule the rest."""
    if not card.is_recurring:
        _archive(card, now, record_removal=False)
        return
    reschedule_from(card, now)
    card.last_removed_at = now


def remove_from_queue(card: Card, now: datetime, is_skip: bool = False, to_archive: bool = False) -> Card:
    now = ensure_utc(now)
    if to_archive:
        _archive(card, now, record_removal=True)
        return card

    _require_active(card, "remove from the queue")
    if is_skip:
        card.skip_count += 1
        if card.dynamic_interval and card.skip_enabled:
            _scale_interval(card, resolve_multiplier(card.skip_policy, EventKind.SKIP, card.card_type))
        card.skips.append(now)
        reschedule_from(card, now)
        card.last_removed_at = now
        logger.debug("Skipped card %s, interval now %sh", card.id, card.interval_hours)
        return card

    card.removals.append(now)
    _leave_queue(card, now)
    return card


def skip(card: Card, now: datetime) -> Card:
    return remove_from_queue(card, now, is_skip=True)


def dismiss(card: Card, now: datetime) -> Card:
    """The "next" action. Essential cards are skipped instead of silently dismissed."""
    return remove_from_queue(card, now, is_skip=card.is_essential)


def archive(card: Card, now: datetime) -> Card:
    return remove_from_queue(card, now, to_archive=True)


def unarchive(card: Card, now: datetime) -> Card:
    if not card.archived:
        raise PreconditionError("Cannot unarchive a card that is not archived")
    card.archived = False
    card.next_due_at = ensure_utc(now)
    return card


def submit_rating(card: Card, now: datetime, rating: RatingType) -> Card:
    now = ensure_utc(now)
    _require_active(card, "rate")
    if not rules_for(card.card_type).accepts_ratings:
        raise PreconditionError(f"Only flashcards can be rated, not {card.card_type.value} cards")
    rating = RatingType(rating)
    card.ratings.append(RatingEvent(rating=rating, ts=now))
    if card.dynamic_interval:
        policy = {
            RatingType.EASY: card.rating_easy_policy,
            RatingType.GOOD: card.rating_good_policy,
            RatingType.HARD: card.rating_hard_policy,
        }[rating]
        _scale_interval(card, resolve_multiplier(policy, RATING_EVENTS[rating], card.card_type))
    _leave_queue(card, now)
    logger.debug("Rated card %s %s, interval now %sh", card.id, rating.value, card.interval_hours)
    return card


def mark_complete(card: Card, now: datetime) -> Card:
    now = ensure_utc(now)
    _require_active(card, "complete")
    if not rules_for(card.card_type).can_complete:
        raise PreconditionError(f"Only to-do cards can be completed, not {card.card_type.value} cards")
    card.completions.append(now)
    if card.reset_interval_on_complete:
        set_interval(card, card.initial_interval_hours)
    card.removals.append(now)
    _leave_queue(card, now)
    logger.debug("Completed card %s, next due %s", card.id, card.next_due_at)
    return card


# --- plain setters ---

def toggle_essential(card: Card) -> Card:
    card.is_essential = not card.is_essential
    return card


def toggle_dynamic(card: Card) -> Card:
    card.dynamic_interval = not card.dynamic_interval
    return card


def set_card_type(card: Card, card_type: CardType) -> Card:
    card.card_type = CardType(card_type)
    return card


def move_to_folder(card: Card, folder_id: Optional[str]) -> Card:
    card.folder_id = folder_id
    return card


def set_priority(card: Card, priority: Priority) -> Card:
    card.priority = Priority(priority)
    return card


def set_content(card: Card, content: str) -> Card:
    card.content = content
    return card


def set_back_content(card: Card, back: Optional[str]) -> Card:
    card.back = back
    return card


def set_tags(card: Card, tags: Iterable[str]) -> Card:
    card.tags = normalize_tag_names(tags)
    return card


def set_recurring(card: Card, is_recurring: bool) -> Card:
    card.is_recurring = is_recurring
    return card


def set_skip_enabled(card: Card, enabled: bool) -> Card:
    card.skip_enabled = enabled
    return card


def set_skip_policy(card: Card, policy: RepeatPolicy) -> Card:
    card.skip_policy = RepeatPolicy(policy)
    return card


def set_rating_policies(
    card: Card,
    easy: Optional[RepeatPolicy] = None,
    hard: Optional[RepeatPolicy] = None,
) -> Card:
    if easy is not None:
        card.rating_easy_policy = RepeatPolicy(easy)
    if hard is not None:
        card.rating_hard_policy = RepeatPolicy(hard)
    return card


def set_reset_on_complete(card: Card, enabled: bool) -> Card:
    card.reset_interval_on_complete = enabled
    return card


def apply_update(card: Card, update: CardUpdate) -> Card:
    """Apply the fields present in a partial update through the setters."""
    if update.content is not None:
        set_content(card, update.content)
    if update.back is not None:
        set_back_content(card, update.back)
    if update.card_type is not None:
        set_card_type(card, update.card_type)
    if update.priority is not None:
        set_priority(card, update.priority)
    if update.clear_folder:
        move_to_folder(card, None)
    elif update.folder_id is not None:
        move_to_folder(card, update.folder_id)
    if update.tags is not None:
        set_tags(card, update.tags)
    if update.is_recurring is not None:
        set_recurring(card, update.is_recurring)
    if update.is_essential is not None and update.is_essential != card.is_essential:
        toggle_essential(card)
    if update.dynamic_interval is not None and update.dynamic_interval != card.dynamic_interval:
        toggle_dynamic(card)
    if update.skip_enabled is not None:
        set_skip_enabled(card, update.skip_enabled)
    if update.skip_policy is not None:
        set_skip_policy(card, update.skip_policy)
    set_rating_policies(card, easy=update.rating_easy_policy, hard=update.rating_hard_policy)
    if update.reset_interval_on_complete is not None:
        set_reset_on_complete(card, update.reset_interval_on_complete)
    return card
