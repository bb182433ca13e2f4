from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from models.card import Card
from models.folder import NO_FOLDER_ID
from models.queue import QueueFilter
from utils.lifecycle import ensure_utc


@dataclass
class QueueSelection:
    queued: List[Card]
    next_upcoming: Optional[Card]
    total_matching: int
    # Cards whose seen-count bookkeeping changed and need saving
    touched: List[Card] = field(default_factory=list)


def matches_filter(card: Card, queue_filter: QueueFilter) -> bool:
    if queue_filter.card_types and card.card_type not in queue_filter.card_types:
        return False
    if queue_filter.folder_ids:
        folder_key = card.folder_id or NO_FOLDER_ID
        if folder_key not in queue_filter.folder_ids:
            return False
    return True


def queue_sort_key(card: Card):
    return (-card.priority.rank, ensure_utc(card.next_due_at), card.id)


def record_enqueue_if_new(card: Card, now: datetime) -> bool:
    """Count a sighting the first time a card is seen during its current due period."""
    last_enqueue = card.enqueues[-1] if card.enqueues else None
    if last_enqueue is not None and ensure_utc(last_enqueue) >= ensure_utc(card.next_due_at):
        return False
    card.seen_count += 1
    card.enqueues.append(now)
    return True


def select_queue(cards: Iterable[Card], now: datetime, queue_filter: Optional[QueueFilter] = None) -> QueueSelection:
    now = ensure_utc(now)
    queue_filter = queue_filter or QueueFilter()
    queued: List[Card] = []
    upcoming: List[Card] = []
    for card in cards:
        if card.archived or card.deleted_at is not None or not matches_filter(card, queue_filter):
            continue
        if ensure_utc(card.next_due_at) <= now:
            queued.append(card)
        else:
            upcoming.append(card)
    queued.sort(key=queue_sort_key)
    next_upcoming = min(upcoming, key=lambda c: (ensure_utc(c.next_due_at), c.id)) if upcoming else None
    touched = [card for card in queued if record_enqueue_if_new(card, now)]
    return QueueSelection(
        queued=queued,
        next_upcoming=next_upcoming,
        total_matching=len(queued),
        touched=touched,
    )
