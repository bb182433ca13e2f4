from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from db import repository
from models.card import Card, CardType
from models.queue import QueueFilter, QueueSummary
from models.review import RatingType
from utils import lifecycle
from utils.queue import QueueSelection, select_queue

logger = logging.getLogger(__name__)


class QueueService:
    """Queue reads and card actions against one card store.

    The connection is injected so the app, the widget process and tests each
    work on their own handle.
    """

    def __init__(self, conn):
        self.conn = conn

    def select(self, now: datetime, queue_filter: Optional[QueueFilter] = None) -> QueueSelection:
        cards = repository.list_cards(self.conn, include_archived=False)
        selection = select_queue(cards, now, queue_filter)
        if selection.touched:
            repository.save_cards(self.conn, selection.touched)
        return selection

    def fetch_queue_cards_and_summary(self, now: datetime, queue_filter: Optional[QueueFilter] = None) -> QueueSummary:
        selection = self.select(now, queue_filter)
        return QueueSummary(
            queued=selection.queued,
            next_upcoming=selection.next_upcoming,
            total_count=selection.total_matching,
        )

    def apply(self, card_id: str, action: Callable[[Card], Card]) -> Card:
        """Load a card, run a lifecycle action on it and save the result."""
        card = repository.get_card(self.conn, card_id)
        action(card)
        return repository.save_card(self.conn, card)

    def _top_card(self, now: datetime, queue_filter: Optional[QueueFilter], card_type: Optional[CardType] = None) -> Optional[Card]:
        queued = self.select(now, queue_filter).queued
        if card_type is not None:
            queued = [card for card in queued if card.card_type == card_type]
        return queued[0] if queued else None

    # Widget intents act on the first matching card of the filtered queue and
    # return None when there is nothing to act on.

    def skip_top_card(self, now: datetime, queue_filter: Optional[QueueFilter] = None) -> Optional[Card]:
        card = self._top_card(now, queue_filter)
        if card is None:
            return None
        lifecycle.skip(card, now)
        return repository.save_card(self.conn, card)

    def next_top_card(self, now: datetime, queue_filter: Optional[QueueFilter] = None) -> Optional[Card]:
        card = self._top_card(now, queue_filter)
        if card is None:
            return None
        lifecycle.dismiss(card, now)
        return repository.save_card(self.conn, card)

    def complete_top_card(self, now: datetime, queue_filter: Optional[QueueFilter] = None) -> Optional[Card]:
        card = self._top_card(now, queue_filter, CardType.TODO)
        if card is None:
            return None
        lifecycle.mark_complete(card, now)
        return repository.save_card(self.conn, card)

    def rate_top_flashcard(self, now: datetime, rating: RatingType, queue_filter: Optional[QueueFilter] = None) -> Optional[Card]:
        card = self._top_card(now, queue_filter, CardType.FLASHCARD)
        if card is None:
            return None
        lifecycle.submit_rating(card, now, rating)
        return repository.save_card(self.conn, card)
