from __future__ import annotations

from typing import Iterable, List, Optional

from models.card import Card, CardSort
from utils.lifecycle import ensure_utc
from utils.tags import normalize_tag_names

_SORT_KEYS = {
    CardSort.NEXT_DUE: lambda card: ensure_utc(card.next_due_at),
    CardSort.CREATED: lambda card: ensure_utc(card.created_at),
    CardSort.SKIP_COUNT: lambda card: card.skip_count,
    CardSort.SEEN_COUNT: lambda card: card.seen_count,
    CardSort.CONTENT: lambda card: card.content.lower(),
}


def normalize_search_text(raw: Optional[str]) -> Optional[str]:
    """Lowercased search text, or None when there is nothing to match."""
    if raw is None:
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def card_matches_text(card: Card, term: str) -> bool:
    """Substring match over content, answer and tag names."""
    if term in card.content.lower():
        return True
    if card.back and term in card.back.lower():
        return True
    return any(term in tag for tag in card.tags)


def search_cards(
    cards: Iterable[Card],
    query: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    sort: Optional[CardSort] = None,
    ascending: bool = True,
) -> List[Card]:
    """Filter the card list by text and tags, then order it.

    A card passes the tag filter when it carries any of the requested tags.
    Without ``sort`` the incoming order is kept.
    """
    term = normalize_search_text(query)
    wanted_tags = set(normalize_tag_names(tags or []))
    matched = [
        card
        for card in cards
        if (term is None or card_matches_text(card, term))
        and (not wanted_tags or wanted_tags.intersection(card.tags))
    ]
    if sort is not None:
        key = _SORT_KEYS[CardSort(sort)]
        matched.sort(key=lambda card: (key(card), card.id), reverse=not ascending)
    return matched
