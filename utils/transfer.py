"""JSON export/import of cards.

Import is forgiving: anything missing or malformed falls back to a default
instead of rejecting the whole file.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from models.card import Card, CardType, Priority, RepeatPolicy
from utils.lifecycle import ARCHIVE_SENTINEL, create_card, ensure_utc
from utils.policy import clamp_interval
from utils.tags import normalize_tag_names, parse_tag_names

DEFAULT_IMPORT_INTERVAL_HOURS = 720
UNTITLED = "Untitled"
NO_ANSWER = "(No answer)"

_TYPE_ALIASES = {
    "to-do": CardType.TODO,
    "flash card": CardType.FLASHCARD,
    "plain": CardType.NOTE,
}


def parse_card_type(raw: Any) -> CardType:
    value = str(raw or "").strip().lower()
    if value in _TYPE_ALIASES:
        return _TYPE_ALIASES[value]
    try:
        return CardType(value)
    except ValueError:
        return CardType.TODO


def _parse_enum(enum_cls, raw: Any, default):
    if raw is None:
        return default
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        return default


def _parse_datetime(raw: Any, default: datetime) -> datetime:
    if isinstance(raw, str):
        try:
            return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            return default
    return default


def _parse_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _bool(raw: Any, default: bool) -> bool:
    return raw if isinstance(raw, bool) else default


def export_cards(cards: Iterable[Card], folder_names: Mapping[str, str]) -> List[Dict[str, Any]]:
    exported = []
    for card in cards:
        exported.append(
            {
                "cardType": card.card_type.value,
                "content": card.content,
                "answer": card.back,
                "priority": card.priority.value,
                "isRecurring": card.is_recurring,
                "isEssential": card.is_essential,
                "dynamicInterval": card.dynamic_interval,
                "skipEnabled": card.skip_enabled,
                "skipPolicy": card.skip_policy.value,
                "ratingEasyPolicy": card.rating_easy_policy.value,
                "ratingHardPolicy": card.rating_hard_policy.value,
                "resetRepeatIntervalOnComplete": card.reset_interval_on_complete,
                "repeatInterval": card.interval_hours,
                "initialRepeatInterval": card.initial_interval_hours,
                "createdAt": ensure_utc(card.created_at).isoformat(),
                "nextTimeInQueue": ensure_utc(card.next_due_at).isoformat(),
                "archived": card.archived,
                "folder": folder_names.get(card.folder_id or "", ""),
                "tags": list(card.tags),
            }
        )
    return exported


def import_card(
    data: Mapping[str, Any],
    now: datetime,
    folder_id_for_name: Optional[Callable[[str], Optional[str]]] = None,
) -> Card:
    now = ensure_utc(now)
    card_type = parse_card_type(data.get("cardType"))
    content = data.get("content")
    if not isinstance(content, str) or not content:
        content = UNTITLED
    back = None
    if card_type == CardType.FLASHCARD:
        back = data.get("answer")
        if not isinstance(back, str) or not back:
            back = NO_ANSWER

    repeat_interval = clamp_interval(_parse_int(data.get("repeatInterval"), DEFAULT_IMPORT_INTERVAL_HOURS))
    initial_interval = clamp_interval(_parse_int(data.get("initialRepeatInterval"), repeat_interval))

    folder_id = None
    folder_name = data.get("folder")
    if folder_id_for_name and isinstance(folder_name, str) and folder_name.strip():
        folder_id = folder_id_for_name(folder_name.strip())

    raw_tags = data.get("tags") or []
    tags = parse_tag_names(raw_tags) if isinstance(raw_tags, str) else normalize_tag_names(raw_tags)

    card = create_card(
        card_type=card_type,
        content=content,
        now=_parse_datetime(data.get("createdAt"), now),
        priority=_parse_enum(Priority, data.get("priority"), Priority.NONE),
        initial_interval_hours=initial_interval,
        folder_id=folder_id,
        tags=tags,
        back=back,
        next_due_at=_parse_datetime(data.get("nextTimeInQueue"), now),
        is_recurring=_bool(data.get("isRecurring"), True),
        is_essential=_bool(data.get("isEssential"), False),
        dynamic_interval=_bool(data.get("dynamicInterval"), True),
        skip_enabled=_bool(data.get("skipEnabled"), True),
        skip_policy=_parse_enum(RepeatPolicy, data.get("skipPolicy"), RepeatPolicy.MILD),
        rating_easy_policy=_parse_enum(RepeatPolicy, data.get("ratingEasyPolicy"), RepeatPolicy.MILD),
        rating_hard_policy=_parse_enum(RepeatPolicy, data.get("ratingHardPolicy"), RepeatPolicy.MILD),
        reset_interval_on_complete=_bool(data.get("resetRepeatIntervalOnComplete"), False),
    )
    card.interval_hours = repeat_interval
    if _bool(data.get("archived"), False):
        card.archived = True
        card.next_due_at = ARCHIVE_SENTINEL
    return card


def import_cards(
    payload: Iterable[Mapping[str, Any]],
    now: datetime,
    folder_id_for_name: Optional[Callable[[str], Optional[str]]] = None,
) -> List[Card]:
    return [
        import_card(item, now, folder_id_for_name)
        for item in payload
        if isinstance(item, Mapping)
    ]
