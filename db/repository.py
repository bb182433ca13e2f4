"""Row <-> model mapping for cards and folders.

Every function takes an open connection; nothing here holds state between calls.
"""
from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from models.card import Card
from models.folder import Folder
from utils.lifecycle import ensure_utc
from utils.tags import get_tags_for_cards, set_card_tags

logger = logging.getLogger(__name__)

CARD_COLUMNS = (
    "id",
    "card_type",
    "content",
    "back",
    "priority",
    "folder_id",
    "created_at",
    "interval_hours",
    "initial_interval_hours",
    "next_due_at",
    "last_removed_at",
    "is_recurring",
    "is_essential",
    "dynamic_interval",
    "skip_enabled",
    "skip_policy",
    "rating_easy_policy",
    "rating_hard_policy",
    "reset_interval_on_complete",
    "archived",
    "seen_count",
    "skip_count",
    "deleted_at",
)

# card_events.kind -> Card list attribute
EVENT_LISTS = {
    "enqueue": "enqueues",
    "skip": "skips",
    "removal": "removals",
    "completion": "completions",
}


class PersistenceError(RuntimeError):
    """Saving to the card store failed."""


class CardNotFoundError(LookupError):
    pass


class FolderNotFoundError(LookupError):
    pass


def _ts(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def _card_values(card: Card) -> tuple:
    return (
        card.id,
        card.card_type.value,
        card.content,
        card.back,
        card.priority.value,
        card.folder_id,
        _ts(card.created_at),
        card.interval_hours,
        card.initial_interval_hours,
        _ts(card.next_due_at),
        _ts(card.last_removed_at),
        int(card.is_recurring),
        int(card.is_essential),
        int(card.dynamic_interval),
        int(card.skip_enabled),
        card.skip_policy.value,
        card.rating_easy_policy.value,
        card.rating_hard_policy.value,
        int(card.reset_interval_on_complete),
        int(card.archived),
        card.seen_count,
        card.skip_count,
        _ts(card.deleted_at),
    )


def _fetch_events(conn, card_ids: List[str]) -> Dict[str, Dict[str, list]]:
    if not card_ids:
        return {}
    placeholders = ",".join("?" for _ in card_ids)
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT card_id, kind, ts, rating
        FROM card_events
        WHERE card_id IN ({placeholders})
        ORDER BY id
        """,
        card_ids,
    )
    events: Dict[str, Dict[str, list]] = defaultdict(lambda: defaultdict(list))
    for row in cursor.fetchall():
        if row["kind"] == "rating":
            events[row["card_id"]]["ratings"].append({"rating": row["rating"], "ts": row["ts"]})
        else:
            events[row["card_id"]][EVENT_LISTS[row["kind"]]].append(row["ts"])
    return events


def _event_counts(card: Card) -> Dict[str, int]:
    counts = {kind: len(getattr(card, attr)) for kind, attr in EVENT_LISTS.items()}
    counts["rating"] = len(card.ratings)
    return counts


def _rows_to_cards(conn, rows) -> List[Card]:
    records = [dict(row) for row in rows]
    ids = [record["id"] for record in records]
    tags = get_tags_for_cards(conn, ids)
    events = _fetch_events(conn, ids)
    cards = []
    for record in records:
        record["tags"] = tags.get(record["id"], [])
        record.update(events.get(record["id"], {}))
        card = Card(**record)
        card._stored_events = _event_counts(card)
        cards.append(card)
    return cards


def list_cards(conn, include_archived: bool = True, include_deleted: bool = False) -> List[Card]:
    clauses = []
    if not include_archived:
        clauses.append("archived = 0")
    if not include_deleted:
        clauses.append("deleted_at IS NULL")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cursor = conn.cursor()
    cursor.execute(f"SELECT * FROM cards {where} ORDER BY created_at, id")
    return _rows_to_cards(conn, cursor.fetchall())


def get_card(conn, card_id: str, include_deleted: bool = False) -> Card:
    cursor = conn.cursor()
    query = "SELECT * FROM cards WHERE id = ?"
    if not include_deleted:
        query += " AND deleted_at IS NULL"
    cursor.execute(query, (card_id,))
    rows = cursor.fetchall()
    if not rows:
        raise CardNotFoundError(f"Card {card_id} not found")
    return _rows_to_cards(conn, rows)[0]


def _write_card(cursor, card: Card) -> None:
    placeholders = ",".join("?" for _ in CARD_COLUMNS)
    # deleted_at only changes through the trash functions below
    updates = ",".join(
        f"{column} = excluded.{column}" for column in CARD_COLUMNS[1:] if column != "deleted_at"
    )
    cursor.execute(
        f"""
        INSERT INTO cards ({",".join(CARD_COLUMNS)}) VALUES ({placeholders})
        ON CONFLICT(id) DO UPDATE SET {updates}
        """,
        _card_values(card),
    )
    # Only events recorded since this copy was loaded are new; another process
    # may have appended its own rows in the meantime.
    stored = card._stored_events
    new_events = []
    for kind, attr in EVENT_LISTS.items():
        for ts in getattr(card, attr)[stored.get(kind, 0):]:
            new_events.append((card.id, kind, _ts(ts), None))
    for event in card.ratings[stored.get("rating", 0):]:
        new_events.append((card.id, "rating", _ts(event.ts), event.rating.value))
    if new_events:
        cursor.executemany(
            "INSERT INTO card_events (card_id, kind, ts, rating) VALUES (?, ?, ?, ?)",
            new_events,
        )
    set_card_tags(cursor.connection, card.id, card.tags)


def save_cards(conn, cards: Iterable[Card]) -> None:
    """Persist cards in one transaction.

    The card row is last write wins; history rows are only ever appended.
    """
    cards = list(cards)
    if not cards:
        return
    cursor = conn.cursor()
    try:
        for card in cards:
            _write_card(cursor, card)
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise PersistenceError(f"Failed to save {len(cards)} card(s): {exc}") from exc
    for card in cards:
        card._stored_events = _event_counts(card)


def save_card(conn, card: Card) -> Card:
    save_cards(conn, [card])
    return card


# --- trash ---

def soft_delete_card(conn, card_id: str, now: datetime) -> None:
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE cards SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
        (_ts(now), card_id),
    )
    if cursor.rowcount == 0:
        raise CardNotFoundError(f"Card {card_id} not found")
    conn.commit()


def list_deleted_cards(conn) -> List[Card]:
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM cards WHERE deleted_at IS NOT NULL ORDER BY deleted_at DESC, id")
    return _rows_to_cards(conn, cursor.fetchall())


def restore_card(conn, card_id: str) -> Card:
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE cards SET deleted_at = NULL WHERE id = ? AND deleted_at IS NOT NULL",
        (card_id,),
    )
    if cursor.rowcount == 0:
        raise CardNotFoundError(f"Card {card_id} is not in the trash")
    conn.commit()
    return get_card(conn, card_id)


def purge_card(conn, card_id: str) -> None:
    """Permanently remove a trashed card with its history and tags."""
    cursor = conn.cursor()
    cursor.execute("DELETE FROM cards WHERE id = ? AND deleted_at IS NOT NULL", (card_id,))
    if cursor.rowcount == 0:
        raise CardNotFoundError(f"Card {card_id} is not in the trash")
    cursor.execute("DELETE FROM card_events WHERE card_id = ?", (card_id,))
    cursor.execute("DELETE FROM card_tags WHERE card_id = ?", (card_id,))
    conn.commit()
    logger.info("Purged card %s", card_id)


# --- folders ---

def list_folders(conn) -> List[Folder]:
    cursor = conn.cursor()
    cursor.execute("SELECT id, name FROM folders ORDER BY name")
    return [Folder(**dict(row)) for row in cursor.fetchall()]


def get_folder(conn, folder_id: str) -> Folder:
    cursor = conn.cursor()
    cursor.execute("SELECT id, name FROM folders WHERE id = ?", (folder_id,))
    row = cursor.fetchone()
    if not row:
        raise FolderNotFoundError(f"Folder {folder_id} not found")
    return Folder(**dict(row))


def get_folder_by_name(conn, name: str) -> Optional[Folder]:
    cursor = conn.cursor()
    cursor.execute("SELECT id, name FROM folders WHERE name = ?", (name,))
    row = cursor.fetchone()
    return Folder(**dict(row)) if row else None


def create_folder(conn, name: str) -> Folder:
    folder = Folder(name=name.strip())
    cursor = conn.cursor()
    cursor.execute("INSERT INTO folders (id, name) VALUES (?, ?)", (folder.id, folder.name))
    conn.commit()
    return folder


def get_or_create_folder(conn, name: str) -> Folder:
    return get_folder_by_name(conn, name.strip()) or create_folder(conn, name)


def delete_folder(conn, folder_id: str) -> int:
    """Delete a folder and point its cards at "no folder". Returns the number of cards moved."""
    cursor = conn.cursor()
    cursor.execute("UPDATE cards SET folder_id = NULL WHERE folder_id = ?", (folder_id,))
    moved = cursor.rowcount
    cursor.execute("DELETE FROM folders WHERE id = ?", (folder_id,))
    if cursor.rowcount == 0:
        conn.rollback()
        raise FolderNotFoundError(f"Folder {folder_id} not found")
    conn.commit()
    logger.info("Deleted folder %s, moved %d card(s) to no folder", folder_id, moved)
    return moved
