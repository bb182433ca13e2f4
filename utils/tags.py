from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence


_TAG_SPLIT_RE = re.compile(r"[,\n]+")


def normalize_tag_names(names: Iterable[str]) -> List[str]:
    seen = set()
    tags: List[str] = []
    for part in names:
        name = str(part).strip()
        if not name:
            continue
        normalized = name.lower()
        if normalized in seen:
            continue
        seen.add(normalized)
        tags.append(normalized)
    return tags


def parse_tag_names(raw: str) -> List[str]:
    if not raw:
        return []
    return normalize_tag_names(_TAG_SPLIT_RE.split(raw))


def upsert_tags(conn, tag_names: Iterable[str]) -> List[int]:
    names = list(tag_names)
    if not names:
        return []
    cursor = conn.cursor()
    cursor.executemany(
        "INSERT OR IGNORE INTO tags (name) VALUES (?)",
        [(name,) for name in names],
    )
    placeholders = ",".join("?" for _ in names)
    cursor.execute(
        f"SELECT id, name FROM tags WHERE name IN ({placeholders})",
        names,
    )
    id_map = {row["name"]: row["id"] for row in cursor.fetchall()}
    return [id_map[name] for name in names if name in id_map]


def set_card_tags(conn, card_id: str, tag_names: Iterable[str]) -> None:
    cursor = conn.cursor()
    cursor.execute("DELETE FROM card_tags WHERE card_id = ?", (card_id,))
    tag_ids = upsert_tags(conn, normalize_tag_names(tag_names))
    if not tag_ids:
        return
    cursor.executemany(
        "INSERT OR IGNORE INTO card_tags (card_id, tag_id) VALUES (?, ?)",
        [(card_id, tag_id) for tag_id in tag_ids],
    )


def get_tags_for_cards(conn, card_ids: Sequence[str]) -> Dict[str, List[str]]:
    """Tag names per card id, alphabetical. Cards without tags are absent."""
    if not card_ids:
        return {}
    placeholders = ",".join("?" for _ in card_ids)
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT ct.card_id, t.name
        FROM card_tags ct
        JOIN tags t ON t.id = ct.tag_id
        WHERE ct.card_id IN ({placeholders})
        ORDER BY t.name
        """,
        list(card_ids),
    )
    tags: Dict[str, List[str]] = defaultdict(list)
    for row in cursor.fetchall():
        tags[row["card_id"]].append(row["name"])
    return dict(tags)


def get_card_tags(conn, card_id: str) -> List[str]:
    return get_tags_for_cards(conn, [card_id]).get(card_id, [])
