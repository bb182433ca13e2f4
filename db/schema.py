# SQL schema for the TopQueue card store

SCHEMA_VERSION = 2

SCHEMA_SQL = """
-- Folders
CREATE TABLE IF NOT EXISTS folders (
    id TEXT PRIMARY KEY,
    name TEXT UNIQUE NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Cards (with scheduling fields)
CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    card_type TEXT NOT NULL CHECK(card_type IN ('note', 'todo', 'flashcard')),
    content TEXT NOT NULL,
    back TEXT,
    priority TEXT NOT NULL DEFAULT 'none' CHECK(priority IN ('none', 'low', 'medium', 'high')),
    folder_id TEXT,
    created_at TEXT NOT NULL,
    interval_hours INTEGER NOT NULL DEFAULT 240 CHECK(interval_hours BETWEEN 1 AND 8760),
    initial_interval_hours INTEGER NOT NULL DEFAULT 240,
    next_due_at TEXT NOT NULL,
    last_removed_at TEXT,
    is_recurring INTEGER NOT NULL DEFAULT 1,
    is_essential INTEGER NOT NULL DEFAULT 0,
    dynamic_interval INTEGER NOT NULL DEFAULT 1,
    skip_enabled INTEGER NOT NULL DEFAULT 1,
    skip_policy TEXT NOT NULL DEFAULT 'mild' CHECK(skip_policy IN ('none', 'mild', 'aggressive')),
    rating_easy_policy TEXT NOT NULL DEFAULT 'mild' CHECK(rating_easy_policy IN ('none', 'mild', 'aggressive')),
    rating_hard_policy TEXT NOT NULL DEFAULT 'mild' CHECK(rating_hard_policy IN ('none', 'mild', 'aggressive')),
    reset_interval_on_complete INTEGER NOT NULL DEFAULT 0,
    archived INTEGER NOT NULL DEFAULT 0,
    seen_count INTEGER NOT NULL DEFAULT 0,
    skip_count INTEGER NOT NULL DEFAULT 0,
    deleted_at TEXT,
    FOREIGN KEY (folder_id) REFERENCES folders (id) ON DELETE SET NULL
);

-- Append-only history per card
CREATE TABLE IF NOT EXISTS card_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    card_id TEXT NOT NULL,
    kind TEXT NOT NULL CHECK(kind IN ('enqueue', 'skip', 'removal', 'completion', 'rating')),
    ts TEXT NOT NULL,
    rating TEXT CHECK(rating IN ('easy', 'good', 'hard')),
    FOREIGN KEY (card_id) REFERENCES cards (id) ON DELETE CASCADE
);

-- Tags
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS card_tags (
    card_id TEXT NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (card_id, tag_id),
    FOREIGN KEY (card_id) REFERENCES cards (id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags (id) ON DELETE CASCADE
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_cards_due ON cards (next_due_at);
CREATE INDEX IF NOT EXISTS idx_cards_folder ON cards (folder_id);
CREATE INDEX IF NOT EXISTS idx_cards_archived ON cards (archived);
CREATE INDEX IF NOT EXISTS idx_cards_deleted ON cards (deleted_at);
CREATE INDEX IF NOT EXISTS idx_card_events_card ON card_events (card_id, kind);
CREATE INDEX IF NOT EXISTS idx_tags_name ON tags (name);
CREATE INDEX IF NOT EXISTS idx_card_tags_card ON card_tags (card_id);
CREATE INDEX IF NOT EXISTS idx_card_tags_tag ON card_tags (tag_id);
"""
