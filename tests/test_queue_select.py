from datetime import datetime, timedelta, timezone

from models.card import CardType, Priority
from models.folder import NO_FOLDER_ID
from models.queue import QueueFilter
from utils import lifecycle
from utils.queue import select_queue

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _card(content, due_hours_ago=1, card_type=CardType.TODO, priority=Priority.NONE, folder_id=None):
    return lifecycle.create_card(
        card_type,
        content,
        NOW - timedelta(days=30),
        priority=priority,
        folder_id=folder_id,
        next_due_at=NOW - timedelta(hours=due_hours_ago),
    )


def test_priority_then_oldest_due_first():
    low_old = _card("low old", due_hours_ago=50, priority=Priority.LOW)
    high_recent = _card("high recent", due_hours_ago=1, priority=Priority.HIGH)
    none_oldest = _card("none oldest", due_hours_ago=500)
    low_recent = _card("low recent", due_hours_ago=2, priority=Priority.LOW)

    selection = select_queue([low_old, none_oldest, low_recent, high_recent], NOW)

    assert [card.content for card in selection.queued] == [
        "high recent",
        "low old",
        "low recent",
        "none oldest",
    ]
    assert selection.total_matching == 4


def test_due_boundary_is_inclusive():
    exactly_due = _card("exactly due", due_hours_ago=0)
    future = _card("future", due_hours_ago=-3)
    selection = select_queue([exactly_due, future], NOW)
    assert selection.queued == [exactly_due]
    assert selection.next_upcoming is future


def test_next_upcoming_is_soonest_future_card():
    later = _card("later", due_hours_ago=-48)
    sooner = _card("sooner", due_hours_ago=-2)
    archived = lifecycle.archive(_card("archived", due_hours_ago=-1), NOW)
    selection = select_queue([later, archived, sooner], NOW)
    assert selection.queued == []
    assert selection.total_matching == 0
    assert selection.next_upcoming is sooner


def test_archived_cards_never_queue():
    card = _card("gone")
    lifecycle.archive(card, NOW)
    selection = select_queue([card], NOW + timedelta(days=3650))
    assert selection.queued == []
    assert selection.next_upcoming is None


def test_deleted_cards_never_queue():
    card = _card("trashed")
    card.deleted_at = NOW
    selection = select_queue([card], NOW)
    assert selection.queued == []
    assert selection.total_matching == 0
    assert selection.next_upcoming is None


def test_filter_by_card_type():
    todo = _card("todo")
    note = _card("note", card_type=CardType.NOTE)
    flash = _card("flash", card_type=CardType.FLASHCARD)
    selection = select_queue(
        [todo, note, flash], NOW, QueueFilter(card_types={CardType.NOTE, CardType.FLASHCARD})
    )
    assert {card.content for card in selection.queued} == {"note", "flash"}


def test_filter_by_folder_including_no_folder():
    work = _card("work", folder_id="folder-work")
    home = _card("home", folder_id="folder-home")
    loose = _card("loose")

    only_work = select_queue([work, home, loose], NOW, QueueFilter(folder_ids={"folder-work"}))
    assert only_work.queued == [work]

    loose_and_home = select_queue(
        [work, home, loose], NOW, QueueFilter(folder_ids={NO_FOLDER_ID, "folder-home"})
    )
    assert {card.content for card in loose_and_home.queued} == {"home", "loose"}


def test_empty_filter_means_everything():
    cards = [_card("a"), _card("b", card_type=CardType.NOTE), _card("c", folder_id="x")]
    assert len(select_queue(cards, NOW, QueueFilter()).queued) == 3


def test_filter_applies_to_next_upcoming():
    note = _card("note", card_type=CardType.NOTE, due_hours_ago=-1)
    todo = _card("todo", due_hours_ago=-5)
    selection = select_queue([note, todo], NOW, QueueFilter(card_types={CardType.TODO}))
    assert selection.next_upcoming is todo


def test_seen_count_is_idempotent_within_a_due_period():
    card = _card("water plants")

    first = select_queue([card], NOW)
    second = select_queue([card], NOW + timedelta(minutes=5))

    assert card.seen_count == 1
    assert card.enqueues == [NOW]
    assert first.touched == [card]
    assert second.touched == []


def test_seen_count_advances_after_card_returns():
    card = _card("water plants")
    select_queue([card], NOW)
    lifecycle.dismiss(card, NOW)

    select_queue([card], NOW + timedelta(hours=1))
    assert card.seen_count == 1

    back_again = card.next_due_at + timedelta(minutes=1)
    select_queue([card], back_again)
    assert card.seen_count == 2
    assert card.enqueues == [NOW, back_again]
