from datetime import datetime, timedelta, timezone

import pytest

from models.card import CardType, CardUpdate, Priority, RepeatPolicy
from models.review import RatingType
from utils import lifecycle
from utils.lifecycle import ARCHIVE_SENTINEL, PreconditionError
from utils.queue import select_queue

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _card(card_type=CardType.TODO, interval=240, **settings):
    return lifecycle.create_card(card_type, "Water the plants", NOW, initial_interval_hours=interval, **settings)


def test_create_card_defaults():
    card = lifecycle.create_card(
        CardType.FLASHCARD,
        "Capital of France?",
        NOW,
        priority=Priority.HIGH,
        initial_interval_hours=48,
        tags=["Geo", "geo ", "europe"],
        back="Paris",
    )
    assert card.next_due_at == NOW
    assert card.created_at == NOW
    assert card.interval_hours == card.initial_interval_hours == 48
    assert card.tags == ["geo", "europe"]
    assert card.seen_count == card.skip_count == 0
    assert not card.archived
    assert card.enqueues == card.skips == card.removals == card.completions == []


def test_create_card_clamps_initial_interval():
    assert _card(interval=0).interval_hours == 1
    assert _card(interval=100000).initial_interval_hours == 8760


@pytest.mark.parametrize(
    "start, multiplier, expected",
    [(240, 1.5, 360), (360, 0.5, 180), (1, 0.0, 1), (9000, 2.0, 8760)],
)
def test_adjust_interval(start, multiplier, expected):
    card = _card()
    card.interval_hours = start
    lifecycle.adjust_interval(card, multiplier)
    assert card.interval_hours == expected


def test_adjust_interval_stays_in_range():
    for hours in (1, 2, 23, 240, 4000, 8760):
        for multiplier in (-3.0, 0.0, 0.001, 0.5, 1.0, 1.7, 40.0, 1e9):
            card = _card()
            card.interval_hours = hours
            lifecycle.adjust_interval(card, multiplier)
            assert 1 <= card.interval_hours <= 8760


def test_adjust_interval_does_not_move_due_time():
    card = _card()
    due = card.next_due_at
    lifecycle.adjust_interval(card, 2.0)
    assert card.next_due_at == due


def test_adjust_interval_rejects_archived_card():
    card = lifecycle.archive(_card(), NOW)
    with pytest.raises(PreconditionError):
        lifecycle.adjust_interval(card, 2.0)


def test_set_interval_clamps():
    card = _card()
    assert lifecycle.set_interval(card, 0).interval_hours == 1
    assert lifecycle.set_interval(card, 10**6).interval_hours == 8760
    assert lifecycle.set_interval(card, 72).interval_hours == 72


def test_reschedule_from_anchor():
    card = _card(interval=5)
    anchor = NOW + timedelta(days=3)
    lifecycle.reschedule_from(card, anchor)
    assert card.next_due_at == anchor + timedelta(hours=5)


def test_enqueue_now_keeps_interval():
    card = _card()
    lifecycle.dismiss(card, NOW)
    later = NOW + timedelta(hours=2)
    lifecycle.enqueue_now(card, later)
    assert card.next_due_at == later
    assert card.interval_hours == 240


def test_aggressive_skip_halves_interval():
    card = _card(skip_policy=RepeatPolicy.AGGRESSIVE)
    lifecycle.remove_from_queue(card, NOW, is_skip=True, to_archive=False)
    assert card.interval_hours == 120
    assert card.next_due_at == NOW + timedelta(hours=120)
    assert card.next_due_at != NOW
    assert card.skip_count == 1
    assert card.skips == [NOW]
    assert card.last_removed_at == NOW
    assert card.removals == []


def test_skip_note_pushes_it_later():
    card = _card(CardType.NOTE, skip_policy=RepeatPolicy.AGGRESSIVE)
    lifecycle.skip(card, NOW)
    assert card.interval_hours == 480


def test_skip_without_adjustment_when_disabled():
    disabled = _card(skip_enabled=False, skip_policy=RepeatPolicy.AGGRESSIVE)
    static = _card(dynamic_interval=False, skip_policy=RepeatPolicy.AGGRESSIVE)
    for card in (disabled, static):
        lifecycle.skip(card, NOW)
        assert card.interval_hours == 240
        assert card.skip_count == 1
        assert card.next_due_at == NOW + timedelta(hours=240)


def test_skip_with_minimum_interval_never_stays_due():
    card = _card(interval=1, skip_policy=RepeatPolicy.AGGRESSIVE)
    lifecycle.skip(card, NOW)
    assert card.interval_hours == 1
    assert card.next_due_at > NOW


def test_archive_uses_sentinel_and_leaves_queue():
    card = _card(folder_id=None)
    lifecycle.remove_from_queue(card, NOW, is_skip=False, to_archive=True)
    assert card.archived
    assert card.next_due_at == ARCHIVE_SENTINEL
    assert card.removals == [NOW]
    assert card.last_removed_at == NOW
    selection = select_queue([card], datetime(9999, 12, 31, 23, tzinfo=timezone.utc))
    assert selection.queued == []
    assert selection.next_upcoming is None


def test_dismiss_recurring_card_reschedules():
    card = _card()
    lifecycle.dismiss(card, NOW)
    assert not card.archived
    assert card.removals == [NOW]
    assert card.interval_hours == 240
    assert card.next_due_at == NOW + timedelta(hours=240)
    assert card.last_removed_at == NOW


def test_dismiss_one_shot_card_archives_it():
    card = _card(is_recurring=False)
    lifecycle.dismiss(card, NOW)
    assert card.archived
    assert card.next_due_at == ARCHIVE_SENTINEL
    assert card.removals == [NOW]


def test_dismiss_essential_card_counts_as_skip():
    card = _card(is_essential=True, skip_policy=RepeatPolicy.MILD)
    lifecycle.dismiss(card, NOW)
    assert card.skip_count == 1
    assert card.removals == []
    assert card.interval_hours == 180


def test_good_rating_keeps_schedule():
    card = _card(CardType.FLASHCARD, rating_easy_policy=RepeatPolicy.AGGRESSIVE,
                 rating_hard_policy=RepeatPolicy.AGGRESSIVE)
    lifecycle.submit_rating(card, NOW, RatingType.GOOD)
    assert card.interval_hours == 240
    assert card.next_due_at == NOW + timedelta(hours=240)
    assert [event.rating for event in card.ratings] == [RatingType.GOOD]
    assert card.ratings[0].ts == NOW


def test_easy_and_hard_ratings():
    easy = _card(CardType.FLASHCARD, rating_easy_policy=RepeatPolicy.MILD)
    hard = _card(CardType.FLASHCARD, rating_hard_policy=RepeatPolicy.AGGRESSIVE)
    lifecycle.submit_rating(easy, NOW, RatingType.EASY)
    lifecycle.submit_rating(hard, NOW, RatingType.HARD)
    assert easy.interval_hours == 320
    assert hard.interval_hours == 120
    assert hard.next_due_at == NOW + timedelta(hours=120)


def test_rating_ignores_policy_when_not_dynamic():
    card = _card(CardType.FLASHCARD, dynamic_interval=False, rating_hard_policy=RepeatPolicy.AGGRESSIVE)
    lifecycle.submit_rating(card, NOW, RatingType.HARD)
    assert card.interval_hours == 240
    assert len(card.ratings) == 1


def test_rating_one_shot_flashcard_archives_it():
    card = _card(CardType.FLASHCARD, is_recurring=False)
    lifecycle.submit_rating(card, NOW, RatingType.EASY)
    assert card.archived


def test_rating_requires_active_flashcard():
    with pytest.raises(PreconditionError):
        lifecycle.submit_rating(_card(CardType.TODO), NOW, RatingType.EASY)
    with pytest.raises(PreconditionError):
        lifecycle.submit_rating(_card(CardType.NOTE), NOW, RatingType.GOOD)
    archived = lifecycle.archive(_card(CardType.FLASHCARD), NOW)
    with pytest.raises(PreconditionError):
        lifecycle.submit_rating(archived, NOW, RatingType.GOOD)


def test_complete_todo_resets_interval():
    card = _card(reset_interval_on_complete=True)
    lifecycle.set_interval(card, 60)
    lifecycle.mark_complete(card, NOW)
    assert card.interval_hours == 240
    assert card.completions == [NOW]
    assert card.removals == [NOW]
    assert card.next_due_at == NOW + timedelta(hours=240)


def test_complete_todo_keeps_drifted_interval_without_reset():
    card = _card()
    lifecycle.set_interval(card, 60)
    lifecycle.mark_complete(card, NOW)
    assert card.interval_hours == 60
    assert card.next_due_at == NOW + timedelta(hours=60)


def test_complete_requires_todo():
    with pytest.raises(PreconditionError):
        lifecycle.mark_complete(_card(CardType.NOTE), NOW)


def test_archive_then_unarchive_round_trip():
    card = _card()
    lifecycle.skip(card, NOW)
    interval = card.interval_hours
    lifecycle.archive(card, NOW + timedelta(hours=1))
    later = NOW + timedelta(days=2)
    assert select_queue([card], later).queued == []
    lifecycle.unarchive(card, later)
    assert not card.archived
    assert card.interval_hours == interval
    assert select_queue([card], later).queued == [card]


def test_unarchive_rejects_active_card():
    card = _card()
    with pytest.raises(PreconditionError):
        lifecycle.unarchive(card, NOW)
    assert card.next_due_at == NOW


def test_override_interval_reprojects_waiting_card():
    card = _card()
    lifecycle.dismiss(card, NOW)
    lifecycle.override_interval(card, 48, NOW + timedelta(hours=1))
    assert card.interval_hours == 48
    assert card.next_due_at == NOW + timedelta(hours=48)


def test_override_interval_leaves_due_card_due():
    card = _card()
    lifecycle.override_interval(card, 48, NOW + timedelta(hours=1))
    assert card.interval_hours == 48
    assert card.next_due_at == NOW


def test_override_interval_rejects_archived_card():
    card = lifecycle.archive(_card(), NOW)
    with pytest.raises(PreconditionError):
        lifecycle.override_interval(card, 48, NOW + timedelta(hours=1))
    assert card.interval_hours == 240


def test_setters_and_update():
    card = _card()
    lifecycle.toggle_essential(card)
    lifecycle.toggle_dynamic(card)
    assert card.is_essential
    assert not card.dynamic_interval
    lifecycle.apply_update(
        card,
        CardUpdate(
            content="Repot the plants",
            card_type=CardType.NOTE,
            priority=Priority.MEDIUM,
            folder_id="f1",
            tags=["Home", "home"],
            dynamic_interval=True,
            skip_policy=RepeatPolicy.NONE,
            rating_hard_policy=RepeatPolicy.AGGRESSIVE,
        ),
    )
    assert card.content == "Repot the plants"
    assert card.card_type == CardType.NOTE
    assert card.priority == Priority.MEDIUM
    assert card.folder_id == "f1"
    assert card.tags == ["home"]
    assert card.dynamic_interval
    assert card.is_essential
    assert card.skip_policy == RepeatPolicy.NONE
    assert card.rating_hard_policy == RepeatPolicy.AGGRESSIVE
    assert card.rating_easy_policy == RepeatPolicy.MILD
    lifecycle.apply_update(card, CardUpdate(clear_folder=True))
    assert card.folder_id is None


def test_naive_timestamps_are_treated_as_utc():
    card = _card()
    lifecycle.dismiss(card, datetime(2025, 1, 1, 12, 0))
    assert card.next_due_at == NOW + timedelta(hours=240)
