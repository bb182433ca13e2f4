"""Home-screen widget process.

Runs independently of the web app and talks to it only through the shared
SQLite file: it prints the current top card and performs the widget's
button intents (skip, next, complete, rate) against the filtered queue.
"""
import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from config import load_config
from db.database import get_conn, init_db
from db.repository import PersistenceError
from models.card import Card, CardType
from models.folder import NO_FOLDER_ID
from models.queue import QueueFilter
from models.review import RatingType
from utils.lifecycle import PreconditionError, ensure_utc, hours_until_due
from utils.service import QueueService

logger = logging.getLogger("topqueue.widget")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TopQueue widget")
    parser.add_argument("--db", type=Path, default=None, help="Card store (defaults to ~/.topqueue/topqueue.db)")
    parser.add_argument("--type", dest="card_types", action="append", default=[],
                        choices=[t.value for t in CardType], help="Only show this card type (repeatable)")
    parser.add_argument("--folder", dest="folders", action="append", default=[],
                        help="Only show this folder id, or 'none' for cards without a folder (repeatable)")
    parser.add_argument("--now", type=iso_timestamp, default=None,
                        help="Acting time as ISO 8601 (defaults to the current time)")
    parser.add_argument("--json", action="store_true", help="Print machine-readable output")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("show", help="Show the top card and queue size")
    sub.add_parser("skip", help="Skip the top card")
    sub.add_parser("next", help="Dismiss the top card")
    sub.add_parser("complete", help="Complete the first to-do in the queue")
    rate = sub.add_parser("rate", help="Rate the first flashcard in the queue")
    rate.add_argument("rating", choices=[r.value for r in RatingType])
    return parser


def parse_filter(card_types: List[str], folders: List[str]) -> QueueFilter:
    return QueueFilter(
        card_types={CardType(value) for value in card_types},
        folder_ids={NO_FOLDER_ID if value == "none" else value for value in folders},
    )


def iso_timestamp(raw: str) -> datetime:
    try:
        return ensure_utc(datetime.fromisoformat(raw))
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO 8601 timestamp: {raw!r}")


def describe(card: Optional[Card], now: datetime) -> str:
    if card is None:
        return "All caught up"
    text = f"[{card.card_type.value}] {card.content}"
    if card.archived:
        return f"{text} (archived)"
    hours = hours_until_due(card, now)
    if hours > 0:
        return f"{text} (due in {hours}h)"
    return text


def run(args: argparse.Namespace) -> int:
    queue_filter = parse_filter(args.card_types, args.folders)
    now = args.now or datetime.now(timezone.utc)
    command = args.command or "show"
    init_db(args.db)
    with get_conn(args.db) as conn:
        service = QueueService(conn)
        if command == "show":
            summary = service.fetch_queue_cards_and_summary(now, queue_filter)
            top = summary.queued[0] if summary.queued else None
            if args.json:
                print(json.dumps({
                    "top": top.model_dump(mode="json") if top else None,
                    "next_upcoming": summary.next_upcoming.model_dump(mode="json") if summary.next_upcoming else None,
                    "total_count": summary.total_count,
                }))
            else:
                print(describe(top, now))
                print(f"{summary.total_count} card(s) in queue")
                if top is None and summary.next_upcoming is not None:
                    print(f"Next: {describe(summary.next_upcoming, now)}")
            return 0
        if command == "skip":
            card = service.skip_top_card(now, queue_filter)
        elif command == "next":
            card = service.next_top_card(now, queue_filter)
        elif command == "complete":
            card = service.complete_top_card(now, queue_filter)
        else:
            card = service.rate_top_flashcard(now, RatingType(args.rating), queue_filter)
    if args.json:
        print(json.dumps({"card": card.model_dump(mode="json") if card else None}))
    elif card is None:
        print("Nothing to do")
    else:
        print(f"{command}: {describe(card, now)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = load_config()["logging"]["level"]
    logging.basicConfig(level=getattr(logging, level, logging.INFO))
    try:
        return run(args)
    except PreconditionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except PersistenceError:
        logger.exception("Widget action failed to save")
        return 1


if __name__ == "__main__":
    sys.exit(main())
