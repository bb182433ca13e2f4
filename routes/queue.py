from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from db.database import get_db
from models.card import Card, CardType
from models.folder import NO_FOLDER_ID
from models.queue import QueueFilter, QueueSummary
from models.review import RatingCreate
from utils.lifecycle import ensure_utc
from utils.service import QueueService

router = APIRouter()

# Query value that selects cards without a folder
NO_FOLDER_PARAM = "none"


class QueueActionResult(BaseModel):
    card: Optional[Card] = None


def request_now(now: Optional[datetime] = Query(None, description="Acting time, defaults to the server clock")) -> datetime:
    """The HTTP boundary is the only place the wall clock is read."""
    if now is None:
        return datetime.now(timezone.utc)
    return ensure_utc(now)


def queue_filter_params(
    card_type: list[CardType] = Query(default=[]),
    folder: list[str] = Query(default=[]),
) -> QueueFilter:
    folder_ids = {NO_FOLDER_ID if value == NO_FOLDER_PARAM else value for value in folder}
    return QueueFilter(card_types=set(card_type), folder_ids=folder_ids)


@router.get("", response_model=QueueSummary)
async def fetch_queue(
    now: datetime = Depends(request_now),
    queue_filter: QueueFilter = Depends(queue_filter_params),
    conn = Depends(get_db),
):
    """Due cards (priority first, oldest due first), the next upcoming card and the due count."""
    return QueueService(conn).fetch_queue_cards_and_summary(now, queue_filter)


@router.post("/skip", response_model=QueueActionResult)
async def skip_top_card(
    now: datetime = Depends(request_now),
    queue_filter: QueueFilter = Depends(queue_filter_params),
    conn = Depends(get_db),
):
    return QueueActionResult(card=QueueService(conn).skip_top_card(now, queue_filter))


@router.post("/next", response_model=QueueActionResult)
async def next_top_card(
    now: datetime = Depends(request_now),
    queue_filter: QueueFilter = Depends(queue_filter_params),
    conn = Depends(get_db),
):
    return QueueActionResult(card=QueueService(conn).next_top_card(now, queue_filter))


@router.post("/complete", response_model=QueueActionResult)
async def complete_top_card(
    now: datetime = Depends(request_now),
    queue_filter: QueueFilter = Depends(queue_filter_params),
    conn = Depends(get_db),
):
    """Complete the first to-do in the filtered queue."""
    return QueueActionResult(card=QueueService(conn).complete_top_card(now, queue_filter))


@router.post("/rate", response_model=QueueActionResult)
async def rate_top_flashcard(
    payload: RatingCreate,
    now: datetime = Depends(request_now),
    queue_filter: QueueFilter = Depends(queue_filter_params),
    conn = Depends(get_db),
):
    """Rate the first flashcard in the filtered queue."""
    card = QueueService(conn).rate_top_flashcard(now, payload.rating, queue_filter)
    return QueueActionResult(card=card)
