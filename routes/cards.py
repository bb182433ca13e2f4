import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from config import load_config
from db import repository
from db.database import get_db
from models.card import Card, CardCreate, CardSort, CardUpdate
from models.review import RatingCreate
from utils import lifecycle
from utils.search import search_cards
from utils.service import QueueService
from utils.transfer import export_cards, import_cards
from .queue import request_now

logger = logging.getLogger(__name__)

router = APIRouter()


class IntervalUpdate(BaseModel):
    interval_hours: int = Field(..., description="New interval; clamped into 1..8760 hours")


class ImportResult(BaseModel):
    imported: int


def _check_folder(conn, folder_id) -> None:
    if folder_id is not None:
        repository.get_folder(conn, folder_id)


@router.post("", response_model=Card, status_code=status.HTTP_201_CREATED)
async def create_card(payload: CardCreate, now: datetime = Depends(request_now), conn = Depends(get_db)):
    if not payload.content or not payload.content.strip():
        raise HTTPException(status_code=400, detail="Content is required")
    _check_folder(conn, payload.folder_id)
    scheduling = load_config()["scheduling"]
    card = lifecycle.build_card(payload, now, scheduling)
    return repository.save_card(conn, card)


@router.get("", response_model=List[Card])
async def list_cards(
    include_archived: bool = Query(True),
    q: Optional[str] = Query(None, description="Text to find in content, answer or tags"),
    tag: List[str] = Query(default=[]),
    sort: Optional[CardSort] = Query(None),
    ascending: bool = Query(True),
    conn = Depends(get_db),
):
    cards = repository.list_cards(conn, include_archived=include_archived)
    return search_cards(cards, query=q, tags=tag, sort=sort, ascending=ascending)


@router.get("/export")
async def export_all_cards(conn = Depends(get_db)) -> List[Dict[str, Any]]:
    folder_names = {folder.id: folder.name for folder in repository.list_folders(conn)}
    return export_cards(repository.list_cards(conn), folder_names)


@router.post("/import", response_model=ImportResult)
async def import_all_cards(
    payload: List[Dict[str, Any]] = Body(...),
    now: datetime = Depends(request_now),
    conn = Depends(get_db),
):
    """Import cards exported by this app or written by hand; missing fields get defaults."""
    def folder_id_for_name(name: str) -> str:
        return repository.get_or_create_folder(conn, name).id

    cards = import_cards(payload, now, folder_id_for_name)
    repository.save_cards(conn, cards)
    logger.info("Imported %d card(s)", len(cards))
    return ImportResult(imported=len(cards))


@router.get("/{card_id}", response_model=Card)
async def get_card(card_id: str, conn = Depends(get_db)):
    return repository.get_card(conn, card_id)


@router.patch("/{card_id}", response_model=Card)
async def update_card(card_id: str, payload: CardUpdate, conn = Depends(get_db)):
    _check_folder(conn, payload.folder_id)
    return QueueService(conn).apply(card_id, lambda card: lifecycle.apply_update(card, payload))


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    """Move the card to the trash."""
    repository.soft_delete_card(conn, card_id, now)


@router.put("/{card_id}/interval", response_model=Card)
async def set_card_interval(
    card_id: str,
    payload: IntervalUpdate,
    now: datetime = Depends(request_now),
    conn = Depends(get_db),
):
    return QueueService(conn).apply(
        card_id, lambda card: lifecycle.override_interval(card, payload.interval_hours, now)
    )


@router.post("/{card_id}/enqueue", response_model=Card)
async def enqueue_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.enqueue_now(card, now))


@router.post("/{card_id}/skip", response_model=Card)
async def skip_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.skip(card, now))


@router.post("/{card_id}/next", response_model=Card)
async def dismiss_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.dismiss(card, now))


@router.post("/{card_id}/complete", response_model=Card)
async def complete_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.mark_complete(card, now))


@router.post("/{card_id}/archive", response_model=Card)
async def archive_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.archive(card, now))


@router.post("/{card_id}/unarchive", response_model=Card)
async def unarchive_card(card_id: str, now: datetime = Depends(request_now), conn = Depends(get_db)):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.unarchive(card, now))


@router.post("/{card_id}/rate", response_model=Card)
async def rate_card(
    card_id: str,
    payload: RatingCreate,
    now: datetime = Depends(request_now),
    conn = Depends(get_db),
):
    return QueueService(conn).apply(card_id, lambda card: lifecycle.submit_rating(card, now, payload.rating))
