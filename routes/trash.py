from typing import List

from fastapi import APIRouter, Depends, status

from db import repository
from db.database import get_db
from models.card import Card

router = APIRouter()


@router.get("", response_model=List[Card])
async def trash_index(conn = Depends(get_db)):
    """Deleted cards, most recently deleted first."""
    return repository.list_deleted_cards(conn)


@router.post("/{card_id}/restore", response_model=Card)
async def restore_card(card_id: str, conn = Depends(get_db)):
    return repository.restore_card(conn, card_id)


@router.post("/{card_id}/purge", status_code=status.HTTP_204_NO_CONTENT)
async def purge_card(card_id: str, conn = Depends(get_db)):
    repository.purge_card(conn, card_id)
