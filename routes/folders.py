import sqlite3
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from db import repository
from db.database import get_db
from models.folder import Folder, FolderCreate

router = APIRouter()


class FolderDeleted(BaseModel):
    moved_cards: int


@router.get("", response_model=List[Folder])
async def list_folders(conn = Depends(get_db)):
    return repository.list_folders(conn)


@router.post("", response_model=Folder, status_code=status.HTTP_201_CREATED)
async def create_folder(payload: FolderCreate, conn = Depends(get_db)):
    """Create new folder in DB."""
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    try:
        return repository.create_folder(conn, payload.name)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=400, detail="Folder with this name already exists")


@router.delete("/{folder_id}", response_model=FolderDeleted)
async def delete_folder(folder_id: str, conn = Depends(get_db)):
    """Delete a folder; its cards move to "no folder"."""
    return FolderDeleted(moved_cards=repository.delete_folder(conn, folder_id))
