from typing import List, Optional, Set

from pydantic import BaseModel, Field

from .card import Card, CardType


class QueueFilter(BaseModel):
    """Empty selections mean "all", never "none".

    ``folder_ids`` may contain ``NO_FOLDER_ID`` to select cards without a folder.
    """
    card_types: Set[CardType] = Field(default_factory=set)
    folder_ids: Set[str] = Field(default_factory=set)


class QueueSummary(BaseModel):
    queued: List[Card]
    next_upcoming: Optional[Card] = None
    total_count: int = 0
