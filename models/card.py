import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, validator

from utils.tags import normalize_tag_names

from .review import RatingEvent


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CardType(str, Enum):
    NOTE = "note"
    TODO = "todo"
    FLASHCARD = "flashcard"


class Priority(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Higher rank sorts first in the queue."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.NONE: 0,
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


class RepeatPolicy(str, Enum):
    NONE = "none"
    MILD = "mild"
    AGGRESSIVE = "aggressive"


class CardSort(str, Enum):
    """Orderings offered by the card list."""
    NEXT_DUE = "next_due"
    CREATED = "created"
    SKIP_COUNT = "skip_count"
    SEEN_COUNT = "seen_count"
    CONTENT = "content"


class CardBase(BaseModel):
    card_type: CardType
    content: str
    back: Optional[str] = None
    priority: Priority = Priority.NONE
    folder_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @validator("tags", pre=True)
    def normalize_tags(cls, v):
        return normalize_tag_names(v or [])


class CardCreate(CardBase):
    interval_hours: Optional[int] = None
    next_due_at: Optional[datetime] = None
    is_recurring: bool = True
    is_essential: bool = False
    dynamic_interval: bool = True
    skip_enabled: bool = True
    skip_policy: Optional[RepeatPolicy] = None
    rating_easy_policy: Optional[RepeatPolicy] = None
    rating_hard_policy: Optional[RepeatPolicy] = None
    reset_interval_on_complete: bool = False


class CardUpdate(BaseModel):
    """Partial update; every field maps onto a plain setter."""
    content: Optional[str] = None
    back: Optional[str] = None
    card_type: Optional[CardType] = None
    priority: Optional[Priority] = None
    folder_id: Optional[str] = None
    clear_folder: bool = False
    tags: Optional[List[str]] = None
    is_recurring: Optional[bool] = None
    is_essential: Optional[bool] = None
    dynamic_interval: Optional[bool] = None
    skip_enabled: Optional[bool] = None
    skip_policy: Optional[RepeatPolicy] = None
    rating_easy_policy: Optional[RepeatPolicy] = None
    rating_hard_policy: Optional[RepeatPolicy] = None
    reset_interval_on_complete: Optional[bool] = None


class Card(CardBase):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=utcnow)

    # Scheduling
    interval_hours: int = 240
    initial_interval_hours: int = 240
    next_due_at: datetime = Field(default_factory=utcnow)
    last_removed_at: Optional[datetime] = None
    is_recurring: bool = True
    is_essential: bool = False
    dynamic_interval: bool = True
    skip_enabled: bool = True
    skip_policy: RepeatPolicy = RepeatPolicy.MILD
    rating_easy_policy: RepeatPolicy = RepeatPolicy.MILD
    rating_hard_policy: RepeatPolicy = RepeatPolicy.MILD
    reset_interval_on_complete: bool = False
    archived: bool = False
    # Set while the card sits in the trash
    deleted_at: Optional[datetime] = None

    # Audit trail
    seen_count: int = 0
    skip_count: int = 0
    enqueues: List[datetime] = Field(default_factory=list)
    skips: List[datetime] = Field(default_factory=list)
    removals: List[datetime] = Field(default_factory=list)
    completions: List[datetime] = Field(default_factory=list)
    ratings: List[RatingEvent] = Field(default_factory=list)
    # History rows already in the store per event kind; only the rest is new
    _stored_events: Dict[str, int] = PrivateAttr(default_factory=dict)

    @property
    def rating_good_policy(self) -> RepeatPolicy:
        # A "good" rating keeps the current schedule.
        return RepeatPolicy.NONE

    class Config:
        from_attributes = True
