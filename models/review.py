from pydantic import BaseModel, validator
from datetime import datetime
from enum import Enum


class RatingType(str, Enum):
    EASY = "easy"
    GOOD = "good"
    HARD = "hard"


class RatingCreate(BaseModel):
    rating: RatingType

    @validator('rating', pre=True)
    def normalize_rating(cls, v):
        # Accept "Easy", " hard " etc. from widget intents
        if isinstance(v, str):
            return v.strip().lower()
        return v


class RatingEvent(BaseModel):
    rating: RatingType
    ts: datetime

    class Config:
        from_attributes = True
