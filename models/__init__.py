from .folder import Folder, FolderCreate, NO_FOLDER_ID
from .card import Card, CardCreate, CardSort, CardUpdate, CardType, Priority, RepeatPolicy
from .review import RatingCreate, RatingEvent, RatingType
from .queue import QueueFilter, QueueSummary

__all__ = [
    'Folder', 'FolderCreate', 'NO_FOLDER_ID',
    'Card', 'CardCreate', 'CardSort', 'CardUpdate', 'CardType', 'Priority', 'RepeatPolicy',
    'RatingCreate', 'RatingEvent', 'RatingType',
    'QueueFilter', 'QueueSummary',
]
