# Routes package __init__.py - re-exports routers for main.py convenience
from .cards import router as cards_router
from .folders import router as folders_router
from .queue import router as queue_router
from .trash import router as trash_router

__all__ = ['cards_router', 'folders_router', 'queue_router', 'trash_router']
