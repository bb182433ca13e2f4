import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from db.repository import CardNotFoundError, FolderNotFoundError, PersistenceError
from config import load_config
from routes import cards, folders, queue, trash  # Import routers
from utils.lifecycle import PreconditionError

logger = logging.getLogger("topqueue")

app = FastAPI(title="TopQueue", description="Adaptive review queue for notes, to-dos and flashcards")

# Include routers
app.include_router(queue.router, prefix="/queue", tags=["queue"])
app.include_router(cards.router, prefix="/cards", tags=["cards"])
app.include_router(folders.router, prefix="/folders", tags=["folders"])
app.include_router(trash.router, prefix="/trash", tags=["trash"])


@app.exception_handler(PreconditionError)
async def precondition_error_handler(request: Request, exc: PreconditionError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(CardNotFoundError)
@app.exception_handler(FolderNotFoundError)
async def not_found_handler(request: Request, exc: LookupError):
    return JSONResponse(status_code=404, content={"detail": str(exc.args[0]) if exc.args else "Not found"})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Save failed for %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Could not save the change"})


@app.get("/health")
async def health():
    return {"status": "ok"}


def configure_logging(config: dict) -> None:
    level = config.get("logging", {}).get("level", "INFO")
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    configure_logging(load_config())  # Ensures config exists
    init_db()
    yield

app.router.lifespan_context = lifespan  # For auto init on start

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="TopQueue App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print("DB initialized and config copied to ~/.topqueue/")
        sys.exit(0)
    uvicorn.run("main:app", host="127.0.0.1", port=args.port, reload=args.dev, log_level="info")
