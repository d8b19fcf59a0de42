"""
main.py
-------
Entry point for the Tabs vs Spaces voting app.

Responsibilities:
    - Load configuration and initialize the database pool and schema.
    - Build the FastAPI application with the voting routes.
    - Close the pool on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config import APP_HOST, APP_PORT, DatabaseSettings, PoolSettings, load_settings
from db.connection import close_pool, init_pool
from db.init_db import create_tables
from handlers.vote_handler import router as vote_router
from repositories.vote_repo import VoteRepository
from services.vote_service import VoteService
from utils.logger import get_logger

logger = get_logger(__name__)


def create_app(
    settings: Optional[DatabaseSettings] = None,
    tuning: Optional[PoolSettings] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Database settings; read from the environment at startup if omitted.
        tuning: Pool tuning; read from POOL_* variables at startup if omitted.

    Startup fails (and nothing is served) on a ConfigurationError,
    a connection error, or a SchemaVerificationError.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ── 1. Database setup ─────────────────────────────
        logger.info("Initializing database...")
        pool = init_pool(settings or load_settings(), tuning or PoolSettings.from_env())
        try:
            create_tables(pool)
        except Exception:
            close_pool()
            raise

        # ── 2. Wire the vote service ──────────────────────
        app.state.vote_service = VoteService(VoteRepository(pool))
        logger.info("Voting app is ready.")
        yield

        # ── 3. Cleanup on shutdown ────────────────────────
        close_pool()
        logger.info("Voting app stopped.")

    app = FastAPI(title="Tabs vs Spaces", lifespan=lifespan)
    app.include_router(vote_router)
    return app


def main() -> None:
    """Serve the app with uvicorn."""
    import uvicorn

    # log_config=None keeps uvicorn on the handler set up in utils.logger
    uvicorn.run(create_app(), host=APP_HOST, port=APP_PORT, log_config=None)


if __name__ == "__main__":
    main()
