import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from students_crud.api.router import api_router
from students_crud.core.config import settings
from students_crud.core.database import (
    create_engine_from_settings,
    create_session_maker,
    init_db,
)
from students_crud.core.handlers import register_exception_handlers
from students_crud.core.middleware import CancelOnDisconnectMiddleware
from students_crud.services.student.storage import StudentStorage
from students_crud.services.student.student import StudentStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the record store from settings before serving any request.

    Any failure here aborts startup, so the server exits instead of running
    without a working database.
    """
    engine = create_engine_from_settings(settings)
    try:
        await init_db(
            engine,
            run_migrations_on_start=settings.RUN_MIGRATIONS,
            script_location=settings.ALEMBIC_SCRIPT_LOCATION,
        )
        app.state.store = StudentStore(create_session_maker(engine))
        logger.info("Student store ready")
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")


def create_app(store: Optional[StudentStorage] = None) -> FastAPI:
    """
    Create the application.

    With `store` the application serves that already initialized store and
    skips the database bootstrap; without it the store is built on startup.
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.APP_VERSION,
        lifespan=None if store is not None else lifespan,
    )
    if store is not None:
        app.state.store = store

    register_exception_handlers(app)
    app.add_middleware(CancelOnDisconnectMiddleware)

    app.include_router(api_router)

    @app.get("/")
    async def root():
        """
        Health check endpoint
        """
        return {
            "message": "Welcome to Students CRUD API",
            "docs": "/docs",
            "version": settings.APP_VERSION
        }

    return app


app = create_app()


def run() -> None:
    logger.info(f"Starting {settings.PROJECT_NAME} on {settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
