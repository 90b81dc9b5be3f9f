import logging
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import router
from .book_router import book_router
from .borrow_router import borrow_router
from .config import Settings, get_settings
from .context import build_context
from .database import check_connection, sync_schema
from .errors import register_exception_handlers
from .reader_router import reader_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    context = build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        check_connection(context.engine)
        sync_schema(context.engine)
        try:
            yield
        finally:
            context.cache.clear()
            context.engine.dispose()

    app = FastAPI(
        title="Library API",
        version="1.0.0",
        description="API for managing a library: books, readers and loans",
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)

    app.include_router(router)
    app.include_router(book_router)
    app.include_router(reader_router)
    app.include_router(borrow_router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "UP", "timestamp": datetime.now(UTC).isoformat()}

    return app


app = create_app()
