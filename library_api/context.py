from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .cache import CacheManager
from .config import Settings
from .database import build_engine, build_session_factory


@dataclass
class ServiceContext:
    """Everything a request handler needs: settings, store handle and cache."""
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    cache: CacheManager


def build_context(settings: Settings) -> ServiceContext:
    engine = build_engine(settings.database_url)
    return ServiceContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        cache=CacheManager(ttl_seconds=settings.cache_ttl),
    )


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def get_settings_dep(context: ServiceContext = Depends(get_context)) -> Settings:
    return context.settings


def get_cache(context: ServiceContext = Depends(get_context)) -> CacheManager:
    return context.cache


# get the database session
def get_db(context: ServiceContext = Depends(get_context)):
    db: Session = context.session_factory()
    try:
        yield db
    finally:
        db.close()
