from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fnb_erp.core.config import settings


def _engine_options(database_url: str) -> dict[str, object]:
    if database_url.lower().startswith("sqlite"):
        # FastAPI runs sync endpoints on a threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_seconds,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# expire_on_commit stays on: routers re-read documents after commit to build responses
SessionLocal = sessionmaker(bind=engine, autoflush=False)
