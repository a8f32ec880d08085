from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from hr_evidence.core.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql"):
        return {"pool_pre_ping": True}
    # SQLite sessions are handed across FastAPI's threadpool
    return {"connect_args": {"check_same_thread": False}}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session; services decide when to commit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Creates the evidence tables for every model in hr_evidence.models."""
    import hr_evidence.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
