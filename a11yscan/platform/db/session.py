from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from a11yscan.platform.config import settings
from a11yscan.platform.db.base import Base


def sync_database_url(db_url: str) -> str:
    """Convert an async driver URL to its sync counterpart."""
    if db_url.startswith("postgresql+asyncpg://"):
        return db_url.replace("postgresql+asyncpg://", "postgresql://")
    if db_url.startswith("sqlite+aiosqlite://"):
        return db_url.replace("sqlite+aiosqlite://", "sqlite://")
    return db_url


def build_engine(db_url: str):
    db_url = sync_database_url(db_url)
    if db_url.startswith("sqlite"):
        return create_engine(db_url, connect_args={"check_same_thread": False})
    return create_engine(
        db_url,
        pool_size=20,
        max_overflow=30,  # (burst capacity)
        pool_timeout=30,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, autocommit=False)


def init_db(bind=None):
    """Create missing tables. Migrations remain the source of truth in production."""
    # Import models so they register on Base.metadata
    from a11yscan.features.scan.models import ScanJob, ScanPage  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
