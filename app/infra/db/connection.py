"""Database connection and session management."""
from sqlmodel import Session, SQLModel, create_engine

from app.config import settings


def _build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # Sessions are used from FastAPI's threadpool
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=settings.env == "development",
        pool_size=20,
        max_overflow=40,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


# Create engine with connection pooling
engine = _build_engine(settings.database_url)


def init_db(bind=None) -> None:
    """Create the core tables if they do not exist."""
    # Table models must be imported so they register on the metadata
    import app.domain.approvals.models  # noqa: F401
    import app.domain.instances.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
