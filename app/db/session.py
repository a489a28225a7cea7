from sqlmodel import SQLModel, create_engine, Session
from app.core.config import settings

# check_same_thread is needed for SQLite, remove for PostgreSQL
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

def get_db():
    """Yield a database session for the visitor storage tables"""
    with Session(engine) as db:
        yield db

def create_db_and_tables():
    # Import models to ensure they are registered with SQLModel metadata
    from app.models.storage import StorageEntry  # noqa: F401

    SQLModel.metadata.create_all(engine)
