from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from payment_tracker.config import settings


def _connect_args() -> dict:
    if settings.database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


Base = declarative_base()
engine = create_engine(settings.database_url, connect_args=_connect_args())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables():
    # Register every ORM class on Base before creating the schema
    from payment_tracker.data.repositories import (  # noqa: F401
        client_repository,
        payment_repository,
        tenant_repository,
        type_repository,
    )

    Base.metadata.create_all(bind=engine)
