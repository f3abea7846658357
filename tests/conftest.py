import os

os.environ["DATABASE_URL"] = "sqlite:///./test_payment_tracker.db"
os.environ.setdefault("FIRST_TRACKED_YEAR", "2025")
os.environ.setdefault("MAX_PAYMENT_AMOUNT", "1000000")

import pytest  # noqa: E402

from payment_tracker.data.base import Base, SessionLocal, create_tables, engine  # noqa: E402
from payment_tracker.domain.models.client import ClientInput  # noqa: E402
from payment_tracker.domain.services.client_service import add_client  # noqa: E402
from payment_tracker.domain.services.tenant_service import register_tenant  # noqa: E402
from payment_tracker.domain.services.type_service import add_type  # noqa: E402


@pytest.fixture()
def db():
    create_tables()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def tenant(db):
    return register_tenant(db, "acme")


@pytest.fixture()
def gst_client(db, tenant):
    add_type(db, tenant.id, "GST")
    add_client(
        db,
        tenant.id,
        ClientInput(
            client_name="Sharma Traders",
            type="gst",
            monthly_payment="1000",
            email="sharma@example.com",
            phone_number="9876543210",
        ),
    )
    return ("Sharma Traders", "GST")
