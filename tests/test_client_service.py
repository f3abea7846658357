from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from payment_tracker.data.repositories.payment_repository import (
    get_record,
    get_records_for_client,
)
from payment_tracker.domain.errors import NotFoundError, ValidationError
from payment_tracker.domain.models.client import ClientInput
from payment_tracker.domain.services import client_service, tenant_service
from payment_tracker.domain.services.client_service import (
    add_client,
    delete_client,
    list_clients,
    update_client,
)
from payment_tracker.domain.services.payment_service import add_new_year, save_payment
from payment_tracker.domain.services.tenant_service import (
    delete_tenant,
    get_tenant,
    register_tenant,
)
from payment_tracker.domain.services.type_service import add_type, list_types


def test_register_and_lookup_tenant(db) -> None:
    tenant = register_tenant(db, "  Acme-Books ")
    assert tenant.username == "acme-books"
    assert get_tenant(db, "ACME-BOOKS").id == tenant.id
    with pytest.raises(ValidationError):
        register_tenant(db, "acme-books")
    with pytest.raises(ValidationError):
        register_tenant(db, "ab")
    with pytest.raises(NotFoundError):
        get_tenant(db, "nobody")


def test_types_are_upper_cased_and_unique(db, tenant) -> None:
    assert add_type(db, tenant.id, " it return ") == "IT RETURN"
    add_type(db, tenant.id, "GST")
    with pytest.raises(ValidationError):
        add_type(db, tenant.id, "gst")
    with pytest.raises(ValidationError):
        add_type(db, tenant.id, "   ")
    assert list_types(db, tenant.id) == ["GST", "IT RETURN"]


def test_types_are_isolated_per_tenant(db, tenant) -> None:
    other = register_tenant(db, "globex")
    add_type(db, tenant.id, "GST")
    assert list_types(db, other.id) == []


def test_add_client_creates_record_for_first_tracked_year(db, tenant, gst_client) -> None:
    clients = list_clients(db, tenant.id)
    assert len(clients) == 1
    assert clients[0].client_name == "Sharma Traders"
    assert clients[0].type == "GST"
    assert clients[0].amount_to_be_paid == 1000.0
    assert clients[0].email == "sharma@example.com"

    record = get_record(db, tenant.id, "Sharma Traders", "GST", 2025)
    assert record is not None
    assert all(v == "" for v in record.payments.values())
    assert all(v == "N/A" for v in record.remarks.values())
    assert record.due_payment == Decimal("0.00")


def test_add_client_creates_record_for_every_existing_year(db, tenant, gst_client) -> None:
    add_new_year(db, tenant.id, 2026)
    years = add_client(
        db, tenant.id, ClientInput(client_name="Verma", type="GST", monthly_payment=500)
    )
    assert years == [2025, 2026]


def test_add_client_rejects_unknown_type_and_duplicates(db, tenant, gst_client) -> None:
    with pytest.raises(ValidationError):
        add_client(
            db,
            tenant.id,
            ClientInput(client_name="Verma", type="TDS", monthly_payment=100),
        )
    with pytest.raises(ValidationError):
        add_client(
            db,
            tenant.id,
            ClientInput(client_name="Sharma Traders", type="GST", monthly_payment=100),
        )


def test_client_input_validation() -> None:
    with pytest.raises(PydanticValidationError):
        ClientInput(client_name="A", type="GST", monthly_payment=0)
    with pytest.raises(PydanticValidationError):
        ClientInput(client_name="A", type="GST", monthly_payment="2000000")
    with pytest.raises(PydanticValidationError):
        ClientInput(client_name="x" * 101, type="GST", monthly_payment=10)
    data = ClientInput(
        client_name=" A ",
        type="gst",
        monthly_payment="10",
        email="not-an-email",
        phone_number="12345",
    )
    assert data.client_name == "A"
    assert data.email == ""
    assert data.phone_number == ""


def test_update_client_recomputes_every_year(db, tenant, gst_client) -> None:
    name, type = gst_client
    save_payment(db, tenant.id, name, type, "february", "500", 2025)
    add_new_year(db, tenant.id, 2026)
    save_payment(db, tenant.id, name, type, "january", "1000", 2026)

    add_type(db, tenant.id, "IT RETURN")
    update_client(
        db,
        tenant.id,
        name,
        type,
        ClientInput(client_name="Sharma & Sons", type="IT RETURN", monthly_payment=800),
    )

    assert get_records_for_client(db, tenant.id, name, type) == []
    records = get_records_for_client(db, tenant.id, "Sharma & Sons", "IT RETURN")
    assert [r.year for r in records] == [2025, 2026]
    # 2025: two months at 800, 500 paid
    assert records[0].due_payment == Decimal("1100.00")
    assert records[0].amount_to_be_paid == Decimal("800")
    # 2026: one month at 800 fully covered, carry-in 1100
    assert records[1].due_payment == Decimal("1100.00")


def test_update_client_rejects_collision(db, tenant, gst_client) -> None:
    add_client(
        db, tenant.id, ClientInput(client_name="Verma", type="GST", monthly_payment=100)
    )
    with pytest.raises(ValidationError):
        update_client(
            db,
            tenant.id,
            "Verma",
            "GST",
            ClientInput(client_name="Sharma Traders", type="GST", monthly_payment=100),
        )


def test_update_missing_client(db, tenant, gst_client) -> None:
    with pytest.raises(NotFoundError):
        update_client(
            db,
            tenant.id,
            "Nobody",
            "GST",
            ClientInput(client_name="Nobody", type="GST", monthly_payment=100),
        )


def test_delete_client_removes_records(db, tenant, gst_client) -> None:
    name, type = gst_client
    add_new_year(db, tenant.id, 2026)
    delete_client(db, tenant.id, name, type)
    assert list_clients(db, tenant.id) == []
    assert get_records_for_client(db, tenant.id, name, type) == []
    with pytest.raises(NotFoundError):
        delete_client(db, tenant.id, name, type)


def test_delete_tenant_removes_everything(db, tenant, gst_client) -> None:
    assert delete_tenant(db, tenant.id) is True
    assert list_clients(db, tenant.id) == []
    assert list_types(db, tenant.id) == []
    with pytest.raises(NotFoundError):
        get_tenant(db, "acme")


def test_client_names_are_trimmed_on_update_and_delete(db, tenant, gst_client) -> None:
    update_client(
        db,
        tenant.id,
        " Sharma Traders ",
        " gst ",
        ClientInput(client_name="Sharma Traders", type="GST", monthly_payment=1200),
    )
    assert get_record(db, tenant.id, "Sharma Traders", "GST", 2025).amount_to_be_paid == (
        Decimal("1200")
    )

    delete_client(db, tenant.id, " Sharma Traders ", "gst")
    assert list_clients(db, tenant.id) == []


def test_update_client_reports_collision_found_on_write(
    db, tenant, gst_client, monkeypatch
) -> None:
    def colliding_write(db, records):
        raise IntegrityError("UPDATE payment_records", {}, Exception("UNIQUE"))

    monkeypatch.setattr(client_service, "write_records", colliding_write)
    with pytest.raises(ValidationError):
        update_client(
            db,
            tenant.id,
            "Sharma Traders",
            "GST",
            ClientInput(client_name="Sharma", type="GST", monthly_payment=1000),
        )

    monkeypatch.undo()
    assert [c.client_name for c in list_clients(db, tenant.id)] == ["Sharma Traders"]


def test_delete_tenant_is_all_or_nothing(db, tenant, gst_client, monkeypatch) -> None:
    def failing_delete(db, user_id, commit=True):
        raise RuntimeError("database went away")

    monkeypatch.setattr(tenant_service, "repo_delete_tenant", failing_delete)
    with pytest.raises(RuntimeError):
        delete_tenant(db, tenant.id)

    monkeypatch.undo()
    assert [c.client_name for c in list_clients(db, tenant.id)] == ["Sharma Traders"]
    assert list_types(db, tenant.id) == ["GST"]
    assert get_records_for_client(db, tenant.id, "Sharma Traders", "GST") != []
    assert get_tenant(db, "acme").id == tenant.id
