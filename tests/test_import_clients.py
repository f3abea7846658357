from decimal import Decimal

import pytest

from payment_tracker.data.repositories.payment_repository import get_record
from payment_tracker.domain.errors import ValidationError
from payment_tracker.domain.helpers import import_clients_csv
from payment_tracker.domain.helpers.import_clients_csv import (
    classify_row,
    parse_clients_csv,
)
from payment_tracker.domain.services.client_service import list_clients
from payment_tracker.domain.services.payment_service import (
    add_new_year,
    import_clients,
)
from payment_tracker.domain.services.type_service import add_type


def test_import_requires_records_and_types(db, tenant) -> None:
    with pytest.raises(ValidationError):
        import_clients(db, tenant.id, [])
    with pytest.raises(ValidationError):
        import_clients(db, tenant.id, [["100", "GST", "", "Acme"]])


def test_import_summary(db, tenant, gst_client) -> None:
    add_type(db, tenant.id, "IT RETURN")
    add_new_year(db, tenant.id, 2026)
    result = import_clients(
        db,
        tenant.id,
        [
            ["1500", "it return", "kapoor@example.com", "Kapoor", "9123456789"],
            ["800", "GST", "", "sharma traders"],
            ["900", "GST", "", "Mehta"],
            ["900", "gst", "", "MEHTA"],
            ["100", "TDS", "", "Iyer"],
            ["-3", "GST", "", "Rao"],
            ["abc", "GST", "", "Das"],
            ["100", "", "", "Nair"],
            ["100", "GST"],
        ],
    )
    assert result.summary.total_records == 9
    assert result.summary.successful_imports == 2
    assert result.summary.skipped_duplicates == 2
    assert result.summary.errors == 5
    assert {d["client_name"] for d in result.duplicates} == {"sharma traders", "MEHTA"}

    names = {(c.client_name, c.type) for c in list_clients(db, tenant.id)}
    assert ("Kapoor", "IT RETURN") in names
    assert ("Mehta", "GST") in names
    for year in (2025, 2026):
        record = get_record(db, tenant.id, "Kapoor", "IT RETURN", year)
        assert record.amount_to_be_paid == Decimal("1500")
        assert record.due_payment == Decimal("0.00")


def test_classify_row_by_cell_shape() -> None:
    row = ["kapoor@example.com", "Kapoor Sweets", "gst", "1200", "+91 98765 43210"]
    amount, type_name, email, name, phone = classify_row(row, ["GST"])
    assert amount == Decimal("1200")
    assert type_name == "GST"
    assert email == "kapoor@example.com"
    assert name == "Kapoor Sweets"
    assert phone == "+91 98765 43210"


def test_parse_clients_csv_reports_bad_rows(tmp_path) -> None:
    path = tmp_path / "clients.csv"
    path.write_text(
        "Client_Name,Type,Amount_To_Be_Paid\n"
        "Kapoor,GST,1200\n"
        "\n"
        "Mehta,VAT,300\n",
        encoding="utf-8",
    )
    records, errors = parse_clients_csv(str(path), ["GST"])
    assert records == [[Decimal("1200"), "GST", "", "Kapoor", ""]]
    assert len(errors) == 2
    assert errors[0].startswith("Row 1:")
    assert errors[1].startswith("Row 4:")


def test_import_clients_from_csv_file(db, tenant, tmp_path, monkeypatch) -> None:
    add_type(db, tenant.id, "GST")
    path = tmp_path / "clients.csv"
    path.write_text("Kapoor,GST,1200\nMehta,gst,300\n", encoding="utf-8")
    monkeypatch.setattr(import_clients_csv, "create_tables", lambda: None)

    result = import_clients_csv.import_clients_from_csv(str(path), "acme")
    assert result.summary.successful_imports == 2
    db.expire_all()
    assert [c.client_name for c in list_clients(db, tenant.id)] == ["Kapoor", "Mehta"]
