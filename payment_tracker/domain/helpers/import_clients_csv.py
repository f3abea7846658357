import csv
import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Tuple

from sqlalchemy.orm import Session

from payment_tracker.data.base import SessionLocal, create_tables

EMAIL_CELL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_CELL = re.compile(r"^\+?[\d\s-]{10,15}$")


def _positive_amount(cell: str):
    try:
        value = Decimal(cell)
    except (InvalidOperation, ValueError):
        return None
    if value.is_finite() and value > 0:
        return value
    return None


def classify_row(row: Iterable[str], known_types: Iterable[str]) -> List:
    """
    Turn a free-form CSV row into ``[amount, type, email, client_name, phone]``.

    Cells are recognised by shape rather than position: an email, a phone
    number, one of the tenant's types, a positive amount; anything else is
    taken as the client name.
    """
    types = {t.strip().upper() for t in known_types}
    amount = type_name = client_name = None
    email = phone = ""
    for cell in row:
        cell = (cell or "").strip()
        if not cell:
            continue
        if EMAIL_CELL.match(cell):
            email = cell
        elif PHONE_CELL.match(cell):
            phone = cell
        elif cell.upper() in types:
            type_name = cell.upper()
        elif _positive_amount(cell) is not None:
            amount = _positive_amount(cell)
        else:
            client_name = cell
    return [amount, type_name, email, client_name, phone]


def parse_clients_csv(
    csv_path: str, known_types: Iterable[str]
) -> Tuple[List[List], List[str]]:
    """
    Read a client CSV. Returns the import records and a message for every
    row that lacks a name, a known type or a positive amount (header rows
    included).
    """
    known_types = list(known_types)
    records = []
    parse_errors = []
    with open(csv_path, newline="", encoding="utf-8") as csvfile:
        for index, row in enumerate(csv.reader(csvfile), start=1):
            if not any((cell or "").strip() for cell in row):
                continue
            record = classify_row(row, known_types)
            amount, type_name, _, client_name, _ = record
            if amount is None or not type_name or not client_name:
                parse_errors.append(
                    f"Row {index}: Missing required fields (Client Name: "
                    f'"{client_name or ""}", Type: "{type_name or ""}", '
                    f"Amount: {amount})"
                )
                continue
            records.append(record)
    return records, parse_errors


def import_clients_from_csv(csv_path: str, username: str):
    from payment_tracker.domain.services.payment_service import import_clients
    from payment_tracker.domain.services.tenant_service import get_tenant
    from payment_tracker.domain.services.type_service import list_types

    create_tables()
    db: Session = SessionLocal()
    try:
        tenant = get_tenant(db, username)
        records, parse_errors = parse_clients_csv(csv_path, list_types(db, tenant.id))
        for message in parse_errors:
            print(f"Skipping row: {message}")
        if not records:
            print("No valid rows found in CSV.")
            return None
        result = import_clients(db, tenant.id, records)
        summary = result.summary
        print(
            f"Imported {summary.successful_imports} of {summary.total_records} "
            f"clients for {tenant.username} "
            f"({summary.skipped_duplicates} duplicates, {summary.errors} errors)"
        )
        for error in result.errors:
            print(f"Error: {error}")
        return result
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    from payment_tracker.config import configure_logging

    parser = argparse.ArgumentParser(description="Import clients from CSV.")
    parser.add_argument("csv_path", help="Path to CSV file")
    parser.add_argument("username", help="Tenant username")
    args = parser.parse_args()

    configure_logging()
    import_clients_from_csv(args.csv_path, args.username)
