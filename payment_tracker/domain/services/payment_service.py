import csv
import io
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from payment_tracker.config import settings
from payment_tracker.data.repositories.client_repository import (
    add_clients,
    get_all_clients,
)
from payment_tracker.data.repositories.payment_repository import (
    add_records,
    get_records_for_client,
    get_records_for_year,
    get_years,
    update_record,
    year_exists,
)
from payment_tracker.data.repositories.type_repository import get_type_names
from payment_tracker.domain.errors import (
    ConcurrentUpdateError,
    NotFoundError,
    ValidationError,
)
from payment_tracker.domain.helpers.due_payment import (
    DEFAULT_REMARK,
    MONTHS,
    apply_fill_forward,
    calculate_due_payment,
    default_remarks,
    empty_payments,
    format_amount,
    month_key,
    parse_amount,
)
from payment_tracker.domain.models.client import Client, ClientInput
from payment_tracker.domain.models.payment_record import (
    ImportResult,
    ImportSummary,
    PaymentRecord,
    PaymentRow,
    PaymentUpdate,
)

logger = logging.getLogger(__name__)


def _resolve_year(year: Optional[Any]) -> int:
    if year is None or year == "":
        return datetime.now().year
    try:
        return int(year)
    except (TypeError, ValueError):
        raise ValidationError("A valid year is required.")


def _resolve_month(month: Optional[str]) -> str:
    key = month_key(month)
    if not key:
        raise ValidationError("Invalid month provided.")
    return key


def years_to_create(db: Session, user_id: int) -> List[int]:
    """Years a newly added client needs records for."""
    return get_years(db, user_id) or [settings.first_tracked_year]


def new_payment_record(
    client_name: str,
    type: str,
    amount_to_be_paid: Decimal,
    year: int,
    created_at: Optional[datetime] = None,
    carry_in: Any = 0,
) -> PaymentRecord:
    payments = empty_payments()
    return PaymentRecord(
        id=None,
        client_name=client_name,
        type=type,
        year=year,
        amount_to_be_paid=amount_to_be_paid,
        payments=payments,
        remarks=default_remarks(),
        due_payment=calculate_due_payment(amount_to_be_paid, payments, carry_in),
        created_at=created_at,
    )


def recompute_chain(records: Iterable[PaymentRecord]) -> List[PaymentRecord]:
    """
    Recompute due_payment for one client's records in ascending year order,
    carrying each year's result into the next consecutive year.
    Returns the records whose due_payment changed.
    """
    dues: Dict[int, Decimal] = {}
    changed = []
    for record in sorted(records, key=lambda r: r.year):
        due = calculate_due_payment(
            record.amount_to_be_paid,
            record.payments,
            dues.get(record.year - 1, Decimal(0)),
        )
        dues[record.year] = due
        if due != record.due_payment:
            record.due_payment = due
            changed.append(record)
    return changed


def write_records(db: Session, records: Sequence[PaymentRecord]) -> None:
    """Persist records in one transaction, failing on concurrent edits."""
    try:
        for record in records:
            if not update_record(db, record, commit=False):
                raise NotFoundError("Payment record not found.")
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Concurrent update rejected: %s", e)
        raise ConcurrentUpdateError(
            "Payment record was modified concurrently; reload and retry."
        )
    except NotFoundError:
        db.rollback()
        raise


def _load_client_records(
    db: Session, user_id: int, client_name: str, type: str, year: int
):
    records = get_records_for_client(
        db, user_id, client_name.strip(), type.strip().upper()
    )
    target = next((r for r in records if r.year == year), None)
    if target is None:
        raise NotFoundError("Payment record not found.")
    return records, target


def _save_with_cascade(
    db: Session, records: List[PaymentRecord], target: PaymentRecord
) -> PaymentRecord:
    to_write = {target.id: target}
    for record in recompute_chain(records):
        to_write[record.id] = record
    write_records(db, list(to_write.values()))
    return target


def get_payments_by_year(db: Session, user_id: int, year: Any) -> List[PaymentRow]:
    year = _resolve_year(year)
    contacts = {(c.client_name, c.type): c for c in get_all_clients(db, user_id)}
    previous_dues = {
        (r.client_name, r.type): r.due_payment
        for r in get_records_for_year(db, user_id, year - 1)
    }

    rows = []
    for record in get_records_for_year(db, user_id, year):
        key = (record.client_name, record.type)
        previous_due = previous_dues.get(key, Decimal(0))
        client = contacts.get(key)
        rows.append(
            PaymentRow.from_domain(
                record,
                due_payment=calculate_due_payment(
                    record.amount_to_be_paid, record.payments, previous_due
                ),
                previous_year_due=previous_due,
                email=client.email if client else "",
                phone_number=client.phone_number if client else "",
            )
        )
    return rows


def get_user_years(db: Session, user_id: int) -> List[int]:
    years = set(get_years(db, user_id))
    years.add(settings.first_tracked_year)
    return sorted(years)


def save_payment(
    db: Session,
    user_id: int,
    client_name: str,
    type: str,
    month: str,
    value: Any,
    year: Any = None,
) -> PaymentRecord:
    """
    Record the amount paid for one month and recompute the due figure.

    Writing a value into a month marks every earlier empty month of the
    same year as billed ("0"). Clearing a month leaves the others alone.
    Records for later years are recomputed so their carry-in stays current.
    """
    if not client_name or not type or not month:
        raise ValidationError("Client name, type, and month are required.")
    year = _resolve_year(year)
    amount = parse_amount(value, maximum=settings.max_payment_amount)
    key = _resolve_month(month)

    records, target = _load_client_records(db, user_id, client_name, type, year)
    final_value = "" if amount is None else format_amount(amount)
    payments = dict(target.payments)
    payments[key] = final_value
    if final_value != "":
        payments = apply_fill_forward(payments, key)
    target.payments = payments

    return _save_with_cascade(db, records, target)


def batch_save_payments(
    db: Session,
    user_id: int,
    client_name: str,
    type: str,
    updates: List[Any],
    year: Any = None,
) -> PaymentRecord:
    if not client_name or not type or not updates:
        raise ValidationError(
            "Client name, type, and a non-empty updates array are required."
        )
    year = _resolve_year(year)
    records, target = _load_client_records(db, user_id, client_name, type, year)

    payments = dict(target.payments)
    for update in updates:
        if not isinstance(update, PaymentUpdate):
            update = PaymentUpdate.model_validate(update)
        key = month_key(update.month)
        if not key:
            continue
        try:
            amount = parse_amount(update.value, maximum=settings.max_payment_amount)
        except ValidationError:
            amount = None
        payments[key] = "" if amount is None else format_amount(amount)
    target.payments = payments

    return _save_with_cascade(db, records, target)


def save_remark(
    db: Session,
    user_id: int,
    client_name: str,
    type: str,
    month: str,
    remark: Optional[str],
    year: Any = None,
) -> str:
    if not client_name or not type or not month:
        raise ValidationError("Client name, type, and month are required.")
    year = _resolve_year(year)
    key = _resolve_month(month)
    _, target = _load_client_records(db, user_id, client_name, type, year)

    remarks = dict(target.remarks)
    remarks[key] = remark or DEFAULT_REMARK
    target.remarks = remarks
    write_records(db, [target])
    return remarks[key]


def add_new_year(db: Session, user_id: int, year: Any) -> int:
    try:
        year = int(year)
    except (TypeError, ValueError):
        year = None
    if year is None or year <= settings.first_tracked_year:
        raise ValidationError(
            f"A valid year greater than {settings.first_tracked_year} is required."
        )

    clients = get_all_clients(db, user_id)
    if not clients:
        raise NotFoundError(
            "No clients found. Please add clients before adding a new year."
        )
    if year_exists(db, user_id, year):
        raise ValidationError(f"Year {year} already exists.")

    previous_dues = {
        (r.client_name, r.type): r.due_payment
        for r in get_records_for_year(db, user_id, year - 1)
    }
    records = [
        new_payment_record(
            c.client_name,
            c.type,
            c.monthly_payment,
            year,
            created_at=c.created_at,
            carry_in=previous_dues.get((c.client_name, c.type), 0),
        )
        for c in clients
    ]
    count = add_records(db, records, user_id)
    logger.info("Opened year %s for user %s with %s clients", year, user_id, count)

    # Later years already open take their carry-in from the new year
    if any(y > year for y in get_years(db, user_id)):
        for c in clients:
            chain = get_records_for_client(db, user_id, c.client_name, c.type)
            changed = recompute_chain(chain)
            if changed:
                write_records(db, changed)
    return count


def export_year_csv(db: Session, user_id: int, year: Any) -> str:
    rows = get_payments_by_year(db, user_id, year)
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        ["Client_Name", "Type", "Amount_To_Be_Paid"]
        + MONTHS
        + ["Due_Payment", "Email", "Phone_Number"]
    )
    for row in rows:
        writer.writerow(
            [row.client_name, row.type, row.amount_to_be_paid]
            + [getattr(row, m.lower()) for m in MONTHS]
            + [f"{row.due_payment:.2f}", row.email, row.phone_number]
        )
    return output.getvalue()


def import_clients(db: Session, user_id: int, records: List[Any]) -> ImportResult:
    """
    Bulk-create clients from ``[amount, type, email, client_name, phone]``
    records. Invalid rows are reported, duplicates are skipped, and every
    imported client gets an empty payment record for each tracked year.
    """
    if not isinstance(records, list) or not records:
        raise ValidationError("CSV data must be a non-empty array of records.")

    user_types = {t.upper() for t in get_type_names(db, user_id)}
    if not user_types:
        raise ValidationError(
            "No payment types defined. Please add types before importing."
        )

    existing = {
        (c.client_name.lower(), c.type.upper()) for c in get_all_clients(db, user_id)
    }
    years = years_to_create(db, user_id)

    valid_clients: List[Client] = []
    new_records: List[PaymentRecord] = []
    errors: List[Dict[str, Any]] = []
    duplicates: List[Dict[str, Any]] = []
    seen = set()

    for index, record in enumerate(records, start=1):
        if not isinstance(record, (list, tuple)) or len(record) < 4:
            errors.append({"index": index, "reason": "Invalid format."})
            continue

        amount, type_name, email, client_name = record[:4]
        phone = record[4] if len(record) > 4 else ""
        client_name = str(client_name or "").strip()
        type_name = str(type_name or "").strip().upper()

        if not client_name or not type_name:
            errors.append(
                {"index": index, "reason": "Client Name and Type are required."}
            )
            continue

        key = (client_name.lower(), type_name)
        if key in existing or key in seen:
            duplicates.append(
                {"client_name": client_name, "type": type_name, "reason": "Duplicate"}
            )
            continue

        if type_name not in user_types:
            errors.append(
                {
                    "index": index,
                    "client_name": client_name,
                    "reason": f'Type "{type_name}" is not a valid type for your account.',
                }
            )
            continue

        try:
            monthly_payment = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError):
            monthly_payment = None
        if (
            monthly_payment is None
            or not monthly_payment.is_finite()
            or monthly_payment <= 0
        ):
            errors.append(
                {
                    "index": index,
                    "client_name": client_name,
                    "reason": f'Invalid payment amount "{amount}".',
                }
            )
            continue

        try:
            client_input = ClientInput(
                client_name=client_name,
                type=type_name,
                monthly_payment=monthly_payment,
                email=str(email or ""),
                phone_number=str(phone or ""),
            )
        except PydanticValidationError as e:
            errors.append(
                {
                    "index": index,
                    "client_name": client_name,
                    "reason": e.errors()[0]["msg"],
                }
            )
            continue

        seen.add(key)
        now = datetime.utcnow()
        valid_clients.append(
            Client(
                id=None,
                client_name=client_input.client_name,
                type=client_input.type,
                monthly_payment=client_input.monthly_payment,
                email=client_input.email,
                phone_number=client_input.phone_number,
                created_at=now,
            )
        )
        new_records.extend(
            new_payment_record(
                client_input.client_name,
                client_input.type,
                client_input.monthly_payment,
                y,
                created_at=now,
            )
            for y in years
        )

    for error in errors:
        logger.warning("Rejected import row for user %s: %s", user_id, error)

    if valid_clients:
        try:
            add_clients(db, valid_clients, user_id, commit=False)
            add_records(db, new_records, user_id, commit=False)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError("Import conflicts with existing clients; retry.")

    summary = ImportSummary(
        total_records=len(records),
        successful_imports=len(valid_clients),
        skipped_duplicates=len(duplicates),
        errors=len(errors),
    )
    logger.info("Import for user %s finished: %s", user_id, summary.model_dump())
    return ImportResult(summary=summary, duplicates=duplicates, errors=errors)
