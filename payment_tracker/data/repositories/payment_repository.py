import json
from datetime import datetime
from typing import List

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm.exc import StaleDataError

from payment_tracker.data.base import Base
from payment_tracker.domain.helpers.due_payment import (
    MONTHS,
    default_remarks,
    empty_payments,
)
from payment_tracker.domain.models.payment_record import PaymentRecord


class PaymentRecordORM(Base):
    __tablename__ = "payment_records"
    __table_args__ = (UniqueConstraint("user_id", "client_name", "type", "year"),)
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    client_name = Column(String(100), nullable=False)
    type = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False, index=True)
    amount_to_be_paid = Column(Numeric(12, 2), nullable=False)
    payments_json = Column(Text, nullable=False)
    remarks_json = Column(Text, nullable=False)
    due_payment = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)
    version = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Every UPDATE is issued as "... WHERE id = ? AND version = ?"
    __mapper_args__ = {"version_id_col": version}


def _load_month_map(raw: str, default: dict) -> dict:
    stored = json.loads(raw) if raw else {}
    return {m: stored.get(m, default[m]) for m in MONTHS}


def record_to_domain(record_orm: PaymentRecordORM) -> PaymentRecord:
    return PaymentRecord(
        id=record_orm.id,
        client_name=record_orm.client_name,
        type=record_orm.type,
        year=record_orm.year,
        amount_to_be_paid=record_orm.amount_to_be_paid,
        payments=_load_month_map(record_orm.payments_json, empty_payments()),
        remarks=_load_month_map(record_orm.remarks_json, default_remarks()),
        due_payment=record_orm.due_payment,
        created_at=record_orm.created_at,
        last_updated=record_orm.last_updated,
        version=record_orm.version,
        user_id=record_orm.user_id,
    )


def get_record(db, user_id: int, client_name: str, type: str, year: int):
    record = (
        db.query(PaymentRecordORM)
        .filter_by(user_id=user_id, client_name=client_name, type=type, year=year)
        .first()
    )
    return record_to_domain(record) if record else None


def get_records_for_year(db, user_id: int, year: int) -> List[PaymentRecord]:
    records = (
        db.query(PaymentRecordORM)
        .filter(PaymentRecordORM.user_id == user_id, PaymentRecordORM.year == year)
        .order_by(PaymentRecordORM.client_name, PaymentRecordORM.type)
        .all()
    )
    return [record_to_domain(r) for r in records]


def get_records_for_client(
    db, user_id: int, client_name: str, type: str
) -> List[PaymentRecord]:
    records = (
        db.query(PaymentRecordORM)
        .filter_by(user_id=user_id, client_name=client_name, type=type)
        .order_by(PaymentRecordORM.year)
        .all()
    )
    return [record_to_domain(r) for r in records]


def get_years(db, user_id: int) -> List[int]:
    rows = (
        db.query(PaymentRecordORM.year)
        .filter(PaymentRecordORM.user_id == user_id)
        .distinct()
        .all()
    )
    return sorted(r[0] for r in rows if r[0] is not None)


def year_exists(db, user_id: int, year: int) -> bool:
    return (
        db.query(PaymentRecordORM.id).filter_by(user_id=user_id, year=year).first()
        is not None
    )


def add_records(
    db, records: List[PaymentRecord], user_id: int, commit: bool = True
) -> int:
    now = datetime.utcnow()
    for r in records:
        db.add(
            PaymentRecordORM(
                client_name=r.client_name,
                type=r.type,
                year=r.year,
                amount_to_be_paid=r.amount_to_be_paid,
                payments_json=json.dumps(r.payments, ensure_ascii=False),
                remarks_json=json.dumps(r.remarks, ensure_ascii=False),
                due_payment=r.due_payment,
                created_at=r.created_at or now,
                last_updated=now,
                user_id=user_id,
            )
        )
    if commit:
        db.commit()
    return len(records)


def update_record(db, record: PaymentRecord, commit: bool = True) -> bool:
    """
    Write a domain record back. Raises StaleDataError when the row was
    changed since ``record`` was read.
    """
    record_orm = db.get(PaymentRecordORM, record.id)
    if record_orm is None or record_orm.user_id != record.user_id:
        return False
    if record_orm.version != record.version:
        raise StaleDataError(
            f"Payment record {record.id} is at version {record_orm.version}, "
            f"expected {record.version}"
        )
    record_orm.client_name = record.client_name
    record_orm.type = record.type
    record_orm.amount_to_be_paid = record.amount_to_be_paid
    record_orm.payments_json = json.dumps(record.payments, ensure_ascii=False)
    record_orm.remarks_json = json.dumps(record.remarks, ensure_ascii=False)
    record_orm.due_payment = record.due_payment
    record_orm.last_updated = datetime.utcnow()
    if commit:
        db.commit()
    else:
        db.flush()
    record.version = record_orm.version
    return True


def delete_client_records(
    db, user_id: int, client_name: str, type: str, commit: bool = True
) -> int:
    deleted = (
        db.query(PaymentRecordORM)
        .filter_by(user_id=user_id, client_name=client_name, type=type)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return deleted


def delete_all_user_data(db, user_id: int, commit: bool = True):
    db.query(PaymentRecordORM).filter(PaymentRecordORM.user_id == user_id).delete(
        synchronize_session=False
    )
    if commit:
        db.commit()
