import logging
from datetime import datetime
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payment_tracker.data.repositories.client_repository import (
    add_clients,
    get_all_clients,
    get_client,
)
from payment_tracker.data.repositories.client_repository import (
    delete_client as repo_delete_client,
)
from payment_tracker.data.repositories.client_repository import (
    update_client as repo_update_client,
)
from payment_tracker.data.repositories.payment_repository import (
    add_records,
    delete_client_records,
    get_records_for_client,
)
from payment_tracker.data.repositories.type_repository import get_type_names
from payment_tracker.domain.errors import NotFoundError, ValidationError
from payment_tracker.domain.models.client import Client, ClientInput, ClientRow
from payment_tracker.domain.services.payment_service import (
    new_payment_record,
    recompute_chain,
    write_records,
    years_to_create,
)

logger = logging.getLogger(__name__)


def _validate_type(db: Session, user_id: int, type: str) -> None:
    user_types = get_type_names(db, user_id)
    if type not in user_types:
        raise ValidationError(f"Type must be one of: {', '.join(user_types)}")


def list_clients(db: Session, user_id: int) -> List[ClientRow]:
    return [ClientRow.from_domain(c) for c in get_all_clients(db, user_id)]


def add_client(db: Session, user_id: int, data: ClientInput) -> List[int]:
    """
    Create a client and an empty payment record for every year the tenant
    already tracks. Returns the years that received a record.
    """
    _validate_type(db, user_id, data.type)
    if get_client(db, user_id, data.client_name, data.type):
        raise ValidationError("Client with this name and type already exists")

    created_at = datetime.utcnow()
    client = Client(
        id=None,
        client_name=data.client_name,
        type=data.type,
        monthly_payment=data.monthly_payment,
        email=data.email,
        phone_number=data.phone_number,
        created_at=created_at,
    )
    years = years_to_create(db, user_id)
    records = [
        new_payment_record(
            data.client_name, data.type, data.monthly_payment, y, created_at
        )
        for y in years
    ]
    try:
        add_clients(db, [client], user_id, commit=False)
        add_records(db, records, user_id, commit=False)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Client with this name and type already exists")

    logger.info(
        "Added client %s (%s) for user %s, years %s",
        data.client_name,
        data.type,
        user_id,
        years,
    )
    return years


def update_client(
    db: Session, user_id: int, old_name: str, old_type: str, data: ClientInput
) -> None:
    """
    Rename/retype a client and change its expected monthly payment.
    Every year's due figure is recomputed with the new rate.
    """
    if not old_name or not old_type:
        raise ValidationError("All required fields must be provided")
    old_name = old_name.strip()
    old_type = old_type.strip().upper()
    _validate_type(db, user_id, data.type)

    client = get_client(db, user_id, old_name, old_type)
    if client is None:
        raise NotFoundError("Client not found")
    renamed = (data.client_name, data.type) != (old_name, old_type)
    if renamed and get_client(db, user_id, data.client_name, data.type):
        raise ValidationError("Client with this name and type already exists")

    repo_update_client(
        db,
        user_id,
        old_name,
        old_type,
        {
            "client_name": data.client_name,
            "type": data.type,
            "monthly_payment": data.monthly_payment,
            "email": data.email,
            "phone_number": data.phone_number,
        },
        commit=False,
    )

    records = get_records_for_client(db, user_id, old_name, old_type)
    for record in records:
        record.client_name = data.client_name
        record.type = data.type
        record.amount_to_be_paid = data.monthly_payment
    recompute_chain(records)
    try:
        write_records(db, records)
    except IntegrityError:
        db.rollback()
        raise ValidationError("Client with this name and type already exists")

    logger.info(
        "Updated client %s (%s) -> %s (%s) for user %s",
        old_name,
        old_type,
        data.client_name,
        data.type,
        user_id,
    )


def delete_client(db: Session, user_id: int, client_name: str, type: str) -> None:
    if not client_name or not type:
        raise ValidationError("Client name and type are required")
    client_name = client_name.strip()
    type = type.strip().upper()
    if get_client(db, user_id, client_name, type) is None:
        raise NotFoundError("Client not found")

    repo_delete_client(db, user_id, client_name, type, commit=False)
    removed = delete_client_records(db, user_id, client_name, type, commit=False)
    db.commit()
    logger.info(
        "Deleted client %s (%s) for user %s with %s payment records",
        client_name,
        type,
        user_id,
        removed,
    )
