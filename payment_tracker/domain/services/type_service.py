from typing import List

from sqlalchemy.orm import Session

from payment_tracker.data.repositories.type_repository import (
    add_type as repo_add_type,
    get_type_names,
    type_exists,
)
from payment_tracker.domain.errors import ValidationError
from payment_tracker.domain.models.client import normalize_type_name


def add_type(db: Session, user_id: int, name: str) -> str:
    try:
        name = normalize_type_name(name)
    except ValueError as e:
        raise ValidationError(str(e))
    if type_exists(db, user_id, name):
        raise ValidationError(f'Type "{name}" already exists.')
    return repo_add_type(db, user_id, name)


def list_types(db: Session, user_id: int) -> List[str]:
    return get_type_names(db, user_id)
