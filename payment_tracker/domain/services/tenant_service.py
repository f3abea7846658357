import logging
import re

from sqlalchemy.orm import Session

from payment_tracker.data.repositories.client_repository import delete_all_clients
from payment_tracker.data.repositories.payment_repository import delete_all_user_data
from payment_tracker.data.repositories.tenant_repository import (
    create_tenant,
    delete_tenant as repo_delete_tenant,
    get_tenant_by_username,
)
from payment_tracker.data.repositories.type_repository import delete_all_types
from payment_tracker.domain.errors import NotFoundError, ValidationError
from payment_tracker.domain.models.tenant import Tenant

logger = logging.getLogger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50


def validate_and_normalize_username(username: str) -> str:
    username = (username or "").strip().lower()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} "
            f"and {USERNAME_MAX_LENGTH} characters"
        )
    if not re.fullmatch(r"[a-z0-9._\-]+", username):
        raise ValidationError(
            "Username must only contain letters, numbers, '.', '_' and '-'"
        )
    return username


def register_tenant(db: Session, username: str) -> Tenant:
    username = validate_and_normalize_username(username)
    if get_tenant_by_username(db, username):
        raise ValidationError("Username already exists")
    tenant = create_tenant(db, username)
    logger.info("Registered tenant %s", username)
    return tenant


def get_tenant(db: Session, username: str) -> Tenant:
    tenant = get_tenant_by_username(db, validate_and_normalize_username(username))
    if tenant is None:
        raise NotFoundError(f"Tenant {username} not found")
    return tenant


def delete_tenant(db: Session, user_id: int) -> bool:
    """Remove the tenant and everything it owns in a single transaction."""
    try:
        delete_all_user_data(db, user_id, commit=False)
        delete_all_clients(db, user_id, commit=False)
        delete_all_types(db, user_id, commit=False)
        deleted = repo_delete_tenant(db, user_id, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    if deleted:
        logger.info("Deleted tenant %s and all of its data", user_id)
    return deleted
