from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from payment_tracker.data.base import Base
from payment_tracker.domain.models.client import Client


class ClientORM(Base):
    __tablename__ = "clients"
    __table_args__ = (UniqueConstraint("user_id", "client_name", "type"),)
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    client_name = Column(String(100), nullable=False)
    type = Column(String(50), nullable=False)
    monthly_payment = Column(Numeric(12, 2), nullable=False)
    email = Column(String, default="")
    phone_number = Column(String, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)


def client_to_domain(client_orm: ClientORM) -> Client:
    return Client(
        id=client_orm.id,
        client_name=client_orm.client_name,
        type=client_orm.type,
        monthly_payment=client_orm.monthly_payment,
        email=client_orm.email or "",
        phone_number=client_orm.phone_number or "",
        created_at=client_orm.created_at,
        user_id=client_orm.user_id,
    )


def get_all_clients(db, user_id: int) -> list[Client]:
    clients = (
        db.query(ClientORM)
        .filter(ClientORM.user_id == user_id)
        .order_by(ClientORM.client_name, ClientORM.type)
        .all()
    )
    return [client_to_domain(c) for c in clients]


def get_client(db, user_id: int, client_name: str, type: str):
    client = (
        db.query(ClientORM)
        .filter_by(user_id=user_id, client_name=client_name, type=type)
        .first()
    )
    return client_to_domain(client) if client else None


def add_clients(db, clients: list[Client], user_id: int, commit: bool = True) -> int:
    for c in clients:
        db.add(
            ClientORM(
                client_name=c.client_name,
                type=c.type,
                monthly_payment=c.monthly_payment,
                email=c.email,
                phone_number=c.phone_number,
                created_at=c.created_at or datetime.utcnow(),
                user_id=user_id,
            )
        )
    if commit:
        db.commit()
    return len(clients)


def update_client(
    db,
    user_id: int,
    old_name: str,
    old_type: str,
    new_values: dict,
    commit: bool = True,
) -> bool:
    client = (
        db.query(ClientORM)
        .filter_by(user_id=user_id, client_name=old_name, type=old_type)
        .first()
    )
    if not client:
        return False
    for key, value in new_values.items():
        setattr(client, key, value)
    if commit:
        db.commit()
    return True


def delete_client(db, user_id: int, client_name: str, type: str, commit: bool = True) -> bool:
    deleted = (
        db.query(ClientORM)
        .filter_by(user_id=user_id, client_name=client_name, type=type)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return deleted > 0


def delete_all_clients(db, user_id: int, commit: bool = True) -> int:
    deleted = (
        db.query(ClientORM)
        .filter(ClientORM.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return deleted
