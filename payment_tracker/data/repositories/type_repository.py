from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from payment_tracker.data.base import Base


class PaymentTypeORM(Base):
    __tablename__ = "payment_types"
    __table_args__ = (UniqueConstraint("user_id", "name"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)


def get_type_names(db, user_id: int) -> list[str]:
    rows = (
        db.query(PaymentTypeORM.name)
        .filter(PaymentTypeORM.user_id == user_id)
        .order_by(PaymentTypeORM.name)
        .all()
    )
    return [r[0] for r in rows]


def type_exists(db, user_id: int, name: str) -> bool:
    return (
        db.query(PaymentTypeORM)
        .filter_by(user_id=user_id, name=name)
        .first()
        is not None
    )


def add_type(db, user_id: int, name: str) -> str:
    db.add(PaymentTypeORM(user_id=user_id, name=name))
    db.commit()
    return name


def delete_all_types(db, user_id: int, commit: bool = True) -> int:
    deleted = (
        db.query(PaymentTypeORM)
        .filter(PaymentTypeORM.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return deleted
