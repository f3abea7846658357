from sqlalchemy import Column, Integer, String

from payment_tracker.data.base import Base
from payment_tracker.domain.models.tenant import Tenant


class TenantORM(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)


def tenant_to_domain(tenant_orm: TenantORM) -> Tenant:
    return Tenant(id=tenant_orm.id, username=tenant_orm.username)


def get_tenant_by_username(db, username: str):
    tenant = db.query(TenantORM).filter(TenantORM.username == username).first()
    return tenant_to_domain(tenant) if tenant else None


def create_tenant(db, username: str) -> Tenant:
    db_tenant = TenantORM(username=username)
    db.add(db_tenant)
    db.commit()
    db.refresh(db_tenant)
    return tenant_to_domain(db_tenant)


def delete_tenant(db, user_id: int, commit: bool = True) -> bool:
    tenant = db.query(TenantORM).filter(TenantORM.id == user_id).first()
    if tenant:
        db.delete(tenant)
        if commit:
            db.commit()
        return True
    return False
