import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from payment_tracker.config import settings

CLIENT_NAME_MAX_LENGTH = 100
TYPE_MAX_LENGTH = 50
EMAIL_REGEX = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PHONE_REGEX = re.compile(r"^(\+91|91)?[6-9]\d{9}$")


@dataclass
class Client:
    id: int
    client_name: str
    type: str
    monthly_payment: Decimal
    email: str = ""
    phone_number: str = ""
    created_at: Optional[datetime] = None
    user_id: int = None

    def __post_init__(self):
        if self.monthly_payment <= 0:
            raise ValueError("Monthly payment must be a positive number.")


def normalize_type_name(name: Optional[str]) -> str:
    name = (name or "").strip().upper()
    if not name:
        raise ValueError("Type name is invalid or empty.")
    if len(name) > TYPE_MAX_LENGTH:
        raise ValueError(f"Type must be at most {TYPE_MAX_LENGTH} characters")
    return name


def normalize_email(email: Optional[str]) -> str:
    email = (email or "").strip()
    return email if EMAIL_REGEX.fullmatch(email) else ""


def normalize_phone(phone: Optional[str]) -> str:
    phone = (phone or "").strip()
    return phone if PHONE_REGEX.fullmatch(phone) else ""


class ClientInput(BaseModel):
    client_name: str
    type: str
    monthly_payment: Decimal
    email: Optional[str] = ""
    phone_number: Optional[str] = ""

    @field_validator("client_name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Client name is required")
        if len(v) > CLIENT_NAME_MAX_LENGTH:
            raise ValueError(
                f"Client name must be at most {CLIENT_NAME_MAX_LENGTH} characters"
            )
        return v

    @field_validator("type")
    @classmethod
    def _check_type(cls, v: str) -> str:
        return normalize_type_name(v)

    @field_validator("monthly_payment")
    @classmethod
    def _check_amount(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v <= 0:
            raise ValueError("Monthly payment must be a positive number")
        if v > settings.max_payment_amount:
            raise ValueError(
                f"Monthly payment must not exceed {settings.max_payment_amount}"
            )
        return v

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: Optional[str]) -> str:
        return normalize_email(v)

    @field_validator("phone_number")
    @classmethod
    def _check_phone(cls, v: Optional[str]) -> str:
        return normalize_phone(v)


class ClientRow(BaseModel):
    client_name: str
    type: str
    amount_to_be_paid: float
    email: str = ""
    phone_number: str = ""
    created_at: Optional[datetime] = None

    @staticmethod
    def from_domain(c: Client) -> "ClientRow":
        return ClientRow(
            client_name=c.client_name,
            type=c.type,
            amount_to_be_paid=float(c.monthly_payment),
            email=c.email or "",
            phone_number=c.phone_number or "",
            created_at=c.created_at,
        )
