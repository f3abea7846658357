from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from payment_tracker.domain.helpers.due_payment import (
    MONTHS,
    default_remarks,
    empty_payments,
)


@dataclass
class PaymentRecord:
    id: int
    client_name: str
    type: str
    year: int
    amount_to_be_paid: Decimal
    payments: Dict[str, str] = field(default_factory=empty_payments)
    remarks: Dict[str, str] = field(default_factory=default_remarks)
    due_payment: Decimal = Decimal("0.00")
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    version: int = 1
    user_id: int = None


class PaymentUpdate(BaseModel):
    month: str
    value: Union[str, float, int, None] = ""


class PaymentRow(BaseModel):
    """One row of the yearly payments table."""

    client_name: str
    type: str
    year: int
    amount_to_be_paid: float
    january: str = ""
    february: str = ""
    march: str = ""
    april: str = ""
    may: str = ""
    june: str = ""
    july: str = ""
    august: str = ""
    september: str = ""
    october: str = ""
    november: str = ""
    december: str = ""
    due_payment: float
    previous_year_due: float = 0.0
    email: str = ""
    phone_number: str = ""
    remarks: Dict[str, str] = {}
    created_at: Optional[datetime] = None

    @staticmethod
    def from_domain(
        r: PaymentRecord,
        due_payment: Decimal,
        previous_year_due: Decimal = Decimal(0),
        email: str = "",
        phone_number: str = "",
    ) -> "PaymentRow":
        months = {m.lower(): r.payments.get(m) or "" for m in MONTHS}
        return PaymentRow(
            client_name=r.client_name,
            type=r.type,
            year=r.year,
            amount_to_be_paid=float(r.amount_to_be_paid),
            due_payment=float(due_payment),
            previous_year_due=float(previous_year_due),
            email=email or "",
            phone_number=phone_number or "",
            remarks=dict(r.remarks),
            created_at=r.created_at,
            **months,
        )


class ImportSummary(BaseModel):
    total_records: int
    successful_imports: int
    skipped_duplicates: int
    errors: int


class ImportResult(BaseModel):
    summary: ImportSummary
    duplicates: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []
