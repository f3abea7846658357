from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from payment_tracker.domain.errors import ValidationError

MONTHS = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

DEFAULT_REMARK = "N/A"
CENT = Decimal("0.01")
# Amounts of 1e16 or more are not money; the calculator treats them as malformed
MAX_ADJUSTED_EXPONENT = 15

_MONTH_LOOKUP = {m.lower(): m for m in MONTHS}


def _safe_decimal(value: Any) -> Decimal:
    """
    Convert a stored entry to Decimal, degrading anything unusable
    (empty, non-numeric, NaN, infinite, absurdly large) to zero.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return Decimal(0)
    if not d.is_finite() or d.adjusted() > MAX_ADJUSTED_EXPONENT:
        return Decimal(0)
    return d


def is_active(value: Any) -> bool:
    # "0" counts: the month has been billed even if nothing was paid
    return value is not None and value != ""


def calculate_due_payment(
    expected_monthly: Any,
    monthly_entries: Mapping[str, Any],
    previous_year_due: Any = 0,
) -> Decimal:
    """
    Outstanding balance for one (client, type, year).

    Every month holding a value (including "0") is billed at
    ``expected_monthly``; everything recorded counts as paid. The current
    year's shortfall is floored at zero, the previous year's due is added
    unchanged, and the total is rounded half-up to cents.

    Never raises: malformed values are treated as zero.
    """
    rate = _safe_decimal(expected_monthly)
    active_months = 0
    paid_total = Decimal(0)
    for month in MONTHS:
        value = monthly_entries.get(month)
        if is_active(value):
            active_months += 1
        paid_total += _safe_decimal(value)

    expected_total = rate * active_months
    current_year_due = max(expected_total - paid_total, Decimal(0))
    total_due = current_year_due + _safe_decimal(previous_year_due)
    return total_due.quantize(CENT, rounding=ROUND_HALF_UP)


def apply_fill_forward(entries: Mapping[str, Any], month: str) -> Dict[str, Any]:
    """
    Return a copy of ``entries`` where every empty month before ``month``
    is set to "0". Billing is treated as contiguous up to the month written.
    """
    filled = {m: entries.get(m, "") for m in MONTHS}
    for m in MONTHS[: MONTHS.index(month)]:
        if not is_active(filled[m]):
            filled[m] = "0"
    return filled


def month_key(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    return _MONTH_LOOKUP.get(str(name).strip().lower())


def empty_payments() -> Dict[str, str]:
    return {m: "" for m in MONTHS}


def default_remarks() -> Dict[str, str]:
    return {m: DEFAULT_REMARK for m in MONTHS}


def parse_amount(value: Any, maximum: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Parse a user-entered month amount. Blank means "not entered" and returns
    None; anything else must be a finite, non-negative number no larger than
    ``maximum``.
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid payment value; must be a non-negative number.")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Invalid payment value; must be a non-negative number.")
    if maximum is not None and amount > maximum:
        raise ValidationError(f"Payment value must not exceed {maximum}.")
    return amount


def format_amount(amount: Decimal) -> str:
    """Canonical string for a stored amount: no exponent, no trailing zeros."""
    normalized = amount.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")
