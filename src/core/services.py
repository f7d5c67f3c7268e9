"""Audit log and amount helpers shared by every app."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .exceptions import OrderValidationError
from .middleware import get_current_user
from .models import AuditLog

CENT = Decimal("0.01")
# Money columns hold 12 integer digits.
MAX_MONEY = Decimal("1e12")


def to_money(value, field: str = "amount") -> Decimal:
    """Parse *value* as a non-negative Decimal rounded to the cent."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise OrderValidationError(f"Invalid {field}: {value!r}.")
    if not amount.is_finite() or amount < 0:
        raise OrderValidationError(f"Invalid {field}: {value!r}.")
    if amount < MAX_MONEY:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount >= MAX_MONEY:
        raise OrderValidationError(f"The {field} is too large: {value!r}.")
    return amount


def positive_money(value, field: str = "amount") -> Decimal:
    amount = to_money(value, field)
    if amount <= 0:
        raise OrderValidationError(f"The {field} must be positive.")
    return amount


def create_audit_log(
    actor,
    action: str,
    entity_type: str,
    entity_id,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    ip: str | None = None,
) -> AuditLog:
    """Create and return a new :class:`~core.models.AuditLog` entry.

    When *actor* is ``None`` the user of the current request (if any) is
    recorded instead.
    """
    if actor is None:
        actor = get_current_user()
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=before,
        after_json=after,
        ip_address=ip,
    )
