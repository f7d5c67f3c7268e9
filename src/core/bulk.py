"""Row-by-row runner for administrative batch operations.

Each row is applied in its own transaction so one bad row never blocks the
rest of the batch.  Failures are collected with the caller's row index.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction

from accounts.models import User
from core.exceptions import NotFoundError

logger = logging.getLogger("xmall")


@dataclass
class BulkRow:
    row: int
    account: str
    amount: Decimal
    reason: str = ""


@dataclass
class BulkResult:
    total: int = 0
    success_count: int = 0
    fail_count: int = 0
    errors: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "errors": self.errors,
        }


def resolve_account(identifier):
    """Return the active account matching *identifier* (email or UUID)."""
    identifier = str(identifier or "").strip()
    if not identifier:
        raise NotFoundError("Account identifier is missing.")

    lookup = {"email__iexact": identifier}
    try:
        lookup = {"pk": uuid.UUID(identifier)}
    except ValueError:
        pass

    account = User.objects.filter(is_active=True, **lookup).first()
    if account is None:
        raise NotFoundError(f"Account not found: {identifier}")
    return account


def normalize_rows(rows) -> list[BulkRow]:
    """Accept dicts or tuples of (account, amount, reason) and number them from 1.

    Amounts that cannot be parsed are kept as ``None`` and reported by
    :func:`run_bulk`.
    """
    normalized = []
    for index, raw in enumerate(rows, start=1):
        if isinstance(raw, dict):
            account = raw.get("account", "")
            amount = raw.get("amount")
            reason = raw.get("reason", "") or ""
        else:
            account, amount, *rest = raw
            reason = rest[0] if rest else ""
        try:
            amount = Decimal(str(amount))
        except (InvalidOperation, TypeError, ValueError):
            amount = None
        if amount is not None and not amount.is_finite():
            amount = None
        normalized.append(BulkRow(row=index, account=str(account), amount=amount, reason=reason))
    return normalized


def run_bulk(rows, apply, label: str) -> BulkResult:
    """Apply ``apply(account, amount, reason)`` to every row.

    Only ``ValueError`` (the domain error family) is recorded as a row
    failure; anything else propagates.
    """
    limit = getattr(settings, "BULK_ERROR_LIMIT", 100)
    result = BulkResult()

    for row in normalize_rows(rows):
        result.total += 1
        try:
            if row.amount is None or row.amount <= 0:
                raise ValueError("Amount must be a positive number.")
            with transaction.atomic():
                account = resolve_account(row.account)
                apply(account, row.amount, row.reason)
        except ValueError as exc:
            result.fail_count += 1
            if len(result.errors) < limit:
                result.errors.append({"row": row.row, "account": row.account, "error": str(exc)})
            continue
        result.success_count += 1

    logger.info(
        "Bulk %s finished: %d ok, %d failed (of %d)",
        label, result.success_count, result.fail_count, result.total,
    )
    return result
