"""Closed set of payment instruments accepted at checkout.

A checkout submits how much of the order total each instrument covers.
Instruments are always applied in :data:`APPLICATION_ORDER`, whatever
order the caller listed them in.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import models

from core.exceptions import OrderValidationError, PaymentMismatchError
from core.services import to_money


class Instrument(models.TextChoices):
    WALLET = "wallet", "X-pay wallet"
    POINT = "point", "Points"
    CARD = "card", "Card"
    BANK = "bank", "Bank transfer"


APPLICATION_ORDER = (Instrument.WALLET, Instrument.POINT, Instrument.CARD, Instrument.BANK)


@dataclass(frozen=True)
class CardDetails:
    """Keyed-in card data, or a charge the gateway already authorized.

    A pre-authorized charge is identified by its ``transaction_id`` and the
    ``order_ref`` it was authorized under; reversals are sent to that ref.
    """

    card_number: str = ""
    expiry: str = ""
    auth_number: str = ""
    password_prefix: str = ""
    installment_months: str = "00"
    transaction_id: str = ""
    order_ref: str = ""

    @property
    def is_preauthorized(self) -> bool:
        return bool(self.transaction_id)

    @classmethod
    def from_mapping(cls, data) -> "CardDetails":
        data = data or {}
        transaction_id = str(data.get("transaction_id") or "").strip()
        if transaction_id:
            order_ref = str(data.get("order_ref") or "").strip()
            if not order_ref:
                raise OrderValidationError("A pre-authorized card payment needs its gateway order reference.")
            return cls(transaction_id=transaction_id, order_ref=order_ref[:50])

        number = re.sub(r"\D", "", str(data.get("card_number") or ""))
        if not 13 <= len(number) <= 16:
            raise OrderValidationError("Invalid card number.")

        # MMYY is accepted and normalized to YYYYMM.
        expiry = re.sub(r"\D", "", str(data.get("card_expiry") or ""))
        if len(expiry) == 4:
            expiry = f"20{expiry[2:]}{expiry[:2]}"
        if len(expiry) != 6:
            raise OrderValidationError("Invalid card expiry date.")

        auth_number = re.sub(r"\D", "", str(data.get("card_auth") or ""))
        password = str(data.get("card_password") or "")[:2]
        if not auth_number or not password:
            raise OrderValidationError("Card holder verification data is missing.")

        return cls(
            card_number=number,
            expiry=expiry,
            auth_number=auth_number,
            password_prefix=password,
            installment_months=str(data.get("installment_months") or "00").zfill(2),
        )


@dataclass(frozen=True)
class PaymentInstrument:
    instrument: Instrument
    amount: Decimal
    point_type: str = ""
    card: CardDetails | None = None


@dataclass(frozen=True)
class PaymentPlan:
    instruments: tuple[PaymentInstrument, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, data, default_point_type="X") -> "PaymentPlan":
        """Build a plan from ``{"wallet": ..., "point": ..., "card": ..., "bank": ...}``.

        ``point_type`` and ``card_details`` ride along as extra keys.  Unknown
        keys and negative amounts are rejected.
        """
        if not isinstance(data, dict):
            raise OrderValidationError("Payment information is missing.")
        allowed = {i.value for i in Instrument} | {"point_type", "card_details"}
        unknown = set(data) - allowed
        if unknown:
            raise OrderValidationError(f"Unknown payment instrument: {', '.join(sorted(unknown))}.")

        instruments = []
        for instrument in APPLICATION_ORDER:
            amount = to_money(data.get(instrument.value) or 0, f"{instrument.value} amount")
            if amount == 0:
                continue
            kwargs = {}
            if instrument == Instrument.POINT:
                kwargs["point_type"] = data.get("point_type") or default_point_type
            elif instrument == Instrument.CARD:
                kwargs["card"] = CardDetails.from_mapping(data.get("card_details"))
            instruments.append(PaymentInstrument(instrument, amount, **kwargs))
        return cls(tuple(instruments))

    @property
    def total(self) -> Decimal:
        return sum((p.amount for p in self.instruments), Decimal("0.00"))

    def get(self, instrument) -> PaymentInstrument | None:
        for payment in self.instruments:
            if payment.instrument == instrument:
                return payment
        return None

    def amount_for(self, instrument) -> Decimal:
        payment = self.get(instrument)
        return payment.amount if payment else Decimal("0.00")

    def ordered(self):
        rank = {instrument: i for i, instrument in enumerate(APPLICATION_ORDER)}
        return sorted(self.instruments, key=lambda p: rank[p.instrument])

    def reconcile(self, order_total, tolerance) -> None:
        """Raise ``PaymentMismatchError`` unless the plan covers *order_total*
        within *tolerance*."""
        if abs(self.total - Decimal(order_total)) > Decimal(tolerance):
            raise PaymentMismatchError(order_total, self.total)
