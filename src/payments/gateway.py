"""HTTP client for the card ("sugi", keyed-in) payment gateway.

The gateway takes form-encoded POSTs and answers JSON with a ``rescode``
(``"0000"`` on success), a ``resmsg`` and, for charges, a ``tranid``.
Transport failures are reported as unsuccessful results, never raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

import requests

logger = logging.getLogger("xmall")

SUCCESS_CODE = "0000"

ERROR_MESSAGES = {
    "P001": "Merchant account not found.",
    "P002": "Order not found.",
    "P003": "Duplicate order number.",
    "P004": "Payment request not found.",
    "P006": "Payment wait time exceeded.",
    "P007": "Payment is not awaiting authorization.",
    "P008": "Payment failed.",
    "P009": "Transaction cannot be cancelled.",
    "P010": "Transaction already cancelled.",
    "P201": "Too many input attempts.",
    "P202": "Payment amount does not match.",
    "P203": "Invalid payment password.",
    "P301": "Order was cancelled.",
    "P900": "Malformed gateway message.",
    "P901": "Gateway database failure.",
    "P902": "Card processor unreachable.",
    "P903": "Card processor error.",
    "P999": "Unknown gateway error.",
}


def describe_error(code: str, message: str = "") -> str:
    return ERROR_MESSAGES.get(code) or message or "Card payment could not be processed."


@dataclass(frozen=True)
class GatewayResult:
    success: bool
    transaction_id: str = ""
    code: str = ""
    message: str = ""


def _format_amount(amount) -> str:
    return f"{Decimal(amount):.0f}"


class CardGatewayClient:
    """Thin wrapper around the gateway's charge and cancel endpoints."""

    AUTHORIZE_PATH = "/v1/sugi/order.do"
    CANCEL_PATH = "/v1/sugi/cancel.do"

    def __init__(self, api_url: str, api_key: str, timeout: float = 10, session=None):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, form: dict) -> GatewayResult:
        try:
            response = self.session.post(
                f"{self.api_url}{path}",
                data={"apikey": self.api_key, **form},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Card gateway request to %s failed: %s", path, exc)
            return GatewayResult(success=False, message=f"Card gateway unreachable: {exc}")
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Card gateway returned a non-JSON response for %s", path)
            return GatewayResult(success=False, message="Card gateway returned an invalid response.")

        code = str(payload.get("rescode", ""))
        if code == SUCCESS_CODE:
            return GatewayResult(
                success=True,
                transaction_id=str(payload.get("tranid") or ""),
                code=code,
                message=payload.get("resmsg", ""),
            )
        return GatewayResult(
            success=False,
            code=code,
            message=describe_error(code, payload.get("resmsg", "")),
        )

    def authorize(self, *, order_ref, amount, card, product_name, customer_name,
                  customer_email="", reference="") -> GatewayResult:
        return self._post(self.AUTHORIZE_PATH, {
            "orderid": order_ref,
            "prodname": product_name,
            "amount": _format_amount(amount),
            "encinfo": card.card_number,
            "encdata": card.expiry,
            "cardauth": card.auth_number,
            "cardpwd": card.password_prefix,
            "quota": card.installment_months,
            "taxcode": "00",
            "custname": customer_name,
            "custemail": customer_email,
            "info1": reference,
        })

    def cancel(self, *, order_ref, amount) -> GatewayResult:
        return self._post(self.CANCEL_PATH, {
            "orderid": order_ref,
            "amount": _format_amount(amount),
        })
