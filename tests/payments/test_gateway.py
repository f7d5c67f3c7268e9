from decimal import Decimal

import requests

from orders.payments import CardDetails
from payments.gateway import CardGatewayClient, describe_error


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, data=None, timeout=None):
        self.posts.append({"url": url, "data": data, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _client(session):
    return CardGatewayClient("https://gateway.test/", "secret", timeout=3, session=session)


CARD = CardDetails(
    card_number="4111111111111111", expiry="202812", auth_number="900101",
    password_prefix="12", installment_months="00",
)


class TestCardGatewayClient:
    def test_authorize_posts_form_and_parses_success(self):
        session = FakeSession(FakeResponse({"rescode": "0000", "resmsg": "OK", "tranid": "T-77"}))

        result = _client(session).authorize(
            order_ref="ORD250101-ABCDEF", amount=Decimal("20000.00"), card=CARD,
            product_name="Red Ginseng Tonic", customer_name="Kim", reference="ref-1",
        )

        assert result.success
        assert result.transaction_id == "T-77"
        post = session.posts[0]
        assert post["url"] == "https://gateway.test/v1/sugi/order.do"
        assert post["timeout"] == 3
        assert post["data"]["apikey"] == "secret"
        assert post["data"]["amount"] == "20000"
        assert post["data"]["encdata"] == "202812"
        assert post["data"]["info1"] == "ref-1"

    def test_decline_maps_error_code(self):
        session = FakeSession(FakeResponse({"rescode": "P202", "resmsg": "amount"}))

        result = _client(session).cancel(order_ref="ORD1", amount=Decimal("10"))

        assert not result.success
        assert result.code == "P202"
        assert result.message == "Payment amount does not match."
        assert session.posts[0]["url"].endswith("/v1/sugi/cancel.do")

    def test_transport_error_is_a_failed_result(self):
        session = FakeSession(error=requests.ConnectionError("connection refused"))

        result = _client(session).cancel(order_ref="ORD1", amount=Decimal("10"))

        assert not result.success
        assert "unreachable" in result.message

    def test_http_error_is_a_failed_result(self):
        result = _client(FakeSession(FakeResponse(status_code=503))).cancel(order_ref="ORD1", amount=1)
        assert not result.success

    def test_non_json_response(self):
        result = _client(FakeSession(FakeResponse(None))).cancel(order_ref="ORD1", amount=1)
        assert not result.success
        assert "invalid response" in result.message


def test_describe_error_falls_back_to_message():
    assert describe_error("P010") == "Transaction already cancelled."
    assert describe_error("X123", "custom") == "custom"
    assert describe_error("X123") == "Card payment could not be processed."
