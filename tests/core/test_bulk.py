import pytest
from decimal import Decimal

from core.bulk import normalize_rows, resolve_account, run_bulk
from core.exceptions import NotFoundError
from core.services import positive_money


@pytest.mark.django_db
class TestResolveAccount:
    def test_by_email_case_insensitive(self, dealer):
        assert resolve_account(" DEALER@test.com ") == dealer

    def test_by_id(self, dealer):
        assert resolve_account(str(dealer.pk)) == dealer

    def test_inactive_account_not_found(self, dealer):
        dealer.is_active = False
        dealer.save()
        with pytest.raises(NotFoundError):
            resolve_account(dealer.email)

    def test_blank(self, db):
        with pytest.raises(NotFoundError, match="missing"):
            resolve_account("")


def test_normalize_rows_accepts_dicts_and_tuples():
    rows = normalize_rows([
        {"account": "a@test.com", "amount": "10.5", "reason": "promo"},
        ("b@test.com", 3),
        ("c@test.com", "lots", "typo"),
        ("d@test.com", "NaN"),
    ])

    assert [r.row for r in rows] == [1, 2, 3, 4]
    assert rows[0].amount == Decimal("10.5")
    assert rows[1].reason == ""
    assert rows[2].amount is None
    assert rows[3].amount is None


@pytest.mark.django_db
class TestRunBulk:
    def test_failed_rows_do_not_block_the_rest(self, dealer, consumer):
        applied = []

        def apply(account, amount, reason):
            if reason == "reject":
                raise ValueError("rejected by rule")
            applied.append((account, amount))

        result = run_bulk([
            (dealer.email, "100"),
            ("ghost@test.com", "100"),
            (consumer.email, "-5"),
            (consumer.email, "50", "reject"),
            (consumer.email, "25"),
        ], apply, "test")

        assert result.as_dict() == {
            "total": 5,
            "success_count": 2,
            "fail_count": 3,
            "errors": [
                {"row": 2, "account": "ghost@test.com", "error": "Account not found: ghost@test.com"},
                {"row": 3, "account": consumer.email, "error": "Amount must be a positive number."},
                {"row": 4, "account": consumer.email, "error": "rejected by rule"},
            ],
        }
        assert applied == [(dealer, Decimal("100")), (consumer, Decimal("25"))]

    def test_error_list_is_capped(self, db, settings):
        settings.BULK_ERROR_LIMIT = 2

        result = run_bulk([("nobody@test.com", "1")] * 5, lambda *args: None, "test")

        assert result.fail_count == 5
        assert len(result.errors) == 2

    def test_amount_too_large_to_store_fails_only_its_row(self, dealer, consumer):
        applied = []

        def apply(account, amount, reason):
            applied.append((account, positive_money(amount)))

        result = run_bulk([(dealer.email, "100"), (consumer.email, "1e30")], apply, "test")

        assert result.success_count == 1
        assert result.errors == [{"row": 2, "account": consumer.email, "error": "The amount is too large: Decimal('1E+30')."}]
        assert applied == [(dealer, Decimal("100.00"))]

    def test_unexpected_errors_propagate(self, dealer):
        def apply(account, amount, reason):
            raise RuntimeError("database gone")

        with pytest.raises(RuntimeError):
            run_bulk([(dealer.email, "1")], apply, "test")
