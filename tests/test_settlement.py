from datetime import datetime

import pytest
from sqlmodel import select

from marketplace.core.errors import InvalidState, MissingTaxId, NotFound, NotYetSettled, PermissionDenied
from marketplace.models.quote import Quote
from marketplace.models.wallet_transaction import WalletTransaction
from marketplace.services.quotes import respond_to_quote
from marketplace.services.settlement import (
    compute_fee_split,
    find_billing_for_quote,
    settle_quote,
    start_checkout,
    verify_payment,
)
from marketplace.integrations.abacatepay import Billing

T0 = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def accepted_quote(quote_factory, session, client_user):
    quote = quote_factory(price=1000.0, now=T0)
    return respond_to_quote(session, quote.id, client_user, "accepted", now=T0)


def ledger_rows(session, quote_id):
    return session.exec(select(WalletTransaction).where(WalletTransaction.quote_id == quote_id)).all()


class TestFeeSplit:

    def test_ten_percent(self):
        assert compute_fee_split(1000.0) == (100.0, 900.0)

    def test_rounded_to_cents(self):
        fee, net = compute_fee_split(99.99)
        assert fee == 10.0
        assert net == 89.99

    def test_custom_rate(self):
        assert compute_fee_split(200.0, rate=0.05) == (10.0, 190.0)


# =========================
# CHECKOUT
# =========================

class TestStartCheckout:

    def test_creates_pix_billing_in_cents(self, session, billing, accepted_quote, client_user):
        result = start_checkout(session, billing, accepted_quote.id, client_user)

        assert result.url.startswith("https://pay.example.com/")
        assert result.amount == 1000.0
        sent = billing.created[0]
        assert sent["amount_cents"] == 100000
        assert sent["correlation_id"] == accepted_quote.id
        assert sent["customer"].taxId == "12345678909"
        assert sent["customer"].email == client_user.email

    def test_pending_quote_is_refused(self, session, billing, quote_factory, client_user):
        quote = quote_factory(now=T0)

        with pytest.raises(InvalidState):
            start_checkout(session, billing, quote.id, client_user)
        assert billing.created == []

    def test_missing_tax_id(self, session, billing, quote_factory, user_factory):
        no_cpf = user_factory("client", cpf=None)
        quote = quote_factory(client=no_cpf, now=T0)
        respond_to_quote(session, quote.id, no_cpf, "accepted", now=T0)

        with pytest.raises(MissingTaxId):
            start_checkout(session, billing, quote.id, no_cpf)
        assert billing.created == []

    def test_other_client(self, session, billing, accepted_quote, user_factory):
        with pytest.raises(PermissionDenied):
            start_checkout(session, billing, accepted_quote.id, user_factory("client", cpf="11122233344"))

    def test_unknown_quote(self, session, billing, client_user):
        with pytest.raises(NotFound):
            start_checkout(session, billing, 12345, client_user)

    def test_already_paid_quote(self, session, billing, accepted_quote, client_user):
        settle_quote(session, accepted_quote)

        with pytest.raises(InvalidState):
            start_checkout(session, billing, accepted_quote.id, client_user)


# =========================
# VERIFICAÇÃO / LIQUIDAÇÃO
# =========================

class TestVerifyPayment:

    def test_no_billing_yet(self, session, billing, accepted_quote):
        with pytest.raises(NotYetSettled) as exc:
            verify_payment(session, billing, accepted_quote.id)

        assert exc.value.payment_status == "NO_BILLING"
        assert exc.value.retryable is True

    def test_pending_billing(self, session, billing, accepted_quote, client_user):
        start_checkout(session, billing, accepted_quote.id, client_user)

        with pytest.raises(NotYetSettled) as exc:
            verify_payment(session, billing, accepted_quote.id)

        assert exc.value.payment_status == "PENDING"
        assert session.get(Quote, accepted_quote.id).client_confirmed is False
        assert ledger_rows(session, accepted_quote.id) == []

    def test_paid_billing_settles(self, session, billing, accepted_quote, client_user, professional):
        start_checkout(session, billing, accepted_quote.id, client_user)
        billing.mark_paid(accepted_quote.id)

        result = verify_payment(session, billing, accepted_quote.id, now=T0)

        assert result.paid is True
        assert result.already_processed is False
        assert (result.fee, result.net_amount) == (100.0, 900.0)

        quote = session.get(Quote, accepted_quote.id)
        assert quote.status == "completed"
        assert quote.client_confirmed is True
        assert quote.client_confirmed_at == T0

        [row] = ledger_rows(session, accepted_quote.id)
        assert row.user_id == professional.id
        assert (row.amount, row.fee, row.net_amount) == (1000.0, 100.0, 900.0)
        assert row.type == "credit"
        assert row.status == "completed"
        assert row.customer_name == client_user.name
        assert row.description == f"Pagamento - {quote.title}"

    def test_second_verification_is_a_noop(self, session, billing, accepted_quote, client_user):
        start_checkout(session, billing, accepted_quote.id, client_user)
        billing.mark_paid(accepted_quote.id)
        verify_payment(session, billing, accepted_quote.id)
        calls = billing.list_calls

        again = verify_payment(session, billing, accepted_quote.id)

        assert again.already_processed is True
        assert billing.list_calls == calls
        assert len(ledger_rows(session, accepted_quote.id)) == 1

    def test_racing_settlement_does_not_double_credit(self, session, accepted_quote):
        """Duas liquidações com o mesmo objeto lido antes da primeira."""
        first = settle_quote(session, accepted_quote)
        second = settle_quote(session, accepted_quote)

        assert first.already_processed is False
        assert second.already_processed is True
        assert len(ledger_rows(session, accepted_quote.id)) == 1

    def test_existing_ledger_row_is_not_duplicated(self, session, accepted_quote, professional):
        """Lançamento já gravado por uma tentativa anterior, flag ainda falso."""
        session.add(
            WalletTransaction(
                user_id=professional.id,
                quote_id=accepted_quote.id,
                amount=1000.0,
                fee=100.0,
                net_amount=900.0,
                description="Pagamento - anterior",
            )
        )
        session.commit()

        result = settle_quote(session, accepted_quote)

        assert result.paid is True
        rows = ledger_rows(session, accepted_quote.id)
        assert len(rows) == 1
        assert rows[0].description == "Pagamento - anterior"
        assert session.get(Quote, accepted_quote.id).client_confirmed is True

    def test_rejected_quote_cannot_be_settled(self, session, quote_factory, client_user):
        quote = quote_factory(now=T0)
        respond_to_quote(session, quote.id, client_user, "rejected", now=T0)

        with pytest.raises(InvalidState):
            settle_quote(session, quote)
        assert ledger_rows(session, quote.id) == []


class TestFindBilling:

    def test_prefers_paid_attempt(self):
        billings = [
            Billing(id="b1", status="EXPIRED", metadata={"quote_id": "7"}),
            Billing(id="b2", status="PAID", metadata={"quote_id": "7"}),
            Billing(id="b3", status="PAID", metadata={"quote_id": "8"}),
        ]

        assert find_billing_for_quote(billings, 7).id == "b2"

    def test_matches_product_external_id(self):
        billings = [Billing(id="b1", status="PENDING", products=[{"externalId": "7"}])]

        assert find_billing_for_quote(billings, 7).id == "b1"
        assert find_billing_for_quote(billings, 9) is None
