from datetime import datetime, timedelta

import pytest

from marketplace.core.errors import InvalidQuote, InvalidState, NotFound, PermissionDenied
from marketplace.models.quote import Quote, QuoteCreate
from marketplace.services.quotes import (
    cancel_quote,
    create_quote,
    expire_quotes,
    list_quotes,
    mark_service_completed,
    respond_to_quote,
)

T0 = datetime(2026, 3, 1, 12, 0, 0)


# =========================
# CRIAÇÃO
# =========================

class TestCreateQuote:

    def test_expiry_fixed_at_creation(self, quote_factory):
        quote = quote_factory(validity_days=7, now=T0)

        assert quote.status == "pending"
        assert quote.created_at == T0
        assert quote.expires_at.tzinfo is None
        assert quote.expires_at == T0 + timedelta(days=7)
        assert quote.client_confirmed is False

    @pytest.mark.parametrize(
        "changes",
        [
            {"price": 0},
            {"price": -10},
            {"price": 0.004},
            {"price": float("nan")},
            {"price": float("inf")},
            {"validity_days": 0},
            {"title": "   "},
        ],
    )
    def test_invalid_data(self, session, professional, client_user, changes):
        fields = {"client_id": client_user.id, "title": "Pintura", "price": 200.0, "validity_days": 3}
        fields.update(changes)

        with pytest.raises(InvalidQuote):
            create_quote(session, professional, QuoteCreate(**fields))

    def test_price_rounded_to_cents(self, session, professional, client_user):
        quote = create_quote(
            session, professional, QuoteCreate(client_id=client_user.id, title="Pintura", price=199.999)
        )

        assert quote.price == 200.0

    def test_unknown_client(self, session, professional):
        with pytest.raises(NotFound):
            create_quote(session, professional, QuoteCreate(client_id=999, title="Pintura", price=200.0))

    def test_recipient_must_be_client(self, session, professional, user_factory):
        other_pro = user_factory("professional")

        with pytest.raises(NotFound):
            create_quote(session, professional, QuoteCreate(client_id=other_pro.id, title="Pintura", price=200.0))


# =========================
# RESPOSTA DO CLIENTE
# =========================

class TestRespondToQuote:

    def test_accept(self, quote_factory, session, client_user):
        quote = quote_factory(now=T0)

        result = respond_to_quote(session, quote.id, client_user, "accepted", "Fechado!", now=T0 + timedelta(hours=1))

        assert result.status == "accepted"
        assert result.client_response == "Fechado!"
        assert result.responded_at == T0 + timedelta(hours=1)

    def test_reject(self, quote_factory, session, client_user):
        quote = quote_factory(now=T0)

        result = respond_to_quote(session, quote.id, client_user, "rejected", now=T0)

        assert result.status == "rejected"

    def test_second_response_is_refused(self, quote_factory, session, client_user):
        quote = quote_factory(now=T0)
        respond_to_quote(session, quote.id, client_user, "accepted", now=T0)

        with pytest.raises(InvalidState):
            respond_to_quote(session, quote.id, client_user, "rejected", now=T0)

        assert session.get(Quote, quote.id).status == "accepted"

    def test_only_recipient_can_respond(self, quote_factory, session, user_factory):
        quote = quote_factory(now=T0)
        stranger = user_factory("client")

        with pytest.raises(PermissionDenied):
            respond_to_quote(session, quote.id, stranger, "accepted", now=T0)

    def test_unknown_decision(self, quote_factory, session, client_user):
        quote = quote_factory(now=T0)

        with pytest.raises(InvalidQuote):
            respond_to_quote(session, quote.id, client_user, "maybe", now=T0)

    def test_overdue_quote_expires_on_response(self, quote_factory, session, client_user):
        """Validade de 1 dia e resposta 25h depois, antes de qualquer varredura."""
        quote = quote_factory(validity_days=1, now=T0)

        with pytest.raises(InvalidState):
            respond_to_quote(session, quote.id, client_user, "accepted", now=T0 + timedelta(hours=25))

        assert session.get(Quote, quote.id).status == "expired"


# =========================
# CANCELAMENTO E CONCLUSÃO (PROFISSIONAL)
# =========================

class TestProfessionalActions:

    def test_cancel_pending(self, quote_factory, session, professional):
        quote = quote_factory(now=T0)

        assert cancel_quote(session, quote.id, professional).status == "cancelled"

    def test_cancel_accepted_is_refused(self, quote_factory, session, professional, client_user):
        quote = quote_factory(now=T0)
        respond_to_quote(session, quote.id, client_user, "accepted", now=T0)

        with pytest.raises(InvalidState):
            cancel_quote(session, quote.id, professional)

    def test_cancel_by_other_professional(self, quote_factory, session, user_factory):
        quote = quote_factory(now=T0)

        with pytest.raises(PermissionDenied):
            cancel_quote(session, quote.id, user_factory("professional"))

    def test_mark_completed_once(self, quote_factory, session, professional, client_user):
        quote = quote_factory(now=T0)
        respond_to_quote(session, quote.id, client_user, "accepted", now=T0)

        done = mark_service_completed(session, quote.id, professional, now=T0 + timedelta(days=1))

        assert done.completed_at == T0 + timedelta(days=1)
        assert done.status == "accepted"
        with pytest.raises(InvalidState):
            mark_service_completed(session, quote.id, professional)

    def test_mark_completed_requires_accepted(self, quote_factory, session, professional):
        quote = quote_factory(now=T0)

        with pytest.raises(InvalidState):
            mark_service_completed(session, quote.id, professional)


# =========================
# VARREDURA DE EXPIRAÇÃO
# =========================

class TestExpireQuotes:

    def test_expires_only_overdue_pending(self, quote_factory, session, client_user):
        overdue = quote_factory(validity_days=1, now=T0)
        fresh = quote_factory(validity_days=30, now=T0)
        accepted = quote_factory(validity_days=1, now=T0)
        respond_to_quote(session, accepted.id, client_user, "accepted", now=T0)

        expired = expire_quotes(session, now=T0 + timedelta(days=2))

        assert expired == [overdue.id]
        assert session.get(Quote, overdue.id).status == "expired"
        assert session.get(Quote, fresh.id).status == "pending"
        assert session.get(Quote, accepted.id).status == "accepted"

    def test_sweep_is_idempotent(self, quote_factory, session):
        quote_factory(validity_days=1, now=T0)
        later = T0 + timedelta(days=2)

        assert len(expire_quotes(session, now=later)) == 1
        assert expire_quotes(session, now=later) == []

    def test_expired_quote_cannot_be_accepted(self, quote_factory, session, client_user):
        quote = quote_factory(validity_days=1, now=T0)
        expire_quotes(session, now=T0 + timedelta(days=2))

        with pytest.raises(InvalidState):
            respond_to_quote(session, quote.id, client_user, "accepted", now=T0 + timedelta(days=2))

    def test_sweep_then_late_acceptance(self, quote_factory, session, client_user):
        """R$ 500 com validade de 1 dia; varredura 25h depois; aceite falha."""
        quote = quote_factory(price=500.0, validity_days=1, now=T0)
        later = T0 + timedelta(hours=25)

        assert expire_quotes(session, now=later) == [quote.id]
        with pytest.raises(InvalidState):
            respond_to_quote(session, quote.id, client_user, "accepted", now=later)
        assert session.get(Quote, quote.id).status == "expired"


class TestListQuotes:

    def test_filters(self, quote_factory, session, professional, client_user, user_factory):
        first = quote_factory(now=T0)
        quote_factory(now=T0 + timedelta(minutes=1))
        respond_to_quote(session, first.id, client_user, "rejected", now=T0)
        outsider = user_factory("client")

        assert len(list_quotes(session, professional)) == 2
        assert len(list_quotes(session, client_user, conversation_id="conv-1")) == 2
        assert [q.id for q in list_quotes(session, client_user, status="rejected")] == [first.id]
        assert list_quotes(session, outsider) == []
