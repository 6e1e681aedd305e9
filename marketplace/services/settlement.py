"""Checkout PIX e liquidação do orçamento.

A liquidação confirma o orçamento e credita o líquido na carteira do
profissional. Roda no máximo uma vez por orçamento: o flag
``client_confirmed`` é trocado por UPDATE condicional e o lançamento na
carteira é único por ``quote_id``, os dois no mesmo commit.
"""
import logging
import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.core import config
from marketplace.core.errors import (
    InvalidState,
    MissingTaxId,
    NotYetSettled,
    PermissionDenied,
)
from marketplace.integrations.abacatepay import AbacatePayClient, Billing, BillingCustomer
from marketplace.models.quote import Quote
from marketplace.models.user import User
from marketplace.models.wallet_transaction import WalletTransaction
from marketplace.services.quotes import get_quote

logger = logging.getLogger(__name__)


class CheckoutResult(BaseModel):
    quote_id: int
    billing_id: str
    url: str
    amount: float


class SettlementResult(BaseModel):
    quote_id: int
    paid: bool = True
    # no JSON sai como alreadyProcessed, mesmo padrão do autoApproved da moderação
    already_processed: bool = Field(default=False, serialization_alias="alreadyProcessed")
    billing_id: Optional[str] = None
    fee: Optional[float] = None
    net_amount: Optional[float] = None


def compute_fee_split(amount: float, rate: Optional[float] = None) -> tuple[float, float]:
    """Retorna (taxa da plataforma, valor líquido) arredondados em centavos."""
    rate = config.PLATFORM_FEE_RATE if rate is None else rate
    fee = round(amount * rate, 2)
    return fee, round(amount - fee, 2)


def _clean_cpf(cpf: Optional[str]) -> str:
    return re.sub(r"\D", "", cpf or "")


# =========================
# CHECKOUT (CLIENTE)
# =========================

def start_checkout(
    session: Session,
    billing: AbacatePayClient,
    quote_id: int,
    client: User,
) -> CheckoutResult:
    quote = get_quote(session, quote_id)

    if quote.client_id != client.id:
        raise PermissionDenied("Apenas o cliente pode pagar este orçamento")

    if quote.status != "accepted" or quote.client_confirmed:
        raise InvalidState("Orçamento não está pronto para pagamento")

    tax_id = _clean_cpf(client.cpf)
    if not tax_id:
        raise MissingTaxId()

    result = billing.create_billing(
        amount_cents=int(round(quote.price * 100)),
        correlation_id=quote.id,
        customer=BillingCustomer(
            name=client.name or "Cliente",
            email=client.email,
            taxId=tax_id,
            cellphone=client.phone or None,
        ),
        product_name=quote.title,
        description=quote.description or f"Pagamento de serviço - {quote.title}",
        metadata={
            "client_id": str(client.id),
            "professional_id": str(quote.professional_id),
            "conversation_id": quote.conversation_id,
        },
    )

    if not result.url:
        raise InvalidState("O provedor não retornou o link de pagamento")

    logger.info("Checkout PIX %s iniciado para orçamento %s", result.id, quote.id)
    return CheckoutResult(quote_id=quote.id, billing_id=result.id, url=result.url, amount=quote.price)


# =========================
# VERIFICAÇÃO / LIQUIDAÇÃO
# =========================

def find_billing_for_quote(billings: list[Billing], quote_id: int) -> Optional[Billing]:
    matching = [b for b in billings if b.matches(quote_id)]
    if not matching:
        return None
    # várias tentativas de checkout geram várias cobranças; vale a paga
    for b in matching:
        if b.is_paid:
            return b
    return matching[0]


def verify_payment(
    session: Session,
    billing: AbacatePayClient,
    quote_id: int,
    now: Optional[datetime] = None,
) -> SettlementResult:
    quote = get_quote(session, quote_id)

    if quote.client_confirmed:
        logger.info("Orçamento %s já confirmado, nada a fazer", quote_id)
        return SettlementResult(quote_id=quote_id, already_processed=True)

    found = find_billing_for_quote(billing.list_billings(), quote_id)
    if found is None:
        raise NotYetSettled("Nenhuma cobrança encontrada para este orçamento", payment_status="NO_BILLING")

    if not found.is_paid:
        raise NotYetSettled(payment_status=found.status.upper())

    return settle_quote(session, quote, billing_id=found.id, now=now)


def settle_quote(
    session: Session,
    quote: Quote,
    billing_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SettlementResult:
    now = now or datetime.utcnow()

    result = session.execute(
        update(Quote)
        .where(
            Quote.id == quote.id,
            Quote.client_confirmed == False,  # noqa: E712
            Quote.status == "accepted",
        )
        .values(
            client_confirmed=True,
            client_confirmed_at=now,
            status="completed",
            completed_at=quote.completed_at or now,
            updated_at=now,
        )
    )

    if result.rowcount != 1:
        session.rollback()
        session.refresh(quote)
        if quote.client_confirmed:
            # outra verificação liquidou primeiro
            return SettlementResult(quote_id=quote.id, already_processed=True, billing_id=billing_id)
        raise InvalidState(f"Orçamento não pode ser liquidado (status atual: {quote.status})")

    fee, net = compute_fee_split(quote.price)

    existing = session.exec(
        select(WalletTransaction).where(WalletTransaction.quote_id == quote.id)
    ).first()

    if existing is None:
        client = session.get(User, quote.client_id)
        session.add(
            WalletTransaction(
                user_id=quote.professional_id,
                quote_id=quote.id,
                type="credit",
                amount=quote.price,
                fee=fee,
                net_amount=net,
                description=f"Pagamento - {quote.title}",
                customer_name=(client.name if client else None) or "Cliente",
                status="completed",
                created_at=now,
            )
        )
    else:
        logger.warning("Orçamento %s já tinha lançamento %s na carteira", quote.id, existing.id)

    # flag + lançamento no mesmo commit
    session.commit()
    session.refresh(quote)

    logger.info(
        "Orçamento %s liquidado (cobrança %s): bruto %.2f, taxa %.2f, líquido %.2f",
        quote.id, billing_id, quote.price, fee, net,
    )
    return SettlementResult(quote_id=quote.id, billing_id=billing_id, fee=fee, net_amount=net)
