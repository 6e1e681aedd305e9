"""Ciclo de vida do orçamento.

pending -> accepted | rejected | cancelled | expired
accepted -> completed (na liquidação do pagamento)

Toda transição é um UPDATE condicionado ao status atual; se nenhuma linha
for afetada, outra requisição (ou a varredura de expiração) chegou antes.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, or_, select

from marketplace.core.errors import InvalidQuote, InvalidState, NotFound, PermissionDenied
from marketplace.models.quote import Quote, QuoteCreate
from marketplace.models.user import User

logger = logging.getLogger(__name__)

RESPONSES = ("accepted", "rejected")


def get_quote(session: Session, quote_id: int) -> Quote:
    quote = session.get(Quote, quote_id)
    if not quote:
        raise NotFound("Orçamento não encontrado")
    return quote


def _transition(session: Session, quote_id: int, from_status: str, **values) -> bool:
    """UPDATE quote SET ... WHERE id = :id AND status = :from_status. True se afetou a linha."""
    result = session.execute(
        update(Quote)
        .where(Quote.id == quote_id, Quote.status == from_status)
        .values(**values)
    )
    return result.rowcount == 1


# =========================
# CRIAR (PROFISSIONAL)
# =========================

def create_quote(
    session: Session,
    professional: User,
    data: QuoteCreate,
    now: Optional[datetime] = None,
) -> Quote:
    title = (data.title or "").strip()
    if not title:
        raise InvalidQuote("Título é obrigatório")
    price = round(float(data.price), 2) if data.price is not None else None
    # arredonda antes de validar: 0.004 vira 0.0
    if price is None or not math.isfinite(price) or price <= 0:
        raise InvalidQuote("O preço deve ser maior que zero")
    if data.validity_days is None or data.validity_days <= 0:
        raise InvalidQuote("A validade deve ser de pelo menos 1 dia")

    client = session.get(User, data.client_id)
    if not client or client.role != "client":
        raise NotFound("Cliente não encontrado")

    now = now or datetime.utcnow()
    quote = Quote(
        professional_id=professional.id,
        client_id=client.id,
        service_id=data.service_id,
        conversation_id=data.conversation_id,
        title=title,
        description=data.description,
        price=price,
        validity_days=data.validity_days,
        status="pending",
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(days=data.validity_days),
    )

    session.add(quote)
    session.commit()
    session.refresh(quote)

    logger.info(
        "Orçamento %s criado por %s para %s (R$ %.2f, expira %s)",
        quote.id, professional.id, client.id, quote.price, quote.expires_at.isoformat(),
    )
    return quote


# =========================
# RESPONDER (CLIENTE)
# =========================

def respond_to_quote(
    session: Session,
    quote_id: int,
    client: User,
    decision: str,
    response: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Quote:
    if decision not in RESPONSES:
        raise InvalidQuote("Resposta deve ser 'accepted' ou 'rejected'")

    quote = get_quote(session, quote_id)
    if quote.client_id != client.id:
        raise PermissionDenied("Apenas o cliente do orçamento pode responder")

    now = now or datetime.utcnow()

    # a varredura pode ainda não ter rodado
    if quote.status == "pending" and quote.expires_at < now:
        if _transition(session, quote_id, "pending", status="expired", updated_at=now):
            session.commit()
            logger.info("Orçamento %s expirou ao receber resposta", quote_id)
        session.refresh(quote)
        raise InvalidState("Este orçamento expirou")

    changed = _transition(
        session,
        quote_id,
        "pending",
        status=decision,
        client_response=response,
        responded_at=now,
        updated_at=now,
    )
    if not changed:
        session.rollback()
        session.refresh(quote)
        raise InvalidState(f"Orçamento não está pendente (status atual: {quote.status})")

    session.commit()
    session.refresh(quote)
    logger.info("Orçamento %s %s pelo cliente %s", quote_id, decision, client.id)
    return quote


# =========================
# CANCELAR (PROFISSIONAL)
# =========================

def cancel_quote(
    session: Session,
    quote_id: int,
    professional: User,
    now: Optional[datetime] = None,
) -> Quote:
    quote = get_quote(session, quote_id)
    if quote.professional_id != professional.id:
        raise PermissionDenied("Apenas o profissional que enviou pode cancelar")

    now = now or datetime.utcnow()
    if not _transition(session, quote_id, "pending", status="cancelled", updated_at=now):
        session.rollback()
        session.refresh(quote)
        raise InvalidState(f"Só é possível cancelar orçamentos pendentes (status atual: {quote.status})")

    session.commit()
    session.refresh(quote)
    logger.info("Orçamento %s cancelado pelo profissional %s", quote_id, professional.id)
    return quote


# =========================
# FINALIZAR SERVIÇO (PROFISSIONAL)
# =========================

def mark_service_completed(
    session: Session,
    quote_id: int,
    professional: User,
    now: Optional[datetime] = None,
) -> Quote:
    quote = get_quote(session, quote_id)
    if quote.professional_id != professional.id:
        raise PermissionDenied()

    if quote.completed_at is not None:
        raise InvalidState("Serviço já finalizado")

    now = now or datetime.utcnow()
    result = session.execute(
        update(Quote)
        .where(Quote.id == quote_id, Quote.status == "accepted", Quote.completed_at.is_(None))
        .values(completed_at=now, updated_at=now)
    )
    if result.rowcount != 1:
        session.rollback()
        session.refresh(quote)
        raise InvalidState(f"Só é possível finalizar orçamentos aceitos (status atual: {quote.status})")

    session.commit()
    session.refresh(quote)
    logger.info("Serviço do orçamento %s finalizado", quote_id)
    return quote


# =========================
# VARREDURA DE EXPIRAÇÃO
# =========================

def expire_quotes(session: Session, now: Optional[datetime] = None) -> list[int]:
    """Expira orçamentos pendentes vencidos. Idempotente; pode rodar em paralelo."""
    now = now or datetime.utcnow()

    candidates = session.exec(
        select(Quote.id).where(Quote.status == "pending", Quote.expires_at < now)
    ).all()

    if not candidates:
        logger.info("Nenhum orçamento expirado encontrado")
        return []

    expired: list[int] = []
    for quote_id in candidates:
        try:
            if _transition(session, quote_id, "pending", status="expired", updated_at=now):
                expired.append(quote_id)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Falha ao expirar orçamento %s, seguindo com os demais", quote_id)

    logger.info("%s orçamento(s) expirado(s) de %s candidato(s)", len(expired), len(candidates))
    return expired


# =========================
# LISTAGEM
# =========================

def list_quotes(
    session: Session,
    user: User,
    conversation_id: Optional[str] = None,
    status: Optional[str] = None,
) -> list[Quote]:
    query = select(Quote).where(or_(Quote.client_id == user.id, Quote.professional_id == user.id))
    if conversation_id:
        query = query.where(Quote.conversation_id == conversation_id)
    if status:
        query = query.where(Quote.status == status)
    return list(session.exec(query.order_by(Quote.created_at.desc())).all())
