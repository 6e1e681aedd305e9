from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.appointment import AppointmentSchedule, QuoteScheduleRequest
from marketplace.models.quote import QuoteCreate, QuoteRespond
from marketplace.models.user import User
from marketplace.core.errors import PermissionDenied
from marketplace.core.security import get_current_client, get_current_professional, get_current_user
from marketplace.services import quotes as quote_service
from marketplace.services.appointments import schedule_accepted_quote


router = APIRouter(prefix="/quotes", tags=["quotes"])


# =========================
# CRIAR ORÇAMENTO (PROFISSIONAL)
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_quote(
    payload: QuoteCreate,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return quote_service.create_quote(session, current_professional, payload)


# =========================
# LISTAR
# - cliente: recebidos
# - profissional: enviados
# =========================
@router.get("/")
def list_quotes(
    conversation_id: Optional[str] = None,
    status: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return quote_service.list_quotes(session, current_user, conversation_id, status)


@router.get("/{quote_id}")
def get_quote(
    quote_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    quote = quote_service.get_quote(session, quote_id)
    if current_user.id not in (quote.client_id, quote.professional_id):
        raise PermissionDenied()
    return quote


# =========================
# RESPONDER (CLIENTE)
# =========================
@router.patch("/{quote_id}/respond")
def respond_quote(
    quote_id: int,
    payload: QuoteRespond,
    session: Session = Depends(get_session),
    current_client: User = Depends(get_current_client),
):
    return quote_service.respond_to_quote(
        session, quote_id, current_client, payload.decision, payload.response
    )


# =========================
# ACEITAR + AGENDAR (CLIENTE)
# =========================
@router.post("/{quote_id}/schedule", status_code=status.HTTP_201_CREATED)
def accept_and_schedule(
    quote_id: int,
    payload: QuoteScheduleRequest,
    session: Session = Depends(get_session),
    current_client: User = Depends(get_current_client),
):
    schedule = AppointmentSchedule(**payload.model_dump(exclude={"response"}))
    quote, appt = schedule_accepted_quote(
        session, current_client, quote_id, schedule, payload.response
    )
    return {"quote": quote, "appointment": appt}


# =========================
# CANCELAR (PROFISSIONAL)
# =========================
@router.patch("/{quote_id}/cancel")
def cancel_quote(
    quote_id: int,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return quote_service.cancel_quote(session, quote_id, current_professional)


# =========================
# SERVIÇO REALIZADO (PROFISSIONAL)
# =========================
@router.patch("/{quote_id}/complete")
def complete_quote(
    quote_id: int,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return quote_service.mark_service_completed(session, quote_id, current_professional)
