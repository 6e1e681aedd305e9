import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, or_, select

from marketplace.core.errors import (
    InvalidQuote,
    InvalidState,
    MissingPrecondition,
    MissingTaxId,
    NotFound,
    PermissionDenied,
    SlotUnavailable,
)
from marketplace.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentSchedule,
    ServiceBookingRequest,
)
from marketplace.models.quote import Quote
from marketplace.models.service import Service
from marketplace.models.user import User
from marketplace.services.quotes import respond_to_quote
from marketplace.services.slots import OccupiedSlots, format_time, slot_end_for

logger = logging.getLogger(__name__)


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    appt = session.get(Appointment, appointment_id)
    if not appt:
        raise NotFound("Agendamento não encontrado")
    return appt


def ensure_slot_free(
    session: Session,
    professional_id: int,
    schedule: AppointmentSchedule,
) -> None:
    day = schedule.scheduled_date
    occupied = OccupiedSlots.load(session, professional_id, day, day)
    slot_start = format_time(schedule.scheduled_time)
    slot_end = slot_end_for(slot_start, schedule.duration_minutes)

    if occupied.is_slot_occupied(day, slot_start, slot_end):
        logger.info(
            "Conflito de horário para profissional %s em %s %s-%s",
            professional_id, day, slot_start, slot_end,
        )
        raise SlotUnavailable()


# =========================
# AGENDAR (CLIENTE)
# =========================

def book_appointment(
    session: Session,
    client: User,
    data: AppointmentCreate,
) -> Appointment:
    professional = session.get(User, data.professional_id)
    if not professional or professional.role != "professional":
        raise NotFound("Profissional não encontrado")

    if data.duration_minutes is None or data.duration_minutes <= 0:
        raise MissingPrecondition("A duração deve ser maior que zero")

    if data.quote_id is not None:
        quote = session.get(Quote, data.quote_id)
        if not quote:
            raise NotFound("Orçamento não encontrado")
        if quote.client_id != client.id or quote.professional_id != professional.id:
            raise PermissionDenied("Orçamento não pertence a este agendamento")
        if quote.status != "accepted":
            raise InvalidState("Só é possível agendar orçamentos aceitos")

    ensure_slot_free(session, professional.id, data)

    now = datetime.utcnow()
    appt = Appointment(
        professional_id=professional.id,
        client_id=client.id,
        quote_id=data.quote_id,
        service_id=data.service_id,
        conversation_id=data.conversation_id,
        title=data.title,
        description=data.description,
        location=data.location,
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time,
        duration_minutes=data.duration_minutes,
        status="pending",
        created_at=now,
        updated_at=now,
    )
    session.add(appt)
    session.commit()
    session.refresh(appt)

    logger.info(
        "Agendamento %s criado: profissional %s em %s %s",
        appt.id, professional.id, appt.scheduled_date, format_time(appt.scheduled_time),
    )
    return appt


def schedule_accepted_quote(
    session: Session,
    client: User,
    quote_id: int,
    schedule: AppointmentSchedule,
    response: Optional[str] = None,
) -> tuple[Quote, Appointment]:
    """Aceita o orçamento pendente e agenda o atendimento correspondente."""
    if schedule.duration_minutes is None or schedule.duration_minutes <= 0:
        raise MissingPrecondition("A duração deve ser maior que zero")

    quote = session.get(Quote, quote_id)
    if not quote:
        raise NotFound("Orçamento não encontrado")

    data = AppointmentCreate(
        **schedule.model_dump(),
        professional_id=quote.professional_id,
        title=quote.title,
        quote_id=quote.id,
        service_id=quote.service_id,
        conversation_id=quote.conversation_id,
    )

    # checa o horário antes de aceitar para não deixar orçamento aceito sem agenda
    ensure_slot_free(session, quote.professional_id, schedule)

    quote = respond_to_quote(session, quote_id, client, "accepted", response)
    appt = book_appointment(session, client, data)
    session.refresh(quote)
    return quote, appt


# =========================
# AGENDAMENTO DIRETO DE SERVIÇO (PREÇO FIXO)
# =========================

DIRECT_BOOKING_VALIDITY_DAYS = 7


def book_service(
    session: Session,
    client: User,
    data: ServiceBookingRequest,
    now: Optional[datetime] = None,
) -> tuple[Quote, Appointment]:
    """Agenda um serviço do catálogo sem negociação.

    Gera um orçamento já aceito com o preço do serviço e o agendamento
    pendente ligado a ele, prontos para o checkout PIX.
    """
    service = session.get(Service, data.service_id)
    if not service or not service.active:
        raise NotFound("Serviço não encontrado ou inativo")

    # sem CPF o cliente não consegue pagar depois
    if not (client.cpf or "").strip():
        raise MissingTaxId()

    price = round(float(service.price), 2)
    if not math.isfinite(price) or price <= 0:
        raise InvalidQuote("Serviço sem preço válido")

    duration = service.duration_minutes if data.duration_minutes is None else data.duration_minutes
    if duration is None or duration <= 0:
        raise MissingPrecondition("A duração deve ser maior que zero")

    schedule = AppointmentSchedule(
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time,
        duration_minutes=duration,
        location=data.location,
    )
    ensure_slot_free(session, service.professional_id, schedule)

    now = now or datetime.utcnow()
    start = format_time(data.scheduled_time)
    quote = Quote(
        professional_id=service.professional_id,
        client_id=client.id,
        service_id=service.id,
        title=service.name,
        description=f"Agendamento direto para {data.scheduled_date.isoformat()} às {start}",
        price=price,
        validity_days=DIRECT_BOOKING_VALIDITY_DAYS,
        status="accepted",
        created_at=now,
        updated_at=now,
        responded_at=now,
        expires_at=now + timedelta(days=DIRECT_BOOKING_VALIDITY_DAYS),
    )
    session.add(quote)
    session.flush()

    appt = Appointment(
        professional_id=service.professional_id,
        client_id=client.id,
        quote_id=quote.id,
        service_id=service.id,
        title=service.name,
        description="Serviço agendado diretamente pelo cliente",
        location=data.location,
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time,
        duration_minutes=duration,
        status="pending",
        created_at=now,
        updated_at=now,
    )
    session.add(appt)

    # orçamento e agendamento no mesmo commit
    session.commit()
    session.refresh(quote)
    session.refresh(appt)

    logger.info(
        "Agendamento direto %s do serviço %s (orçamento %s, R$ %.2f) em %s %s",
        appt.id, service.id, quote.id, quote.price, appt.scheduled_date, start,
    )
    return quote, appt


# =========================
# LISTAR
# =========================

def list_appointments(session: Session, user: User) -> list[Appointment]:
    return list(
        session.exec(
            select(Appointment)
            .where(or_(Appointment.client_id == user.id, Appointment.professional_id == user.id))
            .order_by(Appointment.scheduled_date, Appointment.scheduled_time)
        ).all()
    )


# =========================
# CONFIRMAR / FINALIZAR (PROFISSIONAL)
# =========================

def _professional_owned(session: Session, appointment_id: int, professional: User) -> Appointment:
    appt = get_appointment(session, appointment_id)
    if appt.professional_id != professional.id:
        raise PermissionDenied()
    return appt


def confirm_appointment(session: Session, appointment_id: int, professional: User) -> Appointment:
    appt = _professional_owned(session, appointment_id, professional)

    if appt.status in ("cancelled", "completed"):
        raise InvalidState("Não é possível confirmar nesse status")

    appt.status = "confirmed"
    appt.updated_at = datetime.utcnow()
    session.add(appt)
    session.commit()
    session.refresh(appt)
    return appt


def complete_appointment(session: Session, appointment_id: int, professional: User) -> Appointment:
    appt = _professional_owned(session, appointment_id, professional)

    if appt.status in ("cancelled", "completed"):
        raise InvalidState("Não é possível finalizar nesse status")

    appt.status = "completed"
    appt.updated_at = datetime.utcnow()
    session.add(appt)
    session.commit()
    session.refresh(appt)
    return appt


# =========================
# CANCELAR (CLIENTE OU PROFISSIONAL)
# =========================

def cancel_appointment(
    session: Session,
    appointment_id: int,
    user: User,
    reason: str = "Cancelado",
) -> Appointment:
    appt = get_appointment(session, appointment_id)

    if appt.status == "cancelled":
        return appt

    is_client = appt.client_id == user.id
    is_professional = appt.professional_id == user.id
    if not (is_client or is_professional):
        raise PermissionDenied()

    if appt.status == "completed":
        raise InvalidState("Não é possível cancelar um atendimento finalizado")

    now = datetime.utcnow()
    appt.status = "cancelled"
    appt.canceled_at = now
    appt.canceled_by = "client" if is_client else "professional"
    appt.cancel_reason = reason
    appt.updated_at = now

    session.add(appt)
    session.commit()
    session.refresh(appt)
    logger.info("Agendamento %s cancelado por %s", appt.id, appt.canceled_by)
    return appt
