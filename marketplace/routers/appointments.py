from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.appointment import AppointmentCreate, ServiceBookingRequest
from marketplace.models.service import Service
from marketplace.models.user import User
from marketplace.core.security import get_current_client, get_current_professional, get_current_user
from marketplace.services import appointments as appointment_service
from marketplace.services.slots import OccupiedSlot, OccupiedSlots, available_slots


router = APIRouter(prefix="/appointments", tags=["appointments"])


# passo dos slots no calendário
SLOT_STEP_MINUTES = 15

# janela máxima de consulta de ocupação
MAX_OCCUPIED_RANGE_DAYS = 62


# =========================
# CRIAR AGENDAMENTO (CLIENTE)
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    session: Session = Depends(get_session),
    current_client: User = Depends(get_current_client),
):
    return appointment_service.book_appointment(session, current_client, payload)


# =========================
# AGENDAMENTO DIRETO DE SERVIÇO (CLIENTE)
# orçamento já aceito com o preço do catálogo + agendamento pendente
# =========================
@router.post("/direct", status_code=status.HTTP_201_CREATED)
def book_service(
    payload: ServiceBookingRequest,
    session: Session = Depends(get_session),
    current_client: User = Depends(get_current_client),
):
    quote, appt = appointment_service.book_service(session, current_client, payload)
    return {"quote": quote, "appointment": appt}


# =========================
# LISTAR AGENDAMENTOS
# - cliente: só os próprios
# - profissional: só os da agenda dele
# =========================
@router.get("/")
def list_appointments(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return appointment_service.list_appointments(session, current_user)


# =========================
# HORÁRIOS OCUPADOS (calendário)
# GET /appointments/occupied?professional_id=1&start_date=2026-02-01&end_date=2026-02-28
# =========================
@router.get("/occupied", response_model=List[OccupiedSlot])
def get_occupied_slots(
    professional_id: int,
    start_date: date,
    end_date: date,
    session: Session = Depends(get_session),
):
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date deve ser maior ou igual a start_date")
    if (end_date - start_date).days > MAX_OCCUPIED_RANGE_DAYS:
        raise HTTPException(status_code=400, detail=f"Intervalo máximo de {MAX_OCCUPIED_RANGE_DAYS} dias")

    return OccupiedSlots.load(session, professional_id, start_date, end_date).slots


# =========================
# HORÁRIOS DISPONÍVEIS (dia + serviço ou duração)
# GET /appointments/available?service_id=1&day=2026-02-14
# GET /appointments/available?professional_id=1&day=2026-02-14&duration_minutes=90
# =========================
@router.get("/available")
def get_available_slots(
    day: date,
    service_id: Optional[int] = None,
    professional_id: Optional[int] = None,
    duration_minutes: Optional[int] = None,
    session: Session = Depends(get_session),
) -> Dict:
    if service_id is not None:
        service = session.get(Service, service_id)
        if not service or not service.active:
            raise HTTPException(status_code=404, detail="Serviço não encontrado ou inativo")
        professional_id = service.professional_id
        if duration_minutes is None:
            duration_minutes = service.duration_minutes

    if professional_id is None:
        raise HTTPException(status_code=400, detail="Informe service_id ou professional_id")

    if duration_minutes is None:
        duration_minutes = 60
    if duration_minutes <= 0:
        raise HTTPException(status_code=400, detail="duration_minutes deve ser maior que zero")

    result = available_slots(
        session, professional_id, day, duration_minutes, step_minutes=SLOT_STEP_MINUTES
    )
    result["service_id"] = service_id
    return result


# =========================
# CANCELAR AGENDAMENTO (CLIENTE OU PROFISSIONAL)
# =========================
@router.patch("/{appointment_id}/cancel")
def cancel_appointment(
    appointment_id: int,
    reason: str = "Cancelado",
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return appointment_service.cancel_appointment(session, appointment_id, current_user, reason)


# =========================
# CONFIRMAR (PROFISSIONAL)
# =========================
@router.patch("/{appointment_id}/confirm")
def confirm_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return appointment_service.confirm_appointment(session, appointment_id, current_professional)


# =========================
# FINALIZAR (PROFISSIONAL)
# =========================
@router.patch("/{appointment_id}/complete")
def complete_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return appointment_service.complete_appointment(session, appointment_id, current_professional)
