from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from marketplace.database import get_session
from marketplace.models.business_hours import BusinessHours, BusinessHoursUpdate
from marketplace.models.user import User
from marketplace.core.security import get_current_professional

router = APIRouter(prefix="/business-hours", tags=["business-hours"])


def _validate(payload: BusinessHoursUpdate) -> None:
    if payload.is_closed:
        return

    if payload.open_time is None or payload.close_time is None:
        raise HTTPException(status_code=400, detail="open_time e close_time são obrigatórios quando is_closed=false")

    if payload.close_time <= payload.open_time:
        raise HTTPException(status_code=400, detail="close_time deve ser maior que open_time")

    if (payload.lunch_start is None) != (payload.lunch_end is None):
        raise HTTPException(status_code=400, detail="Informe lunch_start e lunch_end juntos")

    if payload.lunch_start and payload.lunch_end:
        if payload.lunch_end <= payload.lunch_start:
            raise HTTPException(status_code=400, detail="lunch_end deve ser maior que lunch_start")
        if payload.lunch_start < payload.open_time or payload.lunch_end > payload.close_time:
            raise HTTPException(status_code=400, detail="Almoço deve estar dentro do expediente")


@router.get("/")
def list_business_hours(
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return session.exec(
        select(BusinessHours)
        .where(BusinessHours.professional_id == current_professional.id)
        .order_by(BusinessHours.weekday)
    ).all()


# =========================
# EXPEDIENTE PÚBLICO DE UM PROFISSIONAL (para o cliente montar a agenda)
# =========================
@router.get("/professional/{professional_id}")
def list_professional_hours(
    professional_id: int,
    session: Session = Depends(get_session),
):
    return session.exec(
        select(BusinessHours)
        .where(BusinessHours.professional_id == professional_id)
        .order_by(BusinessHours.weekday)
    ).all()


@router.put("/{weekday}")
def upsert_business_hours(
    weekday: int,
    payload: BusinessHoursUpdate,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    """
    weekday: 0=segunda ... 6=domingo
    """
    if weekday < 0 or weekday > 6:
        raise HTTPException(status_code=400, detail="weekday deve ser 0..6")

    _validate(payload)

    hours = session.exec(
        select(BusinessHours).where(
            BusinessHours.professional_id == current_professional.id,
            BusinessHours.weekday == weekday,
        )
    ).first()

    if hours is None:
        hours = BusinessHours(professional_id=current_professional.id, weekday=weekday)

    for field, value in payload.model_dump().items():
        setattr(hours, field, value)

    session.add(hours)
    session.commit()
    session.refresh(hours)
    return hours
