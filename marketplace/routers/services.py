from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from marketplace.database import get_session
from marketplace.models.service import Service
from marketplace.models.user import User
from marketplace.core.security import get_current_professional


router = APIRouter(
    prefix="/services",
    tags=["services"]
)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_service(
    service: Service,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    if service.price is None or service.price <= 0:
        raise HTTPException(status_code=400, detail="price deve ser maior que zero")
    if service.duration_minutes is None or service.duration_minutes <= 0:
        raise HTTPException(status_code=400, detail="duration_minutes deve ser maior que zero")

    service.id = None
    service.professional_id = current_professional.id

    session.add(service)
    session.commit()
    session.refresh(service)

    return service


@router.get("/")
def list_my_services(
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    services = session.exec(
        select(Service).where(Service.professional_id == current_professional.id)
    ).all()

    return services
