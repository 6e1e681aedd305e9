from typing import Optional
from datetime import date, datetime, time
from sqlmodel import SQLModel, Field


class AppointmentSchedule(SQLModel):
    scheduled_date: date
    scheduled_time: time
    duration_minutes: int = 60
    description: Optional[str] = None
    location: Optional[str] = None


class AppointmentCreate(AppointmentSchedule):
    professional_id: int
    title: str
    quote_id: Optional[int] = None
    service_id: Optional[int] = None
    conversation_id: Optional[str] = None


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    professional_id: int = Field(foreign_key="user.id", index=True)
    client_id: int = Field(foreign_key="user.id", index=True)
    quote_id: Optional[int] = Field(default=None, foreign_key="quote.id", index=True)
    service_id: Optional[int] = Field(default=None, foreign_key="service.id")
    conversation_id: Optional[str] = None

    title: str
    description: Optional[str] = None
    location: Optional[str] = None

    scheduled_date: date = Field(index=True)
    scheduled_time: time
    duration_minutes: int = 60

    # pending | confirmed | cancelled | completed
    status: str = Field(default="pending", index=True)

    # flags de lembrete: só passam de False para True
    reminder_24h_sent: bool = False
    reminder_sent: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    canceled_at: Optional[datetime] = None
    canceled_by: Optional[str] = None
    cancel_reason: Optional[str] = None


class QuoteScheduleRequest(AppointmentSchedule):
    # resposta opcional do cliente junto com o aceite
    response: Optional[str] = None


class ServiceBookingRequest(SQLModel):
    # agendamento direto de um serviço de preço fixo do catálogo
    service_id: int
    scheduled_date: date
    scheduled_time: time
    duration_minutes: Optional[int] = None  # padrão: duração do serviço
    location: Optional[str] = None
