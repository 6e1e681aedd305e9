from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


QUOTE_STATUSES = ("pending", "accepted", "rejected", "expired", "cancelled", "completed")
TERMINAL_STATUSES = ("rejected", "expired", "cancelled", "completed")


class QuoteCreate(SQLModel):
    client_id: int
    title: str
    description: Optional[str] = None
    price: float
    validity_days: int = 7
    service_id: Optional[int] = None
    conversation_id: Optional[str] = None


class Quote(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    professional_id: int = Field(foreign_key="user.id", index=True)
    client_id: int = Field(foreign_key="user.id", index=True)
    service_id: Optional[int] = Field(default=None, foreign_key="service.id")

    # thread do chat onde o orçamento foi enviado
    conversation_id: Optional[str] = Field(default=None, index=True)

    title: str
    description: Optional[str] = None
    price: float
    validity_days: int

    # pending | accepted | rejected | expired | cancelled | completed
    status: str = Field(default="pending", index=True)
    client_response: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # fixado na criação, nunca recalculado
    expires_at: datetime = Field(index=True)

    responded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # confirmação do cliente = pagamento verificado
    client_confirmed: bool = Field(default=False, index=True)
    client_confirmed_at: Optional[datetime] = None


class QuoteRespond(SQLModel):
    decision: str  # "accepted" | "rejected"
    response: Optional[str] = None
