from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


class WalletTransaction(SQLModel, table=True):
    __tablename__ = "wallet_transactions"

    id: Optional[int] = Field(default=None, primary_key=True)

    # profissional que recebe
    user_id: int = Field(foreign_key="user.id", index=True)

    # no máximo um lançamento por orçamento
    quote_id: Optional[int] = Field(default=None, foreign_key="quote.id", unique=True)

    type: str = Field(default="credit", index=True)  # credit | withdrawal

    amount: float
    fee: float = 0.0
    net_amount: float

    description: str
    customer_name: Optional[str] = None

    status: str = Field(default="completed", index=True)  # pending | completed | cancelled

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
