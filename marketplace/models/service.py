from typing import Optional
from sqlmodel import SQLModel, Field


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    description: Optional[str] = None
    duration_minutes: int = 60
    price: float
    active: bool = True

    professional_id: int = Field(foreign_key="user.id", index=True)
