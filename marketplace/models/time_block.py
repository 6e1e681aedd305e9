from typing import Optional
from datetime import date, time
from sqlmodel import SQLModel, Field


class TimeBlockBase(SQLModel):
    block_date: date = Field(index=True)

    # sem horários = dia inteiro bloqueado
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    reason: str = "Bloqueio"


class TimeBlock(TimeBlockBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    professional_id: int = Field(foreign_key="user.id", index=True)


class TimeBlockCreate(TimeBlockBase):
    pass
