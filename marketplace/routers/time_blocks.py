from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from marketplace.database import get_session
from marketplace.models.time_block import TimeBlock, TimeBlockCreate
from marketplace.models.user import User
from marketplace.core.security import get_current_professional

router = APIRouter(prefix="/time-blocks", tags=["time-blocks"])


@router.get("/")
def list_time_blocks(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    query = select(TimeBlock).where(TimeBlock.professional_id == current_professional.id)
    if start_date:
        query = query.where(TimeBlock.block_date >= start_date)
    if end_date:
        query = query.where(TimeBlock.block_date <= end_date)
    return session.exec(query.order_by(TimeBlock.block_date)).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_time_block(
    payload: TimeBlockCreate,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    # ou os dois horários, ou nenhum (dia inteiro)
    if (payload.start_time is None) != (payload.end_time is None):
        raise HTTPException(status_code=400, detail="Informe start_time e end_time, ou nenhum dos dois")

    if payload.start_time is not None and payload.end_time <= payload.start_time:
        raise HTTPException(status_code=400, detail="end_time deve ser maior que start_time")

    # força ownership
    block = TimeBlock(**payload.model_dump(), professional_id=current_professional.id)

    session.add(block)
    session.commit()
    session.refresh(block)
    return block


@router.delete("/{block_id}")
def delete_time_block(
    block_id: int,
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    block = session.get(TimeBlock, block_id)
    if not block:
        raise HTTPException(status_code=404, detail="Bloqueio não encontrado")

    if block.professional_id != current_professional.id:
        raise HTTPException(status_code=403, detail="Sem permissão")

    session.delete(block)
    session.commit()
    return {"message": "Bloqueio removido"}
