from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.core.security import get_current_professional
from marketplace.services.wallet import wallet_summary


router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/summary")
def get_wallet_summary(
    days: int = Query(default=7, ge=1, le=90),
    session: Session = Depends(get_session),
    current_professional: User = Depends(get_current_professional),
):
    return wallet_summary(session, current_professional.id, days=days)
