from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.core.errors import PermissionDenied
from marketplace.core.security import get_current_client, get_current_user
from marketplace.integrations.abacatepay import AbacatePayClient, get_billing_client
from marketplace.services import settlement
from marketplace.services.quotes import get_quote


router = APIRouter(prefix="/payments", tags=["payments"])


# =========================
# CRIAR COBRANÇA PIX (CLIENTE)
# =========================
@router.post("/quotes/{quote_id}/checkout", status_code=status.HTTP_201_CREATED)
def create_checkout(
    quote_id: int,
    session: Session = Depends(get_session),
    billing: AbacatePayClient = Depends(get_billing_client),
    current_client: User = Depends(get_current_client),
):
    return settlement.start_checkout(session, billing, quote_id, current_client)


# =========================
# VERIFICAR PAGAMENTO
# - 200 liquidado (ou já processado)
# - 202 ainda não pago, tente de novo
# =========================
@router.post("/quotes/{quote_id}/verify")
def verify_payment(
    quote_id: int,
    session: Session = Depends(get_session),
    billing: AbacatePayClient = Depends(get_billing_client),
    current_user: User = Depends(get_current_user),
):
    quote = get_quote(session, quote_id)
    if current_user.id not in (quote.client_id, quote.professional_id) and current_user.role != "admin":
        raise PermissionDenied()

    return settlement.verify_payment(session, billing, quote_id)
