import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.core.security import require_cron_or_admin
from marketplace.services.quotes import expire_quotes
from marketplace.services.reminders import send_appointment_reminders

logger = logging.getLogger(__name__)

# disparadas por agendador externo (X-Cron-Secret) ou por um admin
router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/expire-quotes")
def run_expire_quotes(
    session: Session = Depends(get_session),
    caller: str = Depends(require_cron_or_admin),
):
    logger.info("Varredura de expiração disparada por %s", caller)
    expired = expire_quotes(session)
    return {
        "success": True,
        "expired_count": len(expired),
        "expired_ids": expired,
    }


@router.post("/appointment-reminders")
def run_appointment_reminders(
    session: Session = Depends(get_session),
    caller: str = Depends(require_cron_or_admin),
):
    logger.info("Varredura de lembretes disparada por %s", caller)
    reminders = send_appointment_reminders(session)
    return {
        "success": True,
        "reminders_processed": len(reminders),
        "reminders": reminders,
    }
