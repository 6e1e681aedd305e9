from collections import defaultdict
from datetime import datetime, time, timedelta
from typing import Optional

from sqlmodel import Session, select

from marketplace.models.wallet_transaction import WalletTransaction


def _round(value: float) -> float:
    return round(value, 2)


def wallet_summary(
    session: Session,
    user_id: int,
    days: int = 7,
    recent_limit: int = 10,
    now: Optional[datetime] = None,
) -> dict:
    """Saldo da carteira do profissional (somente leitura)."""
    txs = session.exec(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc())
    ).all()

    completed_credits = [t for t in txs if t.type == "credit" and t.status == "completed"]
    pending_credits = [t for t in txs if t.type == "credit" and t.status == "pending"]
    withdrawals = [t for t in txs if t.type == "withdrawal" and t.status == "completed"]

    total_withdrawn = sum(t.amount for t in withdrawals)

    # receita líquida por dia (créditos concluídos)
    now = now or datetime.utcnow()
    first_day = now.date() - timedelta(days=days - 1)
    per_day = defaultdict(float)
    for t in completed_credits:
        if t.created_at >= datetime.combine(first_day, time(0, 0)):
            per_day[t.created_at.date()] += t.net_amount

    chart = []
    for i in range(days):
        d = first_day + timedelta(days=i)
        chart.append({"date": d.isoformat(), "amount": _round(per_day.get(d, 0.0))})

    return {
        "user_id": user_id,
        "available_balance": _round(sum(t.net_amount for t in completed_credits) - total_withdrawn),
        "pending_balance": _round(sum(t.net_amount for t in pending_credits)),
        "total_withdrawn": _round(total_withdrawn),
        "last_withdrawal_at": withdrawals[0].created_at.isoformat() if withdrawals else None,
        "gross_revenue": _round(sum(t.amount for t in completed_credits)),
        "total_fees": _round(sum(t.fee for t in completed_credits)),
        "chart": chart,
        "recent_transactions": [t.model_dump(mode="json") for t in txs[:recent_limit]],
    }
