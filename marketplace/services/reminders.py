"""Lembretes de agendamentos confirmados (24h antes e na última hora).

Cada flag de lembrete só vai de False para True, então rodar a varredura
de novo não repete mensagem.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.models.appointment import Appointment
from marketplace.services.slots import format_time

logger = logging.getLogger(__name__)


class Reminder(BaseModel):
    appointment_id: int
    type: str  # "24h" | "1h"
    title: str
    conversation_id: Optional[str] = None
    message: str


def _message_24h(appt: Appointment) -> str:
    lines = [
        "📅 **Lembrete de Agendamento**",
        "",
        f'Seu agendamento "{appt.title}" está confirmado para amanhã às {format_time(appt.scheduled_time)}.',
        "",
    ]
    if appt.location:
        lines.append(f"📍 Local: {appt.location}")
    if appt.description:
        lines.append(f"📝 Obs: {appt.description}")
    lines.append("Não se esqueça de estar disponível no horário combinado!")
    return "\n".join(lines)


def _message_1h(appt: Appointment) -> str:
    lines = [
        "⏰ **Lembrete Urgente**",
        "",
        f'Seu agendamento "{appt.title}" começa em menos de 1 hora ({format_time(appt.scheduled_time)})!',
        "",
    ]
    if appt.location:
        lines.append(f"📍 Local: {appt.location}")
    lines.append("Prepare-se para o atendimento.")
    return "\n".join(lines)


def _flag_once(session: Session, appointment_id: int, flag: str) -> bool:
    column = getattr(Appointment, flag)
    result = session.execute(
        update(Appointment)
        .where(Appointment.id == appointment_id, column == False)  # noqa: E712
        .values({flag: True})
    )
    return result.rowcount == 1


def send_appointment_reminders(session: Session, now: Optional[datetime] = None) -> list[Reminder]:
    now = now or datetime.utcnow()
    today = now.date()
    tomorrow = today + timedelta(days=1)

    reminders: list[Reminder] = []

    # =========================
    # 24H: confirmados para amanhã
    # =========================
    upcoming = session.exec(
        select(Appointment).where(
            Appointment.status == "confirmed",
            Appointment.reminder_24h_sent == False,  # noqa: E712
            Appointment.scheduled_date == tomorrow,
        )
    ).all()
    logger.info("%s agendamento(s) para lembrete de 24h", len(upcoming))

    for appt in upcoming:
        if not _flag_once(session, appt.id, "reminder_24h_sent"):
            continue
        reminders.append(
            Reminder(
                appointment_id=appt.id,
                type="24h",
                title=appt.title,
                conversation_id=appt.conversation_id,
                message=_message_24h(appt),
            )
        )

    # =========================
    # 1H: confirmados para hoje começando na próxima hora
    # =========================
    window_start = now.time().replace(second=0, microsecond=0)
    one_hour = now + timedelta(hours=1)
    # a janela não atravessa a meia-noite
    window_end = one_hour.time().replace(second=0, microsecond=0) if one_hour.date() == today else time(23, 59, 59)

    imminent = session.exec(
        select(Appointment).where(
            Appointment.status == "confirmed",
            Appointment.reminder_sent == False,  # noqa: E712
            Appointment.scheduled_date == today,
        )
    ).all()
    imminent = [a for a in imminent if window_start <= a.scheduled_time <= window_end]
    logger.info("%s agendamento(s) para lembrete de 1h", len(imminent))

    for appt in imminent:
        if not _flag_once(session, appt.id, "reminder_sent"):
            continue
        reminders.append(
            Reminder(
                appointment_id=appt.id,
                type="1h",
                title=appt.title,
                conversation_id=appt.conversation_id,
                message=_message_1h(appt),
            )
        )

    session.commit()
    logger.info("%s lembrete(s) processado(s)", len(reminders))
    return reminders
