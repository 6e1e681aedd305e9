"""Ocupação da agenda do profissional.

Horários são comparados como strings ``HH:MM:SS`` (largura fixa, com zero à
esquerda), em intervalos semiabertos ``[início, fim)``: encostar no fim de
outro agendamento é permitido, começar no mesmo horário não.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from pydantic import BaseModel
from sqlmodel import Session, select

from marketplace.models.appointment import Appointment
from marketplace.models.business_hours import BusinessHours
from marketplace.models.time_block import TimeBlock

# fim de um agendamento que passa da meia-noite, para comparação no mesmo dia
END_OF_DAY = "24:00:00"

TimeLike = Union[str, time]


def format_time(value: TimeLike) -> str:
    """Normaliza para HH:MM:SS ('9:05' -> '09:05:00')."""
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    parts = [int(p) for p in str(value).split(":")]
    while len(parts) < 3:
        parts.append(0)
    hours, minutes, seconds = parts[:3]
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def compute_end_time(scheduled_time: TimeLike, duration_minutes: int) -> str:
    start = format_time(scheduled_time)
    hours, minutes = (int(p) for p in start.split(":")[:2])
    total_minutes = hours * 60 + minutes + duration_minutes
    end_hours = (total_minutes // 60) % 24
    end_minutes = total_minutes % 60
    return f"{end_hours:02d}:{end_minutes:02d}:00"


class OccupiedSlot(BaseModel):
    scheduled_date: date
    scheduled_time: str
    duration_minutes: int
    end_time: str

    @classmethod
    def from_appointment(cls, appt: Appointment) -> "OccupiedSlot":
        return cls(
            scheduled_date=appt.scheduled_date,
            scheduled_time=format_time(appt.scheduled_time),
            duration_minutes=appt.duration_minutes,
            end_time=compute_end_time(appt.scheduled_time, appt.duration_minutes),
        )

    @property
    def comparison_end(self) -> str:
        # end_time deu a volta no relógio: ocupa até o fim do dia
        if self.end_time <= self.scheduled_time:
            return END_OF_DAY
        return self.end_time

    def overlaps(self, slot_start: str, slot_end: str) -> bool:
        occupied_start = self.scheduled_time
        occupied_end = self.comparison_end

        starts_inside = occupied_start <= slot_start < occupied_end
        ends_inside = occupied_start < slot_end <= occupied_end
        contains = slot_start <= occupied_start and slot_end >= occupied_end

        return starts_inside or ends_inside or contains


class OccupiedSlots:
    def __init__(self, slots: list[OccupiedSlot]):
        self.slots = slots

    @classmethod
    def load(
        cls,
        session: Session,
        professional_id: int,
        start_date: date,
        end_date: date,
    ) -> "OccupiedSlots":
        appointments = session.exec(
            select(Appointment).where(
                Appointment.professional_id == professional_id,
                Appointment.scheduled_date >= start_date,
                Appointment.scheduled_date <= end_date,
                Appointment.status != "cancelled",
            )
        ).all()
        return cls([OccupiedSlot.from_appointment(a) for a in appointments])

    def is_slot_occupied(self, day: date, slot_start: TimeLike, slot_end: TimeLike) -> bool:
        start = format_time(slot_start)
        end = END_OF_DAY if slot_end == END_OF_DAY else format_time(slot_end)
        return any(s.overlaps(start, end) for s in self.slots if s.scheduled_date == day)

    def get_occupied_slots_for_date(self, day: date) -> list[OccupiedSlot]:
        return [s for s in self.slots if s.scheduled_date == day]


def slot_end_for(slot_start: TimeLike, duration_minutes: int) -> str:
    """Fim do slot proposto; se passar da meia-noite, vale o fim do dia."""
    start = format_time(slot_start)
    end = compute_end_time(start, duration_minutes)
    if end <= start:
        return END_OF_DAY
    return end


# =========================
# HORÁRIOS DISPONÍVEIS (expediente - ocupados - bloqueios)
# =========================

def _blocked(blocks: list[TimeBlock], start: str, end: str) -> bool:
    for b in blocks:
        if b.start_time is None or b.end_time is None:
            return True
        b_start, b_end = format_time(b.start_time), format_time(b.end_time)
        if start < b_end and end > b_start:
            return True
    return False


def available_slots(
    session: Session,
    professional_id: int,
    day: date,
    duration_minutes: int,
    step_minutes: int = 15,
    occupied: Optional[OccupiedSlots] = None,
) -> dict:
    hours = session.exec(
        select(BusinessHours).where(
            BusinessHours.professional_id == professional_id,
            BusinessHours.weekday == day.weekday(),
        )
    ).first()

    if not hours or hours.is_closed or not hours.open_time or not hours.close_time:
        return {"day": day.isoformat(), "is_closed": True, "slots": []}

    occupied = occupied or OccupiedSlots.load(session, professional_id, day, day)
    blocks = list(
        session.exec(
            select(TimeBlock).where(
                TimeBlock.professional_id == professional_id,
                TimeBlock.block_date == day,
            )
        ).all()
    )

    lunch = None
    if hours.lunch_start and hours.lunch_end:
        lunch = (format_time(hours.lunch_start), format_time(hours.lunch_end))

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    current = datetime.combine(day, hours.open_time)
    day_end = datetime.combine(day, hours.close_time)

    slots = []
    while current + duration <= day_end:
        start = format_time(current.time())
        end = format_time((current + duration).time())

        free = not occupied.is_slot_occupied(day, start, end)
        if free and lunch and start < lunch[1] and end > lunch[0]:
            free = False
        if free and _blocked(blocks, start, end):
            free = False

        if free:
            slots.append({"start": start, "end": end})
        current += step

    return {
        "day": day.isoformat(),
        "is_closed": False,
        "professional_id": professional_id,
        "duration_minutes": duration_minutes,
        "slot_step_minutes": step_minutes,
        "business_hours": {
            "open": format_time(hours.open_time),
            "close": format_time(hours.close_time),
        },
        "lunch_break": {"start": lunch[0], "end": lunch[1]} if lunch else None,
        "slots": slots,
    }
