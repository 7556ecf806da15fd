from __future__ import annotations

from datetime import datetime

from meetingsync.calendar.backends import AppointmentQuery
from meetingsync.calendar.models import Appointment


def _align(value: datetime, reference: datetime) -> datetime:
    # Naive timestamps are local wall-clock time.
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.astimezone()
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.astimezone().replace(tzinfo=None)
    return value


def fetch_window(
    calendar: AppointmentQuery,
    *,
    start: datetime,
    end: datetime,
) -> list[Appointment]:
    appointments = calendar.fetch_appointments(start=start, end=end)
    in_window = [
        appointment
        for appointment in appointments
        if start <= _align(appointment.start, start) < end
    ]
    return sorted(
        in_window,
        key=lambda appointment: (_align(appointment.start, start), appointment.subject),
    )
