"""
Consultation queue sequencing.

Pure helpers shared by the queue service and the views: the ordering of a
department's waiting list, wait-time estimates, token formatting and the
status state machine.  Entries are duck-typed; anything exposing
``priority`` and ``queue_number`` (ORM rows included) can be sequenced.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, TypeVar

from . import scoring

WAITING = 'WAITING'
IN_PROGRESS = 'IN_PROGRESS'
COMPLETED = 'COMPLETED'
CANCELLED = 'CANCELLED'
STATUSES = (WAITING, IN_PROGRESS, COMPLETED, CANCELLED)
ACTIVE_STATUSES = (WAITING, IN_PROGRESS)

TRANSITIONS = {
    WAITING: (IN_PROGRESS, CANCELLED),
    IN_PROGRESS: (COMPLETED,),
    COMPLETED: (),
    CANCELLED: (),
}

# 0: normal, 1: high, 2: urgent, 3: emergency
PRIORITY_NORMAL = 0
PRIORITY_HIGH = 1
PRIORITY_URGENT = 2
PRIORITY_EMERGENCY = 3
PRIORITY_LEVELS = (PRIORITY_NORMAL, PRIORITY_HIGH, PRIORITY_URGENT, PRIORITY_EMERGENCY)

CATEGORY_PRIORITY = {
    scoring.RED: PRIORITY_URGENT,
    scoring.YELLOW: PRIORITY_HIGH,
    scoring.GREEN: PRIORITY_NORMAL,
}

DEFAULT_CONSULTATION_MINUTES = 15
TOKEN_SEQUENCE_DIGITS = 3

E = TypeVar('E')


def can_transition(current: str, new: str) -> bool:
    """Return True if a queue entry may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, ())


def is_terminal(status: str) -> bool:
    return status in TRANSITIONS and not TRANSITIONS[status]


def priority_for_category(category: str) -> int:
    return CATEGORY_PRIORITY.get(category, PRIORITY_NORMAL)


def queue_sort_key(entry) -> tuple[int, int]:
    return (-int(entry.priority), int(entry.queue_number))


def order_entries(entries: Iterable[E]) -> list[E]:
    """Priority descending, then queue number ascending (FIFO within a tier)."""
    return sorted(entries, key=queue_sort_key)


def estimate_start_times(entries: Iterable[E], base_time: datetime,
                         average_minutes: Optional[float] = None) -> list[tuple[E, datetime]]:
    """Pair every entry, in queue order, with its estimated start time.

    The first entry starts at ``base_time``; each following position adds
    one average consultation.
    """
    minutes = average_minutes if average_minutes and average_minutes > 0 else DEFAULT_CONSULTATION_MINUTES
    return [
        (entry, base_time + timedelta(minutes=position * minutes))
        for position, entry in enumerate(order_entries(entries))
    ]


def format_token(department_code: str, day: date, sequence: int) -> str:
    """``("OPD", 2026-10-19, 7)`` -> ``"OPD-20261019-007"``."""
    code = ''.join(ch for ch in (department_code or '').upper() if ch.isalnum()) or 'GEN'
    return f"{code}-{day:%Y%m%d}-{sequence:0{TOKEN_SEQUENCE_DIGITS}d}"


def consultation_minutes(started_at: Optional[datetime], completed_at: Optional[datetime]) -> Optional[float]:
    if not started_at or not completed_at or completed_at < started_at:
        return None
    return round((completed_at - started_at).total_seconds() / 60, 2)
