"""
Historical consultation-length averages.

The queue service never computes this itself: callers ask a
:class:`HistoricalAverage` for a department's figure and pass it on as
``average_minutes``.  The cache is injected so tests and management
commands can choose their own backend (or none).
"""
from __future__ import annotations

from typing import Optional

from django.conf import settings

from triage import sequencing
from triage.models import ConsultationQueue


class HistoricalAverage:
    def __init__(self, cache=None, *, window: Optional[int] = None, timeout: Optional[int] = None):
        self.cache = cache
        self.window = window or settings.QUEUE_HISTORY_WINDOW
        self.timeout = timeout if timeout is not None else settings.QUEUE_HISTORY_CACHE_SECONDS

    def _key(self, department_id) -> str:
        return f'queue:avg:{department_id}:{self.window}'

    def compute(self, department_id) -> Optional[float]:
        """Mean of the last ``window`` completed consultations, or None without history."""
        durations = list(
            ConsultationQueue.objects.filter(
                department_id=department_id,
                status=sequencing.COMPLETED,
                actual_duration_minutes__isnull=False,
            )
            .order_by('-completion_time')
            .values_list('actual_duration_minutes', flat=True)[:self.window]
        )
        if not durations:
            return None
        return round(sum(durations) / len(durations), 2)

    def minutes(self, department_id) -> Optional[float]:
        if self.cache is None:
            return self.compute(department_id)
        key = self._key(department_id)
        cached = self.cache.get(key)
        if cached is not None:
            # 0 marks "no history yet"
            return cached or None
        value = self.compute(department_id)
        self.cache.set(key, value or 0, self.timeout)
        return value

    def invalidate(self, department_id) -> None:
        if self.cache is not None:
            self.cache.delete(self._key(department_id))
