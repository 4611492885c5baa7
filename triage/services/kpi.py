from typing import Optional

from django.utils import timezone

from triage import sequencing
from triage.models import ConsultationQueue, Department, DepartmentKPI


def latest_kpi_for_department(department_id) -> Optional[DepartmentKPI]:
    return DepartmentKPI.objects.filter(department_id=department_id).order_by('-created_at', '-id').first()


def snapshot_department_kpi(department: Department, *, average_minutes: Optional[float] = None, now=None) -> DepartmentKPI:
    """Record the current queue length and mean expected wait for ``department``."""
    now = now or timezone.now()
    waiting = list(
        ConsultationQueue.objects.filter(department=department, status=sequencing.WAITING)
        .values_list('estimated_start_time', flat=True)
    )
    waits = [max(0.0, (t - now).total_seconds() / 60) for t in waiting]
    return DepartmentKPI.objects.create(
        department=department,
        queue_len=len(waiting),
        avg_wait_min=int(round(sum(waits) / len(waits))) if waits else 0,
        avg_consultation_min=average_minutes or 0,
    )


def format_kpi(kpi: DepartmentKPI) -> dict:
    return {
        'departmentId': kpi.department_id,
        'queueLen': kpi.queue_len,
        'avgWaitMin': kpi.avg_wait_min,
        'avgConsultationMin': kpi.avg_consultation_min,
        'createdAt': kpi.created_at.isoformat(),
    }
