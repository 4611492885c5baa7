"""
Consultation queue service.

Queue numbers are assigned per department and calendar day.  Creation
locks the department row so concurrent joins serialize; the unique
constraint on (department, queue_date, queue_number) is the backstop and
a collision is retried a bounded number of times before surfacing as
:class:`~triage.exceptions.QueueConflict`.

Every mutation of a department's active entries ends with
:func:`recalculate_estimates`, which rewrites the estimated start times
in queue order and broadcasts the new list once the transaction commits.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from triage import scoring, sequencing
from triage.exceptions import InvalidTransition, QueueConflict
from triage.models import Appointment, ConsultationQueue, Department, QueueTransition, TriageAssessment
from triage.services.audit import log_action
from triage.services.notify import broadcast_queue_update

User = get_user_model()
logger = logging.getLogger(__name__)


def _default_minutes(average_minutes: Optional[float]) -> float:
    if average_minutes and average_minutes > 0:
        return average_minutes
    return getattr(settings, 'QUEUE_DEFAULT_CONSULTATION_MINUTES', sequencing.DEFAULT_CONSULTATION_MINUTES)


def next_queue_number(department: Department, day) -> int:
    current = ConsultationQueue.objects.filter(department=department, queue_date=day).aggregate(
        n=Max('queue_number')
    )['n']
    return (current or 0) + 1


def active_entries(department):
    return (
        ConsultationQueue.objects.filter(department=department, status__in=sequencing.ACTIVE_STATUSES)
        .select_related('patient', 'doctor', 'triage')
    )


def recalculate_estimates(department: Department, *, average_minutes: Optional[float] = None,
                          now=None, reason: str = 'recalculated') -> list[ConsultationQueue]:
    """Rewrite estimated start times of the department's WAITING entries.

    The first waiting entry starts at ``now``; each following position adds
    one average consultation.  Returns the active entries in queue order
    (IN_PROGRESS first) and broadcasts them after commit.
    """
    now = now or timezone.now()
    minutes = _default_minutes(average_minutes)
    entries = list(active_entries(department))
    in_progress = sequencing.order_entries(e for e in entries if e.status == sequencing.IN_PROGRESS)
    waiting = [e for e in entries if e.status == sequencing.WAITING]

    ordered = []
    for entry, start in sequencing.estimate_start_times(waiting, now, minutes):
        entry.estimated_start_time = start
        ordered.append(entry)
    if ordered:
        ConsultationQueue.objects.bulk_update(ordered, ['estimated_start_time'])

    result = in_progress + ordered
    broadcast_queue_update(department.pk, [format_entry(e, now=now) for e in result], reason)
    return result


def create_queue_entry(*, triage_id, department_id, doctor_id, assigned_by: User,
                       priority: Optional[int] = None, notes: str = '',
                       average_minutes: Optional[float] = None, now=None) -> ConsultationQueue:
    """Put the triaged patient into ``department``'s queue for today."""
    now = now or timezone.now()
    triage = TriageAssessment.objects.select_related('patient').filter(pk=triage_id).first()
    if triage is None:
        raise NotFound('Triage assessment not found')
    if triage.category == scoring.BLACK:
        raise ValidationError({'triageId': 'BLACK category patients cannot be queued for consultation'})
    doctor = User.objects.filter(pk=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise NotFound('Doctor not found')
    if priority is None:
        priority = sequencing.priority_for_category(triage.category)
    elif priority not in sequencing.PRIORITY_LEVELS:
        raise ValidationError({'priority': f'Must be one of {list(sequencing.PRIORITY_LEVELS)}'})

    retries = getattr(settings, 'QUEUE_NUMBER_MAX_RETRIES', 3)
    for attempt in range(1, retries + 1):
        try:
            entry = _insert_entry(triage, department_id, doctor, priority, assigned_by, notes,
                                  average_minutes, now)
        except IntegrityError:
            logger.warning({"event": "queue_number_collision", "department": str(department_id),
                            "attempt": attempt})
            continue
        logger.info({"event": "queue_joined", "entry": str(entry.id), "token": entry.token_number,
                     "priority": entry.priority})
        return entry
    raise QueueConflict()


@transaction.atomic
def _insert_entry(triage, department_id, doctor, priority, assigned_by, notes, average_minutes, now):
    department = Department.objects.select_for_update().filter(pk=department_id).first()
    if department is None:
        raise NotFound('Department not found')
    if not department.open:
        raise ValidationError({'departmentId': 'Department is not accepting patients'})

    day = timezone.localdate(now)
    number = next_queue_number(department, day)
    if department.max_daily_patients and number > department.max_daily_patients:
        raise ValidationError({'departmentId': 'Daily patient limit reached'})

    entry = ConsultationQueue.objects.create(
        triage=triage,
        patient=triage.patient,
        department=department,
        doctor=doctor,
        queue_date=day,
        queue_number=number,
        token_number=sequencing.format_token(department.code, day, number),
        priority=priority,
        status=sequencing.WAITING,
        estimated_start_time=now,
        notes=notes,
        metadata={
            'triageCategory': triage.category,
            'assignedBy': assigned_by.pk,
            'assignedAt': now.isoformat(),
        },
    )
    QueueTransition.objects.create(entry=entry, from_status=None, to_status=sequencing.WAITING,
                                   operator=assigned_by, timestamp=now, reason='joined queue')

    recalculate_estimates(department, average_minutes=average_minutes, now=now, reason='joined')
    entry.refresh_from_db(fields=['estimated_start_time'])
    Appointment.objects.create(
        patient=triage.patient,
        doctor=doctor,
        queue_entry=entry,
        date_time=entry.estimated_start_time,
        notes=f'Queue token {entry.token_number}',
    )
    log_action(user=assigned_by, action='queue_create', object_type='queue', object_id=entry.id,
               detail={'token': entry.token_number, 'priority': priority})
    return entry


_APPOINTMENT_STATUS = {
    sequencing.COMPLETED: Appointment.STATUS_COMPLETED,
    sequencing.CANCELLED: Appointment.STATUS_CANCELLED,
}


@transaction.atomic
def transition_status(entry_id, new_status: str, *, operator: Optional[User], reason: str = '',
                      average_minutes: Optional[float] = None, now=None) -> ConsultationQueue:
    now = now or timezone.now()
    entry = ConsultationQueue.objects.select_for_update(of=('self',)).select_related('department').filter(
        pk=entry_id
    ).first()
    if entry is None:
        raise NotFound('Queue entry not found')
    if not sequencing.can_transition(entry.status, new_status):
        raise InvalidTransition(f'Cannot move from {entry.status} to {new_status}')

    old_status = entry.status
    entry.status = new_status
    fields = ['status', 'updated_at']
    if new_status == sequencing.IN_PROGRESS:
        entry.actual_start_time = now
        fields.append('actual_start_time')
    elif new_status == sequencing.COMPLETED:
        entry.completion_time = now
        entry.actual_duration_minutes = sequencing.consultation_minutes(entry.actual_start_time, now)
        fields += ['completion_time', 'actual_duration_minutes']
    entry.save(update_fields=fields)

    QueueTransition.objects.create(entry=entry, from_status=old_status, to_status=new_status,
                                   operator=operator, timestamp=now, reason=reason)
    if new_status in _APPOINTMENT_STATUS:
        Appointment.objects.filter(queue_entry=entry).update(status=_APPOINTMENT_STATUS[new_status])

    logger.info({"event": "queue_transition", "entry": str(entry.id), "from": old_status, "to": new_status})
    log_action(user=operator, action='queue_status', object_type='queue', object_id=entry.id,
               detail={'from': old_status, 'to': new_status})
    recalculate_estimates(entry.department, average_minutes=average_minutes, now=now,
                          reason=new_status.lower())
    return entry


@transaction.atomic
def set_priority(entry_id, priority: int, *, operator: Optional[User],
                 average_minutes: Optional[float] = None, now=None) -> ConsultationQueue:
    if priority not in sequencing.PRIORITY_LEVELS:
        raise ValidationError({'priority': f'Must be one of {list(sequencing.PRIORITY_LEVELS)}'})
    entry = ConsultationQueue.objects.select_for_update(of=('self',)).select_related('department').filter(
        pk=entry_id
    ).first()
    if entry is None:
        raise NotFound('Queue entry not found')
    if entry.status != sequencing.WAITING:
        raise ValidationError({'priority': 'Only waiting entries can be re-prioritised'})
    old = entry.priority
    entry.priority = priority
    entry.save(update_fields=['priority', 'updated_at'])
    log_action(user=operator, action='queue_priority', object_type='queue', object_id=entry.id,
               detail={'from': old, 'to': priority})
    recalculate_estimates(entry.department, average_minutes=average_minutes, now=now, reason='priority')
    return entry


def department_queue(department_id) -> list[ConsultationQueue]:
    """Active entries of a department: IN_PROGRESS first, then waiting in queue order."""
    entries = list(
        ConsultationQueue.objects.filter(department_id=department_id, status__in=sequencing.ACTIVE_STATUSES)
        .select_related('patient', 'doctor', 'triage')
    )
    in_progress = [e for e in entries if e.status == sequencing.IN_PROGRESS]
    waiting = [e for e in entries if e.status == sequencing.WAITING]
    return sequencing.order_entries(in_progress) + sequencing.order_entries(waiting)


def doctor_queue(doctor_id) -> list[ConsultationQueue]:
    entries = (
        ConsultationQueue.objects.filter(doctor_id=doctor_id, status__in=sequencing.ACTIVE_STATUSES)
        .select_related('patient', 'doctor', 'triage', 'department')
    )
    return sorted(entries, key=lambda e: (e.status != sequencing.IN_PROGRESS, -e.priority, e.estimated_start_time))


def department_id_of(entry_id):
    department_id = ConsultationQueue.objects.filter(pk=entry_id).values_list('department_id', flat=True).first()
    if department_id is None:
        raise NotFound('Queue entry not found')
    return department_id


def waiting_count(department_id) -> int:
    return ConsultationQueue.objects.filter(department_id=department_id, status=sequencing.WAITING).count()


def format_entry(entry: ConsultationQueue, *, now=None, detail: bool = False) -> dict:
    now = now or timezone.now()
    patient = entry.patient
    wait = None
    if entry.status == sequencing.WAITING:
        wait = max(0, int((entry.estimated_start_time - now).total_seconds() // 60))
    data = {
        'id': str(entry.id),
        'tokenNumber': entry.token_number,
        'queueNumber': entry.queue_number,
        'queueDate': entry.queue_date.isoformat(),
        'departmentId': entry.department_id,
        'doctorId': entry.doctor_id,
        'triageId': str(entry.triage_id),
        'patient': {
            'id': patient.id,
            'name': patient.get_full_name() or patient.username,
        },
        'priority': entry.priority,
        'status': entry.status,
        'estimatedStartTime': entry.estimated_start_time.isoformat(),
        'estimatedWaitMinutes': wait,
        'actualStartTime': entry.actual_start_time.isoformat() if entry.actual_start_time else None,
        'completionTime': entry.completion_time.isoformat() if entry.completion_time else None,
    }
    if detail:
        data['metadata'] = entry.metadata
        data['notes'] = entry.notes
        data['actualDurationMinutes'] = entry.actual_duration_minutes
        data['transitionHistory'] = [
            {
                'from': t.from_status,
                'to': t.to_status,
                'operator': t.operator.username if t.operator else '',
                'timestamp': t.timestamp.isoformat(),
                'reason': t.reason,
            }
            for t in entry.transitions.select_related('operator').order_by('timestamp', 'id')
        ]
    return data
