from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from triage import scoring, sequencing
from triage.exceptions import InvalidTransition, QueueConflict
from triage.models import Appointment, ConsultationQueue, QueueTransition
from triage.services import queue as queue_service
from triage.services.assessments import update_assessment

from .conftest import RED_VITALS

pytestmark = pytest.mark.django_db


@pytest.fixture
def enqueue(department, doctor, nurse, make_triage):
    def _enqueue(triage=None, dept=None, **kwargs):
        triage = triage or make_triage()
        return queue_service.create_queue_entry(
            triage_id=triage.pk,
            department_id=(dept or department).pk,
            doctor_id=doctor.pk,
            assigned_by=nurse,
            **kwargs,
        )
    return _enqueue


def test_numbers_are_sequential_per_department(enqueue, other_department):
    today = timezone.localdate()
    first = enqueue()
    second = enqueue()
    other = enqueue(dept=other_department)
    assert (first.queue_number, second.queue_number) == (1, 2)
    assert other.queue_number == 1
    assert first.token_number == f"OPD-{today:%Y%m%d}-001"
    assert other.token_number == f"CARD-{today:%Y%m%d}-001"


def test_numbering_resets_the_next_day(enqueue):
    now = timezone.now()
    enqueue(now=now)
    enqueue(now=now)
    tomorrow = enqueue(now=now + timedelta(days=1))
    assert tomorrow.queue_number == 1


def test_create_books_appointment_and_records_metadata(enqueue, nurse, doctor):
    entry = enqueue()
    assert entry.status == sequencing.WAITING
    assert entry.priority == sequencing.PRIORITY_NORMAL
    assert entry.metadata['triageCategory'] == scoring.GREEN
    assert entry.metadata['assignedBy'] == nurse.pk
    appointment = Appointment.objects.get(queue_entry=entry)
    assert appointment.doctor == doctor
    assert appointment.date_time == entry.estimated_start_time
    assert QueueTransition.objects.filter(entry=entry, from_status=None, to_status='WAITING').exists()


def test_red_patient_goes_ahead_of_green_queue(enqueue, make_triage, department):
    now = timezone.now()
    greens = [enqueue(now=now) for _ in range(3)]
    red_triage = make_triage(vitals=RED_VITALS, consciousness='UNRESPONSIVE')
    assert red_triage.category == scoring.RED

    red = enqueue(triage=red_triage, now=now)
    assert red.priority == sequencing.PRIORITY_URGENT
    assert red.estimated_start_time == now

    ordered = queue_service.department_queue(department.pk)
    assert [e.pk for e in ordered] == [red.pk] + [g.pk for g in greens]
    times = [e.estimated_start_time for e in ordered]
    assert times == sorted(times)
    assert times[1] - times[0] == timedelta(minutes=15)


def test_historical_average_drives_estimates(enqueue, department):
    now = timezone.now()
    enqueue(now=now)
    second = enqueue(now=now, average_minutes=22.5)
    second.refresh_from_db()
    assert second.estimated_start_time == now + timedelta(minutes=22.5)


def test_explicit_priority_wins(enqueue):
    entry = enqueue(priority=sequencing.PRIORITY_EMERGENCY)
    assert entry.priority == sequencing.PRIORITY_EMERGENCY


def test_black_patients_are_not_queued(enqueue, make_triage, nurse):
    triage = make_triage()
    update_assessment(triage.pk, {'category': scoring.BLACK}, user=nurse)
    with pytest.raises(ValidationError):
        enqueue(triage=triage)


def test_missing_references_raise_not_found(enqueue, make_triage, department, doctor, nurse):
    with pytest.raises(NotFound):
        queue_service.create_queue_entry(triage_id='00000000-0000-0000-0000-000000000000',
                                         department_id=department.pk, doctor_id=doctor.pk, assigned_by=nurse)
    with pytest.raises(NotFound):
        queue_service.create_queue_entry(triage_id=make_triage().pk, department_id='nope',
                                         doctor_id=doctor.pk, assigned_by=nurse)
    with pytest.raises(NotFound):
        queue_service.create_queue_entry(triage_id=make_triage().pk, department_id=department.pk,
                                         doctor_id=nurse.pk, assigned_by=nurse)


def test_daily_cap_is_enforced(enqueue, department):
    department.max_daily_patients = 1
    department.save()
    enqueue()
    with pytest.raises(ValidationError):
        enqueue()


def test_collision_is_retried(enqueue, monkeypatch):
    enqueue()
    real = queue_service.next_queue_number
    calls = []

    def stale_then_fresh(department, day):
        calls.append(day)
        return 1 if len(calls) == 1 else real(department, day)

    monkeypatch.setattr(queue_service, 'next_queue_number', stale_then_fresh)
    entry = enqueue()
    assert entry.queue_number == 2
    assert len(calls) == 2


def test_persistent_collision_surfaces_as_conflict(enqueue, monkeypatch, settings):
    settings.QUEUE_NUMBER_MAX_RETRIES = 3
    enqueue()
    monkeypatch.setattr(queue_service, 'next_queue_number', lambda department, day: 1)
    with pytest.raises(QueueConflict):
        enqueue()
    assert ConsultationQueue.objects.count() == 1
    assert Appointment.objects.count() == 1


def test_unique_constraint_backs_numbering(enqueue):
    entry = enqueue()
    with pytest.raises(IntegrityError):
        ConsultationQueue.objects.create(
            triage=entry.triage, patient=entry.patient, department=entry.department, doctor=entry.doctor,
            queue_date=entry.queue_date, queue_number=entry.queue_number, token_number='dup',
            estimated_start_time=entry.estimated_start_time,
        )


def test_full_lifecycle(enqueue, nurse, department):
    now = timezone.now()
    first = enqueue(now=now)
    second = enqueue(now=now)

    started = queue_service.transition_status(first.pk, sequencing.IN_PROGRESS, operator=nurse, now=now)
    assert started.actual_start_time == now
    second.refresh_from_db()
    assert second.estimated_start_time == now

    done = queue_service.transition_status(first.pk, sequencing.COMPLETED, operator=nurse,
                                           now=now + timedelta(minutes=12))
    assert done.completion_time == now + timedelta(minutes=12)
    assert done.actual_duration_minutes == 12
    assert Appointment.objects.get(queue_entry=first).status == Appointment.STATUS_COMPLETED
    assert [t.to_status for t in done.transitions.order_by('timestamp', 'id')] == ['WAITING', 'IN_PROGRESS', 'COMPLETED']

    cancelled = queue_service.transition_status(second.pk, sequencing.CANCELLED, operator=nurse, reason='left')
    assert cancelled.status == sequencing.CANCELLED
    assert Appointment.objects.get(queue_entry=second).status == Appointment.STATUS_CANCELLED
    assert queue_service.waiting_count(department.pk) == 0


@pytest.mark.parametrize('path', [
    [sequencing.COMPLETED],
    [sequencing.IN_PROGRESS, sequencing.CANCELLED],
    [sequencing.CANCELLED, sequencing.IN_PROGRESS],
    [sequencing.IN_PROGRESS, sequencing.COMPLETED, sequencing.WAITING],
])
def test_invalid_transitions(enqueue, nurse, path):
    entry = enqueue()
    *valid, invalid = path
    for status in valid:
        queue_service.transition_status(entry.pk, status, operator=nurse)
    with pytest.raises(InvalidTransition):
        queue_service.transition_status(entry.pk, invalid, operator=nurse)


def test_priority_change_reorders_queue(enqueue, nurse, department):
    now = timezone.now()
    first = enqueue(now=now)
    second = enqueue(now=now)
    queue_service.set_priority(second.pk, sequencing.PRIORITY_HIGH, operator=nurse, now=now)
    assert [e.pk for e in queue_service.department_queue(department.pk)] == [second.pk, first.pk]
    first.refresh_from_db()
    assert first.estimated_start_time == now + timedelta(minutes=15)


def test_doctor_queue_lists_in_progress_first(enqueue, nurse, doctor):
    first = enqueue()
    second = enqueue()
    queue_service.transition_status(second.pk, sequencing.IN_PROGRESS, operator=nurse)
    assert [e.pk for e in queue_service.doctor_queue(doctor.pk)] == [second.pk, first.pk]


def test_recalculation_broadcasts_after_commit(enqueue, department, monkeypatch, django_capture_on_commit_callbacks):
    sent = []
    monkeypatch.setattr('triage.services.notify._send', lambda group, event: sent.append((group, event)))
    with django_capture_on_commit_callbacks(execute=True):
        entry = enqueue()
    group, event = sent[-1]
    assert group == 'queue.opd'
    assert event['type'] == 'queue.updated'
    assert event['queue'][0]['tokenNumber'] == entry.token_number
