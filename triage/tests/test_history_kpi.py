from datetime import timedelta

import pytest
from django.core.cache.backends.locmem import LocMemCache
from django.core.management import call_command
from django.utils import timezone

from triage import sequencing
from triage.models import Department, DepartmentKPI, User
from triage.services import queue as queue_service
from triage.services.history import HistoricalAverage
from triage.services.kpi import format_kpi, latest_kpi_for_department, snapshot_department_kpi

pytestmark = pytest.mark.django_db


@pytest.fixture
def consult(department, doctor, nurse, make_triage):
    def _consult(minutes, start):
        entry = queue_service.create_queue_entry(
            triage_id=make_triage().pk, department_id=department.pk, doctor_id=doctor.pk,
            assigned_by=nurse, now=start,
        )
        queue_service.transition_status(entry.pk, sequencing.IN_PROGRESS, operator=nurse, now=start)
        return queue_service.transition_status(entry.pk, sequencing.COMPLETED, operator=nurse,
                                               now=start + timedelta(minutes=minutes))
    return _consult


def test_no_history_means_no_average(department):
    assert HistoricalAverage(window=5).compute(department.pk) is None
    cache = LocMemCache('history-empty', {})
    history = HistoricalAverage(cache, window=5)
    assert history.minutes(department.pk) is None
    assert history.minutes(department.pk) is None


def test_average_uses_the_latest_window(department, consult):
    start = timezone.now() - timedelta(hours=3)
    consult(40, start)
    consult(10, start + timedelta(hours=1))
    consult(20, start + timedelta(hours=2))
    assert HistoricalAverage(window=2).compute(department.pk) == 15
    assert HistoricalAverage(window=10).compute(department.pk) == round(70 / 3, 2)


def test_cached_average_until_invalidated(department, consult):
    cache = LocMemCache('history-cached', {})
    history = HistoricalAverage(cache, window=5, timeout=60)
    start = timezone.now() - timedelta(hours=2)
    consult(10, start)
    assert history.minutes(department.pk) == 10
    consult(30, start + timedelta(hours=1))
    assert history.minutes(department.pk) == 10
    history.invalidate(department.pk)
    assert history.minutes(department.pk) == 20


def test_kpi_snapshot(department, doctor, nurse, make_triage):
    now = timezone.now()
    for _ in range(3):
        queue_service.create_queue_entry(triage_id=make_triage().pk, department_id=department.pk,
                                         doctor_id=doctor.pk, assigned_by=nurse, now=now)
    kpi = snapshot_department_kpi(department, average_minutes=15, now=now)
    assert kpi.queue_len == 3
    assert kpi.avg_wait_min == 15
    assert latest_kpi_for_department(department.pk) == kpi
    assert format_kpi(kpi)['queueLen'] == 3


def test_refresh_command_recalculates_and_snapshots(department, doctor, nurse, make_triage):
    stale = timezone.now() - timedelta(hours=1)
    entry = queue_service.create_queue_entry(triage_id=make_triage().pk, department_id=department.pk,
                                             doctor_id=doctor.pk, assigned_by=nurse, now=stale)
    call_command('refresh_queue_estimates', '--no-cache')
    entry.refresh_from_db()
    assert entry.estimated_start_time > stale
    assert DepartmentKPI.objects.filter(department=department).count() == 1


def test_seed_demo_is_idempotent():
    call_command('seed_demo')
    call_command('seed_demo')
    assert Department.objects.filter(pk='er').exists()
    assert User.objects.filter(username='doctor_er', role=User.ROLE_DOCTOR).count() == 1
