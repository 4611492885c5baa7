from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from triage.models import Department
from triage.services.history import HistoricalAverage
from triage.services.kpi import format_kpi, snapshot_department_kpi
from triage.services.queue import recalculate_estimates


class Command(BaseCommand):
    help = "Recalculate every department's estimated start times and record a KPI snapshot."

    def add_arguments(self, parser):
        parser.add_argument('--department', help='Only refresh this department id')
        parser.add_argument('--no-cache', action='store_true', help='Ignore the cached historical averages')

    def handle(self, *args, **options):
        now = timezone.now()
        history = HistoricalAverage(None if options['no_cache'] else cache)
        departments = Department.objects.filter(open=True).order_by('id')
        if options.get('department'):
            departments = departments.filter(pk=options['department'])

        refreshed = 0
        for department in departments:
            history.invalidate(department.pk)
            average = history.minutes(department.pk)
            with transaction.atomic():
                Department.objects.select_for_update().filter(pk=department.pk).first()
                entries = recalculate_estimates(department, average_minutes=average, now=now, reason='refresh')
                kpi = snapshot_department_kpi(department, average_minutes=average, now=now)
            refreshed += 1
            self.stdout.write(f"{department.pk}: {len(entries)} active, kpi={format_kpi(kpi)}")

        self.stdout.write(self.style.SUCCESS(f"Refreshed {refreshed} departments at {now}"))
