"""
URL mappings for the triage API.

Trailing slashes are omitted on API paths, matching the clients that
call them.
"""
from django.urls import path, include

from .views import health
from .views.queue import department_queue, doctor_queue, queue_create, queue_set_priority, queue_update_status
from .views.triage import (
    triage_active,
    triage_create,
    triage_detail,
    triage_reassess,
    triage_reassessment_due,
    triage_stats,
)

API = 'api/v1/'

urlpatterns = [
    # Triage
    path(API + 'triage', triage_create, name='triage-create'),
    path(API + 'triage/active', triage_active, name='triage-active'),
    path(API + 'triage/stats', triage_stats, name='triage-stats'),
    path(API + 'triage/reassessment-due', triage_reassessment_due, name='triage-reassessment-due'),
    path(API + 'triage/<uuid:triage_id>', triage_detail, name='triage-detail'),
    path(API + 'triage/<uuid:triage_id>/reassess', triage_reassess, name='triage-reassess'),

    # Consultation queue
    path(API + 'consultation-queue', queue_create, name='queue-create'),
    path(API + 'consultation-queue/<uuid:entry_id>/status', queue_update_status, name='queue-status'),
    path(API + 'consultation-queue/<uuid:entry_id>/priority', queue_set_priority, name='queue-priority'),
    path(API + 'consultation-queue/department/<str:department_id>', department_queue, name='queue-department'),
    path(API + 'consultation-queue/doctor/<int:doctor_id>', doctor_queue, name='queue-doctor'),

    # Ops
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
]
