"""
Consultation queue endpoints.

Joining a queue, moving an entry through its status machine and
re-prioritising a waiting entry all trigger a recalculation of the
department's estimated start times.  Estimates use the department's
historical average consultation length when one is available.
"""
from __future__ import annotations

from django.core.cache import cache
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from .. import sequencing
from ..permissions import IsClinicalStaff
from ..serializers.queue import QueueCreateSerializer, QueuePrioritySerializer, QueueStatusSerializer
from ..services import queue as queue_service
from ..services.assessments import clean_text
from ..services.history import HistoricalAverage


def _history() -> HistoricalAverage:
    return HistoricalAverage(cache)


class QueueWriteThrottle(UserRateThrottle):
    scope = 'queue_write'


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
@throttle_classes([QueueWriteThrottle])
def queue_create(request):
    s = QueueCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    history = _history()
    entry = queue_service.create_queue_entry(
        triage_id=data['triageId'],
        department_id=data['departmentId'],
        doctor_id=data['doctorId'],
        priority=data.get('priority'),
        notes=clean_text(data.get('notes')),
        assigned_by=request.user,
        average_minutes=history.minutes(data['departmentId']),
    )
    return Response({
        'success': True,
        'queue': queue_service.format_entry(entry, detail=True),
        'estimatedStartTime': entry.estimated_start_time.isoformat(),
        'queueNumber': entry.queue_number,
        'tokenNumber': entry.token_number,
    }, status=status.HTTP_201_CREATED)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
@throttle_classes([QueueWriteThrottle])
def queue_update_status(request, entry_id):
    """Move a queue entry through WAITING -> IN_PROGRESS -> COMPLETED (or CANCELLED)."""
    s = QueueStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    new_status = s.validated_data['status']
    department_id = queue_service.department_id_of(entry_id)
    history = _history()
    entry = queue_service.transition_status(
        entry_id,
        new_status,
        operator=request.user,
        reason=clean_text(s.validated_data.get('reason')),
        average_minutes=history.minutes(department_id),
    )
    if new_status == sequencing.COMPLETED:
        history.invalidate(entry.department_id)
    return Response({
        'success': True,
        'message': f'Queue status updated to {entry.status}',
        'queue': queue_service.format_entry(entry, detail=True),
    })


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
@throttle_classes([QueueWriteThrottle])
def queue_set_priority(request, entry_id):
    s = QueuePrioritySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    department_id = queue_service.department_id_of(entry_id)
    entry = queue_service.set_priority(
        entry_id,
        s.validated_data['priority'],
        operator=request.user,
        average_minutes=_history().minutes(department_id),
    )
    return Response({'success': True, 'queue': queue_service.format_entry(entry, detail=True)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def department_queue(request, department_id):
    entries = queue_service.department_queue(department_id)
    return Response({
        'success': True,
        'departmentId': department_id,
        'waitingCount': queue_service.waiting_count(department_id),
        'queue': [queue_service.format_entry(e) for e in entries],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def doctor_queue(request, doctor_id):
    entries = queue_service.doctor_queue(doctor_id)
    return Response({
        'success': True,
        'doctorId': doctor_id,
        'queue': [queue_service.format_entry(e) for e in entries],
    })
