"""
Triage assessment endpoints.

Nurses, doctors and administrators record assessments, update vital
signs, reassess patients and watch the active board.  Scoring happens in
:mod:`triage.services.assessments`; these views only validate input and
shape responses.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Department
from ..permissions import IsClinicalStaff
from ..serializers.triage import TriageCreateSerializer, TriageReassessSerializer, TriageUpdateSerializer
from ..services import assessments

User = get_user_model()


def _department_or_404(department_id):
    if department_id is None:
        return None
    department = Department.objects.filter(pk=department_id).first()
    if department is None:
        raise NotFound('Department not found')
    return department


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def triage_create(request):
    s = TriageCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    patient = User.objects.filter(pk=data['patientId']).first()
    if patient is None:
        raise NotFound('Patient not found')
    triage = assessments.create_assessment(
        patient=patient,
        assessed_by=request.user,
        chief_complaint=data['chiefComplaint'],
        vital_signs=data['vitalSigns'],
        consciousness=data['consciousness'],
        symptoms=data.get('symptoms'),
        medical_history=data.get('medicalHistory'),
        physical_assessment=data.get('physicalAssessment'),
        referred_to_department=_department_or_404(data.get('referredToDepartment')),
        notes=data.get('notes', ''),
    )
    return Response({'success': True, 'triage': assessments.format_assessment(triage, detail=True)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def triage_active(request):
    """Active assessments, most urgent category first."""
    data = [assessments.format_assessment(t) for t in assessments.active_assessments()]
    return Response({'success': True, 'count': len(data), 'triages': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def triage_reassessment_due(request):
    data = [assessments.format_assessment(t) for t in assessments.due_for_reassessment()]
    return Response({'success': True, 'count': len(data), 'triages': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def triage_stats(request):
    return Response({'success': True, 'stats': assessments.triage_stats()})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def triage_detail(request, triage_id):
    if request.method == 'GET':
        triage = assessments.get_assessment(triage_id)
        return Response({'success': True, 'triage': assessments.format_assessment(triage, detail=True)})

    s = TriageUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.service_data()
    if data.get('referred_to_department') is not None:
        data['referred_to_department'] = _department_or_404(data['referred_to_department'])
    triage = assessments.update_assessment(triage_id, data, user=request.user)
    return Response({'success': True, 'triage': assessments.format_assessment(triage, detail=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def triage_reassess(request, triage_id):
    s = TriageReassessSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    triage = assessments.reassess(
        triage_id,
        vital_signs=s.validated_data['vitalSigns'],
        notes=s.validated_data.get('notes', ''),
        user=request.user,
    )
    return Response({'success': True, 'triage': assessments.format_assessment(triage, detail=True)})
