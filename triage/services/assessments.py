"""
Triage assessment lifecycle.

Scores and categories come from the pure rules in :mod:`triage.scoring`;
this module persists them, records category-change alerts and
reassessment notes, and raises the critical alert for RED patients.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

import bleach
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Avg, Case, Count, IntegerField, Value, When
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from triage import scoring
from triage.models import Department, TriageAlert, TriageAssessment, TriageNote
from triage.services.audit import log_action
from triage.services.notify import broadcast_critical_alert

User = get_user_model()
logger = logging.getLogger(__name__)


def clean_text(value: Any) -> str:
    return bleach.clean(str(value or '').strip(), tags=set(), strip=True)


def _consciousness(value: Any) -> str:
    level = str(value or '').strip().upper()
    if level not in scoring.CONSCIOUSNESS_LEVELS:
        logger.warning({"event": "triage_unknown_consciousness", "value": str(value)})
        return scoring.ALERT
    return level


def get_assessment(triage_id, *, for_update: bool = False) -> TriageAssessment:
    qs = TriageAssessment.objects.select_related('patient', 'assessed_by', 'referred_to_department')
    if for_update:
        qs = qs.select_for_update(of=('self',))
    triage = qs.filter(pk=triage_id).first()
    if triage is None:
        raise NotFound('Triage assessment not found')
    return triage


def _apply_result(triage: TriageAssessment, result: scoring.TriageResult) -> None:
    triage.priority_score = result.score
    triage.category = result.category
    triage.recommended_action = result.recommended_action
    triage.reassessment_required = result.reassessment_required
    triage.reassessment_interval = result.reassessment_interval


def _raise_critical(triage: TriageAssessment, now) -> TriageAlert:
    alert = TriageAlert.objects.create(
        triage=triage,
        alert_type=TriageAlert.TYPE_CRITICAL,
        to_category=scoring.RED,
        reason='Critical triage category',
        created_at=now,
    )
    broadcast_critical_alert({
        'triageId': str(triage.id),
        'patientId': triage.patient_id,
        'score': triage.priority_score,
        'chiefComplaint': triage.chief_complaint,
        'at': now.isoformat(),
    })
    return alert


@transaction.atomic
def create_assessment(*, patient: User, assessed_by: User, chief_complaint: str, vital_signs: Any,
                      consciousness: Any, symptoms: Any = None, medical_history: Any = None,
                      physical_assessment: Any = None, referred_to_department: Optional[Department] = None,
                      notes: str = '', now=None) -> TriageAssessment:
    now = now or timezone.now()
    snapshot = scoring.ClinicalSnapshot.from_payload(
        vital_signs=vital_signs,
        consciousness=_consciousness(consciousness),
        symptoms=symptoms,
        medical_history=medical_history,
    )
    result = scoring.assess(snapshot)
    triage = TriageAssessment(
        patient=patient,
        assessed_by=assessed_by,
        assessed_at=now,
        chief_complaint=clean_text(chief_complaint),
        vital_signs=snapshot.vitals.to_dict(),
        consciousness=snapshot.consciousness,
        symptoms=[s.to_dict() for s in snapshot.symptoms],
        medical_history=snapshot.history.to_dict(),
        physical_assessment=physical_assessment,
        referred_to_department=referred_to_department,
        notes=clean_text(notes),
    )
    _apply_result(triage, result)
    triage.save()

    TriageNote.objects.create(triage=triage, created_by=assessed_by, note_type=TriageNote.TYPE_ASSESSMENT,
                              notes=triage.notes)
    logger.info({"event": "triage_created", "triageId": str(triage.id), "score": result.score,
                 "category": result.category})
    log_action(user=assessed_by, action='triage_create', object_type='triage', object_id=triage.id,
               detail={'score': result.score, 'category': result.category})

    if result.category == scoring.RED:
        _raise_critical(triage, now)
    return triage


def _rescore(triage: TriageAssessment, snapshot: scoring.ClinicalSnapshot, *, reason: str, now) -> Optional[TriageAlert]:
    """Recompute score/category from ``snapshot``; returns the category-change alert, if any."""
    old_category = triage.category
    result = scoring.assess(snapshot)
    triage.vital_signs = snapshot.vitals.to_dict()
    triage.consciousness = snapshot.consciousness
    triage.symptoms = [s.to_dict() for s in snapshot.symptoms]
    triage.medical_history = snapshot.history.to_dict()

    if old_category == scoring.BLACK:
        # Manual override: keep the category, refresh only the score.
        triage.priority_score = result.score
        return None

    _apply_result(triage, result)
    if old_category == result.category:
        return None

    logger.info({"event": "triage_category_change", "triageId": str(triage.id),
                 "from": old_category, "to": result.category, "reason": reason})
    alert = TriageAlert.objects.create(
        triage=triage,
        alert_type=TriageAlert.TYPE_CATEGORY_CHANGE,
        from_category=old_category,
        to_category=result.category,
        reason=reason,
        created_at=now,
    )
    if result.category == scoring.RED:
        _raise_critical(triage, now)
    return alert


def _ensure_open(triage: TriageAssessment) -> None:
    if triage.is_terminal:
        raise ValidationError({'status': f'Assessment is {triage.status} and can no longer change'})


@transaction.atomic
def update_vital_signs(triage_id, vital_signs: Any, *, reason: str = 'Vital signs change', now=None) -> TriageAssessment:
    """Merge ``vital_signs`` into the stored readings and rescore."""
    now = now or timezone.now()
    triage = get_assessment(triage_id, for_update=True)
    _ensure_open(triage)
    snapshot = triage.snapshot()
    snapshot = replace(snapshot, vitals=snapshot.vitals.merged(vital_signs))
    _rescore(triage, snapshot, reason=reason, now=now)
    triage.save()
    return triage


@transaction.atomic
def update_assessment(triage_id, data: dict, *, user: User, now=None) -> TriageAssessment:
    """Apply a partial update.

    Clinical fields (vitals, consciousness, symptoms, history) trigger a
    rescore; ``category`` is accepted only as the manual BLACK override.
    """
    now = now or timezone.now()
    triage = get_assessment(triage_id, for_update=True)
    _ensure_open(triage)

    snapshot = triage.snapshot()
    clinical_change = False
    if 'vital_signs' in data:
        snapshot = replace(snapshot, vitals=snapshot.vitals.merged(data['vital_signs']))
        clinical_change = True
    if 'consciousness' in data:
        snapshot = replace(snapshot, consciousness=_consciousness(data['consciousness']))
        clinical_change = True
    if 'symptoms' in data:
        snapshot = replace(snapshot, symptoms=scoring.parse_symptoms(data['symptoms']))
        clinical_change = True
    if 'medical_history' in data:
        snapshot = replace(snapshot, history=scoring.MedicalHistory.from_dict(data['medical_history']))
        clinical_change = True
    if clinical_change:
        _rescore(triage, snapshot, reason='Assessment updated', now=now)

    if 'chief_complaint' in data:
        triage.chief_complaint = clean_text(data['chief_complaint'])
    if 'notes' in data:
        triage.notes = clean_text(data['notes'])
    if 'physical_assessment' in data:
        triage.physical_assessment = data['physical_assessment']
    if 'referred_to_department' in data:
        triage.referred_to_department = data['referred_to_department']
    if 'recommended_action' in data:
        triage.recommended_action = data['recommended_action']
    if data.get('category') == scoring.BLACK and triage.category != scoring.BLACK:
        TriageAlert.objects.create(
            triage=triage,
            alert_type=TriageAlert.TYPE_CATEGORY_CHANGE,
            from_category=triage.category,
            to_category=scoring.BLACK,
            reason='Manual override',
            created_at=now,
        )
        triage.category = scoring.BLACK
        triage.reassessment_required = False
        triage.reassessment_interval = None
        log_action(user=user, action='triage_black_override', object_type='triage', object_id=triage.id)
    if 'status' in data:
        triage.status = data['status']

    triage.save()
    log_action(user=user, action='triage_update', object_type='triage', object_id=triage.id,
               detail={'fields': sorted(data.keys())})
    return triage


@transaction.atomic
def reassess(triage_id, *, vital_signs: Any, notes: str = '', user: User, now=None) -> TriageAssessment:
    """Record a reassessment: rescore with fresh vitals and restart the reassessment clock."""
    now = now or timezone.now()
    triage = get_assessment(triage_id, for_update=True)
    _ensure_open(triage)
    snapshot = triage.snapshot()
    snapshot = replace(snapshot, vitals=snapshot.vitals.merged(vital_signs))
    _rescore(triage, snapshot, reason='Reassessment', now=now)
    triage.status = TriageAssessment.STATUS_REASSESSED
    triage.assessed_at = now
    triage.save()
    TriageNote.objects.create(triage=triage, created_by=user, note_type=TriageNote.TYPE_REASSESSMENT,
                              notes=clean_text(notes))
    log_action(user=user, action='triage_reassess', object_type='triage', object_id=triage.id,
               detail={'score': triage.priority_score, 'category': triage.category})
    return triage


def active_assessments():
    """IN_PROGRESS/REASSESSED assessments, RED first, then by assessment time."""
    rank = Case(
        *[When(category=c, then=Value(r)) for c, r in scoring.CATEGORY_RANK.items()],
        default=Value(len(scoring.CATEGORY_RANK) + 1),
        output_field=IntegerField(),
    )
    return (
        TriageAssessment.objects.filter(status__in=TriageAssessment.ACTIVE_STATUSES)
        .select_related('patient', 'assessed_by')
        .annotate(category_rank=rank)
        .order_by('category_rank', 'assessed_at')
    )


def due_for_reassessment(now=None) -> list[TriageAssessment]:
    now = now or timezone.now()
    return [t for t in active_assessments()
            if scoring.is_reassessment_due(t.category, t.assessed_at, now)]


def triage_stats(now=None) -> dict:
    now = now or timezone.now()
    qs = TriageAssessment.objects.all()
    by_category = {c: 0 for c in scoring.CATEGORIES}
    for row in qs.values('category').annotate(n=Count('id')):
        by_category[row['category']] = row['n']
    by_status = {s: 0 for s, _label in TriageAssessment.STATUS_CHOICES}
    for row in qs.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    avg = qs.aggregate(avg=Avg('priority_score'))['avg']
    return {
        'total': sum(by_category.values()),
        'byCategory': by_category,
        'byStatus': by_status,
        'averageScore': round(avg, 2) if avg is not None else None,
        'overdueReassessments': len(due_for_reassessment(now)),
    }


def format_assessment(triage: TriageAssessment, *, now=None, detail: bool = False) -> dict:
    now = now or timezone.now()
    patient = triage.patient
    data = {
        'id': str(triage.id),
        'patient': {
            'id': patient.id,
            'name': patient.get_full_name() or patient.username,
        },
        'assessedBy': triage.assessed_by_id,
        'assessedAt': triage.assessed_at.isoformat(),
        'category': triage.category,
        'priorityScore': triage.priority_score,
        'recommendedAction': triage.recommended_action,
        'chiefComplaint': triage.chief_complaint,
        'consciousness': triage.consciousness,
        'vitalSigns': triage.vital_signs,
        'status': triage.status,
        'reassessmentRequired': triage.reassessment_required,
        'reassessmentInterval': triage.reassessment_interval,
        'reassessmentDue': scoring.is_reassessment_due(triage.category, triage.assessed_at, now),
    }
    if detail:
        data.update({
            'symptoms': triage.symptoms,
            'medicalHistory': triage.medical_history,
            'physicalAssessment': triage.physical_assessment,
            'notes': triage.notes,
            'referredToDepartment': triage.referred_to_department_id,
            'alerts': [
                {
                    'type': a.alert_type,
                    'from': a.from_category or None,
                    'to': a.to_category,
                    'reason': a.reason,
                    'timestamp': a.created_at.isoformat(),
                }
                for a in triage.alerts.order_by('created_at', 'id')
            ],
            'triageNotes': [
                {
                    'type': n.note_type,
                    'notes': n.notes,
                    'createdBy': n.created_by_id,
                    'createdAt': n.created_at.isoformat(),
                }
                for n in triage.triage_notes.order_by('created_at', 'id')
            ],
        })
    return data
