from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from triage import scoring
from triage.models import AuditEvent, TriageAlert, TriageAssessment, TriageNote
from triage.services import assessments

from .conftest import GREEN_VITALS, RED_VITALS

pytestmark = pytest.mark.django_db


def test_create_persists_score_category_and_vitals(make_triage):
    triage = make_triage(
        vitals={'bloodPressure': {'systolic': 180, 'diastolic': 110, 'isAbnormal': True}},
        consciousness='verbal',
        symptoms=['Chest pain'],
        medical_history={'conditions': ['hypertension']},
        chief_complaint='<b>Chest</b> tightness',
    )
    stored = TriageAssessment.objects.get(pk=triage.pk)
    assert stored.priority_score == 2 + 4 + 3 + 1
    assert stored.category == scoring.YELLOW
    assert stored.recommended_action == scoring.URGENT_CARE
    assert stored.consciousness == scoring.VERBAL
    assert stored.chief_complaint == 'Chest tightness'
    assert stored.vital_signs['bloodPressure']['isAbnormal'] is True
    assert stored.symptoms[0]['name'] == 'chest_pain'
    assert scoring.assess(stored.snapshot()).score == stored.priority_score
    assert TriageNote.objects.filter(triage=stored, note_type=TriageNote.TYPE_ASSESSMENT).exists()
    assert AuditEvent.objects.filter(action='triage_create', object_id=str(stored.pk)).exists()


def test_unknown_consciousness_is_stored_as_alert(make_triage):
    triage = make_triage(consciousness='confused')
    assert triage.consciousness == scoring.ALERT
    assert triage.priority_score == 0


def test_red_assessment_raises_critical_alert(make_triage, monkeypatch, django_capture_on_commit_callbacks):
    sent = []
    monkeypatch.setattr('triage.services.notify._send', lambda group, event: sent.append((group, event)))
    with django_capture_on_commit_callbacks(execute=True):
        triage = make_triage(vitals=RED_VITALS, consciousness='UNRESPONSIVE')
    assert triage.category == scoring.RED
    assert TriageAlert.objects.filter(triage=triage, alert_type=TriageAlert.TYPE_CRITICAL).count() == 1
    assert sent and sent[0][0] == 'triage.alerts'
    assert sent[0][1]['type'] == 'triage.critical'
    assert sent[0][1]['triageId'] == str(triage.pk)


def test_vitals_update_records_category_change(make_triage):
    triage = make_triage(consciousness='UNRESPONSIVE')
    assert triage.category == scoring.YELLOW

    updated = assessments.update_vital_signs(triage.pk, RED_VITALS)
    assert updated.category == scoring.RED
    assert updated.priority_score == 16
    assert updated.vital_signs['temperature']['value'] == 37.0
    change = TriageAlert.objects.get(triage=triage, alert_type=TriageAlert.TYPE_CATEGORY_CHANGE)
    assert (change.from_category, change.to_category) == (scoring.YELLOW, scoring.RED)


def test_vitals_update_without_category_change_adds_no_alert(make_triage):
    triage = make_triage()
    assessments.update_vital_signs(triage.pk, {'temperature': {'value': 38.5, 'isAbnormal': True}})
    triage.refresh_from_db()
    assert triage.priority_score == 1
    assert not triage.alerts.exists()


def test_terminal_assessment_cannot_be_updated(make_triage, nurse):
    triage = make_triage()
    assessments.update_assessment(triage.pk, {'status': TriageAssessment.STATUS_COMPLETED}, user=nurse)
    with pytest.raises(ValidationError):
        assessments.update_vital_signs(triage.pk, RED_VITALS)


def test_black_override_is_sticky(make_triage, nurse):
    triage = make_triage()
    triage = assessments.update_assessment(triage.pk, {'category': scoring.BLACK}, user=nurse)
    assert triage.category == scoring.BLACK
    assert triage.reassessment_required is False

    triage = assessments.update_assessment(triage.pk, {'vital_signs': RED_VITALS, 'consciousness': 'UNRESPONSIVE'},
                                           user=nurse)
    assert triage.category == scoring.BLACK
    assert triage.priority_score == 16


def test_reassess_resets_clock_and_adds_note(make_triage, nurse):
    start = timezone.now() - timedelta(minutes=45)
    triage = make_triage(now=start)
    later = start + timedelta(minutes=61)
    assert assessments.due_for_reassessment(later) == [TriageAssessment.objects.get(pk=triage.pk)]

    triage = assessments.reassess(triage.pk, vital_signs=GREEN_VITALS, notes='stable', user=nurse, now=later)
    assert triage.status == TriageAssessment.STATUS_REASSESSED
    assert triage.assessed_at == later
    assert triage.triage_notes.filter(note_type=TriageNote.TYPE_REASSESSMENT, notes='stable').exists()
    assert assessments.due_for_reassessment(later + timedelta(minutes=30)) == []


def test_active_list_orders_by_category_then_time(make_triage, nurse):
    now = timezone.now()
    green = make_triage(now=now - timedelta(minutes=30))
    yellow = make_triage(consciousness='UNRESPONSIVE', now=now - timedelta(minutes=5))
    red = make_triage(vitals=RED_VITALS, consciousness='UNRESPONSIVE', now=now)
    older_green = make_triage(now=now - timedelta(minutes=50))
    done = make_triage()
    assessments.update_assessment(done.pk, {'status': TriageAssessment.STATUS_TRANSFERRED}, user=nurse)

    ids = [t.pk for t in assessments.active_assessments()]
    assert ids == [red.pk, yellow.pk, older_green.pk, green.pk]


def test_stats(make_triage):
    now = timezone.now()
    make_triage(now=now - timedelta(minutes=90))
    make_triage(consciousness='UNRESPONSIVE', now=now)
    stats = assessments.triage_stats(now)
    assert stats['total'] == 2
    assert stats['byCategory'] == {'RED': 0, 'YELLOW': 1, 'GREEN': 1, 'BLACK': 0}
    assert stats['byStatus']['IN_PROGRESS'] == 2
    assert stats['averageScore'] == 5
    assert stats['overdueReassessments'] == 1


def test_clean_text_strips_all_markup():
    assert assessments.clean_text('<script>x</script><i>calm</i> <a href="#">ok</a>') == 'xcalm ok'
    assert assessments.clean_text(None) == ''


def test_non_finite_vitals_are_stored_as_missing(make_triage):
    triage = make_triage(vitals={'temperature': {'value': 'NaN', 'isAbnormal': True},
                                 'painScore': {'value': 'Infinity'}})
    stored = TriageAssessment.objects.get(pk=triage.pk)
    assert stored.vital_signs['temperature'] == {'value': None, 'isAbnormal': True}
    assert stored.vital_signs['painScore']['value'] is None
    assert stored.priority_score == 1


def test_previous_visits_survive_persistence(make_triage):
    triage = make_triage(medical_history={'conditions': [], 'previousVisits': [{'date': '2026-01-05'}]})
    stored = TriageAssessment.objects.get(pk=triage.pk)
    assert stored.medical_history['previousVisits'] == [{'date': '2026-01-05'}]
