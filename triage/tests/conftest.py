import pytest

from triage.models import Department, User
from triage.services import assessments

RED_VITALS = {
    'bloodPressure': {'systolic': 70, 'diastolic': 40, 'isAbnormal': True},
    'oxygenSaturation': {'value': 82, 'isAbnormal': True},
    'heartRate': {'value': 150, 'isAbnormal': True},
}
GREEN_VITALS = {
    'temperature': {'value': 37.0, 'isAbnormal': False},
    'heartRate': {'value': 72, 'isAbnormal': False},
}


@pytest.fixture
def department(db):
    return Department.objects.create(id='opd', code='OPD', name='Outpatient Department')


@pytest.fixture
def other_department(db):
    return Department.objects.create(id='card', code='CARD', name='Cardiology')


@pytest.fixture
def nurse(db, department):
    return User.objects.create_user(username='nurse1', password='P@ssw0rd1', role=User.ROLE_NURSE, department=department)


@pytest.fixture
def doctor(db, department):
    return User.objects.create_user(username='doc1', password='P@ssw0rd1', role=User.ROLE_DOCTOR, department=department)


@pytest.fixture
def make_patient(db):
    counter = {'n': 0}

    def _make(**extra):
        counter['n'] += 1
        return User.objects.create_user(username=f"patient{counter['n']}", password='P@ssw0rd1',
                                        role=User.ROLE_PATIENT, **extra)
    return _make


@pytest.fixture
def make_triage(nurse, make_patient):
    def _make(vitals=None, consciousness='ALERT', **extra):
        return assessments.create_assessment(
            patient=extra.pop('patient', None) or make_patient(),
            assessed_by=nurse,
            chief_complaint=extra.pop('chief_complaint', 'Headache'),
            vital_signs=GREEN_VITALS if vitals is None else vitals,
            consciousness=consciousness,
            **extra,
        )
    return _make
