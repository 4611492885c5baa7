"""
Triage acuity scoring.

Everything in this module is pure: it turns a clinical snapshot into a
priority score, a triage category, a recommended action and a
reassessment interval.  Persistence, alerts and notifications live in
:mod:`triage.services.assessments`.

Vital signs, symptoms and medical history arrive from the client as
loosely-structured JSON (camelCase keys, as stored in the JSON columns of
:class:`triage.models.TriageAssessment`).  They are parsed leniently into
the dataclasses below: a missing reading, a missing ``isAbnormal`` flag,
an unknown consciousness level or a non-numeric pain value simply does
not contribute to the score.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

# --- Consciousness (AVPU) ---
ALERT = 'ALERT'
VERBAL = 'VERBAL'
PAIN = 'PAIN'
UNRESPONSIVE = 'UNRESPONSIVE'
CONSCIOUSNESS_LEVELS = (ALERT, VERBAL, PAIN, UNRESPONSIVE)

# --- Triage categories ---
RED = 'RED'
YELLOW = 'YELLOW'
GREEN = 'GREEN'
BLACK = 'BLACK'
CATEGORIES = (RED, YELLOW, GREEN, BLACK)

# --- Recommended actions ---
IMMEDIATE_TREATMENT = 'IMMEDIATE_TREATMENT'
URGENT_CARE = 'URGENT_CARE'
STANDARD_CARE = 'STANDARD_CARE'
REFERRAL = 'REFERRAL'
DISCHARGE = 'DISCHARGE'
ACTIONS = (IMMEDIATE_TREATMENT, URGENT_CARE, STANDARD_CARE, REFERRAL, DISCHARGE)

VITAL_WEIGHTS = {
    'blood_pressure': 2,
    'temperature': 1,
    'heart_rate': 2,
    'respiratory_rate': 2,
    'oxygen_saturation': 2,
}

CONSCIOUSNESS_WEIGHTS = {
    UNRESPONSIVE: 10,
    PAIN: 7,
    VERBAL: 4,
    ALERT: 0,
}

CRITICAL_SYMPTOMS = frozenset({
    'chest_pain',
    'difficulty_breathing',
    'severe_bleeding',
    'stroke_symptoms',
    'loss_of_consciousness',
})
CRITICAL_SYMPTOM_WEIGHT = 3

RISK_FACTORS = ('diabetes', 'hypertension', 'heart_disease', 'immunocompromised')
RISK_FACTOR_WEIGHT = 1

RED_THRESHOLD = 15
YELLOW_THRESHOLD = 10

REASSESSMENT_MINUTES = {
    RED: 10,
    YELLOW: 30,
    GREEN: 60,
}

# Order used when listing active assessments: most urgent first.
CATEGORY_RANK = {RED: 1, YELLOW: 2, GREEN: 3, BLACK: 4}


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes'}
    return False


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and infinities are not readings and cannot be stored as JSON.
    return number if math.isfinite(number) else None


def normalize_code(name: Any) -> str:
    """``"Chest pain"`` / ``"chest-pain"`` -> ``"chest_pain"``."""
    return '_'.join(str(name or '').strip().lower().replace('-', ' ').split())


@dataclass(frozen=True)
class VitalReading:
    value: Optional[float] = None
    unit: str = ''
    is_abnormal: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> Optional['VitalReading']:
        if not isinstance(data, dict):
            return None
        return cls(
            value=_number(data.get('value')),
            unit=str(data.get('unit') or ''),
            is_abnormal=_flag(data.get('isAbnormal')),
        )

    def to_dict(self) -> dict:
        data: dict = {'value': self.value, 'isAbnormal': self.is_abnormal}
        if self.unit:
            data['unit'] = self.unit
        return data


@dataclass(frozen=True)
class BloodPressure:
    systolic: Optional[float] = None
    diastolic: Optional[float] = None
    is_abnormal: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> Optional['BloodPressure']:
        if not isinstance(data, dict):
            return None
        return cls(
            systolic=_number(data.get('systolic')),
            diastolic=_number(data.get('diastolic')),
            is_abnormal=_flag(data.get('isAbnormal')),
        )

    def to_dict(self) -> dict:
        return {'systolic': self.systolic, 'diastolic': self.diastolic, 'isAbnormal': self.is_abnormal}


@dataclass(frozen=True)
class PainScore:
    value: Optional[float] = None
    location: str = ''

    @classmethod
    def from_dict(cls, data: Any) -> Optional['PainScore']:
        if isinstance(data, (int, float, str)) and not isinstance(data, bool):
            return cls(value=_number(data))
        if not isinstance(data, dict):
            return None
        return cls(value=_number(data.get('value')), location=str(data.get('location') or ''))

    def to_dict(self) -> dict:
        return {'value': self.value, 'location': self.location}


# camelCase JSON key -> (attribute, parser)
_VITAL_FIELDS = {
    'bloodPressure': ('blood_pressure', BloodPressure.from_dict),
    'temperature': ('temperature', VitalReading.from_dict),
    'heartRate': ('heart_rate', VitalReading.from_dict),
    'respiratoryRate': ('respiratory_rate', VitalReading.from_dict),
    'oxygenSaturation': ('oxygen_saturation', VitalReading.from_dict),
    'painScore': ('pain_score', PainScore.from_dict),
}


@dataclass(frozen=True)
class VitalSigns:
    """Structured vital-signs snapshot.

    Each reading is optional; an absent reading is treated as normal.
    """
    blood_pressure: Optional[BloodPressure] = None
    temperature: Optional[VitalReading] = None
    heart_rate: Optional[VitalReading] = None
    respiratory_rate: Optional[VitalReading] = None
    oxygen_saturation: Optional[VitalReading] = None
    pain_score: Optional[PainScore] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'VitalSigns':
        if not isinstance(data, dict):
            return cls()
        kwargs = {}
        for key, (attr, parse) in _VITAL_FIELDS.items():
            kwargs[attr] = parse(data.get(key))
        return cls(**kwargs)

    def to_dict(self) -> dict:
        data = {}
        for key, (attr, _parse) in _VITAL_FIELDS.items():
            reading = getattr(self, attr)
            if reading is not None:
                data[key] = reading.to_dict()
        return data

    def merged(self, update: Any) -> 'VitalSigns':
        """Return a copy where every reading present in ``update`` replaces ours."""
        incoming = VitalSigns.from_dict(update)
        kwargs = {}
        for _key, (attr, _parse) in _VITAL_FIELDS.items():
            new = getattr(incoming, attr)
            kwargs[attr] = new if new is not None else getattr(self, attr)
        return VitalSigns(**kwargs)

    def abnormal_vitals(self) -> list[str]:
        return [attr for attr in VITAL_WEIGHTS if getattr(getattr(self, attr), 'is_abnormal', False)]


@dataclass(frozen=True)
class Symptom:
    name: str
    severity: str = ''
    duration: str = ''

    @classmethod
    def from_value(cls, data: Any) -> Optional['Symptom']:
        if isinstance(data, str):
            return cls(name=normalize_code(data)) if data.strip() else None
        if not isinstance(data, dict) or not data.get('name'):
            return None
        return cls(
            name=normalize_code(data.get('name')),
            severity=str(data.get('severity') or ''),
            duration=str(data.get('duration') or ''),
        )

    def to_dict(self) -> dict:
        return {'name': self.name, 'severity': self.severity, 'duration': self.duration}


def parse_symptoms(data: Any) -> tuple[Symptom, ...]:
    if not isinstance(data, (list, tuple)):
        return ()
    return tuple(s for s in (Symptom.from_value(item) for item in data) if s is not None)


def _str_list(data: Any) -> tuple[str, ...]:
    if not isinstance(data, (list, tuple)):
        return ()
    return tuple(str(item) for item in data if item not in (None, ''))


def _json_list(data: Any) -> tuple:
    if not isinstance(data, (list, tuple)):
        return ()
    return tuple(item for item in data if item not in (None, ''))


@dataclass(frozen=True)
class MedicalHistory:
    conditions: tuple[str, ...] = ()
    allergies: tuple[str, ...] = ()
    medications: tuple[str, ...] = ()
    # Free-form visit records, kept as sent.
    previous_visits: tuple = ()

    @classmethod
    def from_dict(cls, data: Any) -> 'MedicalHistory':
        if not isinstance(data, dict):
            return cls()
        return cls(
            conditions=tuple(normalize_code(c) for c in _str_list(data.get('conditions'))),
            allergies=_str_list(data.get('allergies')),
            medications=_str_list(data.get('medications')),
            previous_visits=_json_list(data.get('previousVisits')),
        )

    def to_dict(self) -> dict:
        return {
            'conditions': list(self.conditions),
            'allergies': list(self.allergies),
            'medications': list(self.medications),
            'previousVisits': list(self.previous_visits),
        }

    def risk_factors(self) -> list[str]:
        return [f for f in RISK_FACTORS if f in self.conditions]


@dataclass(frozen=True)
class ClinicalSnapshot:
    vitals: VitalSigns = field(default_factory=VitalSigns)
    consciousness: str = ALERT
    symptoms: tuple[Symptom, ...] = ()
    history: MedicalHistory = field(default_factory=MedicalHistory)

    @classmethod
    def from_payload(cls, *, vital_signs: Any = None, consciousness: Any = None,
                     symptoms: Any = None, medical_history: Any = None) -> 'ClinicalSnapshot':
        return cls(
            vitals=VitalSigns.from_dict(vital_signs),
            consciousness=str(consciousness or '').strip().upper(),
            symptoms=parse_symptoms(symptoms),
            history=MedicalHistory.from_dict(medical_history),
        )


@dataclass(frozen=True)
class TriageResult:
    score: int
    category: str
    recommended_action: str
    reassessment_required: bool
    reassessment_interval: Optional[int]


def pain_points(pain: Optional[PainScore]) -> int:
    value = pain.value if pain is not None else None
    if not value:
        return 0
    if value >= 8:
        return 3
    if value >= 5:
        return 2
    if value >= 3:
        return 1
    return 0


def compute_score(snapshot: ClinicalSnapshot) -> int:
    score = 0
    for attr in snapshot.vitals.abnormal_vitals():
        score += VITAL_WEIGHTS[attr]

    score += CONSCIOUSNESS_WEIGHTS.get(snapshot.consciousness, 0)
    score += pain_points(snapshot.vitals.pain_score)

    # Every matching entry counts, repeated names included.
    score += sum(CRITICAL_SYMPTOM_WEIGHT for s in snapshot.symptoms if s.name in CRITICAL_SYMPTOMS)
    score += RISK_FACTOR_WEIGHT * len(snapshot.history.risk_factors())
    return score


def derive_category(score: int) -> str:
    """Map a score onto RED/YELLOW/GREEN.  BLACK is never derived."""
    if score >= RED_THRESHOLD:
        return RED
    if score >= YELLOW_THRESHOLD:
        return YELLOW
    return GREEN


def recommended_action(category: str) -> str:
    if category == RED:
        return IMMEDIATE_TREATMENT
    if category == YELLOW:
        return URGENT_CARE
    return STANDARD_CARE


def reassessment_interval(category: str) -> Optional[int]:
    return REASSESSMENT_MINUTES.get(category)


def is_reassessment_due(category: str, assessed_at: datetime, now: datetime) -> bool:
    minutes = reassessment_interval(category)
    if minutes is None:
        return False
    return now - assessed_at >= timedelta(minutes=minutes)


def assess(snapshot: ClinicalSnapshot) -> TriageResult:
    score = compute_score(snapshot)
    category = derive_category(score)
    return TriageResult(
        score=score,
        category=category,
        recommended_action=recommended_action(category),
        reassessment_required=category in (RED, YELLOW),
        reassessment_interval=reassessment_interval(category),
    )

