import bleach
from rest_framework import serializers

from triage import scoring
from triage.models import TriageAssessment


class TriageCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    chiefComplaint = serializers.CharField(max_length=2000)
    vitalSigns = serializers.DictField()
    consciousness = serializers.CharField(max_length=16)
    symptoms = serializers.ListField(required=False, default=list)
    medicalHistory = serializers.DictField(required=False, default=dict)
    physicalAssessment = serializers.DictField(required=False, allow_null=True)
    referredToDepartment = serializers.CharField(required=False, allow_null=True, max_length=20)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_chiefComplaint(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('Chief complaint is required')
        return v


class TriageUpdateSerializer(serializers.Serializer):
    chiefComplaint = serializers.CharField(required=False, max_length=2000)
    vitalSigns = serializers.DictField(required=False)
    consciousness = serializers.CharField(required=False, max_length=16)
    symptoms = serializers.ListField(required=False)
    medicalHistory = serializers.DictField(required=False)
    physicalAssessment = serializers.DictField(required=False, allow_null=True)
    referredToDepartment = serializers.CharField(required=False, allow_null=True, max_length=20)
    recommendedAction = serializers.ChoiceField(choices=scoring.ACTIONS, required=False)
    category = serializers.ChoiceField(choices=[scoring.BLACK], required=False)
    status = serializers.ChoiceField(choices=[s for s, _ in TriageAssessment.STATUS_CHOICES], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    FIELD_MAP = {
        'chiefComplaint': 'chief_complaint',
        'vitalSigns': 'vital_signs',
        'consciousness': 'consciousness',
        'symptoms': 'symptoms',
        'medicalHistory': 'medical_history',
        'physicalAssessment': 'physical_assessment',
        'referredToDepartment': 'referred_to_department',
        'recommendedAction': 'recommended_action',
        'category': 'category',
        'status': 'status',
        'notes': 'notes',
    }

    def service_data(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class TriageReassessSerializer(serializers.Serializer):
    vitalSigns = serializers.DictField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')
