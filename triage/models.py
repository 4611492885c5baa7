"""
Database models for the triage & consultation queue backend.

Clinical snapshots (vital signs, symptoms, medical history) are stored in
JSON columns but are always read and written through the dataclasses in
:mod:`triage.scoring`; see :meth:`TriageAssessment.snapshot`.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models

from . import scoring, sequencing


def _choices(values) -> list[tuple[str, str]]:
    return [(v, v) for v in values]


class Department(models.Model):
    """A clinical department owning its own consultation queue."""
    id = models.CharField(
        max_length=20,
        primary_key=True,
        help_text="Unique identifier for the department (e.g. 'opd')",
    )
    # Prefix of the human-readable queue token.
    code = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    open = models.BooleanField(default=True, db_index=True)
    max_daily_patients = models.PositiveIntegerField(default=0, help_text="0 means unlimited")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class User(AbstractUser):
    """Custom user with a clinical role and an optional department binding."""
    ROLE_PATIENT = 'patient'
    ROLE_NURSE = 'nurse'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT)
    department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='staff', db_index=True
    )

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class PatientProfile(models.Model):
    SEX_CHOICES = [('M', 'Male'), ('F', 'Female'), ('O', 'Other')]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    sex = models.CharField(max_length=1, choices=SEX_CHOICES, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    phone = models.CharField(max_length=32, blank=True)

    def __str__(self) -> str:
        return f"profile of {self.user.username}"


class TriageAssessment(models.Model):
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_REASSESSED = 'REASSESSED'
    STATUS_TRANSFERRED = 'TRANSFERRED'
    STATUS_CHOICES = _choices((STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_REASSESSED, STATUS_TRANSFERRED))
    ACTIVE_STATUSES = (STATUS_IN_PROGRESS, STATUS_REASSESSED)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_TRANSFERRED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='triage_assessments')
    assessed_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='triages_performed')
    assessed_at = models.DateTimeField()
    category = models.CharField(max_length=10, choices=_choices(scoring.CATEGORIES), db_index=True)
    chief_complaint = models.TextField()
    vital_signs = models.JSONField(default=dict)
    consciousness = models.CharField(max_length=16, choices=_choices(scoring.CONSCIOUSNESS_LEVELS))
    symptoms = models.JSONField(default=list, blank=True)
    medical_history = models.JSONField(default=dict, blank=True)
    physical_assessment = models.JSONField(null=True, blank=True)
    priority_score = models.PositiveIntegerField(default=0)
    recommended_action = models.CharField(max_length=24, choices=_choices(scoring.ACTIONS))
    referred_to_department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='referred_triages'
    )
    notes = models.TextField(blank=True)
    reassessment_required = models.BooleanField(default=False)
    reassessment_interval = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'category', 'assessed_at'], name='triage_status_cat_time_idx'),
            models.Index(fields=['patient', 'assessed_at'], name='triage_patient_time_idx'),
        ]

    def __str__(self) -> str:
        return f"triage {self.id} {self.category} score={self.priority_score}"

    def snapshot(self) -> scoring.ClinicalSnapshot:
        return scoring.ClinicalSnapshot.from_payload(
            vital_signs=self.vital_signs,
            consciousness=self.consciousness,
            symptoms=self.symptoms,
            medical_history=self.medical_history,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES


class TriageAlert(models.Model):
    TYPE_CATEGORY_CHANGE = 'CATEGORY_CHANGE'
    TYPE_CRITICAL = 'CRITICAL'
    TYPE_CHOICES = _choices((TYPE_CATEGORY_CHANGE, TYPE_CRITICAL))

    triage = models.ForeignKey(TriageAssessment, on_delete=models.CASCADE, related_name='alerts')
    alert_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    from_category = models.CharField(max_length=10, blank=True)
    to_category = models.CharField(max_length=10)
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField()

    class Meta:
        indexes = [models.Index(fields=['triage', 'created_at'], name='alert_triage_time_idx')]

    def __str__(self) -> str:
        return f"{self.alert_type}: {self.from_category or '-'} → {self.to_category}"


class TriageNote(models.Model):
    TYPE_ASSESSMENT = 'ASSESSMENT'
    TYPE_REASSESSMENT = 'REASSESSMENT'
    TYPE_ALERT = 'ALERT'
    TYPE_NOTE = 'NOTE'
    TYPE_CHOICES = _choices((TYPE_ASSESSMENT, TYPE_REASSESSMENT, TYPE_ALERT, TYPE_NOTE))

    triage = models.ForeignKey(TriageAssessment, on_delete=models.CASCADE, related_name='triage_notes')
    created_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='triage_notes')
    note_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.note_type} note on {self.triage_id}"


class ConsultationQueue(models.Model):
    """A patient's place in a department's consultation waiting list."""
    STATUS_CHOICES = _choices(sequencing.STATUSES)
    PRIORITY_CHOICES = [
        (sequencing.PRIORITY_NORMAL, 'Normal'),
        (sequencing.PRIORITY_HIGH, 'High'),
        (sequencing.PRIORITY_URGENT, 'Urgent'),
        (sequencing.PRIORITY_EMERGENCY, 'Emergency'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    triage = models.ForeignKey(TriageAssessment, on_delete=models.PROTECT, related_name='queue_entries')
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='queue_entries')
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='queue_entries')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='assigned_queue_entries')
    # Calendar day (settings.TIME_ZONE) the queue number belongs to.
    queue_date = models.DateField()
    queue_number = models.PositiveIntegerField()
    token_number = models.CharField(max_length=40, db_index=True)
    priority = models.PositiveSmallIntegerField(choices=PRIORITY_CHOICES, default=sequencing.PRIORITY_NORMAL)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=sequencing.WAITING)
    estimated_start_time = models.DateTimeField()
    actual_start_time = models.DateTimeField(null=True, blank=True)
    completion_time = models.DateTimeField(null=True, blank=True)
    actual_duration_minutes = models.FloatField(null=True, blank=True)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['department', 'queue_date', 'queue_number'],
                name='uniq_queue_number_per_department_day',
            ),
        ]
        indexes = [
            models.Index(fields=['department', 'status'], name='queue_dept_status_idx'),
            models.Index(fields=['doctor', 'status'], name='queue_doctor_status_idx'),
            models.Index(fields=['department', 'status', 'completion_time'], name='queue_dept_status_done_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.token_number} ({self.status})"


class QueueTransition(models.Model):
    """Records a status transition for a queue entry."""
    entry = models.ForeignKey(ConsultationQueue, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=16, null=True, blank=True)
    to_status = models.CharField(max_length=16)
    operator = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_transitions')
    timestamp = models.DateTimeField()
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.entry_id}: {self.from_status} → {self.to_status}"


class Appointment(models.Model):
    """Doctor calendar slot booked when a patient joins a consultation queue."""
    STATUS_SCHEDULED = 'scheduled'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = _choices((STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_CANCELLED))

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    queue_entry = models.OneToOneField(
        ConsultationQueue, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointment'
    )
    date_time = models.DateTimeField()
    appointment_type = models.CharField(max_length=32, default='consultation')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['doctor', 'date_time'], name='appt_doctor_time_idx')]

    def __str__(self) -> str:
        return f"appointment d={self.doctor_id} p={self.patient_id} @ {self.date_time:%F %T}"


class DepartmentKPI(models.Model):
    """Per-department queue KPI snapshot."""
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='kpis')
    queue_len = models.PositiveIntegerField(default=0)
    avg_wait_min = models.PositiveIntegerField(default=0)
    avg_consultation_min = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['department', 'created_at'], name='kpi_dept_created_idx'),
        ]

    def __str__(self):
        return f"KPI({self.department_id}) q={self.queue_len} w={self.avg_wait_min} @ {self.created_at:%F %T}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
