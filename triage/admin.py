"""
Django admin registrations for the triage models.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    ConsultationQueue,
    Department,
    DepartmentKPI,
    PatientProfile,
    QueueTransition,
    TriageAlert,
    TriageAssessment,
    TriageNote,
    User,
)


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'code', 'name', 'open', 'max_daily_patients', 'created_at')
    search_fields = ('id', 'code', 'name')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'department', 'is_staff', 'is_superuser')
    list_filter = ('role', 'department')
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'sex', 'date_of_birth', 'phone')
    search_fields = ('user__username', 'user__first_name', 'phone')


class TriageAlertInline(admin.TabularInline):
    model = TriageAlert
    extra = 0


class TriageNoteInline(admin.TabularInline):
    model = TriageNote
    extra = 0


@admin.register(TriageAssessment)
class TriageAssessmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'category', 'priority_score', 'status', 'assessed_at')
    list_filter = ('category', 'status', 'consciousness')
    search_fields = ('patient__username', 'chief_complaint')
    inlines = [TriageAlertInline, TriageNoteInline]


class QueueTransitionInline(admin.TabularInline):
    model = QueueTransition
    extra = 0


@admin.register(ConsultationQueue)
class ConsultationQueueAdmin(admin.ModelAdmin):
    list_display = ('token_number', 'department', 'doctor', 'patient', 'priority', 'status', 'estimated_start_time')
    list_filter = ('department', 'status', 'priority', 'queue_date')
    search_fields = ('token_number', 'patient__username')
    inlines = [QueueTransitionInline]


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'date_time', 'status')
    list_filter = ('status', 'appointment_type')


@admin.register(DepartmentKPI)
class DepartmentKPIAdmin(admin.ModelAdmin):
    list_display = ('department', 'queue_len', 'avg_wait_min', 'avg_consultation_min', 'created_at')
    list_filter = ('department',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
