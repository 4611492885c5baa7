import uuid

import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='Department',
            fields=[
                ('id', models.CharField(help_text="Unique identifier for the department (e.g. 'opd')", max_length=20, primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=10, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('open', models.BooleanField(db_index=True, default=True)),
                ('max_daily_patients', models.PositiveIntegerField(default=0, help_text='0 means unlimited')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('patient', 'Patient'), ('nurse', 'Nurse'), ('doctor', 'Doctor'), ('admin', 'Administrator')], default='patient', max_length=10)),
                ('department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='staff', to='triage.department')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='PatientProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sex', models.CharField(blank=True, choices=[('M', 'Male'), ('F', 'Female'), ('O', 'Other')], max_length=1)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='patient_profile', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='TriageAssessment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('assessed_at', models.DateTimeField()),
                ('category', models.CharField(choices=[('RED', 'RED'), ('YELLOW', 'YELLOW'), ('GREEN', 'GREEN'), ('BLACK', 'BLACK')], db_index=True, max_length=10)),
                ('chief_complaint', models.TextField()),
                ('vital_signs', models.JSONField(default=dict)),
                ('consciousness', models.CharField(choices=[('ALERT', 'ALERT'), ('VERBAL', 'VERBAL'), ('PAIN', 'PAIN'), ('UNRESPONSIVE', 'UNRESPONSIVE')], max_length=16)),
                ('symptoms', models.JSONField(blank=True, default=list)),
                ('medical_history', models.JSONField(blank=True, default=dict)),
                ('physical_assessment', models.JSONField(blank=True, null=True)),
                ('priority_score', models.PositiveIntegerField(default=0)),
                ('recommended_action', models.CharField(choices=[('IMMEDIATE_TREATMENT', 'IMMEDIATE_TREATMENT'), ('URGENT_CARE', 'URGENT_CARE'), ('STANDARD_CARE', 'STANDARD_CARE'), ('REFERRAL', 'REFERRAL'), ('DISCHARGE', 'DISCHARGE')], max_length=24)),
                ('notes', models.TextField(blank=True)),
                ('reassessment_required', models.BooleanField(default=False)),
                ('reassessment_interval', models.PositiveIntegerField(blank=True, help_text='Minutes', null=True)),
                ('status', models.CharField(choices=[('IN_PROGRESS', 'IN_PROGRESS'), ('COMPLETED', 'COMPLETED'), ('REASSESSED', 'REASSESSED'), ('TRANSFERRED', 'TRANSFERRED')], db_index=True, default='IN_PROGRESS', max_length=16)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assessed_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='triages_performed', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='triage_assessments', to=settings.AUTH_USER_MODEL)),
                ('referred_to_department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='referred_triages', to='triage.department')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['status', 'category', 'assessed_at'], name='triage_status_cat_time_idx'),
                    models.Index(fields=['patient', 'assessed_at'], name='triage_patient_time_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TriageAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('alert_type', models.CharField(choices=[('CATEGORY_CHANGE', 'CATEGORY_CHANGE'), ('CRITICAL', 'CRITICAL')], max_length=20)),
                ('from_category', models.CharField(blank=True, max_length=10)),
                ('to_category', models.CharField(max_length=10)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField()),
                ('triage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='triage.triageassessment')),
            ],
            options={
                'indexes': [models.Index(fields=['triage', 'created_at'], name='alert_triage_time_idx')],
            },
        ),
        migrations.CreateModel(
            name='TriageNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('note_type', models.CharField(choices=[('ASSESSMENT', 'ASSESSMENT'), ('REASSESSMENT', 'REASSESSMENT'), ('ALERT', 'ALERT'), ('NOTE', 'NOTE')], max_length=16)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='triage_notes', to=settings.AUTH_USER_MODEL)),
                ('triage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='triage_notes', to='triage.triageassessment')),
            ],
        ),
        migrations.CreateModel(
            name='ConsultationQueue',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('queue_date', models.DateField()),
                ('queue_number', models.PositiveIntegerField()),
                ('token_number', models.CharField(db_index=True, max_length=40)),
                ('priority', models.PositiveSmallIntegerField(choices=[(0, 'Normal'), (1, 'High'), (2, 'Urgent'), (3, 'Emergency')], default=0)),
                ('status', models.CharField(choices=[('WAITING', 'WAITING'), ('IN_PROGRESS', 'IN_PROGRESS'), ('COMPLETED', 'COMPLETED'), ('CANCELLED', 'CANCELLED')], default='WAITING', max_length=16)),
                ('estimated_start_time', models.DateTimeField()),
                ('actual_start_time', models.DateTimeField(blank=True, null=True)),
                ('completion_time', models.DateTimeField(blank=True, null=True)),
                ('actual_duration_minutes', models.FloatField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('department', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='queue_entries', to='triage.department')),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assigned_queue_entries', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='queue_entries', to=settings.AUTH_USER_MODEL)),
                ('triage', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='queue_entries', to='triage.triageassessment')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['department', 'status'], name='queue_dept_status_idx'),
                    models.Index(fields=['doctor', 'status'], name='queue_doctor_status_idx'),
                    models.Index(fields=['department', 'status', 'completion_time'], name='queue_dept_status_done_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('department', 'queue_date', 'queue_number'), name='uniq_queue_number_per_department_day'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QueueTransition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(blank=True, max_length=16, null=True)),
                ('to_status', models.CharField(max_length=16)),
                ('timestamp', models.DateTimeField()),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('entry', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transitions', to='triage.consultationqueue')),
                ('operator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='queue_transitions', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date_time', models.DateTimeField()),
                ('appointment_type', models.CharField(default='consultation', max_length=32)),
                ('status', models.CharField(choices=[('scheduled', 'scheduled'), ('completed', 'completed'), ('cancelled', 'cancelled')], default='scheduled', max_length=16)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='doctor_appointments', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to=settings.AUTH_USER_MODEL)),
                ('queue_entry', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointment', to='triage.consultationqueue')),
            ],
            options={
                'indexes': [models.Index(fields=['doctor', 'date_time'], name='appt_doctor_time_idx')],
            },
        ),
        migrations.CreateModel(
            name='DepartmentKPI',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('queue_len', models.PositiveIntegerField(default=0)),
                ('avg_wait_min', models.PositiveIntegerField(default=0)),
                ('avg_consultation_min', models.FloatField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('department', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kpis', to='triage.department')),
            ],
            options={
                'indexes': [models.Index(fields=['department', 'created_at'], name='kpi_dept_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.CharField(blank=True, max_length=64, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
                ],
            },
        ),
    ]
