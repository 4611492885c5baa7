from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from rest_framework.authtoken.models import Token

from triage.models import Department, PatientProfile, User

DEPARTMENTS = [
    ("opd", "OPD", "Outpatient Department"),
    ("er", "ER", "Emergency"),
    ("card", "CARD", "Cardiology"),
]

STAFF = [
    ("admin1", User.ROLE_ADMIN, None),
    ("nurse1", User.ROLE_NURSE, "er"),
    ("doctor_opd", User.ROLE_DOCTOR, "opd"),
    ("doctor_er", User.ROLE_DOCTOR, "er"),
    ("doctor_card", User.ROLE_DOCTOR, "card"),
]

PATIENTS = [
    ("patient1", "M"),
    ("patient2", "F"),
]


class Command(BaseCommand):
    help = "Create demo departments, staff and patients (idempotent). Password is 123456."

    def handle(self, *args, **opts):
        for dept_id, code, name in DEPARTMENTS:
            Department.objects.update_or_create(id=dept_id, defaults={"code": code, "name": name, "open": True})
            self.stdout.write(self.style.SUCCESS(f"department: {dept_id}"))

        for username, role, dept_id in STAFF + [(u, User.ROLE_PATIENT, None) for u, _ in PATIENTS]:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "department_id": dept_id, "password": make_password("123456")},
            )
            if not created:
                u.role = role
                u.department_id = dept_id
                u.is_active = True
                u.save(update_fields=["role", "department", "is_active"])
            token, _ = Token.objects.get_or_create(user=u)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role}) token={token.key}"))

        for username, sex in PATIENTS:
            PatientProfile.objects.get_or_create(user=User.objects.get(username=username), defaults={"sex": sex})
        self.stdout.write(self.style.SUCCESS("Demo data ensured."))
