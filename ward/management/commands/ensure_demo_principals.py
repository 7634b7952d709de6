# ward/management/commands/ensure_demo_principals.py
import datetime

from django.core.management.base import BaseCommand
from django.db import transaction

from ward.authentication import mint_access_token
from ward.models import Admission, FamilyMember, Patient, Professional
from ward.principals import Principal

DEMO_PASSWORD = "infocare123"


class Command(BaseCommand):
    help = "Ensure a demo professional, family member, patient and admission exist (idempotent) and print tokens."

    @transaction.atomic
    def handle(self, *args, **opts):
        professional, _ = Professional.objects.get_or_create(
            email="profissional@infocare.local",
            defaults={"name": "Dra. Demo", "cpf": "000.000.000-01", "kind": Professional.KIND_DOCTOR},
        )
        family_member, _ = FamilyMember.objects.get_or_create(
            email="familiar@infocare.local",
            defaults={"name": "Familiar Demo", "cpf": "000.000.000-02"},
        )
        for principal in (professional, family_member):
            principal.set_password(DEMO_PASSWORD)
            principal.save(update_fields=["password"])

        patient, _ = Patient.objects.get_or_create(
            cpf="000.000.000-03",
            defaults={"name": "Paciente Demo", "birth_date": datetime.date(1950, 1, 1), "blood_type": "O+"},
        )
        admission = Admission.objects.filter(patient=patient, status=Admission.STATUS_ACTIVE).first()
        if admission is None:
            admission = Admission.objects.create(
                patient=patient, responsible_professional=professional, room="101", bed="A"
            )

        self.stdout.write(self.style.SUCCESS(f"ok: admission #{admission.id} for {patient.name}"))
        self.stdout.write(f"professional #{professional.id} token: "
                          f"{mint_access_token(Principal.professional(professional.id))}")
        self.stdout.write(f"family member #{family_member.id} token: "
                          f"{mint_access_token(Principal.family_member(family_member.id))}")
        self.stdout.write(self.style.SUCCESS("Demo principals ensured."))
