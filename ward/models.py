"""
Database models for the ward records backend.

These models capture the ward's core concepts: the two principal kinds
(family members and clinical professionals, each with its own
credential store), patients, admissions ("internações"), clinical
progress notes ("evoluções") and the associations through which a
family member is granted read access to one admission.  Wire values for
statuses are kept in Portuguese to match the front-end contract.
"""
from __future__ import annotations

from django.contrib.auth.hashers import make_password
from django.db import models
from django.db.models import Q


class CredentialMixin(models.Model):
    """Password storage shared by both principal kinds."""
    password = models.CharField(max_length=128)

    class Meta:
        abstract = True

    def set_password(self, raw_password: str) -> None:
        self.password = make_password(raw_password)


class FamilyMember(CredentialMixin):
    """A relative who may request read access to a patient's admission."""
    name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=14, unique=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class Professional(CredentialMixin):
    """A clinical professional with blanket read access to admissions."""
    KIND_DOCTOR = 'MEDICO'
    KIND_NURSE = 'ENFERMEIRO'
    KIND_TECHNICIAN = 'TECNICO'
    KIND_OTHER = 'OUTRO'
    KIND_CHOICES = (
        (KIND_DOCTOR, 'Médico'),
        (KIND_NURSE, 'Enfermeiro'),
        (KIND_TECHNICIAN, 'Técnico de enfermagem'),
        (KIND_OTHER, 'Outro'),
    )

    name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=14, unique=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)
    crm = models.CharField(max_length=20, blank=True)
    coren = models.CharField(max_length=20, blank=True)
    specialty = models.CharField(max_length=255, blank=True)
    kind = models.CharField(max_length=16, choices=KIND_CHOICES, default=KIND_OTHER)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.kind})"


class Patient(models.Model):
    """Identity record of a patient.  Identity fields are not edited."""
    name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=14, unique=True)
    birth_date = models.DateField()
    blood_type = models.CharField(max_length=4, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Admission(models.Model):
    """One hospital stay of one patient.

    An admission starts ACTIVE and is discharged exactly once; it is never
    reopened.  ``discharged_at`` is set if and only if the status is
    DISCHARGED, which the check constraint below enforces at the database.
    """
    STATUS_ACTIVE = 'ATIVA'
    STATUS_DISCHARGED = 'ALTA'
    STATUS_CHOICES = ((STATUS_ACTIVE, 'Ativa'), (STATUS_DISCHARGED, 'Alta'))

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='admissions')
    responsible_professional = models.ForeignKey(
        Professional, null=True, blank=True, on_delete=models.SET_NULL, related_name='admissions'
    )
    diagnosis = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    room = models.CharField(max_length=50, blank=True)
    bed = models.CharField(max_length=50, blank=True)
    started_at = models.DateTimeField(auto_now_add=True)
    discharged_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status='ALTA', discharged_at__isnull=False)
                    | Q(status='ATIVA', discharged_at__isnull=True)
                ),
                name='admission_discharge_matches_status',
            ),
        ]

    @property
    def is_discharged(self) -> bool:
        return self.status == self.STATUS_DISCHARGED

    def __str__(self) -> str:
        return f"Admission #{self.pk} of {self.patient_id} ({self.status})"


class ProgressNote(models.Model):
    """A timestamped clinical entry authored by a professional."""
    admission = models.ForeignKey(Admission, on_delete=models.CASCADE, related_name='progress_notes')
    professional = models.ForeignKey(
        Professional, null=True, on_delete=models.SET_NULL, related_name='progress_notes'
    )
    text = models.TextField()
    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['admission', 'recorded_at'])]

    def __str__(self) -> str:
        return f"Note {self.pk} on admission {self.admission_id}"


class Association(models.Model):
    """A family member's request for, and grant of, read access to one admission.

    At most one association exists per (family member, admission) pair.
    The unique constraint is the authoritative duplicate guard: a second
    insert for the same pair raises ``IntegrityError`` which the service
    layer reports as a conflict.
    """
    STATUS_PENDING = 'pendente'
    STATUS_APPROVED = 'aprovada'
    STATUS_REJECTED = 'rejeitada'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pendente'),
        (STATUS_APPROVED, 'Aprovada'),
        (STATUS_REJECTED, 'Rejeitada'),
    )
    TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)

    family_member = models.ForeignKey(FamilyMember, on_delete=models.CASCADE, related_name='associations')
    admission = models.ForeignKey(Admission, on_delete=models.CASCADE, related_name='associations')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    requested_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['family_member', 'admission'],
                name='unique_association_per_family_member',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'requested_at']),
            models.Index(fields=['family_member', 'requested_at']),
        ]

    def __str__(self) -> str:
        return f"Association {self.pk}: {self.family_member_id} -> {self.admission_id} ({self.status})"


class AuditEvent(models.Model):
    """Append-only record of who changed what in the ward workflow."""
    actor_kind = models.CharField(max_length=16, blank=True)
    actor_id = models.BigIntegerField(null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.actor_kind}/{self.actor_id}@{self.created_at:%F %T}"
