"""
Django admin registrations for the ward models.

This module hooks the ward models into Django's built-in admin
interface so that staff can inspect and correct data via the
``/admin/`` URL.  Credential hashes are never shown.
"""

from django.contrib import admin

from .models import (
    Admission,
    Association,
    AuditEvent,
    FamilyMember,
    Patient,
    Professional,
    ProgressNote,
)


@admin.register(FamilyMember)
class FamilyMemberAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'email', 'phone', 'created_at')
    search_fields = ('name', 'cpf', 'email')
    exclude = ('password',)


@admin.register(Professional)
class ProfessionalAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'kind', 'specialty', 'email')
    list_filter = ('kind',)
    search_fields = ('name', 'cpf', 'email', 'crm', 'coren')
    exclude = ('password',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'cpf', 'birth_date', 'blood_type')
    search_fields = ('name', 'cpf')


@admin.register(Admission)
class AdmissionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'status', 'room', 'bed', 'started_at', 'discharged_at')
    list_filter = ('status',)
    search_fields = ('patient__name', 'patient__cpf', 'room')


@admin.register(ProgressNote)
class ProgressNoteAdmin(admin.ModelAdmin):
    list_display = ('id', 'admission', 'professional', 'recorded_at')
    search_fields = ('admission__patient__name', 'professional__name')


@admin.register(Association)
class AssociationAdmin(admin.ModelAdmin):
    list_display = ('id', 'family_member', 'admission', 'status', 'requested_at')
    list_filter = ('status',)
    search_fields = ('family_member__name', 'family_member__email', 'admission__patient__name')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'actor_kind', 'actor_id', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'actor_kind')
    readonly_fields = ('actor_kind', 'actor_id', 'action', 'object_type', 'object_id', 'detail', 'created_at')
