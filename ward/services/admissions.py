from typing import Optional

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from ward.exceptions import BlockedAction, Forbidden, InvalidInput, NotFound, UnknownPrincipal
from ward.models import Admission, Association, Patient, Professional, ProgressNote
from ward.principals import Principal, PrincipalKind
from ward.services.access import can_read_admission, require_professional
from ward.services.audit import log_action


def _iso(dt):
    return dt.isoformat() if dt else None


def format_progress_note(n: ProgressNote) -> dict:
    return {
        "id": n.id,
        "idInternacao": n.admission_id,
        "descricao": n.text,
        "dataHora": _iso(n.recorded_at),
        "profissional": {
            "id": n.professional_id,
            "nome": n.professional.name,
            "tipo": n.professional.kind,
        } if n.professional_id else None,
    }


def format_admission(a: Admission) -> dict:
    return {
        "id": a.id,
        "idPaciente": a.patient_id,
        "paciente": {"nome": a.patient.name},
        "idProfissionalResponsavel": a.responsible_professional_id,
        "quarto": a.room,
        "leito": a.bed,
        "status": a.status,
        "dataInicio": _iso(a.started_at),
        "dataAlta": _iso(a.discharged_at),
    }


def format_admission_detail(a: Admission) -> dict:
    """Full clinical view: patient, responsible professional, diagnosis and notes."""
    p = a.patient
    rp = a.responsible_professional
    return {
        **format_admission(a),
        "diagnostico": a.diagnosis,
        "observacoes": a.notes,
        "paciente": {
            "id": p.id,
            "nome": p.name,
            "cpf": p.cpf,
            "dataNascimento": p.birth_date.isoformat() if p.birth_date else None,
            "tipoSanguineo": p.blood_type,
        },
        "profissionalResponsavel": {
            "id": rp.id,
            "nome": rp.name,
            "especialidade": rp.specialty,
        } if rp else None,
        "evolucoes": [format_progress_note(n) for n in a.progress_notes.all()],
    }


def admission_detail_queryset():
    notes = ProgressNote.objects.select_related('professional').order_by('-recorded_at', '-id')
    return Admission.objects.select_related('patient', 'responsible_professional').prefetch_related(
        Prefetch('progress_notes', queryset=notes)
    )


def create_admission(principal: Principal, *, patient_id: int, responsible_professional_id: Optional[int]=None,
                     diagnosis: str='', notes: str='', room: str='', bed: str='') -> Admission:
    require_professional(principal)
    patient = Patient.objects.filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Paciente não encontrado com o ID fornecido.')
    responsible = None
    if responsible_professional_id:
        responsible = Professional.objects.filter(pk=responsible_professional_id).first()
        if responsible is None:
            raise NotFound('Profissional responsável não encontrado.')

    with transaction.atomic():
        admission = Admission.objects.create(
            patient=patient,
            responsible_professional=responsible,
            diagnosis=diagnosis,
            notes=notes,
            room=room,
            bed=bed,
        )
        log_action(actor=principal, action='admission_create', object_type='admission', object_id=admission.id,
                   detail={'patientId': patient.id})
    return admission


def discharge_admission(principal: Principal, admission_id: int) -> Admission:
    """Move an admission from ATIVA to ALTA.  A second discharge is blocked."""
    require_professional(principal)
    with transaction.atomic():
        admission = Admission.objects.select_for_update().select_related('patient').filter(pk=admission_id).first()
        if admission is None:
            raise NotFound('Internação não encontrada com o ID fornecido.')
        if admission.is_discharged:
            raise BlockedAction('Ação bloqueada: esta internação já recebeu alta.')
        admission.status = Admission.STATUS_DISCHARGED
        admission.discharged_at = timezone.now()
        admission.save(update_fields=['status', 'discharged_at'])
        log_action(actor=principal, action='admission_discharge', object_type='admission', object_id=admission.id)
    return admission


def list_admissions(principal: Principal, *, status: Optional[str]=None) -> list:
    qs = Admission.objects.select_related('patient')
    kind = getattr(principal, 'kind', None)
    if kind is PrincipalKind.PROFESSIONAL:
        pass
    elif kind is PrincipalKind.FAMILY_MEMBER:
        qs = qs.filter(
            associations__family_member_id=principal.id,
            associations__status=Association.STATUS_APPROVED,
        )
    else:
        raise UnknownPrincipal()
    if status:
        qs = qs.filter(status=status)
    return [format_admission(a) for a in qs.order_by('-started_at', '-id')]


def get_admission_detail(principal: Principal, admission_id: int) -> dict:
    if not can_read_admission(principal, admission_id):
        raise Forbidden('Acesso negado: Você não tem permissão para ver esta internação.')
    admission = admission_detail_queryset().filter(pk=admission_id).first()
    if admission is None:
        raise NotFound('Internação não encontrada.')
    return format_admission_detail(admission)


_TEXT_FIELDS = ('diagnosis', 'notes', 'room', 'bed')


def update_admission(principal: Principal, admission_id: int, changes: dict) -> Admission:
    """Apply a partial update.  ``changes`` uses model field names; ``None`` clears a field."""
    require_professional(principal)
    if not changes:
        raise InvalidInput('Nenhum dado fornecido para atualização.')

    with transaction.atomic():
        admission = Admission.objects.select_for_update().select_related('patient').filter(pk=admission_id).first()
        if admission is None:
            raise NotFound('Internação não encontrada.')
        fields = []
        if 'responsible_professional_id' in changes:
            rp_id = changes['responsible_professional_id']
            if rp_id is not None and not Professional.objects.filter(pk=rp_id).exists():
                raise NotFound('Profissional responsável não encontrado.')
            admission.responsible_professional_id = rp_id
            fields.append('responsible_professional')
        for name in _TEXT_FIELDS:
            if name in changes:
                setattr(admission, name, changes[name] or '')
                fields.append(name)
        admission.save(update_fields=fields)
        log_action(actor=principal, action='admission_update', object_type='admission', object_id=admission.id,
                   detail={'fields': sorted(changes)})
    return admission


def delete_admission(principal: Principal, admission_id: int) -> None:
    """Delete an admission together with its progress notes and associations.

    Family access granted through those associations ends with them.
    """
    require_professional(principal)
    with transaction.atomic():
        admission = Admission.objects.select_for_update().filter(pk=admission_id).first()
        if admission is None:
            raise NotFound('Internação não encontrada.')
        _, per_model = admission.delete()
        log_action(actor=principal, action='admission_delete', object_type='admission', object_id=admission_id,
                   detail={'deleted': per_model})
