"""
Association lifecycle: family members request access to an admission,
professionals approve, reject or delete those requests.

Duplicate requests are caught by the (family member, admission) unique
constraint; the resulting ``IntegrityError`` is reported as a conflict
naming the status of the existing request.  Confirmation of a new
request is fire-and-forget.  Approve/reject notify the family member
after the status change has committed and, when
``ASSOCIATION_NOTIFY_STRICT`` is on, report a failed notification to
the caller together with the committed association.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from ward.exceptions import Conflict, Forbidden, NotFound, NotificationFailure
from ward.models import Admission, Association, FamilyMember
from ward.principals import Principal
from ward.services import notifications
from ward.services.access import can_view_association_detail, require_family_member, require_professional
from ward.services.admissions import admission_detail_queryset, format_admission_detail
from ward.services.audit import log_action

logger = logging.getLogger(__name__)

_OUTCOME_MESSAGES = {
    Association.STATUS_APPROVED: notifications.association_approved,
    Association.STATUS_REJECTED: notifications.association_rejected,
}


def _base_queryset():
    return Association.objects.select_related('family_member', 'admission__patient')


def format_association(a: Association, *, include_family: bool=False, include_detail: bool=False) -> dict:
    admission = a.admission
    data = {
        "id": a.id,
        "idFamiliar": a.family_member_id,
        "idInternacao": a.admission_id,
        "status": a.status,
        "dataSolicitacao": a.requested_at.isoformat() if a.requested_at else None,
        "nomePaciente": admission.patient.name,
        "internacao": {
            "id": admission.id,
            "status": admission.status,
            "paciente": {"nome": admission.patient.name},
        },
    }
    if include_family:
        data["familiar"] = {"nome": a.family_member.name, "email": a.family_member.email}
    if include_detail:
        data["internacao"] = format_admission_detail(admission)
    return data


def create_association(principal: Principal, admission_id: int, *,
                       sink: Optional[notifications.NotificationSink]=None) -> dict:
    require_family_member(principal)
    admission = Admission.objects.select_related('patient').filter(pk=admission_id).first()
    if admission is None:
        raise NotFound('Internação não encontrada com o ID fornecido.')
    family_member = FamilyMember.objects.filter(pk=principal.id).first()
    if family_member is None:
        raise Forbidden('Acesso negado: familiar não encontrado.')
    sink = sink or notifications.get_notification_sink()

    try:
        with transaction.atomic():
            assoc = Association.objects.create(family_member=family_member, admission=admission)
            log_action(actor=principal, action='association_request', object_type='association',
                       object_id=assoc.id, detail={'admissionId': admission.id})
            notifications.deliver_after_commit(
                sink, family_member.email,
                notifications.association_requested(family_member.name, admission.patient.name),
            )
    except IntegrityError:
        existing = Association.objects.filter(family_member=family_member, admission_id=admission_id).first()
        if existing is None:
            raise NotFound('Internação não encontrada com o ID fornecido.')
        raise Conflict(f'Você já enviou uma solicitação para esta internação (Status: {existing.status}).')

    logger.info('Association %s requested by family member %s for admission %s',
                assoc.id, family_member.id, admission.id)
    return format_association(assoc)


def _transition(principal: Principal, association_id: int, new_status: str,
                sink: Optional[notifications.NotificationSink]) -> dict:
    require_professional(principal)
    with transaction.atomic():
        assoc = _base_queryset().filter(pk=association_id).first()
        if assoc is None:
            raise NotFound('Solicitação de associação não encontrada.')
        previous = assoc.status
        if settings.ASSOCIATION_TERMINAL_LOCK and previous in Association.TERMINAL_STATUSES:
            raise Conflict(f'Esta solicitação já foi finalizada (Status: {previous}).')
        assoc.status = new_status
        assoc.save(update_fields=['status', 'updated_at'])
        log_action(actor=principal, action=f'association_{new_status}', object_type='association',
                   object_id=assoc.id, detail={'from': previous, 'to': new_status})

    data = format_association(assoc, include_family=True)
    family_member = assoc.family_member
    message = _OUTCOME_MESSAGES[new_status](family_member.name, assoc.admission.patient.name)
    sink = sink or notifications.get_notification_sink()
    if not settings.ASSOCIATION_NOTIFY_STRICT:
        notifications.deliver_quietly(sink, family_member.email, message)
        return data
    try:
        notifications.deliver(sink, family_member.email, message)
    except NotificationFailure as e:
        logger.error('Association %s set to %s but notification failed: %s', assoc.id, new_status, e.message)
        raise NotificationFailure(
            f'Solicitação atualizada para "{new_status}", mas a notificação ao familiar não foi enviada.',
            data=data,
        ) from e
    return data


def approve_association(principal: Principal, association_id: int, *,
                        sink: Optional[notifications.NotificationSink]=None) -> dict:
    return _transition(principal, association_id, Association.STATUS_APPROVED, sink)


def reject_association(principal: Principal, association_id: int, *,
                       sink: Optional[notifications.NotificationSink]=None) -> dict:
    return _transition(principal, association_id, Association.STATUS_REJECTED, sink)


def delete_association(principal: Principal, association_id: int) -> None:
    """Remove the association; any access it granted ends with it."""
    require_professional(principal)
    with transaction.atomic():
        deleted, _ = Association.objects.filter(pk=association_id).delete()
        if not deleted:
            raise NotFound('Solicitação de associação não encontrada.')
        log_action(actor=principal, action='association_delete', object_type='association', object_id=association_id)


def list_associations(principal: Principal, *, status: Optional[str]=None) -> list:
    """Review queue for professionals, oldest request first."""
    require_professional(principal)
    qs = _base_queryset()
    if status:
        qs = qs.filter(status=status)
    return [format_association(a, include_family=True) for a in qs.order_by('requested_at', 'id')]


def list_my_associations(principal: Principal, *, status: Optional[str]=None) -> list:
    require_family_member(principal)
    qs = _base_queryset().filter(family_member_id=principal.id)
    if status:
        qs = qs.filter(status=status)
    return [format_association(a) for a in qs.order_by('-requested_at', '-id')]


def get_my_association(principal: Principal, association_id: int) -> dict:
    """One of the caller's own associations; clinical detail only once approved."""
    require_family_member(principal)
    assoc = _base_queryset().filter(pk=association_id, family_member_id=principal.id).first()
    if assoc is None:
        raise NotFound('Solicitação de associação não encontrada.')
    if not can_view_association_detail(principal, assoc):
        return format_association(assoc)
    assoc.admission = admission_detail_queryset().get(pk=assoc.admission_id)
    return format_association(assoc, include_detail=True)
