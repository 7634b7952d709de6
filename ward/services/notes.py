"""
Progress notes ("evoluções").

A note can only be attached to an admission that is still ACTIVE; the
check happens here, at the note-creation boundary, under a row lock on
the admission so a concurrent discharge cannot slip in between.  Family
members with an APPROVED association are told about each new note once
the insert commits; those e-mails are best effort.
"""
from __future__ import annotations

from typing import Optional

import bleach
from django.db import transaction

from ward.exceptions import BlockedAction, InvalidInput, NotFound
from ward.models import Admission, Association, ProgressNote
from ward.principals import Principal
from ward.services.access import require_professional
from ward.services.audit import log_action
from ward.services import notifications

MIN_NOTE_LENGTH = 5


def create_progress_note(principal: Principal, admission_id: int, text: str, *,
                         sink: Optional[notifications.NotificationSink] = None) -> ProgressNote:
    require_professional(principal)
    text = bleach.clean((text or '').strip(), strip=True)
    if len(text) < MIN_NOTE_LENGTH:
        raise InvalidInput(f'A descrição deve ter pelo menos {MIN_NOTE_LENGTH} caracteres.')

    with transaction.atomic():
        admission = Admission.objects.select_for_update().select_related('patient').filter(pk=admission_id).first()
        if admission is None:
            raise NotFound('Internação não encontrada com o ID fornecido.')
        if admission.is_discharged:
            raise BlockedAction(
                'Ação bloqueada: Não é possível adicionar evoluções a uma internação que já recebeu alta.'
            )
        note = ProgressNote.objects.create(admission=admission, professional_id=principal.id, text=text)
        log_action(actor=principal, action='progress_note_create', object_type='progress_note', object_id=note.id,
                   detail={'admissionId': admission.id})

        sink = sink or notifications.get_notification_sink()
        watchers = (
            Association.objects.filter(admission=admission, status=Association.STATUS_APPROVED)
            .select_related('family_member')
        )
        for assoc in watchers:
            fm = assoc.family_member
            notifications.deliver_after_commit(
                sink, fm.email, notifications.progress_note_added(fm.name, admission.patient.name)
            )
    return note


def delete_progress_note(principal: Principal, note_id: int) -> None:
    require_professional(principal)
    with transaction.atomic():
        deleted, _ = ProgressNote.objects.filter(pk=note_id).delete()
        if not deleted:
            raise NotFound('Evolução não encontrada.')
        log_action(actor=principal, action='progress_note_delete', object_type='progress_note', object_id=note_id)
