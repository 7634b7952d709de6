import datetime

import pytest
from django.db import IntegrityError, transaction
from django.urls import reverse
from django.utils import timezone

from ward.exceptions import Conflict, Forbidden, NotFound, NotificationFailure
from ward.models import Admission, Association, AuditEvent
from ward.principals import Principal
from ward.services import associations as svc
from ward.tests.sinks import FailingSink, RecordingSink

pytestmark = pytest.mark.django_db


def test_create_starts_pending_and_resolves_patient_name(fam, admission, family_member):
    data = svc.create_association(fam, admission.id, sink=RecordingSink())
    assert data['status'] == Association.STATUS_PENDING
    assert data['idFamiliar'] == family_member.id
    assert data['idInternacao'] == admission.id
    assert data['nomePaciente'] == 'José Lima'
    assert data['dataSolicitacao']
    assert AuditEvent.objects.filter(action='association_request', object_id=data['id']).exists()


def test_create_requires_family_member(pro, admission):
    with pytest.raises(Forbidden):
        svc.create_association(pro, admission.id, sink=RecordingSink())
    assert Association.objects.count() == 0


def test_create_for_missing_admission_is_not_found(fam):
    with pytest.raises(NotFound):
        svc.create_association(fam, 9999, sink=RecordingSink())


def test_duplicate_request_conflicts_and_reports_existing_status(fam, admission):
    svc.create_association(fam, admission.id, sink=RecordingSink())
    with pytest.raises(Conflict) as exc:
        svc.create_association(fam, admission.id, sink=RecordingSink())
    assert 'pendente' in exc.value.message
    assert Association.objects.filter(admission=admission).count() == 1


def test_duplicate_after_rejection_still_conflicts(fam, pro, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    svc.reject_association(pro, created['id'], sink=RecordingSink())
    with pytest.raises(Conflict) as exc:
        svc.create_association(fam, admission.id, sink=RecordingSink())
    assert 'rejeitada' in exc.value.message


def test_storage_constraint_blocks_duplicate_rows(family_member, admission):
    Association.objects.create(family_member=family_member, admission=admission)
    with pytest.raises(IntegrityError), transaction.atomic():
        Association.objects.create(family_member=family_member, admission=admission)


def test_create_notification_is_sent_after_commit(fam, admission, family_member, django_capture_on_commit_callbacks):
    sink = RecordingSink()
    with django_capture_on_commit_callbacks(execute=True):
        svc.create_association(fam, admission.id, sink=sink)
    assert len(sink.sent) == 1
    to, subject, body = sink.sent[0]
    assert to == family_member.email
    assert 'José Lima' in subject


def test_create_notification_failure_keeps_association(fam, admission, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        data = svc.create_association(fam, admission.id, sink=FailingSink())
    assert Association.objects.filter(pk=data['id'], status=Association.STATUS_PENDING).exists()


def test_create_allowed_on_discharged_admission(fam, admission):
    Admission.objects.filter(pk=admission.pk).update(status=Admission.STATUS_DISCHARGED, discharged_at=timezone.now())
    data = svc.create_association(fam, admission.id, sink=RecordingSink())
    assert data['status'] == Association.STATUS_PENDING


def test_approve_and_reject_set_status_and_notify(fam, pro, admission, family_member):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    sink = RecordingSink()
    approved = svc.approve_association(pro, created['id'], sink=sink)
    assert approved['status'] == Association.STATUS_APPROVED
    assert approved['familiar'] == {'nome': family_member.name, 'email': family_member.email}
    assert 'aprovada' in sink.sent[0][2]

    rejected = svc.reject_association(pro, created['id'], sink=sink)
    assert rejected['status'] == Association.STATUS_REJECTED
    assert 'rejeitada' in sink.sent[1][2]
    transitions = AuditEvent.objects.filter(object_type='association', object_id=created['id'])
    assert {e.action for e in transitions} >= {'association_aprovada', 'association_rejeitada'}


def test_transitions_require_professional(fam, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    with pytest.raises(Forbidden):
        svc.approve_association(fam, created['id'], sink=RecordingSink())
    with pytest.raises(Forbidden):
        svc.reject_association(fam, created['id'], sink=RecordingSink())
    with pytest.raises(Forbidden):
        svc.delete_association(fam, created['id'])


def test_transitions_on_missing_association_are_not_found(pro):
    with pytest.raises(NotFound):
        svc.approve_association(pro, 424242, sink=RecordingSink())
    with pytest.raises(NotFound):
        svc.reject_association(pro, 424242, sink=RecordingSink())
    with pytest.raises(NotFound):
        svc.delete_association(pro, 424242)


def test_approve_notification_failure_surfaces_after_commit(fam, pro, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    with pytest.raises(NotificationFailure) as exc:
        svc.approve_association(pro, created['id'], sink=FailingSink())
    assert exc.value.data['status'] == Association.STATUS_APPROVED
    assert Association.objects.get(pk=created['id']).status == Association.STATUS_APPROVED


def test_lenient_notifications_swallow_approve_failure(settings, fam, pro, admission):
    settings.ASSOCIATION_NOTIFY_STRICT = False
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    data = svc.approve_association(pro, created['id'], sink=FailingSink())
    assert data['status'] == Association.STATUS_APPROVED


def test_reapproval_permitted_by_default(fam, pro, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    svc.reject_association(pro, created['id'], sink=RecordingSink())
    data = svc.approve_association(pro, created['id'], sink=RecordingSink())
    assert data['status'] == Association.STATUS_APPROVED


def test_terminal_lock_rejects_further_transitions(settings, fam, pro, admission):
    settings.ASSOCIATION_TERMINAL_LOCK = True
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    svc.approve_association(pro, created['id'], sink=RecordingSink())
    with pytest.raises(Conflict):
        svc.reject_association(pro, created['id'], sink=RecordingSink())
    assert Association.objects.get(pk=created['id']).status == Association.STATUS_APPROVED


def test_list_is_fifo_with_family_contact(pro, family_member, other_family_member, admission):
    now = timezone.now()
    newer = Association.objects.create(family_member=family_member, admission=admission)
    older = Association.objects.create(family_member=other_family_member, admission=admission)
    Association.objects.filter(pk=newer.pk).update(requested_at=now)
    Association.objects.filter(pk=older.pk).update(requested_at=now - datetime.timedelta(hours=2))

    data = svc.list_associations(pro)
    assert [a['id'] for a in data] == [older.id, newer.id]
    assert data[0]['familiar']['email'] == other_family_member.email
    assert data[0]['internacao']['paciente']['nome'] == 'José Lima'


def test_list_filters_by_status_and_requires_professional(pro, fam, family_member, other_family_member, admission):
    Association.objects.create(family_member=family_member, admission=admission)
    Association.objects.create(family_member=other_family_member, admission=admission,
                               status=Association.STATUS_APPROVED)
    data = svc.list_associations(pro, status=Association.STATUS_PENDING)
    assert [a['idFamiliar'] for a in data] == [family_member.id]
    with pytest.raises(Forbidden):
        svc.list_associations(fam)


def test_list_mine_is_newest_first_and_scoped(fam, pro, family_member, other_family_member, patient, admission):
    second = Admission.objects.create(patient=patient)
    now = timezone.now()
    a1 = Association.objects.create(family_member=family_member, admission=admission)
    a2 = Association.objects.create(family_member=family_member, admission=second)
    Association.objects.create(family_member=other_family_member, admission=admission)
    Association.objects.filter(pk=a1.pk).update(requested_at=now - datetime.timedelta(days=1))
    Association.objects.filter(pk=a2.pk).update(requested_at=now)

    data = svc.list_my_associations(fam)
    assert [a['id'] for a in data] == [a2.id, a1.id]
    with pytest.raises(Forbidden):
        svc.list_my_associations(pro)


def test_list_mine_reflects_transition_on_next_call(fam, pro, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    assert svc.list_my_associations(fam)[0]['status'] == Association.STATUS_PENDING
    svc.approve_association(pro, created['id'], sink=RecordingSink())
    assert svc.list_my_associations(fam)[0]['status'] == Association.STATUS_APPROVED
    assert svc.list_my_associations(fam, status=Association.STATUS_PENDING) == []


def test_my_association_detail_only_when_approved(fam, pro, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    summary = svc.get_my_association(fam, created['id'])
    assert 'evolucoes' not in summary['internacao']
    assert 'diagnostico' not in summary['internacao']

    svc.approve_association(pro, created['id'], sink=RecordingSink())
    detail = svc.get_my_association(fam, created['id'])
    assert detail['internacao']['paciente']['cpf'] == '444.444.444-44'
    assert detail['internacao']['evolucoes'] == []


def test_my_association_detail_hides_other_family_members_rows(admission, other_family_member, family_member):
    theirs = Association.objects.create(family_member=other_family_member, admission=admission,
                                        status=Association.STATUS_APPROVED)
    with pytest.raises(NotFound):
        svc.get_my_association(Principal.family_member(family_member.id), theirs.id)


def test_delete_removes_row_and_is_audited(fam, pro, admission):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    svc.delete_association(pro, created['id'])
    assert not Association.objects.filter(pk=created['id']).exists()
    assert AuditEvent.objects.filter(action='association_delete', object_id=created['id']).exists()


def test_unexpected_sink_error_does_not_fail_create(client_for, fam, admission, broken_sink,
                                                    django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(fam).post(reverse('associations'), {'idInternacao': admission.id}, format='json')
    assert r.status_code == 201
    assert broken_sink.attempts == ['carlos@familia.test']
    assert Association.objects.filter(pk=r.data['data']['id'], status=Association.STATUS_PENDING).exists()


def test_unexpected_sink_error_on_approve_is_a_notification_failure(fam, pro, admission, broken_sink):
    created = svc.create_association(fam, admission.id, sink=RecordingSink())
    with pytest.raises(NotificationFailure) as exc:
        svc.approve_association(pro, created['id'])
    assert exc.value.data['status'] == Association.STATUS_APPROVED


def test_create_for_vanished_family_member_is_forbidden(admission):
    with pytest.raises(Forbidden):
        svc.create_association(Principal.family_member(424242), admission.id, sink=RecordingSink())
    assert not Association.objects.exists()
