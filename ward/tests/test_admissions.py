import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from ward.exceptions import BlockedAction, Forbidden, InvalidInput, NotFound
from ward.models import Admission, Association, AuditEvent, ProgressNote
from ward.services import admissions, notes
from ward.services.access import can_read_admission
from ward.tests.sinks import FailingSink, RecordingSink

pytestmark = pytest.mark.django_db


def test_discharge_is_terminal_and_stamped(pro, admission):
    discharged = admissions.discharge_admission(pro, admission.id)
    assert discharged.status == Admission.STATUS_DISCHARGED
    assert discharged.discharged_at is not None
    with pytest.raises(BlockedAction):
        admissions.discharge_admission(pro, admission.id)
    assert AuditEvent.objects.filter(action='admission_discharge', object_id=admission.id).count() == 1


def test_discharge_requires_professional(fam, admission):
    with pytest.raises(Forbidden):
        admissions.discharge_admission(fam, admission.id)
    admission.refresh_from_db()
    assert admission.status == Admission.STATUS_ACTIVE


def test_discharge_timestamp_must_match_status(admission):
    with pytest.raises(IntegrityError), transaction.atomic():
        Admission.objects.filter(pk=admission.pk).update(status=Admission.STATUS_DISCHARGED)
    with pytest.raises(IntegrityError), transaction.atomic():
        Admission.objects.filter(pk=admission.pk).update(discharged_at=timezone.now())


def test_note_on_active_admission(pro, professional, admission):
    note = notes.create_progress_note(pro, admission.id, '  Paciente lúcido e orientado.  ', sink=RecordingSink())
    assert note.text == 'Paciente lúcido e orientado.'
    assert note.professional_id == professional.id
    assert AuditEvent.objects.filter(action='progress_note_create', object_id=note.id).exists()


def test_note_text_is_cleaned_before_length_check(pro, admission):
    with pytest.raises(InvalidInput):
        notes.create_progress_note(pro, admission.id, '<span></span>ok', sink=RecordingSink())
    assert not ProgressNote.objects.exists()


def test_note_on_discharged_admission_is_blocked(pro, admission):
    admissions.discharge_admission(pro, admission.id)
    with pytest.raises(BlockedAction) as exc:
        notes.create_progress_note(pro, admission.id, 'Paciente estável.', sink=RecordingSink())
    assert 'alta' in exc.value.message
    assert not ProgressNote.objects.exists()


def test_note_on_missing_admission(pro):
    with pytest.raises(NotFound):
        notes.create_progress_note(pro, 31337, 'Paciente estável.', sink=RecordingSink())


def test_note_requires_professional(fam, admission):
    with pytest.raises(Forbidden):
        notes.create_progress_note(fam, admission.id, 'Paciente estável.', sink=RecordingSink())


def test_note_notifies_only_approved_family_members(pro, family_member, other_family_member, admission,
                                                    django_capture_on_commit_callbacks):
    Association.objects.create(family_member=family_member, admission=admission, status=Association.STATUS_APPROVED)
    Association.objects.create(family_member=other_family_member, admission=admission)
    sink = RecordingSink()
    with django_capture_on_commit_callbacks(execute=True):
        notes.create_progress_note(pro, admission.id, 'Paciente estável.', sink=sink)
    assert [to for to, _, _ in sink.sent] == [family_member.email]


def test_note_survives_failed_fan_out(pro, family_member, admission, django_capture_on_commit_callbacks):
    Association.objects.create(family_member=family_member, admission=admission, status=Association.STATUS_APPROVED)
    with django_capture_on_commit_callbacks(execute=True):
        note = notes.create_progress_note(pro, admission.id, 'Paciente estável.', sink=FailingSink())
    assert ProgressNote.objects.filter(pk=note.pk).exists()


def test_default_sink_sends_email(settings, mailoutbox, pro, family_member, admission,
                                  django_capture_on_commit_callbacks):
    settings.NOTIFICATION_SINK = 'ward.services.notifications.EmailNotificationSink'
    Association.objects.create(family_member=family_member, admission=admission, status=Association.STATUS_APPROVED)
    with django_capture_on_commit_callbacks(execute=True):
        notes.create_progress_note(pro, admission.id, 'Paciente estável.')
    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == [family_member.email]
    assert 'José Lima' in mailoutbox[0].subject


def test_detail_lists_notes_newest_first(pro, admission):
    first = notes.create_progress_note(pro, admission.id, 'Primeira evolução.', sink=RecordingSink())
    second = notes.create_progress_note(pro, admission.id, 'Segunda evolução.', sink=RecordingSink())
    detail = admissions.get_admission_detail(pro, admission.id)
    assert [n['id'] for n in detail['evolucoes']] == [second.id, first.id]
    assert detail['paciente']['nome'] == 'José Lima'
    assert detail['profissionalResponsavel']['nome'] == 'Dra. Ana Souza'


def test_family_member_denied_before_existence_check(fam):
    with pytest.raises(Forbidden):
        admissions.get_admission_detail(fam, 55555)


def test_create_admission_validates_references(pro, patient):
    with pytest.raises(NotFound):
        admissions.create_admission(pro, patient_id=patient.id, responsible_professional_id=4242)
    admission = admissions.create_admission(pro, patient_id=patient.id, room='5')
    assert admission.status == Admission.STATUS_ACTIVE
    assert admission.responsible_professional is None


def test_list_admissions_filters_by_status(pro, patient, admission):
    other = Admission.objects.create(patient=patient)
    admissions.discharge_admission(pro, other.id)
    active = admissions.list_admissions(pro, status=Admission.STATUS_ACTIVE)
    assert [a['id'] for a in active] == [admission.id]


def test_fan_out_continues_past_a_broken_sink(pro, family_member, other_family_member, admission, broken_sink,
                                              django_capture_on_commit_callbacks):
    for fm in (family_member, other_family_member):
        Association.objects.create(family_member=fm, admission=admission, status=Association.STATUS_APPROVED)
    with django_capture_on_commit_callbacks(execute=True):
        note = notes.create_progress_note(pro, admission.id, 'Paciente estável.')
    assert sorted(broken_sink.attempts) == sorted([family_member.email, other_family_member.email])
    assert ProgressNote.objects.filter(pk=note.pk).exists()


def test_update_applies_only_given_fields(pro, admission):
    updated = admissions.update_admission(pro, admission.id, {'room': '21', 'notes': None})
    assert updated.room == '21'
    assert updated.bed == 'B'
    assert updated.notes == ''
    assert AuditEvent.objects.filter(action='admission_update', object_id=admission.id).exists()


def test_update_responsible_professional(pro, admission):
    cleared = admissions.update_admission(pro, admission.id, {'responsible_professional_id': None})
    assert cleared.responsible_professional_id is None
    with pytest.raises(NotFound):
        admissions.update_admission(pro, admission.id, {'responsible_professional_id': 4242})


def test_update_rejects_empty_change_set(pro, admission):
    with pytest.raises(InvalidInput):
        admissions.update_admission(pro, admission.id, {})


def test_update_and_delete_require_professional(fam, admission):
    with pytest.raises(Forbidden):
        admissions.update_admission(fam, admission.id, {'room': '1'})
    with pytest.raises(Forbidden):
        admissions.delete_admission(fam, admission.id)
    assert Admission.objects.filter(pk=admission.pk).exists()


def test_update_and_delete_missing_admission(pro):
    with pytest.raises(NotFound):
        admissions.update_admission(pro, 31337, {'room': '1'})
    with pytest.raises(NotFound):
        admissions.delete_admission(pro, 31337)


def test_delete_cascades_and_revokes_family_access(pro, fam, family_member, admission):
    Association.objects.create(family_member=family_member, admission=admission, status=Association.STATUS_APPROVED)
    notes.create_progress_note(pro, admission.id, 'Paciente estável.', sink=RecordingSink())
    assert can_read_admission(fam, admission.id) is True

    admissions.delete_admission(pro, admission.id)

    assert not Admission.objects.filter(pk=admission.pk).exists()
    assert not ProgressNote.objects.filter(admission_id=admission.id).exists()
    assert not Association.objects.filter(admission_id=admission.id).exists()
    assert can_read_admission(fam, admission.id) is False
    assert AuditEvent.objects.filter(action='admission_delete', object_id=admission.id).exists()
