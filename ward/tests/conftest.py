import datetime

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from ward.models import Admission, FamilyMember, Patient, Professional
from ward.principals import Principal


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def professional(db):
    return Professional.objects.create(
        name='Dra. Ana Souza', cpf='111.111.111-11', email='ana@hospital.test', kind=Professional.KIND_DOCTOR,
    )


@pytest.fixture
def family_member(db):
    return FamilyMember.objects.create(name='Carlos Lima', cpf='222.222.222-22', email='carlos@familia.test')


@pytest.fixture
def other_family_member(db):
    return FamilyMember.objects.create(name='Beatriz Lima', cpf='333.333.333-33', email='bia@familia.test')


@pytest.fixture
def patient(db):
    return Patient.objects.create(
        name='José Lima', cpf='444.444.444-44', birth_date=datetime.date(1948, 3, 2), blood_type='A+',
    )


@pytest.fixture
def admission(patient, professional):
    return Admission.objects.create(patient=patient, responsible_professional=professional, room='12', bed='B')


@pytest.fixture
def pro(professional):
    return Principal.professional(professional.id)


@pytest.fixture
def fam(family_member):
    return Principal.family_member(family_member.id)


@pytest.fixture
def client_for():
    def make(principal):
        client = APIClient()
        client.force_authenticate(user=principal)
        return client
    return make


@pytest.fixture
def broken_sink(settings):
    from ward.tests.sinks import BrokenSink
    BrokenSink.attempts = []
    settings.NOTIFICATION_SINK = 'ward.tests.sinks.BrokenSink'
    return BrokenSink
