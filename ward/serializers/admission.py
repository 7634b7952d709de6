import bleach
from rest_framework import serializers

from ward.models import Admission
from ward.services.notes import MIN_NOTE_LENGTH


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class AdmissionCreateSerializer(serializers.Serializer):
    idPaciente = serializers.IntegerField(
        min_value=1, error_messages={'required': 'ID do Paciente é obrigatório.'}
    )
    idProfissionalResponsavel = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    diagnostico = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    observacoes = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    quarto = serializers.CharField(required=False, allow_blank=True, max_length=50)
    leito = serializers.CharField(required=False, allow_blank=True, max_length=50)

    def validate_diagnostico(self, v):
        return _clean(v)

    def validate_observacoes(self, v):
        return _clean(v)

    def validate_quarto(self, v):
        return _clean(v)

    def validate_leito(self, v):
        return _clean(v)


class AdmissionListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Admission.STATUS_CHOICES], required=False)


class ProgressNoteCreateSerializer(serializers.Serializer):
    idInternacao = serializers.IntegerField(
        min_value=1, error_messages={'required': 'ID da Internação é obrigatório.'}
    )
    descricao = serializers.CharField(
        min_length=MIN_NOTE_LENGTH,
        max_length=10000,
        error_messages={'min_length': f'A descrição deve ter pelo menos {MIN_NOTE_LENGTH} caracteres.'},
    )


class AdmissionUpdateSerializer(serializers.Serializer):
    """Partial update; only keys present in the body are applied, ``null`` clears."""
    idProfissionalResponsavel = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    diagnostico = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=5000)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=5000)
    quarto = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)
    leito = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)

    FIELD_MAP = {
        'idProfissionalResponsavel': 'responsible_professional_id',
        'diagnostico': 'diagnosis',
        'observacoes': 'notes',
        'quarto': 'room',
        'leito': 'bed',
    }

    def validate_diagnostico(self, v):
        return _clean(v)

    def validate_observacoes(self, v):
        return _clean(v)

    def validate_quarto(self, v):
        return _clean(v)

    def validate_leito(self, v):
        return _clean(v)

    def changes(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}
