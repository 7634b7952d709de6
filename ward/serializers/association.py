from rest_framework import serializers

from ward.models import Association


class AssociationCreateSerializer(serializers.Serializer):
    idInternacao = serializers.IntegerField(
        min_value=1, error_messages={'required': 'ID da Internação é obrigatório.'}
    )


class AssociationListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Association.STATUS_CHOICES], required=False)
