from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ward.serializers.admission import ProgressNoteCreateSerializer
from ward.services.notes import create_progress_note, delete_progress_note


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def progress_notes(request):
    s = ProgressNoteCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    note = create_progress_note(request.user, s.validated_data['idInternacao'], s.validated_data['descricao'])
    return Response({
        'ok': True,
        'data': {
            'id': note.id,
            'idInternacao': note.admission_id,
            'idProfissional': note.professional_id,
            'descricao': note.text,
            'dataHora': note.recorded_at.isoformat(),
        },
    }, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def progress_note_delete(request, pk: int):
    delete_progress_note(request.user, pk)
    return Response({'ok': True, 'message': 'Evolução apagada.'})
