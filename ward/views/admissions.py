"""
Admission endpoints.

Professionals create, update, discharge and delete admissions.
Reading an admission's detail, including its progress notes, goes
through the access policy on every request: professionals always,
family members only while an approved association exists.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ward.serializers.admission import (
    AdmissionCreateSerializer,
    AdmissionListQuerySerializer,
    AdmissionUpdateSerializer,
)
from ward.services.access import can_read_admission
from ward.services.admissions import (
    create_admission,
    delete_admission,
    discharge_admission,
    format_admission,
    get_admission_detail,
    list_admissions,
    update_admission,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def admissions(request):
    if request.method == 'GET':
        q = AdmissionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return Response({'ok': True, 'data': list_admissions(request.user, status=q.validated_data.get('status'))})
    # POST
    s = AdmissionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    admission = create_admission(
        request.user,
        patient_id=vd['idPaciente'],
        responsible_professional_id=vd.get('idProfissionalResponsavel'),
        diagnosis=vd.get('diagnostico', ''),
        notes=vd.get('observacoes', ''),
        room=vd.get('quarto', ''),
        bed=vd.get('leito', ''),
    )
    return Response({'ok': True, 'data': format_admission(admission)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def admission_detail(request, pk: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': get_admission_detail(request.user, pk)})
    if request.method == 'DELETE':
        delete_admission(request.user, pk)
        return Response({'ok': True, 'message': 'Internação (e suas evoluções/associações) foi apagada.'})
    # PUT
    s = AdmissionUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    admission = update_admission(request.user, pk, s.changes())
    return Response({'ok': True, 'data': format_admission(admission)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def admission_access(request, pk: int):
    """Tell the caller whether they may currently read this admission."""
    return Response({'ok': True, 'idInternacao': pk, 'canRead': can_read_admission(request.user, pk)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def admission_discharge(request, pk: int):
    admission = discharge_admission(request.user, pk)
    return Response({'ok': True, 'data': format_admission(admission)})
