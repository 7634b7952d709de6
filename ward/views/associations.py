"""
Association workflow endpoints.

Family members request access to an admission and follow their own
requests; professionals review the queue and approve, reject or delete
requests.  Principal-kind checks and every other rule live in
:mod:`ward.services.associations`; failures are rendered by the unified
exception handler.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ward.serializers.association import AssociationCreateSerializer, AssociationListQuerySerializer
from ward.services.associations import (
    approve_association,
    create_association,
    delete_association,
    get_my_association,
    list_associations,
    list_my_associations,
    reject_association,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def associations(request):
    if request.method == 'GET':
        q = AssociationListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = list_associations(request.user, status=q.validated_data.get('status'))
        return Response({'ok': True, 'data': data})
    # POST
    s = AssociationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = create_association(request.user, s.validated_data['idInternacao'])
    return Response({'ok': True, 'data': data}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_associations(request):
    q = AssociationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = list_my_associations(request.user, status=q.validated_data.get('status'))
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_association_detail(request, pk: int):
    return Response({'ok': True, 'data': get_my_association(request.user, pk)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def association_approve(request, pk: int):
    return Response({'ok': True, 'data': approve_association(request.user, pk)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def association_reject(request, pk: int):
    return Response({'ok': True, 'data': reject_association(request.user, pk)})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def association_delete(request, pk: int):
    delete_association(request.user, pk)
    return Response({'ok': True, 'message': 'Solicitação de associação apagada.'})
