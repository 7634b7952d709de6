"""
Error taxonomy and the unified API exception handler.

Service functions raise subclasses of :class:`WardError`; each carries
an :class:`ErrorKind`.  :func:`status_for` maps every kind onto an HTTP
status code and :func:`api_exception_handler` renders every failure as
``{"ok": false, "error": {"code": ..., "message": ...}}``.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Optional

from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    VALIDATION = 'validation_error'
    UNAUTHENTICATED = 'unauthenticated'
    FORBIDDEN = 'forbidden'
    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    BLOCKED_ACTION = 'blocked_action'
    NOTIFICATION_FAILURE = 'notification_failure'
    UNKNOWN_PRINCIPAL = 'unknown_principal'
    INTERNAL_STORE = 'internal_store_error'


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BLOCKED_ACTION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOTIFICATION_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UNKNOWN_PRINCIPAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL_STORE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(kind: ErrorKind) -> int:
    return _STATUS_BY_KIND[kind]


class WardError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL_STORE
    default_message = 'Erro interno inesperado do servidor.'

    def __init__(self, message: Optional[str] = None, *, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class InvalidInput(WardError):
    kind = ErrorKind.VALIDATION
    default_message = 'Erro de validação nos dados enviados.'


class Forbidden(WardError):
    kind = ErrorKind.FORBIDDEN
    default_message = 'Acesso negado.'


class NotFound(WardError):
    kind = ErrorKind.NOT_FOUND
    default_message = 'Registro não encontrado.'


class Conflict(WardError):
    kind = ErrorKind.CONFLICT
    default_message = 'Registro duplicado.'


class BlockedAction(WardError):
    kind = ErrorKind.BLOCKED_ACTION
    default_message = 'Ação bloqueada.'


class NotificationFailure(WardError):
    """The outbound message failed.

    Raised after the triggering state change has been committed; ``data``
    carries the committed record so the caller can tell the transition
    itself succeeded.
    """
    kind = ErrorKind.NOTIFICATION_FAILURE
    default_message = 'Falha ao enviar a notificação.'


class UnknownPrincipal(WardError):
    kind = ErrorKind.UNKNOWN_PRINCIPAL
    default_message = 'Tipo de usuário desconhecido.'


class InternalStoreError(WardError):
    kind = ErrorKind.INTERNAL_STORE
    default_message = 'Erro no banco de dados.'


def _error_response(kind: ErrorKind, message: Any, *, fields: Any = None, data: Any = None, headers=None) -> Response:
    body: dict[str, Any] = {'ok': False, 'error': {'code': kind.value, 'message': message}}
    if fields is not None:
        body['error']['fields'] = fields
    if data is not None:
        body['data'] = data
    return Response(body, status=status_for(kind), headers=headers)


def _kind_for_drf(exc: drf_exceptions.APIException) -> Optional[ErrorKind]:
    if isinstance(exc, drf_exceptions.ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        return ErrorKind.UNAUTHENTICATED
    if isinstance(exc, drf_exceptions.PermissionDenied):
        return ErrorKind.FORBIDDEN
    if isinstance(exc, drf_exceptions.NotFound):
        return ErrorKind.NOT_FOUND
    return None


def api_exception_handler(exc, context):
    if isinstance(exc, WardError):
        if exc.kind in (ErrorKind.INTERNAL_STORE, ErrorKind.UNKNOWN_PRINCIPAL):
            logger.error('%s: %s', exc.kind.value, exc.message)
        return _error_response(exc.kind, exc.message, data=exc.data)

    if isinstance(exc, DatabaseError):
        logger.exception('Unhandled database error')
        return _error_response(ErrorKind.INTERNAL_STORE, InternalStoreError.default_message)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view'))
        return _error_response(ErrorKind.INTERNAL_STORE, WardError.default_message)

    if isinstance(exc, Http404):
        return _error_response(ErrorKind.NOT_FOUND, NotFound.default_message)

    kind = _kind_for_drf(exc)
    headers = {k: resp[k] for k in ('WWW-Authenticate', 'Retry-After') if resp.has_header(k)}
    if kind is ErrorKind.VALIDATION:
        return _error_response(kind, 'Erro de validação nos dados enviados.', fields=resp.data, headers=headers)
    detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
    if kind is None:
        # Other client errors (bad method, unsupported media, throttled) keep their status.
        body = {'ok': False, 'error': {'code': 'api_error', 'message': detail}}
        return Response(body, status=resp.status_code, headers=headers)
    response = _error_response(kind, detail, headers=headers)
    if kind is ErrorKind.UNAUTHENTICATED:
        response.status_code = resp.status_code
    return response
