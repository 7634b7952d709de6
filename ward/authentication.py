"""
Principal resolution for DRF requests.

Requests carry ``Authorization: Bearer <token>`` where the token is a
simplejwt access token holding ``principal_id`` and ``tipo`` claims.
The authentication class below verifies the token, confirms the
principal still exists and hands a :class:`~ward.principals.Principal`
to the view as ``request.user``.  Credential checking and token
issuance for end users live outside this service.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from .models import FamilyMember, Professional
from .principals import Principal, PrincipalKind

PRINCIPAL_ID_CLAIM = 'principal_id'
PRINCIPAL_KIND_CLAIM = 'tipo'

_STORES = {
    PrincipalKind.FAMILY_MEMBER: FamilyMember,
    PrincipalKind.PROFESSIONAL: Professional,
}


def mint_access_token(principal: Principal) -> str:
    """Return a signed access token for ``principal`` (tooling and tests)."""
    token = AccessToken()
    token[PRINCIPAL_ID_CLAIM] = principal.id
    token[PRINCIPAL_KIND_CLAIM] = principal.kind.value
    return str(token)


class PrincipalJWTAuthentication(authentication.BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).split()
        if not header or header[0].lower() != self.keyword.lower().encode():
            return None
        if len(header) != 2:
            raise exceptions.AuthenticationFailed('Token mal formatado.')

        try:
            token = AccessToken(header[1].decode())
        except (TokenError, UnicodeError):
            raise exceptions.AuthenticationFailed('Token inválido ou expirado.')

        try:
            kind = PrincipalKind(token.get(PRINCIPAL_KIND_CLAIM))
            principal_id = int(token.get(PRINCIPAL_ID_CLAIM))
        except (TypeError, ValueError):
            raise exceptions.AuthenticationFailed('Token sem identificação de usuário.')

        if not _STORES[kind].objects.filter(pk=principal_id).exists():
            raise exceptions.AuthenticationFailed('Usuário do token não existe mais.')
        return Principal(id=principal_id, kind=kind), token

    def authenticate_header(self, request):
        return self.keyword
