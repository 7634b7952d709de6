"""
Read-access policy for admissions.

Professionals read every admission.  A family member reads an admission
only while an APPROVED association links them to it.  The decision is
recomputed from the database on every call, so rejecting or deleting an
association takes effect on the very next read.
"""
from __future__ import annotations

import logging

from ward.exceptions import Forbidden, UnknownPrincipal
from ward.models import Association
from ward.principals import Principal, PrincipalKind

logger = logging.getLogger(__name__)


def can_read_admission(principal: Principal, admission_id: int) -> bool:
    kind = getattr(principal, 'kind', None)
    if kind is PrincipalKind.PROFESSIONAL:
        return True
    if kind is PrincipalKind.FAMILY_MEMBER:
        allowed = Association.objects.filter(
            family_member_id=principal.id,
            admission_id=admission_id,
            status=Association.STATUS_APPROVED,
        ).exists()
        if not allowed:
            logger.info('Access denied: family member %s to admission %s', principal.id, admission_id)
        return allowed
    raise UnknownPrincipal()


def can_view_association_detail(principal: Principal, association: Association) -> bool:
    """Whether ``principal`` may see the clinical detail behind their own association."""
    kind = getattr(principal, 'kind', None)
    if kind is PrincipalKind.PROFESSIONAL:
        return True
    if kind is PrincipalKind.FAMILY_MEMBER:
        return (
            association.family_member_id == principal.id
            and association.status == Association.STATUS_APPROVED
        )
    raise UnknownPrincipal()


def require_professional(principal: Principal) -> None:
    if getattr(principal, 'kind', None) is not PrincipalKind.PROFESSIONAL:
        raise Forbidden('Acesso negado: Rota apenas para profissionais.')


def require_family_member(principal: Principal) -> None:
    if getattr(principal, 'kind', None) is not PrincipalKind.FAMILY_MEMBER:
        raise Forbidden('Acesso negado: Rota apenas para familiares.')
