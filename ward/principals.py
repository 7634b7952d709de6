"""
The authenticated actor of a request.

A :class:`Principal` is a closed tagged variant: an integer id plus a
:class:`PrincipalKind`.  It stands in for ``request.user`` in DRF views,
so it exposes ``is_authenticated`` and a ``pk`` that is unique across
both kinds (used by the throttling cache key).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass


class PrincipalKind(str, enum.Enum):
    FAMILY_MEMBER = 'familiar'
    PROFESSIONAL = 'profissional'


@dataclass(frozen=True)
class Principal:
    id: int
    kind: PrincipalKind

    is_authenticated = True
    is_anonymous = False

    @classmethod
    def family_member(cls, pk: int) -> 'Principal':
        return cls(id=pk, kind=PrincipalKind.FAMILY_MEMBER)

    @classmethod
    def professional(cls, pk: int) -> 'Principal':
        return cls(id=pk, kind=PrincipalKind.PROFESSIONAL)

    @property
    def pk(self) -> str:
        return f"{self.kind.value}:{self.id}"

    @property
    def is_family_member(self) -> bool:
        return self.kind is PrincipalKind.FAMILY_MEMBER

    @property
    def is_professional(self) -> bool:
        return self.kind is PrincipalKind.PROFESSIONAL

    def __str__(self) -> str:
        return self.pk
