from typing import Optional, Any, Dict

from ward.models import AuditEvent
from ward.principals import Principal


def log_action(*, actor: Optional[Principal], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    return AuditEvent.objects.create(
        actor_kind=actor.kind.value if actor is not None else '',
        actor_id=actor.id if actor is not None else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )
