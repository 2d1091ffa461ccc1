import logging
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model

from core.models import AuditEvent

logger = logging.getLogger(__name__)

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Append a business audit row.  Anonymous or missing users are stored as NULL."""
    actor = user if getattr(user, 'is_authenticated', False) and getattr(user, 'id', None) else None
    event = AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )
    logger.debug("audit %s %s:%s by %s", action, object_type, object_id, getattr(actor, 'id', None))
    return event
