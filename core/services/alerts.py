from typing import List, Optional

from core.models import HealthAlert, User
from core.services.audit import log_action


def serialize_alert(a: HealthAlert) -> dict:
    return {
        'id': a.id,
        'title': a.title,
        'content': a.content,
        'region': a.region,
        'severity': a.severity,
        'created_at': a.created_at.isoformat() if a.created_at else None,
    }


def list_alerts(region: Optional[str]=None) -> List[dict]:
    qs = HealthAlert.objects.all()
    if region:
        qs = qs.filter(region__iexact=region.strip())
    return [serialize_alert(a) for a in qs.order_by('-created_at', '-id')]


def publish_alert(admin: User, *, title: str, content: str, region: str, severity: str='medium') -> HealthAlert:
    a = HealthAlert.objects.create(
        title=title.strip(), content=content.strip(), region=region.strip(),
        severity=severity or 'medium', created_by=admin,
    )
    log_action(user=admin, action='alert_publish', object_type='alert', object_id=a.id,
               detail={'region': a.region, 'severity': a.severity})
    return a
