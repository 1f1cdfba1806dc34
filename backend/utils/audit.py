from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session
from models.log import Log


def _json_safe(value):
    # Amounts are Decimals and statuses are enums; JSON columns take neither
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    return value


def client_ip(request):
    return request.client.host if request is not None and request.client else None


def write_log(db: Session, *, user_id, action, resource, resource_id=None, status="SUCCESS", ip=None, meta=None):
    entry = Log(
        user_id=user_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        status=status,
        ip=ip,
        meta=_json_safe(meta or {}),
    )
    db.add(entry)
    db.commit()
