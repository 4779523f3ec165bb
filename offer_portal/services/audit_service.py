from __future__ import annotations

from sqlalchemy.orm import Session

from offer_portal.models import AuditLog


def log_audit(
    db: Session,
    *,
    action: str,
    offer_id: int | None,
    ip: str | None,
    metadata: dict | None = None,
) -> None:
    db.add(
        AuditLog(
            action=action,
            offer_id=offer_id,
            ip=ip,
            meta=metadata or {},
        )
    )
