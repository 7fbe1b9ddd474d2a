from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import AuditActorType, AuditLog

logger = logging.getLogger("app.audit")


def _actor(actor_id: int | None) -> tuple[AuditActorType, str]:
    if actor_id is None:
        return AuditActorType.SYSTEM, "system"
    return AuditActorType.ADMIN, str(actor_id)


def log_audit(
    db: Session,
    *,
    action: str,
    success: bool,
    actor_id: int | None = None,
    entity_type: str | None = None,
    entity_id: int | str | None = None,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> None:
    """Persist one scheduling audit row. A failed write is logged and rolled back."""
    actor_type, actor_label = _actor(actor_id)
    entity_ref = str(entity_id) if entity_id is not None else None
    db.add(
        AuditLog(
            ts_utc=datetime.now(timezone.utc),
            actor_type=actor_type,
            actor_id=actor_label,
            action=action,
            entity_type=entity_type,
            entity_id=entity_ref,
            success=success,
            details=details or {},
        )
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "audit_log_write_failed",
            extra={"request_id": request_id, "action": action, "actor_id": actor_label},
        )
        return

    logger.info(
        "audit_event",
        extra={
            "request_id": request_id,
            "action": action,
            "actor_type": actor_type.value,
            "actor_id": actor_label,
            "entity_type": entity_type,
            "entity_id": entity_ref,
            "success": success,
            "details": details or {},
        },
    )
