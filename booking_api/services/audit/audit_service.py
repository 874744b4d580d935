# booking_api/services/audit/audit_service.py
"""Audit trail for scheduling writes. Never allowed to fail a booking."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from booking_api.config.settings import get_settings
from booking_api.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Records audit entries; failures are logged and swallowed"""

    @staticmethod
    def record(
            db: Session,
            business_id,
            action: str,
            entity_id=None,
            actor_role: Optional[str] = None,
            payload: Optional[Dict[str, Any]] = None
    ) -> None:
        if not get_settings().AUDIT_ENABLED:
            return
        # Called after the booking write has committed; a failure here rolls
        # back the audit row only
        try:
            db.add(AuditLog(
                business_id=business_id,
                action=action,
                entity_id=entity_id,
                actor_role=actor_role,
                payload=payload or {},
            ))
            db.commit()
        except Exception as e:
            logger.warning(f"Audit write failed for {action} {entity_id}: {e}", exc_info=True)
            db.rollback()
