"""
Audit service.

Refund services call log_event() through core.effects.run_after_commit,
so an audit failure is logged and never rolls back the audited change.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from django.core.serializers.json import DjangoJSONEncoder

from audit.models import AuditLog
from core.services import BaseService

if TYPE_CHECKING:
    from typing import Any


class AuditService(BaseService):
    """Writes AuditLog rows."""

    @classmethod
    def log_event(
        cls,
        actor,
        event_type: str,
        entity_type: str,
        entity_id: Any,
        payload: dict[str, Any] | None = None,
    ) -> AuditLog:
        """
        Record an audited event.

        Decimals, UUIDs and datetimes in the payload are stored as strings.
        """
        clean_payload = json.loads(json.dumps(payload or {}, cls=DjangoJSONEncoder))
        entry = AuditLog.objects.create(
            actor=actor,
            event_type=str(event_type),
            entity_type=entity_type,
            entity_id=str(entity_id),
            payload=clean_payload,
        )
        cls.get_logger().info(
            "Audit event recorded",
            extra={
                "event_type": entry.event_type,
                "entity_type": entity_type,
                "entity_id": entry.entity_id,
            },
        )
        return entry

    @classmethod
    def events_for(cls, entity_type: str, entity_id: Any):
        """Events for one entity, oldest first."""
        return AuditLog.objects.filter(
            entity_type=entity_type, entity_id=str(entity_id)
        ).order_by("created_at")
