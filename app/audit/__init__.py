"""
Audit application.

Append-only compliance trail for refund workflow events.

Usage:
    from audit.services import AuditService
    from audit.models import AuditEventType

    AuditService.log_event(
        actor=admin,
        event_type=AuditEventType.REFUND_INITIATED,
        entity_type="milestone",
        entity_id=milestone.id,
        payload={"refund_request_id": str(refund_request.id)},
    )
"""
