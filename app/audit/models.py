"""
Audit log model.

AuditLog rows are written once and never updated. The actor is kept as a
nullable FK so system-triggered events (sweeps, scheduled campaign
refunds) can be recorded without a user.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class AuditEventType(models.TextChoices):
    """Events recorded by the refund workflow."""

    REFUND_INITIATED = "REFUND_INITIATED", "Refund Initiated"
    REFUND_PROCESSED = "REFUND_PROCESSED", "Refund Processed"
    REFUND_CANCELLED = "REFUND_CANCELLED", "Refund Cancelled"
    CAMPAIGN_REFUND_INITIATED = "CAMPAIGN_REFUND_INITIATED", "Campaign Refund Initiated"


class AuditLog(UUIDPrimaryKeyMixin, BaseModel):
    """
    One audited event.

    Fields:
        actor: User who triggered the event (null for system events)
        event_type: AuditEventType value
        entity_type: Kind of entity the event is about ("milestone", "campaign", ...)
        entity_id: Identifier of that entity
        payload: Event details
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_events",
    )
    event_type = models.CharField(max_length=50, db_index=True)
    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=64)
    payload = models.JSONField(default=dict, blank=True)

    class Meta(BaseModel.Meta):
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log"
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} {self.entity_type}:{self.entity_id}"
