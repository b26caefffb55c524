"""
app/services/audit_sink.py

Audit trail collaborator for import commits.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from app.domain.bulk_import import Principal
from app.logging_utils import log_event

logger = logging.getLogger("estate.audit")


class AuditSink(Protocol):
    def record(
        self,
        principal: Principal,
        *,
        action: str,
        entity_type: str,
        entity_id: str | None,
        after: Mapping[str, Any],
    ) -> None:
        ...


class LoggingAuditSink:
    """
    Writes audit events to the ``estate.audit`` logger.
    """

    def record(
        self,
        principal: Principal,
        *,
        action: str,
        entity_type: str,
        entity_id: str | None,
        after: Mapping[str, Any],
    ) -> None:
        log_event(
            logger,
            logging.INFO,
            "audit",
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            tenant_id=principal.tenant_id,
            username=principal.username,
            user_id=principal.user_id,
            role=principal.role,
            after=dict(after),
        )
