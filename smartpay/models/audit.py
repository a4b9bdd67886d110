"""
Audit Models for AI Smart Pay

Every wallet change and every AI round trip is logged for audit purposes.
This provides:
1. Traceability of what happened to each card
2. Debugging information when the AI returns something odd
3. A record of destructive operations (imports, clear-all)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Events never carry document content or manual notes.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Wallet changes
    CARD_ADDED = "card_added"
    CARD_UPDATED = "card_updated"
    CARD_REFRESHED = "card_refreshed"
    CARD_DELETED = "card_deleted"
    CARD_VALIDATION_FAILED = "card_validation_failed"

    # Backup / restore
    WALLET_EXPORTED = "wallet_exported"
    WALLET_IMPORTED = "wallet_imported"
    IMPORT_REJECTED = "import_rejected"
    WALLET_CLEARED = "wallet_cleared"

    # Recommendations
    RECOMMENDATION_REQUESTED = "recommendation_requested"
    RECOMMENDATION_RECONCILED = "recommendation_reconciled"
    MARKET_SEARCH_REQUESTED = "market_search_requested"

    # Statement analysis
    STATEMENT_ANALYSIS_REQUESTED = "statement_analysis_requested"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'card', 'wallet', 'recommendation')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """One line of the JSONL audit file."""
        return json.dumps(self.to_log_dict(), default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.card_added(card_id, display_name, correlation_id)
        event = AuditEventBuilder.wallet_imported(card_count, replaced, correlation_id)
    """

    @staticmethod
    def card_added(
        card_id: str,
        display_name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_ADDED,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=f"Card added: {display_name}",
            details={"display_name": display_name},
            is_user_action=True,
        )

    @staticmethod
    def card_updated(
        card_id: str,
        display_name: str,
        documents_added: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_UPDATED,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=f"Card updated: {display_name}",
            details={
                "display_name": display_name,
                "documents_added": documents_added,
            },
            is_user_action=True,
        )

    @staticmethod
    def card_refreshed(
        card_id: str,
        display_name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_REFRESHED,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=f"Card details refreshed: {display_name}",
            details={"display_name": display_name},
        )

    @staticmethod
    def card_deleted(
        card_id: str,
        existed: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_DELETED,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description="Card deleted" if existed else "Delete requested for unknown card",
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def card_validation_failed(
        issues: list[dict],
        correlation_id: UUID,
        card_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=f"Card rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def wallet_exported(
        card_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WALLET_EXPORTED,
            entity_type="wallet",
            correlation_id=correlation_id,
            description=f"Wallet exported with {card_count} cards",
            details={"card_count": card_count},
            is_user_action=True,
        )

    @staticmethod
    def wallet_imported(
        card_count: int,
        replaced_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WALLET_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="wallet",
            correlation_id=correlation_id,
            description=(
                f"Wallet restored from backup: {card_count} cards imported, "
                f"{replaced_count} existing cards replaced"
            ),
            details={
                "card_count": card_count,
                "replaced_count": replaced_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="wallet",
            correlation_id=correlation_id,
            description="Backup import rejected; wallet left untouched",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def wallet_cleared(
        removed_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WALLET_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="wallet",
            correlation_id=correlation_id,
            description=f"All data cleared ({removed_count} cards removed)",
            details={"removed_count": removed_count},
            is_user_action=True,
        )

    @staticmethod
    def recommendation_requested(
        purchase: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATION_REQUESTED,
            entity_type="recommendation",
            correlation_id=correlation_id,
            description="Best card recommendation requested",
            details={
                "purchase": purchase,
                "candidate_count": candidate_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def recommendation_reconciled(
        card_id: str,
        used_fallback: bool,
        should_offer_market_search: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATION_RECONCILED,
            entity_type="recommendation",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=(
                "Recommendation fell back to the Generic Card"
                if used_fallback
                else "Recommendation resolved to a wallet card"
            ),
            details={
                "used_fallback": used_fallback,
                "should_offer_market_search": should_offer_market_search,
            },
        )

    @staticmethod
    def market_search_requested(
        current_card_name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MARKET_SEARCH_REQUESTED,
            entity_type="recommendation",
            correlation_id=correlation_id,
            description=f"Market search for a card better than {current_card_name}",
            details={"current_card_name": current_card_name},
            is_user_action=True,
        )

    @staticmethod
    def statement_analysis_requested(
        analysis: str,
        statement_count: int,
        total_bytes: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_ANALYSIS_REQUESTED,
            entity_type="statement",
            correlation_id=correlation_id,
            description=f"{analysis} analysis requested for {statement_count} statement(s)",
            details={
                "analysis": analysis,
                "statement_count": statement_count,
                "total_bytes": total_bytes,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
