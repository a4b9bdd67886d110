"""
Audit Logger

DESIGN DECISION: Every wallet change and AI round trip is logged.
This provides:
1. Traceability of what happened to each card
2. Debugging capability when the AI misbehaves
3. A record of destructive operations (restore, clear-all)

The audit logger:
- Is async so flows can await it uniformly
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from smartpay.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from smartpay.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("smartpay.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_card_added(
        self,
        card_id: str,
        display_name: str,
        correlation_id: UUID,
    ) -> None:
        """Log card creation."""
        await self.log(AuditEventBuilder.card_added(
            card_id=card_id,
            display_name=display_name,
            correlation_id=correlation_id,
        ))

    async def log_card_updated(
        self,
        card_id: str,
        display_name: str,
        documents_added: int,
        correlation_id: UUID,
    ) -> None:
        """Log a manual edit."""
        await self.log(AuditEventBuilder.card_updated(
            card_id=card_id,
            display_name=display_name,
            documents_added=documents_added,
            correlation_id=correlation_id,
        ))

    async def log_card_refreshed(
        self,
        card_id: str,
        display_name: str,
        correlation_id: UUID,
    ) -> None:
        """Log an AI details refresh."""
        await self.log(AuditEventBuilder.card_refreshed(
            card_id=card_id,
            display_name=display_name,
            correlation_id=correlation_id,
        ))

    async def log_card_deleted(
        self,
        card_id: str,
        existed: bool,
        correlation_id: UUID,
    ) -> None:
        """Log card deletion."""
        await self.log(AuditEventBuilder.card_deleted(
            card_id=card_id,
            existed=existed,
            correlation_id=correlation_id,
        ))

    async def log_card_validation_failed(
        self,
        issues: list[dict],
        correlation_id: UUID,
        card_id: Optional[str] = None,
    ) -> None:
        """Log a rejected card."""
        await self.log(AuditEventBuilder.card_validation_failed(
            issues=issues,
            correlation_id=correlation_id,
            card_id=card_id,
        ))

    async def log_wallet_exported(
        self,
        card_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log backup export."""
        await self.log(AuditEventBuilder.wallet_exported(
            card_count=card_count,
            correlation_id=correlation_id,
        ))

    async def log_wallet_imported(
        self,
        card_count: int,
        replaced_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log backup restore."""
        await self.log(AuditEventBuilder.wallet_imported(
            card_count=card_count,
            replaced_count=replaced_count,
            correlation_id=correlation_id,
        ))

    async def log_import_rejected(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a rejected backup."""
        await self.log(AuditEventBuilder.import_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_wallet_cleared(
        self,
        removed_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log clear-all."""
        await self.log(AuditEventBuilder.wallet_cleared(
            removed_count=removed_count,
            correlation_id=correlation_id,
        ))

    async def log_recommendation_requested(
        self,
        purchase: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a best-card request."""
        await self.log(AuditEventBuilder.recommendation_requested(
            purchase=purchase,
            candidate_count=candidate_count,
            correlation_id=correlation_id,
        ))

    async def log_recommendation_reconciled(
        self,
        card_id: str,
        used_fallback: bool,
        should_offer_market_search: bool,
        correlation_id: UUID,
    ) -> None:
        """Log how the AI's answer was resolved."""
        await self.log(AuditEventBuilder.recommendation_reconciled(
            card_id=card_id,
            used_fallback=used_fallback,
            should_offer_market_search=should_offer_market_search,
            correlation_id=correlation_id,
        ))

    async def log_market_search_requested(
        self,
        current_card_name: str,
        correlation_id: UUID,
    ) -> None:
        """Log a market card search."""
        await self.log(AuditEventBuilder.market_search_requested(
            current_card_name=current_card_name,
            correlation_id=correlation_id,
        ))

    async def log_statement_analysis_requested(
        self,
        analysis: str,
        statement_count: int,
        total_bytes: int,
        correlation_id: UUID,
    ) -> None:
        """Log a statement analysis. Statement content is never logged."""
        await self.log(AuditEventBuilder.statement_analysis_requested(
            analysis=analysis,
            statement_count=statement_count,
            total_bytes=total_bytes,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., asking for a card).
    Pass it through all subsequent operations.
    """
    return uuid4()
