"""
Main Orchestrator for AI Smart Pay

This module ties together all the components and defines the
end-to-end flows for:
1. Wallet management (add → validate → persist, edit, refresh, delete,
   backup / restore, clear-all)
2. Recommendation (purchase → AI → reconcile → offers, market search,
   product research)
3. Statement analysis (missed rewards, spend-profile card fit, bank
   statement health check)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only validated cards reach the wallet and the store
- The AI names a card; the reconciler decides what is shown
- A rejected backup leaves the wallet and the store untouched
- Every step is audited
"""

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote_plus
from uuid import UUID

import structlog

from smartpay.agents import AIClient, AIServiceError, GeminiAIClient
from smartpay.audit import AuditLogger, create_correlation_id
from smartpay.backup import BackupImportError, backup_filename, export_wallet, import_wallet
from smartpay.config import AppSettings, get_settings
from smartpay.models.analysis import (
    BankAnalysisResult,
    PortfolioAnalysisResult,
    SpendAnalysisResult,
    StatementFile,
)
from smartpay.models.card import Card, CardDocument, CardSummary, DraftCard
from smartpay.models.recommendation import (
    MarketRecommendation,
    ProductQuery,
    ProductResearchResult,
    PurchaseContext,
    RecommendationOutcome,
    ReconciledRecommendation,
)
from smartpay.recommendation import affiliate_links_for, detect_offers, reconcile
from smartpay.services.storage import (
    InMemoryWalletStore,
    JsonFileWalletStore,
    JsonLinesAuditStorage,
    StorageError,
    WalletStoreInterface,
)
from smartpay.validation import CardValidationError, CardValidator
from smartpay.wallet import CardNotFoundError, Wallet


logger = structlog.get_logger(__name__)

GENERIC_MARKET_CARD_NAME = "Generic Credit Card"
CASH_MARKET_CARD_NAME = "Paying with Cash"


def market_search_url(recommendation: MarketRecommendation) -> str:
    """Google search link for applying to a recommended market card."""
    query = recommendation.apply_search_query or (
        f"{recommendation.bank_name} {recommendation.card_name} apply"
    )
    return f"https://www.google.com/search?q={quote_plus(query)}"


class WalletFlow:
    """
    Orchestrates wallet changes.

    The in-memory Wallet is the source of truth for reads. Every change is
    applied to the wallet, then written to the store. If the store write
    fails the wallet is reloaded from the store so both stay in step.
    """

    def __init__(
        self,
        store: WalletStoreInterface,
        ai_client: Optional[AIClient] = None,
        validator: Optional[CardValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._ai_client = ai_client
        self._validator = validator or CardValidator()
        self._audit_logger = audit_logger
        self._app_settings = app_settings or AppSettings()
        self._wallet = Wallet(validator=self._validator)

    @property
    def wallet(self) -> Wallet:
        return self._wallet

    async def load(self) -> Wallet:
        """Load the wallet from the store."""
        cards = await self._store.list_cards()
        self._wallet = Wallet(cards, validator=self._validator)
        logger.info("wallet_loaded", card_count=len(self._wallet))
        return self._wallet

    async def _resync(self) -> None:
        try:
            await self.load()
        except StorageError as e:
            logger.error("wallet_resync_failed", error=str(e))

    async def _log_rejected(
        self,
        error: CardValidationError,
        correlation_id: UUID,
        card_id: Optional[str] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_card_validation_failed(
                issues=[issue.model_dump() for issue in error.issues],
                correlation_id=correlation_id,
                card_id=card_id,
            )

    async def search_cards(self, bank_name: str) -> list[str]:
        """Card products offered by a bank (AI or built-in fallback)."""
        if not self._ai_client:
            raise AIServiceError("No AI client configured")
        return await self._ai_client.search_cards_by_bank(bank_name)

    async def preview_card(self, card_name: str, bank_name: str) -> DraftCard:
        """
        Fetch details for a card product as a draft.

        The user still has to supply holder name and nickname before the
        draft can be added.
        """
        if not self._ai_client:
            raise AIServiceError("No AI client configured")
        return await self._ai_client.fetch_card_details(card_name, bank_name)

    async def add_card(
        self,
        draft: DraftCard,
        correlation_id: Optional[UUID] = None,
    ) -> Card:
        """
        Validate a draft and add it to the wallet.

        Raises:
            CardValidationError: If the draft is incomplete
            StorageError: If the card could not be persisted
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            card = self._wallet.add(draft)
        except CardValidationError as e:
            await self._log_rejected(e, correlation_id, card_id=draft.id)
            raise

        try:
            await self._store.add_card(card)
        except StorageError:
            self._wallet.remove(card.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_card_added(
                card_id=card.id,
                display_name=card.display_name,
                correlation_id=correlation_id,
            )
        return card

    async def update_card(
        self,
        card: Card,
        correlation_id: Optional[UUID] = None,
    ) -> Card:
        """
        Save an edited card. Documents attached earlier are always kept.

        Raises:
            CardNotFoundError: If the card is not in the wallet
            CardValidationError: If the edited card is invalid
            StorageError: If the change could not be persisted
        """
        correlation_id = correlation_id or create_correlation_id()

        previous = self._wallet.find_by_id(card.id)
        try:
            merged = self._wallet.update(card)
        except CardValidationError as e:
            await self._log_rejected(e, correlation_id, card_id=card.id)
            raise

        try:
            await self._store.update_card(merged)
        except StorageError:
            await self._resync()
            raise

        if self._audit_logger:
            documents_added = len(merged.documents) - (len(previous.documents) if previous else 0)
            await self._audit_logger.log_card_updated(
                card_id=merged.id,
                display_name=merged.display_name,
                documents_added=documents_added,
                correlation_id=correlation_id,
            )
        return merged

    async def attach_document(
        self,
        card_id: str,
        filename: str,
        data: bytes,
        mime_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> Card:
        """
        Attach an uploaded file to a card.

        Raises:
            CardNotFoundError: If the card is not in the wallet
            ValueError: If the file is larger than the configured limit
        """
        card = self._wallet.find_by_id(card_id)
        if card is None:
            raise CardNotFoundError(card_id)

        document = CardDocument.from_bytes(
            filename=filename,
            data=data,
            mime_type=mime_type,
            max_size_bytes=self._app_settings.max_document_size_bytes,
        )
        return await self.update_card(
            card.model_copy(update={"documents": [document]}),
            correlation_id=correlation_id,
        )

    async def refresh_card(
        self,
        card_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Card:
        """
        Re-fetch a card's rewards and benefits from the AI.

        Raises:
            CardNotFoundError: If the card is not in the wallet
            AIServiceError: If no AI client is configured
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = self._wallet.find_by_id(card_id)
        if existing is None:
            raise CardNotFoundError(card_id)
        if not self._ai_client:
            raise AIServiceError("No AI client configured")

        details = await self._ai_client.fetch_card_details(existing.card_name, existing.bank_name)
        refreshed = self._wallet.refresh(card_id, details)

        try:
            await self._store.update_card(refreshed)
        except StorageError:
            await self._resync()
            raise

        if self._audit_logger:
            await self._audit_logger.log_card_refreshed(
                card_id=refreshed.id,
                display_name=refreshed.display_name,
                correlation_id=correlation_id,
            )
        return refreshed

    async def delete_card(
        self,
        card_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Remove a card. Deleting an unknown id is a no-op."""
        correlation_id = correlation_id or create_correlation_id()

        existed = self._wallet.remove(card_id)
        if existed:
            try:
                await self._store.delete_card(card_id)
            except StorageError:
                await self._resync()
                raise

        if self._audit_logger:
            await self._audit_logger.log_card_deleted(
                card_id=card_id,
                existed=existed,
                correlation_id=correlation_id,
            )
        return existed

    async def export_backup(
        self,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, str]:
        """
        Export the wallet.

        Returns:
            (filename, backup_json)
        """
        correlation_id = correlation_id or create_correlation_id()
        now = now or datetime.now(timezone.utc)

        text = export_wallet(self._wallet, now=now)
        filename = backup_filename(self._app_settings.app_name, on=now.date())

        if self._audit_logger:
            await self._audit_logger.log_wallet_exported(
                card_count=len(self._wallet),
                correlation_id=correlation_id,
            )
        return filename, text

    async def import_backup(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> Wallet:
        """
        Restore the wallet from a backup. This REPLACES every card.

        Raises:
            BackupImportError: If the backup is malformed. Nothing is changed.
            StorageError: If the restored wallet could not be persisted
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            staged = import_wallet(text)
        except BackupImportError as e:
            if self._audit_logger:
                await self._audit_logger.log_import_rejected(
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        await self._store.replace_all(staged.cards)
        replaced_count = len(self._wallet)
        self._wallet.replace_all(staged.cards)

        if self._audit_logger:
            await self._audit_logger.log_wallet_imported(
                card_count=len(self._wallet),
                replaced_count=replaced_count,
                correlation_id=correlation_id,
            )
        return self._wallet

    async def clear_all(self, correlation_id: Optional[UUID] = None) -> int:
        """Delete every card from the wallet and the store."""
        correlation_id = correlation_id or create_correlation_id()

        await self._store.clear_all()
        removed_count = self._wallet.clear()

        if self._audit_logger:
            await self._audit_logger.log_wallet_cleared(
                removed_count=removed_count,
                correlation_id=correlation_id,
            )
        return removed_count


class RecommendationFlow:
    """
    Orchestrates the "which card should I use" flow.

    Flow:
    1. Summarize the wallet (or the Generic Card if it is empty)
    2. Ask the AI to pick a card
    3. Reconcile the answer against the wallet (deterministic)
    4. Detect stacking offers in the answer (deterministic)

    An AI failure is audited and re-raised; nothing is reconciled.
    """

    def __init__(
        self,
        ai_client: AIClient,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._ai_client = ai_client
        self._audit_logger = audit_logger
        self._app_settings = app_settings or AppSettings()

    async def _log_ai_failure(self, error: AIServiceError, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def recommend(
        self,
        context: PurchaseContext,
        wallet: Wallet,
        correlation_id: Optional[UUID] = None,
    ) -> RecommendationOutcome:
        """
        Recommend the best card for a purchase.

        Raises:
            AIServiceError: If the AI call fails
        """
        correlation_id = correlation_id or create_correlation_id()

        summary = [CardSummary.from_card(card) for card in wallet.candidates()]
        purchase_text = context.describe(self._app_settings.default_purchase_amount)

        if self._audit_logger:
            await self._audit_logger.log_recommendation_requested(
                purchase=context.short_description(),
                candidate_count=len(summary),
                correlation_id=correlation_id,
            )

        try:
            result = await self._ai_client.recommend_best_card(purchase_text, summary)
        except AIServiceError as e:
            await self._log_ai_failure(e, correlation_id)
            raise

        reconciled = reconcile(
            result,
            wallet,
            purchase_amount=context.amount,
            high_value_threshold=self._app_settings.high_value_purchase_threshold,
        )
        offers = detect_offers(result)

        if self._audit_logger:
            await self._audit_logger.log_recommendation_reconciled(
                card_id=reconciled.card.id,
                used_fallback=reconciled.used_fallback,
                should_offer_market_search=reconciled.should_offer_market_search,
                correlation_id=correlation_id,
            )

        return RecommendationOutcome(
            result=result,
            reconciled=reconciled,
            offers=offers,
            affiliate_links=affiliate_links_for(offers),
            wallet_was_empty=wallet.is_empty,
        )

    @staticmethod
    def current_card_name(reconciled: ReconciledRecommendation, wallet_was_empty: bool) -> str:
        """How the user's current best card is described to the market search."""
        if wallet_was_empty:
            return CASH_MARKET_CARD_NAME
        if reconciled.used_fallback:
            return GENERIC_MARKET_CARD_NAME
        return reconciled.card.display_name

    async def find_better_card(
        self,
        context: PurchaseContext,
        reconciled: ReconciledRecommendation,
        wallet_was_empty: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> MarketRecommendation:
        """
        Look for a card on the market that beats the recommended one.

        Raises:
            AIServiceError: If the AI call fails
        """
        correlation_id = correlation_id or create_correlation_id()
        current_name = self.current_card_name(reconciled, wallet_was_empty)
        amount = context.amount or self._app_settings.default_purchase_amount

        if self._audit_logger:
            await self._audit_logger.log_market_search_requested(
                current_card_name=current_name,
                correlation_id=correlation_id,
            )

        try:
            return await self._ai_client.find_better_market_card(
                context.short_description(),
                amount,
                current_name,
            )
        except AIServiceError as e:
            await self._log_ai_failure(e, correlation_id)
            raise

    async def research_product(
        self,
        query: ProductQuery,
        image: Optional[bytes] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ProductResearchResult:
        """
        Price-to-value research for a product.

        Raises:
            AIServiceError: If the AI call fails
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self._ai_client.research_product(query, image)
        except AIServiceError as e:
            await self._log_ai_failure(e, correlation_id)
            raise


class StatementRejectedError(ValueError):
    """An uploaded statement cannot be analyzed."""
    pass


class AnalysisFlow:
    """
    Orchestrates statement analysis.

    1. Check the uploads (at least one, within the size limit, a supported
       file type for the analysis)
    2. Send them to the AI with the wallet summary where needed
    3. Return the AI's typed answer unchanged

    Results are advisory and never stored. Statement content is never
    audited; only counts and sizes are.
    """

    SPEND_TYPES = ("pdf", "text")
    PORTFOLIO_TYPES = ("pdf", "image", "text")
    BANK_TYPES = ("pdf", "text")

    def __init__(
        self,
        ai_client: AIClient,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._ai_client = ai_client
        self._audit_logger = audit_logger
        self._app_settings = app_settings or AppSettings()

    @staticmethod
    def _kind(statement: StatementFile) -> str:
        if statement.is_pdf:
            return "pdf"
        if statement.is_text:
            return "text"
        if statement.mime_type.startswith("image/"):
            return "image"
        return statement.mime_type

    def _check(self, statements: list[StatementFile], allowed: tuple[str, ...]) -> None:
        if not statements:
            raise StatementRejectedError("Upload at least one statement")
        limit = self._app_settings.max_document_size_bytes
        for statement in statements:
            if statement.size_bytes > limit:
                raise StatementRejectedError(
                    f"{statement.filename} is larger than "
                    f"{self._app_settings.max_document_size_mb} MB"
                )
            if self._kind(statement) not in allowed:
                raise StatementRejectedError(
                    f"{statement.filename}: {statement.mime_type} statements are not supported"
                )

    async def _start(
        self,
        analysis: str,
        statements: list[StatementFile],
        allowed: tuple[str, ...],
        correlation_id: UUID,
    ) -> None:
        self._check(statements, allowed)
        if self._audit_logger:
            await self._audit_logger.log_statement_analysis_requested(
                analysis=analysis,
                statement_count=len(statements),
                total_bytes=sum(s.size_bytes for s in statements),
                correlation_id=correlation_id,
            )

    async def _log_ai_failure(self, error: AIServiceError, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def analyze_spend(
        self,
        statements: list[StatementFile],
        wallet: Wallet,
        correlation_id: Optional[UUID] = None,
    ) -> SpendAnalysisResult:
        """
        How much reward value a card's statements missed versus the best
        card in the wallet. An empty wallet is compared with the Generic Card.

        Raises:
            StatementRejectedError: If the uploads cannot be analyzed
            AIServiceError: If the AI call fails
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._start("spend", statements, self.SPEND_TYPES, correlation_id)

        summary = [CardSummary.from_card(card) for card in wallet.candidates()]
        try:
            return await self._ai_client.analyze_spend_statements(statements, summary)
        except AIServiceError as e:
            await self._log_ai_failure(e, correlation_id)
            raise

    async def recommend_for_spend(
        self,
        statements: list[StatementFile],
        correlation_id: Optional[UUID] = None,
    ) -> PortfolioAnalysisResult:
        """
        Spend profile across statements and the market card that fits it.

        Raises:
            StatementRejectedError: If the uploads cannot be analyzed
            AIServiceError: If the AI call fails
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._start("portfolio", statements, self.PORTFOLIO_TYPES, correlation_id)

        try:
            return await self._ai_client.analyze_spend_portfolio(statements)
        except AIServiceError as e:
            await self._log_ai_failure(e, correlation_id)
            raise

    async def analyze_bank(
        self,
        statements: list[StatementFile],
        correlation_id: Optional[UUID] = None,
    ) -> BankAnalysisResult:
        """
        Cash flow, subscriptions and savings opportunities.

        Raises:
            StatementRejectedError: If the uploads cannot be analyzed
            AIServiceError: If the AI call fails
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._start("bank", statements, self.BANK_TYPES, correlation_id)

        try:
            return await self._ai_client.analyze_bank_statements(statements)
        except AIServiceError as e:
            await self._log_ai_failure(e, correlation_id)
            raise


def create_app_components(
    use_storage: bool = True,
    ai_client: Optional[AIClient] = None,
) -> tuple[WalletFlow, RecommendationFlow, AnalysisFlow]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist to the local data directory.
                    Set to False for testing without storage.
        ai_client: AI client to use. Defaults to Gemini, configured
                   from GEMINI_* settings.

    Returns:
        (wallet_flow, recommendation_flow, analysis_flow)

    Call WalletFlow.load() before use.
    """
    settings = get_settings()
    app_settings = settings.app

    store: WalletStoreInterface
    if use_storage:
        try:
            storage_settings = settings.storage
            store = JsonFileWalletStore(storage_settings.wallet_path)
            audit_logger = AuditLogger(JsonLinesAuditStorage(storage_settings.audit_path))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            store = InMemoryWalletStore()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        store = InMemoryWalletStore()
        audit_logger = AuditLogger()  # Local-only logging

    ai_client = ai_client or GeminiAIClient(settings.gemini)

    wallet_flow = WalletFlow(
        store=store,
        ai_client=ai_client,
        audit_logger=audit_logger,
        app_settings=app_settings,
    )

    recommendation_flow = RecommendationFlow(
        ai_client=ai_client,
        audit_logger=audit_logger,
        app_settings=app_settings,
    )

    analysis_flow = AnalysisFlow(
        ai_client=ai_client,
        audit_logger=audit_logger,
        app_settings=app_settings,
    )

    return wallet_flow, recommendation_flow, analysis_flow
