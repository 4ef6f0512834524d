"""
Main Orchestrator for Money Pro

Ties storage, validation, queries and audit together and defines the
bookkeeping rules:
1. Recording a transaction applies its balance_delta to its account
2. Deleting a transaction reverts that delta exactly once; deleting either
   leg of a transfer removes and reverts both legs
3. A transfer moves money between two accounts in one balance write and
   records two linked transactions that are NOT re-applied to balances
4. Deleting an account leaves its transactions in place

DESIGN DECISION: Every mutation is written through immediately. When the
second write of a two-step change fails, the first write is undone before
the error propagates.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional, Union
from uuid import UUID, uuid4

import structlog

from money_pro.audit import AuditLogger, configure_logging, create_correlation_id
from money_pro.budgets import BudgetPlanner
from money_pro.config import get_settings
from money_pro.models.audit import AuditEventBuilder
from money_pro.models.ledger import (
    Balance,
    LedgerSummary,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransferRequest,
    ValidationResult,
)
from money_pro.queries import QueryExecutor
from money_pro.services.storage import (
    BalanceStorageInterface,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    KeyValueBalanceStorage,
    KeyValueStoreInterface,
    KeyValueTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from money_pro.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerValidationError(LedgerError):
    """Input was rejected by the validator."""

    def __init__(self, result: ValidationResult, message: str):
        self.result = result
        super().__init__(message)


class LedgerFlow:
    """
    Orchestrates every change to transactions and balance accounts.

    Read-only views are available through `queries`.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        balance_storage: BalanceStorageInterface,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transaction_storage
        self._balances = balance_storage
        self._validator = validator or LedgerValidator(balance_storage)
        self._audit_logger = audit_logger
        self._queries = QueryExecutor(transaction_storage, balance_storage)
        self._settings = get_settings().app

    @property
    def queries(self) -> QueryExecutor:
        return self._queries

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    # -------------------------------------------------------------------------
    # Balance accounts
    # -------------------------------------------------------------------------

    def add_balance(
        self,
        name: str,
        amount: Union[Decimal, str] = Decimal("0"),
        correlation_id: Optional[UUID] = None,
    ) -> Balance:
        """
        Create a new balance account with an opening amount.

        Raises:
            LedgerValidationError: Blank or overlong name, unreadable amount
        """
        result = self._validator.validate_balance(name, amount)
        self._raise_if_invalid(result, correlation_id)

        balance = Balance(name=name, amount=result.amount)
        self._balances.add_balance(balance)

        logger.info("balance_added", balance_id=str(balance.id))
        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.balance_added(
                balance_id=balance.id,
                name=balance.name,
                amount=balance.amount,
                correlation_id=correlation_id,
            ))
        return balance

    def delete_balance(
        self,
        balance_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a balance account.

        Transactions that reference the account are kept as they are.
        Returns False if the account did not exist.
        """
        balance = self._balances.get_balance(balance_id)
        if balance is None:
            return False

        self._balances.delete_balance(balance_id)
        orphaned = len(self._queries.transactions_for_balance(balance_id))

        logger.info("balance_deleted", balance_id=str(balance_id), orphaned_transactions=orphaned)
        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.balance_deleted(
                balance_id=balance_id,
                name=balance.name,
                orphaned_transactions=orphaned,
                correlation_id=correlation_id,
            ))
        return True

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def record_transaction(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate a draft, store it and apply it to its balance account.

        Raises:
            LedgerValidationError: If the draft has errors
            StorageError: If a write fails (the ledger is left unchanged)
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_transaction(draft)
        self._raise_if_invalid(result, correlation_id)

        fields = {
            "title": draft.title,
            "amount": result.amount,
            "type": draft.type,
            "balance_account_id": draft.balance_account_id,
        }
        if draft.date is not None:
            fields["date"] = draft.date
        transaction = Transaction(**fields)

        self._transactions.add_transaction(transaction)
        try:
            changes = self._adjust_balances(
                {transaction.balance_account_id: transaction.balance_delta}
            )
        except StorageError as e:
            self._transactions.delete_transaction(transaction.id)
            self._log_save_failed(self._balance_key(), e, correlation_id)
            raise

        self._log_adjustments(changes, "transaction_recorded", correlation_id)

        logger.info(
            "transaction_recorded",
            transaction_id=str(transaction.id),
            type=transaction.type.value,
            warnings=len(result.warnings),
        )
        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.transaction_recorded(
                transaction_id=transaction.id,
                title=transaction.title,
                amount=transaction.amount,
                transaction_type=transaction.type.value,
                balance_id=transaction.balance_account_id,
                correlation_id=correlation_id,
            ))
        return transaction

    def delete_transaction(
        self,
        transaction_id: UUID,
        revert_balance: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Delete a transaction, optionally reverting its effect on its account.

        Deleting either leg of a transfer removes both legs, and the revert
        puts the money back on both accounts in one balance write. The revert
        skips accounts that no longer exist. Once removed, a transaction can't
        be deleted (or reverted) a second time.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If a write fails (the ledger is left unchanged)
        """
        correlation_id = correlation_id or create_correlation_id()

        transaction = self._transactions.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        previous = self._transactions.list_transactions()
        if transaction.is_transfer:
            removed = [tx for tx in previous if tx.transfer_id == transaction.transfer_id]
        else:
            removed = [transaction]
        removed_ids = {tx.id for tx in removed}

        self._transactions.replace_all([tx for tx in previous if tx.id not in removed_ids])

        reverted = False
        if revert_balance:
            deltas: dict[UUID, Decimal] = {}
            for tx in removed:
                deltas[tx.balance_account_id] = (
                    deltas.get(tx.balance_account_id, Decimal("0")) - tx.balance_delta
                )
            try:
                changes = self._adjust_balances(deltas)
            except StorageError as e:
                self._transactions.replace_all(previous)
                self._log_save_failed(self._balance_key(), e, correlation_id)
                raise
            reverted = bool(changes)
            self._log_adjustments(changes, "transaction_deleted", correlation_id)

        logger.info(
            "transaction_deleted",
            transaction_id=str(transaction_id),
            legs_removed=len(removed),
            balance_reverted=reverted,
        )
        if self._audit_logger is not None:
            for tx in removed:
                self._audit_logger.log(AuditEventBuilder.transaction_deleted(
                    transaction_id=tx.id,
                    title=tx.title,
                    balance_reverted=reverted,
                    correlation_id=correlation_id,
                ))
        return transaction

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    def transfer(
        self,
        source_id: UUID,
        destination_id: UUID,
        amount: Union[Decimal, str],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, Transaction]:
        """
        Move an amount from one account to another.

        Returns:
            (outgoing_leg, incoming_leg)

        Raises:
            LedgerValidationError: Non-positive amount, same account, unknown account
        """
        correlation_id = correlation_id or create_correlation_id()

        if isinstance(amount, Decimal) and amount.is_finite():
            parsed = amount
        else:
            parsed = self._validator.parse_amount(str(amount))
        if parsed is None:
            self._raise_if_invalid(
                self._validator.unparseable_amount("transfer", str(amount)),
                correlation_id,
            )

        request = TransferRequest(
            source_id=source_id,
            destination_id=destination_id,
            amount=parsed,
        )
        result = self._validator.validate_transfer(request)
        self._raise_if_invalid(result, correlation_id)

        source = self._balances.get_balance(source_id)
        destination = self._balances.get_balance(destination_id)
        if source is None or destination is None:
            raise NotFoundError("Transfer account disappeared during validation")

        moved = request.amount
        changes = self._adjust_balances({source.id: -moved, destination.id: moved})

        transfer_id = uuid4()
        keyword = self._settings.transfer_keyword
        outgoing = Transaction(
            title=f"{keyword} to {destination.name}",
            amount=-moved,
            type=TransactionType.EXPENSE,
            balance_account_id=source.id,
            transfer_id=transfer_id,
        )
        incoming = Transaction(
            title=f"{keyword} from {source.name}",
            amount=moved,
            date=outgoing.date,
            type=TransactionType.INCOME,
            balance_account_id=destination.id,
            transfer_id=transfer_id,
        )

        try:
            self._transactions.add_transactions([outgoing, incoming])
        except StorageError as e:
            self._balances.update_balances([source, destination])
            self._log_save_failed(self._transaction_key(), e, correlation_id)
            raise

        self._log_adjustments(changes, "transfer", correlation_id)

        logger.info(
            "transfer_completed",
            transfer_id=str(transfer_id),
            amount=str(moved),
            warnings=len(result.warnings),
        )
        if self._audit_logger is not None:
            self._audit_logger.log(AuditEventBuilder.transfer_completed(
                transfer_id=transfer_id,
                source_id=source.id,
                destination_id=destination.id,
                amount=moved,
                correlation_id=correlation_id,
            ))
        return outgoing, incoming

    # -------------------------------------------------------------------------
    # Read-side shortcuts
    # -------------------------------------------------------------------------

    def summary(self, include_transfers: bool = False) -> LedgerSummary:
        return self._queries.summarize(include_transfers=include_transfers)

    def recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        return self._queries.recent_transactions(limit)

    def list_balances(self) -> list[Balance]:
        return self._balances.list_balances()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _adjust_balances(self, deltas: dict[UUID, Decimal]) -> list[tuple[Balance, Balance]]:
        """
        Add each delta to its account in one balance write.

        Accounts that no longer exist are skipped. Returns (before, after)
        pairs for the accounts that changed.
        """
        changes = []
        for balance_id, delta in deltas.items():
            balance = self._balances.get_balance(balance_id)
            if balance is None:
                logger.warning("balance_missing_for_delta", balance_id=str(balance_id))
                continue
            changes.append((balance, balance.with_amount(balance.amount + delta)))

        if changes:
            self._balances.update_balances([after for _, after in changes])
        return changes

    def _log_adjustments(
        self,
        changes: list[tuple[Balance, Balance]],
        reason: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger is None:
            return
        for before, after in changes:
            self._audit_logger.log(AuditEventBuilder.balance_adjusted(
                balance_id=after.id,
                previous_amount=before.amount,
                new_amount=after.amount,
                reason=reason,
                correlation_id=correlation_id,
            ))

    def _raise_if_invalid(self, result: ValidationResult, correlation_id: UUID) -> None:
        if result.is_valid:
            return

        if self._audit_logger is not None:
            self._audit_logger.log_validation_failed(
                subject=result.subject,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                    if i.severity == "error"
                ],
                correlation_id=correlation_id,
            )
        raise LedgerValidationError(
            result, self._validator.get_user_friendly_summary(result)
        )

    def _log_save_failed(self, key: str, error: Exception, correlation_id: Optional[UUID]) -> None:
        if self._audit_logger is not None:
            self._audit_logger.log_save_failed(key, str(error), correlation_id)

    def _balance_key(self) -> str:
        return getattr(self._balances, "key", "balances")

    def _transaction_key(self) -> str:
        return getattr(self._transactions, "key", "transactions")


def create_app_components(
    use_file_storage: bool = True,
    data_dir: Optional[Union[str, Path]] = None,
) -> tuple[LedgerFlow, BudgetPlanner, KeyValueStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        use_file_storage: Persist to the data directory. Set to False for an
                          in-memory session.
        data_dir: Overrides the configured data directory.

    Returns:
        (ledger_flow, budget_planner, key_value_store)
    """
    settings = get_settings()
    storage_settings = settings.storage
    configure_logging(settings.app.log_level)

    store: KeyValueStoreInterface
    if use_file_storage:
        try:
            store = FileKeyValueStore(
                Path(data_dir) if data_dir else storage_settings.data_dir,
                write_attempts=storage_settings.write_attempts,
            )
        except StorageError as e:
            logger.warning("file_storage_unavailable", error=str(e))
            store = InMemoryKeyValueStore()
    else:
        store = InMemoryKeyValueStore()

    audit_storage = KeyValueAuditStorage(
        store,
        key=storage_settings.audit_key,
        max_events=storage_settings.audit_log_limit,
    )
    audit_logger = AuditLogger(audit_storage)

    transaction_storage = KeyValueTransactionStorage(store, key=storage_settings.transactions_key)
    balance_storage = KeyValueBalanceStorage(store, key=storage_settings.balances_key)

    for collection in (audit_storage, transaction_storage, balance_storage):
        if collection.load_error:
            audit_logger.log_collection_decode_failed(collection.key, collection.load_error)

    ledger_flow = LedgerFlow(
        transaction_storage=transaction_storage,
        balance_storage=balance_storage,
        validator=LedgerValidator(balance_storage),
        audit_logger=audit_logger,
    )
    budget_planner = BudgetPlanner(audit_logger=audit_logger)

    return ledger_flow, budget_planner, store
