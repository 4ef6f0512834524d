"""
Core Ledger Models for Money Pro

These models define the schemas for everything the ledger stores or derives:
1. Transactions and balance accounts (persisted)
2. Transaction drafts (raw user input, not yet trusted)
3. Filter predicates and aggregate summaries
4. Validation and query results

DESIGN DECISION: Money is Decimal everywhere.
Floats never enter a balance computation.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction relative to its balance account."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A dated income or expense record tied to one balance account.

    The stored amount keeps the sign it was recorded with. Outgoing transfer
    legs are stored as negative expenses, everything else is positive.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the transaction was for"
    )
    amount: Decimal = Field(
        ...,
        description="Amount as recorded (transfer debits are negative)"
    )
    date: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the transaction happened"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    balance_account_id: UUID = Field(
        ...,
        description="Balance account this transaction belongs to"
    )
    transfer_id: Optional[UUID] = Field(
        default=None,
        description="Shared by both legs of one transfer"
    )

    @field_validator("date")
    @classmethod
    def normalise_date(cls, v: datetime) -> datetime:
        """Stored dates are naive UTC so they always sort together."""
        return to_naive_utc(v)

    @property
    def is_transfer(self) -> bool:
        return self.transfer_id is not None

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def balance_delta(self) -> Decimal:
        """
        Effect of this transaction on its balance account.

        Income adds the absolute amount, expense subtracts it. The same value
        is subtracted again when the transaction is reverted.
        """
        magnitude = abs(self.amount)
        return magnitude if self.is_income else -magnitude


class Balance(BaseModel):
    """A named account with a running monetary amount."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique balance account ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Account name (e.g. Cheque, Savings, Cash)"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Running amount; may go negative"
    )

    def with_amount(self, amount: Decimal) -> "Balance":
        """Return a copy of this account holding a new amount."""
        return self.model_copy(update={"amount": amount})


# =============================================================================
# INPUT MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as entered by the user.

    CRITICAL: This is PROPOSED data. Every field is optional and the amount is
    kept as raw text so the validator can report exactly what is wrong.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    amount: Optional[str] = Field(
        default=None,
        description="Amount as typed, parsed by the validator"
    )
    type: TransactionType = TransactionType.EXPENSE
    balance_account_id: Optional[UUID] = None
    date: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def coerce_amount(cls, data: Any) -> Any:
        """Accept numbers for the amount but keep them as text."""
        if isinstance(data, dict) and isinstance(data.get("amount"), (int, float, Decimal)):
            data = {**data, "amount": str(data["amount"])}
        return data


class TransferRequest(BaseModel):
    """Move an amount from one balance account to another."""

    source_id: UUID
    destination_id: UUID
    amount: Decimal


# =============================================================================
# FILTERS AND AGGREGATES
# =============================================================================

class TransactionFilter(BaseModel):
    """
    Predicate over transactions.

    Every criterion is optional; a filter with no criteria matches everything
    except that transfers can be excluded or selected on their own.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    balance_account_id: Optional[UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    title_contains: Optional[str] = None
    include_transfers: bool = True
    transfers_only: bool = False

    @model_validator(mode="after")
    def validate_ranges(self) -> "TransactionFilter":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        if self.transfers_only and not self.include_transfers:
            raise ValueError("transfers_only requires include_transfers")
        return self

    def matches(self, transaction: Transaction) -> bool:
        if self.type and transaction.type != self.type:
            return False
        if self.balance_account_id and transaction.balance_account_id != self.balance_account_id:
            return False
        tx_day = transaction.date.date()
        if self.date_from and tx_day < self.date_from:
            return False
        if self.date_to and tx_day > self.date_to:
            return False
        if self.title_contains and self.title_contains.lower() not in transaction.title.lower():
            return False
        if not self.include_transfers and transaction.is_transfer:
            return False
        if self.transfers_only and not transaction.is_transfer:
            return False
        return True


class LedgerSummary(BaseModel):
    """Headline figures: available balance and income/expense totals."""

    total_balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)
    include_transfers: bool = False

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expenses


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'overdraft')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (presence, parseability)
    Stage 2: Semantic validation (accounts exist, amounts sensible)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    subject: str = Field(
        ...,
        pattern="^(transaction|transfer|balance)$",
        description="What was validated"
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    # Parsed amount when stage 1 could read one
    amount: Optional[Decimal] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionQuery(BaseModel):
    """A structured query executed deterministically over stored transactions."""

    query_id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    query_type: str = Field(
        default="list",
        pattern="^(list|aggregate|exists)$",
        description="Type of query to execute"
    )
    filter: TransactionFilter = Field(default_factory=TransactionFilter)

    aggregation_type: Optional[str] = Field(
        default=None,
        pattern="^(sum|count|average|min|max)$"
    )
    group_by: Optional[str] = Field(
        default=None,
        pattern="^(type|balance|month|year)$"
    )

    limit: int = Field(default=10, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class QueryResult(BaseModel):
    """Result of executing a TransactionQuery."""

    query_id: UUID
    executed_at: datetime = Field(default_factory=datetime.utcnow)

    success: bool
    error_message: Optional[str] = None

    data_found: bool
    result_count: int = Field(ge=0)
    results: list[dict] = Field(default_factory=list)
    aggregation_result: Optional[dict] = None

    query_description: str
