"""
Two-Stage Validation Pipeline

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Amount parseability and sign

STAGE 2 - SEMANTIC VALIDATION:
- Referenced balance accounts exist
- Transfers move money between two different accounts
- Future dates, very large amounts, overdrafts (warnings only)

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes input. A negative balance is
allowed but always reported as a warning.
"""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from money_pro.config import get_settings
from money_pro.models.ledger import (
    TransactionDraft,
    TransactionType,
    TransferRequest,
    ValidationIssue,
    ValidationResult,
    to_naive_utc,
)
from money_pro.services.storage import BalanceStorageInterface


ACCOUNT_NAME_MAX_LENGTH = 100


class LedgerValidator:
    """
    Validates new accounts, transaction drafts and transfer requests.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (account checks need balance storage)
    """

    def __init__(
        self,
        balance_storage: Optional[BalanceStorageInterface] = None,
    ):
        """
        Initialize validator.

        Args:
            balance_storage: Storage used to check that accounts exist.
                            If None, account checks are skipped.
        """
        self._balances = balance_storage
        self._settings = get_settings().app

    def parse_amount(self, raw: Optional[str]) -> Optional[Decimal]:
        """
        Parse a typed amount.

        A leading currency symbol and spaces are ignored. Returns None when the
        text is not a finite number.
        """
        if raw is None:
            return None
        text = raw.strip()
        symbol = self._settings.currency_symbol
        if symbol and text.startswith(symbol):
            text = text[len(symbol):]
        text = text.replace(" ", "")
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
        if not amount.is_finite():
            return None
        return amount

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _validate_transaction_schema(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue], Optional[Decimal]]:
        issues = []
        amount = None

        if not draft.title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
                suggested_fix="Describe what the transaction was for",
            ))

        if not draft.amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        else:
            amount = self.parse_amount(draft.amount)
            if amount is None:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message=f"Amount '{draft.amount}' is not a number",
                    severity="error",
                    suggested_fix="Enter digits with an optional decimal point, e.g. 125.50",
                ))
            elif amount <= 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                    suggested_fix="Choose income or expense instead of a negative amount",
                ))

        if draft.balance_account_id is None:
            issues.append(ValidationIssue(
                field="balance_account_id",
                issue_type="missing",
                message="A balance account must be selected",
                severity="error",
                suggested_fix="Add a balance account first",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues, amount

    def _validate_transaction_semantic(
        self,
        draft: TransactionDraft,
        amount: Decimal,
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if self._balances is not None:
            balance = self._balances.get_balance(draft.balance_account_id)
            if balance is None:
                issues.append(ValidationIssue(
                    field="balance_account_id",
                    issue_type="not_found",
                    message=f"Balance account {draft.balance_account_id} does not exist",
                    severity="error",
                ))
            elif draft.type == TransactionType.EXPENSE and balance.amount - amount < 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="overdraft",
                    message=(
                        f"Expense leaves {balance.name} at "
                        f"{self._settings.format_amount(balance.amount - amount)}"
                    ),
                    severity="warning",
                ))

        if draft.date is not None:
            tx_date = to_naive_utc(draft.date)
            tolerance = timedelta(days=self._settings.future_date_tolerance_days)
            if tx_date > datetime.utcnow() + tolerance:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message=f"Transaction date ({tx_date.date()}) is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

        issues.extend(self._amount_warnings(amount))

        if draft.title and draft.title.startswith(self._settings.transfer_keyword):
            issues.append(ValidationIssue(
                field="title",
                issue_type="looks_like_transfer",
                message="Title looks like a transfer but will be recorded as a normal transaction",
                severity="info",
                suggested_fix="Use a transfer to move money between accounts",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate_transaction(self, draft: TransactionDraft) -> ValidationResult:
        """Run the two-stage pipeline over a transaction draft."""
        all_issues = []

        schema_valid, schema_issues, amount = self._validate_transaction_schema(draft)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_transaction_semantic(draft, amount)
            all_issues.extend(semantic_issues)

        return self._result("transaction", schema_valid, semantic_valid, all_issues, amount)

    # -------------------------------------------------------------------------
    # Balance accounts
    # -------------------------------------------------------------------------

    def validate_balance(
        self,
        name: Optional[str],
        amount: Union[Decimal, str, None],
    ) -> ValidationResult:
        """Check a new account's name and opening amount."""
        issues = []

        name = (name or "").strip()
        if not name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Account name is required",
                severity="error",
            ))
        elif len(name) > ACCOUNT_NAME_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="name",
                issue_type="invalid_value",
                message=f"Account name must be at most {ACCOUNT_NAME_MAX_LENGTH} characters",
                severity="error",
            ))

        if isinstance(amount, Decimal) and amount.is_finite():
            parsed = amount
        elif amount is None:
            parsed = Decimal("0")
        else:
            parsed = self.parse_amount(str(amount))
        if parsed is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount '{amount}' is not a number",
                severity="error",
                suggested_fix="Enter digits with an optional decimal point, e.g. 125.50",
            ))
        else:
            if parsed < 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="overdraft",
                    message=f"Opening amount is negative ({self._settings.format_amount(parsed)})",
                    severity="warning",
                ))
            issues.extend(self._amount_warnings(abs(parsed)))

        is_valid = not any(i.severity == "error" for i in issues)
        return self._result("balance", is_valid, is_valid, issues, parsed)

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    def validate_transfer(self, request: TransferRequest) -> ValidationResult:
        """Run the two-stage pipeline over a transfer request."""
        schema_issues = []

        if not request.amount.is_finite() or request.amount <= 0:
            schema_issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Transfer amount must be greater than zero",
                severity="error",
            ))

        if request.source_id == request.destination_id:
            schema_issues.append(ValidationIssue(
                field="destination_id",
                issue_type="same_account",
                message="Source and destination accounts must be different",
                severity="error",
                suggested_fix="Pick two different accounts",
            ))

        schema_valid = not any(i.severity == "error" for i in schema_issues)
        all_issues = list(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_issues = []
            if self._balances is not None:
                source = self._balances.get_balance(request.source_id)
                destination = self._balances.get_balance(request.destination_id)
                if source is None:
                    semantic_issues.append(ValidationIssue(
                        field="source_id",
                        issue_type="not_found",
                        message=f"Source account {request.source_id} does not exist",
                        severity="error",
                    ))
                if destination is None:
                    semantic_issues.append(ValidationIssue(
                        field="destination_id",
                        issue_type="not_found",
                        message=f"Destination account {request.destination_id} does not exist",
                        severity="error",
                    ))
                if source is not None and source.amount - request.amount < 0:
                    semantic_issues.append(ValidationIssue(
                        field="amount",
                        issue_type="overdraft",
                        message=(
                            f"Transfer leaves {source.name} at "
                            f"{self._settings.format_amount(source.amount - request.amount)}"
                        ),
                        severity="warning",
                        suggested_fix="Check the source account has enough funds",
                    ))

            semantic_issues.extend(self._amount_warnings(request.amount))
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)
            all_issues.extend(semantic_issues)

        amount = request.amount if schema_valid else None
        return self._result("transfer", schema_valid, semantic_valid, all_issues, amount)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def unparseable_amount(self, subject: str, raw: str) -> ValidationResult:
        """Result for an amount that could not be read at all."""
        issue = ValidationIssue(
            field="amount",
            issue_type="invalid_format",
            message=f"Amount '{raw}' is not a number",
            severity="error",
            suggested_fix="Enter digits with an optional decimal point, e.g. 125.50",
        )
        return self._result(subject, False, False, [issue], None)

    def _amount_warnings(self, amount: Decimal) -> list[ValidationIssue]:
        issues = []
        if amount > self._settings.large_amount_threshold:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({self._settings.format_amount(amount)}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))
        if amount.as_tuple().exponent < -2:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="precision",
                message="Amount has more than two decimal places",
                severity="warning",
            ))
        return issues

    def _result(
        self,
        subject: str,
        schema_valid: bool,
        semantic_valid: bool,
        issues: list[ValidationIssue],
        amount: Optional[Decimal],
    ) -> ValidationResult:
        warnings = [i.message for i in issues if i.severity == "warning"]
        return ValidationResult(
            subject=subject,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
            warnings=warnings,
            amount=amount,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Plain-text summary of a validation result."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append(f"The {result.subject} could not be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     Hint: {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines)
