"""
Personal Account Models

The personal account is the owner's own cash ledger. Amounts are signed:
positive means cash paid out by the owner, negative means cash received.

Status transitions are enforced in exactly one place,
``can_transition``. Everything else asks it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)

from finance_manager.errors import InconsistentState, UnknownEntity
from finance_manager.utils import Money, sum_money


logger = structlog.get_logger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """What moved money through the personal account."""
    SALARY_PAYMENT = "salary_payment"
    EXPENSE_PAYMENT = "expense_payment"
    COMPANY_REIMBURSEMENT = "company_reimbursement"
    PERSONAL_DEPOSIT = "personal_deposit"
    OTHER = "other"


class TransactionStatus(str, Enum):
    """
    Transaction lifecycle.

    Only ``pending`` can change; every other state is terminal.
    """
    PENDING = "pending"        # paid personally, not yet reimbursed
    COMPLETED = "completed"
    REIMBURSED = "reimbursed"  # reimbursed by the company
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    DIGITAL_WALLET = "digital_wallet"
    OTHER = "other"


ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.REIMBURSED,
        TransactionStatus.CANCELLED,
        TransactionStatus.FAILED,
    }),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.REIMBURSED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
    TransactionStatus.FAILED: frozenset(),
}


def can_transition(current: TransactionStatus, new: TransactionStatus) -> bool:
    """Is ``current -> new`` an allowed status change?"""
    return new in ALLOWED_TRANSITIONS[current]


def default_status_for(transaction_type: TransactionType) -> TransactionStatus:
    """Initial status when the caller does not choose one."""
    if transaction_type == TransactionType.EXPENSE_PAYMENT:
        return TransactionStatus.PENDING
    return TransactionStatus.COMPLETED


# =============================================================================
# TRANSACTION
# =============================================================================

class AccountTransaction(BaseModel):
    """
    One entry in the personal cash ledger.

    ``related_expense_id`` and ``related_employee_id`` are weak references:
    nothing checks them at write time and a missing target is an absent
    join, not an error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Random unique id (stable under merges)"
    )
    date: date
    amount: Money = Field(
        ...,
        description="Signed: positive = paid out, negative = received"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
    )
    type: TransactionType
    related_expense_id: Optional[UUID] = None
    related_employee_id: Optional[UUID] = None
    status: TransactionStatus
    reimbursement_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='before')
    @classmethod
    def apply_default_status(cls, data: Any) -> Any:
        """Fill in ``status`` from the transaction type when not given."""
        if isinstance(data, dict) and data.get("status") is None:
            tx_type = data.get("type")
            if tx_type is not None:
                try:
                    tx_type = TransactionType(tx_type)
                except ValueError:
                    # let field validation report the bad type
                    return data
                data = {**data, "status": default_status_for(tx_type)}
        return data

    @property
    def is_outflow(self) -> bool:
        return self.amount > 0

    @property
    def is_inflow(self) -> bool:
        return self.amount < 0


# =============================================================================
# ACCOUNT (aggregate root)
# =============================================================================

class PersonalAccount(BaseModel):
    """
    The owner's cash account.

    Transactions keep insertion order; chronological order is a view.
    All mutations go through ``add_transaction`` and
    ``update_transaction_status`` so ``last_updated`` stays authoritative.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_name: str = Field(default="", max_length=200)
    account_holder: str = Field(default="", max_length=200)
    bank_name: str = Field(default="", max_length=200)
    account_number: str = Field(default="", max_length=50)
    transactions: list[AccountTransaction] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def total_balance(self) -> Decimal:
        """Sum of every transaction amount."""
        return sum_money(t.amount for t in self.transactions)

    @computed_field
    @property
    def pending_amount(self) -> Decimal:
        """Expense payments still waiting for reimbursement."""
        return sum_money(
            t.amount for t in self.transactions
            if t.status == TransactionStatus.PENDING
            and t.type == TransactionType.EXPENSE_PAYMENT
        )

    @computed_field
    @property
    def reimbursed_amount(self) -> Decimal:
        """Total received back from the company."""
        return sum_money(
            abs(t.amount) for t in self.transactions
            if t.type == TransactionType.COMPANY_REIMBURSEMENT
        )

    def get_transaction(self, transaction_id: UUID) -> Optional[AccountTransaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def pending_for_expense(self, expense_id: UUID) -> list[AccountTransaction]:
        """Pending transactions linked to an expense."""
        return [
            t for t in self.transactions
            if t.related_expense_id == expense_id
            and t.status == TransactionStatus.PENDING
        ]

    def add_transaction(self, transaction: AccountTransaction) -> AccountTransaction:
        """Append a transaction and stamp ``last_updated``."""
        if self.get_transaction(transaction.id) is not None:
            raise InconsistentState(
                f"Transaction id {transaction.id} already exists",
                details={"transaction_id": str(transaction.id)},
            )
        self.transactions.append(transaction)
        self.last_updated = datetime.utcnow()
        return transaction

    def update_transaction_status(
        self,
        transaction_id: UUID,
        status: TransactionStatus,
        reimbursement_date: Optional[date] = None,
        strict: bool = False,
    ) -> bool:
        """
        Move a transaction to a new status.

        Returns True when the status changed. An unknown id is a no-op
        (False) unless ``strict`` is set, in which case UnknownEntity is
        raised. A transition not allowed by ``can_transition`` is always a
        no-op.
        """
        status = TransactionStatus(status)
        for index, transaction in enumerate(self.transactions):
            if transaction.id != transaction_id:
                continue

            if not can_transition(transaction.status, status):
                logger.warning(
                    "transaction_transition_rejected",
                    transaction_id=str(transaction_id),
                    current_status=transaction.status.value,
                    requested_status=status.value,
                )
                return False

            update: dict[str, Any] = {"status": status}
            if status == TransactionStatus.REIMBURSED:
                update["reimbursement_date"] = reimbursement_date or date.today()
            self.transactions[index] = transaction.model_copy(update=update)
            self.last_updated = datetime.utcnow()
            return True

        if strict:
            raise UnknownEntity("transaction", transaction_id)
        logger.warning(
            "transaction_not_found",
            transaction_id=str(transaction_id),
            requested_status=status.value,
        )
        return False
