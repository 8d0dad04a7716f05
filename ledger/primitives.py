"""
Ledger primitives.

Every balance change goes through ``credit`` or ``debit`` which append the
matching Transaction to the same user in the same session. The only balance
change that does not append a new row is ``resolve_pending`` which flips the
status of an existing pending row.
"""
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import Transaction, TransactionStatus, TransactionType, utcnow
from ledger.errors import LedgerError, InsufficientBalance, NotPending, ServiceUnavailable, ValidationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# money columns are Numeric(18,2); 15 significant digits stay exact on SQLite
MAX_AMOUNT = Decimal("9999999999999.99")


def quantize(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_amount(value, field="amount", allow_zero=False) -> Decimal:
    """Parse user input into a positive two-decimal amount."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        raw = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field} format")
    if not raw.is_finite():
        raise ValidationError(f"Invalid {field} format")
    if raw > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    try:
        amount = raw.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Invalid {field} format")
    if amount < ZERO or (amount == ZERO and not allow_zero):
        raise ValidationError(f"{field} must be positive")
    return amount


def percent_of(amount, percentage) -> Decimal:
    return quantize(Decimal(str(amount)) * Decimal(str(percentage)) / Decimal("100"))


def current_balance(user) -> Decimal:
    return Decimal(str(user.balance if user.balance is not None else "0"))


def _append(user, tx_type, amount, status, **fields):
    created_at = fields.pop("created_at", None) or utcnow()
    tx = Transaction(
        type=tx_type.value,
        amount=amount,
        status=status.value,
        created_at=created_at,
        **fields
    )
    user.transactions.append(tx)
    return tx


def record(user, tx_type: TransactionType, amount: Decimal,
           status: TransactionStatus = TransactionStatus.PENDING, **fields):
    """Append a transaction without touching the balance (pending requests)."""
    tx = _append(user, tx_type, amount, status, **fields)
    logger.info(f"[LEDGER] user={user.id} {tx_type.value} {amount} recorded as {status.value}")
    return tx


def credit(user, tx_type: TransactionType, amount: Decimal,
           status: TransactionStatus = TransactionStatus.SUCCESS, **fields):
    amount = quantize(amount)
    user.balance = current_balance(user) + amount
    tx = _append(user, tx_type, amount, status, **fields)
    logger.info(f"[LEDGER] user={user.id} +{amount} ({tx_type.value}) balance={user.balance}")
    return tx


def debit(user, tx_type: TransactionType, amount: Decimal,
          status: TransactionStatus = TransactionStatus.SUCCESS, **fields):
    amount = quantize(amount)
    balance = current_balance(user)
    if amount > balance:
        raise InsufficientBalance(f"Insufficient balance. Required: {amount}, Available: {balance}")
    user.balance = balance - amount
    tx = _append(user, tx_type, amount, status, **fields)
    logger.info(f"[LEDGER] user={user.id} -{amount} ({tx_type.value}) balance={user.balance}")
    return tx


# approve/reject effects on balance for pending rows
_RESOLUTION_EFFECTS = {
    (TransactionType.RECHARGE.value, True): Decimal("1"),
    (TransactionType.RECHARGE.value, False): ZERO,
    (TransactionType.WITHDRAWAL.value, True): ZERO,
    (TransactionType.WITHDRAWAL.value, False): Decimal("1"),
}


def resolve_pending(user, tx, approve: bool, now=None):
    """pending -> success|rejected, applying the balance effect for the type."""
    if not tx.is_pending:
        raise NotPending(f"Transaction {tx.id} is already {tx.status}")

    factor = _RESOLUTION_EFFECTS.get((tx.type, approve), ZERO)
    if factor:
        user.balance = current_balance(user) + quantize(tx.amount) * factor

    tx.status = TransactionStatus.SUCCESS.value if approve else TransactionStatus.REJECTED.value
    tx.resolved_at = now or utcnow()
    logger.info(
        f"[LEDGER] user={user.id} tx={tx.id} {tx.type} {tx.amount} -> {tx.status} balance={user.balance}"
    )
    return tx


@contextmanager
def unit_of_work():
    """Commit on success, roll back on any failure. No partial writes survive."""
    try:
        yield db.session
        db.session.commit()
    except (LedgerError, IntegrityError):
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Storage failure, rolled back: {e}", exc_info=True)
        raise ServiceUnavailable()
    except Exception:
        db.session.rollback()
        raise
