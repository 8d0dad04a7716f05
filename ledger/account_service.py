"""
Account service.

The single authoritative place where ledger state changes. Each public method
takes the user's write lock, loads fresh rows, validates, mutates through the
engines and commits as one unit of work.
"""
from contextlib import ExitStack
from datetime import timedelta
import logging
import re
import secrets
import string

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import (Product, Transaction, TransactionStatus, TransactionType, User,
                    UserRole, WithdrawalMethod)
from ledger.catalog import ProductCatalog
from ledger.errors import (BelowMinimum, DuplicateEmail, InsufficientBalance, InvalidReferralCode,
                           NotFound, ServiceUnavailable, ValidationError, WrongCredentials)
from ledger.investment import InvestmentEngine, serialize_investment
from ledger.locks import UserLockManager
from ledger.primitives import (current_balance, debit, record, resolve_pending, to_amount,
                               unit_of_work)
from ledger.referral import ReferralEngine
from ledger.settings_provider import SettingsProvider

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 6
REQUEST_TYPES = (TransactionType.RECHARGE.value, TransactionType.WITHDRAWAL.value)


def _claim_rules():
    config = current_app.config
    return {
        "interval": timedelta(hours=config.get("CLAIM_INTERVAL_HOURS", 24)),
        "enforce_lease_expiry": config.get("ENFORCE_LEASE_EXPIRY", False),
    }


def generate_referral_code(username, L=8):
    """First four letters of the name plus a number, e.g. ABCD512. Retries on collision."""
    prefix = re.sub(r'[^A-Za-z0-9]', '', username or '')[:4].upper() or 'USER'
    for _ in range(10):
        code = f"{prefix}{secrets.randbelow(1000)}"
        if not User.query.filter_by(referral_code=code).first():
            return code
    # fallback
    chars = string.ascii_uppercase + string.digits
    while True:
        code = ''.join(secrets.choice(chars) for _ in range(L))
        if not User.query.filter_by(referral_code=code).first():
            return code


def _user_key(user_id):
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise NotFound("User not found")


def _load_user(user_id, for_update=False):
    user_id = _user_key(user_id)
    if for_update:
        user = db.session.get(User, user_id, with_for_update=True, populate_existing=True)
    else:
        user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _withdrawal_destination(details):
    if not isinstance(details, dict):
        raise ValidationError("Withdrawal details are required")
    method = str(details.get("method") or "").strip().lower()
    if method not in (m.value for m in WithdrawalMethod):
        raise ValidationError("Withdrawal method must be 'upi' or 'bank'")
    # older clients sent the destination under 'info'
    destination = str(details.get("details") or details.get("info") or "").strip()
    if not destination:
        raise ValidationError("Withdrawal destination is required")
    if len(destination) > 255:
        raise ValidationError("Withdrawal destination is too long")
    return method, destination


class AccountService:

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------
    @staticmethod
    def bootstrap_system(create_tables=True):
        """Guarantee one settings row and one seeded admin before anything else runs."""
        if create_tables:
            db.create_all()

        config = current_app.config
        admin_email = config["ADMIN_EMAIL"].strip().lower()

        with unit_of_work():
            settings = SettingsProvider.ensure_settings()

            admin = User.query.filter_by(email=admin_email).first()
            if admin:
                if admin.role != UserRole.ADMIN.value:
                    logger.warning(f"Seeded admin {admin_email} had role {admin.role}, restoring admin")
                    admin.role = UserRole.ADMIN.value
            else:
                code = config.get("ADMIN_REFERRAL_CODE", "ADMIN")
                if User.query.filter_by(referral_code=code).first():
                    code = generate_referral_code(config.get("ADMIN_USERNAME", "Admin"))
                admin = User(
                    username=config.get("ADMIN_USERNAME", "Admin"),
                    email=admin_email,
                    role=UserRole.ADMIN.value,
                    referral_code=code,
                    balance=0,
                )
                admin.set_password(config["ADMIN_PASSWORD"])
                db.session.add(admin)
                logger.info(f"Default admin account seeded ({admin_email})")

        return admin, settings

    # ------------------------------------------------------------------
    # Registration & credentials
    # ------------------------------------------------------------------
    @staticmethod
    def register(username, email, password, referral_code=None):
        username = (username or "").strip()
        email = (email or "").strip().lower()
        password = password or ""
        referral_code = (referral_code or "").strip().upper()

        if not username or not email or not password:
            raise ValidationError("Username, email and password are required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if User.query.filter_by(email=email).first():
            raise DuplicateEmail("Email already registered")

        referred_by = None
        if referral_code:
            referrer = User.query.filter_by(referral_code=referral_code).first()
            if not referrer:
                raise InvalidReferralCode("Invalid Referral Code")
            referred_by = referrer.referral_code

        try:
            with unit_of_work():
                user = User(
                    username=username,
                    email=email,
                    role=UserRole.USER.value,
                    balance=0,
                    referral_code=generate_referral_code(username),
                    referred_by=referred_by,
                )
                user.set_password(password)
                db.session.add(user)
                db.session.flush()
        except IntegrityError:
            if User.query.filter_by(email=email).first():
                raise DuplicateEmail("Email already registered")
            raise ServiceUnavailable()

        logger.info(f"User {user.id} registered ({email}), referred_by={referred_by}")
        return user

    @staticmethod
    def login(email, password):
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = User.query.filter_by(email=email).first()
        if not user:
            raise NotFound("User not found")
        if not user.check_password(password):
            logger.info(f"Failed login for user {user.id}")
            raise WrongCredentials("Wrong credentials")
        return user

    @staticmethod
    def get_user(user_id):
        return _load_user(user_id)

    # ------------------------------------------------------------------
    # Investing & income
    # ------------------------------------------------------------------
    @staticmethod
    def invest(user_id, product_id, now=None):
        with UserLockManager.hold(_user_key(user_id)):
            user = _load_user(user_id, for_update=True)
            product = ProductCatalog.get_product(product_id)

            referrer = ReferralEngine.find_referrer(user) if not user.investments else None

            with ExitStack() as stack:
                if referrer is not None:
                    # referrer ids are always lower: see UserLockManager.hold
                    stack.enter_context(UserLockManager.hold(referrer.id))
                    db.session.refresh(referrer, with_for_update=True)

                with unit_of_work():
                    settings = SettingsProvider.get_settings()
                    investment, referral_tx = InvestmentEngine.invest(
                        user, product, settings, referrer=referrer, now=now)

        return investment, referral_tx

    @staticmethod
    def claim(user_id, now=None):
        with UserLockManager.hold(_user_key(user_id)):
            user = _load_user(user_id, for_update=True)
            with unit_of_work():
                total, tx = InvestmentEngine.claim(user, now=now, **_claim_rules())
        return total, tx

    @staticmethod
    def claim_status(user_id, now=None):
        user = _load_user(user_id)
        return InvestmentEngine.claim_status(user, now=now, **_claim_rules())

    # ------------------------------------------------------------------
    # Recharge & withdrawal requests
    # ------------------------------------------------------------------
    @staticmethod
    def create_transaction(user_id, tx_type, amount, details=None):
        if tx_type == TransactionType.RECHARGE.value:
            return AccountService.recharge(user_id, amount)
        if tx_type == TransactionType.WITHDRAWAL.value:
            return AccountService.withdraw(user_id, amount, details)
        raise ValidationError(f"Transaction type must be one of: {', '.join(REQUEST_TYPES)}")

    @staticmethod
    def recharge(user_id, amount):
        """Pending until an admin confirms the money arrived. Balance untouched."""
        amount = to_amount(amount)
        with UserLockManager.hold(_user_key(user_id)):
            user = _load_user(user_id, for_update=True)
            with unit_of_work():
                tx = record(user, TransactionType.RECHARGE, amount, TransactionStatus.PENDING)
        return tx

    @staticmethod
    def withdraw(user_id, amount, details):
        """Debits immediately; the funds stay locked until an admin resolves the request."""
        amount = to_amount(amount)
        minimum = current_app.config.get("MIN_WITHDRAWAL")
        if amount < minimum:
            raise BelowMinimum(f"Minimum withdrawal amount is {minimum}")
        method, destination = _withdrawal_destination(details)

        with UserLockManager.hold(_user_key(user_id)):
            user = _load_user(user_id, for_update=True)
            if amount > current_balance(user):
                raise InsufficientBalance("Insufficient balance")

            with unit_of_work():
                quote = SettingsProvider.quote_withdrawal(amount)
                tx = debit(
                    user, TransactionType.WITHDRAWAL, amount, TransactionStatus.PENDING,
                    withdrawal_method=method,
                    withdrawal_details=destination,
                    fee=quote["fee"],
                    net_amount=quote["netAmount"],
                )
        return tx

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------
    @staticmethod
    def resolve_transaction(user_id, tx_id, action, now=None):
        if action not in ("approve", "reject"):
            raise ValidationError("Action must be 'approve' or 'reject'")

        with UserLockManager.hold(_user_key(user_id)):
            user = _load_user(user_id, for_update=True)
            tx = Transaction.query.filter_by(id=tx_id, user_id=user.id).first()
            if tx is None:
                raise NotFound("Transaction not found")

            with unit_of_work():
                resolve_pending(user, tx, approve=(action == "approve"), now=now)
        return tx

    @staticmethod
    def update_user(user_id, data):
        """Direct admin override. Balance corrections append no transaction."""
        if not isinstance(data, dict):
            raise ValidationError("Update payload must be an object")

        balance = None
        if data.get("balance") is not None:
            balance = to_amount(data["balance"], field="balance", allow_zero=True)
        password = data.get("password")
        if password is not None and len(str(password)) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        with UserLockManager.hold(_user_key(user_id)):
            user = _load_user(user_id, for_update=True)
            with unit_of_work():
                if balance is not None:
                    logger.warning(
                        f"Admin balance override on user {user.id}: {user.balance} -> {balance}"
                    )
                    user.balance = balance
                if password is not None:
                    user.set_password(str(password))
                    logger.info(f"Admin reset password for user {user.id}")
        return user

    @staticmethod
    def list_users():
        return User.query.order_by(User.registered_at.desc(), User.id.desc()).all()

    @staticmethod
    def list_pending_transactions():
        return (Transaction.query
                .filter(Transaction.status == TransactionStatus.PENDING.value)
                .order_by(Transaction.created_at.asc(), Transaction.id.asc())
                .all())

    @staticmethod
    def reset_system():
        """Wipe every non-admin user and the catalogue; zero the admins' own ledgers."""
        with unit_of_work():
            removed = 0
            for user in User.query.filter(User.role != UserRole.ADMIN.value).all():
                db.session.delete(user)
                removed += 1

            products = Product.query.delete()

            for admin in User.query.filter(User.role == UserRole.ADMIN.value).all():
                admin.balance = 0
                admin.investments.clear()
                admin.transactions.clear()

        logger.warning(f"System reset: removed {removed} users and {products} products")
        return {"usersRemoved": removed, "productsRemoved": products}


def serialize_user(user, now=None, include_ledger=True):
    data = user.to_dict()
    if include_ledger:
        data["investments"] = [serialize_investment(inv, now=now) for inv in user.investments]
        data["transactions"] = [tx.to_dict() for tx in user.transactions]
    return data
