# models.py - Flask-SQLAlchemy models for the Royal Hub ledger
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from flask_login import UserMixin
from sqlalchemy import Index, event, text
from extensions import db
from werkzeug.security import check_password_hash, generate_password_hash

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class UserRole(Enum):
    USER = "user"
    ADMIN = "admin"


class TransactionType(Enum):
    RECHARGE = "recharge"
    WITHDRAWAL = "withdrawal"
    INCOME = "income"
    INVESTMENT = "investment"
    REFERRAL = "referral"


class TransactionStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    REJECTED = "rejected"
    FAILED = "failed"


class WithdrawalMethod(Enum):
    UPI = "upi"
    BANK = "bank"


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value):
    value = as_utc(value)
    return value.isoformat() if value else None


def money(value):
    return float(value) if value is not None else 0.0

# ===========================================================
# USER
# ===========================================================

class User(UserMixin, db.Model):
    """Account holder. Owns its investments and transactions outright."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=UserRole.USER.value, index=True)
    balance = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"),
                        server_default=text("0.00"))

    referral_code = db.Column(db.String(20), unique=True, nullable=False)
    referred_by = db.Column(db.String(20), nullable=True, index=True)  # referrer's referral_code

    registered_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    investments = db.relationship('Investment', back_populates='user', order_by='Investment.id',
                                  cascade="all,delete-orphan")
    transactions = db.relationship('Transaction', back_populates='user', order_by='Transaction.id',
                                   cascade="all,delete-orphan")

    __table_args__ = (
        Index('idx_user_referral_code', 'referral_code'),
    )

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    def to_dict(self):
        """Public fields only; the password hash never leaves the model."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "balance": money(self.balance),
            "referralCode": self.referral_code,
            "referredBy": self.referred_by,
            "registeredAt": isoformat(self.registered_at),
        }

    def __repr__(self):
        return f'<User {self.id} {self.email}>'

# ===========================================================
# PRODUCT CATALOG
# ===========================================================

class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(18, 2), nullable=False)
    daily_income = db.Column(db.Numeric(18, 2), nullable=False)
    days = db.Column(db.Integer, nullable=False)
    total_revenue = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    image = db.Column(db.String(500))
    purchase_limit = db.Column(db.Integer, nullable=False, default=2)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def compute_total_revenue(self):
        self.total_revenue = Decimal(str(self.daily_income)) * int(self.days)
        return self.total_revenue

    def snapshot_terms(self):
        """Commercial terms frozen into an investment at purchase time."""
        return {
            "name": self.name,
            "price": str(self.price),
            "dailyIncome": str(self.daily_income),
            "image": self.image,
            "days": int(self.days),
        }

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money(self.price),
            "dailyIncome": money(self.daily_income),
            "days": self.days,
            "totalRevenue": money(self.total_revenue),
            "image": self.image,
            "purchaseLimit": self.purchase_limit,
            "createdAt": isoformat(self.created_at),
        }


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _product_total_revenue(mapper, connection, product):
    # totalRevenue is derived, never set independently
    product.compute_total_revenue()

# ===========================================================
# INVESTMENTS
# ===========================================================

class Investment(db.Model):
    __tablename__ = 'investments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    # plain reference: deleting a product must not touch the investment
    product_id = db.Column(db.Integer, nullable=True, index=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_claim_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    claimed_amount = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    product_snapshot = db.Column(db.JSON, nullable=True)

    user = db.relationship('User', back_populates='investments')

    def __repr__(self):
        return f'<Investment {self.id} user={self.user_id} product={self.product_id}>'

# ===========================================================
# TRANSACTIONS
# ===========================================================

class Transaction(db.Model):
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # withdrawal only
    withdrawal_method = db.Column(db.String(10), nullable=True)
    withdrawal_details = db.Column(db.String(255), nullable=True)
    fee = db.Column(db.Numeric(18, 2), nullable=True)
    net_amount = db.Column(db.Numeric(18, 2), nullable=True)

    user = db.relationship('User', back_populates='transactions')

    __table_args__ = (
        Index('idx_transaction_user_created', 'user_id', 'created_at'),
    )

    @property
    def is_pending(self):
        return self.status == TransactionStatus.PENDING.value

    def to_dict(self):
        data = {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "amount": money(self.amount),
            "date": isoformat(self.created_at),
            "status": self.status,
            "resolvedAt": isoformat(self.resolved_at),
        }
        if self.withdrawal_method:
            data["withdrawalDetails"] = {
                "method": self.withdrawal_method,
                "details": self.withdrawal_details,
            }
            data["fee"] = money(self.fee)
            data["netAmount"] = money(self.net_amount)
        return data

    def __repr__(self):
        return f'<Transaction {self.id} {self.type} {self.amount} {self.status}>'

# ===========================================================
# APP SETTINGS (single row)
# ===========================================================

class AppSettings(db.Model):
    __tablename__ = 'app_settings'

    id = db.Column(db.Integer, primary_key=True)
    upi_id = db.Column(db.String(120), nullable=False, default='')
    qr_code_url = db.Column(db.String(500), nullable=False, default='')
    referral_bonus_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal("5"))
    withdrawal_fee_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal("5"))
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "upiId": self.upi_id,
            "qrCodeUrl": self.qr_code_url,
            "referralBonusPercentage": money(self.referral_bonus_percentage),
            "withdrawalFeePercentage": money(self.withdrawal_fee_percentage),
        }
