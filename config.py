# ==========================================================================================================
# -------------- Configuration file for the Royal Hub ledger application ------------------------------------
# ==========================================================================================================
import os
from decimal import Decimal
from dotenv import load_dotenv


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default="False"):
    return os.getenv(name, default).lower() in ("true", "1", "t")


def normalize_database_url(url):
    """Point bare postgres:// URLs at the pg8000 driver."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+pg8000://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+pg8000://", 1)
    return url


class Config:

    SECRET_KEY = os.getenv("SECRET_KEY")
    FLASK_ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = _env_bool("DEBUG")
    TESTING = False

    _database_url = os.getenv("DATABASE_URL")
    if not _database_url:
        _database_url = f"sqlite:///{os.path.join(basedir, 'instance', 'royalhub.db')}"

    SQLALCHEMY_DATABASE_URI = normalize_database_url(_database_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Ledger rules
    MIN_WITHDRAWAL = Decimal(os.getenv("MIN_WITHDRAWAL", "200"))
    CLAIM_INTERVAL_HOURS = int(os.getenv("CLAIM_INTERVAL_HOURS", "24"))
    ENFORCE_LEASE_EXPIRY = _env_bool("ENFORCE_LEASE_EXPIRY")

    # Bootstrap
    AUTO_BOOTSTRAP = _env_bool("AUTO_BOOTSTRAP", "True")
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "Admin")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@royalhub.local")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
    ADMIN_REFERRAL_CODE = os.getenv("ADMIN_REFERRAL_CODE", "ADMIN")

    # First-run values for the settings row
    DEFAULT_UPI_ID = os.getenv("DEFAULT_UPI_ID", "")
    DEFAULT_QR_CODE_URL = os.getenv("DEFAULT_QR_CODE_URL", "")
    DEFAULT_REFERRAL_BONUS_PERCENTAGE = Decimal(os.getenv("DEFAULT_REFERRAL_BONUS_PERCENTAGE", "5"))
    DEFAULT_WITHDRAWAL_FEE_PERCENTAGE = Decimal(os.getenv("DEFAULT_WITHDRAWAL_FEE_PERCENTAGE", "5"))

    # Advice text provider
    ADVICE_API_URL = os.getenv("ADVICE_API_URL")
    ADVICE_API_KEY = os.getenv("ADVICE_API_KEY")
    ADVICE_TIMEOUT_SECONDS = int(os.getenv("ADVICE_TIMEOUT_SECONDS", "30"))

    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    AUTO_BOOTSTRAP = True
    ADMIN_EMAIL = "admin@example.com"
    ADMIN_PASSWORD = "admin-pass"
    ENFORCE_LEASE_EXPIRY = False
    ADVICE_API_URL = None
    ADVICE_API_KEY = None
