from decimal import Decimal, InvalidOperation
import logging

from flask import current_app

from extensions import db
from models import AppSettings
from ledger.errors import ValidationError
from ledger.primitives import percent_of, quantize, to_amount, unit_of_work

logger = logging.getLogger(__name__)


class SettingsProvider:
    """
    Owns the single process-wide settings row. Callers read it once per
    operation and pass the record into the engines that need it.
    """

    @staticmethod
    def ensure_settings():
        """Create the row on first use. Never creates a second one."""
        settings = AppSettings.query.order_by(AppSettings.id).first()
        if settings:
            return settings

        config = current_app.config
        settings = AppSettings(
            upi_id=config.get("DEFAULT_UPI_ID", ""),
            qr_code_url=config.get("DEFAULT_QR_CODE_URL", ""),
            referral_bonus_percentage=config.get("DEFAULT_REFERRAL_BONUS_PERCENTAGE", Decimal("5")),
            withdrawal_fee_percentage=config.get("DEFAULT_WITHDRAWAL_FEE_PERCENTAGE", Decimal("5")),
        )
        db.session.add(settings)
        db.session.flush()
        logger.info("Settings row created with defaults")
        return settings

    @staticmethod
    def get_settings():
        return SettingsProvider.ensure_settings()

    @staticmethod
    def _percentage(value, field):
        try:
            pct = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError(f"{field} must be a number")
        if not pct.is_finite() or pct < 0 or pct > 100:
            raise ValidationError(f"{field} must be between 0 and 100")
        return pct

    @staticmethod
    def update_settings(data: dict):
        """Partial update; unknown keys are ignored."""
        if not isinstance(data, dict):
            raise ValidationError("Settings payload must be an object")

        with unit_of_work():
            settings = SettingsProvider.ensure_settings()

            if "upiId" in data:
                settings.upi_id = str(data["upiId"] or "").strip()
            if "qrCodeUrl" in data:
                settings.qr_code_url = str(data["qrCodeUrl"] or "").strip()
            if "referralBonusPercentage" in data:
                settings.referral_bonus_percentage = SettingsProvider._percentage(
                    data["referralBonusPercentage"], "referralBonusPercentage")
            if "withdrawalFeePercentage" in data:
                settings.withdrawal_fee_percentage = SettingsProvider._percentage(
                    data["withdrawalFeePercentage"], "withdrawalFeePercentage")

        logger.info(f"Settings updated: {settings.to_dict()}")
        return settings

    @staticmethod
    def quote_withdrawal(amount, settings=None):
        """Fee preview. The full amount is still what leaves the balance."""
        amount = to_amount(amount)
        settings = settings or SettingsProvider.get_settings()
        fee = percent_of(amount, settings.withdrawal_fee_percentage)
        return {
            "amount": amount,
            "feePercentage": quantize(settings.withdrawal_fee_percentage),
            "fee": fee,
            "netAmount": amount - fee,
        }
