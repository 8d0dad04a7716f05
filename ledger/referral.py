from decimal import Decimal
import logging

from models import TransactionStatus, TransactionType, User, isoformat, money
from ledger.primitives import ZERO, credit, percent_of

logger = logging.getLogger(__name__)


class ReferralEngine:
    """One-time bonus for the referrer when a referee makes their first investment."""

    @staticmethod
    def find_referrer(user):
        """Referrer whose code the user signed up with; None for stale or missing codes."""
        if not user.referred_by:
            return None
        referrer = User.query.filter(
            User.referral_code == user.referred_by,
            User.id != user.id,
        ).first()
        if referrer is None:
            logger.info(f"Referral code {user.referred_by!r} on user {user.id} matches nobody, ignoring")
        return referrer

    @staticmethod
    def bonus_for(price, settings) -> Decimal:
        return percent_of(price, settings.referral_bonus_percentage)

    @staticmethod
    def pay_first_investment_bonus(referrer, referee, price, settings, now=None):
        """Credit the referrer inside the referee's unit of work."""
        bonus = ReferralEngine.bonus_for(price, settings)
        if bonus <= ZERO:
            logger.info(f"Referral bonus for referee {referee.id} is zero at current settings, skipped")
            return None

        tx = credit(referrer, TransactionType.REFERRAL, bonus, created_at=now)
        logger.info(
            f"Referral bonus {bonus} paid to user {referrer.id} for first investment of user {referee.id}"
        )
        return tx

    @staticmethod
    def referral_earnings(user) -> Decimal:
        return sum(
            (Decimal(str(tx.amount)) for tx in user.transactions
             if tx.type == TransactionType.REFERRAL.value
             and tx.status == TransactionStatus.SUCCESS.value),
            ZERO,
        )

    @staticmethod
    def list_referrals(user):
        referees = User.query.filter(
            User.referred_by == user.referral_code,
            User.id != user.id,
        ).order_by(User.registered_at.desc()).all()

        return {
            "referralCode": user.referral_code,
            "referralCount": len(referees),
            "referralEarnings": money(ReferralEngine.referral_earnings(user)),
            "referrals": [
                {
                    "id": ref.id,
                    "username": ref.username,
                    "registeredAt": isoformat(ref.registered_at),
                    "investmentCount": len(ref.investments),
                }
                for ref in referees
            ],
        }
