"""
Investment engine.

Purchases freeze the product's commercial terms into the investment; every
payout is computed from those frozen terms. Daily income becomes claimable per
investment once CLAIM_INTERVAL has passed since that investment's last claim.
"""
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
import logging

from extensions import db
from models import Investment, Product, TransactionType, as_utc, isoformat, money, utcnow
from ledger.errors import NothingToClaim
from ledger.primitives import ZERO, credit, debit, quantize

logger = logging.getLogger(__name__)

CLAIM_INTERVAL = timedelta(hours=24)


# ===========================================================
# PRICING SOURCE
# ===========================================================

@dataclass(frozen=True)
class ProductTerms:
    name: str
    price: Decimal
    daily_income: Decimal
    days: int
    image: Optional[str] = None

    @property
    def total_revenue(self) -> Decimal:
        return self.daily_income * self.days


@dataclass(frozen=True)
class Snapshot:
    terms: ProductTerms


@dataclass(frozen=True)
class LiveLookup:
    """Legacy investments with no usable snapshot fall back to the catalog."""
    product_id: Optional[int]


PricingSource = Union[Snapshot, LiveLookup]


def _terms_from_snapshot(snapshot) -> Optional[ProductTerms]:
    if not isinstance(snapshot, dict):
        return None
    try:
        return ProductTerms(
            name=snapshot["name"],
            price=Decimal(str(snapshot["price"])),
            daily_income=Decimal(str(snapshot["dailyIncome"])),
            days=int(snapshot["days"]),
            image=snapshot.get("image"),
        )
    except (KeyError, TypeError, ValueError, InvalidOperation):
        return None


def _terms_from_product(product: Product) -> ProductTerms:
    return ProductTerms(
        name=product.name,
        price=Decimal(str(product.price)),
        daily_income=Decimal(str(product.daily_income)),
        days=int(product.days),
        image=product.image,
    )


def pricing_source(investment: Investment) -> PricingSource:
    # an incomplete snapshot is treated as absent, never merged with live fields
    terms = _terms_from_snapshot(investment.product_snapshot)
    if terms is not None:
        return Snapshot(terms)
    return LiveLookup(investment.product_id)


def resolve_terms(source: PricingSource) -> Optional[ProductTerms]:
    if isinstance(source, Snapshot):
        return source.terms
    if source.product_id is None:
        return None
    product = db.session.get(Product, source.product_id)
    if product is None:
        return None
    return _terms_from_product(product)


# ===========================================================
# CLAIM EVALUATION
# ===========================================================

@dataclass
class ClaimEvaluation:
    investment: Investment
    terms: Optional[ProductTerms]
    eligible: bool
    payout: Decimal
    next_eligible_at: Optional[object] = None
    lease_complete: bool = False


def evaluate_claim(investment: Investment, now, interval=CLAIM_INTERVAL,
                   enforce_lease_expiry=False) -> ClaimEvaluation:
    """Pure read: what would claiming this investment pay right now."""
    terms = resolve_terms(pricing_source(investment))
    last_claim = as_utc(investment.last_claim_date)
    next_eligible_at = last_claim + interval
    daily_income = terms.daily_income if terms else ZERO
    payout = quantize(daily_income)

    if enforce_lease_expiry and terms is not None:
        remaining = quantize(terms.total_revenue) - quantize(investment.claimed_amount or 0)
        if remaining <= ZERO:
            return ClaimEvaluation(investment, terms, False, ZERO, None, lease_complete=True)
        payout = min(payout, remaining)

    if payout <= ZERO:
        # nothing resolvable to pay; this investment never becomes claimable
        return ClaimEvaluation(investment, terms, False, ZERO, None)

    if now - last_claim >= interval:
        return ClaimEvaluation(investment, terms, True, payout, None)

    return ClaimEvaluation(investment, terms, False, ZERO, next_eligible_at)


class InvestmentEngine:

    @staticmethod
    def invest(user, product: Product, settings, referrer=None, now=None):
        """
        Buy ``product`` for ``user``. Runs inside the caller's unit of work.

        ``referrer`` is only honoured when this is the user's first investment.
        Returns (investment, referral_transaction_or_None).
        """
        from ledger.referral import ReferralEngine

        now = now or utcnow()
        first_investment = len(user.investments) == 0
        price = quantize(product.price)

        # raises InsufficientBalance before anything is touched
        debit(user, TransactionType.INVESTMENT, price, created_at=now)

        investment = Investment(
            product_id=product.id,
            purchase_date=now,
            last_claim_date=now,
            claimed_amount=ZERO,
            product_snapshot=product.snapshot_terms(),
        )
        user.investments.append(investment)

        referral_tx = None
        if first_investment and referrer is not None:
            referral_tx = ReferralEngine.pay_first_investment_bonus(
                referrer, user, price, settings, now=now)

        logger.info(f"User {user.id} invested {price} in product {product.id} ({product.name})")
        return investment, referral_tx

    @staticmethod
    def claim(user, now=None, interval=CLAIM_INTERVAL, enforce_lease_expiry=False):
        """
        Collect every eligible investment into one income transaction.
        Raises NothingToClaim (with the soonest next time) when none is eligible.
        """
        now = now or utcnow()
        total = ZERO
        next_times = []

        for investment in user.investments:
            result = evaluate_claim(investment, now, interval, enforce_lease_expiry)
            if result.eligible:
                total += result.payout
                investment.last_claim_date = now
                investment.claimed_amount = quantize(investment.claimed_amount or 0) + result.payout
            elif result.next_eligible_at is not None:
                next_times.append(result.next_eligible_at)

        if total <= ZERO:
            next_eligible_at = min(next_times) if next_times else None
            raise NothingToClaim("Nothing to claim yet", nextEligibleAt=isoformat(next_eligible_at))

        tx = credit(user, TransactionType.INCOME, total, created_at=now)
        logger.info(f"User {user.id} claimed {total} in daily income")
        return total, tx

    @staticmethod
    def claim_status(user, now=None, interval=CLAIM_INTERVAL, enforce_lease_expiry=False):
        """Dashboard read model. Never mutates anything."""
        now = now or utcnow()
        claimable_amount = ZERO
        total_daily_income = ZERO
        next_times = []

        for investment in user.investments:
            result = evaluate_claim(investment, now, interval, enforce_lease_expiry)
            if result.terms is not None and not result.lease_complete:
                total_daily_income += result.terms.daily_income
            if result.eligible:
                claimable_amount += result.payout
            elif result.next_eligible_at is not None:
                next_times.append(result.next_eligible_at)

        return {
            "claimable": claimable_amount > ZERO,
            "claimableAmount": money(claimable_amount),
            "nextEligibleAt": isoformat(min(next_times)) if next_times and claimable_amount <= ZERO else None,
            "totalDailyIncome": money(total_daily_income),
            "investmentCount": len(user.investments),
        }


def serialize_investment(investment: Investment, now=None):
    now = now or utcnow()
    source = pricing_source(investment)
    terms = resolve_terms(source)
    purchase_date = as_utc(investment.purchase_date)

    data = {
        "id": investment.id,
        "productId": investment.product_id,
        "purchaseDate": isoformat(purchase_date),
        "lastClaimDate": isoformat(investment.last_claim_date),
        "claimedAmount": money(investment.claimed_amount),
        "pricingSource": "snapshot" if isinstance(source, Snapshot) else "live",
        "productSnapshot": None,
    }
    if terms is None:
        return data

    days_passed = max(0, (now - purchase_date).days)
    data.update({
        "productSnapshot": {
            "name": terms.name,
            "price": money(terms.price),
            "dailyIncome": money(terms.daily_income),
            "image": terms.image,
            "days": terms.days,
        },
        "expiresAt": isoformat(purchase_date + timedelta(days=terms.days)),
        "daysPassed": days_passed,
        "progress": round(min(100.0, days_passed / terms.days * 100), 2) if terms.days else 100.0,
    })
    return data
