"""
Tests for investing and daily income claims.

Covers:
- Purchase debits the price and freezes the product terms
- 24h eligibility measured per investment
- Claims never pay twice inside one interval
- Frozen terms survive product edits and deletion
- Legacy investments without a snapshot price from the live catalogue
- Optional lease expiry
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import T0, hours
from extensions import db
from models import Investment, Transaction, TransactionType
from ledger.account_service import AccountService
from ledger.catalog import ProductCatalog
from ledger.errors import InsufficientBalance, NotFound, NothingToClaim
from ledger.investment import LiveLookup, Snapshot, pricing_source, serialize_investment


def transactions_of(user, tx_type):
    return Transaction.query.filter_by(user_id=user.id, type=tx_type.value).all()


class TestInvest:

    def test_invest_debits_price_and_snapshots_terms(self, make_user, product):
        user = make_user(balance=1000)

        investment, referral_tx = AccountService.invest(user.id, product.id, now=T0)

        assert referral_tx is None
        assert user.balance == Decimal("400.00")
        assert investment.claimed_amount == Decimal("0.00")
        assert investment.product_snapshot["dailyIncome"] == "50.00"
        assert investment.product_snapshot["days"] == 30
        [tx] = transactions_of(user, TransactionType.INVESTMENT)
        assert tx.amount == Decimal("600.00")

    def test_invest_insufficient_balance_changes_nothing(self, make_user, product):
        user = make_user(balance=599)

        with pytest.raises(InsufficientBalance):
            AccountService.invest(user.id, product.id, now=T0)

        db.session.expire_all()
        assert user.balance == Decimal("599.00")
        assert Investment.query.count() == 0
        assert Transaction.query.filter_by(user_id=user.id).count() == 0

    def test_invest_unknown_product(self, make_user):
        user = make_user(balance=1000)
        with pytest.raises(NotFound):
            AccountService.invest(user.id, 999)

    def test_purchase_limit_is_not_enforced(self, make_user):
        product = ProductCatalog.add_product(
            {"name": "ONE", "price": 100, "dailyIncome": 5, "days": 10, "purchaseLimit": 1})
        user = make_user(balance=1000)

        AccountService.invest(user.id, product.id, now=T0)
        AccountService.invest(user.id, product.id, now=T0)

        assert len(user.investments) == 2


class TestClaim:

    def test_claim_after_interval_pays_daily_income(self, make_user, product):
        user = make_user(balance=1000)
        investment, _ = AccountService.invest(user.id, product.id, now=T0)

        total, tx = AccountService.claim(user.id, now=hours(25))

        assert total == Decimal("50.00")
        assert user.balance == Decimal("450.00")
        assert tx.type == TransactionType.INCOME.value
        db.session.refresh(investment)
        assert investment.claimed_amount == Decimal("50.00")

    def test_claim_before_interval_reports_next_time(self, make_user, product):
        user = make_user(balance=1000)
        AccountService.invest(user.id, product.id, now=T0)

        with pytest.raises(NothingToClaim) as exc:
            AccountService.claim(user.id, now=hours(23))

        assert exc.value.extra["nextEligibleAt"] == hours(24).isoformat()
        assert exc.value.status_code == 400
        assert user.balance == Decimal("400.00")

    def test_second_claim_in_same_interval_pays_nothing(self, make_user, product):
        user = make_user(balance=1000)
        AccountService.invest(user.id, product.id, now=T0)
        AccountService.claim(user.id, now=hours(25))

        with pytest.raises(NothingToClaim):
            AccountService.claim(user.id, now=hours(25) + timedelta(minutes=1))

        assert len(transactions_of(user, TransactionType.INCOME)) == 1
        assert user.balance == Decimal("450.00")

    def test_claim_with_no_investments(self, make_user):
        user = make_user(balance=1000)
        with pytest.raises(NothingToClaim) as exc:
            AccountService.claim(user.id, now=T0)
        assert exc.value.extra["nextEligibleAt"] is None

    def test_staggered_investments_become_eligible_separately(self, make_user, product):
        user = make_user(balance=2000)
        AccountService.invest(user.id, product.id, now=T0)
        AccountService.invest(user.id, product.id, now=hours(12))

        total, _ = AccountService.claim(user.id, now=hours(25))
        assert total == Decimal("50.00")

        total, _ = AccountService.claim(user.id, now=hours(37))
        assert total == Decimal("50.00")

        with pytest.raises(NothingToClaim) as exc:
            AccountService.claim(user.id, now=hours(40))
        assert exc.value.extra["nextEligibleAt"] == hours(49).isoformat()

    def test_one_claim_collects_all_eligible_investments(self, make_user, product):
        user = make_user(balance=2000)
        AccountService.invest(user.id, product.id, now=T0)
        AccountService.invest(user.id, product.id, now=hours(1))

        total, _ = AccountService.claim(user.id, now=hours(30))

        assert total == Decimal("100.00")
        assert len(transactions_of(user, TransactionType.INCOME)) == 1

    def test_missed_days_do_not_accumulate(self, make_user, product):
        user = make_user(balance=1000)
        AccountService.invest(user.id, product.id, now=T0)

        total, _ = AccountService.claim(user.id, now=hours(24 * 5))

        assert total == Decimal("50.00")


class TestFrozenTerms:

    def test_product_edit_does_not_change_existing_payouts(self, make_user, product):
        user = make_user(balance=1000)
        investment, _ = AccountService.invest(user.id, product.id, now=T0)

        ProductCatalog.update_product(product.id, {"dailyIncome": 500, "price": 6000})

        total, _ = AccountService.claim(user.id, now=hours(25))
        assert total == Decimal("50.00")
        assert isinstance(pricing_source(investment), Snapshot)

    def test_product_deletion_keeps_investment_paying(self, make_user, product):
        user = make_user(balance=1000)
        AccountService.invest(user.id, product.id, now=T0)

        ProductCatalog.delete_product(product.id)

        total, _ = AccountService.claim(user.id, now=hours(25))
        assert total == Decimal("50.00")
        assert Investment.query.count() == 1

    def test_legacy_investment_uses_live_product(self, make_user, product):
        user = make_user(balance=0)
        investment = Investment(product_id=product.id, purchase_date=T0, last_claim_date=T0,
                                claimed_amount=0, product_snapshot=None)
        user.investments.append(investment)
        db.session.commit()

        assert pricing_source(investment) == LiveLookup(product.id)
        total, _ = AccountService.claim(user.id, now=hours(25))
        assert total == Decimal("50.00")

    def test_incomplete_snapshot_is_never_merged_with_live_terms(self, make_user, product):
        user = make_user(balance=0)
        investment = Investment(product_id=product.id, purchase_date=T0, last_claim_date=T0,
                                claimed_amount=0, product_snapshot={"name": "partial", "price": "1"})
        user.investments.append(investment)
        db.session.commit()

        assert isinstance(pricing_source(investment), LiveLookup)

    def test_legacy_investment_without_product_pays_nothing(self, make_user):
        user = make_user(balance=0)
        user.investments.append(Investment(product_id=12345, purchase_date=T0, last_claim_date=T0,
                                           claimed_amount=0, product_snapshot=None))
        db.session.commit()

        with pytest.raises(NothingToClaim):
            AccountService.claim(user.id, now=hours(25))
        assert user.balance == Decimal("0.00")


class TestLeaseExpiry:

    @pytest.fixture
    def short_product(self):
        return ProductCatalog.add_product({"name": "SHORT", "price": 100, "dailyIncome": 60, "days": 2})

    def test_claims_continue_after_lease_by_default(self, make_user, short_product):
        user = make_user(balance=100)
        AccountService.invest(user.id, short_product.id, now=T0)

        for day in range(1, 4):
            AccountService.claim(user.id, now=hours(24 * day + 1))

        assert user.balance == Decimal("180.00")

    def test_enforced_lease_stops_at_total_revenue(self, app, make_user, short_product):
        app.config["ENFORCE_LEASE_EXPIRY"] = True
        user = make_user(balance=100)
        AccountService.invest(user.id, short_product.id, now=T0)

        AccountService.claim(user.id, now=hours(25))
        AccountService.claim(user.id, now=hours(50))
        with pytest.raises(NothingToClaim) as exc:
            AccountService.claim(user.id, now=hours(75))

        assert exc.value.extra["nextEligibleAt"] is None
        assert user.balance == Decimal("120.00")

    def test_enforced_lease_caps_final_payout(self, app, make_user, short_product):
        app.config["ENFORCE_LEASE_EXPIRY"] = True
        user = make_user(balance=100)
        investment, _ = AccountService.invest(user.id, short_product.id, now=T0)
        investment.claimed_amount = Decimal("100")
        db.session.commit()

        total, _ = AccountService.claim(user.id, now=hours(25))

        assert total == Decimal("20.00")


class TestClaimStatus:

    def test_status_reports_claimable_amount(self, make_user, product):
        user = make_user(balance=1000)
        AccountService.invest(user.id, product.id, now=T0)

        before = AccountService.claim_status(user.id, now=hours(2))
        after = AccountService.claim_status(user.id, now=hours(25))

        assert before["claimable"] is False
        assert before["nextEligibleAt"] == hours(24).isoformat()
        assert before["totalDailyIncome"] == 50.0
        assert after["claimable"] is True
        assert after["claimableAmount"] == 50.0
        assert after["nextEligibleAt"] is None

    def test_serialized_investment_progress(self, make_user, product):
        user = make_user(balance=1000)
        investment, _ = AccountService.invest(user.id, product.id, now=T0)

        data = serialize_investment(investment, now=T0 + timedelta(days=3))

        assert data["pricingSource"] == "snapshot"
        assert data["daysPassed"] == 3
        assert data["progress"] == 10.0
        assert data["expiresAt"] == (T0 + timedelta(days=30)).isoformat()
