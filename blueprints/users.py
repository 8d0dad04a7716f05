from flask import Blueprint, jsonify, request, g, current_app

from models import money
from ledger.account_service import AccountService, serialize_user
from ledger.activity import list_activity
from ledger.investment import serialize_investment
from ledger.referral import ReferralEngine
from blueprints.helpers import int_arg, json_body, login_required_json


bp = Blueprint("users", __name__, url_prefix="/api/users")


# ----------------------------------------------------------------------------------
# Dashboard data for the logged-in user
# ----------------------------------------------------------------------------------
@bp.route("/me", methods=["GET"])
@login_required_json
def get_me():
    return jsonify(serialize_user(g.current_user)), 200


@bp.route("/me/claim-status", methods=["GET"])
@login_required_json
def get_claim_status():
    return jsonify(AccountService.claim_status(g.current_user.id)), 200


#==========================================================================
# INVEST / CLAIM
#==========================================================================
@bp.route("/invest", methods=["POST"])
@login_required_json
def invest():
    data = json_body()
    product_id = data.get("productId")
    investment, referral_tx = AccountService.invest(g.current_user.id, product_id)

    current_app.logger.info(
        f"[INVEST] user {g.current_user.id} product {product_id}"
        f"{' (referral bonus paid)' if referral_tx else ''}"
    )
    user = AccountService.get_user(g.current_user.id)
    return jsonify({
        "message": "Investment successful",
        "investment": serialize_investment(investment),
        "user": serialize_user(user),
    }), 201


@bp.route("/claim", methods=["POST"])
@login_required_json
def claim():
    total, tx = AccountService.claim(g.current_user.id)
    user = AccountService.get_user(g.current_user.id)
    return jsonify({
        "message": "Income claimed",
        "amount": money(total),
        "transaction": tx.to_dict(),
        "user": serialize_user(user),
    }), 200


#=======================================================================================
#      REFERRALS & HISTORY
#=======================================================================================
@bp.route("/me/referrals", methods=["GET"])
@login_required_json
def get_referrals():
    return jsonify(ReferralEngine.list_referrals(g.current_user)), 200


@bp.route("/me/activity", methods=["GET"])
@login_required_json
def get_activity():
    result = list_activity(
        g.current_user.id,
        tx_type=request.args.get("type", "all"),
        sort=request.args.get("sort", "date-desc"),
        page=int_arg("page", 1),
        page_size=int_arg("pageSize", None),
    )
    return jsonify(result), 200
