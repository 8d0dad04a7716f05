from flask import Blueprint, jsonify, request, g, current_app

from models import money
from ledger.account_service import AccountService
from ledger.settings_provider import SettingsProvider
from blueprints.helpers import json_body, login_required_json


bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


#===========================================================================
#      RECHARGE / WITHDRAWAL REQUESTS
#==============================================================================
@bp.route("", methods=["POST"])
@login_required_json
def create_transaction():
    """
    Expected JSON:
    {
        "type": "recharge" | "withdrawal",
        "amount": 500,
        "withdrawalDetails": {"method": "upi" | "bank", "details": ""}   (withdrawal only)
    }
    """
    data = json_body()
    tx = AccountService.create_transaction(
        g.current_user.id,
        data.get("type"),
        data.get("amount"),
        data.get("withdrawalDetails"),
    )
    current_app.logger.info(f"[REQUEST] user {g.current_user.id} {tx.type} {tx.amount} pending")

    user = AccountService.get_user(g.current_user.id)
    return jsonify({
        "message": "Request submitted",
        "transaction": tx.to_dict(),
        "balance": money(user.balance),
    }), 201


@bp.route("/withdrawal-quote", methods=["GET"])
@login_required_json
def withdrawal_quote():
    quote = SettingsProvider.quote_withdrawal(request.args.get("amount"))
    return jsonify({key: money(value) for key, value in quote.items()}), 200
