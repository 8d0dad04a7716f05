#======================================================================================
#
# ADMIN API: users, pending requests, settings, reset
#
#=======================================================================================
from flask import Blueprint, jsonify, g, current_app

from ledger.account_service import AccountService, serialize_user
from ledger.settings_provider import SettingsProvider
from blueprints.helpers import admin_required, json_body


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    users = AccountService.list_users()
    return jsonify({
        "users": [serialize_user(user) for user in users],
        "total": len(users),
    }), 200


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@admin_required
def update_user(user_id):
    user = AccountService.update_user(user_id, json_body())
    current_app.logger.info(f"[ADMIN] user {g.current_user.id} updated user {user_id}")
    return jsonify({"message": "User updated", "user": serialize_user(user)}), 200


#============================================================================================================
#
#     ----------------------------PENDING RECHARGES & WITHDRAWALS-------------------------------------------
#
#============================================================================================================
@admin_bp.route("/transactions/pending", methods=["GET"])
@admin_required
def pending_transactions():
    pending = AccountService.list_pending_transactions()
    return jsonify({
        "transactions": [tx.to_dict() for tx in pending],
        "total": len(pending),
    }), 200


@admin_bp.route("/transaction/<int:user_id>/<int:tx_id>", methods=["POST"])
@admin_required
def resolve_transaction(user_id, tx_id):
    """
    Approve or reject one pending request.
    Expected JSON: {"action": "approve" | "reject"}
    """
    data = json_body()
    tx = AccountService.resolve_transaction(user_id, tx_id, data.get("action"))
    current_app.logger.info(
        f"[ADMIN] user {g.current_user.id} resolved tx {tx_id} of user {user_id}: {tx.status}"
    )
    user = AccountService.get_user(user_id)
    return jsonify({
        "message": f"Transaction {tx.status}",
        "transaction": tx.to_dict(),
        "user": serialize_user(user),
    }), 200


#============================================================================================================
#     SETTINGS
#============================================================================================================
@admin_bp.route("/settings", methods=["GET"])
def get_settings():
    """Public: the recharge page needs the UPI id and QR code."""
    return jsonify(SettingsProvider.get_settings().to_dict()), 200


@admin_bp.route("/settings", methods=["PUT"])
@admin_required
def update_settings():
    settings = SettingsProvider.update_settings(json_body())
    return jsonify({"message": "Settings updated", "settings": settings.to_dict()}), 200


@admin_bp.route("/reset", methods=["POST"])
@admin_required
def reset_system():
    result = AccountService.reset_system()
    current_app.logger.warning(f"[ADMIN] user {g.current_user.id} reset the system")
    return jsonify({"message": "System reset", **result}), 200
