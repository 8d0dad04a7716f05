from flask import Blueprint, jsonify, session, current_app
from flask_login import login_user, logout_user

from ledger.account_service import AccountService, serialize_user
from blueprints.helpers import current_session_user, json_body


bp = Blueprint("auth", __name__, url_prefix="/api/auth")


#===========================================================================
#      SIGN UP ROUTE
#==============================================================================
@bp.route("/register", methods=["POST"])
def register():
    """
    Create a new account with a zero balance.
    Expected JSON:
    {
        "username": "",
        "email": "",
        "password": "",
        "referralCode": ""   (optional)
    }
    """
    data = json_body()
    user = AccountService.register(
        username=data.get("username"),
        email=data.get("email"),
        password=data.get("password"),
        referral_code=data.get("referralCode"),
    )
    current_app.logger.info(f"[SIGNUP] user {user.id} registered")

    return jsonify({
        "status": "success",
        "message": "Signup successful",
        "user": serialize_user(user),
    }), 201


# --------------------------------------------------
#      Login Route
# --------------------------------------------------
@bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    user = AccountService.login(data.get("email"), data.get("password"))

    session.clear()
    session["user_id"] = user.id
    login_user(user)
    current_app.logger.info(f"[LOGIN] user {user.id}")

    return jsonify({
        "message": "Login successful",
        "user": serialize_user(user),
    }), 200


#-----------------------------------------------------------------------------------------------------
@bp.route("/logout", methods=["POST"])
def logout():
    """
    Destroy User session
    """
    logout_user()
    session.clear()
    return jsonify({"message": "Logged out successfully"}), 200


# --------------------------------------------------
# Check Session (for frontend auto-login)
# --------------------------------------------------
@bp.route("/session", methods=["GET"])
def check_session():
    """Returns current logged-in user data if authenticated"""
    user = current_session_user()
    if not user:
        return jsonify({"authenticated": False}), 200

    return jsonify({
        "authenticated": True,
        "user": serialize_user(user),
    }), 200
