import os

import click
from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from extensions import db, login_manager, init_extensions
from logger import configure_app_logging
from models import User, utcnow, isoformat
from ledger.errors import LedgerError


# --------------------------------------------------------------------------------------------------------
#       Application factory
# --------------------------------------------------------------------------------------------------------
def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.config.get("SECRET_KEY") and not app.config.get("TESTING"):
        raise RuntimeError("SECRET_KEY must be set")
    if not app.config.get("ADMIN_PASSWORD") and not app.config.get("TESTING"):
        raise RuntimeError("ADMIN_PASSWORD must be set")

    if not app.debug and not app.config.get("TESTING"):
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_HTTPONLY=True,
            REMEMBER_COOKIE_SECURE=True,
            REMEMBER_COOKIE_HTTPONLY=True,
        )

    # ------------------------------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------------------------------
    configure_app_logging(app)

    # ------------------------------------------------------------------------------------------
    # SQLite file location
    # ------------------------------------------------------------------------------------------
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if database_uri.startswith("sqlite:///") and ":memory:" not in database_uri:
        os.makedirs(os.path.dirname(database_uri.replace("sqlite:///", "", 1)), exist_ok=True)

    # --------------------------------------------------------------------------------------------------------------------------
    # Initialize extensions
    # ----------------------------------------------------------------------------------------------------------------------------
    init_extensions(app)

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route("/healthz")
    def healthz():
        return {"status": "ok", "timestamp": isoformat(utcnow())}, 200

    if app.config.get("AUTO_BOOTSTRAP"):
        from ledger.account_service import AccountService
        with app.app_context():
            AccountService.bootstrap_system()

    return app


# ------------------------------------------------------------------------------------------------------------------------
# Register blueprints
# -----------------------------------------------------------------------------------------------------------------------
def register_blueprints(app):
    from blueprints.auth import bp as auth_bp
    from blueprints.products import bp as products_bp
    from blueprints.users import bp as users_bp
    from blueprints.transactions import bp as transactions_bp
    from blueprints.admin import admin_bp
    from blueprints.advice import bp as advice_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(advice_bp)


# ------------------------------------------------------------------------------------------------------------------------
# JSON error responses
# ------------------------------------------------------------------------------------------------------------------------
def register_error_handlers(app):

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        # releases any row lock taken before the rejection
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error(f"{error.code}: {error.message}")
        else:
            app.logger.info(f"Rejected request: {error.code} {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(error):
        db.session.rollback()
        app.logger.error(f"Database error: {error}", exc_info=True)
        return jsonify({"error": "Service temporarily unavailable", "code": "service_unavailable"}), 503

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"error": "Not found", "code": "not_found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"error": "Method not allowed", "code": "method_not_allowed"}), 405


# ------------------------------------------------------------------------------------------------------------------------
# CLI: flask bootstrap / seed-products / reset-system
# ------------------------------------------------------------------------------------------------------------------------
def register_commands(app):
    from ledger.account_service import AccountService
    from ledger.catalog import ProductCatalog

    @app.cli.command("bootstrap")
    def bootstrap_command():
        """Create tables, the settings row and the seeded admin."""
        admin, settings = AccountService.bootstrap_system()
        click.echo(f"Admin: {admin.email} (id {admin.id})")
        click.echo(f"Referral bonus: {settings.referral_bonus_percentage}%, "
                   f"withdrawal fee: {settings.withdrawal_fee_percentage}%")

    @app.cli.command("seed-products")
    def seed_products_command():
        """Insert the default Royal product series into an empty catalogue."""
        added = ProductCatalog.seed_default_products()
        if added:
            click.echo(f"Seeded {added} products")
        else:
            click.echo("Catalogue is not empty, nothing seeded")

    @app.cli.command("reset-system")
    @click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
    def reset_system_command(yes):
        """Delete every non-admin user and all products."""
        if not yes:
            click.confirm("This deletes all users and products. Continue?", abort=True)
        result = AccountService.reset_system()
        click.echo(f"Removed {result['usersRemoved']} users and {result['productsRemoved']} products")


# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    debug_mode = app.config.get("DEBUG", False)
    app.run(debug=debug_mode, host="0.0.0.0", port=port)
