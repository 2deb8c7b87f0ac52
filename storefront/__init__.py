import os
from flask import Flask
from dotenv import load_dotenv

load_dotenv()


def create_app(config_name=None):
    flask_app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV") or "development"

    from storefront.config import config_map

    config_cls = config_map.get(config_name, config_map["development"])
    flask_app.config.from_object(config_cls)

    if hasattr(config_cls, "init_app"):
        config_cls.init_app(flask_app)

    # Initialize extensions
    from storefront.extensions import db, migrate, init_redis

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    init_redis(flask_app)

    # Import models so Alembic sees them
    import storefront.models  # noqa: F401

    from storefront.errors import register_error_handlers

    register_error_handlers(flask_app)

    # Register blueprints
    from storefront.blueprints.catalog import catalog_bp
    from storefront.blueprints.inventory import inventory_bp
    from storefront.blueprints.cart import cart_bp
    from storefront.blueprints.orders import orders_bp
    from storefront.blueprints.payments import payments_bp
    from storefront.blueprints.purchases import purchases_bp
    from storefront.blueprints.favorites import favorites_bp
    from storefront.blueprints.reviews import reviews_bp
    from storefront.blueprints.coupons import coupons_bp

    flask_app.register_blueprint(catalog_bp, url_prefix="/api/v1")
    flask_app.register_blueprint(inventory_bp, url_prefix="/api/v1/inventory")
    flask_app.register_blueprint(cart_bp, url_prefix="/api/v1")
    flask_app.register_blueprint(orders_bp, url_prefix="/api/v1")
    flask_app.register_blueprint(payments_bp, url_prefix="/api/v1/user/payment-methods")
    flask_app.register_blueprint(purchases_bp, url_prefix="/api/v1/admin/purchases")
    flask_app.register_blueprint(favorites_bp, url_prefix="/api/v1/user/favorites")
    flask_app.register_blueprint(reviews_bp, url_prefix="/api/v1")
    flask_app.register_blueprint(coupons_bp, url_prefix="/api/v1")

    # Register CLI commands
    from storefront.cli import register_cli

    register_cli(flask_app)

    # Health check
    @flask_app.route("/health")
    def health():
        from storefront.extensions import redis_client

        checks = {"status": "ok"}
        try:
            db.session.execute(db.text("SELECT 1"))
            checks["db"] = "ok"
        except Exception:
            flask_app.logger.exception("Health check DB query failed")
            checks["db"] = "error"
            checks["status"] = "degraded"
        try:
            if redis_client:
                redis_client.ping()
                checks["redis"] = "ok"
            else:
                checks["redis"] = "not configured"
        except Exception:
            flask_app.logger.exception("Health check Redis ping failed")
            checks["redis"] = "error"
            checks["status"] = "degraded"
        status_code = 200 if checks["status"] == "ok" else 503
        return checks, status_code

    return flask_app
