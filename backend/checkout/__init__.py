import logging
import os

from flask import Flask, jsonify
from sqlalchemy import text

from checkout.config import Config
from checkout.errors import CheckoutError
from checkout.extensions import db, cors
from checkout.segments.segment_admin_side_effects import admin_bp
from checkout.segments.segment_checkout import checkout_bp
from checkout.segments.segment_payment_webhooks import webhooks_bp
from checkout.services import build_services


def create_app(config: Config | None = None, services=None):
    app = Flask(__name__)

    cfg = config or Config()
    cfg.check_production()
    app.config.update(cfg.to_flask())

    app.logger.setLevel(getattr(logging, cfg.LOG_LEVEL, logging.INFO))

    # Ensure instance dir exists for SQLite paths and the local dedupe file
    os.makedirs(cfg.INSTANCE_DIR, exist_ok=True)

    cors.init_app(app, resources={r"/api/*": {"origins": cfg.cors_origins()}}, supports_credentials=True)

    # Init extensions
    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.extensions["checkout"] = services or build_services(cfg)

    # Register API routes
    app.register_blueprint(checkout_bp)
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(CheckoutError)
    def _checkout_error(e: CheckoutError):
        level = logging.ERROR if e.status_code >= 500 else logging.INFO
        app.logger.log(level, "%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    # Health check
    @app.get("/api/health")
    def health():
        db_state = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db_state = "fail"
        return jsonify({
            "ok": True,
            "service": "storefront-checkout",
            "env": cfg.ENV,
            "db": db_state,
        })

    return app
