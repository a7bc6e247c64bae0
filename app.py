import logging
import os
from datetime import datetime

from flask import Flask, jsonify, request
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from errors import register_error_handlers
from extensions import cors, db, login_manager, migrate
from identity import apply_guest_cookie
from init_data import create_initial_data, register_commands

logger = logging.getLogger(__name__)


def _register_blueprints(app):
    from admin_routes import admin_bp
    from auth_routes import auth_bp
    from cart_routes import cart_bp
    from category_routes import categories_bp
    from contact_routes import contact_bp
    from order_routes import orders_bp
    from page_routes import pages_bp
    from product_routes import products_bp
    from user_routes import users_bp

    for blueprint in (auth_bp, users_bp, products_bp, categories_bp, pages_bp,
                      cart_bp, orders_bp, admin_bp, contact_bp):
        app.register_blueprint(blueprint)


def create_app(config_object=None):
    """Application factory"""
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    # Set up logging
    logging.basicConfig(level=app.config['LOG_LEVEL'])

    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    # Initialize the extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}},
                  supports_credentials=True)

    _register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)
    app.after_request(apply_guest_cookie)

    @app.before_request
    def log_request():
        logger.debug(f"{request.method} {request.path}")

    def health():
        return jsonify({
            'status': 'OK',
            'timestamp': datetime.utcnow().isoformat(),
            'environment': app.config['APP_ENV']
        })

    for rule in ('/', '/health', '/api/health'):
        app.add_url_rule(rule, f"health_{rule.strip('/').replace('/', '_') or 'root'}", health)

    with app.app_context():
        db.create_all()
        if app.config['SEED_DATA']:
            create_initial_data()

    logger.info(f"Rental API ready ({app.config['APP_ENV']})")
    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=False)
