from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from datetime import timedelta
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _import_models():
    # every mapped class must be registered before relationships resolve
    from .models import authz, audit, catalog, product, customer, marketing, order, setting  # noqa: F401


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['JWT_TOKEN_LOCATION'] = ['headers', 'cookies']
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES_HOURS', '24')))
    app.config['JWT_COOKIE_SECURE'] = _env_bool('JWT_COOKIE_SECURE', False)
    app.config['JWT_COOKIE_CSRF_PROTECT'] = _env_bool('JWT_COOKIE_CSRF_PROTECT', True)
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['LOW_STOCK_THRESHOLD'] = int(os.getenv('LOW_STOCK_THRESHOLD', '10'))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.logger.setLevel(app.config['LOG_LEVEL'])
    logging.getLogger('shopadmin').setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))
    _import_models()

    jwt.init_app(app)

    from . import middleware
    middleware.register_jwt_callbacks(jwt)
    middleware.init_app(app)

    @app.teardown_appcontext
    def remove_session(exc):
        SessionLocal.remove()

    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.categories import categories_bp
    from .routes.brands import brands_bp
    from .routes.customers import customers_bp
    from .routes.orders import orders_bp
    from .routes.inventory import inv_bp
    from .routes.coupons import coupons_bp
    from .routes.campaigns import campaigns_bp
    from .routes.users import users_bp
    from .routes.roles import roles_bp
    from .routes.settings import settings_bp
    from .routes.reports import rpt_bp
    from .routes.audit_logs import audit_bp
    from .routes.dashboard import dashboard_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(products_bp, url_prefix='/api/products')
    app.register_blueprint(categories_bp, url_prefix='/api/categories')
    app.register_blueprint(brands_bp, url_prefix='/api/brands')
    app.register_blueprint(customers_bp, url_prefix='/api/customers')
    app.register_blueprint(orders_bp, url_prefix='/api/orders')
    app.register_blueprint(inv_bp, url_prefix='/api/inventory')
    app.register_blueprint(coupons_bp, url_prefix='/api/marketing/coupons')
    app.register_blueprint(campaigns_bp, url_prefix='/api/marketing/campaigns')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(roles_bp, url_prefix='/api')  # /api/roles + /api/permissions
    app.register_blueprint(settings_bp, url_prefix='/api/settings')
    app.register_blueprint(rpt_bp, url_prefix='/api')  # revenue, analytics, reports
    app.register_blueprint(audit_bp, url_prefix='/api/audit-logs')
    app.register_blueprint(dashboard_bp)  # /dashboard pages + /auth/signin

    @app.route('/healthz')
    def health():
        get_db().execute(text('SELECT 1'))
        return {'status': 'ok'}

    from .errors import error_payload

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            if e.code >= 500:
                app.logger.error('HTTP %s: %s', e.code, e.description)
            return error_payload(e.code, e.name, e.description, getattr(e, 'extra', None)), e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        SessionLocal.rollback()
        return error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    return app


def get_db():
    return SessionLocal()
