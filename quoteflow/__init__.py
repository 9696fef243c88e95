from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from dotenv import load_dotenv
from quoteflow.utils.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "500 per hour"],
    storage_uri="memory://"  # Use Redis in production for distributed systems
)


def create_app(config_overrides: dict | None = None):
    """
    Build the Flask application.

    Args:
        config_overrides: values applied on top of the environment
            configuration (tests pass an in-memory database here)
    """
    load_dotenv()

    from quoteflow.config import load_config

    app = Flask(__name__, instance_relative_config=False)

    logger = get_logger("quoteflow")
    logger.info("Initializing Flask application")

    app.config.update(load_config())
    if config_overrides:
        app.config.update(config_overrides)

    # SECURITY: Require SECRET_KEY outside of testing - no fallback
    if not app.config.get('SECRET_KEY'):
        if app.config.get('TESTING'):
            app.config['SECRET_KEY'] = 'testing-only-secret'
        else:
            logger.critical("SECRET_KEY not set in environment! Application cannot start.")
            raise RuntimeError("SECRET_KEY environment variable is required")

    if app.config['ENABLE_HTTPS']:
        logger.info("HTTPS enforcement enabled")
    else:
        logger.warning("HTTPS enforcement DISABLED - Acceptable for development only!")

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from quoteflow import data  # noqa: F401

    from quoteflow.errors import register_error_handlers, Unauthenticated
    register_error_handlers(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated()

    from quoteflow.integrations import init_integrations
    from quoteflow.business.notifications.dispatcher import SideEffectDispatcher
    init_integrations(app)
    SideEffectDispatcher.init_app(app)

    from quoteflow.auth import auth
    from quoteflow.presentation.routes import init_app as init_routes

    app.register_blueprint(auth)
    csrf.exempt(auth)
    init_routes(app)

    @app.before_request
    def enforce_https():
        """Redirect HTTP requests to HTTPS if HTTPS enforcement is enabled"""
        if app.config.get('ENABLE_HTTPS') and app.config.get('FORCE_HTTPS_REDIRECT'):
            from flask import request, redirect

            if not request.is_secure and not request.headers.get('X-Forwarded-Proto') == 'https':
                url = request.url.replace('http://', 'https://', 1)
                return redirect(url, code=301)

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        if app.config.get('ENABLE_HTTPS'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    logger.info("Flask application initialization complete")

    return app
