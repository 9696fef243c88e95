"""
Routes package for the quote-to-order API
One JSON blueprint per workflow area
"""

from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.routes")


def init_app(app):
    """Initialize all route blueprints with the Flask app"""
    from quoteflow import csrf
    from . import admin, dispatch, inquiries, notifications, orders, payments, quotations, realtime

    logger.debug("Initializing route blueprints")

    blueprints = [
        (inquiries.bp, '/inquiries'),
        (quotations.bp, '/quotations'),
        (orders.bp, '/orders'),
        (dispatch.bp, '/dispatch'),
        (payments.bp, '/payments'),
        (notifications.bp, '/notifications'),
        (admin.bp, '/admin'),
        (realtime.bp, '/realtime'),
    ]
    for blueprint, prefix in blueprints:
        # JSON API; session cookie is SameSite=Lax
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint, url_prefix=prefix)

    logger.info(f"Registered {len(blueprints)} API blueprints")
