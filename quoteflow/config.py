"""
Environment-driven configuration.

Values come from the process environment (populated from .env by
python-dotenv in create_app). Booleans accept true/1/yes/on.
"""
import os
from pathlib import Path


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def _csv(name: str) -> list[str]:
    raw = os.environ.get(name, '')
    return [item.strip() for item in raw.split(',') if item.strip()]


def load_config() -> dict:
    base_dir = Path(__file__).parent.parent
    instance_dir = base_dir / 'instance'

    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        instance_dir.mkdir(parents=True, exist_ok=True)
        database_url = f"sqlite:///{(instance_dir / 'quoteflow.db').resolve()}"

    return {
        'SECRET_KEY': os.environ.get('SECRET_KEY'),
        'SQLALCHEMY_DATABASE_URI': database_url,
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEBUG': _flag('FLASK_DEBUG', 'False'),

        # HTTPS / session cookies; default secure
        'ENABLE_HTTPS': _flag('ENABLE_HTTPS', 'True'),
        'FORCE_HTTPS_REDIRECT': _flag('FORCE_HTTPS_REDIRECT', 'True'),
        'SESSION_COOKIE_SECURE': _flag('SESSION_COOKIE_SECURE', 'True'),
        'SESSION_COOKIE_HTTPONLY': True,
        'SESSION_COOKIE_SAMESITE': 'Lax',
        'PERMANENT_SESSION_LIFETIME': int(os.environ.get('PERMANENT_SESSION_LIFETIME', '3600')),
        'REMEMBER_COOKIE_SECURE': _flag('REMEMBER_COOKIE_SECURE', 'True'),
        'REMEMBER_COOKIE_HTTPONLY': True,

        # Email
        'MAIL_SERVER': os.environ.get('MAIL_SERVER'),
        'MAIL_PORT': int(os.environ.get('MAIL_PORT', '587')),
        'MAIL_USE_TLS': _flag('MAIL_USE_TLS', 'True'),
        'MAIL_USERNAME': os.environ.get('MAIL_USERNAME'),
        'MAIL_PASSWORD': os.environ.get('MAIL_PASSWORD'),
        'MAIL_DEFAULT_SENDER': os.environ.get('MAIL_DEFAULT_SENDER', 'no-reply@quoteflow.local'),
        'BACKOFFICE_EMAILS': _csv('BACKOFFICE_EMAILS'),

        # SMS
        'SMS_GATEWAY_URL': os.environ.get('SMS_GATEWAY_URL'),
        'SMS_API_KEY': os.environ.get('SMS_API_KEY'),
        'SMS_SENDER': os.environ.get('SMS_SENDER', 'QTFLOW'),

        # Payments
        'RAZORPAY_KEY_ID': os.environ.get('RAZORPAY_KEY_ID'),
        'RAZORPAY_KEY_SECRET': os.environ.get('RAZORPAY_KEY_SECRET'),
        'RAZORPAY_API_URL': os.environ.get('RAZORPAY_API_URL', 'https://api.razorpay.com/v1'),

        # Files
        'UPLOAD_FOLDER': os.environ.get('UPLOAD_FOLDER', str(instance_dir / 'uploads')),
        'MAX_FILES_PER_INQUIRY': int(os.environ.get('MAX_FILES_PER_INQUIRY', '100')),
        'MAX_FILE_SIZE_MB': int(os.environ.get('MAX_FILE_SIZE_MB', '50')),

        # Side effects
        'NOTIFICATION_WORKERS': int(os.environ.get('NOTIFICATION_WORKERS', '4')),
        'NOTIFICATIONS_RUN_INLINE': _flag('NOTIFICATIONS_RUN_INLINE', 'False'),
        'PROVIDER_TIMEOUT_SECONDS': float(os.environ.get('PROVIDER_TIMEOUT_SECONDS', '10')),
        'REALTIME_QUEUE_SIZE': int(os.environ.get('REALTIME_QUEUE_SIZE', '100')),
    }
