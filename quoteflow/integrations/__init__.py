"""
External collaborators, built once per application from its config and
reachable through ``get_integrations()``.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from quoteflow.integrations.mailer import EmailNotifier, LoggingEmailNotifier, SmtpEmailNotifier
from quoteflow.integrations.file_store import FileStore, LocalFileStore
from quoteflow.integrations.payments import PaymentGateway, RazorpayGateway
from quoteflow.integrations.realtime import InMemoryRealtimeHub, RealtimeHub
from quoteflow.integrations.sms import HttpSmsNotifier, LoggingSmsNotifier, SmsNotifier
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.integrations")

EXTENSION_KEY = "quoteflow.integrations"


@dataclass
class Integrations:
    email: EmailNotifier
    sms: SmsNotifier
    realtime: RealtimeHub
    files: FileStore
    payments: PaymentGateway


def init_integrations(app) -> Integrations:
    config = app.config
    timeout = config['PROVIDER_TIMEOUT_SECONDS']

    if config.get('MAIL_SERVER'):
        email = SmtpEmailNotifier(
            config['MAIL_SERVER'],
            config['MAIL_PORT'],
            username=config.get('MAIL_USERNAME'),
            password=config.get('MAIL_PASSWORD'),
            use_tls=config['MAIL_USE_TLS'],
            sender=config['MAIL_DEFAULT_SENDER'],
            timeout=timeout,
        )
    else:
        logger.warning("MAIL_SERVER not set - emails will only be logged")
        email = LoggingEmailNotifier()

    if config.get('SMS_GATEWAY_URL'):
        sms = HttpSmsNotifier(config['SMS_GATEWAY_URL'], config.get('SMS_API_KEY'), config['SMS_SENDER'], timeout)
    else:
        sms = LoggingSmsNotifier()

    integrations = Integrations(
        email=email,
        sms=sms,
        realtime=InMemoryRealtimeHub(config['REALTIME_QUEUE_SIZE']),
        files=LocalFileStore(config['UPLOAD_FOLDER'], timeout),
        payments=RazorpayGateway(
            config.get('RAZORPAY_KEY_ID'),
            config.get('RAZORPAY_KEY_SECRET'),
            config['RAZORPAY_API_URL'],
            timeout,
        ),
    )
    app.extensions[EXTENSION_KEY] = integrations
    return integrations


def get_integrations(app=None) -> Integrations:
    return (app or current_app).extensions[EXTENSION_KEY]
