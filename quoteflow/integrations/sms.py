"""Outbound SMS through an HTTP gateway."""
from __future__ import annotations

from abc import ABC, abstractmethod

import requests

from quoteflow.errors import DependencyFailure
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.integrations.sms")


class SmsNotifier(ABC):
    @abstractmethod
    def send(self, phone: str, message: str) -> None:
        """Deliver one SMS. Raises DependencyFailure on provider errors."""


class HttpSmsNotifier(SmsNotifier):
    def __init__(self, gateway_url: str, api_key: str | None, sender: str, timeout: float = 10):
        self.gateway_url = gateway_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def send(self, phone, message):
        if not phone:
            logger.debug("No phone number on record, SMS skipped")
            return
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = requests.post(
                self.gateway_url,
                json={"to": phone, "from": self.sender, "message": message},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise DependencyFailure(f"SMS delivery failed: {e}") from e
        logger.info(f"SMS sent to {phone[-4:].rjust(len(phone), '*')}")


class LoggingSmsNotifier(SmsNotifier):
    def send(self, phone, message):
        logger.info(f"SMS (not sent, no SMS_GATEWAY_URL): to={phone} message='{message[:60]}'")
